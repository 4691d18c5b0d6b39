"""
Reusable filter / select / sort / paginate behaviour for list endpoints.

An ``AdvancedResults`` instance is a FastAPI dependency configured per
entity. It builds the query from the request's query string, stores the
resulting envelope on ``request.state.advanced_results`` and returns it, so
the route handler only has to hand it back::

    device_results = AdvancedResults(Device, "devices", DeviceRead, fields={...})

    @router.get("/devices")
    async def list_devices(results: ListEnvelope = Depends(device_results)):
        return results
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from fastapi import Depends, Request
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from garage.api.v1.deps import get_current_user, get_db
from garage.core.config import Settings, get_settings
from garage.core.exceptions import NotFound
from garage.core.filters import build_where_clauses, parse_query_filters
from garage.core.pagination import paginate, parse_limit, parse_page
from garage.models.user import User
from garage.schemas.common import ListEnvelope, PaginationRead

logger = logging.getLogger(__name__)


class AdvancedResults:
    """List-endpoint dependency for one entity type.

    *fields* maps the public field names accepted by filters and ``sort`` to
    model columns. *populate* maps relationship attributes to the schema used
    to render them inline when expansion is requested.
    """

    def __init__(
        self,
        model: type,
        model_type: str,
        read_schema: type[BaseModel],
        fields: Mapping[str, Any],
        populate: Mapping[str, type[BaseModel]] | None = None,
    ) -> None:
        self.model = model
        self.model_type = model_type
        self.read_schema = read_schema
        self.fields = dict(fields)
        self.populate = dict(populate or {})

    async def __call__(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(get_current_user),
        settings: Settings = Depends(get_settings),
    ) -> ListEnvelope:
        query = request.query_params

        conditions = parse_query_filters(query.multi_items(), self.model_type, current_user.id)
        clauses = build_where_clauses(conditions, self.fields)

        total = await db.scalar(select(func.count()).select_from(self.model).where(*clauses))
        logger.debug("%s matched before pagination: %s", self.model_type, total)
        if not total:
            raise NotFound("No results found for the current filter")

        stmt = select(self.model).where(*clauses)

        expand = bool(self.populate) and self._wants_populate(query.get("populate"))
        if expand:
            stmt = stmt.options(
                *(selectinload(getattr(self.model, rel)) for rel in self.populate)
            )

        stmt = stmt.order_by(*self._order_by(query.get("sort")))

        page = paginate(
            total,
            parse_page(query.get("page")),
            parse_limit(query.get("limit"), settings.DEFAULT_PAGE_SIZE),
        )
        if page.limit is not None:
            stmt = stmt.offset(page.skip).limit(page.limit)
        logger.debug("%s page=%s limit=%s skip=%s", self.model_type, page.number, page.limit, page.skip)

        rows = (await db.execute(stmt)).scalars().all()
        selected = self._selected_fields(query.get("select"))
        items = [self._serialize(row, expand, selected) for row in rows]

        pagination = PaginationRead(prev=page.prev, next=page.next)
        if not items:
            envelope = ListEnvelope(
                success=True,
                count=total,
                pagination=pagination,
                message="No results for current filters",
                error=False,
            )
        else:
            envelope = ListEnvelope(
                success=True,
                count=total,
                pagination=pagination,
                data=items,
                error=False,
            )

        request.state.advanced_results = envelope
        return envelope

    # ── Helpers ─────────────────────────────────────────────────────
    @staticmethod
    def _wants_populate(raw: str | None) -> bool:
        # absent → expand
        return raw is None or raw.lower() == "true"

    @staticmethod
    def _selected_fields(raw: str | None) -> set[str] | None:
        if not raw:
            return None
        return {name.strip() for name in raw.split(",") if name.strip()}

    def _order_by(self, raw: str | None) -> list:
        order = []
        for token in (raw or "").split(","):
            token = token.strip()
            descending = token.startswith("-")
            column = self.fields.get(token.lstrip("-"))
            if column is None:
                continue
            order.append(column.desc() if descending else column.asc())
        if not order:
            order.append(self.fields["created_at"].desc())
        order.append(self.model.id.desc())
        return order

    def _serialize(self, row: Any, expand: bool, selected: set[str] | None) -> dict[str, Any]:
        item = self.read_schema.model_validate(row).model_dump(mode="json")
        if expand:
            for rel, schema in self.populate.items():
                related = getattr(row, rel)
                item[rel] = None if related is None else schema.model_validate(related).model_dump(mode="json")
        if selected is not None:
            item = {key: value for key, value in item.items() if key == "id" or key in selected}
        return item
