"""
V1 API router aggregator: wires all endpoint modules together.
"""

from fastapi import APIRouter

from garage.api.v1.endpoints import auth, devices, health, users

api_router = APIRouter()

# Register, login, logout, password change
api_router.include_router(auth.router)

# Profiles, listing, self-edit / delete
api_router.include_router(users.router)

# Devices, checkout, images
api_router.include_router(devices.router)

api_router.include_router(health.router)
