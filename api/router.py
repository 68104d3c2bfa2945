"""Main API router that includes versioned routers."""

from fastapi import APIRouter

from api.v1 import health, modules, session

# Main API router
api_router = APIRouter()

# Include v1 routers
v1_router = APIRouter(prefix="/v1")
v1_router.include_router(health.router, tags=["health"])
v1_router.include_router(session.router, tags=["session"])
v1_router.include_router(modules.router, tags=["modules"])

api_router.include_router(v1_router)
