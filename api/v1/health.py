"""Health check endpoint."""

from fastapi import APIRouter, Request

import config

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint.

    Returns:
        dict: Status, environment and identity store information
    """
    return {
        "status": "ok",
        "env": config.settings.ENV,
        "identity_store": config.settings.IDENTITY_STORE_BACKEND,
        "active_monitors": len(request.app.state.monitors),
    }
