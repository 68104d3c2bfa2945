"""FastAPI application factory and main entry point."""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

import config
import logging_config
from api import router as api_router
from api import token_handler
from api.deps import PageContext, get_page_context
from api.v1.session import IdentityResponse
from db import close_db, init_db
from services.identity_store import SqlStorage, build_storage
from services.session_monitor import MonitorRegistry

# Setup logging
logging_config.setup_logging(config.settings.LOG_LEVEL)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    """
    # Startup
    storage = build_storage()
    if isinstance(storage, SqlStorage):
        await init_db()
    app.state.storage = storage
    app.state.http_client = httpx.AsyncClient(timeout=config.settings.PLAN_STATUS_TIMEOUT_SECONDS)
    app.state.monitors = MonitorRegistry(
        idle_timeout_seconds=config.settings.MONITOR_IDLE_TIMEOUT_SECONDS,
    )
    logger.info(f"Identity store backend: {config.settings.IDENTITY_STORE_BACKEND}")
    yield
    # Shutdown
    await app.state.monitors.stop_all()
    await app.state.http_client.aclose()
    if isinstance(storage, SqlStorage):
        await close_db()


# Create FastAPI app
app = FastAPI(
    title="Leave Portal Session Service",
    description="Session and identity backend for the leave management dashboard",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Browser session cookie; it only carries the scope id, every request is accepted
app.add_middleware(
    SessionMiddleware,
    secret_key=config.settings.SESSION_SECRET,
    session_cookie=config.settings.SESSION_COOKIE_NAME,
    max_age=config.settings.SESSION_TTL_SECONDS,
    same_site="lax",
    https_only=config.settings.APP_ENV == "production",
)

# Include API router
app.include_router(api_router.api_router, prefix=config.settings.API_PREFIX)
app.include_router(token_handler.router)


@app.get("/")
async def root(page: PageContext = Depends(get_page_context)):
    """Root endpoint. Follows any pending navigation, else summarizes the session."""
    target = page.navigator.take_pending()
    if target and target != "/":
        return RedirectResponse(target, status_code=status.HTTP_302_FOUND)

    identity = await page.store.get_identity()
    return {
        "message": "Leave Portal Session Service",
        "version": "0.1.0",
        "authenticated": identity is not None,
        "identity": IdentityResponse.from_record(identity) if identity else None,
    }
