"""FastAPI dependencies for browser sessions and the identity store."""

from dataclasses import dataclass
from uuid import uuid4

from fastapi import Depends, Request

import config
from auth.jwt import ClaimsExtractor, get_claims_extractor
from services.identity_store import IdentityStore, StorageBackend
from services.navigation import Navigator
from services.plan_status import PlanStatusClient
from services.redirects import RedirectPolicy
from services.session_monitor import MonitorRegistry, SessionMonitor

SCOPE_SESSION_KEY = "scope_id"


def get_scope_id(request: Request) -> str:
    """
    Dependency to get the browser scope id from the session cookie.
    A new scope is opened for browsers that don't have one yet.
    """
    scope_id = request.session.get(SCOPE_SESSION_KEY)
    if not scope_id:
        scope_id = uuid4().hex
        request.session[SCOPE_SESSION_KEY] = scope_id
    return scope_id


def get_storage(request: Request) -> StorageBackend:
    return request.app.state.storage


def get_identity_store(
    scope_id: str = Depends(get_scope_id),
    storage: StorageBackend = Depends(get_storage),
) -> IdentityStore:
    return IdentityStore(scope_id, storage)


def get_plan_status_client(request: Request) -> PlanStatusClient:
    return PlanStatusClient(config.settings.PLAN_STATUS_URL, request.app.state.http_client)


def get_redirect_policy(
    store: IdentityStore = Depends(get_identity_store),
    plan_status_client: PlanStatusClient = Depends(get_plan_status_client),
) -> RedirectPolicy:
    return RedirectPolicy.from_settings(store, plan_status_client)


def get_monitor_registry(request: Request) -> MonitorRegistry:
    return request.app.state.monitors


def get_navigator(
    scope_id: str = Depends(get_scope_id),
    registry: MonitorRegistry = Depends(get_monitor_registry),
) -> Navigator:
    return registry.navigator(scope_id)


def get_page_navigator(
    request: Request,
    navigator: Navigator = Depends(get_navigator),
) -> Navigator:
    """Dependency for page routes: records the page as the browser's location."""
    navigator.visit(request.url.path)
    return navigator


async def _ensure_monitor(
    registry: MonitorRegistry,
    store: IdentityStore,
    redirect_policy: RedirectPolicy,
    navigator: Navigator,
    extractor: ClaimsExtractor,
) -> SessionMonitor:
    def _create_monitor() -> SessionMonitor:
        return SessionMonitor(
            store,
            redirect_policy,
            navigator,
            extractor,
            interval_seconds=config.settings.SESSION_CHECK_INTERVAL_SECONDS,
            ingest_prefix=config.settings.TOKEN_INGEST_PREFIX,
            buffer_seconds=config.settings.TOKEN_EXPIRY_BUFFER_SECONDS,
        )

    return await registry.ensure_started(store.scope_id, _create_monitor)


async def get_session_monitor(
    store: IdentityStore = Depends(get_identity_store),
    redirect_policy: RedirectPolicy = Depends(get_redirect_policy),
    navigator: Navigator = Depends(get_navigator),
    extractor: ClaimsExtractor = Depends(get_claims_extractor),
    registry: MonitorRegistry = Depends(get_monitor_registry),
) -> SessionMonitor:
    """
    Dependency to get the scope's session monitor, starting it on first use.
    Starting runs the first expiry check, so a pending navigation may already
    be set when the endpoint runs.
    """
    return await _ensure_monitor(registry, store, redirect_policy, navigator, extractor)


@dataclass
class PageContext:
    """What a page route needs to know about the browser that requested it."""

    store: IdentityStore
    navigator: Navigator
    monitor: SessionMonitor


async def get_page_context(
    navigator: Navigator = Depends(get_page_navigator),
    store: IdentityStore = Depends(get_identity_store),
    redirect_policy: RedirectPolicy = Depends(get_redirect_policy),
    extractor: ClaimsExtractor = Depends(get_claims_extractor),
    registry: MonitorRegistry = Depends(get_monitor_registry),
) -> PageContext:
    """
    Dependency for page routes. The location is recorded before the scope's
    monitor starts, so its first check already sees the page being loaded.
    A page load is a fresh mount in the browser, so an already running
    monitor checks again.
    """
    already_running = registry.get(store.scope_id) is not None
    monitor = await _ensure_monitor(registry, store, redirect_policy, navigator, extractor)
    if already_running:
        await monitor.check()
    return PageContext(store=store, navigator=navigator, monitor=monitor)
