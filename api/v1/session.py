"""Session endpoints - identity, focus checks, logout and leave-year cache."""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from api.deps import (
    get_identity_store,
    get_navigator,
    get_redirect_policy,
    get_session_monitor,
)
from auth.schemas import IdentityRecord
from services.identity_store import IdentityStore, Slot
from services.navigation import Navigator
from services.redirects import RedirectPolicy
from services.session_monitor import SessionMonitor, SessionState

logger = logging.getLogger(__name__)

router = APIRouter()


class IdentityResponse(BaseModel):
    """Identity fields visible to the browser (the token itself is not echoed)."""

    user_id: str | None
    org_id: str | None
    role: str | None
    role_id: str | None
    role_name: str | None
    user_type_id: str | None
    leave_year: str | None

    @classmethod
    def from_record(cls, record: IdentityRecord) -> "IdentityResponse":
        return cls(**record.model_dump(exclude={"token"}))


class SessionStatusResponse(BaseModel):
    """Response schema for session state."""

    state: SessionState
    redirect_url: str | None = None  # Where the browser must go next, if anywhere
    identity: IdentityResponse | None = None


class FocusEvent(BaseModel):
    """Sent by the browser when the tab regains focus."""

    location: str | None = Field(default=None, description="Path of the page currently shown")


class LeaveYearUpdate(BaseModel):
    leave_year: str = Field(min_length=1, max_length=32)


class LogoutResponse(BaseModel):
    redirect_url: str


async def _session_status(
    state: SessionState | None,
    store: IdentityStore,
    navigator: Navigator,
) -> SessionStatusResponse:
    identity = await store.get_identity()
    if state is None:
        state = SessionState.VALID if identity else SessionState.LOGGED_OUT
    return SessionStatusResponse(
        state=state,
        redirect_url=navigator.take_pending(),
        identity=IdentityResponse.from_record(identity) if identity else None,
    )


@router.get("/session", response_model=SessionStatusResponse)
async def get_session(
    monitor: SessionMonitor = Depends(get_session_monitor),
    store: IdentityStore = Depends(get_identity_store),
    navigator: Navigator = Depends(get_navigator),
):
    """
    Get the current session state and identity.

    The token is checked on every call; if the session has ended, the login
    URL is returned in ``redirect_url``.
    """
    state = await monitor.check()
    return await _session_status(state, store, navigator)


@router.post("/session/focus", response_model=SessionStatusResponse)
async def session_focus(
    event: FocusEvent,
    monitor: SessionMonitor = Depends(get_session_monitor),
    store: IdentityStore = Depends(get_identity_store),
    navigator: Navigator = Depends(get_navigator),
):
    """
    Re-check the token because the browser tab regained focus.

    Args:
        event: Focus event with the page the browser is showing

    Returns:
        SessionStatusResponse: State after the check, with a redirect if the session ended
    """
    if event.location:
        navigator.visit(event.location)
    state = await monitor.notify_focus()
    return await _session_status(state, store, navigator)


@router.post("/session/logout", response_model=LogoutResponse)
async def logout(
    store: IdentityStore = Depends(get_identity_store),
    redirect_policy: RedirectPolicy = Depends(get_redirect_policy),
    navigator: Navigator = Depends(get_navigator),
):
    """
    End the session on request.

    The login URL is resolved while the token is still stored so the
    tenancy-specific login page can be chosen, then the auth state is cleared.
    """
    async with navigator.lock:
        login_url = await redirect_policy.resolve_login_url()
        await store.clear_auth_state()
        navigator.navigate(login_url)
        logger.info(f"Logged out scope {store.scope_id}")
        return LogoutResponse(redirect_url=navigator.take_pending())


@router.put("/session/leave-year", response_model=SessionStatusResponse)
async def set_leave_year(
    update: LeaveYearUpdate,
    store: IdentityStore = Depends(get_identity_store),
    navigator: Navigator = Depends(get_navigator),
):
    """
    Cache the leave year the dashboard is showing.
    The cache is dropped together with the rest of the auth state.
    """
    await store.set(Slot.LEAVE_YEAR, update.leave_year)
    return await _session_status(None, store, navigator)
