"""Background session expiry checks.

Each browser scope gets one SessionMonitor. It re-evaluates the stored token
when it starts, every ``interval_seconds``, and whenever the browser reports
that the tab regained focus. An expired or unreadable token ends the session:
the auth slots are cleared and the browser is sent to the login page.

While the browser is on the token hand-off route nothing is cleared, since
the token there is still being stored.
"""

import asyncio
import contextlib
import enum
import logging
import time
from typing import Callable

from auth.expiry import is_expired
from auth.jwt import ClaimsExtractor
from services.identity_store import IdentityStore, Slot
from services.navigation import Navigator
from services.redirects import RedirectPolicy

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    VALID = "valid"
    LOGGED_OUT = "logged-out"


class SessionMonitor:
    """Periodic and on-focus token expiry checker for one browser scope."""

    def __init__(
        self,
        store: IdentityStore,
        redirect_policy: RedirectPolicy,
        navigator: Navigator,
        extractor: ClaimsExtractor,
        interval_seconds: float = 300,
        ingest_prefix: str = "/id",
        buffer_seconds: int = 60,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.redirect_policy = redirect_policy
        self.navigator = navigator
        self.extractor = extractor
        self.interval_seconds = interval_seconds
        self.ingest_prefix = ingest_prefix.rstrip("/") + "/"
        self.buffer_seconds = buffer_seconds
        self.clock = clock
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def on_ingest_route(self) -> bool:
        return self.navigator.location.startswith(self.ingest_prefix)

    async def check(self) -> SessionState:
        """
        Evaluate the stored token once and end the session if it has expired.

        Runs under the scope's navigator lock, so a token hand-off for the
        same browser can't land between reading the token and clearing it.

        Returns:
            SessionState after the check
        """
        async with self.navigator.lock:
            return await self._check()

    async def _check(self) -> SessionState:
        exempt = self.on_ingest_route()

        try:
            token = await self.store.get(Slot.JWT_TOKEN)
            if not token:
                if exempt:
                    logger.debug("On token setup route, skipping redirect")
                return SessionState.LOGGED_OUT

            expired = is_expired(
                self.extractor.extract(token),
                now=self.clock(),
                buffer_seconds=self.buffer_seconds,
            )
        except Exception as e:
            if exempt:
                logger.info("Error checking token but on token setup route, skipping redirect")
                return SessionState.LOGGED_OUT
            logger.error(f"Error checking token expiration: {type(e).__name__}: {e}", exc_info=True)
            await self._end_session()
            return SessionState.LOGGED_OUT

        if not expired:
            return SessionState.VALID

        if exempt:
            logger.info("Token expired but on token setup route, skipping redirect")
            return SessionState.LOGGED_OUT

        logger.info(f"Token expired for scope {self.store.scope_id}, redirecting to login")
        await self._end_session()
        return SessionState.LOGGED_OUT

    async def _end_session(self) -> None:
        await self.store.clear_auth_state()
        login_url = await self.redirect_policy.resolve_login_url()
        self.navigator.navigate(login_url)

    async def start(self) -> None:
        """Check immediately, then keep checking on the interval. Idempotent."""
        if self._running:
            return
        self._running = True
        await self.check()
        # stop() may have been called while the first check was suspended
        if self._running:
            self._task = asyncio.create_task(self._run_periodic())

    async def _run_periodic(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            logger.debug(f"Periodic token check for scope {self.store.scope_id}")
            try:
                await self.check()
            except Exception as e:
                logger.error(
                    f"Periodic token check failed for scope {self.store.scope_id}: {type(e).__name__}: {e}",
                    exc_info=True,
                )

    async def notify_focus(self) -> SessionState | None:
        """Re-check after the tab regained focus; ignored once stopped."""
        if not self._running:
            return None
        logger.debug(f"Tab focused, checking token for scope {self.store.scope_id}")
        return await self.check()

    async def stop(self) -> None:
        """Cancel the periodic check. Safe to call more than once."""
        self._running = False
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def __aenter__(self) -> "SessionMonitor":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()


class MonitorRegistry:
    """One navigator and at most one running monitor per browser scope."""

    def __init__(self, idle_timeout_seconds: float = 3600, clock: Callable[[], float] = time.monotonic):
        self.idle_timeout_seconds = idle_timeout_seconds
        self.clock = clock
        self._navigators: dict[str, Navigator] = {}
        self._monitors: dict[str, SessionMonitor] = {}
        self._last_seen: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._monitors)

    def navigator(self, scope_id: str) -> Navigator:
        self._last_seen[scope_id] = self.clock()
        navigator = self._navigators.get(scope_id)
        if navigator is None:
            navigator = self._navigators[scope_id] = Navigator()
        return navigator

    def get(self, scope_id: str) -> SessionMonitor | None:
        return self._monitors.get(scope_id)

    async def ensure_started(
        self,
        scope_id: str,
        factory: Callable[[], SessionMonitor],
    ) -> SessionMonitor:
        """
        Return the scope's monitor, starting one if needed.

        Monitors of scopes that have been idle longer than the idle timeout
        are stopped first.
        """
        await self._evict_idle(exclude=scope_id)
        self._last_seen[scope_id] = self.clock()

        monitor = self._monitors.get(scope_id)
        if monitor is None:
            monitor = self._monitors[scope_id] = factory()
            await monitor.start()
        return monitor

    async def _evict_idle(self, exclude: str) -> None:
        cutoff = self.clock() - self.idle_timeout_seconds
        idle = [
            scope_id
            for scope_id, seen in self._last_seen.items()
            if seen < cutoff and scope_id != exclude
        ]
        for scope_id in idle:
            logger.debug(f"Releasing idle session scope {scope_id}")
            await self.stop(scope_id)

    async def stop(self, scope_id: str) -> None:
        self._last_seen.pop(scope_id, None)
        self._navigators.pop(scope_id, None)
        monitor = self._monitors.pop(scope_id, None)
        if monitor is not None:
            await monitor.stop()

    async def stop_all(self) -> None:
        for scope_id in list(self._last_seen) + list(self._monitors):
            await self.stop(scope_id)
