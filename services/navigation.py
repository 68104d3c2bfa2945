"""Server-side view of a browser's location."""

import asyncio


class Navigator:
    """Tracks the page a browser scope is on and where it must go next.

    The browser learns about a navigation the next time it loads a page or
    polls the session endpoints; until then it sits in ``pending``.

    ``lock`` serializes session transitions of the scope (expiry checks,
    token hand-off, logout), each of which spans several store round trips.
    """

    def __init__(self, location: str = "/"):
        self.location = location
        self.pending: str | None = None
        self.lock = asyncio.Lock()

    def visit(self, path: str) -> None:
        """Record the page the browser is currently showing."""
        self.location = path

    def navigate(self, url: str) -> None:
        self.location = url
        self.pending = url

    def take_pending(self) -> str | None:
        url, self.pending = self.pending, None
        return url
