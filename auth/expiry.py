"""Token expiry rule shared by the session monitor and API surfaces."""

import math
import time

import config
from auth.jwt import Claims


def is_expired(
    claims: Claims | None,
    now: float | None = None,
    buffer_seconds: int | None = None,
) -> bool:
    """
    Decide whether decoded claims are no longer usable.

    A token counts as expired ``buffer_seconds`` before its ``exp`` so that a
    request is never sent with a token that lapses in flight.

    Args:
        claims: Decoded claims, or None if decoding failed
        now: Current time in epoch seconds (default: time.time())
        buffer_seconds: Safety margin (default: TOKEN_EXPIRY_BUFFER_SECONDS)

    Returns:
        True if the token must be treated as expired
    """
    if not claims:
        return True

    exp = claims.get("exp")
    # bool is an int subclass but never a valid expiry
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return True
    # Overflowing numbers such as 1e400 parse as inf
    if isinstance(exp, float) and not math.isfinite(exp):
        return True

    if now is None:
        now = time.time()
    if buffer_seconds is None:
        buffer_seconds = config.settings.TOKEN_EXPIRY_BUFFER_SECONDS

    return exp - buffer_seconds <= now
