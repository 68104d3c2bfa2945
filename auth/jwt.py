"""JWT claim extraction.

Tokens arrive from the external identity provider. By default their payload
is read without checking the signature; ``VerifiedClaimsExtractor`` is the
opt-in variant that does check it.
"""

import base64
import binascii
import json
import logging
from typing import Any

from jose import jwt, JWTError

import config

logger = logging.getLogger(__name__)

Claims = dict[str, Any]


def _reject_constant(name: str):
    # NaN, Infinity and -Infinity are not JSON
    raise ValueError(f"Invalid JSON constant: {name}")


def decode_claims(token: str) -> Claims | None:
    """
    Decode the payload segment of a compact JWT without verifying it.

    Args:
        token: Compact token string (header.payload.signature)

    Returns:
        Claims mapping, or None if any decoding step fails
    """
    if not isinstance(token, str):
        return None

    parts = token.split(".")
    if len(parts) < 2:
        return None

    segment = parts[1].replace("-", "+").replace("_", "/")
    segment += "=" * (-len(segment) % 4)

    try:
        raw = base64.b64decode(segment, validate=True)
        payload = json.loads(raw.decode("utf-8"), parse_constant=_reject_constant)
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        logger.debug(f"Failed to decode token payload: {type(e).__name__}: {e}")
        return None

    if not isinstance(payload, dict):
        return None

    return payload


class ClaimsExtractor:
    """Turns a raw token into claims, or None when it can't be trusted."""

    def extract(self, token: str) -> Claims | None:
        raise NotImplementedError


class UnverifiedClaimsExtractor(ClaimsExtractor):
    """Reads claims straight from the payload segment."""

    def extract(self, token: str) -> Claims | None:
        return decode_claims(token)


class VerifiedClaimsExtractor(ClaimsExtractor):
    """Reads claims only from tokens signed with the configured secret.

    Expiry is left to ``auth.expiry`` so both variants share one expiry rule.
    """

    def __init__(self, secret: str, algorithms: list[str]):
        self.secret = secret
        self.algorithms = algorithms

    def extract(self, token: str) -> Claims | None:
        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=self.algorithms,
                options={"verify_exp": False, "verify_aud": False},
            )
        except JWTError as e:
            logger.warning(f"Rejected token: {e}")
            return None


def get_claims_extractor() -> ClaimsExtractor:
    """Return the extractor selected by settings."""
    if config.settings.JWT_VERIFY_SIGNATURE:
        return VerifiedClaimsExtractor(
            config.settings.JWT_SECRET,
            [config.settings.JWT_ALGORITHM],
        )
    return UnverifiedClaimsExtractor()
