"""Token hand-off from the identity provider."""

import logging

from auth.jwt import Claims, ClaimsExtractor
from auth.schemas import IdentityClaims
from services.identity_store import IdentityStore, Slot
from services.navigation import Navigator

logger = logging.getLogger(__name__)

HOME_PATH = "/"


async def store_identity_from_token(store: IdentityStore, token: str, claims: Claims) -> bool:
    """
    Persist the token and the identity fields derived from its claims.

    Identity fields are written before the token, so a stored token always
    comes with its identity. Fields missing from the claims are removed
    rather than left over from an earlier session.

    Args:
        store: Identity store of the browser scope
        token: Raw token string
        claims: Decoded claims of ``token``

    Returns:
        True if every write succeeded
    """
    identity = IdentityClaims.model_validate(claims)

    fields = {
        Slot.ORG_ID: identity.org_id,
        Slot.USER_ID: identity.user_id,
        Slot.ROLE_ID: identity.role_id,
        Slot.ROLE_NAME: identity.role_name,
        Slot.ROLE: identity.role_name,
        Slot.USER_TYPE_ID: identity.user_type_id,
    }

    ok = True
    for slot, value in fields.items():
        if value is None:
            ok = await store.remove(slot) and ok
        else:
            ok = await store.set(slot, value) and ok

    ok = await store.set(Slot.JWT_TOKEN, token) and ok

    logger.info(
        f"Stored identity for scope {store.scope_id}: "
        f"org_id={identity.org_id} user_id={identity.user_id} role={identity.role_name}"
    )
    return ok


async def ingest_token(
    token: str,
    store: IdentityStore,
    navigator: Navigator,
    extractor: ClaimsExtractor,
) -> str:
    """
    Establish a session from a freshly issued token.

    Navigation to the home page happens only after the identity is stored.
    An undecodable token establishes nothing and also lands on the home page.

    Returns:
        URL the browser must be sent to
    """
    claims = extractor.extract(token)

    async with navigator.lock:
        if claims is None:
            logger.warning("Failed to decode JWT token, redirecting to home page")
        else:
            stored = await store_identity_from_token(store, token, claims)
            if not stored:
                logger.warning(f"Identity for scope {store.scope_id} was only partially stored")

        navigator.navigate(HOME_PATH)
        return navigator.take_pending()
