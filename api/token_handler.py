"""Token hand-off route: <TOKEN_INGEST_PREFIX>/<token>."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse

import config
from api.deps import PageContext, get_page_context
from auth.jwt import ClaimsExtractor, get_claims_extractor
from services.token_ingest import ingest_token

router = APIRouter(prefix=config.settings.TOKEN_INGEST_PREFIX.rstrip("/"))


@router.get("/{token}", include_in_schema=False)
async def token_handler(
    token: str,
    page: PageContext = Depends(get_page_context),
    extractor: ClaimsExtractor = Depends(get_claims_extractor),
):
    """
    Receive a freshly issued token from the identity provider.

    The identity is stored before the browser is redirected to the home page.
    """
    target = await ingest_token(token, page.store, page.navigator, extractor)
    return RedirectResponse(target, status_code=status.HTTP_302_FOUND)
