"""Module redirect endpoints - links into sibling products (core HR, payroll)."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from api.deps import get_identity_store, get_plan_status_client
from services.identity_store import IdentityStore, Slot
from services.plan_status import PlanStatusClient, PlanStatusError, is_blank_token
from services.redirects import get_module_redirect_url

logger = logging.getLogger(__name__)

router = APIRouter()


class ModuleRedirectResponse(BaseModel):
    """Response schema for a module redirect."""

    module_id: str
    is_saas: bool
    redirect_url: str


@router.get("/modules/{module_id}/redirect", response_model=ModuleRedirectResponse)
async def module_redirect(
    module_id: str,
    store: IdentityStore = Depends(get_identity_store),
    plan_status_client: PlanStatusClient = Depends(get_plan_status_client),
):
    """
    Resolve the URL of a sibling product module for the signed-in tenancy.

    Args:
        module_id: Module identifier (e.g. "core", "payroll")

    Returns:
        ModuleRedirectResponse: Target URL on the SaaS or partner domain

    Raises:
        HTTPException: 401 if no token is stored, 502 if plan status is unavailable
    """
    token = await store.get(Slot.JWT_TOKEN)
    if is_blank_token(token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="JWT token not found",
        )

    try:
        plan_status = await plan_status_client.fetch(token)
    except PlanStatusError as e:
        logger.warning(f"Module redirect for {module_id} failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Plan status is not available",
        )

    if plan_status.is_saas is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Plan status did not include isSaas",
        )

    return ModuleRedirectResponse(
        module_id=module_id,
        is_saas=plan_status.is_saas,
        redirect_url=get_module_redirect_url(module_id, plan_status.is_saas),
    )
