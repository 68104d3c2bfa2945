"""Login and module redirect decisions based on plan status."""

import logging

import config
from services.identity_store import IdentityStore, Slot
from services.plan_status import PlanStatusClient, PlanStatusError, is_blank_token

logger = logging.getLogger(__name__)

MODULE_PATHS = {
    "core": "/company-setup-for-customer",
    "payroll": "/dashboard/team-dashboard/team-dashboard",
}


class RedirectPolicy:
    """Picks the login surface for the current tenancy.

    SaaS tenants and partner-managed tenants sign in on different sites. The
    tenancy is only known after a plan-status round trip, so every failure of
    that round trip falls back to the default login URL.
    """

    def __init__(
        self,
        store: IdentityStore,
        plan_status_client: PlanStatusClient,
        saas_login_url: str,
        partner_login_url: str,
        default_login_url: str,
    ):
        self.store = store
        self.plan_status_client = plan_status_client
        self.saas_login_url = saas_login_url
        self.partner_login_url = partner_login_url
        self.default_login_url = default_login_url

    @classmethod
    def from_settings(cls, store: IdentityStore, plan_status_client: PlanStatusClient) -> "RedirectPolicy":
        return cls(
            store,
            plan_status_client,
            saas_login_url=config.settings.SAAS_LOGIN_URL,
            partner_login_url=config.settings.PARTNER_LOGIN_URL,
            default_login_url=config.settings.DEFAULT_LOGIN_URL,
        )

    async def resolve_login_url(self) -> str:
        """
        Resolve where to send a user whose session is over.

        Returns:
            SaaS or partner login URL from plan status, else the default login URL
        """
        try:
            token = await self.store.get(Slot.JWT_TOKEN)
            if is_blank_token(token):
                logger.info("No token stored, using default login redirect")
                return self.default_login_url

            plan_status = await self.plan_status_client.fetch(token)
        except PlanStatusError as e:
            logger.warning(f"Plan status not available, using default login redirect: {e}")
            return self.default_login_url
        except Exception as e:
            logger.error(f"Error resolving login redirect: {type(e).__name__}: {e}", exc_info=True)
            return self.default_login_url

        if plan_status.is_saas is None:
            logger.info("Plan status has no isSaas flag, using default login redirect")
            return self.default_login_url

        login_url = self.saas_login_url if plan_status.is_saas else self.partner_login_url
        logger.info(f"Redirecting to login: {login_url} (isSaas: {plan_status.is_saas})")
        return login_url


def get_module_redirect_url(module_id: str, is_saas: bool) -> str:
    """
    Build the URL of a sibling product module.

    Args:
        module_id: Module identifier (e.g. "core", "payroll")
        is_saas: Tenancy flag from plan status

    Returns:
        Module URL on the tenancy's app domain; unknown modules land on its home page
    """
    base_url = config.settings.SAAS_APP_BASE_URL if is_saas else config.settings.PARTNER_APP_BASE_URL
    return f"{base_url}{MODULE_PATHS.get(module_id, '')}"
