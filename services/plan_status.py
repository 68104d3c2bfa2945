"""Client for the organization plan-status endpoint."""

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError


class PlanStatusError(Exception):
    """Raised when plan status cannot be fetched or understood."""


class PlanStatus(BaseModel):
    """Tenancy descriptor for the signed-in organization.

    Only ``is_saas`` decides anything; the other fields are informational.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    message: str | None = None
    expiry_flag: bool | None = Field(default=None, alias="expiryFlag")
    is_admin: bool | None = Field(default=None, alias="isAdmin")
    is_saas: bool | None = Field(default=None, alias="isSaas")
    is_partner: bool | None = Field(default=None, alias="isPartner")
    organization_logo: str | None = Field(default=None, alias="organizationLogo")


BLANK_TOKEN_VALUES = ("null", "undefined")


def is_blank_token(token: str | None) -> bool:
    """True for missing tokens and the string forms a cleared slot can hold."""
    return token is None or token.strip() == "" or token in BLANK_TOKEN_VALUES


class PlanStatusClient:
    """Fetches the tenancy descriptor for the token's organization."""

    def __init__(self, url: str, http_client: httpx.AsyncClient):
        self.url = url
        self.http_client = http_client

    async def fetch(self, token: str) -> PlanStatus:
        """
        Fetch plan status with the caller's token.

        Args:
            token: Bearer token of the signed-in user

        Returns:
            PlanStatus parsed from the response body

        Raises:
            PlanStatusError: On network errors, non-2xx responses or a malformed body
        """
        try:
            response = await self.http_client.get(
                self.url,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                },
            )
        except httpx.HTTPError as e:
            raise PlanStatusError(f"Plan status request failed: {type(e).__name__}: {e}") from e

        if not response.is_success:
            raise PlanStatusError(f"Plan status request returned HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise PlanStatusError(f"Plan status response is not JSON: {e}") from e

        if not isinstance(body, dict):
            raise PlanStatusError("Plan status response is not a JSON object")

        try:
            return PlanStatus.model_validate(body)
        except ValidationError as e:
            raise PlanStatusError(f"Plan status response is malformed: {e}") from e
