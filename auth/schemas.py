"""JWT identity schemas."""

import math

from pydantic import BaseModel, ConfigDict, field_validator


class IdentityClaims(BaseModel):
    """Identity fields carried by the identity provider's token."""

    model_config = ConfigDict(extra="allow")

    org_id: str | None = None
    user_id: str | None = None
    role_id: str | None = None
    role_name: str | None = None
    user_type_id: str | None = None
    exp: int | None = None  # Expiration time (epoch seconds)

    @field_validator("org_id", "user_id", "role_id", "role_name", "user_type_id", mode="before")
    @classmethod
    def _coerce_to_str(cls, value):
        # The provider sends ids as numbers or strings depending on tenant
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("exp", mode="before")
    @classmethod
    def _ignore_bad_exp(cls, value):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return int(value)


class IdentityRecord(BaseModel):
    """Snapshot of the identity slots for one browser scope."""

    token: str
    user_id: str | None = None
    org_id: str | None = None
    role: str | None = None
    role_id: str | None = None
    role_name: str | None = None
    user_type_id: str | None = None
    leave_year: str | None = None
