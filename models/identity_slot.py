"""Identity slot model - per-browser key/value session state."""

from datetime import datetime, UTC

from pydantic import BaseModel, ConfigDict
from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from db import Base


class IdentitySlot(Base):
    """Identity slot ORM model - one stored value per (browser scope, key)."""

    __tablename__ = "identity_slots"

    scope_id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)
    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )


# Pydantic schemas
class IdentitySlotResponse(BaseModel):
    """Schema for a stored slot, as printed by check_db."""

    model_config = ConfigDict(from_attributes=True)

    scope_id: str
    key: str
    value: str
    updated_at: datetime
