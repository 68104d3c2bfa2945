"""Database models."""

from db import Base

# Import all models so Alembic can detect them
from models.identity_slot import IdentitySlot

__all__ = [
    "Base",
    "IdentitySlot",
]
