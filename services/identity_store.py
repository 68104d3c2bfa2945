"""Per-browser identity store.

Holds the token and the identity fields derived from it for one browser
scope. Reads never fail and writes report success instead of raising:
a storage failure is logged and the caller carries on as if the write had
not happened.
"""

import enum
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import config
from auth.schemas import IdentityRecord
from repos import identity_slots_repo

logger = logging.getLogger(__name__)


class Slot(str, enum.Enum):
    """Slot keys. Other parts of the product read these names directly."""

    JWT_TOKEN = "jwt_token"
    USER_ID = "user_id"
    ORG_ID = "org_id"
    ROLE = "role"
    ROLE_ID = "role_id"
    ROLE_NAME = "role_name"
    USER_TYPE_ID = "user_type_id"
    LEAVE_YEAR = "leave_year"


# Removed together whenever the session ends
AUTH_STATE_SLOTS = (
    Slot.JWT_TOKEN,
    Slot.USER_ID,
    Slot.ROLE,
    Slot.ORG_ID,
    Slot.LEAVE_YEAR,
)


class StorageError(Exception):
    """Raised by a storage backend when it cannot read or write."""


class StorageBackend:
    """Scoped string key/value storage."""

    async def get(self, scope_id: str, key: str) -> str | None:
        raise NotImplementedError

    async def get_all(self, scope_id: str) -> dict[str, str]:
        raise NotImplementedError

    async def set(self, scope_id: str, key: str, value: str) -> None:
        raise NotImplementedError

    async def delete(self, scope_id: str, keys: list[str]) -> None:
        """Delete several keys as one unit."""
        raise NotImplementedError


class MemoryStorage(StorageBackend):
    """In-process storage; contents are lost on restart."""

    def __init__(self):
        self._data: dict[str, dict[str, str]] = {}

    async def get(self, scope_id: str, key: str) -> str | None:
        return self._data.get(scope_id, {}).get(key)

    async def get_all(self, scope_id: str) -> dict[str, str]:
        return dict(self._data.get(scope_id, {}))

    async def set(self, scope_id: str, key: str, value: str) -> None:
        self._data.setdefault(scope_id, {})[key] = value

    async def delete(self, scope_id: str, keys: list[str]) -> None:
        slots = self._data.get(scope_id)
        if slots is None:
            return
        for key in keys:
            slots.pop(key, None)
        if not slots:
            del self._data[scope_id]


class SqlStorage(StorageBackend):
    """Storage in the identity_slots table, one transaction per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get(self, scope_id: str, key: str) -> str | None:
        try:
            async with self.session_factory() as session:
                return await identity_slots_repo.get_value(session, scope_id=scope_id, key=key)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read slot {key!r}: {e}") from e

    async def get_all(self, scope_id: str) -> dict[str, str]:
        try:
            async with self.session_factory() as session:
                return await identity_slots_repo.list_for_scope(session, scope_id=scope_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read slots: {e}") from e

    async def set(self, scope_id: str, key: str, value: str) -> None:
        try:
            async with self.session_factory() as session:
                await identity_slots_repo.upsert(session, scope_id=scope_id, key=key, value=value)
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to write slot {key!r}: {e}") from e

    async def delete(self, scope_id: str, keys: list[str]) -> None:
        try:
            async with self.session_factory() as session:
                await identity_slots_repo.delete_keys(session, scope_id=scope_id, keys=keys)
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to delete slots {keys!r}: {e}") from e


def build_storage() -> StorageBackend:
    """Create the backend selected by IDENTITY_STORE_BACKEND."""
    backend = config.settings.IDENTITY_STORE_BACKEND.lower()
    if backend == "memory":
        return MemoryStorage()
    if backend == "sql":
        from db import AsyncSessionLocal

        return SqlStorage(AsyncSessionLocal)
    raise ValueError(f"Unknown IDENTITY_STORE_BACKEND: {config.settings.IDENTITY_STORE_BACKEND!r}")


class IdentityStore:
    """Identity slots of one browser scope."""

    def __init__(self, scope_id: str, backend: StorageBackend):
        self.scope_id = scope_id
        self.backend = backend

    async def get(self, slot: Slot) -> str | None:
        try:
            return await self.backend.get(self.scope_id, slot.value)
        except StorageError as e:
            logger.error(f"Failed to read {slot.value} for scope {self.scope_id}: {e}")
            return None

    async def set(self, slot: Slot, value: str) -> bool:
        try:
            await self.backend.set(self.scope_id, slot.value, value)
        except StorageError as e:
            logger.error(f"Failed to store {slot.value} for scope {self.scope_id}: {e}")
            return False
        return True

    async def remove(self, slot: Slot) -> bool:
        try:
            await self.backend.delete(self.scope_id, [slot.value])
        except StorageError as e:
            logger.error(f"Failed to remove {slot.value} for scope {self.scope_id}: {e}")
            return False
        return True

    async def clear_auth_state(self) -> bool:
        """Remove the token, user id, role, org id and leave-year cache together."""
        try:
            await self.backend.delete(self.scope_id, [slot.value for slot in AUTH_STATE_SLOTS])
        except StorageError as e:
            logger.error(f"Failed to clear auth state for scope {self.scope_id}: {e}")
            return False
        logger.info(f"Cleared auth state for scope {self.scope_id}")
        return True

    async def get_identity(self) -> IdentityRecord | None:
        """Snapshot of all slots, or None when no token is stored."""
        try:
            slots = await self.backend.get_all(self.scope_id)
        except StorageError as e:
            logger.error(f"Failed to read identity for scope {self.scope_id}: {e}")
            return None

        token = slots.get(Slot.JWT_TOKEN.value)
        if not token:
            return None

        return IdentityRecord(
            token=token,
            user_id=slots.get(Slot.USER_ID.value),
            org_id=slots.get(Slot.ORG_ID.value),
            role=slots.get(Slot.ROLE.value),
            role_id=slots.get(Slot.ROLE_ID.value),
            role_name=slots.get(Slot.ROLE_NAME.value),
            user_type_id=slots.get(Slot.USER_TYPE_ID.value),
            leave_year=slots.get(Slot.LEAVE_YEAR.value),
        )
