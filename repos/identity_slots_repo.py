"""Repository for IdentitySlot database operations."""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.identity_slot import IdentitySlot


async def get_value(
    session: AsyncSession,
    *,
    scope_id: str,
    key: str,
) -> str | None:
    """
    Get the stored value of one slot.

    Args:
        session: Database session
        scope_id: Browser scope the slot belongs to
        key: Slot key

    Returns:
        Stored value if present, None otherwise
    """
    result = await session.execute(
        select(IdentitySlot.value).where(
            IdentitySlot.scope_id == scope_id,
            IdentitySlot.key == key,
        )
    )
    return result.scalar_one_or_none()


async def list_for_scope(
    session: AsyncSession,
    *,
    scope_id: str,
) -> dict[str, str]:
    """
    Get every stored slot of a scope as a key -> value mapping.
    """
    result = await session.execute(
        select(IdentitySlot).where(IdentitySlot.scope_id == scope_id)
    )
    return {slot.key: slot.value for slot in result.scalars().all()}


async def upsert(
    session: AsyncSession,
    *,
    scope_id: str,
    key: str,
    value: str,
) -> IdentitySlot:
    """
    Insert or overwrite one slot. Does not commit.

    Args:
        session: Database session
        scope_id: Browser scope the slot belongs to
        key: Slot key
        value: New value

    Returns:
        The stored slot
    """
    slot = await session.get(IdentitySlot, (scope_id, key))
    if slot is None:
        slot = IdentitySlot(scope_id=scope_id, key=key, value=value)
        session.add(slot)
    else:
        slot.value = value
    await session.flush()
    return slot


async def delete_keys(
    session: AsyncSession,
    *,
    scope_id: str,
    keys: list[str],
) -> None:
    """
    Delete the given slots of a scope in one statement. Does not commit.
    """
    if not keys:
        return
    await session.execute(
        delete(IdentitySlot).where(
            IdentitySlot.scope_id == scope_id,
            IdentitySlot.key.in_(keys),
        )
    )
