"""Quick script to check stored identity slots."""

import asyncio
import sys

from sqlalchemy import select

from db import AsyncSessionLocal
from models.identity_slot import IdentitySlot, IdentitySlotResponse
from services.identity_store import Slot

# Never print whole tokens
TOKEN_PREVIEW_CHARS = 16


async def check_db():
    async with AsyncSessionLocal() as db:
        result = await db.execute(
            select(IdentitySlot).order_by(IdentitySlot.scope_id, IdentitySlot.key)
        )
        slots = [IdentitySlotResponse.model_validate(row) for row in result.scalars().all()]

        scopes: dict[str, list[IdentitySlotResponse]] = {}
        for slot in slots:
            scopes.setdefault(slot.scope_id, []).append(slot)

        print("=" * 50)
        print("IDENTITY SLOTS")
        print("=" * 50)

        print(f"\nScopes: {len(scopes)}")
        for scope_id, scope_slots in scopes.items():
            print(f"  - {scope_id}")
            for slot in scope_slots:
                value = slot.value
                if slot.key == Slot.JWT_TOKEN.value:
                    value = value[:TOKEN_PREVIEW_CHARS] + "..."
                print(f"    {slot.key}: {value}  (updated {slot.updated_at:%Y-%m-%d %H:%M:%S})")
            print()


if __name__ == "__main__":
    # Fix for Windows asyncio
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    asyncio.run(check_db())
