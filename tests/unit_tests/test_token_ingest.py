"""Unit tests for the token hand-off."""

import asyncio
import base64
from unittest.mock import AsyncMock, MagicMock

import pytest

from auth.jwt import UnverifiedClaimsExtractor
from services.identity_store import IdentityStore, MemoryStorage, Slot
from services.navigation import Navigator
from services.session_monitor import SessionMonitor
from services.token_ingest import ingest_token, store_identity_from_token

LOGIN_URL = "https://login.test/login"


def _unsigned_token(payload: bytes) -> str:
    segment = base64.urlsafe_b64encode(payload).rstrip(b"=").decode("ascii")
    return f"h.{segment}.s"


class SlowStorage(MemoryStorage):
    """Memory storage that yields to the event loop on every write."""

    def __init__(self, events):
        super().__init__()
        self.events = events

    async def set(self, scope_id, key, value):
        await asyncio.sleep(0)
        await super().set(scope_id, key, value)
        self.events.append(("set", key))


class LaggingStorage(MemoryStorage):
    """Memory storage whose reads take several event loop turns, like a database."""

    async def get(self, scope_id, key):
        for _ in range(20):
            await asyncio.sleep(0)
        return await super().get(scope_id, key)


class RecordingNavigator(Navigator):
    """Navigator that records what a reader would see at navigation time."""

    def __init__(self, events, storage, scope_id):
        super().__init__()
        self.events = events
        self.storage = storage
        self.scope_id = scope_id
        self.seen_on_navigate = None

    def navigate(self, url):
        self.seen_on_navigate = dict(self.storage._data.get(self.scope_id, {}))
        self.events.append(("navigate", url))
        super().navigate(url)


@pytest.mark.asyncio
async def test_ingest_stores_identity_and_goes_home(identity_store, navigator, make_token):
    """Test: A well-formed token is stored with its identity fields."""
    token = make_token(user_id="225", org_id="60", role_name="manager")

    target = await ingest_token(token, identity_store, navigator, UnverifiedClaimsExtractor())

    assert target == "/"
    assert navigator.location == "/"
    assert await identity_store.get(Slot.JWT_TOKEN) == token
    assert await identity_store.get(Slot.USER_ID) == "225"
    assert await identity_store.get(Slot.ORG_ID) == "60"
    assert await identity_store.get(Slot.ROLE) == "manager"
    assert await identity_store.get(Slot.ROLE_NAME) == "manager"


@pytest.mark.asyncio
async def test_ingest_navigates_only_after_persistence(make_token):
    """Test: Every write completes before the navigation to home."""
    events = []
    storage = SlowStorage(events)
    store = IdentityStore("scope-test", storage)
    navigator = RecordingNavigator(events, storage, "scope-test")
    token = make_token(user_id="225")

    await ingest_token(token, store, navigator, UnverifiedClaimsExtractor())

    assert events[-1] == ("navigate", "/")
    assert ("set", Slot.JWT_TOKEN.value) in events[:-1]
    assert navigator.seen_on_navigate[Slot.USER_ID.value] == "225"
    assert navigator.seen_on_navigate[Slot.JWT_TOKEN.value] == token


@pytest.mark.asyncio
async def test_token_written_after_identity_fields(make_token):
    events = []
    store = IdentityStore("scope-test", SlowStorage(events))

    await store_identity_from_token(store, make_token(), {"user_id": "225", "org_id": "60"})

    assert events[-1] == ("set", Slot.JWT_TOKEN.value)


@pytest.mark.asyncio
async def test_ingest_undecodable_token_goes_home_without_session(identity_store, navigator):
    target = await ingest_token("not-a-token", identity_store, navigator, UnverifiedClaimsExtractor())

    assert target == "/"
    assert await identity_store.get_identity() is None


@pytest.mark.asyncio
async def test_numeric_claims_are_stored_as_strings(identity_store, make_token):
    claims = {"user_id": 225, "org_id": 60, "role_id": 3, "exp": 1}

    assert await store_identity_from_token(identity_store, make_token(), claims) is True

    assert await identity_store.get(Slot.USER_ID) == "225"
    assert await identity_store.get(Slot.ORG_ID) == "60"
    assert await identity_store.get(Slot.ROLE_ID) == "3"


@pytest.mark.asyncio
async def test_missing_claims_drop_stale_slots(identity_store, make_token):
    """Test: Fields absent from the new token don't survive from an older session."""
    await identity_store.set(Slot.ROLE_ID, "old-role")
    await identity_store.set(Slot.USER_TYPE_ID, "old-type")

    await store_identity_from_token(identity_store, make_token(), {"user_id": "225"})

    assert await identity_store.get(Slot.ROLE_ID) is None
    assert await identity_store.get(Slot.USER_TYPE_ID) is None
    assert await identity_store.get(Slot.USER_ID) == "225"


@pytest.mark.asyncio
async def test_expired_token_is_still_ingested(identity_store, navigator, make_token):
    """Test: Expiry is not judged at hand-off; the session monitor handles it."""
    token = make_token(expires_in=-3600)

    await ingest_token(token, identity_store, navigator, UnverifiedClaimsExtractor())

    assert await identity_store.get(Slot.JWT_TOKEN) == token


@pytest.mark.asyncio
async def test_overflowing_exp_is_ingested_without_error(identity_store, navigator):
    """Test: An exp too large for a float still lands home with the identity stored."""
    token = _unsigned_token(b'{"exp": 1e400, "user_id": "225"}')

    target = await ingest_token(token, identity_store, navigator, UnverifiedClaimsExtractor())

    assert target == "/"
    assert await identity_store.get(Slot.JWT_TOKEN) == token
    assert await identity_store.get(Slot.USER_ID) == "225"


@pytest.mark.asyncio
async def test_nan_exp_token_establishes_nothing(identity_store, navigator):
    token = _unsigned_token(b'{"exp": NaN, "user_id": "225"}')

    target = await ingest_token(token, identity_store, navigator, UnverifiedClaimsExtractor())

    assert target == "/"
    assert await identity_store.get_identity() is None


@pytest.mark.asyncio
async def test_non_finite_exp_claim_is_ignored(identity_store, make_token):
    claims = {"user_id": "225", "exp": float("nan")}

    assert await store_identity_from_token(identity_store, make_token(), claims) is True

    assert await identity_store.get(Slot.USER_ID) == "225"


@pytest.mark.asyncio
async def test_hand_off_during_expiry_check_keeps_new_session(make_token):
    """Test: A token stored while an expiry check is in flight is not cleared by it."""
    store = IdentityStore("scope-test", LaggingStorage())
    navigator = Navigator()
    policy = MagicMock()
    policy.resolve_login_url = AsyncMock(return_value=LOGIN_URL)
    monitor = SessionMonitor(store, policy, navigator, UnverifiedClaimsExtractor())
    await store.set(Slot.JWT_TOKEN, make_token(expires_in=-3600))
    fresh = make_token(user_id="225")

    _, target = await asyncio.gather(
        monitor.check(),
        ingest_token(fresh, store, navigator, UnverifiedClaimsExtractor()),
    )

    assert target == "/"
    assert navigator.location == "/"
    assert await store.get(Slot.JWT_TOKEN) == fresh
    assert await store.get(Slot.USER_ID) == "225"
