"""Pytest configuration and fixtures."""

import asyncio
import sys
import time

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt

import config
from services.identity_store import IdentityStore, MemoryStorage
from services.navigation import Navigator
from services.plan_status import PlanStatusClient

# Fix Windows asyncio event loop
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

TEST_JWT_SECRET = "test-secret"
PLAN_STATUS_URL = "https://plan-status.test/organization/plan-status"


@pytest.fixture
def make_token():
    """Factory function to create signed JWT tokens for testing."""
    def _make_token(secret=TEST_JWT_SECRET, expires_in=3600, **claims):
        payload = {
            "org_id": "60",
            "user_id": "225",
            "role_id": "3",
            "role_name": "admin",
            "user_type_id": "1",
            "exp": int(time.time()) + expires_in,
        }
        payload.update(claims)
        return jwt.encode(payload, secret, algorithm="HS256")
    return _make_token


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def identity_store(memory_storage):
    return IdentityStore("scope-test", memory_storage)


@pytest.fixture
def navigator():
    return Navigator()


class PlanStatusStub:
    """Programmable stand-in for the organization plan-status endpoint."""

    def __init__(self):
        self.status_code = 200
        self.body = {"message": "ok", "isSaas": True, "isAdmin": True, "isPartner": False}
        self.error: Exception | None = None
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if isinstance(self.body, (dict, list)):
            return httpx.Response(self.status_code, json=self.body)
        return httpx.Response(self.status_code, content=self.body)

    def client(self) -> PlanStatusClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return PlanStatusClient(PLAN_STATUS_URL, http_client)


@pytest.fixture
def plan_status():
    """Plan-status endpoint stub; tweak status_code/body/error per test."""
    return PlanStatusStub()


@pytest.fixture
def client(monkeypatch, plan_status):
    """TestClient running the app with an in-memory identity store."""
    from api.deps import get_plan_status_client
    from main import app

    monkeypatch.setattr(config.settings, "IDENTITY_STORE_BACKEND", "memory")
    app.dependency_overrides[get_plan_status_client] = plan_status.client

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
