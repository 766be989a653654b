"""
Shared pytest fixtures for the CreatorGenius API tests.

Provides fixtures for:
- An in-process Motor-compatible database (mongomock-motor)
- A frozen clock driving the quota windows
- Quota enforcer and repository wiring
- User factory and auth headers
- An HTTP client against the FastAPI app with dependencies overridden
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("JWT_REFRESH_SECRET_KEY", "test-refresh-secret-key")

import asyncio
import copy
import logging
from datetime import datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from app.api.deps import get_quota_enforcer
from app.core.config import settings
from app.core.plans import USER_PLANS, Feature, Tier, TierLimitTable, Window, get_initial_usage, limit_table
from app.core.security import create_access_token
from app.database.connection import get_mongo_db
from app.database.usage import UsageRepository
from app.integrations.llm_client import get_content_generator
from app.services.quota.enforcer import QuotaEnforcer
from main import app


# ============================================================================
# Logging Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def configure_test_logging(caplog):
    """Configure logging for all tests."""
    caplog.set_level(logging.DEBUG)
    return caplog


# ============================================================================
# Clock & Database Fixtures
# ============================================================================

class FrozenClock:
    """Callable clock for the enforcer; tests move it explicitly."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class YieldingRepository(UsageRepository):
    """
    Repository that hands control back to the event loop before every storage call.

    mongomock operations complete without suspending, so without this concurrent
    coroutines would never interleave between load and update.
    """

    def __init__(self, db):
        super().__init__(db)
        self.applied_resets = 0

    async def load_usage_record(self, user_id):
        await asyncio.sleep(0)
        return await super().load_usage_record(user_id)

    async def apply_reset(self, user_id, observed, update):
        await asyncio.sleep(0)
        applied = await super().apply_reset(user_id, observed, update)
        if applied:
            self.applied_resets += 1
        return applied

    async def increment_if_below(self, user_id, path, ceiling):
        await asyncio.sleep(0)
        return await super().increment_if_below(user_id, path, ceiling)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 4, 2, 10, 0, 0))


@pytest.fixture
def db():
    return AsyncMongoMockClient()["creatorgenius_test"]


@pytest.fixture
def repository(db) -> UsageRepository:
    return UsageRepository(db)


@pytest.fixture
def enforcer(repository, clock) -> QuotaEnforcer:
    return QuotaEnforcer(repository, limit_table, settings, clock=clock)


@pytest.fixture
def small_limits() -> TierLimitTable:
    """Default plans with tiny free storage ceilings so tests can fill them."""
    plans = copy.deepcopy(USER_PLANS)
    plans[Tier.FREE][Window.PERMANENT][Feature.SAVED_IDEAS] = 2
    plans[Tier.FREE][Window.PERMANENT][Feature.CALENDAR_ITEMS] = 1
    plans[Tier.FREE][Window.PERMANENT][Feature.INSIGHTS_TOTAL] = 2
    return TierLimitTable(plans)


# ============================================================================
# User Fixtures
# ============================================================================

@pytest.fixture
def make_user(db, clock):
    """
    Factory inserting a user document and returning its ID.

    Usage:
        user_id = await make_user(tier=Tier.FREE, daily={"search_count": 4})
    """
    counter = {"n": 0}

    async def _make_user(
        tier: Tier = Tier.FREE,
        daily: dict | None = None,
        monthly: dict | None = None,
        last_daily_reset: datetime | None = None,
        last_monthly_reset: datetime | None = None,
        subscription_end_date: datetime | None = None,
    ) -> str:
        counter["n"] += 1
        usage = get_initial_usage(clock.now)
        usage["daily"].update(daily or {})
        usage["monthly"].update(monthly or {})
        if last_daily_reset is not None:
            usage["last_daily_reset"] = last_daily_reset
        if last_monthly_reset is not None:
            usage["last_monthly_reset"] = last_monthly_reset
        result = await db["users"].insert_one({
            "name": f"Creator {counter['n']}",
            "email": f"creator{counter['n']}@example.com",
            "password": "not-a-real-hash",
            "created_at": clock.now,
            "updated_at": clock.now,
            "tier": tier.value,
            "subscription_end_date": subscription_end_date,
            "usage": usage,
        })
        return str(result.inserted_id)

    return _make_user


@pytest.fixture
def auth_headers():
    def _auth_headers(user_id: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token({'sub': user_id})}"}
    return _auth_headers


# ============================================================================
# API Fixtures
# ============================================================================

class FakeGenerator:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.prompts = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.fail:
            raise RuntimeError("provider down")
        return "generated content"


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
async def client(db, enforcer, generator):
    app.dependency_overrides[get_mongo_db] = lambda: db
    app.dependency_overrides[get_quota_enforcer] = lambda: enforcer
    app.dependency_overrides[get_content_generator] = lambda: generator
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
