"""
HTTP-level tests: quota guards on the feature routes and the 429/503 responses.
"""
from bson import ObjectId
from unittest.mock import AsyncMock, Mock

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from app.api.deps import get_quota_enforcer
from app.core.config import settings
from app.core.plans import Tier
from app.services.quota.enforcer import QuotaEnforcer
from main import app

API = "/api/v1"


async def save_idea_for(db, user_id, title="Budget travel hacks"):
    result = await db["saved_ideas"].insert_one({
        "user_id": user_id,
        "title": title,
        "angle": "Under $50 a day",
        "tags": ["travel"],
    })
    return str(result.inserted_id)


class TestAuth:
    @pytest.mark.asyncio
    async def test_signup_starts_free_with_zero_usage(self, client):
        response = await client.post(f"{API}/auth/signup", json={
            "username": "Ada", "email": "Ada@Example.com", "password": "s3cret-pass",
        })
        assert response.status_code == 201
        token = response.json()["access_token"]

        response = await client.get(f"{API}/users/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        user = response.json()["data"]
        assert user["email"] == "ada@example.com"
        assert user["tier"] == "free"
        assert set(user["usage"]["daily"].values()) == {0}
        assert set(user["usage"]["monthly"].values()) == {0}

    @pytest.mark.asyncio
    async def test_duplicate_signup_rejected(self, client):
        body = {"username": "Ada", "email": "ada@example.com", "password": "s3cret-pass"}
        assert (await client.post(f"{API}/auth/signup", json=body)).status_code == 201
        assert (await client.post(f"{API}/auth/signup", json=body)).status_code == 400

    @pytest.mark.asyncio
    async def test_login_and_refresh(self, client):
        await client.post(f"{API}/auth/signup", json={
            "username": "Ada", "email": "ada@example.com", "password": "s3cret-pass",
        })

        response = await client.post(f"{API}/auth/login", data={"username": "ada@example.com", "password": "s3cret-pass"})
        assert response.status_code == 200
        assert "password" not in response.json()["user"]

        refresh_token = response.json()["refresh_token"]
        response = await client.post(f"{API}/auth/refresh", json={"refresh_token": refresh_token})
        assert response.status_code == 200
        assert response.json()["access_token"]

    @pytest.mark.asyncio
    async def test_wrong_password(self, client):
        await client.post(f"{API}/auth/signup", json={
            "username": "Ada", "email": "ada@example.com", "password": "s3cret-pass",
        })
        response = await client.post(f"{API}/auth/login", data={"username": "ada@example.com", "password": "nope-nope"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_metered_route_requires_token(self, client):
        response = await client.post(f"{API}/trends/query", json={"query": "ai video tools"})
        assert response.status_code in (401, 403)


class TestDailyQuota:
    @pytest.mark.asyncio
    async def test_sixth_search_is_rejected(self, client, make_user, auth_headers, db):
        user_id = await make_user()
        headers = auth_headers(user_id)

        for expected in range(1, 6):
            response = await client.post(f"{API}/trends/query", json={"query": "ai video tools"}, headers=headers)
            assert response.status_code == 200
            assert response.json()["usage"]["daily.search_queries"] == {"current": expected, "limit": 5}

        response = await client.post(f"{API}/trends/query", json={"query": "ai video tools"}, headers=headers)
        assert response.status_code == 429
        body = response.json()
        assert body["status"] == "error"
        assert body["feature"] == "search_queries"
        assert body["window"] == "daily"
        assert (body["current"], body["limit"]) == (5, 5)
        assert body["remedy"] == "try_tomorrow"
        assert body["reset_time"] == "tomorrow"
        assert body["upgrade_tier"] is True

        user = await db["users"].find_one({"_id": ObjectId(user_id)})
        assert user["usage"]["daily"]["search_count"] == 5

    @pytest.mark.asyncio
    async def test_limit_lifts_next_day(self, client, make_user, auth_headers, clock):
        user_id = await make_user(daily={"search_count": 5})
        headers = auth_headers(user_id)
        assert (await client.post(f"{API}/trends/query", json={"query": "x"}, headers=headers)).status_code == 429

        clock.advance(days=1)

        response = await client.post(f"{API}/trends/query", json={"query": "x"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["usage"]["daily.search_queries"]["current"] == 1

    @pytest.mark.asyncio
    async def test_seo_analysis_metered(self, client, make_user, auth_headers):
        user_id = await make_user(daily={"seo_analyses": 3})
        response = await client.post(f"{API}/seo/analyze", json={"title": "My vlog"}, headers=auth_headers(user_id))
        assert response.status_code == 429
        assert response.json()["feature"] == "seo_analyses"

    @pytest.mark.asyncio
    async def test_failed_generation_still_spends_quota(self, client, make_user, auth_headers, generator, db):
        generator.fail = True
        user_id = await make_user()

        response = await client.post(f"{API}/trends/query", json={"query": "x"}, headers=auth_headers(user_id))

        assert response.status_code == 502
        user = await db["users"].find_one({"_id": ObjectId(user_id)})
        assert user["usage"]["daily"]["search_count"] == 1


class TestMonthlyQuota:
    @pytest.mark.asyncio
    async def test_ideation_rejected_until_next_billing_period(self, client, make_user, auth_headers):
        user_id = await make_user(monthly={"ideations_this_month": 5})

        response = await client.post(f"{API}/content/ideation", json={"topic": "home cooking"}, headers=auth_headers(user_id))

        assert response.status_code == 429
        body = response.json()
        assert body["window"] == "monthly"
        assert body["remedy"] == "try_next_billing_period"
        assert body["reset_time"] == "next billing period"

    @pytest.mark.asyncio
    async def test_pro_ideation_is_unlimited(self, client, make_user, auth_headers):
        user_id = await make_user(tier=Tier.PRO, monthly={"ideations_this_month": 500})

        response = await client.post(f"{API}/content/ideation", json={"topic": "home cooking"}, headers=auth_headers(user_id))

        assert response.status_code == 200
        assert response.json()["usage"]["monthly.content_ideations"] == {"current": 501, "limit": "unlimited"}

    @pytest.mark.asyncio
    async def test_free_users_cannot_transform_scripts(self, client, make_user, auth_headers, generator):
        user_id = await make_user()

        response = await client.post(
            f"{API}/scripts/{ObjectId()}/transform", json={"target_format": "shorts"}, headers=auth_headers(user_id)
        )

        assert response.status_code == 429
        assert (response.json()["current"], response.json()["limit"]) == (0, 0)
        assert generator.prompts == []

    @pytest.mark.asyncio
    async def test_script_generation_charges_both_windows(self, client, make_user, auth_headers, db):
        user_id = await make_user()
        idea_id = await save_idea_for(db, user_id)

        response = await client.post(f"{API}/scripts/generate/{idea_id}", headers=auth_headers(user_id))

        assert response.status_code == 201
        usage = response.json()["usage"]
        assert usage["daily.script_generation"] == {"current": 1, "limit": 3}
        assert usage["monthly.script_generation"] == {"current": 1, "limit": 15}

    @pytest.mark.asyncio
    async def test_refinement_metered(self, client, make_user, auth_headers, db):
        user_id = await make_user(monthly={"refinements_this_month": 2})
        idea_id = await save_idea_for(db, user_id)
        headers = auth_headers(user_id)

        response = await client.post(f"{API}/ideas/{idea_id}/refine", json={"instructions": "punchier"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["usage"]["monthly.refinements"]["current"] == 3

        response = await client.post(f"{API}/ideas/{idea_id}/refine", json={"instructions": "punchier"}, headers=headers)
        assert response.status_code == 429


class TestStorageLimits:
    @pytest.fixture
    def small_enforcer(self, client, repository, small_limits, clock):
        enforcer = QuotaEnforcer(repository, small_limits, settings, clock=clock)
        app.dependency_overrides[get_quota_enforcer] = lambda: enforcer
        return enforcer

    @pytest.mark.asyncio
    async def test_saved_ideas_capped_for_free(self, client, small_enforcer, make_user, auth_headers, db):
        user_id = await make_user()
        headers = auth_headers(user_id)
        idea = {"title": "Desk tour", "angle": "Minimalist", "tags": ["setup"]}

        for _ in range(2):
            assert (await client.post(f"{API}/ideas/", json=idea, headers=headers)).status_code == 201

        response = await client.post(f"{API}/ideas/", json=idea, headers=headers)
        assert response.status_code == 429
        body = response.json()
        assert body["window"] == "permanent"
        assert body["remedy"] == "upgrade_plan"
        assert body["reset_time"] is None
        assert await db["saved_ideas"].count_documents({"user_id": user_id}) == 2

    @pytest.mark.asyncio
    async def test_deleting_frees_a_slot(self, client, small_enforcer, make_user, auth_headers):
        user_id = await make_user()
        headers = auth_headers(user_id)
        idea = {"title": "Desk tour", "angle": "Minimalist", "tags": ["setup"]}

        first = (await client.post(f"{API}/ideas/", json=idea, headers=headers)).json()["data"]["id"]
        await client.post(f"{API}/ideas/", json=idea, headers=headers)

        assert (await client.delete(f"{API}/ideas/{first}", headers=headers)).status_code == 200
        assert (await client.post(f"{API}/ideas/", json=idea, headers=headers)).status_code == 201

    @pytest.mark.asyncio
    async def test_calendar_capped_for_free(self, client, small_enforcer, make_user, auth_headers, db):
        user_id = await make_user()
        idea_id = await save_idea_for(db, user_id)
        headers = auth_headers(user_id)
        body = {"idea_id": idea_id, "scheduled_date": "2024-05-01T09:00:00"}

        assert (await client.post(f"{API}/calendar/", json=body, headers=headers)).status_code == 201
        response = await client.post(f"{API}/calendar/", json=body, headers=headers)
        assert response.status_code == 429
        assert response.json()["feature"] == "calendar_items"

    @pytest.mark.asyncio
    async def test_paid_tier_not_capped(self, client, small_enforcer, make_user, auth_headers, db):
        user_id = await make_user(tier=Tier.PRO)
        for n in range(3):
            await save_idea_for(db, user_id, title=f"idea {n}")

        response = await client.post(
            f"{API}/ideas/", json={"title": "t", "angle": "a", "tags": ["x"]}, headers=auth_headers(user_id)
        )
        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_save_insight_counts_daily_and_total(self, client, make_user, auth_headers, db):
        user_id = await make_user()

        response = await client.post(
            f"{API}/trends/save-insight", json={"query": "ai tools", "content": "Short-form is growing"},
            headers=auth_headers(user_id),
        )

        assert response.status_code == 201
        assert response.json()["usage"]["daily.insights_saved"] == {"current": 1, "limit": 10}
        assert await db["insights"].count_documents({"user_id": user_id}) == 1

    @pytest.mark.asyncio
    async def test_deleting_an_insight_frees_a_slot(self, client, small_enforcer, make_user, auth_headers, db):
        user_id = await make_user()
        headers = auth_headers(user_id)
        insight = {"query": "ai tools", "content": "Short-form is growing"}

        saved = [
            (await client.post(f"{API}/trends/save-insight", json=insight, headers=headers)).json()["data"]["id"]
            for _ in range(2)
        ]
        response = await client.post(f"{API}/trends/save-insight", json=insight, headers=headers)
        assert response.status_code == 429
        assert response.json()["feature"] == "insights_total"

        assert (await client.delete(f"{API}/insights/{saved[0]}", headers=headers)).status_code == 200
        assert (await client.post(f"{API}/trends/save-insight", json=insight, headers=headers)).status_code == 201
        assert await db["insights"].count_documents({"user_id": user_id}) == 2


class TestInsights:
    @pytest.mark.asyncio
    async def test_list_get_update_delete(self, client, make_user, auth_headers):
        user_id = await make_user()
        headers = auth_headers(user_id)
        created = await client.post(
            f"{API}/trends/save-insight", json={"query": "ai tools", "content": "Short-form is growing"}, headers=headers
        )
        insight_id = created.json()["data"]["id"]

        listed = await client.get(f"{API}/insights/", headers=headers)
        assert listed.status_code == 200
        assert [i["id"] for i in listed.json()["data"]] == [insight_id]

        fetched = await client.get(f"{API}/insights/{insight_id}", headers=headers)
        assert fetched.json()["data"]["content"] == "Short-form is growing"

        updated = await client.put(f"{API}/insights/{insight_id}", json={"content": "Long-form is back"}, headers=headers)
        assert updated.status_code == 200
        assert updated.json()["data"]["content"] == "Long-form is back"
        assert updated.json()["data"]["query"] == "ai tools"

        assert (await client.delete(f"{API}/insights/{insight_id}", headers=headers)).status_code == 200
        assert (await client.get(f"{API}/insights/{insight_id}", headers=headers)).status_code == 404

    @pytest.mark.asyncio
    async def test_other_users_insights_are_hidden(self, client, make_user, auth_headers, db):
        owner_id = await make_user()
        other_id = await make_user()
        result = await db["insights"].insert_one({"user_id": owner_id, "query": "q", "content": "c"})
        headers = auth_headers(other_id)

        assert (await client.get(f"{API}/insights/{result.inserted_id}", headers=headers)).status_code == 404
        assert (await client.delete(f"{API}/insights/{result.inserted_id}", headers=headers)).status_code == 404
        assert (await client.get(f"{API}/insights/", headers=headers)).json()["data"] == []

    @pytest.mark.asyncio
    async def test_empty_update_rejected(self, client, make_user, auth_headers, db):
        user_id = await make_user()
        result = await db["insights"].insert_one({"user_id": user_id, "query": "q", "content": "c"})

        response = await client.put(f"{API}/insights/{result.inserted_id}", json={}, headers=auth_headers(user_id))

        assert response.status_code == 400


class TestStorageFailure:
    @pytest.mark.asyncio
    async def test_unreachable_store_fails_closed(self, client, repository, make_user, auth_headers, generator):
        user_id = await make_user()
        repository.users = Mock()
        repository.users.find_one = AsyncMock(side_effect=ServerSelectionTimeoutError("no servers available"))

        response = await client.post(f"{API}/trends/query", json={"query": "x"}, headers=auth_headers(user_id))

        assert response.status_code == 503
        assert response.json()["status"] == "error"
        assert generator.prompts == []


class TestUsageSummary:
    @pytest.mark.asyncio
    async def test_usage_endpoint(self, client, make_user, auth_headers, db):
        user_id = await make_user(daily={"search_count": 4}, monthly={"ideations_this_month": 1})
        await save_idea_for(db, user_id)

        response = await client.get(f"{API}/users/me/usage", headers=auth_headers(user_id))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["tier"] == "free"
        assert data["daily"]["search_queries"] == {"current": 4, "limit": 5, "remaining": 1}
        assert data["monthly"]["content_ideations"]["remaining"] == 4
        assert data["permanent"]["saved_ideas"]["current"] == 1

    @pytest.mark.asyncio
    async def test_usage_reflects_rollover_without_a_metered_call(self, client, make_user, auth_headers, clock):
        user_id = await make_user(daily={"search_count": 5})
        clock.advance(days=1)

        response = await client.get(f"{API}/users/me/usage", headers=auth_headers(user_id))

        assert response.json()["data"]["daily"]["search_queries"]["current"] == 0

    @pytest.mark.asyncio
    async def test_every_metered_router_keeps_counters_current(self, client, make_user, auth_headers, clock, db):
        user_id = await make_user(daily={"search_count": 5})
        clock.advance(days=1)

        assert (await client.get(f"{API}/ideas/", headers=auth_headers(user_id))).status_code == 200

        user = await db["users"].find_one({"_id": ObjectId(user_id)})
        assert user["usage"]["daily"]["search_count"] == 0
        assert user["usage"]["last_daily_reset"] == clock.now


class TestProfile:
    @pytest.mark.asyncio
    async def test_unknown_stored_tier_reads_as_free(self, client, make_user, auth_headers, db):
        user_id = await make_user()
        await db["users"].update_one({"_id": ObjectId(user_id)}, {"$set": {"tier": "platinum"}})

        response = await client.get(f"{API}/users/me", headers=auth_headers(user_id))

        assert response.status_code == 200
        assert response.json()["data"]["tier"] == "free"
