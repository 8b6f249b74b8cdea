"""Achievement endpoint tests."""

from __future__ import annotations

import pytest

from snipstream.achievements.catalog import get_catalog
from snipstream.db.models import AchievementProgress

BASE = "/api/v1/achievements"


class TestListAchievements:
    @pytest.mark.asyncio
    async def test_requires_token(self, client):
        assert (await client.get(BASE)).status_code == 401

    @pytest.mark.asyncio
    async def test_lists_full_catalog_for_new_user(self, client, make_user, auth_headers):
        alice = await make_user("alice")

        response = await client.get(BASE, headers=auth_headers(alice))
        assert response.status_code == 200
        achievements = response.json()["achievements"]
        assert [a["achievementId"] for a in achievements] == [d.id for d in get_catalog()]
        assert all(a["unlocked"] is False and a["progress"] == 0 for a in achievements)

        code_master = next(a for a in achievements if a["achievementId"] == "code-master")
        assert code_master["title"] == "Code Master"
        assert code_master["threshold"] == 20
        assert code_master["criteriaType"] == "count"

    @pytest.mark.asyncio
    async def test_legacy_row_reported_under_canonical_id(self, client, db, make_user, auth_headers):
        alice = await make_user("alice")
        db.add(AchievementProgress(
            user_id=alice.id,
            achievement_id="POPULAR_CREATOR",
            metric="likesReceived",
            threshold=5,
            current=2,
            progress=0.4,
            metrics={},
        ))
        await db.commit()

        achievements = (await client.get(BASE, headers=auth_headers(alice))).json()["achievements"]
        popular = [a for a in achievements if a["achievementId"] == "popular-creator"]
        assert len(popular) == 1
        assert popular[0]["current"] == 2
        assert len(achievements) == len(get_catalog())


class TestRecordMetric:
    @pytest.mark.asyncio
    async def test_unlocks_and_notifies(self, client, make_user, auth_headers):
        alice = await make_user("alice")

        response = await client.post(f"{BASE}/metrics", headers=auth_headers(alice), json={
            "metric": "snippetsCreated",
            "value": 20,
        })
        assert response.status_code == 200
        unlocked = [a["id"] for a in response.json()["unlocked"]]
        assert unlocked == ["snippet-creator", "snippet-collector", "code-master"]

        achievements = (await client.get(BASE, headers=auth_headers(alice))).json()["achievements"]
        code_master = next(a for a in achievements if a["achievementId"] == "code-master")
        assert code_master["unlocked"] is True
        assert code_master["unlockedAt"] is not None

        inbox = (await client.get("/api/v1/notifications", headers=auth_headers(alice))).json()
        titles = sorted(n["metadata"]["achievementTitle"] for n in inbox["notifications"])
        assert titles == ["Code Master", "Snippet Collector", "Snippet Creator"]
        assert all(n["type"] == "achievement" and n["actor"] is None for n in inbox["notifications"])

    @pytest.mark.asyncio
    async def test_second_reading_unlocks_nothing(self, client, make_user, auth_headers):
        alice = await make_user("alice")
        body = {"metric": "likesReceived", "value": 5}
        await client.post(f"{BASE}/metrics", headers=auth_headers(alice), json=body)

        response = await client.post(f"{BASE}/metrics", headers=auth_headers(alice), json=body)
        assert response.json()["unlocked"] == []

    @pytest.mark.asyncio
    async def test_unknown_metric(self, client, make_user, auth_headers):
        alice = await make_user("alice")
        response = await client.post(f"{BASE}/metrics", headers=auth_headers(alice), json={"metric": "karma", "value": 1})
        assert response.status_code == 422
        assert "karma" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_negative_value(self, client, make_user, auth_headers):
        alice = await make_user("alice")
        response = await client.post(f"{BASE}/metrics", headers=auth_headers(alice), json={
            "metric": "snippetsCreated",
            "value": -1,
        })
        assert response.status_code == 422
        assert response.json()["detail"] == "Validation error"
