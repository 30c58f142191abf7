"""Tests for child management, reward settings and the dashboard."""

import asyncio
import pathlib
import sys

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlmodel import SQLModel, select

# Allow importing the bookworm package
sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from bookworm.main import app
from bookworm.database import get_session
from bookworm.book_info import BookInfo, get_book_lookup
from bookworm.models import Achievement, Book, Prize, RewardSettings


async def _setup_test_db():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    TestSession = async_sessionmaker(engine, expire_on_commit=False)

    async def override_get_session():
        async with TestSession() as session:
            yield session

    async def no_lookup(title, author):
        return BookInfo()

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_book_lookup] = lambda: no_lookup
    return TestSession


async def _login(client, email):
    resp = await client.post(
        "/register",
        json={"full_name": "Parent", "email": email, "password": "pass"},
    )
    assert resp.status_code == 200
    resp = await client.post("/login", json={"email": email, "password": "pass"})
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def test_child_management_endpoints():
    async def run():
        TestSession = await _setup_test_db()
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            headers = await _login(client, "p1@example.com")
            other = await _login(client, "p2@example.com")

            # Grade must be K or 1-12
            resp = await client.post(
                "/children/", headers=headers, json={"name": "Kid", "grade_level": "13"}
            )
            assert resp.status_code == 422

            resp = await client.post(
                "/children/",
                headers=headers,
                json={"name": "Ada", "grade_level": "k", "access_code": "ADA"},
            )
            assert resp.status_code == 200
            ada = resp.json()
            assert ada["grade_level"] == 0
            assert ada["grade_display"] == "K"
            assert ada["avatar_color"].startswith("#")

            # Access codes are unique
            resp = await client.post(
                "/children/",
                headers=headers,
                json={"name": "Bob", "grade_level": 4, "access_code": "ADA"},
            )
            assert resp.status_code == 400

            resp = await client.post(
                "/children/",
                headers=headers,
                json={
                    "name": "Bob",
                    "grade_level": "4",
                    "avatar_color": "#2196F3",
                    "reward_settings": {
                        "reward_type": "points",
                        "amount_per_book": 5,
                        "payout_threshold": 20,
                    },
                },
            )
            assert resp.status_code == 200
            bob = resp.json()

            resp = await client.get("/children/", headers=headers)
            assert [c["name"] for c in resp.json()] == ["Ada", "Bob"]
            resp = await client.get("/children/", headers=other)
            assert resp.json() == []

            # Reward settings: defaults until saved
            resp = await client.get(f"/children/{ada['id']}/reward-settings", headers=headers)
            assert resp.json() == {
                "reward_type": "money",
                "amount_per_book": 1.0,
                "payout_threshold": 10.0,
                "is_default": True,
            }
            resp = await client.get(f"/children/{bob['id']}/reward-settings", headers=headers)
            assert resp.json()["is_default"] is False
            assert resp.json()["reward_type"] == "points"

            resp = await client.put(
                f"/children/{ada['id']}/reward-settings",
                headers=headers,
                json={"reward_type": "money", "amount_per_book": -1, "payout_threshold": 10},
            )
            assert resp.status_code == 422
            assert resp.json()["code"] == "validation_error"

            resp = await client.put(
                f"/children/{ada['id']}/reward-settings",
                headers=headers,
                json={"reward_type": "money", "amount_per_book": 0.5, "payout_threshold": 0},
            )
            assert resp.status_code == 200
            assert resp.json()["is_default"] is False

            # Upsert replaces rather than adding a row
            resp = await client.put(
                f"/children/{ada['id']}/reward-settings",
                headers=headers,
                json={"reward_type": "money", "amount_per_book": 0.5, "payout_threshold": 2},
            )
            assert resp.status_code == 200
            async with TestSession() as session:
                result = await session.execute(
                    select(RewardSettings).where(RewardSettings.child_id == ada["id"])
                )
                assert len(result.scalars().all()) == 1

            resp = await client.put(
                f"/children/{ada['id']}/reward-settings",
                headers=other,
                json={"reward_type": "money", "amount_per_book": 9, "payout_threshold": 9},
            )
            assert resp.status_code == 403

            # Update name and grade together with the policy
            resp = await client.put(
                f"/children/{ada['id']}",
                headers=headers,
                json={
                    "name": "Ada L.",
                    "grade_level": "2",
                    "reward_settings": {
                        "reward_type": "money",
                        "amount_per_book": 1,
                        "payout_threshold": 0,
                    },
                },
            )
            assert resp.status_code == 200
            assert resp.json()["name"] == "Ada L."
            assert resp.json()["grade_display"] == "2"

            resp = await client.put(
                f"/children/{ada['id']}", headers=headers, json={"name": "  "}
            )
            assert resp.status_code == 422

            # Threshold of zero reports the goal as reached
            resp = await client.get(f"/children/{ada['id']}/progress", headers=headers)
            assert resp.status_code == 200
            assert resp.json()["progress_ratio"] is None
            assert resp.json()["progress_percent"] == 100.0
            assert resp.json()["goal_reached"] is True

            # Child can read their own record but not a sibling's
            resp = await client.post("/children/login", json={"access_code": "ADA"})
            child_headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}
            resp = await client.get("/children/me", headers=child_headers)
            assert resp.json()["id"] == ada["id"]
            resp = await client.get(f"/children/{bob['id']}", headers=child_headers)
            assert resp.status_code == 403
            resp = await client.get("/children/", headers=child_headers)
            assert resp.status_code == 403

            resp = await client.post("/children/login", json={"access_code": "nope"})
            assert resp.status_code == 401

            resp = await client.get("/children/999", headers=headers)
            assert resp.status_code == 404

    asyncio.run(run())


def test_dashboard_stats_and_cascade_delete():
    async def run():
        TestSession = await _setup_test_db()
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            headers = await _login(client, "p@example.com")
            resp = await client.post(
                "/children/",
                headers=headers,
                json={
                    "name": "Kid",
                    "grade_level": 1,
                    "reward_settings": {
                        "reward_type": "points",
                        "amount_per_book": 2,
                        "payout_threshold": 10,
                    },
                },
            )
            child_id = resp.json()["id"]

            book_ids = []
            for title in ("A", "B", "C"):
                resp = await client.post(
                    "/books/",
                    headers=headers,
                    json={"child_id": child_id, "title": title, "author": "X", "summary": "Y"},
                )
                book_ids.append(resp.json()["id"])
            await client.post(f"/books/{book_ids[0]}/approve", headers=headers)
            await client.post(f"/books/{book_ids[1]}/approve", headers=headers)

            resp = await client.post(
                "/prizes/",
                headers=headers,
                json={"name": "Ice cream", "points_required": 4, "child_id": child_id},
            )
            assert resp.status_code == 200

            resp = await client.get("/children/stats", headers=headers)
            assert resp.status_code == 200
            (stats,) = resp.json()
            assert stats["total_books"] == 3
            assert stats["approved_books"] == 2
            assert stats["pending_books"] == 1
            assert stats["total_earned"] == 4
            assert stats["reward_settings"]["reward_type"] == "points"

            resp = await client.get("/users/me/summary", headers=headers)
            assert resp.json() == {"children": 1, "pending_books": 1}

            resp = await client.delete(f"/children/{child_id}", headers=headers)
            assert resp.status_code == 204

            async with TestSession() as session:
                for model in (Book, Achievement, RewardSettings, Prize):
                    result = await session.execute(
                        select(model).where(model.child_id == child_id)
                    )
                    assert result.scalars().all() == []

            resp = await client.get(f"/children/{child_id}", headers=headers)
            assert resp.status_code == 404

    asyncio.run(run())


def test_rejected_child_update_saves_nothing():
    async def run():
        await _setup_test_db()
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            headers = await _login(client, "p@example.com")
            resp = await client.post(
                "/children/", headers=headers, json={"name": "Kid", "grade_level": 2}
            )
            child_id = resp.json()["id"]

            # Blank name with a valid policy: the policy must not be stored
            resp = await client.put(
                f"/children/{child_id}",
                headers=headers,
                json={
                    "name": "   ",
                    "reward_settings": {
                        "reward_type": "points",
                        "amount_per_book": 7,
                        "payout_threshold": 3,
                    },
                },
            )
            assert resp.status_code == 422
            assert resp.json()["code"] == "validation_error"
            resp = await client.get(f"/children/{child_id}/reward-settings", headers=headers)
            assert resp.json()["is_default"] is True
            assert resp.json()["reward_type"] == "money"

            # Valid name with a bad policy: the name must not change
            resp = await client.put(
                f"/children/{child_id}",
                headers=headers,
                json={
                    "name": "Renamed",
                    "reward_settings": {
                        "reward_type": "money",
                        "amount_per_book": -2,
                        "payout_threshold": 3,
                    },
                },
            )
            assert resp.status_code == 422
            resp = await client.get(f"/children/{child_id}", headers=headers)
            assert resp.json()["name"] == "Kid"

            # Both valid: saved together
            resp = await client.put(
                f"/children/{child_id}",
                headers=headers,
                json={
                    "name": "Renamed",
                    "reward_settings": {
                        "reward_type": "points",
                        "amount_per_book": 7,
                        "payout_threshold": 3,
                    },
                },
            )
            assert resp.status_code == 200
            assert resp.json()["name"] == "Renamed"
            resp = await client.get(f"/children/{child_id}/reward-settings", headers=headers)
            assert resp.json()["amount_per_book"] == 7
            assert resp.json()["is_default"] is False

    asyncio.run(run())
