import pytest
from sqlalchemy import select

from eduhive.core.assistant import ASSISTANT_USER_ID
from eduhive.models.notification import Notification


class TestCompose:
    @pytest.mark.asyncio
    async def test_scan(self, client):
        response = await client.post("/api/mentions/scan", json={"text": "hi @bob and @al", "caret": 15})

        assert response.status_code == 200
        assert response.json() == {
            "open": True,
            "token": {"token": "al", "start": 12, "end": 15},
            "committed": ["bob", "al"],
        }

    @pytest.mark.asyncio
    async def test_scan_rejects_negative_caret(self, client):
        response = await client.post("/api/mentions/scan", json={"text": "@a", "caret": -1})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_apply(self, client):
        response = await client.post("/api/mentions/apply", json={
            "selected": {"id": "user-alice", "username": "alice"},
            "text": "thanks @al",
            "caret": 10,
        })

        body = response.json()
        assert body["text"] == "thanks @alice "
        assert body["caret"] == 14
        assert [c["username"] for c in body["resolved"]] == ["alice"]

    @pytest.mark.asyncio
    async def test_sync_drops_deleted_mentions(self, client):
        response = await client.post("/api/mentions/sync", json={
            "text": "@bob @eduhive",
            "context": "comment",
            "resolved": [
                {"id": "user-alice", "username": "alice"},
                {"id": "user-bob", "username": "bob"},
            ],
        })

        body = response.json()
        assert [c["username"] for c in body["resolved"]] == ["bob", "eduhive"]
        assert body["committed"] == ["bob", "eduhive"]


class TestSuggestions:
    @pytest.mark.asyncio
    async def test_mutuals_and_assistant(self, client, make_profile, add_follow, headers_for):
        carol = await make_profile("carol")
        eddie = await make_profile("eddie")
        await add_follow(carol, eddie, mutual=True)

        response = await client.get(
            "/api/mentions/suggestions", params={"q": "ed", "context": "comment"}, headers=headers_for(carol)
        )

        assert response.status_code == 200
        body = response.json()
        assert body["show_suggestions"] is True
        assert [s["username"] for s in body["suggestions"]] == ["eduhive", "eddie"]

        response = await client.get(
            "/api/mentions/suggestions", params={"q": "ed", "context": "post"}, headers=headers_for(carol)
        )
        assert [s["username"] for s in response.json()["suggestions"]] == ["eddie"]

    @pytest.mark.asyncio
    async def test_requires_authentication(self, client):
        response = await client.get("/api/mentions/suggestions", params={"q": "a"})
        assert response.status_code == 401


class TestNotify:
    @pytest.mark.asyncio
    async def test_accepts_both_shapes(self, client, session_factory, make_profile, headers_for):
        carol = await make_profile("carol")
        alice = await make_profile("alice")
        bob = await make_profile("bob")

        response = await client.post("/api/mentions/notify", json={
            "mentions": {"kind": "usernames", "usernames": ["alice", "eduhive"]},
        }, headers=headers_for(carol))
        assert response.json() == {"created": 1}

        response = await client.post("/api/mentions/notify", json={
            "mentions": {"kind": "candidates", "candidates": [{"id": bob.id, "username": "bob"}]},
        }, headers=headers_for(carol))
        assert response.json() == {"created": 1}

        async with session_factory() as session:
            result = await session.execute(select(Notification.recipient_id))
            recipients = set(result.scalars().all())
        assert recipients == {alice.id, bob.id}
        assert ASSISTANT_USER_ID not in recipients
