import pytest
from sqlalchemy import func, select

from eduhive.core.error_codes import INVALID_REPORT_TARGET
from eduhive.models.comment import Comment
from eduhive.models.post import Post
from eduhive.models.report import Report
from eduhive.schemas.enums import ReportReason, ReportStatus


@pytest.fixture
def make_post(async_test_session):
    async def _make(author, body="Free essays, click here"):
        post = Post(user_id=author.id, body=body)
        async_test_session.add(post)
        await async_test_session.commit()
        return post
    return _make


class TestCreateReport:
    @pytest.mark.asyncio
    async def test_report_a_post(self, client, session_factory, make_profile, make_post, headers_for):
        alice = await make_profile("alice")
        spammer = await make_profile("spammer")
        post = await make_post(spammer)

        response = await client.post("/api/reports/", json={
            "post_id": post.id,
            "reason": "spam",
            "description": "  Same link in every course  ",
        }, headers=headers_for(alice))

        assert response.status_code == 201
        body = response.json()
        assert body["reported_user_id"] == spammer.id
        assert body["status"] == ReportStatus.PENDING.value
        assert body["description"] == "Same link in every course"

        async with session_factory() as session:
            report = await session.get(Report, body["id"])
            assert report.reason == ReportReason.SPAM
            assert report.reporter_id == alice.id

    @pytest.mark.asyncio
    async def test_report_a_comment(self, client, async_test_session, make_profile, make_post, headers_for):
        alice = await make_profile("alice")
        bully = await make_profile("bully")
        post = await make_post(alice, "My lab results")
        comment = Comment(post_id=post.id, user_id=bully.id, body="nobody cares")
        async_test_session.add(comment)
        await async_test_session.commit()

        response = await client.post("/api/reports/", json={
            "comment_id": comment.id,
            "reason": "harassment",
        }, headers=headers_for(alice))

        assert response.status_code == 201
        assert response.json()["reported_user_id"] == bully.id
        assert response.json()["post_id"] is None

        response = await client.get("/api/reports/mine", headers=headers_for(alice))
        assert [r["comment_id"] for r in response.json()] == [comment.id]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"reason": "spam"},
        {"post_id": "p", "comment_id": "c", "reason": "spam"},
        {"post_id": "p", "reason": "not-a-reason"},
    ])
    async def test_invalid_payloads(self, client, make_profile, headers_for, payload):
        alice = await make_profile("alice")
        response = await client.post("/api/reports/", json=payload, headers=headers_for(alice))
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_own_content_and_missing_targets(self, client, make_profile, make_post, headers_for):
        alice = await make_profile("alice")
        post = await make_post(alice)

        response = await client.post("/api/reports/", json={"post_id": post.id, "reason": "other"},
                                     headers=headers_for(alice))
        assert response.status_code == 400
        assert response.json()["error_code"] == INVALID_REPORT_TARGET

        response = await client.post("/api/reports/", json={"post_id": "missing", "reason": "other"},
                                     headers=headers_for(alice))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_deleting_the_post_removes_its_reports(
        self, client, session_factory, make_profile, make_post, headers_for
    ):
        alice = await make_profile("alice")
        spammer = await make_profile("spammer")
        post = await make_post(spammer)
        await client.post("/api/reports/", json={"post_id": post.id, "reason": "spam"}, headers=headers_for(alice))

        response = await client.delete(f"/api/posts/{post.id}", headers=headers_for(spammer))

        assert response.status_code == 204
        async with session_factory() as session:
            assert (await session.execute(select(func.count()).select_from(Report))).scalar() == 0
