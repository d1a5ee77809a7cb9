from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlmodel.ext.asyncio.session import AsyncSession as AsyncSessionSQLModel

from eduhive.core.assistant import ASSISTANT_USER_ID
from eduhive.core.error_codes import POST_DELETE_PERMISSION_DENIED, POST_UPDATE_ERROR, POST_UPDATE_PERMISSION_DENIED
from eduhive.models.bookmark import Bookmark
from eduhive.models.comment import Comment
from eduhive.models.notification import Notification
from eduhive.models.post import Post
from eduhive.models.reaction import CommentLike, PostLike
from eduhive.schemas.enums import NotificationType


async def _count(session_factory, model, *where):
    async with session_factory() as session:
        query = select(func.count()).select_from(model)
        if where:
            query = query.where(*where)
        return (await session.execute(query)).scalar()


async def _notifications_for(session_factory, user_id):
    async with session_factory() as session:
        result = await session.execute(
            select(Notification).where(Notification.recipient_id == user_id).order_by(Notification.created_at)
        )
        return result.scalars().all()


class TestCreatePost:
    @pytest.mark.asyncio
    async def test_mentions_notify_each_picked_user(self, client, session_factory, make_profile, headers_for):
        carol = await make_profile("carol")
        alice = await make_profile("alice")
        bob = await make_profile("bob")

        response = await client.post("/api/posts/", json={
            "body": "@alice @bob thanks!",
            "mentions": [{"id": alice.id, "username": "alice"}, "bob"],
        }, headers=headers_for(carol))

        assert response.status_code == 201
        post = response.json()
        assert [m["username"] for m in post["mentions"]] == ["alice", "bob"]
        assert post["author"]["username"] == "carol"

        for user in (alice, bob):
            [notification] = await _notifications_for(session_factory, user.id)
            assert notification.type == NotificationType.MENTION
            assert notification.message == "carol mentioned you in a post"
            assert notification.post_id == post["id"]

    @pytest.mark.asyncio
    async def test_unpicked_and_removed_mentions_are_ignored(self, client, session_factory, make_profile, headers_for):
        carol = await make_profile("carol")
        alice = await make_profile("alice")
        bob = await make_profile("bob")

        response = await client.post("/api/posts/", json={
            "body": "hi @alice",
            "mentions": ["bob"],
        }, headers=headers_for(carol))

        assert response.status_code == 201
        assert await _notifications_for(session_factory, alice.id) == []
        assert await _notifications_for(session_factory, bob.id) == []

    @pytest.mark.asyncio
    async def test_assistant_in_a_post_is_not_summoned(self, client, session_factory, make_profile, headers_for, mock_llm):
        carol = await make_profile("carol")

        response = await client.post("/api/posts/", json={
            "body": "@eduhive explain this",
            "mentions": ["eduhive"],
        }, headers=headers_for(carol))

        assert response.status_code == 201
        assert response.json()["mentions"][0]["is_assistant"] is True
        assert await _count(session_factory, Notification) == 0
        mock_llm.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_fan_out_keeps_the_post(self, client, session_factory, make_profile, headers_for, caplog):
        carol = await make_profile("carol")
        await make_profile("alice")

        with patch(
            "eduhive.crud.mention.create_notifications",
            new=AsyncMock(side_effect=RuntimeError("database unavailable")),
        ):
            response = await client.post("/api/posts/", json={
                "body": "@alice look",
                "mentions": ["alice"],
            }, headers=headers_for(carol))

        assert response.status_code == 201
        assert await _count(session_factory, Post, Post.id == response.json()["id"]) == 1
        assert "Mention fan-out failed" in caplog.text

    @pytest.mark.asyncio
    async def test_database_error_during_fan_out_still_returns_the_post(
        self, client, session_factory, make_profile, headers_for, notification_commits_fail, caplog
    ):
        """Scenario: the notification insert fails after the post is saved"""
        carol = await make_profile("carol")
        alice = await make_profile("alice")

        response = await client.post("/api/posts/", json={
            "body": "@alice look at this",
            "mentions": [{"id": alice.id, "username": "alice"}],
        }, headers=headers_for(carol))

        assert response.status_code == 201
        post = response.json()
        assert post["body"] == "@alice look at this"
        assert post["author"]["username"] == "carol"
        assert await _count(session_factory, Post, Post.id == post["id"]) == 1
        assert await _count(session_factory, Notification) == 0
        assert "Mention fan-out failed" in caplog.text

    @pytest.mark.asyncio
    async def test_attachments_are_laid_out(self, client, make_profile, headers_for):
        carol = await make_profile("carol")

        response = await client.post("/api/posts/", json={
            "body": "slides",
            "attachments": [
                {"url": "https://cdn.example/1.png", "type": "image/png"},
                {"url": "https://cdn.example/2.pdf", "type": "application/pdf", "name": "2.pdf"},
            ],
        }, headers=headers_for(carol))

        layout = response.json()["attachments"]
        assert layout["layout"] == "grid"
        assert layout["total"] == 2
        assert [d["name"] for d in layout["documents"]] == ["2.pdf"]

    @pytest.mark.asyncio
    async def test_blank_body_is_rejected(self, client, make_profile, headers_for):
        carol = await make_profile("carol")
        response = await client.post("/api/posts/", json={"body": "   "}, headers=headers_for(carol))
        assert response.status_code == 422


class TestUpdatePost:
    @pytest.mark.asyncio
    async def test_only_new_mentions_are_notified(self, client, session_factory, make_profile, headers_for):
        carol = await make_profile("carol")
        alice = await make_profile("alice")
        bob = await make_profile("bob")

        created = await client.post("/api/posts/", json={
            "body": "hello @alice",
            "mentions": ["alice"],
        }, headers=headers_for(carol))
        post_id = created.json()["id"]

        response = await client.patch(f"/api/posts/{post_id}", json={
            "body": "hello @alice and @bob",
            "mentions": ["alice", "bob"],
        }, headers=headers_for(carol))

        assert response.status_code == 200
        assert response.json()["body"] == "hello @alice and @bob"
        assert len(await _notifications_for(session_factory, alice.id)) == 1
        assert len(await _notifications_for(session_factory, bob.id)) == 1

    @pytest.mark.asyncio
    async def test_typed_but_unpicked_mentions_are_not_notified(
        self, client, async_test_session, session_factory, make_profile, headers_for
    ):
        carol = await make_profile("carol")
        dave = await make_profile("dave")
        post = Post(user_id=carol.id, body="hello")
        async_test_session.add(post)
        await async_test_session.commit()

        response = await client.patch(f"/api/posts/{post.id}", json={"body": "hello @dave"}, headers=headers_for(carol))

        assert response.status_code == 200
        assert response.json()["body"] == "hello @dave"
        assert await _notifications_for(session_factory, dave.id) == []

    @pytest.mark.asyncio
    async def test_failed_write_reports_an_error_code(self, client, async_test_session, make_profile, headers_for):
        carol = await make_profile("carol")
        post = Post(user_id=carol.id, body="original")
        async_test_session.add(post)
        await async_test_session.commit()

        with patch.object(
            AsyncSessionSQLModel, "commit",
            new=AsyncMock(side_effect=OperationalError("UPDATE post", {}, ConnectionError("database unavailable"))),
        ):
            response = await client.patch(f"/api/posts/{post.id}", json={"body": "edited"}, headers=headers_for(carol))

        assert response.status_code == 500
        assert response.json()["error_code"] == POST_UPDATE_ERROR

    @pytest.mark.asyncio
    async def test_only_the_owner_may_edit(self, client, async_test_session, make_profile, headers_for):
        carol = await make_profile("carol")
        bob = await make_profile("bob")
        post = Post(user_id=carol.id, body="mine")
        async_test_session.add(post)
        await async_test_session.commit()

        response = await client.patch(f"/api/posts/{post.id}", json={"body": "yours"}, headers=headers_for(bob))
        assert response.status_code == 403
        assert response.json()["error_code"] == POST_UPDATE_PERMISSION_DENIED


class TestDeletePost:
    @pytest.mark.asyncio
    async def test_delete_removes_everything_attached(
        self, client, async_test_session, session_factory, make_profile, headers_for
    ):
        alice = await make_profile("alice")
        bob = await make_profile("bob")
        post = Post(user_id=alice.id, body="to be removed")
        async_test_session.add(post)
        await async_test_session.commit()
        comment = Comment(post_id=post.id, user_id=bob.id, body="first")
        async_test_session.add(comment)
        await async_test_session.commit()
        reply = Comment(post_id=post.id, user_id=alice.id, body="thanks", parent_comment_id=comment.id)
        async_test_session.add_all([
            reply,
            PostLike(user_id=bob.id, post_id=post.id),
            Bookmark(user_id=bob.id, post_id=post.id),
            CommentLike(user_id=alice.id, comment_id=comment.id),
            Notification(
                recipient_id=alice.id, actor_id=bob.id, type=NotificationType.COMMENT,
                message="bob commented on your post", post_id=post.id, comment_id=comment.id,
            ),
        ])
        await async_test_session.commit()

        response = await client.delete(f"/api/posts/{post.id}", headers=headers_for(bob))
        assert response.status_code == 403
        assert response.json()["error_code"] == POST_DELETE_PERMISSION_DENIED

        response = await client.delete(f"/api/posts/{post.id}", headers=headers_for(alice))
        assert response.status_code == 204

        for model in (Post, Comment, PostLike, Bookmark, CommentLike, Notification):
            assert await _count(session_factory, model) == 0

        response = await client.get(f"/api/posts/{post.id}", headers=headers_for(alice))
        assert response.status_code == 404


class TestReactions:
    @pytest.mark.asyncio
    async def test_like_toggle_notifies_once(self, client, async_test_session, session_factory, make_profile, headers_for):
        alice = await make_profile("alice")
        bob = await make_profile("bob")
        post = Post(user_id=alice.id, body="like me")
        async_test_session.add(post)
        await async_test_session.commit()

        response = await client.post(f"/api/posts/{post.id}/like", headers=headers_for(bob))
        assert response.json() == {"post_id": post.id, "is_liked": True, "likes_count": 1}

        response = await client.post(f"/api/posts/{post.id}/like", headers=headers_for(bob))
        assert response.json() == {"post_id": post.id, "is_liked": False, "likes_count": 0}

        [notification] = await _notifications_for(session_factory, alice.id)
        assert notification.message == "bob liked your post"

    @pytest.mark.asyncio
    async def test_liking_own_post_sends_nothing(self, client, async_test_session, session_factory, make_profile, headers_for):
        alice = await make_profile("alice")
        post = Post(user_id=alice.id, body="self love")
        async_test_session.add(post)
        await async_test_session.commit()

        response = await client.post(f"/api/posts/{post.id}/like", headers=headers_for(alice))
        assert response.json()["is_liked"] is True
        assert await _count(session_factory, Notification) == 0

    @pytest.mark.asyncio
    async def test_bookmarks(self, client, async_test_session, make_profile, headers_for):
        alice = await make_profile("alice")
        bob = await make_profile("bob")
        post = Post(user_id=alice.id, body="save me")
        async_test_session.add(post)
        await async_test_session.commit()

        response = await client.post(f"/api/bookmarks/{post.id}", headers=headers_for(bob))
        assert response.json() == {"post_id": post.id, "is_bookmarked": True}

        response = await client.get("/api/bookmarks/", headers=headers_for(bob))
        assert [p["id"] for p in response.json()] == [post.id]
        assert response.json()[0]["is_bookmarked"] is True

        await client.post(f"/api/bookmarks/{post.id}", headers=headers_for(bob))
        response = await client.get("/api/bookmarks/", headers=headers_for(bob))
        assert response.json() == []


class TestFeed:
    @pytest.mark.asyncio
    async def test_pages_newest_first(self, client, async_test_session, make_profile, headers_for, test_cache):
        alice = await make_profile("alice")
        start = datetime(2025, 5, 1)
        posts = [Post(user_id=alice.id, body=f"post {i}", created_at=start + timedelta(minutes=i)) for i in range(3)]
        async_test_session.add_all(posts)
        await async_test_session.commit()

        response = await client.get("/api/posts/feed?limit=2", headers=headers_for(alice))
        page = response.json()
        assert [p["body"] for p in page["posts"]] == ["post 2", "post 1"]
        assert page["has_more"] is True
        assert test_cache.get(f"feed:{alice.id}:0:2") is not None

        response = await client.get("/api/posts/feed?offset=2&limit=2", headers=headers_for(alice))
        assert [p["body"] for p in response.json()["posts"]] == ["post 0"]
        assert response.json()["has_more"] is False

    @pytest.mark.asyncio
    async def test_own_post_invalidates_cached_feed(self, client, make_profile, headers_for, test_cache):
        alice = await make_profile("alice")

        await client.get("/api/posts/feed", headers=headers_for(alice))
        await client.post("/api/posts/", json={"body": "fresh"}, headers=headers_for(alice))

        response = await client.get("/api/posts/feed", headers=headers_for(alice))
        assert [p["body"] for p in response.json()["posts"]] == ["fresh"]

    @pytest.mark.asyncio
    async def test_posts_by_user(self, client, async_test_session, make_profile, headers_for):
        alice = await make_profile("alice")
        bob = await make_profile("bob")
        async_test_session.add_all([Post(user_id=alice.id, body="a"), Post(user_id=bob.id, body="b")])
        await async_test_session.commit()

        response = await client.get(f"/api/posts/user/{bob.id}", headers=headers_for(alice))
        assert [p["body"] for p in response.json()] == ["b"]

    @pytest.mark.asyncio
    async def test_comment_count_skips_replies(self, client, async_test_session, make_profile, headers_for):
        alice = await make_profile("alice")
        bob = await make_profile("bob")
        post = Post(user_id=alice.id, body="count me")
        async_test_session.add(post)
        await async_test_session.commit()
        first = Comment(post_id=post.id, user_id=bob.id, body="first")
        second = Comment(post_id=post.id, user_id=alice.id, body="second")
        async_test_session.add_all([first, second])
        await async_test_session.commit()
        async_test_session.add_all([
            Comment(post_id=post.id, user_id=alice.id, body="thanks", parent_comment_id=first.id),
            Comment(post_id=post.id, user_id=ASSISTANT_USER_ID, body="🤖 Hi!", parent_comment_id=second.id),
        ])
        await async_test_session.commit()

        response = await client.get(f"/api/posts/{post.id}", headers=headers_for(bob))
        assert response.json()["comments_count"] == 2


class TestSearch:
    @pytest_asyncio.fixture
    async def tagged_posts(self, async_test_session, make_profile):
        alice = await make_profile("alice")
        start = datetime(2025, 6, 1)
        posts = [
            Post(user_id=alice.id, body="Krebs cycle summary", course_tag="BIO101", school_tag="MIT",
                 created_at=start),
            Post(user_id=alice.id, body="Integrals cheat sheet", course_tag="MATH201", school_tag="MIT",
                 created_at=start + timedelta(hours=1)),
            Post(user_id=alice.id, body="Lab notes on enzymes", course_tag="BIO101", school_tag="Stanford",
                 created_at=start + timedelta(hours=2)),
            Post(user_id=alice.id, body="100% done with biology", created_at=start + timedelta(hours=3)),
        ]
        async_test_session.add_all(posts)
        await async_test_session.commit()
        return alice

    @pytest.mark.asyncio
    async def test_text_matches_body_and_tags(self, client, tagged_posts, headers_for):
        response = await client.get("/api/posts/search", params={"q": "bio"}, headers=headers_for(tagged_posts))

        assert response.status_code == 200
        assert [p["body"] for p in response.json()] == [
            "100% done with biology",
            "Lab notes on enzymes",
            "Krebs cycle summary",
        ]

    @pytest.mark.asyncio
    async def test_tag_filters_narrow_the_search(self, client, tagged_posts, headers_for):
        response = await client.get(
            "/api/posts/search", params={"q": "bio", "school": "MIT"}, headers=headers_for(tagged_posts)
        )
        assert [p["body"] for p in response.json()] == ["Krebs cycle summary"]

        response = await client.get("/api/posts/search", params={"course": "MATH201"}, headers=headers_for(tagged_posts))
        assert [p["body"] for p in response.json()] == ["Integrals cheat sheet"]

    @pytest.mark.asyncio
    async def test_wildcards_are_literal(self, client, tagged_posts, headers_for):
        response = await client.get("/api/posts/search", params={"q": "100%"}, headers=headers_for(tagged_posts))
        assert [p["body"] for p in response.json()] == ["100% done with biology"]

        response = await client.get("/api/posts/search", params={"q": "%"}, headers=headers_for(tagged_posts))
        assert len(response.json()) == 1

    @pytest.mark.asyncio
    async def test_no_criteria_returns_nothing(self, client, tagged_posts, headers_for):
        response = await client.get("/api/posts/search", params={"q": "   "}, headers=headers_for(tagged_posts))
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_filter_options(self, client, tagged_posts, headers_for):
        response = await client.get("/api/posts/search/filters", headers=headers_for(tagged_posts))
        assert response.json() == {"schools": ["MIT", "Stanford"], "courses": ["BIO101", "MATH201"]}

    @pytest.mark.asyncio
    async def test_hidden_posts_are_not_found(self, client, async_test_session, make_profile, headers_for):
        alice = await make_profile("alice")
        bob = await make_profile("bob")
        async_test_session.add(Post(user_id=bob.id, body="biology from a closed account", is_hidden=True))
        await async_test_session.commit()

        response = await client.get("/api/posts/search", params={"q": "biology"}, headers=headers_for(alice))
        assert response.json() == []
