"""
Post CRUD operations:
- Creation with attachments and mention fan-out
- Owner-only edit and cascading delete
- Cached, paginated feed and post search
- Like and bookmark toggles
"""

import logging
from typing import Dict, List, Optional, Set

from fastapi import status
from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from eduhive.core.config import settings
from eduhive.core.error_codes import (
    BOOKMARK_UPDATE_ERROR,
    INVALID_POST_DATA,
    LIKE_UPDATE_ERROR,
    POST_CREATION_ERROR,
    POST_DELETE_PERMISSION_DENIED,
    POST_NOT_FOUND,
    POST_UPDATE_ERROR,
    POST_UPDATE_PERMISSION_DENIED,
)
from eduhive.core.exceptions import CustomHTTPException
from eduhive.crud.mention import fan_out_mentions, submitted_usernames
from eduhive.crud.notification import create_notification, prune_notifications_for
from eduhive.crud.social_graph import escape_like
from eduhive.models.bookmark import Bookmark
from eduhive.models.comment import Comment
from eduhive.models.notification import Notification
from eduhive.models.post import Post
from eduhive.models.profile import Profile
from eduhive.models.reaction import CommentLike, PostLike
from eduhive.models.report import Report
from eduhive.schemas.enums import ComposeContext, NotificationType
from eduhive.schemas.post import (
    BookmarkState,
    FeedPage,
    LikeState,
    PostCreate,
    PostRead,
    PostUpdate,
    SearchFilters,
)
from eduhive.schemas.profile import ProfileSummary
from eduhive.utils.attachments import layout_for, serialize_attachments
from eduhive.utils.cache import TTLCache, feed_key, feed_prefix
from eduhive.utils.mention_scanner import mention_spans, scan_committed_mentions
from eduhive.utils.optimistic import optimistic_update

logger = logging.getLogger(__name__)


async def _count_by(db: AsyncSession, column, ids: List[str], *where) -> Dict[str, int]:
    result = await db.execute(
        select(column, func.count()).where(column.in_(ids), *where).group_by(column)
    )
    return {key: count for key, count in result.all()}


async def _viewer_set(db: AsyncSession, model, viewer_id: Optional[str], post_ids: List[str]) -> Set[str]:
    if not viewer_id:
        return set()
    result = await db.execute(
        select(model.post_id).where(model.user_id == viewer_id, model.post_id.in_(post_ids))
    )
    return set(result.scalars().all())


async def enrich_posts(db: AsyncSession, posts: List[Post], viewer_id: Optional[str] = None) -> List[PostRead]:
    """Post views with author, counters, viewer flags, attachment layout and mention spans"""
    if not posts:
        return []
    post_ids = [p.id for p in posts]

    author_result = await db.execute(select(Profile).where(Profile.id.in_({p.user_id for p in posts})))
    authors = {a.id: a for a in author_result.scalars().all()}

    like_counts = await _count_by(db, PostLike.post_id, post_ids)
    # Replies, the assistant's included, are not counted
    comment_counts = await _count_by(
        db, Comment.post_id, post_ids,
        Comment.parent_comment_id.is_(None),
        Comment.is_hidden == False,  # noqa: E712
    )
    liked = await _viewer_set(db, PostLike, viewer_id, post_ids)
    bookmarked = await _viewer_set(db, Bookmark, viewer_id, post_ids)

    enriched = []
    for post in posts:
        author = authors.get(post.user_id)
        enriched.append(PostRead(
            id=post.id,
            user_id=post.user_id,
            body=post.body,
            school_tag=post.school_tag,
            course_tag=post.course_tag,
            attachment_url=post.attachment_url,
            attachment_type=post.attachment_type,
            attachments=layout_for(post.attachment_url, post.attachment_type),
            mentions=mention_spans(post.body),
            author=ProfileSummary.model_validate(author) if author else None,
            likes_count=like_counts.get(post.id, 0),
            comments_count=comment_counts.get(post.id, 0),
            is_liked=post.id in liked,
            is_bookmarked=post.id in bookmarked,
            created_at=post.created_at,
            updated_at=post.updated_at,
        ))
    return enriched


async def get_post_or_404(db: AsyncSession, post_id: str) -> Post:
    post = await db.get(Post, post_id)
    if not post:
        raise CustomHTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found",
            error_code=POST_NOT_FOUND
        )
    return post


async def get_post_view(db: AsyncSession, post_id: str, viewer_id: Optional[str] = None) -> PostRead:
    post = await get_post_or_404(db, post_id)
    if post.is_hidden and post.user_id != viewer_id:
        raise CustomHTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found",
            error_code=POST_NOT_FOUND
        )
    return (await enrich_posts(db, [post], viewer_id))[0]


async def create_post(
    db: AsyncSession,
    post_data: PostCreate,
    current_user: Profile,
    cache: Optional[TTLCache] = None,
) -> PostRead:
    """
    Create a post, then fan out its mentions.

    A failed insert surfaces as a 500; the mention fan-out runs only after
    the post is committed and can never undo it. The returned view is built
    before the fan-out because a failed fan-out rolls the session back.
    """
    attachment_url, attachment_type = serialize_attachments(post_data.attachments)
    post = Post(
        user_id=current_user.id,
        body=post_data.body,
        school_tag=post_data.school_tag,
        course_tag=post_data.course_tag,
        attachment_url=attachment_url,
        attachment_type=attachment_type,
    )

    try:
        db.add(post)
        await db.commit()
        await db.refresh(post)
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to create post for {current_user.id}: {e}")
        raise CustomHTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create post",
            error_code=POST_CREATION_ERROR
        )

    if cache is not None:
        cache.invalidate_prefix(feed_prefix(current_user.id))

    view = (await enrich_posts(db, [post], current_user.id))[0]
    mentions = submitted_usernames(post_data.mentions, view.body, ComposeContext.POST.allows_assistant)
    await fan_out_mentions(db, mentions, view.user_id, post_id=view.id, cache=cache)
    return view


async def update_post(
    db: AsyncSession,
    post_id: str,
    post_update: PostUpdate,
    current_user: Profile,
    cache: Optional[TTLCache] = None,
) -> PostRead:
    """Owner edit of body and tags; only newly added, picked mentions are notified"""
    post = await get_post_or_404(db, post_id)
    if post.user_id != current_user.id:
        raise CustomHTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to edit this post",
            error_code=POST_UPDATE_PERMISSION_DENIED
        )

    previous = set(scan_committed_mentions(post.body))
    update_data = post_update.model_dump(exclude_unset=True, exclude={"mentions"})
    if update_data.get("body") is None:
        update_data.pop("body", None)
    else:
        update_data["body"] = update_data["body"].strip()
        if not update_data["body"]:
            raise CustomHTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Post body cannot be empty",
                error_code=INVALID_POST_DATA
            )
    for field, value in update_data.items():
        setattr(post, field, value)

    try:
        db.add(post)
        await db.commit()
        await db.refresh(post)
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to update post {post_id}: {e}")
        raise CustomHTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update post",
            error_code=POST_UPDATE_ERROR
        )

    if cache is not None:
        cache.invalidate_prefix(feed_prefix(current_user.id))

    view = (await enrich_posts(db, [post], current_user.id))[0]
    # Typed but never picked usernames are not notified
    added = [
        u for u in submitted_usernames(post_update.mentions or [], view.body, ComposeContext.POST.allows_assistant)
        if u not in previous
    ]
    await fan_out_mentions(db, added, view.user_id, post_id=view.id, cache=cache)
    return view


async def delete_post(
    db: AsyncSession,
    post_id: str,
    current_user: Profile,
    cache: Optional[TTLCache] = None,
) -> bool:
    """Delete a post with its comments, likes, bookmarks and notifications"""
    post = await get_post_or_404(db, post_id)
    if post.user_id != current_user.id:
        raise CustomHTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to delete this post",
            error_code=POST_DELETE_PERMISSION_DENIED
        )

    try:
        comment_result = await db.execute(select(Comment.id).where(Comment.post_id == post_id))
        comment_ids = list(comment_result.scalars().all())

        await prune_notifications_for(db, post_id=post_id, comment_ids=comment_ids)
        await db.execute(delete(Report).where(or_(
            Report.post_id == post_id,
            Report.comment_id.in_(comment_ids),
        )))
        if comment_ids:
            await db.execute(delete(CommentLike).where(CommentLike.comment_id.in_(comment_ids)))
        # Replies reference their parent, so they go first
        await db.execute(delete(Comment).where(Comment.post_id == post_id, Comment.parent_comment_id.is_not(None)))
        await db.execute(delete(Comment).where(Comment.post_id == post_id))
        await db.execute(delete(PostLike).where(PostLike.post_id == post_id))
        await db.execute(delete(Bookmark).where(Bookmark.post_id == post_id))
        await db.delete(post)
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to delete post {post_id}: {e}")
        raise CustomHTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete post"
        )

    # Every viewer's cached feed may contain the post
    if cache is not None:
        cache.invalidate_prefix("feed:")
    return True


async def get_feed(
    db: AsyncSession,
    viewer_id: str,
    offset: int = 0,
    limit: int = None,
    cache: Optional[TTLCache] = None,
) -> FeedPage:
    """Newest posts first, cached per viewer and page"""
    limit = limit or settings.FEED_PAGE_SIZE
    key = feed_key(viewer_id, offset, limit)
    if cache is not None:
        cached = cache.get(key)
        if cached is not None:
            return cached

    result = await db.execute(
        select(Post)
        .where(Post.is_hidden == False)  # noqa: E712
        .order_by(Post.created_at.desc(), Post.id)
        .offset(offset)
        .limit(limit + 1)
    )
    posts = list(result.scalars().all())
    has_more = len(posts) > limit
    posts = posts[:limit]

    page = FeedPage(
        posts=await enrich_posts(db, posts, viewer_id),
        offset=offset,
        limit=limit,
        has_more=has_more,
    )
    if cache is not None:
        cache.set(key, page, ttl=settings.FEED_CACHE_TTL_SECONDS)
    return page


async def get_posts_by_user(db: AsyncSession, user_id: str, viewer_id: Optional[str] = None) -> List[PostRead]:
    result = await db.execute(
        select(Post)
        .where(Post.user_id == user_id, Post.is_hidden == False)  # noqa: E712
        .order_by(Post.created_at.desc())
    )
    return await enrich_posts(db, list(result.scalars().all()), viewer_id)


async def search_posts(
    db: AsyncSession,
    q: Optional[str] = None,
    school: Optional[str] = None,
    course: Optional[str] = None,
    viewer_id: Optional[str] = None,
    limit: int = None,
) -> List[PostRead]:
    """
    Newest visible posts matching the search.

    `q` matches the body, course tag or school tag case-insensitively;
    `school` and `course` are exact tag filters. With no criteria at all
    nothing is returned.
    """
    q = (q or "").strip()
    if not q and not school and not course:
        return []

    query = select(Post).where(Post.is_hidden == False)  # noqa: E712
    if q:
        pattern = f"%{escape_like(q)}%"
        query = query.where(or_(
            Post.body.ilike(pattern, escape="\\"),
            Post.course_tag.ilike(pattern, escape="\\"),
            Post.school_tag.ilike(pattern, escape="\\"),
        ))
    if school:
        query = query.where(Post.school_tag == school)
    if course:
        query = query.where(Post.course_tag == course)

    result = await db.execute(
        query.order_by(Post.created_at.desc(), Post.id).limit(limit or settings.SEARCH_RESULT_LIMIT)
    )
    return await enrich_posts(db, list(result.scalars().all()), viewer_id)


async def get_search_filters(db: AsyncSession) -> SearchFilters:
    """Distinct school and course tags of visible posts"""
    async def _distinct(column) -> List[str]:
        result = await db.execute(
            select(column)
            .where(column.is_not(None), column != "", Post.is_hidden == False)  # noqa: E712
            .distinct()
            .order_by(column)
        )
        return list(result.scalars().all())

    return SearchFilters(schools=await _distinct(Post.school_tag), courses=await _distinct(Post.course_tag))


async def toggle_like(
    db: AsyncSession,
    post_id: str,
    current_user: Profile,
    cache: Optional[TTLCache] = None,
) -> LikeState:
    """Flip the viewer's like; the returned state is rolled back if the write fails"""
    post = await get_post_or_404(db, post_id)
    existing = await db.get(PostLike, (current_user.id, post_id))
    count = (await _count_by(db, PostLike.post_id, [post_id])).get(post_id, 0)
    state = LikeState(post_id=post_id, is_liked=existing is not None, likes_count=count)

    def flip():
        state.is_liked = not state.is_liked
        state.likes_count += 1 if state.is_liked else -1

    async def remote():
        try:
            if existing:
                await db.delete(existing)
            else:
                db.add(PostLike(user_id=current_user.id, post_id=post_id))
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    try:
        await optimistic_update(flip, flip, remote)
    except Exception as e:
        logger.error(f"Failed to update like on {post_id}: {e}")
        raise CustomHTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update like",
            error_code=LIKE_UPDATE_ERROR
        )

    if cache is not None:
        cache.invalidate_prefix(feed_prefix(current_user.id))

    if state.is_liked:
        try:
            await create_notification(db, Notification(
                recipient_id=post.user_id,
                actor_id=current_user.id,
                type=NotificationType.LIKE,
                message=f"{current_user.username} liked your post",
                post_id=post_id,
            ), cache=cache)
        except Exception as e:
            logger.error(f"Failed to create like notification: {e}")

    return state


async def toggle_bookmark(
    db: AsyncSession,
    post_id: str,
    current_user: Profile,
    cache: Optional[TTLCache] = None,
) -> BookmarkState:
    await get_post_or_404(db, post_id)
    existing = await db.get(Bookmark, (current_user.id, post_id))
    state = BookmarkState(post_id=post_id, is_bookmarked=existing is not None)

    def flip():
        state.is_bookmarked = not state.is_bookmarked

    async def remote():
        try:
            if existing:
                await db.delete(existing)
            else:
                db.add(Bookmark(user_id=current_user.id, post_id=post_id))
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    try:
        await optimistic_update(flip, flip, remote)
    except Exception as e:
        logger.error(f"Failed to update bookmark on {post_id}: {e}")
        raise CustomHTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update bookmark",
            error_code=BOOKMARK_UPDATE_ERROR
        )

    if cache is not None:
        cache.invalidate_prefix(feed_prefix(current_user.id))
    return state


async def list_bookmarks(db: AsyncSession, user_id: str) -> List[PostRead]:
    """The user's bookmarked posts, most recently saved first"""
    result = await db.execute(
        select(Post)
        .join(Bookmark, Bookmark.post_id == Post.id)
        .where(Bookmark.user_id == user_id, Post.is_hidden == False)  # noqa: E712
        .order_by(Bookmark.created_at.desc())
    )
    return await enrich_posts(db, list(result.scalars().all()), user_id)
