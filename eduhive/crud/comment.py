import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from fastapi import status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from eduhive.core.assistant import is_assistant_identity
from eduhive.core.error_codes import (
    COMMENT_CREATION_ERROR,
    COMMENT_DELETE_PERMISSION_DENIED,
    COMMENT_NOT_FOUND,
    LIKE_UPDATE_ERROR,
)
from eduhive.core.exceptions import CustomHTTPException
from eduhive.crud.mention import fan_out_mentions, submitted_usernames
from eduhive.crud.notification import create_notification, prune_notifications_for
from eduhive.crud.post import get_post_or_404
from eduhive.models.comment import Comment
from eduhive.models.profile import Profile
from eduhive.models.reaction import CommentLike
from eduhive.models.report import Report
from eduhive.schemas.comment import CommentCreate, CommentLikeState, CommentRead
from eduhive.schemas.enums import ComposeContext, NotificationType
from eduhive.schemas.profile import ProfileSummary
from eduhive.utils.attachments import layout_for, serialize_attachments
from eduhive.utils.cache import TTLCache, feed_prefix
from eduhive.utils.mention_scanner import mention_spans
from eduhive.utils.optimistic import optimistic_update

logger = logging.getLogger(__name__)


@dataclass
class CreatedComment:
    comment: CommentRead
    context: ComposeContext
    assistant_requested: bool


async def get_comment_or_404(db: AsyncSession, comment_id: str) -> Comment:
    comment = await db.get(Comment, comment_id)
    if not comment:
        raise CustomHTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Comment not found",
            error_code=COMMENT_NOT_FOUND
        )
    return comment


def _to_read(
    comment: Comment,
    author: Optional[Profile],
    likes_count: int = 0,
    is_liked: bool = False,
) -> CommentRead:
    return CommentRead(
        id=comment.id,
        post_id=comment.post_id,
        user_id=comment.user_id,
        parent_comment_id=comment.parent_comment_id,
        body=comment.body,
        attachments=layout_for(comment.attachment_url, comment.attachment_type),
        mentions=mention_spans(comment.body),
        author=ProfileSummary.model_validate(author) if author else None,
        is_assistant=is_assistant_identity(comment.user_id),
        likes_count=likes_count,
        is_liked=is_liked,
        created_at=comment.created_at,
    )


async def _notify(db: AsyncSession, cache: Optional[TTLCache], **fields) -> None:
    try:
        await create_notification(db, fields, cache=cache)
    except Exception as e:
        logger.error(f"Failed to create {fields.get('type')} notification: {e}")


async def create_comment(
    db: AsyncSession,
    post_id: str,
    data: CommentCreate,
    current_user: Profile,
    cache: Optional[TTLCache] = None,
) -> CreatedComment:
    """
    Create a top-level comment or a reply, notify, then fan out mentions.

    Replies to replies are attached to the top-level comment so threads stay
    one level deep. Only top-level comments may summon the assistant; the
    caller schedules the assistant reply when `assistant_requested` is set.
    """
    post = await get_post_or_404(db, post_id)

    replied_to = None
    parent_id = None
    if data.parent_comment_id:
        replied_to = await get_comment_or_404(db, data.parent_comment_id)
        if replied_to.post_id != post_id:
            raise CustomHTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Parent comment not found on this post",
                error_code=COMMENT_NOT_FOUND
            )
        parent_id = replied_to.parent_comment_id or replied_to.id

    context = ComposeContext.REPLY if parent_id else ComposeContext.COMMENT
    attachment_url, attachment_type = serialize_attachments(data.attachments)
    comment = Comment(
        post_id=post_id,
        user_id=current_user.id,
        parent_comment_id=parent_id,
        body=data.body,
        attachment_url=attachment_url,
        attachment_type=attachment_type,
    )

    try:
        db.add(comment)
        await db.commit()
        await db.refresh(comment)
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to create comment on {post_id}: {e}")
        raise CustomHTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create comment",
            error_code=COMMENT_CREATION_ERROR
        )

    view = _to_read(comment, current_user)
    actor_id, actor_name = current_user.id, current_user.username
    if replied_to is not None:
        recipient_id, kind, message = replied_to.user_id, NotificationType.REPLY, f"{actor_name} replied to your comment"
    else:
        recipient_id, kind, message = post.user_id, NotificationType.COMMENT, f"{actor_name} commented on your post"

    # A failed notification rolls the session back; only plain values are used from here on
    await _notify(
        db, cache,
        recipient_id=recipient_id,
        actor_id=actor_id,
        type=kind,
        message=message,
        post_id=post_id,
        comment_id=view.id,
    )

    if cache is not None:
        cache.invalidate_prefix(feed_prefix(actor_id))

    mentions = submitted_usernames(data.mentions, view.body, context.allows_assistant)
    await fan_out_mentions(db, mentions, actor_id, post_id=post_id, comment_id=view.id, cache=cache)

    return CreatedComment(
        comment=view,
        context=context,
        assistant_requested=context.allows_assistant and any(is_assistant_identity(u) for u in mentions),
    )


async def list_comment_threads(db: AsyncSession, post_id: str, viewer_id: Optional[str] = None) -> List[CommentRead]:
    """Top-level comments oldest first, each with its replies nested"""
    result = await db.execute(
        select(Comment)
        .where(Comment.post_id == post_id, Comment.is_hidden == False)  # noqa: E712
        .order_by(Comment.created_at, Comment.id)
    )
    comments = list(result.scalars().all())
    if not comments:
        return []
    comment_ids = [c.id for c in comments]

    author_result = await db.execute(select(Profile).where(Profile.id.in_({c.user_id for c in comments})))
    authors = {a.id: a for a in author_result.scalars().all()}

    like_result = await db.execute(
        select(CommentLike.comment_id, func.count())
        .where(CommentLike.comment_id.in_(comment_ids))
        .group_by(CommentLike.comment_id)
    )
    like_counts = {cid: count for cid, count in like_result.all()}

    liked = set()
    if viewer_id:
        liked_result = await db.execute(
            select(CommentLike.comment_id).where(
                CommentLike.user_id == viewer_id,
                CommentLike.comment_id.in_(comment_ids)
            )
        )
        liked = set(liked_result.scalars().all())

    views: Dict[str, CommentRead] = {
        c.id: _to_read(c, authors.get(c.user_id), like_counts.get(c.id, 0), c.id in liked)
        for c in comments
    }

    threads = []
    for c in comments:
        if not c.parent_comment_id:
            threads.append(views[c.id])
        # Replies under a hidden comment stay hidden with it
        elif c.parent_comment_id in views:
            views[c.parent_comment_id].replies.append(views[c.id])
    return threads


async def delete_comment(
    db: AsyncSession,
    comment_id: str,
    current_user: Profile,
    cache: Optional[TTLCache] = None,
) -> bool:
    """Delete a comment with its replies, likes and notifications"""
    comment = await get_comment_or_404(db, comment_id)
    if comment.user_id != current_user.id:
        raise CustomHTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to delete this comment",
            error_code=COMMENT_DELETE_PERMISSION_DENIED
        )

    try:
        reply_result = await db.execute(select(Comment.id).where(Comment.parent_comment_id == comment_id))
        ids = [comment_id] + list(reply_result.scalars().all())

        await prune_notifications_for(db, comment_ids=ids)
        await db.execute(delete(Report).where(Report.comment_id.in_(ids)))
        await db.execute(delete(CommentLike).where(CommentLike.comment_id.in_(ids)))
        await db.execute(delete(Comment).where(Comment.parent_comment_id == comment_id))
        await db.delete(comment)
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to delete comment {comment_id}: {e}")
        raise CustomHTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete comment"
        )

    if cache is not None:
        cache.invalidate_prefix("feed:")
    return True


async def toggle_comment_like(
    db: AsyncSession,
    comment_id: str,
    current_user: Profile,
    cache: Optional[TTLCache] = None,
) -> CommentLikeState:
    comment = await get_comment_or_404(db, comment_id)
    existing = await db.get(CommentLike, (current_user.id, comment_id))
    count_result = await db.execute(
        select(func.count()).select_from(CommentLike).where(CommentLike.comment_id == comment_id)
    )
    state = CommentLikeState(
        comment_id=comment_id,
        is_liked=existing is not None,
        likes_count=count_result.scalar() or 0,
    )

    def flip():
        state.is_liked = not state.is_liked
        state.likes_count += 1 if state.is_liked else -1

    async def remote():
        try:
            if existing:
                await db.delete(existing)
            else:
                db.add(CommentLike(user_id=current_user.id, comment_id=comment_id))
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    try:
        await optimistic_update(flip, flip, remote)
    except Exception as e:
        logger.error(f"Failed to update like on comment {comment_id}: {e}")
        raise CustomHTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update like",
            error_code=LIKE_UPDATE_ERROR
        )

    if state.is_liked:
        await _notify(
            db, cache,
            recipient_id=comment.user_id,
            actor_id=current_user.id,
            type=NotificationType.LIKE,
            message=f"{current_user.username} liked your comment",
            post_id=comment.post_id,
            comment_id=comment_id,
        )
    return state
