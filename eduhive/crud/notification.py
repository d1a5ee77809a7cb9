import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from eduhive.core.assistant import is_assistant_identity
from eduhive.core.config import settings
from eduhive.models.notification import Notification
from eduhive.models.profile import Profile
from eduhive.schemas.enums import NotificationType
from eduhive.schemas.notification import NotificationNavigation, NotificationRead
from eduhive.schemas.profile import ProfileSummary
from eduhive.utils.cache import TTLCache, unread_count_key
from eduhive.utils.time_format import format_time_short

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("recipient_id", "actor_id", "type", "message")


async def create_notification(
    db: AsyncSession,
    notification_data: Union[Dict[str, Any], Notification],
    cache: Optional[TTLCache] = None,
) -> Optional[Notification]:
    """
    Persist one notification.

    Accepts a dict of notification attributes or a Notification object.
    Returns None without writing when the recipient is the actor or the
    assistant identity, which never receives notifications.

    Raises:
        ValueError: If required fields are missing
        TypeError: If notification_data has the wrong type
    """
    if isinstance(notification_data, Notification):
        notification = notification_data
    elif isinstance(notification_data, dict):
        missing = [f for f in REQUIRED_FIELDS if notification_data.get(f) is None]
        if missing:
            raise ValueError(f"Missing required notification fields: {missing}")
        notification = Notification(**notification_data)
    else:
        raise TypeError("notification_data must be either a dict or Notification object")

    if notification.recipient_id == notification.actor_id:
        return None
    if is_assistant_identity(notification.recipient_id):
        return None

    try:
        db.add(notification)
        await db.commit()
        await db.refresh(notification)
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to create notification: {e}")
        raise

    if cache is not None:
        cache.invalidate(unread_count_key(notification.recipient_id))
    return notification


async def create_notifications(
    db: AsyncSession,
    notifications: Sequence[Notification],
    cache: Optional[TTLCache] = None,
) -> List[Notification]:
    """Insert several notifications in one transaction, skipping self and assistant recipients"""
    kept = [
        n for n in notifications
        if n.recipient_id != n.actor_id and not is_assistant_identity(n.recipient_id)
    ]
    if not kept:
        return []

    try:
        db.add_all(kept)
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to create {len(kept)} notifications: {e}")
        raise

    if cache is not None:
        for n in kept:
            cache.invalidate(unread_count_key(n.recipient_id))
    return kept


async def get_unread_notification_count(
    db: AsyncSession,
    user_id: str,
    cache: Optional[TTLCache] = None,
) -> int:
    key = unread_count_key(user_id)
    if cache is not None:
        cached = cache.get(key)
        if cached is not None:
            return cached

    result = await db.execute(
        select(func.count(Notification.id))
        .where(
            Notification.recipient_id == user_id,
            Notification.is_read == False  # noqa: E712
        )
    )
    count = result.scalar() or 0

    if cache is not None:
        cache.set(key, count, ttl=settings.UNREAD_COUNT_CACHE_TTL_SECONDS)
    return count


def _to_read(notification: Notification, actor: Optional[Profile], now: datetime) -> NotificationRead:
    return NotificationRead(
        id=notification.id,
        type=notification.type,
        message=notification.message,
        is_read=notification.is_read,
        created_at=notification.created_at,
        time_ago=format_time_short(notification.created_at, now),
        actor=ProfileSummary.model_validate(actor) if actor else None,
        post_id=notification.post_id,
        comment_id=notification.comment_id,
    )


async def get_user_notifications(
    db: AsyncSession,
    user_id: str,
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 50,
) -> List[NotificationRead]:
    """Notifications for the user, newest first, with actor summaries"""
    query = select(Notification).where(Notification.recipient_id == user_id)
    if unread_only:
        query = query.where(Notification.is_read == False)  # noqa: E712
    result = await db.execute(
        query.order_by(Notification.created_at.desc()).offset(skip).limit(limit)
    )
    notifications = result.scalars().all()

    actor_ids = {n.actor_id for n in notifications}
    actors = {}
    if actor_ids:
        actor_result = await db.execute(select(Profile).where(Profile.id.in_(actor_ids)))
        actors = {p.id: p for p in actor_result.scalars().all()}

    now = datetime.utcnow()
    return [_to_read(n, actors.get(n.actor_id), now) for n in notifications]


async def mark_as_read(
    db: AsyncSession,
    notif_id: str,
    user_id: str,
    cache: Optional[TTLCache] = None,
) -> bool:
    """Mark one unread notification as read"""
    result = await db.execute(
        select(Notification)
        .where(
            Notification.id == notif_id,
            Notification.recipient_id == user_id,
            Notification.is_read == False  # noqa: E712
        )
    )
    notif = result.scalar_one_or_none()
    if not notif:
        return False

    notif.is_read = True
    await db.commit()
    if cache is not None:
        cache.invalidate(unread_count_key(user_id))
    return True


async def mark_all_as_read(db: AsyncSession, user_id: str, cache: Optional[TTLCache] = None) -> int:
    result = await db.execute(
        update(Notification)
        .where(
            Notification.recipient_id == user_id,
            Notification.is_read == False  # noqa: E712
        )
        .values(is_read=True)
    )
    await db.commit()
    if cache is not None:
        cache.invalidate(unread_count_key(user_id))
    return result.rowcount or 0


async def read_notification_with_navigation(
    db: AsyncSession,
    notif_id: str,
    user_id: str,
    cache: Optional[TTLCache] = None,
) -> Tuple[Optional[NotificationRead], Optional[NotificationNavigation]]:
    """Mark a notification read and work out where it points"""
    result = await db.execute(
        select(Notification)
        .where(
            Notification.id == notif_id,
            Notification.recipient_id == user_id
        )
    )
    notification = result.scalar_one_or_none()
    if not notification:
        return None, None

    if not notification.is_read:
        notification.is_read = True
        await db.commit()
        if cache is not None:
            cache.invalidate(unread_count_key(user_id))

    actor = await db.get(Profile, notification.actor_id)
    return _to_read(notification, actor, datetime.utcnow()), generate_navigation_info(notification, actor)


def generate_navigation_info(notification: Notification, actor: Optional[Profile] = None) -> NotificationNavigation:
    if notification.type == NotificationType.FOLLOW:
        target = actor.username if actor else notification.actor_id
        return NotificationNavigation(url=f"/profile/{target}", type="profile", target_id=notification.actor_id)

    if notification.post_id:
        url = f"/post/{notification.post_id}"
        if notification.comment_id:
            url += f"#comment-{notification.comment_id}"
        return NotificationNavigation(url=url, type="post", target_id=notification.post_id)

    return NotificationNavigation(url="/notifications", type="notifications", target_id=None)


async def prune_notifications_for(
    db: AsyncSession,
    post_id: Optional[str] = None,
    comment_ids: Sequence[str] = (),
) -> int:
    """Delete notifications pointing at removed content; the caller commits"""
    conditions = []
    if post_id:
        conditions.append(Notification.post_id == post_id)
    if comment_ids:
        conditions.append(Notification.comment_id.in_(list(comment_ids)))
    if not conditions:
        return 0

    result = await db.execute(delete(Notification).where(or_(*conditions)))
    return result.rowcount or 0
