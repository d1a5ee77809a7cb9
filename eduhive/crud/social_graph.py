import logging
from typing import List, Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from eduhive.core.error_codes import CANNOT_FOLLOW_SELF, PROFILE_NOT_FOUND
from eduhive.core.exceptions import CustomHTTPException
from eduhive.crud.notification import create_notification
from eduhive.models.follow import Follow
from eduhive.models.profile import Profile
from eduhive.schemas.enums import NotificationType
from eduhive.schemas.profile import FollowListEntry
from eduhive.utils.cache import TTLCache

logger = logging.getLogger(__name__)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards; `_` is also a legal username character."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def get_following_ids(db: AsyncSession, user_id: str) -> List[str]:
    """Ids the user follows, in the order they were followed"""
    result = await db.execute(
        select(Follow.following_id)
        .where(Follow.follower_id == user_id)
        .order_by(Follow.created_at, Follow.following_id)
    )
    return list(result.scalars().all())


async def get_follower_ids(db: AsyncSession, user_id: str) -> List[str]:
    result = await db.execute(
        select(Follow.follower_id).where(Follow.following_id == user_id)
    )
    return list(result.scalars().all())


async def get_mutual_follow_ids(db: AsyncSession, user_id: str) -> List[str]:
    """Users the given user follows who also follow them back"""
    following = await get_following_ids(db, user_id)
    followers = set(await get_follower_ids(db, user_id))
    return [uid for uid in following if uid in followers]


async def search_profiles(
    db: AsyncSession,
    ids: Sequence[str],
    username_fragment: str = "",
    limit: int = 8
) -> List[Profile]:
    """Active profiles among `ids` whose username contains the fragment, kept in `ids` order"""
    if not ids or limit <= 0:
        return []

    query = select(Profile).where(
        Profile.id.in_(list(ids)),
        Profile.is_deactivated == False,  # noqa: E712
    )
    if username_fragment:
        query = query.where(Profile.username.ilike(f"%{escape_like(username_fragment)}%", escape="\\"))

    result = await db.execute(query)
    profiles = result.scalars().all()

    position = {uid: index for index, uid in enumerate(ids)}
    return sorted(profiles, key=lambda p: position[p.id])[:limit]


async def is_following(db: AsyncSession, follower_id: str, following_id: str) -> bool:
    result = await db.execute(
        select(Follow).where(
            Follow.follower_id == follower_id,
            Follow.following_id == following_id
        )
    )
    return result.scalars().first() is not None


async def count_followers(db: AsyncSession, user_id: str) -> int:
    return len(await get_follower_ids(db, user_id))


async def follow_user(
    db: AsyncSession,
    follower: Profile,
    following_id: str,
    cache: Optional[TTLCache] = None,
) -> bool:
    """Create the follow edge; returns False when it already existed"""
    if follower.id == following_id:
        raise CustomHTTPException(
            status_code=400,
            detail="Cannot follow yourself",
            error_code=CANNOT_FOLLOW_SELF
        )

    target = await db.get(Profile, following_id)
    if not target or target.is_deactivated:
        raise CustomHTTPException(
            status_code=404,
            detail="Profile not found",
            error_code=PROFILE_NOT_FOUND
        )

    if await is_following(db, follower.id, following_id):
        return False

    try:
        db.add(Follow(follower_id=follower.id, following_id=following_id))
        await db.execute(
            update(Profile)
            .where(Profile.id == follower.id)
            .values(following_count=Profile.following_count + 1)
        )
        await db.execute(
            update(Profile)
            .where(Profile.id == following_id)
            .values(followers_count=Profile.followers_count + 1)
        )
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to follow {following_id}: {e}")
        raise CustomHTTPException(status_code=500, detail="Failed to follow user")

    try:
        await create_notification(db, {
            "recipient_id": following_id,
            "actor_id": follower.id,
            "type": NotificationType.FOLLOW,
            "message": f"{follower.username} started following you",
        }, cache=cache)
    except Exception as e:
        logger.error(f"Failed to create follow notification: {e}")

    return True


async def unfollow_user(db: AsyncSession, follower: Profile, following_id: str) -> bool:
    """Remove the follow edge; returns False when there was none"""
    if not await is_following(db, follower.id, following_id):
        return False

    try:
        await db.execute(
            delete(Follow).where(
                Follow.follower_id == follower.id,
                Follow.following_id == following_id
            )
        )
        await db.execute(
            update(Profile)
            .where(Profile.id == follower.id, Profile.following_count > 0)
            .values(following_count=Profile.following_count - 1)
        )
        await db.execute(
            update(Profile)
            .where(Profile.id == following_id, Profile.followers_count > 0)
            .values(followers_count=Profile.followers_count - 1)
        )
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to unfollow {following_id}: {e}")
        raise CustomHTTPException(status_code=500, detail="Failed to unfollow user")
    return True


async def _follow_list(db: AsyncSession, ids: List[str], viewer_id: Optional[str]) -> List[FollowListEntry]:
    if not ids:
        return []
    result = await db.execute(select(Profile).where(Profile.id.in_(ids)))
    profiles = {p.id: p for p in result.scalars().all()}

    viewer_following = set(await get_following_ids(db, viewer_id)) if viewer_id else set()
    viewer_followers = set(await get_follower_ids(db, viewer_id)) if viewer_id else set()

    entries = []
    for uid in ids:
        profile = profiles.get(uid)
        if profile is None:
            continue
        entries.append(FollowListEntry(
            id=profile.id,
            username=profile.username,
            name=profile.name,
            profile_pic=profile.profile_pic,
            school=profile.school,
            is_following=uid in viewer_following,
            follows_you=uid in viewer_followers,
        ))
    return entries


async def get_followers(db: AsyncSession, user_id: str, viewer_id: Optional[str] = None) -> List[FollowListEntry]:
    return await _follow_list(db, await get_follower_ids(db, user_id), viewer_id)


async def get_following(db: AsyncSession, user_id: str, viewer_id: Optional[str] = None) -> List[FollowListEntry]:
    return await _follow_list(db, await get_following_ids(db, user_id), viewer_id)
