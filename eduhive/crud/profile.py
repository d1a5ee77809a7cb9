import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import status
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eduhive.core.assistant import (
    ASSISTANT_AVATAR_URL,
    ASSISTANT_BIO,
    ASSISTANT_DISPLAY_NAME,
    ASSISTANT_USER_ID,
    ASSISTANT_USERNAME,
    assistant_profile,
    is_assistant_identity,
)
from eduhive.core.config import settings
from eduhive.core.error_codes import (
    ACCOUNT_DEACTIVATION_ERROR,
    ACCOUNT_NOT_DEACTIVATED,
    ACCOUNT_REACTIVATION_EXPIRED,
    PROFILE_DEACTIVATED,
    PROFILE_NOT_FOUND,
    USERNAME_CHANGE_TOO_SOON,
    USERNAME_INVALID,
    USERNAME_TAKEN,
)
from eduhive.core.exceptions import CustomHTTPException
from eduhive.crud.social_graph import count_followers, is_following
from eduhive.models.bookmark import Bookmark
from eduhive.models.comment import Comment
from eduhive.models.follow import Follow
from eduhive.models.post import Post
from eduhive.models.profile import Profile
from eduhive.models.reaction import CommentLike, PostLike
from eduhive.schemas.profile import ProfileRead, ProfileUpdate
from eduhive.utils.cache import TTLCache
from eduhive.utils.mention_scanner import is_valid_username

logger = logging.getLogger(__name__)

USERNAME_CHANGE_INTERVAL = timedelta(days=30)
USERNAME_MIN_LENGTH = 3


async def ensure_assistant_profile(db: AsyncSession) -> Profile:
    """Seed the assistant's profile row so it can be followed and author replies"""
    profile = await db.get(Profile, ASSISTANT_USER_ID)
    if profile:
        return profile

    profile = Profile(
        id=ASSISTANT_USER_ID,
        username=ASSISTANT_USERNAME,
        name=ASSISTANT_DISPLAY_NAME,
        bio=ASSISTANT_BIO,
        profile_pic=ASSISTANT_AVATAR_URL,
        school="EduHive Platform",
        department="AI Assistant",
    )
    db.add(profile)
    await db.commit()
    logger.info("Seeded assistant profile")
    return profile


async def get_profile_by_username(db: AsyncSession, username: str) -> Optional[Profile]:
    result = await db.execute(select(Profile).where(func.lower(Profile.username) == username.lower()))
    return result.scalars().first()


def to_profile_read(profile: Profile, following: Optional[bool] = None) -> ProfileRead:
    data = ProfileRead.model_validate(profile)
    data.is_following = following
    return data


async def get_public_profile(db: AsyncSession, username: str, viewer_id: Optional[str] = None) -> ProfileRead:
    """Public profile by username; the assistant gets its synthetic profile"""
    if is_assistant_identity(username):
        view = assistant_profile(followers_count=await count_followers(db, ASSISTANT_USER_ID))
        if viewer_id:
            view.is_following = await is_following(db, viewer_id, ASSISTANT_USER_ID)
        return view

    profile = await get_profile_by_username(db, username)
    if not profile:
        raise CustomHTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found",
            error_code=PROFILE_NOT_FOUND
        )
    if profile.is_deactivated and profile.id != viewer_id:
        raise CustomHTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="This account has been deactivated",
            error_code=PROFILE_DEACTIVATED
        )

    following = None
    if viewer_id and viewer_id != profile.id:
        following = await is_following(db, viewer_id, profile.id)
    return to_profile_read(profile, following)


def validate_username(username: str) -> str:
    username = username.strip()
    if len(username) < USERNAME_MIN_LENGTH or not is_valid_username(username):
        raise CustomHTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username must be at least 3 characters of letters, digits, '_', '.' or '-'",
            error_code=USERNAME_INVALID
        )
    if is_assistant_identity(username):
        raise CustomHTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username is reserved",
            error_code=USERNAME_TAKEN
        )
    return username


async def update_profile(
    db: AsyncSession,
    profile: Profile,
    profile_update: ProfileUpdate,
    now: Optional[datetime] = None,
) -> Profile:
    """Apply a partial update; a new username is allowed once every 30 days"""
    now = now or datetime.utcnow()
    update_data = profile_update.model_dump(exclude_unset=True)

    new_username = update_data.pop("username", None)
    if new_username is not None:
        new_username = validate_username(new_username)
        if new_username != profile.username:
            if profile.last_username_change and now - profile.last_username_change < USERNAME_CHANGE_INTERVAL:
                next_change = profile.last_username_change + USERNAME_CHANGE_INTERVAL
                raise CustomHTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Username can be changed again after {next_change.date().isoformat()}",
                    error_code=USERNAME_CHANGE_TOO_SOON
                )
            existing = await get_profile_by_username(db, new_username)
            if existing and existing.id != profile.id:
                raise CustomHTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Username is already taken",
                    error_code=USERNAME_TAKEN
                )
            profile.username = new_username
            profile.last_username_change = now

    for field, value in update_data.items():
        if isinstance(value, str):
            value = value.strip() or None
        setattr(profile, field, value)

    try:
        db.add(profile)
        await db.commit()
        await db.refresh(profile)
    except IntegrityError:
        await db.rollback()
        raise CustomHTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username is already taken",
            error_code=USERNAME_TAKEN
        )
    return profile


async def _recount_follows(db: AsyncSession, user_ids) -> None:
    for uid in user_ids:
        await db.execute(
            update(Profile)
            .where(Profile.id == uid)
            .values(
                followers_count=select(func.count()).select_from(Follow)
                .where(Follow.following_id == uid).scalar_subquery(),
                following_count=select(func.count()).select_from(Follow)
                .where(Follow.follower_id == uid).scalar_subquery(),
            )
        )


async def deactivate_account(
    db: AsyncSession,
    profile: Profile,
    now: Optional[datetime] = None,
    cache: Optional[TTLCache] = None,
) -> Profile:
    """
    Deactivate an account and hide what it published.

    Posts and comments are hidden rather than deleted so a reactivation
    within the grace period restores them. Likes, bookmarks and follow
    edges are removed for good and the counters of former follow partners
    are recomputed.
    """
    now = now or datetime.utcnow()
    user_id = profile.id

    try:
        partner_result = await db.execute(
            select(Follow.follower_id, Follow.following_id)
            .where(or_(Follow.follower_id == user_id, Follow.following_id == user_id))
        )
        partners = {a if b == user_id else b for a, b in partner_result.all()}

        await db.execute(update(Post).where(Post.user_id == user_id).values(is_hidden=True))
        await db.execute(update(Comment).where(Comment.user_id == user_id).values(is_hidden=True))
        await db.execute(delete(PostLike).where(PostLike.user_id == user_id))
        await db.execute(delete(CommentLike).where(CommentLike.user_id == user_id))
        await db.execute(delete(Bookmark).where(Bookmark.user_id == user_id))
        await db.execute(
            delete(Follow).where(or_(Follow.follower_id == user_id, Follow.following_id == user_id))
        )
        await _recount_follows(db, partners)

        profile.is_deactivated = True
        profile.deactivated_at = now
        profile.scheduled_deletion_at = now + timedelta(days=settings.ACCOUNT_DELETION_GRACE_DAYS)
        profile.followers_count = 0
        profile.following_count = 0
        db.add(profile)
        await db.commit()
        await db.refresh(profile)
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to deactivate account {user_id}: {e}")
        raise CustomHTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to deactivate account",
            error_code=ACCOUNT_DEACTIVATION_ERROR
        )

    logger.info(f"Deactivated account {user_id}; {len(partners)} follow partners updated")
    if cache is not None:
        cache.invalidate_prefix("feed:")
    return profile


async def reactivate_account(
    db: AsyncSession,
    profile: Profile,
    now: Optional[datetime] = None,
    cache: Optional[TTLCache] = None,
) -> Profile:
    """Restore a deactivated account and unhide its content before the deletion date"""
    now = now or datetime.utcnow()
    if not profile.is_deactivated:
        raise CustomHTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Account is not deactivated",
            error_code=ACCOUNT_NOT_DEACTIVATED
        )
    if profile.scheduled_deletion_at and profile.scheduled_deletion_at <= now:
        raise CustomHTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Account cannot be reactivated after its grace period",
            error_code=ACCOUNT_REACTIVATION_EXPIRED
        )

    await db.execute(update(Post).where(Post.user_id == profile.id).values(is_hidden=False))
    await db.execute(update(Comment).where(Comment.user_id == profile.id).values(is_hidden=False))
    profile.is_deactivated = False
    profile.deactivated_at = None
    profile.scheduled_deletion_at = None
    db.add(profile)
    await db.commit()
    await db.refresh(profile)

    logger.info(f"Reactivated account {profile.id}")
    if cache is not None:
        cache.invalidate_prefix("feed:")
    return profile
