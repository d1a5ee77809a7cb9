from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from eduhive.core.security import get_current_active_user
from eduhive.crud import social_graph
from eduhive.db.database import get_db
from eduhive.models.profile import Profile
from eduhive.schemas.profile import FollowListEntry, FollowResult
from eduhive.utils.cache import TTLCache, get_cache

router = APIRouter(prefix="/users", tags=["follow"])


@router.post("/{user_id}/follow", response_model=FollowResult, status_code=status.HTTP_201_CREATED)
async def follow_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: Profile = Depends(get_current_active_user)
):
    created = await social_graph.follow_user(db, current_user, user_id, cache)
    return FollowResult(
        message="Followed" if created else "Already following this user",
        following=True,
        followers_count=await social_graph.count_followers(db, user_id),
    )


@router.delete("/{user_id}/follow", response_model=FollowResult)
async def unfollow_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    removed = await social_graph.unfollow_user(db, current_user, user_id)
    return FollowResult(
        message="Unfollowed" if removed else "Not following this user",
        following=False,
        followers_count=await social_graph.count_followers(db, user_id),
    )


@router.get("/{user_id}/followers", response_model=List[FollowListEntry])
async def get_followers(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    return await social_graph.get_followers(db, user_id, current_user.id)


@router.get("/{user_id}/following", response_model=List[FollowListEntry])
async def get_following(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    return await social_graph.get_following(db, user_id, current_user.id)
