from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eduhive.core.security import get_current_active_user, get_current_user
from eduhive.crud import profile as profile_crud
from eduhive.db.database import get_db
from eduhive.models.profile import Profile
from eduhive.schemas.profile import AccountStatus, ProfileRead, ProfileUpdate
from eduhive.utils.cache import TTLCache, get_cache

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/me", response_model=ProfileRead)
async def get_own_profile(current_user: Profile = Depends(get_current_active_user)):
    return profile_crud.to_profile_read(current_user)


@router.patch("/me", response_model=ProfileRead)
async def update_own_profile(
    profile_update: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """Update profile fields; the username may change once every 30 days"""
    updated = await profile_crud.update_profile(db, current_user, profile_update)
    return profile_crud.to_profile_read(updated)


@router.post("/me/deactivate", response_model=AccountStatus)
async def deactivate_own_account(
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: Profile = Depends(get_current_active_user)
):
    """Hide the account and its content; it can be reactivated during the grace period"""
    return await profile_crud.deactivate_account(db, current_user, cache=cache)


@router.post("/me/reactivate", response_model=AccountStatus)
async def reactivate_own_account(
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: Profile = Depends(get_current_user)
):
    # The only route a deactivated account can still call
    return await profile_crud.reactivate_account(db, current_user, cache=cache)


@router.get("/{username}", response_model=ProfileRead)
async def get_profile(
    username: str,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    return await profile_crud.get_public_profile(db, username, current_user.id)
