from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eduhive.core.security import get_current_active_user
from eduhive.crud.post import list_bookmarks, toggle_bookmark
from eduhive.db.database import get_db
from eduhive.models.profile import Profile
from eduhive.schemas.post import BookmarkState, PostRead
from eduhive.utils.cache import TTLCache, get_cache

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.post("/{post_id}", response_model=BookmarkState)
async def toggle_post_bookmark(
    post_id: str,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: Profile = Depends(get_current_active_user)
):
    return await toggle_bookmark(db, post_id, current_user, cache)


@router.get("/", response_model=List[PostRead])
async def get_bookmarks(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """Saved posts, most recently saved first"""
    return await list_bookmarks(db, current_user.id)
