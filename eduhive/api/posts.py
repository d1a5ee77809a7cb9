from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from eduhive.core.security import get_current_active_user
from eduhive.crud import post as post_crud
from eduhive.db.database import get_db
from eduhive.models.profile import Profile
from eduhive.schemas.post import FeedPage, LikeState, PostCreate, PostRead, PostUpdate, SearchFilters
from eduhive.utils.cache import TTLCache, get_cache

router = APIRouter(prefix="/posts", tags=["posts"])


@router.post("/", response_model=PostRead, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: PostCreate,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: Profile = Depends(get_current_active_user)
):
    return await post_crud.create_post(db, post_data, current_user, cache)


@router.get("/feed", response_model=FeedPage)
async def get_feed(
    offset: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: Profile = Depends(get_current_active_user)
):
    """Newest posts first"""
    return await post_crud.get_feed(db, current_user.id, offset, limit, cache)


@router.get("/user/{user_id}", response_model=List[PostRead])
async def get_user_posts(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    return await post_crud.get_posts_by_user(db, user_id, current_user.id)


@router.get("/search", response_model=List[PostRead])
async def search_posts(
    q: Optional[str] = Query(None, max_length=200),
    school: Optional[str] = Query(None, max_length=100),
    course: Optional[str] = Query(None, max_length=100),
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """Match text against body, course and school tags, optionally filtered by tag"""
    return await post_crud.search_posts(db, q, school, course, current_user.id)


@router.get("/search/filters", response_model=SearchFilters)
async def get_search_filters(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    return await post_crud.get_search_filters(db)


@router.get("/{post_id}", response_model=PostRead)
async def get_post(
    post_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    return await post_crud.get_post_view(db, post_id, current_user.id)


@router.patch("/{post_id}", response_model=PostRead)
async def update_post(
    post_id: str,
    post_update: PostUpdate,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: Profile = Depends(get_current_active_user)
):
    """Owners may edit the body and tags"""
    return await post_crud.update_post(db, post_id, post_update, current_user, cache)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: str,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: Profile = Depends(get_current_active_user)
):
    await post_crud.delete_post(db, post_id, current_user, cache)


@router.post("/{post_id}/like", response_model=LikeState)
async def toggle_like(
    post_id: str,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: Profile = Depends(get_current_active_user)
):
    return await post_crud.toggle_like(db, post_id, current_user, cache)
