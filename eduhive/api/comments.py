import logging
from typing import Callable, List

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from eduhive.core.llm import LLMClient, get_llm_client
from eduhive.core.security import get_current_active_user
from eduhive.crud import comment as comment_crud
from eduhive.db.database import get_db, get_session_factory
from eduhive.models.profile import Profile
from eduhive.schemas.comment import CommentCreate, CommentLikeState, CommentRead
from eduhive.utils.assistant_tasks import respond_to_assistant_mention
from eduhive.utils.cache import TTLCache, get_cache

logger = logging.getLogger(__name__)

router = APIRouter(tags=["comments"])


@router.post("/posts/{post_id}/comments", response_model=CommentRead, status_code=status.HTTP_201_CREATED)
async def create_comment(
    post_id: str,
    data: CommentCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    llm: LLMClient = Depends(get_llm_client),
    session_factory: Callable = Depends(get_session_factory),
    current_user: Profile = Depends(get_current_active_user)
):
    """Comment or reply; an @eduhive mention in a top-level comment gets an assistant reply"""
    created = await comment_crud.create_comment(db, post_id, data, current_user, cache)
    if created.assistant_requested:
        logger.info(f"Scheduling assistant reply for comment {created.comment.id}")
        background_tasks.add_task(respond_to_assistant_mention, session_factory, llm, created.comment.id, cache)
    return created.comment


@router.get("/posts/{post_id}/comments", response_model=List[CommentRead])
async def list_comments(
    post_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    return await comment_crud.list_comment_threads(db, post_id, current_user.id)


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: str,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: Profile = Depends(get_current_active_user)
):
    await comment_crud.delete_comment(db, comment_id, current_user, cache)


@router.post("/comments/{comment_id}/like", response_model=CommentLikeState)
async def toggle_comment_like(
    comment_id: str,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: Profile = Depends(get_current_active_user)
):
    return await comment_crud.toggle_comment_like(db, comment_id, current_user, cache)
