import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from eduhive.core.security import get_current_active_user
from eduhive.crud import notification as notif_crud
from eduhive.db.database import get_db
from eduhive.models.profile import Profile
from eduhive.schemas.notification import NotificationReadResponse, NotificationResponse, UnreadCount
from eduhive.utils.cache import TTLCache, get_cache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=NotificationResponse)
async def get_notifications(
    unread_only: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: Profile = Depends(get_current_active_user)
):
    """Get notifications with current unread count"""
    return {
        "unread_count": await notif_crud.get_unread_notification_count(db, current_user.id, cache),
        "notifications": await notif_crud.get_user_notifications(db, current_user.id, unread_only, skip, limit)
    }


@router.get("/unread-count", response_model=UnreadCount)
async def get_unread_count(
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: Profile = Depends(get_current_active_user)
):
    return UnreadCount(unread_count=await notif_crud.get_unread_notification_count(db, current_user.id, cache))


@router.put("/read-all", response_model=UnreadCount)
async def mark_all_notifications_as_read(
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: Profile = Depends(get_current_active_user)
):
    updated = await notif_crud.mark_all_as_read(db, current_user.id, cache)
    logger.info(f"Marked {updated} notifications read for {current_user.id}")
    return UnreadCount(unread_count=0)


@router.put("/{notif_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_notification_as_read(
    notif_id: str,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: Profile = Depends(get_current_active_user)
):
    success = await notif_crud.mark_as_read(db, notif_id, current_user.id, cache)
    if not success:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found or already read"
        )


@router.get("/{notif_id}/read", response_model=NotificationReadResponse)
async def read_notification(
    notif_id: str,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: Profile = Depends(get_current_active_user)
):
    """Read a notification and get navigation information to the related content"""
    notification, navigation = await notif_crud.read_notification_with_navigation(
        db, notif_id, current_user.id, cache
    )
    if not notification:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )
    return NotificationReadResponse(notification=notification, navigation=navigation)
