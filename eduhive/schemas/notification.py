from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel

from eduhive.schemas.enums import NotificationType
from eduhive.schemas.profile import ProfileSummary


class NotificationRead(BaseModel):
    id: str
    type: NotificationType
    message: str
    is_read: bool
    created_at: datetime
    time_ago: str
    actor: Optional[ProfileSummary] = None
    post_id: Optional[str] = None
    comment_id: Optional[str] = None

    class Config:
        from_attributes = True


class NotificationResponse(BaseModel):
    unread_count: int
    notifications: List[NotificationRead]


class UnreadCount(BaseModel):
    unread_count: int


class NotificationNavigation(BaseModel):
    """Where the client should go when a notification is opened"""
    url: str
    type: str  # 'post', 'profile' or 'notifications'
    target_id: Optional[str] = None


class NotificationReadResponse(BaseModel):
    notification: NotificationRead
    navigation: NotificationNavigation
