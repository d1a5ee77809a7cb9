from datetime import datetime
from typing import Optional
from uuid import uuid4
from sqlmodel import SQLModel, Field

from eduhive.schemas.enums import NotificationType


class Notification(SQLModel, table=True):
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)

    recipient_id: str = Field(foreign_key="profile.id", index=True)
    actor_id: str = Field(foreign_key="profile.id")

    type: NotificationType
    message: str
    is_read: bool = Field(default=False, index=True)

    post_id: Optional[str] = Field(default=None, foreign_key="post.id", index=True)
    comment_id: Optional[str] = Field(default=None, foreign_key="comment.id", index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
