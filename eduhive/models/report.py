from datetime import datetime
from typing import Optional
from uuid import uuid4
from sqlmodel import SQLModel, Field

from eduhive.schemas.enums import ReportReason, ReportStatus


class Report(SQLModel, table=True):
    """A member's report of a post or a comment, exactly one of the two"""
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)

    reporter_id: str = Field(foreign_key="profile.id", index=True)
    reported_user_id: Optional[str] = Field(default=None, foreign_key="profile.id", index=True)
    post_id: Optional[str] = Field(default=None, foreign_key="post.id", index=True)
    comment_id: Optional[str] = Field(default=None, foreign_key="comment.id", index=True)

    reason: ReportReason
    description: Optional[str] = Field(default=None, max_length=1000)
    status: ReportStatus = Field(default=ReportStatus.PENDING, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column_kwargs={"onupdate": datetime.utcnow}
    )
