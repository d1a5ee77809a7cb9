from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, model_validator

from eduhive.schemas.enums import ReportReason, ReportStatus


class ReportCreate(BaseModel):
    """Report exactly one post or one comment"""
    post_id: Optional[str] = None
    comment_id: Optional[str] = None
    reason: ReportReason
    description: Optional[str] = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def one_target(self):
        if bool(self.post_id) == bool(self.comment_id):
            raise ValueError("Report either a post or a comment")
        if self.description is not None:
            self.description = self.description.strip() or None
        return self


class ReportRead(BaseModel):
    id: str
    reporter_id: str
    reported_user_id: Optional[str] = None
    post_id: Optional[str] = None
    comment_id: Optional[str] = None
    reason: ReportReason
    description: Optional[str] = None
    status: ReportStatus
    created_at: datetime

    class Config:
        from_attributes = True
