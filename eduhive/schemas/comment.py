from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, validator

from eduhive.schemas.attachment import AttachmentIn, AttachmentLayout
from eduhive.schemas.mention import MentionCandidate, MentionSpan
from eduhive.schemas.profile import ProfileSummary


class CommentCreate(BaseModel):
    body: str = Field(..., min_length=1, max_length=5000)
    parent_comment_id: Optional[str] = None
    attachments: List[AttachmentIn] = Field(default_factory=list)
    mentions: List[MentionCandidate | str] = Field(default_factory=list)

    @validator("body")
    def body_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Comment cannot be empty")
        return v.strip()


class CommentRead(BaseModel):
    id: str
    post_id: str
    user_id: str
    parent_comment_id: Optional[str] = None
    body: str
    attachments: AttachmentLayout = Field(default_factory=AttachmentLayout)
    mentions: List[MentionSpan] = Field(default_factory=list)
    author: Optional[ProfileSummary] = None
    is_assistant: bool = False
    likes_count: int = 0
    is_liked: bool = False
    created_at: datetime
    replies: List["CommentRead"] = Field(default_factory=list)

    class Config:
        from_attributes = True


class CommentLikeState(BaseModel):
    comment_id: str
    is_liked: bool
    likes_count: int


CommentRead.model_rebuild()
