from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, validator

from eduhive.schemas.attachment import AttachmentIn, AttachmentLayout
from eduhive.schemas.mention import MentionCandidate, MentionSpan
from eduhive.schemas.profile import ProfileSummary


class PostCreate(BaseModel):
    body: str = Field(..., min_length=1, max_length=5000)
    school_tag: Optional[str] = Field(default=None, max_length=100)
    course_tag: Optional[str] = Field(default=None, max_length=100)
    attachments: List[AttachmentIn] = Field(default_factory=list)
    # Candidates picked from suggestions; older clients send plain usernames
    mentions: List[MentionCandidate | str] = Field(default_factory=list)

    @validator("body")
    def body_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Post body cannot be empty")
        return v.strip()

    @validator("attachments")
    def validate_attachments(cls, v):
        if len(v) > 10:
            raise ValueError("Maximum 10 attachments allowed")
        return v


class PostUpdate(BaseModel):
    """Owners may only edit the body and tags"""
    body: Optional[str] = Field(default=None, min_length=1, max_length=5000)
    school_tag: Optional[str] = Field(default=None, max_length=100)
    course_tag: Optional[str] = Field(default=None, max_length=100)
    mentions: Optional[List[MentionCandidate | str]] = None


class PostRead(BaseModel):
    id: str
    user_id: str
    body: str
    school_tag: Optional[str] = None
    course_tag: Optional[str] = None
    attachment_url: Optional[str] = None
    attachment_type: Optional[str] = None
    attachments: AttachmentLayout = Field(default_factory=AttachmentLayout)
    mentions: List[MentionSpan] = Field(default_factory=list)
    author: Optional[ProfileSummary] = None
    likes_count: int = 0
    comments_count: int = 0
    is_liked: bool = False
    is_bookmarked: bool = False
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FeedPage(BaseModel):
    posts: List[PostRead]
    offset: int
    limit: int
    has_more: bool


class LikeState(BaseModel):
    post_id: str
    is_liked: bool
    likes_count: int


class BookmarkState(BaseModel):
    post_id: str
    is_bookmarked: bool


class SearchFilters(BaseModel):
    """Tag values offered as search filters"""
    schools: List[str]
    courses: List[str]
