import uuid
from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field


class Comment(SQLModel, table=True):
    """A comment on a post; replies point at a top-level comment"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    post_id: str = Field(foreign_key="post.id", index=True)
    user_id: str = Field(foreign_key="profile.id", index=True)
    parent_comment_id: Optional[str] = Field(default=None, foreign_key="comment.id", index=True)
    body: str = Field(..., min_length=1, max_length=5000)

    attachment_url: Optional[str] = Field(default=None)
    attachment_type: Optional[str] = Field(default=None, max_length=100)
    is_hidden: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)

    @property
    def is_reply(self) -> bool:
        return self.parent_comment_id is not None
