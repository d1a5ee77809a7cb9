from datetime import datetime
from sqlmodel import SQLModel, Field


class Bookmark(SQLModel, table=True):
    user_id: str = Field(foreign_key="profile.id", primary_key=True)
    post_id: str = Field(foreign_key="post.id", primary_key=True, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
