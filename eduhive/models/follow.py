from datetime import datetime
from sqlmodel import SQLModel, Field


class Follow(SQLModel, table=True):
    """Directed follow edge: follower_id follows following_id"""

    follower_id: str = Field(
        foreign_key="profile.id",
        primary_key=True,
        index=True
    )
    following_id: str = Field(
        foreign_key="profile.id",
        primary_key=True,
        index=True
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)
