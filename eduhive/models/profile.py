from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field


class ProfileBase(SQLModel):
    """Public profile fields"""
    username: str = Field(..., min_length=1, max_length=30, index=True, unique=True)
    name: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=500)
    profile_pic: Optional[str] = Field(default=None)
    school: Optional[str] = Field(default=None, max_length=100)
    department: Optional[str] = Field(default=None, max_length=100)
    year: Optional[int] = Field(default=None)


class Profile(ProfileBase, table=True):
    """One row per account; `id` is the user id issued by the hosted auth service"""
    id: str = Field(primary_key=True)
    email: Optional[str] = Field(default=None)

    followers_count: int = Field(default=0)
    following_count: int = Field(default=0)

    is_deactivated: bool = Field(default=False, index=True)
    deactivated_at: Optional[datetime] = None
    scheduled_deletion_at: Optional[datetime] = None
    last_username_change: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column_kwargs={"onupdate": datetime.utcnow}
    )

    @property
    def display_name(self) -> str:
        return self.name or self.username
