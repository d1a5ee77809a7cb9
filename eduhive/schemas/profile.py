from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field


class ProfileSummary(BaseModel):
    """Minimal author/actor data embedded in cards"""
    id: str
    username: str
    name: Optional[str] = None
    profile_pic: Optional[str] = None
    school: Optional[str] = None

    class Config:
        from_attributes = True


class ProfileRead(ProfileSummary):
    bio: Optional[str] = None
    department: Optional[str] = None
    year: Optional[int] = None
    followers_count: int = 0
    following_count: int = 0
    is_following: Optional[bool] = None
    is_assistant: bool = False
    created_at: datetime


class ProfileUpdate(BaseModel):
    username: Optional[str] = Field(default=None, min_length=3, max_length=30)
    name: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=500)
    profile_pic: Optional[str] = None
    school: Optional[str] = Field(default=None, max_length=100)
    department: Optional[str] = Field(default=None, max_length=100)
    year: Optional[int] = Field(default=None, ge=1, le=10)


class FollowListEntry(ProfileSummary):
    """Entry of a followers/following list with the viewer's relation to it"""
    is_following: bool = False
    follows_you: bool = False


class FollowResult(BaseModel):
    message: str
    following: bool
    followers_count: int


class ProfileList(BaseModel):
    profiles: List[ProfileSummary]


class AccountStatus(BaseModel):
    """Deactivation state of the caller's own account"""
    id: str
    is_deactivated: bool
    deactivated_at: Optional[datetime] = None
    scheduled_deletion_at: Optional[datetime] = None

    class Config:
        from_attributes = True
