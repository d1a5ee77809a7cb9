import uuid
from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field


class Post(SQLModel, table=True):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="profile.id", index=True)
    body: str = Field(..., min_length=1, max_length=5000)

    # Either a plain URL paired with attachment_type, or a JSON list of {url, type, name}
    attachment_url: Optional[str] = Field(default=None)
    attachment_type: Optional[str] = Field(default=None, max_length=100)

    school_tag: Optional[str] = Field(default=None, max_length=100, index=True)
    course_tag: Optional[str] = Field(default=None, max_length=100, index=True)

    # Set while the author's account is deactivated
    is_hidden: bool = Field(default=False, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column_kwargs={"onupdate": datetime.utcnow}
    )

    @property
    def summary(self) -> str:
        return f"{self.body[:100]}..." if len(self.body) > 100 else self.body
