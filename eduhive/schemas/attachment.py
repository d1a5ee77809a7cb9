from typing import List, Optional
from pydantic import BaseModel, Field

from eduhive.schemas.enums import AttachmentKind, AttachmentLayoutType


class AttachmentIn(BaseModel):
    url: str = Field(..., min_length=1)
    type: Optional[str] = None
    name: Optional[str] = None


class Attachment(AttachmentIn):
    kind: AttachmentKind = AttachmentKind.FILE

    @property
    def is_image(self) -> bool:
        return self.kind is AttachmentKind.IMAGE


class AttachmentTile(BaseModel):
    """A visible grid tile; `start_index` opens the carousel at this slide"""
    attachment: Attachment
    start_index: int
    overflow: int = 0


class AttachmentLayout(BaseModel):
    layout: AttachmentLayoutType = AttachmentLayoutType.NONE
    columns: int = 1
    tiles: List[AttachmentTile] = Field(default_factory=list)
    slides: List[Attachment] = Field(default_factory=list)
    documents: List[Attachment] = Field(default_factory=list)
    total: int = 0
