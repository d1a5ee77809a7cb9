from typing import Annotated, List, Literal, Optional, Union
from pydantic import BaseModel, Field

from eduhive.schemas.enums import ComposeContext


class MentionCandidate(BaseModel):
    """A suggestible mention target: a mutual follow or the assistant"""
    id: str
    username: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None

    class Config:
        from_attributes = True
        frozen = True


class OpenToken(BaseModel):
    """An unterminated `@token` under the caret; `start` is the index of the `@`"""
    token: str
    start: int
    end: int

    class Config:
        frozen = True


class Usernames(BaseModel):
    kind: Literal["usernames"] = "usernames"
    usernames: List[str] = Field(default_factory=list)


class Candidates(BaseModel):
    kind: Literal["candidates"] = "candidates"
    candidates: List[MentionCandidate] = Field(default_factory=list)


MentionInput = Annotated[Union[Usernames, Candidates], Field(discriminator="kind")]


class ScanRequest(BaseModel):
    text: str
    caret: int = Field(..., ge=0)


class ScanResponse(BaseModel):
    open: bool
    token: Optional[OpenToken] = None
    committed: List[str] = Field(default_factory=list)


class SuggestionResponse(BaseModel):
    suggestions: List[MentionCandidate] = Field(default_factory=list)
    show_suggestions: bool = False


class ApplyRequest(BaseModel):
    selected: MentionCandidate
    text: str
    caret: int = Field(..., ge=0)
    resolved: List[MentionCandidate] = Field(default_factory=list)


class ApplyResponse(BaseModel):
    text: str
    caret: int
    resolved: List[MentionCandidate]


class SyncRequest(BaseModel):
    text: str
    context: ComposeContext = ComposeContext.POST
    resolved: List[MentionCandidate] = Field(default_factory=list)


class SyncResponse(BaseModel):
    resolved: List[MentionCandidate]
    committed: List[str]


class FanOutRequest(BaseModel):
    """Body of the server-side mention fan-out call"""
    mentions: MentionInput
    post_id: Optional[str] = None
    comment_id: Optional[str] = None


class FanOutResponse(BaseModel):
    created: int


class MentionSpan(BaseModel):
    """Where a mention sits in rendered text"""
    username: str
    position_start: int
    position_end: int
    is_assistant: bool = False
