"""
Enumerations for fixed options shared by models and schemas.
"""

from enum import Enum


class NotificationType(str, Enum):
    MENTION = "mention"
    LIKE = "like"
    COMMENT = "comment"
    FOLLOW = "follow"
    REPLY = "reply"


class ComposeContext(str, Enum):
    """Where a draft is being written"""
    POST = "post"
    COMMENT = "comment"
    REPLY = "reply"

    @property
    def allows_assistant(self) -> bool:
        # The assistant answers top-level comments only
        return self is ComposeContext.COMMENT


class ComposeState(str, Enum):
    IDLE = "idle"
    TYPING = "typing"
    SUGGESTIONS_SHOWN = "suggestions_shown"
    SELECTED = "selected"
    SUBMITTED = "submitted"


class AttachmentKind(str, Enum):
    IMAGE = "image"
    PDF = "pdf"
    FILE = "file"


class AttachmentLayoutType(str, Enum):
    NONE = "none"
    SINGLE = "single"
    GRID = "grid"


class AssistantRequestType(str, Enum):
    EXPLAIN = "explain"
    QUESTION = "question"


class ReportReason(str, Enum):
    SPAM = "spam"
    HARASSMENT = "harassment"
    HATE_SPEECH = "hate_speech"
    VIOLENCE = "violence"
    INAPPROPRIATE_CONTENT = "inappropriate_content"
    MISINFORMATION = "misinformation"
    COPYRIGHT = "copyright"
    OTHER = "other"


class ReportStatus(str, Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"
