"""
The reserved assistant identity.

The in-app assistant is seeded as a profile row so it can be followed and can
author replies, but it never receives notifications and never signs in.
Every check for it goes through `is_assistant_identity`.
"""

from datetime import datetime
from typing import Any

ASSISTANT_USER_ID = "00000000-0000-4000-8000-000000000001"
ASSISTANT_USERNAME = "eduhive"
ASSISTANT_DISPLAY_NAME = "EduHive Assistant"
ASSISTANT_AVATAR_URL = "/logo.svg"
ASSISTANT_BIO = "Your friendly AI assistant for educational content. Ask me to explain posts or answer questions!"

# Id used for the assistant by older clients
LEGACY_ASSISTANT_ID = "ai-bot"

_ASSISTANT_KEYS = {ASSISTANT_USER_ID, LEGACY_ASSISTANT_ID}


def is_assistant_identity(value: Any) -> bool:
    """True for the assistant's id, its username, or an object carrying either."""
    if value is None:
        return False
    if isinstance(value, str):
        return value in _ASSISTANT_KEYS or value.lower() == ASSISTANT_USERNAME
    if isinstance(value, dict):
        return is_assistant_identity(value.get("id")) or is_assistant_identity(value.get("username"))
    return (
        is_assistant_identity(getattr(value, "id", None))
        or is_assistant_identity(getattr(value, "username", None))
    )


def assistant_candidate():
    from eduhive.schemas.mention import MentionCandidate

    return MentionCandidate(
        id=ASSISTANT_USER_ID,
        username=ASSISTANT_USERNAME,
        display_name=ASSISTANT_DISPLAY_NAME,
        avatar_url=ASSISTANT_AVATAR_URL,
    )


def assistant_profile(followers_count: int = 0):
    from eduhive.schemas.profile import ProfileRead

    return ProfileRead(
        id=ASSISTANT_USER_ID,
        username=ASSISTANT_USERNAME,
        name=ASSISTANT_DISPLAY_NAME,
        bio=ASSISTANT_BIO,
        profile_pic=ASSISTANT_AVATAR_URL,
        school="EduHive Platform",
        department="AI Assistant",
        followers_count=followers_count,
        following_count=0,
        is_assistant=True,
        created_at=datetime(2025, 1, 1),
    )
