"""
Scanning free text for @mentions.

Two views of the same text: the token currently being typed under the caret
(drives suggestions) and the mentions already committed to the text (drives
notifications on submit).
"""

import re
from typing import List, Optional

from eduhive.core.assistant import is_assistant_identity
from eduhive.schemas.mention import MentionSpan, OpenToken

USERNAME_CHARS = r"[A-Za-z0-9_.-]"
USERNAME_RE = re.compile(rf"^{USERNAME_CHARS}+$")
# A token may still be empty while the user has only typed "@"
_OPEN_TOKEN_RE = re.compile(rf"^{USERNAME_CHARS}*$")
_MENTION_RE = re.compile(rf"@({USERNAME_CHARS}+)")


def is_valid_username(value: str) -> bool:
    return bool(value) and USERNAME_RE.match(value) is not None


def is_open_token(token: str) -> bool:
    """True for a possibly empty run of username characters."""
    return _OPEN_TOKEN_RE.match(token) is not None


def find_open_token(text: str, caret: int) -> Optional[OpenToken]:
    """Return the mention token the caret sits in, or None.

    Anchors on the last "@" at or before the caret, so two adjacent
    tokens are handled independently.
    """
    if caret < 0:
        return None
    caret = min(caret, len(text))

    at_index = text.rfind("@", 0, caret)
    if at_index == -1:
        return None

    token = text[at_index + 1:caret]
    if any(ch.isspace() for ch in token) or not _OPEN_TOKEN_RE.match(token):
        return None

    return OpenToken(token=token, start=at_index, end=caret)


def scan_committed_mentions(text: str) -> List[str]:
    """Usernames mentioned in the text, deduplicated in order of first appearance."""
    seen = {}
    for match in _MENTION_RE.finditer(text or ""):
        seen.setdefault(match.group(1), None)
    return list(seen)


def mention_spans(text: str) -> List[MentionSpan]:
    """Positions of every mention, used to render mentions as links."""
    return [
        MentionSpan(
            username=match.group(1),
            position_start=match.start(),
            position_end=match.end(),
            is_assistant=is_assistant_identity(match.group(1)),
        )
        for match in _MENTION_RE.finditer(text or "")
    ]
