"""
Compose-session mention state.

A draft (post, comment or reply) keeps a ResolvedMentionSet: the candidates
the author picked from suggestions, keyed by username and kept in step with
the `@username` tokens actually present in the text.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional

from eduhive.core.assistant import ASSISTANT_USERNAME, assistant_candidate, is_assistant_identity
from eduhive.schemas.enums import ComposeContext, ComposeState
from eduhive.schemas.mention import MentionCandidate
from eduhive.utils.mention_scanner import find_open_token, scan_committed_mentions

logger = logging.getLogger(__name__)


class ResolvedMentionSet:
    """Insertion-ordered mapping of username -> MentionCandidate."""

    def __init__(self, candidates: Iterable[MentionCandidate] = ()):
        self._entries: Dict[str, MentionCandidate] = {}
        for candidate in candidates:
            self.add(candidate)

    def add(self, candidate: MentionCandidate) -> None:
        """Insert at the end, replacing any earlier entry for the username."""
        self._entries.pop(candidate.username, None)
        self._entries[candidate.username] = candidate

    def get(self, username: str) -> Optional[MentionCandidate]:
        return self._entries.get(username)

    def usernames(self) -> List[str]:
        return list(self._entries)

    def candidates(self) -> List[MentionCandidate]:
        return list(self._entries.values())

    def has_assistant(self) -> bool:
        return any(is_assistant_identity(c) for c in self._entries.values())

    def copy(self) -> "ResolvedMentionSet":
        return ResolvedMentionSet(self._entries.values())

    def __contains__(self, username: str) -> bool:
        return username in self._entries

    def __iter__(self) -> Iterator[MentionCandidate]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ResolvedMentionSet):
            return NotImplemented
        return list(self._entries.items()) == list(other._entries.items())

    def __repr__(self) -> str:
        return f"ResolvedMentionSet({self.usernames()!r})"


@dataclass
class ApplyResult:
    text: str
    caret: int
    resolved: ResolvedMentionSet


def apply_selection(
    selected: MentionCandidate,
    text: str,
    caret: int,
    resolved: ResolvedMentionSet,
) -> ApplyResult:
    """Splice `@username ` over the open token and record the selection.

    Returns the input unchanged when the caret is not inside a token.
    """
    token = find_open_token(text, caret)
    if token is None:
        return ApplyResult(text=text, caret=caret, resolved=resolved.copy())

    inserted = f"@{selected.username} "
    new_text = text[:token.start] + inserted + text[token.end:]

    updated = resolved.copy()
    updated.add(selected)

    return ApplyResult(text=new_text, caret=token.start + len(inserted), resolved=updated)


def sync_with_text(text: str, resolved: ResolvedMentionSet, allow_assistant: bool) -> ResolvedMentionSet:
    """Drop entries whose `@username` left the text; admit a typed assistant mention."""
    committed = scan_committed_mentions(text)
    synced = ResolvedMentionSet()

    for username in committed:
        existing = resolved.get(username)
        if existing is not None:
            if is_assistant_identity(existing) and not allow_assistant:
                continue
            synced.add(existing)
        elif username == ASSISTANT_USERNAME and allow_assistant:
            synced.add(assistant_candidate())

    return synced


@dataclass
class SubmittedMentions:
    usernames: List[str]
    candidates: List[MentionCandidate]
    assistant_requested: bool


class ComposeSessionClosed(Exception):
    """Raised when a submitted draft is edited again."""


@dataclass
class ComposeSession:
    """One draft's mention state; start a new session for every new draft."""
    context: ComposeContext = ComposeContext.POST
    text: str = ""
    caret: int = 0
    state: ComposeState = ComposeState.IDLE
    resolved: ResolvedMentionSet = field(default_factory=ResolvedMentionSet)
    suggestions: List[MentionCandidate] = field(default_factory=list)

    @property
    def allow_assistant(self) -> bool:
        return self.context.allows_assistant

    @property
    def open_token(self):
        return find_open_token(self.text, self.caret)

    def _ensure_open(self) -> None:
        if self.state is ComposeState.SUBMITTED:
            raise ComposeSessionClosed("This draft was already submitted")

    def edit(self, text: str, caret: Optional[int] = None) -> ResolvedMentionSet:
        self._ensure_open()
        self.text = text
        self.caret = len(text) if caret is None else caret
        self.resolved = sync_with_text(self.text, self.resolved, self.allow_assistant)
        self.suggestions = []
        self.state = ComposeState.TYPING if text else ComposeState.IDLE
        return self.resolved

    def show_suggestions(self, suggestions: List[MentionCandidate]) -> bool:
        """Record a suggestion list; returns whether it should be displayed."""
        self._ensure_open()
        if self.open_token is None:
            suggestions = []
        self.suggestions = list(suggestions)
        if self.suggestions:
            self.state = ComposeState.SUGGESTIONS_SHOWN
        elif self.state is ComposeState.SUGGESTIONS_SHOWN:
            self.state = ComposeState.TYPING
        return bool(self.suggestions)

    def select(self, candidate: MentionCandidate) -> ApplyResult:
        self._ensure_open()
        if is_assistant_identity(candidate) and not self.allow_assistant:
            logger.warning(f"Ignoring assistant selection in a {self.context.value} draft")
            return ApplyResult(text=self.text, caret=self.caret, resolved=self.resolved.copy())

        result = apply_selection(candidate, self.text, self.caret, self.resolved)
        self.text, self.caret, self.resolved = result.text, result.caret, result.resolved
        self.suggestions = []
        self.state = ComposeState.SELECTED
        return result

    def submit(self) -> SubmittedMentions:
        self._ensure_open()
        self.resolved = sync_with_text(self.text, self.resolved, self.allow_assistant)
        self.state = ComposeState.SUBMITTED
        return SubmittedMentions(
            usernames=self.resolved.usernames(),
            candidates=self.resolved.candidates(),
            assistant_requested=self.allow_assistant and self.resolved.has_assistant(),
        )
