"""
Mention resolution and notification fan-out.

Suggestions come only from mutual follows plus the assistant identity.
Fan-out turns one submitted mention list into one notification per
mentioned member; both sides are best-effort and never fail the caller.
"""

import logging
from typing import Any, Awaitable, Callable, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eduhive.core.assistant import assistant_candidate, is_assistant_identity, ASSISTANT_USERNAME
from eduhive.core.config import settings
from eduhive.crud.notification import create_notifications
from eduhive.crud.social_graph import get_mutual_follow_ids, search_profiles
from eduhive.models.notification import Notification
from eduhive.models.profile import Profile
from eduhive.schemas.enums import ComposeContext, NotificationType
from eduhive.schemas.mention import Candidates, MentionCandidate, SuggestionResponse, Usernames
from eduhive.utils.cache import TTLCache
from eduhive.utils.mention_scanner import is_open_token, scan_committed_mentions

logger = logging.getLogger(__name__)

FanOutCall = Callable[..., Awaitable[Any]]


def _to_candidate(profile: Profile) -> MentionCandidate:
    return MentionCandidate(
        id=profile.id,
        username=profile.username,
        display_name=profile.display_name,
        avatar_url=profile.profile_pic,
    )


async def resolve_candidates(
    db: AsyncSession,
    partial_token: str,
    acting_user_id: str,
    allow_assistant: bool = False,
    limit: int = None,
) -> List[MentionCandidate]:
    """Suggestions for a partial `@token`, at most `limit` long.

    The assistant comes first when allowed and its username contains the
    token; mutual follows follow in the order the actor followed them.
    A failed lookup yields no suggestions at all.
    """
    limit = settings.MENTION_SUGGESTION_LIMIT if limit is None else limit
    token = (partial_token or "").lower()

    try:
        suggestions: List[MentionCandidate] = []
        if allow_assistant and token in ASSISTANT_USERNAME.lower():
            suggestions.append(assistant_candidate())

        remaining = limit - len(suggestions)
        if remaining > 0:
            mutual_ids = [
                uid for uid in await get_mutual_follow_ids(db, acting_user_id)
                if not is_assistant_identity(uid)
            ]
            profiles = await search_profiles(db, mutual_ids, token, remaining)
            suggestions.extend(_to_candidate(p) for p in profiles)

        return suggestions[:limit]
    except Exception as e:
        logger.error(f"Mention lookup failed for user {acting_user_id}: {e}")
        return []


async def get_suggestions(
    db: AsyncSession,
    query: str,
    acting_user_id: str,
    context: ComposeContext = ComposeContext.POST,
) -> SuggestionResponse:
    # Anything outside the username class means the caret is not in a token
    if query is None or not is_open_token(query):
        return SuggestionResponse(suggestions=[], show_suggestions=False)

    suggestions = await resolve_candidates(db, query, acting_user_id, context.allows_assistant)
    return SuggestionResponse(suggestions=suggestions, show_suggestions=bool(suggestions))


def normalize_mentions(mentions: Any) -> List[str]:
    """Canonical username list from either accepted mention shape.

    Accepts the tagged `Usernames`/`Candidates` models or a raw list mixing
    username strings, candidates and candidate dicts. Duplicates collapse to
    their first appearance.
    """
    if mentions is None:
        return []
    if isinstance(mentions, Usernames):
        items: Iterable[Any] = mentions.usernames
    elif isinstance(mentions, Candidates):
        items = mentions.candidates
    elif isinstance(mentions, (str, MentionCandidate, dict)):
        items = [mentions]
    else:
        items = mentions

    usernames = {}
    for item in items:
        if isinstance(item, str):
            username = item
        elif isinstance(item, dict):
            username = item.get("username")
        else:
            username = getattr(item, "username", None)
        if not username:
            continue
        username = username.strip().lstrip("@")
        if username:
            usernames.setdefault(username, None)
    return list(usernames)


def submitted_usernames(mentions: Any, text: str, allow_assistant: bool) -> List[str]:
    """Mentions a submitted draft actually carries.

    Picked mentions count only while `@username` is still in the text, and
    a typed `@eduhive` counts without having been picked where allowed.
    """
    committed = scan_committed_mentions(text)
    picked = set(normalize_mentions(mentions))

    usernames = []
    for username in committed:
        if is_assistant_identity(username):
            if allow_assistant and username == ASSISTANT_USERNAME:
                usernames.append(username)
        elif username in picked:
            usernames.append(username)
    return usernames


def _mention_message(actor_username: str, comment_id: Optional[str]) -> str:
    where = "a comment" if comment_id else "a post"
    return f"{actor_username} mentioned you in {where}"


async def create_mention_notifications(
    db: AsyncSession,
    usernames: List[str],
    actor_id: str,
    post_id: Optional[str] = None,
    comment_id: Optional[str] = None,
    cache: Optional[TTLCache] = None,
) -> int:
    """Insert one `mention` notification per known, non-assistant username.

    Unknown usernames and self-mentions are skipped. Returns how many
    notifications were created.
    """
    usernames = [u for u in usernames if not is_assistant_identity(u)]
    if not usernames:
        return 0

    actor = await db.get(Profile, actor_id)
    actor_username = actor.username if actor else "Someone"

    result = await db.execute(select(Profile).where(Profile.username.in_(usernames)))
    recipients = {p.username: p for p in result.scalars().all()}

    message = _mention_message(actor_username, comment_id)
    notifications = [
        Notification(
            recipient_id=recipients[username].id,
            actor_id=actor_id,
            type=NotificationType.MENTION,
            message=message,
            post_id=post_id,
            comment_id=comment_id,
        )
        for username in usernames
        if username in recipients
    ]

    created = await create_notifications(db, notifications, cache=cache)
    logger.info(f"Created {len(created)} mention notifications from {actor_id}")
    return len(created)


async def fan_out_mentions(
    db: AsyncSession,
    mentions: Any,
    actor_id: str,
    post_id: Optional[str] = None,
    comment_id: Optional[str] = None,
    cache: Optional[TTLCache] = None,
    rpc: FanOutCall = create_mention_notifications,
) -> None:
    """Send the mention list to the fan-out call once; failures are only logged.

    Runs after the post or comment is committed, so nothing here can undo it.
    """
    usernames = [u for u in normalize_mentions(mentions) if not is_assistant_identity(u)]
    if not usernames:
        return

    try:
        await rpc(db, usernames, actor_id, post_id=post_id, comment_id=comment_id, cache=cache)
    except Exception as e:
        logger.error(f"Mention fan-out failed for {len(usernames)} users (post={post_id}, comment={comment_id}): {e}")
