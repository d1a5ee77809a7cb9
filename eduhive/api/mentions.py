from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from eduhive.core.assistant import is_assistant_identity
from eduhive.core.security import get_current_active_user
from eduhive.crud.mention import create_mention_notifications, get_suggestions, normalize_mentions
from eduhive.db.database import get_db
from eduhive.models.profile import Profile
from eduhive.schemas.enums import ComposeContext
from eduhive.schemas.mention import (
    ApplyRequest,
    ApplyResponse,
    FanOutRequest,
    FanOutResponse,
    ScanRequest,
    ScanResponse,
    SuggestionResponse,
    SyncRequest,
    SyncResponse,
)
from eduhive.utils.cache import TTLCache, get_cache
from eduhive.utils.compose import ResolvedMentionSet, apply_selection, sync_with_text
from eduhive.utils.mention_scanner import find_open_token, scan_committed_mentions

router = APIRouter(prefix="/mentions", tags=["mentions"])


@router.get("/suggestions", response_model=SuggestionResponse)
async def mention_suggestions(
    q: str = Query("", max_length=30, description="Partial username typed after @"),
    context: ComposeContext = Query(ComposeContext.POST, description="Where the draft is written"),
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """Mutual follows (and the assistant, in comments) matching the typed token"""
    return await get_suggestions(db, q, current_user.id, context)


@router.post("/scan", response_model=ScanResponse)
async def scan_text(data: ScanRequest):
    """Open token under the caret plus the mentions already in the text"""
    token = find_open_token(data.text, data.caret)
    return ScanResponse(
        open=token is not None,
        token=token,
        committed=scan_committed_mentions(data.text),
    )


@router.post("/apply", response_model=ApplyResponse)
async def apply_mention(data: ApplyRequest):
    result = apply_selection(data.selected, data.text, data.caret, ResolvedMentionSet(data.resolved))
    return ApplyResponse(text=result.text, caret=result.caret, resolved=result.resolved.candidates())


@router.post("/sync", response_model=SyncResponse)
async def sync_mentions(data: SyncRequest):
    """Keep the resolved set in step with an edited draft"""
    synced = sync_with_text(data.text, ResolvedMentionSet(data.resolved), data.context.allows_assistant)
    return SyncResponse(resolved=synced.candidates(), committed=scan_committed_mentions(data.text))


@router.post("/notify", response_model=FanOutResponse)
async def notify_mentions(
    data: FanOutRequest,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    current_user: Profile = Depends(get_current_active_user)
):
    """Create one mention notification per username on behalf of the caller"""
    usernames = [u for u in normalize_mentions(data.mentions) if not is_assistant_identity(u)]
    created = await create_mention_notifications(
        db, usernames, current_user.id,
        post_id=data.post_id, comment_id=data.comment_id, cache=cache
    )
    return FanOutResponse(created=created)
