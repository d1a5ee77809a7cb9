"""
Attachment payloads and their display layout.

A post or comment stores at most one attachment value: a plain URL paired with
its MIME type, or a JSON-encoded ordered list of {url, type, name} objects.
"""

import json
import logging
from typing import List, Optional, Sequence, Tuple

from eduhive.schemas.attachment import Attachment, AttachmentIn, AttachmentLayout, AttachmentTile
from eduhive.schemas.enums import AttachmentKind, AttachmentLayoutType

logger = logging.getLogger(__name__)

MULTIPLE_ATTACHMENT_TYPE = "multiple"
GRID_VISIBLE_TILES = 4
GRID_COLUMNS = 2


def attachment_kind(mime_type: Optional[str]) -> AttachmentKind:
    if not mime_type:
        return AttachmentKind.FILE
    if mime_type.startswith("image/"):
        return AttachmentKind.IMAGE
    if "pdf" in mime_type:
        return AttachmentKind.PDF
    return AttachmentKind.FILE


def _make(url: str, mime_type: Optional[str], name: Optional[str] = None) -> Attachment:
    return Attachment(url=url, type=mime_type, name=name, kind=attachment_kind(mime_type))


def parse_attachments(attachment_url: Optional[str], attachment_type: Optional[str]) -> List[Attachment]:
    if not attachment_url:
        return []

    try:
        parsed = json.loads(attachment_url)
    except (ValueError, TypeError):
        return [_make(attachment_url, attachment_type)]

    if not isinstance(parsed, list):
        return [_make(attachment_url, attachment_type)]

    attachments = []
    for item in parsed:
        if isinstance(item, dict) and item.get("url"):
            attachments.append(_make(item["url"], item.get("type"), item.get("name")))
        else:
            logger.warning(f"Skipping malformed attachment entry: {item!r}")
    return attachments


def serialize_attachments(attachments: Sequence[AttachmentIn]) -> Tuple[Optional[str], Optional[str]]:
    """Return the (attachment_url, attachment_type) pair to store."""
    if not attachments:
        return None, None
    if len(attachments) == 1:
        return attachments[0].url, attachments[0].type
    payload = [
        {k: v for k, v in {"url": a.url, "type": a.type, "name": a.name}.items() if v is not None}
        for a in attachments
    ]
    return json.dumps(payload), MULTIPLE_ATTACHMENT_TYPE


def build_layout(attachments: Sequence[Attachment]) -> AttachmentLayout:
    """Grid/carousel model: up to four tiles, the last one showing the overflow."""
    total = len(attachments)
    if total == 0:
        return AttachmentLayout()

    slides = list(attachments)
    documents = [a for a in slides if not a.is_image]

    if total == 1:
        return AttachmentLayout(
            layout=AttachmentLayoutType.SINGLE,
            columns=1,
            tiles=[AttachmentTile(attachment=slides[0], start_index=0)],
            slides=slides,
            documents=documents,
            total=1,
        )

    tiles = []
    for index, attachment in enumerate(slides[:GRID_VISIBLE_TILES]):
        overflow = 0
        if index == GRID_VISIBLE_TILES - 1 and total > GRID_VISIBLE_TILES:
            overflow = total - GRID_VISIBLE_TILES
        tiles.append(AttachmentTile(attachment=attachment, start_index=index, overflow=overflow))

    return AttachmentLayout(
        layout=AttachmentLayoutType.GRID,
        columns=GRID_COLUMNS,
        tiles=tiles,
        slides=slides,
        documents=documents,
        total=total,
    )


def layout_for(attachment_url: Optional[str], attachment_type: Optional[str]) -> AttachmentLayout:
    return build_layout(parse_attachments(attachment_url, attachment_type))
