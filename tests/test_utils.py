import json
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from eduhive.schemas.attachment import AttachmentIn
from eduhive.schemas.enums import AttachmentKind, AttachmentLayoutType
from eduhive.utils.attachments import (
    MULTIPLE_ATTACHMENT_TYPE,
    layout_for,
    parse_attachments,
    serialize_attachments,
)
from eduhive.utils.cache import TTLCache, feed_key, feed_prefix, unread_count_key
from eduhive.utils.optimistic import optimistic_update
from eduhive.utils.time_format import format_time_short


class TestAttachments:
    def test_plain_url(self):
        [attachment] = parse_attachments("https://cdn.example/a.png", "image/png")
        assert attachment.kind is AttachmentKind.IMAGE

    def test_json_list_keeps_order_and_skips_bad_entries(self):
        raw = json.dumps([
            {"url": "https://cdn.example/1.pdf", "type": "application/pdf"},
            {"name": "no url"},
            {"url": "https://cdn.example/2.jpg", "type": "image/jpeg"},
        ])
        attachments = parse_attachments(raw, MULTIPLE_ATTACHMENT_TYPE)
        assert [a.kind for a in attachments] == [AttachmentKind.PDF, AttachmentKind.IMAGE]

    def test_nothing_attached(self):
        assert parse_attachments(None, None) == []
        assert layout_for(None, None).layout is AttachmentLayoutType.NONE

    def test_serialize_single_and_multiple(self):
        assert serialize_attachments([]) == (None, None)
        assert serialize_attachments([AttachmentIn(url="u", type="image/png")]) == ("u", "image/png")

        url, kind = serialize_attachments([AttachmentIn(url="a"), AttachmentIn(url="b", name="b.txt")])
        assert kind == MULTIPLE_ATTACHMENT_TYPE
        assert json.loads(url) == [{"url": "a"}, {"url": "b", "name": "b.txt"}]

    def test_grid_shows_overflow_on_the_last_tile(self):
        raw = json.dumps([{"url": f"https://cdn.example/{i}.png", "type": "image/png"} for i in range(6)])
        layout = layout_for(raw, MULTIPLE_ATTACHMENT_TYPE)

        assert layout.layout is AttachmentLayoutType.GRID
        assert layout.total == 6
        assert [t.overflow for t in layout.tiles] == [0, 0, 0, 2]
        assert [t.start_index for t in layout.tiles] == [0, 1, 2, 3]
        assert len(layout.slides) == 6


class TestTTLCache:
    def test_set_get_invalidate(self):
        cache = TTLCache(default_ttl=60)
        cache.set(unread_count_key("u1"), 3)
        assert cache.get("unread:u1") == 3

        cache.invalidate("unread:u1")
        assert cache.get("unread:u1") is None

    def test_expired_entries_are_dropped(self):
        cache = TTLCache()
        cache.set("k", "v", ttl=0)
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_invalidate_prefix(self):
        cache = TTLCache()
        cache.set(feed_key("u1", 0, 20), [])
        cache.set(feed_key("u1", 20, 20), [])
        cache.set(feed_key("u2", 0, 20), [])

        cache.invalidate_prefix(feed_prefix("u1"))
        assert len(cache) == 1
        assert cache.get("feed:u2:0:20") == []


class TestOptimisticUpdate:
    @pytest.mark.asyncio
    async def test_success_keeps_local_state(self):
        state = {"liked": False}

        def flip():
            state["liked"] = not state["liked"]

        result = await optimistic_update(flip, flip, AsyncMock(return_value="ok"))
        assert result == "ok"
        assert state["liked"] is True

    @pytest.mark.asyncio
    async def test_failure_reverts_and_reraises(self):
        state = {"liked": False}

        def flip():
            state["liked"] = not state["liked"]

        with pytest.raises(RuntimeError):
            await optimistic_update(flip, flip, AsyncMock(side_effect=RuntimeError("offline")))
        assert state["liked"] is False


@pytest.mark.parametrize("delta,expected", [
    (timedelta(seconds=30), "now"),
    (timedelta(minutes=5), "5m"),
    (timedelta(hours=3), "3h"),
    (timedelta(days=2), "2d"),
    (timedelta(days=14), "2w"),
    (timedelta(days=65), "2mo"),
    (timedelta(days=800), "2y"),
    (timedelta(seconds=-10), "now"),
])
def test_format_time_short(delta, expected):
    now = datetime(2025, 6, 1, 12, 0, 0)
    assert format_time_short(now - delta, now) == expected
