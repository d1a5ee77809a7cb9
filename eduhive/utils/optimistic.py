import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def optimistic_update(
    apply: Callable[[], None],
    revert: Callable[[], None],
    remote: Callable[[], Awaitable[T]],
) -> T:
    """Apply a local change, run the remote write, undo the local change if it fails."""
    apply()
    try:
        return await remote()
    except Exception:
        logger.warning("Remote write failed, reverting local state", exc_info=True)
        revert()
        raise
