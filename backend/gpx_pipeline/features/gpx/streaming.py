"""
Server-Sent Events bridge from a ProgressTracker to one HTTP client.

Each snapshot is written as one `data: <json>` frame. The stream starts
with the current snapshot, ends after the terminal one, and unsubscribes
as soon as the client goes away.
"""

from contextlib import aclosing
import json
import logging
from typing import AsyncIterator, Awaitable, Callable, Optional

from .progress import ProgressTracker
from .schemas import ProgressUpdate

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_event(update: ProgressUpdate) -> str:
    """Encode a snapshot as one SSE frame."""
    payload = json.dumps(update.to_json_dict(), separators=(",", ":"))
    return f"data: {payload}\n\n"


async def progress_events(
    tracker: ProgressTracker,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[str]:
    """
    Yield SSE frames for a tracker until it finishes or the client leaves.

    Args:
        tracker: Upload progress tracker
        is_disconnected: Transport check, e.g. Request.is_disconnected
    """
    async with aclosing(tracker.listen()) as updates:
        async for update in updates:
            if is_disconnected is not None and await is_disconnected():
                logger.debug(f"Client left progress stream for {tracker.upload_id}")
                return
            yield format_event(update)
