"""
Upload session registry.

Maps upload ids to their ProgressTracker. Storage is pluggable through the
UploadStore protocol; the default keeps trackers in memory and evicts them
after a TTL (14 days by default) so abandoned uploads are eventually freed.
"""

import logging
from threading import RLock
from typing import Optional, Protocol

from cachetools import TTLCache

from .config import PipelineConfig
from .progress import ProgressTracker
from .schemas import UploadStatus

logger = logging.getLogger(__name__)

DEFAULT_UPLOAD_TTL_SECONDS = 14 * 24 * 3600


class UploadStore(Protocol):
    """Storage backend for upload trackers."""

    def put(self, upload_id: str, tracker: ProgressTracker) -> None: ...

    def get(self, upload_id: str) -> Optional[ProgressTracker]: ...

    def delete(self, upload_id: str) -> bool: ...


class InMemoryUploadStore:
    """
    Process-local TTL+LRU store, safe for concurrent access.

    Bounded by `maxsize`: once full, storing a new upload evicts the least
    recently used one even if its job is still running, after which its
    status reports "Upload not found". Size the bound above the number of
    uploads expected within one TTL.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_UPLOAD_TTL_SECONDS,
        maxsize: int = 10_000,
    ):
        self._cache: TTLCache[str, ProgressTracker] = TTLCache(
            maxsize=max(1, maxsize), ttl=ttl_seconds
        )
        self._lock = RLock()

    def put(self, upload_id: str, tracker: ProgressTracker) -> None:
        with self._lock:
            self._cache.expire()
            if upload_id not in self._cache and len(self._cache) >= self._cache.maxsize:
                logger.warning(
                    f"Upload store full ({self._cache.maxsize}), evicting least recently used upload"
                )
            self._cache[upload_id] = tracker

    def get(self, upload_id: str) -> Optional[ProgressTracker]:
        with self._lock:
            return self._cache.get(upload_id)

    def delete(self, upload_id: str) -> bool:
        with self._lock:
            return self._cache.pop(upload_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)


class UploadSessionRegistry:
    """
    Lookup of in-flight and finished uploads.

    Usage:
        registry = UploadSessionRegistry()
        registry.put(upload_id, tracker)
        status = registry.get_status(upload_id)
    """

    def __init__(self, store: Optional[UploadStore] = None):
        self.store: UploadStore = store if store is not None else InMemoryUploadStore()

    def put(self, upload_id: str, tracker: ProgressTracker) -> None:
        self.store.put(upload_id, tracker)
        logger.debug(f"Registered upload {upload_id}")

    def get(self, upload_id: str) -> Optional[ProgressTracker]:
        return self.store.get(upload_id)

    def delete(self, upload_id: str) -> bool:
        return self.store.delete(upload_id)

    def get_status(self, upload_id: str) -> UploadStatus:
        """
        Compact status derived from the tracker's latest snapshot.

        Unknown ids yield an error status instead of raising.
        """
        tracker = self.get(upload_id)
        if tracker is None:
            return UploadStatus(
                status="error",
                progress=0,
                message=PipelineConfig.NOT_FOUND_MESSAGE,
            )

        snapshot = tracker.get_progress()
        if snapshot.status == "error" and snapshot.errors:
            message = "; ".join(snapshot.errors)
        else:
            message = snapshot.current_task
        return UploadStatus(
            status=snapshot.status,
            progress=snapshot.progress,
            message=message,
        )
