"""
Progress tracker.

One tracker per upload. It holds the latest full ProgressUpdate snapshot
and pushes every merged snapshot to its subscribers.

State machine (ProcessingStatus):
    pending -> processing -> completed | failed

Terminal snapshots are sticky: later updates are ignored, and a subscriber
arriving after the end receives the terminal snapshot and is closed at
once. Progress is non-decreasing until the terminal update.
"""

import asyncio
import logging
import threading
from typing import AsyncIterator, Callable, List, Optional

from .config import PipelineConfig
from .schemas import ProcessedRoute, ProcessingStatus, ProgressUpdate

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressUpdate], None]

_STATUS_FOR_STATE = {
    "processing": ProcessingStatus.PROCESSING,
    "complete": ProcessingStatus.COMPLETED,
    "error": ProcessingStatus.FAILED,
}


class Subscription:
    """Disposable handle returned by ProgressTracker.subscribe()."""

    def __init__(self, tracker: "ProgressTracker", callback: ProgressCallback):
        self._tracker = tracker
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        self._tracker.unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.unsubscribe()


class ProgressTracker:
    """
    Observable progress state of one upload.

    Thread-safe: the subscriber list and snapshot are guarded by a lock.
    Deliveries are serialized by a second, reentrant lock, so callbacks
    may subscribe or unsubscribe and never observe an older snapshot
    after a newer one.
    """

    def __init__(self, upload_id: str):
        self.upload_id = upload_id
        self._lock = threading.RLock()
        # held across snapshot capture and delivery so subscribers see
        # snapshots in order, catch-up included
        self._delivery_lock = threading.RLock()
        self._state = ProcessingStatus.PENDING
        self._snapshot = ProgressUpdate(
            status="processing",
            progress=0,
            current_task=PipelineConfig.QUEUED_TASK,
        )
        self._subscribers: List[Subscription] = []

    @property
    def state(self) -> ProcessingStatus:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state.is_terminal

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def get_progress(self) -> ProgressUpdate:
        """Latest snapshot."""
        with self._lock:
            return self._snapshot

    def update_progress(self, **changes) -> ProgressUpdate:
        """
        Merge the given fields into the snapshot and notify subscribers.

        Unspecified fields keep their current values. Updates after a
        terminal snapshot are ignored.

        Args:
            **changes: Any of status, progress, current_task, errors, result

        Returns:
            The snapshot now held by the tracker
        """
        with self._delivery_lock:
            with self._lock:
                if self._state.is_terminal:
                    logger.debug(
                        f"Ignoring update for finished upload {self.upload_id}: {changes}"
                    )
                    return self._snapshot

                status = changes.get("status", self._snapshot.status)
                target = _STATUS_FOR_STATE[status]
                if not self._state.can_transition_to(target):
                    logger.warning(
                        f"Invalid transition {self._state.value} -> {target.value} "
                        f"for upload {self.upload_id}"
                    )
                    return self._snapshot

                if target is ProcessingStatus.PROCESSING and "progress" in changes:
                    changes["progress"] = max(int(changes["progress"]), self._snapshot.progress)

                merged = self._snapshot.model_dump()
                merged.update(changes)
                # keep the ProcessedRoute instance, model_dump() turns it into a dict
                merged["result"] = changes.get("result", self._snapshot.result)
                self._snapshot = ProgressUpdate(**merged)
                self._state = target
                snapshot = self._snapshot
                subscribers = list(self._subscribers)
                if target.is_terminal:
                    self._subscribers.clear()
                    for subscription in subscribers:
                        subscription.active = False

            self._notify(subscribers, snapshot)
            return snapshot

    def complete(self, result: ProcessedRoute, task: str = "Processing complete") -> ProgressUpdate:
        """Terminal success."""
        return self.update_progress(
            status="complete",
            progress=PipelineConfig.PROGRESS_COMPLETE,
            current_task=task,
            result=result,
        )

    def fail(self, errors: List[str], task: str = "Processing failed") -> ProgressUpdate:
        """Terminal failure."""
        return self.update_progress(status="error", current_task=task, errors=list(errors))

    def subscribe(self, callback: ProgressCallback, catch_up: bool = False) -> Subscription:
        """
        Register a callback for future snapshots.

        Args:
            callback: Called with each full snapshot
            catch_up: Also deliver the current snapshot immediately, with no
                gap or duplicate between it and the next update

        Returns:
            Subscription handle; already inactive when the tracker has
            finished (the terminal snapshot is delivered first)
        """
        subscription = Subscription(self, callback)
        with self._delivery_lock:
            with self._lock:
                snapshot = self._snapshot
                if self._state.is_terminal:
                    subscription.active = False
                else:
                    self._subscribers.append(subscription)

            if catch_up or not subscription.active:
                self._notify([subscription], snapshot)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subscription.active = False
            if subscription in self._subscribers:
                self._subscribers.remove(subscription)

    async def listen(self) -> AsyncIterator[ProgressUpdate]:
        """
        Async channel of snapshots, starting with the current one.

        Ends after the terminal snapshot. Delivery is buffered through an
        asyncio.Queue so a slow consumer never blocks update_progress().
        Leaving the loop early (or cancellation) unsubscribes.
        """
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[ProgressUpdate] = asyncio.Queue()

        def enqueue(update: ProgressUpdate) -> None:
            loop.call_soon_threadsafe(queue.put_nowait, update)

        subscription = self.subscribe(enqueue, catch_up=True)
        try:
            while True:
                update = await queue.get()
                yield update
                if update.is_terminal:
                    return
        finally:
            subscription.unsubscribe()

    def _notify(self, subscribers: List[Subscription], snapshot: ProgressUpdate) -> None:
        for subscription in subscribers:
            try:
                subscription.callback(snapshot)
            except Exception:
                logger.exception(f"Progress subscriber failed for upload {self.upload_id}")
