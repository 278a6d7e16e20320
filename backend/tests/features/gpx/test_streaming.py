"""
Tests for the Server-Sent Events bridge.
"""

import json

from gpx_pipeline.features.gpx import ProgressTracker, ProgressUpdate
from gpx_pipeline.features.gpx.streaming import format_event, progress_events


def _decode(frame: str) -> dict:
    assert frame.startswith("data: ")
    assert frame.endswith("\n\n")
    return json.loads(frame[len("data: "):])


class TestFormatEvent:

    def test_frame_shape(self):
        frame = format_event(ProgressUpdate(progress=40, current_task="Built route geometry"))
        payload = _decode(frame)
        assert payload["status"] == "processing"
        assert payload["progress"] == 40
        assert payload["currentTask"] == "Built route geometry"
        assert payload["errors"] == []
        assert payload["result"] is None

    def test_single_line_payload(self):
        frame = format_event(ProgressUpdate(errors=["a\nb"]))
        assert frame.count("\n") == 2


class TestProgressEvents:

    async def test_finished_tracker_single_frame(self):
        tracker = ProgressTracker("u1")
        tracker.fail(["GPX processing failed: bad"])
        frames = [frame async for frame in progress_events(tracker)]
        assert len(frames) == 1
        assert _decode(frames[0])["status"] == "error"

    async def test_stream_ends_on_complete(self, processed_route):
        tracker = ProgressTracker("u1")
        tracker.update_progress(progress=60)
        events = progress_events(tracker)

        first = _decode(await events.__anext__())
        assert first["progress"] == 60

        tracker.complete(processed_route)
        rest = [_decode(frame) async for frame in events]
        assert rest[-1]["status"] == "complete"
        assert rest[-1]["result"]["name"] == "Test Track"
        assert tracker.subscriber_count == 0

    async def test_disconnect_stops_stream(self):
        tracker = ProgressTracker("u1")

        async def is_disconnected():
            return True

        frames = [frame async for frame in progress_events(tracker, is_disconnected)]
        assert frames == []
        assert tracker.subscriber_count == 0
