"""Tests for ProgressTracker."""

from __future__ import annotations

import time

from ghlangstats.progress import ProgressEvent, ProgressTracker


class TestPhases:
    def test_basic_flow(self):
        tracker = ProgressTracker()
        tracker.start_phase("details")
        tracker.complete_phase("details", detail="120 fetched")

        summary = tracker.get_summary()
        assert len(summary["phases"]) == 1
        assert summary["phases"][0]["status"] == "completed"
        assert summary["phases"][0]["detail"] == "120 fetched"

    def test_fail_phase(self):
        tracker = ProgressTracker()
        tracker.start_phase("discover")
        tracker.fail_phase("discover", "Bad credentials")

        summary = tracker.get_summary()
        assert summary["phases"][0]["status"] == "failed"
        assert summary["phases"][0]["error"] == "Bad credentials"

    def test_skip_phase(self):
        tracker = ProgressTracker()
        tracker.skip_phase("pr_counts", "disabled")

        summary = tracker.get_summary()
        assert summary["phases"][0]["status"] == "skipped"
        assert summary["phases"][0]["duration"] is None

    def test_duration(self):
        tracker = ProgressTracker()
        tracker.start_phase("enumerate")
        time.sleep(0.01)
        tracker.complete_phase("enumerate")

        p = tracker.phases[0]
        assert p.duration is not None
        assert p.duration >= 0.01

    def test_callback(self):
        seen = []
        tracker = ProgressTracker()
        tracker.callbacks.append(lambda p: seen.append((p.phase, p.status)))

        tracker.start_phase("a")
        tracker.complete_phase("a")

        assert seen == [("a", "running"), ("a", "completed")]

    def test_failing_callback_is_swallowed(self):
        tracker = ProgressTracker()
        tracker.callbacks.append(lambda p: 1 / 0)
        tracker.start_phase("a")
        assert tracker.phases[0].status == "running"


class TestEvents:
    def test_event_helpers(self):
        events: list[ProgressEvent] = []
        tracker = ProgressTracker()
        tracker.sinks.append(events.append)

        tracker.year_scanned(2021)
        tracker.repo_enumerated("o/r", 42)
        tracker.details_fetched(5, 10)
        tracker.pr_counts_fetched(1, 3)
        tracker.aggregate_started()

        assert [e.kind for e in events] == ["discover", "shas", "details", "pr-counts", "aggregate"]
        assert events[0].year == 2021
        assert (events[1].repo, events[1].count) == ("o/r", 42)
        assert (events[2].fetched, events[2].total) == (5, 10)

    def test_failing_sink_does_not_block_others(self):
        events = []
        tracker = ProgressTracker()

        def _broken(event):
            raise RuntimeError("boom")

        tracker.sinks.extend([_broken, events.append])
        tracker.aggregate_started()
        assert len(events) == 1
