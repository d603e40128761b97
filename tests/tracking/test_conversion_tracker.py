from __future__ import annotations

import pytest

from osmshapes.tracking.conversion_tracker import ConversionRun, ConversionTracker

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def tracker():
    return ConversionTracker()


# ---------------------------------------------------------------------------
# ConversionTracker tests
# ---------------------------------------------------------------------------


class TestConversionTracker:
    def test_track_creates_successful_run(self, tracker):
        with tracker.track("chicago", "chicago.osm.pbf", "snapshot") as run:
            run.features_written = 42
        assert run.status == "success"
        assert run.features_written == 42
        assert tracker.last_run is run

    def test_track_records_failure(self, tracker):
        with pytest.raises(ValueError, match="boom"):
            with tracker.track("chicago", "chicago.osm.pbf", "snapshot") as run:
                raise ValueError("boom")
        assert run.status == "failed"
        assert "boom" in run.error
        assert tracker.failed_runs() == [run]

    def test_recorded_error_marks_run_failed(self, tracker):
        with tracker.track("chicago", "chicago.osm.pbf", "snapshot") as run:
            run.error = "read: No such file"
        assert run.status == "failed"

    def test_runs_accumulate(self, tracker):
        with tracker.track("a", "a.osm.pbf", "snapshot"):
            pass
        with tracker.track("b", "b.osh.pbf", "history", metadata={"region": "us"}):
            pass
        assert [r.spec_name for r in tracker.runs] == ["a", "b"]
        assert tracker.runs[1].metadata == {"region": "us"}

    def test_last_run_is_none_when_empty(self, tracker):
        assert tracker.last_run is None


class TestConversionRun:
    def test_timestamps_and_duration(self):
        run = ConversionRun(spec_name="x", source="x.osm.pbf", mode="snapshot")
        assert run.duration is None
        with run:
            assert run.status == "running"
        assert run.started_at <= run.completed_at
        assert run.duration >= 0
