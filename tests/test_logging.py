"""
Tests for the logging module.
"""

import pytest

from marketing_engine.logging import (
    PipelineTimer,
    add_context_info,
    get_run_id,
    get_stage,
    logging_context,
)


class TestLoggingContext:
    """Test logging context management."""

    def test_logging_context_sets_values(self):
        """Test that logging context sets values correctly."""
        with logging_context(run_id="run_123", stage="contacts"):
            assert get_run_id() == "run_123"
            assert get_stage() == "contacts"

    def test_logging_context_restores_values(self):
        """Test that context is restored after exiting."""
        with logging_context(run_id="outer"):
            assert get_run_id() == "outer"

            # Nested stage keeps the run
            with logging_context(stage="deals"):
                assert get_run_id() == "outer"
                assert get_stage() == "deals"

            assert get_stage() is None

        # Should be None outside
        assert get_run_id() is None

    def test_context_processor(self):
        """Test that the processor adds context to log entries."""
        with logging_context(run_id="run_1", stage="events"):
            event_dict = add_context_info(None, "info", {"event": "x"})

        assert event_dict == {"event": "x", "run_id": "run_1", "stage": "events"}

    def test_context_processor_outside_run(self):
        event_dict = add_context_info(None, "info", {"event": "x"})

        assert event_dict == {"event": "x"}


class TestPipelineTimer:
    """Test pipeline timing functionality."""

    def test_timer_records_stages(self):
        """Test that timer records stage durations."""
        timer = PipelineTimer()

        with timer.stage("contacts"):
            pass

        with timer.stage("deals"):
            pass

        assert timer.stages["contacts"] >= 0
        assert timer.stages["deals"] >= 0

    def test_timer_records_failed_stage(self):
        """Test that a stage that raises is still timed."""
        timer = PipelineTimer()

        with pytest.raises(RuntimeError):
            with timer.stage("events"):
                raise RuntimeError("boom")

        assert timer.stages["events"] >= 0

    def test_timer_total_ms(self):
        """Test total elapsed time calculation."""
        timer = PipelineTimer()
        assert timer.total_ms >= 0

    def test_timer_summary(self):
        """Test summary dictionary format."""
        timer = PipelineTimer()
        with timer.stage("contacts"):
            pass

        summary = timer.summary()

        assert summary["total_ms"] >= 0
        assert set(summary["stages"]) == {"contacts"}
