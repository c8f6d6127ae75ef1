"""
Unit tests for progress reporting.
"""

from crosskit.core.progress import (
    NullProgress,
    ProgressReporter,
    ProgressState,
    format_progress,
)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestFormatProgress:
    """Test format_progress."""

    def test_bounded_bytes(self):
        """Test a byte progress bar."""
        state = ProgressState("x.tgz", 52428800, 104857600, "bytes", 50.0)
        text = format_progress(state)
        assert text.startswith("x.tgz [")
        assert "50.0/100.0 MB" in text
        assert "(50.0%)" in text

    def test_bounded_entries(self):
        """Test an entry count progress bar."""
        state = ProgressState("ndk", 5, 10, "files", 1.0)
        assert "5/10 files" in format_progress(state)

    def test_spinner(self):
        """Test the spinner form when the total is unknown."""
        state = ProgressState("x.tgz", 1048576, None, "bytes", 1.0, frame=1)
        assert format_progress(state) == "x.tgz / 1.0 MB"

    def test_percentage_capped(self):
        """Test percentages never exceed 100."""
        state = ProgressState("x", 200, 100, "bytes", 1.0)
        assert state.percentage == 100.0


class TestProgressReporter:
    """Test ProgressReporter."""

    def test_renders_first_update(self):
        """Test the first advance renders immediately."""
        lines = []
        reporter = ProgressReporter("x", total=10, unit="files", sink=lines.append)
        reporter.advance(1)
        assert len(lines) == 1

    def test_throttles_updates(self):
        """Test updates within the interval are not rendered."""
        clock = FakeClock()
        lines = []
        reporter = ProgressReporter(
            "x", total=10, unit="files", sink=lines.append, interval=0.5, clock=clock
        )
        reporter.advance(1)
        clock.now = 0.1
        reporter.advance(1)
        clock.now = 0.7
        reporter.advance(1)

        assert len(lines) == 2
        assert reporter.position == 3

    def test_switches_to_bar_when_total_known(self):
        """Test set_total turns a spinner into a bar."""
        reporter = ProgressReporter("x", sink=lambda text: None)
        assert not reporter.bounded
        reporter.set_total(100)
        assert reporter.bounded

    def test_finish_renders_once(self):
        """Test finish only reports once."""
        lines = []
        reporter = ProgressReporter("x", sink=lines.append)
        reporter.finish("done")
        reporter.finish("again")
        assert lines == ["done"]

    def test_null_progress_is_silent(self):
        """Test NullProgress never renders but still counts."""
        reporter = NullProgress("x", total=3)
        reporter.advance(2)
        reporter.finish()
        assert reporter.position == 2
        assert reporter.finished
