"""
Progress reporting for downloads and archive extraction.

A reporter is either bounded (total known up front, rendered as a bar) or
unbounded (rendered as a spinner with a running counter). Rendering is plain
text handed to a sink, which defaults to the module logger, so nothing here
depends on a terminal. Updates are throttled against an injectable clock
instead of a background ticker.

Example:
    >>> reporter = ProgressReporter("toolchain.tgz", total=1024)
    >>> reporter.advance(512)
    >>> reporter.finish()
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)

SPINNER_FRAMES = "|/-\\"
BAR_WIDTH = 30


@dataclass
class ProgressState:
    """Snapshot of a progress indicator."""

    label: str
    position: int
    total: Optional[int]
    unit: str
    elapsed: float
    frame: int = 0

    @property
    def bounded(self) -> bool:
        """True when the total is known."""
        return self.total is not None

    @property
    def percentage(self) -> float:
        if not self.total:
            return 0.0
        return min(100.0, self.position / self.total * 100)

    @property
    def rate(self) -> float:
        """Units per second."""
        return self.position / self.elapsed if self.elapsed > 0 else 0.0


def _format_amount(value: float, unit: str) -> str:
    if unit == "bytes":
        return f"{value / 1024 / 1024:.1f} MB"
    return f"{int(value)} {unit}"


def format_progress(state: ProgressState) -> str:
    """
    Format progress for display.

    Example:
        >>> state = ProgressState("x.tgz", 52428800, 104857600, "bytes", 50.0)
        >>> format_progress(state)
        'x.tgz [===============               ] 50.0/100.0 MB (50.0%)'
    """
    if state.bounded:
        filled = int(BAR_WIDTH * state.percentage / 100)
        bar = "=" * filled + " " * (BAR_WIDTH - filled)
        if state.unit == "bytes":
            amount = (
                f"{state.position / 1024 / 1024:.1f}/"
                f"{state.total / 1024 / 1024:.1f} MB"
            )
        else:
            amount = f"{state.position}/{state.total} {state.unit}"
        return f"{state.label} [{bar}] {amount} ({state.percentage:.1f}%)"

    spinner = SPINNER_FRAMES[state.frame % len(SPINNER_FRAMES)]
    return f"{state.label} {spinner} {_format_amount(state.position, state.unit)}"


class ProgressReporter:
    """
    Bar or spinner style progress indicator.

    Args:
        label: Text shown before the indicator
        total: Total units, or None for a spinner
        unit: 'bytes' or an entry noun such as 'files'
        sink: Receives rendered lines; defaults to logger.info
        interval: Minimum seconds between rendered updates
        clock: Monotonic time source
    """

    def __init__(
        self,
        label: str,
        total: Optional[int] = None,
        unit: str = "bytes",
        sink: Optional[Callable[[str], None]] = None,
        interval: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.label = label
        self.total = total
        self.unit = unit
        self.position = 0
        self._sink = sink or logger.info
        self._interval = interval
        self._clock = clock
        self._started = clock()
        self._last_render: Optional[float] = None
        self._frame = 0
        self.finished = False

    @property
    def bounded(self) -> bool:
        return self.total is not None

    def state(self) -> ProgressState:
        return ProgressState(
            label=self.label,
            position=self.position,
            total=self.total,
            unit=self.unit,
            elapsed=self._clock() - self._started,
            frame=self._frame,
        )

    def set_total(self, total: Optional[int]) -> None:
        """Switch between bar and spinner once the total becomes known."""
        self.total = total

    def advance(self, amount: int = 1) -> None:
        self.position += amount
        now = self._clock()
        if self._last_render is None or now - self._last_render >= self._interval:
            self._last_render = now
            self._frame += 1
            self._render(format_progress(self.state()))

    def finish(self, message: Optional[str] = None) -> None:
        if self.finished:
            return
        self.finished = True
        elapsed = self._clock() - self._started
        text = message or (
            f"{self.label}: {_format_amount(self.position, self.unit)} "
            f"in {elapsed:.1f}s"
        )
        self._render(text)

    def _render(self, text: str) -> None:
        self._sink(text)


class NullProgress(ProgressReporter):
    """Reporter that renders nothing."""

    def _render(self, text: str) -> None:
        pass


ProgressFactory = Callable[..., ProgressReporter]


__all__ = [
    "ProgressState",
    "ProgressReporter",
    "NullProgress",
    "ProgressFactory",
    "format_progress",
]
