from __future__ import annotations

import asyncio
import enum
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Union

from asciireveal.config import FADE_DURATION, FADE_STAGGER, FRAME_INTERVAL, REVEAL_DURATION
from asciireveal.grid import Cell, CellGrid

logger = logging.getLogger(__name__)


class RevealPhase(enum.Enum):
    EMPTY = "empty"
    REVEALING = "revealing"
    SETTLED = "settled"


@dataclass(frozen=True)
class FadeIn:
    """One-shot fade for a row that has just been revealed."""

    start: float  # clock time the row appeared
    delay: float
    duration: float = FADE_DURATION

    def opacity_at(self, now: float) -> float:
        elapsed = now - self.start - self.delay
        if elapsed <= 0:
            return 0.0
        # ease-out
        t = min(elapsed / self.duration, 1.0)
        return 1.0 - (1.0 - t) ** 2


@dataclass(frozen=True)
class Oscillation:
    """Endless horizontal float: -amplitude% -> +amplitude% -> -amplitude%."""

    amplitude: float  # percent of row width
    period: float  # seconds
    delay: float  # seconds

    def offset_at(self, elapsed: float) -> float:
        """Horizontal offset in percent, `elapsed` seconds after the row settled."""
        t = elapsed - self.delay
        if t < 0:
            return 0.0
        phase = (t % self.period) / self.period
        half = phase * 2 if phase < 0.5 else (phase - 0.5) * 2
        eased = (1 - math.cos(math.pi * half)) / 2
        if phase < 0.5:
            return -self.amplitude + 2 * self.amplitude * eased
        return self.amplitude - 2 * self.amplitude * eased


RowAnimation = Union[FadeIn, Oscillation]


def oscillation_for(row: int) -> Oscillation:
    return Oscillation(
        amplitude=2 + (row % 3) * 0.5,
        period=20 + (row % 5) * 2,
        delay=(row * 0.15) % 2,
    )


def fade_for(row: int, start: float) -> FadeIn:
    return FadeIn(start=start, delay=row * FADE_STAGGER)


@dataclass(frozen=True)
class Frame:
    rows: tuple[tuple[Cell, ...], ...]
    animations: tuple[RowAnimation, ...]
    phase: RevealPhase
    settled_at: float | None = None


@dataclass
class RevealState:
    total_rows: int
    start: float
    revealed_rows: int = 0


class RevealEngine:
    """Progressively discloses the rows of a grid, then hands over to ambient motion.

    Ticks carry the generation they were scheduled for, so a tick queued
    before a newer grid arrived is ignored.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, duration: float = REVEAL_DURATION):
        self.clock = clock
        self.duration = duration
        self.phase = RevealPhase.EMPTY
        self.grid: CellGrid | None = None
        self.state: RevealState | None = None
        self.settled_at: float | None = None
        self._revealed_at: list[float] = []
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def show(self, grid: CellGrid, now: float | None = None) -> int:
        """Start a fresh reveal of `grid`, discarding whatever was shown before."""
        self.clear()
        now = self.clock() if now is None else now
        self.grid = grid
        self.state = RevealState(total_rows=grid.height, start=now)
        self.phase = RevealPhase.REVEALING
        logger.debug("Revealing %d rows over %.1fs", grid.height, self.duration)
        return self._generation

    def clear(self) -> None:
        self._generation += 1
        self.phase = RevealPhase.EMPTY
        self.grid = None
        self.state = None
        self.settled_at = None
        self._revealed_at = []

    def tick(self, now: float | None = None, generation: int | None = None) -> bool:
        """Advance the reveal. Returns True while more ticks are needed."""
        if generation is not None and generation != self._generation:
            return False
        if self.phase is not RevealPhase.REVEALING:
            return False
        now = self.clock() if now is None else now
        state = self.state
        progress = min(max(now - state.start, 0.0) / self.duration, 1.0)
        revealed = max(state.revealed_rows, math.floor(progress * state.total_rows))
        self._revealed_at.extend([now] * (revealed - state.revealed_rows))
        state.revealed_rows = revealed

        if progress >= 1.0:
            self.phase = RevealPhase.SETTLED
            self.settled_at = now
            logger.debug("All %d rows revealed, settling", state.total_rows)
            return False
        return True

    @property
    def revealed_rows(self) -> int:
        return self.state.revealed_rows if self.state is not None else 0

    def visible_rows(self) -> tuple[tuple[Cell, ...], ...]:
        if self.grid is None:
            return ()
        return self.grid.rows[: self.revealed_rows]

    def frame(self) -> Frame:
        rows = self.visible_rows()
        if self.phase is RevealPhase.SETTLED:
            animations = tuple(oscillation_for(r) for r in range(len(rows)))
        else:
            animations = tuple(fade_for(r, self._revealed_at[r]) for r in range(len(rows)))
        return Frame(rows=rows, animations=animations, phase=self.phase, settled_at=self.settled_at)


class FrameScheduler:
    """Runs one callback per display refresh on the asyncio loop."""

    def __init__(self, interval: float = FRAME_INTERVAL):
        self.interval = interval
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, callback: Callable[[], None]) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.interval, self._run, callback)

    def _run(self, callback: Callable[[], None]) -> None:
        self._handle = None
        callback()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
