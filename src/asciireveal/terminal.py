from __future__ import annotations

import asyncio
import os
import sys
import time
from typing import Protocol, TextIO

from asciireveal.config import FRAME_INTERVAL
from asciireveal.grid import WHITE, Cell, CellGrid, Colour
from asciireveal.reveal import FadeIn, Frame, Oscillation, RevealPhase

CLEAR = "\033[2J"
HOME = "\033[H"
HIDE_CURSOR = "\033[?25l"
SHOW_CURSOR = "\033[?25h"
RESET = "\033[0m"


class Surface(Protocol):
    def present(self, frame: Frame) -> None: ...

    def present_error(self, message: str, reference: str) -> None: ...

    def close(self) -> None: ...


def get_terminal_size() -> tuple[int, int]:
    """Return (columns, rows) of the terminal, or (80, 24) if not a tty."""
    if not sys.stdout.isatty():
        return (80, 24)
    size = os.get_terminal_size()
    return (size.columns, size.lines)


def resolve_colour(colour: Colour) -> tuple[int, int, int]:
    if colour == WHITE:
        return (255, 255, 255)
    return colour


def format_cells(cells, opacity: float = 1.0) -> str:
    """Wrap each character in an ANSI truecolor foreground escape."""
    parts = []
    for cell in cells:
        if opacity <= 0.0:
            parts.append(" ")
            continue
        r, g, b = (round(c * opacity) for c in resolve_colour(cell.colour))
        parts.append(f"\033[38;2;{r};{g};{b}m{cell.char}")
    parts.append(RESET)
    return "".join(parts)


def format_grid(grid: CellGrid) -> str:
    return "\n".join(format_cells(row) for row in grid.rows)


def place_row(cells: tuple[Cell, ...], columns: int, shift: int = 0) -> tuple[int, tuple[Cell, ...]]:
    """Centre a row in `columns`, moved right by `shift`, cropping whatever falls outside.

    Returns the number of leading blanks and the cells that remain visible.
    """
    lead = (columns - len(cells)) // 2 + shift
    if lead < 0:
        cells = cells[-lead:]
        lead = 0
    return lead, cells[: max(columns - lead, 0)]


def render_frame(frame: Frame, now: float, columns: int, reduced_motion: bool = False) -> str:
    lines = []
    for cells, animation in zip(frame.rows, frame.animations):
        opacity = 1.0
        shift = 0
        if not reduced_motion:
            if isinstance(animation, FadeIn):
                opacity = animation.opacity_at(now)
            elif isinstance(animation, Oscillation) and frame.settled_at is not None:
                percent = animation.offset_at(now - frame.settled_at)
                shift = round(percent / 100 * len(cells))
        lead, visible = place_row(cells, columns, shift)
        lines.append(" " * lead + format_cells(visible, opacity))
    return "\n".join(lines)


class TerminalSurface:
    """Draws frames to a terminal with truecolor escapes.

    Once a settled frame arrives the surface keeps redrawing it on its own
    timer so the rows float, until the next frame or close().
    """

    def __init__(
        self,
        stream: TextIO | None = None,
        columns: int | None = None,
        reduced_motion: bool = False,
        clock=time.monotonic,
        interval: float = FRAME_INTERVAL,
    ):
        self.stream = stream if stream is not None else sys.stdout
        self.columns = columns if columns is not None else get_terminal_size()[0]
        self.reduced_motion = reduced_motion
        self.clock = clock
        self.interval = interval
        self.frame: Frame | None = None
        self._motion: asyncio.Task | None = None
        self._cursor_hidden = False
        self._closed = False

    def present(self, frame: Frame) -> None:
        if self._closed:
            return
        self._stop_motion()
        self.frame = frame
        self._draw()
        if frame.phase is RevealPhase.SETTLED and frame.rows and not self.reduced_motion:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                # Static output: nothing to drive the float
                return
            self._motion = loop.create_task(self._animate())

    def present_error(self, message: str, reference: str) -> None:
        if self._closed:
            return
        self._stop_motion()
        self.frame = None
        self.stream.write(f"{HOME}{CLEAR}{RESET}Error: {message}\nTrying to load: {reference}\n")
        self.stream.flush()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._stop_motion()
        if self._cursor_hidden:
            self.stream.write(RESET + SHOW_CURSOR + "\n")
            self.stream.flush()

    async def _animate(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self._draw()

    def _stop_motion(self) -> None:
        if self._motion is not None:
            self._motion.cancel()
            self._motion = None

    def _draw(self) -> None:
        out = []
        if not self._cursor_hidden:
            out.append(HIDE_CURSOR)
            self._cursor_hidden = True
        out.append(HOME + CLEAR)
        out.append(render_frame(self.frame, self.clock(), self.columns, self.reduced_motion))
        self.stream.write("".join(out))
        self.stream.flush()
