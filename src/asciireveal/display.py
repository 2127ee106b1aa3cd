from __future__ import annotations

import asyncio
import logging
import time

from asciireveal.config import DISPLAY_CONFIG, FRAME_INTERVAL, REVEAL_DURATION, ConversionConfig
from asciireveal.converter import Converter
from asciireveal.grid import CellGrid, Conversion
from asciireveal.loader import ImageLoader, ImageReference, describe
from asciireveal.reveal import FrameScheduler, RevealEngine, RevealPhase
from asciireveal.terminal import Surface

logger = logging.getLogger(__name__)


class AsciiDisplay:
    """Converts an image and reveals it row by row on a surface.

    Each show() supersedes the previous one: its pending load is dropped,
    its ticks stop and the reveal starts over with the new grid.
    """

    def __init__(
        self,
        surface: Surface,
        config: ConversionConfig = DISPLAY_CONFIG,
        loader: ImageLoader | None = None,
        clock=time.monotonic,
        frame_interval: float = FRAME_INTERVAL,
        reveal_duration: float = REVEAL_DURATION,
    ):
        self.surface = surface
        self.config = config
        self.converter = Converter(loader=loader, on_generated=self._on_generated, on_error=self._on_error)
        self.engine = RevealEngine(clock=clock, duration=reveal_duration)
        self.scheduler = FrameScheduler(frame_interval)
        self.reference: ImageReference | None = None
        self._done: asyncio.Event | None = None
        self._torn_down = False

    @property
    def error(self) -> str | None:
        return self.converter.error

    async def show(self, reference: ImageReference) -> Conversion | None:
        if self._torn_down:
            raise RuntimeError("Display has been torn down")
        self.scheduler.cancel()
        if self._done is not None:
            self._done.set()
        self._done = asyncio.Event()
        self.reference = reference
        return await self.converter.convert(reference, self.config)

    async def wait_settled(self) -> RevealPhase:
        """Wait until the current run has settled or failed, and return the phase it ended in."""
        if self._done is not None:
            await self._done.wait()
        return self.engine.phase

    def teardown(self) -> None:
        if self._torn_down:
            return
        self._torn_down = True
        self.converter.cancel()
        self.scheduler.cancel()
        self.surface.close()
        if self._done is not None:
            self._done.set()

    def _on_generated(self, text: str, grid: CellGrid) -> None:
        if self._torn_down:
            return
        logger.info("ASCII generated: %d rows", grid.height)
        generation = self.engine.show(grid)
        self._tick(generation)

    def _on_error(self, message: str) -> None:
        self.scheduler.cancel()
        self.engine.clear()
        if not self._torn_down:
            self.surface.present_error(message, describe(self.reference))
        if self._done is not None:
            self._done.set()

    def _tick(self, generation: int) -> None:
        if self._torn_down or generation != self.engine.generation:
            return
        more = self.engine.tick(generation=generation)
        self.surface.present(self.engine.frame())
        if more:
            self.scheduler.schedule(lambda: self._tick(generation))
        elif self._done is not None:
            self._done.set()
