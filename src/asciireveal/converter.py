from __future__ import annotations

import asyncio
import logging
from typing import Callable

import numpy as np
from PIL import Image

from asciireveal.config import ConversionConfig
from asciireveal.errors import ConversionError, PixelReadFailure, RenderContextFailure
from asciireveal.grid import CellGrid, Conversion
from asciireveal.loader import ImageLoader, ImageReference, describe
from asciireveal.palettes import get_palette
from asciireveal.sampling import brightness, cell_colours, palette_indices, sample_pixels, strides, target_size

logger = logging.getLogger(__name__)


def _render_buffer(image: Image.Image) -> np.ndarray:
    """Draw the image into an RGBA buffer at native size and read the pixels back."""
    try:
        rgba = image.convert("RGBA")
    except ValueError as e:
        raise RenderContextFailure(f"Could not create a pixel buffer for {image.mode} image: {e}") from e
    except OSError as e:
        raise PixelReadFailure(f"Failed to process image: {e}") from e
    pixels = np.array(rgba, dtype=np.uint8)
    if pixels.shape != (image.height, image.width, 4):
        raise PixelReadFailure(f"Failed to process image: pixel buffer has shape {pixels.shape}")
    # A cleared canvas reads back fully transparent pixels as black
    pixels[pixels[:, :, 3] == 0] = 0
    return pixels


def convert_image(image: Image.Image, config: ConversionConfig) -> Conversion:
    chars = get_palette(config.palette)
    pixels = _render_buffer(image)
    height, width = pixels.shape[:2]

    cols, rows = target_size(width, height, config.resolution, config.aspect_x, config.aspect_y)
    x_step, y_step = strides(width, height, cols, rows, config.aspect_x, config.aspect_y)
    logger.info("Character grid target %dx%d, sampling every %dx%d pixels", cols, rows, x_step, y_step)

    rgb = sample_pixels(pixels, x_step, y_step)
    indices = palette_indices(brightness(rgb, config.grayscale, config.invert), len(chars))
    char_array = np.array(list(chars))[indices]
    colours = None if config.grayscale else cell_colours(rgb, indices, len(chars))

    grid = CellGrid.from_arrays(char_array, colours)
    logger.info("Conversion complete: %d rows of %d characters", grid.height, grid.width)
    return Conversion(text=grid.text, grid=grid)


class Converter:
    """Loads and converts images, letting each call supersede the ones before it.

    Results from a superseded call are dropped, whether they arrive as a
    grid or as an error.
    """

    def __init__(
        self,
        loader: ImageLoader | None = None,
        on_generated: Callable[[str, CellGrid], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ):
        self.loader = loader if loader is not None else ImageLoader()
        self.on_generated = on_generated
        self.on_error = on_error
        self.grid: CellGrid | None = None
        self.text: str | None = None
        self.error: str | None = None
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def cancel(self) -> None:
        """Invalidate any conversion still in flight."""
        self._generation += 1

    async def convert(self, reference: ImageReference, config: ConversionConfig) -> Conversion | None:
        self._generation += 1
        generation = self._generation
        self.error = None
        logger.info("Loading image: %s", describe(reference))

        try:
            image = await self.loader.load(reference)
            if generation != self._generation:
                logger.debug("Discarding stale load of %s", describe(reference))
                return None
            conversion = await asyncio.to_thread(convert_image, image, config)
            if generation != self._generation:
                logger.debug("Discarding stale conversion of %s", describe(reference))
                return None
        except ConversionError as e:
            if generation != self._generation:
                logger.debug("Discarding stale failure for %s: %s", describe(reference), e)
                return None
            self._fail(str(e))
            return None

        self.grid = conversion.grid
        self.text = conversion.text
        self.error = None
        if self.on_generated is not None:
            self.on_generated(conversion.text, conversion.grid)
        return conversion

    def _fail(self, message: str) -> None:
        logger.error("Error converting to ASCII: %s", message)
        self.grid = None
        self.text = None
        self.error = message
        if self.on_error is not None:
            self.on_error(message)
