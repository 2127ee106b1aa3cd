import math

import numpy as np

from asciireveal.config import MAX_CHANNEL, MIN_CHANNEL
from asciireveal.errors import DegenerateConfiguration

# ITU-R BT.601 luma weights for R, G, B
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])

# Lets pure white land on the last palette entry despite float rounding of the weights
_INDEX_TOLERANCE = 1e-9


def target_size(width: int, height: int, resolution: float, aspect_x: float, aspect_y: float) -> tuple[int, int]:
    """Return the requested (columns, rows) before stride rounding."""
    cols = math.floor(width * resolution * aspect_x)
    rows = math.floor(height * resolution * aspect_y)
    if cols < 1 or rows < 1:
        raise DegenerateConfiguration(
            f"Resolution {resolution} with aspect {aspect_x} x {aspect_y} gives a {cols}x{rows} grid "
            f"for a {width}x{height} image"
        )
    return cols, rows


def strides(width: int, height: int, cols: int, rows: int, aspect_x: float, aspect_y: float) -> tuple[int, int]:
    """Return (x_step, y_step) in source pixels between sampled positions.

    Characters are roughly twice as tall as wide, so the vertical step is
    stretched by the font aspect before the aspect multipliers are applied.
    """
    font_aspect = (0.5 / aspect_y) * aspect_x
    x_step = math.ceil(width / cols)
    y_step = math.ceil(height / rows / font_aspect)
    return max(x_step, 1), max(y_step, 1)


def sample_pixels(pixels: np.ndarray, x_step: int, y_step: int) -> np.ndarray:
    """Pick the top-left pixel of every (y_step, x_step) block. No averaging."""
    return pixels[::y_step, ::x_step, :3]


def luma(rgb: np.ndarray) -> np.ndarray:
    """Linear luma in 0-1 from an (..., 3) array of 0-255 channels."""
    return (rgb.astype(np.float64) * LUMA_WEIGHTS).sum(axis=-1) / 255.0


def perceived_brightness(rgb: np.ndarray) -> np.ndarray:
    """Quadratic-mean brightness in 0-1, punchier than luma on saturated colours."""
    norm = rgb.astype(np.float64) / 255.0
    return np.sqrt((norm**2 * LUMA_WEIGHTS).sum(axis=-1))


def brightness(rgb: np.ndarray, grayscale: bool, invert: bool = False) -> np.ndarray:
    values = luma(rgb) if grayscale else perceived_brightness(rgb)
    if invert:
        values = 1.0 - values
    return values


def palette_indices(values: np.ndarray, palette_length: int) -> np.ndarray:
    """Map 0-1 brightness to palette positions.

    Anything that cannot be mapped (NaN from missing data) falls back to 0,
    the blank end of the palette.

    A small tolerance is added before flooring so that values which are 1.0
    only up to float rounding land on the densest glyph. This deliberately
    differs from a plain floor: quadratic brightness of pure white sums to
    0.9999999999999999, which a plain floor would map one glyph short
    ("%" rather than "@" in the standard palette).
    """
    top = palette_length - 1
    scaled = np.floor(values * top + _INDEX_TOLERANCE)
    scaled = np.where(np.isfinite(scaled), scaled, 0)
    return np.clip(scaled, 0, top).astype(np.intp)


def cell_colours(rgb: np.ndarray, indices: np.ndarray, palette_length: int) -> np.ndarray:
    """Brighten each sampled colour by how dense its glyph is.

    Returns uint8 array of the same shape as rgb, every channel in
    [MIN_CHANNEL, MAX_CHANNEL].
    """
    factor = np.maximum(indices / (palette_length - 1) * 1.5 + 0.5, 0.8)
    scaled = np.floor(rgb.astype(np.float64) * factor[..., np.newaxis] + 0.5)  # round half up
    return np.clip(scaled, MIN_CHANNEL, MAX_CHANNEL).astype(np.uint8)
