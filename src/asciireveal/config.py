from dataclasses import dataclass

from asciireveal.palettes import PALETTES

# Seconds from the first revealed frame until every row is visible
REVEAL_DURATION = 4.0

# One-shot fade for rows appearing during the reveal
FADE_DURATION = 0.2
FADE_STAGGER = 0.03

# Roughly one display refresh
FRAME_INTERVAL = 1 / 60

# Channel floor for colour mode so glyphs stay readable on black
MIN_CHANNEL = 60
MAX_CHANNEL = 255


@dataclass(frozen=True)
class ConversionConfig:
    resolution: float = 0.15
    invert: bool = False
    grayscale: bool = False
    palette: str = "standard"
    aspect_x: float = 1.0  # horizontal stretch
    aspect_y: float = 1.0  # vertical stretch

    def __post_init__(self):
        if not 0 < self.resolution <= 1:
            raise ValueError(f"resolution must be in (0, 1], got {self.resolution}")
        if self.aspect_x <= 0 or self.aspect_y <= 0:
            raise ValueError(f"aspect multipliers must be positive, got {self.aspect_x} x {self.aspect_y}")
        if self.palette not in PALETTES:
            raise ValueError(f"Unknown palette: {self.palette!r}")


# What the full-screen display converts with
DISPLAY_CONFIG = ConversionConfig(resolution=0.15, grayscale=False, palette="standard", aspect_x=1.0, aspect_y=0.8)
