import pytest
from PIL import Image


def solid(width, height, colour=(128, 128, 128)):
    return Image.new("RGB", (width, height), colour)


def horizontal_gradient(width, height):
    """Black on the left to white on the right, one grey level per column."""
    img = Image.new("RGB", (width, height))
    pixels = img.load()
    for x in range(width):
        level = round(x * 255 / (width - 1))
        for y in range(height):
            pixels[x, y] = (level, level, level)
    return img


@pytest.fixture
def gray_image():
    return solid(100, 100)


@pytest.fixture
def gradient_image():
    return horizontal_gradient(256, 64)


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds
