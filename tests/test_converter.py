import asyncio

import numpy as np
import pytest
from PIL import Image

from asciireveal.config import ConversionConfig
from asciireveal.converter import Converter, convert_image
from asciireveal.errors import DegenerateConfiguration, ImageLoadFailure, PixelReadFailure, RenderContextFailure
from asciireveal.grid import WHITE
from asciireveal.loader import ImageLoader
from asciireveal.palettes import STANDARD
from tests.conftest import horizontal_gradient, solid


def test_mid_gray_grayscale_scenario(gray_image):
    config = ConversionConfig(resolution=0.1, grayscale=True)
    conversion = convert_image(gray_image, config)
    grid = conversion.grid
    # 10x10 target; the vertical step doubles for tall glyphs
    assert grid.height == 5
    assert grid.width == 10
    assert conversion.text == "\n".join(["=" * 10] * 5)
    assert all(cell.colour == WHITE for row in grid for cell in row)


def test_degenerate_configuration():
    with pytest.raises(DegenerateConfiguration):
        convert_image(solid(10, 10), ConversionConfig(resolution=0.001))


@pytest.mark.parametrize(
    "config",
    [
        ConversionConfig(),
        ConversionConfig(resolution=0.3, aspect_x=1.7, aspect_y=0.6),
        ConversionConfig(resolution=1.0, grayscale=True, palette="detailed"),
        ConversionConfig(resolution=0.05, aspect_x=0.5, aspect_y=3.0, invert=True),
    ],
)
def test_grid_is_rectangular(gradient_image, config):
    grid = convert_image(gradient_image, config).grid
    assert grid.height >= 1
    assert all(len(row) == grid.width for row in grid)
    lines = convert_image(gradient_image, config).text.split("\n")
    assert len(lines) == grid.height
    assert all(len(line) == grid.width for line in lines)


def test_grid_dimensions_follow_strides():
    # 256 * 0.25 -> 64 columns, step 4; 64 * 0.25 -> 16 rows, step ceil(64 / 16 / 0.5) = 8
    grid = convert_image(horizontal_gradient(256, 64), ConversionConfig(resolution=0.25)).grid
    assert grid.width == 64
    assert grid.height == 8


def test_gradient_maps_monotonically(gradient_image):
    config = ConversionConfig(resolution=0.25, grayscale=True)
    row = convert_image(gradient_image, config).grid[0]
    indices = [STANDARD.index(cell.char) for cell in row]
    assert indices == sorted(indices)
    assert indices[0] == 0
    assert indices[-1] > indices[0]


def test_invert_flips_black_to_densest():
    config = ConversionConfig(resolution=0.5, grayscale=True, invert=True)
    grid = convert_image(solid(20, 20, (0, 0, 0)), config).grid
    assert {cell.char for row in grid for cell in row} == {"@"}


def test_colour_mode_uses_brightened_clamped_colour():
    grid = convert_image(solid(20, 20, (255, 0, 0)), ConversionConfig(resolution=0.5)).grid
    cell = grid[0][0]
    # sqrt(0.299) * 9 -> index 4, factor 4 / 9 * 1.5 + 0.5
    assert cell.char == "="
    assert cell.colour == (255, 60, 60)


def test_transparent_pixels_read_as_blank():
    img = Image.new("RGBA", (20, 20), (255, 0, 0, 0))
    grid = convert_image(img, ConversionConfig(resolution=0.5)).grid
    assert {cell.char for row in grid for cell in row} == {" "}
    assert grid[0][0].colour == (60, 60, 60)


def test_palette_selection():
    config = ConversionConfig(resolution=0.5, grayscale=True, palette="blocks")
    grid = convert_image(solid(20, 20, (255, 255, 255)), config).grid
    assert grid[0][0].char == "█"


def test_conversion_is_deterministic(gradient_image):
    config = ConversionConfig(resolution=0.2, aspect_y=0.8)
    assert convert_image(gradient_image, config) == convert_image(gradient_image, config)


def test_render_context_failure(monkeypatch):
    def refuse(self, *args, **kwargs):
        raise ValueError("conversion not supported")

    img = solid(10, 10)
    monkeypatch.setattr(Image.Image, "convert", refuse)
    with pytest.raises(RenderContextFailure):
        convert_image(img, ConversionConfig())


def test_pixel_read_failure_on_unloaded_image(tmp_path):
    # an Image handed in by the caller may still be undecoded
    path = tmp_path / "truncated.bmp"
    solid(32, 32, (10, 200, 30)).save(path)
    data = path.read_bytes()
    path.write_bytes(data[: len(data) // 2])
    img = Image.open(path)
    with pytest.raises(PixelReadFailure):
        convert_image(img, ConversionConfig(resolution=0.5))


def test_converter_success_reports_grid(gray_image):
    generated = []
    errors = []
    converter = Converter(
        on_generated=lambda text, grid: generated.append((text, grid)),
        on_error=errors.append,
    )
    conversion = asyncio.run(converter.convert(gray_image, ConversionConfig(resolution=0.1, grayscale=True)))
    assert conversion is not None
    assert converter.grid == conversion.grid
    assert converter.text == conversion.text
    assert converter.error is None
    assert generated == [(conversion.text, conversion.grid)]
    assert errors == []


def test_converter_accepts_file_path(tmp_path):
    path = tmp_path / "image.png"
    solid(40, 40, (255, 255, 255)).save(path)
    conversion = asyncio.run(Converter().convert(path, ConversionConfig(resolution=0.5, grayscale=True)))
    assert conversion is not None
    assert "@" in conversion.text


def test_converter_failure_clears_stale_grid(gray_image, tmp_path):
    errors = []
    converter = Converter(on_error=errors.append)

    async def run():
        await converter.convert(gray_image, ConversionConfig(resolution=0.1))
        assert converter.grid is not None
        return await converter.convert(tmp_path / "missing.png", ConversionConfig(resolution=0.1))

    assert asyncio.run(run()) is None
    assert converter.grid is None
    assert converter.text is None
    assert converter.error.startswith("Failed to load image")
    assert errors == [converter.error]


def test_converter_degenerate_reports_error():
    converter = Converter()
    result = asyncio.run(converter.convert(solid(10, 10), ConversionConfig(resolution=0.001)))
    assert result is None
    assert converter.grid is None
    assert "0x0" in converter.error


def test_converter_success_clears_previous_error(gray_image, tmp_path):
    converter = Converter()

    async def run():
        await converter.convert(tmp_path / "missing.png", ConversionConfig())
        assert converter.error is not None
        await converter.convert(gray_image, ConversionConfig())

    asyncio.run(run())
    assert converter.error is None
    assert converter.grid is not None


class GatedLoader(ImageLoader):
    """Holds each load until its gate is opened."""

    def __init__(self):
        super().__init__(probe=False)
        self.gates = {}

    async def load(self, reference):
        gate = self.gates.setdefault(id(reference), asyncio.Event())
        await gate.wait()
        return await super().load(reference)

    def release(self, reference):
        self.gates.setdefault(id(reference), asyncio.Event()).set()


def test_newer_conversion_supersedes_slow_older_one():
    old_image = solid(100, 100, (0, 0, 0))
    new_image = solid(100, 100, (255, 255, 255))
    loader = GatedLoader()
    generated = []
    converter = Converter(loader=loader, on_generated=lambda text, grid: generated.append(grid))
    config = ConversionConfig(resolution=0.1, grayscale=True)

    async def run():
        old = asyncio.create_task(converter.convert(old_image, config))
        await asyncio.sleep(0)
        new = asyncio.create_task(converter.convert(new_image, config))
        await asyncio.sleep(0)
        loader.release(new_image)
        await new
        loader.release(old_image)
        return await old

    assert asyncio.run(run()) is None
    assert len(generated) == 1
    assert converter.grid is generated[0]
    assert converter.grid[0][0].char == "@"


def test_cancel_drops_in_flight_failure():
    loader = GatedLoader()
    errors = []
    converter = Converter(loader=loader, on_error=errors.append)
    img = solid(10, 10)

    async def run():
        task = asyncio.create_task(converter.convert(img, ConversionConfig(resolution=0.001)))
        await asyncio.sleep(0)
        converter.cancel()
        converter.cancel()
        loader.release(img)
        return await task

    assert asyncio.run(run()) is None
    assert errors == []
    assert converter.error is None


def test_loader_rejects_zero_dimensions():
    with pytest.raises(ImageLoadFailure, match="Invalid image dimensions: 0x5"):
        asyncio.run(ImageLoader().load(Image.new("RGB", (0, 5))))


def test_loader_rejects_non_image(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("not an image")
    with pytest.raises(ImageLoadFailure, match="Failed to load image"):
        asyncio.run(ImageLoader().load(path))


def test_loader_probe_is_advisory(tmp_path, caplog):
    with caplog.at_level("WARNING", logger="asciireveal.loader"):
        with pytest.raises(ImageLoadFailure):
            asyncio.run(ImageLoader(probe=True).load(tmp_path / "missing.png"))
    assert "probe found nothing" in caplog.text


def test_loaded_pixels_are_not_retained(gray_image):
    conversion = convert_image(gray_image, ConversionConfig(resolution=0.1))
    assert not any(isinstance(value, (np.ndarray, Image.Image)) for value in vars(conversion).values())
