from __future__ import annotations

import asyncio
import io
import logging
import urllib.error
import urllib.request
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from asciireveal.errors import ImageLoadFailure

logger = logging.getLogger(__name__)

ImageReference = Image.Image | str | Path


def is_url(reference) -> bool:
    return isinstance(reference, str) and reference.startswith(("http://", "https://"))


def describe(reference: ImageReference) -> str:
    if isinstance(reference, Image.Image):
        return f"<{reference.width}x{reference.height} {reference.mode} image>"
    return str(reference)


class ImageLoader:
    """Opens image references off the event loop.

    The probe is advisory only: a failed HEAD request or a path that looks
    missing is logged and loading is still attempted, since servers and
    proxies often reject HEAD for images they will happily serve.
    """

    def __init__(self, probe: bool = True):
        self.probe = probe

    async def load(self, reference: ImageReference) -> Image.Image:
        if isinstance(reference, Image.Image):
            image = reference
        else:
            if self.probe:
                await asyncio.to_thread(self._probe, reference)
            image = await asyncio.to_thread(self._open, reference)
        logger.info("Image loaded: %dx%d", image.width, image.height)
        if image.width == 0 or image.height == 0:
            raise ImageLoadFailure(f"Invalid image dimensions: {image.width}x{image.height}")
        return image

    def _probe(self, reference: str | Path) -> None:
        if is_url(reference):
            request = urllib.request.Request(reference, method="HEAD")
            try:
                with urllib.request.urlopen(request):
                    pass
            except urllib.error.HTTPError as e:
                logger.warning("Image probe returned status %d, continuing anyway", e.code)
            except (urllib.error.URLError, OSError, ValueError) as e:
                logger.debug("Image probe failed for %s, continuing anyway: %s", reference, e)
        elif not Path(reference).exists():
            logger.warning("Image probe found nothing at %s, continuing anyway", reference)

    def _open(self, reference: str | Path) -> Image.Image:
        """Open and fully decode the image, so no decoding is left for the event loop."""
        image = None
        try:
            if is_url(reference):
                with urllib.request.urlopen(reference) as response:
                    data = response.read()
                image = Image.open(io.BytesIO(data))
            else:
                image = Image.open(reference)
            image.load()
            return image
        except (
            OSError,
            UnidentifiedImageError,
            Image.DecompressionBombError,
            urllib.error.URLError,
            ValueError,
        ) as e:
            if image is not None:
                image.close()
            logger.error("Image load error for %s: %s", reference, e)
            raise ImageLoadFailure(f"Failed to load image: {reference}") from e
