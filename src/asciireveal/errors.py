class ConversionError(Exception):
    """Base for every failure reported at the converter boundary."""


class ImageLoadFailure(ConversionError):
    """The reference could not be opened, or the image has a zero dimension."""


class RenderContextFailure(ConversionError):
    """The off-screen RGBA buffer could not be created."""


class PixelReadFailure(ConversionError):
    """The pixel data behind the buffer could not be read back."""


class DegenerateConfiguration(ConversionError):
    """Resolution and aspect settings leave no rows or no columns."""
