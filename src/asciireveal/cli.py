import argparse
import asyncio
import logging
import sys
from pathlib import Path

from asciireveal.config import DISPLAY_CONFIG, ConversionConfig
from asciireveal.converter import Converter
from asciireveal.display import AsciiDisplay
from asciireveal.htmlpage import render_html
from asciireveal.loader import is_url
from asciireveal.palettes import PALETTES
from asciireveal.terminal import TerminalSurface, format_grid


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Render an image as colour ASCII art and reveal it row by row")
    parser.add_argument("image", help="Path or http(s) URL of the input image")
    parser.add_argument(
        "-r",
        "--resolution",
        type=float,
        default=DISPLAY_CONFIG.resolution,
        help=f"Fraction of the image size to sample, in (0, 1] (default: {DISPLAY_CONFIG.resolution})",
    )
    parser.add_argument(
        "-p", "--palette", default="standard", choices=sorted(PALETTES), help="Character palette (default: standard)"
    )
    parser.add_argument("-i", "--invert", action="store_true", default=False, help="Invert brightness")
    parser.add_argument("-g", "--grayscale", action="store_true", default=False, help="White glyphs, luma mapping")
    parser.add_argument(
        "-x", "--aspect-x", type=float, default=DISPLAY_CONFIG.aspect_x, help="Horizontal stretch (default: 1.0)"
    )
    parser.add_argument(
        "-y", "--aspect-y", type=float, default=DISPLAY_CONFIG.aspect_y, help="Vertical stretch (default: 0.8)"
    )
    parser.add_argument("--no-animate", action="store_true", default=False, help="Print the art once and exit")
    parser.add_argument("--html", type=Path, default=None, help="Write a self-animating HTML page instead")
    parser.add_argument("--reduced-motion", action="store_true", default=False, help="Skip fades and floating")
    parser.add_argument("-v", "--verbose", action="store_true", default=False, help="Log progress to stderr")
    return parser


async def _convert_once(args, config: ConversionConfig) -> int:
    converter = Converter()
    conversion = await converter.convert(args.image, config)
    if conversion is None:
        print(f"Error: {converter.error}", file=sys.stderr)
        return 1
    if args.html is not None:
        args.html.write_text(render_html(conversion.grid, title=Path(args.image).name), encoding="utf-8")
        print(f"Wrote {args.html}")
    elif config.grayscale:
        print(conversion.text)
    else:
        print(format_grid(conversion.grid))
    return 0


async def _animate(args, config: ConversionConfig) -> int:
    display = AsciiDisplay(TerminalSurface(reduced_motion=args.reduced_motion), config=config)
    try:
        await display.show(args.image)
        await display.wait_settled()
        if display.error is not None:
            print(f"Error: {display.error}", file=sys.stderr)
            return 1
        # Settled rows keep floating until interrupted
        await asyncio.Event().wait()
    finally:
        display.teardown()
    return 0


def main():
    args = build_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if not is_url(args.image) and not Path(args.image).exists():
        print(f"File not found: {args.image}", file=sys.stderr)
        sys.exit(1)

    try:
        config = ConversionConfig(
            resolution=args.resolution,
            invert=args.invert,
            grayscale=args.grayscale,
            palette=args.palette,
            aspect_x=args.aspect_x,
            aspect_y=args.aspect_y,
        )
    except ValueError as e:
        print(e, file=sys.stderr)
        sys.exit(1)

    run = _convert_once if args.no_animate or args.html is not None else _animate
    try:
        status = asyncio.run(run(args, config))
    except KeyboardInterrupt:
        status = 0
    sys.exit(status)
