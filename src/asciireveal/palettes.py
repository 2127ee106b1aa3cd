# Ordered sparsest/darkest first, densest/brightest last
STANDARD = " .:-=+*#%@"

DETAILED = " .,:;i1tfLCG08@"

# Shades from U+2591-U+2593 between a blank and the full block U+2588
BLOCKS = " ░▒▓█"

MINIMAL = " .:█"

PALETTES = {
    "standard": STANDARD,
    "detailed": DETAILED,
    "blocks": BLOCKS,
    "minimal": MINIMAL,
}


def get_palette(name: str) -> str:
    try:
        palette = PALETTES[name]
    except KeyError:
        raise ValueError(f"Unknown palette: {name!r} (choose from {', '.join(sorted(PALETTES))})") from None
    if len(palette) < 2:
        raise ValueError(f"Palette {name!r} needs at least two characters")
    return palette
