import html
from itertools import groupby

from asciireveal.config import FADE_DURATION, REVEAL_DURATION
from asciireveal.grid import CellGrid
from asciireveal.reveal import oscillation_for
from asciireveal.terminal import resolve_colour

_STYLE = """\
body {{ margin: 0; background: black; color: white; overflow: hidden; }}
.art {{
  width: 100vw; height: 100vh;
  display: flex; flex-direction: column; align-items: center; justify-content: center;
  font-family: monospace; font-size: clamp(0.4rem, 1.8vw, 0.7rem); line-height: clamp(0.4rem, 1.8vw, 0.7rem);
  letter-spacing: 0.01em; white-space: pre;
}}
.row {{
  opacity: 0;
  animation:
    fade-in {fade}s ease-out var(--reveal) forwards,
    row-float var(--period) ease-in-out var(--float-delay) infinite;
}}
@keyframes fade-in {{
  from {{ opacity: 0; }}
  to {{ opacity: 1; }}
}}
@keyframes row-float {{
  0% {{ transform: translateX(calc(-1 * var(--amp))); }}
  50% {{ transform: translateX(var(--amp)); }}
  100% {{ transform: translateX(calc(-1 * var(--amp))); }}
}}
@media (prefers-reduced-motion: reduce) {{
  .row {{ animation: none; opacity: 1; }}
}}
"""


def _row_html(cells) -> str:
    spans = []
    for colour, run in groupby(cells, key=lambda cell: cell.colour):
        r, g, b = resolve_colour(colour)
        text = html.escape("".join(cell.char for cell in run))
        spans.append(f'<span style="color: rgb({r}, {g}, {b})">{text}</span>')
    return "".join(spans)


def render_html(grid: CellGrid, title: str = "ASCII art") -> str:
    """Render a grid as a standalone page that reveals the rows and then floats them.

    The reveal and the float are pure CSS: row i fades in at its share of the
    reveal duration, and every row shares one keyframe parameterised by
    custom properties.
    """
    rows = []
    for index, cells in enumerate(grid.rows):
        float_ = oscillation_for(index)
        reveal = index / grid.height * REVEAL_DURATION
        style = (
            f"--amp: {float_.amplitude:g}%; --period: {float_.period:g}s; "
            f"--reveal: {reveal:.3f}s; --float-delay: {REVEAL_DURATION + float_.delay:.2f}s"
        )
        rows.append(f'<div class="row" style="{style}">{_row_html(cells)}</div>')

    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '<meta charset="utf-8">\n'
        f"<title>{html.escape(title)}</title>\n"
        f"<style>\n{_STYLE.format(fade=FADE_DURATION)}</style>\n"
        "</head>\n"
        "<body>\n"
        '<div class="art">\n' + "\n".join(rows) + "\n</div>\n"
        "</body>\n"
        "</html>\n"
    )
