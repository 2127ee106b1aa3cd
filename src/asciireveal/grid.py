from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Union

import numpy as np

Colour = Union[tuple[int, int, int], str]  # RGB triple or "white"

WHITE = "white"


@dataclass(frozen=True)
class Cell:
    char: str
    colour: Colour = WHITE


@dataclass(frozen=True)
class CellGrid:
    rows: tuple[tuple[Cell, ...], ...]

    def __post_init__(self):
        if not self.rows or not self.rows[0]:
            raise ValueError("A grid needs at least one row and one column")
        width = len(self.rows[0])
        for r, row in enumerate(self.rows):
            if len(row) != width:
                raise ValueError(f"Row {r} has {len(row)} cells, expected {width}")

    @classmethod
    def from_arrays(cls, chars: np.ndarray, colours: np.ndarray | None) -> CellGrid:
        """Build a grid from a (rows, cols) character array and an optional (rows, cols, 3) colour array.

        Without colours every cell is white.
        """
        rows = []
        for r in range(chars.shape[0]):
            if colours is None:
                rows.append(tuple(Cell(str(char)) for char in chars[r]))
            else:
                rows.append(
                    tuple(
                        Cell(str(char), (int(rgb[0]), int(rgb[1]), int(rgb[2])))
                        for char, rgb in zip(chars[r], colours[r])
                    )
                )
        return cls(rows=tuple(rows))

    @property
    def height(self) -> int:
        return len(self.rows)

    @property
    def width(self) -> int:
        return len(self.rows[0])

    @property
    def text(self) -> str:
        return "\n".join("".join(cell.char for cell in row) for row in self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[tuple[Cell, ...]]:
        return iter(self.rows)

    def __getitem__(self, index):
        return self.rows[index]


@dataclass(frozen=True)
class Conversion:
    text: str
    grid: CellGrid
