from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from .config import BoardConfig
from .errors import StaleRowReference
from .models import Peg, Point


@dataclass(frozen=True)
class Layout:
    config: BoardConfig
    pegs: Tuple[Tuple[Peg, ...], ...]  # [row][col]
    bin_centers: Tuple[float, ...]
    bin_width: float
    bin_left: float  # left edge of bin 0
    bin_top_y: float
    bin_floor_y: float
    start_point: Point
    row_spacing: float

    @property
    def row_count(self) -> int:
        return self.config.row_count

    @property
    def bin_count(self) -> int:
        return len(self.bin_centers)

    @property
    def center_x(self) -> float:
        return self.config.width / 2.0

    def peg(self, row: int, col: int) -> Peg:
        if not 0 <= row < len(self.pegs):
            raise StaleRowReference(f"Row {row} out of range for {len(self.pegs)} peg rows.")
        if not 0 <= col <= row:
            raise StaleRowReference(f"Column {col} out of range for row {row}.")
        return self.pegs[row][col]

    def iter_pegs(self):
        for row in self.pegs:
            yield from row

    def bin_edges(self) -> List[float]:
        return [self.bin_left + i * self.bin_width for i in range(self.bin_count + 1)]

    def nearest_bin(self, x: float) -> int:
        return min(range(self.bin_count), key=lambda b: abs(self.bin_centers[b] - x))


def compute_layout(config: BoardConfig) -> Layout:
    """Peg, bin and start-point coordinates for a board.

    Pure function of ``config``. Peg spacing equals the bin width, so the two
    pegs under peg (r, c) sit half a spacing to either side and bin b is
    centered under the gap between pegs b-1 and b of the last row.
    """
    n = config.row_count
    cx = config.width / 2.0

    usable = (config.width - 2 * config.margin_x) * config.bin_width_ratio
    bin_count = n + 1
    bin_width = usable / bin_count
    bin_left = cx - usable / 2.0

    bin_top_y = config.height - config.margin_bottom - config.bin_height
    bin_floor_y = bin_top_y + config.bin_height
    # n rows fill [margin_top, bin_top_y) with bin_top_y one spacing past the last row
    row_spacing = (bin_top_y - config.margin_top) / n if n > 0 else 0.0

    rows: List[Tuple[Peg, ...]] = []
    for r in range(n):
        y = config.margin_top + r * row_spacing
        x0 = cx - r * bin_width / 2.0
        rows.append(
            tuple(
                Peg(row=r, col=c, x=x0 + c * bin_width, y=y, is_edge=(c == 0 or c == r))
                for c in range(r + 1)
            )
        )

    bin_centers = tuple(bin_left + bin_width * (b + 0.5) for b in range(bin_count))

    return Layout(
        config=config,
        pegs=tuple(rows),
        bin_centers=bin_centers,
        bin_width=bin_width,
        bin_left=bin_left,
        bin_top_y=bin_top_y,
        bin_floor_y=bin_floor_y,
        start_point=(cx, config.margin_top - config.start_offset),
        row_spacing=row_spacing,
    )
