from __future__ import annotations

import math
from typing import List, Tuple

from .errors import StaleRowReference
from .geometry import Layout
from .models import SettledBead


def center_out_column(k: int, capacity: int) -> int:
    """k-th column of a row filled center, center+1, center-1, center+2, ..."""
    center = (capacity - 1) // 2
    step = (k + 1) // 2
    return center + step if k % 2 == 1 else center - step


class BinPacker:
    """Assigns each settled bead a fixed slot in its bin.

    Slots fill one stacking row at a time, center-out, so the pile stays
    symmetric regardless of arrival order. Row 0 rests on the bin floor.
    """

    def __init__(self, layout: Layout) -> None:
        self.reset(layout)

    def reset(self, layout: Layout) -> None:
        self.layout = layout
        diameter = 2 * layout.config.bead_radius
        self.diameter = diameter
        self.capacity = max(1, int(math.floor(layout.bin_width / diameter)))
        self._counts: List[int] = [0] * layout.bin_count
        self._settled: List[SettledBead] = []

    def _check_bin(self, bin_index: int) -> None:
        if not 0 <= bin_index < len(self._counts):
            raise StaleRowReference(f"Bin {bin_index} out of range for {len(self._counts)} bins.")

    def slot(self, bin_index: int, n: int) -> Tuple[float, float]:
        """Coordinates of the n-th (0-based) bead of a bin."""
        self._check_bin(bin_index)
        row, k = divmod(n, self.capacity)
        col = center_out_column(k, self.capacity)
        cx = self.layout.bin_centers[bin_index]
        x = cx + (col - (self.capacity - 1) / 2.0) * self.diameter
        y = self.layout.bin_floor_y - self.layout.config.bead_radius - row * self.diameter
        return (x, y)

    def place(self, bin_index: int) -> SettledBead:
        self._check_bin(bin_index)
        x, y = self.slot(bin_index, self._counts[bin_index])
        self._counts[bin_index] += 1
        bead = SettledBead(bin_index=bin_index, x=x, y=y)
        self._settled.append(bead)
        return bead

    def counts(self) -> List[int]:
        return list(self._counts)

    def settled(self) -> List[SettledBead]:
        return list(self._settled)

    @property
    def total(self) -> int:
        return len(self._settled)
