from __future__ import annotations

from typing import Iterable, Iterator, List, Optional

from .config import DEFAULT_BIAS
from .errors import StaleRowReference


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


class BiasTable:
    """Per-row probability of a bead being deflected right.

    Written by configuration, read by routing. Out-of-range rows are
    rejected with StaleRowReference rather than clamped.
    """

    def __init__(self, row_count: int = 0, values: Optional[Iterable[float]] = None) -> None:
        self._values: List[float] = [DEFAULT_BIAS] * row_count
        if values is not None:
            vals = [_clamp01(v) for v in values]
            self._values[: len(vals)] = vals[:row_count]

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[float]:
        return iter(self._values)

    def __repr__(self) -> str:
        return f"BiasTable({self._values!r})"

    def _check_row(self, row: int) -> None:
        if not 0 <= row < len(self._values):
            raise StaleRowReference(f"Bias row {row} out of range for {len(self._values)} rows.")

    def get(self, row: int) -> float:
        self._check_row(row)
        return self._values[row]

    def set(self, row: int, value: float) -> None:
        self._check_row(row)
        self._values[row] = _clamp01(value)

    def resize(self, new_row_count: int) -> None:
        if new_row_count < len(self._values):
            del self._values[new_row_count:]
        else:
            self._values.extend([DEFAULT_BIAS] * (new_row_count - len(self._values)))

    def values(self) -> List[float]:
        return list(self._values)
