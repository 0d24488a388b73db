from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal, Tuple

Point = Tuple[float, float]  # (x, y) in board pixels, y grows downward
SimState = Literal["idle", "running"]

# =========================
# Board entities
# =========================

@dataclass(frozen=True)
class Peg:
    row: int
    col: int
    x: float
    y: float
    is_edge: bool = False  # leftmost/rightmost peg of its row


@dataclass(frozen=True)
class Path:
    """Waypoints a bead follows plus the bin it ends in.

    waypoints = [start, peg of row 0, ..., peg of row n-1, bin drop point]
    """

    waypoints: Tuple[Point, ...]
    final_bin: int
    decisions: Tuple[bool, ...] = ()  # True = deflected right at that row

    def __len__(self) -> int:
        return len(self.waypoints)

    @property
    def peg_waypoints(self) -> Tuple[Point, ...]:
        return self.waypoints[1:-1]

    @property
    def rights(self) -> int:
        return sum(1 for d in self.decisions if d)


# =========================
# Beads
# =========================

@dataclass
class Bead:
    bead_id: str
    path: Path
    segment_index: int = 0
    t: float = 0.0
    x: float = 0.0
    y: float = 0.0

    @property
    def final_bin(self) -> int:
        return self.path.final_bin

    @property
    def is_done(self) -> bool:
        return self.segment_index >= len(self.path) - 1

    @property
    def position(self) -> Point:
        return (self.x, self.y)


@dataclass(frozen=True)
class SettledBead:
    bin_index: int
    x: float
    y: float


# =========================
# Snapshot views (rendering layer uses)
# =========================

@dataclass(frozen=True)
class Statistics:
    total: int
    mean: float
    variance: float
    expected_mean: float
    expected_variance: float


@dataclass(frozen=True)
class Snapshot:
    tick: int
    state: SimState
    active_bead_positions: List[Point]
    settled_beads: List[SettledBead]
    bin_counts: List[int]
    remaining_beads: int
    completed: List[SettledBead] = field(default_factory=list)  # settled during this tick

    @property
    def finished(self) -> bool:
        return self.remaining_beads == 0 and not self.active_bead_positions
