from __future__ import annotations

import random
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .geometry import Layout
from .models import Path, Point


def route(layout: Layout, biases: Sequence[float], rng: Optional[random.Random] = None) -> Path:
    """Route one bead through the lattice.

    At row r the bead visits peg (r, idx), then goes right (idx += 1) when a
    uniform draw falls below biases[r] and stays otherwise. The final bin is
    the number of right decisions, so path and bin are built together.
    """
    rng = rng or random.Random()
    n = layout.row_count
    if len(biases) < n:
        raise ValueError(f"Need {n} biases, got {len(biases)}")

    waypoints: List[Point] = [layout.start_point]
    decisions: List[bool] = []
    idx = 0
    for r in range(n):
        peg = layout.pegs[r][idx]
        waypoints.append((peg.x, peg.y))
        right = rng.random() < biases[r]
        if right:
            idx = min(idx + 1, r + 1)
        decisions.append(right)

    waypoints.append((layout.bin_centers[idx], layout.bin_top_y + layout.config.bead_radius))
    return Path(waypoints=tuple(waypoints), final_bin=idx, decisions=tuple(decisions))


def sample_bins(biases: Sequence[float], n: int, seed: Optional[int] = None) -> np.ndarray:
    """Draw n terminal bins at once (no waypoints). Same distribution as route()."""
    rng = np.random.default_rng(seed)
    p = np.asarray(list(biases), dtype=np.float64)
    if p.size == 0:
        return np.zeros(n, dtype=np.int64)
    draws = rng.random((n, p.size)) < p
    return draws.sum(axis=1).astype(np.int64)


def bin_histogram(bins: Sequence[int], bin_count: int) -> Tuple[int, ...]:
    counts = np.bincount(np.asarray(bins, dtype=np.int64), minlength=bin_count)
    return tuple(int(c) for c in counts[:bin_count])
