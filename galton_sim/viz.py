from __future__ import annotations

from typing import Optional, Sequence

import matplotlib.pyplot as plt
from matplotlib.animation import FuncAnimation

from .sim import GaltonSimulation
from . import stats


def plot_histogram(
    counts: Sequence[int],
    biases: Sequence[float],
    path: Optional[str] = None,
    title: str = "Galton board bin counts",
):
    """Bar chart of bin counts with the expected Poisson-binomial counts overlaid.

    Saves to ``path`` when given and returns the figure.
    """
    fig, ax = plt.subplots(figsize=(8, 4))
    bins = list(range(len(counts)))
    ax.bar(bins, counts, color="tab:green", alpha=0.7, label="observed")
    total = sum(counts)
    if total and len(counts) == len(biases) + 1:
        expected = stats.expected_distribution(biases) * total
        ax.plot(bins, expected, "o-", color="black", linewidth=1, markersize=3, label="expected")
    ax.set_xlabel("Bin")
    ax.set_ylabel("Beads")
    ax.set_title(title)
    ax.legend(loc="upper right")
    if path is not None:
        fig.savefig(path, dpi=100, bbox_inches="tight")
    return fig


def run_visualization(
    system: GaltonSimulation,
    max_frames: int = 5000,
    interval_ms: int = 16,
) -> None:
    """Run a realtime matplotlib animation.

    - max_frames: animation frames to render before stopping.
    - interval_ms: milliseconds per animation frame (also the tick delta).
    """
    layout = system.layout
    if layout is None:
        raise ValueError("configure() the simulation before visualizing it")
    board = layout.config

    fig, ax = plt.subplots(figsize=(8, 8 * board.height / board.width))
    ax.set_aspect("equal")
    ax.set_title("Galton Board")
    ax.set_xlim(0, board.width)
    ax.set_ylim(board.height, 0)  # screen coords: y grows downward
    ax.axis("off")

    # Pegs (edge pegs drawn larger)
    inner = [p for p in layout.iter_pegs() if not p.is_edge]
    edge = [p for p in layout.iter_pegs() if p.is_edge]
    ax.scatter([p.x for p in inner], [p.y for p in inner], s=board.peg_radius ** 2 * 2, color="0.4")
    ax.scatter([p.x for p in edge], [p.y for p in edge], s=board.edge_peg_radius ** 2 * 2, color="0.5")

    # Bin dividers
    for x in layout.bin_edges():
        ax.plot([x, x], [layout.bin_top_y, layout.bin_floor_y], color="0.5", linewidth=1)

    bead_size = board.bead_radius ** 2 * 2
    settled_sc = ax.scatter([], [], s=bead_size, color="tab:green")
    active_sc = ax.scatter([], [], s=bead_size, color="tab:green")
    info_text = ax.text(0.02, 0.02, "", transform=ax.transAxes, ha="left", va="bottom", fontsize=9)

    if not system.running:
        system.start()

    def update(frame_idx: int):
        snap = system.on_tick(interval_ms / 1000.0)
        if snap.settled_beads:
            settled_sc.set_offsets([(b.x, b.y) for b in snap.settled_beads])
        if snap.active_bead_positions:
            active_sc.set_offsets(snap.active_bead_positions)
        else:
            active_sc.set_offsets([(float("nan"), float("nan"))])
        info_text.set_text(
            f"tick={snap.tick}  settled={len(snap.settled_beads)}  remaining={snap.remaining_beads}"
        )
        return (settled_sc, active_sc, info_text)

    anim = FuncAnimation(fig, update, frames=max_frames, interval=interval_ms, blit=False, repeat=False)
    plt.show()
    system.stop()
