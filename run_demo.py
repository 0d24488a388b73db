from __future__ import annotations

import argparse
import dataclasses
import logging
import os

from galton_sim.config import BoardConfig, Config, SimConfig, parse_bias
from galton_sim.errors import GaltonError
from galton_sim.sim import GaltonSimulation
from galton_sim import stats

DEFAULT_CONFIG = "example_config.yaml"


def _parse_bias(text: str):
    parts = [p for p in text.split(",") if p.strip() != ""]
    if len(parts) == 1:
        return parse_bias(parts[0])
    return [parse_bias(p) for p in parts]


def build_config(args: argparse.Namespace) -> Config:
    if args.config and os.path.exists(args.config):
        cfg = Config.from_yaml(args.config)
    elif args.config and args.config != DEFAULT_CONFIG:
        raise SystemExit(f"Config file not found: {args.config}")
    else:
        cfg = Config(board=BoardConfig(), sim=SimConfig())

    board = cfg.board
    sim = cfg.sim
    if args.rows is not None:
        board = dataclasses.replace(board, row_count=args.rows)
        # a scalar bias is re-broadcast to the new row count; a per-row list no longer fits
        if args.bias is None and isinstance(sim.bias, list) and len(sim.bias) != args.rows:
            sim.bias = []
    if args.beads is not None:
        sim.bead_count = args.beads
    if args.seed is not None:
        sim.seed = args.seed
    if args.bias is not None:
        sim.bias = _parse_bias(args.bias)
    return Config(board=board, sim=sim)


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--config", type=str, default=DEFAULT_CONFIG)
    ap.add_argument("--rows", type=int, default=None)
    ap.add_argument("--beads", type=int, default=None)
    ap.add_argument(
        "--bias",
        type=str,
        default=None,
        help="Single bias for every row, or a comma separated list (one per row).",
    )
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument(
        "--viz",
        type=str,
        default="pygame",
        choices=["pygame", "mpl"],
        help="Visualization backend: pygame (recommended) or mpl (matplotlib).",
    )
    ap.add_argument("--no-viz", action="store_true")
    ap.add_argument("--histogram", type=str, default=None, help="Save a bin histogram PNG here when done.")
    ap.add_argument("--log-level", type=str, default="INFO")
    args = ap.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO),
                        format="%(levelname)s %(name)s: %(message)s")

    try:
        system = GaltonSimulation.from_config(build_config(args))
    except GaltonError as e:
        raise SystemExit(f"Invalid configuration: {e}")

    if args.no_viz:
        snap = system.run_until_settled()
        st = system.statistics()
        biases = system.biases.values()
        chi2, p_value = stats.chi_square(snap.bin_counts, biases)
        print("\n=== DONE ===")
        print(f"frames={snap.tick} settled={st.total}")
        print(f"bin_counts={snap.bin_counts}")
        print(f"mean={st.mean:.3f} (expected {st.expected_mean:.3f})  "
              f"variance={st.variance:.3f} (expected {st.expected_variance:.3f})")
        print(f"chi2={chi2:.3f} p={p_value:.4f}")
    else:
        if args.viz == "mpl":
            # Import lazily so pygame users don't need matplotlib installed.
            from galton_sim.viz import run_visualization

            run_visualization(system, interval_ms=int(1000 / system.sim_config.fps))
        else:
            from galton_sim.viz_pygame import run_visualization_pygame

            run_visualization_pygame(system)

    if args.histogram:
        from galton_sim.viz import plot_histogram

        plot_histogram(system.snapshot().bin_counts, system.biases.values(), path=args.histogram)
        print(f"histogram saved to {args.histogram}")


if __name__ == "__main__":
    main()
