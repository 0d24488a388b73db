from __future__ import annotations

import dataclasses
import logging
import random
from typing import List, Optional, Sequence

from .bias import BiasTable
from .config import BoardConfig, Config, SimConfig, parse_bias, expand_bias
from .errors import IllegalLifecycleTransition, InvalidConfiguration
from .geometry import Layout, compute_layout
from .models import Bead, SettledBead, SimState, Snapshot, Statistics
from .packer import BinPacker
from .routing import route
from .scheduler import BeadScheduler
from .tasks import PeriodicTask
from . import stats

logger = logging.getLogger(__name__)


class GaltonSimulation:
    """Controller for the Galton board simulation.

    Core rules implemented:
    - Two cooperative periodic tasks share state: the drop task spawns one
      routed bead per ``drop_interval_ms`` while the bead budget lasts, and
      the animation task advances every in-flight bead once per frame and
      packs the ones that completed their path.
    - A row-count change rebuilds geometry and the bias table and discards
      every bead, active or settled.
    - A bias or bead-count edit keeps settled beads. In-flight beads are kept
      unless ``SimConfig.reset_in_flight`` is set. A bead-count edit re-seeds
      the drop budget to the new count.
    - Caller errors raise before any state is touched.
    """

    def __init__(
        self,
        board: Optional[BoardConfig] = None,
        sim: Optional[SimConfig] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.board_template = board or BoardConfig()
        self.sim_config = sim or SimConfig()
        self.sim_config.validate()
        self.rng = rng if rng is not None else random.Random(self.sim_config.seed)

        self.state: SimState = "idle"
        self.tick: int = 0
        self.layout: Optional[Layout] = None
        self.biases = BiasTable(0)
        self.bead_count: int = self.sim_config.bead_count
        self.remaining: int = 0
        self.speed_per_tick: float = self.sim_config.speed_per_tick

        self.scheduler = BeadScheduler()
        self.packer: Optional[BinPacker] = None
        self._completed: List[SettledBead] = []

        self._drop_task = PeriodicTask(
            name="drop",
            callback=self._drop_one,
            interval=self.sim_config.drop_interval_ms / 1000.0,
            max_catchup=self.sim_config.max_catchup,
        )
        self._animation_task = PeriodicTask(name="animation", callback=self._animate)

    # ---------------------------
    # Construction
    # ---------------------------

    @staticmethod
    def from_config(cfg: Config, rng: Optional[random.Random] = None) -> "GaltonSimulation":
        system = GaltonSimulation(board=cfg.board, sim=cfg.sim, rng=rng)
        system.configure(
            row_count=cfg.board.row_count,
            bead_count=cfg.sim.bead_count,
            bias_per_row=cfg.biases,
            speed_per_tick=cfg.sim.speed_per_tick,
        )
        return system

    @staticmethod
    def from_yaml(path: str, rng: Optional[random.Random] = None) -> "GaltonSimulation":
        return GaltonSimulation.from_config(Config.from_yaml(path), rng=rng)

    # ---------------------------
    # Public API
    # ---------------------------

    @property
    def configured(self) -> bool:
        return self.layout is not None

    @property
    def running(self) -> bool:
        return self.state == "running"

    def configure(
        self,
        row_count: int,
        bead_count: int,
        bias_per_row: Optional[Sequence[float]] = None,
        speed_per_tick: Optional[float] = None,
    ) -> Layout:
        # validate everything first so a rejected call leaves state intact
        board = dataclasses.replace(self.board_template, row_count=row_count)
        board.validate()
        if isinstance(bead_count, bool) or not isinstance(bead_count, int) or bead_count < 0:
            raise InvalidConfiguration(f"bead_count must be an int >= 0, got {bead_count!r}")
        if bias_per_row is not None:
            try:
                raw = list(bias_per_row)
            except TypeError as e:
                raise InvalidConfiguration(f"bias_per_row must be a sequence, got {bias_per_row!r}") from e
            bias_list = [parse_bias(b) for b in raw]
            if len(bias_list) != row_count:
                raise InvalidConfiguration(
                    f"bias_per_row has {len(bias_list)} entries for {row_count} rows"
                )
            for r, b in enumerate(bias_list):
                self._check_bias_value(r, b)
        elif self.layout is None and self.sim_config.bias not in (None, []):
            # first build seeds the table from SimConfig.bias
            seed_values = expand_bias(self.sim_config.bias, row_count)
            if len(seed_values) != row_count:
                raise InvalidConfiguration(
                    f"SimConfig.bias has {len(seed_values)} entries for {row_count} rows"
                )
            for r, b in enumerate(seed_values):
                self._check_bias_value(r, b)
            bias_list = seed_values
        else:
            bias_list = None
        if speed_per_tick is not None:
            self._check_speed(speed_per_tick)

        rebuild = self.layout is None or row_count != self.layout.row_count
        if rebuild:
            self.biases.resize(row_count)
            self._rebuild(board)
        elif self.sim_config.reset_in_flight:
            dropped = self.scheduler.clear()
            if dropped:
                logger.info("dropped %d in-flight beads on reconfigure", dropped)

        if bias_list is not None:
            for r, b in enumerate(bias_list):
                self.biases.set(r, b)
        if speed_per_tick is not None:
            self.speed_per_tick = float(speed_per_tick)
        if rebuild or bead_count != self.bead_count:
            self.remaining = bead_count
        self.bead_count = bead_count

        logger.info(
            "configured rows=%d beads=%d speed=%.3f rebuild=%s",
            row_count, bead_count, self.speed_per_tick, rebuild,
        )
        assert self.layout is not None
        return self.layout

    def set_bias(self, row: int, value: float) -> None:
        value = parse_bias(value)
        self._check_bias_value(row, value)
        self.biases.set(row, value)
        logger.debug("bias[%d] = %.3f", row, value)

    def set_speed(self, speed_per_tick: float) -> None:
        self._check_speed(speed_per_tick)
        self.speed_per_tick = float(speed_per_tick)

    def start(self) -> None:
        self._require_configured("start")
        if self.running:
            raise IllegalLifecycleTransition("start() called while already running")
        self.state = "running"
        self._drop_task.start()
        self._animation_task.start()
        logger.info("started (remaining beads=%d)", self.remaining)

    def stop(self) -> None:
        """Cancel both periodic tasks. A no-op when already idle."""
        if not self.running:
            logger.debug("stop() while idle ignored")
            return
        self._drop_task.cancel()
        self._animation_task.cancel()
        self.state = "idle"
        logger.info("stopped (active=%d settled=%d)", len(self.scheduler), self._settled_total())

    def reset(self) -> None:
        self._drop_task.cancel()
        self._animation_task.cancel()
        self.state = "idle"
        self.tick = 0
        if self.layout is not None:
            self._rebuild(self.layout.config)
        self.remaining = self.bead_count
        logger.info("reset")

    def spawn(self) -> Optional[Bead]:
        """Drop one bead now. Returns None once the bead budget is used up."""
        self._require_configured("spawn")
        if self.remaining <= 0:
            return None
        assert self.layout is not None
        path = route(self.layout, self.biases.values(), self.rng)
        self.remaining -= 1
        return self.scheduler.spawn(path)

    def on_tick(self, dt: Optional[float] = None) -> Snapshot:
        """Advance one display frame (when running) and return the snapshot."""
        self._require_configured("on_tick")
        self._completed = []
        if self.running:
            dt = self.sim_config.frame_interval if dt is None else dt
            # spawns land before the animation step, never inside it
            self._drop_task.advance(dt)
            self._animation_task.advance(dt)
            self.tick += 1
        return self.snapshot()

    def snapshot(self) -> Snapshot:
        return Snapshot(
            tick=self.tick,
            state=self.state,
            active_bead_positions=self.scheduler.positions(),
            settled_beads=self.packer.settled() if self.packer else [],
            bin_counts=self.packer.counts() if self.packer else [],
            remaining_beads=self.remaining,
            completed=list(self._completed),
        )

    def statistics(self) -> Statistics:
        counts = self.packer.counts() if self.packer else []
        return stats.summarize(counts, self.biases.values())

    def run_until_settled(self, max_frames: int = 1_000_000) -> Snapshot:
        """Headless helper: start if needed and tick until every bead settled."""
        if not self.running:
            self.start()
        snap = self.on_tick()
        frames = 1
        while not snap.finished and frames < max_frames:
            snap = self.on_tick()
            frames += 1
        self.stop()
        return self.snapshot()

    # ---------------------------
    # Internals
    # ---------------------------

    def _rebuild(self, board: BoardConfig) -> None:
        self.layout = compute_layout(board)
        dropped = self.scheduler.clear()
        if self.packer is None:
            self.packer = BinPacker(self.layout)
        else:
            self.packer.reset(self.layout)
        self._completed = []
        logger.info(
            "board rebuilt: rows=%d bins=%d capacity=%d (dropped %d in-flight)",
            board.row_count, self.layout.bin_count, self.packer.capacity, dropped,
        )

    def _drop_one(self) -> None:
        if self.remaining > 0:
            self.spawn()

    def _animate(self) -> None:
        assert self.packer is not None
        for bead in self.scheduler.tick(self.speed_per_tick):
            self._completed.append(self.packer.place(bead.final_bin))

    def _settled_total(self) -> int:
        return self.packer.total if self.packer else 0

    def _require_configured(self, op: str) -> None:
        if self.layout is None:
            raise IllegalLifecycleTransition(f"{op}() called before configure()")

    def _check_bias_value(self, row: int, value: float) -> None:
        if not 0.0 <= value <= 1.0:
            raise InvalidConfiguration(f"bias for row {row} must be in [0, 1], got {value}")

    def _check_speed(self, speed_per_tick: float) -> None:
        if isinstance(speed_per_tick, bool) or not isinstance(speed_per_tick, (int, float)):
            raise InvalidConfiguration(f"speed_per_tick must be a number, got {speed_per_tick!r}")
        if not speed_per_tick > 0:
            raise InvalidConfiguration(f"speed_per_tick must be > 0, got {speed_per_tick}")
