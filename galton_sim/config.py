from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Union
import yaml

from .errors import InvalidConfiguration

DEFAULT_BIAS = 0.5


@dataclass(frozen=True)
class BoardConfig:
    row_count: int = 12
    width: float = 800.0
    height: float = 640.0
    margin_x: float = 20.0
    margin_top: float = 40.0
    margin_bottom: float = 20.0
    bin_height: float = 200.0
    h_padding: float = 30.0
    start_offset: float = 20.0  # start point sits this far above the first row
    bin_width_ratio: float = 0.9
    peg_radius: float = 5.0
    edge_peg_radius: float = 7.0
    bead_radius: float = 3.0

    def validate(self) -> None:
        if isinstance(self.row_count, bool) or not isinstance(self.row_count, int):
            raise InvalidConfiguration(f"row_count must be an int, got {self.row_count!r}")
        if self.row_count < 0:
            raise InvalidConfiguration(f"row_count must be >= 0, got {self.row_count}")
        if self.width <= 0 or self.height <= 0:
            raise InvalidConfiguration(f"Board extents must be positive, got {self.width}x{self.height}")
        if self.bead_radius <= 0 or self.peg_radius <= 0 or self.edge_peg_radius <= 0:
            raise InvalidConfiguration("Peg and bead radii must be positive.")
        if not 0.0 < self.bin_width_ratio <= 1.0:
            raise InvalidConfiguration(f"bin_width_ratio must be in (0, 1], got {self.bin_width_ratio}")
        if self.width - 2 * self.margin_x <= 0:
            raise InvalidConfiguration("Horizontal margins leave no room for bins.")
        bin_top = self.height - self.margin_bottom - self.bin_height
        if bin_top <= self.margin_top:
            raise InvalidConfiguration(
                f"Bin region (top y={bin_top}) overlaps the peg region (margin_top={self.margin_top})."
            )


@dataclass
class SimConfig:
    bead_count: int = 500
    bias: Union[float, List[float]] = field(default_factory=list)  # scalar is broadcast; empty -> 0.5
    speed_per_tick: float = 0.04
    drop_interval_ms: float = 30.0
    fps: int = 60
    seed: Optional[int] = None
    reset_in_flight: bool = False  # bias/bead-count edits also drop in-flight beads
    max_catchup: int = 8

    def validate(self) -> None:
        if self.bead_count < 0:
            raise InvalidConfiguration(f"bead_count must be >= 0, got {self.bead_count}")
        if self.speed_per_tick <= 0:
            raise InvalidConfiguration(f"speed_per_tick must be > 0, got {self.speed_per_tick}")
        if self.drop_interval_ms <= 0:
            raise InvalidConfiguration(f"drop_interval_ms must be > 0, got {self.drop_interval_ms}")
        if self.fps <= 0:
            raise InvalidConfiguration(f"fps must be > 0, got {self.fps}")
        if self.max_catchup < 1:
            raise InvalidConfiguration(f"max_catchup must be >= 1, got {self.max_catchup}")

    @property
    def frame_interval(self) -> float:
        return 1.0 / self.fps


def parse_bias(value: Any) -> float:
    if isinstance(value, bool):
        raise InvalidConfiguration(f"bias must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise InvalidConfiguration(f"bias must be a number, got {value!r}") from e


def expand_bias(bias: Union[None, float, str, List[float]], row_count: int) -> List[float]:
    """Broadcast a scalar bias to every row; an empty/None bias means 0.5 everywhere."""
    if bias is None:
        return [DEFAULT_BIAS] * row_count
    if isinstance(bias, (int, float, str)):
        return [parse_bias(bias)] * row_count
    try:
        items = list(bias)
    except TypeError as e:
        raise InvalidConfiguration(f"bias must be a number or a list, got {bias!r}") from e
    values = [parse_bias(b) for b in items]
    if not values:
        return [DEFAULT_BIAS] * row_count
    return values


@dataclass
class Config:
    board: BoardConfig
    sim: SimConfig

    @property
    def biases(self) -> List[float]:
        return expand_bias(self.sim.bias, self.board.row_count)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Config":
        data = data or {}

        board_data = data.get("board", {}) or {}
        known = {f.name for f in fields(BoardConfig)}
        unknown = set(board_data) - known
        if unknown:
            raise InvalidConfiguration(f"Unknown board keys: {sorted(unknown)}")
        board_kwargs: Dict[str, Any] = {}
        for k, v in board_data.items():
            board_kwargs[k] = int(v) if k == "row_count" else float(v)
        board = BoardConfig(**board_kwargs)

        sim_data = data.get("simulation", {}) or {}
        raw_bias = sim_data.get("bias")
        if raw_bias is None:
            bias: Union[float, List[float]] = []
        elif isinstance(raw_bias, (int, float, str)):
            bias = parse_bias(raw_bias)
        else:
            bias = expand_bias(raw_bias, board.row_count)
        seed = sim_data.get("seed")
        sim = SimConfig(
            bead_count=int(sim_data.get("bead_count", SimConfig.bead_count)),
            bias=bias,
            speed_per_tick=float(sim_data.get("speed_per_tick", SimConfig.speed_per_tick)),
            drop_interval_ms=float(sim_data.get("drop_interval_ms", SimConfig.drop_interval_ms)),
            fps=int(sim_data.get("fps", SimConfig.fps)),
            seed=int(seed) if seed is not None else None,
            reset_in_flight=bool(sim_data.get("reset_in_flight", False)),
            max_catchup=int(sim_data.get("max_catchup", SimConfig.max_catchup)),
        )

        cfg = Config(board=board, sim=sim)
        cfg.board.validate()
        cfg.sim.validate()
        if len(cfg.biases) != board.row_count:
            raise InvalidConfiguration(
                f"bias list has {len(cfg.biases)} entries but the board has {board.row_count} rows."
            )
        return cfg

    @staticmethod
    def from_yaml(path: str) -> "Config":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return Config.from_dict(data)
