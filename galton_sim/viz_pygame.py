from __future__ import annotations

"""pygame based realtime visualization.

The viewer stays a thin consumer of the controller:

- The *simulation* (`GaltonSimulation`) owns all state, routing and packing.
- The *viewer* forwards key presses to `configure` / `set_bias` / lifecycle
  calls and draws whatever `on_tick()` returns each frame.

Keys: SPACE start/stop, R reset, UP/DOWN rows, [ ] select bias row,
LEFT/RIGHT adjust the selected bias, + - speed, ESC quit.
"""

from dataclasses import dataclass
from typing import Deque, Optional, Tuple
import logging
from collections import deque

from .errors import GaltonError
from .sim import GaltonSimulation

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int]


@dataclass
class PygameVizConfig:
    panel_height: int = 110
    background: Color = (30, 30, 30)
    board_bg: Color = (34, 34, 34)
    board_border: Color = (119, 119, 119)
    peg: Color = (85, 85, 85)
    edge_peg: Color = (110, 110, 110)
    divider: Color = (119, 119, 119)
    bead: Color = (0, 255, 0)
    bias_step: float = 0.05
    speed_factor: float = 1.25
    max_rows: int = 40


def run_visualization_pygame(
    system: GaltonSimulation,
    *,
    fps: Optional[int] = None,
    cfg: Optional[PygameVizConfig] = None,
    window_title: str = "Galton Board (pygame)",
    autostart: bool = True,
) -> None:
    """Run a realtime pygame animation.

    Parameters
    ----------
    system:
        A configured simulation.
    fps:
        Target frames-per-second; defaults to the simulation's configured fps.
    cfg:
        Visual config (colors, panel height, key step sizes).
    autostart:
        Start dropping beads as soon as the window opens.
    """

    try:
        import pygame  # type: ignore
    except Exception as e:  # pragma: no cover
        raise RuntimeError(
            "pygame is required for the pygame visualization. "
            "Install it with: pip install pygame"
        ) from e

    cfg = cfg or PygameVizConfig()
    fps = fps or system.sim_config.fps
    board = system.board_template

    pygame.init()
    screen_w = int(board.width)
    screen_h = int(board.height) + cfg.panel_height
    screen = pygame.display.set_mode((screen_w, screen_h))
    pygame.display.set_caption(window_title)

    clock = pygame.time.Clock()
    font = pygame.font.SysFont("Arial", 14)
    font_small = pygame.font.SysFont("Arial", 11)

    messages: Deque[str] = deque(maxlen=4)
    selected_row = 0

    def _guard(fn, *args) -> None:
        try:
            fn(*args)
        except GaltonError as e:
            messages.append(str(e))
            logger.warning("%s", e)

    def _reconfigure_rows(delta: int) -> None:
        nonlocal selected_row
        assert system.layout is not None
        rows = max(0, min(cfg.max_rows, system.layout.row_count + delta))
        if rows == system.layout.row_count:
            return
        _guard(system.configure, rows, system.bead_count)
        selected_row = min(selected_row, max(0, rows - 1))

    if autostart:
        _guard(system.start)

    running = True
    while running:
        dt = clock.tick(max(1, fps)) / 1000.0

        # ---- events ----
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN:
                n_rows = system.layout.row_count if system.layout else 0
                if event.key == pygame.K_ESCAPE:
                    running = False
                elif event.key == pygame.K_SPACE:
                    if system.running:
                        system.stop()
                    else:
                        _guard(system.start)
                elif event.key == pygame.K_r:
                    system.reset()
                elif event.key == pygame.K_UP:
                    _reconfigure_rows(+1)
                elif event.key == pygame.K_DOWN:
                    _reconfigure_rows(-1)
                elif event.key == pygame.K_LEFTBRACKET and n_rows:
                    selected_row = (selected_row - 1) % n_rows
                elif event.key == pygame.K_RIGHTBRACKET and n_rows:
                    selected_row = (selected_row + 1) % n_rows
                elif event.key in (pygame.K_LEFT, pygame.K_RIGHT) and n_rows:
                    step = cfg.bias_step if event.key == pygame.K_RIGHT else -cfg.bias_step
                    value = max(0.0, min(1.0, system.biases.get(selected_row) + step))
                    _guard(system.set_bias, selected_row, round(value, 4))
                elif event.key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
                    _guard(system.set_speed, system.speed_per_tick * cfg.speed_factor)
                elif event.key in (pygame.K_MINUS, pygame.K_KP_MINUS):
                    _guard(system.set_speed, system.speed_per_tick / cfg.speed_factor)

        snap = system.on_tick(dt)
        layout = system.layout
        assert layout is not None

        # ---- render ----
        screen.fill(cfg.background)

        left = board.margin_x
        top = board.margin_top - 2
        board_rect = pygame.Rect(int(left), int(top), int(board.width - 2 * left), int(layout.bin_floor_y - top))
        pygame.draw.rect(screen, cfg.board_bg, board_rect)
        pygame.draw.rect(screen, cfg.board_border, board_rect, 4)

        for peg in layout.iter_pegs():
            color = cfg.edge_peg if peg.is_edge else cfg.peg
            radius = board.edge_peg_radius if peg.is_edge else board.peg_radius
            pygame.draw.circle(screen, color, (int(peg.x), int(peg.y)), int(radius))

        for x in layout.bin_edges():
            pygame.draw.line(
                screen, cfg.divider, (int(x), int(layout.bin_top_y)), (int(x), int(layout.bin_floor_y)), 2
            )

        r = max(1, int(board.bead_radius))
        for sb in snap.settled_beads:
            pygame.draw.circle(screen, cfg.bead, (int(sb.x), int(sb.y)), r)
        for x, y in snap.active_bead_positions:
            pygame.draw.circle(screen, cfg.bead, (int(x), int(y)), r)

        for b, count in enumerate(snap.bin_counts):
            surf = font_small.render(str(count), True, (200, 200, 200))
            screen.blit(surf, surf.get_rect(center=(int(layout.bin_centers[b]), int(layout.bin_top_y) - 8)))

        # UI text
        st = system.statistics()
        info = (
            f"{snap.state.upper()} | Rows: {layout.row_count} | "
            f"Settled: {st.total} | In flight: {len(snap.active_bead_positions)} | "
            f"Remaining: {snap.remaining_beads} | Speed: {system.speed_per_tick:.3f}"
        )
        panel_y = int(board.height)
        screen.blit(font.render(info, True, (255, 255, 255)), (10, panel_y + 8))
        moments = f"mean {st.mean:.2f} (exp {st.expected_mean:.2f})  var {st.variance:.2f} (exp {st.expected_variance:.2f})"
        screen.blit(font_small.render(moments, True, (180, 180, 180)), (10, panel_y + 28))
        if layout.row_count:
            bias_line = f"Row {selected_row + 1} bias: {system.biases.get(selected_row):.2f}  ([ ] select, LEFT/RIGHT adjust)"
            screen.blit(font_small.render(bias_line, True, (180, 180, 180)), (10, panel_y + 44))

        for i, line in enumerate(messages):
            surf = font_small.render(line, True, (220, 120, 120))
            screen.blit(surf, (10, panel_y + 62 + i * 12))

        pygame.display.flip()

    pygame.quit()
