from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List

from .models import Bead, Path, Point

logger = logging.getLogger(__name__)


@dataclass
class BeadScheduler:
    """Owns the in-flight beads and advances them along their paths.

    Strategy:
    - Progress is linear in waypoint-index space: ``speed`` is the fraction of
      one segment a bead covers per tick, whatever the segment's length.
    - When ``t`` reaches 1 the bead snaps onto the next waypoint and starts
      the following segment at ``t = 0``.
    - A bead standing on its last waypoint is removed and returned as
      completed; the caller hands it to the bin packer.
    """

    _active: Dict[str, Bead] = field(default_factory=dict, init=False)
    _ids: Iterator[int] = field(default_factory=itertools.count, init=False)

    def __len__(self) -> int:
        return len(self._active)

    def __iter__(self) -> Iterator[Bead]:
        return iter(self._active.values())

    def spawn(self, path: Path) -> Bead:
        x, y = path.waypoints[0]
        bead = Bead(bead_id=f"B{next(self._ids):05d}", path=path, x=x, y=y)
        self._active[bead.bead_id] = bead
        logger.debug("spawned %s -> bin %d", bead.bead_id, path.final_bin)
        return bead

    def tick(self, speed: float) -> List[Bead]:
        completed: List[Bead] = []
        for bid in list(self._active):
            bead = self._active[bid]
            wps = bead.path.waypoints
            if not bead.is_done:
                p0 = wps[bead.segment_index]
                p1 = wps[bead.segment_index + 1]
                bead.t += speed
                if bead.t >= 1.0:
                    bead.segment_index += 1
                    bead.t = 0.0
                    bead.x, bead.y = p1
                else:
                    bead.x = p0[0] + (p1[0] - p0[0]) * bead.t
                    bead.y = p0[1] + (p1[1] - p0[1]) * bead.t
            if bead.is_done:
                del self._active[bid]
                completed.append(bead)
        return completed

    def positions(self) -> List[Point]:
        return [b.position for b in self._active.values()]

    def clear(self) -> int:
        n = len(self._active)
        self._active.clear()
        return n
