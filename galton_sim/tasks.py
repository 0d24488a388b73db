from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional


@dataclass
class PeriodicTask:
    """Cooperative periodic task driven by elapsed time.

    ``interval`` is in seconds; ``None`` fires once per ``advance`` call
    (one display frame). A single ``advance`` fires at most ``max_catchup``
    times and drops the rest of the backlog, so every call stays bounded.
    """

    name: str
    callback: Callable[[], None]
    interval: Optional[float] = None
    max_catchup: int = 8

    active: bool = field(default=False, init=False)
    fired: int = field(default=0, init=False)
    _elapsed: float = field(default=0.0, init=False)

    def start(self) -> None:
        self.active = True
        self._elapsed = 0.0

    def cancel(self) -> None:
        self.active = False
        self._elapsed = 0.0

    def advance(self, dt: float) -> int:
        if not self.active:
            return 0
        if self.interval is None:
            self.callback()
            self.fired += 1
            return 1

        self._elapsed += dt
        n = 0
        while self._elapsed >= self.interval and n < self.max_catchup:
            self._elapsed -= self.interval
            self.callback()
            n += 1
            # callback may cancel us
            if not self.active:
                break
        if self._elapsed >= self.interval:
            self._elapsed = 0.0
        self.fired += n
        return n
