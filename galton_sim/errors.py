from __future__ import annotations


class GaltonError(Exception):
    """Base class for every error raised by the simulator."""


class InvalidConfiguration(GaltonError, ValueError):
    """Rejected configuration value (row/bead count, bias, speed, extents)."""


class IllegalLifecycleTransition(GaltonError, RuntimeError):
    """Operation not allowed in the current lifecycle state."""


class StaleRowReference(GaltonError, IndexError):
    """Row, peg or bin index outside the current board."""
