"""Galton board (bean machine) stochastic routing and animation model.

Public entrypoints:
- GaltonSimulation (from galton_sim.sim)
- compute_layout (from galton_sim.geometry)
- route (from galton_sim.routing)
"""
from .sim import GaltonSimulation
from .config import BoardConfig, SimConfig, Config
from .geometry import Layout, compute_layout
from .routing import route, sample_bins
from .errors import GaltonError, InvalidConfiguration, IllegalLifecycleTransition, StaleRowReference
