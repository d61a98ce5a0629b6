"""Public entry points for oscillator network simulation.

This module re-exports from sub-modules so callers need a single import.
"""

from __future__ import annotations

# Analytic solution
from oscnet.analytic import TrajectoryFn, solve

# Commands
from oscnet.commands import run_distances, run_resonances, run_simulate

# Rest-length estimation
from oscnet.distance import GroundMode, estimate

# Errors
from oscnet.errors import (
    InvalidEventTable,
    InvalidParameter,
    InvalidTimeVector,
    NonDiagonalizable,
    NumericalDivergence,
    NumericalInstability,
    OscillatorNetworkError,
    ShapeMismatch,
    UnderdeterminedSystem,
)

# Events
from oscnet.events import Event, EventSet, Interpolation

# Numeric integration
from oscnet.integrator import advance, step

# Network construction
from oscnet.model import NetworkModel, build_network, state_names
from oscnet.model_components import build_chain_network

# Resonances
from oscnet.resonance import Resonance, resonances

# Scheduling
from oscnet.scheduler import Trajectory, simulate

# Config
from oscnet.settings import SolverSettings, read_config


__all__ = [
    # Network
    'NetworkModel',
    'build_network',
    'build_chain_network',
    'state_names',
    # Solvers
    'TrajectoryFn',
    'solve',
    'step',
    'advance',
    # Events + scheduling
    'Event',
    'EventSet',
    'Interpolation',
    'Trajectory',
    'simulate',
    # Analysis
    'Resonance',
    'resonances',
    'GroundMode',
    'estimate',
    # Config
    'SolverSettings',
    'read_config',
    # Commands
    'run_simulate',
    'run_resonances',
    'run_distances',
    # Errors
    'OscillatorNetworkError',
    'ShapeMismatch',
    'InvalidParameter',
    'InvalidEventTable',
    'InvalidTimeVector',
    'NonDiagonalizable',
    'NumericalInstability',
    'NumericalDivergence',
    'UnderdeterminedSystem',
]
