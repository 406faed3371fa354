"""Splat simulation of single-cell RNA-seq counts estimated from real data."""

from .errors import (
    EstimationFailedError,
    FitConvergenceError,
    FitDegradedWarning,
    InvalidInputError,
    ParameterDomainError,
    SplatError,
)
from .estimation import splat_estimate
from .params import SplatParams, new_params, set_params
from .simulator import SimulationDiagnostics, SplatSim, splat_simulate

__all__ = [
    "EstimationFailedError",
    "FitConvergenceError",
    "FitDegradedWarning",
    "InvalidInputError",
    "ParameterDomainError",
    "SimulationDiagnostics",
    "SplatError",
    "SplatParams",
    "SplatSim",
    "new_params",
    "set_params",
    "splat_estimate",
    "splat_simulate",
]
