"""
Risk scoring boundary for the WPT what-if simulator.

Design intent:
- Map a charging operating point to a deterministic, explainable risk score.
- Drive the same score across coil misalignment to produce comparison curves.
- Stay free of I/O so results are referentially transparent.
"""
from __future__ import annotations

from .model import (
    BASE_WEIGHTS,
    InputVector,
    RiskResult,
    RiskWeights,
    SensitivityFactors,
    compute_risk,
    effective_weights,
    status_for_score,
)
from .overlay import SERIES_LABELS, OverlaySeries, build_overlay, overlay_to_csv
from .resolver import SYSTEM_DEFAULT_INPUTS, InputOverrides, resolve_inputs
from .sweep import SweepPoint, SweepRange, clamp_sweep_range, compute_sweep, sweep_values

__all__ = [
    "BASE_WEIGHTS",
    "InputOverrides",
    "InputVector",
    "OverlaySeries",
    "RiskResult",
    "RiskWeights",
    "SERIES_LABELS",
    "SYSTEM_DEFAULT_INPUTS",
    "SensitivityFactors",
    "SweepPoint",
    "SweepRange",
    "build_overlay",
    "clamp_sweep_range",
    "compute_risk",
    "compute_sweep",
    "effective_weights",
    "overlay_to_csv",
    "resolve_inputs",
    "status_for_score",
    "sweep_values",
]
