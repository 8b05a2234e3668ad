from __future__ import annotations

"""
Sweep the risk model across coil misalignment to build chart curves.

Design intent:
- Vary coil offset only; charge rate, temperature and load stay fixed per call.
- Compute each point from its index so long sweeps do not drift.
- Keep the last point at or below the requested stop, even when it falls short.
"""

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .model import InputVector, SensitivityFactors, compute_risk

DEFAULT_SWEEP_FROM = 0.0
DEFAULT_SWEEP_TO = 20.0
DEFAULT_SWEEP_STEP = 1.0

# Relative slack so that e.g. 0..0.3 step 0.1 still reaches 0.3.
_STEP_TOLERANCE = 1e-9


@dataclass(frozen=True)
class SweepPoint:
    independent_value: float
    score: float


@dataclass(frozen=True)
class SweepRange:
    start: float
    stop: float
    step: float

    def point_count(self) -> int:
        ratio = (self.stop - self.start) / self.step
        if not math.isfinite(ratio):
            raise ValueError(
                f"sweep {self.start}..{self.stop} step {self.step} has no finite point count"
            )
        return int(math.floor(ratio + _STEP_TOLERANCE)) + 1


def clamp_sweep_range(
    start: Optional[float] = None,
    stop: Optional[float] = None,
    step: Optional[float] = None,
    *,
    default_start: float = DEFAULT_SWEEP_FROM,
    default_stop: float = DEFAULT_SWEEP_TO,
    default_step: float = DEFAULT_SWEEP_STEP,
) -> SweepRange:
    resolved_start = max(0.0, float(default_start if start is None else start))
    resolved_stop = max(resolved_start, float(default_stop if stop is None else stop))
    raw_step = float(default_step if step is None else step)
    resolved_step = raw_step if raw_step > 0 else 1.0
    return SweepRange(start=resolved_start, stop=resolved_stop, step=resolved_step)


def sweep_values(sweep_range: SweepRange) -> list[float]:
    count = sweep_range.point_count()
    grid = sweep_range.start + np.arange(count, dtype=np.float64) * sweep_range.step
    return [float(value) for value in grid]


def compute_sweep(
    base_inputs: InputVector,
    factors: Optional[SensitivityFactors],
    start: float,
    stop: float,
    step: float,
) -> list[SweepPoint]:
    """
    Score `base_inputs` at every coil offset from `start` to `stop` inclusive.

    Callers are expected to pass a range that went through
    `clamp_sweep_range`; a non-positive step is still replaced with 1 here.
    Raises `ValueError` when the range has no finite point count.
    """

    sweep_range = SweepRange(start=start, stop=stop, step=step if step > 0 else 1.0)
    if sweep_range.stop < sweep_range.start:
        return []

    points: list[SweepPoint] = []
    for value in sweep_values(sweep_range):
        result = compute_risk(base_inputs.with_coil_offset(value), factors)
        points.append(SweepPoint(independent_value=value, score=result.score))
    return points
