from __future__ import annotations

"""
Merge system defaults, a patient baseline and explicit overrides into one operating point.

Precedence, lowest to highest: system default -> patient baseline -> override.
Each field resolves independently; a missing patient is not an error.
"""

from dataclasses import dataclass
from typing import Optional

from .model import InputVector

SYSTEM_DEFAULT_INPUTS = InputVector(
    coil_offset_deg=5.0,
    charge_rate_c=1.0,
    temp_c=37.0,
    load_ma=200.0,
)


@dataclass(frozen=True)
class InputOverrides:
    coil_offset_deg: Optional[float] = None
    charge_rate_c: Optional[float] = None
    temp_c: Optional[float] = None
    load_ma: Optional[float] = None


def _pick(override: Optional[float], fallback: float) -> float:
    return fallback if override is None else float(override)


def resolve_inputs(
    overrides: Optional[InputOverrides] = None,
    baseline: Optional[InputVector] = None,
) -> InputVector:
    base = baseline if baseline is not None else SYSTEM_DEFAULT_INPUTS
    explicit = overrides if overrides is not None else InputOverrides()
    return InputVector(
        coil_offset_deg=_pick(explicit.coil_offset_deg, base.coil_offset_deg),
        charge_rate_c=_pick(explicit.charge_rate_c, base.charge_rate_c),
        temp_c=_pick(explicit.temp_c, base.temp_c),
        load_ma=_pick(explicit.load_ma, base.load_ma),
    )
