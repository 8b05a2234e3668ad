from __future__ import annotations

"""
Weighted what-if risk model for a wireless charging operating point.

Design intent:
- Convert four physical inputs into normalized sub-risks in a fixed order.
- Let per-patient sensitivity factors reweight the mix without moving band thresholds.
- Return a rationale trail so every score can be read back by a reviewer.
"""

import math
from dataclasses import dataclass
from typing import Literal, Optional

RiskStatus = Literal["GREEN", "AMBER", "RED"]

RED_THRESHOLD = 0.65
AMBER_THRESHOLD = 0.35

NOMINAL_CHARGE_RATE_C = 1.0
NORMAL_BODY_TEMP_C = 37.0
TEMP_SPAN_C = 23.0
MAX_LOAD_MA = 500.0


@dataclass(frozen=True)
class InputVector:
    coil_offset_deg: float
    charge_rate_c: float
    temp_c: float
    load_ma: float

    def with_coil_offset(self, coil_offset_deg: float) -> "InputVector":
        return InputVector(
            coil_offset_deg=coil_offset_deg,
            charge_rate_c=self.charge_rate_c,
            temp_c=self.temp_c,
            load_ma=self.load_ma,
        )


@dataclass(frozen=True)
class SensitivityFactors:
    misalign: Optional[float] = None
    rate: Optional[float] = None
    temp: Optional[float] = None
    load: Optional[float] = None


@dataclass(frozen=True)
class RiskWeights:
    misalign: float
    rate: float
    temp: float
    load: float

    def total(self) -> float:
        return self.misalign + self.rate + self.temp + self.load


@dataclass(frozen=True)
class SubRisks:
    misalign: float
    rate: float
    temp: float
    load: float


@dataclass(frozen=True)
class RiskResult:
    status: RiskStatus
    score: float
    efficiency: float
    rationale: tuple[str, ...]

    def to_payload(self) -> dict[str, object]:
        return {
            "status": self.status,
            "score": self.score,
            "telemetry": {"efficiency": self.efficiency},
            "rationale": list(self.rationale),
        }


# Coil misalignment dominates clinical risk.
BASE_WEIGHTS = RiskWeights(misalign=0.45, rate=0.25, temp=0.20, load=0.10)


def coupling_efficiency(coil_offset_deg: float) -> float:
    theta = math.radians(coil_offset_deg)
    # Total coupling loss past 90 degrees.
    return max(0.0, math.cos(theta))


def compute_sub_risks(inputs: InputVector, efficiency: float) -> SubRisks:
    return SubRisks(
        misalign=1.0 - efficiency,
        # No upper clamp: only the request boundary keeps this at or below 1.
        rate=max(0.0, inputs.charge_rate_c - NOMINAL_CHARGE_RATE_C),
        temp=max(0.0, (inputs.temp_c - NORMAL_BODY_TEMP_C) / TEMP_SPAN_C),
        load=min(1.0, inputs.load_ma / MAX_LOAD_MA),
    )


def _factor(value: Optional[float]) -> float:
    return 1.0 if value is None else float(value)


def effective_weights(factors: Optional[SensitivityFactors]) -> RiskWeights:
    """
    Apply per-patient sensitivity multipliers and renormalize to sum 1.

    A factor set whose weighted total is not positive carries no usable
    ranking, so the base weights are returned unchanged.
    """

    if factors is None:
        return BASE_WEIGHTS

    scaled = RiskWeights(
        misalign=BASE_WEIGHTS.misalign * _factor(factors.misalign),
        rate=BASE_WEIGHTS.rate * _factor(factors.rate),
        temp=BASE_WEIGHTS.temp * _factor(factors.temp),
        load=BASE_WEIGHTS.load * _factor(factors.load),
    )
    total = scaled.total()
    if not math.isfinite(total) or total <= 0.0:
        return BASE_WEIGHTS
    return RiskWeights(
        misalign=scaled.misalign / total,
        rate=scaled.rate / total,
        temp=scaled.temp / total,
        load=scaled.load / total,
    )


def status_for_score(score: float) -> RiskStatus:
    if score >= RED_THRESHOLD:
        return "RED"
    if score >= AMBER_THRESHOLD:
        return "AMBER"
    return "GREEN"


def format_number(value: float) -> str:
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def _build_rationale(
    inputs: InputVector,
    efficiency: float,
    weights: RiskWeights,
    factors_applied: bool,
) -> tuple[str, ...]:
    lines = [
        f"Misalignment {format_number(inputs.coil_offset_deg)}° → efficiency {efficiency:.2f}",
        (
            f"Charge {format_number(inputs.charge_rate_c)}C, "
            f"Temp {format_number(inputs.temp_c)}°C, "
            f"Load {format_number(inputs.load_ma)} mA"
        ),
    ]
    if factors_applied:
        lines.append(
            "Weights M/R/T/L: "
            f"{weights.misalign:.2f}/{weights.rate:.2f}/{weights.temp:.2f}/{weights.load:.2f}"
        )
    return tuple(lines)


def compute_risk(
    inputs: InputVector,
    factors: Optional[SensitivityFactors] = None,
) -> RiskResult:
    efficiency = coupling_efficiency(inputs.coil_offset_deg)
    risks = compute_sub_risks(inputs, efficiency)
    weights = effective_weights(factors)

    raw_score = (
        weights.misalign * risks.misalign
        + weights.rate * risks.rate
        + weights.temp * risks.temp
        + weights.load * risks.load
    )
    score = round(raw_score, 2)

    return RiskResult(
        status=status_for_score(score),
        score=score,
        efficiency=round(efficiency, 2),
        rationale=_build_rationale(inputs, efficiency, weights, factors is not None),
    )
