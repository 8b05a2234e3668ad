from __future__ import annotations

"""
Compose several coil-angle sweeps into the dashboard's overlay series.

Design intent:
- Show which single input change moves the curve, one series per changed field.
- Always include the final curve that combines every effective input.
- Keep CSV export column order identical to the series order.
"""

import csv
import io
from dataclasses import dataclass
from typing import Optional, Sequence

from .model import InputVector, SensitivityFactors, format_number
from .sweep import SweepPoint, SweepRange, compute_sweep


@dataclass(frozen=True)
class OverlaySeries:
    key: str
    label: str
    points: list[SweepPoint]


SERIES_LABELS = {
    "coil": "Coil changed",
    "charge": "Charge rate changed",
    "temp": "Temperature changed",
    "load": "Load changed",
    "final": "Final (Run)",
    "compare": "Compare profile",
}


def _series(
    key: str,
    inputs: InputVector,
    factors: Optional[SensitivityFactors],
    sweep_range: SweepRange,
) -> OverlaySeries:
    return OverlaySeries(
        key=key,
        label=SERIES_LABELS[key],
        points=compute_sweep(inputs, factors, sweep_range.start, sweep_range.stop, sweep_range.step),
    )


def build_overlay(
    baseline: InputVector,
    effective: InputVector,
    factors: Optional[SensitivityFactors],
    sweep_range: SweepRange,
    *,
    compare_factors: Optional[SensitivityFactors] = None,
    include_compare: bool = False,
) -> list[OverlaySeries]:
    """
    Build overlay series in display order: coil, charge, temp, load, final, compare.

    Each per-field series perturbs exactly one input away from `baseline`.
    The coil series keeps every non-angle input at baseline, so it shows the
    unmodified baseline curve the moved coil is read against. The compare
    series scores the primary baseline with the compare patient's factors.
    """

    series: list[OverlaySeries] = []

    if effective.coil_offset_deg != baseline.coil_offset_deg:
        series.append(_series("coil", baseline, factors, sweep_range))

    if effective.charge_rate_c != baseline.charge_rate_c:
        perturbed = InputVector(
            coil_offset_deg=baseline.coil_offset_deg,
            charge_rate_c=effective.charge_rate_c,
            temp_c=baseline.temp_c,
            load_ma=baseline.load_ma,
        )
        series.append(_series("charge", perturbed, factors, sweep_range))

    if effective.temp_c != baseline.temp_c:
        perturbed = InputVector(
            coil_offset_deg=baseline.coil_offset_deg,
            charge_rate_c=baseline.charge_rate_c,
            temp_c=effective.temp_c,
            load_ma=baseline.load_ma,
        )
        series.append(_series("temp", perturbed, factors, sweep_range))

    if effective.load_ma != baseline.load_ma:
        perturbed = InputVector(
            coil_offset_deg=baseline.coil_offset_deg,
            charge_rate_c=baseline.charge_rate_c,
            temp_c=baseline.temp_c,
            load_ma=effective.load_ma,
        )
        series.append(_series("load", perturbed, factors, sweep_range))

    series.append(_series("final", effective, factors, sweep_range))

    if include_compare:
        series.append(_series("compare", baseline, compare_factors, sweep_range))

    return series


def overlay_to_csv(series: Sequence[OverlaySeries]) -> str:
    populated = [item for item in series if item.points]
    values = sorted({point.independent_value for item in populated for point in item.points})
    lookups = [
        {point.independent_value: point.score for point in item.points}
        for item in populated
    ]

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\r\n")
    writer.writerow(["deg", *[item.label for item in populated]])
    for value in values:
        row = [format_number(value)]
        for lookup in lookups:
            score = lookup.get(value)
            row.append("" if score is None else format_number(score))
        writer.writerow(row)
    return buffer.getvalue()
