from __future__ import annotations

import csv
import datetime as _dt
import io
import logging
from typing import Optional, Sequence

from backend.risk.model import InputVector, RiskResult, format_number

from .contracts import Role, RunInputs, RunLogEntry, RunOutputs
from .run_store import InMemoryRunStore

logger = logging.getLogger(__name__)

RUN_LOG_CSV_HEADER = [
    "ts",
    "role",
    "profileId",
    "compareId",
    "coilOffsetDeg",
    "chargeRateC",
    "tempC",
    "load_mA",
    "score",
    "status",
]


def _ts_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat()


def _sanitize_id(value: Optional[str]) -> str:
    # Identifiers only; names or addresses never belong in the run log.
    value = (value or "").replace("\n", " ").replace(",", " ").strip()
    if len(value) > 128:
        value = value[:128]
    return value


def record_run(
    store: InMemoryRunStore,
    *,
    role: Role,
    profile_id: Optional[str],
    compare_id: Optional[str],
    inputs: InputVector,
    result: RiskResult,
) -> RunLogEntry:
    entry = RunLogEntry(
        ts=_ts_iso(),
        role=role,
        profile_id=_sanitize_id(profile_id),
        compare_id=_sanitize_id(compare_id) or None,
        inputs=RunInputs(
            coil_offset_deg=inputs.coil_offset_deg,
            charge_rate_c=inputs.charge_rate_c,
            temp_c=inputs.temp_c,
            load_ma=inputs.load_ma,
        ),
        outputs=RunOutputs(score=result.score, status=result.status),
    )
    store.append(entry)
    logger.debug(
        "run_recorded role=%s profile_id=%s score=%.2f status=%s",
        entry.role,
        entry.profile_id or "-",
        entry.outputs.score,
        entry.outputs.status,
    )
    return entry


def runs_to_csv(entries: Sequence[RunLogEntry]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\r\n")
    writer.writerow(RUN_LOG_CSV_HEADER)
    for entry in entries:
        writer.writerow(
            [
                entry.ts,
                entry.role,
                entry.profile_id,
                entry.compare_id or "",
                format_number(entry.inputs.coil_offset_deg),
                format_number(entry.inputs.charge_rate_c),
                format_number(entry.inputs.temp_c),
                format_number(entry.inputs.load_ma),
                format_number(entry.outputs.score),
                entry.outputs.status,
            ]
        )
    return buffer.getvalue()
