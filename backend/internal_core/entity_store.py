from __future__ import annotations

"""
Patient entity store split into identified and de-identified audiences.

Design intent:
- Decode patient JSON through strict schemas and fail closed on any malformed record.
- Serve lookups from an explicit read-through cache that lives for the process.
- Never mix the two audiences; callers pick the partition, the store does not.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from threading import RLock
from typing import Dict, List, Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from backend.risk.model import InputVector, SensitivityFactors
from backend.utils.data_paths import PHI_PATIENTS_FILENAME, RESEARCH_PATIENTS_FILENAME

from .contracts import Audience, DeidentifiedPatient, IdentifiedPatient, PatientRecord, Role

logger = logging.getLogger(__name__)

AUDIENCES: tuple[Audience, ...] = ("identified", "deidentified")

_AUDIENCE_FILES: Dict[str, str] = {
    "identified": PHI_PATIENTS_FILENAME,
    "deidentified": RESEARCH_PATIENTS_FILENAME,
}

_AUDIENCE_ADAPTERS: Dict[str, TypeAdapter] = {
    "identified": TypeAdapter(List[IdentifiedPatient]),
    "deidentified": TypeAdapter(List[DeidentifiedPatient]),
}


class EntityStoreError(RuntimeError):
    def __init__(self, audience: str, message: str):
        super().__init__(message)
        self.audience = audience
        self.message = message


@dataclass(frozen=True)
class PatientBaseline:
    patient_id: str
    baseline: InputVector
    factors: Optional[SensitivityFactors] = None


def audience_for_role(role: Optional[str]) -> Audience:
    # Anything that is not an explicit clinician request sees research data.
    return "identified" if str(role or "").strip().lower() == "clinician" else "deidentified"


def role_for_audience(audience: Audience) -> Role:
    return "clinician" if audience == "identified" else "engineer"


class JsonPatientSource:
    """Load one audience's patient list from `<data_dir>/patients.*.json`."""

    def __init__(self, data_dir: Path):
        self._data_dir = Path(data_dir)

    def path_for(self, audience: Audience) -> Path:
        return self._data_dir / _AUDIENCE_FILES[audience]

    def load(self, audience: Audience) -> list[PatientRecord]:
        path = self.path_for(audience)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise EntityStoreError(audience, f"Patient file not found: {path}") from exc
        except OSError as exc:
            raise EntityStoreError(audience, f"Patient file unreadable: {path}: {exc}") from exc

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise EntityStoreError(audience, f"Patient file is not valid JSON: {path}: {exc}") from exc

        try:
            records = _AUDIENCE_ADAPTERS[audience].validate_python(payload)
        except ValidationError as exc:
            raise EntityStoreError(
                audience,
                f"Invalid patient record in {path.name}: {exc.error_count()} error(s); "
                f"first={exc.errors()[0].get('loc')} {exc.errors()[0].get('msg')}",
            ) from exc

        _ensure_unique_ids(audience, records)
        return list(records)


def _ensure_unique_ids(audience: str, records: Sequence[PatientRecord]) -> None:
    seen: set[str] = set()
    for record in records:
        if record.id in seen:
            raise EntityStoreError(audience, f"Duplicate patient id in {audience} data: {record.id}")
        seen.add(record.id)


class PatientRegistry:
    """
    Read-through cache over a patient source, keyed by audience.

    Entries are loaded on first use and kept until `reload()`; there is no
    time-based eviction.
    """

    def __init__(self, source: JsonPatientSource):
        self._source = source
        self._lock = RLock()
        self._patients: Dict[str, List[PatientRecord]] = {}
        self._index: Dict[str, Dict[str, PatientRecord]] = {}

    def _ensure_loaded(self, audience: Audience) -> None:
        if audience in self._patients:
            return
        try:
            records = self._source.load(audience)
        except EntityStoreError as exc:
            logger.error("patient_load_failed audience=%s detail=%s", audience, exc.message)
            raise
        self._patients[audience] = records
        self._index[audience] = {record.id: record for record in records}
        logger.info("patient_load audience=%s count=%d", audience, len(records))

    def list_patients(self, audience: Audience) -> list[PatientRecord]:
        with self._lock:
            self._ensure_loaded(audience)
            return list(self._patients[audience])

    def find(self, audience: Audience, patient_id: Optional[str]) -> Optional[PatientRecord]:
        if not patient_id:
            return None
        with self._lock:
            self._ensure_loaded(audience)
            return self._index[audience].get(str(patient_id))

    def find_baseline(self, audience: Audience, patient_id: Optional[str]) -> Optional[PatientBaseline]:
        record = self.find(audience, patient_id)
        if record is None:
            return None
        return PatientBaseline(
            patient_id=record.id,
            baseline=record.baseline.to_input_vector(),
            factors=record.sensitivity_factors(),
        )

    def reload(self, audience: Optional[Audience] = None) -> None:
        with self._lock:
            targets = AUDIENCES if audience is None else (audience,)
            for item in targets:
                self._patients.pop(item, None)
                self._index.pop(item, None)
        logger.info("patient_cache_reload audiences=%s", ",".join(targets))

    def cached_audiences(self) -> list[str]:
        with self._lock:
            return sorted(self._patients)
