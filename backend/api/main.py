from __future__ import annotations

"""
HTTP surface for the WPT what-if risk simulator.

Design intent:
- Keep API orchestration thin and typed.
- Validate every physical input at the boundary; the scoring core never sees out-of-range values.
- Delegate scoring to the risk module and patient lookup to the entity store.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field

from backend.cohort.matching import find_compare_candidates
from backend.internal_core.audit import record_run, runs_to_csv
from backend.internal_core.config import ServiceConfig, configure_logging, load_config
from backend.internal_core.contracts import DeidentifiedPatient, Role, RunLogEntry
from backend.internal_core.entity_store import (
    EntityStoreError,
    JsonPatientSource,
    PatientBaseline,
    PatientRegistry,
    audience_for_role,
    role_for_audience,
)
from backend.internal_core.run_store import InMemoryRunStore
from backend.risk.model import InputVector, RiskResult, compute_risk
from backend.risk.overlay import OverlaySeries, build_overlay, overlay_to_csv
from backend.risk.resolver import InputOverrides, resolve_inputs
from backend.risk.sweep import SweepPoint, SweepRange, clamp_sweep_range, compute_sweep


class InputOverridesPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    patient_id: Optional[str] = Field(default=None, alias="patientId", max_length=128)
    coil_offset_deg: Optional[float] = Field(
        default=None, alias="coilOffsetDeg", ge=0.0, le=30.0, strict=True, allow_inf_nan=False
    )
    charge_rate_c: Optional[float] = Field(
        default=None, alias="chargeRateC", ge=0.2, le=2.0, strict=True, allow_inf_nan=False
    )
    temp_c: Optional[float] = Field(
        default=None, alias="tempC", ge=15.0, le=60.0, strict=True, allow_inf_nan=False
    )
    load_ma: Optional[float] = Field(
        default=None, alias="load_mA", ge=0.0, le=500.0, strict=True, allow_inf_nan=False
    )

    def to_overrides(self) -> InputOverrides:
        return InputOverrides(
            coil_offset_deg=self.coil_offset_deg,
            charge_rate_c=self.charge_rate_c,
            temp_c=self.temp_c,
            load_ma=self.load_ma,
        )


class SimulateRequest(InputOverridesPayload):
    compare_id: Optional[str] = Field(default=None, alias="compareId", max_length=128)


class SweepRequest(InputOverridesPayload):
    sweep_from: Optional[float] = Field(default=None, alias="from", strict=True, allow_inf_nan=False)
    sweep_to: Optional[float] = Field(default=None, alias="to", strict=True, allow_inf_nan=False)
    step: Optional[float] = Field(default=None, strict=True, allow_inf_nan=False)


class OverlayRequest(SweepRequest):
    compare_id: Optional[str] = Field(default=None, alias="compareId", max_length=128)


class TelemetryPayload(BaseModel):
    efficiency: float


class SimulateResponse(BaseModel):
    status: str
    score: float
    telemetry: TelemetryPayload
    rationale: list[str] = Field(default_factory=list)


class SweepPointPayload(BaseModel):
    deg: float
    score: float


class SweepResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    patient_id: Optional[str] = Field(default=None, alias="patientId")
    sweep_from: float = Field(alias="from")
    sweep_to: float = Field(alias="to")
    step: float
    data: list[SweepPointPayload] = Field(default_factory=list)


class OverlaySeriesPayload(BaseModel):
    key: str
    label: str
    data: list[SweepPointPayload] = Field(default_factory=list)


class OverlayResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    patient_id: Optional[str] = Field(default=None, alias="patientId")
    compare_id: Optional[str] = Field(default=None, alias="compareId")
    sweep_from: float = Field(alias="from")
    sweep_to: float = Field(alias="to")
    step: float
    series: list[OverlaySeriesPayload] = Field(default_factory=list)
    debug: dict[str, Any] = Field(default_factory=dict)


class CompareCandidateItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    display_name: str = Field(alias="displayName")
    device_model: str = Field(alias="deviceModel")
    age: int
    score: float
    history_similarity: float = Field(alias="historySimilarity")
    age_similarity: float = Field(alias="ageSimilarity")


class CompareCandidatesResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    patient_id: str = Field(alias="patientId")
    candidates: list[CompareCandidateItem] = Field(default_factory=list)


class RunLogResponse(BaseModel):
    runs: list[RunLogEntry] = Field(default_factory=list)
    count: int = 0


class RunLogClearResponse(BaseModel):
    cleared: int


class PatientReloadResponse(BaseModel):
    status: str
    counts: dict[str, int] = Field(default_factory=dict)


app = FastAPI(title="wpt what-if risk service")
logger = logging.getLogger(__name__)

_ROLE_HEADER = "x-role"


def _get_config() -> ServiceConfig:
    existing = getattr(app.state, "config", None)
    if isinstance(existing, ServiceConfig):
        return existing
    created = load_config()
    configure_logging(created.WPT_LOG_LEVEL)
    setattr(app.state, "config", created)
    return created


app.add_middleware(
    CORSMiddleware,
    allow_origins=list(_get_config().WPT_CORS_ORIGINS),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _get_patient_registry() -> PatientRegistry:
    existing = getattr(app.state, "patient_registry", None)
    if isinstance(existing, PatientRegistry):
        return existing
    created = PatientRegistry(JsonPatientSource(_get_config().data_dir_path()))
    setattr(app.state, "patient_registry", created)
    return created


def _get_run_store() -> InMemoryRunStore:
    existing = getattr(app.state, "run_store", None)
    if isinstance(existing, InMemoryRunStore):
        return existing
    created = InMemoryRunStore(max_entries=_get_config().WPT_RUN_LOG_MAX_ENTRIES)
    setattr(app.state, "run_store", created)
    return created


def _request_role(request: Request) -> Role:
    # Trusted, unverified header; unknown values fall back to research data.
    return role_for_audience(audience_for_role(request.headers.get(_ROLE_HEADER)))


def _entity_store_http_error(exc: EntityStoreError) -> HTTPException:
    return HTTPException(status_code=500, detail=f"Patient data unavailable: {exc.message}")


def _lookup_baseline(role: Role, patient_id: Optional[str]) -> Optional[PatientBaseline]:
    if not patient_id:
        return None
    try:
        return _get_patient_registry().find_baseline(audience_for_role(role), patient_id)
    except EntityStoreError as exc:
        raise _entity_store_http_error(exc) from exc


def _resolve_request_inputs(
    payload: InputOverridesPayload,
    found: Optional[PatientBaseline],
) -> InputVector:
    return resolve_inputs(payload.to_overrides(), found.baseline if found is not None else None)


def _resolve_sweep_range(payload: SweepRequest) -> SweepRange:
    cfg = _get_config()
    sweep_range = clamp_sweep_range(
        payload.sweep_from,
        payload.sweep_to,
        payload.step,
        default_start=cfg.WPT_SWEEP_FROM,
        default_stop=cfg.WPT_SWEEP_TO,
        default_step=cfg.WPT_SWEEP_STEP,
    )
    try:
        count: Optional[int] = sweep_range.point_count()
    except ValueError:
        count = None
    if count is None or count > cfg.WPT_SWEEP_MAX_POINTS:
        points = "unbounded" if count is None else str(count)
        logger.warning(
            "sweep_rejected from=%s to=%s step=%s points=%s limit=%d",
            sweep_range.start,
            sweep_range.stop,
            sweep_range.step,
            points,
            cfg.WPT_SWEEP_MAX_POINTS,
        )
        raise HTTPException(
            status_code=400,
            detail=(
                f"Sweep would produce {points} points; limit is {cfg.WPT_SWEEP_MAX_POINTS}. "
                "Narrow the range or increase step."
            ),
        )
    return sweep_range


def _result_to_response(result: RiskResult) -> SimulateResponse:
    return SimulateResponse.model_validate(result.to_payload())


def _points_payload(points: list[SweepPoint]) -> list[SweepPointPayload]:
    return [SweepPointPayload(deg=item.independent_value, score=item.score) for item in points]


def _build_overlay_for_request(
    request: Request,
    payload: OverlayRequest,
) -> tuple[list[OverlaySeries], SweepRange, bool]:
    role = _request_role(request)
    found = _lookup_baseline(role, payload.patient_id)
    baseline = resolve_inputs(None, found.baseline if found is not None else None)
    effective = _resolve_request_inputs(payload, found)
    sweep_range = _resolve_sweep_range(payload)

    compare: Optional[PatientBaseline] = None
    if role == "engineer" and payload.compare_id:
        compare = _lookup_baseline(role, payload.compare_id)

    series = build_overlay(
        baseline,
        effective,
        found.factors if found is not None else None,
        sweep_range,
        compare_factors=compare.factors if compare is not None else None,
        include_compare=compare is not None,
    )
    return series, sweep_range, found is not None


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/patients")
async def list_patients(request: Request) -> list[dict[str, Any]]:
    role = _request_role(request)
    try:
        records = _get_patient_registry().list_patients(audience_for_role(role))
    except EntityStoreError as exc:
        raise _entity_store_http_error(exc) from exc
    return [record.model_dump(mode="json", by_alias=True) for record in records]


@app.post("/patients/reload", response_model=PatientReloadResponse)
async def reload_patients() -> PatientReloadResponse:
    registry = _get_patient_registry()
    registry.reload()
    counts: dict[str, int] = {}
    try:
        for audience in ("identified", "deidentified"):
            counts[audience] = len(registry.list_patients(audience))
    except EntityStoreError as exc:
        raise _entity_store_http_error(exc) from exc
    return PatientReloadResponse(status="reloaded", counts=counts)


@app.get("/patients/{patient_id}")
async def get_patient(patient_id: str, request: Request) -> dict[str, Any]:
    role = _request_role(request)
    try:
        record = _get_patient_registry().find(audience_for_role(role), patient_id)
    except EntityStoreError as exc:
        raise _entity_store_http_error(exc) from exc
    if record is None:
        raise HTTPException(status_code=404, detail=f"Unknown patient_id: {patient_id}")
    return record.model_dump(mode="json", by_alias=True)


@app.get("/patients/{patient_id}/compare-candidates", response_model=CompareCandidatesResponse)
async def compare_candidates(patient_id: str, request: Request) -> CompareCandidatesResponse:
    role = _request_role(request)
    if role != "engineer":
        return CompareCandidatesResponse(patient_id=patient_id, candidates=[])

    registry = _get_patient_registry()
    try:
        selected = registry.find("deidentified", patient_id)
        patients = registry.list_patients("deidentified")
    except EntityStoreError as exc:
        raise _entity_store_http_error(exc) from exc
    if not isinstance(selected, DeidentifiedPatient):
        raise HTTPException(status_code=404, detail=f"Unknown patient_id: {patient_id}")

    ranked = find_compare_candidates(
        selected,
        [item for item in patients if isinstance(item, DeidentifiedPatient)],
    )
    return CompareCandidatesResponse(
        patient_id=patient_id,
        candidates=[
            CompareCandidateItem(
                id=item.patient.id,
                display_name=item.patient.display_name,
                device_model=item.patient.device_model,
                age=item.patient.age,
                score=round(item.score, 4),
                history_similarity=round(item.history_similarity, 4),
                age_similarity=round(item.age_similarity, 4),
            )
            for item in ranked
        ],
    )


@app.post("/simulate", response_model=SimulateResponse)
async def simulate(payload: SimulateRequest, request: Request) -> SimulateResponse:
    role = _request_role(request)
    found = _lookup_baseline(role, payload.patient_id)
    inputs = _resolve_request_inputs(payload, found)
    result = compute_risk(inputs, found.factors if found is not None else None)

    record_run(
        _get_run_store(),
        role=role,
        profile_id=payload.patient_id,
        compare_id=payload.compare_id,
        inputs=inputs,
        result=result,
    )
    return _result_to_response(result)


@app.post("/simulate/sweep", response_model=SweepResponse)
async def simulate_sweep(payload: SweepRequest, request: Request) -> SweepResponse:
    role = _request_role(request)
    found = _lookup_baseline(role, payload.patient_id)
    inputs = _resolve_request_inputs(payload, found)
    sweep_range = _resolve_sweep_range(payload)

    points = compute_sweep(
        inputs,
        found.factors if found is not None else None,
        sweep_range.start,
        sweep_range.stop,
        sweep_range.step,
    )
    return SweepResponse(
        patient_id=payload.patient_id,
        sweep_from=sweep_range.start,
        sweep_to=sweep_range.stop,
        step=sweep_range.step,
        data=_points_payload(points),
    )


@app.post("/simulate/overlay", response_model=OverlayResponse)
async def simulate_overlay(payload: OverlayRequest, request: Request) -> OverlayResponse:
    series, sweep_range, patient_found = _build_overlay_for_request(request, payload)
    return OverlayResponse(
        patient_id=payload.patient_id,
        compare_id=payload.compare_id,
        sweep_from=sweep_range.start,
        sweep_to=sweep_range.stop,
        step=sweep_range.step,
        series=[
            OverlaySeriesPayload(key=item.key, label=item.label, data=_points_payload(item.points))
            for item in series
        ],
        debug={
            "patient_found": patient_found,
            "series_keys": [item.key for item in series],
        },
    )


@app.post("/simulate/overlay/export")
async def simulate_overlay_export(payload: OverlayRequest, request: Request) -> Response:
    series, _, _ = _build_overlay_for_request(request, payload)
    role = _request_role(request)
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d-%H-%M-%S")
    name = f"{role}_curves_{payload.patient_id or 'default'}"
    if payload.compare_id and any(item.key == "compare" for item in series):
        name += f"_vs_{payload.compare_id}"
    return Response(
        content=overlay_to_csv(series),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{name}_{stamp}.csv"'},
    )


@app.get("/runs", response_model=RunLogResponse)
async def list_runs(request: Request) -> RunLogResponse:
    runs = _get_run_store().list_runs(role=_request_role(request))
    return RunLogResponse(runs=runs, count=len(runs))


@app.get("/runs/export.csv")
async def export_runs(request: Request) -> Response:
    runs = _get_run_store().list_runs(role=_request_role(request))
    day = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    return Response(
        content=runs_to_csv(runs),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="wpt_runs_{day}.csv"'},
    )


@app.delete("/runs", response_model=RunLogClearResponse)
async def clear_runs(request: Request) -> RunLogClearResponse:
    role = _request_role(request)
    # Only the caller's audience is cleared.
    cleared = _get_run_store().clear(role=role)
    logger.info("run_log_cleared role=%s cleared=%d", role, cleared)
    return RunLogClearResponse(cleared=cleared)
