from fastapi.testclient import TestClient

from backend.api.main import app
from backend.internal_core.run_store import InMemoryRunStore

CLINICIAN = {"x-role": "clinician"}
ENGINEER = {"x-role": "engineer"}


def _fresh_run_store() -> InMemoryRunStore:
    store = InMemoryRunStore(max_entries=100)
    app.state.run_store = store
    return store


def _clear_run_store() -> None:
    if hasattr(app.state, "run_store"):
        delattr(app.state, "run_store")


def test_healthz() -> None:
    client = TestClient(app)
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_patients_default_to_deidentified_records() -> None:
    client = TestClient(app)
    response = client.get("/patients")
    assert response.status_code == 200
    payload = response.json()

    assert payload
    first = payload[0]
    assert first["id"].startswith("R-")
    assert {"displayName", "age", "deviceModel", "history", "baseline", "factors"} <= set(first)
    assert "name" not in first and "address" not in first
    assert set(first["baseline"]) == {"coilOffsetDeg", "chargeRateC", "tempC", "load_mA"}


def test_patients_for_clinician_are_identified_records() -> None:
    client = TestClient(app)
    payload = client.get("/patients", headers=CLINICIAN).json()

    first = payload[0]
    assert first["id"].startswith("P-")
    assert {"name", "dob", "address", "sex"} <= set(first)
    assert first["dob"] == "1961-04-12"


def test_get_single_patient_respects_partition() -> None:
    client = TestClient(app)
    assert client.get("/patients/R-001", headers=ENGINEER).status_code == 200
    missing = client.get("/patients/R-001", headers=CLINICIAN)
    assert missing.status_code == 404
    assert "Unknown patient_id" in missing.json()["detail"]


def test_simulate_worst_corner_without_patient() -> None:
    client = TestClient(app)
    _fresh_run_store()
    try:
        response = client.post(
            "/simulate",
            json={"coilOffsetDeg": 30, "chargeRateC": 2, "tempC": 60, "load_mA": 500},
        )
    finally:
        _clear_run_store()

    assert response.status_code == 200
    payload = response.json()
    assert payload["score"] == 0.61
    assert payload["status"] == "AMBER"
    assert payload["telemetry"] == {"efficiency": 0.87}
    assert payload["rationale"] == [
        "Misalignment 30° → efficiency 0.87",
        "Charge 2C, Temp 60°C, Load 500 mA",
    ]


def test_simulate_empty_body_uses_system_defaults() -> None:
    client = TestClient(app)
    _fresh_run_store()
    try:
        payload = client.post("/simulate", json={}).json()
    finally:
        _clear_run_store()

    assert payload["rationale"][0].startswith("Misalignment 5° ")
    assert payload["rationale"][1] == "Charge 1C, Temp 37°C, Load 200 mA"
    assert len(payload["rationale"]) == 2


def test_simulate_with_patient_applies_baseline_and_factors() -> None:
    client = TestClient(app)
    _fresh_run_store()
    try:
        payload = client.post("/simulate", json={"patientId": "R-001", "tempC": 40}, headers=ENGINEER).json()
    finally:
        _clear_run_store()

    assert payload["rationale"][0] == "Misalignment 10° → efficiency 0.98"
    assert payload["rationale"][1] == "Charge 1.2C, Temp 40°C, Load 250 mA"
    assert payload["rationale"][2].startswith("Weights M/R/T/L: ")


def test_simulate_with_patient_from_other_audience_falls_back_to_defaults() -> None:
    client = TestClient(app)
    _fresh_run_store()
    try:
        payload = client.post("/simulate", json={"patientId": "R-001"}, headers=CLINICIAN).json()
    finally:
        _clear_run_store()

    assert payload["rationale"][0].startswith("Misalignment 5° ")
    assert len(payload["rationale"]) == 2


def test_simulate_is_deterministic() -> None:
    client = TestClient(app)
    body = {"patientId": "R-002", "coilOffsetDeg": 17.5, "chargeRateC": 1.4}
    _fresh_run_store()
    try:
        first = client.post("/simulate", json=body).json()
        second = client.post("/simulate", json=body).json()
    finally:
        _clear_run_store()
    assert first == second


def test_sweep_defaults_to_twenty_one_points() -> None:
    client = TestClient(app)
    response = client.post("/simulate/sweep", json={"patientId": "R-001"})
    assert response.status_code == 200
    payload = response.json()

    assert payload["patientId"] == "R-001"
    assert (payload["from"], payload["to"], payload["step"]) == (0.0, 20.0, 1.0)
    assert [point["deg"] for point in payload["data"]] == [float(v) for v in range(21)]
    assert all(0.0 <= point["score"] <= 1.0 for point in payload["data"])


def test_sweep_clamps_controls() -> None:
    client = TestClient(app)

    inverted = client.post("/simulate/sweep", json={"from": 5, "to": 2}).json()
    assert (inverted["from"], inverted["to"]) == (5.0, 5.0)
    assert [point["deg"] for point in inverted["data"]] == [5.0]

    negative = client.post("/simulate/sweep", json={"from": -3, "to": 2, "step": 0}).json()
    assert (negative["from"], negative["step"]) == (0.0, 1.0)
    assert [point["deg"] for point in negative["data"]] == [0.0, 1.0, 2.0]


def test_sweep_last_point_may_undershoot_to() -> None:
    client = TestClient(app)
    payload = client.post("/simulate/sweep", json={"from": 0, "to": 1, "step": 0.3}).json()

    degs = [point["deg"] for point in payload["data"]]
    assert len(degs) == 4
    assert degs[-1] < 1.0
    assert payload["patientId"] is None


def test_overlay_for_engineer_includes_changed_fields_and_compare() -> None:
    client = TestClient(app)
    response = client.post(
        "/simulate/overlay",
        json={"patientId": "R-001", "compareId": "R-002", "chargeRateC": 1.8, "to": 10},
        headers=ENGINEER,
    )
    assert response.status_code == 200
    payload = response.json()

    assert [item["key"] for item in payload["series"]] == ["charge", "final", "compare"]
    assert all(len(item["data"]) == 11 for item in payload["series"])
    assert payload["debug"]["patient_found"] is True
    assert payload["compareId"] == "R-002"


def test_overlay_for_clinician_ignores_compare() -> None:
    client = TestClient(app)
    payload = client.post(
        "/simulate/overlay",
        json={"patientId": "P-001", "compareId": "P-002"},
        headers=CLINICIAN,
    ).json()

    assert [item["key"] for item in payload["series"]] == ["final"]


def test_overlay_export_returns_csv_attachment() -> None:
    client = TestClient(app)
    response = client.post(
        "/simulate/overlay/export",
        json={"patientId": "R-001", "compareId": "R-002", "tempC": 42},
        headers=ENGINEER,
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    disposition = response.headers["content-disposition"]
    assert "engineer_curves_R-001_vs_R-002_" in disposition
    lines = response.text.split("\r\n")
    assert lines[0] == "deg,Temperature changed,Final (Run),Compare profile"
    assert len([line for line in lines if line]) == 22


def test_compare_candidates_endpoint() -> None:
    client = TestClient(app)

    response = client.get("/patients/R-001/compare-candidates", headers=ENGINEER)
    assert response.status_code == 200
    payload = response.json()
    assert payload["patientId"] == "R-001"
    assert [item["id"] for item in payload["candidates"]] == ["R-002", "R-006"]
    assert payload["candidates"][0]["displayName"] == "Subject 002"

    clinician = client.get("/patients/P-001/compare-candidates", headers=CLINICIAN).json()
    assert clinician["candidates"] == []

    assert client.get("/patients/R-999/compare-candidates", headers=ENGINEER).status_code == 404


def test_simulate_records_runs_and_exports_csv() -> None:
    client = TestClient(app)
    _fresh_run_store()
    try:
        client.post("/simulate", json={"patientId": "R-001", "compareId": "R-002"}, headers=ENGINEER)
        client.post("/simulate", json={"patientId": "P-001"}, headers=CLINICIAN)

        engineer_runs = client.get("/runs", headers=ENGINEER).json()
        assert engineer_runs["count"] == 1
        run = engineer_runs["runs"][0]
        assert run["role"] == "engineer"
        assert run["profileId"] == "R-001"
        assert run["compareId"] == "R-002"
        assert run["inputs"]["coilOffsetDeg"] == 10.0
        assert run["outputs"]["status"] in {"GREEN", "AMBER", "RED"}

        export = client.get("/runs/export.csv", headers=CLINICIAN)
        assert export.status_code == 200
        assert export.headers["content-type"].startswith("text/csv")
        assert "wpt_runs_" in export.headers["content-disposition"]
        lines = export.text.split("\r\n")
        assert lines[0] == "ts,role,profileId,compareId,coilOffsetDeg,chargeRateC,tempC,load_mA,score,status"
        assert ",clinician,P-001,," in lines[1]

        cleared = client.delete("/runs", headers=ENGINEER).json()
        assert cleared == {"cleared": 1}
        assert client.get("/runs", headers=ENGINEER).json()["count"] == 0
        assert client.get("/runs", headers=CLINICIAN).json()["count"] == 1
    finally:
        _clear_run_store()


def test_reload_patients_reports_counts() -> None:
    client = TestClient(app)
    response = client.post("/patients/reload")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "reloaded"
    assert payload["counts"]["identified"] >= 1
    assert payload["counts"]["deidentified"] >= 1
