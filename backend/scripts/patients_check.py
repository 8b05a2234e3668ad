from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Optional, Sequence

from backend.internal_core.entity_store import AUDIENCES, EntityStoreError, JsonPatientSource
from backend.risk.model import compute_risk
from backend.utils.data_paths import resolve_data_dir


def _format_status_counts(rows: list[dict[str, Any]]) -> str:
    if not rows:
        return "n/a"
    counts = {"GREEN": 0, "AMBER": 0, "RED": 0}
    for row in rows:
        counts[row["status"]] = counts.get(row["status"], 0) + 1
    return " ".join(f"{key}={value}" for key, value in counts.items())


def check_patients(data_dir: Path) -> dict[str, Any]:
    source = JsonPatientSource(data_dir)
    report: dict[str, Any] = {"data_dir": str(data_dir), "audiences": {}, "errors": []}

    for audience in AUDIENCES:
        try:
            records = source.load(audience)
        except EntityStoreError as exc:
            report["errors"].append({"audience": audience, "detail": exc.message})
            continue

        rows: list[dict[str, Any]] = []
        for record in records:
            result = compute_risk(record.baseline.to_input_vector(), record.sensitivity_factors())
            rows.append(
                {
                    "id": record.id,
                    "device_model": record.device_model,
                    "score": result.score,
                    "status": result.status,
                    "efficiency": result.efficiency,
                    "has_factors": record.factors is not None,
                }
            )
        report["audiences"][audience] = rows

    return report


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Validate patient data files and print each baseline's risk score."
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Directory holding patients.phi.json / patients.research.json (default: WPT_DATA_DIR or backend/data)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full report as JSON instead of a text summary.",
    )
    args = parser.parse_args(argv)

    data_dir = resolve_data_dir(args.data_dir)
    if not data_dir.exists():
        raise SystemExit(f"data dir not found: {data_dir}")

    report = check_patients(data_dir)

    if args.json:
        print(json.dumps(report, indent=2))
    else:
        print(f"data_dir: {report['data_dir']}")
        for audience, rows in report["audiences"].items():
            print(f"{audience}: patients={len(rows)} {_format_status_counts(rows)}")
            for row in rows:
                print(f"  {row['id']} {row['device_model']} score={row['score']:.2f} status={row['status']}")
        for error in report["errors"]:
            print(f"error[{error['audience']}]: {error['detail']}")

    return 1 if report["errors"] else 0


if __name__ == "__main__":
    raise SystemExit(main())
