from __future__ import annotations

import os
from pathlib import Path

PHI_PATIENTS_FILENAME = "patients.phi.json"
RESEARCH_PATIENTS_FILENAME = "patients.research.json"


def package_root() -> Path:
    # backend/utils/data_paths.py -> backend
    return Path(__file__).resolve().parents[1]


def packaged_data_dir() -> Path:
    return package_root() / "data"


def resolve_data_dir(explicit_path: str | None = None) -> Path:
    """
    Resolve the patient data directory with precedence:
    1) explicit arg
    2) WPT_DATA_DIR
    3) packaged backend/data
    """

    explicit = str(explicit_path or "").strip()
    if explicit:
        return Path(explicit).expanduser().resolve()

    env_path = os.getenv("WPT_DATA_DIR", "").strip()
    if env_path:
        return Path(env_path).expanduser().resolve()

    return packaged_data_dir()
