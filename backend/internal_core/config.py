from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from backend.utils.data_paths import resolve_data_dir


def _getenv_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return default if value is None else value


def _getenv_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


def _getenv_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return float(value)


def _getenv_list(name: str, default: list[str]) -> list[str]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class ServiceConfig:
    WPT_DATA_DIR: str
    WPT_LOG_LEVEL: str
    WPT_CORS_ORIGINS: tuple[str, ...]
    WPT_SWEEP_FROM: float
    WPT_SWEEP_TO: float
    WPT_SWEEP_STEP: float
    WPT_SWEEP_MAX_POINTS: int
    WPT_RUN_LOG_MAX_ENTRIES: int

    def data_dir_path(self) -> Path:
        return Path(self.WPT_DATA_DIR).expanduser().resolve()


def load_config() -> ServiceConfig:
    return ServiceConfig(
        WPT_DATA_DIR=str(resolve_data_dir()),
        WPT_LOG_LEVEL=_getenv_str("WPT_LOG_LEVEL", "INFO"),
        WPT_CORS_ORIGINS=tuple(_getenv_list("WPT_CORS_ORIGINS", ["*"])),
        WPT_SWEEP_FROM=_getenv_float("WPT_SWEEP_FROM", 0.0),
        WPT_SWEEP_TO=_getenv_float("WPT_SWEEP_TO", 20.0),
        WPT_SWEEP_STEP=_getenv_float("WPT_SWEEP_STEP", 1.0),
        WPT_SWEEP_MAX_POINTS=_getenv_int("WPT_SWEEP_MAX_POINTS", 2001),
        WPT_RUN_LOG_MAX_ENTRIES=_getenv_int("WPT_RUN_LOG_MAX_ENTRIES", 5000),
    )


def configure_logging(level: str) -> None:
    resolved = logging.getLevelName(str(level or "INFO").strip().upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    package_logger = logging.getLogger("backend")
    package_logger.setLevel(resolved)
    if not logging.getLogger().handlers and not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        package_logger.addHandler(handler)
