import logging
from pathlib import Path

from backend.internal_core.config import configure_logging, load_config
from backend.utils.data_paths import packaged_data_dir, resolve_data_dir


def test_load_config_defaults(monkeypatch) -> None:
    for name in [
        "WPT_DATA_DIR",
        "WPT_LOG_LEVEL",
        "WPT_CORS_ORIGINS",
        "WPT_SWEEP_FROM",
        "WPT_SWEEP_TO",
        "WPT_SWEEP_STEP",
        "WPT_SWEEP_MAX_POINTS",
        "WPT_RUN_LOG_MAX_ENTRIES",
    ]:
        monkeypatch.delenv(name, raising=False)

    cfg = load_config()

    assert Path(cfg.WPT_DATA_DIR) == packaged_data_dir()
    assert cfg.WPT_LOG_LEVEL == "INFO"
    assert cfg.WPT_CORS_ORIGINS == ("*",)
    assert (cfg.WPT_SWEEP_FROM, cfg.WPT_SWEEP_TO, cfg.WPT_SWEEP_STEP) == (0.0, 20.0, 1.0)
    assert cfg.WPT_SWEEP_MAX_POINTS == 2001
    assert cfg.WPT_RUN_LOG_MAX_ENTRIES == 5000


def test_load_config_reads_environment(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("WPT_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("WPT_CORS_ORIGINS", "http://localhost:5173, http://127.0.0.1:5173")
    monkeypatch.setenv("WPT_SWEEP_TO", "30")
    monkeypatch.setenv("WPT_SWEEP_STEP", "0.5")
    monkeypatch.setenv("WPT_SWEEP_MAX_POINTS", "61")

    cfg = load_config()

    assert cfg.data_dir_path() == tmp_path.resolve()
    assert cfg.WPT_CORS_ORIGINS == ("http://localhost:5173", "http://127.0.0.1:5173")
    assert cfg.WPT_SWEEP_TO == 30.0
    assert cfg.WPT_SWEEP_STEP == 0.5
    assert cfg.WPT_SWEEP_MAX_POINTS == 61


def test_resolve_data_dir_precedence(monkeypatch, tmp_path) -> None:
    explicit = tmp_path / "explicit"
    from_env = tmp_path / "env"
    monkeypatch.setenv("WPT_DATA_DIR", str(from_env))

    assert resolve_data_dir(str(explicit)) == explicit.resolve()
    assert resolve_data_dir() == from_env.resolve()

    monkeypatch.delenv("WPT_DATA_DIR")
    assert resolve_data_dir() == packaged_data_dir()


def test_configure_logging_sets_package_level() -> None:
    configure_logging("debug")
    assert logging.getLogger("backend").level == logging.DEBUG
    configure_logging("not-a-level")
    assert logging.getLogger("backend").level == logging.INFO
