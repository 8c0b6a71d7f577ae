"""Tests for the ``python -m estate_batch`` entry point."""

import pytest

from estate_batch.__main__ import main
from estate_config import CONFIG_PATH_ENV
from estate_kernel.db.engine import reset_engine
from estate_kernel.db.immutability import unregister_immutability_listeners


@pytest.fixture
def isolated_engine(monkeypatch):
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    yield
    unregister_immutability_listeners()
    reset_engine()


def test_single_pass_on_fresh_database(isolated_engine, captured_logs):
    exit_code = main(["--once", "--db-url", "sqlite://", "--create-tables"])

    assert exit_code == 0
    completed = next(r for r in captured_logs() if r["message"] == "sweep_completed")
    assert completed["error_count"] == 0


def test_missing_config_file(isolated_engine, tmp_path):
    with pytest.raises(FileNotFoundError):
        main(["--once", "--config", str(tmp_path / "absent.yaml")])
