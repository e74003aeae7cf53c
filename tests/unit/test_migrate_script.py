from __future__ import annotations

import importlib.util
import sys
from pathlib import Path

import httplib2
import pytest

pytest.importorskip("psycopg")

from googleapiclient.errors import HttpError
from loguru import logger

_SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "migrate_airtable.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("migrate_airtable", _SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class _FailingMigration:
    def __init__(self, error: Exception) -> None:
        self._error = error

    def run(self):
        raise self._error


@pytest.fixture
def script(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LOG_FILE", "")
    yield _load_script()
    logger.remove()
    logger.add(sys.stderr)


def test_google_api_error_exits_cleanly(script, monkeypatch, capsys) -> None:
    error = HttpError(httplib2.Response({"status": "500"}), b"{}")
    monkeypatch.setattr(script, "build_from_env", lambda cfg: _FailingMigration(error))

    assert script.main(["--yes"]) == 1
    assert "Migración abortada (Google API)" in capsys.readouterr().err


def test_unconfirmed_run_does_not_build_the_job(script, monkeypatch) -> None:
    monkeypatch.setenv("MIGRATION_ASSUME_YES", "false")

    def fail(cfg):
        raise AssertionError("no debería construirse el job")

    monkeypatch.setattr(script, "build_from_env", fail)
    assert script.main([]) == 1
