"""Shared fixtures: every test gets its own settings file."""

from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def settings_path(tmp_path: Path, monkeypatch) -> Path:
    path = tmp_path / "config" / "settings.json"
    monkeypatch.setattr("autoenv.config.SETTINGS_PATH", path)
    monkeypatch.delenv("POSTMAN_API_KEY", raising=False)
    return path
