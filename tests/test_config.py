"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from qrshare import ConfigError, load_config
from qrshare.config import DEFAULT_API_BASE, DEFAULT_HOME, DEFAULT_QR_ENDPOINT, ClientConfig

ENV_VARS = (
    "QRSHARE_API_BASE",
    "QRSHARE_FRONTEND_URL",
    "QRSHARE_QR_ENDPOINT",
    "QRSHARE_TIMEOUT",
    "QRSHARE_MAX_UPLOAD_MB",
    "QRSHARE_HOME",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Start from an empty environment and undo anything a .env file sets."""
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


def test_defaults() -> None:
    config = load_config()

    assert config.api_base == DEFAULT_API_BASE
    assert config.qr_endpoint == DEFAULT_QR_ENDPOINT
    assert config.timeout == 60.0
    assert config.max_upload_mb == 25
    assert config.home == DEFAULT_HOME


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("QRSHARE_API_BASE", "https://api.example.com/")
    monkeypatch.setenv("QRSHARE_FRONTEND_URL", "https://share.example.com/")
    monkeypatch.setenv("QRSHARE_TIMEOUT", "12.5")
    monkeypatch.setenv("QRSHARE_MAX_UPLOAD_MB", "10")
    monkeypatch.setenv("QRSHARE_HOME", str(tmp_path / "state"))

    config = load_config()

    assert config.api_base == "https://api.example.com"
    assert config.frontend_url == "https://share.example.com"
    assert config.timeout == 12.5
    assert config.max_upload_bytes == 10 * 1024 * 1024
    assert config.session_path == tmp_path / "state" / "session.json"
    assert config.cache_dir == tmp_path / "state" / "cache"


def test_env_file(tmp_path: Path) -> None:
    env_file = tmp_path / "custom.env"
    env_file.write_text("QRSHARE_FRONTEND_URL=https://from-file.example.com\n")

    config = load_config(env_file)

    assert config.frontend_url == "https://from-file.example.com"


def test_environment_beats_env_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("QRSHARE_API_BASE=https://from-file.example.com\n")
    monkeypatch.setenv("QRSHARE_API_BASE", "https://from-env.example.com")

    assert load_config().api_base == "https://from-env.example.com"


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("QRSHARE_TIMEOUT", "soon"),
        ("QRSHARE_TIMEOUT", "0"),
        ("QRSHARE_MAX_UPLOAD_MB", "-5"),
        ("QRSHARE_MAX_UPLOAD_MB", "2.5"),
    ],
)
def test_invalid_numbers(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigError, match=name):
        load_config()


def test_bare_config_defaults() -> None:
    config = ClientConfig()

    assert config.max_upload_bytes == 25 * 1024 * 1024
    assert config.session_path == DEFAULT_HOME / "session.json"
