"""Client configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from qrshare.exceptions import ConfigError

DEFAULT_API_BASE = "https://qr-project-express.onrender.com"
DEFAULT_FRONTEND_URL = "https://qr-project-react.vercel.app"
DEFAULT_QR_ENDPOINT = "https://api.qrserver.com/v1/create-qr-code/"
DEFAULT_TIMEOUT = 60.0
DEFAULT_MAX_UPLOAD_MB = 25
DEFAULT_HOME = Path.home() / ".qrshare"


@dataclass(frozen=True)
class ClientConfig:
    """Settings shared by the client, the caches and the CLI.

    Every field has a default so a bare ClientConfig() talks to the public
    service and keeps its state under ~/.qrshare.
    """

    api_base: str = DEFAULT_API_BASE
    frontend_url: str = DEFAULT_FRONTEND_URL
    qr_endpoint: str = DEFAULT_QR_ENDPOINT
    timeout: float = DEFAULT_TIMEOUT
    max_upload_mb: int = DEFAULT_MAX_UPLOAD_MB
    home: Path = DEFAULT_HOME

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @property
    def session_path(self) -> Path:
        return self.home / "session.json"

    @property
    def cache_dir(self) -> Path:
        return self.home / "cache"


def _number(name: str, default: float, cast: type) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


def load_config(env_file: str | Path | None = None) -> ClientConfig:
    """Construct a ClientConfig from environment variables.

    A .env file is read first when present; variables already set in the
    environment win.

    Optional environment variables (with defaults):
        QRSHARE_API_BASE: Backend base URL.
        QRSHARE_FRONTEND_URL: Base URL used when building share links.
        QRSHARE_QR_ENDPOINT: Third-party QR image render endpoint.
        QRSHARE_TIMEOUT: Request timeout in seconds (default: 60).
        QRSHARE_MAX_UPLOAD_MB: Largest file accepted for upload (default: 25).
        QRSHARE_HOME: Directory for the session file and list cache.

    Raises:
        ConfigError: If a numeric variable is not a positive number.
    """
    load_dotenv(env_file or find_dotenv(usecwd=True))

    home = os.environ.get("QRSHARE_HOME")
    return ClientConfig(
        api_base=os.environ.get("QRSHARE_API_BASE", DEFAULT_API_BASE).rstrip("/"),
        frontend_url=os.environ.get("QRSHARE_FRONTEND_URL", DEFAULT_FRONTEND_URL).rstrip("/"),
        qr_endpoint=os.environ.get("QRSHARE_QR_ENDPOINT", DEFAULT_QR_ENDPOINT),
        timeout=float(_number("QRSHARE_TIMEOUT", DEFAULT_TIMEOUT, float)),
        max_upload_mb=int(_number("QRSHARE_MAX_UPLOAD_MB", DEFAULT_MAX_UPLOAD_MB, int)),
        home=Path(home).expanduser() if home else DEFAULT_HOME,
    )
