"""Pytest fixtures for qrshare tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from helpers import make_image

from qrshare import ClientConfig, QRShareClient, Session, SessionStore
from qrshare.cache import ListCache


@pytest.fixture
def config(tmp_path: Path) -> ClientConfig:
    """Config pointing at a fake backend with state under tmp_path."""
    return ClientConfig(
        api_base="https://api.test",
        frontend_url="https://app.test",
        qr_endpoint="https://qr.test/render",
        home=tmp_path / "home",
    )


@pytest.fixture
def patch_transport() -> Any:
    """Patch the ApiTransport class used by QRShareClient."""
    with patch("qrshare.client.ApiTransport") as mock_class:
        mock_instance = MagicMock()
        mock_instance.get_json.return_value = []
        mock_instance.post_json.return_value = {}
        mock_class.return_value = mock_instance
        yield mock_instance


@pytest.fixture
def session_store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def authed_client(
    patch_transport: MagicMock, config: ClientConfig, session_store: SessionStore
) -> QRShareClient:
    """A client that already holds a session token."""
    session_store.start(
        Session(token="test_token", email="owner@example.com", full_name="Owner", user_id="u1")
    )
    return QRShareClient(config=config, session_store=session_store, cache=ListCache())


@pytest.fixture
def temp_pdf(tmp_path: Path) -> Path:
    """Create a temporary PDF file for testing."""
    pdf_path = tmp_path / "test.pdf"
    pdf_path.write_bytes(b"%PDF-1.4 test content")
    return pdf_path


@pytest.fixture
def temp_docx(tmp_path: Path) -> Path:
    docx_path = tmp_path / "letter.docx"
    docx_path.write_bytes(b"PK test docx content")
    return docx_path


@pytest.fixture
def large_photo(tmp_path: Path) -> Path:
    """A 3000x2000 noisy JPEG, big enough that compression helps."""
    return make_image(tmp_path / "photo.jpg", (3000, 2000), noise=True, quality=95)


@pytest.fixture
def small_png(tmp_path: Path) -> Path:
    return make_image(tmp_path / "icon.png", (100, 50))
