"""Share links and the QR codes that point at them."""

from __future__ import annotations

import re
from pathlib import Path
from urllib.parse import urlencode, urlparse

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from qrshare.config import DEFAULT_QR_ENDPOINT

_SHARE_PATH_RE = re.compile(r"/share/([^/?#]+)")
_BARE_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def share_url(frontend_url: str, share_id: str) -> str:
    return f"{frontend_url.rstrip('/')}/share/{share_id}"


def qr_image_url(data: str, size: int = 240, endpoint: str = DEFAULT_QR_ENDPOINT) -> str:
    """URL of a PNG rendering of data from the third-party QR service."""
    return f"{endpoint}?{urlencode({'size': f'{size}x{size}', 'data': data})}"


def render_qr_png(data: str, path: str | Path, *, box_size: int = 8, border: int = 4) -> Path:
    """Render data as a QR code PNG without calling any external service."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as fh:
        img.save(fh)
    return path


def parse_share_id(text: str) -> str:
    """Extract the share id from a scanned QR payload.

    Accepts a full share URL (".../share/<id>") or a bare id.

    Raises:
        ValueError: If no share id can be found
    """
    value = (text or "").strip()
    if not value:
        raise ValueError("Empty QR payload")
    if "://" in value or value.startswith("/"):
        match = _SHARE_PATH_RE.search(urlparse(value).path)
        if match:
            return match.group(1)
        raise ValueError(f"Not a share link: {value}")
    if _BARE_ID_RE.match(value):
        return value
    raise ValueError(f"Not a share link: {value}")
