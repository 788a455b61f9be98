"""Shared test helpers for qrshare tests."""

from __future__ import annotations

import random
from pathlib import Path
from typing import Any

import httpx
from PIL import Image


def make_image(
    path: Path,
    size: tuple[int, int],
    *,
    mode: str = "RGB",
    noise: bool = False,
    quality: int = 90,
) -> Path:
    """Write an image of the given size; noisy images compress poorly."""
    if noise:
        rng = random.Random(1234)
        img = Image.frombytes(mode, size, rng.randbytes(size[0] * size[1] * len(mode)))
    else:
        color: Any = (200, 30, 30, 128) if mode == "RGBA" else (200, 30, 30)
        img = Image.new(mode, size, color)
    save_kwargs: dict[str, Any] = {}
    if path.suffix.lower() in (".jpg", ".jpeg"):
        save_kwargs["quality"] = quality
    img.save(path, **save_kwargs)
    return path


def doc_json(document_id: str, file_name: str = "report.pdf", **extra: Any) -> dict[str, Any]:
    return {
        "document_id": document_id,
        "file_name": file_name,
        "mime_type": "application/pdf",
        "file_size_bytes": 2048,
        **extra,
    }


def share_json(share_id: str, document_id: str = "d1", **extra: Any) -> dict[str, Any]:
    return {"share_id": share_id, "document_id": document_id, "access": "private", **extra}


def file_response(
    content: bytes,
    *,
    content_type: str = "application/pdf",
    disposition: str | None = None,
) -> httpx.Response:
    headers = {"content-type": content_type}
    if disposition:
        headers["content-disposition"] = disposition
    return httpx.Response(200, content=content, headers=headers)
