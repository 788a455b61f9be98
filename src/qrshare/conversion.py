"""Server-side conversion, compression and size reduction."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

import httpx

from qrshare.exceptions import ApiError, ConversionError, SessionError
from qrshare.models import ReductionRecord

if TYPE_CHECKING:
    from qrshare._internal.transport import ApiTransport
    from qrshare.config import ClientConfig
    from qrshare.session import SessionStore

logger = logging.getLogger(__name__)

PDF_PRESETS = ("screen", "ebook", "printer", "prepress")
REDUCE_PATH = "/api/reduce"

Operation = Literal["docx-to-pdf", "compress-pdf", "compress-image"]


def suggest_output_name(name: str | None, operation: str) -> str:
    """Name for a converted file, derived from the source name."""
    stem = Path(name).stem if name else "document"
    if operation == "docx-to-pdf":
        return f"{stem}-converted.pdf"
    if operation == "compress-pdf":
        return f"{stem}-compressed.pdf"
    if operation == "compress-image":
        return f"{stem}-image-min.jpg"
    return "output.bin"


class ConversionClient:
    """Operations that send a file to the server and get a file back.

    Obtained through QRShareClient.conversions; shares the client's
    transport and session.
    """

    def __init__(
        self,
        get_transport: Callable[[], ApiTransport],
        config: ClientConfig,
        session: SessionStore,
    ) -> None:
        self._get_transport = get_transport
        self._config = config
        self._session = session

    def _check_source(self, path: Path) -> None:
        if not path.is_file():
            raise ConversionError(f"File not found: {path}")
        if path.stat().st_size > self._config.max_upload_bytes:
            raise ConversionError(f"Max {self._config.max_upload_mb}MB allowed")

    def _post_file(
        self,
        path: Path,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        data: dict[str, str] | None = None,
    ) -> httpx.Response:
        self._check_source(path)
        try:
            with path.open("rb") as fh:
                return self._get_transport().request(
                    "POST",
                    url,
                    params=params,
                    data=data,
                    files={"file": (path.name, fh)},
                )
        except ApiError as e:
            raise ConversionError(e.message or "Operation failed") from e

    def _save(self, response: httpx.Response, dest: Path) -> Path:
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(response.content)
        logger.info(f"Wrote {dest} ({len(response.content)} bytes)")
        return dest

    def _file_operation(
        self,
        source: str | Path,
        url: str,
        operation: Operation,
        dest: str | Path | None,
        params: dict[str, Any] | None = None,
    ) -> Path:
        source = Path(source)
        target = Path(dest) if dest else source.parent / suggest_output_name(source.name, operation)
        if target.is_dir():
            target = target / suggest_output_name(source.name, operation)
        response = self._post_file(source, url, params=params)
        return self._save(response, target)

    def docx_to_pdf(self, source: str | Path, dest: str | Path | None = None) -> Path:
        """Convert a Word document to PDF; returns the written file."""
        return self._file_operation(source, "/convert/docx-to-pdf", "docx-to-pdf", dest)

    def compress_pdf(
        self,
        source: str | Path,
        preset: str = "screen",
        dest: str | Path | None = None,
    ) -> Path:
        """Recompress a PDF with one of the Ghostscript-style presets."""
        if preset not in PDF_PRESETS:
            raise ValueError(f"preset must be one of {', '.join(PDF_PRESETS)}")
        return self._file_operation(
            source, "/compress/pdf", "compress-pdf", dest, params={"preset": preset}
        )

    def compress_image_remote(
        self,
        source: str | Path,
        quality: int = 75,
        dest: str | Path | None = None,
    ) -> Path:
        """Recompress an image on the server at quality 1-100."""
        if not 1 <= quality <= 100:
            raise ValueError("quality must be between 1 and 100")
        return self._file_operation(
            source, "/compress/image", "compress-image", dest, params={"q": quality}
        )

    def pdf_to_jpg(self, source: str | Path, dpi: int = 150) -> list[str]:
        """Render each PDF page to a JPEG on the server.

        Returns:
            Absolute URLs of the rendered pages
        """
        if not 72 <= dpi <= 300:
            raise ValueError("dpi must be between 72 and 300")
        response = self._post_file(Path(source), "/convert/pdf-to-jpg", params={"dpi": dpi})
        try:
            files = response.json().get("files") or []
        except (ValueError, AttributeError) as e:
            raise ConversionError("Unexpected response from pdf-to-jpg") from e
        base = self._config.api_base.rstrip("/")
        return [
            f if f.startswith("http") else f"{base}{f}" for f in files if isinstance(f, str)
        ]

    # ------------------------------------------------------------------
    # Size reduction history

    def _user_id(self) -> str | None:
        return self._session.current.user_id

    def reduce(
        self,
        source: str | Path,
        *,
        quality: float = 0.7,
        max_width: int = 1920,
        max_height: int = 1920,
    ) -> ReductionRecord:
        """Optimize a PDF or office document on the server.

        The server keeps a history row, returned here.
        """
        form = {
            "quality": str(quality),
            "maxWidth": str(max_width),
            "maxHeight": str(max_height),
        }
        user_id = self._user_id()
        if user_id:
            form["user_id"] = user_id
        response = self._post_file(Path(source), f"{REDUCE_PATH}/upload", data=form)
        try:
            record = ReductionRecord.model_validate(response.json())
        except ValueError as e:
            raise ConversionError("Unexpected response from reduce") from e
        logger.info(f"Reduced {record.original_filename} -> {record.optimized_filename}")
        return record

    def list_reductions(self) -> list[ReductionRecord]:
        """Reduction history for the signed-in user; empty without a user id."""
        user_id = self._user_id()
        if not user_id:
            return []
        try:
            data = self._get_transport().get_json(REDUCE_PATH, params={"user_id": user_id})
        except ApiError as e:
            raise ConversionError(e.message or "Failed to load history") from e
        return ReductionRecord.parse_list(data)

    def delete_reduction(self, reduction_id: str) -> None:
        if not self._session.is_authenticated:
            raise SessionError("Not authenticated. Call login() first.")
        try:
            self._get_transport().request("DELETE", f"{REDUCE_PATH}/{reduction_id}")
        except ApiError as e:
            raise ConversionError(e.message or "Failed to delete") from e

    def reduction_url(self, reduction_id: str, kind: Literal["preview", "download"] = "download") -> str:
        return f"{self._config.api_base.rstrip('/')}{REDUCE_PATH}/{reduction_id}/{kind}"
