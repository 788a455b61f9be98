"""Data models for the qrshare library.

Records owned by the backend are parsed with pydantic and tolerate fields
this library does not know about. Results produced locally are plain
frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

AccessMode = Literal["public", "private"]


class ApiRecord(BaseModel):
    """Base for records returned by the backend."""

    model_config = ConfigDict(extra="ignore", frozen=True, coerce_numbers_to_str=True)

    @classmethod
    def parse_list(cls, data: Any) -> list[Any]:
        """Parse a JSON array, treating anything else as an empty list."""
        if not isinstance(data, list):
            return []
        return [cls.model_validate(item) for item in data]


class User(ApiRecord):
    """Account details returned at login."""

    user_id: str | None = None
    email: str
    full_name: str | None = None


class Document(ApiRecord):
    """A file stored in the user's account."""

    document_id: str
    file_name: str
    mime_type: str | None = None
    file_size_bytes: int | None = None
    is_public: bool = False


class Share(ApiRecord):
    """A share the current user issued for one of their documents."""

    share_id: str
    document_id: str
    access: AccessMode = "private"
    to_user_email: str | None = None
    expiry_time: str | None = None
    revoked: bool = False
    file_name: str | None = None
    url: str | None = None


class ReceivedShare(ApiRecord):
    """A share another user issued to the current user."""

    share_id: str
    document_id: str | None = None
    file_name: str | None = None
    access: AccessMode = "private"
    from_email: str | None = None
    from_full_name: str | None = None


class ShareInfo(ApiRecord):
    """Minimal, unauthenticated view of a share used by recipients."""

    document_id: str
    access: AccessMode
    to_user_email: str | None = None


class OtpChallenge(ApiRecord):
    """Returned after a one-time passcode was emailed."""

    expires_at: str | None = None


class ReductionRecord(ApiRecord):
    """A server-side size reduction history row."""

    id: str
    original_filename: str | None = None
    optimized_filename: str | None = None
    original_size_bytes: int | None = None
    optimized_size_bytes: int | None = None
    reduction_percent: float | None = None

    @property
    def saved_percent(self) -> str | None:
        """Percentage saved, formatted with two decimals."""
        if not self.original_size_bytes or self.optimized_size_bytes is None:
            return None
        saved = self.original_size_bytes - self.optimized_size_bytes
        if saved <= 0:
            return "0.00"
        return f"{saved / self.original_size_bytes * 100:.2f}"


@dataclass(frozen=True)
class UploadResult:
    """Result of an upload operation."""

    success: bool
    file_path: Path
    file_name: str
    document: Document | None = None
    error: str | None = None


@dataclass(frozen=True)
class ShareResult:
    """A freshly created share and whether the recipient was emailed.

    notified is None when no notification was attempted.
    """

    share: Share
    qr_url: str
    notified: bool | None = None
    notify_error: str | None = None

    @property
    def url(self) -> str | None:
        return self.share.url


@dataclass(frozen=True)
class DeleteOutcome:
    """Result of an optimistic delete.

    deleted: the item is gone (server confirmed, or verification found it absent)
    verified: the outcome was decided by re-fetching the authoritative list
    rolled_back: the displayed list was restored to its pre-delete snapshot
    """

    deleted: bool
    items: list[Any]
    verified: bool = False
    rolled_back: bool = False
    error: str | None = None


@dataclass(frozen=True)
class DownloadedFile:
    """A document fetched for viewing or download."""

    file_name: str
    content_type: str
    content: bytes
    size: int | None = None
    path: Path | None = None


@dataclass(frozen=True)
class CompressionResult:
    """Result of a client-side image compression."""

    source: Path
    output: Path
    original_size: int
    compressed_size: int
    width: int
    height: int
    content_type: str

    @property
    def saved(self) -> int:
        return self.original_size - self.compressed_size

    @property
    def improved(self) -> bool:
        """False means the re-encoded file is not smaller than the source."""
        return self.saved > 0

    @property
    def saved_percent(self) -> float:
        if self.original_size <= 0 or not self.improved:
            return 0.0
        return self.saved / self.original_size * 100


@dataclass(frozen=True)
class EmailCheck:
    """State of a recipient email existence check.

    exists is None while unknown (empty, invalid, failed or pending).
    """

    email: str = ""
    exists: bool | None = None
    checking: bool = False


@dataclass(frozen=True)
class Dashboard:
    """Everything the signed-in user sees at a glance."""

    documents: list[Document] = field(default_factory=list)
    my_shares: list[Share] = field(default_factory=list)
    received: list[ReceivedShare] = field(default_factory=list)
    stale: bool = False

    @property
    def private_shares(self) -> list[Share]:
        return [s for s in self.my_shares if s.access == "private"]

    @property
    def public_shares(self) -> list[Share]:
        return [s for s in self.my_shares if s.access == "public"]
