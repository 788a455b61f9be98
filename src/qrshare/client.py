"""Main QRShareClient class for interacting with the document-sharing service."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlencode

import httpx
from pydantic import ValidationError

from qrshare._internal.transport import ApiTransport, is_success_or_gone
from qrshare.cache import DOCS_KEY, MY_SHARES_KEY, RECEIVED_KEY, ListCache
from qrshare.config import ClientConfig
from qrshare.conversion import ConversionClient
from qrshare.email_check import EmailExistenceChecker, is_valid_email
from qrshare.exceptions import (
    ApiError,
    AuthenticationError,
    DeleteError,
    OtpError,
    RegistrationError,
    SessionError,
    ShareAccessError,
    ShareError,
)
from qrshare.models import (
    AccessMode,
    Dashboard,
    DeleteOutcome,
    Document,
    DownloadedFile,
    OtpChallenge,
    ReceivedShare,
    Share,
    ShareInfo,
    ShareResult,
    UploadResult,
    User,
)
from qrshare.optimistic import optimistic_delete
from qrshare.qr import qr_image_url, share_url
from qrshare.session import Session, SessionStore

logger = logging.getLogger(__name__)

_FILENAME_STAR_RE = re.compile(r"filename\*\s*=\s*([^']*)'[^']*'([^;]+)", re.IGNORECASE)
_FILENAME_RE = re.compile(r'filename\s*=\s*"?([^";]+)"?', re.IGNORECASE)


def filename_from_disposition(disposition: str | None) -> str | None:
    """Pick the filename out of a Content-Disposition header.

    The RFC 5987 filename* form wins over the plain filename form.
    """
    if not disposition:
        return None
    match = _FILENAME_STAR_RE.search(disposition)
    if match:
        return unquote(match.group(2).strip())
    match = _FILENAME_RE.search(disposition)
    if match:
        return match.group(1).strip()
    return None


def viewer_path(document_id: str, share_id: str, access: AccessMode) -> str:
    """Frontend path that opens a shared document; public shares are view-only."""
    path = f"/view/{document_id}?{urlencode({'share_id': share_id})}"
    return f"{path}&viewOnly=1" if access == "public" else path


def can_send_otp(info: ShareInfo, email: str, exists: bool | None) -> bool:
    """Whether email may request a passcode for the share described by info."""
    email = (email or "").strip().lower()
    if info.access != "private" or not email or exists is not True:
        return False
    intended = (info.to_user_email or "").strip().lower()
    return not intended or intended == email


class QRShareClient:
    """Client for the document-sharing service.

    Supports both context manager and manual session patterns.

    Example (context manager - recommended):
        with QRShareClient("user@example.com", "password") as client:
            client.upload_document("report.pdf")

    Example (manual session):
        client = QRShareClient()
        client.login("user@example.com", "password")
        for doc in client.list_documents():
            print(doc.file_name)
        client.close()
    """

    def __init__(
        self,
        email: str | None = None,
        password: str | None = None,
        *,
        config: ClientConfig | None = None,
        session_store: SessionStore | None = None,
        cache: ListCache | None = None,
        auto_login: bool = True,
        http_transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            email: Account email address
            password: Account password
            config: Service URLs and limits (defaults to ClientConfig())
            session_store: Where the signed-in session lives (in-memory by default)
            cache: Cache for the last fetched lists (in-memory by default)
            auto_login: If True and credentials provided, login immediately
            http_transport: Custom httpx transport, mainly for tests
        """
        self.config = config or ClientConfig()
        self.session = session_store or SessionStore()
        self.cache = cache or ListCache()
        self._http_transport = http_transport
        self._transport: ApiTransport | None = None
        self._conversions: ConversionClient | None = None

        if auto_login and email and password:
            self.login(email, password)

    def __enter__(self) -> QRShareClient:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit context manager."""
        self.close()

    @property
    def is_authenticated(self) -> bool:
        """Check if the client holds a session token."""
        return self.session.is_authenticated

    @property
    def conversions(self) -> ConversionClient:
        """Server-side conversion and size reduction operations."""
        if self._conversions is None:
            self._conversions = ConversionClient(self._get_transport, self.config, self.session)
        return self._conversions

    def _ensure_authenticated(self) -> None:
        if not self.is_authenticated:
            raise SessionError("Not authenticated. Call login() first.")

    def _get_transport(self) -> ApiTransport:
        if self._transport is None:
            self._transport = ApiTransport(
                self.config.api_base,
                timeout=self.config.timeout,
                token_provider=lambda: self.session.token,
                transport=self._http_transport,
            )
        return self._transport

    def _user_headers(self) -> dict[str, str]:
        user_id = self.session.current.user_id
        return {"x-user-id": user_id} if user_id else {}

    # ------------------------------------------------------------------
    # Authentication

    def register(self, full_name: str, email: str, password: str) -> None:
        """Create an account. The user still has to login() afterwards.

        Raises:
            RegistrationError: If a field is missing or the server refuses
        """
        if not full_name or not email or not password:
            raise RegistrationError("Full name, email and password are required")
        try:
            self._get_transport().post_json(
                "/auth/register",
                json={"full_name": full_name, "email": email, "password": password},
            )
        except ApiError as e:
            raise RegistrationError(e.message or "Registration failed") from e
        logger.info(f"Registered {email}")

    def login(self, email: str, password: str) -> str:
        """Login and start a session.

        A stored session for the same email is reused if the server still
        accepts its token.

        Returns:
            Bearer token on success

        Raises:
            AuthenticationError: If login fails
        """
        if not email or not password:
            raise AuthenticationError("Email and password are required")

        current = self.session.current
        if current.token and current.email and current.email.lower() == email.lower():
            try:
                self._get_transport().get_json("/documents")
                logger.info("Using stored session token")
                return current.token
            except ApiError:
                logger.info("Stored session token rejected; logging in again")
                self.session.end()

        try:
            data = self._get_transport().post_json(
                "/auth/login", json={"email": email, "password": password}
            )
        except ApiError as e:
            raise AuthenticationError(e.message or "Login failed") from e

        token = (data or {}).get("token")
        if not token:
            raise AuthenticationError("Login response did not include a token")
        user = User.model_validate(data.get("user") or {"email": email})
        self.session.start(
            Session(
                token=token,
                email=user.email,
                full_name=user.full_name,
                user_id=user.user_id,
            )
        )
        logger.info(f"Logged in as {user.email}")
        return str(token)

    def logout(self) -> None:
        """End the session and forget cached lists."""
        self.session.end()
        self.cache.clear()

    def email_exists(self, email: str) -> bool:
        """Ask the server whether email belongs to a registered user."""
        data = self._get_transport().get_json(
            "/auth/exists", params={"email": email.strip().lower()}
        )
        return bool((data or {}).get("exists"))

    # ------------------------------------------------------------------
    # Documents

    def _store(self, key: str, items: list[Any]) -> None:
        self.cache.write(key, [item.model_dump() for item in items])

    def cached_documents(self) -> list[Document]:
        return Document.parse_list(self.cache.read(DOCS_KEY, []))

    def cached_my_shares(self) -> list[Share]:
        return Share.parse_list(self.cache.read(MY_SHARES_KEY, []))

    def cached_received(self) -> list[ReceivedShare]:
        return ReceivedShare.parse_list(self.cache.read(RECEIVED_KEY, []))

    def list_documents(self) -> list[Document]:
        """Fetch the user's documents and cache them."""
        self._ensure_authenticated()
        docs = Document.parse_list(self._get_transport().get_json("/documents"))
        self._store(DOCS_KEY, docs)
        return docs

    def upload_document(self, file_path: str | Path) -> UploadResult:
        """Upload a file to the user's documents.

        Returns:
            UploadResult with success status and the stored Document

        Raises:
            SessionError: If not authenticated
        """
        self._ensure_authenticated()
        file_path = Path(file_path)

        if not file_path.is_file():
            return UploadResult(
                success=False,
                file_path=file_path,
                file_name=file_path.name,
                error=f"File not found: {file_path}",
            )
        if file_path.stat().st_size > self.config.max_upload_bytes:
            return UploadResult(
                success=False,
                file_path=file_path,
                file_name=file_path.name,
                error=f"Max {self.config.max_upload_mb}MB",
            )

        try:
            with file_path.open("rb") as fh:
                data = self._get_transport().post_json(
                    "/documents/upload", files={"file": (file_path.name, fh)}
                )
            document = Document.model_validate(data)
        except Exception as e:
            error_msg = f"Upload failed: {e}"
            logger.error(error_msg)
            return UploadResult(
                success=False,
                file_path=file_path,
                file_name=file_path.name,
                error=error_msg,
            )

        self._store(DOCS_KEY, [document, *self.cached_documents()])
        logger.info(f"Uploaded {file_path.name} as {document.document_id}")
        return UploadResult(
            success=True,
            file_path=file_path,
            file_name=file_path.name,
            document=document,
        )

    def upload_many(
        self,
        file_paths: list[str | Path],
        *,
        stop_on_error: bool = False,
    ) -> list[UploadResult]:
        """Upload several files, optionally stopping at the first failure."""
        results: list[UploadResult] = []
        for file_path in file_paths:
            result = self.upload_document(file_path)
            results.append(result)
            if stop_on_error and not result.success:
                break
        return results

    def delete_document(self, document_id: str) -> DeleteOutcome:
        """Delete a document optimistically.

        Raises:
            SessionError: If not authenticated
            DeleteError: If the document is still on the server; the cached
                list has been restored by then
        """
        self._ensure_authenticated()
        transport = self._get_transport()
        outcome = optimistic_delete(
            self.cached_documents(),
            document_id,
            key=lambda d: d.document_id,
            delete=lambda: transport.request(
                "DELETE", f"/documents/{document_id}", accept=is_success_or_gone
            ),
            refetch=lambda: Document.parse_list(transport.get_json("/documents")),
            persist=lambda items: self._store(DOCS_KEY, items),
        )
        if not outcome.deleted:
            raise DeleteError(f"Delete failed: {outcome.error}", outcome=outcome)
        return outcome

    def _fetch_file(self, kind: str, document_id: str, share_id: str | None) -> DownloadedFile:
        params = {"share_id": share_id} if share_id else None
        try:
            response = self._get_transport().request(
                "GET",
                f"/documents/{kind}/{document_id}",
                params=params,
                headers=self._user_headers(),
            )
        except ApiError as e:
            if kind == "view":
                raise ShareAccessError(e.message or "Unable to open document") from e
            raise ShareAccessError(e.message or "Download not allowed") from e

        length = response.headers.get("content-length")
        return DownloadedFile(
            file_name=filename_from_disposition(response.headers.get("content-disposition"))
            or f"document-{document_id}",
            content_type=response.headers.get("content-type") or "application/octet-stream",
            content=response.content,
            size=int(length) if length and length.isdigit() else len(response.content),
        )

    def view_document(self, document_id: str, share_id: str | None = None) -> DownloadedFile:
        """Fetch a document for inline viewing."""
        return self._fetch_file("view", document_id, share_id)

    def download_document(
        self,
        document_id: str,
        share_id: str | None = None,
        dest: str | Path | None = None,
    ) -> DownloadedFile:
        """Download a document, writing it to dest when given.

        dest may be a directory (the server's filename is used) or a file path.
        """
        downloaded = self._fetch_file("download", document_id, share_id)
        if dest is None:
            return downloaded
        target = Path(dest)
        if target.is_dir():
            target = target / Path(downloaded.file_name).name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(downloaded.content)
        logger.info(f"Saved {downloaded.file_name} to {target}")
        return DownloadedFile(
            file_name=downloaded.file_name,
            content_type=downloaded.content_type,
            content=downloaded.content,
            size=downloaded.size,
            path=target,
        )

    # ------------------------------------------------------------------
    # Shares

    def share_link(self, share_id: str) -> str:
        return share_url(self.config.frontend_url, share_id)

    def qr_url(self, share_id: str, size: int = 240) -> str:
        return qr_image_url(self.share_link(share_id), size=size, endpoint=self.config.qr_endpoint)

    def list_my_shares(self) -> list[Share]:
        """Fetch the shares the user issued and cache them."""
        self._ensure_authenticated()
        shares = Share.parse_list(self._get_transport().get_json("/shares/mine"))
        self._store(MY_SHARES_KEY, shares)
        return shares

    def private_shares(self) -> list[Share]:
        return [s for s in self.list_my_shares() if s.access == "private"]

    def public_shares(self) -> list[Share]:
        return [s for s in self.list_my_shares() if s.access == "public"]

    def list_received(self) -> list[ReceivedShare]:
        """Fetch shares other users issued to this user and cache them."""
        self._ensure_authenticated()
        received = ReceivedShare.parse_list(self._get_transport().get_json("/shares/received"))
        self._store(RECEIVED_KEY, received)
        return received

    def load_dashboard(self) -> Dashboard:
        """Fetch documents, sent and received shares in one go.

        Falls back to the cached lists (stale=True) if any request fails
        or returns records that cannot be parsed.
        """
        self._ensure_authenticated()
        try:
            return Dashboard(
                documents=self.list_documents(),
                my_shares=self.list_my_shares(),
                received=self.list_received(),
            )
        except (ApiError, ValidationError) as e:
            logger.error(f"Failed to load dashboard: {e}")
            return Dashboard(
                documents=self.cached_documents(),
                my_shares=self.cached_my_shares(),
                received=self.cached_received(),
                stale=True,
            )

    def _share_action(self, method: str, path: str, failure: str, **kwargs: Any) -> list[Share]:
        self._ensure_authenticated()
        try:
            self._get_transport().request(method, path, **kwargs)
        except ApiError as e:
            raise ShareError(e.message or failure) from e
        return self.list_my_shares()

    def notify_share(self, share_id: str) -> None:
        """Ask the server to email the recipient a link to the share."""
        self._ensure_authenticated()
        try:
            self._get_transport().post_json("/shares/notify-share", json={"share_id": share_id})
        except ApiError as e:
            raise ShareError(e.message or "Failed to send email") from e

    def create_share(
        self,
        document_id: str,
        *,
        to_email: str | None = None,
        expiry_time: datetime | str | None = None,
        access: AccessMode = "private",
        notify: bool = True,
    ) -> ShareResult:
        """Share a document, optionally with a named recipient.

        When a recipient is given and notify is true the server emails them
        the link; a failed notification does not undo the share.

        Raises:
            ValueError: If access or the recipient email is invalid
            ShareError: If the server refuses the share
        """
        self._ensure_authenticated()
        if access not in ("public", "private"):
            raise ValueError(f"access must be 'public' or 'private', got {access!r}")
        to_email = (to_email or "").strip() or None
        if to_email and not is_valid_email(to_email):
            raise ValueError(f"Invalid recipient email: {to_email}")

        payload = {
            "document_id": document_id,
            "to_email": to_email,
            "expiry_time": _iso(expiry_time),
            "access": access,
        }
        try:
            data = self._get_transport().post_json("/shares", json=payload)
        except ApiError as e:
            raise ShareError(e.message or "Share failed") from e

        data = dict(data or {})
        if not data.get("share_id"):
            raise ShareError("Share response did not include a share id")
        share = Share.model_validate(
            {
                "document_id": document_id,
                "access": access,
                "expiry_time": payload["expiry_time"],
                **data,
                "to_user_email": to_email,
                "url": self.share_link(str(data["share_id"])),
            }
        )
        self.list_my_shares()

        notified: bool | None = None
        notify_error: str | None = None
        if to_email and notify:
            try:
                self.notify_share(share.share_id)
                notified = True
            except ShareError as e:
                logger.warning(f"Share {share.share_id} created but notification failed: {e}")
                notified = False
                notify_error = str(e)

        return ShareResult(
            share=share,
            qr_url=self.qr_url(share.share_id),
            notified=notified,
            notify_error=notify_error,
        )

    def revoke_share(self, share_id: str) -> list[Share]:
        return self._share_action("POST", f"/shares/{share_id}/revoke", "Failed to revoke")

    def expire_now(self, share_id: str) -> list[Share]:
        return self._share_action("POST", f"/shares/{share_id}/expire-now", "Failed to expire")

    def update_expiry(self, share_id: str, expiry_time: datetime | str | None) -> list[Share]:
        """Set a new expiry, or remove it when expiry_time is None."""
        return self._share_action(
            "PATCH",
            f"/shares/{share_id}/expiry",
            "Failed to update expiry",
            json={"expiry_time": _iso(expiry_time)},
        )

    def delete_share(self, share_id: str) -> DeleteOutcome:
        """Delete a share optimistically; see delete_document()."""
        self._ensure_authenticated()
        transport = self._get_transport()
        outcome = optimistic_delete(
            self.cached_my_shares(),
            share_id,
            key=lambda s: s.share_id,
            delete=lambda: transport.request(
                "DELETE", f"/shares/{share_id}", accept=is_success_or_gone
            ),
            refetch=lambda: Share.parse_list(transport.get_json("/shares/mine")),
            persist=lambda items: self._store(MY_SHARES_KEY, items),
        )
        if not outcome.deleted:
            raise DeleteError(f"Failed to delete share: {outcome.error}", outcome=outcome)
        return outcome

    # ------------------------------------------------------------------
    # Recipient side

    def get_share(self, share_id: str) -> ShareInfo:
        """Look up what a share link points at. No login required."""
        try:
            data = self._get_transport().get_json(f"/shares/{share_id}/minimal")
            return ShareInfo.model_validate(data)
        except ApiError as e:
            raise ShareAccessError(e.message or "Invalid or expired share") from e
        except ValueError as e:
            raise ShareAccessError("Invalid or expired share") from e

    def send_otp(self, share_id: str, email: str) -> OtpChallenge:
        """Email a one-time passcode for a private share."""
        try:
            data = self._get_transport().post_json(
                f"/shares/{share_id}/otp/send", json={"email": email.strip().lower()}
            )
        except ApiError as e:
            raise OtpError(e.message or "Failed to send OTP") from e
        return OtpChallenge.model_validate(data or {})

    def verify_otp(self, share_id: str, email: str, otp: str) -> None:
        """Check a passcode; on success the email is remembered as verified."""
        email = email.strip().lower()
        if not otp:
            raise OtpError("OTP is required")
        try:
            self._get_transport().post_json(
                f"/shares/{share_id}/otp/verify", json={"email": email, "otp": otp}
            )
        except ApiError as e:
            raise OtpError(e.message or "Invalid or expired OTP") from e
        self.session.mark_verified(email)

    def email_checker(self, **kwargs: Any) -> EmailExistenceChecker:
        """An EmailExistenceChecker wired to this client's lookup."""
        return EmailExistenceChecker(self.email_exists, **kwargs)

    def close(self) -> None:
        """Close the client and release the HTTP connection pool."""
        if self._transport is not None:
            self._transport.close()
        self._transport = None
        self._conversions = None


def _iso(value: datetime | str | None) -> str | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return value
