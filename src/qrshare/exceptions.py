"""Exception hierarchy for the qrshare library."""

from __future__ import annotations

from typing import Any


class QRShareError(Exception):
    """Base exception for all qrshare errors."""

    pass


class ConfigError(QRShareError):
    """Raised when configuration values are invalid."""

    pass


class ApiError(QRShareError):
    """Raised when the backend rejects a request or cannot be reached.

    status_code is None when no response was received at all.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthenticationError(QRShareError):
    """Raised when login fails."""

    pass


class RegistrationError(QRShareError):
    """Raised when account registration fails."""

    pass


class SessionError(QRShareError):
    """Raised when there's an issue with the session state."""

    pass


class DeleteError(QRShareError):
    """Raised when an optimistic delete had to be rolled back.

    The outcome attribute holds the DeleteOutcome, including the restored list.
    """

    def __init__(self, message: str, outcome: Any = None) -> None:
        super().__init__(message)
        self.outcome = outcome


class ShareError(QRShareError):
    """Raised when a share operation fails."""

    pass


class ShareAccessError(QRShareError):
    """Raised when a share link cannot be opened."""

    pass


class OtpError(ShareAccessError):
    """Raised when sending or verifying a one-time passcode fails."""

    pass


class ConversionError(QRShareError):
    """Raised when a server-side conversion or reduction fails."""

    pass


class CompressionError(QRShareError):
    """Raised when an image cannot be decoded or re-encoded."""

    pass
