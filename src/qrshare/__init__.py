"""qrshare - A Python client for the QR document-sharing service.

Example usage:
    from qrshare import QRShareClient

    # Using context manager (recommended)
    with QRShareClient("user@example.com", "password") as client:
        result = client.upload_document("report.pdf")
        share = client.create_share(result.document.document_id, access="public")
        print(share.url, share.qr_url)

    # Manual session management
    client = QRShareClient()
    client.login("user@example.com", "password")
    client.delete_document("doc-123")
    client.close()
"""

from qrshare.client import QRShareClient, can_send_otp, viewer_path
from qrshare.config import ClientConfig, load_config
from qrshare.email_check import EmailExistenceChecker, RequestSequencer
from qrshare.exceptions import (
    ApiError,
    AuthenticationError,
    CompressionError,
    ConfigError,
    ConversionError,
    DeleteError,
    OtpError,
    QRShareError,
    RegistrationError,
    SessionError,
    ShareAccessError,
    ShareError,
)
from qrshare.imaging import compress_image
from qrshare.models import (
    CompressionResult,
    Dashboard,
    DeleteOutcome,
    Document,
    DownloadedFile,
    EmailCheck,
    OtpChallenge,
    ReceivedShare,
    ReductionRecord,
    Share,
    ShareInfo,
    ShareResult,
    UploadResult,
    User,
)
from qrshare.session import Session, SessionStore

__version__ = "0.1.0"

__all__ = [
    # Main client
    "QRShareClient",
    "can_send_otp",
    "viewer_path",
    # Configuration and session
    "ClientConfig",
    "load_config",
    "Session",
    "SessionStore",
    # Client-side helpers
    "EmailExistenceChecker",
    "RequestSequencer",
    "compress_image",
    # Models
    "CompressionResult",
    "Dashboard",
    "DeleteOutcome",
    "Document",
    "DownloadedFile",
    "EmailCheck",
    "OtpChallenge",
    "ReceivedShare",
    "ReductionRecord",
    "Share",
    "ShareInfo",
    "ShareResult",
    "UploadResult",
    "User",
    # Exceptions
    "QRShareError",
    "ApiError",
    "AuthenticationError",
    "CompressionError",
    "ConfigError",
    "ConversionError",
    "DeleteError",
    "OtpError",
    "RegistrationError",
    "SessionError",
    "ShareAccessError",
    "ShareError",
]
