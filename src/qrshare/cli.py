"""Command-line interface for qrshare."""

from __future__ import annotations

import functools
import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from qrshare import (
    AuthenticationError,
    DeleteError,
    QRShareClient,
    SessionStore,
    can_send_otp,
    compress_image,
    load_config,
)
from qrshare.cache import ListCache
from qrshare.conversion import PDF_PRESETS
from qrshare.email_check import is_valid_email, suggest_access
from qrshare.imaging import is_image
from qrshare.qr import parse_share_id, render_qr_png

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_client() -> QRShareClient:
    """Create a QRShareClient that resumes the stored session, if any."""
    config = load_config()
    return QRShareClient(
        config=config,
        session_store=SessionStore(config.session_path),
        cache=ListCache(config.cache_dir),
        auto_login=False,
    )


def _ensure_login(client: QRShareClient, email: str | None, password: str | None) -> None:
    """Prompt for credentials when there is no stored session."""
    if client.is_authenticated:
        return
    if not email:
        email = click.prompt("Email")
    if not password:
        password = click.prompt("Password", hide_input=True)
    client.login(email, password)


def _fail(message: str) -> None:
    click.echo(click.style(message, fg="red"), err=True)
    sys.exit(1)


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Turn library errors into a red message and exit status 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (click.ClickException, click.Abort):
            raise
        except AuthenticationError as e:
            _fail(f"Authentication failed: {e}")
        except Exception as e:
            _fail(f"Error: {e}")

    return wrapper


def credential_options(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option(
        "--password", "-p", envvar="QRSHARE_PASSWORD", help="Account password"
    )(func)
    func = click.option("--email", "-e", envvar="QRSHARE_EMAIL", help="Account email")(func)
    return func


@click.group()
@click.version_option(package_name="qrshare")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool) -> None:
    """qrshare CLI - Upload, share and convert documents."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format=LOG_FORMAT)


# ----------------------------------------------------------------------
# Account


@main.command()
@click.option("--name", "full_name", prompt="Full name", help="Your full name")
@click.option("--email", "-e", prompt=True, help="Account email")
@click.option(
    "--password",
    "-p",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="Account password",
)
@handle_errors
def register(full_name: str, email: str, password: str) -> None:
    """Create a new account."""
    client = get_client()
    try:
        client.register(full_name, email, password)
        click.echo(click.style("Registered successfully! Please login.", fg="green"))
    finally:
        client.close()


@main.command()
@click.option("--email", "-e", prompt=True, help="Account email")
@click.option("--password", "-p", prompt=True, hide_input=True, help="Account password")
@handle_errors
def login(email: str, password: str) -> None:
    """Login and store the session for later commands."""
    client = get_client()
    try:
        client.login(email, password)
        click.echo(click.style("Welcome back!", fg="green"))
    except AuthenticationError as e:
        _fail(f"Login failed: {e}")
    finally:
        client.close()


@main.command()
@handle_errors
def logout() -> None:
    """Forget the stored session and cached lists."""
    client = get_client()
    client.logout()
    client.close()
    click.echo("Logged out.")


@main.command()
@handle_errors
def whoami() -> None:
    """Show the signed-in user."""
    client = get_client()
    session = client.session.current
    client.close()
    if not session.is_authenticated:
        _fail("Not logged in.")
    name = f" ({session.full_name})" if session.full_name else ""
    click.echo(f"{session.email}{name}")


# ----------------------------------------------------------------------
# Documents


@main.command("docs")
@credential_options
@handle_errors
def list_documents(email: str | None, password: str | None) -> None:
    """List your documents."""
    client = get_client()
    try:
        _ensure_login(client, email, password)
        docs = client.list_documents()
        if not docs:
            click.echo("No documents yet.")
        for doc in docs:
            visibility = "public" if doc.is_public else "private"
            click.echo(
                f"  {doc.document_id}  {doc.file_name}  "
                f"({_format_size(doc.file_size_bytes)}, {visibility})"
            )
    finally:
        client.close()


@main.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@credential_options
@handle_errors
def upload(files: tuple[Path, ...], email: str | None, password: str | None) -> None:
    """Upload files to your documents.

    FILES: One or more files to upload.

    Examples:

        qrshare upload report.pdf

        qrshare upload *.pdf
    """
    client = get_client()
    try:
        _ensure_login(client, email, password)
        results = client.upload_many(list(files))

        success_count = 0
        for result in results:
            if result.success and result.document is not None:
                click.echo(
                    click.style("✓ ", fg="green")
                    + f"{result.file_name} -> {result.document.document_id}"
                )
                success_count += 1
            else:
                click.echo(
                    click.style("✗ ", fg="red") + f"{result.file_name}: {result.error}",
                    err=True,
                )

        total = len(results)
        if success_count == total:
            click.echo(click.style(f"\nAll {total} file(s) uploaded successfully!", fg="green"))
        else:
            click.echo(f"\n{success_count}/{total} file(s) uploaded.", err=True)
            sys.exit(1)
    finally:
        client.close()


@main.command("rm")
@click.argument("document_id")
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation")
@credential_options
@handle_errors
def delete_document(document_id: str, yes: bool, email: str | None, password: str | None) -> None:
    """Delete a document."""
    if not yes:
        click.confirm(f"Delete document {document_id}?", abort=True)
    client = get_client()
    try:
        _ensure_login(client, email, password)
        client.delete_document(document_id)
        click.echo(click.style("Document deleted", fg="green"))
    except DeleteError as e:
        _fail(str(e))
    finally:
        client.close()


@main.command()
@click.argument("document_id")
@click.option("--share-id", help="Share granting access to the document")
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=Path("."),
    help="File or directory to write to (default: current directory)",
)
@handle_errors
def download(document_id: str, share_id: str | None, output: Path) -> None:
    """Download a document you own or that was shared with you."""
    client = get_client()
    try:
        downloaded = client.download_document(document_id, share_id=share_id, dest=output)
        click.echo(
            click.style(f"Saved {downloaded.path}", fg="green")
            + f" ({_format_size(downloaded.size)})"
        )
    finally:
        client.close()


# ----------------------------------------------------------------------
# Shares


@main.command("shares")
@click.option("--private", "access", flag_value="private", help="Only private shares")
@click.option("--public", "access", flag_value="public", help="Only public shares")
@credential_options
@handle_errors
def list_shares(access: str | None, email: str | None, password: str | None) -> None:
    """List shares you created."""
    client = get_client()
    try:
        _ensure_login(client, email, password)
        shares = client.list_my_shares()
        if access:
            shares = [s for s in shares if s.access == access]
        if not shares:
            click.echo(f"No {access + ' ' if access else ''}shares yet.")
        for share in shares:
            expiry = f"expires {share.expiry_time}" if share.expiry_time else "no expiry"
            recipient = f" -> {share.to_user_email}" if share.to_user_email else ""
            state = click.style(" [revoked]", fg="red") if share.revoked else ""
            click.echo(
                f"  {share.share_id}  {share.file_name or share.document_id}  "
                f"{share.access}{recipient}  ({expiry}){state}"
            )
            click.echo(f"      {client.share_link(share.share_id)}")
    finally:
        client.close()


@main.command()
@credential_options
@handle_errors
def received(email: str | None, password: str | None) -> None:
    """List documents others shared with you."""
    client = get_client()
    try:
        _ensure_login(client, email, password)
        shares = client.list_received()
        if not shares:
            click.echo("Nothing shared with you yet.")
        for share in shares:
            sender = share.from_full_name or share.from_email or "unknown sender"
            click.echo(f"  {share.file_name or share.share_id}  from {sender}")
            click.echo(f"      {client.share_link(share.share_id)}")
    finally:
        client.close()


@main.command("share")
@click.argument("document_id")
@click.option("--to", "to_email", help="Recipient email")
@click.option("--expires", help="Expiry time (ISO 8601)")
@click.option(
    "--access",
    type=click.Choice(["private", "public"]),
    default=None,
    help="Access mode (default: private, or public for unregistered recipients)",
)
@click.option("--no-notify", is_flag=True, help="Don't email the recipient")
@click.option("--qr", "qr_path", type=click.Path(path_type=Path), help="Save a QR code PNG")
@credential_options
@handle_errors
def create_share(
    document_id: str,
    to_email: str | None,
    expires: str | None,
    access: str | None,
    no_notify: bool,
    qr_path: Path | None,
    email: str | None,
    password: str | None,
) -> None:
    """Create a share link for a document."""
    client = get_client()
    try:
        _ensure_login(client, email, password)
        if access is None:
            access = "private"
            if to_email and is_valid_email(to_email):
                access = suggest_access(client.email_exists(to_email), access)

        result = client.create_share(
            document_id,
            to_email=to_email,
            expiry_time=expires,
            access=access,  # type: ignore[arg-type]
            notify=not no_notify,
        )
        click.echo(click.style(f"Share created ({access})", fg="green"))
        click.echo(f"  Link: {result.url}")
        click.echo(f"  QR:   {result.qr_url}")
        if result.notified:
            click.echo(f"  Email sent to {to_email}")
        elif result.notified is False:
            click.echo(click.style(f"  Failed to send email: {result.notify_error}", fg="yellow"))
        if qr_path and result.url:
            render_qr_png(result.url, qr_path)
            click.echo(f"  QR code saved to {qr_path}")
    finally:
        client.close()


@main.command()
@click.argument("share_id")
@credential_options
@handle_errors
def revoke(share_id: str, email: str | None, password: str | None) -> None:
    """Revoke a share."""
    client = get_client()
    try:
        _ensure_login(client, email, password)
        client.revoke_share(share_id)
        click.echo(click.style("Share revoked", fg="green"))
    finally:
        client.close()


@main.command()
@click.argument("share_id")
@credential_options
@handle_errors
def expire(share_id: str, email: str | None, password: str | None) -> None:
    """Expire a share immediately."""
    client = get_client()
    try:
        _ensure_login(client, email, password)
        client.expire_now(share_id)
        click.echo(click.style("Share expired", fg="green"))
    finally:
        client.close()


@main.command()
@click.argument("share_id")
@click.argument("when", required=False)
@click.option("--clear", is_flag=True, help="Remove the expiry")
@credential_options
@handle_errors
def expiry(
    share_id: str, when: str | None, clear: bool, email: str | None, password: str | None
) -> None:
    """Set (WHEN, ISO 8601) or remove (--clear) a share's expiry."""
    if not when and not clear:
        raise click.UsageError("Give a new expiry time or --clear")
    client = get_client()
    try:
        _ensure_login(client, email, password)
        client.update_expiry(share_id, None if clear else when)
        click.echo(click.style("Expiry removed" if clear else "Expiry updated", fg="green"))
    finally:
        client.close()


@main.command()
@click.argument("share_id")
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation")
@credential_options
@handle_errors
def unshare(share_id: str, yes: bool, email: str | None, password: str | None) -> None:
    """Delete a share."""
    if not yes:
        click.confirm(f"Delete share {share_id}?", abort=True)
    client = get_client()
    try:
        _ensure_login(client, email, password)
        client.delete_share(share_id)
        click.echo(click.style("Share deleted", fg="green"))
    except DeleteError as e:
        _fail(str(e))
    finally:
        client.close()


@main.command()
@click.argument("share_id")
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Save a QR code PNG")
@click.option("--size", default=240, show_default=True, help="Size of the hosted QR image")
@handle_errors
def qr(share_id: str, output: Path | None, size: int) -> None:
    """Print the link and QR code for a share."""
    client = get_client()
    link = client.share_link(share_id)
    click.echo(f"Link: {link}")
    click.echo(f"QR:   {client.qr_url(share_id, size=size)}")
    client.close()
    if output:
        render_qr_png(link, output)
        click.echo(click.style(f"QR code saved to {output}", fg="green"))


# ----------------------------------------------------------------------
# Recipient side


@main.command()
@click.argument("link")
@click.option("--email", "-e", help="Your registered email (private shares)")
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=Path("."),
    help="File or directory to write to",
)
@handle_errors
def access(link: str, email: str | None, output: Path) -> None:
    """Open a share link or scanned QR payload and download the document.

    Private shares ask for your registered email and a one-time passcode.
    """
    share_id = parse_share_id(link)
    client = get_client()
    try:
        info = client.get_share(share_id)
        if info.access == "private":
            email = (email or click.prompt("Email")).strip().lower()
            exists = client.email_exists(email) if is_valid_email(email) else None
            if not can_send_otp(info, email, exists):
                _fail("Enter correct registered email for this share")
            challenge = client.send_otp(share_id, email)
            expires = f" (expires {challenge.expires_at})" if challenge.expires_at else ""
            click.echo(f"OTP sent to your email{expires}.")
            code = click.prompt("Enter OTP")
            client.verify_otp(share_id, email, code)
            click.echo(click.style("Verified!", fg="green"))

        downloaded = client.download_document(info.document_id, share_id=share_id, dest=output)
        click.echo(click.style(f"Saved {downloaded.path}", fg="green"))
    finally:
        client.close()


# ----------------------------------------------------------------------
# Size reduction and conversion


@main.command()
@click.argument("image", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--quality", "-q", default=0.7, show_default=True, type=click.FloatRange(0.2, 1.0))
@click.option("--max-width", default=1920, show_default=True, type=click.IntRange(min=1))
@click.option("--max-height", default=1920, show_default=True, type=click.IntRange(min=1))
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["jpeg", "webp", "png"]),
    default="jpeg",
    show_default=True,
)
@click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path))
@handle_errors
def compress(
    image: Path,
    quality: float,
    max_width: int,
    max_height: int,
    fmt: str,
    output_dir: Path | None,
) -> None:
    """Shrink an image locally (JPG/PNG/WEBP)."""
    if not is_image(image):
        _fail("Unsupported file type. Use images (JPG/PNG/WEBP) or `qrshare reduce` for PDFs.")
    content_type = f"image/{fmt}"
    result = compress_image(
        image,
        quality=quality,
        max_width=max_width,
        max_height=max_height,
        content_type=content_type,
        output_dir=output_dir,
    )
    click.echo(f"{result.output} ({result.width}x{result.height})")
    if result.improved:
        click.echo(
            click.style(
                f"Image compressed: -{_format_size(result.saved)} ({result.saved_percent:.2f}%)",
                fg="green",
            )
        )
    else:
        click.echo("Compression resulted in a similar size.")


@main.command("reduce")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--quality", "-q", default=0.7, show_default=True, type=click.FloatRange(0.2, 1.0))
@click.option("--max-width", default=1920, show_default=True, type=click.IntRange(min=1))
@click.option("--max-height", default=1920, show_default=True, type=click.IntRange(min=1))
@handle_errors
def reduce_document(file: Path, quality: float, max_width: int, max_height: int) -> None:
    """Optimize a PDF or other document on the server."""
    client = get_client()
    try:
        record = client.conversions.reduce(
            file, quality=quality, max_width=max_width, max_height=max_height
        )
        pct = record.saved_percent
        click.echo(
            click.style(f"Optimized on server{f' (-{pct}%)' if pct else ''}", fg="green")
        )
        click.echo(f"  Download: {client.conversions.reduction_url(record.id, 'download')}")
    finally:
        client.close()


@main.command()
@handle_errors
def reductions() -> None:
    """List your server-side size reductions."""
    client = get_client()
    try:
        rows = client.conversions.list_reductions()
        if not rows:
            click.echo("No reductions yet.")
        for row in rows:
            click.echo(
                f"  {row.id}  {row.original_filename} -> {row.optimized_filename}  "
                f"{_format_size(row.original_size_bytes)} -> "
                f"{_format_size(row.optimized_size_bytes)}"
            )
    finally:
        client.close()


@main.group()
def convert() -> None:
    """Convert or compress documents on the server."""
    pass


_source = click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
_output = click.option("--output", "-o", type=click.Path(path_type=Path), help="Output path")


@convert.command("docx-to-pdf")
@_source
@_output
@handle_errors
def docx_to_pdf(source: Path, output: Path | None) -> None:
    """Convert a Word document to PDF."""
    client = get_client()
    try:
        written = client.conversions.docx_to_pdf(source, output)
        click.echo(click.style(f"Saved {written}", fg="green"))
    finally:
        client.close()


@convert.command("pdf-to-jpg")
@_source
@click.option("--dpi", default=150, show_default=True, type=click.IntRange(72, 300))
@handle_errors
def pdf_to_jpg(source: Path, dpi: int) -> None:
    """Render PDF pages to JPEG images."""
    client = get_client()
    try:
        urls = client.conversions.pdf_to_jpg(source, dpi=dpi)
        click.echo(click.style(f"Converted to {len(urls)} image(s)", fg="green"))
        for url in urls:
            click.echo(f"  {url}")
    finally:
        client.close()


@convert.command("compress-pdf")
@_source
@click.option("--preset", type=click.Choice(PDF_PRESETS), default="screen", show_default=True)
@_output
@handle_errors
def compress_pdf(source: Path, preset: str, output: Path | None) -> None:
    """Compress a PDF."""
    client = get_client()
    try:
        written = client.conversions.compress_pdf(source, preset, output)
        click.echo(click.style(f"Saved {written}", fg="green"))
    finally:
        client.close()


@convert.command("compress-image")
@_source
@click.option("--quality", "-q", default=75, show_default=True, type=click.IntRange(1, 100))
@_output
@handle_errors
def compress_image_remote(source: Path, quality: int, output: Path | None) -> None:
    """Compress an image on the server."""
    client = get_client()
    try:
        written = client.conversions.compress_image_remote(source, quality, output)
        click.echo(click.style(f"Saved {written}", fg="green"))
    finally:
        client.close()


def _format_size(size_bytes: int | None) -> str:
    """Format file size in human-readable form."""
    if size_bytes is None:
        return "-"
    for unit in ["B", "KB", "MB", "GB"]:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}" if unit != "B" else f"{size_bytes} {unit}"
        size_bytes /= 1024  # type: ignore[assignment]
    return f"{size_bytes:.1f} TB"


if __name__ == "__main__":
    main()
