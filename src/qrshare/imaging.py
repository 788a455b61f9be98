"""Client-side image compression with Pillow."""

from __future__ import annotations

import logging
import mimetypes
import re
from pathlib import Path

from PIL import Image, ImageOps

from qrshare.exceptions import CompressionError
from qrshare.models import CompressionResult

logger = logging.getLogger(__name__)

# content type -> (Pillow format, file extension)
OUTPUT_FORMATS: dict[str, tuple[str, str]] = {
    "image/jpeg": ("JPEG", "jpg"),
    "image/webp": ("WEBP", "webp"),
    "image/png": ("PNG", "png"),
}

DEFAULT_QUALITY = 0.7
DEFAULT_MAX_DIMENSION = 1920

_IMAGE_TYPE_RE = re.compile(r"^image/(png|jpe?g|webp)$", re.IGNORECASE)
_IMAGE_SUFFIX_RE = re.compile(r"\.(png|jpe?g|webp)$", re.IGNORECASE)

mimetypes.add_type("image/webp", ".webp")


def guess_type(path: str | Path) -> str | None:
    content_type, _ = mimetypes.guess_type(str(path))
    return content_type


def is_image(path: str | Path) -> bool:
    """True for the image types compressed locally (PNG, JPEG, WebP)."""
    content_type = guess_type(path)
    return bool(content_type and _IMAGE_TYPE_RE.match(content_type))


def is_pdf(path: str | Path) -> bool:
    return guess_type(path) == "application/pdf" or str(path).lower().endswith(".pdf")


def fit_within(width: int, height: int, max_width: int, max_height: int) -> tuple[int, int]:
    """Scale (width, height) uniformly to fit the bounds without upscaling."""
    ratio = min(1.0, max_width / width, max_height / height)
    return max(1, round(width * ratio)), max(1, round(height * ratio))


def compressed_name(name: str, content_type: str) -> str:
    stem = _IMAGE_SUFFIX_RE.sub("", name)
    return f"{stem}_compressed.{OUTPUT_FORMATS[content_type][1]}"


def compress_image(
    source: str | Path,
    *,
    quality: float = DEFAULT_QUALITY,
    max_width: int = DEFAULT_MAX_DIMENSION,
    max_height: int = DEFAULT_MAX_DIMENSION,
    content_type: str = "image/jpeg",
    output_dir: str | Path | None = None,
) -> CompressionResult:
    """Downscale and re-encode an image.

    Args:
        source: Image file to compress
        quality: Encoder quality factor, 0 < quality <= 1
        max_width: Largest allowed output width
        max_height: Largest allowed output height
        content_type: Output encoding (image/jpeg, image/webp or image/png)
        output_dir: Where to write the result (default: next to the source)

    Returns:
        CompressionResult; check .improved to see whether bytes were saved

    Raises:
        ValueError: If an option is out of range
        CompressionError: If the image cannot be decoded or encoded
    """
    if content_type not in OUTPUT_FORMATS:
        raise ValueError(f"Unsupported output format: {content_type}")
    if not 0 < quality <= 1:
        raise ValueError("quality must be in (0, 1]")
    if max_width < 1 or max_height < 1:
        raise ValueError("max_width and max_height must be at least 1")

    source = Path(source)
    target_dir = Path(output_dir) if output_dir else source.parent
    output = target_dir / compressed_name(source.name, content_type)
    pil_format = OUTPUT_FORMATS[content_type][0]

    try:
        with Image.open(source) as img:
            img.load()
            image = ImageOps.exif_transpose(img)
    except Exception as e:
        raise CompressionError(f"Could not decode {source.name}: {e}") from e

    width, height = fit_within(image.width, image.height, max_width, max_height)
    if (width, height) != image.size:
        image = image.resize((width, height), Image.Resampling.LANCZOS)

    save_kwargs: dict[str, object] = {}
    if pil_format == "JPEG":
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        save_kwargs = {"quality": round(quality * 100), "optimize": True}
    elif pil_format == "WEBP":
        save_kwargs = {"quality": round(quality * 100)}
    else:
        save_kwargs = {"optimize": True}

    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        image.save(output, format=pil_format, **save_kwargs)
    except Exception as e:
        output.unlink(missing_ok=True)
        raise CompressionError(f"Could not encode {output.name}: {e}") from e

    result = CompressionResult(
        source=source,
        output=output,
        original_size=source.stat().st_size,
        compressed_size=output.stat().st_size,
        width=width,
        height=height,
        content_type=content_type,
    )
    logger.info(
        f"Compressed {source.name} -> {output.name} "
        f"({result.original_size} -> {result.compressed_size} bytes, {width}x{height})"
    )
    return result
