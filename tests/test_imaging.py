"""Tests for client-side image compression."""

from __future__ import annotations

from pathlib import Path

import pytest
from helpers import make_image
from PIL import Image

from qrshare import CompressionError, compress_image
from qrshare.imaging import compressed_name, fit_within, is_image, is_pdf


class TestFitWithin:
    @pytest.mark.parametrize(
        ("size", "bounds", "expected"),
        [
            ((3000, 2000), (1920, 1920), (1920, 1280)),
            ((500, 4000), (1000, 1000), (125, 1000)),
            ((800, 600), (1920, 1920), (800, 600)),
            ((1, 10000), (100, 100), (1, 100)),
        ],
    )
    def test_fit(
        self,
        size: tuple[int, int],
        bounds: tuple[int, int],
        expected: tuple[int, int],
    ) -> None:
        assert fit_within(*size, *bounds) == expected


class TestCompressImage:
    def test_large_photo_is_downscaled(self, large_photo: Path) -> None:
        result = compress_image(large_photo)

        assert result.output == large_photo.parent / "photo_compressed.jpg"
        assert (result.width, result.height) == (1920, 1280)
        assert result.improved
        assert result.compressed_size < result.original_size
        assert 0 < result.saved_percent < 100
        with Image.open(result.output) as img:
            assert img.size == (1920, 1280)
            assert img.format == "JPEG"

    def test_never_upscales(self, small_png: Path) -> None:
        result = compress_image(small_png, content_type="image/png")

        assert (result.width, result.height) == (100, 50)
        assert result.output.name == "icon_compressed.png"

    def test_respects_both_bounds(self, tmp_path: Path) -> None:
        tall = make_image(tmp_path / "tall.png", (500, 4000))

        result = compress_image(tall, max_width=1000, max_height=1000)

        assert (result.width, result.height) == (125, 1000)

    def test_webp_output(self, small_png: Path, tmp_path: Path) -> None:
        out_dir = tmp_path / "out"

        result = compress_image(small_png, content_type="image/webp", output_dir=out_dir)

        assert result.output == out_dir / "icon_compressed.webp"
        assert result.content_type == "image/webp"
        with Image.open(result.output) as img:
            assert img.format == "WEBP"

    def test_transparent_png_to_jpeg(self, tmp_path: Path) -> None:
        source = make_image(tmp_path / "alpha.png", (64, 64), mode="RGBA")

        result = compress_image(source)

        with Image.open(result.output) as img:
            assert img.mode == "RGB"

    def test_exif_orientation_applied(self, tmp_path: Path) -> None:
        source = tmp_path / "rotated.jpg"
        exif = Image.Exif()
        exif[0x0112] = 6
        Image.new("RGB", (200, 100), (0, 120, 200)).save(source, exif=exif)

        result = compress_image(source)

        assert (result.width, result.height) == (100, 200)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"quality": 0},
            {"quality": 1.5},
            {"max_width": 0},
            {"content_type": "image/gif"},
        ],
    )
    def test_invalid_options(self, small_png: Path, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            compress_image(small_png, **kwargs)

    def test_undecodable_file(self, tmp_path: Path) -> None:
        broken = tmp_path / "broken.jpg"
        broken.write_bytes(b"not an image")

        with pytest.raises(CompressionError, match="Could not decode"):
            compress_image(broken)

        assert not (tmp_path / "broken_compressed.jpg").exists()


class TestFileTypes:
    def test_is_image(self) -> None:
        assert is_image("a.PNG")
        assert is_image("b.jpeg")
        assert is_image("c.webp")
        assert not is_image("d.gif")
        assert not is_image("e.pdf")

    def test_is_pdf(self) -> None:
        assert is_pdf("report.PDF")
        assert not is_pdf("report.docx")

    def test_compressed_name(self) -> None:
        assert compressed_name("photo.JPEG", "image/webp") == "photo_compressed.webp"
        assert compressed_name("scan", "image/png") == "scan_compressed.png"
