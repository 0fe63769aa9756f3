"""Tests for QR code generator."""

import io

import pytest
from PIL import Image
from pyzbar.pyzbar import decode

from qrlanding.database.models import LogoShape
from qrlanding.errors import ValidationError
from qrlanding.services.visual_config import VisualConfiguration
from qrlanding.utils.qr_generator import generate_qr_code

SAMPLE_URL = "https://links.example.com/q/aB3dE5gH"


def make_logo(color=(0, 120, 215, 255), size=(80, 40)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def test_qr_generates_valid_png():
    """QR code should generate valid PNG image."""
    buffer = generate_qr_code("test")

    assert isinstance(buffer, io.BytesIO)

    # Check it's valid PNG
    img = Image.open(buffer)
    assert img.format == "PNG"
    assert img.size == (1024, 1024)


def test_qr_decodes_to_original_data():
    """QR code should decode back to original string."""
    buffer = generate_qr_code(SAMPLE_URL, size=512)

    img = Image.open(buffer)
    decoded = decode(img)

    assert len(decoded) == 1
    assert decoded[0].data.decode("utf-8") == SAMPLE_URL


@pytest.mark.parametrize("level", ["L", "M", "Q", "H"])
def test_qr_decodes_at_every_error_correction_level(level):
    buffer = generate_qr_code(SAMPLE_URL, config=VisualConfiguration(error_correction_level=level), size=512)

    decoded = decode(Image.open(buffer))

    assert decoded[0].data.decode("utf-8") == SAMPLE_URL


def test_qr_uses_configured_colors():
    """Custom dark-on-light colors still decode."""
    config = VisualConfiguration(module_color="#1a237e", background_color="#fff8e1")
    buffer = generate_qr_code(SAMPLE_URL, config=config, size=512)

    img = Image.open(buffer).convert("RGB")
    colors = {color for _, color in img.getcolors(maxcolors=1 << 16)}

    assert (0x1A, 0x23, 0x7E) in colors
    assert (0xFF, 0xF8, 0xE1) in colors
    assert decode(img)[0].data.decode("utf-8") == SAMPLE_URL


def test_qr_rounded_corners_are_transparent():
    config = VisualConfiguration(corner_radius_level=2)
    buffer = generate_qr_code(SAMPLE_URL, config=config, size=512)

    img = Image.open(buffer)

    assert img.mode == "RGBA"
    assert img.getpixel((0, 0))[3] == 0
    assert img.getpixel((256, 256))[3] == 255
    assert decode(img)[0].data.decode("utf-8") == SAMPLE_URL


def test_qr_without_rounding_has_opaque_corners():
    img = Image.open(generate_qr_code(SAMPLE_URL, size=256))

    assert img.getpixel((0, 0))[3] == 255


def test_qr_logo_is_centered_and_scaled():
    config = VisualConfiguration(logo_size_percent=20)
    buffer = generate_qr_code(SAMPLE_URL, config=config, logo=make_logo(), size=500)

    img = Image.open(buffer).convert("RGB")

    # 80x40 logo contained in a 100px box: 100x50 in the middle
    assert img.getpixel((250, 250)) == (0, 120, 215)
    assert img.getpixel((210, 240)) == (0, 120, 215)
    # Excavated area above and below the logo is background
    assert img.getpixel((250, 205)) == (255, 255, 255)


def test_qr_circle_logo_clears_round_area():
    config = VisualConfiguration(logo_size_percent=20)
    buffer = generate_qr_code(
        SAMPLE_URL, config=config, logo=make_logo(size=(64, 64)), logo_shape=LogoShape.CIRCLE, size=500
    )

    img = Image.open(buffer).convert("RGB")

    assert img.getpixel((250, 250)) == (0, 120, 215)
    # Corner of the logo box falls outside the circle
    assert img.getpixel((202, 202)) != (0, 120, 215)


def test_qr_with_small_logo_still_decodes():
    config = VisualConfiguration(logo_size_percent=15)
    buffer = generate_qr_code(SAMPLE_URL, config=config, logo=make_logo(size=(32, 32)), size=600)

    decoded = decode(Image.open(buffer))

    assert len(decoded) == 1
    assert decoded[0].data.decode("utf-8") == SAMPLE_URL


def test_qr_rejects_non_raster_logo():
    with pytest.raises(ValidationError):
        generate_qr_code(SAMPLE_URL, logo=b"<svg xmlns='http://www.w3.org/2000/svg'/>")


@pytest.mark.parametrize("size", [64, 4096])
def test_qr_rejects_export_size_out_of_range(size):
    with pytest.raises(ValidationError):
        generate_qr_code(SAMPLE_URL, size=size)
