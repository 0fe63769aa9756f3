"""QR code renderer for short-code URLs."""

import io
import logging

import qrcode
from PIL import Image, ImageDraw, ImageOps, UnidentifiedImageError

from qrlanding.database.models import LogoShape
from qrlanding.errors import ValidationError
from qrlanding.services.scannability import RADIUS_PERCENT_PER_LEVEL
from qrlanding.services.visual_config import VisualConfiguration

logger = logging.getLogger(__name__)

ERROR_CORRECTION = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}

MIN_EXPORT_SIZE = 128
MAX_EXPORT_SIZE = 2048


def _load_logo(logo: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(logo))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError("Logo is not a raster image (PNG or JPEG)") from e
    return image.convert("RGBA")


def _excavate_and_paste(
    img: Image.Image,
    logo: Image.Image,
    logo_px: int,
    shape: LogoShape,
    background: str,
) -> None:
    size = img.size[0]
    left = (size - logo_px) // 2
    box = (left, left, left + logo_px - 1, left + logo_px - 1)

    # Clear the modules under the logo so it never blends into data
    draw = ImageDraw.Draw(img)
    if shape is LogoShape.CIRCLE:
        draw.ellipse(box, fill=background)
    else:
        draw.rectangle(box, fill=background)

    logo = ImageOps.contain(logo, (logo_px, logo_px), Image.LANCZOS)
    offset = (left + (logo_px - logo.width) // 2, left + (logo_px - logo.height) // 2)

    mask = logo.getchannel("A")
    if shape is LogoShape.CIRCLE:
        circle = Image.new("L", logo.size, 0)
        ImageDraw.Draw(circle).ellipse((0, 0, logo.width - 1, logo.height - 1), fill=255)
        mask = Image.composite(mask, circle, circle)

    img.paste(logo, offset, mask)


def generate_qr_code(
    data: str,
    config: VisualConfiguration | None = None,
    logo: bytes | None = None,
    logo_shape: LogoShape = LogoShape.SQUARE,
    size: int = 1024,
    border: int = 4,
) -> io.BytesIO:
    """Render ``data`` as a PNG honoring the visual configuration.

    Args:
        data: Payload to encode (the public short-code URL)
        config: Colors, error correction, logo size and corner rounding
        logo: Raw logo image bytes, placed in a cleared area in the center
        logo_shape: Shape of the cleared area and of the logo crop
        size: Output side length in pixels
        border: Quiet zone in modules

    Returns:
        BytesIO buffer containing PNG image
    """
    config = config or VisualConfiguration()
    if not MIN_EXPORT_SIZE <= size <= MAX_EXPORT_SIZE:
        raise ValidationError(f"Size must be between {MIN_EXPORT_SIZE} and {MAX_EXPORT_SIZE}")

    qr = qrcode.QRCode(
        version=None,  # Auto-select version based on data length
        error_correction=ERROR_CORRECTION[config.error_correction_level],
        box_size=10,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(
        fill_color=config.module_color, back_color=config.background_color
    ).convert("RGBA")
    img = img.resize((size, size), Image.NEAREST)

    if logo and config.logo_size_percent:
        logo_px = int(size * config.logo_size_percent / 100)
        if logo_px > 0:
            _excavate_and_paste(img, _load_logo(logo), logo_px, logo_shape, config.background_color)

    radius_px = int(size * config.corner_radius_level * RADIUS_PERCENT_PER_LEVEL / 100)
    if radius_px > 0:
        mask = Image.new("L", img.size, 0)
        ImageDraw.Draw(mask).rounded_rectangle((0, 0, size - 1, size - 1), radius=radius_px, fill=255)
        img.putalpha(mask)

    logger.debug(f"Rendered QR v{qr.version} ({config.error_correction_level}) at {size}px")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    buffer.seek(0)
    return buffer
