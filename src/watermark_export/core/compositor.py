"""Watermark compositing: prepare the overlay once, stamp it onto every photo."""

import io
import math
from dataclasses import dataclass
from typing import Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from .exceptions import ImageProcessingError, with_error_handling
from .models import Dimensions, Position

DEFAULT_MAX_PIXELS = 100_000_000
TRANSPARENT = (0, 0, 0, 0)


def round_half_up(value: float) -> int:
    """Round to the nearest integer pixel, halves away from zero on the positive side."""
    return int(math.floor(value + 0.5))


def normalize_rotation(degrees: float) -> float:
    """Map any rotation onto [0, 360)."""
    normalized = math.fmod(degrees, 360.0)
    if normalized < 0:
        normalized += 360.0
    # fmod(-0.0) and values like -1e-15 + 360 land on 360.0
    if normalized >= 360.0:
        normalized = 0.0
    return normalized


def load_image(data: bytes, max_pixels: int = DEFAULT_MAX_PIXELS) -> Image.Image:
    """
    Decode image bytes, rejecting anything above ``max_pixels``.

    The size check runs before pixel data is decoded so oversized inputs never
    allocate their full buffer.

    Raises:
        ImageProcessingError: If the data is not a decodable image or is too large.
    """
    try:
        image = Image.open(io.BytesIO(data))
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        raise ImageProcessingError(f"Unsupported or corrupt image data: {exc}") from exc
    except Image.DecompressionBombError as exc:
        raise ImageProcessingError(f"Image exceeds the pixel limit: {exc}") from exc

    width, height = image.size
    if width * height > max_pixels:
        raise ImageProcessingError(
            f"Image is {width}x{height} ({width * height} pixels), "
            f"exceeding the limit of {max_pixels} pixels"
        )

    try:
        image.load()
    except (OSError, SyntaxError, ValueError) as exc:
        raise ImageProcessingError(f"Failed to decode image: {exc}") from exc
    return image


@dataclass(frozen=True)
class PreparedWatermark:
    """
    A resized, rotated watermark encoded as PNG (RGBA).

    Produced once per export job and shared read-only by every photo; each
    consumer decodes its own copy via ``image()``.
    """

    data: bytes
    size: Tuple[int, int]

    def image(self) -> Image.Image:
        overlay = Image.open(io.BytesIO(self.data))
        overlay.load()
        return overlay.convert("RGBA")


@with_error_handling
def prepare_watermark(
    data: bytes,
    dimensions: Dimensions,
    rotation: float,
    max_pixels: int = DEFAULT_MAX_PIXELS,
) -> PreparedWatermark:
    """
    Contain-fit the watermark into ``dimensions`` and rotate it.

    The watermark is scaled to fit fully inside the target box keeping its
    aspect ratio, centred, and padded with full transparency. A non-zero
    rotation turns it clockwise around its centre, expanding the canvas so no
    corner is cut, again filling with transparency.

    Args:
        data: Raw watermark image bytes
        dimensions: Target footprint in pixels
        rotation: Degrees; normalized mod 360
        max_pixels: Limit on both the decoded input and the target footprint

    Returns:
        PreparedWatermark ready for compositing
    """
    target = (
        max(1, round_half_up(dimensions.width)),
        max(1, round_half_up(dimensions.height)),
    )
    if target[0] * target[1] > max_pixels:
        raise ImageProcessingError(
            f"Watermark footprint {target[0]}x{target[1]} exceeds the limit of "
            f"{max_pixels} pixels"
        )
    source = load_image(data, max_pixels).convert("RGBA")

    fitted = ImageOps.pad(
        source,
        target,
        method=Image.Resampling.LANCZOS,
        color=TRANSPARENT,
        centering=(0.5, 0.5),
    )

    angle = normalize_rotation(rotation)
    if angle:
        # PIL rotates counter-clockwise; placement editors rotate clockwise
        fitted = fitted.rotate(
            -angle,
            resample=Image.Resampling.BICUBIC,
            expand=True,
            fillcolor=TRANSPARENT,
        )

    buffer = io.BytesIO()
    fitted.save(buffer, format="PNG")
    return PreparedWatermark(data=buffer.getvalue(), size=fitted.size)


@with_error_handling
def composite_watermark(
    photo_data: bytes,
    watermark: PreparedWatermark,
    position: Position,
    quality: int = 85,
    max_pixels: int = DEFAULT_MAX_PIXELS,
) -> bytes:
    """
    Alpha-blend the prepared watermark onto a photo and encode it as JPEG.

    The watermark's top-left corner is placed at the rounded ``position``;
    whatever falls outside the photo is clipped. Output is always JPEG, so
    sources with an alpha channel are flattened.

    Returns:
        JPEG bytes at the requested quality
    """
    photo = load_image(photo_data, max_pixels)
    base = photo.convert("RGB")
    overlay = watermark.image()

    offset = (round_half_up(position.x), round_half_up(position.y))
    base.paste(overlay, offset, overlay)

    output = io.BytesIO()
    try:
        base.save(output, format="JPEG", quality=quality)
    except (OSError, ValueError) as exc:
        raise ImageProcessingError(f"Failed to encode JPEG: {exc}") from exc
    return output.getvalue()
