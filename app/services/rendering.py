from __future__ import annotations

import io
from enum import Enum
from typing import Iterable, List

from PIL import Image, UnidentifiedImageError

from app.core.config import settings
from app.services.ico_encoder import IconEntry


class ResampleAlgorithm(str, Enum):
    LANCZOS = "LANCZOS"
    NEAREST = "NEAREST"
    BILINEAR = "BILINEAR"

    @property
    def pillow_filter(self) -> int:
        mapping = {
            ResampleAlgorithm.LANCZOS: Image.LANCZOS,
            ResampleAlgorithm.NEAREST: Image.NEAREST,
            ResampleAlgorithm.BILINEAR: Image.BILINEAR,
        }
        return mapping[self]


def load_source(content: bytes) -> Image.Image:
    """Validate an uploaded source image and return it as RGBA."""

    if not content:
        raise ValueError("Source image is empty")
    if len(content) > settings.max_upload_size_bytes:
        raise ValueError("Source image exceeds maximum size limit")

    try:
        with Image.open(io.BytesIO(content)) as image:
            image.verify()
            detected_format = image.format
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise ValueError("Source file is not a valid image") from exc

    if detected_format not in settings.allowed_image_formats:
        allowed = ", ".join(settings.allowed_image_formats)
        raise ValueError(f"Unsupported image format. Allowed: {allowed}")

    # verify() leaves the image unusable, so reopen for pixel access
    return Image.open(io.BytesIO(content)).convert("RGBA")


def fit_contain(
    image: Image.Image, size: int, algo: ResampleAlgorithm = ResampleAlgorithm.LANCZOS
) -> Image.Image:
    """Scale into a size x size square, keeping aspect ratio, on a transparent canvas."""

    if size <= 0:
        raise ValueError(f"Icon size must be positive, got {size}")

    scale = min(size / image.width, size / image.height)
    width = max(1, round(image.width * scale))
    height = max(1, round(image.height * scale))
    resized = image.convert("RGBA").resize((width, height), algo.pillow_filter)

    canvas = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    canvas.paste(resized, ((size - width) // 2, (size - height) // 2))
    return canvas


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def render_png(
    image: Image.Image, size: int, algo: ResampleAlgorithm = ResampleAlgorithm.LANCZOS
) -> bytes:
    return encode_png(fit_contain(image, size, algo))


def render_entries(
    image: Image.Image,
    sizes: Iterable[int],
    algo: ResampleAlgorithm = ResampleAlgorithm.LANCZOS,
) -> List[IconEntry]:
    """Render one PNG payload per requested size, preserving the requested order."""

    return [IconEntry(size, render_png(image, size, algo)) for size in sizes]
