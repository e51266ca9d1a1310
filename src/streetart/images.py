"""Image pipeline: raw uploads → bounded JPEG data URLs.

Spots store images inline, so every upload is downscaled to at most
``max_width`` pixels wide and re-encoded as JPEG before it is appended.
"""

from __future__ import annotations

import asyncio
import base64
import functools
import io
import logging
import os
import struct
from collections.abc import Iterable
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from streetart._constants import IMAGE_MAX_WIDTH, IMAGE_MIME_TYPE, IMAGE_QUALITY
from streetart.exceptions import ImageEncodeError

_logger = logging.getLogger(__name__)

ImageSource = bytes | os.PathLike[str] | str


def to_data_url(data: bytes, mime_type: str = IMAGE_MIME_TYPE) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def split_data_url(url: str) -> tuple[str, str]:
    """Split ``data:<mime>;base64,<payload>`` into ``(mime, payload)``.

    Raises :class:`ValueError` for anything that is not a base64 data URL.
    """
    header, sep, payload = url.partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise ValueError("not a base64 data URL")
    mime_type = header[len("data:") : -len(";base64")] or IMAGE_MIME_TYPE
    return mime_type, payload


def encode_image(raw: bytes, *, max_width: int = IMAGE_MAX_WIDTH, quality: int = IMAGE_QUALITY) -> str:
    """Decode *raw*, bound its width, and return a JPEG data URL.

    Orientation from EXIF is applied; images narrower than *max_width* are
    not upscaled. Raises :class:`ImageEncodeError` on decode failure.
    """
    try:
        with Image.open(io.BytesIO(raw)) as source:
            image = ImageOps.exif_transpose(source)
            if image.mode != "RGB":
                image = image.convert("RGB")
            if image.width > max_width:
                height = max(1, round(image.height * max_width / image.width))
                image = image.resize((max_width, height), Image.Resampling.LANCZOS)
            buffer = io.BytesIO()
            image.save(buffer, format="JPEG", quality=quality)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError, struct.error) as exc:
        # Pillow reports truncated or corrupt chunks as SyntaxError or struct.error.
        raise ImageEncodeError(f"Cannot encode image: {exc}") from exc
    return to_data_url(buffer.getvalue())


def _load_and_encode(source: ImageSource, max_width: int, quality: int) -> str:
    if isinstance(source, bytes):
        raw = source
    else:
        try:
            raw = Path(source).read_bytes()
        except OSError as exc:
            raise ImageEncodeError(f"Cannot read image {source}: {exc}") from exc
    return encode_image(raw, max_width=max_width, quality=quality)


async def encode_images(
    sources: Iterable[ImageSource],
    *,
    max_width: int = IMAGE_MAX_WIDTH,
    quality: int = IMAGE_QUALITY,
) -> list[str]:
    """Encode every source off the event loop.

    Successful results keep input order; failures are logged and skipped
    individually, so partial success is normal.
    """
    loop = asyncio.get_running_loop()
    jobs = [
        loop.run_in_executor(None, functools.partial(_load_and_encode, source, max_width, quality))
        for source in sources
    ]
    results = await asyncio.gather(*jobs, return_exceptions=True)

    encoded: list[str] = []
    for index, result in enumerate(results):
        if isinstance(result, ImageEncodeError):
            result.index = index
            _logger.warning("Skipping image %d: %s", index, result)
            continue
        if isinstance(result, Exception):
            _logger.warning("Skipping image %d: unexpected encoder failure", index, exc_info=result)
            continue
        if isinstance(result, BaseException):
            raise result
        encoded.append(result)
    return encoded
