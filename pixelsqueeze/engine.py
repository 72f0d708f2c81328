"""
Image re-encoding engine.

Takes raw image bytes plus an EngineConfig and returns the image re-encoded
as ``config.file_type``, scaled to ``max_width_or_height`` and, on a best
effort basis, no larger than ``max_size_mb``. Any failure surfaces as
CompressionFailure.
"""

import asyncio
import io
import logging
from typing import Optional, Tuple

from PIL import Image, ImageOps

from pixelsqueeze.config import ENGINE_MAX_ITERATION
from pixelsqueeze.exceptions import CompressionFailure
from pixelsqueeze.job_schema import EngineConfig

logger = logging.getLogger(__name__)

PIL_FORMATS = {
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
    "image/gif": "GIF",
    "image/bmp": "BMP",
}
LOSSY_FORMATS = {"JPEG", "WEBP"}

MIN_QUALITY = 1
SHRINK_FACTOR = 0.9


def pil_format_for(file_type: str) -> str:
    try:
        return PIL_FORMATS[file_type.lower()]
    except KeyError:
        raise CompressionFailure(f"unsupported output type: {file_type}") from None


def _pil_quality(quality: float) -> int:
    """0.0-1.0 -> Pillow's 1-100 scale"""
    return max(MIN_QUALITY, min(100, round(quality * 100)))


def _normalise_mode(img: Image.Image) -> Image.Image:
    if img.mode in ("RGB", "RGBA", "L", "LA"):
        return img
    has_alpha = img.mode == "PA" or "transparency" in img.info
    return img.convert("RGBA" if has_alpha else "RGB")


def _decode(data: bytes) -> Tuple[Image.Image, Optional[str]]:
    """Loads the first frame, upright, in an RGB/L family mode."""
    with Image.open(io.BytesIO(data)) as img:
        source_format = img.format
        img.load()
        upright = ImageOps.exif_transpose(img)
    return _normalise_mode(upright), source_format


def _fit(img: Image.Image, max_side: int) -> Image.Image:
    if max(img.size) > max_side:
        img = img.copy()
        img.thumbnail((max_side, max_side), Image.Resampling.LANCZOS)
    return img


def _flatten(img: Image.Image) -> Image.Image:
    """Drops alpha by compositing onto white."""
    if img.mode in ("RGBA", "LA"):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return img


def _prepare(img: Image.Image, pil_format: str) -> Image.Image:
    if pil_format in ("JPEG", "BMP"):
        return _flatten(img)
    if pil_format == "GIF":
        return _flatten(img).convert("RGB").quantize(colors=256)
    if pil_format == "WEBP" and img.mode in ("L", "LA"):
        return img.convert("RGBA" if img.mode == "LA" else "RGB")
    return img


def _encode(img: Image.Image, pil_format: str, quality: int) -> bytes:
    params = {"format": pil_format}
    if pil_format in LOSSY_FORMATS:
        params["quality"] = quality
    if pil_format in ("JPEG", "PNG"):
        params["optimize"] = True

    buffer = io.BytesIO()
    _prepare(img, pil_format).save(buffer, **params)
    return buffer.getvalue()


def _search_quality(
    img: Image.Image, pil_format: str, ceiling: int, max_bytes: int
) -> Tuple[Optional[bytes], Optional[bytes]]:
    """
    Binary search for the highest quality below ``ceiling`` that fits.

    Returns (fitting output or None, smallest output tried).
    """
    lo, hi = MIN_QUALITY, ceiling - 1
    fitted = None
    smallest = None

    while lo <= hi:
        mid = (lo + hi) // 2
        output = _encode(img, pil_format, mid)
        if smallest is None or len(output) < len(smallest):
            smallest = output

        if len(output) <= max_bytes:
            fitted = output
            lo = mid + 1
        else:
            hi = mid - 1

    return fitted, smallest


def _shrink(img: Image.Image) -> Optional[Image.Image]:
    width, height = img.size
    size = (max(1, int(width * SHRINK_FACTOR)), max(1, int(height * SHRINK_FACTOR)))
    if size == img.size:
        return None
    return img.resize(size, Image.Resampling.LANCZOS)


def compress_image(
    data: bytes, config: EngineConfig, max_iteration: int = ENGINE_MAX_ITERATION
) -> bytes:
    """Synchronous engine call. Runs Pillow on the calling thread."""
    pil_format = pil_format_for(config.file_type)
    max_bytes = int(config.max_size_mb * 1024 * 1024)
    quality = _pil_quality(config.quality)

    try:
        img, source_format = _decode(data)

        # Nothing to do: same type, small enough, not oversized
        if (
            source_format == pil_format
            and len(data) <= max_bytes
            and max(img.size) <= config.max_width_or_height
        ):
            logger.debug("Source already satisfies %s within %d bytes", pil_format, max_bytes)
            return data

        working = _fit(img, config.max_width_or_height)
        output = _encode(working, pil_format, quality)
        best = output

        for iteration in range(max_iteration):
            if len(output) <= max_bytes:
                return output

            if pil_format in LOSSY_FORMATS:
                fitted, smallest = _search_quality(working, pil_format, quality, max_bytes)
                if fitted is not None:
                    return fitted
                if smallest is not None and len(smallest) < len(best):
                    best = smallest

            shrunk = _shrink(working)
            if shrunk is None:
                break
            working = shrunk
            output = _encode(working, pil_format, quality)
            if len(output) < len(best):
                best = output
            logger.debug(
                "Iteration %d: %dx%d -> %d bytes (budget %d)",
                iteration + 1, working.width, working.height, len(output), max_bytes,
            )

        if len(output) <= max_bytes:
            return output

        logger.warning("Could not reach %d bytes; returning %d bytes", max_bytes, len(best))
        return best

    except CompressionFailure:
        raise
    except Exception as e:
        raise CompressionFailure(f"engine failed: {e}") from e


async def compress(data: bytes, config: EngineConfig) -> bytes:
    """Engine entry point. Offloads to a worker thread when use_web_worker is set."""
    if config.use_web_worker:
        return await asyncio.to_thread(compress_image, data, config)
    return compress_image(data, config)
