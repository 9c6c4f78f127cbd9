"""
Local Image Re-encoder

Decodes an image with Pillow and re-encodes it at a chosen quality,
optionally downscaling so the longest side fits a cap. PNG stays PNG;
every other format becomes JPEG.
"""

import io
import asyncio
from typing import Optional, Tuple

from PIL import Image, ImageOps

from image_toolbox.core.exceptions import InputValidationError, ImageProcessingError
from image_toolbox.core.logging import get_logger, with_logging
from image_toolbox.core.metrics import track_operation_latency, record_compression
from image_toolbox.engines.compression.schemas import (
    CompressionResult,
    MIN_QUALITY,
    MAX_QUALITY,
    MAX_DIMENSION_LIMIT,
)

logger = get_logger(__name__)

# Pillow reports some camera JPEGs as MPO
JPEG_FAMILY = {"JPEG", "MPO"}


def scaled_dimensions(width: int, height: int, max_dimension: int) -> Tuple[int, int]:
    """Fit (width, height) inside max_dimension on the longest side, keeping aspect ratio."""
    longest = max(width, height)
    if longest <= max_dimension:
        return width, height
    ratio = max_dimension / longest
    return max(1, round(width * ratio)), max(1, round(height * ratio))


def _flatten_for_jpeg(image: Image.Image) -> Image.Image:
    """JPEG has no alpha; composite onto white and drop to RGB."""
    if image.mode in ("RGB", "L"):
        return image
    if image.mode in ("RGBA", "LA", "P", "PA", "RGBa"):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", image.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[3])
        return background
    return image.convert("RGB")


def _validate_parameters(data: bytes, quality: int, max_dimension: Optional[int]):
    if not data:
        raise InputValidationError("Cannot compress an empty file")
    if not MIN_QUALITY <= quality <= MAX_QUALITY:
        raise InputValidationError(
            f"Quality must be between {MIN_QUALITY} and {MAX_QUALITY}, got {quality}",
            details={"quality": quality}
        )
    if max_dimension is not None and not 1 <= max_dimension <= MAX_DIMENSION_LIMIT:
        raise InputValidationError(
            f"max_dimension must be between 1 and {MAX_DIMENSION_LIMIT}, got {max_dimension}",
            details={"max_dimension": max_dimension}
        )


def compress_image(
    data: bytes,
    quality: int,
    max_dimension: Optional[int] = None
) -> CompressionResult:
    """
    Re-encode an image.

    Args:
        data: Encoded source image
        quality: 10-100, used by the lossy encoder
        max_dimension: Optional cap on the longest side, in pixels

    Returns:
        CompressionResult. When re-encoding would not shrink an image whose
        format and dimensions are unchanged, the original bytes are kept.

    Raises:
        InputValidationError: empty input or out-of-range parameters
        ImageProcessingError: the data cannot be decoded or encoded
    """
    _validate_parameters(data, quality, max_dimension)

    try:
        with Image.open(io.BytesIO(data)) as source:
            source_format = source.format
            source.load()
            image = ImageOps.exif_transpose(source)
    except (Image.DecompressionBombError, OSError, ValueError, SyntaxError) as e:
        raise ImageProcessingError(
            f"Could not read the image: {e}",
            details={"error_type": type(e).__name__}
        )

    original_dimensions = image.size
    output_format = "PNG" if source_format == "PNG" else "JPEG"

    resized = False
    if max_dimension is not None:
        target = scaled_dimensions(image.width, image.height, max_dimension)
        if target != image.size:
            if image.mode == "P":
                image = image.convert("RGBA")
            image = image.resize(target, Image.Resampling.LANCZOS)
            resized = True

    buffer = io.BytesIO()
    try:
        if output_format == "PNG":
            image.save(buffer, format="PNG", optimize=True)
        else:
            _flatten_for_jpeg(image).save(buffer, format="JPEG", quality=quality, optimize=True)
    except (OSError, ValueError) as e:
        raise ImageProcessingError(
            f"Could not encode the image: {e}",
            details={"error_type": type(e).__name__}
        )
    encoded = buffer.getvalue()

    same_format = source_format == output_format or (
        output_format == "JPEG" and source_format in JPEG_FAMILY
    )
    kept_original = same_format and not resized and len(encoded) >= len(data)

    return CompressionResult(
        data=data if kept_original else encoded,
        format=output_format,
        original_size=len(data),
        original_dimensions=original_dimensions,
        output_dimensions=image.size,
        quality=quality,
        resized=resized,
        kept_original=kept_original,
    )


@with_logging("compress")
async def compress(
    data: bytes,
    quality: int,
    max_dimension: Optional[int] = None
) -> CompressionResult:
    """Run compress_image off the event loop and record metrics."""
    with track_operation_latency("compress"):
        result = await asyncio.to_thread(compress_image, data, quality, max_dimension)

    record_compression(result.format, result.compression_ratio)
    logger.info(
        "compress_completed",
        original_size=result.original_size,
        compressed_size=result.compressed_size,
        output_format=result.format,
        output_dimensions=result.output_dimensions,
        kept_original=result.kept_original
    )
    return result
