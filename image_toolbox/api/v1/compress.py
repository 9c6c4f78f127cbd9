"""
Compress Endpoint

POST /api/v1/compress - Re-encode an uploaded image at a chosen quality,
optionally capping its longest side. Returns the image as a download.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import Response

from image_toolbox.core.config import Settings, get_settings
from image_toolbox.core.logging import get_logger
from image_toolbox.core.uploads import read_upload
from image_toolbox.engines.compression.schemas import DEFAULT_QUALITY
from image_toolbox.engines.compression.services import compress

logger = get_logger(__name__)
router = APIRouter()


@router.post("")
async def compress_image(
    file: UploadFile = File(..., description="JPEG, PNG, WEBP or BMP image"),
    quality: int = Form(DEFAULT_QUALITY, description="Encoder quality, 10-100"),
    max_dimension: Optional[int] = Form(None, description="Cap on the longest side in pixels"),
    settings: Settings = Depends(get_settings)
):
    """
    Compress an image.

    PNG input stays PNG; every other format is re-encoded as JPEG.
    Size and dimension details are returned in X-* headers so the
    client can show them next to the preview.
    """
    image = await read_upload(file, settings.MAX_COMPRESS_SIZE_BYTES)
    logger.info(
        "compress_request_received",
        filename=image.filename,
        size=image.size,
        quality=quality,
        max_dimension=max_dimension
    )

    result = await compress(image.data, quality, max_dimension)

    width, height = result.output_dimensions
    return Response(
        content=result.data,
        media_type=result.content_type,
        headers={
            "Content-Disposition": f'attachment; filename="compressed_{image.stem}.{result.extension}"',
            "X-Original-Size": str(result.original_size),
            "X-Compressed-Size": str(result.compressed_size),
            "X-Compression-Ratio": f"{result.compression_ratio:.4f}",
            "X-Output-Dimensions": f"{width}x{height}",
        }
    )
