"""
Background Removal Endpoint

POST /api/v1/remove-bg - Send an uploaded image to the background-removal
vendor and return the transparent PNG as a download.
"""

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response

from image_toolbox.api.dependencies import get_background_removal_adapter
from image_toolbox.core.config import Settings, get_settings
from image_toolbox.core.logging import get_logger
from image_toolbox.core.uploads import read_upload
from image_toolbox.engines.vendors import BackgroundRemovalAdapter

logger = get_logger(__name__)
router = APIRouter()


@router.post("")
async def remove_background(
    file: UploadFile = File(..., description="JPEG, PNG, WEBP or BMP image, up to 12MB"),
    settings: Settings = Depends(get_settings),
    adapter: BackgroundRemovalAdapter = Depends(get_background_removal_adapter)
):
    """Remove the background of an image."""
    image = await read_upload(file, settings.MAX_REMOVE_BG_SIZE_BYTES)
    logger.info("remove_bg_request_received", filename=image.filename, size=image.size)

    result = await adapter.remove_background(image)

    headers = {
        "Content-Disposition": f'attachment; filename="no_bg_{image.stem}.png"',
        "X-Original-Size": str(result.original_size),
        "X-Output-Size": str(result.output_size),
    }
    if result.credits_charged:
        headers["X-Credits-Charged"] = result.credits_charged

    return Response(content=result.data, media_type=result.content_type, headers=headers)
