"""
Generation Endpoint

POST /api/v1/generate          - Prompt + style + size -> generated image URL
GET  /api/v1/generate/options  - Available styles and sizes
GET  /api/v1/generate/download - Save a generated image as a file
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from image_toolbox.api.dependencies import get_generation_adapter
from image_toolbox.core.logging import get_logger
from image_toolbox.engines.vendors import ImageGenerationAdapter
from image_toolbox.engines.vendors.schemas import (
    GenerationRequest,
    GenerationResult,
    ImageSize,
    ImageStyle,
    SIZE_LABELS,
    STYLE_LABELS,
)

logger = get_logger(__name__)
router = APIRouter()


@router.post("", response_model=GenerationResult)
async def generate_image(
    request: GenerationRequest,
    adapter: ImageGenerationAdapter = Depends(get_generation_adapter)
):
    """
    Generate an image from a text prompt.

    The style preset is appended to the prompt. Returned URLs point at the
    vendor and expire on the vendor's schedule.
    """
    logger.info(
        "generate_request_received",
        prompt_length=len(request.prompt),
        style=request.style.value,
        size=request.size.value
    )
    return await adapter.generate(request.prompt, request.style, request.size)


@router.get("/options")
async def generation_options():
    """Styles and sizes accepted by POST /generate."""
    return {
        "styles": [
            {"value": style.value, **STYLE_LABELS[style]}
            for style in ImageStyle
        ],
        "sizes": [
            {"value": size.value, "label": SIZE_LABELS[size]}
            for size in ImageSize
        ],
        "defaults": {
            "style": ImageStyle.REALISTIC.value,
            "size": ImageSize.SQUARE.value
        }
    }


@router.get("/download")
async def download_generated_image(
    url: str = Query(..., description="Image URL returned by POST /generate"),
    prompt: Optional[str] = Query(None, description="Prompt used, for the file name"),
    adapter: ImageGenerationAdapter = Depends(get_generation_adapter)
):
    """Fetch a generated image and return it as an attachment."""
    content, content_type, filename = await adapter.download(url, prompt)
    return Response(
        content=content,
        media_type=content_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
