"""
Features Endpoint

GET /api/v1/features - Catalog of the available tools, with the limits
a client needs to validate input before uploading.
"""

from fastapi import APIRouter, Depends

from image_toolbox.core.config import Settings, get_settings
from image_toolbox.core.uploads import FORMAT_CONTENT_TYPES

router = APIRouter()


@router.get("/features")
async def features(settings: Settings = Depends(get_settings)):
    accepted = sorted(set(FORMAT_CONTENT_TYPES.values()))
    return {
        "features": [
            {
                "id": "compress",
                "name": "Image compression",
                "description": "Shrink image files while keeping them looking good",
                "endpoint": "/api/v1/compress",
                "accepted_types": accepted,
                "max_size_bytes": settings.MAX_COMPRESS_SIZE_BYTES,
                "available": True,
            },
            {
                "id": "remove-bg",
                "name": "Background removal",
                "description": "Detect the subject and remove the background in one step",
                "endpoint": "/api/v1/remove-bg",
                "accepted_types": accepted,
                "max_size_bytes": settings.MAX_REMOVE_BG_SIZE_BYTES,
                "available": bool(settings.REMOVE_BG_API_KEY),
            },
            {
                "id": "recognize",
                "name": "Image recognition",
                "description": "Ask questions about what an image shows",
                "endpoint": "/api/v1/recognize",
                "accepted_types": accepted,
                "max_size_bytes": settings.MAX_RECOGNITION_SIZE_BYTES,
                "available": bool(settings.ARK_API_KEY),
            },
            {
                "id": "generate",
                "name": "AI image generation",
                "description": "Create images from a text description",
                "endpoint": "/api/v1/generate",
                "max_prompt_length": settings.MAX_PROMPT_LENGTH,
                "available": bool(settings.ARK_API_KEY),
            },
        ]
    }
