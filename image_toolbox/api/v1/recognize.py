"""
Recognition Endpoint

POST /api/v1/recognize        - Base64 image + question (JSON)
POST /api/v1/recognize/upload - File upload + question (multipart)
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from image_toolbox.api.dependencies import get_recognition_adapter
from image_toolbox.core.config import Settings, get_settings
from image_toolbox.core.logging import get_logger
from image_toolbox.core.uploads import FORMAT_CONTENT_TYPES, detect_image_format, read_upload, validate_image_bytes
from image_toolbox.engines.vendors import RecognitionAdapter
from image_toolbox.engines.vendors.recognition import decode_image_data
from image_toolbox.engines.vendors.schemas import RecognitionRequest, RecognitionResult

logger = get_logger(__name__)
router = APIRouter()


@router.post("", response_model=RecognitionResult)
async def recognize_image(
    request: RecognitionRequest,
    settings: Settings = Depends(get_settings),
    adapter: RecognitionAdapter = Depends(get_recognition_adapter)
):
    """
    Ask the vision model about a base64 image.

    The image may be bare base64 or a data: URL. When no MIME type is
    declared it is taken from the image's leading bytes.
    """
    data, declared = decode_image_data(request.image_data, settings.MAX_RECOGNITION_SIZE_BYTES)
    content_type = declared or FORMAT_CONTENT_TYPES.get(detect_image_format(data) or "", "")
    image = validate_image_bytes(data, content_type, settings.MAX_RECOGNITION_SIZE_BYTES)

    logger.info("recognize_request_received", size=image.size, has_prompt=bool(request.prompt))
    return await adapter.recognize(image.data, request.prompt)


@router.post("/upload", response_model=RecognitionResult)
async def recognize_uploaded_image(
    file: UploadFile = File(..., description="JPEG, PNG, WEBP or BMP image"),
    prompt: Optional[str] = Form(None, description="Question about the image"),
    settings: Settings = Depends(get_settings),
    adapter: RecognitionAdapter = Depends(get_recognition_adapter)
):
    """
    Ask the vision model about an uploaded image.

    Alternative to the base64 endpoint for direct file uploads.
    """
    image = await read_upload(file, settings.MAX_RECOGNITION_SIZE_BYTES)

    logger.info("recognize_request_received", filename=image.filename, size=image.size, has_prompt=bool(prompt))
    return await adapter.recognize(image.data, prompt)
