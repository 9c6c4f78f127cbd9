"""
Image Recognition Adapter

Image bytes + question -> Ark chat/completions with an image_url part ->
text answer.
"""

import base64
import binascii
from typing import Optional, Tuple

from image_toolbox.core.exceptions import InputValidationError, MalformedUpstreamError
from image_toolbox.core.logging import get_logger, with_logging
from image_toolbox.core.metrics import track_operation_latency
from image_toolbox.core.uploads import detect_image_format, format_size
from image_toolbox.engines.vendors.client import VendorClient
from image_toolbox.engines.vendors.schemas import RecognitionResult

logger = get_logger(__name__)


def decode_image_data(image_data: str, max_bytes: Optional[int] = None) -> Tuple[bytes, Optional[str]]:
    """
    Decode a base64 image, accepting a data: URL prefix.

    With max_bytes set, payloads whose decoded size would exceed it are
    rejected before decoding.

    Returns:
        Tuple of (decoded bytes, MIME type from the data: URL or None)
    """
    if not image_data or not image_data.strip():
        raise InputValidationError("Please provide image data")

    declared = None
    payload = image_data.strip()
    if payload.startswith("data:"):
        header, _, payload = payload.partition(",")
        declared = header[5:].split(";", 1)[0].lower() or None

    estimated_size = len(payload) * 3 // 4
    if max_bytes is not None and estimated_size > max_bytes:
        raise InputValidationError(
            f"Image size ({format_size(estimated_size)}) exceeds maximum allowed size "
            f"({format_size(max_bytes)}). Please compress or resize your image.",
            details={"size": estimated_size, "max_size": max_bytes}
        )

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise InputValidationError("Image data is not valid base64")

    if not data:
        raise InputValidationError("Please provide image data")
    return data, declared


class RecognitionAdapter(VendorClient):
    service = "ark_vision"
    display_name = "Image recognition"

    def build_payload(self, image_bytes: bytes, image_format: str, prompt: str) -> dict:
        encoded = base64.b64encode(image_bytes).decode("utf-8")
        return {
            "model": self.settings.ARK_VISION_MODEL,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/{image_format};base64,{encoded}"}
                        }
                    ]
                }
            ]
        }

    @with_logging("recognize")
    async def recognize(self, image_bytes: bytes, prompt: Optional[str] = None) -> RecognitionResult:
        """
        Ask the vision model a question about an image.

        A blank prompt falls back to DEFAULT_RECOGNITION_PROMPT.

        Raises:
            InputValidationError: no image data or prompt too long
            ConfigurationError: ARK_API_KEY missing
            UpstreamError: vendor rejected the call or returned no answer
        """
        if not image_bytes:
            raise InputValidationError("Please provide image data")
        if prompt and len(prompt) > self.settings.MAX_PROMPT_LENGTH:
            raise InputValidationError(
                f"Prompt is longer than {self.settings.MAX_PROMPT_LENGTH} characters",
                details={"length": len(prompt)}
            )

        question = prompt.strip() if prompt and prompt.strip() else self.settings.DEFAULT_RECOGNITION_PROMPT
        api_key = self.require_setting(self.settings.ARK_API_KEY, "ARK_API_KEY")
        image_format = detect_image_format(image_bytes) or "jpeg"

        logger.info(
            "recognition_requested",
            image_format=image_format,
            image_size=len(image_bytes),
            prompt_length=len(question)
        )

        with track_operation_latency("recognize"):
            response = await self.send(
                "POST",
                f"{self.settings.ARK_BASE_URL}/chat/completions",
                headers={"Authorization": f"Bearer {api_key}"},
                json=self.build_payload(image_bytes, image_format, question)
            )
        result = self.parse_json(response)

        content = None
        choices = result.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message") or {}
            if isinstance(message, dict):
                content = message.get("content")

        if not isinstance(content, str) or not content.strip():
            logger.warning("recognition_payload_malformed", keys=sorted(result.keys()))
            raise MalformedUpstreamError(
                "Image recognition failed: the response did not contain an answer",
                service=self.service
            )

        return RecognitionResult(
            content=content,
            prompt=question,
            image_format=image_format,
            usage=result.get("usage"),
        )
