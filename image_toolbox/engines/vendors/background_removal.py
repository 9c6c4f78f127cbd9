"""
Background Removal Adapter

Raw image bytes (multipart) -> remove.bg style endpoint -> PNG bytes.
The API key is read from REMOVE_BG_API_KEY.
"""

from image_toolbox.core.exceptions import InputValidationError, MalformedUpstreamError
from image_toolbox.core.logging import get_logger, with_logging
from image_toolbox.core.metrics import track_operation_latency
from image_toolbox.core.uploads import UploadedImage, FORMAT_CONTENT_TYPES
from image_toolbox.engines.vendors.client import VendorClient
from image_toolbox.engines.vendors.schemas import BackgroundRemovalResult

logger = get_logger(__name__)


class BackgroundRemovalAdapter(VendorClient):
    service = "remove_bg"
    display_name = "Background removal"

    @with_logging("remove_bg")
    async def remove_background(self, image: UploadedImage) -> BackgroundRemovalResult:
        """
        Send an image to the background-removal vendor.

        Raises:
            InputValidationError: empty image
            ConfigurationError: REMOVE_BG_API_KEY missing
            UpstreamError: vendor rejected the call or did not return an image
        """
        if not image.data:
            raise InputValidationError("Please upload an image")

        api_key = self.require_setting(self.settings.REMOVE_BG_API_KEY, "REMOVE_BG_API_KEY")
        upload_type = FORMAT_CONTENT_TYPES.get(image.detected_format, image.content_type)

        logger.info(
            "remove_bg_requested",
            image_size=image.size,
            image_format=image.detected_format
        )

        with track_operation_latency("remove_bg"):
            response = await self.send(
                "POST",
                self.settings.REMOVE_BG_API_URL,
                headers={"X-Api-Key": api_key, "Accept": "image/*"},
                files={"image_file": (image.filename, image.data, upload_type)},
                data={"size": self.settings.REMOVE_BG_SIZE}
            )

        content_type = response.headers.get("content-type", "").split(";", 1)[0].strip().lower()
        if not content_type.startswith("image/") or not response.content:
            logger.warning("remove_bg_payload_malformed", content_type=content_type)
            raise MalformedUpstreamError(
                "Background removal failed: the response was not an image",
                service=self.service,
                details={"content_type": content_type or None}
            )

        return BackgroundRemovalResult(
            data=response.content,
            content_type=content_type,
            original_size=image.size,
            credits_charged=response.headers.get("x-credits-charged"),
        )
