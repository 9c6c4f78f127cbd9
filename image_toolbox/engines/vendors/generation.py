"""
Image Generation Adapter

Text prompt + style + size -> Ark images/generations -> first image URL.
"""

import ipaddress
import re
import time
from typing import Optional, Tuple
from urllib.parse import urlparse

from image_toolbox.core.exceptions import InputValidationError, MalformedUpstreamError
from image_toolbox.core.logging import get_logger, with_logging
from image_toolbox.core.metrics import track_operation_latency
from image_toolbox.engines.vendors.client import VendorClient
from image_toolbox.engines.vendors.schemas import (
    GenerationResult,
    ImageSize,
    ImageStyle,
    SIZE_MAPPING,
    STYLE_PROMPTS,
)

logger = get_logger(__name__)

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def enhance_prompt(prompt: str, style: ImageStyle) -> str:
    style_prompt = STYLE_PROMPTS.get(style, "")
    return f"{prompt}, {style_prompt}" if style_prompt else prompt


def download_filename(prompt: str, content_type: str) -> str:
    """ai_generated_<first 20 chars of prompt>_<ms timestamp>.<ext>"""
    stem = re.sub(r"[^A-Za-z0-9_\-]+", "_", prompt[:20]).strip("_") or "image"
    ext = EXTENSIONS.get(content_type, "jpg")
    return f"ai_generated_{stem}_{int(time.time() * 1000)}.{ext}"


def _is_ip_literal(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


def is_result_url(url: str, allowed_hosts: str) -> bool:
    """
    True when url is http(s) on one of the comma-separated allowed hosts.

    An entry with a leading dot matches the domain and its subdomains.
    IP literals never match, so private and link-local addresses are out.
    """
    parsed = urlparse(url or "")
    host = (parsed.hostname or "").lower()
    if parsed.scheme not in ("http", "https") or not host:
        return False
    if _is_ip_literal(host):
        return False

    for entry in allowed_hosts.split(","):
        entry = entry.strip().lower()
        if not entry:
            continue
        if entry.startswith("."):
            if host == entry[1:] or host.endswith(entry):
                return True
        elif host == entry:
            return True
    return False


class ImageGenerationAdapter(VendorClient):
    service = "ark_image_generation"
    display_name = "Image generation"

    def build_payload(self, prompt: str, size: ImageSize) -> dict:
        return {
            "model": self.settings.ARK_IMAGE_MODEL,
            "prompt": prompt,
            "sequential_image_generation": "disabled",
            "response_format": "url",
            "size": SIZE_MAPPING[size],
            "stream": False,
            "watermark": self.settings.ARK_WATERMARK,
        }

    @with_logging("generate")
    async def generate(
        self,
        prompt: str,
        style: ImageStyle = ImageStyle.REALISTIC,
        size: ImageSize = ImageSize.SQUARE
    ) -> GenerationResult:
        """
        Generate one image and return its vendor URL.

        Raises:
            InputValidationError: empty prompt, prompt too long, unknown style or size
            ConfigurationError: ARK_API_KEY missing
            UpstreamError: vendor rejected the call or returned no URL
        """
        if not prompt or not prompt.strip():
            raise InputValidationError("Please provide a description of the image")
        if len(prompt) > self.settings.MAX_PROMPT_LENGTH:
            raise InputValidationError(
                f"Prompt is longer than {self.settings.MAX_PROMPT_LENGTH} characters",
                details={"length": len(prompt)}
            )
        try:
            style = ImageStyle(style)
            size = ImageSize(size)
        except ValueError as e:
            raise InputValidationError(str(e))

        api_key = self.require_setting(self.settings.ARK_API_KEY, "ARK_API_KEY")
        enhanced = enhance_prompt(prompt, style)
        payload = self.build_payload(enhanced, size)

        logger.info(
            "generation_requested",
            style=style.value,
            size=size.value,
            vendor_size=payload["size"],
            prompt_length=len(enhanced)
        )

        with track_operation_latency("generate"):
            response = await self.send(
                "POST",
                f"{self.settings.ARK_BASE_URL}/images/generations",
                headers={"Authorization": f"Bearer {api_key}"},
                json=payload
            )
        result = self.parse_json(response)

        data = result.get("data")
        first = data[0] if isinstance(data, list) and data else None
        image_url = first.get("url") if isinstance(first, dict) else None
        if not image_url:
            logger.warning("generation_payload_malformed", keys=sorted(result.keys()))
            raise MalformedUpstreamError(
                "Image generation failed: the response did not contain an image URL",
                service=self.service
            )

        return GenerationResult(
            image_url=image_url,
            prompt=enhanced,
            original_prompt=prompt,
            style=style,
            size=size,
            vendor_size=payload["size"],
            usage=result.get("usage"),
        )

    @with_logging("generate_download")
    async def download(self, url: str, prompt: Optional[str] = None) -> Tuple[bytes, str, str]:
        """
        Fetch a generated image so the client can save it.

        Returns:
            Tuple of (image bytes, content type, download filename)
        """
        if not is_result_url(url, self.settings.ARK_RESULT_HOSTS):
            logger.warning("download_url_rejected", url=url)
            raise InputValidationError(
                "Download URL must be an image URL returned by image generation",
                details={"url": url}
            )

        # Every fetched host must pass is_result_url, so no redirects
        response = await self.send("GET", url, follow_redirects=False)
        content_type = response.headers.get("content-type", "").split(";", 1)[0].strip().lower()
        if not content_type.startswith("image/") or not response.content:
            raise MalformedUpstreamError(
                "The generated image could not be downloaded",
                service=self.service,
                details={"content_type": content_type or None}
            )

        return response.content, content_type, download_filename(prompt or "", content_type)
