"""
Vendor HTTP Client

Shared request/response handling for the three vendor adapters: one
request, one response, status mapped onto the error taxonomy. No
retries; a failure is raised once to the caller.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from image_toolbox.core.config import Settings
from image_toolbox.core.exceptions import (
    ConfigurationError,
    MalformedUpstreamError,
    UpstreamError,
    UpstreamTimeoutError,
)
from image_toolbox.core.logging import get_logger
from image_toolbox.core.metrics import record_vendor_call

logger = get_logger(__name__)

# Vendor error bodies are echoed into error details, truncated
ERROR_BODY_LIMIT = 500


class VendorClient:
    """Base class for an adapter around a single vendor endpoint."""

    service: str = "vendor"
    display_name: str = "Vendor"

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.timeout = settings.HTTP_TIMEOUT_SECONDS
        self._http_client = http_client

    def require_setting(self, value: Optional[str], setting: str) -> str:
        if not value:
            raise ConfigurationError(
                f"{self.display_name} API key is not configured",
                setting=setting
            )
        return value

    @asynccontextmanager
    async def client(self) -> AsyncIterator[httpx.AsyncClient]:
        """Yield the injected client, or open one for this call."""
        if self._http_client is not None:
            yield self._http_client
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                yield client

    async def send(self, method: str, url: str, **kwargs) -> httpx.Response:
        """
        Issue one request and map failures.

        Raises:
            UpstreamTimeoutError: no answer within the timeout
            UpstreamError: transport failure or non-2xx status
        """
        start_time = datetime.utcnow()
        logger.info("vendor_call_started", service=self.service, method=method)

        try:
            async with self.client() as client:
                response = await client.request(method, url, timeout=self.timeout, **kwargs)
        except httpx.TimeoutException:
            record_vendor_call(self.service, "timeout")
            logger.warning("vendor_call_timeout", service=self.service, timeout=self.timeout)
            raise UpstreamTimeoutError(self.service, self.timeout, display_name=self.display_name)
        except httpx.HTTPError as e:
            record_vendor_call(self.service, "error")
            logger.warning("vendor_call_failed", service=self.service, error=str(e))
            raise UpstreamError(
                f"Could not reach {self.display_name}: {e}",
                service=self.service
            )

        duration_ms = int((datetime.utcnow() - start_time).total_seconds() * 1000)

        if not response.is_success:
            record_vendor_call(self.service, "error", response.status_code)
            body = response.text[:ERROR_BODY_LIMIT]
            logger.warning(
                "vendor_call_rejected",
                service=self.service,
                http_status=response.status_code,
                duration_ms=duration_ms,
                body=body
            )
            raise UpstreamError(
                f"{self.display_name} API call failed: {response.status_code}",
                service=self.service,
                http_status=response.status_code,
                details={"body": body}
            )

        record_vendor_call(self.service, "success", response.status_code)
        logger.info(
            "vendor_call_completed",
            service=self.service,
            http_status=response.status_code,
            duration_ms=duration_ms
        )
        return response

    def parse_json(self, response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            raise MalformedUpstreamError(
                f"{self.display_name} returned a response that is not JSON",
                service=self.service
            )
        if not isinstance(payload, dict):
            raise MalformedUpstreamError(
                f"{self.display_name} returned an unexpected JSON payload",
                service=self.service
            )
        return payload
