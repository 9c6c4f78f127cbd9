import httpx
import pytest

from image_toolbox.core.exceptions import (
    ConfigurationError,
    MalformedUpstreamError,
    UpstreamError,
    UpstreamTimeoutError,
)
from image_toolbox.engines.vendors.client import ERROR_BODY_LIMIT, VendorClient


class EchoClient(VendorClient):
    service = "echo"
    display_name = "Echo"


@pytest.mark.asyncio
async def test_timeout_maps_to_504(test_settings, vendor_stub):
    def responder(request):
        raise httpx.ReadTimeout("timed out", request=request)

    client = EchoClient(test_settings, http_client=vendor_stub(responder).client())

    with pytest.raises(UpstreamTimeoutError) as exc_info:
        await client.send("GET", "https://echo.test/")

    assert exc_info.value.code == 504
    assert exc_info.value.message == "Echo did not respond within 60 seconds"
    assert exc_info.value.details["service"] == "echo"


@pytest.mark.asyncio
async def test_connection_failure_maps_to_502(test_settings, vendor_stub):
    def responder(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = EchoClient(test_settings, http_client=vendor_stub(responder).client())

    with pytest.raises(UpstreamError) as exc_info:
        await client.send("GET", "https://echo.test/")

    assert exc_info.value.code == 502
    assert exc_info.value.message.startswith("Could not reach Echo")
    assert exc_info.value.details["http_status"] is None


@pytest.mark.asyncio
async def test_error_body_is_truncated(test_settings, vendor_stub):
    stub = vendor_stub(lambda request: httpx.Response(500, text="x" * 5000))
    client = EchoClient(test_settings, http_client=stub.client())

    with pytest.raises(UpstreamError) as exc_info:
        await client.send("POST", "https://echo.test/")

    assert exc_info.value.details["http_status"] == 500
    assert len(exc_info.value.details["body"]) == ERROR_BODY_LIMIT


@pytest.mark.asyncio
async def test_success_is_returned_once(test_settings, vendor_stub):
    stub = vendor_stub(lambda request: httpx.Response(200, json={"ok": True}))
    client = EchoClient(test_settings, http_client=stub.client())

    response = await client.send("GET", "https://echo.test/")

    assert client.parse_json(response) == {"ok": True}
    assert len(stub.requests) == 1


@pytest.mark.parametrize("response", [
    httpx.Response(200, text="<html>gateway</html>"),
    httpx.Response(200, json=["not", "an", "object"]),
])
def test_parse_json_rejects_unexpected_payload(test_settings, response):
    with pytest.raises(MalformedUpstreamError):
        EchoClient(test_settings).parse_json(response)


def test_require_setting(test_settings):
    client = EchoClient(test_settings)

    assert client.require_setting("key", "ECHO_KEY") == "key"
    with pytest.raises(ConfigurationError, match="Echo API key is not configured"):
        client.require_setting(None, "ECHO_KEY")
