import base64

import httpx
import pytest

from image_toolbox.api.dependencies import (
    get_background_removal_adapter,
    get_generation_adapter,
    get_recognition_adapter,
)
from image_toolbox.core.config import get_settings
from image_toolbox.engines.vendors import (
    BackgroundRemovalAdapter,
    ImageGenerationAdapter,
    RecognitionAdapter,
)
from image_toolbox.main import app

GENERATED = {"data": [{"url": "https://cdn.ark.test/generated/fox.jpeg"}], "usage": {"generated_images": 1}}
ANSWER = {"choices": [{"message": {"role": "assistant", "content": "A noisy abstract pattern."}}]}


@pytest.fixture
def use_adapter(test_settings):
    """Route an adapter dependency to a stubbed vendor."""
    def install(dependency, adapter_cls, stub, settings=None):
        adapter = adapter_cls(settings or test_settings, http_client=stub.client())
        app.dependency_overrides[dependency] = lambda: adapter
        return adapter
    return install


@pytest.mark.asyncio
async def test_health_check(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_request_id_is_echoed(client):
    response = await client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


@pytest.mark.asyncio
async def test_features_catalog(client):
    response = await client.get("/api/v1/features")
    assert response.status_code == 200
    features = {f["id"]: f for f in response.json()["features"]}
    assert set(features) == {"compress", "remove-bg", "recognize", "generate"}
    assert features["compress"]["max_size_bytes"] == 10 * 1024 * 1024
    assert features["remove-bg"]["max_size_bytes"] == 12 * 1024 * 1024
    assert features["generate"]["available"] is True


# =============================================================================
# Compression
# =============================================================================

@pytest.mark.asyncio
async def test_compress_jpeg_at_half_quality(client, image_factory):
    source = image_factory("JPEG", size=(500, 500), quality=95)

    response = await client.post(
        "/api/v1/compress",
        files={"file": ("holiday.jpg", source, "image/jpeg")},
        data={"quality": "50"}
    )

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/jpeg"
    assert response.content[:3] == b"\xff\xd8\xff"
    assert len(response.content) <= len(source)
    assert response.headers["X-Original-Size"] == str(len(source))
    assert response.headers["X-Compressed-Size"] == str(len(response.content))
    assert response.headers["X-Output-Dimensions"] == "500x500"
    assert 'filename="compressed_holiday.jpg"' in response.headers["content-disposition"]


@pytest.mark.asyncio
async def test_compress_with_size_cap(client, image_factory):
    source = image_factory("PNG", size=(800, 400))

    response = await client.post(
        "/api/v1/compress",
        files={"file": ("wide.png", source, "image/png")},
        data={"quality": "80", "max_dimension": "200"}
    )

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.headers["X-Output-Dimensions"] == "200x100"


@pytest.mark.asyncio
async def test_compress_rejects_non_image(client):
    response = await client.post(
        "/api/v1/compress",
        files={"file": ("notes.txt", b"just some text", "text/plain")},
        data={"quality": "50"}
    )

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == 400
    assert "Unsupported file type" in data["error"]
    assert data["request_id"]


@pytest.mark.asyncio
async def test_compress_rejects_bad_quality(client, image_factory):
    response = await client.post(
        "/api/v1/compress",
        files={"file": ("a.jpg", image_factory("JPEG", size=(16, 16)), "image/jpeg")},
        data={"quality": "5"}
    )

    assert response.status_code == 400
    assert "Quality" in response.json()["error"]


@pytest.mark.asyncio
async def test_missing_file_is_a_400(client):
    response = await client.post("/api/v1/compress", data={"quality": "50"})

    assert response.status_code == 400
    data = response.json()
    assert data["details"]["errors"][0]["field"] == "file"


# =============================================================================
# Background Removal
# =============================================================================

@pytest.mark.asyncio
async def test_remove_background(client, use_adapter, vendor_stub, image_factory):
    cutout = image_factory("PNG", size=(32, 32), mode="RGBA")
    stub = vendor_stub(lambda request: httpx.Response(
        200, content=cutout, headers={"content-type": "image/png"}
    ))
    use_adapter(get_background_removal_adapter, BackgroundRemovalAdapter, stub)

    response = await client.post(
        "/api/v1/remove-bg",
        files={"file": ("cat.jpg", image_factory("JPEG", size=(32, 32)), "image/jpeg")}
    )

    assert response.status_code == 200
    assert response.content == cutout
    assert response.headers["content-type"] == "image/png"
    assert 'filename="no_bg_cat.png"' in response.headers["content-disposition"]
    assert len(stub.requests) == 1


@pytest.mark.asyncio
async def test_remove_background_invalid_upload_skips_vendor(client, use_adapter, vendor_stub):
    stub = vendor_stub(lambda request: httpx.Response(200, content=b""))
    use_adapter(get_background_removal_adapter, BackgroundRemovalAdapter, stub)

    response = await client.post(
        "/api/v1/remove-bg",
        files={"file": ("report.pdf", b"%PDF-1.7", "application/pdf")}
    )

    assert response.status_code == 400
    assert stub.requests == []


@pytest.mark.asyncio
async def test_remove_background_vendor_failure(client, use_adapter, vendor_stub, image_factory):
    stub = vendor_stub(lambda request: httpx.Response(500, text="internal error"))
    use_adapter(get_background_removal_adapter, BackgroundRemovalAdapter, stub)

    response = await client.post(
        "/api/v1/remove-bg",
        files={"file": ("cat.png", image_factory("PNG", size=(16, 16)), "image/png")}
    )

    assert response.status_code == 502
    data = response.json()
    assert data["error"] == "Background removal API call failed: 500"
    assert data["operation"] == "remove_bg"
    assert data["details"]["http_status"] == 500


# =============================================================================
# Recognition
# =============================================================================

@pytest.mark.asyncio
async def test_recognize_base64(client, use_adapter, vendor_stub, image_factory):
    stub = vendor_stub(lambda request: httpx.Response(200, json=ANSWER))
    use_adapter(get_recognition_adapter, RecognitionAdapter, stub)
    encoded = base64.b64encode(image_factory("JPEG", size=(32, 32))).decode()

    response = await client.post(
        "/api/v1/recognize",
        json={"image_data": f"data:image/jpeg;base64,{encoded}", "prompt": "Describe it"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["content"] == "A noisy abstract pattern."
    assert data["prompt"] == "Describe it"


@pytest.mark.asyncio
async def test_recognize_upload(client, use_adapter, vendor_stub, image_factory):
    stub = vendor_stub(lambda request: httpx.Response(200, json=ANSWER))
    use_adapter(get_recognition_adapter, RecognitionAdapter, stub)

    response = await client.post(
        "/api/v1/recognize/upload",
        files={"file": ("scene.webp", image_factory("WEBP", size=(32, 32)), "image/webp")}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["image_format"] == "webp"
    assert data["prompt"] == "What is the main content of this image?"


@pytest.mark.asyncio
async def test_recognize_rejects_bad_base64(client, use_adapter, vendor_stub):
    stub = vendor_stub(lambda request: httpx.Response(200, json=ANSWER))
    use_adapter(get_recognition_adapter, RecognitionAdapter, stub)

    response = await client.post("/api/v1/recognize", json={"image_data": "%%%"})

    assert response.status_code == 400
    assert stub.requests == []


# =============================================================================
# Generation
# =============================================================================

@pytest.mark.asyncio
async def test_generate(client, use_adapter, vendor_stub):
    stub = vendor_stub(lambda request: httpx.Response(200, json=GENERATED))
    use_adapter(get_generation_adapter, ImageGenerationAdapter, stub)

    response = await client.post(
        "/api/v1/generate",
        json={"prompt": "a fox", "style": "anime", "size": "768x512"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["image_url"] == "https://cdn.ark.test/generated/fox.jpeg"
    assert data["prompt"] == "a fox, anime style, Japanese illustration"
    assert data["vendor_size"] == "1k"


@pytest.mark.asyncio
async def test_generate_blank_prompt_skips_vendor(client, use_adapter, vendor_stub):
    stub = vendor_stub(lambda request: httpx.Response(200, json=GENERATED))
    use_adapter(get_generation_adapter, ImageGenerationAdapter, stub)

    response = await client.post("/api/v1/generate", json={"prompt": "   "})

    assert response.status_code == 400
    assert response.json()["error"] == "Please provide a description of the image"
    assert stub.requests == []


@pytest.mark.asyncio
async def test_generate_unknown_style_is_a_400(client):
    response = await client.post("/api/v1/generate", json={"prompt": "a fox", "style": "pixel"})

    assert response.status_code == 400
    assert response.json()["details"]["errors"][0]["field"] == "style"


@pytest.mark.asyncio
async def test_generate_vendor_failure(client, use_adapter, vendor_stub):
    stub = vendor_stub(lambda request: httpx.Response(500, json={"error": "boom"}))
    use_adapter(get_generation_adapter, ImageGenerationAdapter, stub)

    response = await client.post("/api/v1/generate", json={"prompt": "a fox"})

    assert response.status_code == 502
    data = response.json()
    assert data["error"] == "Image generation API call failed: 500"
    assert data["operation"] == "generate"


@pytest.mark.asyncio
async def test_generate_without_key_is_a_503(client, unconfigured_settings):
    app.dependency_overrides[get_settings] = lambda: unconfigured_settings

    response = await client.post("/api/v1/generate", json={"prompt": "a fox"})

    assert response.status_code == 503
    assert response.json()["details"]["setting"] == "ARK_API_KEY"


@pytest.mark.asyncio
async def test_generation_options(client):
    response = await client.get("/api/v1/generate/options")

    assert response.status_code == 200
    data = response.json()
    assert len(data["styles"]) == 6
    assert {s["value"] for s in data["sizes"]} == {
        "512x512", "768x512", "512x768", "1024x1024", "1024x768", "768x1024"
    }
    assert data["defaults"] == {"style": "realistic", "size": "512x512"}


@pytest.mark.asyncio
async def test_generation_download(client, use_adapter, vendor_stub):
    stub = vendor_stub(lambda request: httpx.Response(
        200, content=b"\x89PNG\r\n\x1a\nDATA", headers={"content-type": "image/png"}
    ))
    use_adapter(get_generation_adapter, ImageGenerationAdapter, stub)

    response = await client.get(
        "/api/v1/generate/download",
        params={"url": "https://cdn.ark.test/generated/fox.png", "prompt": "a fox"}
    )

    assert response.status_code == 200
    assert response.content == b"\x89PNG\r\n\x1a\nDATA"
    assert 'filename="ai_generated_a_fox_' in response.headers["content-disposition"]


# =============================================================================
# Metrics
# =============================================================================

@pytest.mark.asyncio
async def test_metrics_endpoint(client):
    await client.get("/health")

    response = await client.get("/api/v1/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text
    assert "operation_latency_seconds" in response.text
    assert "vendor_api_calls_total" in response.text


# =============================================================================
# Limits and safety
# =============================================================================

@pytest.mark.asyncio
async def test_generation_download_refuses_internal_url(client, use_adapter, vendor_stub):
    stub = vendor_stub(lambda request: httpx.Response(200, content=b"secret"))
    use_adapter(get_generation_adapter, ImageGenerationAdapter, stub)

    response = await client.get(
        "/api/v1/generate/download",
        params={"url": "http://169.254.169.254/latest/meta-data/x.png"}
    )

    assert response.status_code == 400
    assert response.json()["operation"] == "generate_download"
    assert stub.requests == []


@pytest.mark.asyncio
async def test_unhandled_error_keeps_request_id(client):
    def broken_adapter():
        raise RuntimeError("adapter exploded")

    app.dependency_overrides[get_generation_adapter] = broken_adapter

    response = await client.post(
        "/api/v1/generate",
        json={"prompt": "a fox"},
        headers={"X-Request-ID": "req-123"}
    )

    assert response.status_code == 500
    data = response.json()
    assert data["error"] == "Internal server error"
    assert data["code"] == 500
    assert data["request_id"] == "req-123"
    assert response.headers["X-Request-ID"] == "req-123"
    assert "adapter exploded" not in response.text


@pytest.mark.asyncio
async def test_cors_exposes_credit_header(client):
    response = await client.get("/health", headers={"Origin": "http://localhost:3000"})

    exposed = response.headers["access-control-expose-headers"]
    assert "X-Credits-Charged" in exposed
    assert "X-Compression-Ratio" in exposed


@pytest.mark.asyncio
async def test_compress_format_follows_bytes_not_label(client, image_factory):
    source = image_factory("PNG", size=(64, 64))

    response = await client.post(
        "/api/v1/compress",
        files={"file": ("mislabelled.jpg", source, "image/jpeg")},
        data={"quality": "60"}
    )

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert 'filename="compressed_mislabelled.png"' in response.headers["content-disposition"]


@pytest.mark.asyncio
async def test_recognition_ceiling_comes_from_settings(client, test_settings, use_adapter, vendor_stub, image_factory):
    small = test_settings.model_copy(update={"MAX_RECOGNITION_SIZE_BYTES": 1024})
    app.dependency_overrides[get_settings] = lambda: small
    stub = vendor_stub(lambda request: httpx.Response(200, json=ANSWER))
    use_adapter(get_recognition_adapter, RecognitionAdapter, stub, settings=small)
    encoded = base64.b64encode(image_factory("BMP", size=(64, 64))).decode()

    response = await client.post("/api/v1/recognize", json={"image_data": encoded})

    assert response.status_code == 400
    assert response.json()["details"]["max_size"] == 1024
    assert stub.requests == []


@pytest.mark.asyncio
async def test_prompt_limit_comes_from_settings(client, test_settings, use_adapter, vendor_stub):
    short = test_settings.model_copy(update={"MAX_PROMPT_LENGTH": 10})
    stub = vendor_stub(lambda request: httpx.Response(200, json=GENERATED))
    use_adapter(get_generation_adapter, ImageGenerationAdapter, stub, settings=short)

    response = await client.post("/api/v1/generate", json={"prompt": "a fox in the snow at dawn"})

    assert response.status_code == 400
    assert response.json()["error"] == "Prompt is longer than 10 characters"
    assert stub.requests == []
