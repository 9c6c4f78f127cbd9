import io
from typing import AsyncGenerator, Callable, List, Tuple

import httpx
import pytest
from httpx import AsyncClient, ASGITransport
from PIL import Image

from image_toolbox.core.config import Settings, get_settings
from image_toolbox.main import app


class VendorStub:
    """httpx.MockTransport handler that records every request it answers."""

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]):
        self.responder = responder
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def make_image_bytes(
    fmt: str = "JPEG",
    size: Tuple[int, int] = (500, 500),
    mode: str = "RGB",
    quality: int = 95
) -> bytes:
    """Noisy test image; noise keeps lossy encoders honest about size."""
    noise = Image.effect_noise(size, 60)
    gradient = Image.linear_gradient("L").resize(size)
    image = Image.merge("RGB", (noise, gradient, noise.transpose(Image.Transpose.FLIP_LEFT_RIGHT)))
    if mode != "RGB":
        image = image.convert(mode)

    buffer = io.BytesIO()
    if fmt == "JPEG":
        image.save(buffer, format=fmt, quality=quality)
    else:
        image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def image_factory():
    return make_image_bytes


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        ARK_API_KEY="test-ark-key",
        REMOVE_BG_API_KEY="test-remove-bg-key",
        ARK_BASE_URL="https://ark.test/api/v3",
        ARK_RESULT_HOSTS=".ark.test",
        REMOVE_BG_API_URL="https://remove-bg.test/v1.0/removebg",
    )


@pytest.fixture
def unconfigured_settings() -> Settings:
    return Settings(_env_file=None, ARK_API_KEY=None, REMOVE_BG_API_KEY=None)


@pytest.fixture
async def client(test_settings) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_settings] = lambda: test_settings
    # Trigger lifespan events (startup/shutdown)
    async with app.router.lifespan_context(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def vendor_stub() -> Callable[[Callable[[httpx.Request], httpx.Response]], VendorStub]:
    """Factory for a recording MockTransport handler."""
    return VendorStub
