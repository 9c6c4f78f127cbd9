"""
API v1 Router Module

All v1 endpoints are prefixed with /api/v1/

- /api/v1/compress   - Local re-encoding
- /api/v1/remove-bg  - Background removal (vendor)
- /api/v1/recognize  - Image recognition (vendor)
- /api/v1/generate   - AI image generation (vendor)
- /api/v1/features   - Tool catalog
- /api/v1/metrics    - Prometheus metrics
"""

from fastapi import APIRouter

from image_toolbox.api.v1.compress import router as compress_router
from image_toolbox.api.v1.remove_bg import router as remove_bg_router
from image_toolbox.api.v1.recognize import router as recognize_router
from image_toolbox.api.v1.generate import router as generate_router
from image_toolbox.api.v1.features import router as features_router
from image_toolbox.api.v1.metrics import router as metrics_router

# Main v1 router
api_v1_router = APIRouter(prefix="/api/v1")

api_v1_router.include_router(compress_router, prefix="/compress", tags=["compression"])
api_v1_router.include_router(remove_bg_router, prefix="/remove-bg", tags=["background removal"])
api_v1_router.include_router(recognize_router, prefix="/recognize", tags=["recognition"])
api_v1_router.include_router(generate_router, prefix="/generate", tags=["generation"])
api_v1_router.include_router(features_router, tags=["features"])
api_v1_router.include_router(metrics_router, tags=["metrics"])
