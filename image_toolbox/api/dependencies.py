"""
FastAPI Dependencies

Provides dependency injection for the vendor adapters. Adapters are built
per request from settings; nothing is shared between requests. Tests
replace these through app.dependency_overrides.
"""

from fastapi import Depends

from image_toolbox.core.config import Settings, get_settings
from image_toolbox.engines.vendors import (
    BackgroundRemovalAdapter,
    ImageGenerationAdapter,
    RecognitionAdapter,
)


def get_generation_adapter(settings: Settings = Depends(get_settings)) -> ImageGenerationAdapter:
    return ImageGenerationAdapter(settings)


def get_recognition_adapter(settings: Settings = Depends(get_settings)) -> RecognitionAdapter:
    return RecognitionAdapter(settings)


def get_background_removal_adapter(
    settings: Settings = Depends(get_settings)
) -> BackgroundRemovalAdapter:
    return BackgroundRemovalAdapter(settings)
