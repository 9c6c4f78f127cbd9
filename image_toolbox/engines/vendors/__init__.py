"""
Vendor Adapters

Each adapter turns one tool request into a single vendor HTTP call:
- Image generation (Ark images/generations)
- Image recognition (Ark chat/completions)
- Background removal (remove.bg style multipart API)
"""

from image_toolbox.engines.vendors.background_removal import BackgroundRemovalAdapter
from image_toolbox.engines.vendors.generation import ImageGenerationAdapter
from image_toolbox.engines.vendors.recognition import RecognitionAdapter

__all__ = ["BackgroundRemovalAdapter", "ImageGenerationAdapter", "RecognitionAdapter"]
