from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ImageStyle(str, Enum):
    REALISTIC = "realistic"
    ARTISTIC = "artistic"
    ANIME = "anime"
    CARTOON = "cartoon"
    DIGITAL = "digital"
    WATERCOLOR = "watercolor"


class ImageSize(str, Enum):
    SQUARE = "512x512"
    LANDSCAPE = "768x512"
    PORTRAIT = "512x768"
    SQUARE_HD = "1024x1024"
    LANDSCAPE_HD = "1024x768"
    PORTRAIT_HD = "768x1024"


# Appended to the user's prompt
STYLE_PROMPTS: Dict[ImageStyle, str] = {
    ImageStyle.REALISTIC: "realistic style, photorealistic, high quality photography",
    ImageStyle.ARTISTIC: "artistic style, oil painting texture, abstract art",
    ImageStyle.ANIME: "anime style, Japanese illustration",
    ImageStyle.CARTOON: "cartoon style, cute",
    ImageStyle.DIGITAL: "digital art, modern design",
    ImageStyle.WATERCOLOR: "watercolor painting, watercolor texture",
}

STYLE_LABELS: Dict[ImageStyle, Dict[str, str]] = {
    ImageStyle.REALISTIC: {"label": "Realistic", "description": "Photographic, true-to-life look"},
    ImageStyle.ARTISTIC: {"label": "Artistic", "description": "Abstract art or painting look"},
    ImageStyle.ANIME: {"label": "Anime", "description": "Japanese anime illustration"},
    ImageStyle.CARTOON: {"label": "Cartoon", "description": "Cute cartoon characters"},
    ImageStyle.DIGITAL: {"label": "Digital art", "description": "Modern digital artwork"},
    ImageStyle.WATERCOLOR: {"label": "Watercolor", "description": "Watercolor painting effect"},
}

# The generation endpoint rejects images under 921600 pixels, so the small
# presets are sent as its "1k" preset.
SIZE_MAPPING: Dict[ImageSize, str] = {
    ImageSize.SQUARE: "1k",
    ImageSize.LANDSCAPE: "1k",
    ImageSize.PORTRAIT: "1k",
    ImageSize.SQUARE_HD: "2k",
    ImageSize.LANDSCAPE_HD: "1024x768",
    ImageSize.PORTRAIT_HD: "768x1024",
}

SIZE_LABELS: Dict[ImageSize, str] = {
    ImageSize.SQUARE: "Square (512x512)",
    ImageSize.LANDSCAPE: "Landscape (768x512)",
    ImageSize.PORTRAIT: "Portrait (512x768)",
    ImageSize.SQUARE_HD: "HD square (1024x1024)",
    ImageSize.LANDSCAPE_HD: "HD landscape (1024x768)",
    ImageSize.PORTRAIT_HD: "HD portrait (768x1024)",
}


# =============================================================================
# Generation
# =============================================================================

class GenerationRequest(BaseModel):
    """Request for AI image generation."""
    prompt: str = Field("", description="What the image should show, up to MAX_PROMPT_LENGTH characters")
    style: ImageStyle = Field(ImageStyle.REALISTIC, description="Style preset appended to the prompt")
    size: ImageSize = Field(ImageSize.SQUARE, description="Requested output size")


class GenerationResult(BaseModel):
    """Generated image reference returned by the vendor."""
    success: bool = True
    image_url: str
    prompt: str = Field(..., description="Prompt sent to the vendor, style included")
    original_prompt: str
    style: ImageStyle
    size: ImageSize
    vendor_size: str
    usage: Optional[Dict[str, Any]] = None
    created_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat() + "Z")


# =============================================================================
# Recognition
# =============================================================================

class RecognitionRequest(BaseModel):
    """Request for image recognition with a base64 image."""
    image_data: str = Field(..., description="Base64 encoded image, optionally as a data: URL")
    prompt: Optional[str] = Field(None, description="Question about the image")


class RecognitionResult(BaseModel):
    """Answer from the vision model."""
    success: bool = True
    content: str
    prompt: str
    image_format: str
    usage: Optional[Dict[str, Any]] = None


# =============================================================================
# Background Removal
# =============================================================================

@dataclass
class BackgroundRemovalResult:
    """Cut-out image returned by the background-removal vendor."""
    data: bytes
    content_type: str
    original_size: int
    credits_charged: Optional[str] = None

    @property
    def output_size(self) -> int:
        return len(self.data)
