from dataclasses import dataclass
from typing import Tuple

MIN_QUALITY = 10
MAX_QUALITY = 100
DEFAULT_QUALITY = 80
MAX_DIMENSION_LIMIT = 10000


@dataclass
class CompressionResult:
    """Re-encoded image plus what happened to it."""
    data: bytes
    format: str  # PIL format name: JPEG or PNG
    original_size: int
    original_dimensions: Tuple[int, int]
    output_dimensions: Tuple[int, int]
    quality: int
    resized: bool = False
    kept_original: bool = False

    @property
    def compressed_size(self) -> int:
        return len(self.data)

    @property
    def compression_ratio(self) -> float:
        if not self.original_size:
            return 1.0
        return self.compressed_size / self.original_size

    @property
    def content_type(self) -> str:
        return "image/png" if self.format == "PNG" else "image/jpeg"

    @property
    def extension(self) -> str:
        return "png" if self.format == "PNG" else "jpg"
