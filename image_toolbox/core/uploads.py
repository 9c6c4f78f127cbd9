"""
Shared Upload Handling

One place that accepts an uploaded image and checks it before any
encode or network call is attempted: non-empty, declared MIME type,
size ceiling and magic bytes.
"""

import re
from dataclasses import dataclass
from typing import Optional

from fastapi import UploadFile

from image_toolbox.core.exceptions import InputValidationError

ACCEPTED_CONTENT_TYPES = {
    "image/jpeg": "jpeg",
    "image/jpg": "jpeg",
    "image/pjpeg": "jpeg",
    "image/png": "png",
    "image/webp": "webp",
    "image/bmp": "bmp",
    "image/x-ms-bmp": "bmp",
}

FORMAT_CONTENT_TYPES = {
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "bmp": "image/bmp",
}


@dataclass
class UploadedImage:
    """An image accepted for processing. Lives for one request."""
    data: bytes
    content_type: str
    filename: str
    detected_format: str

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def stem(self) -> str:
        name = self.filename.rsplit("/", 1)[-1].rsplit("\\", 1)[-1]
        stem = name.rsplit(".", 1)[0] if "." in name else name
        # Used in Content-Disposition, which must stay latin-1
        stem = re.sub(r"[^A-Za-z0-9_\-]+", "_", stem).strip("_")
        return stem or "image"


def detect_image_format(data: bytes) -> Optional[str]:
    """Return jpeg, png, webp or bmp from the leading bytes, or None."""
    if data[:3] == b"\xff\xd8\xff":
        return "jpeg"
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "png"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    if data[:2] == b"BM":
        return "bmp"
    return None


def format_size(num_bytes: float) -> str:
    return f"{num_bytes / (1024 * 1024):.2f}MB"


def validate_image_bytes(
    data: bytes,
    content_type: Optional[str],
    max_bytes: int,
    filename: str = "image"
) -> UploadedImage:
    """Validate an in-memory image buffer.

    Raises:
        InputValidationError: empty, wrong type, too large or not an image
    """
    if not data:
        raise InputValidationError("The uploaded file is empty")

    declared = (content_type or "").split(";", 1)[0].strip().lower()
    if declared not in ACCEPTED_CONTENT_TYPES:
        raise InputValidationError(
            f"Unsupported file type '{declared or 'unknown'}'. "
            "Please upload a JPEG, PNG, WEBP or BMP image.",
            details={"content_type": declared or None}
        )

    if len(data) > max_bytes:
        raise InputValidationError(
            f"Image size ({format_size(len(data))}) exceeds maximum allowed size "
            f"({format_size(max_bytes)}). Please compress or resize your image.",
            details={"size": len(data), "max_size": max_bytes}
        )

    detected = detect_image_format(data)
    if detected is None:
        raise InputValidationError(
            "The uploaded file is not a valid JPEG, PNG, WEBP or BMP image",
            details={"content_type": declared}
        )

    return UploadedImage(
        data=data,
        content_type=declared,
        filename=filename or "image",
        detected_format=detected,
    )


async def read_upload(file: UploadFile, max_bytes: int) -> UploadedImage:
    """Read a multipart upload and validate it.

    Reads at most one byte past the ceiling so oversized uploads are
    rejected without loading them whole.
    """
    data = await file.read(max_bytes + 1)
    return validate_image_bytes(
        data,
        file.content_type,
        max_bytes,
        filename=file.filename or "image"
    )
