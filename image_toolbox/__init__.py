"""Image Toolbox: compression, background removal, recognition and AI generation."""

__version__ = "1.0.0"
