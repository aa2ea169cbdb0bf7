"""JPEG XMP metadata repair tool."""

__version__ = "1.0.0"
