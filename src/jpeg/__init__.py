"""JPEG container parsing: marker segments and the XMP packet."""

from .segments import Segment, JpegContainer, scan_jpeg
from .xmp_locator import XmpPayload, XMP_IDENTIFIER, locate_xmp

__all__ = [
    'Segment',
    'JpegContainer',
    'scan_jpeg',
    'XmpPayload',
    'XMP_IDENTIFIER',
    'locate_xmp'
]
