"""XMP packet validation and repair."""

from .validator import XmlValidator, ValidationOutcome
from .repair import RepairedJpeg, trim_xmp_payload, build_repaired_jpeg, repair_jpeg

__all__ = [
    'XmlValidator',
    'ValidationOutcome',
    'RepairedJpeg',
    'trim_xmp_payload',
    'build_repaired_jpeg',
    'repair_jpeg'
]
