"""Exception hierarchy for XMP repair."""


class XmpRepairError(Exception):
    """Base class for all repair errors."""


class NotAnImageError(XmpRepairError):
    """Raised when a buffer cannot be framed as a JPEG container."""

    def __init__(self, message: str, offset: int = None):
        super().__init__(message)
        self.offset = offset


class SegmentTooLarge(XmpRepairError):
    """Raised when a rebuilt segment payload does not fit the 16-bit length field."""

    def __init__(self, payload_length: int, limit: int):
        super().__init__(
            f"Segment payload of {payload_length} bytes exceeds maximum of {limit} bytes"
        )
        self.payload_length = payload_length
        self.limit = limit
