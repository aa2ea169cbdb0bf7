"""Locate the XMP packet inside a scanned JPEG container."""

from dataclasses import dataclass
from typing import Optional
import logging

from . import markers
from .segments import JpegContainer, Segment

logger = logging.getLogger(__name__)

XMP_IDENTIFIER = b'http://ns.adobe.com/xap/1.0/\x00'


@dataclass(frozen=True)
class XmpPayload:
    """XML bytes of an XMP APP1 segment.

    ``segment`` points back at the APP1 segment the packet came from;
    ``segment_offset``/``segment_length`` cover the whole segment payload,
    identifier included.
    """

    xml: bytes
    segment: Segment

    @property
    def segment_offset(self) -> int:
        return self.segment.payload_start

    @property
    def segment_length(self) -> int:
        return self.segment.payload_length


def locate_xmp(container: JpegContainer) -> Optional[XmpPayload]:
    """Find the first APP1 segment carrying an XMP packet.

    Args:
        container: Scanned JPEG container

    Returns:
        XmpPayload, or None if the image has no XMP metadata
    """
    for segment in container.find(markers.APP1):
        payload = container.payload(segment)
        if payload[:len(XMP_IDENTIFIER)] == XMP_IDENTIFIER:
            xml = bytes(payload[len(XMP_IDENTIFIER):])
            logger.debug(
                f"XMP packet found at offset {segment.offset} ({len(xml)} bytes)"
            )
            return XmpPayload(xml=xml, segment=segment)

    return None
