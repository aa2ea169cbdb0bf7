"""Rebuild a JPEG with a cleaned XMP packet."""

import struct
from dataclasses import dataclass
import logging

from ..exceptions import SegmentTooLarge
from ..jpeg.segments import JpegContainer, LENGTH_FIELD_SIZE
from ..jpeg.xmp_locator import XmpPayload, XMP_IDENTIFIER

logger = logging.getLogger(__name__)

# 16-bit length field counts itself
MAX_SEGMENT_PAYLOAD = 0xFFFF - LENGTH_FIELD_SIZE

# Bytes removed from both ends of the packet: space and every control byte
TRIM_BYTES = bytes(range(0x21))


@dataclass(frozen=True)
class RepairedJpeg:
    """A complete JPEG buffer with its XMP segment replaced.

    Attributes:
        data: New file contents (independent of the source buffer)
        xml: Corrected XMP packet written into the segment
        segment_offset: Offset of the APP1 marker in both old and new buffers
        original_length: Length field of the source segment
        new_length: Length field of the rebuilt segment
    """

    data: bytes
    xml: bytes
    segment_offset: int
    original_length: int
    new_length: int

    @property
    def bytes_removed(self) -> int:
        return self.original_length - self.new_length


def trim_xmp_payload(xml: bytes) -> bytes:
    """Strip non-XML noise surrounding an XMP packet.

    Leading and trailing whitespace and control bytes are removed, then
    anything before the first ``<`` or after the last ``>``. Bytes inside
    the outermost markup are never changed.

    Args:
        xml: Raw packet bytes

    Returns:
        Trimmed packet bytes
    """
    trimmed = bytes(xml).strip(TRIM_BYTES)

    first = trimmed.find(b'<')
    last = trimmed.rfind(b'>')
    if first == -1 or last < first:
        return trimmed

    return trimmed[first:last + 1]


def build_repaired_jpeg(
    container: JpegContainer,
    xmp: XmpPayload,
    xml: bytes
) -> RepairedJpeg:
    """Splice a new XMP packet into a copy of the container buffer.

    Every byte outside the XMP segment's length field and payload is
    copied unchanged.

    Args:
        container: Scanned source container
        xmp: Located XMP packet of ``container``
        xml: Replacement packet (without identifier)

    Returns:
        RepairedJpeg

    Raises:
        SegmentTooLarge: If identifier plus packet exceed 65533 bytes
    """
    payload = XMP_IDENTIFIER + bytes(xml)
    if len(payload) > MAX_SEGMENT_PAYLOAD:
        raise SegmentTooLarge(len(payload), MAX_SEGMENT_PAYLOAD)

    segment = xmp.segment
    new_length = len(payload) + LENGTH_FIELD_SIZE
    source = container.data

    data = b''.join([
        source[:segment.offset + 2],
        struct.pack('>H', new_length),
        payload,
        source[segment.end:]
    ])

    logger.debug(
        f"Rebuilt XMP segment at offset {segment.offset}: "
        f"length {segment.length} -> {new_length}"
    )

    return RepairedJpeg(
        data=data,
        xml=bytes(xml),
        segment_offset=segment.offset,
        original_length=segment.length,
        new_length=new_length
    )


def repair_jpeg(container: JpegContainer, xmp: XmpPayload) -> RepairedJpeg:
    """Trim the container's XMP packet and rebuild the file around it."""
    return build_repaired_jpeg(container, xmp, trim_xmp_payload(xmp.xml))
