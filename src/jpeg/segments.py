"""JPEG marker segment scanner.

Parses the header portion of a JPEG byte stream into marker segments without
decoding image data. Scanning stops at the Start-Of-Scan segment (or at EOI);
everything after that point is kept as an opaque trailing region.
"""

import struct
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple
import logging

from ..exceptions import NotAnImageError
from . import markers

logger = logging.getLogger(__name__)

SOI_BYTES = b'\xff\xd8'
LENGTH_FIELD_SIZE = 2


@dataclass(frozen=True)
class Segment:
    """A single marker segment located inside a container buffer.

    Offsets are absolute positions in the buffer the segment was scanned from.
    The segment does not copy its payload; use ``JpegContainer.payload()``.
    """

    marker: int
    offset: int
    length: Optional[int] = None
    fill: int = 0

    @property
    def name(self) -> str:
        return markers.marker_name(self.marker)

    @property
    def start(self) -> int:
        """First byte of the segment, including any 0xFF fill bytes."""
        return self.offset - self.fill

    @property
    def payload_start(self) -> int:
        if self.length is None:
            return self.offset + 2
        return self.offset + 2 + LENGTH_FIELD_SIZE

    @property
    def end(self) -> int:
        """Offset one past the last byte of the segment."""
        if self.length is None:
            return self.offset + 2
        return self.offset + 2 + self.length

    @property
    def payload_length(self) -> int:
        return self.end - self.payload_start


@dataclass(frozen=True)
class JpegContainer:
    """Segments of a JPEG buffer plus the buffer itself.

    ``data[:2]`` is the SOI marker, followed by ``segments`` in file order,
    followed by the opaque region starting at ``scan_offset`` (entropy-coded
    scan data, EOI and anything after it).
    """

    data: bytes
    segments: Tuple[Segment, ...]
    scan_offset: int

    def payload(self, segment: Segment) -> memoryview:
        """Zero-copy view of a segment's payload."""
        return memoryview(self.data)[segment.payload_start:segment.end]

    def encoded(self, segment: Segment) -> bytes:
        """Raw bytes of a segment as they appear in the buffer."""
        return self.data[segment.start:segment.end]

    @property
    def trailing(self) -> memoryview:
        return memoryview(self.data)[self.scan_offset:]

    def find(self, marker: int) -> Iterator[Segment]:
        """Yield segments with the given marker code, in file order."""
        return (segment for segment in self.segments if segment.marker == marker)

    def to_bytes(self) -> bytes:
        """Re-serialize the container from its segments."""
        parts = [SOI_BYTES]
        parts.extend(self.encoded(segment) for segment in self.segments)
        parts.append(bytes(self.trailing))
        return b''.join(parts)


def scan_jpeg(data: bytes) -> JpegContainer:
    """Parse a JPEG buffer into marker segments.

    Args:
        data: Complete file contents

    Returns:
        JpegContainer referencing ``data``

    Raises:
        NotAnImageError: If the buffer does not start with SOI, or a marker
            or a declared segment length runs past the end of the buffer
    """
    data = bytes(data)
    size = len(data)

    if not data.startswith(SOI_BYTES):
        raise NotAnImageError("Missing Start-Of-Image marker", 0)

    segments = []
    pos = 2

    while pos < size:
        start = pos
        if data[pos] != 0xFF:
            raise NotAnImageError(
                f"Expected marker at offset {pos}, found 0x{data[pos]:02X}", pos
            )

        # Any number of 0xFF fill bytes may precede a marker
        while pos + 1 < size and data[pos + 1] == 0xFF:
            pos += 1

        if pos + 1 >= size:
            raise NotAnImageError(f"Truncated marker at offset {pos}", pos)

        code = data[pos + 1]
        fill = pos - start

        if code == 0x00 or code == markers.SOI:
            raise NotAnImageError(
                f"Unexpected marker 0xFF{code:02X} at offset {pos}", pos
            )

        if not markers.has_length(code):
            segments.append(Segment(code, pos, None, fill))
            pos += 2
            if code == markers.EOI:
                break
            continue

        if pos + 2 + LENGTH_FIELD_SIZE > size:
            raise NotAnImageError(
                f"{markers.marker_name(code)} length field at offset {pos} "
                f"runs past end of buffer",
                pos
            )

        length = struct.unpack_from('>H', data, pos + 2)[0]
        if length < LENGTH_FIELD_SIZE:
            raise NotAnImageError(
                f"{markers.marker_name(code)} at offset {pos} has invalid length {length}",
                pos
            )

        end = pos + 2 + length
        if end > size:
            raise NotAnImageError(
                f"{markers.marker_name(code)} at offset {pos} declares length {length} "
                f"but only {size - pos - 2} bytes remain",
                pos
            )

        segments.append(Segment(code, pos, length, fill))
        pos = end

        if code == markers.SOS:
            break

    logger.debug(f"Scanned {len(segments)} segments, scan data at offset {pos}")
    return JpegContainer(data, tuple(segments), pos)
