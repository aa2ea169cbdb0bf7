"""Unit tests for the JPEG segment scanner."""

import pytest

from src.exceptions import NotAnImageError
from src.jpeg import markers
from src.jpeg.segments import scan_jpeg, Segment
from conftest import build_segment, minimal_jpeg, pillow_jpeg, VALID_XMP


class TestScanJpeg:
    """Test cases for scan_jpeg."""

    def test_segments_in_file_order(self):
        """Test header segments are returned in order and scanning stops at SOS."""
        container = scan_jpeg(minimal_jpeg())

        assert [s.marker for s in container.segments] == [
            markers.APP0, markers.COM, markers.DQT, markers.SOS
        ]
        assert container.scan_offset == container.segments[-1].end

    def test_round_trip(self):
        """Test re-serializing the segments reproduces the input exactly."""
        data = minimal_jpeg()
        assert scan_jpeg(data).to_bytes() == data

    def test_round_trip_pillow_image(self):
        """Test round trip on an encoder-produced JPEG with XMP."""
        data = pillow_jpeg(VALID_XMP)
        assert scan_jpeg(data).to_bytes() == data

    def test_scan_data_not_interpreted(self):
        """Test marker-like bytes inside entropy data are not parsed."""
        scan_data = b'\xff\xe1\x00\x04\xab\xcd' + b'\xff\xc0\xff\xff'
        container = scan_jpeg(minimal_jpeg(scan_data=scan_data))

        assert len(container.segments) == 4
        assert bytes(container.trailing) == scan_data + b'\xff\xd9'

    def test_length_field_matches_payload(self):
        """Test every length field equals payload length plus two."""
        container = scan_jpeg(pillow_jpeg(VALID_XMP))

        for segment in container.segments:
            assert segment.length == segment.payload_length + 2
            assert len(container.payload(segment)) == segment.payload_length

    def test_payload_is_view(self):
        """Test payloads are views into the scanned buffer."""
        container = scan_jpeg(minimal_jpeg())
        comment = next(container.find(markers.COM))

        payload = container.payload(comment)
        assert isinstance(payload, memoryview)
        assert bytes(payload) == b'hello'

    def test_encoded_segment(self):
        """Test encoded segment bytes include marker and length."""
        container = scan_jpeg(minimal_jpeg())
        comment = next(container.find(markers.COM))

        assert container.encoded(comment) == build_segment(0xFE, b'hello')

    def test_fill_bytes_preserved(self):
        """Test 0xFF fill bytes before a marker survive the round trip."""
        data = minimal_jpeg(extra_segments=b'\xff\xff')
        container = scan_jpeg(data)

        comment = next(container.find(markers.COM))
        assert comment.fill == 2
        assert comment.start == comment.offset - 2
        assert container.to_bytes() == data

    def test_eoi_before_scan(self):
        """Test a header-only file ending in EOI keeps bytes after EOI."""
        data = b'\xff\xd8' + build_segment(0xFE, b'x') + b'\xff\xd9' + b'tail'
        container = scan_jpeg(data)

        assert [s.marker for s in container.segments] == [markers.COM, markers.EOI]
        assert container.segments[-1].length is None
        assert bytes(container.trailing) == b'tail'
        assert container.to_bytes() == data

    def test_standalone_marker(self):
        """Test TEM markers have no length field."""
        data = b'\xff\xd8\xff\x01' + build_segment(0xFE, b'x') + b'\xff\xd9'
        container = scan_jpeg(data)

        tem = container.segments[0]
        assert tem.marker == markers.TEM
        assert tem.length is None
        assert tem.end == tem.offset + 2

    def test_accepts_bytearray(self):
        """Test mutable buffers are copied into an immutable container."""
        data = bytearray(minimal_jpeg())
        container = scan_jpeg(data)

        data[2] = 0x00
        assert isinstance(container.data, bytes)
        assert container.data[2] == 0xFF


class TestScanJpegErrors:
    """Test cases for buffers that are not JPEG containers."""

    def test_missing_soi(self):
        """Test buffers without SOI are rejected."""
        with pytest.raises(NotAnImageError) as exc_info:
            scan_jpeg(b'\x89PNG\r\n\x1a\n')
        assert exc_info.value.offset == 0

    def test_empty_buffer(self):
        """Test an empty buffer is rejected."""
        with pytest.raises(NotAnImageError):
            scan_jpeg(b'')

    def test_length_runs_past_end(self):
        """Test a declared length beyond the buffer is rejected."""
        data = b'\xff\xd8\xff\xe1\x01\x00' + b'short'
        with pytest.raises(NotAnImageError) as exc_info:
            scan_jpeg(data)
        assert exc_info.value.offset == 2

    def test_truncated_length_field(self):
        """Test a marker cut off before its length field is rejected."""
        with pytest.raises(NotAnImageError):
            scan_jpeg(b'\xff\xd8\xff\xe1\x00')

    def test_truncated_marker(self):
        """Test a lone 0xFF at the end of the buffer is rejected."""
        with pytest.raises(NotAnImageError):
            scan_jpeg(b'\xff\xd8\xff')

    def test_invalid_length(self):
        """Test length fields smaller than two are rejected."""
        with pytest.raises(NotAnImageError):
            scan_jpeg(b'\xff\xd8\xff\xfe\x00\x01')

    def test_garbage_between_segments(self):
        """Test non-marker bytes between header segments are rejected."""
        data = b'\xff\xd8' + build_segment(0xFE, b'x') + b'\x00\x00'
        with pytest.raises(NotAnImageError) as exc_info:
            scan_jpeg(data)
        assert exc_info.value.offset == 7

    def test_repeated_soi(self):
        """Test a second SOI inside the header is rejected."""
        with pytest.raises(NotAnImageError):
            scan_jpeg(b'\xff\xd8\xff\xd8')


class TestSegment:
    """Test cases for Segment geometry."""

    def test_segment_with_length(self):
        """Test payload bounds for a segment with a length field."""
        segment = Segment(markers.APP1, offset=10, length=20)

        assert segment.payload_start == 14
        assert segment.end == 32
        assert segment.payload_length == 18
        assert segment.name == 'APP1'

    def test_marker_names(self):
        """Test marker names for common codes."""
        assert markers.marker_name(markers.SOF2) == 'SOF2'
        assert markers.marker_name(0xD3) == 'RST3'
        assert markers.marker_name(markers.DQT) == 'DQT'
        assert markers.marker_name(0x02) == '0x02'
