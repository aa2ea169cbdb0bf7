"""Pytest configuration and shared fixtures."""

import io
import logging
import struct

import pytest
import tempfile
from pathlib import Path
from PIL import Image

XMP_IDENTIFIER = b'http://ns.adobe.com/xap/1.0/\x00'

VALID_XMP = (
    b'<?xpacket begin="\xef\xbb\xbf" id="W5M0MpCehiHzreSzNTczkc9d"?>\n'
    b'<x:xmpmeta xmlns:x="adobe:ns:meta/">\n'
    b'  <rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#">\n'
    b'    <rdf:Description rdf:about=""\n'
    b'        xmlns:dc="http://purl.org/dc/elements/1.1/"\n'
    b'        xmlns:xmp="http://ns.adobe.com/xap/1.0/">\n'
    b'      <dc:subject>\n'
    b'        <rdf:Bag>\n'
    b'          <rdf:li>harbour</rdf:li>\n'
    b'          <rdf:li>sunset</rdf:li>\n'
    b'        </rdf:Bag>\n'
    b'      </dc:subject>\n'
    b'      <xmp:Rating>4</xmp:Rating>\n'
    b'    </rdf:Description>\n'
    b'  </rdf:RDF>\n'
    b'</x:xmpmeta>\n'
    b'<?xpacket end="w"?>'
)

TRAILING_JUNK_XMP = VALID_XMP + b'\n   \x00\x00\x00TRAILING_GARBAGE'

UNCLOSED_TAG_XMP = b'<x:xmpmeta><a></x:xmpmeta>'


def build_segment(marker: int, payload: bytes) -> bytes:
    """Encode a marker segment with its length field."""
    return bytes([0xFF, marker]) + struct.pack('>H', len(payload) + 2) + payload


def xmp_segment(xml: bytes) -> bytes:
    return build_segment(0xE1, XMP_IDENTIFIER + xml)


def minimal_jpeg(extra_segments: bytes = b'', scan_data: bytes = None) -> bytes:
    """Hand-built JPEG: SOI, APP0, any extra segments, COM, DQT, SOS, scan data, EOI.

    The scan data contains a stuffed 0xFF00, a restart marker and a byte
    pattern that looks like an APP1 marker.
    """
    if scan_data is None:
        scan_data = b'\x12\x34\xff\x00\x56\xff\xd0\x78\xff\x00\xe1\x00\x10'
    return b''.join([
        b'\xff\xd8',
        build_segment(0xE0, b'JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'),
        extra_segments,
        build_segment(0xFE, b'hello'),
        build_segment(0xDB, b'\x00' + bytes(range(64))),
        build_segment(0xDA, b'\x01\x01\x00\x00\x3f\x00'),
        scan_data,
        b'\xff\xd9',
    ])


def pillow_jpeg(xmp: bytes = None, size=(32, 24)) -> bytes:
    """Real JPEG encoded by Pillow, optionally with an XMP segment after SOI."""
    buffer = io.BytesIO()
    Image.new('RGB', size, color=(10, 100, 200)).save(buffer, 'JPEG', quality=85)
    data = buffer.getvalue()
    if xmp is None:
        return data
    return data[:2] + xmp_segment(xmp) + data[2:]


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def write_jpeg(tmp_path):
    """Factory writing a Pillow JPEG with the given XMP packet to tmp_path."""
    def _write(name: str, xmp: bytes = None, directory: Path = None) -> Path:
        target_dir = directory or tmp_path
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / name
        path.write_bytes(pillow_jpeg(xmp))
        return path
    return _write


@pytest.fixture
def sample_config(tmp_path):
    """Provide a sample configuration for testing."""
    return {
        'repair': {
            'output_suffix': '.fixed-xmp{timestamp}.jpg',
            'overwrite_originals': False,
            'verify_image_decode': False,
            'skip_repaired_outputs': True
        },
        'workflow': {
            'extensions': ['.jpg', '.jpeg'],
            'parallel_workers': 1,
            'show_progress': False,
            'report_file': None
        },
        'logging': {
            'level': 'ERROR',
            'file': str(tmp_path / 'logs' / 'test.log'),
            'console_output': False
        }
    }


@pytest.fixture
def restore_root_logger():
    """Remove handlers installed by setup_logger and restore the root level."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
