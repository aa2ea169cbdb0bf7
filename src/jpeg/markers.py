"""JPEG marker codes.

Only the second byte of each marker is stored; every marker on the wire is
``0xFF`` followed by one of these codes.
"""

TEM = 0x01

SOF0 = 0xC0
SOF1 = 0xC1
SOF2 = 0xC2
SOF3 = 0xC3
DHT = 0xC4
SOF5 = 0xC5
SOF6 = 0xC6
SOF7 = 0xC7
JPG = 0xC8
SOF9 = 0xC9
SOF10 = 0xCA
SOF11 = 0xCB
DAC = 0xCC
SOF13 = 0xCD
SOF14 = 0xCE
SOF15 = 0xCF

RST0 = 0xD0
RST7 = 0xD7
SOI = 0xD8
EOI = 0xD9
SOS = 0xDA
DQT = 0xDB
DNL = 0xDC
DRI = 0xDD
DHP = 0xDE
EXP = 0xDF

APP0 = 0xE0
APP1 = 0xE1
APP15 = 0xEF

COM = 0xFE

SOF_MARKERS = frozenset({
    SOF0, SOF1, SOF2, SOF3, SOF5, SOF6, SOF7,
    SOF9, SOF10, SOF11, SOF13, SOF14, SOF15,
})

# Markers that stand alone on the wire (no length field, no payload)
STANDALONE_MARKERS = frozenset({TEM, SOI, EOI} | set(range(RST0, RST7 + 1)))

_NAMES = {
    TEM: 'TEM',
    DHT: 'DHT',
    JPG: 'JPG',
    DAC: 'DAC',
    SOI: 'SOI',
    EOI: 'EOI',
    SOS: 'SOS',
    DQT: 'DQT',
    DNL: 'DNL',
    DRI: 'DRI',
    DHP: 'DHP',
    EXP: 'EXP',
    COM: 'COM',
}


def has_length(code: int) -> bool:
    """Return True if the marker is followed by a 2-byte length field."""
    return code not in STANDALONE_MARKERS


def marker_name(code: int) -> str:
    """Human readable name for a marker code, e.g. ``APP1`` or ``SOF0``."""
    if code in _NAMES:
        return _NAMES[code]
    if APP0 <= code <= APP15:
        return f"APP{code - APP0}"
    if code in SOF_MARKERS:
        return f"SOF{code - SOF0}"
    if RST0 <= code <= RST7:
        return f"RST{code - RST0}"
    return f"0x{code:02X}"
