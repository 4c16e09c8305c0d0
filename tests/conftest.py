# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Shared fixtures and byte-level builders for the jxlmeta test suite.

EXIF payloads and JPEG XL containers are assembled with struct so every
test controls the exact bytes it feeds to the parsers.
"""

import struct

import pytest

JXL_SIGNATURE = b'\x00\x00\x00\x0cJXL \r\n\x87\n'
FTYP_BOX_PAYLOAD = b'jxl \x00\x00\x00\x00jxl '
CODESTREAM = b'\xff\x0a\x00\x00\x00\x00'

# TIFF type ids
BYTE, ASCII, SHORT, LONG, RATIONAL, UNDEFINED, SLONG, SRATIONAL = 1, 2, 3, 4, 5, 7, 9, 10


def _ifd_size(entry_count):
    return 2 + 12 * entry_count + 4


def _encode_value(endian, tag_type, value):
    if tag_type == ASCII:
        raw = value.encode('utf-8') + b'\x00'
        return len(raw), raw
    if tag_type == UNDEFINED:
        return len(value), bytes(value)
    if tag_type in (RATIONAL, SRATIONAL):
        code = 'I' if tag_type == RATIONAL else 'i'
        raw = b''.join(struct.pack(f'{endian}{code}{code}', n, d) for n, d in value)
        return len(value), raw
    code = {BYTE: 'B', SHORT: 'H', LONG: 'I', SLONG: 'i'}[tag_type]
    return len(value), struct.pack(f'{endian}{len(value)}{code}', *value)


def _encode_ifd(endian, entries, next_offset, data_pos):
    out = bytearray(struct.pack(f'{endian}H', len(entries)))
    data = bytearray()
    for tag, tag_type, value in entries:
        count, raw = _encode_value(endian, tag_type, value)
        if len(raw) <= 4:
            field = raw.ljust(4, b'\x00')
        else:
            field = struct.pack(f'{endian}I', data_pos + len(data))
            data += raw
            if len(data) % 2:
                data += b'\x00'
        out += struct.pack(f'{endian}HHI', tag, tag_type, count) + field
    out += struct.pack(f'{endian}I', next_offset)
    return bytes(out), bytes(data)


def build_exif(ifd0=(), exif=None, gps=None, thumbnail=None, big_endian=False, exif_marker=False):
    """
    Build an EXIF box payload: 4-byte offset prefix followed by TIFF data.

    Entries are (tag, type, value) tuples. Values are str for ASCII, bytes
    for UNDEFINED, a list of (numerator, denominator) for rationals and a
    list of ints otherwise.
    """
    endian = '>' if big_endian else '<'
    ifd0 = list(ifd0)
    if exif is not None:
        ifd0.append((0x8769, LONG, [0]))
    if gps is not None:
        ifd0.append((0x8825, LONG, [0]))

    pos = 8
    ifd0_pos = pos
    pos += _ifd_size(len(ifd0))
    exif_pos = pos
    if exif is not None:
        pos += _ifd_size(len(exif))
    gps_pos = pos
    if gps is not None:
        pos += _ifd_size(len(gps))
    ifd1_pos = pos
    if thumbnail is not None:
        pos += _ifd_size(2)
    thumb_pos = pos
    data_pos = pos + (len(thumbnail) if thumbnail is not None else 0)

    patched = []
    for tag, tag_type, value in ifd0:
        if tag == 0x8769:
            value = [exif_pos]
        elif tag == 0x8825:
            value = [gps_pos]
        patched.append((tag, tag_type, value))

    blocks = []
    data_area = bytearray()
    directories = [(patched, ifd1_pos if thumbnail is not None else 0)]
    if exif is not None:
        directories.append((list(exif), 0))
    if gps is not None:
        directories.append((list(gps), 0))
    if thumbnail is not None:
        directories.append(([(0x0201, LONG, [thumb_pos]), (0x0202, LONG, [len(thumbnail)])], 0))

    for entries, next_offset in directories:
        block, data = _encode_ifd(endian, entries, next_offset, data_pos + len(data_area))
        blocks.append(block)
        data_area += data

    marker = b'MM' if big_endian else b'II'
    tiff = marker + struct.pack(f'{endian}HI', 42, ifd0_pos) + b''.join(blocks)
    if thumbnail is not None:
        tiff += thumbnail
    tiff += bytes(data_area)

    prefix = b'\x00\x00\x00\x00'
    if exif_marker:
        prefix += b'Exif\x00\x00'
    return prefix + tiff


def box(box_type, payload):
    """Plain ISO BMFF box with a 32-bit size."""
    return struct.pack('>I4s', 8 + len(payload), box_type) + payload


def jxl_container(*boxes):
    """JPEG XL container: signature, ftyp, the given boxes and a codestream box."""
    return JXL_SIGNATURE + box(b'ftyp', FTYP_BOX_PAYLOAD) + b''.join(boxes) + box(b'jxlc', CODESTREAM)


@pytest.fixture
def camera_exif():
    """EXIF payload with camera, exposure and GPS fields (New York City)."""
    return build_exif(
        ifd0=[
            (0x010F, ASCII, "Canon"),
            (0x0110, ASCII, "Canon EOS R5"),
            (0x0112, SHORT, [6]),
            (0x0132, ASCII, "2024:01:15 09:30:00"),
        ],
        exif=[
            (0x829A, RATIONAL, [(1, 250)]),
            (0x829D, RATIONAL, [(28, 10)]),
            (0x8827, SHORT, [100]),
            (0x9003, ASCII, "2024:01:15 10:30:45"),
            (0x920A, RATIONAL, [(50, 1)]),
            (0x9204, SRATIONAL, [(-1, 3)]),
            (0x9209, SHORT, [1]),
        ],
        gps=[
            (0x0001, ASCII, "N"),
            (0x0002, RATIONAL, [(40, 1), (26, 1), (46, 1)]),
            (0x0003, ASCII, "W"),
            (0x0004, RATIONAL, [(74, 1), (0, 1), (21, 1)]),
            (0x0005, BYTE, [0]),
            (0x0006, RATIONAL, [(10, 1)]),
        ],
    )
