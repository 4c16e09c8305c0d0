# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
ICC profile codec

Generates minimal ICC v4 display profiles from simple color encodings and
reads the description text and header fields back out of arbitrary ICC
profiles.

ICC layout (all fields big-endian):
    0-127     header ('acsp' magic at offset 36)
    128-131   tag count
    132-...   tag table, 12 bytes per tag (signature, offset, size)
    ...       tag payloads, each starting with a 4-byte type signature

Copyright 2025 DNAi inc.
"""

import hashlib
import logging
import math
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from jxlmeta.color_encoding import (
    ColorEncoding,
    Gamma,
    GrayscaleEncoding,
    PrimariesType,
    RenderingIntent,
    RgbEncoding,
    TransferFunctionType,
    WhitePointType,
)
from jxlmeta.description import describe

logger = logging.getLogger(__name__)

ICC_HEADER_SIZE = 128
ICC_MAGIC = b'acsp'
ICC_MAGIC_OFFSET = 36
MAX_TAG_COUNT = 100

# PCS illuminant (D50) as stored in ICC headers
D50_XYZ = (0.9642, 1.0, 0.8249)

WHITE_POINT_XY: Dict[WhitePointType, Tuple[float, float]] = {
    WhitePointType.D65: (0.3127, 0.3290),
    WhitePointType.E: (1.0 / 3.0, 1.0 / 3.0),
    WhitePointType.DCI: (0.314, 0.351),
}

PRIMARIES_XY: Dict[PrimariesType, Tuple[Tuple[float, float], ...]] = {
    PrimariesType.SRGB: ((0.64, 0.33), (0.30, 0.60), (0.15, 0.06)),
    PrimariesType.BT2100: ((0.708, 0.292), (0.170, 0.797), (0.131, 0.046)),
    PrimariesType.P3: ((0.680, 0.320), (0.265, 0.690), (0.150, 0.060)),
}

# ITU-T H.273 code points written to the 'cicp' tag
CICP_PRIMARIES = {
    PrimariesType.SRGB: 1,
    PrimariesType.BT2100: 9,
    PrimariesType.P3: 12,
}
CICP_TRANSFER = {
    TransferFunctionType.PQ: 16,
    TransferFunctionType.HLG: 18,
}

BRADFORD = (
    (0.8951, 0.2664, -0.1614),
    (-0.7502, 1.7135, 0.0367),
    (0.0389, -0.0685, 1.0296),
)

HDR_CURVE_POINTS = 1024
COPYRIGHT_TEXT = "CC0"


class IccProfileClass(Enum):
    """ICC profile/device class signatures."""
    INPUT = b'scnr'
    DISPLAY = b'mntr'
    OUTPUT = b'prtr'
    DEVICE_LINK = b'link'
    COLOR_SPACE = b'spac'
    ABSTRACT = b'abst'
    NAMED_COLOR = b'nmcl'
    UNKNOWN = b'????'


class IccColorSpaceType(Enum):
    """Data color space signatures of the ICC header."""
    RGB = b'RGB '
    GRAY = b'GRAY'
    CMYK = b'CMYK'
    XYZ = b'XYZ '
    LAB = b'Lab '
    UNKNOWN = b'????'


@dataclass
class IccHeaderInfo:
    """Fields decoded from the 128-byte ICC header."""
    profile_size: int
    preferred_cmm: str
    version: Tuple[int, int, int]
    profile_class: IccProfileClass
    color_space: IccColorSpaceType
    connection_space: str
    rendering_intent: Optional[RenderingIntent]

    @property
    def version_string(self) -> str:
        return '.'.join(str(part) for part in self.version)


def _signature_text(raw: bytes) -> str:
    return raw.decode('latin-1').rstrip(' \x00')


def try_get_header_info(icc_data: Optional[bytes]) -> Optional[IccHeaderInfo]:
    """
    Decode the ICC header.

    Args:
        icc_data: ICC profile bytes

    Returns:
        IccHeaderInfo, or None when the data is shorter than a header or the
        'acsp' magic is missing
    """
    if not icc_data or len(icc_data) < ICC_HEADER_SIZE:
        return None
    data = bytes(icc_data[:ICC_HEADER_SIZE])
    if data[ICC_MAGIC_OFFSET:ICC_MAGIC_OFFSET + 4] != ICC_MAGIC:
        logger.debug("ICC header rejected: missing 'acsp' magic")
        return None

    profile_size = struct.unpack('>I', data[0:4])[0]
    major = data[8]
    minor, bugfix = data[9] >> 4, data[9] & 0x0F

    try:
        profile_class = IccProfileClass(data[12:16])
    except ValueError:
        profile_class = IccProfileClass.UNKNOWN
    try:
        color_space = IccColorSpaceType(data[16:20])
    except ValueError:
        color_space = IccColorSpaceType.UNKNOWN

    intent_value = struct.unpack('>I', data[64:68])[0] & 0xFFFF
    try:
        rendering_intent = RenderingIntent(intent_value)
    except ValueError:
        rendering_intent = None

    return IccHeaderInfo(
        profile_size=profile_size,
        preferred_cmm=_signature_text(data[4:8]),
        version=(major, minor, bugfix),
        profile_class=profile_class,
        color_space=color_space,
        connection_space=_signature_text(data[20:24]),
        rendering_intent=rendering_intent,
    )


def _read_text_payload(payload: bytes) -> Optional[str]:
    type_sig = payload[0:4]

    if type_sig == b'desc':
        # textDescriptionType: ASCII count at 8, text at 12
        if len(payload) < 12:
            return None
        length = struct.unpack('>I', payload[8:12])[0]
        if length == 0 or 12 + length > len(payload):
            return None
        text = payload[12:12 + length].decode('ascii', errors='replace')
    elif type_sig == b'text':
        text = payload[8:].decode('ascii', errors='replace')
    elif type_sig == b'mluc':
        # multiLocalizedUnicodeType: first record only
        if len(payload) < 28:
            return None
        record_count = struct.unpack('>I', payload[8:12])[0]
        if record_count == 0:
            return None
        length, offset = struct.unpack('>II', payload[20:28])
        if offset + length > len(payload):
            return None
        text = payload[offset:offset + length].decode('utf-16-be', errors='replace')
    else:
        return None

    text = text.rstrip('\x00').strip()
    return text or None


def try_get_description(icc_data: Optional[bytes]) -> Optional[str]:
    """
    Read the text of the 'desc' tag of an ICC profile.

    Supports 'desc' (ICC v2), 'text' and 'mluc' (ICC v4) payload types.
    Malformed or truncated input yields None; this function never raises.

    Args:
        icc_data: ICC profile bytes

    Returns:
        Description text, or None
    """
    if not icc_data or len(icc_data) < ICC_HEADER_SIZE + 4:
        return None
    data = bytes(icc_data)

    try:
        tag_count = struct.unpack('>I', data[128:132])[0]
        if tag_count > MAX_TAG_COUNT or 132 + tag_count * 12 > len(data):
            logger.debug(f"ICC tag table rejected: {tag_count} tags for {len(data)} bytes")
            return None

        for i in range(tag_count):
            entry = 132 + i * 12
            signature, offset, size = struct.unpack('>4sII', data[entry:entry + 12])
            if signature != b'desc':
                continue
            if size < 8 or offset + size > len(data):
                return None
            return _read_text_payload(data[offset:offset + size])
    except (struct.error, ValueError) as e:
        logger.debug(f"Failed to read ICC description: {e}")
    return None


# ----------------------------------------------------------------------
# Profile generation
# ----------------------------------------------------------------------

def _mat_mul(a, b):
    return tuple(
        tuple(sum(a[i][k] * b[k][j] for k in range(3)) for j in range(3))
        for i in range(3)
    )


def _mat_vec(m, v):
    return tuple(sum(m[i][k] * v[k] for k in range(3)) for i in range(3))


def _mat_inv(m):
    (a, b, c), (d, e, f), (g, h, i) = m
    det = a * (e * i - f * h) - b * (d * i - f * g) + c * (d * h - e * g)
    if abs(det) < 1e-12:
        raise ValueError("Singular matrix")
    return (
        ((e * i - f * h) / det, (c * h - b * i) / det, (b * f - c * e) / det),
        ((f * g - d * i) / det, (a * i - c * g) / det, (c * d - a * f) / det),
        ((d * h - e * g) / det, (b * g - a * h) / det, (a * e - b * d) / det),
    )


def _xy_to_xyz(x: float, y: float) -> Tuple[float, float, float]:
    return (x / y, 1.0, (1.0 - x - y) / y)


def _adaptation_matrix(white_xy: Tuple[float, float]):
    """Bradford matrix adapting the given white point to D50."""
    source = _mat_vec(BRADFORD, _xy_to_xyz(*white_xy))
    target = _mat_vec(BRADFORD, D50_XYZ)
    scale = (
        (target[0] / source[0], 0.0, 0.0),
        (0.0, target[1] / source[1], 0.0),
        (0.0, 0.0, target[2] / source[2]),
    )
    return _mat_mul(_mat_inv(BRADFORD), _mat_mul(scale, BRADFORD))


def _primaries_matrix(primaries_xy, white_xy):
    """RGB to XYZ matrix for the given primaries and white point."""
    columns = [_xy_to_xyz(x, y) for x, y in primaries_xy]
    m = tuple(tuple(columns[j][i] for j in range(3)) for i in range(3))
    s = _mat_vec(_mat_inv(m), _xy_to_xyz(*white_xy))
    return tuple(tuple(m[i][j] * s[j] for j in range(3)) for i in range(3))


def _s15fixed16(value: float) -> bytes:
    return struct.pack('>i', int(round(value * 65536.0)))


def _xyz_tag(xyz: Sequence[float]) -> bytes:
    return b'XYZ ' + b'\x00' * 4 + b''.join(_s15fixed16(v) for v in xyz)


def _sf32_tag(matrix) -> bytes:
    return b'sf32' + b'\x00' * 4 + b''.join(_s15fixed16(v) for row in matrix for v in row)


def _mluc_tag(text: str) -> bytes:
    encoded = text.encode('utf-16-be')
    return struct.pack('>4sIII2s2sII', b'mluc', 0, 1, 12, b'en', b'US', len(encoded), 28) + encoded


def _curv_tag(values: Sequence[int]) -> bytes:
    return struct.pack(f'>4sII{len(values)}H', b'curv', 0, len(values), *values)


def _para_tag(g: float, a: float, b: float, c: float, d: float) -> bytes:
    # Function type 3: Y = (aX + b)^g for X >= d, else cX
    params = b''.join(_s15fixed16(v) for v in (g, a, b, c, d))
    return struct.pack('>4sIHH', b'para', 0, 3, 0) + params


def _pq_to_linear(encoded: float) -> float:
    m1 = 2610.0 / 16384.0
    m2 = 2523.0 / 4096.0 * 128.0
    c1 = 3424.0 / 4096.0
    c2 = 2413.0 / 4096.0 * 32.0
    c3 = 2392.0 / 4096.0 * 32.0
    p = encoded ** (1.0 / m2)
    return (max(p - c1, 0.0) / (c2 - c3 * p)) ** (1.0 / m1)


def _hlg_to_linear(encoded: float) -> float:
    a = 0.17883277
    b = 1.0 - 4.0 * a
    c = 0.5 - a * math.log(4.0 * a)
    if encoded <= 0.5:
        return encoded * encoded / 3.0
    return (math.exp((encoded - c) / a) + b) / 12.0


def _sampled_curve(function) -> bytes:
    last = HDR_CURVE_POINTS - 1
    values = [
        min(65535, max(0, int(round(function(i / last) * 65535.0))))
        for i in range(HDR_CURVE_POINTS)
    ]
    return _curv_tag(values)


def _trc_tag(transfer_function) -> Optional[bytes]:
    if isinstance(transfer_function, Gamma):
        encoded = int(round(256.0 / transfer_function.value))
        if not 1 <= encoded <= 0xFFFF:
            return None
        return _curv_tag([encoded])
    if transfer_function == TransferFunctionType.LINEAR:
        return _curv_tag([])
    if transfer_function == TransferFunctionType.DCI:
        return _curv_tag([int(round(2.6 * 256.0))])
    if transfer_function == TransferFunctionType.SRGB:
        return _para_tag(2.4, 1.0 / 1.055, 0.055 / 1.055, 1.0 / 12.92, 0.04045)
    if transfer_function == TransferFunctionType.BT709:
        return _para_tag(1.0 / 0.45, 1.0 / 1.099, 0.099 / 1.099, 1.0 / 4.5, 0.081)
    if transfer_function == TransferFunctionType.PQ:
        return _sampled_curve(_pq_to_linear)
    if transfer_function == TransferFunctionType.HLG:
        return _sampled_curve(_hlg_to_linear)
    return None


def _build_header(color_space: bytes, intent: RenderingIntent) -> bytearray:
    header = struct.pack(
        '>I4s4s4s4s4s6H4s4sI4s4sQI12s4s16s28s',
        0,  # size, patched after the tags are laid out
        b'\x00' * 4,
        b'\x04\x30\x00\x00',
        b'mntr',
        color_space,
        b'XYZ ',
        2019, 12, 1, 0, 0, 0,
        ICC_MAGIC,
        b'\x00' * 4,
        0,
        b'\x00' * 4,
        b'\x00' * 4,
        0,
        int(intent),
        b''.join(_s15fixed16(v) for v in D50_XYZ),
        b'jxlm',
        b'\x00' * 16,
        b'\x00' * 28,
    )
    return bytearray(header)


def _assemble(header: bytearray, tags: List[Tuple[bytes, bytes]]) -> bytes:
    table_size = 4 + 12 * len(tags)
    offset = ICC_HEADER_SIZE + table_size
    table = bytearray(struct.pack('>I', len(tags)))
    blob = bytearray()
    placed: Dict[bytes, Tuple[int, int]] = {}

    for signature, payload in tags:
        if payload not in placed:
            placed[payload] = (offset, len(payload))
            padding = (4 - len(payload) % 4) % 4
            blob += payload + b'\x00' * padding
            offset += len(payload) + padding
        tag_offset, tag_size = placed[payload]
        table += struct.pack('>4sII', signature, tag_offset, tag_size)

    profile = header + table + blob
    struct.pack_into('>I', profile, 0, len(profile))

    # Profile ID: MD5 with flags, rendering intent and ID zeroed
    scratch = bytearray(profile)
    scratch[44:48] = b'\x00' * 4
    scratch[64:68] = b'\x00' * 4
    scratch[84:100] = b'\x00' * 16
    profile[84:100] = hashlib.md5(bytes(scratch)).digest()
    return bytes(profile)


def _build_profile(encoding) -> Optional[bytes]:
    white_xy = WHITE_POINT_XY[encoding.white_point]
    trc = _trc_tag(encoding.transfer_function)
    if trc is None:
        return None

    tags: List[Tuple[bytes, bytes]] = [
        (b'desc', _mluc_tag(describe(encoding))),
        (b'cprt', _mluc_tag(COPYRIGHT_TEXT)),
        (b'wtpt', _xyz_tag(D50_XYZ)),
    ]

    if isinstance(encoding, GrayscaleEncoding):
        tags.append((b'kTRC', trc))
        return _assemble(_build_header(b'GRAY', encoding.rendering_intent), tags)

    chad = _adaptation_matrix(white_xy)
    adapted = _mat_mul(chad, _primaries_matrix(PRIMARIES_XY[encoding.primaries], white_xy))
    tags.append((b'chad', _sf32_tag(chad)))
    for index, signature in enumerate((b'rXYZ', b'gXYZ', b'bXYZ')):
        tags.append((signature, _xyz_tag([adapted[row][index] for row in range(3)])))
    for signature in (b'rTRC', b'gTRC', b'bTRC'):
        tags.append((signature, trc))

    transfer_code = CICP_TRANSFER.get(encoding.transfer_function)
    if transfer_code is not None:
        cicp = struct.pack('>4sI4B', b'cicp', 0, CICP_PRIMARIES[encoding.primaries], transfer_code, 0, 1)
        tags.append((b'cicp', cicp))

    return _assemble(_build_header(b'RGB ', encoding.rendering_intent), tags)


def try_to_icc(encoding: ColorEncoding) -> Optional[bytes]:
    """
    Serialize a color profile to ICC bytes.

    ICC-backed profiles return their stored bytes unchanged. Simple RGB and
    grayscale encodings are converted to a generated ICC v4 display profile
    whose 'desc' tag holds ``describe(encoding)``.

    Args:
        encoding: Profile to serialize

    Returns:
        ICC bytes, or None if the encoding has no ICC representation
        (XYB, custom white point or primaries, gamma out of range)
    """
    if encoding.is_icc:
        return encoding.icc_bytes
    if not encoding.is_simple:
        logger.debug(f"No ICC representation for {describe(encoding)}")
        return None

    simple = encoding.simple_encoding
    if not isinstance(simple, (RgbEncoding, GrayscaleEncoding)):
        return None
    return _build_profile(simple)
