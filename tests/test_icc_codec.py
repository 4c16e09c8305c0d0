# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""Tests for ICC profile generation and inspection."""

import hashlib
import struct

import pytest

from jxlmeta.color_encoding import (
    ColorEncoding,
    ColorSpace,
    CustomPrimaries,
    Gamma,
    GrayscaleEncoding,
    PrimariesType,
    RenderingIntent,
    RgbEncoding,
    TransferFunctionType,
    WhitePointType,
    XybEncoding,
)
from jxlmeta.icc_codec import (
    IccColorSpaceType,
    IccProfileClass,
    try_get_description,
    try_get_header_info,
    try_to_icc,
)


def tag_table(icc):
    """Map tag signature to (offset, size)."""
    count = struct.unpack('>I', icc[128:132])[0]
    table = {}
    for i in range(count):
        signature, offset, size = struct.unpack('>4sII', icc[132 + i * 12:144 + i * 12])
        table[signature] = (offset, size)
    return table


def tag_payload(icc, signature):
    offset, size = tag_table(icc)[signature]
    return icc[offset:offset + size]


def profile_with_desc(payload, tag_count=None, offset=144):
    """A 128-byte header plus a single 'desc' tag holding the given payload."""
    header = bytearray(128)
    header[36:40] = b'acsp'
    count = 1 if tag_count is None else tag_count
    table = struct.pack('>I', count) + struct.pack('>4sII', b'desc', offset, len(payload))
    data = bytes(header) + table + payload
    return struct.pack('>I', len(data)) + data[4:]


class TestGeneratedProfiles:
    def test_srgb_header(self):
        icc = try_to_icc(ColorEncoding.create_srgb())
        info = try_get_header_info(icc)
        assert info.profile_size == len(icc)
        assert info.version == (4, 3, 0)
        assert info.version_string == "4.3.0"
        assert info.profile_class == IccProfileClass.DISPLAY
        assert info.color_space == IccColorSpaceType.RGB
        assert info.connection_space == "XYZ"
        assert info.rendering_intent == RenderingIntent.RELATIVE
        assert icc[36:40] == b'acsp'

    def test_description_round_trip(self):
        srgb = ColorEncoding.create_srgb()
        assert try_get_description(try_to_icc(srgb)) == srgb.get_description()

    @pytest.mark.parametrize("encoding", [
        ColorEncoding.create_linear_srgb(),
        ColorEncoding.from_encoding(ColorSpace.RGB, primaries=PrimariesType.P3),
        ColorEncoding.from_encoding(ColorSpace.RGB, primaries=PrimariesType.BT2100,
                                    transfer_function=TransferFunctionType.PQ),
        ColorEncoding.from_encoding(ColorSpace.RGB, white_point=WhitePointType.DCI, primaries=PrimariesType.P3,
                                    transfer_function=TransferFunctionType.DCI),
        ColorEncoding.from_encoding(ColorSpace.GRAYSCALE, transfer_function=TransferFunctionType.HLG),
        ColorEncoding.from_encoding(ColorSpace.RGB, white_point=WhitePointType.E, primaries=PrimariesType.SRGB,
                                    transfer_function=TransferFunctionType.BT709),
    ])
    def test_description_matches(self, encoding):
        icc = encoding.try_as_icc()
        assert icc is not None
        assert try_get_description(icc) == encoding.get_description()

    def test_rgb_tags(self):
        icc = try_to_icc(ColorEncoding.create_srgb())
        table = tag_table(icc)
        for signature in (b'desc', b'cprt', b'wtpt', b'chad', b'rXYZ', b'gXYZ', b'bXYZ',
                          b'rTRC', b'gTRC', b'bTRC'):
            assert signature in table
        assert b'cicp' not in table
        assert table[b'rTRC'] == table[b'gTRC'] == table[b'bTRC']
        assert tag_payload(icc, b'rTRC')[:4] == b'para'

    def test_copyright(self):
        icc = try_to_icc(ColorEncoding.create_srgb())
        payload = tag_payload(icc, b'cprt')
        assert payload[:4] == b'mluc'
        assert payload[28:].decode('utf-16-be') == "CC0"

    def test_white_point_is_d50(self):
        icc = try_to_icc(ColorEncoding.create_srgb())
        x, y, z = struct.unpack('>3i', tag_payload(icc, b'wtpt')[8:20])
        assert x / 65536.0 == pytest.approx(0.9642, abs=1e-4)
        assert y / 65536.0 == pytest.approx(1.0, abs=1e-4)
        assert z / 65536.0 == pytest.approx(0.8249, abs=1e-4)

    def test_colorants_sum_to_d50(self):
        icc = try_to_icc(ColorEncoding.create_srgb())
        total = [0.0, 0.0, 0.0]
        for signature in (b'rXYZ', b'gXYZ', b'bXYZ'):
            values = struct.unpack('>3i', tag_payload(icc, signature)[8:20])
            for i, value in enumerate(values):
                total[i] += value / 65536.0
        assert total == pytest.approx([0.9642, 1.0, 0.8249], abs=1e-3)

    def test_srgb_red_colorant(self):
        icc = try_to_icc(ColorEncoding.create_srgb())
        x, y, z = struct.unpack('>3i', tag_payload(icc, b'rXYZ')[8:20])
        assert (x / 65536.0, y / 65536.0, z / 65536.0) == pytest.approx((0.4361, 0.2225, 0.0139), abs=2e-3)

    def test_grayscale_profile(self):
        icc = try_to_icc(ColorEncoding.create_srgb(grayscale=True))
        info = try_get_header_info(icc)
        assert info.color_space == IccColorSpaceType.GRAY
        table = tag_table(icc)
        assert b'kTRC' in table
        assert b'rXYZ' not in table
        assert try_get_description(icc) == "Gra_D65_Rel_SRG"

    def test_linear_curve(self):
        icc = try_to_icc(ColorEncoding.create_linear_srgb())
        assert tag_payload(icc, b'rTRC') == b'curv' + b'\x00' * 4 + struct.pack('>I', 0)

    def test_gamma_curve(self):
        encoding = ColorEncoding.from_simple(GrayscaleEncoding(transfer_function=Gamma(1 / 2.2)))
        payload = tag_payload(try_to_icc(encoding), b'kTRC')
        assert payload == b'curv' + b'\x00' * 4 + struct.pack('>IH', 1, 563)

    def test_hdr_curves_and_cicp(self):
        pq = ColorEncoding.from_encoding(ColorSpace.RGB, primaries=PrimariesType.BT2100,
                                         transfer_function=TransferFunctionType.PQ)
        icc = try_to_icc(pq)
        curve = tag_payload(icc, b'rTRC')
        assert curve[:4] == b'curv'
        assert struct.unpack('>I', curve[8:12])[0] == 1024
        first, last = struct.unpack('>H', curve[12:14])[0], struct.unpack('>H', curve[-2:])[0]
        assert first == 0
        assert last == 65535
        assert tag_payload(icc, b'cicp') == b'cicp' + b'\x00' * 4 + bytes([9, 16, 0, 1])

    def test_hlg_cicp(self):
        hlg = ColorEncoding.from_encoding(ColorSpace.RGB, primaries=PrimariesType.BT2100,
                                          transfer_function=TransferFunctionType.HLG)
        assert tag_payload(try_to_icc(hlg), b'cicp')[8:] == bytes([9, 18, 0, 1])

    def test_profile_id(self):
        icc = try_to_icc(ColorEncoding.create_srgb())
        scratch = bytearray(icc)
        scratch[44:48] = b'\x00' * 4
        scratch[64:68] = b'\x00' * 4
        scratch[84:100] = b'\x00' * 16
        assert icc[84:100] == hashlib.md5(bytes(scratch)).digest()

    def test_deterministic(self):
        assert try_to_icc(ColorEncoding.create_srgb()) == try_to_icc(ColorEncoding.create_srgb())

    def test_tag_data_is_aligned(self):
        icc = try_to_icc(ColorEncoding.create_srgb())
        for offset, _ in tag_table(icc).values():
            assert offset % 4 == 0


class TestUnrepresentable:
    def test_xyb(self):
        assert try_to_icc(ColorEncoding.from_simple(XybEncoding())) is None

    def test_custom_primaries(self):
        encoding = ColorEncoding.from_simple(RgbEncoding(primaries=CustomPrimaries(0.7, 0.3, 0.2, 0.7, 0.1, 0.05)))
        assert encoding.try_as_icc() is None

    @pytest.mark.parametrize("value", [1 / 300.0, 1 / 255.999, 1000.0])
    def test_gamma_out_of_range(self, value):
        encoding = ColorEncoding.from_encoding(ColorSpace.RGB, primaries=PrimariesType.SRGB, transfer_function=Gamma(value))
        assert encoding.is_simple
        assert encoding.try_as_icc() is None

    def test_largest_gamma_exponent(self):
        encoding = ColorEncoding.from_simple(GrayscaleEncoding(transfer_function=Gamma(1 / 255.99)))
        payload = tag_payload(try_to_icc(encoding), b'kTRC')
        assert payload == b'curv' + b'\x00' * 4 + struct.pack('>IH', 1, 65533)

    def test_icc_backed_returns_stored_bytes(self):
        data = b'opaque profile bytes'
        assert ColorEncoding.from_icc(data).try_as_icc() == data


class TestHeaderInfo:
    @pytest.mark.parametrize("data", [None, b'', b'\x00' * 127])
    def test_too_short(self, data):
        assert try_get_header_info(data) is None

    def test_missing_magic(self):
        assert try_get_header_info(b'\x00' * 128) is None

    def test_unknown_signatures(self):
        header = bytearray(128)
        header[12:16] = b'abcd'
        header[16:20] = b'wxyz'
        header[36:40] = b'acsp'
        header[67] = 7
        info = try_get_header_info(bytes(header))
        assert info.profile_class == IccProfileClass.UNKNOWN
        assert info.color_space == IccColorSpaceType.UNKNOWN
        assert info.rendering_intent is None


class TestDescriptionReader:
    @pytest.mark.parametrize("data", [None, b'', b'\x00' * 131])
    def test_too_short(self, data):
        assert try_get_description(data) is None

    def test_v2_desc(self):
        text = b'Legacy sRGB\x00'
        payload = b'desc' + b'\x00' * 4 + struct.pack('>I', len(text)) + text
        assert try_get_description(profile_with_desc(payload)) == "Legacy sRGB"

    def test_text_type(self):
        payload = b'text' + b'\x00' * 4 + b'Plain text\x00\x00'
        assert try_get_description(profile_with_desc(payload)) == "Plain text"

    def test_mluc(self):
        encoded = "Wide Gamut".encode('utf-16-be')
        payload = struct.pack('>4sIII2s2sII', b'mluc', 0, 1, 12, b'en', b'US', len(encoded), 28) + encoded
        assert try_get_description(profile_with_desc(payload)) == "Wide Gamut"

    def test_implausible_tag_count(self):
        payload = b'text' + b'\x00' * 4 + b'x'
        assert try_get_description(profile_with_desc(payload, tag_count=101)) is None

    def test_offset_out_of_bounds(self):
        payload = b'text' + b'\x00' * 4 + b'x'
        assert try_get_description(profile_with_desc(payload, offset=5000)) is None

    def test_unsupported_payload_type(self):
        payload = b'XYZ ' + b'\x00' * 16
        assert try_get_description(profile_with_desc(payload)) is None

    def test_no_desc_tag(self):
        data = bytearray(profile_with_desc(b'text' + b'\x00' * 4 + b'x'))
        data[132:136] = b'cprt'
        assert try_get_description(bytes(data)) is None

    def test_truncated_generated_profile(self):
        icc = try_to_icc(ColorEncoding.create_srgb())
        assert try_get_description(icc[:200]) is None
