# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""Tests for EXIF payload decoding."""

import struct
from datetime import datetime

import pytest

from conftest import ASCII, BYTE, RATIONAL, SHORT, build_exif
from jxlmeta.exif_parser import (
    ByteOrder,
    ExifDataParser,
    ExifGpsCoordinate,
    ExifRational,
    ExifSignedRational,
    Orientation,
    parse_exif_datetime,
)


def minimal_exif(big_endian=False):
    """Prefix, TIFF header and one IFD with zero entries."""
    if big_endian:
        return b'\x00\x00\x00\x00' + b'MM' + struct.pack('>HI', 42, 8) + struct.pack('>HI', 0, 0)
    return b'\x00\x00\x00\x00' + b'II' + struct.pack('<HI', 42, 8) + struct.pack('<HI', 0, 0)


class TestRationals:
    def test_unsigned_rational(self):
        assert ExifRational(1, 4).to_float() == 0.25
        assert float(ExifRational(1, 4)) == 0.25

    def test_zero_denominator_is_zero(self):
        assert ExifRational(5, 0).to_float() == 0.0
        assert str(ExifRational(5, 0)) == "0"

    def test_signed_rational(self):
        assert ExifSignedRational(-1, 3).to_float() == pytest.approx(-0.333333, abs=1e-6)
        assert str(ExifSignedRational(-1, 3)) == "-1/3"
        assert str(ExifSignedRational(-6, 1)) == "-6"
        assert str(ExifSignedRational(-6, 0)) == "0"
        assert float(ExifSignedRational(-6, 0)) == 0.0

    def test_signed_and_unsigned_are_distinct(self):
        assert ExifSignedRational(1, 2) != ExifRational(1, 2)
        assert not isinstance(ExifSignedRational(1, 2), ExifRational)

    def test_string_forms(self):
        assert str(ExifRational(1, 250)) == "1/250"
        assert str(ExifRational(50, 1)) == "50"


class TestGpsCoordinate:
    def test_north(self):
        coordinate = ExifGpsCoordinate(ExifRational(40, 1), ExifRational(26, 1), ExifRational(46, 1), 'N')
        assert coordinate.to_decimal_degrees() == pytest.approx(40.446111, abs=1e-6)

    def test_west_is_negative(self):
        coordinate = ExifGpsCoordinate(ExifRational(74, 1), ExifRational(0, 1), ExifRational(21, 1), 'W')
        assert coordinate.to_decimal_degrees() == pytest.approx(-74.005833, abs=1e-6)

    def test_south_is_negative(self):
        coordinate = ExifGpsCoordinate(ExifRational(33, 1), ExifRational(52, 1), ExifRational(0, 1), 'S')
        assert coordinate.to_decimal_degrees() < 0


class TestMalformedInput:
    @pytest.mark.parametrize("data", [None, b'', b'\x00' * 13])
    def test_too_short(self, data):
        assert ExifDataParser.try_parse(data) is None

    def test_bad_byte_order_marker(self):
        data = b'\x00\x00\x00\x00' + b'XX' + struct.pack('<HI', 42, 8) + struct.pack('<HI', 0, 0)
        assert ExifDataParser.try_parse(data) is None

    def test_bad_magic(self):
        data = b'\x00\x00\x00\x00' + b'II' + struct.pack('<HI', 43, 8) + struct.pack('<HI', 0, 0)
        assert ExifDataParser.try_parse(data) is None

    def test_ifd0_offset_out_of_range(self):
        data = b'\x00\x00\x00\x00' + b'II' + struct.pack('<HI', 42, 500) + struct.pack('<HI', 0, 0)
        assert ExifDataParser.try_parse(data) is None

    def test_ifd0_offset_below_header(self):
        data = b'\x00\x00\x00\x00' + b'II' + struct.pack('<HI', 42, 4) + struct.pack('<HI', 0, 0)
        assert ExifDataParser.try_parse(data) is None

    def test_too_many_entries(self):
        data = b'\x00\x00\x00\x00' + b'II' + struct.pack('<HI', 42, 8) + struct.pack('<H', 501) + b'\x00' * 64
        assert ExifDataParser.try_parse(data) is None

    def test_entries_past_end(self):
        data = b'\x00\x00\x00\x00' + b'II' + struct.pack('<HI', 42, 8) + struct.pack('<H', 3) + b'\x00' * 10
        assert ExifDataParser.try_parse(data) is None

    def test_getters_report_failure(self):
        assert ExifDataParser.try_get_orientation(b'junk') == (False, None)
        assert ExifDataParser.try_get_make_model(b'junk') == (False, None, None)
        assert ExifDataParser.try_get_date_time(b'junk') == (False, None)
        assert ExifDataParser.try_get_thumbnail(b'junk') == (False, None)


class TestMinimalIfd:
    @pytest.mark.parametrize("big_endian,byte_order", [
        (False, ByteOrder.LITTLE_ENDIAN),
        (True, ByteOrder.BIG_ENDIAN),
    ])
    def test_empty_ifd_parses(self, big_endian, byte_order):
        tiff = ExifDataParser.try_parse(minimal_exif(big_endian))
        assert tiff is not None
        assert tiff.byte_order == byte_order
        assert tiff.tags == {}
        assert tiff.thumbnail is None

    def test_empty_ifd_has_no_orientation(self):
        assert ExifDataParser.try_get_orientation(minimal_exif()) == (False, None)
        assert ExifDataParser.try_get_make_model(minimal_exif()) == (False, None, None)


class TestTagReading:
    @pytest.mark.parametrize("big_endian", [False, True])
    def test_orientation_both_byte_orders(self, big_endian):
        data = build_exif([(0x0112, SHORT, [6])], big_endian=big_endian)
        assert ExifDataParser.try_get_orientation(data) == (True, Orientation.ROTATE_90)

    def test_orientation_out_of_range(self):
        data = build_exif([(0x0112, SHORT, [9])])
        assert ExifDataParser.try_get_orientation(data) == (False, None)

    def test_make_model(self, camera_exif):
        assert ExifDataParser.try_get_make_model(camera_exif) == (True, "Canon", "Canon EOS R5")

    def test_model_only(self):
        data = build_exif([(0x0110, ASCII, "Pixel 8")])
        assert ExifDataParser.try_get_make_model(data) == (True, None, "Pixel 8")

    def test_date_time_prefers_original(self, camera_exif):
        ok, value = ExifDataParser.try_get_date_time(camera_exif)
        assert ok
        assert value == datetime(2024, 1, 15, 10, 30, 45)

    def test_date_time_falls_back_to_ifd0(self):
        data = build_exif([(0x0132, ASCII, "2023:06:01 12:00:00")])
        assert ExifDataParser.try_get_date_time(data) == (True, datetime(2023, 6, 1, 12, 0, 0))

    def test_exif_marker_shifts_tiff_base(self):
        data = build_exif([(0x010F, ASCII, "Nikon")], exif_marker=True)
        tiff = ExifDataParser.try_parse(data)
        assert tiff.tiff_base == 10
        assert tiff.make == "Nikon"

    def test_unknown_type_is_skipped(self):
        data = build_exif([(0x0112, SHORT, [3])])
        # Rewrite the type field of the only entry to an unknown type id
        patched = bytearray(data)
        struct.pack_into('<H', patched, 4 + 8 + 2 + 2, 99)
        tiff = ExifDataParser.try_parse(bytes(patched))
        assert tiff is not None
        assert tiff.orientation is None

    def test_out_of_bounds_value_is_skipped(self):
        data = build_exif([(0x010F, ASCII, "Canon")])
        patched = bytearray(data)
        struct.pack_into('<I', patched, 4 + 8 + 2 + 8, 10000)
        tiff = ExifDataParser.try_parse(bytes(patched))
        assert tiff is not None
        assert tiff.make is None

    def test_named_tags(self, camera_exif):
        named = ExifDataParser.try_parse(camera_exif).named_tags()
        assert named['Make'] == "Canon"
        assert named['ISO'] == 100
        assert named['ExposureTime'] == ExifRational(1, 250)
        assert named['GPSLatitudeRef'] == "N"


class TestExifData:
    def test_camera_fields(self, camera_exif):
        exif = ExifDataParser.try_parse_exif(camera_exif)
        assert exif.make == "Canon"
        assert exif.orientation == Orientation.ROTATE_90
        assert exif.date_time == datetime(2024, 1, 15, 9, 30, 0)
        assert exif.date_time_original == datetime(2024, 1, 15, 10, 30, 45)
        assert exif.exposure_time == ExifRational(1, 250)
        assert exif.iso_speed_ratings == 100
        assert exif.exposure_bias.to_float() == pytest.approx(-1 / 3)
        assert exif.flash_fired is True

    def test_exposure_summary(self, camera_exif):
        exif = ExifDataParser.try_parse_exif(camera_exif)
        assert exif.exposure_summary() == "1/250s, f/2.8, ISO 100, 50mm"

    def test_gps(self, camera_exif):
        exif = ExifDataParser.try_parse_exif(camera_exif)
        assert exif.has_gps
        assert exif.gps_latitude_decimal == pytest.approx(40.446111, abs=1e-6)
        assert exif.gps_longitude_decimal == pytest.approx(-74.005833, abs=1e-6)
        assert exif.gps_altitude_meters == 10.0

    def test_gps_reference_defaults_to_north(self):
        data = build_exif(gps=[
            (0x0002, RATIONAL, [(10, 1), (0, 1), (0, 1)]),
            (0x0004, RATIONAL, [(20, 1), (0, 1), (0, 1)]),
        ])
        exif = ExifDataParser.try_parse_exif(data)
        assert exif.gps_latitude.reference == 'N'
        assert exif.gps_latitude_decimal == 10.0

    def test_altitude_below_sea_level(self):
        data = build_exif(gps=[(0x0005, BYTE, [1]), (0x0006, RATIONAL, [(5, 1)])])
        assert ExifDataParser.try_parse_exif(data).gps_altitude_meters == -5.0

    def test_no_exposure_fields(self):
        exif = ExifDataParser.try_parse_exif(minimal_exif())
        assert exif.exposure_summary() is None
        assert not exif.has_gps


class TestThumbnail:
    def test_thumbnail_extracted(self):
        jpeg = b'\xff\xd8\xff\xe0thumbnail\xff\xd9'
        data = build_exif([(0x0112, SHORT, [1])], thumbnail=jpeg)
        assert ExifDataParser.try_get_thumbnail(data) == (True, jpeg)

        exif = ExifDataParser.try_parse_exif(data)
        assert exif.has_thumbnail
        assert exif.thumbnail_length == len(jpeg)
        assert data[exif.thumbnail_offset:exif.thumbnail_offset + len(jpeg)] == jpeg

    def test_thumbnail_out_of_bounds(self):
        data = build_exif([(0x0112, SHORT, [1])], thumbnail=b'\xff\xd8\xff\xd9')
        tiff = ExifDataParser.try_parse(data)
        offset, _ = tiff.thumbnail
        # Cut the payload so the declared thumbnail runs past the end
        assert ExifDataParser.try_get_thumbnail(data[:tiff.tiff_base + offset + 2]) == (False, None)

    def test_no_ifd1(self, camera_exif):
        assert ExifDataParser.try_get_thumbnail(camera_exif) == (False, None)


class TestDateParsing:
    def test_valid(self):
        assert parse_exif_datetime("2024:01:15 10:30:45") == datetime(2024, 1, 15, 10, 30, 45)

    def test_trailing_characters_ignored(self):
        assert parse_exif_datetime("2024:01:15 10:30:45\x00extra") == datetime(2024, 1, 15, 10, 30, 45)

    @pytest.mark.parametrize("value", [None, "", "2024:01:15", "not a date at all!!", "2024:13:45 10:30:45"])
    def test_invalid(self, value):
        assert parse_exif_datetime(value) is None
