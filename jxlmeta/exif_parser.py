# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
EXIF/TIFF decoder

Parses the EXIF payload of a JPEG XL 'Exif' box. The payload starts with a
4-byte TIFF header offset (always consumed), optionally followed by an
``Exif\\0\\0`` marker, then a TIFF structure:

    0-1   byte order ('II' little-endian, 'MM' big-endian)
    2-3   magic number 42
    4-7   offset of IFD0, relative to the TIFF header

Malformed input never raises; every entry point reports failure as None or
a False success flag.

Copyright 2025 DNAi inc.
"""

import logging
import struct
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Tuple

from jxlmeta.exif_tags import (
    EXIF_TAG_NAMES,
    GPS_TAG_NAMES,
    TAG_SIZES,
    ExifTagType,
    TAG_ARTIST,
    TAG_COPYRIGHT,
    TAG_DATE_TIME,
    TAG_DATE_TIME_DIGITIZED,
    TAG_DATE_TIME_ORIGINAL,
    TAG_EXIF_IFD_POINTER,
    TAG_EXPOSURE_BIAS,
    TAG_EXPOSURE_PROGRAM,
    TAG_EXPOSURE_TIME,
    TAG_F_NUMBER,
    TAG_FLASH,
    TAG_FOCAL_LENGTH,
    TAG_FOCAL_LENGTH_35MM,
    TAG_GPS_ALTITUDE,
    TAG_GPS_ALTITUDE_REF,
    TAG_GPS_IFD_POINTER,
    TAG_GPS_LATITUDE,
    TAG_GPS_LATITUDE_REF,
    TAG_GPS_LONGITUDE,
    TAG_GPS_LONGITUDE_REF,
    TAG_IMAGE_DESCRIPTION,
    TAG_IMAGE_HEIGHT,
    TAG_IMAGE_WIDTH,
    TAG_ISO_SPEED_RATINGS,
    TAG_MAKE,
    TAG_METERING_MODE,
    TAG_MODEL,
    TAG_ORIENTATION,
    TAG_SOFTWARE,
    TAG_THUMBNAIL_LENGTH,
    TAG_THUMBNAIL_OFFSET,
)

logger = logging.getLogger(__name__)

MIN_EXIF_LENGTH = 14
MAX_IFD_ENTRIES = 500
TIFF_MAGIC = 42
EXIF_MARKER = b'Exif\x00\x00'
EXIF_DATE_FORMAT = '%Y:%m:%d %H:%M:%S'


class ByteOrder(Enum):
    """TIFF byte order; the value is the struct format prefix."""
    LITTLE_ENDIAN = '<'
    BIG_ENDIAN = '>'


class Orientation(IntEnum):
    """EXIF orientation codes."""
    IDENTITY = 1
    FLIP_HORIZONTAL = 2
    ROTATE_180 = 3
    FLIP_VERTICAL = 4
    TRANSPOSE = 5
    ROTATE_90 = 6
    ANTI_TRANSPOSE = 7
    ROTATE_270 = 8


class _RationalMixin:
    """Float and string conversion shared by both rational types."""

    def to_float(self) -> float:
        """Value as float; a zero denominator yields 0.0."""
        if self.denominator == 0:
            return 0.0
        return self.numerator / self.denominator

    def __float__(self) -> float:
        return self.to_float()

    def __str__(self) -> str:
        if self.denominator == 0:
            return "0"
        if self.denominator == 1:
            return str(self.numerator)
        return f"{self.numerator}/{self.denominator}"


@dataclass(frozen=True)
class ExifRational(_RationalMixin):
    """Unsigned EXIF rational."""
    numerator: int
    denominator: int


@dataclass(frozen=True)
class ExifSignedRational(_RationalMixin):
    """Signed EXIF rational."""
    numerator: int
    denominator: int


@dataclass(frozen=True)
class ExifGpsCoordinate:
    """GPS coordinate as degrees, minutes and seconds plus hemisphere letter."""
    degrees: ExifRational
    minutes: ExifRational
    seconds: ExifRational
    reference: str = 'N'

    def to_decimal_degrees(self) -> float:
        """Signed decimal degrees; negative for the S and W hemispheres."""
        value = (
            self.degrees.to_float()
            + self.minutes.to_float() / 60.0
            + self.seconds.to_float() / 3600.0
        )
        return -value if self.reference in ('S', 'W') else value

    def __str__(self) -> str:
        return (
            f"{self.degrees.to_float():g}°{self.minutes.to_float():g}'"
            f"{self.seconds.to_float():g}\"{self.reference}"
        )


@dataclass
class IfdEntry:
    """A raw 12-byte IFD entry."""
    tag: int
    tag_type: int
    count: int
    value_bytes: bytes  # inline value or offset to value


def parse_exif_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an EXIF date string (``YYYY:MM:DD HH:MM:SS``).

    Args:
        value: Date string; characters past the first 19 are ignored

    Returns:
        datetime, or None if the string is missing or malformed
    """
    if not value or len(value.strip()) < 19:
        return None
    try:
        return datetime.strptime(value[:19], EXIF_DATE_FORMAT)
    except ValueError:
        return None


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _compact(value: float) -> str:
    # One decimal place, trailing zero dropped (2.8, 50)
    return f"{value:.1f}".rstrip('0').rstrip('.')


@dataclass
class ExifData:
    """Commonly used EXIF fields extracted from IFD0 and its sub-IFDs."""
    make: Optional[str] = None
    model: Optional[str] = None
    software: Optional[str] = None
    image_description: Optional[str] = None
    copyright: Optional[str] = None
    artist: Optional[str] = None
    date_time: Optional[datetime] = None
    date_time_original: Optional[datetime] = None
    date_time_digitized: Optional[datetime] = None
    orientation: Optional[Orientation] = None
    image_width: Optional[int] = None
    image_height: Optional[int] = None
    exposure_time: Optional[ExifRational] = None
    f_number: Optional[ExifRational] = None
    iso_speed_ratings: Optional[int] = None
    focal_length: Optional[ExifRational] = None
    focal_length_35mm: Optional[int] = None
    flash: Optional[int] = None
    exposure_program: Optional[int] = None
    metering_mode: Optional[int] = None
    exposure_bias: Optional[ExifSignedRational] = None
    gps_latitude: Optional[ExifGpsCoordinate] = None
    gps_longitude: Optional[ExifGpsCoordinate] = None
    gps_altitude: Optional[ExifRational] = None
    gps_altitude_ref: Optional[int] = None
    has_thumbnail: bool = False
    thumbnail_offset: int = 0
    thumbnail_length: int = 0

    @property
    def has_gps(self) -> bool:
        return self.gps_latitude is not None and self.gps_longitude is not None

    @property
    def flash_fired(self) -> Optional[bool]:
        if self.flash is None:
            return None
        return bool(self.flash & 0x01)

    @property
    def gps_latitude_decimal(self) -> Optional[float]:
        return self.gps_latitude.to_decimal_degrees() if self.gps_latitude else None

    @property
    def gps_longitude_decimal(self) -> Optional[float]:
        return self.gps_longitude.to_decimal_degrees() if self.gps_longitude else None

    @property
    def gps_altitude_meters(self) -> Optional[float]:
        """Altitude in meters; negative when the reference marks below sea level."""
        if self.gps_altitude is None:
            return None
        altitude = self.gps_altitude.to_float()
        return -altitude if self.gps_altitude_ref == 1 else altitude

    def exposure_summary(self) -> Optional[str]:
        """
        Short exposure summary such as ``1/250s, f/2.8, ISO 100, 50mm``.

        Returns:
            Summary string, or None when no exposure fields are present
        """
        parts = []
        if self.exposure_time is not None:
            parts.append(f"{self.exposure_time}s")
        if self.f_number is not None:
            parts.append(f"f/{_compact(self.f_number.to_float())}")
        if self.iso_speed_ratings is not None:
            parts.append(f"ISO {self.iso_speed_ratings}")
        if self.focal_length is not None:
            parts.append(f"{_compact(self.focal_length.to_float())}mm")
        return ', '.join(parts) if parts else None


@dataclass
class TiffExifData:
    """
    Decoded TIFF structure of an EXIF payload.

    ``tags`` holds IFD0 values keyed by tag id; ``exif_tags`` and
    ``gps_tags`` hold the EXIF and GPS sub-IFDs when present.
    """
    byte_order: ByteOrder
    tags: Dict[int, Any] = field(default_factory=dict)
    exif_tags: Dict[int, Any] = field(default_factory=dict)
    gps_tags: Dict[int, Any] = field(default_factory=dict)
    ifd1_offset: int = 0
    thumbnail: Optional[Tuple[int, int]] = None  # (offset, length) within the TIFF data
    tiff_base: int = 4

    def get_string(self, tag: int, ifd: Optional[Dict[int, Any]] = None) -> Optional[str]:
        value = (self.tags if ifd is None else ifd).get(tag)
        return value if isinstance(value, str) else None

    def get_int(self, tag: int, ifd: Optional[Dict[int, Any]] = None) -> Optional[int]:
        value = _first((self.tags if ifd is None else ifd).get(tag))
        return value if isinstance(value, int) else None

    def get_rational(self, tag: int, ifd: Optional[Dict[int, Any]] = None):
        value = _first((self.tags if ifd is None else ifd).get(tag))
        return value if isinstance(value, (ExifRational, ExifSignedRational)) else None

    @property
    def orientation(self) -> Optional[Orientation]:
        value = self.get_int(TAG_ORIENTATION)
        if value is None or not 1 <= value <= 8:
            return None
        return Orientation(value)

    @property
    def make(self) -> Optional[str]:
        return self.get_string(TAG_MAKE)

    @property
    def model(self) -> Optional[str]:
        return self.get_string(TAG_MODEL)

    @property
    def date_time(self) -> Optional[datetime]:
        """DateTimeOriginal from the EXIF sub-IFD, else IFD0 DateTime."""
        original = parse_exif_datetime(self.get_string(TAG_DATE_TIME_ORIGINAL, self.exif_tags))
        if original is not None:
            return original
        return parse_exif_datetime(self.get_string(TAG_DATE_TIME))

    def gps_coordinate(self, tag: int, ref_tag: int) -> Optional[ExifGpsCoordinate]:
        value = self.gps_tags.get(tag)
        if not isinstance(value, list) or len(value) < 3:
            return None
        if not all(isinstance(v, ExifRational) for v in value[:3]):
            return None
        reference = self.get_string(ref_tag, self.gps_tags)
        return ExifGpsCoordinate(value[0], value[1], value[2], reference[0] if reference else 'N')

    def named_tags(self) -> Dict[str, Any]:
        """All decoded values keyed by tag name (unknown ids as hex)."""
        named = {}
        for ifd, names in ((self.tags, EXIF_TAG_NAMES), (self.exif_tags, EXIF_TAG_NAMES),
                           (self.gps_tags, GPS_TAG_NAMES)):
            for tag, value in ifd.items():
                named[names.get(tag, f"0x{tag:04X}")] = value
        return named

    def to_exif_data(self) -> ExifData:
        """Build the ExifData record from the decoded IFDs."""
        exif = self.exif_tags
        data = ExifData(
            make=self.make,
            model=self.model,
            software=self.get_string(TAG_SOFTWARE),
            image_description=self.get_string(TAG_IMAGE_DESCRIPTION),
            copyright=self.get_string(TAG_COPYRIGHT),
            artist=self.get_string(TAG_ARTIST),
            date_time=parse_exif_datetime(self.get_string(TAG_DATE_TIME)),
            date_time_original=parse_exif_datetime(self.get_string(TAG_DATE_TIME_ORIGINAL, exif)),
            date_time_digitized=parse_exif_datetime(self.get_string(TAG_DATE_TIME_DIGITIZED, exif)),
            orientation=self.orientation,
            image_width=self.get_int(TAG_IMAGE_WIDTH),
            image_height=self.get_int(TAG_IMAGE_HEIGHT),
            exposure_time=self.get_rational(TAG_EXPOSURE_TIME, exif),
            f_number=self.get_rational(TAG_F_NUMBER, exif),
            iso_speed_ratings=self.get_int(TAG_ISO_SPEED_RATINGS, exif),
            focal_length=self.get_rational(TAG_FOCAL_LENGTH, exif),
            focal_length_35mm=self.get_int(TAG_FOCAL_LENGTH_35MM, exif),
            flash=self.get_int(TAG_FLASH, exif),
            exposure_program=self.get_int(TAG_EXPOSURE_PROGRAM, exif),
            metering_mode=self.get_int(TAG_METERING_MODE, exif),
            exposure_bias=self.get_rational(TAG_EXPOSURE_BIAS, exif),
            gps_latitude=self.gps_coordinate(TAG_GPS_LATITUDE, TAG_GPS_LATITUDE_REF),
            gps_longitude=self.gps_coordinate(TAG_GPS_LONGITUDE, TAG_GPS_LONGITUDE_REF),
            gps_altitude=self.get_rational(TAG_GPS_ALTITUDE, self.gps_tags),
            gps_altitude_ref=self.get_int(TAG_GPS_ALTITUDE_REF, self.gps_tags),
        )
        if self.thumbnail is not None:
            data.has_thumbnail = True
            data.thumbnail_offset = self.tiff_base + self.thumbnail[0]
            data.thumbnail_length = self.thumbnail[1]
        return data


class _TiffReader:
    """Byte-order aware reader over the TIFF part of an EXIF payload."""

    def __init__(self, exif_data: bytes):
        self.data = bytes(exif_data)
        self.tiff_base = 4
        self.tiff_data = b''
        self.endian = '<'
        self.byte_order = ByteOrder.LITTLE_ENDIAN
        self.ifd0_offset = 0

    def parse_header(self) -> bool:
        """
        Validate the TIFF header and locate IFD0.

        Returns:
            True if the header is valid
        """
        if len(self.data) < MIN_EXIF_LENGTH:
            return False

        if self.data[4:10] == EXIF_MARKER:
            self.tiff_base = 10
        self.tiff_data = self.data[self.tiff_base:]
        if len(self.tiff_data) < 8:
            return False

        marker = self.tiff_data[0:2]
        if marker == b'II':
            self.byte_order = ByteOrder.LITTLE_ENDIAN
        elif marker == b'MM':
            self.byte_order = ByteOrder.BIG_ENDIAN
        else:
            logger.debug(f"Invalid TIFF byte order marker: {marker!r}")
            return False
        self.endian = self.byte_order.value

        magic, ifd0_offset = struct.unpack(f'{self.endian}HI', self.tiff_data[2:8])
        if magic != TIFF_MAGIC:
            logger.debug(f"Invalid TIFF magic number: {magic}")
            return False

        self.ifd0_offset = ifd0_offset
        return 8 <= ifd0_offset < len(self.tiff_data)

    def read_ifd(self, offset: int) -> Optional[Tuple[List[IfdEntry], int]]:
        """
        Read the entries of one IFD.

        Args:
            offset: IFD offset relative to the TIFF header

        Returns:
            (entries, next IFD offset), or None if the IFD does not fit
        """
        if offset < 0 or offset + 2 > len(self.tiff_data):
            return None

        entry_count = struct.unpack(f'{self.endian}H', self.tiff_data[offset:offset + 2])[0]
        end = offset + 2 + entry_count * 12
        if entry_count > MAX_IFD_ENTRIES or end + 4 > len(self.tiff_data):
            logger.debug(f"IFD at {offset} rejected: {entry_count} entries")
            return None

        entries = []
        for i in range(entry_count):
            entry_offset = offset + 2 + i * 12
            tag, tag_type, count = struct.unpack(
                f'{self.endian}HHI', self.tiff_data[entry_offset:entry_offset + 8]
            )
            entries.append(IfdEntry(tag, tag_type, count, self.tiff_data[entry_offset + 8:entry_offset + 12]))

        next_offset = struct.unpack(f'{self.endian}I', self.tiff_data[end:end + 4])[0]
        return entries, next_offset

    def read_value(self, entry: IfdEntry) -> Any:
        """
        Decode the value of an IFD entry.

        Returns:
            Decoded value, or None for unknown types and out-of-bounds data
        """
        try:
            tag_type = ExifTagType(entry.tag_type)
        except ValueError:
            return None
        if entry.count == 0:
            return None

        count = entry.count
        total_size = TAG_SIZES[tag_type] * count

        # Values of 4 bytes or less are stored inline
        if total_size <= 4:
            data = entry.value_bytes[:total_size]
        else:
            value_offset = struct.unpack(f'{self.endian}I', entry.value_bytes)[0]
            if value_offset + total_size > len(self.tiff_data):
                logger.debug(f"Tag 0x{entry.tag:04X} value out of bounds")
                return None
            data = self.tiff_data[value_offset:value_offset + total_size]

        if tag_type == ExifTagType.ASCII:
            null_pos = data.find(b'\x00')
            if null_pos >= 0:
                data = data[:null_pos]
            if any(b > 127 for b in data):
                try:
                    return data.decode('utf-8').rstrip(' ')
                except UnicodeDecodeError:
                    pass
            return data.decode('ascii', errors='replace').rstrip(' ')

        if tag_type == ExifTagType.UNDEFINED:
            return data[0] if count == 1 else bytes(data)

        if tag_type in (ExifTagType.RATIONAL, ExifTagType.SRATIONAL):
            code = 'I' if tag_type == ExifTagType.RATIONAL else 'i'
            cls = ExifRational if tag_type == ExifTagType.RATIONAL else ExifSignedRational
            raw = struct.unpack(f'{self.endian}{count * 2}{code}', data)
            values = [cls(raw[i], raw[i + 1]) for i in range(0, len(raw), 2)]
        else:
            code = {
                ExifTagType.BYTE: 'B',
                ExifTagType.SHORT: 'H',
                ExifTagType.LONG: 'I',
                ExifTagType.SLONG: 'i',
            }[tag_type]
            values = list(struct.unpack(f'{self.endian}{count}{code}', data))

        return values[0] if count == 1 else values

    def read_ifd_values(self, offset: int) -> Optional[Tuple[Dict[int, Any], int]]:
        parsed = self.read_ifd(offset)
        if parsed is None:
            return None
        entries, next_offset = parsed
        values = {}
        for entry in entries:
            value = self.read_value(entry)
            if value is not None:
                values[entry.tag] = value
        return values, next_offset


class ExifDataParser:
    """
    Entry points for decoding EXIF payloads.

    Example:
        >>> tiff = ExifDataParser.try_parse(exif_box_payload)
        >>> ok, orientation = ExifDataParser.try_get_orientation(exif_box_payload)
    """

    @staticmethod
    def try_parse(exif_data: Optional[bytes]) -> Optional[TiffExifData]:
        """
        Decode IFD0 and, when referenced, the EXIF, GPS and IFD1 directories.

        Args:
            exif_data: EXIF box payload (4-byte offset prefix + TIFF data)

        Returns:
            TiffExifData, or None if the header or IFD0 is malformed
        """
        if not exif_data:
            return None
        reader = _TiffReader(exif_data)
        if not reader.parse_header():
            return None

        ifd0 = reader.read_ifd_values(reader.ifd0_offset)
        if ifd0 is None:
            return None
        tags, ifd1_offset = ifd0
        result = TiffExifData(
            byte_order=reader.byte_order,
            tags=tags,
            ifd1_offset=ifd1_offset,
            tiff_base=reader.tiff_base,
        )

        exif_pointer = _first(tags.get(TAG_EXIF_IFD_POINTER))
        if isinstance(exif_pointer, int):
            exif_ifd = reader.read_ifd_values(exif_pointer)
            if exif_ifd is not None:
                result.exif_tags = exif_ifd[0]

        gps_pointer = _first(tags.get(TAG_GPS_IFD_POINTER))
        if isinstance(gps_pointer, int):
            gps_ifd = reader.read_ifd_values(gps_pointer)
            if gps_ifd is not None:
                result.gps_tags = gps_ifd[0]

        if ifd1_offset > 0:
            ifd1 = reader.read_ifd_values(ifd1_offset)
            if ifd1 is not None:
                offset = _first(ifd1[0].get(TAG_THUMBNAIL_OFFSET))
                length = _first(ifd1[0].get(TAG_THUMBNAIL_LENGTH))
                if isinstance(offset, int) and isinstance(length, int) and length > 0:
                    result.thumbnail = (offset, length)

        return result

    @staticmethod
    def try_parse_exif(exif_data: Optional[bytes]) -> Optional[ExifData]:
        """Decode the payload straight into an ExifData record."""
        tiff = ExifDataParser.try_parse(exif_data)
        return tiff.to_exif_data() if tiff is not None else None

    @staticmethod
    def try_get_orientation(exif_data: Optional[bytes]) -> Tuple[bool, Optional[Orientation]]:
        """
        Read the IFD0 Orientation tag.

        Returns:
            (True, Orientation) for codes 1-8, otherwise (False, None)
        """
        tiff = ExifDataParser.try_parse(exif_data)
        orientation = tiff.orientation if tiff is not None else None
        return orientation is not None, orientation

    @staticmethod
    def try_get_make_model(exif_data: Optional[bytes]) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Read camera make and model.

        Returns:
            (success, make, model); success is True when either is present
        """
        tiff = ExifDataParser.try_parse(exif_data)
        if tiff is None:
            return False, None, None
        make, model = tiff.make, tiff.model
        return (make is not None or model is not None), make, model

    @staticmethod
    def try_get_date_time(exif_data: Optional[bytes]) -> Tuple[bool, Optional[datetime]]:
        """
        Read the capture date, preferring DateTimeOriginal over DateTime.

        Returns:
            (success, datetime)
        """
        tiff = ExifDataParser.try_parse(exif_data)
        value = tiff.date_time if tiff is not None else None
        return value is not None, value

    @staticmethod
    def try_get_thumbnail(exif_data: Optional[bytes]) -> Tuple[bool, Optional[bytes]]:
        """
        Extract the IFD1 JPEG thumbnail.

        Returns:
            (success, thumbnail bytes)
        """
        tiff = ExifDataParser.try_parse(exif_data)
        if tiff is None or tiff.thumbnail is None:
            return False, None
        offset, length = tiff.thumbnail
        tiff_data = bytes(exif_data)[tiff.tiff_base:]
        if offset + length > len(tiff_data):
            return False, None
        return True, tiff_data[offset:offset + length]
