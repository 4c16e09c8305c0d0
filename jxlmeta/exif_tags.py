# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
EXIF tag definitions

Tag ids and data types for the subset of TIFF/EXIF consumed by the
decoder: IFD0 camera and image tags, the EXIF and GPS sub-IFDs, and the
IFD1 thumbnail pointers.

Copyright 2025 DNAi inc.
"""

from enum import IntEnum


class ExifTagType(IntEnum):
    """EXIF tag data types"""
    BYTE = 1
    ASCII = 2
    SHORT = 3
    LONG = 4
    RATIONAL = 5
    UNDEFINED = 7
    SLONG = 9
    SRATIONAL = 10


# EXIF tag sizes in bytes
TAG_SIZES = {
    ExifTagType.BYTE: 1,
    ExifTagType.ASCII: 1,
    ExifTagType.SHORT: 2,
    ExifTagType.LONG: 4,
    ExifTagType.RATIONAL: 8,
    ExifTagType.UNDEFINED: 1,
    ExifTagType.SLONG: 4,
    ExifTagType.SRATIONAL: 8,
}

# IFD0 (main image)
TAG_IMAGE_WIDTH = 0x0100
TAG_IMAGE_HEIGHT = 0x0101
TAG_IMAGE_DESCRIPTION = 0x010E
TAG_MAKE = 0x010F
TAG_MODEL = 0x0110
TAG_ORIENTATION = 0x0112
TAG_SOFTWARE = 0x0131
TAG_DATE_TIME = 0x0132
TAG_ARTIST = 0x013B
TAG_COPYRIGHT = 0x8298
TAG_EXIF_IFD_POINTER = 0x8769
TAG_GPS_IFD_POINTER = 0x8825

# EXIF sub-IFD
TAG_EXPOSURE_TIME = 0x829A
TAG_F_NUMBER = 0x829D
TAG_EXPOSURE_PROGRAM = 0x8822
TAG_ISO_SPEED_RATINGS = 0x8827
TAG_DATE_TIME_ORIGINAL = 0x9003
TAG_DATE_TIME_DIGITIZED = 0x9004
TAG_EXPOSURE_BIAS = 0x9204
TAG_METERING_MODE = 0x9207
TAG_FLASH = 0x9209
TAG_FOCAL_LENGTH = 0x920A
TAG_FOCAL_LENGTH_35MM = 0xA405

# GPS sub-IFD
TAG_GPS_LATITUDE_REF = 0x0001
TAG_GPS_LATITUDE = 0x0002
TAG_GPS_LONGITUDE_REF = 0x0003
TAG_GPS_LONGITUDE = 0x0004
TAG_GPS_ALTITUDE_REF = 0x0005
TAG_GPS_ALTITUDE = 0x0006

# IFD1 (thumbnail)
TAG_THUMBNAIL_OFFSET = 0x0201
TAG_THUMBNAIL_LENGTH = 0x0202

EXIF_TAG_NAMES = {
    TAG_IMAGE_WIDTH: "ImageWidth",
    TAG_IMAGE_HEIGHT: "ImageHeight",
    TAG_IMAGE_DESCRIPTION: "ImageDescription",
    TAG_MAKE: "Make",
    TAG_MODEL: "Model",
    TAG_ORIENTATION: "Orientation",
    TAG_SOFTWARE: "Software",
    TAG_DATE_TIME: "DateTime",
    TAG_ARTIST: "Artist",
    TAG_COPYRIGHT: "Copyright",
    TAG_EXIF_IFD_POINTER: "ExifOffset",
    TAG_GPS_IFD_POINTER: "GPSInfo",
    TAG_EXPOSURE_TIME: "ExposureTime",
    TAG_F_NUMBER: "FNumber",
    TAG_EXPOSURE_PROGRAM: "ExposureProgram",
    TAG_ISO_SPEED_RATINGS: "ISO",
    TAG_DATE_TIME_ORIGINAL: "DateTimeOriginal",
    TAG_DATE_TIME_DIGITIZED: "CreateDate",
    TAG_EXPOSURE_BIAS: "ExposureCompensation",
    TAG_METERING_MODE: "MeteringMode",
    TAG_FLASH: "Flash",
    TAG_FOCAL_LENGTH: "FocalLength",
    TAG_FOCAL_LENGTH_35MM: "FocalLengthIn35mmFormat",
    TAG_THUMBNAIL_OFFSET: "ThumbnailOffset",
    TAG_THUMBNAIL_LENGTH: "ThumbnailLength",
}

GPS_TAG_NAMES = {
    TAG_GPS_LATITUDE_REF: "GPSLatitudeRef",
    TAG_GPS_LATITUDE: "GPSLatitude",
    TAG_GPS_LONGITUDE_REF: "GPSLongitudeRef",
    TAG_GPS_LONGITUDE: "GPSLongitude",
    TAG_GPS_ALTITUDE_REF: "GPSAltitudeRef",
    TAG_GPS_ALTITUDE: "GPSAltitude",
}
