# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
jxlmeta - Color profiles and metadata boxes of JPEG XL images

Models the color encoding of a JPEG XL image (simple encodings or ICC
profiles), generates and inspects ICC profiles, captures Exif/XMP/JUMBF
metadata boxes from JPEG XL containers and decodes EXIF payloads.

Copyright 2025 DNAi inc.
"""

__version__ = "0.1.0"
__author__ = "DNAi inc."

from jxlmeta.exceptions import (
    ContainerReadError,
    DisposedResourceError,
    InvalidEncodingError,
    JxlMetaError,
    UnsupportedConversionError,
)
from jxlmeta.color_encoding import (
    ColorEncoding,
    ColorSpace,
    CustomPrimaries,
    CustomWhitePoint,
    Gamma,
    GrayscaleEncoding,
    PrimariesType,
    ProfileHandle,
    RenderingIntent,
    RgbEncoding,
    TransferFunctionType,
    WhitePointType,
    XybEncoding,
)
from jxlmeta.description import describe
from jxlmeta.icc_codec import (
    IccColorSpaceType,
    IccHeaderInfo,
    IccProfileClass,
    try_get_description,
    try_get_header_info,
    try_to_icc,
)
from jxlmeta.exif_parser import (
    ByteOrder,
    ExifData,
    ExifDataParser,
    ExifGpsCoordinate,
    ExifRational,
    ExifSignedRational,
    Orientation,
    TiffExifData,
)
from jxlmeta.metadata_box import (
    BoxEvent,
    CaptureOptions,
    CapturePreset,
    MetadataBox,
    MetadataBoxStore,
    MetadataBoxType,
)
from jxlmeta.box_payload import box_text, contains_text, decompress_box
from jxlmeta.container_parser import JxlContainerParser, capture_metadata
from jxlmeta.decoder import BasicInfo, DecoderBackend, DecoderSession, EmbeddedProfile

__all__ = [
    "JxlMetaError",
    "InvalidEncodingError",
    "UnsupportedConversionError",
    "DisposedResourceError",
    "ContainerReadError",
    "ColorEncoding",
    "ColorSpace",
    "CustomPrimaries",
    "CustomWhitePoint",
    "Gamma",
    "GrayscaleEncoding",
    "PrimariesType",
    "ProfileHandle",
    "RenderingIntent",
    "RgbEncoding",
    "TransferFunctionType",
    "WhitePointType",
    "XybEncoding",
    "describe",
    "IccColorSpaceType",
    "IccHeaderInfo",
    "IccProfileClass",
    "try_get_description",
    "try_get_header_info",
    "try_to_icc",
    "ByteOrder",
    "ExifData",
    "ExifDataParser",
    "ExifGpsCoordinate",
    "ExifRational",
    "ExifSignedRational",
    "Orientation",
    "TiffExifData",
    "BoxEvent",
    "CaptureOptions",
    "CapturePreset",
    "MetadataBox",
    "MetadataBoxStore",
    "MetadataBoxType",
    "box_text",
    "contains_text",
    "decompress_box",
    "JxlContainerParser",
    "capture_metadata",
    "BasicInfo",
    "DecoderBackend",
    "DecoderSession",
    "EmbeddedProfile",
]
