# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Captured box payload helpers

Caller-side access to the bytes of a captured MetadataBox: Brotli
decompression of 'brob' boxes, text decoding of XML/JUMBF payloads and a
plain substring search used for verification.

Copyright 2025 DNAi inc.
"""

import logging
from typing import Union

import brotli
import chardet

from jxlmeta.exceptions import ContainerReadError
from jxlmeta.metadata_box import MetadataBox

logger = logging.getLogger(__name__)


def decompress_box(box: MetadataBox) -> bytes:
    """
    Return the payload of a box, decompressing it if it was Brotli-wrapped.

    Args:
        box: Captured metadata box

    Returns:
        Uncompressed payload bytes

    Raises:
        ContainerReadError: If a compressed payload is not valid Brotli data
    """
    if not box.is_compressed:
        return box.data
    try:
        return brotli.decompress(box.data)
    except brotli.error as e:
        raise ContainerReadError(
            f"Failed to decompress {box.type_tag.name} box #{box.ordinal}: {e}"
        ) from e


def box_text(box: MetadataBox) -> str:
    """
    Decode a box payload to text.

    UTF-8 is tried first; otherwise the encoding detected by chardet is used
    when its confidence is above 0.5, and undecodable bytes are replaced
    as a last resort.

    Args:
        box: Captured metadata box (typically XML or JUMBF)

    Returns:
        Decoded text
    """
    data = decompress_box(box)
    try:
        return data.decode('utf-8')
    except UnicodeDecodeError:
        pass

    detected = chardet.detect(data)
    encoding = detected.get('encoding')
    if encoding and detected.get('confidence', 0.0) > 0.5:
        try:
            return data.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            logger.debug(f"Detected encoding {encoding} failed for {box.type_tag.name} box")

    return data.decode('utf-8', errors='replace')


def contains_text(box: MetadataBox, needle: Union[str, bytes]) -> bool:
    """
    Check whether a box payload contains the given text.

    This is a plain substring search over the decoded payload, not an XML
    or JUMBF parser.
    """
    if isinstance(needle, bytes):
        return needle in decompress_box(box)
    return needle in box_text(box)
