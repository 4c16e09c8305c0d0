# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
JPEG XL container scanner

A JPEG XL file is either a bare codestream (starting with FF 0A) or an ISO
BMFF container that starts with the 12-byte signature box
``00 00 00 0C 'JXL ' 0D 0A 87 0A``. Container boxes carry a 4-byte
big-endian size and a 4-byte type; size 1 means a 64-bit size follows and
size 0 means the box extends to the end of the file.

Metadata lives in 'Exif', 'xml ' and 'jumb' boxes, or in 'brob' boxes whose
first 4 payload bytes name the wrapped type and whose remainder is Brotli
compressed.

Copyright 2025 DNAi inc.
"""

import logging
import struct
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple

from jxlmeta.exceptions import ContainerReadError
from jxlmeta.metadata_box import BoxEvent, CaptureOptions, MetadataBoxStore, MetadataBoxType

logger = logging.getLogger(__name__)

JXL_CONTAINER_SIGNATURE = b'\x00\x00\x00\x0cJXL \r\n\x87\n'
JXL_CODESTREAM_SIGNATURE = b'\xff\x0a'
BROTLI_BOX_TYPE = b'brob'


class JxlContainerParser:
    """
    Walks the top-level boxes of a JPEG XL file.

    Scanning is tolerant: a truncated trailing box ends the scan and the
    boxes found before it are still reported.
    """

    def __init__(self, file_path: Optional[str] = None, file_data: Optional[bytes] = None):
        """
        Initialize container parser.

        Args:
            file_path: Path to JPEG XL file
            file_data: JPEG XL file data bytes
        """
        if file_path:
            self.file_path = Path(file_path)
            self.file_data = None
        elif file_data is not None:
            self.file_data = bytes(file_data)
            self.file_path = None
        else:
            raise ValueError("Either file_path or file_data must be provided")

    def _data(self) -> bytes:
        if self.file_data is None:
            with open(self.file_path, 'rb') as f:
                self.file_data = f.read()
        return self.file_data

    @property
    def is_container(self) -> bool:
        return self._data().startswith(JXL_CONTAINER_SIGNATURE)

    @property
    def is_codestream(self) -> bool:
        return self._data().startswith(JXL_CODESTREAM_SIGNATURE)

    def iter_boxes(self) -> Iterator[Tuple[bytes, bytes]]:
        """
        Yield (box type, payload) for each complete top-level box.

        Nothing is yielded for bare codestreams or non-JPEG XL data.
        """
        data = self._data()
        if not data.startswith(JXL_CONTAINER_SIGNATURE):
            return

        offset = 0
        while offset + 8 <= len(data):
            size, box_type = struct.unpack('>I4s', data[offset:offset + 8])
            header_size = 8
            if size == 1:
                if offset + 16 > len(data):
                    logger.debug(f"Truncated extended box header at {offset}")
                    return
                size = struct.unpack('>Q', data[offset + 8:offset + 16])[0]
                header_size = 16
            elif size == 0:
                size = len(data) - offset

            if size < header_size or offset + size > len(data):
                logger.debug(f"Truncated {box_type!r} box at {offset}: declared {size} bytes")
                return

            yield box_type, data[offset + header_size:offset + size]
            offset += size

    def events(self) -> Iterator[BoxEvent]:
        """Yield a BoxEvent for every metadata box, in file order."""
        for box_type, payload in self.iter_boxes():
            if box_type == BROTLI_BOX_TYPE:
                if len(payload) < 4:
                    continue
                inner_type = MetadataBoxType.from_box_type(payload[:4])
                if inner_type is not None:
                    yield BoxEvent(inner_type, payload[4:], True)
                continue

            metadata_type = MetadataBoxType.from_box_type(box_type)
            if metadata_type is not None:
                yield BoxEvent(metadata_type, payload, False)

    def parse(self) -> Dict[str, Any]:
        """
        Summarize the file structure.

        Returns:
            Dictionary with the file format and its top-level box types

        Raises:
            ContainerReadError: If the data is not a JPEG XL file
        """
        if self.is_codestream:
            return {'JXL:Format': 'codestream', 'JXL:Boxes': []}
        if not self.is_container:
            raise ContainerReadError("Not a JPEG XL file: missing container or codestream signature")

        boxes = []
        for box_type, payload in self.iter_boxes():
            name = box_type.decode('latin-1')
            if box_type == BROTLI_BOX_TYPE and len(payload) >= 4:
                name = f"{name}({payload[:4].decode('latin-1')})"
            boxes.append(name)
        return {'JXL:Format': 'container', 'JXL:Boxes': boxes}


def capture_metadata(data: bytes, options: Optional[CaptureOptions] = None) -> MetadataBoxStore:
    """
    Scan JPEG XL data and capture its metadata boxes in one pass.

    Args:
        data: JPEG XL file bytes
        options: Capture policy (default: capture everything)

    Returns:
        Frozen MetadataBoxStore

    Raises:
        ContainerReadError: If the data is not a JPEG XL file
    """
    parser = JxlContainerParser(file_data=data)
    if not (parser.is_container or parser.is_codestream):
        raise ContainerReadError("Not a JPEG XL file: missing container or codestream signature")
    return MetadataBoxStore(options).populate(parser.events())
