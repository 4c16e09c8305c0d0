# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Decoder boundary

The pixel decoder is an external collaborator. It is seen here only as a
producer of basic image info, the raw embedded color profile, and the
metadata boxes it discovers. DecoderSession turns those into a
ColorEncoding and a MetadataBoxStore and owns their lifetime.

Copyright 2025 DNAi inc.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Optional

from jxlmeta.box_payload import decompress_box
from jxlmeta.color_encoding import ColorEncoding, ProfileHandle, SimpleEncoding
from jxlmeta.exceptions import ContainerReadError, DisposedResourceError
from jxlmeta.exif_parser import ExifDataParser, Orientation, TiffExifData
from jxlmeta.metadata_box import BoxEvent, CaptureOptions, MetadataBoxStore, MetadataBoxType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BasicInfo:
    """Image header fields reported by the decoder."""
    width: int
    height: int
    bits_per_sample: int = 8
    orientation: int = 1
    has_alpha: bool = False

    @property
    def orientation_enum(self) -> Optional[Orientation]:
        if 1 <= self.orientation <= 8:
            return Orientation(self.orientation)
        return None


@dataclass(frozen=True)
class EmbeddedProfile:
    """
    Embedded color profile as reported by the decoder.

    ``icc_data`` is set for ICC profiles; ``encoding`` is the simple
    encoding, or the decoder's structured hint for an ICC profile.
    """
    icc_data: Optional[bytes] = None
    encoding: Optional[SimpleEncoding] = None


class DecoderBackend(ABC):
    """Abstract interface of the external JPEG XL decoder.

    Subclasses must implement:
    - read_basic_info() -> BasicInfo
    - embedded_profile() -> EmbeddedProfile
    - metadata_events() -> Iterable[BoxEvent]
    """

    @abstractmethod
    def read_basic_info(self) -> BasicInfo:
        """Decode the image header."""

    @abstractmethod
    def embedded_profile(self) -> EmbeddedProfile:
        """Return the embedded color profile."""

    @abstractmethod
    def metadata_events(self) -> Iterable[BoxEvent]:
        """Yield the metadata boxes found in the container, in file order."""

    def release_profile(self) -> None:
        """Release decoder-owned profile memory. Called at most once per session."""

    def close(self) -> None:
        """Release the decoder."""


class DecoderSession:
    """
    One decode of one image through a DecoderBackend.

    Example:
        >>> with DecoderSession(backend, CaptureOptions.exif_only()) as session:
        ...     session.read_info()
        ...     exif = session.exif()
    """

    def __init__(self, backend: DecoderBackend, capture: Optional[CaptureOptions] = None):
        self.backend = backend
        self.capture = capture if capture is not None else CaptureOptions.default()
        self._basic_info: Optional[BasicInfo] = None
        self._profile: Optional[ColorEncoding] = None
        self._metadata: Optional[MetadataBoxStore] = None
        self._closed = False

    def read_info(self) -> BasicInfo:
        """
        Read basic info, the embedded profile and the metadata boxes.

        Returns:
            BasicInfo of the image

        Raises:
            DisposedResourceError: If the session is closed
        """
        self._check_open()
        if self._basic_info is not None:
            return self._basic_info

        self._basic_info = self.backend.read_basic_info()

        embedded = self.backend.embedded_profile()
        handle = ProfileHandle(self.backend.release_profile)
        if embedded.icc_data:
            self._profile = ColorEncoding.from_icc(embedded.icc_data, embedded.encoding, handle)
        elif embedded.encoding is not None:
            self._profile = ColorEncoding.from_simple(embedded.encoding, handle)
        else:
            logger.debug("Decoder reported no embedded profile, assuming sRGB")
            self._profile = ColorEncoding.create_srgb()
            handle.release()

        self._metadata = MetadataBoxStore(self.capture).populate(self.backend.metadata_events())
        logger.debug(f"Read info: {self._basic_info.width}x{self._basic_info.height}, {self._metadata!r}")
        return self._basic_info

    def _check_open(self) -> None:
        if self._closed:
            raise DisposedResourceError("DecoderSession has been closed")

    def _check_ready(self) -> None:
        self._check_open()
        if self._basic_info is None:
            raise RuntimeError("read_info() must be called first")

    @property
    def basic_info(self) -> BasicInfo:
        self._check_ready()
        return self._basic_info

    @property
    def embedded_profile(self) -> ColorEncoding:
        self._check_ready()
        return self._profile

    @property
    def metadata(self) -> MetadataBoxStore:
        self._check_ready()
        return self._metadata

    def exif(self, index: int = 0) -> Optional[TiffExifData]:
        """
        Decode a captured EXIF box.

        Args:
            index: Ordinal of the EXIF box

        Returns:
            TiffExifData, or None if there is no such box or it is malformed
        """
        box = self.metadata.box_at(MetadataBoxType.EXIF, index)
        if box is None:
            return None
        try:
            payload = decompress_box(box)
        except ContainerReadError as e:
            logger.debug(f"Skipping EXIF box #{index}: {e}")
            return None
        return ExifDataParser.try_parse(payload)

    def close(self) -> None:
        """Release the profile and close the backend. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        if self._profile is not None:
            self._profile.release()
        self.backend.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit closes the session."""
        self.close()
