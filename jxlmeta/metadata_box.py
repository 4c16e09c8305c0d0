# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Metadata box capture

Per-type storage of the auxiliary metadata boxes (EXIF, XML/XMP, JUMBF)
found while scanning a JPEG XL container, filtered by a capture policy.
The store never decompresses anything; boxes found in their Brotli-wrapped
('brob') form are kept as-is and flagged as compressed.

Copyright 2025 DNAi inc.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_EXIF_SIZE_LIMIT = 1024 * 1024
DEFAULT_XML_SIZE_LIMIT = 1024 * 1024
DEFAULT_JUMBF_SIZE_LIMIT = 16 * 1024 * 1024


class MetadataBoxType(Enum):
    """Metadata box types; the value is the ISO BMFF box type."""
    EXIF = b'Exif'
    XML = b'xml '
    JUMBF = b'jumb'

    @classmethod
    def from_box_type(cls, box_type: bytes) -> Optional['MetadataBoxType']:
        """Map a 4-byte box type to a metadata type, or None."""
        try:
            return cls(bytes(box_type))
        except ValueError:
            return None


class CapturePreset(Enum):
    """Named capture policies."""
    DEFAULT = "all"  # Capture every type up to the default limits
    NO_CAPTURE = "none"
    EXIF_ONLY = "exif"
    XML_ONLY = "xml"


@dataclass(frozen=True)
class CaptureOptions:
    """
    Capture policy: which box types to keep and how large each may be.

    Size limits apply to the box as stored in the file (the compressed size
    for 'brob' boxes). A box larger than its type's limit is dropped.
    """
    capture_exif: bool = True
    capture_xml: bool = True
    capture_jumbf: bool = True
    exif_size_limit: int = DEFAULT_EXIF_SIZE_LIMIT
    xml_size_limit: int = DEFAULT_XML_SIZE_LIMIT
    jumbf_size_limit: int = DEFAULT_JUMBF_SIZE_LIMIT

    def __post_init__(self):
        for name in ('exif_size_limit', 'xml_size_limit', 'jumbf_size_limit'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")

    @classmethod
    def default(cls) -> 'CaptureOptions':
        return cls()

    @classmethod
    def no_capture(cls) -> 'CaptureOptions':
        return cls(False, False, False, 0, 0, 0)

    @classmethod
    def exif_only(cls) -> 'CaptureOptions':
        return cls(True, False, False, DEFAULT_EXIF_SIZE_LIMIT, 0, 0)

    @classmethod
    def xml_only(cls) -> 'CaptureOptions':
        return cls(False, True, False, 0, DEFAULT_XML_SIZE_LIMIT, 0)

    @classmethod
    def from_preset(cls, preset: CapturePreset) -> 'CaptureOptions':
        factories = {
            CapturePreset.DEFAULT: cls.default,
            CapturePreset.NO_CAPTURE: cls.no_capture,
            CapturePreset.EXIF_ONLY: cls.exif_only,
            CapturePreset.XML_ONLY: cls.xml_only,
        }
        return factories[CapturePreset(preset)]()

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'CaptureOptions':
        """
        Build options from a configuration dictionary.

        An optional ``preset`` key selects the starting policy; the remaining
        keys override individual fields.

        Args:
            config: Dictionary such as ``{"preset": "exif", "exif_size_limit": 4096}``

        Returns:
            CaptureOptions

        Raises:
            ValueError: For unknown keys, unknown presets or negative limits
        """
        config = dict(config)
        options = cls.from_preset(CapturePreset(config.pop('preset', CapturePreset.DEFAULT.value)))
        values = options.to_dict()
        unknown = set(config) - set(values)
        if unknown:
            raise ValueError(f"Unknown capture options: {', '.join(sorted(unknown))}")
        values.update(config)
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'capture_exif': self.capture_exif,
            'capture_xml': self.capture_xml,
            'capture_jumbf': self.capture_jumbf,
            'exif_size_limit': self.exif_size_limit,
            'xml_size_limit': self.xml_size_limit,
            'jumbf_size_limit': self.jumbf_size_limit,
        }

    def capture_flag(self, box_type: MetadataBoxType) -> bool:
        return {
            MetadataBoxType.EXIF: self.capture_exif,
            MetadataBoxType.XML: self.capture_xml,
            MetadataBoxType.JUMBF: self.capture_jumbf,
        }[box_type]

    def size_limit(self, box_type: MetadataBoxType) -> int:
        return {
            MetadataBoxType.EXIF: self.exif_size_limit,
            MetadataBoxType.XML: self.xml_size_limit,
            MetadataBoxType.JUMBF: self.jumbf_size_limit,
        }[box_type]


@dataclass(frozen=True)
class MetadataBox:
    """A captured box. ``data`` is still Brotli-compressed if ``is_compressed``."""
    type_tag: MetadataBoxType
    data: bytes
    is_compressed: bool
    ordinal: int

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class BoxEvent:
    """One metadata box discovered by a container scan, in file order."""
    type_tag: MetadataBoxType
    data: bytes
    is_compressed: bool = False


class MetadataBoxStore:
    """
    Ordered per-type collection of captured metadata boxes.

    The store is written once during a single scan and is read-only after
    ``freeze()``. Boxes of each type keep discovery order, and their
    ordinals are dense from 0.

    Example:
        >>> store = MetadataBoxStore(CaptureOptions.exif_only())
        >>> store.add(MetadataBoxType.EXIF, exif_payload)
        >>> store.count_of(MetadataBoxType.EXIF)
        1
    """

    def __init__(self, options: Optional[CaptureOptions] = None):
        """
        Initialize an empty store.

        Args:
            options: Capture policy (default: capture everything up to the default limits)
        """
        self.options = options if options is not None else CaptureOptions.default()
        self._boxes: Dict[MetadataBoxType, List[MetadataBox]] = {t: [] for t in MetadataBoxType}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Mark the scan as complete; further ``add`` calls raise."""
        self._frozen = True

    def add(self, type_tag: MetadataBoxType, data: bytes, is_compressed: bool = False) -> Optional[MetadataBox]:
        """
        Offer a discovered box to the store.

        Args:
            type_tag: Box type
            data: Box payload as stored in the file
            is_compressed: True if the box came from a 'brob' wrapper

        Returns:
            The stored MetadataBox, or None if the capture policy skipped it

        Raises:
            RuntimeError: If the store has been frozen
        """
        if self._frozen:
            raise RuntimeError("MetadataBoxStore is frozen")
        type_tag = MetadataBoxType(type_tag)

        if not self.options.capture_flag(type_tag):
            logger.debug(f"Skipping {type_tag.name} box: capture disabled")
            return None
        limit = self.options.size_limit(type_tag)
        if len(data) > limit:
            logger.debug(f"Dropping {type_tag.name} box: {len(data)} bytes exceeds limit {limit}")
            return None

        boxes = self._boxes[type_tag]
        box = MetadataBox(type_tag, bytes(data), bool(is_compressed), len(boxes))
        boxes.append(box)
        return box

    def populate(self, events: Iterable[BoxEvent]) -> 'MetadataBoxStore':
        """Add every event of a scan, in order, then freeze the store."""
        for event in events:
            self.add(event.type_tag, event.data, event.is_compressed)
        self.freeze()
        return self

    def count_of(self, type_tag: MetadataBoxType) -> int:
        return len(self._boxes[MetadataBoxType(type_tag)])

    def box_at(self, type_tag: MetadataBoxType, index: int) -> Optional[MetadataBox]:
        """Box by ordinal; None for a negative or out-of-range index."""
        boxes = self._boxes[MetadataBoxType(type_tag)]
        if index < 0 or index >= len(boxes):
            return None
        return boxes[index]

    def boxes(self, type_tag: MetadataBoxType) -> Tuple[MetadataBox, ...]:
        return tuple(self._boxes[MetadataBoxType(type_tag)])

    def has_boxes(self, type_tag: MetadataBoxType) -> bool:
        return self.count_of(type_tag) > 0

    @property
    def total_count(self) -> int:
        return sum(len(boxes) for boxes in self._boxes.values())

    def __len__(self) -> int:
        return self.total_count

    def __iter__(self) -> Iterator[MetadataBox]:
        for type_tag in MetadataBoxType:
            yield from self._boxes[type_tag]

    def __repr__(self) -> str:
        counts = ', '.join(f"{t.name}={len(b)}" for t, b in self._boxes.items())
        return f"<MetadataBoxStore {counts}>"
