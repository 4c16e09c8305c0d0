# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Color encoding model

This module holds the structured representation of a JPEG XL color profile.
A profile is either a simple encoding (RGB, grayscale or XYB described by
enumerated fields) or an opaque ICC profile, optionally carrying a
best-effort structured projection supplied by the decoder.

Copyright 2025 DNAi inc.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum, IntEnum
from typing import Callable, ClassVar, Optional, Union

from jxlmeta.exceptions import (
    DisposedResourceError,
    InvalidEncodingError,
    UnsupportedConversionError,
)

logger = logging.getLogger(__name__)


class ColorSpace(Enum):
    """Color space kind of an encoding."""
    RGB = "rgb"
    GRAYSCALE = "grayscale"
    XYB = "xyb"  # JPEG XL internal representation
    UNKNOWN = "unknown"


class WhitePointType(Enum):
    """Standard illuminants. CUSTOM is reported for chromaticity white points."""
    D65 = "d65"
    E = "e"  # Equal energy
    DCI = "dci"
    CUSTOM = "custom"


class PrimariesType(Enum):
    """Standard primary sets. CUSTOM is reported for chromaticity primaries."""
    SRGB = "srgb"  # sRGB / Rec.709
    BT2100 = "bt2100"  # BT.2100 / Rec.2020
    P3 = "p3"
    CUSTOM = "custom"


class TransferFunctionType(Enum):
    """Transfer curves. GAMMA is reported for Gamma(value) curves."""
    BT709 = "bt709"
    LINEAR = "linear"
    SRGB = "srgb"
    PQ = "pq"
    DCI = "dci"  # Gamma 2.6
    HLG = "hlg"
    GAMMA = "gamma"
    UNKNOWN = "unknown"


class RenderingIntent(IntEnum):
    """Rendering intent, numbered as in the ICC header."""
    PERCEPTUAL = 0
    RELATIVE = 1
    SATURATION = 2
    ABSOLUTE = 3


@dataclass(frozen=True)
class CustomWhitePoint:
    """White point given as CIE xy chromaticity."""
    x: float
    y: float


@dataclass(frozen=True)
class CustomPrimaries:
    """Red, green and blue primaries given as CIE xy chromaticities."""
    rx: float
    ry: float
    gx: float
    gy: float
    bx: float
    by: float


@dataclass(frozen=True)
class Gamma:
    """
    Pure power transfer curve.

    ``value`` is the encoding exponent (for example 1/2.2 ~ 0.4545), so the
    decoding curve applied to encoded samples is ``x ** (1 / value)``.
    """
    value: float


WhitePoint = Union[WhitePointType, CustomWhitePoint]
Primaries = Union[PrimariesType, CustomPrimaries]
TransferFunction = Union[TransferFunctionType, Gamma]


def _check_white_point(white_point) -> None:
    if isinstance(white_point, CustomWhitePoint):
        return
    if white_point == WhitePointType.CUSTOM:
        raise InvalidEncodingError("Custom white point requires a CustomWhitePoint value")
    if not isinstance(white_point, WhitePointType):
        raise InvalidEncodingError(f"Invalid white point: {white_point!r}")


def _check_primaries(primaries) -> None:
    if isinstance(primaries, CustomPrimaries):
        return
    if primaries == PrimariesType.CUSTOM:
        raise InvalidEncodingError("Custom primaries require a CustomPrimaries value")
    if not isinstance(primaries, PrimariesType):
        raise InvalidEncodingError(f"Invalid primaries: {primaries!r}")


def _check_transfer_function(transfer_function) -> None:
    if isinstance(transfer_function, Gamma):
        if not transfer_function.value > 0:
            raise InvalidEncodingError(f"Gamma must be positive, got {transfer_function.value}")
        return
    if transfer_function == TransferFunctionType.GAMMA:
        raise InvalidEncodingError("Gamma transfer function requires a Gamma value")
    if transfer_function == TransferFunctionType.UNKNOWN:
        raise InvalidEncodingError("Transfer function must be known for a simple encoding")
    if not isinstance(transfer_function, TransferFunctionType):
        raise InvalidEncodingError(f"Invalid transfer function: {transfer_function!r}")


@dataclass(frozen=True)
class RgbEncoding:
    """Simple RGB encoding."""
    white_point: WhitePoint = WhitePointType.D65
    primaries: Primaries = PrimariesType.SRGB
    transfer_function: TransferFunction = TransferFunctionType.SRGB
    rendering_intent: RenderingIntent = RenderingIntent.PERCEPTUAL

    color_space: ClassVar[ColorSpace] = ColorSpace.RGB

    def __post_init__(self):
        _check_white_point(self.white_point)
        _check_primaries(self.primaries)
        _check_transfer_function(self.transfer_function)
        object.__setattr__(self, 'rendering_intent', RenderingIntent(self.rendering_intent))


@dataclass(frozen=True)
class GrayscaleEncoding:
    """Simple grayscale encoding. Grayscale has no primaries."""
    white_point: WhitePoint = WhitePointType.D65
    transfer_function: TransferFunction = TransferFunctionType.SRGB
    rendering_intent: RenderingIntent = RenderingIntent.PERCEPTUAL

    color_space: ClassVar[ColorSpace] = ColorSpace.GRAYSCALE

    def __post_init__(self):
        _check_white_point(self.white_point)
        _check_transfer_function(self.transfer_function)
        object.__setattr__(self, 'rendering_intent', RenderingIntent(self.rendering_intent))


@dataclass(frozen=True)
class XybEncoding:
    """XYB encoding. White point and transfer function are implied."""
    rendering_intent: RenderingIntent = RenderingIntent.PERCEPTUAL

    color_space: ClassVar[ColorSpace] = ColorSpace.XYB

    def __post_init__(self):
        object.__setattr__(self, 'rendering_intent', RenderingIntent(self.rendering_intent))


SimpleEncoding = Union[RgbEncoding, GrayscaleEncoding, XybEncoding]


class ProfileHandle:
    """
    Ownership token for a profile backed by decoder-owned memory.

    The release callback runs at most once, however many times
    ``release()`` is called.
    """

    def __init__(self, release_callback: Optional[Callable[[], None]] = None):
        self._release_callback = release_callback
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        callback, self._release_callback = self._release_callback, None
        if callback is not None:
            callback()


class ColorEncoding:
    """
    A color profile: a simple encoding or raw ICC bytes.

    Instances are immutable. Derived operations such as
    ``with_linear_transfer_function`` return new instances. A profile may own
    a ``ProfileHandle``; once ``release()`` has been called every accessor
    raises ``DisposedResourceError``.

    Example:
        >>> with ColorEncoding.create_srgb() as profile:
        ...     profile.get_description()
        'RGB_D65_SRG_Rel_SRG'
    """

    def __init__(
        self,
        encoding: Optional[SimpleEncoding] = None,
        icc_data: Optional[bytes] = None,
        handle: Optional[ProfileHandle] = None
    ):
        """
        Initialize a color profile.

        Prefer the factory methods; this constructor is the common path they
        share.

        Args:
            encoding: Simple encoding, or the structured projection of an ICC profile
            icc_data: Raw ICC profile bytes (makes this profile ICC-backed)
            handle: Optional ownership token released together with the profile

        Raises:
            InvalidEncodingError: If neither an encoding nor ICC data is given,
                or the ICC data is empty
        """
        if encoding is None and icc_data is None:
            raise InvalidEncodingError("A color encoding or ICC data is required")
        if icc_data is not None and len(icc_data) == 0:
            raise InvalidEncodingError("ICC data cannot be empty")
        if encoding is not None and not isinstance(encoding, (RgbEncoding, GrayscaleEncoding, XybEncoding)):
            raise InvalidEncodingError(f"Unsupported encoding type: {type(encoding).__name__}")

        self._encoding = encoding
        self._icc_data = bytes(icc_data) if icc_data is not None else None
        self._handle = handle
        self._released = False
        self._header = None
        if self._icc_data is not None:
            from jxlmeta.icc_codec import try_get_header_info
            self._header = try_get_header_info(self._icc_data)

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def create_srgb(cls, grayscale: bool = False) -> 'ColorEncoding':
        """
        Create the standard sRGB profile (D65, sRGB transfer, relative intent).

        Args:
            grayscale: If True, create grayscale sRGB instead of RGB sRGB
        """
        if grayscale:
            return cls(GrayscaleEncoding(WhitePointType.D65, TransferFunctionType.SRGB, RenderingIntent.RELATIVE))
        return cls(RgbEncoding(
            WhitePointType.D65, PrimariesType.SRGB, TransferFunctionType.SRGB, RenderingIntent.RELATIVE
        ))

    @classmethod
    def create_linear_srgb(cls, grayscale: bool = False) -> 'ColorEncoding':
        """
        Create linear sRGB (sRGB primaries and white point, linear transfer).

        Args:
            grayscale: If True, create grayscale linear sRGB instead of RGB
        """
        if grayscale:
            return cls(GrayscaleEncoding(WhitePointType.D65, TransferFunctionType.LINEAR, RenderingIntent.RELATIVE))
        return cls(RgbEncoding(
            WhitePointType.D65, PrimariesType.SRGB, TransferFunctionType.LINEAR, RenderingIntent.RELATIVE
        ))

    @classmethod
    def from_encoding(
        cls,
        color_space: ColorSpace,
        white_point: WhitePoint = WhitePointType.D65,
        primaries: Optional[Primaries] = None,
        transfer_function: TransferFunction = TransferFunctionType.SRGB,
        intent: RenderingIntent = RenderingIntent.PERCEPTUAL
    ) -> 'ColorEncoding':
        """
        Create a simple profile from explicit structured parameters.

        Args:
            color_space: RGB, GRAYSCALE or XYB
            white_point: Standard white point or CustomWhitePoint (ignored for XYB)
            primaries: Primaries; required for RGB, forbidden otherwise
            transfer_function: Transfer curve or Gamma (ignored for XYB)
            intent: Rendering intent

        Returns:
            New ColorEncoding

        Raises:
            InvalidEncodingError: If the combination of arguments is invalid
        """
        if color_space == ColorSpace.RGB:
            if primaries is None:
                raise InvalidEncodingError("RGB encodings require primaries")
            encoding = RgbEncoding(white_point, primaries, transfer_function, intent)
        elif color_space == ColorSpace.GRAYSCALE:
            if primaries is not None:
                raise InvalidEncodingError("Grayscale encodings cannot have primaries")
            encoding = GrayscaleEncoding(white_point, transfer_function, intent)
        elif color_space == ColorSpace.XYB:
            if primaries is not None:
                raise InvalidEncodingError("XYB encodings cannot have primaries")
            encoding = XybEncoding(intent)
        else:
            raise InvalidEncodingError(f"Cannot build a simple encoding for color space {color_space!r}")
        return cls(encoding)

    @classmethod
    def from_simple(cls, encoding: SimpleEncoding, handle: Optional[ProfileHandle] = None) -> 'ColorEncoding':
        """Wrap an already-built simple encoding."""
        return cls(encoding, handle=handle)

    @classmethod
    def from_icc(
        cls,
        icc_data: bytes,
        projection: Optional[SimpleEncoding] = None,
        handle: Optional[ProfileHandle] = None
    ) -> 'ColorEncoding':
        """
        Wrap raw ICC profile bytes.

        Args:
            icc_data: ICC profile bytes (copied)
            projection: Best-effort structured equivalent reported by the decoder
            handle: Optional ownership token

        Raises:
            InvalidEncodingError: If icc_data is empty
        """
        if icc_data is None or len(icc_data) == 0:
            raise InvalidEncodingError("ICC data cannot be null or empty")
        return cls(projection, icc_data=icc_data, handle=handle)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Release the profile and its handle. Safe to call repeatedly."""
        if self._released:
            return
        self._released = True
        if self._handle is not None:
            self._handle.release()
            self._handle = None
        logger.debug("Released color profile")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit releases the profile."""
        self.release()

    def _check_released(self) -> None:
        if self._released:
            raise DisposedResourceError("ColorEncoding has been released")

    # ------------------------------------------------------------------
    # Structured fields
    # ------------------------------------------------------------------

    @property
    def simple_encoding(self) -> Optional[SimpleEncoding]:
        """The simple encoding, or the ICC projection; None for opaque ICC."""
        self._check_released()
        return self._encoding

    @property
    def icc_bytes(self) -> Optional[bytes]:
        self._check_released()
        return self._icc_data

    @property
    def color_space(self) -> ColorSpace:
        self._check_released()
        if self._encoding is not None:
            return self._encoding.color_space
        if self._header is not None:
            from jxlmeta.icc_codec import IccColorSpaceType
            if self._header.color_space == IccColorSpaceType.RGB:
                return ColorSpace.RGB
            if self._header.color_space == IccColorSpaceType.GRAY:
                return ColorSpace.GRAYSCALE
        return ColorSpace.UNKNOWN

    @property
    def white_point(self) -> Optional[WhitePoint]:
        self._check_released()
        return getattr(self._encoding, 'white_point', None)

    @property
    def white_point_type(self) -> Optional[WhitePointType]:
        white_point = self.white_point
        if isinstance(white_point, CustomWhitePoint):
            return WhitePointType.CUSTOM
        return white_point

    @property
    def primaries(self) -> Optional[Primaries]:
        """Primaries; always None unless the color space is RGB."""
        self._check_released()
        return getattr(self._encoding, 'primaries', None)

    @property
    def primaries_type(self) -> Optional[PrimariesType]:
        primaries = self.primaries
        if isinstance(primaries, CustomPrimaries):
            return PrimariesType.CUSTOM
        return primaries

    @property
    def transfer_function(self) -> Optional[TransferFunction]:
        self._check_released()
        return getattr(self._encoding, 'transfer_function', None)

    @property
    def transfer_function_type(self) -> Optional[TransferFunctionType]:
        transfer_function = self.transfer_function
        if isinstance(transfer_function, Gamma):
            return TransferFunctionType.GAMMA
        return transfer_function

    @property
    def gamma_value(self) -> Optional[float]:
        transfer_function = self.transfer_function
        return transfer_function.value if isinstance(transfer_function, Gamma) else None

    @property
    def rendering_intent(self) -> RenderingIntent:
        self._check_released()
        if self._encoding is not None:
            return self._encoding.rendering_intent
        if self._header is not None and self._header.rendering_intent is not None:
            return self._header.rendering_intent
        return RenderingIntent.PERCEPTUAL

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_icc(self) -> bool:
        self._check_released()
        return self._icc_data is not None

    @property
    def is_simple(self) -> bool:
        """
        True for non-ICC RGB or grayscale encodings whose fields are all
        defined without custom chromaticities (white point and primaries).
        """
        if self.is_icc or not isinstance(self._encoding, (RgbEncoding, GrayscaleEncoding)):
            return False
        return not _has_custom_fields(self._encoding)

    @property
    def is_rgb(self) -> bool:
        return self.color_space == ColorSpace.RGB

    @property
    def is_grayscale(self) -> bool:
        return self.color_space == ColorSpace.GRAYSCALE

    @property
    def is_xyb(self) -> bool:
        return self.color_space == ColorSpace.XYB

    @property
    def is_cmyk(self) -> bool:
        """True only for ICC profiles whose header declares CMYK data."""
        self._check_released()
        if self._encoding is not None or self._header is None:
            return False
        from jxlmeta.icc_codec import IccColorSpaceType
        return self._header.color_space == IccColorSpaceType.CMYK

    @property
    def channel_count(self) -> int:
        """Number of color channels: 1 for grayscale, 4 for CMYK, otherwise 3."""
        if self.is_grayscale:
            return 1
        if self.is_cmyk:
            return 4
        return 3

    @property
    def is_linear(self) -> bool:
        return self.transfer_function_type == TransferFunctionType.LINEAR

    @property
    def is_pq(self) -> bool:
        return self.transfer_function_type == TransferFunctionType.PQ

    @property
    def is_hlg(self) -> bool:
        return self.transfer_function_type == TransferFunctionType.HLG

    @property
    def is_hdr(self) -> bool:
        return self.is_pq or self.is_hlg

    @property
    def is_srgb_encoding(self) -> bool:
        """True when the transfer function is the sRGB curve."""
        return self.transfer_function_type == TransferFunctionType.SRGB

    @property
    def can_output_to(self) -> bool:
        """
        Whether the decoder can produce pixels in this profile without a CMS.

        Opaque ICC profiles and XYB have no structured output equivalent.
        """
        self._check_released()
        return isinstance(self._encoding, (RgbEncoding, GrayscaleEncoding))

    # ------------------------------------------------------------------
    # Comparison and derivation
    # ------------------------------------------------------------------

    def same_color_encoding(self, other: Optional['ColorEncoding']) -> bool:
        """
        Check whether two profiles represent the same color encoding.

        Two ICC-backed profiles are equal when their bytes are identical. A
        simple profile never equals an ICC-backed one. Simple profiles compare
        color space, white point, primaries (RGB only), transfer function and
        rendering intent.

        Args:
            other: Profile to compare against

        Returns:
            True if both describe the same encoding; False for None or a
            released profile
        """
        self._check_released()
        if other is None or other.released:
            return False
        if self._icc_data is not None or other._icc_data is not None:
            return self._icc_data is not None and self._icc_data == other._icc_data
        return self._encoding == other._encoding

    def with_linear_transfer_function(self) -> 'ColorEncoding':
        """
        Return a copy of this profile with a linear transfer function.

        XYB converts to linear sRGB. ICC-backed profiles use their structured
        projection; the result is a simple (non-ICC) profile.

        Raises:
            UnsupportedConversionError: If the profile is opaque ICC
        """
        self._check_released()
        encoding = self._encoding
        if encoding is None:
            raise UnsupportedConversionError("ICC profile has no structured equivalent to linearize")
        if isinstance(encoding, XybEncoding):
            linear = RgbEncoding(
                WhitePointType.D65, PrimariesType.SRGB, TransferFunctionType.LINEAR, encoding.rendering_intent
            )
        else:
            linear = replace(encoding, transfer_function=TransferFunctionType.LINEAR)
        return ColorEncoding(linear)

    def try_as_icc(self) -> Optional[bytes]:
        """ICC bytes for this profile, or None if it cannot be represented."""
        from jxlmeta.icc_codec import try_to_icc
        return try_to_icc(self)

    def get_description(self) -> str:
        """
        Short description such as ``RGB_D65_SRG_Rel_SRG`` or ``DisplayP3``.

        ICC-backed profiles describe their projection when one is known,
        otherwise the ICC description tag, otherwise ``ICC``.
        """
        from jxlmeta.description import describe
        return describe(self)

    def __str__(self) -> str:
        if self._released:
            return "<released>"
        kind = "ICC" if self._icc_data is not None else "Simple"
        return f"{kind}({self.get_description()})"

    def __repr__(self) -> str:
        return f"<ColorEncoding {self}>"


def _has_custom_fields(encoding: SimpleEncoding) -> bool:
    return isinstance(getattr(encoding, 'white_point', None), CustomWhitePoint) or \
        isinstance(getattr(encoding, 'primaries', None), CustomPrimaries)
