# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Color encoding descriptions

Builds the short, deterministic description strings used to name color
profiles, e.g. ``RGB_D65_SRG_Rel_SRG`` or ``DisplayP3``. The same string is
written into the 'desc' tag of generated ICC profiles.

Copyright 2025 DNAi inc.
"""

from typing import Dict, Tuple, Union

from jxlmeta.color_encoding import (
    ColorEncoding,
    ColorSpace,
    CustomPrimaries,
    CustomWhitePoint,
    Gamma,
    GrayscaleEncoding,
    PrimariesType,
    RenderingIntent,
    RgbEncoding,
    SimpleEncoding,
    TransferFunctionType,
    WhitePointType,
    XybEncoding,
)


COLOR_SPACE_CODES: Dict[ColorSpace, str] = {
    ColorSpace.RGB: 'RGB',
    ColorSpace.GRAYSCALE: 'Gra',
    ColorSpace.XYB: 'XYB',
    ColorSpace.UNKNOWN: 'CS?',
}

WHITE_POINT_CODES: Dict[WhitePointType, str] = {
    WhitePointType.D65: 'D65',
    WhitePointType.E: 'EER',
    WhitePointType.DCI: 'DCI',
}

PRIMARIES_CODES: Dict[PrimariesType, str] = {
    PrimariesType.SRGB: 'SRG',
    PrimariesType.P3: 'P3',
    PrimariesType.BT2100: '202',
}

RENDERING_INTENT_CODES: Dict[RenderingIntent, str] = {
    RenderingIntent.PERCEPTUAL: 'Per',
    RenderingIntent.RELATIVE: 'Rel',
    RenderingIntent.SATURATION: 'Sat',
    RenderingIntent.ABSOLUTE: 'Abs',
}

TRANSFER_FUNCTION_CODES: Dict[TransferFunctionType, str] = {
    TransferFunctionType.BT709: '709',
    TransferFunctionType.LINEAR: 'Lin',
    TransferFunctionType.SRGB: 'SRG',
    TransferFunctionType.PQ: 'PeQ',
    TransferFunctionType.DCI: 'DCI',
    TransferFunctionType.HLG: 'HLG',
    TransferFunctionType.UNKNOWN: 'TF?',
}

# (primaries, transfer function, rendering intent) of RGB D65 encodings
# that have a well-known name
WELL_KNOWN_ALIASES: Dict[Tuple[PrimariesType, TransferFunctionType, RenderingIntent], str] = {
    (PrimariesType.SRGB, TransferFunctionType.SRGB, RenderingIntent.PERCEPTUAL): 'sRGB',
    (PrimariesType.P3, TransferFunctionType.SRGB, RenderingIntent.PERCEPTUAL): 'DisplayP3',
    (PrimariesType.BT2100, TransferFunctionType.PQ, RenderingIntent.RELATIVE): 'Rec2100PQ',
    (PrimariesType.BT2100, TransferFunctionType.HLG, RenderingIntent.RELATIVE): 'Rec2100HLG',
}


def _number(value: float) -> str:
    return format(value, '.6g')


def _white_point_code(white_point) -> str:
    if isinstance(white_point, CustomWhitePoint):
        return f"{_number(white_point.x)};{_number(white_point.y)}"
    return WHITE_POINT_CODES[white_point]


def _primaries_code(primaries) -> str:
    if isinstance(primaries, CustomPrimaries):
        return (
            f"{_number(primaries.rx)},{_number(primaries.ry)};"
            f"{_number(primaries.gx)},{_number(primaries.gy)};"
            f"{_number(primaries.bx)},{_number(primaries.by)}"
        )
    return PRIMARIES_CODES[primaries]


def _transfer_function_code(transfer_function) -> str:
    if isinstance(transfer_function, Gamma):
        return 'g' + _number(transfer_function.value)
    return TRANSFER_FUNCTION_CODES[transfer_function]


def alias_for(encoding: SimpleEncoding):
    """
    Look up the well-known alias of an encoding.

    Returns:
        Alias name, or None when the encoding has no alias
    """
    if not isinstance(encoding, RgbEncoding) or encoding.white_point != WhitePointType.D65:
        return None
    key = (encoding.primaries, encoding.transfer_function, encoding.rendering_intent)
    return WELL_KNOWN_ALIASES.get(key)


def describe_encoding(encoding: SimpleEncoding) -> str:
    """Describe a simple encoding variant."""
    alias = alias_for(encoding)
    if alias is not None:
        return alias

    intent = RENDERING_INTENT_CODES[encoding.rendering_intent]
    if isinstance(encoding, XybEncoding):
        return f"{COLOR_SPACE_CODES[ColorSpace.XYB]}_{intent}"

    parts = [
        COLOR_SPACE_CODES[encoding.color_space],
        _white_point_code(encoding.white_point),
    ]
    if not isinstance(encoding, GrayscaleEncoding):
        parts.append(_primaries_code(encoding.primaries))
    parts.append(intent)
    parts.append(_transfer_function_code(encoding.transfer_function))
    return '_'.join(parts)


def describe(encoding: Union[ColorEncoding, SimpleEncoding]) -> str:
    """
    Build the description string of a color profile.

    Well-known field combinations are named by alias first; everything else
    follows ``{ColorSpace}_{WhitePoint}_{Primaries}_{Intent}_{Transfer}``,
    with the primaries segment omitted for grayscale.

    ICC-backed profiles are described through their structured projection
    when there is one, else by the ICC 'desc' tag text, else ``ICC``.

    Args:
        encoding: ColorEncoding or simple encoding variant

    Returns:
        Description string
    """
    if not isinstance(encoding, ColorEncoding):
        return describe_encoding(encoding)

    simple = encoding.simple_encoding
    if simple is not None:
        return describe_encoding(simple)

    from jxlmeta.icc_codec import try_get_description
    text = try_get_description(encoding.icc_bytes)
    return text if text else 'ICC'
