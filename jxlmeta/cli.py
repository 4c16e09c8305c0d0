# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Command-line interface for jxlmeta

Lists the metadata boxes of JPEG XL files, summarizes their EXIF data and
inspects or generates ICC profiles.

Copyright 2025 DNAi inc.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from jxlmeta import __version__
from jxlmeta.box_payload import decompress_box
from jxlmeta.color_encoding import ColorEncoding, ColorSpace, PrimariesType, RenderingIntent, TransferFunctionType
from jxlmeta.container_parser import JxlContainerParser
from jxlmeta.exceptions import ContainerReadError, JxlMetaError
from jxlmeta.exif_parser import ExifDataParser
from jxlmeta.icc_codec import try_get_description, try_get_header_info, try_to_icc
from jxlmeta.metadata_box import CaptureOptions, CapturePreset, MetadataBoxStore, MetadataBoxType

logger = logging.getLogger(__name__)

ICC_PRESETS = {
    'srgb': lambda: ColorEncoding.create_srgb(),
    'linear-srgb': lambda: ColorEncoding.create_linear_srgb(),
    'gray': lambda: ColorEncoding.create_srgb(grayscale=True),
    'display-p3': lambda: ColorEncoding.from_encoding(
        ColorSpace.RGB, primaries=PrimariesType.P3, transfer_function=TransferFunctionType.SRGB
    ),
    'rec2100-pq': lambda: ColorEncoding.from_encoding(
        ColorSpace.RGB, primaries=PrimariesType.BT2100, transfer_function=TransferFunctionType.PQ,
        intent=RenderingIntent.RELATIVE
    ),
    'rec2100-hlg': lambda: ColorEncoding.from_encoding(
        ColorSpace.RGB, primaries=PrimariesType.BT2100, transfer_function=TransferFunctionType.HLG,
        intent=RenderingIntent.RELATIVE
    ),
}


def format_output(metadata: dict, format_type: str = "text") -> str:
    """
    Format metadata output based on format type.

    Args:
        metadata: Dictionary of metadata
        format_type: Output format ('text' or 'json')

    Returns:
        Formatted output string
    """
    if format_type == "json":
        return json.dumps(metadata, indent=2, ensure_ascii=False)
    lines = []
    for tag, value in metadata.items():
        if isinstance(value, list):
            value = ', '.join(str(v) for v in value)
        lines.append(f"{tag}: {value}")
    return "\n".join(lines)


def build_capture_options(args: argparse.Namespace) -> CaptureOptions:
    """Capture policy from the --capture preset and the per-type limit overrides."""
    config: Dict[str, Any] = {'preset': args.capture}
    for name in ('exif', 'xml', 'jumbf'):
        limit = getattr(args, f"{name}_limit")
        if limit is not None:
            config[f"{name}_size_limit"] = limit
    return CaptureOptions.from_dict(config)


def inspect_file(file_path: Path, options: CaptureOptions) -> Dict[str, Any]:
    """
    Scan one JPEG XL file.

    Args:
        file_path: File to scan
        options: Capture policy

    Returns:
        Dictionary of box and EXIF information

    Raises:
        ContainerReadError: If the file is not JPEG XL
    """
    parser = JxlContainerParser(file_path=str(file_path))
    result: Dict[str, Any] = {'File': str(file_path)}
    result.update(parser.parse())

    store = MetadataBoxStore(options).populate(parser.events())
    result['JXL:ExifBoxes'] = store.count_of(MetadataBoxType.EXIF)
    result['JXL:XmlBoxes'] = store.count_of(MetadataBoxType.XML)
    result['JXL:JumbfBoxes'] = store.count_of(MetadataBoxType.JUMBF)
    result['JXL:CompressedBoxes'] = sum(1 for box in store if box.is_compressed)

    exif_box = store.box_at(MetadataBoxType.EXIF, 0)
    if exif_box is not None:
        try:
            tiff = ExifDataParser.try_parse(decompress_box(exif_box))
        except ContainerReadError as e:
            logger.debug(f"{file_path}: {e}")
            tiff = None
        if tiff is None:
            result['EXIF:Error'] = "Malformed EXIF data"
        else:
            result.update(_exif_summary(tiff.to_exif_data()))
            result['EXIF:ByteOrder'] = tiff.byte_order.name
    return result


def _exif_summary(exif) -> Dict[str, Any]:
    summary: Dict[str, Any] = {}
    if exif.make is not None:
        summary['EXIF:Make'] = exif.make
    if exif.model is not None:
        summary['EXIF:Model'] = exif.model
    date_time = exif.date_time_original or exif.date_time
    if date_time is not None:
        summary['EXIF:DateTime'] = date_time.isoformat(sep=' ')
    if exif.orientation is not None:
        summary['EXIF:Orientation'] = exif.orientation.name
    exposure = exif.exposure_summary()
    if exposure is not None:
        summary['EXIF:Exposure'] = exposure
    if exif.has_gps:
        summary['EXIF:GPSLatitude'] = round(exif.gps_latitude_decimal, 6)
        summary['EXIF:GPSLongitude'] = round(exif.gps_longitude_decimal, 6)
    if exif.gps_altitude_meters is not None:
        summary['EXIF:GPSAltitude'] = exif.gps_altitude_meters
    if exif.has_thumbnail:
        summary['EXIF:ThumbnailLength'] = exif.thumbnail_length
    return summary


def inspect_icc(icc_path: Path) -> Dict[str, Any]:
    """Describe an ICC profile file."""
    data = icc_path.read_bytes()
    result: Dict[str, Any] = {'File': str(icc_path), 'ICC:Description': try_get_description(data)}
    header = try_get_header_info(data)
    if header is None:
        result['ICC:Error'] = "Invalid ICC header"
        return result
    result['ICC:Version'] = header.version_string
    result['ICC:ProfileClass'] = header.profile_class.name
    result['ICC:ColorSpace'] = header.color_space.name
    result['ICC:ConnectionSpace'] = header.connection_space
    if header.rendering_intent is not None:
        result['ICC:RenderingIntent'] = header.rendering_intent.name
    result['ICC:ProfileSize'] = header.profile_size
    return result


def export_icc(preset: str, output_path: Path) -> str:
    """Write the generated ICC profile of a named encoding preset."""
    with ICC_PRESETS[preset]() as encoding:
        icc = try_to_icc(encoding)
        description = encoding.get_description()
    output_path.write_bytes(icc)
    return f"Wrote {description} ({len(icc)} bytes) to {output_path}"


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog='jxlmeta',
        description="jxlmeta - Inspect metadata boxes and color profiles of JPEG XL files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List metadata boxes and EXIF summary
  jxlmeta photo.jxl

  # JSON output, EXIF boxes only, at most 64 KiB each
  jxlmeta -j --capture exif --exif-limit 65536 photo.jxl

  # Describe an ICC profile / write a generated one
  jxlmeta --icc profile.icc
  jxlmeta --export-icc display-p3 p3.icc
        """
    )
    parser.add_argument('files', nargs='*', help='JPEG XL files to inspect')
    parser.add_argument('-j', '--json', action='store_true', help='Output JSON')
    parser.add_argument('--capture', choices=[p.value for p in CapturePreset], default=CapturePreset.DEFAULT.value,
                        help='Which metadata box types to capture (default: all)')
    parser.add_argument('--exif-limit', type=int, metavar='BYTES', help='EXIF box size limit')
    parser.add_argument('--xml-limit', type=int, metavar='BYTES', help='XML box size limit')
    parser.add_argument('--jumbf-limit', type=int, metavar='BYTES', help='JUMBF box size limit')
    parser.add_argument('--icc', type=Path, metavar='PATH', help='Describe an ICC profile file')
    parser.add_argument('--export-icc', nargs=2, metavar=('PRESET', 'PATH'),
                        help=f"Write a generated ICC profile ({', '.join(ICC_PRESETS)})")
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s'
    )

    if not args.files and args.icc is None and args.export_icc is None:
        parser.error("no input files")
    if args.export_icc is not None and args.export_icc[0] not in ICC_PRESETS:
        parser.error(f"unknown ICC preset: {args.export_icc[0]}")

    try:
        options = build_capture_options(args)
    except ValueError as e:
        parser.error(str(e))

    format_type = "json" if args.json else "text"
    results = []
    failed = False

    for file_path in args.files:
        path = Path(file_path)
        try:
            results.append(inspect_file(path, options))
        except (OSError, JxlMetaError) as e:
            logger.debug(f"Failed to inspect {path}", exc_info=True)
            print(f"Error: {path}: {e}", file=sys.stderr)
            failed = True

    if args.icc is not None:
        try:
            results.append(inspect_icc(args.icc))
        except OSError as e:
            print(f"Error: {args.icc}: {e}", file=sys.stderr)
            failed = True

    if args.json:
        print(format_output(results, format_type))
    else:
        print("\n\n".join(format_output(result, format_type) for result in results))

    if args.export_icc is not None:
        preset, output = args.export_icc
        try:
            print(export_icc(preset, Path(output)))
        except OSError as e:
            print(f"Error: {output}: {e}", file=sys.stderr)
            failed = True

    return 1 if failed else 0
