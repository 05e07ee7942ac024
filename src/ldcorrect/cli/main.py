from __future__ import annotations

import argparse
import logging
import math
import sys
from pathlib import Path

from ldcorrect.api.correction import LensCorrector
from ldcorrect.api.field_io import save_displacement_field
from ldcorrect.calibration import load_calibration
from ldcorrect.core.backmap import build_displacement_field
from ldcorrect.core.image_io import load_gray_u8, planes_from_gray, save_luma_png
from ldcorrect.core.raw_io import read_raw_yuv, save_raw_yuv
from ldcorrect.core.yuv import Frame, combine_planes, split_planes
from ldcorrect.errors import LensCorrectionError

log = logging.getLogger(__name__)

FORMAT_CHOICES = ["1", "2", "nv12", "uyvy"]


def _add_geometry_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("-w", "--width", type=int, required=True, help="Frame width in pixels.")
    p.add_argument("-H", "--height", type=int, required=True, help="Frame height in pixels.")


def correction_summary(*, input_path: Path, output_path: Path, lens_path: Path, frame: Frame) -> str:
    rule = "-" * 72
    return "\n".join(
        [
            rule,
            "\t\t\tDistortion Correction",
            rule,
            f"Input Filename: {input_path}",
            f"Output Filename: {output_path}",
            f"Lens Spec. file: {lens_path}",
            f"Frame Dimensions: ({frame.width}, {frame.height})",
            f"Frame Mem. storage: {frame.buffer_size} B",
            f"Type of YUV frame: '{'YUV420_NV12' if frame.variant == 1 else 'YUV422I_UYVY'}'",
            rule,
        ]
    )


def _cmd_correct(args: argparse.Namespace) -> int:
    frame = Frame(width=args.width, height=args.height, variant=args.format)
    corrector = LensCorrector.from_file(args.lens, field_cache_dir=args.field_cache)
    buf = read_raw_yuv(args.input, frame)
    log.debug("correcting %s (%dx%d %s)", args.input, frame.width, frame.height, frame.variant.name)
    out = corrector.correct(buf, frame)
    save_raw_yuv(args.output, out)
    if args.preview is not None:
        save_luma_png(args.preview, split_planes(out, frame).y)
        print(f"Wrote {args.preview}")
    print(correction_summary(input_path=args.input, output_path=args.output, lens_path=args.lens, frame=frame))
    return 0


def _cmd_dump_field(args: argparse.Namespace) -> int:
    table = load_calibration(args.lens)
    field = build_displacement_field(args.width, args.height, table)
    field.save_text(args.out_h, args.out_v)
    print(f"Wrote {args.out_h}")
    print(f"Wrote {args.out_v}")
    if args.npz_dir is not None:
        json_path = save_displacement_field(args.npz_dir, field, calibration=table)
        print(f"Wrote {json_path}")
    return 0


def _cmd_inspect_lens(args: argparse.Namespace) -> int:
    table = load_calibration(args.lens)
    print(f"Samples: {table.num_samples}")
    print(f"Angle range: {math.degrees(table.angles_rad[0]):.3f} .. {math.degrees(table.angles_rad[-1]):.3f} deg")
    print(f"Focal length: {table.focal_length_px:.3f} px")
    print(f"Z offset: {table.z_offset:.3f} px")
    print(f"Fingerprint: {table.fingerprint()}")
    return 0


def _cmd_import_gray(args: argparse.Namespace) -> int:
    frame, planes = planes_from_gray(load_gray_u8(args.image), args.format)
    save_raw_yuv(args.output, combine_planes(planes, frame))
    print(f"Wrote {args.output} ({frame.width}x{frame.height} {frame.variant.name})")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="ldcorrect")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    sub = parser.add_subparsers(dest="cmd", required=True)

    corr = sub.add_parser("correct", help="Undistort one raw YUV frame.")
    corr.add_argument("-i", "--input", type=Path, required=True, help="Input raw YUV file.")
    corr.add_argument("-o", "--output", type=Path, required=True, help="Output raw YUV file.")
    corr.add_argument("-p", "--lens", type=Path, required=True, help="Lens parameters (text or .json).")
    _add_geometry_args(corr)
    corr.add_argument(
        "-f",
        "--format",
        type=str.lower,
        required=True,
        choices=FORMAT_CHOICES,
        help="1/nv12 = YUV420 NV12, 2/uyvy = YUV422 UYVY.",
    )
    corr.add_argument(
        "--field-cache",
        type=Path,
        default=None,
        help="Directory to reuse/save the displacement field for this lens and resolution.",
    )
    corr.add_argument("--preview", type=Path, default=None, help="Also write the corrected luma as a PNG.")

    dump = sub.add_parser("dump-field", help="Write the displacement field as text matrices.")
    dump.add_argument("-p", "--lens", type=Path, required=True)
    _add_geometry_args(dump)
    dump.add_argument("--out-h", type=Path, required=True, help="Horizontal source positions (text).")
    dump.add_argument("--out-v", type=Path, required=True, help="Vertical source positions (text).")
    dump.add_argument("--npz-dir", type=Path, default=None, help="Also save field.json + field.npz here.")

    insp = sub.add_parser("inspect-lens", help="Print the derived parameters of a lens file.")
    insp.add_argument("lens", type=Path)

    imp = sub.add_parser("import-gray", help="Convert a grayscale image into a raw YUV frame (neutral chroma).")
    imp.add_argument("image", type=Path)
    imp.add_argument("-o", "--output", type=Path, required=True)
    imp.add_argument("-f", "--format", type=str.lower, required=True, choices=FORMAT_CHOICES)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    handlers = {
        "correct": _cmd_correct,
        "dump-field": _cmd_dump_field,
        "inspect-lens": _cmd_inspect_lens,
        "import-gray": _cmd_import_gray,
    }
    handler = handlers.get(args.cmd)
    if handler is None:
        raise AssertionError(f"Unhandled cmd: {args.cmd}")

    try:
        return handler(args)
    except (LensCorrectionError, OSError) as e:
        print(f"ldcorrect {args.cmd}: {e}", file=sys.stderr)
        return 1


def run() -> None:
    raise SystemExit(main())
