from __future__ import annotations

import argparse
import logging
import shutil
import tempfile
from pathlib import Path

from tagquality.config import ConfigError, DetectorConfig, load_env_file, parse_detector_config, resolve_raw_dir
from tagquality.core.raw_convert import RawConverter
from tagquality.errors import SetupError
from tagquality.eval.quality_sweep import discover_raw_files, run_quality_sweep
from tagquality.eval.report import format_table, timestamp_now, write_json_report, write_scatter_html, write_table
from tagquality.eval.tag_detection import TagDetector

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"subset size must be an integer, got {value!r}") from e
    if n <= 0:
        raise argparse.ArgumentTypeError(f"subset size must be > 0, got {n}")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tagquality",
        description="Measure AprilTag corner drift and missed detections across JPEG quality levels.",
    )
    parser.add_argument("subset", nargs="?", type=_positive_int, default=None, help="Number of images to process (default: all).")
    parser.add_argument(
        "raw_dir",
        nargs="?",
        type=Path,
        default=None,
        help="Directory containing ARW files (default: RAW_DIR from .env.local or the environment).",
    )
    parser.add_argument("-p", "--preserve", action="store_true", help="Keep converted files and print their paths.")
    parser.add_argument("-c", "--corners", action="store_true", help="Print corner positions ordered by marker id.")
    parser.add_argument("--no-plot", action="store_true", help="Do not write the HTML scatter plot.")
    parser.add_argument("--out-dir", type=Path, default=Path("results"), help="Directory for result files.")
    parser.add_argument("--family", default=DetectorConfig().family, help="AprilTag family to detect.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        detector_config = parse_detector_config({"family": args.family})
    except ConfigError as e:
        parser.error(str(e))
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    load_env_file()
    try:
        raw_dir = resolve_raw_dir(args.raw_dir)
        files = discover_raw_files(raw_dir, subset=args.subset)
    except SetupError as e:
        logger.error("%s", e)
        return 1

    print(f"Processing {len(files)} ARW files from {raw_dir}")

    detector = TagDetector(detector_config)
    work_dir = Path(tempfile.mkdtemp(prefix="tagquality-"))
    print(f"Using temp directory: {work_dir}")

    try:
        sweep = run_quality_sweep(
            files,
            converter=RawConverter(work_dir),
            detector=detector,
            preserve=args.preserve,
            print_corners=args.corners,
        )
    finally:
        if args.preserve:
            print(f"\nPreserved files in: {work_dir}")
        else:
            try:
                shutil.rmtree(work_dir)
            except OSError as e:
                logger.warning("Could not delete %s: %s", work_dir, e)

    print("\n\nQuality Analysis Results:")
    print(format_table(sweep.results))

    stamp = timestamp_now()
    print(f"\nWrote {write_table(sweep.results, args.out_dir, timestamp=stamp)}")
    print(f"Wrote {write_json_report(sweep, args.out_dir, timestamp=stamp)}")
    if not args.no_plot:
        html_path = write_scatter_html(sweep.scatter, args.out_dir, timestamp=stamp)
        if html_path is not None:
            print(f"Wrote {html_path}")
    return 0


def entrypoint() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    entrypoint()
