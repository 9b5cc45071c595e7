# lazymzml/__main__.py
import argparse
import logging
from pathlib import Path
from typing import List, Optional

from lazymzml.exceptions import LazyMzMLError
from lazymzml.readers.extractor import DEFAULT_CHUNK_SIZE
from lazymzml.readers.lazy_store import LazyMzML, open_mzml
from lazymzml.utils.logging_config import setup_logging

logger = logging.getLogger("lazymzml.cli")


def _create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="lazymzml",
        description="Inspect indexed mzML files without loading them into memory",
    )

    parser.add_argument("input", help="Path to the mzML file")
    parser.add_argument(
        "--list",
        action="store_true",
        help="List id, MS level and retention time of every spectrum",
    )
    parser.add_argument(
        "--scan",
        action="append",
        default=[],
        metavar="ID",
        help="Fetch the spectrum with this id and print its peaks (repeatable)",
    )
    parser.add_argument(
        "--max-peaks",
        type=int,
        default=10,
        help="Number of peaks printed per fetched spectrum (0 for all)",
    )
    parser.add_argument(
        "--verify-checksum",
        action="store_true",
        help="Verify the SHA-1 file checksum",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=DEFAULT_CHUNK_SIZE,
        help="Read size in bytes used when extracting a spectrum",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Set the logging level",
    )
    parser.add_argument("--log-file", default=None, help="Path to the log file")

    return parser


def _validate_arguments(parser: argparse.ArgumentParser, args) -> None:
    """Validate command line arguments."""
    if args.max_peaks < 0:
        parser.error(f"--max-peaks must not be negative (got: {args.max_peaks})")

    if args.chunk_size <= 0:
        parser.error(f"--chunk-size must be positive (got: {args.chunk_size})")

    input_path = Path(args.input)
    if not input_path.is_file():
        parser.error(f"Input file does not exist: {input_path}")


def _format_optional(value, fmt: str = "{}") -> str:
    return "-" if value is None else fmt.format(value)


def _print_summary(reader: LazyMzML) -> None:
    print(f"file:            {reader.path}")
    print(f"indexed:         {'yes' if reader.is_indexed else 'no'}")
    print(f"spectra:         {reader.n_spectra}")
    print(f"declared count:  {_format_optional(reader.spectrum_count)}")
    print(f"chromatograms:   {len(reader.chromatograms)}")
    software = ", ".join(
        f"{s.id} {s.version}" if s.version else s.id for s in reader.software
    )
    print(f"software:        {software or '-'}")


def _print_listing(reader: LazyMzML) -> None:
    print("id\tms_level\trt_min")
    for scan in reader.iter_metadata():
        print(
            f"{scan.id}\t{_format_optional(scan.ms_level())}\t"
            f"{_format_optional(scan.retention_time(), '{:.4f}')}"
        )


def _print_scans(reader: LazyMzML, scan_ids: List[str], max_peaks: int) -> bool:
    success = True
    for scan_id in scan_ids:
        try:
            scan = reader.fetch(scan_id)
            peaks = scan.peaks()
        except LazyMzMLError as e:
            logger.error(f"Could not read spectrum: {e}")
            success = False
            continue

        print(
            f"# {scan.id} ms_level={_format_optional(scan.ms_level())} "
            f"rt={_format_optional(scan.retention_time(), '{:.4f}')} "
            f"peaks={len(peaks)}"
        )
        shown = peaks if max_peaks == 0 else peaks[:max_peaks]
        for mz, intensity in shown:
            print(f"{mz:.6f}\t{intensity:.4f}")
    return success


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = _create_argument_parser()
    args = parser.parse_args(argv)

    _validate_arguments(parser, args)

    setup_logging(log_level=getattr(logging, args.log_level), log_file=args.log_file)

    try:
        reader = open_mzml(args.input, chunk_size=args.chunk_size)
    except LazyMzMLError as e:
        logger.error(f"Could not open {args.input}: {e}")
        return 1

    success = True
    with reader:
        _print_summary(reader)

        if args.verify_checksum:
            try:
                valid = reader.verify_checksum()
            except LazyMzMLError as e:
                logger.error(f"Checksum verification failed: {e}")
                valid = False
            print(f"checksum:        {'ok' if valid else 'MISMATCH'}")
            success = success and valid

        if args.list:
            _print_listing(reader)

        if args.scan:
            success = _print_scans(reader, args.scan, args.max_peaks) and success

    return 0 if success else 1


if __name__ == "__main__":
    raise SystemExit(main())
