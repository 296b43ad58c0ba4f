#!/usr/bin/env python3
"""Main entry point for the stegscan command line."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from stegscan import config
from stegscan.core.log_manager import setup_logging
from stegscan.models import DetectionMode, DetectionSettings, make_json_serializable


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Detect data hidden inside image files")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-dir", help="Directory for log files (default: results/logs)")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    def add_mode_arguments(sub: argparse.ArgumentParser) -> None:
        sub.add_argument(
            "-m", "--mode",
            choices=[m.value for m in DetectionMode],
            default=config.DEFAULT_MODE,
            help="Detection mode"
        )
        sub.add_argument("--threshold", type=float, help="Override the mode's confidence threshold")
        sub.add_argument("--no-context", action="store_true", help="Disable context validation")

    analyze_parser = subparsers.add_parser("analyze", help="Analyze one image")
    analyze_parser.add_argument("path", help="Path to the image")
    analyze_parser.add_argument("--format", help="Declared image format (default: file extension)")
    analyze_parser.add_argument("-o", "--output", help="Write the JSON result to this file")
    add_mode_arguments(analyze_parser)

    lsb_parser = subparsers.add_parser("extract-lsb", help="Extract LSB data and look for hidden text")
    lsb_parser.add_argument("path", help="Path to the image")
    lsb_parser.add_argument(
        "--method",
        choices=["standard", "two_bit", "red_only", "sequential"],
        default="standard",
        help="Bit order to read"
    )

    carve_parser = subparsers.add_parser("carve", help="Write appended data and detected payloads to disk")
    carve_parser.add_argument("path", help="Path to the image")
    carve_parser.add_argument("--output-dir", help="Directory for carved files (default: results/carved)")
    add_mode_arguments(carve_parser)

    search_parser = subparsers.add_parser("search", help="Extract content between custom patterns")
    search_parser.add_argument("path", help="Path to the file")
    search_parser.add_argument("--start", required=True, help="Start pattern")
    search_parser.add_argument("--end", help="End pattern")
    search_parser.add_argument("--hex", action="store_true", help="Patterns are hexadecimal")
    search_parser.add_argument("--max-matches", type=int, default=50, help="Maximum matches to report")

    batch_parser = subparsers.add_parser("batch", help="Analyze every image in a directory")
    batch_parser.add_argument("input_dir", help="Directory containing images")
    batch_parser.add_argument("--output-dir", help="Base directory for results (default: results)")
    batch_parser.add_argument("--extract", action="store_true", help="Also carve payloads of findings")
    add_mode_arguments(batch_parser)

    return parser.parse_args(argv)


def _settings_from_args(args: argparse.Namespace) -> DetectionSettings:
    return DetectionSettings.for_mode(
        args.mode,
        confidence_threshold=args.threshold,
        context_validation=False if args.no_context else None
    )


def _read_file(path: str, logger: logging.Logger) -> Optional[bytes]:
    file_path = Path(path)
    if not file_path.is_file():
        logger.error(f"File not found: {file_path}")
        return None
    return file_path.read_bytes()


def _print_json(data) -> None:
    print(json.dumps(make_json_serializable(data), indent=2))


def run_analyze(args: argparse.Namespace, logger: logging.Logger) -> int:
    from stegscan.analysis.analyzer import ImageAnalyzer

    data = _read_file(args.path, logger)
    if data is None:
        return 1

    path = Path(args.path)
    result = ImageAnalyzer().analyze(data, args.format or path.suffix, _settings_from_args(args), path.name)
    output = result.to_dict()

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            json.dump(output, f, indent=2)
        logger.info(f"Results saved to {output_path}")

    _print_json(output)
    return 0


def run_extract_lsb(args: argparse.Namespace, logger: logging.Logger) -> int:
    from stegscan.analysis.decoder import PillowDecoder
    from stegscan.lsb.extractor import extract_lsb

    data = _read_file(args.path, logger)
    if data is None:
        return 1

    try:
        decoded = PillowDecoder().decode(data)
    except Exception as e:
        logger.error(f"Could not decode {args.path}: {e}")
        return 1

    extraction = extract_lsb(decoded.pixels, args.method)
    _print_json(extraction.to_dict())
    return 0


def run_carve(args: argparse.Namespace, logger: logging.Logger) -> int:
    from stegscan.detection.carving import carve_finding, extract_appended
    from stegscan.detection.scanner import SignatureScanner

    data = _read_file(args.path, logger)
    if data is None:
        return 1

    path = Path(args.path)
    output_dir = Path(args.output_dir) if args.output_dir else config.RESULTS_DIR / "carved" / path.stem
    outcome = SignatureScanner().scan(data, path.suffix, _settings_from_args(args))

    payloads = []
    appended = extract_appended(data, outcome.terminator)
    if appended is not None:
        payloads.append(appended)
    for finding in outcome.findings:
        payload = carve_finding(data, finding)
        if payload is not None and all(p.offset != payload.offset or p.size != payload.size for p in payloads):
            payloads.append(payload)

    if payloads:
        output_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for payload in payloads:
        target = output_dir / payload.filename
        target.write_bytes(payload.data)
        written.append({
            "file": str(target),
            "offset": payload.offset,
            "size": payload.size,
            "format": payload.format,
        })
        logger.info(f"Wrote {payload.size} bytes ({payload.format}) to {target}")

    _print_json({"terminator_offset": outcome.terminator, "payloads": written})
    return 0


def run_search(args: argparse.Namespace, logger: logging.Logger) -> int:
    from stegscan.detection.carving import search_pattern

    data = _read_file(args.path, logger)
    if data is None:
        return 1

    try:
        matches = search_pattern(data, args.start, args.end, as_hex=args.hex, max_matches=args.max_matches)
    except ValueError as e:
        logger.error(f"Invalid pattern: {e}")
        return 1

    _print_json({
        "count": len(matches),
        "matches": [
            {
                "offset": m.offset,
                "hex_offset": f"0x{m.offset:08x}",
                "size": len(m.content),
                "hex": m.content[:256].hex(),
                "text": m.content.decode("utf-8", errors="replace")[:256],
            }
            for m in matches
        ],
    })
    return 0


def run_batch(args: argparse.Namespace, logger: logging.Logger) -> int:
    from stegscan.analysis.pipeline import BatchScanPipeline

    pipeline = BatchScanPipeline(
        input_path=Path(args.input_dir),
        output_path=Path(args.output_dir) if args.output_dir else None,
        settings=_settings_from_args(args),
        extract_payloads=args.extract,
    )
    summary = pipeline.run()
    _print_json(summary)
    return 0 if summary.get("success") else 1


COMMANDS = {
    "analyze": run_analyze,
    "extract-lsb": run_extract_lsb,
    "carve": run_carve,
    "search": run_search,
    "batch": run_batch,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if not args.command:
        print("Please specify a command. Use --help for more information.")
        return 1

    logger = setup_logging(
        "stegscan",
        log_level="DEBUG" if args.verbose else config.LOG_LEVEL,
        log_dir=args.log_dir,
    )

    try:
        return COMMANDS[args.command](args, logger)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
