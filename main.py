"""
subutil — CLI Entry Point

Usage:
    python main.py offset in.srt out.srt -t -2.5
    python main.py offset in.srt out.srt -f 1.001 -t 0.4
    python main.py interpolate 12,1:01.0 480,40:05.5 in.srt out.srt
    python main.py renumber in.srt out.srt
    python main.py forced movie.sup
"""

import sys
import argparse
import logging
from pathlib import Path

from config import load_config
from subutil.errors import (
    AnchorError, ExceedsCapacity, SegmentFormatError, SRTError,
)
from subutil.orchestrator import RetimePipeline
from subutil.timing import parse_anchor, seconds_to_ms


def setup_logging(level: str = "INFO", log_file: str = None):
    """Configure logging for the application."""
    log_format = (
        "%(asctime)s | %(levelname)-7s | %(name)-20s | %(message)s"
    )
    date_format = "%H:%M:%S"

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=log_format,
        datefmt=date_format,
        handlers=handlers,
        force=True,
    )


def _anchor(token: str):
    try:
        return parse_anchor(token)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def _number(text: str) -> str:
    # Converted exactly (via Decimal) by the pipeline; same rules checked here
    try:
        seconds_to_ms(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))
    return text


def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}")
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="subutil",
        description="subutil — Retime, renumber and inspect subtitle files.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  subutil offset movie.srt fixed.srt -t 2.5          # Show subtitles 2.5s later
  subutil offset movie.srt fixed.srt -f 1.04271      # 25fps → 23.976fps
  subutil interpolate 3,0:41.2 812,1:52:03 in.srt out.srt
  subutil renumber movie.srt fixed.srt
  subutil forced movie.sup
"""
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to custom config.yaml file"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging"
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only log warnings and errors"
    )
    parser.add_argument(
        "--encoding",
        default=None,
        help="Text encoding of .srt input and output (default: from config, utf-8)"
    )
    sub =parser.add_subparsers(dest="command", required=True)

    offset = sub.add_parser(
        "offset",
        help="Scale and/or translate every timestamp",
        description="Modifies the timestamps of SRT subtitles. The factor is "
                    "applied before the translation. Subtitles pushed entirely "
                    "before 0 are dropped."
    )
    offset.add_argument("input", type=Path, help="Input .srt file")
    offset.add_argument("output", type=Path, help="Output .srt file")
    offset.add_argument(
        "-t", "--translate",
        type=_number,
        default="0",
        metavar="SECONDS",
        help="Seconds added to each timestamp; negative makes subtitles sooner"
    )
    offset.add_argument(
        "-f", "--factor",
        type=_number,
        default="1",
        help="Multiplicative factor applied to each timestamp (default: 1)"
    )

    interp = sub.add_parser(
        "interpolate",
        help="Pin chosen subtitles to target times and interpolate the rest",
        description="Interpolate/extrapolate the timestamps on SRT subtitles so "
                    "that subtitles with the given IDs occur at the corresponding "
                    "times. TIME is [[H:]MM:]SS[.mmm]."
    )
    interp.add_argument("anchors", nargs="+", type=_anchor, metavar="ID,TIME",
                        help="Subtitle ID and its target time")
    interp.add_argument("input", type=Path, help="Input .srt file")
    interp.add_argument("output", type=Path, help="Output .srt file")
    interp.add_argument(
        "--strict",
        action="store_true",
        help="Fail instead of warning when anchors are missing or out of order"
    )

    renumber = sub.add_parser(
        "renumber",
        help="Renumber subtitle IDs from 1",
        description="Changes the IDs in an SRT file to be numbers from 1 to "
                    "the total number of subtitles in the file."
    )
    renumber.add_argument("input", type=Path, help="Input .srt file")
    renumber.add_argument("output", type=Path, help="Output .srt file")

    forced = sub.add_parser(
        "forced",
        help="Count forced subtitles in a PGS stream",
        description="Analyzes numbers of forced and unforced subtitles in a PGS stream."
    )
    forced.add_argument("input", type=Path, help="Input .sup/.pgs file")
    forced.add_argument(
        "--buffer-size",
        type=_positive_int,
        default=None,
        help="Read buffer size in bytes; bounds the largest segment (default: 65536)"
    )

    return parser


def run(args) -> int:
    """Run the selected tool. Returns the process exit code."""
    # ── Validate input ──
    if not args.input.exists():
        print(f"Error: Input file not found: {args.input}", file=sys.stderr)
        return 1

    # ── Load config ──
    try:
        config = load_config(args.config)
    except (ValueError, OSError) as e:
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        return 1
    config.update_from_args(args)

    # ── Setup logging ──
    log_level = "DEBUG" if args.verbose else ("WARNING" if args.quiet else config.logging.level)
    setup_logging(level=log_level, log_file=config.logging.file)

    pipeline = RetimePipeline(config)

    try:
        if args.command == "offset":
            pipeline.offset(args.input, args.output,
                            factor=args.factor, translation_seconds=args.translate)
        elif args.command == "interpolate":
            pipeline.interpolate(args.input, args.output, args.anchors)
        elif args.command == "renumber":
            pipeline.renumber(args.input, args.output)
        elif args.command == "forced":
            tally = pipeline.forced(args.input)
            print(f"TOTAL: {tally.forced_objects} forced objects in "
                  f"{tally.forced_presentations} presentation segments")

    except KeyboardInterrupt:
        print("\n  [WARN] Processing interrupted by user.", file=sys.stderr)
        return 130
    except SRTError as e:
        print(f"  [ERROR] {args.input}: {e}", file=sys.stderr)
        return 2
    except AnchorError as e:
        print(f"  [ERROR] Anchors: {e}", file=sys.stderr)
        return 2
    except ExceedsCapacity as e:
        print(f"  [ERROR] {e}; try increasing --buffer-size", file=sys.stderr)
        return 2
    except SegmentFormatError as e:
        print(f"  [ERROR] {args.input}: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"  [ERROR] File error: {e}", file=sys.stderr)
        return 1
    except (ValueError, LookupError) as e:
        # Bad option values that got past argparse, e.g. an unknown --encoding
        print(f"  [ERROR] {e}", file=sys.stderr)
        return 1

    return 0


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    sys.exit(run(args))


if __name__ == "__main__":
    main()
