"""Inspect and patch DM41 memory transcriptions."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from .config import LOG_LEVELS, ToolConfig, load_tool_config
from .injector import inject_code
from .memory_image import Dm41Error, MemoryImage
from .programs import list_program
from .reporting import collect_summary, format_listing, format_missing_program, format_summary
from .transcription import format_transcription, load_transcription, write_transcription

LOGGER = logging.getLogger(__name__)

__all__ = ["main", "parse_args", "run"]


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "-f",
        "--filename",
        type=Path,
        help="Memory transcription to read (a blank image is used otherwise)",
    )
    parser.add_argument(
        "-i",
        "--inject",
        metavar="HEX",
        help="Inject hex-encoded program bytes above the .END.",
    )
    parser.add_argument(
        "-l",
        "--list",
        metavar="NAME",
        help="Disassemble the global program NAME",
    )
    parser.add_argument(
        "-p",
        "--print",
        action="store_true",
        help="Print the memory transcription before any injection",
    )
    parser.add_argument(
        "-s",
        "--summary",
        action="store_true",
        help="Display programs, alarms and register accounting",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Write the resulting transcription to this file",
    )
    parser.add_argument("--config", type=Path, help="TOML file with [dm41] defaults")
    parser.add_argument(
        "--timezone-offset",
        type=int,
        help="Seconds west of UTC used for alarm times (defaults to the host clock)",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        help="Logging verbosity",
    )
    return parser.parse_args(argv)


def _load_image(filename: Path | None) -> MemoryImage:
    if filename is None:
        LOGGER.warning(
            "no filename given; using a blank memory map with only the required registers"
        )
        return MemoryImage.blank()
    if not filename.is_file():
        raise SystemExit(f"memory transcription not found: {filename}")
    return load_transcription(filename)


def run(args: argparse.Namespace, config: ToolConfig) -> int:
    image = _load_image(args.filename or config.image)
    tz_offset = args.timezone_offset if args.timezone_offset is not None else config.timezone_offset

    if args.print:
        print("\n".join(format_transcription(image)))
    if args.inject:
        result = inject_code(image, args.inject)
        LOGGER.info(
            "injected %d byte(s); program limit %#05x -> %#05x, %d register(s) free",
            result.byte_count,
            result.limit_before,
            result.limit_after,
            result.free_after,
        )
        print("\n".join(format_transcription(image)))
    if args.summary:
        print("\n".join(format_summary(collect_summary(image, tz_offset=tz_offset))))
    if args.list:
        name = args.list.upper()
        listing = list_program(image, name)
        lines = format_missing_program(name) if listing is None else format_listing(listing)
        print("\n".join(lines))
    if args.output:
        write_transcription(image, args.output)
        LOGGER.info("wrote transcription to %s", args.output)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        config = load_tool_config(args.config) if args.config else ToolConfig()
        logging.basicConfig(level=getattr(logging, args.log_level or config.log_level))
        return run(args, config)
    except Dm41Error as exc:
        raise SystemExit(f"FATAL: {exc}") from exc


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
