"""Render summaries and program listings for a memory image."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .alarms import Alarm, find_alarms
from .memory_image import PARTITION_BASE, MemoryImage
from .programs import ProgramCatalog, ProgramListing, index_programs

# Highest register of main memory; everything above the program top is data storage.
_MEMORY_TOP = 511
_RULE = "-" * 51


@dataclass(frozen=True)
class MemorySummary:
    """Counts and register accounting derived from one image."""

    catalog: ProgramCatalog
    alarms: Tuple[Alarm, ...]
    program_top: int
    program_limit: int
    program_bottom: int

    @property
    def program_registers(self) -> int:
        return self.program_top - self.program_limit

    @property
    def partition_registers(self) -> int:
        return self.program_bottom - PARTITION_BASE

    @property
    def used_registers(self) -> int:
        """Program registers plus the key assignment and alarm partitions."""

        return self.program_registers + self.partition_registers

    @property
    def storage_registers(self) -> int:
        return _MEMORY_TOP - self.program_top

    @property
    def free_registers(self) -> int:
        return self.program_limit - self.program_bottom


def collect_summary(image: MemoryImage, tz_offset: int | None = None) -> MemorySummary:
    status = image.status
    return MemorySummary(
        catalog=index_programs(image),
        alarms=find_alarms(image, tz_offset=tz_offset),
        program_top=status.program_top,
        program_limit=status.program_limit,
        program_bottom=image.program_bottom(status.program_limit),
    )


def format_interval(seconds: int) -> str:
    days, remainder = divmod(seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{days:02d} {hours:02d}:{minutes:02d}:{seconds:02d}"


def _label_cell(name: str) -> str:
    text = f'  LBL "{name}"'
    return f"{text:<30}        | "


def format_summary(summary: MemorySummary) -> List[str]:
    lines: List[str] = [""]
    catalog = summary.catalog
    if catalog.program_count > 0:
        lines.append("  Programs                              Size")
        lines.append(_RULE)
        for program in catalog.programs():
            rows = [_label_cell(name) for name in program.labels]
            if program.size is None:
                lines.extend(rows)
                continue
            last = rows.pop() if rows else ""
            lines.extend(rows)
            lines.append(f"{last}{program.size:>3} bytes")
            lines.append(_RULE)
    else:
        lines.append("  No programs found in memory.")

    lines.append("")
    if summary.alarms:
        lines.append("  Alarms            Time                Interval")
        lines.append(_RULE)
        for alarm in summary.alarms:
            when = alarm.local_datetime().strftime("%m/%d/%y %H:%M:%S")
            interval = format_interval(alarm.interval) if alarm.repeating else "-- --------"
            lines.append(f"  {alarm.name:<16}| {when:>17} | {interval}")
        lines.append(_RULE)
    else:
        lines.append("  No alarms found in memory.")

    lines.append("")
    lines.append("      Total                       Registers")
    lines.append(_RULE)
    lines.append(f"{catalog.program_count:>8} Program(s){summary.used_registers:>18} Used")
    lines.append(f"{catalog.label_count:>8} Label(s)  {summary.storage_registers:>18} Storage")
    lines.append(f"{len(summary.alarms):>8} Alarm(s)  {summary.free_registers:>18} Free")
    lines.append("")
    return lines


def format_listing(listing: ProgramListing) -> List[str]:
    lines = [f'Program "{listing.name}"', _RULE]
    lines.extend(f"{row.number:03d}\t{row.text:<25}{row.hex:<25}" for row in listing.rows)
    lines.extend(["", _RULE, "", listing.hex, "", _RULE, f"Size: {listing.size} bytes", ""])
    return lines


def format_missing_program(name: str) -> Sequence[str]:
    return ["", f"Program {name} does not exist.", ""]


__all__ = [
    "MemorySummary",
    "collect_summary",
    "format_interval",
    "format_listing",
    "format_missing_program",
    "format_summary",
]
