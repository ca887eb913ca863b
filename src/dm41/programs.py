"""Catalog and list the user programs held in program memory."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, List, Tuple

from .decoder import decode_instruction, read_global
from .memory_image import REGISTER_BYTES, MemoryImage, advance, next_location

LOGGER = logging.getLogger(__name__)

__all__ = [
    "LabelEntry",
    "ListingRow",
    "ProgramCatalog",
    "ProgramListing",
    "ProgramSummary",
    "SizeEntry",
    "find_program_start",
    "index_programs",
    "list_program",
]

# Bytes of the label marker itself, counted toward the first program.
_FIRST_PROGRAM_CORRECTION = 3


@dataclass(frozen=True)
class LabelEntry:
    """Global label found while scanning program memory."""

    name: str
    key: int | None = None

    @property
    def text(self) -> str:
        return f'LBL "{self.name}"'


@dataclass(frozen=True)
class SizeEntry:
    """Size of the program closed by an END marker."""

    size: int


CatalogEntry = LabelEntry | SizeEntry


@dataclass(frozen=True)
class ProgramSummary:
    labels: Tuple[str, ...]
    size: int | None


@dataclass(frozen=True)
class ProgramCatalog:
    """Result of scanning program memory for global markers."""

    label_count: int
    program_count: int
    entries: Tuple[CatalogEntry, ...]

    def programs(self) -> Iterator[ProgramSummary]:
        """Group label entries with the size that follows them.

        Labels after the last END belong to the program closed by the
        permanent .END. and carry no size.
        """

        labels: List[str] = []
        for entry in self.entries:
            if isinstance(entry, LabelEntry):
                labels.append(entry.name)
            else:
                yield ProgramSummary(tuple(labels), entry.size)
                labels = []
        if labels:
            yield ProgramSummary(tuple(labels), None)


def index_programs(image: MemoryImage) -> ProgramCatalog:
    """Count labels and programs between the program top and limit."""

    status = image.status
    location = status.program_top * REGISTER_BYTES
    floor = status.program_limit * REGISTER_BYTES

    step_count = 0
    label_count = 0
    program_count = 0
    entries: List[CatalogEntry] = []

    while location >= floor:
        high = image[location] >> 4
        if 0x9 <= high <= 0xB:
            location = advance(location, 2)
            continue
        if 0xD <= high <= 0xE:
            location = advance(location, 3)
            continue

        marker = read_global(image, location)
        if marker is not None:
            if marker.is_label:
                if label_count == 0:
                    step_count = _FIRST_PROGRAM_CORRECTION
                label_count += 1
                entries.append(LabelEntry(marker.name, marker.key))
            elif not marker.is_terminal:
                program_count += 1
                entries.append(SizeEntry(step_count))
                step_count = 0

        step_count += 1
        location = next_location(location)

    return ProgramCatalog(label_count, program_count, tuple(entries))


@dataclass(frozen=True)
class ListingRow:
    number: int
    text: str
    hex: str


@dataclass(frozen=True)
class ProgramListing:
    """Disassembly of one global program."""

    name: str
    start: int
    rows: Tuple[ListingRow, ...]

    @property
    def hex(self) -> str:
        return "".join(row.hex for row in self.rows)

    @property
    def size(self) -> int:
        return len(self.hex) // 2


def find_program_start(image: MemoryImage, name: str) -> Tuple[int, str] | None:
    """Return ``(location, label hex)`` of the global label ``name``.

    The location is the first byte after the label's name.
    """

    status = image.status
    location = status.program_top * REGISTER_BYTES
    floor = status.program_limit * REGISTER_BYTES
    while location >= floor:
        marker = read_global(image, location)
        if marker is not None and marker.is_label and marker.name == name:
            return marker.next_location, "".join(f"{value:02x}" for value in marker.bytes)
        location = next_location(location)
    return None


def list_program(image: MemoryImage, name: str) -> ProgramListing | None:
    """Disassemble the program labelled ``name`` up to its END."""

    found = find_program_start(image, name)
    if found is None:
        LOGGER.info("program %r not found in program memory", name)
        return None

    start, label_hex = found
    rows = [ListingRow(1, f'LBL "{name}"', label_hex)]
    location = start
    while True:
        instruction = decode_instruction(image, location)
        rows.append(ListingRow(len(rows) + 1, instruction.text, instruction.hex))
        if instruction.is_end_of_program:
            break
        location = instruction.next_location

    LOGGER.debug("listed %d instructions for %r starting at %d", len(rows), name, start)
    return ProgramListing(name=name, start=start, rows=tuple(rows))
