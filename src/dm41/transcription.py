"""Read and write the text transcription of a DM41 memory image."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, List, Tuple

from .memory_image import (
    MODEL_NAME,
    REGISTER_COUNT,
    CpuRegisters,
    Dm41Error,
    MemoryImage,
)

LOGGER = logging.getLogger(__name__)

_REGISTERS_PER_LINE = 4

_ABC_LINE = re.compile(
    r"A: ([0-9a-fA-F]{14})  B: ([0-9a-fA-F]{14})  C: ([0-9a-fA-F]{14})"
)
_MNG_LINE = re.compile(
    r"M: ([0-9a-fA-F]{14})  N: ([0-9a-fA-F]{14})  G: ([0-9a-fA-F]{2,14})"
)
_MEMORY_LINE = re.compile(
    r"^\s*([0-9a-fA-F]{1,3})((?:\s+[0-9a-fA-F]+){4})\s*$"
)
_MODEL_LINE = re.compile(r"^\s*(DM[0-9]{2})\s*$")


class TranscriptionError(Dm41Error):
    """Raised when a transcription cannot be parsed."""


class ModelMismatchError(TranscriptionError):
    """Raised when a transcription belongs to another calculator model."""


def parse_transcription(lines: Iterable[str]) -> MemoryImage:
    """Build a :class:`MemoryImage` from transcription ``lines``."""

    image = MemoryImage()
    model: str | None = None
    abc: Tuple[str, ...] | None = None
    mng: Tuple[str, ...] | None = None

    for number, raw_line in enumerate(lines, start=1):
        line = raw_line.rstrip("\r\n")
        if match := _ABC_LINE.search(line):
            abc = match.groups()
        elif match := _MNG_LINE.search(line):
            mng = match.groups()
        elif match := _MEMORY_LINE.match(line):
            _store_line(image, int(match.group(1), 16), match.group(2).split(), number)
        elif match := _MODEL_LINE.match(line):
            model = match.group(1)
        elif line.strip():
            raise TranscriptionError(f"unhandled line {number}: {line!r}")

    if model is None:
        raise TranscriptionError("transcription has no model header line")
    if model != MODEL_NAME:
        raise ModelMismatchError(
            f"this appears to be a memory dump for a {model}, not a {MODEL_NAME}"
        )

    a, b, c = abc if abc is not None else ("0" * 14,) * 3
    m, n, g = mng if mng is not None else ("0" * 14, "0" * 14, "00")
    image.registers = CpuRegisters(a=a, b=b, c=c, m=m, n=n, g=g)
    image.check_watchdog()
    return image


def _store_line(image: MemoryImage, first: int, registers: List[str], number: int) -> None:
    if first + len(registers) > REGISTER_COUNT:
        raise TranscriptionError(
            f"line {number} addresses register {first + len(registers) - 1:#x} "
            f"beyond the {REGISTER_COUNT} available"
        )
    for offset, raw in enumerate(registers):
        image.store_register(first + offset, raw)


def load_transcription(path: Path | str) -> MemoryImage:
    """Read the transcription file at ``path``."""

    source = Path(path)
    LOGGER.debug("loading transcription from %s", source)
    with source.open(encoding="utf-8") as stream:
        return parse_transcription(stream)


def format_transcription(image: MemoryImage) -> List[str]:
    """Return transcription lines for ``image``.

    Groups of four registers that are entirely zero are omitted.
    """

    lines = [MODEL_NAME]
    for first in range(0, REGISTER_COUNT, _REGISTERS_PER_LINE):
        group = [image.register(first + offset) for offset in range(_REGISTERS_PER_LINE)]
        if not any(any(register) for register in group):
            continue
        body = "".join(f"{register.hex()}  " for register in group)
        lines.append(f"{first:02x}  {body}")

    registers = image.registers
    lines.append(f"A: {registers.a}  B: {registers.b}  C: {registers.c}")
    lines.append(f"M: {registers.m}  N: {registers.n}  G: {registers.g}")
    lines.append("")
    image.check_watchdog()
    return lines


def write_transcription(image: MemoryImage, path: Path | str) -> None:
    Path(path).write_text("\n".join(format_transcription(image)) + "\n", encoding="utf-8")


__all__ = [
    "ModelMismatchError",
    "TranscriptionError",
    "format_transcription",
    "load_transcription",
    "parse_transcription",
    "write_transcription",
]
