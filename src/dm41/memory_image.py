"""Register-addressed model of a DM41 memory image."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, fields, replace
from typing import Dict, Final, Iterator, Sequence, Tuple

LOGGER = logging.getLogger(__name__)

MODEL_NAME: Final = "DM41"
MEMORY_SIZE: Final = 7784
REGISTER_BYTES: Final = 7
REGISTER_COUNT: Final = MEMORY_SIZE // REGISTER_BYTES

WATCHDOG_SENTINEL: Final = 0x169
PARTITION_BASE: Final = 192
PARTITION_END_MARKER: Final = 0xF0

_REGISTER_PATTERN = re.compile(r"[0-9a-fA-F]{14}")
_FLAG_REGISTER_PATTERN = re.compile(r"[0-9a-fA-F]{2,14}")

# Registers the calculator needs to boot without reporting MEMORY LOST.
_BLANK_REGISTERS: Final[Dict[int, str]] = {
    12: "1000000000019c",
    13: "1a70016919c19b",
    14: "0000002c048020",
    411: "00000000c00020",
}


class Dm41Error(ValueError):
    """Base class for fatal errors raised while handling a memory image."""


class MemoryImageError(Dm41Error):
    """Raised when a memory image is accessed or built inconsistently."""


class AddressWalkError(MemoryImageError):
    """Raised when a location falls outside the image."""


class MalformedRegisterError(MemoryImageError):
    """Raised when register text is not exactly fourteen hex digits."""


def next_location(location: int) -> int:
    """Return the location that follows ``location`` in program order.

    Programs are stored from high registers towards low ones, but bytes
    inside a register are read from offset 0 upwards. After the last byte of
    register ``r`` the walk continues at byte 0 of register ``r - 1``.
    """

    if location < 0:
        raise AddressWalkError(f"location {location} is below the start of memory")
    if location % REGISTER_BYTES == REGISTER_BYTES - 1:
        following = location - 13
    else:
        following = location + 1
    if following < 0:
        raise AddressWalkError(f"address walk from {location} ran below location 0")
    return following


def advance(location: int, steps: int) -> int:
    """Apply :func:`next_location` ``steps`` times."""

    for _ in range(steps):
        location = next_location(location)
    return location


def iter_locations(location: int, count: int) -> Iterator[int]:
    """Yield ``count`` consecutive locations in program order."""

    for index in range(count):
        if index:
            location = next_location(location)
        yield location


@dataclass
class CpuRegisters:
    """Auxiliary CPU registers carried alongside the memory contents."""

    a: str = "0" * 14
    b: str = "0" * 14
    c: str = "0" * 14
    m: str = "0" * 14
    n: str = "0" * 14
    g: str = "00"

    def __post_init__(self) -> None:
        for item in fields(self):
            value = getattr(self, item.name)
            pattern = _FLAG_REGISTER_PATTERN if item.name == "g" else _REGISTER_PATTERN
            if not isinstance(value, str) or pattern.fullmatch(value) is None:
                raise MalformedRegisterError(
                    f"CPU register {item.name.upper()} was {value!r}"
                )


@dataclass(frozen=True)
class StatusFields:
    """Values packed into the status register (0x0D)."""

    watchdog: int
    program_top: int
    program_limit: int

    @property
    def watchdog_ok(self) -> bool:
        return self.watchdog == WATCHDOG_SENTINEL


class MemoryImage:
    """Fixed-size byte store addressed in 7-byte registers."""

    def __init__(
        self,
        data: bytes | bytearray | Sequence[int] | None = None,
        registers: CpuRegisters | None = None,
    ):
        if data is None:
            self._data = bytearray(MEMORY_SIZE)
        else:
            if len(data) != MEMORY_SIZE:
                raise MemoryImageError(
                    f"memory image must hold {MEMORY_SIZE} bytes, received {len(data)}"
                )
            self._data = bytearray(data)
        self.registers = registers if registers is not None else CpuRegisters()

    @classmethod
    def blank(cls) -> "MemoryImage":
        """Return the minimal image the calculator accepts as initialised."""

        image = cls()
        for index, raw in _BLANK_REGISTERS.items():
            image.store_register(index, raw)
        return image

    def __len__(self) -> int:
        return MEMORY_SIZE

    def __getitem__(self, location: int) -> int:
        self._check_location(location)
        return self._data[location]

    def __setitem__(self, location: int, value: int) -> None:
        self._check_location(location)
        if not 0 <= value <= 0xFF:
            raise MemoryImageError(f"byte value {value} out of range at {location}")
        self._data[location] = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MemoryImage):
            return NotImplemented
        return self._data == other._data and self.registers == other.registers

    def _check_location(self, location: int) -> None:
        if not 0 <= location < MEMORY_SIZE:
            raise AddressWalkError(f"location {location} outside memory image")

    def copy(self) -> "MemoryImage":
        return MemoryImage(self._data, replace(self.registers))

    def read(self, location: int, count: int) -> Tuple[int, ...]:
        """Return ``count`` bytes starting at ``location`` in program order."""

        return tuple(self[index] for index in iter_locations(location, count))

    def register(self, index: int) -> bytes:
        self._check_register(index)
        start = index * REGISTER_BYTES
        return bytes(self._data[start : start + REGISTER_BYTES])

    def register_hex(self, index: int) -> str:
        return self.register(index).hex()

    def store_register(self, index: int, raw: str) -> None:
        """Store fourteen hex digits into register ``index``."""

        self._check_register(index)
        if _REGISTER_PATTERN.fullmatch(raw) is None:
            raise MalformedRegisterError(f"register {index:x} was {raw!r}")
        start = index * REGISTER_BYTES
        self._data[start : start + REGISTER_BYTES] = bytes.fromhex(raw)

    def _check_register(self, index: int) -> None:
        if not 0 <= index < REGISTER_COUNT:
            raise AddressWalkError(f"register {index} outside memory image")

    @property
    def status(self) -> StatusFields:
        data = self._data
        return StatusFields(
            watchdog=((data[93] & 0x0F) << 8) + data[94],
            program_top=(data[95] << 4) + (data[96] >> 4) - 1,
            program_limit=((data[96] & 0x0F) << 8) + data[97],
        )

    def set_program_limit(self, limit: int) -> None:
        """Repack ``limit`` into the low nibble of byte 96 and byte 97."""

        if not 0 <= limit <= 0xFFF:
            raise MemoryImageError(f"program limit {limit:#x} does not fit in 12 bits")
        self._data[96] = (self._data[96] & 0xF0) | (limit >> 8)
        self._data[97] = limit & 0xFF

    def program_bottom(self, limit: int | None = None) -> int:
        """Return the lowest register available to programs below ``limit``.

        The search runs downward from just below ``limit`` and stops at the
        first register starting with 0xF0, the top of the key assignment and
        alarm partitions. The result is the register above it, or the
        partition base when no such register exists.
        """

        if limit is None:
            limit = self.status.program_limit
        bottom = limit
        for index in range(limit - 1, PARTITION_BASE - 1, -1):
            if self._data[index * REGISTER_BYTES] == PARTITION_END_MARKER:
                break
            bottom -= 1
        return bottom

    def free_registers(self) -> int:
        limit = self.status.program_limit
        return limit - self.program_bottom(limit)

    def check_watchdog(self) -> bool:
        """Log a warning when the watchdog word is missing."""

        watchdog = self.status.watchdog
        if watchdog != WATCHDOG_SENTINEL:
            LOGGER.warning(
                "watchdog word in register 0x0D contains %d instead of %d (%#x); "
                "the calculator will show MEMORY LOST if this image is loaded as-is",
                watchdog,
                WATCHDOG_SENTINEL,
                WATCHDOG_SENTINEL,
            )
            return False
        return True


__all__ = [
    "AddressWalkError",
    "CpuRegisters",
    "Dm41Error",
    "MEMORY_SIZE",
    "MODEL_NAME",
    "MalformedRegisterError",
    "MemoryImage",
    "MemoryImageError",
    "PARTITION_BASE",
    "PARTITION_END_MARKER",
    "REGISTER_BYTES",
    "REGISTER_COUNT",
    "StatusFields",
    "WATCHDOG_SENTINEL",
    "advance",
    "iter_locations",
    "next_location",
]
