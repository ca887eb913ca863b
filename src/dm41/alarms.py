"""Decode the alarm partition of a DM41 memory image."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Final, Iterable, List, Tuple

from .memory_image import (
    PARTITION_BASE,
    PARTITION_END_MARKER,
    REGISTER_BYTES,
    MemoryImage,
)

LOGGER = logging.getLogger(__name__)

ALARM_PARTITION_MARKER: Final = 0xAA
# Seconds between 1900-01-01 00:00:00 UTC and the Unix epoch.
EPOCH_1900_OFFSET: Final = 2208988800
DEFAULT_ALARM_NAME: Final = "ALARM"


@dataclass(frozen=True)
class Alarm:
    """Scheduled alarm recovered from the alarm partition."""

    time: int
    repeating: bool
    interval: int
    name: str

    def local_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.time)


def host_timezone_offset() -> int:
    """Return the host's offset in seconds west of UTC.

    Alarm times are stored as calculator wall-clock time; adding this offset
    yields the matching Unix time.
    """

    offset = datetime.now().astimezone().utcoffset()
    return -int(offset.total_seconds()) if offset is not None else 0


def bcd_value(nibbles: Iterable[int]) -> int:
    """Combine decimal digits, most significant first."""

    value = 0
    for nibble in nibbles:
        value = value * 10 + nibble
    return value


def _nibbles(values: Iterable[int]) -> List[int]:
    digits: List[int] = []
    for value in values:
        digits.extend((value >> 4, value & 0x0F))
    return digits


def find_alarm_partition(image: MemoryImage) -> Tuple[int, int] | None:
    """Return ``(start register, length in registers)`` of the alarm partition."""

    limit = image.status.program_limit
    for index in range(PARTITION_BASE, limit):
        base = index * REGISTER_BYTES
        if image[base] == ALARM_PARTITION_MARKER:
            return index, image[base + 1]
    return None


def _register(image: MemoryImage, index: int) -> Tuple[int, ...]:
    return tuple(image.register(index))


def find_alarms(image: MemoryImage, tz_offset: int | None = None) -> Tuple[Alarm, ...]:
    """Decode every alarm record in the alarm partition.

    A record starting with the partition end marker (0xF0) discards all
    alarms decoded so far; the calculator's own catalog code treats such a
    partition as empty.
    """

    partition = find_alarm_partition(image)
    if partition is None:
        return ()
    start, length = partition
    if tz_offset is None:
        tz_offset = host_timezone_offset()

    alarms: List[Alarm] = []
    index = start + 1
    while index < start + length - 1:
        record = _register(image, index)
        tenths = bcd_value(_nibbles(record[:5]) + [record[5] >> 4])
        alarm_time = tenths // 10 - EPOCH_1900_OFFSET + tz_offset
        repeating = record[5] & 0x0F == 1
        name_registers = record[6] & 0x0F

        if record[0] == PARTITION_END_MARKER:
            LOGGER.debug(
                "alarm partition end marker at register %d, discarding %d alarm(s)",
                index,
                len(alarms),
            )
            return ()

        interval = 0
        if repeating:
            index += 1
            repeat = _register(image, index)
            interval = bcd_value(_nibbles(repeat[2:5]) + [repeat[5] >> 4]) // 10
        index += 1

        if name_registers > 0:
            raw = b"".join(image.register(index + offset) for offset in range(name_registers))
            name = "".join(chr(value) for value in raw if value)
            index += name_registers
        else:
            name = DEFAULT_ALARM_NAME

        alarms.append(Alarm(time=alarm_time, repeating=repeating, interval=interval, name=name))

    return tuple(alarms)


__all__ = [
    "ALARM_PARTITION_MARKER",
    "Alarm",
    "DEFAULT_ALARM_NAME",
    "EPOCH_1900_OFFSET",
    "bcd_value",
    "find_alarm_partition",
    "find_alarms",
    "host_timezone_offset",
]
