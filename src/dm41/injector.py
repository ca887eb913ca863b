"""Append program bytes to free program memory."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Final, Tuple

from .memory_image import (
    REGISTER_BYTES,
    Dm41Error,
    MemoryImage,
    iter_locations,
    next_location,
)

LOGGER = logging.getLogger(__name__)

# Canonical permanent .END. marker, written to bytes 4-6 of its register.
END_MARKER: Final[Tuple[int, int, int]] = (0xC4, 0x01, 0x29)
END_MARKER_OFFSET: Final = 4


class InjectionError(Dm41Error):
    """Raised when injected program bytes cannot be used."""


class InsufficientSpaceError(InjectionError):
    """Raised when free program memory cannot hold the injected bytes."""


@dataclass(frozen=True)
class InjectionResult:
    """Bookkeeping before and after an injection."""

    byte_count: int
    registers_used: int
    limit_before: int
    limit_after: int
    free_before: int
    free_after: int

    @property
    def end_marker_location(self) -> int:
        return self.limit_after * REGISTER_BYTES + END_MARKER_OFFSET


def parse_hex_payload(text: str) -> bytes:
    """Return the bytes spelled by ``text``, ignoring whitespace."""

    compact = "".join(text.split())
    try:
        return bytes.fromhex(compact)
    except ValueError as exc:
        raise InjectionError(f"injection payload is not valid hex: {text!r}") from exc


def inject_code(image: MemoryImage, payload: bytes | str) -> InjectionResult:
    """Write ``payload`` at the program limit and move the .END. below it.

    The image is modified in place. The last register touched by the payload
    is padded with nulls, and the new .END. fills the register after it,
    which becomes the new program limit.
    """

    data = parse_hex_payload(payload) if isinstance(payload, str) else bytes(payload)
    if not data:
        raise InjectionError("injection payload is empty")

    limit = image.status.program_limit
    free_before = limit - image.program_bottom(limit)
    required = math.ceil(len(data) / REGISTER_BYTES)

    LOGGER.debug("code to be injected: %s", data.hex())
    LOGGER.debug(
        "%d bytes need %d register(s); %d register(s) free",
        len(data),
        required,
        free_before,
    )
    if required > free_before:
        raise InsufficientSpaceError(
            f"injected code needs {required} register(s) but only {free_before} remain"
        )

    LOGGER.debug(".END. register contents were: %s", image.register_hex(limit))

    pointer = limit * REGISTER_BYTES
    for value in data:
        image[pointer] = value
        pointer = next_location(pointer)
    while pointer % REGISTER_BYTES:
        image[pointer] = 0
        pointer = next_location(pointer)

    new_limit = pointer // REGISTER_BYTES
    # The .END. register holds nothing but the marker.
    marker_register = (0,) * END_MARKER_OFFSET + END_MARKER
    for location, value in zip(iter_locations(pointer, REGISTER_BYTES), marker_register):
        image[location] = value
    image.set_program_limit(new_limit)

    free_after = new_limit - image.program_bottom(new_limit)
    LOGGER.debug("new program limit is at %#05x", new_limit)
    LOGGER.debug("%d register(s) of free memory remain", free_after)

    return InjectionResult(
        byte_count=len(data),
        registers_used=required,
        limit_before=limit,
        limit_after=new_limit,
        free_before=free_before,
        free_after=free_after,
    )


__all__ = [
    "END_MARKER",
    "InjectionError",
    "InjectionResult",
    "InsufficientSpaceError",
    "inject_code",
    "parse_hex_payload",
]
