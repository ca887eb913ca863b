"""Display glyph helpers for HP-41 character bytes."""
from __future__ import annotations

from typing import Dict, Final, Iterable

APPEND_GLYPH: Final = "⊢"

_SPECIAL_GLYPHS: Final[Dict[int, str]] = {
    0x0D: "∡",
    0x2E: "≻",
    0x7E: "Σ",
    0x7F: APPEND_GLYPH,
}

# Named registers addressed by operand values 112-127 (and 240-255 indirectly).
STACK_LETTERS: Final = "TZYXLMNOPQ" + APPEND_GLYPH + "abcde"


def translate_glyph(value: int) -> str:
    """Return the display character for the calculator byte ``value``."""

    return _SPECIAL_GLYPHS.get(value, chr(value))


def decode_glyphs(values: Iterable[int]) -> str:
    return "".join(translate_glyph(value) for value in values)


def stack_letter(value: int) -> str:
    """Return the register letter for an operand in 112-127 or 240-255."""

    return STACK_LETTERS[value & 0x0F]


__all__ = [
    "APPEND_GLYPH",
    "STACK_LETTERS",
    "decode_glyphs",
    "stack_letter",
    "translate_glyph",
]
