from __future__ import annotations

from typing import Sequence

import pytest

from dm41.decoder import (
    OpcodeClass,
    classify_opcode,
    decode_instruction,
    format_label_operand,
    format_register_operand,
    read_global,
)
from dm41.memory_image import MemoryImage, iter_locations

START = 300 * 7


def _image_with(values: Sequence[int], start: int = START) -> MemoryImage:
    image = MemoryImage()
    for location, value in zip(iter_locations(start, len(values)), values):
        image[location] = value
    return image


@pytest.mark.parametrize(
    ("values", "expected"),
    [
        ((0x85,), "RTN"),
        ((0x01,), "LBL 00"),
        ((0x0F,), "LBL 14"),
        ((0x11, 0x1A, 0x15), "1.5"),
        ((0x1E, 0xF2, 0x41, 0x7E), 'XEQ "AΣ"'),
        ((0x1D, 0xF1, 0x2E), 'GTO "≻"'),
        ((0x25,), "RCL 05"),
        ((0x3F,), "STO 15"),
        ((0x91, 0x73), "STO X"),
        ((0x90, 0x0C), "RCL 12"),
        ((0x96, 0x83), "ISG IND 03"),
        ((0x9B, 0xF4), "ARCL IND L"),
        ((0xCE, 0x7A), "X<> ⊢"),
        ((0x9C, 0x04), "FIX 4"),
        ((0xA6, 0x41), "ALENG"),
        ((0xA6, 0x9C), "TIME"),
        ((0xA0, 0x01), "XROM 0,1"),
        ((0xA8, 0x1B), "SF 27"),
        ((0xAC, 0x8A), "FS? IND 10"),
        ((0xAE, 0x05), "GTO 05"),
        ((0xAE, 0x73), "GTO IND X"),
        ((0xAE, 0x85), "XEQ IND 05"),
        ((0xAF, 0x00), "SPARE"),
        ((0xB0, 0x07), "SPARE 07"),
        ((0xB2, 0x00), "GTO 01"),
        ((0xCF, 0x66), "LBL A"),
        ((0xCF, 0x7B), "LBL a"),
        ((0xD0, 0x00, 0x67), "GTO B"),
        ((0xE0, 0x00, 0x0A), "XEQ 10"),
        ((0xE0, 0x00, 0x8A), "XEQ IND 10"),
        ((0xE0, 0x00, 0x64), "XEQ INVALID 100"),
        ((0xF3, 0x7F, 0x41, 0x42), '>"AB"'),
        ((0xF2, 0x48, 0x49), '"HI"'),
        ((0xF0,), '""'),
        ((0x00,), "UNKNOWN BYTE: 00"),
        ((0xC0, 0x00, 0xF2, 0x05, 0x41), 'LBL "A"'),
        ((0xC0, 0x00, 0x0D), "END"),
        ((0xC4, 0x01, 0x29), ".END."),
    ],
)
def test_decode_instruction_renders_text_and_length(values, expected) -> None:
    image = _image_with(values)

    instruction = decode_instruction(image, START)

    assert instruction.text == expected
    assert instruction.bytes == tuple(values)
    assert instruction.size == len(values)
    assert instruction.next_location == START + len(values)


def test_decode_instruction_follows_register_boundary() -> None:
    start = START + 5
    image = _image_with((0xD0, 0x00, 0x67, 0x85), start=start)

    branch = decode_instruction(image, start)
    assert branch.text == "GTO B"
    assert branch.next_location == 299 * 7 + 1
    assert branch.hex == "d00067"

    following = decode_instruction(image, branch.next_location)
    assert following.text == "RTN"


def test_digit_entry_stops_at_first_non_digit() -> None:
    image = _image_with((0x11, 0x12, 0x1B, 0x13))

    instruction = decode_instruction(image, START)

    assert instruction.text == "12"
    assert instruction.opcode_class is OpcodeClass.DIGITS


@pytest.mark.parametrize(
    ("opcode", "expected"),
    [
        (0x00, OpcodeClass.UNKNOWN),
        (0x05, OpcodeClass.LOCAL_LABEL),
        (0x1A, OpcodeClass.DIGITS),
        (0x1B, OpcodeClass.FIXED),
        (0x1F, OpcodeClass.ALPHA_BRANCH),
        (0x2A, OpcodeClass.RECALL),
        (0x30, OpcodeClass.STORE),
        (0x8F, OpcodeClass.FIXED),
        (0x9B, OpcodeClass.REGISTER),
        (0xCE, OpcodeClass.REGISTER),
        (0x9F, OpcodeClass.DISPLAY),
        (0xA7, OpcodeClass.XROM),
        (0xAD, OpcodeClass.FLAG),
        (0xAE, OpcodeClass.INDIRECT_BRANCH),
        (0xB0, OpcodeClass.SPARE),
        (0xBF, OpcodeClass.SHORT_GTO),
        (0xCD, OpcodeClass.GLOBAL),
        (0xCF, OpcodeClass.LETTER_LABEL),
        (0xEF, OpcodeClass.LONG_BRANCH),
        (0xFF, OpcodeClass.TEXT),
    ],
)
def test_classify_opcode_covers_every_range(opcode: int, expected: OpcodeClass) -> None:
    assert classify_opcode(opcode) is expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [(0, "00"), (111, "111"), (112, "T"), (127, "e"), (128, "IND 00"), (239, "IND 111"), (240, "IND T")],
)
def test_format_register_operand(value: int, expected: str) -> None:
    assert format_register_operand(value) == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [(7, "07"), (101, "INVALID 101"), (102, "A"), (111, "J"), (117, "M"), (123, "a"), (131, "IND 03")],
)
def test_format_label_operand(value: int, expected: str) -> None:
    assert format_label_operand(value) == expected


def test_read_global_reports_label_key_and_name() -> None:
    image = _image_with((0xC0, 0x00, 0xF4, 0x05, 0x41, 0x42, 0x43))

    marker = read_global(image, START)

    assert marker is not None
    assert marker.is_label
    assert marker.name == "ABC"
    assert marker.key == 0x05
    assert marker.text == 'LBL "ABC"'
    assert marker.next_location == 299 * 7


def test_read_global_distinguishes_terminal_end() -> None:
    terminal = read_global(_image_with((0xC4, 0x01, 0x29)), START)
    plain = read_global(_image_with((0xC0, 0x00, 0x0D)), START)

    assert terminal is not None and terminal.is_terminal
    assert plain is not None and not plain.is_terminal and not plain.is_label
    assert read_global(_image_with((0xCE, 0x73)), START) is None
    assert read_global(_image_with((0x85,)), START) is None
