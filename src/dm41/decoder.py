"""Decode HP-41 program bytes stored in a DM41 memory image."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Final, List, Tuple

from .glyphs import APPEND_GLYPH, decode_glyphs, stack_letter
from .memory_image import MemoryImage, advance, next_location
from .xrom import split_xrom, xrom_name

__all__ = [
    "END_TEXT",
    "FIXED_MNEMONICS",
    "GlobalMarker",
    "Instruction",
    "OpcodeClass",
    "TERMINAL_END_TEXT",
    "classify_opcode",
    "decode_instruction",
    "format_branch_operand",
    "format_flag_operand",
    "format_label_operand",
    "format_register_operand",
    "read_global",
]

END_TEXT: Final = "END"
TERMINAL_END_TEXT: Final = ".END."


class OpcodeClass(Enum):
    """Instruction shapes, derived once from the first byte."""

    UNKNOWN = "unknown"
    LOCAL_LABEL = "local-label"
    DIGITS = "digits"
    FIXED = "fixed"
    ALPHA_BRANCH = "alpha-branch"
    RECALL = "recall"
    STORE = "store"
    REGISTER = "register"
    DISPLAY = "display"
    XROM = "xrom"
    FLAG = "flag"
    INDIRECT_BRANCH = "indirect-branch"
    SPARE = "spare"
    SHORT_GTO = "short-gto"
    GLOBAL = "global"
    LETTER_LABEL = "letter-label"
    LONG_BRANCH = "long-branch"
    TEXT = "text"


FIXED_MNEMONICS: Final[Dict[int, str]] = {
    0x1B: "EEX",
    0x1C: "NEG",
    0x40: "+",
    0x41: "-",
    0x42: "*",
    0x43: "/",
    0x44: "X<Y?",
    0x45: "X>Y?",
    0x46: "X≤Y?",
    0x47: "Σ+",
    0x48: "Σ-",
    0x49: "HMS+",
    0x4A: "HMS-",
    0x4B: "MOD",
    0x4C: "%",
    0x4D: "%CH",
    0x4E: "P->R",
    0x4F: "R->P",
    0x50: "LN",
    0x51: "X^2",
    0x52: "SQRT",
    0x53: "Y^X",
    0x54: "CHS",
    0x55: "E^X",
    0x56: "LOG",
    0x57: "10^X",
    0x58: "E^X-1",
    0x59: "SIN",
    0x5A: "COS",
    0x5B: "TAN",
    0x5C: "ASIN",
    0x5D: "ACOS",
    0x5E: "ATAN",
    0x5F: "->DEC",
    0x60: "1/X",
    0x61: "ABS",
    0x62: "FACT",
    0x63: "X#0?",
    0x64: "X>0?",
    0x65: "LN1+X",
    0x66: "X<0?",
    0x67: "X=0?",
    0x68: "INT",
    0x69: "FRC",
    0x6A: "D->R",
    0x6B: "R->D",
    0x6C: "->HMS",
    0x6D: "->HR",
    0x6E: "RND",
    0x6F: "->OCT",
    0x70: "CLΣ",
    0x71: "X<>Y",
    0x72: "PI",
    0x73: "CLST",
    0x74: "R^",
    0x75: "RDN",
    0x76: "LASTX",
    0x77: "CLX",
    0x78: "X=Y?",
    0x79: "X#Y?",
    0x7A: "SIGN",
    0x7B: "X≤0?",
    0x7C: "MEAN",
    0x7D: "SDEV",
    0x7E: "AVIEW",
    0x7F: "CLD",
    0x80: "DEG",
    0x81: "RAD",
    0x82: "GRAD",
    0x83: "ENTER^",
    0x84: "STOP",
    0x85: "RTN",
    0x86: "BEEP",
    0x87: "CLA",
    0x88: "ASHF",
    0x89: "PSE",
    0x8A: "CLRG",
    0x8B: "AOFF",
    0x8C: "AON",
    0x8D: "OFF",
    0x8E: "PROMPT",
    0x8F: "ADV",
}

_REGISTER_PREFIXES: Final[Dict[int, str]] = {
    0x90: "RCL",
    0x91: "STO",
    0x92: "ST+",
    0x93: "ST-",
    0x94: "ST*",
    0x95: "ST/",
    0x96: "ISG",
    0x97: "DSE",
    0x98: "VIEW",
    0x99: "ΣREG",
    0x9A: "ASTO",
    0x9B: "ARCL",
    0xCE: "X<>",
}

_DISPLAY_PREFIXES: Final[Dict[int, str]] = {
    0x9C: "FIX",
    0x9D: "SCI",
    0x9E: "ENG",
    0x9F: "TONE",
}

_FLAG_PREFIXES: Final[Dict[int, str]] = {
    0xA8: "SF",
    0xA9: "CF",
    0xAA: "FS?C",
    0xAB: "FC?C",
    0xAC: "FS?",
    0xAD: "FC?",
}

_ALPHA_BRANCH_PREFIXES: Final[Dict[int, str]] = {
    0x1D: "GTO",
    0x1E: "XEQ",
    0x1F: "W",
}

_DIGIT_TEXT: Final = "0123456789."


def _classify(opcode: int) -> OpcodeClass:
    if opcode == 0x00:
        return OpcodeClass.UNKNOWN
    if opcode < 0x10:
        return OpcodeClass.LOCAL_LABEL
    if opcode <= 0x1A:
        return OpcodeClass.DIGITS
    if opcode in _ALPHA_BRANCH_PREFIXES:
        return OpcodeClass.ALPHA_BRANCH
    if opcode in FIXED_MNEMONICS:
        return OpcodeClass.FIXED
    if opcode >> 4 == 0x2:
        return OpcodeClass.RECALL
    if opcode >> 4 == 0x3:
        return OpcodeClass.STORE
    if opcode in _REGISTER_PREFIXES:
        return OpcodeClass.REGISTER
    if opcode in _DISPLAY_PREFIXES:
        return OpcodeClass.DISPLAY
    if 0xA0 <= opcode <= 0xA7:
        return OpcodeClass.XROM
    if opcode in _FLAG_PREFIXES:
        return OpcodeClass.FLAG
    if opcode == 0xAE:
        return OpcodeClass.INDIRECT_BRANCH
    if opcode == 0xAF or opcode == 0xB0:
        return OpcodeClass.SPARE
    if opcode >> 4 == 0xB:
        return OpcodeClass.SHORT_GTO
    if opcode <= 0xCD:
        return OpcodeClass.GLOBAL
    if opcode == 0xCF:
        return OpcodeClass.LETTER_LABEL
    if opcode < 0xF0:
        return OpcodeClass.LONG_BRANCH
    return OpcodeClass.TEXT


_CLASS_BY_OPCODE: Final[Tuple[OpcodeClass, ...]] = tuple(_classify(value) for value in range(0x100))


def classify_opcode(opcode: int) -> OpcodeClass:
    """Return the instruction shape for the first byte ``opcode``."""

    return _CLASS_BY_OPCODE[opcode]


@dataclass(frozen=True)
class Instruction:
    """Single instruction recovered from program memory."""

    location: int
    next_location: int
    bytes: Tuple[int, ...]
    text: str
    opcode_class: OpcodeClass

    @property
    def opcode(self) -> int:
        return self.bytes[0]

    @property
    def hex(self) -> str:
        return "".join(f"{value:02x}" for value in self.bytes)

    @property
    def size(self) -> int:
        return len(self.bytes)

    @property
    def is_end_of_program(self) -> bool:
        return self.text in (END_TEXT, TERMINAL_END_TEXT) and self.opcode_class is OpcodeClass.GLOBAL


@dataclass(frozen=True)
class GlobalMarker:
    """A label definition or end marker in program memory."""

    location: int
    next_location: int
    bytes: Tuple[int, ...]
    kind: str
    name: str = ""
    key: int | None = None

    @property
    def is_label(self) -> bool:
        return self.kind == "label"

    @property
    def is_terminal(self) -> bool:
        return self.kind == "terminal"

    @property
    def text(self) -> str:
        if self.kind == "label":
            return f'LBL "{self.name}"'
        if self.kind == "terminal":
            return TERMINAL_END_TEXT
        return END_TEXT


def read_global(image: MemoryImage, location: int) -> GlobalMarker | None:
    """Return the global marker at ``location`` or ``None`` if there is none."""

    opcode = image[location]
    if opcode >> 4 != 0xC or opcode & 0x0F > 13:
        return None

    second = next_location(location)
    third = next_location(second)
    header = (opcode, image[second], image[third])
    cursor = next_location(third)

    if header[2] < 0xF0:
        kind = "terminal" if header[2] & 0x20 else "end"
        return GlobalMarker(location, cursor, header, kind)

    length = header[2] - 0xF0
    body: List[int] = []
    for _ in range(length):
        body.append(image[cursor])
        cursor = next_location(cursor)
    key = body[0] if body else None
    return GlobalMarker(
        location,
        cursor,
        header + tuple(body),
        "label",
        name=decode_glyphs(body[1:]),
        key=key,
    )


def format_register_operand(value: int) -> str:
    """Render the operand of a two-byte register instruction."""

    if value < 112:
        return f"{value:02d}"
    if value < 128:
        return stack_letter(value)
    if value < 240:
        return f"IND {value - 128:02d}"
    return f"IND {stack_letter(value)}"


def format_flag_operand(value: int) -> str:
    if value < 128:
        return f"{value:02d}"
    return format_register_operand(value)


def format_branch_operand(value: int) -> str:
    """Render the target of a GTO IND / XEQ IND (0xAE) instruction."""

    if 112 <= value < 128:
        return f"IND {stack_letter(value)}"
    return format_register_operand(value)


def format_label_operand(value: int) -> str:
    """Render a local label: number, letter, or indirect form."""

    if value < 100:
        return f"{value:02d}"
    if 102 <= value < 112:
        return chr(value - 37)
    if 112 <= value < 128:
        return stack_letter(value)
    if value >= 128:
        return format_register_operand(value)
    return f"INVALID {value}"


_Decoded = Tuple[int, Tuple[int, ...], str]
_Decoder = Callable[[MemoryImage, int, int], _Decoded]


def _decode_unknown(image: MemoryImage, location: int, opcode: int) -> _Decoded:
    return next_location(location), (opcode,), f"UNKNOWN BYTE: {opcode:02x}"


def _decode_local_label(image: MemoryImage, location: int, opcode: int) -> _Decoded:
    return next_location(location), (opcode,), f"LBL {(opcode & 0x0F) - 1:02d}"


def _decode_digits(image: MemoryImage, location: int, opcode: int) -> _Decoded:
    consumed: List[int] = []
    cursor = location
    while True:
        value = image[cursor]
        if not 0x10 <= value <= 0x1A:
            break
        consumed.append(value)
        cursor = next_location(cursor)
    text = "".join(_DIGIT_TEXT[value - 0x10] for value in consumed)
    return cursor, tuple(consumed), text


def _decode_fixed(image: MemoryImage, location: int, opcode: int) -> _Decoded:
    return next_location(location), (opcode,), FIXED_MNEMONICS[opcode]


def _decode_alpha_branch(image: MemoryImage, location: int, opcode: int) -> _Decoded:
    second = next_location(location)
    header = image[second]
    cursor = next_location(second)
    body: List[int] = []
    for _ in range(max(header - 0xF0, 0)):
        body.append(image[cursor])
        cursor = next_location(cursor)
    text = f'{_ALPHA_BRANCH_PREFIXES[opcode]} "{decode_glyphs(body)}"'
    return cursor, (opcode, header, *body), text


def _decode_recall(image: MemoryImage, location: int, opcode: int) -> _Decoded:
    return next_location(location), (opcode,), f"RCL {opcode & 0x0F:02d}"


def _decode_store(image: MemoryImage, location: int, opcode: int) -> _Decoded:
    return next_location(location), (opcode,), f"STO {opcode & 0x0F:02d}"


def _two_bytes(image: MemoryImage, location: int) -> Tuple[int, int, int]:
    second = next_location(location)
    return image[location], image[second], next_location(second)


def _decode_register(image: MemoryImage, location: int, opcode: int) -> _Decoded:
    _, operand, cursor = _two_bytes(image, location)
    text = f"{_REGISTER_PREFIXES[opcode]} {format_register_operand(operand)}"
    return cursor, (opcode, operand), text


def _decode_display(image: MemoryImage, location: int, opcode: int) -> _Decoded:
    _, operand, cursor = _two_bytes(image, location)
    return cursor, (opcode, operand), f"{_DISPLAY_PREFIXES[opcode]} {operand}"


def _decode_xrom(image: MemoryImage, location: int, opcode: int) -> _Decoded:
    _, operand, cursor = _two_bytes(image, location)
    return cursor, (opcode, operand), xrom_name(*split_xrom(opcode, operand))


def _decode_flag(image: MemoryImage, location: int, opcode: int) -> _Decoded:
    _, operand, cursor = _two_bytes(image, location)
    text = f"{_FLAG_PREFIXES[opcode]} {format_flag_operand(operand)}"
    return cursor, (opcode, operand), text


def _decode_indirect_branch(image: MemoryImage, location: int, opcode: int) -> _Decoded:
    _, operand, cursor = _two_bytes(image, location)
    prefix = "GTO" if operand < 128 else "XEQ"
    return cursor, (opcode, operand), f"{prefix} {format_branch_operand(operand)}"


def _decode_spare(image: MemoryImage, location: int, opcode: int) -> _Decoded:
    _, operand, cursor = _two_bytes(image, location)
    text = "SPARE" if opcode == 0xAF else f"SPARE {operand:02d}"
    return cursor, (opcode, operand), text


def _decode_short_gto(image: MemoryImage, location: int, opcode: int) -> _Decoded:
    _, operand, cursor = _two_bytes(image, location)
    return cursor, (opcode, operand), f"GTO {opcode - 177:02d}"


def _decode_global(image: MemoryImage, location: int, opcode: int) -> _Decoded:
    marker = read_global(image, location)
    assert marker is not None  # classification already matched C0-CD
    return marker.next_location, marker.bytes, marker.text


def _decode_letter_label(image: MemoryImage, location: int, opcode: int) -> _Decoded:
    _, operand, cursor = _two_bytes(image, location)
    return cursor, (opcode, operand), f"LBL {format_label_operand(operand)}"


def _decode_long_branch(image: MemoryImage, location: int, opcode: int) -> _Decoded:
    raw = image.read(location, 3)
    prefix = "GTO" if opcode >> 4 == 0xD else "XEQ"
    return advance(location, 3), raw, f"{prefix} {format_label_operand(raw[2])}"


def _decode_text(image: MemoryImage, location: int, opcode: int) -> _Decoded:
    cursor = next_location(location)
    body: List[int] = []
    for _ in range(opcode - 0xF0):
        body.append(image[cursor])
        cursor = next_location(cursor)
    text = decode_glyphs(body)
    if text.startswith(APPEND_GLYPH):
        rendered = f'>"{text[1:]}"'
    else:
        rendered = f'"{text}"'
    return cursor, (opcode, *body), rendered


_DECODERS: Final[Dict[OpcodeClass, _Decoder]] = {
    OpcodeClass.UNKNOWN: _decode_unknown,
    OpcodeClass.LOCAL_LABEL: _decode_local_label,
    OpcodeClass.DIGITS: _decode_digits,
    OpcodeClass.FIXED: _decode_fixed,
    OpcodeClass.ALPHA_BRANCH: _decode_alpha_branch,
    OpcodeClass.RECALL: _decode_recall,
    OpcodeClass.STORE: _decode_store,
    OpcodeClass.REGISTER: _decode_register,
    OpcodeClass.DISPLAY: _decode_display,
    OpcodeClass.XROM: _decode_xrom,
    OpcodeClass.FLAG: _decode_flag,
    OpcodeClass.INDIRECT_BRANCH: _decode_indirect_branch,
    OpcodeClass.SPARE: _decode_spare,
    OpcodeClass.SHORT_GTO: _decode_short_gto,
    OpcodeClass.GLOBAL: _decode_global,
    OpcodeClass.LETTER_LABEL: _decode_letter_label,
    OpcodeClass.LONG_BRANCH: _decode_long_branch,
    OpcodeClass.TEXT: _decode_text,
}


def decode_instruction(image: MemoryImage, location: int) -> Instruction:
    """Decode the instruction that starts at ``location``."""

    opcode = image[location]
    opcode_class = classify_opcode(opcode)
    following, raw, text = _DECODERS[opcode_class](image, location, opcode)
    return Instruction(
        location=location,
        next_location=following,
        bytes=tuple(raw),
        text=text,
        opcode_class=opcode_class,
    )
