"""Decode, catalog and patch DM41 calculator memory images."""
from __future__ import annotations

from .alarms import Alarm, find_alarms
from .decoder import Instruction, OpcodeClass, classify_opcode, decode_instruction, read_global
from .injector import InjectionError, InjectionResult, InsufficientSpaceError, inject_code
from .memory_image import (
    AddressWalkError,
    CpuRegisters,
    Dm41Error,
    MalformedRegisterError,
    MemoryImage,
    MemoryImageError,
    StatusFields,
    next_location,
)
from .programs import ProgramCatalog, ProgramListing, index_programs, list_program
from .transcription import (
    ModelMismatchError,
    TranscriptionError,
    format_transcription,
    load_transcription,
    parse_transcription,
)

__all__ = [
    "AddressWalkError",
    "Alarm",
    "CpuRegisters",
    "Dm41Error",
    "InjectionError",
    "InjectionResult",
    "Instruction",
    "InsufficientSpaceError",
    "MalformedRegisterError",
    "MemoryImage",
    "MemoryImageError",
    "ModelMismatchError",
    "OpcodeClass",
    "ProgramCatalog",
    "ProgramListing",
    "StatusFields",
    "TranscriptionError",
    "classify_opcode",
    "decode_instruction",
    "find_alarms",
    "format_transcription",
    "index_programs",
    "inject_code",
    "list_program",
    "load_transcription",
    "next_location",
    "parse_transcription",
    "read_global",
]
