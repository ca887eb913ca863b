"""Names for extension module (XROM) function calls.

Only the modules built into the DM41 are covered: the CX extended functions
(module 25) and the time module (module 26). Anything else renders as the
generic ``XROM m,f`` form.
"""

from __future__ import annotations

from typing import Dict, Final, Tuple

EXTENDED_FUNCTIONS_MODULE: Final = 25
TIME_MODULE: Final = 26

_EXTENDED_FUNCTIONS: Final[Tuple[str, ...]] = (
    "ALENG", "ANUM", "APPCHR", "APPREC", "ARCLREC", "AROT", "ATOX", "CLFL",
    "CLKEYS", "CRFLAS", "CRFLD", "DELCHR", "DELREC", "EMDIR", "FLSIZE",
    "GETAS", "GETKEY", "GETP", "GETR", "GETREC", "GETRX", "GETSUB", "GETX",
    "INSCHR", "INSREC", "PASN", "PCLPS", "POSA", "POSFL", "PSIZE", "PURFL",
    "RCLFLAG", "RCLPT", "RCLPTA", "REGMOVE", "REGSWAP", "SAVEAS", "SAVEP",
    "SAVER", "SAVERX", "SAVEX", "SEEKPT", "SEEKPTA", "SIZE?", "STOFLAG",
    "X<>F", "XTOA",
)

_EXTENDED_FUNCTIONS_HIGH: Final[Tuple[str, ...]] = (
    "ASROOM", "CLRGX", "ED", "EMDIRX", "EMROOM", "GETKEYX", "RESZFL",
    "ΣREG?", "X=NN?", "X#NN?", "X<NN?", "X≤NN?", "X>NN?", "X≥NN?",
)

_TIME_FUNCTIONS: Final[Dict[int, str]] = {
    1: "ADATE",
    2: "ALMCAT",
    3: "ALMNOW",
    4: "ATIME",
    5: "ATIME24",
    6: "CLK12",
    7: "CLK24",
    8: "CLKT",
    9: "CLKTD",
    10: "CLOCK",
    11: "CORRECT",
    12: "DATE",
    13: "DATE+",
    14: "DDAYS",
    15: "DMY",
    16: "DOW",
    17: "MDY",
    18: "RCLAF",
    19: "RCLSW",
    20: "RUNSW",
    21: "SETAF",
    23: "SETDATE",
    24: "SETSW",
    25: "STOPSW",
    26: "SW",
    27: "T+X",
    28: "TIME",
    29: "XYZALM",
    31: "CLALMA",
    32: "CLALMX",
    33: "CLRALMS",
    34: "RCLALM",
    35: "SWPT",
}


def _build_table() -> Dict[Tuple[int, int], str]:
    table: Dict[Tuple[int, int], str] = {}
    # Function 48 is the module header, so the upper block starts at 49.
    for function, name in enumerate(_EXTENDED_FUNCTIONS, start=1):
        table[(EXTENDED_FUNCTIONS_MODULE, function)] = name
    for function, name in enumerate(_EXTENDED_FUNCTIONS_HIGH, start=49):
        table[(EXTENDED_FUNCTIONS_MODULE, function)] = name
    for function, name in _TIME_FUNCTIONS.items():
        table[(TIME_MODULE, function)] = name
    return table


XROM_NAMES: Final[Dict[Tuple[int, int], str]] = _build_table()


def split_xrom(first: int, second: int) -> Tuple[int, int]:
    """Recover ``(module, function)`` from the two bytes of an XROM call."""

    module = ((first - 0xA0) << 2) | (second >> 6)
    function = second & 0x3F
    return module, function


def xrom_name(module: int, function: int) -> str:
    return XROM_NAMES.get((module, function), f"XROM {module},{function}")


__all__ = ["XROM_NAMES", "split_xrom", "xrom_name"]
