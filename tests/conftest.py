"""Pytest configuration to ensure the dm41 package is importable."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Dict

import pytest

_REPO_ROOT = Path(__file__).resolve().parents[1]
_root_str = str(_REPO_ROOT)
if _root_str not in sys.path:
    sys.path.insert(0, _root_str)

import sitecustomize  # noqa: F401  # Ensure src/ is on sys.path via sitecustomize hook.

from dm41.memory_image import MemoryImage  # noqa: E402

ImageFactory = Callable[..., MemoryImage]


@pytest.fixture
def make_image() -> ImageFactory:
    """Return a builder for images with a valid status register.

    ``registers`` maps register numbers to fourteen hex digits.
    """

    def build(top: int, limit: int, registers: Dict[int, str] | None = None) -> MemoryImage:
        image = MemoryImage()
        stored_top = top + 1
        image[93] = 0x01
        image[94] = 0x69
        image[95] = stored_top >> 4
        image[96] = ((stored_top & 0x0F) << 4) | (limit >> 8)
        image[97] = limit & 0xFF
        for index, raw in (registers or {}).items():
            image.store_register(index, raw)
        return image

    return build


@pytest.fixture
def program_image(make_image: ImageFactory) -> MemoryImage:
    """Two global programs: ``AB`` closed by END and ``C`` closed by .END."""

    return make_image(
        300,
        298,
        {
            300: "c000f300414211",
            299: "1285c0000dc000",
            298: "f2004385c40129",
        },
    )
