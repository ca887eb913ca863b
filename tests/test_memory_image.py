from __future__ import annotations

import logging

import pytest

from dm41.memory_image import (
    MEMORY_SIZE,
    AddressWalkError,
    CpuRegisters,
    MalformedRegisterError,
    MemoryImage,
    MemoryImageError,
    advance,
    next_location,
)


@pytest.mark.parametrize("location", [0, 1, 5, 7, 700, 2100, 2104, MEMORY_SIZE - 2])
def test_next_location_advances_within_register(location: int) -> None:
    assert next_location(location) == location + 1


@pytest.mark.parametrize("location", [13, 20, 2106, MEMORY_SIZE - 1])
def test_next_location_jumps_to_start_of_lower_register(location: int) -> None:
    following = next_location(location)
    assert following == location - 13
    assert following % 7 == 0


def test_next_location_refuses_to_walk_below_zero() -> None:
    with pytest.raises(AddressWalkError):
        next_location(6)
    with pytest.raises(AddressWalkError):
        next_location(-1)


def test_advance_crosses_registers_in_program_order() -> None:
    assert advance(2105, 3) == 2094


def test_blank_image_status_fields() -> None:
    status = MemoryImage.blank().status

    assert status.watchdog == 0x169
    assert status.watchdog_ok
    assert status.program_top == 411
    assert status.program_limit == 411


def test_status_fields_unpack_packed_pointers(make_image) -> None:
    image = make_image(511, 500)

    status = image.status
    assert status.program_top == 511
    assert status.program_limit == 500


def test_set_program_limit_preserves_program_top_nibble(make_image) -> None:
    image = make_image(300, 299)

    image.set_program_limit(0x1F4)

    assert image[96] == 0xD1
    assert image[97] == 0xF4
    assert image.status.program_top == 300
    assert image.status.program_limit == 0x1F4


def test_set_program_limit_rejects_values_wider_than_twelve_bits() -> None:
    with pytest.raises(MemoryImageError):
        MemoryImage().set_program_limit(0x1000)


def test_program_bottom_stops_above_partition_marker(make_image) -> None:
    image = make_image(300, 299)
    assert image.program_bottom() == 192
    assert image.free_registers() == 107

    image[295 * 7] = 0xF0
    assert image.program_bottom() == 296
    assert image.free_registers() == 3


def test_image_rejects_wrong_size_and_out_of_range_access() -> None:
    with pytest.raises(MemoryImageError):
        MemoryImage(bytes(10))

    image = MemoryImage()
    with pytest.raises(AddressWalkError):
        image[-1]
    with pytest.raises(AddressWalkError):
        image[MEMORY_SIZE] = 0
    with pytest.raises(MemoryImageError):
        image[0] = 0x100


def test_store_register_round_trips_hex() -> None:
    image = MemoryImage()
    image.store_register(84, "1000000000019C")

    assert image.register_hex(84) == "1000000000019c"
    assert image[84 * 7] == 0x10


@pytest.mark.parametrize("raw", ["1000000000019", "1000000000019c00", "10000000000zzz"])
def test_store_register_rejects_malformed_text(raw: str) -> None:
    with pytest.raises(MalformedRegisterError):
        MemoryImage().store_register(84, raw)


def test_cpu_registers_validate_shape() -> None:
    assert CpuRegisters(g="0123456789abcd").g == "0123456789abcd"
    with pytest.raises(MalformedRegisterError):
        CpuRegisters(a="123")
    with pytest.raises(MalformedRegisterError):
        CpuRegisters(g="0")


def test_copy_is_independent() -> None:
    image = MemoryImage.blank()
    duplicate = image.copy()
    duplicate[2100] = 0x85

    assert image[2100] == 0
    assert duplicate != image
    assert image.copy() == image


def test_check_watchdog_warns_without_raising(caplog: pytest.LogCaptureFixture) -> None:
    image = MemoryImage()
    with caplog.at_level(logging.WARNING, logger="dm41.memory_image"):
        assert image.check_watchdog() is False
    assert "watchdog" in caplog.text

    caplog.clear()
    assert MemoryImage.blank().check_watchdog() is True
    assert caplog.text == ""
