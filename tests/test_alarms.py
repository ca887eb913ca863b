from __future__ import annotations

import pytest

from dm41.alarms import (
    DEFAULT_ALARM_NAME,
    EPOCH_1900_OFFSET,
    Alarm,
    bcd_value,
    find_alarm_partition,
    find_alarms,
    host_timezone_offset,
)

WAKE = "57414b45000000"


@pytest.fixture
def alarm_image(make_image):
    return make_image(
        300,
        299,
        {
            200: "aa060000000000",
            201: "00000000010000",
            202: "12345678901101",
            203: "00000036000000",
            204: WAKE,
            205: "f0000000000000",
        },
    )


def test_find_alarm_partition_reports_start_and_length(alarm_image) -> None:
    assert find_alarm_partition(alarm_image) == (200, 6)


def test_find_alarms_decodes_plain_and_repeating_records(alarm_image) -> None:
    alarms = find_alarms(alarm_image, tz_offset=0)

    assert alarms == (
        Alarm(time=1 - EPOCH_1900_OFFSET, repeating=False, interval=0, name=DEFAULT_ALARM_NAME),
        Alarm(time=1234567890 - EPOCH_1900_OFFSET, repeating=True, interval=3600, name="WAKE"),
    )


def test_find_alarms_applies_timezone_offset(alarm_image) -> None:
    west = find_alarms(alarm_image, tz_offset=3600)

    assert [alarm.time for alarm in west] == [
        1 - EPOCH_1900_OFFSET + 3600,
        1234567890 - EPOCH_1900_OFFSET + 3600,
    ]


def test_find_alarms_uses_host_offset_by_default(alarm_image) -> None:
    alarms = find_alarms(alarm_image)

    assert alarms[0].time == 1 - EPOCH_1900_OFFSET + host_timezone_offset()


def test_partition_end_marker_discards_collected_alarms(alarm_image) -> None:
    alarm_image.store_register(200, "aa080000000000")

    assert find_alarms(alarm_image, tz_offset=0) == ()


def test_find_alarms_without_partition(make_image) -> None:
    assert find_alarms(make_image(300, 299), tz_offset=0) == ()


def test_bcd_value_combines_digits() -> None:
    assert bcd_value([1, 2, 3, 4]) == 1234
    assert bcd_value([]) == 0
