from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from backoffice.domain.scheduler.slots import (
    SlotValidationError,
    default_weekly,
    generate_slots,
    generate_team_slots,
    is_blocked,
    normalize_weekly,
    overlaps,
    rotation_order,
    validate_requested_slot,
    weekday_index,
    zoned_to_utc,
)
from backoffice.shared.dates import parse_date, parse_instant

# Monday 2026-03-02 08:00 UTC
NOW = datetime(2026, 3, 2, 8, 0)
WEEKDAYS_9_TO_17 = default_weekly()


def test_weekday_index_counts_sunday_as_zero():
    assert weekday_index(date(2026, 3, 1)) == 0  # Sunday
    assert weekday_index(date(2026, 3, 2)) == 1  # Monday
    assert weekday_index(date(2026, 3, 7)) == 6  # Saturday


def test_zoned_to_utc_handles_dst():
    new_york = ZoneInfo("America/New_York")
    assert zoned_to_utc(new_york, date(2026, 1, 15), 9 * 60) == datetime(2026, 1, 15, 14, 0)
    assert zoned_to_utc(new_york, date(2026, 7, 15), 9 * 60) == datetime(2026, 7, 15, 13, 0)


def test_overlaps_is_half_open():
    a = datetime(2026, 3, 2, 10)
    b = datetime(2026, 3, 2, 11)
    assert overlaps(a, b, datetime(2026, 3, 2, 10, 30), datetime(2026, 3, 2, 12))
    assert not overlaps(a, b, b, datetime(2026, 3, 2, 12))


def test_is_blocked_applies_buffers():
    busy = [(datetime(2026, 3, 2, 10), datetime(2026, 3, 2, 10, 30))]
    assert not is_blocked(datetime(2026, 3, 2, 9, 30), 30, 0, 0, busy)
    assert is_blocked(datetime(2026, 3, 2, 9, 30), 30, 0, 10, busy)
    assert is_blocked(datetime(2026, 3, 2, 10, 30), 30, 10, 0, busy)


def test_normalize_weekly_sorts_and_clamps():
    weekly = [{"day": 3, "enabled": 1, "startMin": -5, "endMin": 5000}, {"day": 0, "enabled": 0, "startMin": 0, "endMin": 0}]

    assert normalize_weekly(weekly) == [
        {"day": 0, "enabled": False, "startMin": 0, "endMin": 0},
        {"day": 3, "enabled": True, "startMin": 0, "endMin": 1440},
    ]


def test_generate_slots_within_working_hours():
    slots = generate_slots("UTC", WEEKDAYS_9_TO_17, 60, [], NOW, NOW + timedelta(days=1), NOW, max_slots=100)

    starts = [s["startsAt"] for s in slots]
    assert starts[0] == "2026-03-02T09:00:00Z"
    assert starts[-1] == "2026-03-02T16:00:00Z"
    assert len(starts) == 29  # 09:00 .. 16:00 every 15 minutes
    assert slots[0]["label"].startswith("Mon, Mar 02")


def test_generate_slots_skips_weekend_and_busy():
    saturday = datetime(2026, 3, 7, 0, 0)
    assert generate_slots("UTC", WEEKDAYS_9_TO_17, 30, [], saturday, saturday + timedelta(days=1), saturday) == []

    busy = [(datetime(2026, 3, 2, 9, 0), datetime(2026, 3, 2, 10, 0))]
    slots = generate_slots("UTC", WEEKDAYS_9_TO_17, 30, busy, NOW, NOW + timedelta(days=1), NOW, max_slots=3)
    assert [s["startsAt"] for s in slots] == ["2026-03-02T10:00:00Z", "2026-03-02T10:15:00Z", "2026-03-02T10:30:00Z"]


def test_generate_slots_in_local_zone():
    slots = generate_slots("America/New_York", WEEKDAYS_9_TO_17, 30, [], NOW, NOW + timedelta(days=1), NOW, max_slots=1)

    assert slots[0]["startsAt"] == "2026-03-02T14:00:00Z"


def test_generate_slots_skips_past_starts():
    now = datetime(2026, 3, 2, 12, 5)
    slots = generate_slots("UTC", WEEKDAYS_9_TO_17, 30, [], NOW, NOW + timedelta(days=1), now, max_slots=1)

    assert slots[0]["startsAt"] == "2026-03-02T12:15:00Z"


def test_team_slots_merge_host_ids():
    hosts = [
        {"userId": 1, "timeZone": "UTC", "weekly": WEEKDAYS_9_TO_17, "busy": []},
        {"userId": 2, "timeZone": "UTC", "weekly": WEEKDAYS_9_TO_17, "busy": [(datetime(2026, 3, 2, 9), datetime(2026, 3, 2, 12))]},
    ]

    slots = generate_team_slots(hosts, 30, NOW, NOW + timedelta(days=1), NOW, max_slots=100)

    by_start = {s["startsAt"]: s["hostIds"] for s in slots}
    assert by_start["2026-03-02T09:00:00Z"] == [1]
    assert by_start["2026-03-02T13:00:00Z"] == [1, 2]


def test_rotation_order():
    assert rotation_order([1, 2, 3], None) == [1, 2, 3]
    assert rotation_order([1, 2, 3], 2) == [3, 1, 2]
    assert rotation_order([1, 2, 3], 3) == [1, 2, 3]
    assert rotation_order([1, 1, 2], 9) == [1, 2]


def test_validate_requested_slot_returns_end():
    ends_at = validate_requested_slot(datetime(2026, 3, 2, 9), NOW, "UTC", WEEKDAYS_9_TO_17, 45, [])

    assert ends_at == datetime(2026, 3, 2, 9, 45)


@pytest.mark.parametrize(
    "starts_at,busy,code",
    [
        (datetime(2026, 3, 1, 9), [], "startsAt_out_of_range"),
        (datetime(2026, 6, 1, 9), [], "startsAt_out_of_range"),
        (datetime(2026, 3, 7, 10), [], "outside_availability"),
        (datetime(2026, 3, 2, 16, 45), [], "outside_availability"),
        (datetime(2026, 3, 2, 9), [(datetime(2026, 3, 2, 9, 15), datetime(2026, 3, 2, 9, 45))], "slot_taken"),
    ],
)
def test_validate_requested_slot_errors(starts_at, busy, code):
    with pytest.raises(SlotValidationError) as exc:
        validate_requested_slot(starts_at, NOW, "UTC", WEEKDAYS_9_TO_17, 30, busy)

    assert exc.value.code == code
    assert exc.value.status_code == (409 if code == "slot_taken" else 400)


def test_parse_date_pins_noon():
    assert parse_date("2026-03-02") == datetime(2026, 3, 2, 12)
    assert parse_date("2026-03-02T08:00:00Z") == datetime(2026, 3, 2, 8)
    assert parse_date("2026-03-02T10:00:00+02:00") == datetime(2026, 3, 2, 8)
    assert parse_date("not a date") is None
    assert parse_date("") is None


def test_parse_instant_bare_date_is_midnight():
    assert parse_instant("2026-03-02") == datetime(2026, 3, 2)
    assert parse_instant("2026-03-02T08:00:00Z") == datetime(2026, 3, 2, 8)
    assert parse_instant("garbage") is None


def test_validate_requested_slot_rejects_repeated_wall_clock_time():
    every_day = [{"day": d, "enabled": True, "startMin": 0, "endMin": 1440} for d in range(7)]
    now = datetime(2026, 10, 20)

    # 01:30 happens twice in New York on 2026-11-01; only the first (EDT) maps back
    assert validate_requested_slot(datetime(2026, 11, 1, 5, 30), now, "America/New_York", every_day, 30, []) == datetime(
        2026, 11, 1, 6, 0
    )
    with pytest.raises(SlotValidationError) as exc:
        validate_requested_slot(datetime(2026, 11, 1, 6, 30), now, "America/New_York", every_day, 30, [])

    assert exc.value.code == "timezone_mismatch"
    assert exc.value.status_code == 400
