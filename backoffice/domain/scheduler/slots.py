"""
Booking slot arithmetic. Pure functions, no database access.

All datetimes going in and out are naive UTC. Weekly windows use the
weekday numbering of the booking page: 0 = Sunday ... 6 = Saturday,
with start/end expressed as minutes after local midnight.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_STEP_MINUTES = 15
DEFAULT_MAX_SLOTS = 48
PROBE_DAYS = 21
MAX_BOOKING_DAYS = 60
ROUND_TRIP_TOLERANCE = timedelta(minutes=2)
MINUTES_PER_DAY = 24 * 60

Block = tuple[datetime, datetime]


class SlotValidationError(Exception):
    """A requested start time that cannot be booked"""

    def __init__(self, code: str, status_code: int = 400):
        super().__init__(code)
        self.code = code
        self.status_code = status_code


def resolve_zone(name: Optional[str]) -> ZoneInfo:
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def weekday_index(value: date) -> int:
    """Python counts Monday as 0; booking windows count Sunday as 0"""
    return (value.weekday() + 1) % 7


def to_zoned(value: datetime, zone: ZoneInfo) -> datetime:
    return value.replace(tzinfo=timezone.utc).astimezone(zone)


def zoned_to_utc(zone: ZoneInfo, day: date, minute_of_day: int) -> datetime:
    hours, minutes = divmod(minute_of_day, 60)
    local = datetime(day.year, day.month, day.day, hours, minutes, tzinfo=zone)
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap"""
    return a_start < b_end and b_start < a_end


def window_for_day(weekly: Iterable[dict], day_index: int) -> Optional[dict]:
    for window in weekly or []:
        if int(window.get("day", -1)) == day_index:
            return window
    return None


def clamp_minutes(value: int) -> int:
    return max(0, min(MINUTES_PER_DAY, int(value)))


def default_weekly() -> list[dict]:
    """Monday to Friday, 09:00 to 17:00"""
    return [
        {"day": day, "enabled": 1 <= day <= 5, "startMin": 9 * 60, "endMin": 17 * 60}
        for day in range(7)
    ]


def normalize_weekly(weekly: Iterable[dict]) -> list[dict]:
    return sorted(
        (
            {
                "day": int(w["day"]),
                "enabled": bool(w["enabled"]),
                "startMin": clamp_minutes(w["startMin"]),
                "endMin": clamp_minutes(w["endMin"]),
            }
            for w in weekly
        ),
        key=lambda w: w["day"],
    )


def slot_label(starts_at: datetime, zone: ZoneInfo) -> str:
    return to_zoned(starts_at, zone).strftime("%a, %b %d, %I:%M %p %Z")


def is_blocked(
    starts_at: datetime,
    duration_minutes: int,
    buffer_before: int,
    buffer_after: int,
    busy: Iterable[Block],
) -> bool:
    buffered_start = starts_at - timedelta(minutes=buffer_before or 0)
    buffered_end = starts_at + timedelta(minutes=duration_minutes + (buffer_after or 0))
    return any(overlaps(buffered_start, buffered_end, b_start, b_end) for b_start, b_end in busy)


def generate_slots(
    time_zone: Optional[str],
    weekly: list[dict],
    duration_minutes: int,
    busy: list[Block],
    window_from: datetime,
    window_to: datetime,
    now: datetime,
    buffer_before: int = 0,
    buffer_after: int = 0,
    max_slots: int = DEFAULT_MAX_SLOTS,
    step_minutes: int = DEFAULT_STEP_MINUTES,
    probe_days: int = PROBE_DAYS,
) -> list[dict]:
    """
    Bookable start times for one host.

    Each probe day is read at noon UTC so the zoned calendar date is stable
    for every zone within twelve hours of UTC.
    """
    zone = resolve_zone(time_zone)
    duration = int(duration_minutes or 30)
    step = max(1, int(step_minutes or DEFAULT_STEP_MINUTES))
    slots: list[dict] = []

    for offset in range(probe_days):
        probe = window_from + timedelta(days=offset, hours=12)
        local_day = to_zoned(probe, zone).date()
        window = window_for_day(weekly, weekday_index(local_day))
        if not window or not window.get("enabled"):
            continue

        start_min = int(window["startMin"])
        while start_min + duration <= int(window["endMin"]):
            starts_at = zoned_to_utc(zone, local_day, start_min)
            start_min += step
            if starts_at < now or starts_at < window_from or starts_at > window_to:
                continue
            if is_blocked(starts_at, duration, buffer_before, buffer_after, busy):
                continue
            slots.append(
                {
                    "startsAt": starts_at.isoformat(timespec="seconds") + "Z",
                    "label": slot_label(starts_at, zone),
                }
            )
            if len(slots) >= max_slots:
                return slots
    return slots


def generate_team_slots(
    hosts: list[dict],
    duration_minutes: int,
    window_from: datetime,
    window_to: datetime,
    now: datetime,
    buffer_before: int = 0,
    buffer_after: int = 0,
    max_slots: int = DEFAULT_MAX_SLOTS,
    step_minutes: int = DEFAULT_STEP_MINUTES,
) -> list[dict]:
    """
    Union of every host's free starts.

    ``hosts`` entries carry ``userId``, ``timeZone``, ``weekly`` and ``busy``.
    A start is offered when any host is free; ``hostIds`` lists the free ones.
    """
    merged: dict[str, dict] = {}
    for host in hosts:
        host_slots = generate_slots(
            host.get("timeZone"),
            host.get("weekly") or [],
            duration_minutes,
            host.get("busy") or [],
            window_from,
            window_to,
            now,
            buffer_before=buffer_before,
            buffer_after=buffer_after,
            max_slots=max_slots,
            step_minutes=step_minutes,
        )
        for slot in host_slots:
            entry = merged.setdefault(slot["startsAt"], {**slot, "hostIds": []})
            entry["hostIds"].append(host["userId"])
    return [merged[key] for key in sorted(merged)][:max_slots]


def rotation_order(team_user_ids: list[int], last_assigned_user_id: Optional[int]) -> list[int]:
    """Team members starting with the one after the last assignee, wrapping around"""
    team = list(dict.fromkeys(team_user_ids or []))
    if last_assigned_user_id in team:
        index = team.index(last_assigned_user_id) + 1
        return team[index:] + team[:index]
    return team


def validate_requested_slot(
    starts_at: datetime,
    now: datetime,
    time_zone: Optional[str],
    weekly: list[dict],
    duration_minutes: int,
    busy: list[Block],
    buffer_before: int = 0,
    buffer_after: int = 0,
) -> datetime:
    """
    Check a requested start against the booking rules and return its end.

    Raises SlotValidationError with the failing rule's code.
    """
    if starts_at < now or starts_at > now + timedelta(days=MAX_BOOKING_DAYS):
        raise SlotValidationError("startsAt_out_of_range")

    zone = resolve_zone(time_zone)
    duration = int(duration_minutes or 30)
    local = to_zoned(starts_at, zone)
    window = window_for_day(weekly, weekday_index(local.date()))
    if not window or not window.get("enabled"):
        raise SlotValidationError("outside_availability")
    start_min = local.hour * 60 + local.minute
    if start_min < int(window["startMin"]) or start_min + duration > int(window["endMin"]):
        raise SlotValidationError("outside_availability")

    round_trip = zoned_to_utc(zone, local.date(), start_min)
    if abs(round_trip - starts_at) > ROUND_TRIP_TOLERANCE:
        raise SlotValidationError("timezone_mismatch")

    if is_blocked(starts_at, duration, buffer_before, buffer_after, busy):
        raise SlotValidationError("slot_taken", status_code=409)

    return starts_at + timedelta(minutes=duration)
