from __future__ import annotations

import enum
from datetime import UTC, datetime

from dateutil.relativedelta import FR, MO, SA, SU, TH, TU, WE, relativedelta, weekday


class RecurrenceFrequency(enum.StrEnum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"


# Ordered Sunday=0 .. Saturday=6.
DAY_NAMES: tuple[str, ...] = (
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
)

_DATEUTIL_WEEKDAYS: dict[str, weekday] = {
    "sunday": SU,
    "monday": MO,
    "tuesday": TU,
    "wednesday": WE,
    "thursday": TH,
    "friday": FR,
    "saturday": SA,
}

DEFAULT_DAY_OF_WEEK = "sunday"


def as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were written as UTC.
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def normalize_day_of_week(value: str | None) -> str | None:
    if value is None:
        return None
    day = value.strip().lower()
    if not day:
        return None
    if day not in _DATEUTIL_WEEKDAYS:
        raise ValueError(f"Invalid day of week: {value!r}")
    return day


def parse_frequency(value: str | RecurrenceFrequency | None) -> RecurrenceFrequency | None:
    if value is None:
        return None
    if isinstance(value, RecurrenceFrequency):
        return value
    raw = value.strip().lower()
    if not raw:
        return None
    try:
        return RecurrenceFrequency(raw)
    except ValueError as exc:
        raise ValueError(f"Unsupported frequency: {value!r}") from exc


def validate_recurrence(
    *,
    frequency: str | RecurrenceFrequency | None,
    interval: int | None,
    day_of_week: str | None,
    day_of_month: int | None,
) -> None:
    """Reject recurrence parameters ``next_occurrence`` could not work with."""

    parse_frequency(frequency)
    if interval is not None and interval < 1:
        raise ValueError("Interval must be at least 1")
    normalize_day_of_week(day_of_week)
    if day_of_month is not None and not 1 <= day_of_month <= 31:
        raise ValueError("Invalid day of month")


def next_occurrence(
    current_start: datetime,
    frequency: str | RecurrenceFrequency | None,
    interval: int | None = None,
    day_of_week: str | None = None,
    day_of_month: int | None = None,
) -> datetime | None:
    """Return the occurrence that follows ``current_start``.

    Arithmetic is done on the wall clock: the time of day and ``tzinfo`` of
    ``current_start`` are carried over unchanged. Returns ``None`` when no
    frequency is configured.

    - daily: ``interval`` days later.
    - weekly: the next ``day_of_week`` strictly after ``current_start``
      (defaults to Sunday), plus ``interval - 1`` extra weeks.
    - monthly: ``interval`` months later on ``day_of_month`` (defaults to the
      current day), clamped to the last day of the target month.
    """

    freq = parse_frequency(frequency)
    if freq is None:
        return None

    step = 1 if interval is None else interval
    if step < 1:
        raise ValueError("Interval must be at least 1")

    if freq is RecurrenceFrequency.daily:
        return current_start + relativedelta(days=step)

    if freq is RecurrenceFrequency.weekly:
        target = normalize_day_of_week(day_of_week) or DEFAULT_DAY_OF_WEEK
        # Skip today first so a start already on the target day moves a full week.
        return current_start + relativedelta(
            days=1, weekday=_DATEUTIL_WEEKDAYS[target](+1), weeks=step - 1
        )

    day = day_of_month if day_of_month is not None else current_start.day
    if not 1 <= day <= 31:
        raise ValueError("Invalid day of month")
    # relativedelta clamps an absolute day to the length of the target month.
    return current_start + relativedelta(months=step, day=day)


def describe_recurrence(
    *,
    frequency: str | RecurrenceFrequency | None,
    interval: int | None = None,
    day_of_week: str | None = None,
    day_of_month: int | None = None,
    start: datetime | None = None,
) -> str:
    freq = parse_frequency(frequency)
    if freq is None:
        return "Does not repeat"

    step = interval if interval is not None and interval > 0 else 1
    time_suffix = f" at {start:%H:%M}" if start is not None else ""

    if freq is RecurrenceFrequency.daily:
        if step == 1:
            return f"Daily{time_suffix}"
        return f"Every {step} days{time_suffix}"

    if freq is RecurrenceFrequency.weekly:
        day_label = (normalize_day_of_week(day_of_week) or DEFAULT_DAY_OF_WEEK).capitalize()
        if step == 1:
            return f"Weekly on {day_label}{time_suffix}"
        return f"Every {step} weeks on {day_label}{time_suffix}"

    if day_of_month is not None:
        day_num: int | None = day_of_month
    else:
        day_num = start.day if start is not None else None
    day_text = f" on day {day_num}" if day_num is not None else ""
    if step == 1:
        return f"Monthly{day_text}{time_suffix}"
    return f"Every {step} months{day_text}{time_suffix}"
