"""Calendar bucketing for time-series report sections.

Buckets are built first (ordered, contiguous, zero-filled) and records are
folded in afterwards; a record whose key is outside the pre-built set is
dropped, which bounds the output size.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum


class ReportRange(str, Enum):
    """Trailing window selector accepted by the report endpoints."""

    THREE_MONTHS = "3m"
    SIX_MONTHS = "6m"
    TWELVE_MONTHS = "12m"
    ALL = "all"

    @property
    def months(self) -> int:
        return _RANGE_MONTHS[self]


# "all" is approximated by a ten-year trailing window.
_RANGE_MONTHS = {
    ReportRange.THREE_MONTHS: 3,
    ReportRange.SIX_MONTHS: 6,
    ReportRange.TWELVE_MONTHS: 12,
    ReportRange.ALL: 120,
}


@dataclass(frozen=True, slots=True)
class WeekBucket:
    anchor: date
    start: date
    label: str


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Interpret naive database timestamps as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_day(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def shift_month(month_start: date, delta: int) -> date:
    index = month_start.year * 12 + (month_start.month - 1) + delta
    return date(index // 12, index % 12 + 1, 1)


def month_sequence(start_month: date, end_month: date) -> list[date]:
    current = date(start_month.year, start_month.month, 1)
    end = date(end_month.year, end_month.month, 1)
    months: list[date] = []
    while current <= end:
        months.append(current)
        if current.month == 12:
            current = date(current.year + 1, 1, 1)
        else:
            current = date(current.year, current.month + 1, 1)
    return months


def trailing_month_starts(count: int, today: date) -> list[date]:
    """``count`` contiguous month starts ending at the month containing ``today``."""

    if count <= 0:
        return []
    current = date(today.year, today.month, 1)
    return month_sequence(shift_month(current, -(count - 1)), current)


def month_key(value: date | datetime) -> str:
    if isinstance(value, datetime):
        value = as_utc(value).date()
    return f"{value.year:04d}-{value.month:02d}"


def day_key(value: date | datetime) -> str:
    if isinstance(value, datetime):
        value = as_utc(value).date()
    return value.isoformat()


def trailing_day_keys(days: int, today: date) -> list[str]:
    return [day_key(today - timedelta(days=offset)) for offset in range(days - 1, -1, -1)]


def zero_buckets(keys: Iterable[str], fields: Sequence[str]) -> dict[str, dict[str, int]]:
    return {key: {field: 0 for field in fields} for key in keys}


def fold(buckets: dict[str, dict[str, int]], key: str, field: str, amount: int = 1) -> bool:
    """Add ``amount`` to ``field`` of bucket ``key``; keys outside the set are dropped."""

    bucket = buckets.get(key)
    if bucket is None:
        return False
    bucket[field] += amount
    return True


def week_label(anchor: date) -> str:
    # Display label only: day-of-month and month number, no year.
    return f"W{anchor.day:02d}/{anchor.month}"


def trailing_week_buckets(count: int, today: date) -> list[WeekBucket]:
    """Seven-day buckets ending at anchors ``today - 7*i`` for ``i = count-1 .. 0``."""

    buckets: list[WeekBucket] = []
    for offset in range(count - 1, -1, -1):
        anchor = today - timedelta(days=7 * offset)
        buckets.append(WeekBucket(anchor=anchor, start=anchor - timedelta(days=6), label=week_label(anchor)))
    return buckets


def week_bucket_index(buckets: Sequence[WeekBucket], day: date) -> int | None:
    for index, bucket in enumerate(buckets):
        if bucket.start <= day <= bucket.anchor:
            return index
    return None
