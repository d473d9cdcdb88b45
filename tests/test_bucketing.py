from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from pmreport.services.bucketing import (
    ReportRange,
    day_key,
    fold,
    month_key,
    trailing_day_keys,
    trailing_month_starts,
    trailing_week_buckets,
    week_bucket_index,
    week_label,
    zero_buckets,
)


@pytest.mark.parametrize("report_range", list(ReportRange))
def test_trailing_months_are_contiguous_and_end_at_current_month(report_range: ReportRange) -> None:
    today = date(2026, 2, 10)
    months = trailing_month_starts(report_range.months, today)

    assert len(months) == report_range.months
    assert months[-1] == date(2026, 2, 1)
    for previous, current in zip(months, months[1:]):
        step = (current.year * 12 + current.month) - (previous.year * 12 + previous.month)
        assert step == 1


def test_range_months_mapping() -> None:
    assert [item.months for item in ReportRange] == [3, 6, 12, 120]
    assert ReportRange("6m") is ReportRange.SIX_MONTHS


def test_trailing_months_cross_year_boundary() -> None:
    keys = [month_key(month) for month in trailing_month_starts(3, date(2026, 1, 31))]

    assert keys == ["2025-11", "2025-12", "2026-01"]


def test_fold_drops_keys_outside_window() -> None:
    buckets = zero_buckets(["2026-05", "2026-06"], ("phases", "documents"))

    assert fold(buckets, "2026-06", "phases") is True
    assert fold(buckets, "2025-01", "phases") is False
    assert buckets == {
        "2026-05": {"phases": 0, "documents": 0},
        "2026-06": {"phases": 1, "documents": 0},
    }


def test_month_and_day_keys_treat_naive_values_as_utc() -> None:
    naive = datetime(2026, 3, 31, 23, 30)
    shifted = datetime(2026, 4, 1, 1, 0, tzinfo=timezone(timedelta(hours=2)))

    assert month_key(naive) == "2026-03"
    assert day_key(naive) == "2026-03-31"
    assert month_key(shifted) == "2026-03"


def test_week_buckets_cover_seven_days_ending_at_anchor() -> None:
    today = date(2026, 6, 15)
    weeks = trailing_week_buckets(8, today)

    assert len(weeks) == 8
    assert weeks[-1].anchor == today
    assert weeks[0].anchor == today - timedelta(days=49)
    for bucket in weeks:
        assert bucket.anchor - bucket.start == timedelta(days=6)
    for previous, current in zip(weeks, weeks[1:]):
        assert current.start == previous.anchor + timedelta(days=1)


def test_week_label_format() -> None:
    assert week_label(date(2026, 6, 5)) == "W05/6"
    assert week_label(date(2026, 11, 23)) == "W23/11"


def test_week_bucket_index_routes_by_containment() -> None:
    today = date(2026, 6, 15)
    weeks = trailing_week_buckets(8, today)

    assert week_bucket_index(weeks, today) == 7
    assert week_bucket_index(weeks, today - timedelta(days=6)) == 7
    assert week_bucket_index(weeks, today - timedelta(days=7)) == 6
    assert week_bucket_index(weeks, weeks[0].start) == 0
    assert week_bucket_index(weeks, weeks[0].start - timedelta(days=1)) is None
    assert week_bucket_index(weeks, today + timedelta(days=1)) is None


def test_trailing_day_keys_are_oldest_first() -> None:
    assert trailing_day_keys(3, date(2026, 3, 1)) == ["2026-02-27", "2026-02-28", "2026-03-01"]
