"""Cumulative planned-vs-actual spend curve (S-curve)."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal

from pmreport.utils.decimal_math import whole

ZERO = Decimal("0")


@dataclass(frozen=True, slots=True)
class CumulativePoint:
    label: str
    cumulative_planned: int
    cumulative_actual: int


def curve_bucket_count(span_months: int, cap: int) -> int:
    """Curve length is capped for legibility independently of the requested span."""

    return max(0, min(span_months, cap))


def build_cumulative_curve(
    *,
    total_planned: Decimal,
    bucket_keys: Sequence[str],
    actual_by_bucket: Mapping[str, Decimal],
    opening_actual: Decimal = ZERO,
) -> list[CumulativePoint]:
    """Spread ``total_planned`` linearly over the buckets and accumulate actuals.

    Running totals are kept exact and only each emitted point is rounded to
    whole currency units, so the last planned point equals the rounded total.
    Negative amounts are clamped to zero; both series are non-decreasing.
    ``opening_actual`` is spend recorded before the first bucket; the actual
    series starts from it so both series cover the same phases.
    """

    if not bucket_keys:
        return []

    planned_total = max(total_planned, ZERO)
    increment = planned_total / len(bucket_keys)

    running_planned = ZERO
    running_actual = max(opening_actual, ZERO)
    points: list[CumulativePoint] = []
    for index, key in enumerate(bucket_keys, start=1):
        # Last bucket lands exactly on the total, avoiding division residue.
        running_planned = planned_total if index == len(bucket_keys) else running_planned + increment
        running_actual += max(actual_by_bucket.get(key, ZERO), ZERO)
        points.append(
            CumulativePoint(
                label=key,
                cumulative_planned=whole(running_planned),
                cumulative_actual=whole(running_actual),
            )
        )
    return points
