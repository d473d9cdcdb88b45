"""Categorical counts and top-N rankings."""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar

ELLIPSIS = "…"

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


@dataclass(frozen=True, slots=True)
class CategoryCount:
    category: str
    count: int


@dataclass(frozen=True, slots=True)
class RankedEntry:
    key: str
    label: str
    value: int | Decimal


def _category_name(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _ordered_counts(counts: dict[str, int], seeded: Sequence[str]) -> list[CategoryCount]:
    seeded_names = set(seeded)
    extras = sorted(name for name in counts if name not in seeded_names)
    return [CategoryCount(category=name, count=counts[name]) for name in [*seeded, *extras]]


def count_by(
    records: Iterable[T],
    selector: Callable[[T], Any],
    *,
    known: Iterable[Any] = (),
) -> list[CategoryCount]:
    """Count records by a discrete field.

    Known categories are pre-seeded at zero in the given order so the result
    shape does not depend on which categories occur. Categories outside the
    known set follow in sorted order.
    """

    seeded = list(dict.fromkeys(_category_name(value) for value in known))
    counts: dict[str, int] = {name: 0 for name in seeded}
    for record in records:
        name = _category_name(selector(record))
        counts[name] = counts.get(name, 0) + 1
    return _ordered_counts(counts, seeded)


def counts_from_groups(
    groups: Iterable[tuple[Any, int]],
    *,
    known: Iterable[Any] = (),
    missing_label: str = "UNCATEGORIZED",
) -> list[CategoryCount]:
    """Same shape as ``count_by`` for pre-grouped ``(category, count)`` rows."""

    seeded = list(dict.fromkeys(_category_name(value) for value in known))
    counts: dict[str, int] = {name: 0 for name in seeded}
    for category, count in groups:
        name = missing_label if category is None else _category_name(category)
        counts[name] = counts.get(name, 0) + int(count)
    return _ordered_counts(counts, seeded)


def count_by_key(records: Iterable[T], key: Callable[[T], K]) -> dict[K, int]:
    totals: dict[K, int] = {}
    for record in records:
        group = key(record)
        totals[group] = totals.get(group, 0) + 1
    return totals


def sum_by_key(
    records: Iterable[T],
    key: Callable[[T], K],
    value: Callable[[T], Decimal | None],
) -> dict[K, Decimal]:
    totals: dict[K, Decimal] = {}
    for record in records:
        group = key(record)
        totals[group] = totals.get(group, Decimal("0")) + (value(record) or Decimal("0"))
    return totals


def truncate_label(label: str, max_length: int = 20) -> str:
    if len(label) <= max_length:
        return label
    return label[:max_length] + ELLIPSIS


def rank_top_n(
    totals: Mapping[K, int | Decimal],
    *,
    labels: Mapping[K, str],
    limit: int,
    label_max_length: int = 20,
) -> list[RankedEntry]:
    """Sort groups descending by value and keep the first ``limit``.

    Ties are ordered by label, then by key, so repeated calls over the same
    snapshot produce the same ranking.
    """

    if limit <= 0:
        return []

    entries = [
        RankedEntry(
            key=str(group),
            label=truncate_label(labels.get(group, str(group)), label_max_length),
            value=value,
        )
        for group, value in totals.items()
    ]
    entries.sort(key=lambda entry: (-entry.value, entry.label, entry.key))
    return entries[:limit]
