"""Per-project profit and loss roll-up."""

from __future__ import annotations

from collections.abc import Collection, Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from uuid import UUID

from pmreport.models.entities import ChangeOrderStatus, PhaseStatus
from pmreport.utils.decimal_math import ZERO, money, safe_pct


@dataclass(frozen=True, slots=True)
class PLRow:
    project_id: UUID
    project_name: str
    status: str
    budget: Decimal
    approved_change_orders: Decimal
    adjusted_budget: Decimal
    estimated_cost: Decimal
    actual_cost: Decimal
    gross_profit: Decimal
    profit_margin: Decimal
    phase_count: int
    completed_phase_count: int


@dataclass(frozen=True, slots=True)
class PLTotals:
    budget: Decimal
    approved_change_orders: Decimal
    adjusted_budget: Decimal
    estimated_cost: Decimal
    actual_cost: Decimal
    gross_profit: Decimal
    profit_margin: Decimal
    project_count: int


def profit_margin(gross_profit: Decimal, adjusted_budget: Decimal) -> Decimal:
    """Margin in percent; exactly 0 when the adjusted budget is zero or negative."""

    return safe_pct(gross_profit, adjusted_budget)


def _status_name(value: Any) -> str:
    return str(getattr(value, "value", value))


def build_pl_row(
    *,
    project_id: UUID,
    project_name: str,
    status: str,
    budget: Decimal | None,
    phases: Iterable[Any],
    change_orders: Iterable[Any],
) -> PLRow:
    """Roll up one project.

    ``phases`` rows expose ``status``, ``estimated_cost`` and ``actual_cost``;
    ``change_orders`` rows expose ``status`` and ``amount``. Only APPROVED
    change orders count toward the adjusted budget.
    """

    estimated = ZERO
    actual = ZERO
    phase_count = 0
    completed = 0
    for phase in phases:
        phase_count += 1
        estimated += phase.estimated_cost or ZERO
        actual += phase.actual_cost or ZERO
        if _status_name(phase.status) == PhaseStatus.COMPLETE.value:
            completed += 1

    approved = sum(
        (order.amount or ZERO for order in change_orders if _status_name(order.status) == ChangeOrderStatus.APPROVED.value),
        ZERO,
    )

    base_budget = money(budget)
    adjusted = money(base_budget + approved)
    gross = money(adjusted - actual)
    return PLRow(
        project_id=project_id,
        project_name=project_name,
        status=status,
        budget=base_budget,
        approved_change_orders=money(approved),
        adjusted_budget=adjusted,
        estimated_cost=money(estimated),
        actual_cost=money(actual),
        gross_profit=gross,
        profit_margin=profit_margin(gross, adjusted),
        phase_count=phase_count,
        completed_phase_count=completed,
    )


def build_pl_rows(
    *,
    projects: Iterable[Any],
    phases: Iterable[Any],
    change_orders: Iterable[Any],
    excluded_statuses: Collection[str] = ("ARCHIVED",),
) -> list[PLRow]:
    """Roll up every project not in an excluded status, in input order.

    ``projects`` rows expose ``id``, ``name``, ``status`` and ``budget``;
    ``phases`` rows add ``id`` and ``project_id``; ``change_orders`` rows
    expose ``phase_id``.
    """

    excluded = {name.upper() for name in excluded_statuses}

    phases_by_project: dict[UUID, list[Any]] = {}
    project_by_phase: dict[UUID, UUID] = {}
    for phase in phases:
        phases_by_project.setdefault(phase.project_id, []).append(phase)
        project_by_phase[phase.id] = phase.project_id

    orders_by_project: dict[UUID, list[Any]] = {}
    for order in change_orders:
        project_id = project_by_phase.get(order.phase_id)
        if project_id is not None:
            orders_by_project.setdefault(project_id, []).append(order)

    rows: list[PLRow] = []
    for project in projects:
        status = _status_name(project.status)
        if status.upper() in excluded:
            continue
        rows.append(
            build_pl_row(
                project_id=project.id,
                project_name=project.name,
                status=status,
                budget=project.budget,
                phases=phases_by_project.get(project.id, []),
                change_orders=orders_by_project.get(project.id, []),
            )
        )
    return rows


def summarize_pl(rows: Iterable[PLRow]) -> PLTotals:
    budget = approved = adjusted = estimated = actual = ZERO
    count = 0
    for row in rows:
        count += 1
        budget += row.budget
        approved += row.approved_change_orders
        adjusted += row.adjusted_budget
        estimated += row.estimated_cost
        actual += row.actual_cost

    gross = money(adjusted - actual)
    return PLTotals(
        budget=money(budget),
        approved_change_orders=money(approved),
        adjusted_budget=money(adjusted),
        estimated_cost=money(estimated),
        actual_cost=money(actual),
        gross_profit=gross,
        profit_margin=profit_margin(gross, money(adjusted)),
        project_count=count,
    )
