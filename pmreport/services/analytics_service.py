"""Report assembly: scoped snapshots folded into dashboard and report payloads."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

from fastapi import HTTPException, status

from pmreport.core.auth import RequestUserContext
from pmreport.core.config import Settings, get_settings
from pmreport.core.errors import AccessDenied, AggregationFailure, NotFound
from pmreport.core.permissions import Resource
from pmreport.models.entities import (
    ACTIVE_PHASE_STATUSES,
    DocumentStatus,
    MemberRole,
    PhaseStatus,
    ProjectStatus,
)
from pmreport.services.aggregation import count_by, count_by_key, counts_from_groups, rank_top_n, sum_by_key
from pmreport.services.budget_curve import CumulativePoint, build_cumulative_curve, curve_bucket_count
from pmreport.services.bucketing import (
    ReportRange,
    WeekBucket,
    as_utc,
    day_key,
    fold,
    month_key,
    start_of_day,
    trailing_day_keys,
    trailing_month_starts,
    trailing_week_buckets,
    utc_now,
    week_bucket_index,
    zero_buckets,
)
from pmreport.services.collector import QueryCollector
from pmreport.services.exports import ExportFilePayload, TabularReport, normalize_format, render_export
from pmreport.services.profit_loss import PLRow, PLTotals, build_pl_rows, summarize_pl
from pmreport.utils.decimal_math import ZERO, money

logger = logging.getLogger("pmreport.reports")

MAX_ACTIVITY_DAYS = 366
UNASSIGNED_OWNER = "Unassigned"

EXPORT_REPORT_KEYS = ("project-health", "phase-status", "overdue", "team-performance", "profit-loss")

_COMPLETE = PhaseStatus.COMPLETE.value
_ACTIVE = {item.value for item in ACTIVE_PHASE_STATUSES}


def _enum_value(value: Any) -> str:
    return str(getattr(value, "value", value))


def _is_overdue(phase_status: Any, est_end: date | None, today: date) -> bool:
    return est_end is not None and est_end < today and _enum_value(phase_status) != _COMPLETE


def _progress_pct(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    return int((Decimal(completed) * 100 / Decimal(total)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _health(total: int, completed: int, active: int, overdue: int) -> str:
    if overdue > 0:
        return "at-risk"
    if total > 0 and completed == total:
        return "complete"
    if active > 0:
        return "on-track"
    return "not-started"


class AnalyticsService:
    """Every entry point takes a fresh snapshot; nothing is cached between calls."""

    def __init__(
        self,
        collector: QueryCollector,
        *,
        now: datetime | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.collector = collector
        self.settings = settings or get_settings()
        self.now = as_utc(now or utc_now())
        self.today = self.now.date()

    # ---------- Serialization ----------
    @staticmethod
    def serialize_pl_row(row: PLRow) -> dict[str, object]:
        return {
            "project_id": str(row.project_id),
            "project_name": row.project_name,
            "status": row.status,
            "budget": str(row.budget),
            "approved_change_orders": str(row.approved_change_orders),
            "adjusted_budget": str(row.adjusted_budget),
            "estimated_cost": str(row.estimated_cost),
            "actual_cost": str(row.actual_cost),
            "gross_profit": str(row.gross_profit),
            "profit_margin": str(row.profit_margin),
            "phase_count": row.phase_count,
            "completed_phase_count": row.completed_phase_count,
        }

    @staticmethod
    def serialize_pl_totals(totals: PLTotals) -> dict[str, object]:
        return {
            "budget": str(totals.budget),
            "approved_change_orders": str(totals.approved_change_orders),
            "adjusted_budget": str(totals.adjusted_budget),
            "estimated_cost": str(totals.estimated_cost),
            "actual_cost": str(totals.actual_cost),
            "gross_profit": str(totals.gross_profit),
            "profit_margin": str(totals.profit_margin),
            "project_count": totals.project_count,
        }

    @staticmethod
    def serialize_curve(points: Iterable[CumulativePoint]) -> list[dict[str, object]]:
        return [
            {"month": point.label, "planned": point.cumulative_planned, "actual": point.cumulative_actual}
            for point in points
        ]

    # ---------- Dashboard ----------
    def _dashboard_windows(self, report_range: ReportRange) -> tuple[list[str], list[WeekBucket], list[str]]:
        month_keys = [month_key(month) for month in trailing_month_starts(report_range.months, self.today)]
        weeks = trailing_week_buckets(self.settings.reporting_completion_weeks, self.today)
        curve_size = curve_bucket_count(report_range.months, self.settings.reporting_curve_max_buckets)
        curve_keys = month_keys[-curve_size:] if curve_size else []
        return month_keys, weeks, curve_keys

    def dashboard_analytics(self, context: RequestUserContext | None, report_range: ReportRange) -> dict[str, object]:
        project_ids = self.collector.scope(context, resource=Resource.PROJECT)
        phase_ids = self.collector.scope(context, resource=Resource.PHASE)
        document_ids = self.collector.scope(context, resource=Resource.DOCUMENT)
        staff_ids = self.collector.scope(context, resource=Resource.STAFF)
        budget_ids = self.collector.scope(context, resource=Resource.BUDGET)

        month_keys, weeks, curve_keys = self._dashboard_windows(report_range)
        activity_since = start_of_day(trailing_month_starts(report_range.months, self.today)[0])
        completion_since = start_of_day(weeks[0].start) if weeks else start_of_day(self.today)

        snapshot = self.collector.gather(
            {
                "project_statuses": lambda repo: repo.list_project_statuses(project_ids),
                "phase_statuses": lambda repo: repo.list_phase_statuses(phase_ids),
                "phases_created": lambda repo: repo.list_phase_created_at(phase_ids, since=activity_since),
                "documents_created": lambda repo: repo.list_document_created_at(document_ids, since=activity_since),
                "phases_completed": lambda repo: repo.list_completed_phase_updated_at(phase_ids, since=completion_since),
                "staff_assignments": lambda repo: repo.list_staff_assignments(staff_ids),
                "phase_costs": lambda repo: repo.list_phase_costs(budget_ids),
                "project_names": lambda repo: repo.list_project_names(budget_ids),
            }
        )
        return self._assemble_dashboard(report_range, snapshot, month_keys, weeks, curve_keys)

    def empty_dashboard(self, report_range: ReportRange) -> dict[str, object]:
        month_keys, weeks, curve_keys = self._dashboard_windows(report_range)
        return self._assemble_dashboard(report_range, {}, month_keys, weeks, curve_keys)

    def dashboard_analytics_or_empty(
        self,
        context: RequestUserContext | None,
        report_range: ReportRange,
    ) -> dict[str, object]:
        """Dashboard payload for page rendering; never fails the page."""

        try:
            return self.dashboard_analytics(context, report_range)
        except (AccessDenied, AggregationFailure) as exc:
            logger.warning("Dashboard analytics unavailable (%s): rendering empty payload.", exc.detail)
            return self.empty_dashboard(report_range)

    def _assemble_dashboard(
        self,
        report_range: ReportRange,
        snapshot: Mapping[str, Any],
        month_keys: list[str],
        weeks: list[WeekBucket],
        curve_keys: list[str],
    ) -> dict[str, object]:
        phase_costs = snapshot.get("phase_costs", [])

        monthly = zero_buckets(month_keys, ("phases", "documents"))
        for created_at in snapshot.get("phases_created", []):
            fold(monthly, month_key(created_at), "phases")
        for created_at in snapshot.get("documents_created", []):
            fold(monthly, month_key(created_at), "documents")

        completed = [0] * len(weeks)
        for updated_at in snapshot.get("phases_completed", []):
            index = week_bucket_index(weeks, as_utc(updated_at).date())
            if index is not None:
                completed[index] += 1

        return {
            "range": report_range.value,
            "project_status_counts": [
                {"status": item.category, "count": item.count}
                for item in count_by(snapshot.get("project_statuses", []), lambda value: value, known=ProjectStatus)
            ],
            "phase_status_counts": [
                {"status": item.category, "count": item.count}
                for item in count_by(snapshot.get("phase_statuses", []), lambda value: value, known=PhaseStatus)
            ],
            "budget_summary": {
                "total_estimated": str(money(sum((row.estimated_cost or ZERO for row in phase_costs), ZERO))),
                "total_actual": str(money(sum((row.actual_cost or ZERO for row in phase_costs), ZERO))),
            },
            "monthly_activity": [{"month": key, **counts} for key, counts in monthly.items()],
            "team_workload": self._team_workload(snapshot.get("staff_assignments", [])),
            "phase_completion_trend": [
                {"week": bucket.label, "completed": count} for bucket, count in zip(weeks, completed)
            ],
            "budget_curve": self.serialize_curve(self._curve_points(phase_costs, curve_keys)),
            "project_budgets": self._project_budgets(phase_costs, snapshot.get("project_names", [])),
        }

    def _team_workload(self, assignments: list[Any]) -> list[dict[str, object]]:
        totals = count_by_key(assignments, lambda row: row.staff_id)
        labels = {row.staff_id: row.staff_name for row in assignments}
        ranked = rank_top_n(
            totals,
            labels=labels,
            limit=self.settings.reporting_ranking_limit,
            label_max_length=self.settings.reporting_label_max_length,
        )
        return [{"name": entry.label, "assigned_phases": entry.value} for entry in ranked]

    def _project_budgets(self, phase_costs: list[Any], project_names: list[Any]) -> list[dict[str, object]]:
        estimated = sum_by_key(phase_costs, lambda row: row.project_id, lambda row: row.estimated_cost)
        actual = sum_by_key(phase_costs, lambda row: row.project_id, lambda row: row.actual_cost)
        labels = {row.id: row.name for row in project_names}
        ranked = rank_top_n(
            estimated,
            labels=labels,
            limit=self.settings.reporting_ranking_limit,
            label_max_length=self.settings.reporting_label_max_length,
        )
        by_key = {str(project_id): project_id for project_id in estimated}
        return [
            {
                "name": entry.label,
                "estimated": str(money(entry.value)),
                "actual": str(money(actual.get(by_key[entry.key], ZERO))),
            }
            for entry in ranked
        ]

    @staticmethod
    def _curve_points(phase_costs: list[Any], curve_keys: list[str]) -> list[CumulativePoint]:
        total_planned = sum((row.estimated_cost or ZERO for row in phase_costs), ZERO)
        actual_by_bucket = sum_by_key(phase_costs, lambda row: month_key(row.created_at), lambda row: row.actual_cost)
        # Spend booked before the first bucket opens the actual series.
        opening_actual = sum(
            (amount for key, amount in actual_by_bucket.items() if curve_keys and key < curve_keys[0]),
            ZERO,
        )
        return build_cumulative_curve(
            total_planned=total_planned,
            bucket_keys=curve_keys,
            actual_by_bucket=actual_by_bucket,
            opening_actual=opening_actual,
        )

    # ---------- Reports ----------
    def phase_status_breakdown(self, context: RequestUserContext | None) -> dict[str, object]:
        phase_ids = self.collector.scope(context, resource=Resource.PHASE)
        snapshot = self.collector.gather({"phase_statuses": lambda repo: repo.list_phase_statuses(phase_ids)})
        counts = count_by(snapshot["phase_statuses"], lambda value: value, known=PhaseStatus)
        return {
            "report_key": "phase-status",
            "total": sum(item.count for item in counts),
            "items": [{"status": item.category, "count": item.count} for item in counts],
        }

    def project_health_report(self, context: RequestUserContext | None) -> dict[str, object]:
        project_ids = self.collector.scope(context, resource=Resource.PROJECT)
        phase_ids = self.collector.scope(context, resource=Resource.PHASE)
        snapshot = self.collector.gather(
            {
                "projects": lambda repo: repo.list_projects_for_health(project_ids),
                "schedules": lambda repo: repo.list_phase_schedules(phase_ids),
                "members": lambda repo: repo.count_members_by_project(project_ids),
            }
        )

        schedules_by_project: dict[UUID, list[Any]] = {}
        for row in snapshot["schedules"]:
            schedules_by_project.setdefault(row.project_id, []).append(row)
        members = {row.project_id: int(row.member_count) for row in snapshot["members"]}

        items: list[dict[str, object]] = []
        for project in snapshot["projects"]:
            phases = schedules_by_project.get(project.id, [])
            total = len(phases)
            completed = sum(1 for phase in phases if _enum_value(phase.status) == _COMPLETE)
            active = sum(1 for phase in phases if _enum_value(phase.status) in _ACTIVE)
            overdue = sum(1 for phase in phases if _is_overdue(phase.status, phase.est_end, self.today))
            items.append(
                {
                    "project_id": str(project.id),
                    "name": project.name,
                    "address": project.address,
                    "status": _enum_value(project.status),
                    "est_completion": project.est_completion.isoformat() if project.est_completion else None,
                    "total_phases": total,
                    "completed_phases": completed,
                    "active_phases": active,
                    "overdue_phases": overdue,
                    "progress": _progress_pct(completed, total),
                    "health": _health(total, completed, active, overdue),
                    "member_count": members.get(project.id, 0),
                }
            )
        return {"report_key": "project-health", "items": items}

    def overdue_report(self, context: RequestUserContext | None) -> dict[str, object]:
        phase_ids = self.collector.scope(context, resource=Resource.PHASE)
        phases = self.collector.gather({"overdue": lambda repo: repo.list_overdue_phases(phase_ids, today=self.today)})[
            "overdue"
        ]
        overdue_ids = [phase.id for phase in phases]
        owner_rows = self.collector.gather({"owners": lambda repo: repo.list_phase_owners(overdue_ids)})["owners"]

        owners: dict[UUID, str] = {}
        for row in owner_rows:
            owners.setdefault(row.phase_id, row.name)

        items = [
            {
                "phase_id": str(phase.id),
                "phase_name": phase.name,
                "project_id": str(phase.project_id),
                "project_name": phase.project_name,
                "status": _enum_value(phase.status),
                "progress": phase.progress,
                "est_end": phase.est_end.isoformat(),
                "days_overdue": (self.today - phase.est_end).days,
                "owner": owners.get(phase.id, UNASSIGNED_OWNER),
            }
            for phase in phases
        ]
        return {"report_key": "overdue", "total": len(items), "items": items}

    def team_performance(self, context: RequestUserContext | None) -> dict[str, object]:
        staff_ids = self.collector.scope(context, resource=Resource.STAFF)
        rows = self.collector.gather({"assignments": lambda repo: repo.list_staff_phase_assignments(staff_ids)})[
            "assignments"
        ]

        members: dict[UUID, dict[str, Any]] = {}
        for row in rows:
            member = members.get(row.staff_id)
            if member is None:
                member = {
                    "staff_id": str(row.staff_id),
                    "name": row.name,
                    "company": row.company,
                    "role": row.role,
                    "assigned_phases": 0,
                    "completed_phases": 0,
                    "active_phases": 0,
                    "overdue_phases": 0,
                    "owned_phases": 0,
                }
                members[row.staff_id] = member
            phase_status = _enum_value(row.phase_status)
            member["assigned_phases"] += 1
            if phase_status == _COMPLETE:
                member["completed_phases"] += 1
            if phase_status in _ACTIVE:
                member["active_phases"] += 1
            if _is_overdue(row.phase_status, row.est_end, self.today):
                member["overdue_phases"] += 1
            if row.is_owner:
                member["owned_phases"] += 1

        for member in members.values():
            member["completion_rate"] = _progress_pct(member["completed_phases"], member["assigned_phases"])
        return {"report_key": "team-performance", "items": list(members.values())}

    def document_stats(self, context: RequestUserContext | None) -> dict[str, object]:
        document_ids = self.collector.scope(context, resource=Resource.DOCUMENT)
        snapshot = self.collector.gather(
            {
                "by_status": lambda repo: repo.count_documents_by_status(document_ids),
                "by_category": lambda repo: repo.count_documents_by_category(document_ids),
            }
        )
        by_status = counts_from_groups(
            ((row.status, row.count) for row in snapshot["by_status"]),
            known=DocumentStatus,
        )
        by_category = counts_from_groups((row.category, row.count) for row in snapshot["by_category"])
        return {
            "total": sum(item.count for item in by_status),
            "by_status": [{"status": item.category, "count": item.count} for item in by_status],
            "by_category": [{"category": item.category, "count": item.count} for item in by_category],
        }

    def activity_timeline(self, context: RequestUserContext | None, days: int) -> dict[str, object]:
        if days < 1 or days > MAX_ACTIVITY_DAYS:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"days must be between 1 and {MAX_ACTIVITY_DAYS}.",
            )

        activity_ids = self.collector.scope(context, resource=Resource.ACTIVITY)
        since = start_of_day(self.today - timedelta(days=days - 1))
        rows = self.collector.gather({"activity": lambda repo: repo.list_activity(activity_ids, since=since)})[
            "activity"
        ]

        daily = zero_buckets(trailing_day_keys(days, self.today), ("count",))
        for row in rows:
            fold(daily, day_key(row.created_at), "count")

        by_action = count_by_key(rows, lambda row: row.action)
        return {
            "days": days,
            "total": sum(bucket["count"] for bucket in daily.values()),
            "daily": [{"date": key, "count": bucket["count"]} for key, bucket in daily.items()],
            "by_action": [
                {"action": action, "count": count}
                for action, count in sorted(by_action.items(), key=lambda item: (-item[1], item[0]))
            ],
        }

    def contractor_performance(self, context: RequestUserContext | None) -> dict[str, object]:
        """Phases the caller works on as a contractor, with on-time delivery stats.

        A phase counts when the caller is a CONTRACTOR member of its project or
        is assigned through a staff record carrying the caller's email.
        """

        phase_ids = self.collector.scope(context, resource=Resource.PHASE)
        member_ids = phase_ids & frozenset(
            membership.project_id
            for membership in context.memberships
            if _enum_value(membership.role) == MemberRole.CONTRACTOR.value
        )
        snapshot = self.collector.gather(
            {
                "member_phases": lambda repo: repo.list_phase_progress(member_ids),
                "assigned_phases": lambda repo: repo.list_assigned_phase_progress(phase_ids, email=context.email),
            }
        )

        phases: dict[UUID, Any] = {}
        for row in [*snapshot["member_phases"], *snapshot["assigned_phases"]]:
            phases.setdefault(row.id, row)
        ordered = sorted(phases.values(), key=lambda row: (row.est_end, str(row.id)))

        completed = [row for row in ordered if _enum_value(row.status) == _COMPLETE]
        on_time = sum(1 for row in completed if row.actual_end is not None and row.actual_end <= row.est_end)
        overdue = sum(1 for row in ordered if _is_overdue(row.status, row.est_end, self.today))
        return {
            "report_key": "contractor-performance",
            "summary": {
                "total_phases": len(ordered),
                "completed": len(completed),
                "active": sum(1 for row in ordered if _enum_value(row.status) in _ACTIVE),
                "overdue": overdue,
                "on_time_rate": _progress_pct(on_time, len(completed)) if completed else 100,
                "documents_uploaded": sum(int(row.document_count) for row in ordered),
            },
            "phases": [
                {
                    "phase_id": str(row.id),
                    "name": row.name,
                    "status": _enum_value(row.status),
                    "progress": row.progress,
                    "project_name": row.project_name,
                    "est_end": row.est_end.isoformat(),
                    "days_overdue": (self.today - row.est_end).days
                    if _is_overdue(row.status, row.est_end, self.today)
                    else 0,
                    "documents": int(row.document_count),
                }
                for row in ordered
            ],
        }

    # ---------- Financials ----------
    def _pl_rows(self, project_ids: frozenset[UUID], *, excluded_statuses: Iterable[str]) -> list[PLRow]:
        snapshot = self.collector.gather(
            {
                "projects": lambda repo: repo.list_project_financials(project_ids),
                "phases": lambda repo: repo.list_phase_financials(project_ids),
                "change_orders": lambda repo: repo.list_change_orders(project_ids),
            }
        )
        return build_pl_rows(
            projects=snapshot["projects"],
            phases=snapshot["phases"],
            change_orders=snapshot["change_orders"],
            excluded_statuses=tuple(excluded_statuses),
        )

    def profit_and_loss(self, context: RequestUserContext | None) -> dict[str, object]:
        budget_ids = self.collector.scope(context, resource=Resource.BUDGET)
        rows = self._pl_rows(budget_ids, excluded_statuses=self.settings.pl_excluded_project_statuses)
        return {
            "report_key": "profit-loss",
            "items": [self.serialize_pl_row(row) for row in rows],
            "totals": self.serialize_pl_totals(summarize_pl(rows)),
        }

    def project_profit_and_loss(self, context: RequestUserContext | None, project_id: UUID) -> dict[str, object]:
        # An explicitly requested project is rolled up whatever its status.
        project_ids = self.collector.scope_project(context, project_id, resource=Resource.BUDGET)
        rows = self._pl_rows(project_ids, excluded_statuses=())
        if not rows:
            raise NotFound("Project not found.")
        return self.serialize_pl_row(rows[0])

    def project_budget_summary(self, context: RequestUserContext | None, project_id: UUID) -> dict[str, object]:
        project_ids = self.collector.scope_project(context, project_id, resource=Resource.BUDGET)
        snapshot = self.collector.gather(
            {
                "projects": lambda repo: repo.list_project_financials(project_ids),
                "phases": lambda repo: repo.list_phase_budget_lines(project_ids),
            }
        )
        if not snapshot["projects"]:
            raise NotFound("Project not found.")
        project = snapshot["projects"][0]
        lines = snapshot["phases"]

        total_estimated = money(sum((row.estimated_cost or ZERO for row in lines), ZERO))
        total_actual = money(sum((row.actual_cost or ZERO for row in lines), ZERO))
        return {
            "project_id": str(project.id),
            "project_budget": str(money(project.budget)) if project.budget is not None else None,
            "total_estimated": str(total_estimated),
            "total_actual": str(total_actual),
            # Zero when nothing is estimated.
            "variance": str(money(total_actual - total_estimated) if total_estimated > ZERO else money(ZERO)),
            "phases": [
                {
                    "phase_id": str(row.id),
                    "name": row.name,
                    "status": _enum_value(row.status),
                    "estimated_cost": str(money(row.estimated_cost)) if row.estimated_cost is not None else None,
                    "actual_cost": str(money(row.actual_cost)) if row.actual_cost is not None else None,
                }
                for row in lines
            ],
        }

    def budget_curve(
        self,
        context: RequestUserContext | None,
        report_range: ReportRange,
        project_id: UUID | None = None,
    ) -> dict[str, object]:
        if project_id is None:
            budget_ids = self.collector.scope(context, resource=Resource.BUDGET)
        else:
            budget_ids = self.collector.scope_project(context, project_id, resource=Resource.BUDGET)

        phase_costs = self.collector.gather({"phase_costs": lambda repo: repo.list_phase_costs(budget_ids)})[
            "phase_costs"
        ]
        _, _, curve_keys = self._dashboard_windows(report_range)
        return {
            "range": report_range.value,
            "project_id": str(project_id) if project_id is not None else None,
            "points": self.serialize_curve(self._curve_points(phase_costs, curve_keys)),
        }

    # ---------- Exports ----------
    def tabular_report(self, context: RequestUserContext | None, report_key: str) -> TabularReport:
        if report_key == "project-health":
            payload = self.project_health_report(context)
            return TabularReport(
                report_key=report_key,
                headers=["Project", "Status", "Total Phases", "Completed", "Progress %", "Overdue", "Health"],
                rows=[
                    [
                        item["name"],
                        item["status"],
                        str(item["total_phases"]),
                        str(item["completed_phases"]),
                        str(item["progress"]),
                        str(item["overdue_phases"]),
                        item["health"],
                    ]
                    for item in payload["items"]
                ],
            )

        if report_key == "phase-status":
            payload = self.phase_status_breakdown(context)
            return TabularReport(
                report_key=report_key,
                headers=["Status", "Count"],
                rows=[[item["status"], str(item["count"])] for item in payload["items"]],
            )

        if report_key == "overdue":
            payload = self.overdue_report(context)
            return TabularReport(
                report_key=report_key,
                headers=["Phase", "Project", "Due", "Days Overdue", "Owner"],
                rows=[
                    [item["phase_name"], item["project_name"], item["est_end"], str(item["days_overdue"]), item["owner"]]
                    for item in payload["items"]
                ],
            )

        if report_key == "team-performance":
            payload = self.team_performance(context)
            return TabularReport(
                report_key=report_key,
                headers=["Name", "Company", "Assigned", "Completed", "Active", "Overdue", "Completion %"],
                rows=[
                    [
                        item["name"],
                        item["company"] or "",
                        str(item["assigned_phases"]),
                        str(item["completed_phases"]),
                        str(item["active_phases"]),
                        str(item["overdue_phases"]),
                        str(item["completion_rate"]),
                    ]
                    for item in payload["items"]
                ],
            )

        if report_key == "profit-loss":
            payload = self.profit_and_loss(context)
            return TabularReport(
                report_key=report_key,
                headers=[
                    "Project",
                    "Status",
                    "Budget",
                    "Approved Change Orders",
                    "Adjusted Budget",
                    "Estimated Cost",
                    "Actual Cost",
                    "Gross Profit",
                    "Profit Margin %",
                ],
                rows=[
                    [
                        item["project_name"],
                        item["status"],
                        item["budget"],
                        item["approved_change_orders"],
                        item["adjusted_budget"],
                        item["estimated_cost"],
                        item["actual_cost"],
                        item["gross_profit"],
                        item["profit_margin"],
                    ]
                    for item in payload["items"]
                ],
            )

        raise NotFound("Unknown report_key for export.")

    def export_report(
        self,
        context: RequestUserContext | None,
        *,
        report_key: str,
        format_name: str,
    ) -> ExportFilePayload:
        if report_key not in EXPORT_REPORT_KEYS:
            raise NotFound("Unknown report_key for export.")
        normalized_format = normalize_format(format_name)
        return render_export(self.tabular_report(context, report_key), normalized_format)
