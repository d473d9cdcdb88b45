"""Read-only queries feeding the reporting aggregators.

Every query projects only the columns its consumer needs and is restricted to
an explicit project-id set. An empty set short-circuits without a round trip.
"""

from __future__ import annotations

from collections.abc import Collection
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import Row, and_, func, select
from sqlalchemy.orm import Session

from pmreport.models.entities import (
    ActivityLog,
    ChangeOrder,
    Document,
    Phase,
    PhaseAssignment,
    PhaseStatus,
    Project,
    ProjectMember,
    ProjectStatus,
    Staff,
)


def _id_list(ids: Collection[UUID]) -> list[UUID]:
    return sorted(set(ids), key=str)


class ReportingRepository:
    """Snapshot reads used by the analytics and report services."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Projects ----------
    def project_exists(self, project_id: UUID) -> bool:
        return self.db.scalar(select(Project.id).where(Project.id == project_id)) is not None

    def list_project_statuses(self, project_ids: Collection[UUID]) -> list[ProjectStatus]:
        if not project_ids:
            return []
        return self.db.scalars(
            select(Project.status).where(Project.id.in_(_id_list(project_ids))).order_by(Project.id.asc())
        ).all()

    def list_project_names(self, project_ids: Collection[UUID]) -> list[Row]:
        if not project_ids:
            return []
        return self.db.execute(
            select(Project.id, Project.name).where(Project.id.in_(_id_list(project_ids))).order_by(Project.id.asc())
        ).all()

    def list_project_financials(self, project_ids: Collection[UUID]) -> list[Row]:
        if not project_ids:
            return []
        return self.db.execute(
            select(Project.id, Project.name, Project.status, Project.budget)
            .where(Project.id.in_(_id_list(project_ids)))
            .order_by(Project.name.asc(), Project.id.asc())
        ).all()

    def list_projects_for_health(self, project_ids: Collection[UUID]) -> list[Row]:
        if not project_ids:
            return []
        return self.db.execute(
            select(
                Project.id,
                Project.name,
                Project.address,
                Project.status,
                Project.budget,
                Project.est_completion,
            )
            .where(Project.id.in_(_id_list(project_ids)))
            .order_by(Project.updated_at.desc(), Project.id.asc())
        ).all()

    def count_members_by_project(self, project_ids: Collection[UUID]) -> list[Row]:
        if not project_ids:
            return []
        return self.db.execute(
            select(ProjectMember.project_id, func.count(ProjectMember.id).label("member_count"))
            .where(ProjectMember.project_id.in_(_id_list(project_ids)))
            .group_by(ProjectMember.project_id)
            .order_by(ProjectMember.project_id.asc())
        ).all()

    # ---------- Phases ----------
    def list_phase_statuses(self, project_ids: Collection[UUID]) -> list[PhaseStatus]:
        if not project_ids:
            return []
        return self.db.scalars(
            select(Phase.status).where(Phase.project_id.in_(_id_list(project_ids))).order_by(Phase.id.asc())
        ).all()

    def list_phase_costs(self, project_ids: Collection[UUID]) -> list[Row]:
        if not project_ids:
            return []
        return self.db.execute(
            select(Phase.project_id, Phase.estimated_cost, Phase.actual_cost, Phase.created_at)
            .where(Phase.project_id.in_(_id_list(project_ids)))
            .order_by(Phase.created_at.asc(), Phase.id.asc())
        ).all()

    def list_phase_financials(self, project_ids: Collection[UUID]) -> list[Row]:
        if not project_ids:
            return []
        return self.db.execute(
            select(Phase.id, Phase.project_id, Phase.status, Phase.estimated_cost, Phase.actual_cost)
            .where(Phase.project_id.in_(_id_list(project_ids)))
            .order_by(Phase.project_id.asc(), Phase.id.asc())
        ).all()

    def list_phase_budget_lines(self, project_ids: Collection[UUID]) -> list[Row]:
        if not project_ids:
            return []
        return self.db.execute(
            select(Phase.id, Phase.name, Phase.status, Phase.estimated_cost, Phase.actual_cost)
            .where(Phase.project_id.in_(_id_list(project_ids)))
            .order_by(Phase.est_start.asc(), Phase.id.asc())
        ).all()

    @staticmethod
    def _phase_progress_select():
        document_count = (
            select(func.count(Document.id)).where(Document.phase_id == Phase.id).correlate(Phase).scalar_subquery()
        )
        return select(
            Phase.id,
            Phase.name,
            Phase.status,
            Phase.progress,
            Phase.est_end,
            Phase.actual_end,
            Project.name.label("project_name"),
            document_count.label("document_count"),
        ).join(Project, Project.id == Phase.project_id)

    def list_phase_progress(self, project_ids: Collection[UUID]) -> list[Row]:
        if not project_ids:
            return []
        return self.db.execute(
            self._phase_progress_select()
            .where(Phase.project_id.in_(_id_list(project_ids)))
            .order_by(Phase.est_end.asc(), Phase.id.asc())
        ).all()

    def list_assigned_phase_progress(self, project_ids: Collection[UUID], *, email: str) -> list[Row]:
        """Phases assigned to the staff record whose email matches, case-insensitively."""

        if not project_ids or not email:
            return []
        assigned = (
            select(PhaseAssignment.phase_id)
            .join(Staff, Staff.id == PhaseAssignment.staff_id)
            .where(func.lower(Staff.email) == email.strip().lower())
        )
        return self.db.execute(
            self._phase_progress_select()
            .where(and_(Phase.project_id.in_(_id_list(project_ids)), Phase.id.in_(assigned)))
            .order_by(Phase.est_end.asc(), Phase.id.asc())
        ).all()

    def list_phase_schedules(self, project_ids: Collection[UUID]) -> list[Row]:
        if not project_ids:
            return []
        return self.db.execute(
            select(Phase.id, Phase.project_id, Phase.status, Phase.est_end)
            .where(Phase.project_id.in_(_id_list(project_ids)))
            .order_by(Phase.project_id.asc(), Phase.id.asc())
        ).all()

    def list_phase_created_at(self, project_ids: Collection[UUID], *, since: datetime) -> list[datetime]:
        if not project_ids:
            return []
        return self.db.scalars(
            select(Phase.created_at)
            .where(and_(Phase.project_id.in_(_id_list(project_ids)), Phase.created_at >= since))
            .order_by(Phase.created_at.asc())
        ).all()

    def list_completed_phase_updated_at(self, project_ids: Collection[UUID], *, since: datetime) -> list[datetime]:
        if not project_ids:
            return []
        return self.db.scalars(
            select(Phase.updated_at)
            .where(
                and_(
                    Phase.project_id.in_(_id_list(project_ids)),
                    Phase.status == PhaseStatus.COMPLETE,
                    Phase.updated_at >= since,
                )
            )
            .order_by(Phase.updated_at.asc())
        ).all()

    def list_overdue_phases(self, project_ids: Collection[UUID], *, today: date) -> list[Row]:
        if not project_ids:
            return []
        return self.db.execute(
            select(
                Phase.id,
                Phase.name,
                Phase.status,
                Phase.progress,
                Phase.est_end,
                Project.id.label("project_id"),
                Project.name.label("project_name"),
            )
            .join(Project, Project.id == Phase.project_id)
            .where(
                and_(
                    Phase.project_id.in_(_id_list(project_ids)),
                    Phase.status != PhaseStatus.COMPLETE,
                    Phase.est_end < today,
                )
            )
            .order_by(Phase.est_end.asc(), Phase.id.asc())
        ).all()

    # ---------- Staff ----------
    def list_staff_assignments(self, project_ids: Collection[UUID]) -> list[Row]:
        if not project_ids:
            return []
        return self.db.execute(
            select(Staff.id.label("staff_id"), Staff.name.label("staff_name"))
            .join(PhaseAssignment, PhaseAssignment.staff_id == Staff.id)
            .join(Phase, Phase.id == PhaseAssignment.phase_id)
            .where(Phase.project_id.in_(_id_list(project_ids)))
            .order_by(Staff.name.asc(), Staff.id.asc())
        ).all()

    def list_staff_phase_assignments(self, project_ids: Collection[UUID]) -> list[Row]:
        if not project_ids:
            return []
        return self.db.execute(
            select(
                Staff.id.label("staff_id"),
                Staff.name,
                Staff.company,
                Staff.role,
                PhaseAssignment.is_owner,
                Phase.status.label("phase_status"),
                Phase.est_end,
            )
            .join(PhaseAssignment, PhaseAssignment.staff_id == Staff.id)
            .join(Phase, Phase.id == PhaseAssignment.phase_id)
            .where(Phase.project_id.in_(_id_list(project_ids)))
            .order_by(Staff.name.asc(), Staff.id.asc(), Phase.id.asc())
        ).all()

    def list_phase_owners(self, phase_ids: Collection[UUID]) -> list[Row]:
        if not phase_ids:
            return []
        return self.db.execute(
            select(PhaseAssignment.phase_id, Staff.name, Staff.company)
            .join(Staff, Staff.id == PhaseAssignment.staff_id)
            .where(and_(PhaseAssignment.phase_id.in_(_id_list(phase_ids)), PhaseAssignment.is_owner.is_(True)))
            .order_by(PhaseAssignment.phase_id.asc(), Staff.name.asc(), Staff.id.asc())
        ).all()

    # ---------- Change orders ----------
    def list_change_orders(self, project_ids: Collection[UUID]) -> list[Row]:
        if not project_ids:
            return []
        return self.db.execute(
            select(ChangeOrder.phase_id, ChangeOrder.status, ChangeOrder.amount)
            .join(Phase, Phase.id == ChangeOrder.phase_id)
            .where(Phase.project_id.in_(_id_list(project_ids)))
            .order_by(ChangeOrder.phase_id.asc(), ChangeOrder.id.asc())
        ).all()

    # ---------- Documents ----------
    def list_document_created_at(self, project_ids: Collection[UUID], *, since: datetime) -> list[datetime]:
        if not project_ids:
            return []
        return self.db.scalars(
            select(Document.created_at)
            .join(Phase, Phase.id == Document.phase_id)
            .where(and_(Phase.project_id.in_(_id_list(project_ids)), Document.created_at >= since))
            .order_by(Document.created_at.asc())
        ).all()

    def count_documents_by_status(self, project_ids: Collection[UUID]) -> list[Row]:
        if not project_ids:
            return []
        return self.db.execute(
            select(Document.status, func.count(Document.id).label("count"))
            .join(Phase, Phase.id == Document.phase_id)
            .where(Phase.project_id.in_(_id_list(project_ids)))
            .group_by(Document.status)
        ).all()

    def count_documents_by_category(self, project_ids: Collection[UUID]) -> list[Row]:
        if not project_ids:
            return []
        return self.db.execute(
            select(Document.category, func.count(Document.id).label("count"))
            .join(Phase, Phase.id == Document.phase_id)
            .where(Phase.project_id.in_(_id_list(project_ids)))
            .group_by(Document.category)
        ).all()

    # ---------- Activity ----------
    def list_activity(self, project_ids: Collection[UUID], *, since: datetime) -> list[Row]:
        if not project_ids:
            return []
        return self.db.execute(
            select(ActivityLog.action, ActivityLog.created_at)
            .where(and_(ActivityLog.project_id.in_(_id_list(project_ids)), ActivityLog.created_at >= since))
            .order_by(ActivityLog.created_at.asc(), ActivityLog.id.asc())
        ).all()
