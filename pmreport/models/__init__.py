"""ORM model package."""

from pmreport.models.entities import (
    ActivityLog,
    ChangeOrder,
    Document,
    Phase,
    PhaseAssignment,
    Project,
    ProjectMember,
    Staff,
    User,
)

__all__ = [
    "ActivityLog",
    "ChangeOrder",
    "Document",
    "Phase",
    "PhaseAssignment",
    "Project",
    "ProjectMember",
    "Staff",
    "User",
]
