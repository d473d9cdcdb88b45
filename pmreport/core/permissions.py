"""Project-scoped capability matrix.

Roles live on ``ProjectMember``; a capability is granted per project, so the
accessible project set depends on the (action, resource) pair being checked.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from pmreport.core.errors import AccessDenied
from pmreport.models.entities import MemberRole

if TYPE_CHECKING:
    from pmreport.core.auth import RequestUserContext


class Action(str, Enum):
    VIEW = "view"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    MANAGE = "manage"


class Resource(str, Enum):
    PROJECT = "project"
    PHASE = "phase"
    DOCUMENT = "document"
    STAFF = "staff"
    BUDGET = "budget"
    ACTIVITY = "activity"


_ALL = frozenset(Action)
_VIEW = frozenset({Action.VIEW})

PERMISSIONS: dict[MemberRole, dict[Resource, frozenset[Action]]] = {
    MemberRole.ADMIN: {
        Resource.PROJECT: _ALL,
        Resource.PHASE: _ALL,
        Resource.DOCUMENT: frozenset({Action.VIEW, Action.CREATE, Action.UPDATE, Action.DELETE}),
        Resource.STAFF: frozenset({Action.VIEW, Action.CREATE, Action.UPDATE, Action.DELETE}),
        Resource.BUDGET: frozenset({Action.VIEW, Action.UPDATE, Action.MANAGE}),
        Resource.ACTIVITY: frozenset({Action.VIEW, Action.MANAGE}),
    },
    MemberRole.PROJECT_MANAGER: {
        Resource.PROJECT: frozenset({Action.VIEW, Action.CREATE, Action.UPDATE}),
        Resource.PHASE: frozenset({Action.VIEW, Action.CREATE, Action.UPDATE, Action.MANAGE}),
        Resource.DOCUMENT: frozenset({Action.VIEW, Action.CREATE, Action.UPDATE}),
        Resource.STAFF: frozenset({Action.VIEW, Action.CREATE, Action.UPDATE}),
        Resource.BUDGET: frozenset({Action.VIEW, Action.UPDATE}),
        Resource.ACTIVITY: _VIEW,
    },
    MemberRole.CONTRACTOR: {
        Resource.PROJECT: _VIEW,
        Resource.PHASE: frozenset({Action.VIEW, Action.UPDATE}),
        Resource.DOCUMENT: frozenset({Action.VIEW, Action.CREATE}),
        Resource.STAFF: _VIEW,
        Resource.BUDGET: frozenset(),
        Resource.ACTIVITY: _VIEW,
    },
    MemberRole.STAKEHOLDER: {
        Resource.PROJECT: _VIEW,
        Resource.PHASE: _VIEW,
        Resource.DOCUMENT: _VIEW,
        Resource.STAFF: _VIEW,
        Resource.BUDGET: _VIEW,
        Resource.ACTIVITY: _VIEW,
    },
    MemberRole.VIEWER: {
        Resource.PROJECT: _VIEW,
        Resource.PHASE: _VIEW,
        Resource.DOCUMENT: _VIEW,
        # Viewers cannot see the staff directory or financials.
        Resource.STAFF: frozenset(),
        Resource.BUDGET: frozenset(),
        Resource.ACTIVITY: _VIEW,
    },
}


def can(role: MemberRole | str, action: Action, resource: Resource) -> bool:
    """Whether a project role grants ``action`` on ``resource``; unknown roles are denied."""

    try:
        member_role = MemberRole(role)
    except ValueError:
        return False
    return action in PERMISSIONS.get(member_role, {}).get(resource, frozenset())


def accessible_project_ids(
    context: RequestUserContext | None,
    *,
    action: Action,
    resource: Resource,
) -> frozenset[UUID]:
    """Resolve the project set where the caller holds the capability.

    Raises ``AccessDenied`` (401) when there is no identity. An identity without
    matching memberships yields an empty set.
    """

    if context is None:
        raise AccessDenied("Authentication required.", status_code=401)

    return frozenset(
        membership.project_id
        for membership in context.memberships
        if can(membership.role, action, resource)
    )
