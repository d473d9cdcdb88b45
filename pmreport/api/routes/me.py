"""Current user endpoint."""

from fastapi import APIRouter, Depends

from pmreport.core.auth import ProjectMembership, RequestUserContext, get_current_user_context

router = APIRouter(prefix="/me", tags=["me"])


def _serialize_membership(membership: ProjectMembership) -> dict[str, object]:
    return {
        "project_id": str(membership.project_id),
        "role": membership.role.value,
    }


@router.get("")
def get_me(context: RequestUserContext = Depends(get_current_user_context)) -> dict[str, object]:
    """Return the authenticated user profile and project memberships."""

    return {
        "id": str(context.user_id) if context.user_id is not None else None,
        "subject": context.subject,
        "email": context.email,
        "display_name": context.display_name,
        "status": context.status,
        "memberships": [_serialize_membership(membership) for membership in context.memberships],
    }
