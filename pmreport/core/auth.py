"""Authentication context extraction for reporting requests."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from pmreport.core.config import get_settings
from pmreport.db.dependencies import get_db_session
from pmreport.models.entities import MemberRole, ProjectMember, User

UNPROVISIONED_STATUS = "unprovisioned"


@dataclass(frozen=True)
class ProjectMembership:
    """Project-scoped role held by the request actor."""

    project_id: UUID
    role: MemberRole


@dataclass(frozen=True)
class RequestUserContext:
    """Request actor resolved from headers and stored memberships.

    ``user_id`` is ``None`` when no user row exists for the subject yet; such
    an actor holds no memberships.
    """

    user_id: UUID | None
    subject: str
    email: str
    display_name: str
    status: str
    memberships: tuple[ProjectMembership, ...]


def _require_identity_headers(
    x_auth_subject: str | None,
    x_auth_email: str | None,
    x_auth_name: str | None,
) -> tuple[str, str, str]:
    if not x_auth_subject or not x_auth_email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=(
                "Missing identity headers. Expected X-AUTH-SUBJECT and X-AUTH-EMAIL or enable development principal fallback."
            ),
        )

    display_name = x_auth_name or x_auth_email
    return x_auth_subject.strip(), x_auth_email.strip().lower(), display_name.strip()


def _resolve_identity(
    x_auth_subject: str | None,
    x_auth_email: str | None,
    x_auth_name: str | None,
) -> tuple[str, str, str] | None:
    settings = get_settings()
    if x_auth_subject and x_auth_email:
        return _require_identity_headers(x_auth_subject, x_auth_email, x_auth_name)

    if settings.auth_allow_dev_principal:
        return (
            settings.auth_dev_subject.strip(),
            settings.auth_dev_email.strip().lower(),
            settings.auth_dev_display_name.strip(),
        )

    return None


def _find_user(db: Session, *, subject: str) -> User | None:
    return db.scalar(select(User).where(User.subject == subject))


def _load_memberships(db: Session, *, user_id: UUID) -> tuple[ProjectMembership, ...]:
    rows = db.execute(
        select(ProjectMember.project_id, ProjectMember.role)
        .where(ProjectMember.user_id == user_id)
        .order_by(ProjectMember.project_id.asc())
    ).all()
    return tuple(ProjectMembership(project_id=row.project_id, role=row.role) for row in rows)


def _build_context(db: Session, identity: tuple[str, str, str]) -> RequestUserContext:
    """Read-only lookup; user provisioning belongs to the identity provider."""

    subject, email, display_name = identity
    user = _find_user(db, subject=subject)
    if user is None:
        return RequestUserContext(
            user_id=None,
            subject=subject,
            email=email,
            display_name=display_name,
            status=UNPROVISIONED_STATUS,
            memberships=(),
        )

    return RequestUserContext(
        user_id=user.id,
        subject=user.subject,
        email=user.email,
        display_name=user.display_name,
        status=user.status,
        memberships=_load_memberships(db, user_id=user.id),
    )


def resolve_optional_user_context(
    db: Session,
    *,
    x_auth_subject: str | None,
    x_auth_email: str | None,
    x_auth_name: str | None,
) -> RequestUserContext | None:
    identity = _resolve_identity(x_auth_subject, x_auth_email, x_auth_name)
    if identity is None:
        return None
    return _build_context(db, identity)


def get_current_user_context(
    x_auth_subject: str | None = Header(default=None, alias="X-AUTH-SUBJECT"),
    x_auth_email: str | None = Header(default=None, alias="X-AUTH-EMAIL"),
    x_auth_name: str | None = Header(default=None, alias="X-AUTH-NAME"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request user and project memberships.

    Header strategy:
    - Current phase: trusted headers from proxy / test clients.
    - Future phase: replace with token validation and claim extraction.
    """

    identity = _resolve_identity(x_auth_subject, x_auth_email, x_auth_name)
    if identity is None:
        identity = _require_identity_headers(x_auth_subject, x_auth_email, x_auth_name)
    return _build_context(db, identity)

