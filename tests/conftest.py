from __future__ import annotations

from collections.abc import Callable, Generator
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from pmreport.api.deps import get_report_clock
from pmreport.core.config import get_settings
from pmreport.db.base import Base
from pmreport.db.dependencies import get_db_session, get_session_factory
import pmreport.models.entities  # noqa: F401
from pmreport.main import create_app
from pmreport.models.entities import (
    ActivityLog,
    ChangeOrder,
    ChangeOrderStatus,
    Document,
    DocumentStatus,
    MemberRole,
    Phase,
    PhaseAssignment,
    PhaseStatus,
    Project,
    ProjectMember,
    ProjectStatus,
    Staff,
    User,
)

FIXED_NOW = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def engine(tmp_path: Path) -> Generator[Engine, None, None]:
    # File-backed so concurrent fetches each get their own connection.
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'pmreport.db'}",
        connect_args={"check_same_thread": False},
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> Callable[[], Session]:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)


@pytest.fixture()
def db_session(session_factory: Callable[[], Session]) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory: Callable[[], Session]) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db_session] = override_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_report_clock] = lambda: (lambda: FIXED_NOW)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def no_dev_principal(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("AUTH_ALLOW_DEV_PRINCIPAL", "false")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def auth_headers(
    *,
    subject: str = "subject-admin",
    email: str = "admin@test.local",
    display_name: str = "Admin User",
) -> dict[str, str]:
    return {
        "X-AUTH-SUBJECT": subject,
        "X-AUTH-EMAIL": email,
        "X-AUTH-NAME": display_name,
    }


class Seeder:
    """Row builders for report scenarios; every call commits."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _save(self, row):
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def user(
        self,
        *,
        subject: str = "subject-admin",
        email: str = "admin@test.local",
        display_name: str = "Admin User",
    ) -> User:
        return self._save(User(subject=subject, email=email, display_name=display_name, status="active"))

    def project(
        self,
        name: str,
        *,
        status: ProjectStatus = ProjectStatus.ACTIVE,
        budget: Decimal | None = None,
        address: str | None = None,
        updated_at: datetime = FIXED_NOW,
    ) -> Project:
        return self._save(
            Project(
                name=name,
                status=status,
                budget=budget,
                address=address,
                created_at=FIXED_NOW,
                updated_at=updated_at,
            )
        )

    def member(self, project: Project, user: User, role: MemberRole = MemberRole.ADMIN) -> ProjectMember:
        return self._save(ProjectMember(project_id=project.id, user_id=user.id, role=role))

    def phase(
        self,
        project: Project,
        name: str = "Phase",
        *,
        status: PhaseStatus = PhaseStatus.PENDING,
        est_start: date = date(2026, 1, 1),
        est_end: date = date(2026, 12, 31),
        estimated_cost: Decimal | None = None,
        actual_cost: Decimal | None = None,
        actual_end: date | None = None,
        progress: int = 0,
        created_at: datetime = FIXED_NOW,
        updated_at: datetime = FIXED_NOW,
    ) -> Phase:
        return self._save(
            Phase(
                project_id=project.id,
                name=name,
                status=status,
                progress=progress,
                est_start=est_start,
                est_end=est_end,
                actual_end=actual_end,
                estimated_cost=estimated_cost,
                actual_cost=actual_cost,
                created_at=created_at,
                updated_at=updated_at,
            )
        )

    def staff(
        self,
        name: str,
        *,
        company: str | None = None,
        role: str | None = None,
        email: str | None = None,
    ) -> Staff:
        return self._save(Staff(name=name, company=company, role=role, email=email))

    def assign(self, phase: Phase, staff: Staff, *, is_owner: bool = False) -> PhaseAssignment:
        return self._save(PhaseAssignment(phase_id=phase.id, staff_id=staff.id, is_owner=is_owner))

    def document(
        self,
        phase: Phase,
        name: str = "Document",
        *,
        status: DocumentStatus = DocumentStatus.PENDING,
        category: str | None = None,
        created_at: datetime = FIXED_NOW,
    ) -> Document:
        return self._save(
            Document(phase_id=phase.id, name=name, status=status, category=category, created_at=created_at)
        )

    def change_order(
        self,
        phase: Phase,
        amount: Decimal,
        *,
        status: ChangeOrderStatus = ChangeOrderStatus.APPROVED,
        title: str = "Change order",
    ) -> ChangeOrder:
        return self._save(
            ChangeOrder(phase_id=phase.id, title=title, status=status, amount=amount, created_at=FIXED_NOW)
        )

    def activity(
        self,
        user: User,
        action: str,
        *,
        project: Project | None = None,
        created_at: datetime = FIXED_NOW,
        message: str = "",
    ) -> ActivityLog:
        return self._save(
            ActivityLog(
                user_id=user.id,
                project_id=project.id if project is not None else None,
                action=action,
                message=message,
                created_at=created_at,
            )
        )


@pytest.fixture()
def seed(db_session: Session) -> Seeder:
    return Seeder(db_session)
