from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from conftest import Seeder, auth_headers
from pmreport.core import auth
from pmreport.models.entities import DocumentStatus, MemberRole, PhaseStatus, ProjectStatus, User
from pmreport.repositories.reporting_repository import ReportingRepository


def _at(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, 9, 0, tzinfo=timezone.utc)


def _seed_portfolio(seed: Seeder, role: MemberRole = MemberRole.ADMIN) -> None:
    user = seed.user()
    alpha = seed.project("Alpha", status=ProjectStatus.ACTIVE)
    seed.member(alpha, user, role)

    framing = seed.phase(
        alpha,
        "Framing",
        status=PhaseStatus.COMPLETE,
        estimated_cost=Decimal("1000"),
        actual_cost=Decimal("400"),
        created_at=_at(2026, 2, 10),
        updated_at=_at(2026, 6, 10),
    )
    roofing = seed.phase(
        alpha,
        "Roofing",
        status=PhaseStatus.IN_PROGRESS,
        estimated_cost=Decimal("500"),
        actual_cost=Decimal("100"),
        created_at=_at(2026, 4, 5),
        updated_at=_at(2026, 4, 5),
    )

    seed.document(framing, created_at=_at(2026, 4, 20), status=DocumentStatus.APPROVED)
    seed.document(roofing, created_at=_at(2026, 6, 1))
    seed.document(roofing, created_at=_at(2025, 11, 1))

    sam = seed.staff("Sam")
    alex = seed.staff("Alex Longname-Construction")
    seed.assign(framing, sam, is_owner=True)
    seed.assign(roofing, sam)
    seed.assign(framing, alex)


def test_analytics_zero_projects_gives_zero_filled_shape(client: TestClient, seed: Seeder) -> None:
    seed.user()

    response = client.get("/api/v1/analytics", headers=auth_headers(), params={"range": "6m"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["range"] == "6m"
    assert [item["month"] for item in payload["monthly_activity"]] == [
        "2026-01",
        "2026-02",
        "2026-03",
        "2026-04",
        "2026-05",
        "2026-06",
    ]
    assert all(item["phases"] == 0 and item["documents"] == 0 for item in payload["monthly_activity"])
    assert [item["status"] for item in payload["project_status_counts"]] == [status.value for status in ProjectStatus]
    assert all(item["count"] == 0 for item in payload["phase_status_counts"])
    assert payload["budget_summary"] == {"total_estimated": "0.00", "total_actual": "0.00"}
    assert len(payload["phase_completion_trend"]) == 8
    assert payload["phase_completion_trend"][-1] == {"week": "W15/6", "completed": 0}
    assert [point["planned"] for point in payload["budget_curve"]] == [0] * 6
    assert payload["team_workload"] == []
    assert payload["project_budgets"] == []


def test_analytics_folds_portfolio_into_sections(client: TestClient, seed: Seeder) -> None:
    _seed_portfolio(seed)

    response = client.get("/api/v1/analytics", headers=auth_headers(), params={"range": "6m"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["monthly_activity"] == [
        {"month": "2026-01", "phases": 0, "documents": 0},
        {"month": "2026-02", "phases": 1, "documents": 0},
        {"month": "2026-03", "phases": 0, "documents": 0},
        {"month": "2026-04", "phases": 1, "documents": 1},
        {"month": "2026-05", "phases": 0, "documents": 0},
        {"month": "2026-06", "phases": 0, "documents": 1},
    ]
    status_counts = {item["status"]: item["count"] for item in payload["phase_status_counts"]}
    assert status_counts["COMPLETE"] == 1
    assert status_counts["IN_PROGRESS"] == 1
    assert sum(status_counts.values()) == 2
    assert payload["budget_summary"] == {"total_estimated": "1500.00", "total_actual": "500.00"}
    assert payload["team_workload"] == [
        {"name": "Sam", "assigned_phases": 2},
        {"name": "Alex Longname-Constr…", "assigned_phases": 1},
    ]
    assert [item["completed"] for item in payload["phase_completion_trend"]] == [0, 0, 0, 0, 0, 0, 0, 1]
    assert payload["budget_curve"] == [
        {"month": "2026-01", "planned": 250, "actual": 0},
        {"month": "2026-02", "planned": 500, "actual": 400},
        {"month": "2026-03", "planned": 750, "actual": 400},
        {"month": "2026-04", "planned": 1000, "actual": 500},
        {"month": "2026-05", "planned": 1250, "actual": 500},
        {"month": "2026-06", "planned": 1500, "actual": 500},
    ]
    assert payload["project_budgets"] == [{"name": "Alpha", "estimated": "1500.00", "actual": "500.00"}]


@pytest.mark.parametrize(("report_range", "months", "curve_points"), [("3m", 3, 3), ("12m", 12, 12), ("all", 120, 12)])
def test_analytics_window_lengths(
    client: TestClient,
    seed: Seeder,
    report_range: str,
    months: int,
    curve_points: int,
) -> None:
    seed.user()

    payload = client.get("/api/v1/analytics", headers=auth_headers(), params={"range": report_range}).json()

    assert len(payload["monthly_activity"]) == months
    assert payload["monthly_activity"][-1]["month"] == "2026-06"
    assert len(payload["budget_curve"]) == curve_points


def test_analytics_payload_is_deterministic(client: TestClient, seed: Seeder) -> None:
    _seed_portfolio(seed)

    first = client.get("/api/v1/analytics", headers=auth_headers())
    second = client.get("/api/v1/analytics", headers=auth_headers())

    assert first.status_code == 200
    assert first.content == second.content


def test_viewer_sees_statuses_but_not_staff_or_budget(client: TestClient, seed: Seeder) -> None:
    _seed_portfolio(seed, role=MemberRole.VIEWER)

    payload = client.get("/api/v1/analytics", headers=auth_headers()).json()

    assert sum(item["count"] for item in payload["phase_status_counts"]) == 2
    assert payload["team_workload"] == []
    assert payload["project_budgets"] == []
    assert payload["budget_summary"] == {"total_estimated": "0.00", "total_actual": "0.00"}


def test_analytics_rejects_unknown_range(client: TestClient) -> None:
    response = client.get("/api/v1/analytics", headers=auth_headers(), params={"range": "2w"})

    assert response.status_code == 422


def test_anonymous_analytics_fails_but_dashboard_renders_empty(no_dev_principal: None, client: TestClient) -> None:
    strict = client.get("/api/v1/analytics")
    safe = client.get("/api/v1/dashboard/analytics", params={"range": "3m"})

    assert strict.status_code == 401
    assert safe.status_code == 200
    payload = safe.json()
    assert payload["range"] == "3m"
    assert [item["month"] for item in payload["monthly_activity"]] == ["2026-04", "2026-05", "2026-06"]
    assert payload["team_workload"] == []


def test_dashboard_renders_empty_when_a_fetch_fails(
    client: TestClient,
    seed: Seeder,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _seed_portfolio(seed)

    def broken(self, project_ids):
        raise RuntimeError("storage unavailable")

    monkeypatch.setattr(ReportingRepository, "list_phase_costs", broken)

    strict = client.get("/api/v1/analytics", headers=auth_headers())
    safe = client.get("/api/v1/dashboard/analytics", headers=auth_headers())

    assert strict.status_code == 503
    assert safe.status_code == 200
    payload = safe.json()
    assert payload["budget_summary"] == {"total_estimated": "0.00", "total_actual": "0.00"}
    assert all(item["count"] == 0 for item in payload["phase_status_counts"])


def test_me_lists_project_memberships(client: TestClient, seed: Seeder) -> None:
    user = seed.user()
    project = seed.project("Alpha")
    seed.member(project, user, MemberRole.PROJECT_MANAGER)

    response = client.get("/api/v1/me", headers=auth_headers())

    assert response.status_code == 200
    payload = response.json()
    assert payload["email"] == "admin@test.local"
    assert payload["memberships"] == [{"project_id": str(project.id), "role": "PROJECT_MANAGER"}]


def test_week_containment_for_completed_phase_at_window_edge(client: TestClient, seed: Seeder) -> None:
    user = seed.user()
    project = seed.project("Edge")
    seed.member(project, user)
    seed.phase(project, status=PhaseStatus.COMPLETE, updated_at=datetime(2026, 4, 21, 0, 0, tzinfo=timezone.utc))
    seed.phase(project, status=PhaseStatus.COMPLETE, updated_at=datetime(2026, 4, 20, 23, 0, tzinfo=timezone.utc))

    payload = client.get("/api/v1/analytics", headers=auth_headers()).json()

    # Oldest bucket covers 2026-04-21 .. 2026-04-27.
    assert payload["phase_completion_trend"][0] == {"week": "W27/4", "completed": 1}
    assert sum(item["completed"] for item in payload["phase_completion_trend"]) == 1


def test_budget_curve_keeps_spend_of_phases_created_before_the_window(client: TestClient, seed: Seeder) -> None:
    user = seed.user()
    project = seed.project("Legacy")
    seed.member(project, user)
    seed.phase(
        project,
        "Early works",
        estimated_cost=Decimal("1000"),
        actual_cost=Decimal("900"),
        created_at=_at(2024, 3, 1),
    )

    payload = client.get("/api/v1/analytics", headers=auth_headers(), params={"range": "all"}).json()

    assert payload["budget_curve"][0]["actual"] == 900
    assert payload["budget_curve"][-1] == {"month": "2026-06", "planned": 1000, "actual": 900}


def test_short_curve_opens_with_earlier_spend(client: TestClient, seed: Seeder) -> None:
    _seed_portfolio(seed)

    payload = client.get("/api/v1/analytics", headers=auth_headers(), params={"range": "3m"}).json()

    assert payload["budget_curve"] == [
        {"month": "2026-04", "planned": 500, "actual": 500},
        {"month": "2026-05", "planned": 1000, "actual": 500},
        {"month": "2026-06", "planned": 1500, "actual": 500},
    ]


def test_dashboard_renders_empty_when_identity_lookup_fails(
    client: TestClient,
    seed: Seeder,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _seed_portfolio(seed)

    def broken(db, *, subject):
        raise OperationalError("SELECT users", {}, Exception("storage down"))

    monkeypatch.setattr(auth, "_find_user", broken)

    response = client.get("/api/v1/dashboard/analytics", headers=auth_headers(), params={"range": "3m"})

    assert response.status_code == 200
    payload = response.json()
    assert [item["month"] for item in payload["monthly_activity"]] == ["2026-04", "2026-05", "2026-06"]
    assert payload["budget_summary"] == {"total_estimated": "0.00", "total_actual": "0.00"}
    assert all(point["planned"] == 0 for point in payload["budget_curve"])


def test_unknown_subject_is_not_provisioned_by_reads(client: TestClient, db_session: Session) -> None:
    headers = auth_headers(subject="new-sub", email="new@test.local", display_name="New Person")

    report = client.get("/api/v1/reports/phase-status", headers=headers)
    me = client.get("/api/v1/me", headers=headers)

    assert report.status_code == 200
    assert report.json()["total"] == 0
    assert me.json()["id"] is None
    assert me.json()["status"] == "unprovisioned"
    assert me.json()["memberships"] == []
    assert db_session.scalars(select(User)).all() == []
