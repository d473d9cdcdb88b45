"""Report endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from pmreport.api.deps import get_analytics_service
from pmreport.core.auth import RequestUserContext, get_current_user_context
from pmreport.services.analytics_service import AnalyticsService
from pmreport.services.bucketing import ReportRange

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/phase-status")
def get_phase_status(
    context: RequestUserContext = Depends(get_current_user_context),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    return service.phase_status_breakdown(context)


@router.get("/project-health")
def get_project_health(
    context: RequestUserContext = Depends(get_current_user_context),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    return service.project_health_report(context)


@router.get("/overdue")
def get_overdue(
    context: RequestUserContext = Depends(get_current_user_context),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    return service.overdue_report(context)


@router.get("/team-performance")
def get_team_performance(
    context: RequestUserContext = Depends(get_current_user_context),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    return service.team_performance(context)


@router.get("/documents")
def get_document_stats(
    context: RequestUserContext = Depends(get_current_user_context),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    return service.document_stats(context)


@router.get("/activity")
def get_activity_timeline(
    days: int = Query(default=30),
    context: RequestUserContext = Depends(get_current_user_context),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    return service.activity_timeline(context, days)


@router.get("/contractor-performance")
def get_contractor_performance(
    context: RequestUserContext = Depends(get_current_user_context),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    return service.contractor_performance(context)


@router.get("/profit-loss")
def get_profit_loss(
    context: RequestUserContext = Depends(get_current_user_context),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    return service.profit_and_loss(context)


@router.get("/projects/{project_id}/profit-loss")
def get_project_profit_loss(
    project_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    return service.project_profit_and_loss(context, project_id)


@router.get("/projects/{project_id}/budget")
def get_project_budget(
    project_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    return service.project_budget_summary(context, project_id)


@router.get("/budget-curve")
def get_budget_curve(
    range: ReportRange = Query(default=ReportRange.SIX_MONTHS),
    project_id: UUID | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    return service.budget_curve(context, range, project_id=project_id)
