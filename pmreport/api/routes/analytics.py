"""Dashboard analytics endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pmreport.api.deps import get_analytics_service
from pmreport.core.auth import RequestUserContext, get_current_user_context, resolve_optional_user_context
from pmreport.db.dependencies import get_db_session
from pmreport.services.analytics_service import AnalyticsService
from pmreport.services.bucketing import ReportRange

logger = logging.getLogger("pmreport.api")

router = APIRouter(tags=["analytics"])


@router.get("/analytics")
def get_analytics(
    range: ReportRange = Query(default=ReportRange.SIX_MONTHS),
    context: RequestUserContext = Depends(get_current_user_context),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    return service.dashboard_analytics(context, range)


@router.get("/dashboard/analytics")
def get_dashboard_analytics(
    range: ReportRange = Query(default=ReportRange.SIX_MONTHS),
    x_auth_subject: str | None = Header(default=None, alias="X-AUTH-SUBJECT"),
    x_auth_email: str | None = Header(default=None, alias="X-AUTH-EMAIL"),
    x_auth_name: str | None = Header(default=None, alias="X-AUTH-NAME"),
    db: Session = Depends(get_db_session),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    """Page-rendering variant: degrades to a zero-filled payload instead of failing.

    A storage failure while resolving identity also yields the empty payload.
    """

    try:
        context = resolve_optional_user_context(
            db,
            x_auth_subject=x_auth_subject,
            x_auth_email=x_auth_email,
            x_auth_name=x_auth_name,
        )
    except SQLAlchemyError:
        logger.warning("Identity lookup failed: rendering empty dashboard.", exc_info=True)
        return service.empty_dashboard(range)
    return service.dashboard_analytics_or_empty(context, range)
