"""Shared endpoint dependencies for report routes."""

from collections.abc import Callable
from datetime import datetime

from fastapi import Depends
from sqlalchemy.orm import Session

from pmreport.core.config import get_settings
from pmreport.db.dependencies import get_session_factory
from pmreport.services.analytics_service import AnalyticsService
from pmreport.services.bucketing import utc_now
from pmreport.services.collector import QueryCollector


def get_report_clock() -> Callable[[], datetime]:
    """Clock used to anchor trailing windows; overridden in tests."""

    return utc_now


def get_analytics_service(
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    clock: Callable[[], datetime] = Depends(get_report_clock),
) -> AnalyticsService:
    settings = get_settings()
    collector = QueryCollector(session_factory, max_workers=settings.reporting_fetch_workers)
    return AnalyticsService(collector, now=clock(), settings=settings)
