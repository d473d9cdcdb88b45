"""Export endpoint for report datasets."""

from __future__ import annotations

from collections.abc import Callable

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from pmreport.api.deps import get_analytics_service
from pmreport.core.auth import RequestUserContext, get_current_user_context
from pmreport.db.dependencies import get_session_factory
from pmreport.services.activity import record_activity
from pmreport.services.analytics_service import AnalyticsService

router = APIRouter(prefix="/exports", tags=["exports"])


@router.get("/{report_key}")
def export_report(
    report_key: str,
    background_tasks: BackgroundTasks,
    format: str = Query(default="csv"),
    context: RequestUserContext = Depends(get_current_user_context),
    service: AnalyticsService = Depends(get_analytics_service),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
) -> Response:
    exported = service.export_report(context, report_key=report_key, format_name=format)
    # Activity rows reference a stored user.
    if context.user_id is not None:
        background_tasks.add_task(
            record_activity,
            session_factory,
            user_id=context.user_id,
            action="REPORT_EXPORTED",
            message=f"Exported {exported.filename}",
        )
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
