"""Fire-and-forget activity log writes."""

from __future__ import annotations

import logging
from collections.abc import Callable
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pmreport.models.entities import ActivityLog

logger = logging.getLogger("pmreport.activity")


def record_activity(
    session_factory: Callable[[], Session],
    *,
    user_id: UUID,
    action: str,
    message: str,
    project_id: UUID | None = None,
) -> bool:
    """Persist one activity entry on its own session.

    Runs after the response is sent; a failed write is logged and dropped so
    it never affects the request that triggered it.
    """

    with session_factory() as session:
        try:
            session.add(ActivityLog(user_id=user_id, project_id=project_id, action=action, message=message))
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Dropped activity entry %r for user %s.", action, user_id)
            return False
    return True
