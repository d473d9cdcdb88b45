"""Scoped, concurrent snapshot collection for report computations."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from pmreport.core.auth import RequestUserContext
from pmreport.core.errors import AccessDenied, AggregationFailure, NotFound
from pmreport.core.permissions import Action, Resource, accessible_project_ids
from pmreport.repositories.reporting_repository import ReportingRepository

logger = logging.getLogger("pmreport.collector")

Fetch = Callable[[ReportingRepository], Any]


class QueryCollector:
    """Resolve the caller's project scope and run independent fetches in parallel.

    Each fetch runs on its own session, so fetches share no mutable state.
    The pool lives for a single ``gather`` call.
    """

    def __init__(self, session_factory: Callable[[], Session], *, max_workers: int = 4) -> None:
        self.session_factory = session_factory
        self.max_workers = max(1, max_workers)

    # ---------- Scope ----------
    def scope(
        self,
        context: RequestUserContext | None,
        *,
        action: Action = Action.VIEW,
        resource: Resource,
    ) -> frozenset[UUID]:
        return accessible_project_ids(context, action=action, resource=resource)

    def scope_project(
        self,
        context: RequestUserContext | None,
        project_id: UUID,
        *,
        action: Action = Action.VIEW,
        resource: Resource,
    ) -> frozenset[UUID]:
        allowed = self.scope(context, action=action, resource=resource)
        exists = self.gather({"project": lambda repo: repo.project_exists(project_id)})["project"]
        if not exists:
            raise NotFound("Project not found.")
        if project_id not in allowed:
            raise AccessDenied("Insufficient project permissions for this report.")
        return frozenset({project_id})

    # ---------- Fetch ----------
    def _run(self, fetch: Fetch) -> Any:
        with self.session_factory() as session:
            return fetch(ReportingRepository(session))

    def gather(self, fetches: Mapping[str, Fetch]) -> dict[str, Any]:
        """Run fetches concurrently and join before returning.

        The first failure cancels outstanding fetches and aborts the whole
        invocation with ``AggregationFailure``.
        """

        if not fetches:
            return {}

        workers = min(self.max_workers, len(fetches))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="report-fetch") as executor:
            futures: dict[Future, str] = {
                executor.submit(self._run, fetch): name for name, fetch in fetches.items()
            }
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future in pending:
                future.cancel()

            for future in done:
                exc = future.exception()
                if exc is not None:
                    logger.exception("Report fetch %r failed.", futures[future], exc_info=exc)
                    raise AggregationFailure() from exc

            return {futures[future]: future.result() for future in futures}
