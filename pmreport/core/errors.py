"""Reporting error taxonomy.

Errors are ``HTTPException`` subclasses so FastAPI renders them directly,
while the render-safe entry points can still catch them by type.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class AccessDenied(HTTPException):
    """No identity, or the identity lacks access to the requested scope."""

    def __init__(self, detail: str, *, status_code: int = status.HTTP_403_FORBIDDEN) -> None:
        super().__init__(status_code=status_code, detail=detail)


class NotFound(HTTPException):
    """Referenced project or phase does not exist."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AggregationFailure(HTTPException):
    """An upstream fetch failed; the whole report is aborted."""

    def __init__(self, detail: str = "Report data could not be collected.") -> None:
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)
