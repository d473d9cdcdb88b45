"""Health check endpoints."""

from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
def health() -> dict[str, str]:
    """Liveness endpoint for the reporting API."""

    return {"status": "ok", "service": "pmreport"}
