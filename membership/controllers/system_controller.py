# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: System endpoints, health, readiness, metrics.
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from membership.core.config import settings
from membership.core.dependencies import (
    get_action_spec_repo,
    get_member_repo,
    get_queue_repo,
)

router = APIRouter(tags=["System"])


@router.get("/health")
def health_check():
    """Liveness probe."""
    member_repo = get_member_repo()
    queue_repo = get_queue_repo()
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "members_count": member_repo.count(),
        "queue_depth": queue_repo.count(),
    }


@router.get("/health/ready")
def readiness_check():
    """Readiness probe: ready once the notification templates are loaded."""
    return {
        "status": "ready",
        "service": settings.SERVICE_NAME,
        "action_specs_loaded": get_action_spec_repo().count() > 0,
    }


@router.get("/metrics")
def prometheus_metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
