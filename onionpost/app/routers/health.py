"""
Health and metrics endpoints.

``/healthz`` has no database dependency so it stays fast for load balancer
checks even when PostgreSQL is degraded.

Example:
    ```bash
    curl http://localhost:8000/v1/healthz
    # Response: {"ok": true}
    ```
"""

from fastapi import APIRouter, Response

from ..config import settings
from ..utils.metrics import metrics_response

router = APIRouter()
monitoring_router = APIRouter(tags=["monitoring"])


@router.get("/healthz", response_model=dict[str, bool])
def healthz() -> dict[str, bool]:
    """Liveness check returning ``{"ok": true}``."""
    return {"ok": True}


@monitoring_router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    """Prometheus scrape endpoint; 404 when metrics are disabled."""
    if not settings.METRICS_ENABLED:
        return Response(status_code=404)
    payload, content_type = metrics_response()
    return Response(content=payload, media_type=content_type)
