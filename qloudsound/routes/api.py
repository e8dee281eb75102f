"""
QloudSound API - Service Routes

Service-level endpoints:
- ``GET /``        — service name, version and where it runs
- ``GET /health``  — liveness

Every path also matches with a trailing slash (no redirect).
"""

import time

from fastapi import APIRouter, Request

from qloudsound.config import APP_REGION, APP_VERSION, DOCS_URL, SERVICE_NAME
from qloudsound.utils import PrettyJSONResponse, json_response, utc_now_iso

router = APIRouter(tags=["Service"], default_response_class=PrettyJSONResponse)

# Track startup time for health check
_START_TIME = time.time()


@router.get("/")
async def service_info(request: Request):
    """Identify the service."""
    return json_response(
        {
            "service": SERVICE_NAME,
            "version": APP_VERSION,
            "docs": DOCS_URL,
            "hostname": request.url.hostname,
            "region": APP_REGION,
        }
    )


@router.get("/health")
@router.get("/health/", include_in_schema=False)
async def health_check():
    """Liveness probe."""
    return json_response(
        {
            "status": "ok",
            "timestamp": utc_now_iso(),
            "uptime_seconds": round(time.time() - _START_TIME, 2),
        }
    )
