"""
Health probes.

Mounted at ``/health`` outside the versioned API so that load
balancers and orchestrators can reach them without a token.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from socialtend_api.app.core.clock import utcnow_iso
from socialtend_api.app.services import health_service

router = APIRouter()


@router.get("/live")
async def live() -> dict:
    return {"status": "alive", "timestamp": utcnow_iso()}


@router.get("/ready")
async def ready() -> JSONResponse:
    """200 when the database answers and error rate and memory are normal, else 503."""
    health = health_service.get_health_status()
    status_code = 200 if health["status"] == "healthy" else 503
    return JSONResponse(status_code=status_code, content=health)


@router.get("/metrics")
async def metrics() -> dict:
    return health_service.get_metrics()
