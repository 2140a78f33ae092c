"""
Health and metrics endpoints
Liveness, readiness and startup probes plus Prometheus exposition
"""

import logging
from typing import List

import psutil
from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, Gauge, generate_latest

from sample_app.core.dependencies import ServiceRegistry, get_registry
from sample_app.schemas.sample import HealthCheck, HealthResponse

logger = logging.getLogger(__name__)
router = APIRouter()
metrics_router = APIRouter()

SHARED_REQUEST_COUNT = Gauge(
    "sample_app_request_count",
    "Current value of the shared request counter reported by /api/stats"
)

MEMORY_DOWN_PERCENT = 95.0


def _liveness_checks() -> List[HealthCheck]:
    memory = psutil.virtual_memory()
    rss_mb = psutil.Process().memory_info().rss // (1024 * 1024)
    return [
        HealthCheck(
            name="memory",
            status="UP" if memory.percent < MEMORY_DOWN_PERCENT else "DOWN",
            data={"processRssMb": rss_mb, "systemPercentUsed": memory.percent}
        )
    ]


def _readiness_checks(registry: ServiceRegistry) -> List[HealthCheck]:
    return [HealthCheck(name="sample-service", status="UP" if registry.ready else "DOWN")]


def _startup_checks(registry: ServiceRegistry) -> List[HealthCheck]:
    return [HealthCheck(name="application-started", status="UP" if registry.started else "DOWN")]


def _health_response(checks: List[HealthCheck]) -> JSONResponse:
    status = "UP" if all(check.status == "UP" for check in checks) else "DOWN"
    body = HealthResponse(status=status, checks=checks)
    if status != "UP":
        logger.warning(f"Health check DOWN: {[c.name for c in checks if c.status != 'UP']}")
    return JSONResponse(status_code=200 if status == "UP" else 503, content=body.model_dump())


@router.get("/health")
async def health(registry: ServiceRegistry = Depends(get_registry)):
    """Aggregate of all probes"""
    return _health_response(
        _liveness_checks() + _readiness_checks(registry) + _startup_checks(registry)
    )


@router.get("/health/live")
async def health_live():
    return _health_response(_liveness_checks())


@router.get("/health/ready")
async def health_ready(registry: ServiceRegistry = Depends(get_registry)):
    return _health_response(_readiness_checks(registry))


@router.get("/health/started")
async def health_started(registry: ServiceRegistry = Depends(get_registry)):
    return _health_response(_startup_checks(registry))


@metrics_router.get("/metrics", include_in_schema=False)
async def metrics():
    """Prometheus text exposition"""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def bind_request_count(registry: ServiceRegistry) -> None:
    """Point the shared-counter gauge at the registry's live service"""
    SHARED_REQUEST_COUNT.set_function(
        lambda: registry.sample_service.counter.get() if registry.sample_service else 0
    )
