"""
Sample API endpoints for testing and load testing
Boundary layer: declarative validation, dependency wiring and status mapping
"""

import asyncio
import logging
from typing import Optional, Union

from fastapi import APIRouter, Body, Depends, Header, Path, Query, Request
from fastapi.responses import JSONResponse

from sample_app.core.config import Settings
from sample_app.core.dependencies import get_app_settings, get_sample_service
from sample_app.core.exceptions import (
    FeatureDisabledException, ValidationException, status_code_for_category
)
from sample_app.schemas.sample import (
    ComputeResult, EchoRequest, EchoResult, ErrorResult, GreetingResult, InfoResult,
    ResetResult, SlowResult, StatsResult,
    DEFAULT_DELAY_MS, DEFAULT_ITERATIONS, MAX_DELAY_MS, MAX_ITERATIONS, NAME_MAX_LENGTH
)
from sample_app.services.cancellation import CancellationToken
from sample_app.services.sample_service import SampleService

logger = logging.getLogger(__name__)
router = APIRouter()

DISCONNECT_POLL_SECONDS = 0.1


def _error_response(result: ErrorResult) -> JSONResponse:
    return JSONResponse(
        status_code=status_code_for_category(result.category),
        content=result.model_dump()
    )


def _respond(outcome: Union[ErrorResult, object]):
    if isinstance(outcome, ErrorResult):
        return _error_response(outcome)
    return outcome


async def _cancel_on_disconnect(request: Request, token: CancellationToken) -> None:
    """Cancel the token once the client goes away"""
    while not token.cancelled:
        if await request.is_disconnected():
            token.cancel("client disconnected")
            return
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


@router.get("/hello", response_model=GreetingResult)
async def hello(service: SampleService = Depends(get_sample_service)):
    """Simple greeting"""
    return service.greet()


@router.get("/hello/{name}", response_model=GreetingResult)
async def hello_name(
    name: str = Path(..., min_length=1, max_length=NAME_MAX_LENGTH, description="Name to greet"),
    service: SampleService = Depends(get_sample_service)
):
    """Greeting with a name; the name is returned verbatim"""
    if not name.strip():
        raise ValidationException("Name cannot be blank", field="name", value=name)
    return service.greet_name(name)


@router.get("/info", response_model=InfoResult)
async def info(
    service: SampleService = Depends(get_sample_service),
    settings: Settings = Depends(get_app_settings)
):
    """Server information, only when ENABLE_DEBUG_ENDPOINTS is set"""
    if not settings.ENABLE_DEBUG_ENDPOINTS:
        raise FeatureDisabledException("info")
    return service.info()


@router.post("/echo", response_model=EchoResult)
async def echo(
    payload: Optional[EchoRequest] = Body(default=None),
    service: SampleService = Depends(get_sample_service)
):
    """Echo endpoint - returns what you send"""
    return _respond(service.echo(payload))


@router.get("/slow", response_model=SlowResult)
async def slow(
    request: Request,
    delay: int = Query(default=DEFAULT_DELAY_MS, ge=0, le=MAX_DELAY_MS, description="Delay in milliseconds"),
    service: SampleService = Depends(get_sample_service)
):
    """Simulated slow endpoint; answers 503 if interrupted by disconnect or shutdown"""
    token = service.cancellation_scope.open()
    watcher = asyncio.create_task(_cancel_on_disconnect(request, token))
    try:
        outcome = await service.slow(delay, token)
    finally:
        watcher.cancel()
        service.cancellation_scope.close(token)
    return _respond(outcome)


@router.get("/compute", response_model=ComputeResult)
def compute(
    iterations: int = Query(default=DEFAULT_ITERATIONS, ge=1, le=MAX_ITERATIONS, description="Loop iterations"),
    service: SampleService = Depends(get_sample_service)
):
    """CPU-intensive endpoint; sync so it runs in the worker thread pool"""
    return service.compute(iterations)


@router.get("/stats", response_model=StatsResult)
async def stats(service: SampleService = Depends(get_sample_service)):
    """Request statistics"""
    return service.stats()


@router.post("/stats/reset", response_model=ResetResult)
async def reset_stats(
    x_admin_key: Optional[str] = Header(default=None),
    service: SampleService = Depends(get_sample_service)
):
    """Reset the request counter"""
    return service.reset_stats(x_admin_key)
