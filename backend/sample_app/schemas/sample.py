"""
Pydantic schemas for the sample API
Request model plus one result record per endpoint, serialized with camelCase wire names
"""

from pydantic import BaseModel, Field, field_validator
from typing import List, Union

from sample_app.core.exceptions import ErrorCategory


NAME_MAX_LENGTH = 100
MESSAGE_MAX_LENGTH = 10_000

DEFAULT_DELAY_MS = 1000
MAX_DELAY_MS = 10_000

DEFAULT_ITERATIONS = 1_000_000
MAX_ITERATIONS = 10_000_000


class EchoRequest(BaseModel):
    """Body of POST /echo"""
    message: str = Field(..., min_length=1, max_length=MESSAGE_MAX_LENGTH, description="Text to echo back")

    @field_validator("message")
    @classmethod
    def validate_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Message cannot be blank")
        return v


class GreetingResult(BaseModel):
    message: str
    timestamp: str


class EchoResult(BaseModel):
    echo: str
    timestamp: str
    length: int


class SlowResult(BaseModel):
    message: str
    delayMs: int
    timestamp: str


class ComputeResult(BaseModel):
    message: str
    iterations: int
    result: float
    durationMs: int
    timestamp: str


class StatsResult(BaseModel):
    totalRequests: int
    appUptime: str
    startTime: str
    currentTime: str


class ResetResult(BaseModel):
    message: str
    previousRequestCount: int


class InfoResult(BaseModel):
    hostname: str
    runtimeVersion: str
    runtimeVendor: str
    javaVendor: str
    osName: str
    osArch: str
    availableProcessors: int
    heapMemoryUsed: str
    heapMemoryMax: str
    uptime: str
    requestCount: int
    appUptime: str


class ErrorResult(BaseModel):
    """Handled failure returned by a service operation instead of raising"""
    error: str
    category: ErrorCategory = Field(..., exclude=True)


class HealthCheck(BaseModel):
    name: str
    status: str
    data: dict = Field(default_factory=dict)


class HealthResponse(BaseModel):
    status: str
    checks: List[HealthCheck] = Field(default_factory=list)


EchoOutcome = Union[EchoResult, ErrorResult]
SlowOutcome = Union[SlowResult, ErrorResult]
