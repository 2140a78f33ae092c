"""
Sample Service Module

Demonstration and load-testing operations backed by a shared request counter.
Each operation returns a typed result record; handled failures come back as
ErrorResult values so the HTTP layer can map them to status codes uniformly.
"""

import logging
import math
import os
import platform
import socket
import time
from datetime import datetime, timedelta
from typing import Optional

import psutil

from sample_app.core.exceptions import ErrorCategory
from sample_app.schemas.sample import (
    ComputeResult, EchoOutcome, EchoRequest, EchoResult, ErrorResult,
    GreetingResult, InfoResult, ResetResult, SlowOutcome, SlowResult, StatsResult,
    DEFAULT_DELAY_MS, DEFAULT_ITERATIONS
)
from sample_app.services.cancellation import CancellationScope, CancellationToken
from sample_app.services.request_counter import RequestCounter
from sample_app.utils.time_format import format_duration, format_instant

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024


def accumulate(iterations: int) -> float:
    """
    Deterministic floating-point workload: sum of sqrt(i) * sin(i) for i < iterations.

    The result depends on iterations only.
    """
    result = 0.0
    sqrt = math.sqrt
    sin = math.sin
    for i in range(iterations):
        result += sqrt(i) * sin(i)
    return result


class SampleService:
    """
    Service class behind the /api endpoints.

    Owns no global state: the request counter and the cancellation scope are
    injected (or created per instance), so tests and the application each get
    their own.
    """

    def __init__(
        self,
        counter: Optional[RequestCounter] = None,
        cancellation_scope: Optional[CancellationScope] = None
    ):
        self.counter = counter or RequestCounter()
        self.cancellation_scope = cancellation_scope or CancellationScope()

    def _now(self) -> datetime:
        return self.counter.now()

    def _timestamp(self) -> str:
        return format_instant(self._now())

    def greet(self) -> GreetingResult:
        logger.debug("Hello endpoint called")
        self.counter.increment()
        return GreetingResult(message="Hello from Liberty!", timestamp=self._timestamp())

    def greet_name(self, name: str) -> GreetingResult:
        logger.debug("Hello endpoint called with name parameter")
        self.counter.increment()
        return GreetingResult(message=f"Hello, {name}!", timestamp=self._timestamp())

    def echo(self, request: Optional[EchoRequest]) -> EchoOutcome:
        """
        Echo the message back with its length in code points.

        A missing body is reported as MISSING_INPUT and is not counted.
        """
        if request is None:
            logger.info("Echo request rejected: body is missing")
            return ErrorResult(error="Request body is required", category=ErrorCategory.MISSING_INPUT)

        self.counter.increment()
        message = request.message
        logger.debug(f"Echo request received, message length: {len(message)}")
        return EchoResult(echo=message, timestamp=self._timestamp(), length=len(message))

    async def slow(self, delay_ms: int = DEFAULT_DELAY_MS, token: Optional[CancellationToken] = None) -> SlowOutcome:
        """
        Suspend for delay_ms milliseconds, then count the request.

        Args:
            delay_ms: Delay in milliseconds (range is enforced by the caller)
            token: Cancellation token; a fresh one registered with this
                service's scope is used when omitted

        Returns:
            SlowResult on completion, ErrorResult(INTERRUPTED) if the token was
            cancelled first. An interrupted call is not counted.
        """
        logger.debug(f"Slow endpoint called with delay: {delay_ms}ms")
        owned = token is None
        if owned:
            token = self.cancellation_scope.open()

        try:
            completed = await token.sleep(delay_ms / 1000.0)
        finally:
            if owned:
                self.cancellation_scope.close(token)

        if not completed:
            logger.warning(f"Slow endpoint interrupted during sleep ({token.reason})")
            return ErrorResult(error="Request interrupted", category=ErrorCategory.INTERRUPTED)

        self.counter.increment()
        logger.debug(f"Slow endpoint completed after {delay_ms}ms delay")
        return SlowResult(message="Slow response completed", delayMs=delay_ms, timestamp=self._timestamp())

    def compute(self, iterations: int = DEFAULT_ITERATIONS) -> ComputeResult:
        """CPU-bound workload; blocking, so async callers should run it in a worker thread"""
        logger.debug(f"Compute endpoint called with iterations: {iterations}")

        start = time.perf_counter_ns()
        result = accumulate(iterations)
        duration_ms = (time.perf_counter_ns() - start) // 1_000_000
        self.counter.increment()

        logger.debug(f"Compute completed: {iterations} iterations in {duration_ms}ms")
        return ComputeResult(
            message="Computation completed",
            iterations=iterations,
            result=result,
            durationMs=duration_ms,
            timestamp=self._timestamp()
        )

    def stats(self) -> StatsResult:
        total = self.counter.get()
        now = self._now()
        logger.debug(f"Returning stats: totalRequests={total}")
        return StatsResult(
            totalRequests=total,
            appUptime=format_duration(now - self.counter.start_time),
            startTime=format_instant(self.counter.start_time),
            currentTime=format_instant(now)
        )

    def reset_stats(self, admin_key: Optional[str] = None) -> ResetResult:
        """
        Atomically zero the counter.

        The admin key is accepted for compatibility with existing clients but
        is not checked.
        """
        logger.info(f"Statistics reset requested (admin key {'present' if admin_key else 'absent'})")
        previous = self.counter.reset()
        logger.info(f"Statistics reset completed, previous request count: {previous}")
        return ResetResult(message="Statistics reset", previousRequestCount=previous)

    def info(self) -> InfoResult:
        """Host and runtime details; only reachable when debug endpoints are enabled"""
        logger.debug("Info endpoint called")
        request_count = self.counter.increment()

        try:
            hostname = socket.gethostname() or "unknown"
        except OSError as e:
            logger.warning(f"Failed to resolve hostname, using 'unknown': {e}")
            hostname = "unknown"

        process = psutil.Process()
        memory = process.memory_info()
        process_uptime = time.time() - process.create_time()
        now = self._now()
        vendor = platform.python_implementation() or "unknown"

        return InfoResult(
            hostname=hostname,
            runtimeVersion=platform.python_version() or "unknown",
            runtimeVendor=vendor,
            javaVendor=vendor,
            osName=platform.system() or "unknown",
            osArch=platform.machine() or "unknown",
            availableProcessors=os.cpu_count() or 1,
            heapMemoryUsed=f"{memory.rss // BYTES_PER_MB} MB",
            heapMemoryMax=f"{psutil.virtual_memory().total // BYTES_PER_MB} MB",
            uptime=format_duration(timedelta(milliseconds=int(max(process_uptime, 0.0) * 1000))),
            requestCount=request_count,
            appUptime=format_duration(now - self.counter.start_time)
        )

    def shutdown(self) -> int:
        """Interrupt every in-flight slow call; returns how many were cancelled"""
        return self.cancellation_scope.cancel_all("shutdown")
