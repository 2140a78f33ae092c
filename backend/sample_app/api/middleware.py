"""
Middleware components for the sample service
Logging, security headers and request metrics

Plain ASGI middleware; the receive channel is passed through unchanged.
"""

from prometheus_client import Counter, Histogram
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send
import logging
import time
import uuid


logger = logging.getLogger(__name__)

HTTP_REQUESTS_TOTAL = Counter(
    "sample_http_requests_total",
    "HTTP requests handled, by route template, method and status",
    ["method", "route", "status"]
)
HTTP_REQUEST_DURATION = Histogram(
    "sample_http_request_duration_seconds",
    "HTTP request latency, by route template and method",
    ["method", "route"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 15.0)
)

SECURITY_HEADERS = {
    # Prevent MIME type sniffing
    "X-Content-Type-Options": "nosniff",
    # Disallow framing
    "X-Frame-Options": "DENY",
    # API responses must not be cached
    "Cache-Control": "no-store",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}
API_CSP = "default-src 'none'; frame-ancestors 'none';"
DOCS_CSP = (
    "default-src 'self'; "
    "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
    "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
    "img-src 'self' data: https://fastapi.tiangolo.com;"
)


def _route_template(scope: Scope) -> str:
    """
    Full path template (e.g. /api/hello/{name}) of the matched route.

    Depending on the framework version the route may only know the part of
    its path below the router prefix, so the prefix is recovered from the
    concrete request path.
    """
    route = scope.get("route")
    template = getattr(route, "path", None)
    if not template:
        return "unmatched"

    path = scope.get("path", "")
    path_regex = getattr(route, "path_regex", None)
    if path_regex is None or path_regex.match(path):
        return template

    for index, char in enumerate(path):
        if char == "/" and index > 0 and path_regex.match(path[index:]):
            return path[:index] + template
    return template


class LoggingMiddleware:
    """Middleware for request/response logging"""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        # Generate request ID for tracing
        request_id = str(uuid.uuid4())[:8]
        start_time = time.perf_counter()
        client = scope.get("client")

        logger.info(
            f"[{request_id}] {scope['method']} {scope['path']} "
            f"from {client[0] if client else 'unknown'}"
        )
        scope.setdefault("state", {})["request_id"] = request_id

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                process_time = time.perf_counter() - start_time
                logger.info(
                    f"[{request_id}] {message['status']} "
                    f"completed in {process_time:.3f}s"
                )
                headers = MutableHeaders(scope=message)
                headers["X-Request-ID"] = request_id
                headers["X-Process-Time"] = f"{process_time:.3f}"
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as e:
            process_time = time.perf_counter() - start_time
            logger.error(
                f"[{request_id}] Request failed in {process_time:.3f}s: {type(e).__name__}"
            )
            raise


class MetricsMiddleware:
    """Records request count and latency for Prometheus"""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["path"] == "/metrics":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        status_code = 500

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            route = _route_template(scope)
            HTTP_REQUESTS_TOTAL.labels(scope["method"], route, str(status_code)).inc()
            HTTP_REQUEST_DURATION.labels(scope["method"], route).observe(
                time.perf_counter() - start_time
            )


class SecurityHeadersMiddleware:
    """Adds security headers to every response"""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        is_docs = scope["path"].startswith(("/docs", "/redoc"))

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in SECURITY_HEADERS.items():
                    headers[name] = value
                headers["Content-Security-Policy"] = DOCS_CSP if is_docs else API_CSP
            await send(message)

        await self.app(scope, receive, send_wrapper)
