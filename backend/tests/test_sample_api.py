"""
API Tests: /api endpoints
=========================

End-to-end behaviour through the FastAPI application:
1. Success payloads and counting
2. Declarative validation (400 with violations)
3. Missing echo body and interrupted slow calls
4. Info gating, unknown routes and methods
5. Concurrency through the HTTP layer
"""

import asyncio
import json
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient

from sample_app.core.config import Settings
from sample_app.main import create_app


def _violation_fields(response):
    return [v["field"] for v in response.json()["violations"]]


class TestHello:
    """GET /api/hello and /api/hello/{name}"""

    def test_hello(self, client):
        response = client.get("/api/hello")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Hello from Liberty!"
        assert "timestamp" in body
        assert response.headers["content-type"].startswith("application/json")

    @pytest.mark.parametrize("name", ["World", "Alice", "O'Connor-Smith", "日本語"])
    def test_hello_name(self, client, name):
        response = client.get(f"/api/hello/{name}")

        assert response.status_code == 200
        assert response.json()["message"] == f"Hello, {name}!"

    def test_hello_name_accepts_max_length(self, client):
        name = "a" * 100
        response = client.get(f"/api/hello/{name}")
        assert response.status_code == 200

    def test_hello_name_rejects_oversized_name(self, client):
        response = client.get(f"/api/hello/{'a' * 101}")

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        assert body["violations"] == [
            {"field": "name", "message": "Name must be between 1 and 100 characters"}
        ]
        assert client.get("/api/stats").json()["totalRequests"] == 0

    def test_hello_name_rejects_whitespace_only(self, client):
        response = client.get("/api/hello/%20%20%20")

        assert response.status_code == 400
        assert response.json()["violations"] == [{"field": "name", "message": "Name cannot be blank"}]


class TestEcho:
    """POST /api/echo"""

    def test_echo(self, client):
        response = client.post("/api/echo", json={"message": "Hello, World!"})

        assert response.status_code == 200
        body = response.json()
        assert body["echo"] == "Hello, World!"
        assert body["length"] == 13
        assert "timestamp" in body

    def test_echo_unicode_length(self, client):
        response = client.post("/api/echo", json={"message": "日本語"})
        assert response.json()["length"] == 3

    def test_echo_accepts_max_size(self, client):
        response = client.post("/api/echo", json={"message": "x" * 10000})

        assert response.status_code == 200
        assert response.json()["length"] == 10000

    def test_echo_rejects_oversized_message(self, client):
        response = client.post("/api/echo", json={"message": "x" * 10001})

        assert response.status_code == 400
        violation = response.json()["violations"][0]
        assert violation["field"] == "message"
        assert "10000" in violation["message"]

    @pytest.mark.parametrize("payload", [{"message": ""}, {"message": "   "}, {}])
    def test_echo_rejects_blank_or_missing_message(self, client, payload):
        response = client.post("/api/echo", json=payload)

        assert response.status_code == 400
        assert _violation_fields(response) == ["message"]

    def test_echo_missing_body(self, client):
        response = client.post("/api/echo")

        assert response.status_code == 400
        assert response.json() == {"error": "Request body is required"}
        assert client.get("/api/stats").json()["totalRequests"] == 0

    def test_echo_null_body(self, client):
        response = client.post(
            "/api/echo", content="null", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Request body is required"}

    def test_echo_invalid_json(self, client):
        response = client.post(
            "/api/echo", content="{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"
        assert _violation_fields(response) == ["body"]


class TestSlow:
    """GET /api/slow"""

    def test_slow_respects_delay(self, client):
        start = time.monotonic()
        response = client.get("/api/slow", params={"delay": 500})
        elapsed = time.monotonic() - start

        assert response.status_code == 200
        assert response.json()["delayMs"] == 500
        assert 0.4 <= elapsed < 1.0

    def test_slow_default_delay(self, client):
        start = time.monotonic()
        response = client.get("/api/slow")

        assert response.json()["delayMs"] == 1000
        assert time.monotonic() - start >= 0.9

    def test_slow_zero_delay(self, client):
        response = client.get("/api/slow", params={"delay": 0})
        assert response.json()["delayMs"] == 0

    @pytest.mark.parametrize("delay, message", [
        (-1, "Delay must be non-negative"),
        (10001, "Delay cannot exceed 10000ms"),
    ])
    def test_slow_rejects_out_of_range_delay(self, client, delay, message):
        response = client.get("/api/slow", params={"delay": delay})

        assert response.status_code == 400
        assert response.json()["violations"] == [{"field": "delay", "message": message}]

    def test_slow_interrupted_by_shutdown_returns_503(self, client, service):
        responses = []
        worker = threading.Thread(
            target=lambda: responses.append(client.get("/api/slow", params={"delay": 5000}))
        )
        worker.start()
        time.sleep(0.3)

        start = time.monotonic()
        assert service.shutdown() == 1
        worker.join(timeout=3)

        assert not worker.is_alive()
        assert time.monotonic() - start < 2
        assert responses[0].status_code == 503
        assert responses[0].json() == {"error": "Request interrupted"}
        assert client.get("/api/stats").json()["totalRequests"] == 0

    @pytest.mark.asyncio
    async def test_slow_interrupted_by_client_disconnect(self, app, service):
        started = time.monotonic()
        request_delivered = False
        sent = []

        async def receive():
            nonlocal request_delivered
            if not request_delivered:
                request_delivered = True
                return {"type": "http.request", "body": b"", "more_body": False}
            if time.monotonic() - started >= 0.2:
                return {"type": "http.disconnect"}
            await asyncio.Event().wait()

        async def send(message):
            sent.append(message)

        scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": "GET",
            "scheme": "http",
            "path": "/api/slow",
            "raw_path": b"/api/slow",
            "root_path": "",
            "query_string": b"delay=5000",
            "headers": [(b"host", b"testserver")],
            "client": ("127.0.0.1", 50000),
            "server": ("testserver", 80),
        }

        await asyncio.wait_for(app(scope, receive, send), timeout=3)

        assert time.monotonic() - started < 2
        start_message = next(m for m in sent if m["type"] == "http.response.start")
        assert start_message["status"] == 503
        body = b"".join(m.get("body", b"") for m in sent if m["type"] == "http.response.body")
        assert json.loads(body) == {"error": "Request interrupted"}
        assert service.stats().totalRequests == 0
        assert len(service.cancellation_scope) == 0


class TestCompute:
    """GET /api/compute"""

    def test_compute(self, client):
        response = client.get("/api/compute", params={"iterations": 1000})

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Computation completed"
        assert body["iterations"] == 1000
        assert isinstance(body["result"], float)
        assert body["durationMs"] >= 0

    def test_compute_is_deterministic(self, client):
        first = client.get("/api/compute", params={"iterations": 5000}).json()
        second = client.get("/api/compute", params={"iterations": 5000}).json()
        assert first["result"] == second["result"]

    def test_compute_default_iterations(self, client):
        response = client.get("/api/compute")
        assert response.json()["iterations"] == 1000000

    @pytest.mark.parametrize("iterations", [0, 10000001])
    def test_compute_rejects_out_of_range(self, client, iterations):
        response = client.get("/api/compute", params={"iterations": iterations})

        assert response.status_code == 400
        assert _violation_fields(response) == ["iterations"]

    def test_compute_rejects_non_integer(self, client):
        response = client.get("/api/compute", params={"iterations": "many"})
        assert response.status_code == 400


class TestStats:
    """GET /api/stats and POST /api/stats/reset"""

    def test_stats_fields(self, client):
        body = client.get("/api/stats").json()

        assert body["totalRequests"] == 0
        assert body["appUptime"].startswith("PT")
        assert body["startTime"].endswith("Z")
        assert body["currentTime"].endswith("Z")

    def test_end_to_end_count(self, client):
        client.get("/api/hello")
        client.get("/api/hello")
        client.get("/api/hello/Test")
        client.post("/api/echo", json={"message": "test"})

        assert client.get("/api/stats").json()["totalRequests"] == 4

    def test_reset(self, client):
        for _ in range(3):
            client.get("/api/hello")

        response = client.post("/api/stats/reset", headers={"X-Admin-Key": "secret"})

        assert response.status_code == 200
        assert response.json() == {"message": "Statistics reset", "previousRequestCount": 3}
        assert client.get("/api/stats").json()["totalRequests"] == 0

    def test_reset_without_admin_key(self, client):
        client.get("/api/hello")
        assert client.post("/api/stats/reset").json()["previousRequestCount"] == 1

    def test_concurrent_requests_are_all_counted(self, client):
        total = 60

        def call(i):
            if i % 3 == 0:
                return client.get("/api/hello")
            if i % 3 == 1:
                return client.get(f"/api/hello/user{i}")
            return client.post("/api/echo", json={"message": f"msg {i}"})

        with ThreadPoolExecutor(max_workers=8) as pool:
            statuses = [r.status_code for r in pool.map(call, range(total))]

        assert statuses == [200] * total
        assert client.get("/api/stats").json()["totalRequests"] == total


class TestInfo:
    """GET /api/info"""

    def test_info_not_found_when_disabled(self, client):
        response = client.get("/api/info")

        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}
        assert client.get("/api/stats").json()["totalRequests"] == 0

    def test_info_when_enabled(self, debug_client):
        response = debug_client.get("/api/info")

        assert response.status_code == 200
        body = response.json()
        for key in (
            "hostname", "runtimeVersion", "runtimeVendor", "javaVendor", "osName", "osArch",
            "availableProcessors", "heapMemoryUsed", "heapMemoryMax", "uptime",
            "requestCount", "appUptime"
        ):
            assert key in body
        assert body["requestCount"] == 1


class TestErrorHandling:
    """Framework-level errors keep the JSON shape"""

    def test_unknown_route(self, client):
        response = client.get("/api/nonexistent")

        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}

    def test_unsupported_method(self, client):
        response = client.delete("/api/hello")

        assert response.status_code == 405
        assert response.json() == {"error": "Method Not Allowed"}

    def test_unhandled_exception_is_hidden(self, app_settings):
        app = create_app(app_settings)

        @app.get("/boom")
        async def boom():
            raise RuntimeError("database password=hunter2hunter2")

        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Internal Server Error"
        assert "hunter2" not in response.text
        assert body["timestamp"].endswith("Z")

    def test_custom_api_prefix(self, service):
        settings = Settings(API_PREFIX="/v2")
        with TestClient(create_app(settings, service=service)) as client:
            assert client.get("/v2/hello").status_code == 200
            assert client.get("/api/hello").status_code == 404
