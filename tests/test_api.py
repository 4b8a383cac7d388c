# tests/test_api.py - API endpoint tests
import pytest
from fastapi.testclient import TestClient
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ingestion.models import ChartSpec, Number, Text
from ingestion.pipeline import PipelineResult
from server import create_app
from utils.rate_limiter import RateLimiter


class FakePipeline:
    """Records the URLs it was asked for and returns a canned result."""

    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def process(self, urls):
        self.calls.append(list(urls))
        if self.error:
            raise self.error
        chart = ChartSpec(kind="bar", rows=({"k": Text("a"), "v": Number(1)}, {"k": Text("b"), "v": Number(2)}))
        return PipelineResult(
            context="\n\n".join(f"Source: {url}" for url in urls),
            sources=list(urls),
            visualizations=[chart] if urls else [],
        )


@pytest.fixture
def pipeline():
    return FakePipeline()


@pytest.fixture
def client(store, pipeline):
    limiter = RateLimiter(store, max_requests=3, window_seconds=60)
    return TestClient(create_app(store=store, pipeline=pipeline, limiter=limiter))


class TestHealthEndpoint:
    """Tests for the /health endpoint."""

    def test_health_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_returns_status(self, client):
        data = client.get("/health").json()
        assert data["status"] == "running"
        assert data["store"] == "memory"

    def test_health_without_store(self, pipeline):
        app = create_app(store=None, pipeline=pipeline, limiter=RateLimiter(None))
        data = TestClient(app).get("/health").json()
        assert data["store"] == "unconfigured"


class TestLimitsEndpoint:
    """Tests for the /limits endpoint."""

    def test_limits_sections(self, client):
        data = client.get("/limits").json()
        assert data["input_limits"]["max_urls_per_request"] == 10
        assert data["extraction_limits"]["max_context_length"] == 12000
        assert "window_seconds" in data["rate_limits"]


class TestExtractEndpoint:
    """Tests for the /extract endpoint."""

    def test_extract_success(self, client, pipeline):
        response = client.post("/extract", json={
            "message": "Summarize this",
            "urls": ["https://example.com/post"]
        })
        assert response.status_code == 200
        data = response.json()
        assert data["sources"] == ["https://example.com/post"]
        assert data["context"] == "Source: https://example.com/post"
        assert data["visualizations"] == [{"kind": "bar", "rows": [{"k": "a", "v": 1}, {"k": "b", "v": 2}]}]
        assert data["degraded"] == []
        assert pipeline.calls == [["https://example.com/post"]]

    def test_extract_rate_limit_headers(self, client):
        response = client.post("/extract", json={"message": "hi", "urls": ["https://example.com/post"]})
        assert response.headers["X-RateLimit-Limit"] == "3"
        assert response.headers["X-RateLimit-Remaining"] == "2"

    def test_urls_taken_from_message(self, client, pipeline):
        response = client.post("/extract", json={
            "message": "Compare https://example.com/a, and https://example.com/b. Also http://localhost/x"
        })
        assert response.status_code == 200
        assert pipeline.calls == [["https://example.com/a", "https://example.com/b"]]

    def test_message_without_urls(self, client, pipeline):
        response = client.post("/extract", json={"message": "Just a question"})
        assert response.status_code == 200
        assert response.json()["sources"] == []
        assert pipeline.calls == [[]]

    def test_pipeline_error_returns_500(self, store):
        app = create_app(store=store, pipeline=FakePipeline(error=RuntimeError("boom")), limiter=RateLimiter(store))
        response = TestClient(app).post("/extract", json={"message": "hi", "urls": ["https://example.com/"]})
        assert response.status_code == 500

    def test_get_not_allowed(self, client):
        response = client.get("/extract")
        assert response.status_code == 405


class TestExtractValidation:
    """Request validation errors are 422s."""

    def test_missing_message(self, client):
        response = client.post("/extract", json={"urls": ["https://example.com"]})
        assert response.status_code == 422

    def test_empty_message(self, client):
        response = client.post("/extract", json={"message": "   ", "urls": ["https://example.com"]})
        assert response.status_code == 422

    def test_message_too_long(self, client):
        response = client.post("/extract", json={"message": "a" * 4001})
        assert response.status_code == 422

    def test_invalid_url_no_scheme(self, client):
        response = client.post("/extract", json={"message": "hi", "urls": ["example.com/page"]})
        assert response.status_code == 422

    def test_invalid_url_bad_scheme(self, client):
        response = client.post("/extract", json={"message": "hi", "urls": ["ftp://example.com/file"]})
        assert response.status_code == 422

    def test_localhost_blocked(self, client):
        response = client.post("/extract", json={"message": "hi", "urls": ["http://localhost:8080"]})
        assert response.status_code == 422

    def test_url_too_long(self, client):
        long_url = "https://example.com/" + "a" * 2100
        response = client.post("/extract", json={"message": "hi", "urls": [long_url]})
        assert response.status_code == 422

    def test_too_many_urls(self, client):
        urls = [f"https://example.com/{i}" for i in range(11)]
        response = client.post("/extract", json={"message": "hi", "urls": urls})
        assert response.status_code == 422

    def test_invalid_json_body(self, client):
        response = client.post(
            "/extract",
            content="not valid json",
            headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 422


class TestRateLimiting:
    """Fixed-window limiting on /extract."""

    def test_quota_exhausted_returns_429(self, client):
        body = {"message": "hi", "urls": ["https://example.com/post"]}
        statuses = [client.post("/extract", json=body).status_code for _ in range(4)]
        assert statuses == [200, 200, 200, 429]

    def test_retry_after_is_window_length(self, client):
        body = {"message": "hi", "urls": ["https://example.com/post"]}
        for _ in range(3):
            client.post("/extract", json=body)
        response = client.post("/extract", json=body)
        assert response.headers["Retry-After"] == "60"

    def test_forwarded_clients_counted_separately(self, client):
        body = {"message": "hi", "urls": ["https://example.com/post"]}
        for _ in range(3):
            client.post("/extract", json=body, headers={"X-Forwarded-For": "203.0.113.7"})
        response = client.post("/extract", json=body, headers={"X-Forwarded-For": "198.51.100.2"})
        assert response.status_code == 200

    def test_store_outage_fails_open(self, broken_store, pipeline):
        app = create_app(store=broken_store, pipeline=pipeline, limiter=RateLimiter(broken_store, max_requests=1))
        client = TestClient(app)
        body = {"message": "hi", "urls": ["https://example.com/post"]}

        responses = [client.post("/extract", json=body) for _ in range(3)]
        assert [r.status_code for r in responses] == [200, 200, 200]
        assert "connection refused" in responses[-1].json()["degraded"][0]


# Run tests with: pytest tests/test_api.py -v
if __name__ == "__main__":
    pytest.main([__file__, "-v"])
