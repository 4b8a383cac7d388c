# server.py - FastAPI URL extraction server
import time
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, field_validator

from config import (
    ARTICLE_CRAWL_DEPTH,
    ARTICLE_CRAWL_PAGES,
    CACHE_TTL_SECONDS,
    EXTRACTION_DEADLINE_SECONDS,
    MAX_CONTENT_LENGTH,
    MAX_CONTEXT_LENGTH,
    MAX_MESSAGE_LENGTH,
    MAX_RESPONSE_BYTES,
    MAX_URL_LENGTH,
    MAX_URLS_PER_REQUEST,
    PDF_MAX_PAGES,
    PIPELINE_MAX_WORKERS,
    RATE_LIMIT_REQUESTS,
    RATE_LIMIT_WINDOW_SECONDS,
    REDIS_URL,
)
from ingestion.pipeline import ContentPipeline
from utils.cache import ContentCache
from utils.logger import get_server_logger
from utils.rate_limiter import RateLimiter, check_rate_limit
from utils.store import KeyValueStore, RedisStore, create_store
from utils.validators import URLValidationError, extract_urls, validate_message, validate_url

logger = get_server_logger()


# Request/Response Models
class ExtractRequest(BaseModel):
    message: str
    urls: List[str] = Field(default_factory=list)

    @field_validator("message")
    @classmethod
    def validate_message_text(cls, v):
        return validate_message(v)

    @field_validator("urls")
    @classmethod
    def validate_urls(cls, v):
        if len(v) > MAX_URLS_PER_REQUEST:
            raise ValueError(f"Too many URLs (max {MAX_URLS_PER_REQUEST})")
        try:
            return [validate_url(url) for url in v]
        except URLValidationError as e:
            raise ValueError(str(e))


class ChartModel(BaseModel):
    kind: str
    rows: List[dict]


class ExtractResponse(BaseModel):
    context: str
    sources: List[str]
    visualizations: List[ChartModel]
    degraded: List[str] = Field(default_factory=list)


def urls_for_request(request: ExtractRequest) -> List[str]:
    """Explicit URLs win; otherwise take valid URLs mentioned in the message."""
    if request.urls:
        return request.urls
    urls = []
    for url in extract_urls(request.message)[:MAX_URLS_PER_REQUEST]:
        try:
            urls.append(validate_url(url))
        except URLValidationError as e:
            logger.debug(f"Ignoring URL in message: {e}")
    return urls


def create_app(
    store: Optional[KeyValueStore] = None,
    pipeline: Optional[ContentPipeline] = None,
    limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    """Build the API with explicit store / pipeline / limiter collaborators."""
    if store is None:
        store = create_store(REDIS_URL)
    if pipeline is None:
        pipeline = ContentPipeline(cache=ContentCache(store))
    if limiter is None:
        limiter = RateLimiter(store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup lifecycle handler."""
        logger.info("URL extraction API starting...")
        yield
        logger.info("URL extraction API shutting down...")

    app = FastAPI(
        title="URL Extraction API",
        description="Turn submitted URLs into bounded, LLM-ready context",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.pipeline = pipeline
    app.state.limiter = limiter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost",
            "http://localhost:3000",
            "http://127.0.0.1",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        if app.state.store is None:
            store_kind = "unconfigured"
        elif isinstance(app.state.store, RedisStore):
            store_kind = "redis"
        else:
            store_kind = "memory"
        return {
            "status": "running",
            "message": "URL extraction API is running",
            "store": store_kind,
        }

    @app.get("/limits")
    async def get_limits():
        """Get current API limits and configuration."""
        return {
            "input_limits": {
                "max_message_length": MAX_MESSAGE_LENGTH,
                "max_url_length": MAX_URL_LENGTH,
                "max_urls_per_request": MAX_URLS_PER_REQUEST,
            },
            "crawl_limits": {
                "max_depth": ARTICLE_CRAWL_DEPTH,
                "max_pages": ARTICLE_CRAWL_PAGES,
                "pdf_max_pages": PDF_MAX_PAGES,
            },
            "extraction_limits": {
                "max_content_length": MAX_CONTENT_LENGTH,
                "max_response_bytes": MAX_RESPONSE_BYTES,
                "max_context_length": MAX_CONTEXT_LENGTH,
                "deadline_seconds": EXTRACTION_DEADLINE_SECONDS,
                "max_workers": PIPELINE_MAX_WORKERS,
            },
            "rate_limits": {
                "requests_per_window": RATE_LIMIT_REQUESTS,
                "window_seconds": RATE_LIMIT_WINDOW_SECONDS,
            },
            "cache": {
                "ttl_seconds": CACHE_TTL_SECONDS,
            },
        }

    @app.post("/extract", response_model=ExtractResponse)
    def extract(request: ExtractRequest, req: Request, response: Response):
        """Extract context, sources and charts for the URLs attached to a question."""
        decision = check_rate_limit(req, app.state.limiter)
        response.headers["X-RateLimit-Limit"] = str(decision.limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)

        start_time = time.time()
        urls = urls_for_request(request)
        logger.info(f"POST /extract - {len(urls)} URLs, message: {request.message[:50]}...")

        try:
            result = app.state.pipeline.process(urls)
        except Exception as e:
            logger.exception("Unexpected error during extraction")
            raise HTTPException(status_code=500, detail=f"Internal error: {str(e)}")

        degraded = list(result.degraded)
        if decision.degraded:
            degraded.append(decision.degraded)

        elapsed = time.time() - start_time
        logger.info(f"POST /extract completed in {elapsed:.2f}s - {len(result.sources)} sources")

        payload = result.to_dict()
        payload["degraded"] = degraded
        return payload

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=3000)
