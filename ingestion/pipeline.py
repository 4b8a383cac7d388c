# ingestion/pipeline.py
"""
Orchestrates extraction for the URLs attached to one request.

Per URL: cache lookup -> extract -> cache populate -> chart detect ->
truncate. URLs run on a bounded worker pool. Each URL's deadline starts
when a worker picks it up; URLs still queued when the request budget runs
out are skipped. Results are aggregated in input order into the context,
source list and visualizations handed back to the caller.
"""

import math
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import Callable, Dict, List, Optional
from urllib.parse import urlparse

from config import (
    EXTRACTION_DEADLINE_SECONDS,
    MAX_CONTENT_LENGTH,
    MAX_CONTEXT_LENGTH,
    PIPELINE_MAX_WORKERS,
)
from ingestion.article import extract_article
from ingestion.charts import detect_chart_data
from ingestion.cleaner import truncate_text
from ingestion.csv_loader import extract_csv
from ingestion.models import ChartSpec, ExtractionResult
from ingestion.pdf_loader import extract_pdf
from ingestion.video import extract_video, is_video_url
from utils.cache import ContentCache
from utils.logger import get_pipeline_logger

logger = get_pipeline_logger()

Extractor = Callable[[str], ExtractionResult]


class SourceKind(str, Enum):
    VIDEO = "video"
    PDF = "pdf"
    CSV = "csv"
    ARTICLE = "article"


def classify_url(url: str) -> SourceKind:
    """Video host first, then file extension, else a web article."""
    if is_video_url(url):
        return SourceKind.VIDEO
    suffix = PurePosixPath(urlparse(url).path).suffix.lower()
    if suffix == ".pdf":
        return SourceKind.PDF
    if suffix == ".csv":
        return SourceKind.CSV
    return SourceKind.ARTICLE


DEFAULT_EXTRACTORS: Dict[SourceKind, Extractor] = {
    SourceKind.VIDEO: extract_video,
    SourceKind.PDF: extract_pdf,
    SourceKind.CSV: extract_csv,
    SourceKind.ARTICLE: extract_article,
}


class _Attempt:
    """One queued URL; started_at is set by the worker that picks it up."""

    def __init__(self, url: str):
        self.url = url
        self.started = threading.Event()
        self.started_at = 0.0

    def mark_started(self):
        self.started_at = time.monotonic()
        self.started.set()


@dataclass
class PipelineResult:
    context: str
    sources: List[str]
    visualizations: List[ChartSpec]
    degraded: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "context": self.context,
            "sources": list(self.sources),
            "visualizations": [chart.to_dict() for chart in self.visualizations],
            "degraded": list(self.degraded),
        }


class ContentPipeline:
    def __init__(
        self,
        cache: Optional[ContentCache] = None,
        extractors: Optional[Dict[SourceKind, Extractor]] = None,
        max_workers: int = PIPELINE_MAX_WORKERS,
        deadline_seconds: float = EXTRACTION_DEADLINE_SECONDS,
        max_content_length: int = MAX_CONTENT_LENGTH,
        max_context_length: int = MAX_CONTEXT_LENGTH,
    ):
        self.cache = cache
        self.extractors = dict(DEFAULT_EXTRACTORS)
        if extractors:
            self.extractors.update(extractors)
        self.max_workers = max(1, max_workers)
        self.deadline_seconds = deadline_seconds
        self.max_content_length = max_content_length
        self.max_context_length = max_context_length

    def _compute(self, url: str) -> ExtractionResult:
        kind = classify_url(url)
        try:
            return self.extractors[kind](url)
        except Exception as e:
            # Extractors are written not to raise; keep the batch alive if one does
            logger.exception(f"Extractor {kind.value} raised for {url}")
            return ExtractionResult.failure(f"Failed to extract content from: {url}. Error: {e}")

    def extract(self, url: str) -> ExtractionResult:
        """Cache-then-compute for one URL, followed by chart detection and truncation."""
        result, _ = self._extract_with_status(url)
        return result

    def _extract_with_status(self, url: str):
        degraded = None
        if self.cache is not None:
            outcome = self.cache.get_or_compute(url, lambda: self._compute(url))
            result, degraded = outcome.value, outcome.degraded
        else:
            result = self._compute(url)

        visualization = result.visualization
        if visualization is None and result.ok:
            visualization = detect_chart_data(result.content)

        finished = ExtractionResult(
            content=truncate_text(result.content, self.max_content_length),
            visualization=visualization,
            ok=result.ok,
            related_links=list(result.related_links),
        )
        return finished, degraded

    def _run_attempt(self, attempt: _Attempt):
        attempt.mark_started()
        return self._extract_with_status(attempt.url)

    def _await_attempt(self, attempt: _Attempt, future: Future, budget_ends_at: float):
        """Wait for one URL: in the queue until the request budget ends, then for its own deadline."""
        url = attempt.url
        if not attempt.started.wait(timeout=max(budget_ends_at - time.monotonic(), 0)):
            if future.cancel():
                logger.warning(f"Skipped {url}: no worker was free within the request budget")
                return ExtractionResult.failure(
                    f"Skipped extracting content from: {url}. No worker was free in time"
                ), None
            # A worker picked it up between the wait and the cancel
            attempt.started.wait()

        remaining = attempt.started_at + self.deadline_seconds - time.monotonic()
        try:
            return future.result(timeout=max(remaining, 0))
        except FutureTimeoutError:
            logger.warning(f"Extraction of {url} exceeded {self.deadline_seconds}s deadline")
            return ExtractionResult.failure(f"Timed out extracting content from: {url}"), None

    def process(self, urls: List[str]) -> PipelineResult:
        """
        Extract every URL and aggregate the results.

        Never raises for per-URL problems: failures become placeholder text in
        the context, and URLs with empty content are left out of sources.
        The wait is bounded by one deadline per round of workers, plus one
        deadline for the last URL to start.
        """
        unique_urls = list(dict.fromkeys(url for url in urls if url))
        if not unique_urls:
            return PipelineResult(context="", sources=[], visualizations=[])

        start_time = time.time()
        workers = min(self.max_workers, len(unique_urls))
        logger.info(f"Processing {len(unique_urls)} URLs with {workers} workers")

        rounds = math.ceil(len(unique_urls) / workers)
        budget_ends_at = time.monotonic() + rounds * self.deadline_seconds

        executor = ThreadPoolExecutor(max_workers=workers)
        attempts = [_Attempt(url) for url in unique_urls]
        futures = [(attempt, executor.submit(self._run_attempt, attempt)) for attempt in attempts]

        contexts = []
        sources = []
        visualizations = []
        degraded = []
        try:
            for attempt, future in futures:
                result, reason = self._await_attempt(attempt, future, budget_ends_at)

                if reason and reason not in degraded:
                    degraded.append(reason)
                if not result.content:
                    continue
                contexts.append(result.content)
                sources.append(attempt.url)
                if result.visualization is not None:
                    visualizations.append(result.visualization)
        finally:
            # Hung fetches must not hold the request open
            executor.shutdown(wait=False, cancel_futures=True)

        context = truncate_text("\n\n".join(contexts), self.max_context_length)
        elapsed = time.time() - start_time
        logger.info(f"Processed {len(unique_urls)} URLs in {elapsed:.2f}s - {len(sources)} sources, {len(visualizations)} charts")
        return PipelineResult(
            context=context,
            sources=sources,
            visualizations=visualizations,
            degraded=degraded,
        )
