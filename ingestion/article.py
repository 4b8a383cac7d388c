# ingestion/article.py
"""Article / HTML extractor: a shallow same-host crawl flattened into text."""

import re
from typing import Callable, List
from urllib.parse import urlparse

from config import ARTICLE_CRAWL_DEPTH, ARTICLE_CRAWL_PAGES
from ingestion.crawler import SKIP_KEYWORD_PATTERN, crawl_site
from ingestion.models import ExtractionResult, PageResult
from utils.logger import get_extractor_logger

logger = get_extractor_logger()

BINARY_ASSET_PATTERN = re.compile(r"\.(jpg|jpeg|png|gif|svg|webp|pdf|zip|exe|mp4|mp3)$", re.IGNORECASE)


def format_page(page: PageResult) -> str:
    parts = [f"Source: {page.url}"]
    if page.title:
        parts.append(f"Title: {page.title}")
    parts.append(page.text_content)
    if page.outbound_links:
        parts.append("Related Links:\n" + "\n".join(page.outbound_links))
    return "\n".join(parts)


def extract_article(url: str, crawl: Callable[..., List[PageResult]] = crawl_site) -> ExtractionResult:
    """Crawl the page and its same-host neighbours and concatenate their text."""
    try:
        hostname = (urlparse(url).hostname or "").lower()
        if not hostname:
            return ExtractionResult.failure(f"Failed to extract content from: {url}. Invalid URL")

        pages = crawl(
            url,
            max_depth=ARTICLE_CRAWL_DEPTH,
            max_pages=ARTICLE_CRAWL_PAGES,
            allowed_domains=[hostname],
            exclude_patterns=[BINARY_ASSET_PATTERN, SKIP_KEYWORD_PATTERN],
        )
    except Exception:
        logger.exception(f"Article extraction error for {url}")
        return ExtractionResult.failure(f"Failed to extract content from: {url}")

    if not pages:
        return ExtractionResult.failure(f"Failed to extract content from: {url}. The page could not be fetched")

    related = []
    for page in pages:
        for link in page.outbound_links:
            if link not in related:
                related.append(link)

    logger.info(f"Extracted article {url}: {len(pages)} pages")
    return ExtractionResult(
        content="\n\n".join(format_page(page) for page in pages),
        related_links=related,
    )
