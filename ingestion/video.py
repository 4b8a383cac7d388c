# ingestion/video.py
"""
Video extractor for hosted media platforms (YouTube).

With a metadata API key, title, description and engagement counters come
from the YouTube Data API and engagement is charted. Without one, or when
the API call fails, the page's open-graph / meta tags are scraped instead.
"""

import re
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

from config import (
    CRAWL_TIMEOUT_SECONDS,
    VIDEO_DESCRIPTION_CHARS,
    VIDEO_MAX_TAGS,
    YOUTUBE_API_KEY,
    YOUTUBE_API_URL,
)
from ingestion.cleaner import clean_text
from ingestion.errors import ExtractionError, FetchError, ParseError
from ingestion.fetcher import fetch
from ingestion.models import ChartSpec, ExtractionResult, Number, Text
from utils.logger import get_extractor_logger

logger = get_extractor_logger()

VIDEO_HOSTS = {"youtube.com", "www.youtube.com", "m.youtube.com", "music.youtube.com", "youtu.be"}

VIDEO_ID_PATTERN = re.compile(
    r"(?:youtube\.com/(?:[^/]+/.+/|(?:v|e(?:mbed)?|shorts|live)/|.*[?&]v=)|youtu\.be/)([^\"&?/\s]{11})"
)


def is_video_url(url: str) -> bool:
    return (urlparse(url).hostname or "").lower() in VIDEO_HOSTS


def extract_video_id(url: str) -> Optional[str]:
    match = VIDEO_ID_PATTERN.search(url)
    return match.group(1) if match else None


def _count(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def fetch_video_metadata(video_id: str, api_key: str) -> Dict[str, Any]:
    """
    Call the videos endpoint for one ID.

    Raises:
        FetchError: On network or HTTP failure
        ParseError: If the body is not JSON or lists no video
    """
    try:
        response = requests.get(
            YOUTUBE_API_URL,
            params={"part": "snippet,contentDetails,statistics", "id": video_id, "key": api_key},
            headers={"Accept": "application/json"},
            timeout=CRAWL_TIMEOUT_SECONDS,
        )
    except requests.exceptions.RequestException as e:
        raise FetchError(f"YouTube API request failed: {type(e).__name__}")

    if not 200 <= response.status_code < 300:
        raise FetchError(f"YouTube API request failed: HTTP {response.status_code}")

    try:
        data = response.json()
    except ValueError as e:
        raise ParseError(f"YouTube API returned invalid JSON: {e}")

    items = data.get("items") or []
    if not items:
        raise ParseError("No video data found in the API response")
    return items[0]


def format_video_metadata(video: Dict[str, Any]) -> ExtractionResult:
    snippet = video.get("snippet") or {}
    statistics = video.get("statistics") or {}

    views = _count(statistics.get("viewCount"))
    likes = _count(statistics.get("likeCount"))
    comments = _count(statistics.get("commentCount"))
    duration = (video.get("contentDetails") or {}).get("duration", "N/A")
    published = (snippet.get("publishedAt") or "")[:10] or "N/A"
    description = snippet.get("description") or "No description"
    tags = snippet.get("tags") or []

    lines = [
        "YouTube Video Details:",
        f"Title: {snippet.get('title') or 'N/A'}",
        f"Channel: {snippet.get('channelTitle') or 'Unknown Channel'}",
        f"Published: {published}",
        f"Duration: {duration.replace('PT', '').lower()}",
        f"Views: {views:,}",
        f"Likes: {likes:,}",
        f"Comments: {comments:,}",
        f"Description: {description[:VIDEO_DESCRIPTION_CHARS]}",
    ]
    if tags:
        lines.append(f"Tags: {', '.join(tags[:VIDEO_MAX_TAGS])}")

    chart = ChartSpec(
        kind="bar",
        rows=(
            {"metric": Text("Views"), "value": Number(views)},
            {"metric": Text("Likes"), "value": Number(likes)},
            {"metric": Text("Comments"), "value": Number(comments)},
        ),
    )
    return ExtractionResult(content="\n".join(lines), visualization=chart)


def _meta(soup: BeautifulSoup, *selectors: Dict[str, str]) -> str:
    for attrs in selectors:
        tag = soup.find("meta", attrs=attrs)
        if tag and tag.get("content"):
            return clean_text(tag["content"])
    return ""


def scrape_video_page(url: str) -> ExtractionResult:
    """Fallback: read open-graph and meta tags from the video page itself."""
    response = fetch(url, accept="text/html,application/xhtml+xml")
    soup = BeautifulSoup(response.text, "html.parser")

    title = _meta(soup, {"property": "og:title"}, {"name": "twitter:title"}, {"name": "title"})
    if not title and soup.title and soup.title.string:
        title = clean_text(soup.title.string)
    description = _meta(
        soup, {"property": "og:description"}, {"name": "description"}, {"name": "twitter:description"}
    )
    keywords = _meta(soup, {"name": "keywords"})

    if not title and not description:
        raise ParseError("No video metadata found on the page")

    lines = [
        "Video Details (page metadata):",
        f"URL: {url}",
        f"Title: {title or 'N/A'}",
        f"Description: {(description or 'No description')[:VIDEO_DESCRIPTION_CHARS]}",
    ]
    if keywords:
        lines.append(f"Tags: {', '.join(k.strip() for k in keywords.split(',')[:VIDEO_MAX_TAGS])}")
    return ExtractionResult(content="\n".join(lines))


def extract_video(url: str, api_key: str = YOUTUBE_API_KEY) -> ExtractionResult:
    """Describe a hosted video; never raises."""
    try:
        video_id = extract_video_id(url)
        if not video_id:
            raise ParseError("Invalid YouTube URL: could not extract video ID")

        if api_key:
            try:
                result = format_video_metadata(fetch_video_metadata(video_id, api_key))
                logger.info(f"Extracted video {video_id} via metadata API")
                return result
            except ExtractionError as e:
                logger.warning(f"Metadata API failed for {video_id}, scraping page instead: {e}")
        else:
            logger.info(f"No metadata API key configured; scraping page for {video_id}")

        return scrape_video_page(url)
    except ExtractionError as e:
        logger.warning(f"Video extraction error for {url}: {e}")
        return ExtractionResult.failure(f"Failed to extract video content from: {url}. Error: {e}")
    except Exception as e:
        logger.exception(f"Unexpected video extraction error for {url}")
        return ExtractionResult.failure(f"Failed to extract video content from: {url}. Error: {e}")
