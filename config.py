# config.py - Centralized configuration for the URL extraction service
"""
All limits and configuration values in one place.

Secrets and deployment-specific values come from the environment
(a local .env file is loaded first). Everything else is a plain constant.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# === INPUT LIMITS ===
MAX_MESSAGE_LENGTH = 4000           # Max characters for the user question
MAX_URL_LENGTH = 2048               # Max characters for a URL
MAX_URLS_PER_REQUEST = 10           # URLs accepted in a single request

# === CRAWL LIMITS ===
MAX_CRAWL_DEPTH = 2                 # Seed is depth 0
MAX_PAGES_PER_CRAWL = 10            # Hard cap on fetched pages per crawl
ARTICLE_CRAWL_DEPTH = 1             # Article extraction: seed + direct links
ARTICLE_CRAWL_PAGES = 5
CRAWL_TIMEOUT_SECONDS = 10          # Per-request HTTP timeout
USER_AGENT = "Mozilla/5.0 (compatible; AIAnswerEngine/1.0)"

# === EXTRACTION LIMITS ===
MAX_CONTENT_LENGTH = 8000           # Per-URL content cap (cut at last sentence)
MAX_CONTEXT_LENGTH = 12000          # Aggregated context cap for one request
PDF_MAX_PAGES = 10
CSV_PREVIEW_ROWS = 5                # Records shown in the CSV narrative
CSV_CHART_ROWS = 50                 # Records carried into the chart
VIDEO_DESCRIPTION_CHARS = 500
VIDEO_MAX_TAGS = 10
MAX_RESPONSE_BYTES = 15 * 1024 * 1024  # Largest page / PDF / CSV body read into memory

# === PIPELINE ===
PIPELINE_MAX_WORKERS = 4            # Concurrent URL extractions per request
EXTRACTION_DEADLINE_SECONDS = 30    # Per-URL budget (fetch + parse)

# === CACHE ===
CACHE_TTL_SECONDS = 60 * 60 * 24    # 24 hours
CACHE_KEY_PREFIX = "content:"

# === RATE LIMITING ===
RATE_LIMIT_REQUESTS = int(os.getenv("RATE_LIMIT_REQUESTS", "50"))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", str(60 * 60)))
RATE_LIMIT_KEY_PREFIX = "ratelimit:"
RATE_LIMIT_ATOMIC = True            # INCR-then-compare instead of GET-then-INCR

# === SHARED STORE ===
REDIS_URL = os.getenv("REDIS_URL", "")
STORE_TIMEOUT_SECONDS = 2.0         # Applies to every cache / limiter call

# === METADATA API (video) ===
YOUTUBE_API_KEY = os.getenv("YOUTUBE_API_KEY", "")
YOUTUBE_API_URL = "https://www.googleapis.com/youtube/v3/videos"
