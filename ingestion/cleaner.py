# ingestion/cleaner.py
"""
Cleaner module: turns raw HTML into readable text and resolved links.
"""

import re
from typing import List
from urllib.parse import urldefrag, urljoin, urlparse

from bs4 import BeautifulSoup

UNWANTED_SELECTORS = [
    "nav",
    "footer",
    "header",
    "aside",
    "script",
    "style",
    "noscript",
    "[role='navigation']",
    "[aria-label*='cookie']",
    ".cookie",
    ".cookies",
    ".cookie-banner",
    ".cookie-consent",
]

MEDIA_TAGS = ["img", "video", "audio", "source"]


def clean_text(text: str) -> str:
    """Collapse all whitespace runs to single spaces."""
    return re.sub(r"\s+", " ", text).strip()


def truncate_text(text: str, max_length: int) -> str:
    """Cut text to max_length, backing up to the last full stop when there is one."""
    if len(text) <= max_length:
        return text
    truncated = text[:max_length]
    last_period = truncated.rfind(".")
    return truncated[:last_period + 1] if last_period > 0 else truncated


def normalize_url(url: str) -> str:
    """Canonical form used for visited-set membership: no fragment, lowercase host."""
    url, _ = urldefrag(url.strip())
    parsed = urlparse(url)
    path = parsed.path or "/"
    return parsed._replace(
        scheme=parsed.scheme.lower(),
        netloc=parsed.netloc.lower(),
        path=path,
    ).geturl()


def resolve_link(base_url: str, href: str):
    """Resolve href against the page URL; None for fragments and non-http schemes."""
    href = (href or "").strip()
    if not href or href.startswith("#"):
        return None
    absolute = urljoin(base_url, href)
    if urlparse(absolute).scheme not in ("http", "https"):
        return None
    return normalize_url(absolute)


def _dedupe(urls) -> List[str]:
    seen = set()
    ordered = []
    for url in urls:
        if url and url not in seen:
            seen.add(url)
            ordered.append(url)
    return ordered


def extract_links(soup: BeautifulSoup, base_url: str) -> List[str]:
    """Navigational links from <a href>, resolved and deduplicated in page order."""
    return _dedupe(resolve_link(base_url, a["href"]) for a in soup.find_all("a", href=True))


def extract_media_links(soup: BeautifulSoup, base_url: str) -> List[str]:
    """Media sources from img/video/audio/source tags."""
    return _dedupe(resolve_link(base_url, tag["src"]) for tag in soup.find_all(MEDIA_TAGS, src=True))


def extract_title(soup: BeautifulSoup) -> str:
    if soup.title and soup.title.string:
        return soup.title.string.strip()
    return ""


def clean_html(html_content: str) -> str:
    """Extract clean body text from HTML."""
    soup = BeautifulSoup(html_content, "html.parser")
    return clean_soup(soup)


def clean_soup(soup: BeautifulSoup) -> str:
    """Strip non-content elements in place and return the remaining text."""
    for tag in soup.select(", ".join(UNWANTED_SELECTORS)):
        tag.decompose()

    # Remove "edit" links (Wikipedia specific)
    for span in soup.find_all("span", class_="mw-editsection"):
        span.decompose()

    container = soup.body or soup
    return clean_text(container.get_text(separator=" "))
