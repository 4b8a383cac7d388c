# ingestion/pdf_loader.py
"""
PDF extractor: downloads the document, reads page text layers and builds a
structured summary from labeled sections (title, abstract, methodology...).
"""

import os
import re
import tempfile
from dataclasses import dataclass, field
from itertools import islice
from typing import List

from langchain_community.document_loaders import PyPDFLoader

from config import PDF_MAX_PAGES
from ingestion.cleaner import clean_text, truncate_text
from ingestion.errors import ExtractionError, ParseError
from ingestion.fetcher import fetch
from ingestion.models import ExtractionResult
from utils.logger import get_extractor_logger

logger = get_extractor_logger()

SECTION_LABELS = {
    "abstract": ("Abstract", "Summary"),
    "introduction": ("Introduction",),
    "methodology": ("Methodology", "Methods", "Method"),
    "results": ("Results",),
    "conclusion": ("Conclusions", "Conclusion"),
}
_ALL_LABELS = "|".join(
    label for labels in SECTION_LABELS.values() for label in labels
) + "|Keywords?|Discussion|References"

FINDING_PATTERN = re.compile(
    r"[A-Z][^.!?]*\b(?:demonstrat|show|indicat|reveal|significant|important|crucial)\w*[^.!?]*[.!?]"
)


def _section_pattern(labels) -> re.Pattern:
    return re.compile(
        rf"^[ \t]*(?:\d+\.?[ \t]*)?(?:{'|'.join(labels)})\b[ \t]*[:.\-]?\s*(.*?)"
        rf"(?=\n[ \t]*\n|\n[ \t]*(?:\d+\.?[ \t]*)?(?:{_ALL_LABELS})\b|\Z)",
        re.IGNORECASE | re.MULTILINE | re.DOTALL,
    )


SECTION_PATTERNS = {name: _section_pattern(labels) for name, labels in SECTION_LABELS.items()}
TITLE_PATTERN = re.compile(r"^[ \t]*Title[ \t]*:[ \t]*(.+)$", re.IGNORECASE | re.MULTILINE)
AUTHORS_PATTERN = re.compile(r"^[ \t]*(?:Authors?|Written by)[ \t]*:[ \t]*(.+)$", re.IGNORECASE | re.MULTILINE)
KEYWORDS_PATTERN = re.compile(r"^[ \t]*(?:Keywords?|Index Terms)[ \t]*[:.\-][ \t]*(.+)$", re.IGNORECASE | re.MULTILINE)


@dataclass
class PdfSections:
    title: str = ""
    authors: str = ""
    abstract: str = ""
    introduction: str = ""
    methodology: str = ""
    results: str = ""
    conclusion: str = ""
    keywords: List[str] = field(default_factory=list)
    key_findings: List[str] = field(default_factory=list)


def detect_language(text: str) -> str:
    """Rough estimate from the share of Latin letters; informational only."""
    if not text:
        return "Unknown"
    latin = len(re.findall(r"[a-zA-Z]", text))
    return "English" if latin / len(text) > 0.7 else "Other"


def extract_pdf_sections(full_text: str) -> PdfSections:
    """Pick labeled sections out of raw (newline-preserving) PDF text."""
    sections = PdfSections()

    title = TITLE_PATTERN.search(full_text)
    if title:
        sections.title = clean_text(title.group(1))
    else:
        first_line = next((line for line in full_text.splitlines() if line.strip()), "")
        sections.title = clean_text(first_line)

    authors = AUTHORS_PATTERN.search(full_text)
    if authors:
        sections.authors = clean_text(authors.group(1))

    for name, pattern in SECTION_PATTERNS.items():
        match = pattern.search(full_text)
        if match:
            setattr(sections, name, clean_text(match.group(1)))

    keywords = KEYWORDS_PATTERN.search(full_text)
    if keywords:
        sections.keywords = [k.strip() for k in re.split(r"[,;]", keywords.group(1)) if k.strip()]

    for finding in FINDING_PATTERN.findall(clean_text(full_text)):
        finding = clean_text(finding)
        if finding not in sections.key_findings:
            sections.key_findings.append(finding)
        if len(sections.key_findings) == 3:
            break

    return sections


def format_pdf_summary(sections: PdfSections, language: str) -> str:
    findings = "\n".join(f"{i}. {finding}" for i, finding in enumerate(sections.key_findings, 1))
    return f"""PDF Analysis:

Title: {sections.title or 'Not Found'}
Language: {language}

Authors: {sections.authors or 'Not Specified'}

Abstract:
{truncate_text(sections.abstract, 500) or 'No abstract available'}

Key Keywords:
{', '.join(sections.keywords) or 'No keywords found'}

Key Findings:
{findings or 'No key findings extracted'}

Methodology Summary:
{truncate_text(sections.methodology, 300) or 'Methodology details not clear'}

Results:
{truncate_text(sections.results, 300) or 'No results summary extracted'}

Conclusion:
{truncate_text(sections.conclusion, 300) or 'No specific conclusion extracted'}
"""


def load_pdf_pages(data: bytes, max_pages: int = PDF_MAX_PAGES) -> List[str]:
    """Write the bytes to a temp file and read up to max_pages text layers."""
    if not data.lstrip().startswith(b"%PDF"):
        raise ParseError("Response is not a PDF document")

    with tempfile.NamedTemporaryFile(delete=False, suffix=".pdf") as tmp:
        tmp.write(data)
        temp_path = tmp.name

    try:
        loader = PyPDFLoader(temp_path)
        return [doc.page_content or "" for doc in islice(loader.lazy_load(), max_pages)]
    except ExtractionError:
        raise
    except Exception as e:
        raise ParseError(f"Malformed PDF: {e}") from e
    finally:
        os.unlink(temp_path)


def extract_pdf(url: str, summarize: bool = True, max_pages: int = PDF_MAX_PAGES) -> ExtractionResult:
    """Fetch a PDF and return its text, optionally led by a section summary."""
    try:
        response = fetch(url, accept="application/pdf")
        pages = load_pdf_pages(response.content, max_pages)
    except ExtractionError as e:
        logger.warning(f"PDF extraction error: {e}")
        return ExtractionResult.failure(f"Failed to extract PDF content from: {url}. Error: {e}")
    except Exception as e:
        logger.exception(f"Unexpected PDF extraction error for {url}")
        return ExtractionResult.failure(f"Failed to extract PDF content from: {url}. Error: {e}")

    raw_text = "\n\n".join(page for page in pages if page.strip())
    full_text = clean_text(raw_text)
    if not full_text:
        return ExtractionResult.failure(f"No extractable text found in PDF: {url}")

    logger.info(f"Extracted PDF {url}: {len(pages)} pages, {len(full_text)} characters")

    if not summarize:
        return ExtractionResult(content=f"Source: {url}\n{full_text}")

    sections = extract_pdf_sections(raw_text)
    summary = format_pdf_summary(sections, detect_language(full_text))
    return ExtractionResult(content=f"{summary}\nSource: {url}\nFull Text:\n{full_text}")
