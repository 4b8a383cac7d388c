# ingestion/errors.py
"""Exceptions raised inside the extraction pipeline.

None of these escape an extractor: each extractor catches them at its
boundary and returns a failure ExtractionResult instead.
"""


class ExtractionError(Exception):
    """Base class for extraction failures tied to a single URL."""
    pass


class FetchError(ExtractionError):
    """Network or HTTP failure while reaching a URL."""
    pass


class ParseError(ExtractionError):
    """Malformed or unusable PDF / CSV / HTML / video payload."""
    pass
