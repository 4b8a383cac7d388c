# ingestion/csv_loader.py
"""CSV extractor: narrative summary plus a chart built from the numeric columns."""

import csv
import io
import json
from typing import Dict, List, Optional, Tuple

from config import CSV_CHART_ROWS, CSV_PREVIEW_ROWS
from ingestion.errors import ExtractionError, ParseError
from ingestion.fetcher import fetch
from ingestion.models import ChartSpec, ExtractionResult, Number, Text, chart_kind_for, parse_number
from utils.logger import get_extractor_logger

logger = get_extractor_logger()

Record = Dict[str, str]


def parse_csv(text: str) -> Tuple[List[str], List[Record]]:
    """Parse a CSV body with a header row; blank lines skipped, cells trimmed."""
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return [], []

    try:
        reader = csv.reader(io.StringIO("\n".join(lines)))
        rows = [[cell.strip() for cell in row] for row in reader]
    except csv.Error as e:
        raise ParseError(f"Malformed CSV: {e}") from e

    headers = [name or f"column_{i + 1}" for i, name in enumerate(rows[0])]
    records = []
    for row in rows[1:]:
        padded = row[:len(headers)] + [""] * (len(headers) - len(row))
        records.append(dict(zip(headers, padded)))
    return headers, records


def numeric_columns(headers: List[str], records: List[Record]) -> List[str]:
    """Columns whose every non-blank value parses as a number (and has at least one)."""
    numeric = []
    for header in headers:
        values = [record[header] for record in records if record[header] != ""]
        if values and all(parse_number(value) is not None for value in values):
            numeric.append(header)
    return numeric


def choose_label_column(headers: List[str], numeric: List[str]) -> str:
    return next((header for header in headers if header not in numeric), headers[0])


def build_chart(records: List[Record], numeric: List[str], label: str) -> Optional[ChartSpec]:
    if not numeric:
        return None
    rows = []
    for record in records[:CSV_CHART_ROWS]:
        row = {}
        if label not in numeric:
            row[label] = Text(record[label])
        for column in numeric:
            # Blank cells in numeric columns chart as zero
            row[column] = Number(parse_number(record[column]) or 0)
        rows.append(row)
    if len(rows) < 2:
        return None
    return ChartSpec(kind=chart_kind_for(len(rows)), rows=tuple(rows))


def summarize_csv(url: str, headers: List[str], records: List[Record], numeric: List[str], label: str) -> str:
    preview = json.dumps(records[:CSV_PREVIEW_ROWS], indent=2, ensure_ascii=False)
    return f"""CSV Data Analysis:
- Source: {url}
- Total Records: {len(records)}
- Columns: {', '.join(headers)}
- Numeric Columns: {', '.join(numeric) or 'None'}
- Label Column: {label}

Data Summary:
{preview}
"""


def extract_csv(url: str) -> ExtractionResult:
    """Fetch and analyze a CSV file."""
    try:
        response = fetch(url, accept="text/csv,text/plain")
        headers, records = parse_csv(response.text)
    except ExtractionError as e:
        logger.warning(f"CSV extraction error: {e}")
        return ExtractionResult.failure(f"Failed to extract CSV content from: {url}. Error: {e}")
    except Exception as e:
        logger.exception(f"Unexpected CSV extraction error for {url}")
        return ExtractionResult.failure(f"Failed to extract CSV content from: {url}. Error: {e}")

    if not records:
        return ExtractionResult.failure(f"No data found in the CSV file: {url}")

    numeric = numeric_columns(headers, records)
    label = choose_label_column(headers, numeric)

    logger.info(f"Extracted CSV {url}: {len(records)} records, {len(numeric)} numeric columns")
    return ExtractionResult(
        content=summarize_csv(url, headers, records, numeric, label),
        visualization=build_chart(records, numeric, label),
    )
