# ingestion/charts.py
"""Detects delimiter-separated tables in extracted text and turns them into charts."""

import re
from typing import List, Optional

from ingestion.models import ChartSpec, Number, Row, Text, chart_kind_for, parse_number

DELIMITERS = (",", "\t", "|")

# Currency symbols, thousands separators and percent signs
_NUMERIC_DECORATIONS = re.compile(r"[$€£¥₹%,]")


def coerce_cell(raw: str):
    """Strip numeric decorations and return Number if what remains parses."""
    value = raw.strip()
    number = parse_number(_NUMERIC_DECORATIONS.sub("", value))
    if number is None:
        return Text(value)
    return Number(number)


def pick_delimiter(header: str) -> str:
    """Delimiter producing the most columns; ties go to the earlier one."""
    best, best_columns = DELIMITERS[0], 0
    for delimiter in DELIMITERS:
        columns = len(header.split(delimiter))
        if columns > best_columns:
            best, best_columns = delimiter, columns
    return best


def parse_header(line: str, delimiter: str) -> List[str]:
    names = []
    for index, name in enumerate(line.split(delimiter)):
        name = name.strip()
        names.append(name or f"column_{index + 1}")
    return names


def detect_chart_data(text: str) -> Optional[ChartSpec]:
    """
    Look for a header line plus rows sharing its column count.

    Returns:
        A ChartSpec with at least two rows, or None when the text is not tabular
    """
    lines = [line.strip() for line in (text or "").splitlines() if line.strip()]
    if len(lines) < 3:
        return None

    delimiter = pick_delimiter(lines[0])
    headers = parse_header(lines[0], delimiter)

    rows: List[Row] = []
    for line in lines[1:]:
        values = line.split(delimiter)
        if len(values) != len(headers):
            continue
        row = {header: coerce_cell(value) for header, value in zip(headers, values)}
        if any(isinstance(cell, Number) for cell in row.values()):
            rows.append(row)

    if len(rows) < 2:
        return None

    return ChartSpec(kind=chart_kind_for(len(rows)), rows=tuple(rows))
