# ingestion/models.py
"""Data models shared by the crawler, extractors, chart detector and cache."""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

CHART_KINDS = ("bar", "line")

_NUMBER_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


@dataclass(frozen=True)
class Number:
    value: Union[int, float]

    def to_json(self) -> Union[int, float]:
        return self.value


@dataclass(frozen=True)
class Text:
    value: str

    def to_json(self) -> str:
        return self.value


Cell = Union[Number, Text]
Row = Dict[str, Cell]


def parse_number(raw: str) -> Optional[Union[int, float]]:
    """Parse a plain decimal literal; anything else (including nan/inf) is None."""
    candidate = raw.strip()
    if not _NUMBER_PATTERN.match(candidate):
        return None
    if re.match(r"^[+-]?\d+$", candidate):
        return int(candidate)
    return float(candidate)


def parse_cell(raw: str) -> Cell:
    number = parse_number(raw)
    if number is None:
        return Text(raw.strip())
    return Number(number)


def cell_from_json(value: Any) -> Cell:
    if isinstance(value, bool):
        return Text(str(value).lower())
    if isinstance(value, (int, float)):
        return Number(value)
    return Text("" if value is None else str(value))


def chart_kind_for(row_count: int) -> str:
    """Density heuristic: many points read better as a line."""
    return "line" if row_count > 10 else "bar"


@dataclass(frozen=True)
class ChartSpec:
    """Chart-library-agnostic description of tabular data.

    Every row carries the same key set; there are at least two rows and
    at least one column holding a number.
    """

    kind: str
    rows: Tuple[Row, ...]

    def __post_init__(self):
        if self.kind not in CHART_KINDS:
            raise ValueError(f"Unsupported chart kind: {self.kind}")
        object.__setattr__(self, "rows", tuple(self.rows))
        if len(self.rows) < 2:
            raise ValueError("A chart needs at least 2 rows")
        keys = set(self.rows[0])
        if any(set(row) != keys for row in self.rows[1:]):
            raise ValueError("All chart rows must share the same columns")
        if not any(isinstance(cell, Number) for row in self.rows for cell in row.values()):
            raise ValueError("A chart needs at least one numeric column")

    @property
    def columns(self) -> List[str]:
        return list(self.rows[0])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "rows": [{key: cell.to_json() for key, cell in row.items()} for row in self.rows],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChartSpec":
        rows = [
            {key: cell_from_json(value) for key, value in row.items()}
            for row in data["rows"]
        ]
        return cls(kind=data["kind"], rows=tuple(rows))


@dataclass(frozen=True)
class CrawlTask:
    url: str
    depth: int


@dataclass(frozen=True)
class PageResult:
    """One fetched page; produced once by the crawler and never mutated."""

    url: str
    depth: int
    title: str
    text_content: str
    outbound_links: Tuple[str, ...] = ()
    media_links: Tuple[str, ...] = ()


@dataclass
class ExtractionResult:
    """Unit returned by every extractor and stored in the cache.

    ``ok`` is False for failure placeholders, whose ``content`` is a
    human-readable message naming the URL.
    """

    content: str
    visualization: Optional[ChartSpec] = None
    ok: bool = True
    related_links: List[str] = field(default_factory=list)

    @classmethod
    def failure(cls, message: str) -> "ExtractionResult":
        return cls(content=message, ok=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "visualization": self.visualization.to_dict() if self.visualization else None,
            "ok": self.ok,
            "related_links": list(self.related_links),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, payload: str) -> "ExtractionResult":
        """Decode a cached value; raises ValueError if it is not a valid result."""
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            raise ValueError(f"Cached value is not JSON: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("content"), str):
            raise ValueError("Cached value has no content field")
        visualization = None
        if data.get("visualization"):
            try:
                visualization = ChartSpec.from_dict(data["visualization"])
            except (KeyError, TypeError, AttributeError) as e:
                raise ValueError(f"Cached chart is malformed: {e}") from e
        return cls(
            content=data["content"],
            visualization=visualization,
            ok=bool(data.get("ok", True)),
            related_links=list(data.get("related_links") or []),
        )
