# SPDX-License-Identifier: AGPL-3.0-or-later
"""Header location and bounded row extraction for noisy tabular data.

Both the CSV path (raw text lines) and the Excel path (a worksheet already
decoded into cell strings) go through the same two steps: :func:`locate_header`
finds the first populated row and trims leading/trailing empty columns, then
:func:`extract_rows` maps the following rows onto those labels by relative
column offset.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol, Sequence

from .models import TabularHeader, TabularPreview

logger = logging.getLogger(__name__)

MAX_SEARCH_ROWS = 50
DEFAULT_COLUMN_COUNT = 50
PREVIEW_ROWS = 10
SHEET_PREVIEW_ROWS = 100
IMPORT_ROWS = 1000
GRID_FALLBACK_SCAN_ROWS = 10


class RowSource(Protocol):
    def __len__(self) -> int: ...

    def row(self, index: int) -> List[str]: ...

    @property
    def total_rows(self) -> int: ...


def split_csv_line(line: str) -> List[str]:
    """Split one CSV line on commas outside double quotes; cells are trimmed."""

    cells: List[str] = []
    current: List[str] = []
    in_quotes = False
    i = 0
    length = len(line)
    while i < length:
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < length and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1
    cells.append("".join(current).strip())
    return cells


class TextRows:
    """Row source over decoded text lines, parsed on demand."""

    def __init__(self, lines: Sequence[str]) -> None:
        self._lines = list(lines)
        self._parsed: Dict[int, List[str]] = {}

    def __len__(self) -> int:
        return len(self._lines)

    @property
    def total_rows(self) -> int:
        return len(self._lines)

    def row(self, index: int) -> List[str]:
        if index < 0 or index >= len(self._lines):
            return []
        cached = self._parsed.get(index)
        if cached is None:
            cached = split_csv_line(self._lines[index])
            self._parsed[index] = cached
        return cached


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def populated_span(cells: Sequence[str]) -> Optional[tuple[int, int]]:
    """Return the (first, last) indices of non-blank cells, or ``None``."""

    first = next((idx for idx, cell in enumerate(cells) if not _is_blank(cell)), None)
    if first is None:
        return None
    last = max(idx for idx, cell in enumerate(cells) if not _is_blank(cell))
    return first, last


def unique_labels(raw_labels: Sequence[str]) -> List[str]:
    """Make labels usable as row keys: name blanks, suffix repeats."""

    labels: List[str] = []
    used: set[str] = set()
    for position, raw in enumerate(raw_labels, start=1):
        base = str(raw).strip() or f"Column {position}"
        label = base
        suffix = 1
        while label in used:
            suffix += 1
            label = f"{base}_{suffix}"
        used.add(label)
        labels.append(label)
    return labels


def synthesize_header(source: RowSource, default_column_count: int = DEFAULT_COLUMN_COUNT) -> TabularHeader:
    first_row = source.row(0) if len(source) else []
    count = min(default_column_count, len(first_row) or default_column_count)
    labels = [f"Column {idx + 1}" for idx in range(count)]
    return TabularHeader(
        row_index=0,
        first_column=0,
        last_column=count - 1,
        labels=labels,
        synthesized=True,
    )


def synthesize_grid_header(
    source: RowSource,
    scan_rows: int = GRID_FALLBACK_SCAN_ROWS,
    default_column_count: int = DEFAULT_COLUMN_COUNT,
) -> TabularHeader:
    """Size generic labels from the populated extent of the first *scan_rows* rows.

    The first column is the first populated cell met in row order; labels run
    from there to the right-most populated column seen. With nothing populated
    this is the plain ``Column 1..default_column_count`` header.
    """

    first: Optional[int] = None
    last = -1
    for index in range(min(scan_rows, len(source))):
        span = populated_span(source.row(index))
        if span is None:
            continue
        if first is None:
            first = span[0]
        last = max(last, span[1])
    if first is None or last < first:
        first, last = 0, default_column_count - 1
    return TabularHeader(
        row_index=0,
        first_column=first,
        last_column=last,
        labels=[f"Column {idx + 1}" for idx in range(last - first + 1)],
        synthesized=True,
    )


def locate_header(
    source: RowSource,
    max_search_rows: int = MAX_SEARCH_ROWS,
    *,
    default_column_count: int = DEFAULT_COLUMN_COUNT,
    fallback_scan_rows: int = 0,
) -> TabularHeader:
    """Return the first row (within the search budget) with any content.

    When nothing qualifies, generic ``Column N`` labels are synthesized and row
    0 is treated as the header position. With *fallback_scan_rows* set, the
    labels are sized from the populated extent of that many leading rows
    instead of the first row's cell count. The caller always gets a non-empty
    header; columns may be misattributed in that case.
    """

    for index in range(min(max_search_rows, len(source))):
        cells = source.row(index)
        span = populated_span(cells)
        if span is None:
            continue
        first, last = span
        return TabularHeader(
            row_index=index,
            first_column=first,
            last_column=last,
            labels=unique_labels(cells[first : last + 1]),
        )
    logger.debug("No header row in the first %d rows; synthesizing column labels", max_search_rows)
    if fallback_scan_rows:
        return synthesize_grid_header(source, fallback_scan_rows, default_column_count)
    return synthesize_header(source, default_column_count)


def map_row(cells: Sequence[str], header: TabularHeader) -> Dict[str, str]:
    row: Dict[str, str] = {}
    for offset, label in enumerate(header.labels):
        source_index = header.first_column + offset
        value = cells[source_index] if source_index < len(cells) else None
        row[label] = "" if value is None else str(value)
    return row


def iter_data_rows(source: RowSource, header: TabularHeader, max_rows: int):
    """Yield ``(cells, mapped)`` for non-blank rows after the header."""

    emitted = 0
    for index in range(header.row_index + 1, len(source)):
        if emitted >= max_rows:
            break
        cells = source.row(index)
        mapped = map_row(cells, header)
        if all(_is_blank(value) for value in mapped.values()):
            continue
        emitted += 1
        yield cells, mapped


def extract_rows(source: RowSource, header: TabularHeader, max_rows: int = PREVIEW_ROWS) -> TabularPreview:
    """Materialize at most *max_rows* non-blank rows keyed by the header labels."""

    rows = [mapped for _, mapped in iter_data_rows(source, header, max_rows)]
    total = max(0, source.total_rows - header.row_index - 1)
    return TabularPreview(header_labels=list(header.labels), rows=rows, total_row_count=total)


__all__ = [
    "DEFAULT_COLUMN_COUNT",
    "GRID_FALLBACK_SCAN_ROWS",
    "IMPORT_ROWS",
    "MAX_SEARCH_ROWS",
    "PREVIEW_ROWS",
    "RowSource",
    "SHEET_PREVIEW_ROWS",
    "TextRows",
    "extract_rows",
    "iter_data_rows",
    "locate_header",
    "map_row",
    "populated_span",
    "split_csv_line",
    "synthesize_grid_header",
    "synthesize_header",
    "unique_labels",
]
