# SPDX-License-Identifier: AGPL-3.0-or-later
"""Excel path: openpyxl decodes the container, the shared locator finds headers."""

from __future__ import annotations

import io
import logging
from datetime import date, datetime, time
from typing import Any, Iterator, List, Optional, Tuple

from openpyxl import load_workbook

from .errors import NoWorksheetError, WorkbookDecodeError
from .models import SheetPreview, TabularPreview
from .settings import TabularSettings
from .tabular import extract_rows, iter_data_rows, locate_header

logger = logging.getLogger(__name__)


def cell_to_string(value: Any) -> str:
    """Render a cell value the way the dashboard tables display it."""

    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


class WorksheetRows:
    """Row source that pulls worksheet rows on demand.

    Only as many rows as the header search and preview need are decoded;
    ``total_rows`` reports the worksheet's own row count.
    """

    def __init__(self, worksheet: Any, max_columns: int) -> None:
        self._iter: Iterator[Tuple[Any, ...]] = worksheet.iter_rows(values_only=True, max_col=max_columns)
        self._rows: List[List[str]] = []
        self._exhausted = False
        self._declared = int(worksheet.max_row or 0)
        if not self._declared:
            self._fill(None)

    def _fill(self, index: Optional[int]) -> None:
        while not self._exhausted and (index is None or len(self._rows) <= index):
            try:
                values = next(self._iter)
            except StopIteration:
                self._exhausted = True
                break
            self._rows.append([cell_to_string(value) for value in values])

    def __len__(self) -> int:
        return max(self._declared, len(self._rows))

    @property
    def total_rows(self) -> int:
        return len(self)

    def row(self, index: int) -> List[str]:
        if index < 0:
            return []
        self._fill(index)
        if index < len(self._rows):
            return self._rows[index]
        return []


def _open(data: bytes):
    try:
        return load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except Exception as exc:
        raise WorkbookDecodeError(exc) from exc


def _sheet_preview(worksheet: Any, settings: TabularSettings) -> SheetPreview:
    source = WorksheetRows(worksheet, settings.max_columns)
    header = locate_header(
        source,
        settings.max_search_rows,
        default_column_count=settings.default_column_count,
    )
    rows = [
        [mapped[label] for label in header.labels]
        for _, mapped in iter_data_rows(source, header, settings.sheet_preview_rows)
    ]
    return SheetPreview(
        name=worksheet.title,
        headers=list(header.labels),
        rows=rows,
        total_row_count=max(0, source.total_rows - header.row_index - 1),
    )


def preview_workbook(
    data: bytes,
    settings: Optional[TabularSettings] = None,
    *,
    max_rows: Optional[int] = None,
    fallback_scan_rows: int = 0,
) -> TabularPreview:
    """Preview the first worksheet of an xlsx container.

    *max_rows* defaults to ``settings.preview_rows``; the import path passes
    its own, larger budget and a grid fallback scan.
    """

    settings = settings or TabularSettings()
    workbook = _open(data)
    try:
        if not workbook.worksheets:
            raise NoWorksheetError()
        worksheet = workbook.worksheets[0]
        source = WorksheetRows(worksheet, settings.max_columns)
        header = locate_header(
            source,
            settings.max_search_rows,
            default_column_count=settings.default_column_count,
            fallback_scan_rows=fallback_scan_rows,
        )
        return extract_rows(source, header, max_rows or settings.preview_rows)
    finally:
        workbook.close()


def preview_sheets(data: bytes, settings: Optional[TabularSettings] = None) -> Tuple[TabularPreview, List[SheetPreview]]:
    """Preview every worksheet; the first one also fills the top-level table."""

    settings = settings or TabularSettings()
    workbook = _open(data)
    try:
        if not workbook.worksheets:
            raise NoWorksheetError()
        sheets = [_sheet_preview(worksheet, settings) for worksheet in workbook.worksheets]
    finally:
        workbook.close()
    logger.debug("Previewed %d worksheets", len(sheets))
    first = sheets[0]
    top = TabularPreview(
        header_labels=list(first.headers),
        rows=[dict(zip(first.headers, row)) for row in first.rows[: settings.preview_rows]],
        total_row_count=first.total_row_count,
    )
    return top, sheets


__all__ = ["WorksheetRows", "cell_to_string", "preview_sheets", "preview_workbook"]
