# SPDX-License-Identifier: AGPL-3.0-or-later
"""Route one preview request to exactly one decoding component."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from .dicom import scan_dicom_tags
from .encoding import sniff, split_lines
from .errors import PayloadTooLargeError, UnsupportedFileTypeError
from .nifti import read_nifti_header
from .schema import (
    DicomResult,
    NiftiMetadata,
    NiftiResult,
    PdfResult,
    PreviewRequest,
    SheetResult,
    TabularResult,
)
from .settings import PreviewSettings, get_settings
from .sniff import classify, file_extension, normalize_key
from .tabular import TextRows, extract_rows, locate_header
from .workbook import preview_sheets, preview_workbook

logger = logging.getLogger(__name__)

Fetch = Callable[[str], bytes]


# ------------------------- helpers -------------------------

def _size_guard(size: int, limit: int) -> None:
    if size > limit:
        raise PayloadTooLargeError(size, limit)


def _file_name(key: str) -> str:
    return key.rsplit("/", 1)[-1] or key


# ------------------------- readers -------------------------

def _preview_csv(
    data: bytes,
    settings: PreviewSettings,
    *,
    max_rows: Optional[int] = None,
    cjk_weight: int = 0,
) -> Dict[str, Any]:
    options = settings.encoding
    decoding = sniff(
        data,
        options.candidates,
        default_encoding=options.default_encoding,
        script_weight=options.script_weight,
        confident_script_hits=options.confident_script_hits,
        cjk_weight=cjk_weight,
    )
    logger.debug("CSV decoded as %s (score=%d)", decoding.encoding, decoding.score)
    lines = split_lines(decoding.text)
    if not lines:
        return TabularResult(type="csv", error="CSV file has no data").to_wire()

    source = TextRows(lines)
    header = locate_header(
        source,
        settings.tabular.max_search_rows,
        default_column_count=settings.tabular.default_column_count,
    )
    table = extract_rows(source, header, max_rows or settings.tabular.preview_rows)
    return TabularResult(
        type="csv",
        headers=table.header_labels,
        data=table.rows,
        total_rows=table.total_row_count,
    ).to_wire()


def _preview_excel(data: bytes, settings: PreviewSettings, multi_sheet: bool) -> Dict[str, Any]:
    if not multi_sheet:
        table = preview_workbook(data, settings.tabular)
        return TabularResult(
            type="excel",
            headers=table.header_labels,
            data=table.rows,
            total_rows=table.total_row_count,
        ).to_wire()

    table, sheets = preview_sheets(data, settings.tabular)
    return TabularResult(
        type="excel",
        headers=table.header_labels,
        data=table.rows,
        total_rows=table.total_row_count,
        sheets=[SheetResult.model_validate(sheet.to_dict()) for sheet in sheets],
    ).to_wire()


def _preview_dicom(data: bytes, settings: PreviewSettings) -> Dict[str, Any]:
    preview = scan_dicom_tags(data, settings.dicom)
    return DicomResult(metadata=preview.to_metadata()).to_wire()


def _preview_nifti(key: str, data: bytes, settings: PreviewSettings) -> Dict[str, Any]:
    header = read_nifti_header(data, settings.nifti)
    metadata = NiftiMetadata.model_validate(
        {
            "fileSize": len(data),
            "fileName": _file_name(key),
            "fileExtension": file_extension(key),
            "note": settings.nifti.note,
            **header.to_metadata(),
        }
    )
    return NiftiResult(metadata=metadata).to_wire()


# ------------------------- dispatcher -------------------------

def build_preview(
    key: str,
    data: bytes,
    declared_type: Optional[str] = None,
    *,
    multi_sheet: bool = False,
    settings: Optional[PreviewSettings] = None,
) -> Dict[str, Any]:
    """Return the wire preview for an already-fetched object.

    Parameters
    ----------
    key: Storage key or ``s3://`` URI of the object (used for classification).
    data: Complete object content.
    declared_type: Optional category hint from the caller.
    multi_sheet: For spreadsheets, also preview every worksheet.

    Raises :class:`~storage_preview.errors.PreviewError` subclasses for inputs
    that cannot be previewed at all.
    """

    settings = settings or get_settings()
    _size_guard(len(data), settings.storage.max_bytes)
    key = normalize_key(key, settings.storage.bucket_name)
    category = classify(key, declared_type, data)
    logger.debug("Previewing %s as %s (%d bytes)", key, category, len(data))

    if category == "csv":
        return _preview_csv(data, settings)
    if category == "excel":
        return _preview_excel(data, settings, multi_sheet)
    if category == "dicom":
        return _preview_dicom(data, settings)
    if category == "nifti":
        return _preview_nifti(key, data, settings)
    if category == "pdf":
        return PdfResult().to_wire()
    raise UnsupportedFileTypeError(key, category)


def preview_object(
    request: PreviewRequest,
    fetch: Fetch,
    *,
    multi_sheet: bool = False,
    settings: Optional[PreviewSettings] = None,
) -> Dict[str, Any]:
    """Fetch ``request.object_key`` through *fetch* and preview it.

    Errors raised by *fetch* propagate unchanged.
    """

    settings = settings or get_settings()
    key = normalize_key(request.object_key, settings.storage.bucket_name)
    data = fetch(key)
    return build_preview(
        key,
        data,
        request.declared_file_type,
        multi_sheet=multi_sheet,
        settings=settings,
    )


def parse_for_import(
    file_name: str,
    data: bytes,
    *,
    settings: Optional[PreviewSettings] = None,
) -> Dict[str, Any]:
    """Parse an uploaded ``.csv`` or ``.xlsx`` file into rows for import.

    Unlike :func:`build_preview` this returns up to ``tabular.import_rows``
    rows, also weights Han ideographs and kana when sniffing CSV text, and
    sizes a synthesized worksheet header from the populated extent of its
    leading rows. Only the file name's extension selects the reader.
    """

    settings = settings or get_settings()
    _size_guard(len(data), settings.storage.import_max_bytes)
    extension = file_extension(file_name).lower()
    logger.debug("Parsing %s for import (%d bytes)", file_name, len(data))

    if extension == "csv":
        return _preview_csv(
            data,
            settings,
            max_rows=settings.tabular.import_rows,
            cjk_weight=settings.encoding.import_cjk_weight,
        )
    if extension == "xlsx":
        table = preview_workbook(
            data,
            settings.tabular,
            max_rows=settings.tabular.import_rows,
            fallback_scan_rows=settings.tabular.import_fallback_scan_rows,
        )
        return TabularResult(
            type="excel",
            headers=table.header_labels,
            data=table.rows,
            total_rows=table.total_row_count,
        ).to_wire()
    raise UnsupportedFileTypeError(file_name, extension)


__all__ = ["Fetch", "build_preview", "parse_for_import", "preview_object"]
