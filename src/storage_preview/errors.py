# SPDX-License-Identifier: AGPL-3.0-or-later
"""Structural rejects raised when an object cannot be previewed at all."""

from __future__ import annotations

from typing import Any, Dict, Optional

from .schema import ErrorResult


class PreviewError(RuntimeError):
    """Base class for errors surfaced to the caller instead of a preview."""

    status_code = 500

    def __init__(self, message: str, *, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return ErrorResult(error=self.message, details=self.details or None).to_wire()


class UnsupportedFileTypeError(PreviewError):
    status_code = 400

    def __init__(self, key: str, category: Optional[str] = None) -> None:
        details = f"{key!r} classified as {category!r}" if category else None
        super().__init__("Unsupported file type", details=details)
        self.key = key
        self.category = category


class NoWorksheetError(PreviewError):
    status_code = 400

    def __init__(self) -> None:
        super().__init__("No worksheet found")


class WorkbookDecodeError(PreviewError):
    """openpyxl could not open the spreadsheet container."""

    status_code = 422

    def __init__(self, exc: BaseException) -> None:
        super().__init__("Failed to parse Excel file", details=f"{type(exc).__name__}: {exc}")


class PayloadTooLargeError(PreviewError):
    status_code = 413

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(
            "File too large",
            details=f"{size} bytes > limit={limit} bytes",
        )
        self.size = size
        self.limit = limit


__all__ = [
    "NoWorksheetError",
    "PayloadTooLargeError",
    "PreviewError",
    "UnsupportedFileTypeError",
    "WorkbookDecodeError",
]
