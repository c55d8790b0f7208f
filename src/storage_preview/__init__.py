# SPDX-License-Identifier: AGPL-3.0-or-later
"""Public interface for :mod:`storage_preview` with lightweight imports."""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any, Dict, Tuple

__all__ = [
    "build_preview",
    "preview_object",
    "parse_for_import",
    "PreviewRequest",
    "PreviewError",
    "classify",
    "sniff",
    "rank_decodings",
    "locate_header",
    "extract_rows",
    "scan_dicom_tags",
    "read_nifti_header",
    "PreviewSettings",
    "get_settings",
]

_LAZY_ATTRS: Dict[str, Tuple[str, str]] = {
    "build_preview": (".engine", "build_preview"),
    "preview_object": (".engine", "preview_object"),
    "parse_for_import": (".engine", "parse_for_import"),
    "PreviewRequest": (".schema", "PreviewRequest"),
    "PreviewError": (".errors", "PreviewError"),
    "classify": (".sniff", "classify"),
    "sniff": (".encoding", "sniff"),
    "rank_decodings": (".encoding", "rank_decodings"),
    "locate_header": (".tabular", "locate_header"),
    "extract_rows": (".tabular", "extract_rows"),
    "scan_dicom_tags": (".dicom", "scan_dicom_tags"),
    "read_nifti_header": (".nifti", "read_nifti_header"),
    "PreviewSettings": (".settings", "PreviewSettings"),
    "get_settings": (".settings", "get_settings"),
}

if TYPE_CHECKING:  # pragma: no cover - import-time only for type checkers
    from .dicom import scan_dicom_tags
    from .encoding import rank_decodings, sniff
    from .engine import build_preview, parse_for_import, preview_object
    from .errors import PreviewError
    from .nifti import read_nifti_header
    from .schema import PreviewRequest
    from .settings import PreviewSettings, get_settings
    from .sniff import classify
    from .tabular import extract_rows, locate_header


def __getattr__(name: str) -> Any:
    try:
        module_name, attr_name = _LAZY_ATTRS[name]
    except KeyError as exc:
        raise AttributeError(name) from exc
    module = import_module(module_name, package=__name__)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:  # pragma: no cover - simple delegation
    return sorted(__all__)
