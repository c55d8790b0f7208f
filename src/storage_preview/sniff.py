"""File category classification used by the preview dispatcher."""

from __future__ import annotations

from typing import Dict, Optional, Tuple

CATEGORIES = ("excel", "pdf", "dicom", "nifti", "csv", "other")

_EXTENSION_MAP: Dict[str, str] = {
    ".csv": "csv",
    ".xlsx": "excel",
    ".xls": "excel",
    ".dcm": "dicom",
    ".dicom": "dicom",
    ".nii": "nifti",
    ".nii.gz": "nifti",
    ".nifti": "nifti",
    ".pdf": "pdf",
}

# checked in order; first segment found in the key wins
_PATH_SEGMENTS: Tuple[Tuple[str, str], ...] = (
    ("/excel/", "excel"),
    ("/dicom/", "dicom"),
    ("/nifti/", "nifti"),
    ("/pdf/", "pdf"),
    ("/csv/", "csv"),
)


def _suffix(key: str) -> str:
    name = key.lower().rsplit("/", 1)[-1]
    if name.endswith(".nii.gz"):
        return ".nii.gz"
    dot = name.rfind(".")
    return name[dot:] if dot > 0 else ""


def _sniff_magic(data: bytes) -> Optional[str]:
    if len(data) > 132 and data[128:132] == b"DICM":
        return "dicom"
    if len(data) >= 348 and int.from_bytes(data[:4], "little") == 348:
        return "nifti"
    if data.startswith(b"%PDF-"):
        return "pdf"
    if data.startswith(b"PK\x03\x04"):
        return "excel"
    return None


def normalize_key(key: str, bucket: Optional[str] = None) -> str:
    """Strip an ``s3://<bucket>/`` prefix so keys compare as storage paths."""

    if bucket and key.startswith(f"s3://{bucket}/"):
        return key[len(f"s3://{bucket}/") :]
    return key


def classify(key: str, declared_type: Optional[str] = None, data: Optional[bytes] = None) -> str:
    """Return one of :data:`CATEGORIES` for *key*.

    Precedence: file extension, then the declared type hint, then a storage
    path segment such as ``/dicom/``, then content magic when *data* is given.
    """

    category = _EXTENSION_MAP.get(_suffix(key))
    if category:
        return category

    hint = (declared_type or "").strip().lower()
    if hint in CATEGORIES and hint != "other":
        return hint

    for segment, segment_category in _PATH_SEGMENTS:
        if segment in key:
            return segment_category

    if data:
        magic = _sniff_magic(data)
        if magic:
            return magic
    return "other"


def file_extension(key: str) -> str:
    suffix = _suffix(key)
    return suffix.lstrip(".") or "unknown"


__all__ = ["CATEGORIES", "classify", "file_extension", "normalize_key"]
