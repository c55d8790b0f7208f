"""Lightweight data structures produced by the preview components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

MetadataValue = Union[str, int, float, bool]


@dataclass(frozen=True, slots=True)
class CandidateDecoding:
    """One byte-to-text decoding attempt and its script score."""

    encoding: str
    text: str
    score: int = 0
    script_hits: int = 0
    non_ascii: int = 0
    cjk_hits: int = 0


@dataclass(frozen=True, slots=True)
class TabularHeader:
    """Location and labels of the logical header row."""

    row_index: int
    first_column: int
    last_column: int
    labels: List[str]
    synthesized: bool = False

    def __post_init__(self) -> None:
        if not self.labels:
            raise ValueError("TabularHeader requires at least one label")
        if self.first_column > self.last_column:
            raise ValueError("first_column must be <= last_column")


@dataclass(slots=True)
class TabularPreview:
    """Bounded table materialized from a located header."""

    header_labels: List[str]
    rows: List[Dict[str, str]] = field(default_factory=list)
    total_row_count: int = 0

    @property
    def preview_row_count(self) -> int:
        return len(self.rows)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "headers": list(self.header_labels),
            "data": [dict(row) for row in self.rows],
            "totalRows": self.total_row_count,
        }


@dataclass(slots=True)
class SheetPreview:
    """One worksheet in multi-sheet mode; rows are positional."""

    name: str
    headers: List[str]
    rows: List[List[str]] = field(default_factory=list)
    total_row_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "headers": list(self.headers),
            "rows": [list(row) for row in self.rows],
            "totalRows": self.total_row_count,
        }


@dataclass(frozen=True, slots=True)
class DicomTagSpec:
    group: int
    element: int
    name: str
    vr: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.group:04x},{self.element:04x}"


@dataclass(slots=True)
class DicomPreview:
    """Accumulator for the DICOM walk; returned as-is on early exit."""

    is_valid_container: bool
    file_size: int
    metadata: Dict[str, MetadataValue] = field(default_factory=dict)
    stop_reason: Optional[str] = None
    note: Optional[str] = None

    def to_metadata(self) -> Dict[str, MetadataValue]:
        if not self.is_valid_container:
            out: Dict[str, MetadataValue] = {
                "fileSize": self.file_size,
                "isValidDicom": False,
            }
            if self.note:
                out["note"] = self.note
            return out
        out = {"isValidDicom": True, "fileSize": self.file_size}
        out.update(self.metadata)
        return out


@dataclass(slots=True)
class NiftiPreview:
    """Fields read from a NIfTI-1 header; only set when sizeof_hdr is valid."""

    is_valid_header: bool
    file_size: int
    dimensions: Optional[List[int]] = None
    datatype: Optional[int] = None
    pixel_dimensions: Optional[List[float]] = None
    compressed: bool = False

    def to_metadata(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if not self.is_valid_header:
            return out
        out["isValidHeader"] = True
        if self.dimensions is not None:
            out["dimensions"] = list(self.dimensions)
        if self.datatype is not None:
            out["datatype"] = self.datatype
        if self.pixel_dimensions is not None:
            out["pixelDimensions"] = list(self.pixel_dimensions)
        return out


__all__ = [
    "CandidateDecoding",
    "DicomPreview",
    "DicomTagSpec",
    "MetadataValue",
    "NiftiPreview",
    "SheetPreview",
    "TabularHeader",
    "TabularPreview",
]
