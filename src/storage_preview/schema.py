# SPDX-License-Identifier: AGPL-3.0-or-later
"""Wire models for preview requests and results (camelCase on the wire)."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

FileCategory = Literal["excel", "pdf", "dicom", "nifti", "csv", "other"]


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        """Serialise with wire aliases, leaving out unset optional fields."""

        return self.model_dump(by_alias=True, exclude_none=True)


class PreviewRequest(WireModel):
    """What the HTTP layer hands over: a storage key and a type hint."""

    object_key: str = Field(alias="objectKey", min_length=1)
    declared_file_type: Optional[FileCategory] = Field(default=None, alias="declaredFileType")

    @field_validator("declared_file_type", mode="before")
    @classmethod
    def _normalise_type(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = str(value).strip().lower()
        return cleaned or None


class SheetResult(WireModel):
    name: str
    headers: List[str]
    rows: List[List[str]]
    total_rows: int = Field(alias="totalRows")


class TabularResult(WireModel):
    type: Literal["csv", "excel"]
    headers: List[str] = Field(default_factory=list)
    data: List[Dict[str, str]] = Field(default_factory=list)
    total_rows: int = Field(default=0, alias="totalRows")
    sheets: Optional[List[SheetResult]] = None
    error: Optional[str] = None


class DicomResult(WireModel):
    type: Literal["dicom"] = "dicom"
    metadata: Dict[str, Any] = Field(default_factory=dict)
    has_image: bool = Field(default=False, alias="hasImage")
    image_data_url: Optional[str] = Field(default=None, alias="imageDataUrl")

    def to_wire(self) -> Dict[str, Any]:
        # imageDataUrl is always present, even when null
        return self.model_dump(by_alias=True)


class NiftiMetadata(WireModel):
    file_size: int = Field(alias="fileSize")
    file_name: str = Field(alias="fileName")
    file_extension: str = Field(alias="fileExtension")
    note: str
    is_valid_header: Optional[bool] = Field(default=None, alias="isValidHeader")
    dimensions: Optional[List[int]] = None
    datatype: Optional[int] = None
    pixel_dimensions: Optional[List[float]] = Field(default=None, alias="pixelDimensions")


class NiftiResult(WireModel):
    type: Literal["nifti"] = "nifti"
    metadata: NiftiMetadata


class PdfResult(WireModel):
    type: Literal["pdf"] = "pdf"
    message: str = "Render PDF files from their preview URL"


class ErrorResult(WireModel):
    error: str
    details: Optional[str] = None


__all__ = [
    "DicomResult",
    "ErrorResult",
    "FileCategory",
    "NiftiMetadata",
    "NiftiResult",
    "PdfResult",
    "PreviewRequest",
    "SheetResult",
    "TabularResult",
    "WireModel",
]
