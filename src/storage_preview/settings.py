"""Central configuration loader with YAML + environment support."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator


class EncodingSettings(BaseModel):
    """Candidate code pages and scoring weights for tabular text."""

    candidates: Tuple[str, ...] = ("cp949", "euc-kr", "utf-8")
    default_encoding: str = "utf-8"
    script_weight: int = Field(default=10, ge=1)
    confident_script_hits: int = Field(default=10, ge=0)
    import_cjk_weight: int = Field(default=5, ge=0)

    @field_validator("candidates", mode="before")
    @classmethod
    def _normalise_candidates(cls, value: Optional[Sequence[str]] | str) -> Tuple[str, ...]:  # noqa: D401
        if value is None:
            return ("cp949", "euc-kr", "utf-8")
        if isinstance(value, str):
            value = value.split(",")
        cleaned = tuple(str(item).strip() for item in value if str(item).strip())
        if not cleaned:
            raise ValueError("At least one candidate encoding is required")
        return cleaned


class TabularSettings(BaseModel):
    """Search and preview budgets shared by the CSV and Excel paths."""

    max_search_rows: int = 50
    max_columns: int = 50
    default_column_count: int = 50
    preview_rows: int = 10
    sheet_preview_rows: int = 100
    import_rows: int = 1000
    import_fallback_scan_rows: int = 10

    @field_validator(
        "max_search_rows",
        "max_columns",
        "default_column_count",
        "preview_rows",
        "sheet_preview_rows",
        "import_rows",
        "import_fallback_scan_rows",
    )
    @classmethod
    def _positive_budget(cls, value: int) -> int:  # noqa: D401
        if value <= 0:
            raise ValueError("Tabular budgets must be > 0")
        return int(value)


class DicomSettings(BaseModel):
    """Bounds for the linear DICOM tag walk."""

    scan_window: int = 20_000
    max_value_length: int = 5_000
    max_string_length: int = 200
    max_consecutive_misses: int = 100

    @field_validator("scan_window", "max_value_length", "max_string_length", "max_consecutive_misses")
    @classmethod
    def _positive_bound(cls, value: int) -> int:  # noqa: D401
        if value <= 0:
            raise ValueError("DICOM scan bounds must be > 0")
        return int(value)


class NiftiSettings(BaseModel):
    """NIfTI-1 header reading options."""

    inflate_gzip: bool = True
    note: str = "Open NIfTI volumes in the 3D viewer"


class StorageSettings(BaseModel):
    """Object storage naming used to normalise incoming keys."""

    bucket_name: Optional[str] = None
    max_bytes: int = Field(default=524_288_000, ge=1)
    import_max_bytes: int = Field(default=52_428_800, ge=1)

    @field_validator("bucket_name", mode="before")
    @classmethod
    def _strip_bucket(cls, value: Optional[str]) -> Optional[str]:  # noqa: D401
        if value is None:
            return None
        return str(value).strip() or None


class PreviewSettings(BaseModel):
    """Composite settings object loaded from YAML + environment variables."""

    encoding: EncodingSettings = Field(default_factory=EncodingSettings)
    tabular: TabularSettings = Field(default_factory=TabularSettings)
    dicom: DicomSettings = Field(default_factory=DicomSettings)
    nifti: NiftiSettings = Field(default_factory=NiftiSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)


def _default_settings_path() -> Path:
    base_dir = Path(__file__).resolve().parents[2]
    return base_dir / "configs" / "settings.yaml"


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings YAML at {path} must contain a dictionary")
    return data


def _resolve_settings_path(explicit: Optional[str | Path]) -> Path:
    if explicit:
        return Path(explicit).expanduser()
    env_path = os.getenv("STORAGE_PREVIEW_SETTINGS_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return _default_settings_path()


def _resolve_env_path() -> Optional[Path]:
    candidate = os.getenv("STORAGE_PREVIEW_DOTENV")
    if candidate:
        return Path(candidate).expanduser()
    base_dir = Path(__file__).resolve().parents[2]
    default = base_dir / ".env"
    return default if default.exists() else None


def _collect_env_overrides() -> Dict[str, Any]:
    prefix = "STORAGE_PREVIEW_"
    overrides: Dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        parts = key[len(prefix) :].split("__")
        if len(parts) < 2:
            # SETTINGS_PATH / DOTENV steer the loader itself
            continue
        cursor = overrides
        for idx, part in enumerate(parts):
            normalized = part.lower()
            if idx == len(parts) - 1:
                cursor[normalized] = value
            else:
                cursor = cursor.setdefault(normalized, {})  # type: ignore[assignment]
    return overrides


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


@lru_cache(maxsize=1)
def get_settings(path: Path | None = None) -> PreviewSettings:
    """Load the global preview settings, caching the resulting object."""

    env_path = _resolve_env_path()
    if env_path is not None:
        load_dotenv(dotenv_path=env_path, override=False)
    data = _read_yaml(_resolve_settings_path(path))
    merged = _deep_merge(data, _collect_env_overrides())
    return PreviewSettings.model_validate(merged)


def reset_settings_cache() -> None:
    """Clear the cached settings instance (useful for tests)."""

    get_settings.cache_clear()  # type: ignore[attr-defined]


__all__ = [
    "DicomSettings",
    "EncodingSettings",
    "NiftiSettings",
    "PreviewSettings",
    "StorageSettings",
    "TabularSettings",
    "get_settings",
    "reset_settings_cache",
]
