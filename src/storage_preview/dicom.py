# SPDX-License-Identifier: AGPL-3.0-or-later
"""Bounded linear walk over a DICOM container for a fixed set of tags.

This is not a DICOM parser. After the 128-byte preamble and ``DICM`` magic the
scanner reads little-endian (group, element) pairs at 4-byte strides; when a
pair matches an entry of :data:`DICOM_TAGS` it decodes the explicit-VR element
that follows, otherwise it moves 4 bytes on without skipping the unknown
element's value. Every loop is bounded by the scan window, the miss ceiling
and the value length cap.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, replace
from typing import Dict, FrozenSet, Optional, Tuple

from .models import DicomPreview, DicomTagSpec, MetadataValue
from .settings import DicomSettings

logger = logging.getLogger(__name__)

PREAMBLE_LENGTH = 128
MAGIC = b"DICM"
DATA_START = PREAMBLE_LENGTH + len(MAGIC)

LONG_LENGTH_VRS = frozenset({"OB", "OW", "OF", "SQ", "UT", "UN"})
_INTEGER_VRS: Dict[str, Tuple[str, int]] = {
    "US": ("<H", 2),
    "SS": ("<h", 2),
    "UL": ("<I", 4),
    "SL": ("<i", 4),
}

DICOM_TAGS: Tuple[DicomTagSpec, ...] = (
    DicomTagSpec(0x0010, 0x0010, "Patient Name", "PN"),
    DicomTagSpec(0x0010, 0x0020, "Patient ID", "LO"),
    DicomTagSpec(0x0008, 0x0020, "Study Date", "DA"),
    DicomTagSpec(0x0008, 0x0030, "Study Time", "TM"),
    DicomTagSpec(0x0008, 0x0060, "Modality", "CS"),
    DicomTagSpec(0x0018, 0x0024, "Sequence Name", "SH"),
    DicomTagSpec(0x0008, 0x103E, "Series Description", "LO"),
    DicomTagSpec(0x0028, 0x0030, "Pixel Spacing", "DS"),
    DicomTagSpec(0x0018, 0x0050, "Slice Thickness", "DS"),
    DicomTagSpec(0x0020, 0x1041, "Slice Location", "DS"),
    DicomTagSpec(0x0020, 0x0013, "Instance Number", "IS"),
    DicomTagSpec(0x0008, 0x0032, "Acquisition Time", "TM"),
    DicomTagSpec(0x0008, 0x0033, "Content Time", "TM"),
    DicomTagSpec(0x0020, 0x0100, "Temporal Position Identifier", "IS"),
    DicomTagSpec(0x0018, 0x1089, "Cardiac Number of Images", "IS"),
    DicomTagSpec(0x0028, 0x0002, "Samples per Pixel", "US"),
    DicomTagSpec(0x0008, 0x0070, "Manufacturer", "LO"),
    DicomTagSpec(0x0008, 0x1090, "Manufacturer Model Name", "LO"),
    DicomTagSpec(0x0020, 0x000D, "Study Instance UID", "UI"),
    DicomTagSpec(0x0020, 0x000E, "Series Instance UID", "UI"),
    DicomTagSpec(0x0008, 0x0018, "SOP Instance UID", "UI"),
)

_TAGS_BY_ID: Dict[Tuple[int, int], DicomTagSpec] = {(tag.group, tag.element): tag for tag in DICOM_TAGS}

# stop reasons
ALL_FOUND = "all_tags_found"
WINDOW_EXHAUSTED = "scan_window"
MISS_CEILING = "miss_ceiling"
OUT_OF_BOUNDS = "out_of_bounds"
SCAN_ERROR = "error"


@dataclass(frozen=True)
class ScanCursor:
    """Position and budgets of one scan; every step returns a new cursor."""

    position: int
    limit: int
    consecutive_misses: int = 0
    found: FrozenSet[str] = frozenset()

    @property
    def remaining_budget(self) -> int:
        return max(0, self.limit - self.position)


@dataclass(frozen=True)
class StepResult:
    cursor: ScanCursor
    element: Optional[Tuple[str, MetadataValue]] = None
    stop_reason: Optional[str] = None


def has_magic(buffer: bytes) -> bool:
    return len(buffer) > DATA_START and buffer[PREAMBLE_LENGTH:DATA_START] == MAGIC


def read_ascii(buffer: bytes, offset: int, length: int) -> str:
    raw = buffer[offset : offset + length]
    return raw.decode("ascii", errors="replace").replace("\x00", "").strip()


def decode_value(buffer: bytes, offset: int, length: int, vr: str, max_string_length: int) -> Optional[MetadataValue]:
    """Decode one element value; ``None`` when nothing displayable was read."""

    if vr in _INTEGER_VRS:
        fmt, width = _INTEGER_VRS[vr]
        if length < width:
            return None
        return struct.unpack_from(fmt, buffer, offset)[0]
    text = read_ascii(buffer, offset, min(length, max_string_length))
    return text or None


def scan_step(buffer: bytes, cursor: ScanCursor, settings: DicomSettings) -> StepResult:
    """Advance the scan by one tag read.

    Returns the next cursor, the decoded ``(name, value)`` when a wanted tag
    was read, and a stop reason once the scan must end.
    """

    if len(cursor.found) >= len(DICOM_TAGS):
        return StepResult(cursor, stop_reason=ALL_FOUND)
    if cursor.remaining_budget <= 8:
        return StepResult(cursor, stop_reason=WINDOW_EXHAUSTED)
    if cursor.consecutive_misses >= settings.max_consecutive_misses:
        return StepResult(cursor, stop_reason=MISS_CEILING)

    offset = cursor.position
    group, element = struct.unpack_from("<HH", buffer, offset)
    tag = _TAGS_BY_ID.get((group, element))
    if tag is None or tag.key in cursor.found:
        return StepResult(replace(cursor, position=offset + 4, consecutive_misses=cursor.consecutive_misses + 1))

    found = cursor.found | {tag.key}
    offset += 4
    if offset + 2 > len(buffer):
        return StepResult(replace(cursor, position=offset, found=found), stop_reason=OUT_OF_BOUNDS)
    vr = read_ascii(buffer, offset, 2)
    offset += 2

    if vr in LONG_LENGTH_VRS:
        if offset + 6 > len(buffer):
            return StepResult(replace(cursor, position=offset, found=found), stop_reason=OUT_OF_BOUNDS)
        offset += 2
        (length,) = struct.unpack_from("<I", buffer, offset)
        offset += 4
    else:
        if offset + 2 > len(buffer):
            return StepResult(replace(cursor, position=offset, found=found), stop_reason=OUT_OF_BOUNDS)
        (length,) = struct.unpack_from("<H", buffer, offset)
        offset += 2

    value: Optional[MetadataValue] = None
    if 0 < length < settings.max_value_length and offset + length <= len(buffer):
        value = decode_value(buffer, offset, length, vr, settings.max_string_length)

    next_cursor = ScanCursor(
        position=offset + length,
        limit=cursor.limit,
        consecutive_misses=0,
        found=found,
    )
    return StepResult(next_cursor, element=(tag.name, value) if value is not None else None)


def scan_dicom_tags(buffer: bytes, settings: Optional[DicomSettings] = None) -> DicomPreview:
    """Extract the clinically relevant tags of :data:`DICOM_TAGS` from *buffer*.

    A missing magic is a negative result, not an error. An exception during
    the walk keeps whatever was already extracted.
    """

    settings = settings or DicomSettings()
    size = len(buffer)
    if size <= DATA_START:
        return DicomPreview(is_valid_container=False, file_size=size, note="File is too small")
    if not has_magic(buffer):
        return DicomPreview(is_valid_container=False, file_size=size, note="DICM magic not found")

    preview = DicomPreview(is_valid_container=True, file_size=size)
    cursor = ScanCursor(position=DATA_START, limit=min(size, settings.scan_window))
    try:
        while True:
            step = scan_step(buffer, cursor, settings)
            cursor = step.cursor
            if step.element is not None:
                name, value = step.element
                preview.metadata[name] = value
            if step.stop_reason is not None:
                preview.stop_reason = step.stop_reason
                break
    except (struct.error, ValueError) as exc:
        logger.warning("DICOM scan stopped at offset %d: %s", cursor.position, exc)
        preview.stop_reason = SCAN_ERROR
    logger.debug(
        "DICOM scan finished (%s) with %d/%d tags",
        preview.stop_reason,
        len(cursor.found),
        len(DICOM_TAGS),
    )
    return preview


__all__ = [
    "DATA_START",
    "DICOM_TAGS",
    "LONG_LENGTH_VRS",
    "MAGIC",
    "ScanCursor",
    "StepResult",
    "decode_value",
    "has_magic",
    "scan_dicom_tags",
    "scan_step",
]
