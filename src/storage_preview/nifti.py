"""Fixed-offset reader for the NIfTI-1 header."""

from __future__ import annotations

import gzip
import io
import logging
import struct
import zlib
from typing import Optional

from .models import NiftiPreview
from .settings import NiftiSettings

logger = logging.getLogger(__name__)

HEADER_SIZE = 348
GZIP_MAGIC = b"\x1f\x8b"

# NIfTI-1 field offsets
SIZEOF_HDR_OFFSET = 0
DIM_OFFSET = 40
DATATYPE_OFFSET = 70
PIXDIM_OFFSET = 76
MAX_DIMS = 7


def header_bytes(raw: bytes, *, inflate_gzip: bool = True) -> tuple[bytes, bool]:
    """Return the bytes to read the header from and whether they were inflated.

    Only the first :data:`HEADER_SIZE` bytes of a gzip stream are inflated.
    """

    if not inflate_gzip or not raw.startswith(GZIP_MAGIC):
        return raw, False
    try:
        with gzip.GzipFile(fileobj=io.BytesIO(raw)) as stream:
            return stream.read(HEADER_SIZE), True
    except (OSError, EOFError, zlib.error) as exc:
        logger.debug("gzip header inflate failed: %s", exc)
        return raw, False


def read_nifti_header(raw: bytes, settings: Optional[NiftiSettings] = None) -> NiftiPreview:
    """Read dimensionality, datatype and voxel sizes from a NIfTI-1 header.

    Fields are only populated when ``sizeof_hdr`` equals 348. A read error
    keeps the fields read before it.
    """

    settings = settings or NiftiSettings()
    data, compressed = header_bytes(raw, inflate_gzip=settings.inflate_gzip)
    preview = NiftiPreview(is_valid_header=False, file_size=len(raw), compressed=compressed)
    if len(data) < HEADER_SIZE:
        return preview

    (sizeof_hdr,) = struct.unpack_from("<I", data, SIZEOF_HDR_OFFSET)
    if sizeof_hdr != HEADER_SIZE:
        return preview

    preview.is_valid_header = True
    try:
        (dim0,) = struct.unpack_from("<H", data, DIM_OFFSET)
        count = min(dim0, MAX_DIMS)
        preview.dimensions = list(struct.unpack_from(f"<{count}H", data, DIM_OFFSET + 2))
        (preview.datatype,) = struct.unpack_from("<H", data, DATATYPE_OFFSET)
        # pixdim[0] holds qfac; voxel sizes start at pixdim[1]
        preview.pixel_dimensions = list(struct.unpack_from(f"<{count}f", data, PIXDIM_OFFSET + 4))
    except struct.error as exc:
        logger.warning("NIfTI header read stopped early: %s", exc)
    return preview


__all__ = ["HEADER_SIZE", "header_bytes", "read_nifti_header"]
