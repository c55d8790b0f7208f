from __future__ import annotations

import pytest

from storage_preview.sniff import classify, file_extension, normalize_key


@pytest.mark.parametrize(
    ("key", "expected"),
    [
        ("uploads/report.CSV", "csv"),
        ("uploads/book.xlsx", "excel"),
        ("uploads/legacy.xls", "excel"),
        ("scans/slice.dcm", "dicom"),
        ("volumes/brain.nii", "nifti"),
        ("volumes/brain.nii.gz", "nifti"),
        ("docs/paper.pdf", "pdf"),
        ("misc/readme.txt", "other"),
    ],
)
def test_classify_by_extension(key: str, expected: str) -> None:
    assert classify(key) == expected


def test_extension_beats_declared_type() -> None:
    assert classify("uploads/table.csv", "excel") == "csv"


def test_declared_type_beats_path_segment() -> None:
    assert classify("projects/dicom/blob", "nifti") == "nifti"


def test_path_segment_when_no_extension_or_hint() -> None:
    assert classify("projects/dicom/0001") == "dicom"
    assert classify("projects/excel/sheet-1") == "excel"


def test_other_hint_is_ignored() -> None:
    assert classify("projects/nifti/vol", "other") == "nifti"


def test_content_magic_is_the_last_resort() -> None:
    dicom = b"\x00" * 128 + b"DICM" + b"\x00" * 8
    nifti = (348).to_bytes(4, "little") + b"\x00" * 344

    assert classify("blob", data=dicom) == "dicom"
    assert classify("blob", data=nifti) == "nifti"
    assert classify("blob", data=b"%PDF-1.7") == "pdf"
    assert classify("blob", data=b"PK\x03\x04rest") == "excel"
    assert classify("blob", data=b"plain") == "other"


def test_hidden_file_has_no_extension() -> None:
    assert file_extension("uploads/.csv") == "unknown"
    assert classify("uploads/.csv") == "other"


def test_normalize_key_strips_bucket_uri() -> None:
    assert normalize_key("s3://med-data/scans/a.dcm", "med-data") == "scans/a.dcm"
    assert normalize_key("s3://other/scans/a.dcm", "med-data") == "s3://other/scans/a.dcm"
    assert normalize_key("scans/a.dcm", None) == "scans/a.dcm"


def test_file_extension() -> None:
    assert file_extension("volumes/brain.nii.gz") == "nii.gz"
    assert file_extension("volumes/brain.NII") == "nii"
    assert file_extension("volumes/brain") == "unknown"
