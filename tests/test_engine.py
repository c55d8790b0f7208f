from __future__ import annotations

import io
import struct

import pytest
from openpyxl import Workbook

from storage_preview.engine import build_preview, parse_for_import, preview_object
from storage_preview.errors import PayloadTooLargeError, UnsupportedFileTypeError
from storage_preview.schema import PreviewRequest
from storage_preview.settings import PreviewSettings


@pytest.fixture()
def settings() -> PreviewSettings:
    return PreviewSettings()


def _xlsx(rows) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Data"
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def test_csv_preview_in_legacy_code_page(settings: PreviewSettings) -> None:
    data = "이름,나이\n철수,20\n영희,21\n".encode("cp949")

    result = build_preview("uploads/people.csv", data, settings=settings)

    assert result == {
        "type": "csv",
        "headers": ["이름", "나이"],
        "data": [{"이름": "철수", "나이": "20"}, {"이름": "영희", "나이": "21"}],
        "totalRows": 2,
    }


def test_empty_csv_reports_error_payload(settings: PreviewSettings) -> None:
    result = build_preview("uploads/empty.csv", b"\r\n  \n", settings=settings)

    assert result["type"] == "csv"
    assert result["error"] == "CSV file has no data"
    assert result["headers"] == []
    assert result["totalRows"] == 0


def test_excel_preview_single_sheet(settings: PreviewSettings) -> None:
    data = _xlsx([[None, None], [None, "Site", "Count"], [None, "Seoul", 3]])

    result = build_preview("uploads/sites.xlsx", data, settings=settings)

    assert result == {
        "type": "excel",
        "headers": ["Site", "Count"],
        "data": [{"Site": "Seoul", "Count": "3"}],
        "totalRows": 1,
    }


def test_excel_preview_with_sheets(settings: PreviewSettings) -> None:
    data = _xlsx([["Site", "Count"], ["Seoul", 3], ["Busan", 4]])

    result = build_preview("uploads/sites.xlsx", data, multi_sheet=True, settings=settings)

    assert result["sheets"] == [
        {
            "name": "Data",
            "headers": ["Site", "Count"],
            "rows": [["Seoul", "3"], ["Busan", "4"]],
            "totalRows": 2,
        }
    ]
    assert result["data"][1] == {"Site": "Busan", "Count": "4"}


def test_dicom_preview_wire_shape(settings: PreviewSettings) -> None:
    element = struct.pack("<HH", 0x0008, 0x0060) + b"CS" + struct.pack("<H", 2) + b"MR"
    data = b"\x00" * 128 + b"DICM" + element + b"\x00" * 16

    result = build_preview("scans/slice.dcm", data, settings=settings)

    assert result == {
        "type": "dicom",
        "metadata": {"isValidDicom": True, "fileSize": len(data), "Modality": "MR"},
        "hasImage": False,
        "imageDataUrl": None,
    }


def test_nifti_preview_wire_shape(settings: PreviewSettings) -> None:
    header = bytearray(348)
    struct.pack_into("<I", header, 0, 348)
    struct.pack_into("<4H", header, 40, 3, 10, 20, 5)
    struct.pack_into("<H", header, 70, 4)
    struct.pack_into("<4f", header, 76, 1.0, 2.0, 2.0, 4.0)

    result = build_preview("volumes/brain.nii", bytes(header), settings=settings)

    assert result == {
        "type": "nifti",
        "metadata": {
            "fileSize": 348,
            "fileName": "brain.nii",
            "fileExtension": "nii",
            "note": settings.nifti.note,
            "isValidHeader": True,
            "dimensions": [10, 20, 5],
            "datatype": 4,
            "pixelDimensions": [2.0, 2.0, 4.0],
        },
    }


def test_invalid_nifti_header_omits_fields(settings: PreviewSettings) -> None:
    result = build_preview("volumes/bad.nii", b"\x00" * 10, settings=settings)

    assert result["metadata"] == {
        "fileSize": 10,
        "fileName": "bad.nii",
        "fileExtension": "nii",
        "note": settings.nifti.note,
    }


def test_pdf_is_deferred(settings: PreviewSettings) -> None:
    result = build_preview("docs/paper.pdf", b"%PDF-1.7", settings=settings)

    assert result["type"] == "pdf"
    assert result["message"]


def test_unsupported_type_is_rejected(settings: PreviewSettings) -> None:
    with pytest.raises(UnsupportedFileTypeError) as excinfo:
        build_preview("misc/readme.txt", b"hello", settings=settings)

    assert excinfo.value.status_code == 400
    assert excinfo.value.to_dict()["error"] == "Unsupported file type"


def test_declared_type_routes_extensionless_keys(settings: PreviewSettings) -> None:
    result = build_preview("misc/blob", b"a,b\n1,2\n", "csv", settings=settings)

    assert result["headers"] == ["a", "b"]


def test_size_guard_runs_before_decoding() -> None:
    settings = PreviewSettings(storage={"max_bytes": 10})

    with pytest.raises(PayloadTooLargeError) as excinfo:
        build_preview("uploads/big.csv", b"x" * 11, settings=settings)

    assert excinfo.value.status_code == 413


def test_preview_object_fetches_normalized_key() -> None:
    settings = PreviewSettings(storage={"bucket_name": "med-data"})
    request = PreviewRequest.model_validate({"objectKey": "s3://med-data/uploads/a.csv", "declaredFileType": " CSV "})
    fetched = []

    def fetch(key: str) -> bytes:
        fetched.append(key)
        return b"id\n1\n"

    result = preview_object(request, fetch, settings=settings)

    assert fetched == ["uploads/a.csv"]
    assert request.declared_file_type == "csv"
    assert result["data"] == [{"id": "1"}]


def test_preview_object_propagates_fetch_errors(settings: PreviewSettings) -> None:
    def fetch(key: str) -> bytes:
        raise FileNotFoundError(key)

    with pytest.raises(FileNotFoundError):
        preview_object(PreviewRequest(object_key="uploads/missing.csv"), fetch, settings=settings)


def test_csv_with_byte_order_mark_keeps_clean_labels(settings: PreviewSettings) -> None:
    data = "\ufeff이름,나이\n철수,20\n".encode("utf-8")

    result = build_preview("uploads/people.csv", data, settings=settings)

    assert result["headers"] == ["이름", "나이"]
    assert result["data"] == [{"이름": "철수", "나이": "20"}]


def test_import_returns_rows_up_to_import_budget(settings: PreviewSettings) -> None:
    lines = ["id,name"] + [f"{idx},n{idx}" for idx in range(1500)]
    data = ("\n".join(lines) + "\n").encode("utf-8")

    result = parse_for_import("upload.csv", data, settings=settings)

    assert result["type"] == "csv"
    assert len(result["data"]) == 1000
    assert result["data"][-1] == {"id": "999", "name": "n999"}
    assert result["totalRows"] == 1500


def test_import_empty_csv_reports_error(settings: PreviewSettings) -> None:
    result = parse_for_import("upload.csv", b"\n\n", settings=settings)

    assert result["error"] == "CSV file has no data"


def test_import_workbook_sizes_synthesized_header_from_leading_rows() -> None:
    wb = Workbook()
    ws = wb.active
    ws.cell(row=2, column=2, value="a")
    ws.cell(row=2, column=3, value="b")
    ws.cell(row=2, column=4, value="c")
    ws.cell(row=3, column=2, value="x")
    buffer = io.BytesIO()
    wb.save(buffer)
    settings = PreviewSettings(tabular={"max_search_rows": 1})

    result = parse_for_import("upload.xlsx", buffer.getvalue(), settings=settings)

    assert result["headers"] == ["Column 1", "Column 2", "Column 3"]
    assert result["data"] == [
        {"Column 1": "a", "Column 2": "b", "Column 3": "c"},
        {"Column 1": "x", "Column 2": "", "Column 3": ""},
    ]


def test_import_workbook_returns_more_than_preview_rows(settings: PreviewSettings) -> None:
    data = _xlsx([["id"]] + [[idx] for idx in range(40)])

    result = parse_for_import("upload.xlsx", data, settings=settings)

    assert result["type"] == "excel"
    assert len(result["data"]) == 40


def test_import_accepts_only_csv_and_xlsx(settings: PreviewSettings) -> None:
    with pytest.raises(UnsupportedFileTypeError):
        parse_for_import("legacy.xls", b"\xd0\xcf\x11\xe0", settings=settings)


def test_import_has_its_own_size_limit() -> None:
    settings = PreviewSettings(storage={"import_max_bytes": 4})

    with pytest.raises(PayloadTooLargeError):
        parse_for_import("upload.csv", b"a,b\n1,2\n", settings=settings)
