import json
from pathlib import Path

import pytest

from storage_preview.cli import main
from storage_preview.settings import reset_settings_cache


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("STORAGE_PREVIEW_SETTINGS_PATH", str(tmp_path / "absent.yaml"))
    monkeypatch.setenv("STORAGE_PREVIEW_DOTENV", str(tmp_path / "absent.env"))
    reset_settings_cache()
    yield
    reset_settings_cache()


def test_cli_preview_csv(tmp_path: Path, capsys) -> None:
    target = tmp_path / "people.csv"
    target.write_bytes(",,\n,name,age\n,kim,20\n".encode("utf-8"))

    exit_code = main(["preview", str(target)])

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload == {
        "type": "csv",
        "headers": ["name", "age"],
        "data": [{"name": "kim", "age": "20"}],
        "totalRows": 1,
    }


def test_cli_preview_uses_key_for_classification(tmp_path: Path, capsys) -> None:
    target = tmp_path / "download.bin"
    target.write_bytes(b"%PDF-1.7\n")

    exit_code = main(["preview", str(target), "--key", "docs/paper.pdf", "--indent", "0"])

    assert exit_code == 0
    assert json.loads(capsys.readouterr().out)["type"] == "pdf"


def test_cli_preview_unsupported(tmp_path: Path, capsys) -> None:
    target = tmp_path / "notes.txt"
    target.write_text("hello", encoding="utf-8")

    exit_code = main(["preview", str(target)])

    assert exit_code == 2
    payload = json.loads(capsys.readouterr().out)
    assert payload["error"] == "Unsupported file type"


def test_cli_classify(capsys) -> None:
    assert main(["classify", "volumes/brain.nii.gz"]) == 0
    assert main(["classify", "projects/blob", "--type", "dicom"]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert lines == ["nifti", "dicom"]


def test_cli_preview_import_mode(tmp_path: Path, capsys) -> None:
    target = tmp_path / "upload.csv"
    target.write_bytes(("id\n" + "\n".join(str(idx) for idx in range(25)) + "\n").encode("utf-8"))

    exit_code = main(["preview", str(target), "--import"])

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert len(payload["data"]) == 25


def test_cli_import_and_sheets_are_exclusive(tmp_path: Path) -> None:
    with pytest.raises(SystemExit):
        main(["preview", str(tmp_path / "a.xlsx"), "--import", "--sheets"])
