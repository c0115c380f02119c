from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from cheatsheet.scripts import import_licenses

PROFILE_PASTE = (
    "Profile Name\tProfile-5801\n"
    "Sim 5x\tChecked\n"
    "Sim 5x Level\t3/4 Axis\n"
    "SolidCAM\n"
)


def test_salesforce_command_reads_file(
    tmp_path: Path, round_trip_text: str, capsys: pytest.CaptureFixture[str]
) -> None:
    source = tmp_path / "paste.txt"
    source.write_text(round_trip_text, encoding="utf-8")
    exit_code = import_licenses.main(["salesforce", str(source)])
    captured = capsys.readouterr()
    assert exit_code == 0
    assert "Customer: Acme Corp" in captured.out
    assert "Page name: 12345" in captured.out
    assert "Mapping: 1 mapped, 0 SKU, 0 unmapped, 0 ignored" in captured.out


def test_salesforce_command_reads_stdin(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO(PROFILE_PASTE))
    exit_code = import_licenses.main(["salesforce"])
    captured = capsys.readouterr()
    assert exit_code == 0
    assert "Page name: P5801" in captured.out
    assert "SC-Mill-5Axis bits: Sim4x" in captured.out


def test_salesforce_command_rejects_empty_input(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO("  \n"))
    assert import_licenses.main(["salesforce"]) == 1
    assert "No input text provided" in capsys.readouterr().err


def test_salesforce_command_reports_parse_failure(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO("Just a note about Acme"))
    assert import_licenses.main(["salesforce"]) == 1
    assert "Parse failed: Not a valid Salesforce dongle page" in capsys.readouterr().err


def test_salesforce_command_reports_unreadable_document(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    source = tmp_path / "page.docx"
    source.write_bytes(b"not a zip archive")
    assert import_licenses.main(["salesforce", str(source)]) == 1
    err = capsys.readouterr().err
    assert "Parse failed: page.docx: cannot read document" in err


def test_import_command_reports_unreadable_document(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    source = tmp_path / "page.docx"
    source.write_bytes(b"not a zip archive")
    store_path = tmp_path / "store.json"
    assert import_licenses.main(["import", str(source), "--store", str(store_path)]) == 1
    assert "| page.docx |" in capsys.readouterr().out


def test_pdf_command(certificate_pdf: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = import_licenses.main(
        ["pdf", str(certificate_pdf), "--pdf-backends", "pypdf,pdfminer", "--min-pdf-chars", "40"]
    )
    captured = capsys.readouterr()
    assert exit_code == 0
    assert f"== {certificate_pdf.name}" in captured.out
    assert "Customer: Acme Corp" in captured.out
    assert "Page name: 77518" in captured.out


def test_import_command_writes_store(
    tmp_path: Path, round_trip_text: str, capsys: pytest.CaptureFixture[str]
) -> None:
    source = tmp_path / "paste.txt"
    source.write_text(round_trip_text, encoding="utf-8")
    store_path = tmp_path / "store.json"
    exit_code = import_licenses.main(["import", str(source), "--store", str(store_path)])
    captured = capsys.readouterr()
    assert exit_code == 0
    assert "| Acme Corp | 12345 | yes | 1 | 0 | 0 | 0 |" in captured.out

    data = json.loads(store_path.read_text(encoding="utf-8"))
    company = data["companies"][0]
    assert company["name"] == "Acme Corp"
    assert [page["name"] for page in company["pages"]] == ["12345"]
    assert company["pages"][0]["state"]["packages"]["SC-Mill"]["selectedBits"] == ["HSS"]
    assert len(company["licenses"]) == 1


def test_import_command_company_override_and_env_store(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    round_trip_text: str,
    capsys: pytest.CaptureFixture[str],
) -> None:
    source = tmp_path / "paste.txt"
    source.write_text(round_trip_text, encoding="utf-8")
    store_path = tmp_path / "env_store.json"
    monkeypatch.setenv("LICENSE_STORE_PATH", str(store_path))
    exit_code = import_licenses.main(["import", str(source), "--company", "Delta AG"])
    capsys.readouterr()
    assert exit_code == 0
    data = json.loads(store_path.read_text(encoding="utf-8"))
    assert [company["name"] for company in data["companies"]] == ["Delta AG"]


def test_import_command_fails_on_unreadable_pdf(
    tmp_path: Path, garbage_pdf: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    store_path = tmp_path / "store.json"
    exit_code = import_licenses.main(
        ["import", str(garbage_pdf), "--store", str(store_path), "--min-pdf-chars", "10"]
    )
    captured = capsys.readouterr()
    assert exit_code == 1
    assert f"| {garbage_pdf.name} |" in captured.out
    data = json.loads(store_path.read_text(encoding="utf-8"))
    assert data["companies"] == []


def test_no_command_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    assert import_licenses.main([]) == 0
    assert "salesforce" in capsys.readouterr().out
