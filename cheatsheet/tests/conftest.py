from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

import pytest

from cheatsheet.license_import.models import LicenseInfo

ROUND_TRIP_TEXT = (
    "Customer  Acme Corp\n"
    "Dongle No.  12345\n"
    "HSS  Checked\n"
    "Sim 5x  Not Checked\n"
)

CERTIFICATE_LINES = (
    "SolidCAM License Certificate",
    "Customer Acme Corp",
    "Dongle No. 77518",
    "Dongle Type MINI-USB",
    "Maintenance Type Subscription",
    "Maintenance Start Date 1/1/2024",
    "Maintenance End Date 31/12/2024",
    "SolidCAM Version 2024",
)


def build_pdf(lines: Iterable[str]) -> bytes:
    """Single page Helvetica PDF with one text line per entry."""
    commands = ["BT", "/F1 11 Tf"]
    y = 760
    for line in lines:
        escaped = line.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
        commands.append(f"1 0 0 1 72 {y} Tm ({escaped}) Tj")
        y -= 18
    commands.append("ET")
    stream = "\n".join(commands).encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Count 1 /Kids [3 0 R] >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R "
        b"/Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\n" % (len(objects) + 1)
    out += b"startxref\n%d\n%%%%EOF\n" % xref_offset
    return bytes(out)


def build_license(**overrides: Any) -> LicenseInfo:
    values: dict[str, Any] = {
        "customer": "Acme Corp",
        "dongle_no": "77518",
        "serial_no": "",
        "license_type": "dongle",
        "dongle_type": "MINI-USB",
        "display_type": "Hardware Dongle",
        "is_network_license": False,
        "is_profile": False,
        "maintenance_type": "",
        "maintenance_start": "",
        "maintenance_end": "",
        "solidcam_version": "",
        "features": (),
        "imported_at": "2024-01-01T00:00:00+00:00",
        "source_file_name": "test",
    }
    values.update(overrides)
    values["features"] = tuple(values["features"])
    values["unchecked_features"] = tuple(values.get("unchecked_features", ()))
    return LicenseInfo(**values)


@pytest.fixture()
def make_license() -> Callable[..., LicenseInfo]:
    return build_license


@pytest.fixture()
def round_trip_text() -> str:
    return ROUND_TRIP_TEXT


@pytest.fixture()
def certificate_pdf(tmp_path: Path) -> Path:
    path = tmp_path / "acme_77518.pdf"
    path.write_bytes(build_pdf(CERTIFICATE_LINES))
    return path


@pytest.fixture()
def garbage_pdf(tmp_path: Path) -> Path:
    path = tmp_path / "broken.pdf"
    path.write_bytes(b"this is not a pdf at all")
    return path
