"""Load CRM page text saved as plain text, HTML or Word documents."""
from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from bs4 import BeautifulSoup
from docx import Document

logger = logging.getLogger(__name__)

HTML_EXTENSIONS = {".html", ".htm"}
DOCX_EXTENSIONS = {".docx"}
PDF_EXTENSIONS = {".pdf"}


def _join_cells(cells: Iterable[str]) -> str:
    return "\t".join(cell for cell in cells if cell)


def html_to_text(markup: str) -> str:
    """Flatten a saved CRM page so each table row reads like a pasted row."""
    soup = BeautifulSoup(markup, "lxml")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    lines: list[str] = []
    for row in soup.find_all("tr"):
        cells = [cell.get_text(" ", strip=True) for cell in row.find_all(["th", "td"])]
        line = _join_cells(cells)
        if line:
            lines.append(line)
    for table in soup.find_all("table"):
        if table.find_parent("table") is None:
            table.decompose()
    body = soup.body or soup
    for chunk in body.get_text("\n", strip=True).splitlines():
        if chunk.strip():
            lines.append(chunk.strip())
    return "\n".join(lines)


def docx_to_text(path: Path) -> str:
    try:
        document = Document(str(path))
    except Exception as exc:  # upstream errors vary
        raise ValueError(f"{path.name}: cannot read document: {exc}") from exc
    lines = [paragraph.text for paragraph in document.paragraphs if paragraph.text.strip()]
    for table in document.tables:
        for row in table.rows:
            line = _join_cells(cell.text.strip() for cell in row.cells)
            if line:
                lines.append(line)
    return "\n".join(lines)


def load_source_text(path: str | Path) -> str:
    """Return the CRM text stored in ``path`` (``.txt``, ``.html`` or ``.docx``)."""
    source = Path(path)
    suffix = source.suffix.lower()
    if suffix in PDF_EXTENSIONS:
        raise ValueError(f"{source.name}: PDF files go through the PDF parser")
    if suffix in DOCX_EXTENSIONS:
        return docx_to_text(source)
    text = source.read_text(encoding="utf-8", errors="ignore")
    if suffix in HTML_EXTENSIONS:
        logger.debug("Flattening HTML page %s", source)
        return html_to_text(text)
    return text
