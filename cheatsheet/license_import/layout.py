"""PDF text and layout extraction for license certificates."""
from __future__ import annotations

import logging
import os
import re
import tempfile
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .normalize import ensure_list

logger = logging.getLogger(__name__)

DEFAULT_PDF_BACKENDS = [
    "pypdf",
    "pdfminer",
    "pikepdf+pypdf",
    "pikepdf+pdfminer",
]
DEFAULT_MIN_PDF_CHARS = 50

CHECKMARK_GLYPHS = "✓✔☑"
_GLYPH_RE = re.compile(f"[{CHECKMARK_GLYPHS}]")
_SEGMENT_SPLIT_RE = re.compile(r"\n| {2,}")
_GLYPH_SKIP_MARKERS = ("Close Window", "Print")

# Checkbox images are small; anything outside these bounds is a logo or photo.
CHECKBOX_WIDTH_RANGE = (10.0, 25.0)
CHECKBOX_HEIGHT_RANGE = (8.0, 20.0)
SAME_LINE_TOLERANCE = 20.0
LABEL_LEFT_REACH = 50.0
LABEL_RIGHT_REACH = 200.0

FormFields = dict[str, str | bool]


@dataclass(frozen=True)
class TextRun:
    text: str
    x: float
    y: float
    width: float


@dataclass(frozen=True)
class ImagePlacement:
    name: str
    x: float
    y: float
    width: float
    height: float


@dataclass
class DocumentLayout:
    """Everything the license parser needs from one PDF."""

    text: str
    text_runs: list[TextRun] = field(default_factory=list)
    images: list[ImagePlacement] = field(default_factory=list)
    form_fields: FormFields = field(default_factory=dict)
    meta: dict[str, Any] = field(default_factory=dict)


def _resolve_backend_order(prefer_backends: Iterable[str] | None) -> list[str]:
    if prefer_backends:
        order = [backend.strip() for backend in prefer_backends if backend and backend.strip()]
    else:
        env_value = os.environ.get("LICENSE_PDF_BACKENDS")
        if env_value:
            order = [backend.strip() for backend in env_value.split(",") if backend.strip()]
        else:
            order = list(DEFAULT_PDF_BACKENDS)
    return ensure_list(order) or list(DEFAULT_PDF_BACKENDS)


def _is_xref_issue(message: str | None) -> bool:
    if not message:
        return False
    lowered = message.lower()
    return "xref" in lowered or "cross" in lowered


def resolve_min_pdf_chars(value: int | None) -> int:
    if value is not None:
        return max(value, 0)
    env_value = os.environ.get("LICENSE_MIN_PDF_CHARS")
    if env_value:
        try:
            return max(int(env_value), 0)
        except ValueError:
            logger.debug("Invalid LICENSE_MIN_PDF_CHARS value: %s", env_value)
    return DEFAULT_MIN_PDF_CHARS


def extract_pdf_text(
    path: str | Path,
    *,
    min_chars: int = DEFAULT_MIN_PDF_CHARS,
    prefer_backends: Iterable[str] | None = None,
) -> tuple[str, dict[str, Any]]:
    """Extract text from a PDF using a cascading set of backends.

    Returns the text of the best attempt and a metadata dict with
    ``backend``, ``bytes``, ``chars``, ``warnings``, ``repaired`` and
    ``error``. When no backend yields ``min_chars`` characters the text is
    empty and ``backend`` is ``"none"``.
    """
    pdf_path = Path(path)
    try:
        byte_size = pdf_path.stat().st_size
    except OSError:
        byte_size = 0

    backend_order = _resolve_backend_order(prefer_backends)
    best_text = ""
    best_chars = 0
    best_backend = "none"
    best_repaired = False
    best_warnings: list[str] = []
    last_error: str | None = None
    all_warnings: list[str] = []
    any_repaired = False
    needs_repair_hint = False
    attempts_had_output = False

    with tempfile.TemporaryDirectory(prefix="license_pdf_") as tmp_dir:
        repair_info: tuple[Path, list[str]] | None = None
        repair_error: str | None = None

        for backend_name in backend_order:
            use_repair = backend_name.startswith("pikepdf+")
            base_backend = backend_name.split("+", 1)[-1] if use_repair else backend_name
            attempt_warnings: list[str] = []
            attempt_error: str | None = None
            repaired = False
            target_path = pdf_path

            if use_repair:
                if repair_info is None and repair_error is None:
                    try:
                        repair_info = _repair_pdf_with_pikepdf(pdf_path, Path(tmp_dir))
                    except RuntimeError as exc:
                        repair_error = str(exc)
                        logger.debug("pikepdf repair failed for %s: %s", pdf_path, exc)
                if repair_info is None:
                    attempt_error = repair_error or "pikepdf repair unavailable"
                    all_warnings.append(f"{backend_name}: pikepdf repair failed: {attempt_error}")
                    last_error = attempt_error
                    continue
                target_path, repair_warnings = repair_info
                attempt_warnings.extend(repair_warnings)
                repaired = True
                any_repaired = True

            try:
                text, backend_warnings = _extract_with_backend(base_backend, target_path)
                attempt_warnings.extend(backend_warnings)
            except RuntimeError as exc:
                attempt_error = str(exc)
                if _is_xref_issue(attempt_error):
                    needs_repair_hint = True
                logger.debug("PDF backend %s failed for %s: %s", base_backend, pdf_path, exc)
                text = ""

            chars = len(text)
            if text.strip():
                attempts_had_output = True
                if chars > best_chars:
                    best_chars = chars
                    best_text = text
                    best_backend = backend_name
                    best_repaired = repaired
                    best_warnings = list(attempt_warnings)
            else:
                attempt_warnings.append("extracted text empty")

            if chars < min_chars and text.strip():
                attempt_warnings.append(
                    f"extracted text shorter than min_chars ({chars} < {min_chars})"
                )

            if any(_is_xref_issue(message) for message in attempt_warnings):
                needs_repair_hint = True

            if attempt_error:
                last_error = attempt_error

            all_warnings.extend(f"{backend_name}: {warning}" for warning in attempt_warnings)

            if chars >= min_chars and text.strip() and not needs_repair_hint and not attempt_error:
                break

    if best_chars >= min_chars and best_text.strip():
        logger.debug("Extracted %d chars from %s with %s", best_chars, pdf_path, best_backend)
        meta = {
            "backend": best_backend,
            "bytes": byte_size,
            "chars": best_chars,
            "warnings": ensure_list(best_warnings),
            "repaired": best_repaired,
            "error": None,
        }
        return best_text, meta

    warnings_out = ensure_list(all_warnings)
    if best_chars and best_chars < min_chars:
        warnings_out.append(f"best text shorter than min_chars ({best_chars} < {min_chars})")
    if not attempts_had_output and not last_error:
        warnings_out.append("no backend produced text")
    meta = {
        "backend": "none",
        "bytes": byte_size,
        "chars": best_chars,
        "warnings": ensure_list(warnings_out),
        "repaired": any_repaired,
        "error": last_error,
    }
    return "", meta


def _extract_with_backend(backend: str, path: Path) -> tuple[str, list[str]]:
    if backend == "pypdf":
        return _extract_with_pypdf(path)
    if backend == "pdfminer":
        return _extract_with_pdfminer(path)
    raise RuntimeError(f"unknown backend: {backend}")


def _open_pypdf(path: Path):
    try:
        from pypdf import PdfReader
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("pypdf is not installed") from exc

    try:
        return PdfReader(str(path))
    except Exception as exc:  # pragma: no cover - upstream errors vary
        raise RuntimeError(str(exc)) from exc


def _extract_with_pypdf(path: Path) -> tuple[str, list[str]]:
    reader = _open_pypdf(path)
    warnings: list[str] = []
    text_chunks: list[str] = []
    try:
        pages = list(reader.pages)
    except Exception as exc:  # pragma: no cover - depends on document
        raise RuntimeError(str(exc)) from exc
    for page_number, page in enumerate(pages, start=1):
        try:
            text = page.extract_text() or ""
        except Exception as exc:  # pragma: no cover - depends on document
            warnings.append(f"page {page_number}: {exc}")
            text = ""
        text_chunks.append(text)
    return "\n".join(text_chunks), warnings


def _extract_with_pdfminer(path: Path) -> tuple[str, list[str]]:
    try:
        from pdfminer.high_level import extract_text
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("pdfminer.six is not installed") from exc

    try:
        text = extract_text(str(path))
    except Exception as exc:  # pragma: no cover - upstream errors vary
        raise RuntimeError(str(exc)) from exc
    return text or "", []


def _repair_pdf_with_pikepdf(source: Path, temp_dir: Path) -> tuple[Path, list[str]]:
    try:
        from pikepdf import Pdf
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("pikepdf is not installed") from exc

    repaired_path = Path(temp_dir) / "repaired.pdf"
    try:
        with Pdf.open(str(source)) as pdf:
            pdf.save(str(repaired_path))
    except Exception as exc:  # pragma: no cover - upstream errors vary
        raise RuntimeError(str(exc)) from exc
    return repaired_path, ["pikepdf repair applied"]


def _iter_layout_objects(container: Any) -> Iterator[Any]:
    """Depth-first walk over a pdfminer layout tree, figures included."""
    for obj in container:
        yield obj
        if isinstance(obj, Iterable) and not isinstance(obj, (str, bytes)):
            yield from _iter_layout_objects(obj)


def _pdfminer_pages(path: Path) -> list[Any]:
    try:
        from pdfminer.high_level import extract_pages
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("pdfminer.six is not installed") from exc

    try:
        return list(extract_pages(str(path)))
    except Exception as exc:  # pragma: no cover - upstream errors vary
        raise RuntimeError(str(exc)) from exc


def extract_text_runs(path: str | Path) -> list[TextRun]:
    """Positioned text lines, in page order."""
    pages = _pdfminer_pages(Path(path))
    from pdfminer.layout import LTTextLine

    runs: list[TextRun] = []
    for page in pages:
        for obj in _iter_layout_objects(page):
            if not isinstance(obj, LTTextLine):
                continue
            text = obj.get_text().strip()
            if text:
                runs.append(TextRun(text=text, x=obj.x0, y=obj.y0, width=obj.width))
    return runs


def extract_image_positions(path: str | Path) -> list[ImagePlacement]:
    pages = _pdfminer_pages(Path(path))
    from pdfminer.layout import LTImage

    images: list[ImagePlacement] = []
    for page in pages:
        for index, obj in enumerate(_iter_layout_objects(page)):
            if not isinstance(obj, LTImage):
                continue
            images.append(
                ImagePlacement(
                    name=str(obj.name or f"img_{index}"),
                    x=obj.x0,
                    y=obj.y0,
                    width=abs(obj.width),
                    height=abs(obj.height),
                )
            )
    return images


def _checkbox_value(value: Any) -> bool:
    if value is None:
        return False
    return str(value) not in {"/Off", "Off", ""}


def extract_form_fields(path: str | Path) -> FormFields:
    """AcroForm checkboxes as booleans and text fields as strings."""
    reader = _open_pypdf(Path(path))
    try:
        raw_fields = reader.get_fields() or {}
    except Exception as exc:  # pragma: no cover - upstream errors vary
        raise RuntimeError(str(exc)) from exc

    fields: FormFields = {}
    for name, data in raw_fields.items():
        field_type = data.get("/FT")
        value = data.get("/V")
        if field_type == "/Btn":
            fields[name or f"checkbox_{len(fields)}"] = _checkbox_value(value)
        elif field_type == "/Tx":
            fields[name or f"text_{len(fields)}"] = str(value) if value is not None else ""
    return fields


def extract_document_layout(
    path: str | Path,
    *,
    min_chars: int | None = None,
    prefer_backends: Iterable[str] | None = None,
) -> DocumentLayout:
    """Text, positioned runs, images and form fields of one PDF.

    Layout failures are recorded in ``meta["warnings"]``; only the text
    cascade decides whether anything usable came out.
    """
    text, meta = extract_pdf_text(
        path, min_chars=resolve_min_pdf_chars(min_chars), prefer_backends=prefer_backends
    )
    layout = DocumentLayout(text=text, meta=meta)
    if not text:
        return layout

    steps = (
        ("text_runs", extract_text_runs),
        ("images", extract_image_positions),
        ("form_fields", extract_form_fields),
    )
    for attribute, extractor in steps:
        try:
            setattr(layout, attribute, extractor(path))
        except RuntimeError as exc:
            logger.debug("Layout step %s failed for %s: %s", attribute, path, exc)
            meta["warnings"].append(f"{attribute}: {exc}")
    return layout


def _in_range(value: float, bounds: tuple[float, float]) -> bool:
    low, high = bounds
    return low < value < high


def find_checkmark_positions(images: Iterable[ImagePlacement]) -> list[ImagePlacement]:
    """Pick the images that look like ticked checkboxes.

    Checked and unchecked boxes are drawn with different images; licenses
    usually enable most features, so the most common checkbox image is
    taken as the ticked one.
    """
    candidates = [
        image
        for image in images
        if _in_range(image.width, CHECKBOX_WIDTH_RANGE)
        and _in_range(image.height, CHECKBOX_HEIGHT_RANGE)
    ]
    by_name: dict[str, list[ImagePlacement]] = {}
    for image in candidates:
        by_name.setdefault(image.name, []).append(image)
    groups = sorted(by_name.items(), key=lambda item: len(item[1]), reverse=True)
    for name, members in groups:
        logger.debug("Checkbox image %s: %d instances", name, len(members))
    if len(groups) >= 2:
        return groups[0][1]
    return candidates


def match_checkmarks_to_features(
    checkmarks: Iterable[ImagePlacement],
    text_runs: list[TextRun],
    known_features: Iterable[str],
) -> list[str]:
    """Known features whose text sits on the same line as a checkmark."""
    names = list(known_features)
    matched: list[str] = []
    for checkmark in checkmarks:
        for run in text_runs:
            if abs(checkmark.y - run.y) >= SAME_LINE_TOLERANCE:
                continue
            if not checkmark.x - LABEL_LEFT_REACH < run.x < checkmark.x + LABEL_RIGHT_REACH:
                continue
            for name in names:
                if name in run.text and name not in matched:
                    matched.append(name)
                    logger.debug("Checkmark at y=%.0f matched %s", checkmark.y, name)
    return matched


def get_checked_form_features(
    form_fields: Mapping[str, str | bool], known_features: Iterable[str]
) -> list[str]:
    names = list(known_features)
    checked: list[str] = []
    for field_name, value in form_fields.items():
        if value is not True or not field_name:
            continue
        lowered = field_name.lower()
        match = next(
            (name for name in names if name.lower() in lowered or lowered in name.lower()),
            None,
        )
        if match is not None:
            checked.append(match)
        elif len(field_name) > 2 and not field_name.startswith("checkbox_"):
            checked.append(field_name)
    return ensure_list(checked)


def extract_glyph_features(text: str) -> list[str]:
    """Segments of ``text`` carrying a checkmark glyph, glyph removed."""
    features: list[str] = []
    for segment in _SEGMENT_SPLIT_RE.split(text or ""):
        if not _GLYPH_RE.search(segment):
            continue
        cleaned = _GLYPH_RE.sub("", segment).strip()
        if len(cleaned) <= 1:
            continue
        if any(marker in cleaned for marker in _GLYPH_SKIP_MARKERS):
            continue
        features.append(cleaned)
    return ensure_list(features)
