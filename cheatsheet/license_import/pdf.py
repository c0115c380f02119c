"""SolidCAM license certificate (PDF) parsing.

Two layouts exist: the standard certificate, keyed by ``Customer`` and the
dongle number, and the profile certificate, keyed by ``Profile Name`` and a
``Profile-NNNN`` identifier.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path
from typing import Literal

from .dictionary import known_feature_names
from .header import (
    DONGLE_TYPE_NETUSB,
    DONGLE_TYPE_USB,
    PROFILE_NUMBER_RE,
    SIM5X_LEVEL_3_AXIS,
    SIM5X_LEVEL_34_AXIS,
    classify_license,
)
from .layout import (
    CHECKMARK_GLYPHS,
    DocumentLayout,
    extract_document_layout,
    extract_glyph_features,
    find_checkmark_positions,
    get_checked_form_features,
    match_checkmarks_to_features,
)
from .models import UNKNOWN_CUSTOMER, LicenseInfo, ParsedLicense
from .normalize import normalize_whitespace, now_iso

logger = logging.getLogger(__name__)

PdfFormat = Literal["standard", "profile"]

NETWORK_FEATURE = "Net Dongle"

_FLAGS = re.IGNORECASE | re.MULTILINE
_PROFILE_CUSTOMER_RE = re.compile(
    r"Profile Name\s+(.+?)(?=\s+(?:Profile Users|Dongle No\.|Profile No\.|CAD)|\s*$)", _FLAGS
)
_STANDARD_CUSTOMER_RE = re.compile(r"Customer[ \t]+([^\n]+?)(?=\s+Product key|[ \t]*$)", _FLAGS)
_DONGLE_NO_RE = re.compile(r"Dongle No\.\s*(\d+)", re.IGNORECASE)
_SERIAL_NO_RE = re.compile(r"Serial No\.\s*([A-F0-9]+)", re.IGNORECASE)
_PRODUCT_KEY_RE = re.compile(r"Product key\s+([a-f0-9-]{36})", re.IGNORECASE)
_DONGLE_TYPE_RE = re.compile(r"Dongle Type[ \t]+([^\n]+)", re.IGNORECASE)
_MAINTENANCE_TYPE_RE = re.compile(r"Maintenance Type[ \t]+([^\n]+)", re.IGNORECASE)
_MAINTENANCE_START_RE = re.compile(
    r"Maintenance Start Date\s+(\d{1,2}/\d{1,2}/\d{4})", re.IGNORECASE
)
_MAINTENANCE_END_RE = re.compile(r"Maintenance End Date\s+(\d{1,2}/\d{1,2}/\d{4})", re.IGNORECASE)
_VERSION_RE = re.compile(r"SolidCAM Version\s+(\d{4})", re.IGNORECASE)
_SIM5X_LEVEL_RE = re.compile(r"Sim 5x Level[ \t]+([^\n]*)", re.IGNORECASE)
_NETWORK_GLYPH_RE = re.compile(rf"Net Dongle\s*[{CHECKMARK_GLYPHS}]", re.IGNORECASE)


def _first_group(regex: re.Pattern[str], text: str) -> str:
    match = regex.search(text)
    return match.group(1).strip() if match else ""


def detect_pdf_format(text: str) -> PdfFormat:
    if "Profile Name" in text and "Profile Users" in text:
        return "profile"
    return "standard"


def extract_company_name(text: str, pdf_format: PdfFormat) -> str | None:
    regex = _PROFILE_CUSTOMER_RE if pdf_format == "profile" else _STANDARD_CUSTOMER_RE
    return _first_group(regex, text) or None


def extract_dongle_no(text: str) -> str:
    return _first_group(_DONGLE_NO_RE, text)


def extract_serial_no(text: str) -> str:
    return _first_group(_SERIAL_NO_RE, text)


def extract_product_key(text: str) -> str | None:
    return _first_group(_PRODUCT_KEY_RE, text) or None


def extract_dongle_type(text: str) -> str:
    """Raw dongle type: the labelled field, else a dongle model named anywhere."""
    raw = _first_group(_DONGLE_TYPE_RE, text)
    if raw:
        return raw
    for marker in (DONGLE_TYPE_NETUSB, DONGLE_TYPE_USB):
        if marker in text:
            return marker
    return ""


def extract_sim5x_level(text: str) -> str | None:
    raw = _first_group(_SIM5X_LEVEL_RE, text)
    if "3/4" in raw:
        return SIM5X_LEVEL_34_AXIS
    if SIM5X_LEVEL_3_AXIS.lower() in raw.lower():
        return SIM5X_LEVEL_3_AXIS
    return None


def resolve_checked_features(
    layout: DocumentLayout, known_features: Iterable[str] | None = None
) -> tuple[list[str], str]:
    """Checked features from the first strategy that finds any.

    Returns the features and the name of the strategy used: ``image``,
    ``form`` or ``glyph``.
    """
    names = list(known_features) if known_features is not None else known_feature_names()
    checkmarks = find_checkmark_positions(layout.images)
    features = match_checkmarks_to_features(checkmarks, layout.text_runs, names)
    if features:
        return features, "image"
    features = get_checked_form_features(layout.form_fields, names)
    if features:
        return features, "form"
    return extract_glyph_features(layout.text), "glyph"


def is_network_license(layout: DocumentLayout, features: Iterable[str]) -> bool:
    if NETWORK_FEATURE in features:
        return True
    if layout.form_fields.get(NETWORK_FEATURE) is True:
        return True
    return _NETWORK_GLYPH_RE.search(layout.text) is not None


def parse_license_layout(layout: DocumentLayout, file_name: str) -> LicenseInfo:
    """Build a ``LicenseInfo`` from an extracted PDF layout."""
    text = normalize_whitespace(layout.text)
    pdf_format = detect_pdf_format(text)
    is_profile = pdf_format == "profile"

    features, strategy = resolve_checked_features(layout)
    logger.debug("%s: %d checked features via %s strategy", file_name, len(features), strategy)
    is_network = is_network_license(layout, features)

    profile_no = profile_name = None
    sim5x_level = None
    if is_profile:
        match = PROFILE_NUMBER_RE.search(text)
        if match:
            profile_name = match.group(0)
            profile_no = match.group(1)
        sim5x_level = extract_sim5x_level(text)

    classification = classify_license(
        dongle_no=extract_dongle_no(text),
        product_key=extract_product_key(text),
        dongle_type_raw=extract_dongle_type(text),
        is_network=is_network,
        is_profile=is_profile,
    )
    return LicenseInfo(
        customer=extract_company_name(text, pdf_format) or UNKNOWN_CUSTOMER,
        serial_no=extract_serial_no(text),
        is_network_license=is_network,
        is_profile=is_profile,
        profile_no=profile_no,
        profile_name=profile_name,
        sim5x_level=sim5x_level,
        maintenance_type=_first_group(_MAINTENANCE_TYPE_RE, text),
        maintenance_start=_first_group(_MAINTENANCE_START_RE, text),
        maintenance_end=_first_group(_MAINTENANCE_END_RE, text),
        solidcam_version=_first_group(_VERSION_RE, text),
        features=tuple(features),
        imported_at=now_iso(),
        source_file_name=file_name,
        **classification,
    )


def parse_license_pdf(
    path: str | Path,
    *,
    min_chars: int | None = None,
    prefer_backends: Iterable[str] | None = None,
) -> tuple[LicenseInfo, dict]:
    pdf_path = Path(path)
    layout = extract_document_layout(
        pdf_path, min_chars=min_chars, prefer_backends=prefer_backends
    )
    if not layout.text.strip():
        reason = layout.meta.get("error") or "no text could be extracted"
        raise ValueError(f"{pdf_path.name}: {reason}")
    return parse_license_layout(layout, pdf_path.name), layout.meta


def parse_pdf(
    path: str | Path,
    *,
    min_chars: int | None = None,
    prefer_backends: Iterable[str] | None = None,
) -> ParsedLicense:
    """Parse one PDF, turning any failure into ``ParsedLicense.parse_error``."""
    file_name = Path(path).name
    try:
        license, meta = parse_license_pdf(
            path, min_chars=min_chars, prefer_backends=prefer_backends
        )
    except Exception as exc:
        logger.debug("Failed to parse %s: %s", file_name, exc)
        return ParsedLicense(file_name=file_name, license=None, parse_error=str(exc))
    return ParsedLicense(file_name=file_name, license=license, meta=meta)
