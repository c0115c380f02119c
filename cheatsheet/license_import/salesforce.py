"""CRM (Salesforce) dongle page text parsing."""
from __future__ import annotations

import logging
from typing import Any

from .dictionary import known_feature_names
from .fields import parse_checked_features, parse_unchecked_features
from .header import PROFILE_NUMBER_RE, parse_header_info
from .models import LicenseInfo, ParseResult
from .normalize import normalize_whitespace, now_iso

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_NAME = "salesforce-paste"

ERROR_NO_TEXT = "No text provided"
ERROR_NO_IDENTITY = "Not a valid Salesforce dongle page - missing Dongle No. or profile"
ERROR_NO_FEATURES = "No SolidCAM features found in text"
ERROR_NO_CHECKBOXES = "No checkbox states found - text may be incomplete"

_PROFILE_MARKERS = ("Profile No.", "Profile Name")


def _has_identity(text: str) -> bool:
    if "Dongle No." in text:
        return True
    if any(marker in text for marker in _PROFILE_MARKERS):
        return True
    return PROFILE_NUMBER_RE.search(text) is not None


def validate_salesforce_text(text: str) -> str | None:
    """Return the reason ``text`` is not a CRM license page, or ``None``."""
    if not text or not text.strip():
        return ERROR_NO_TEXT
    text = normalize_whitespace(text)
    if not _has_identity(text):
        return ERROR_NO_IDENTITY
    if "SolidCAM" not in text and not any(name in text for name in known_feature_names()):
        return ERROR_NO_FEATURES
    if "Checked" not in text:
        return ERROR_NO_CHECKBOXES
    return None


def parse_salesforce_text(text: str, source_file_name: str = DEFAULT_SOURCE_NAME) -> ParseResult:
    error = validate_salesforce_text(text)
    if error:
        logger.debug("Rejected CRM text: %s", error)
        return ParseResult(license=None, parse_error=error)

    names = known_feature_names(include_ignored=True)
    header = parse_header_info(text)
    features = parse_checked_features(text, names)
    unchecked = parse_unchecked_features(text, names)
    logger.debug(
        "Parsed CRM text for %s: %d checked, %d not checked",
        header["customer"],
        len(features),
        len(unchecked),
    )
    license = LicenseInfo(
        **header,
        features=tuple(features),
        unchecked_features=tuple(unchecked),
        imported_at=now_iso(),
        source_file_name=source_file_name,
    )
    return ParseResult(license=license)


def get_parse_preview(text: str) -> dict[str, Any] | None:
    """Summary of what ``text`` would import, or ``None`` when it does not parse."""
    result = parse_salesforce_text(text)
    if result.license is None:
        return None
    license = result.license
    return {
        "customer": license.customer,
        "dongle_no": license.dongle_no,
        "product_key": license.product_key,
        "profile_no": license.profile_no,
        "display_type": license.display_type,
        "is_network": license.is_network_license,
        "maintenance_start": license.maintenance_start,
        "maintenance_end": license.maintenance_end,
        "feature_count": len(license.features),
        "features": list(license.features),
    }
