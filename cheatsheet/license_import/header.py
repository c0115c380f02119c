"""License header parsing and license classification rules."""
from __future__ import annotations

import logging
import re
from typing import Any

from .fields import extract_checked, extract_field, extract_first_field
from .models import UNKNOWN_CUSTOMER, LicenseType

logger = logging.getLogger(__name__)

DONGLE_DIGITS = 5
PROFILE_NUMBER_RE = re.compile(r"Profile-(\d+)")
_NON_DIGIT_RE = re.compile(r"\D")

DONGLE_TYPE_NETUSB = "MINI-NETUSB"
DONGLE_TYPE_USB = "MINI-USB"
DONGLE_TYPE_SOFTWARE = "Software"
DONGLE_TYPE_UNKNOWN = "Unknown"

SIM5X_LEVEL_3_AXIS = "3 Axis"
SIM5X_LEVEL_34_AXIS = "3/4 Axis"

# Accepted (lowercase) level spellings and their canonical form; "" is blank.
SIM5X_LEVELS: dict[str, str] = {
    "": "",
    "3 axis": SIM5X_LEVEL_3_AXIS,
    "3axis": SIM5X_LEVEL_3_AXIS,
    "1": SIM5X_LEVEL_3_AXIS,
    "3/4 axis": SIM5X_LEVEL_34_AXIS,
    "3/4axis": SIM5X_LEVEL_34_AXIS,
}

DISPLAY_PROFILE_KEY = "Profile (NPK)"
DISPLAY_PROFILE_DONGLE = "Profile (NWD)"
DISPLAY_PROFILE = "Profile (Network)"
DISPLAY_NETWORK_KEY = "Network Product Key"
DISPLAY_STANDALONE_KEY = "Standalone Product Key"
DISPLAY_NETWORK_DONGLE = "Network Dongle"
DISPLAY_HARDWARE_DONGLE = "Hardware Dongle"


def validate_sim5x_level(value: str | None) -> str | None:
    """Return the canonical level, or ``None`` for blank or unrecognized text."""
    if value is None:
        return None
    canonical = SIM5X_LEVELS.get(value.strip().lower())
    if canonical is None:
        logger.debug("Discarding unrecognized Sim 5x level %r", value)
        return None
    return canonical or None


def is_product_key_number(value: str) -> bool:
    """Hardware dongles carry exactly five digits; anything longer is a key."""
    return len(_NON_DIGIT_RE.sub("", value or "")) > DONGLE_DIGITS


def normalize_dongle_type(raw: str, *, is_key: bool) -> str:
    if "MINI-NETUSB" in raw or "NETUSB" in raw:
        return DONGLE_TYPE_NETUSB
    if "MINI-USB" in raw or "USB" in raw:
        return DONGLE_TYPE_USB
    if "software" in raw.lower():
        return DONGLE_TYPE_SOFTWARE
    if is_key:
        return DONGLE_TYPE_SOFTWARE
    return raw or DONGLE_TYPE_UNKNOWN


def resolve_display_type(*, is_profile: bool, is_key: bool, is_network: bool) -> str:
    if is_profile:
        if is_key:
            return DISPLAY_PROFILE_KEY
        if is_network:
            return DISPLAY_PROFILE_DONGLE
        return DISPLAY_PROFILE
    if is_key:
        return DISPLAY_NETWORK_KEY if is_network else DISPLAY_STANDALONE_KEY
    if is_network:
        return DISPLAY_NETWORK_DONGLE
    return DISPLAY_HARDWARE_DONGLE


def classify_license(
    *,
    dongle_no: str,
    product_key: str | None,
    dongle_type_raw: str,
    is_network: bool,
    is_profile: bool,
) -> dict[str, Any]:
    """Apply the dongle/product-key rules shared by every source format."""
    dongle_no = dongle_no.strip()
    if not product_key and dongle_no and is_product_key_number(dongle_no):
        product_key = dongle_no
        dongle_no = ""
    dongle_type = normalize_dongle_type(dongle_type_raw, is_key=bool(product_key))
    # Software licenses are product keys even without a key number.
    is_key = bool(product_key) or dongle_type == DONGLE_TYPE_SOFTWARE
    license_type: LicenseType = "product-key" if is_key else "dongle"
    return {
        "dongle_no": dongle_no,
        "product_key": product_key or None,
        "dongle_type": dongle_type,
        "license_type": license_type,
        "display_type": resolve_display_type(
            is_profile=is_profile, is_key=is_key, is_network=is_network
        ),
    }


def resolve_profile(
    text: str, profile_no: str, profile_name: str
) -> tuple[str | None, str | None]:
    """Find the profile identity, falling back to a ``Profile-NNNN`` token."""
    if not profile_no and not profile_name:
        match = PROFILE_NUMBER_RE.search(text)
        if match:
            profile_name = match.group(0)
    if profile_name and not profile_no:
        match = PROFILE_NUMBER_RE.search(profile_name)
        if match:
            profile_no = match.group(1)
    return profile_no or None, profile_name or None


def parse_header_info(text: str) -> dict[str, Any]:
    """Extract the header of a CRM license record.

    Returns a partial ``LicenseInfo`` as a dict; missing fields default to
    empty strings (or ``"Unknown"`` for the customer) and never raise.
    """
    dongle_no = extract_field(text, "Dongle No.")
    serial_no = extract_field(text, "Serial No.")
    customer = extract_field(text, "Customer")
    dongle_type_raw = extract_field(text, "Dongle Type")
    maintenance_type = extract_field(text, "Maintenance Type")
    maintenance_start = extract_first_field(
        text, ("Maintenance Start Date", "Maintenance Start")
    )
    maintenance_end = extract_first_field(text, ("Maintenance End Date", "Maintenance End"))
    solidcam_version = extract_field(text, "SolidCAM Version")
    profile_no, profile_name = resolve_profile(
        text,
        extract_field(text, "Profile No."),
        extract_field(text, "Profile Name"),
    )
    is_profile = bool(profile_no or profile_name)
    sim5x_level = validate_sim5x_level(extract_field(text, "Sim 5x Level"))
    is_network = extract_checked(text, "Net Dongle")

    header: dict[str, Any] = {
        "customer": customer or UNKNOWN_CUSTOMER,
        "serial_no": serial_no,
        "is_network_license": is_network,
        "is_profile": is_profile,
        "profile_no": profile_no,
        "profile_name": profile_name,
        "sim5x_level": sim5x_level,
        "maintenance_type": maintenance_type,
        "maintenance_start": maintenance_start,
        "maintenance_end": maintenance_end,
        "solidcam_version": solidcam_version,
    }
    header.update(
        classify_license(
            dongle_no=dongle_no,
            product_key=None,
            dongle_type_raw=dongle_type_raw,
            is_network=is_network,
            is_profile=is_profile,
        )
    )
    return header
