"""Selection rules applied on top of the feature mapping."""
from __future__ import annotations

import logging
from collections.abc import Iterable

from .dictionary import (
    HSS_BIT,
    PROFILE_BASE_BITS,
    SC_MILL,
    SC_MILL_5AXIS,
    SIM4X_BIT,
    SIM5X_GROUP_BITS,
    SIM5X_TOKENS,
)
from .header import SIM5X_LEVEL_3_AXIS, SIM5X_LEVEL_34_AXIS, SIM5X_LEVELS
from .mapper import get_unique_skus, group_by_package, map_features
from .models import LicenseInfo, LicenseSelections
from .normalize import normalize_key

logger = logging.getLogger(__name__)

DEFAULT_PAGE_NAME = "P1"


def get_page_name_for_license(license: LicenseInfo) -> str:
    """Page name for a license.

    ``SPK``/``NPK`` plus the last four key characters for product keys,
    the dongle number (``NWD`` prefixed when networked) for dongles,
    ``P<number>`` for profiles and ``P1`` otherwise.
    """
    product_key = license.product_key or ""
    if len(product_key) > 4:
        suffix = product_key[-4:].upper()
        return f"NPK {suffix}" if license.is_network_license else f"SPK {suffix}"
    dongle_no = (license.dongle_no or "").strip()
    if dongle_no:
        return f"NWD {dongle_no}" if license.is_network_license else dongle_no
    if license.profile_no:
        return f"P{license.profile_no}"
    return DEFAULT_PAGE_NAME


def has_sim5x(features: Iterable[str]) -> bool:
    return any(normalize_key(feature) in SIM5X_TOKENS for feature in features)


def _add_bits(bits_by_package: dict[str, list[str]], package: str, bits: Iterable[str]) -> None:
    current = bits_by_package.setdefault(package, [])
    for bit in bits:
        if bit not in current:
            current.append(bit)


def _remove_bits(
    bits_by_package: dict[str, list[str]], package: str, bits: Iterable[str]
) -> None:
    current = bits_by_package.get(package)
    if current is None:
        return
    removal = set(bits)
    bits_by_package[package] = [bit for bit in current if bit not in removal]


def _apply_sim5x_level(
    bits_by_package: dict[str, list[str]], level: str | None, license: LicenseInfo
) -> None:
    canonical = SIM5X_LEVELS.get((level or "").strip().lower())
    if canonical == SIM5X_LEVEL_3_AXIS:
        _remove_bits(bits_by_package, SC_MILL_5AXIS, (*SIM5X_GROUP_BITS, SIM4X_BIT))
        return
    if canonical == SIM5X_LEVEL_34_AXIS:
        _remove_bits(bits_by_package, SC_MILL_5AXIS, SIM5X_GROUP_BITS)
        _add_bits(bits_by_package, SC_MILL_5AXIS, (SIM4X_BIT,))
        return
    if canonical is None:
        logger.warning(
            "Unrecognized Sim 5x level %r on %s; selecting all 5-axis bits",
            level,
            license.source_file_name,
        )
    _add_bits(bits_by_package, SC_MILL_5AXIS, (*SIM5X_GROUP_BITS, SIM4X_BIT))


def get_license_selections(license: LicenseInfo) -> LicenseSelections:
    """Resolve the bits and SKUs a license selects, without touching any store."""
    mapping_result = map_features(license.features)
    bits_by_package = group_by_package(mapping_result.mapped_features)
    skus = get_unique_skus(mapping_result.mapped_skus)

    if license.is_profile:
        _add_bits(bits_by_package, SC_MILL, PROFILE_BASE_BITS)
        if has_sim5x(license.features):
            _add_bits(bits_by_package, SC_MILL, (HSS_BIT,))
            _apply_sim5x_level(bits_by_package, license.sim5x_level, license)

    return LicenseSelections(
        mapping_result=mapping_result,
        bits_by_package=bits_by_package,
        skus=skus,
    )
