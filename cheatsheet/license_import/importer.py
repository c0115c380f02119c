"""Apply parsed licenses to the company store."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from .dictionary import MAINTENANCE_PANEL_ID, NETWORK_LICENSE_SKU
from .mapper import get_unique_skus, group_by_package, map_features
from .models import UNKNOWN_CUSTOMER, ImportResult, LicenseInfo, ParsedLicense
from .selections import get_license_selections, get_page_name_for_license
from .store import (
    DEFAULT_PAGE_NAME,
    CompanyStore,
    StoreError,
    add_panel_items,
    remove_bits,
    remove_panel_items,
    select_bits,
    upcast_page_state,
)

logger = logging.getLogger(__name__)

ERROR_CREATE_COMPANY = "Failed to create company"
ERROR_NO_LICENSE = "No license data extracted"


def _is_blank_state(state: Any) -> bool:
    state = upcast_page_state(state)
    if any(package["selectedBits"] for package in state["packages"].values()):
        return False
    return not any(panel["items"] for panel in state["panels"].values())


def _resolve_page(
    store: CompanyStore, company: Mapping[str, Any], page_name: str
) -> tuple[dict[str, Any], bool]:
    """Find the page named ``page_name``, claiming or creating one if needed.

    A company's lone untouched default page is renamed instead of leaving
    an empty page next to the new one. The flag is true when the page had
    no earlier content.
    """
    pages = company["pages"]
    for page in pages:
        if page["name"] == page_name:
            return page, False
    if len(pages) == 1 and pages[0]["name"] == DEFAULT_PAGE_NAME and _is_blank_state(
        pages[0].get("state")
    ):
        store.rename_page(pages[0]["id"], page_name)
        return pages[0], True
    return store.create_page(page_name), True


def _negative_selections(license: LicenseInfo) -> tuple[dict[str, list[str]], list[str]]:
    negatives = map_features(license.unchecked_features)
    return group_by_package(negatives.mapped_features), get_unique_skus(negatives.mapped_skus)


def _apply_license(
    store: CompanyStore,
    company: Mapping[str, Any],
    license: LicenseInfo,
    is_new_company: bool,
) -> ImportResult:
    store.switch_to(company["id"])
    page_name = get_page_name_for_license(license)
    page, is_new_page = _resolve_page(store, company, page_name)
    store.switch_to_page(page["id"])

    selections = get_license_selections(license)
    removed_bits, removed_skus = _negative_selections(license)
    state = store.current_page_state()

    bits_removed = sum(
        remove_bits(state, package_code, bits) for package_code, bits in removed_bits.items()
    )
    skus_removed = remove_panel_items(state, MAINTENANCE_PANEL_ID, removed_skus)

    features_imported = 0
    for package_code, bits in selections.bits_by_package.items():
        excluded = set(removed_bits.get(package_code, []))
        features_imported += select_bits(
            state, package_code, [bit for bit in bits if bit not in excluded]
        )

    skus = [sku for sku in selections.skus if sku not in removed_skus]
    if license.is_network_license:
        skus.append(NETWORK_LICENSE_SKU)
    skus_imported = add_panel_items(state, MAINTENANCE_PANEL_ID, skus)

    store.save_page_state(state)
    store.set_license_data(company["id"], license)

    mapping = selections.mapping_result
    logger.debug(
        "Imported %s into %s/%s: %d bits, %d SKUs",
        license.source_file_name,
        company["name"],
        page_name,
        features_imported,
        skus_imported,
    )
    return ImportResult(
        success=True,
        company_name=company["name"],
        is_new_company=is_new_company,
        company_id=company["id"],
        page_name=page_name,
        is_new_page=is_new_page,
        features_imported=features_imported,
        features_skipped=len(mapping.unmapped_features) + len(mapping.ignored_features),
        skus_imported=skus_imported,
        bits_removed=bits_removed,
        skus_removed=skus_removed,
    )


def import_license(
    store: CompanyStore, license: LicenseInfo, override_company_name: str | None = None
) -> ImportResult:
    """Union-merge one license into its company page.

    Store failures come back as ``ImportResult(success=False)``; if the
    company cannot be created nothing else is touched.
    """
    company_name = (override_company_name or license.customer or "").strip()
    company = store.find_by_name(company_name)
    is_new_company = company is None
    if company is None:
        try:
            company = store.create(company_name)
        except StoreError as exc:
            logger.error("Could not create company %r: %s", company_name, exc)
            return ImportResult(
                success=False,
                company_name=company_name,
                is_new_company=True,
                errors=[f"{ERROR_CREATE_COMPANY}: {exc}"],
            )
    try:
        return _apply_license(store, company, license, is_new_company)
    except StoreError as exc:
        logger.error("Import of %s failed: %s", license.source_file_name, exc)
        return ImportResult(
            success=False,
            company_name=company_name,
            is_new_company=is_new_company,
            company_id=company["id"],
            errors=[str(exc)],
        )


def import_parsed(
    store: CompanyStore,
    parsed: Iterable[ParsedLicense],
    company_name_overrides: Mapping[str, str] | None = None,
) -> list[ImportResult]:
    overrides = company_name_overrides or {}
    results: list[ImportResult] = []
    for entry in parsed:
        if entry.license is None:
            results.append(
                ImportResult(
                    success=False,
                    company_name=entry.file_name,
                    is_new_company=False,
                    errors=[entry.parse_error or ERROR_NO_LICENSE],
                )
            )
            continue
        results.append(import_license(store, entry.license, overrides.get(entry.file_name)))
    return results


def get_import_preview(store: CompanyStore, parsed: ParsedLicense) -> dict[str, Any] | None:
    """What importing ``parsed`` would do, without touching the store."""
    if parsed.license is None:
        return None
    license = parsed.license
    existing = store.find_by_name(license.customer)
    selections = get_license_selections(license)
    mapping = selections.mapping_result
    return {
        "company_name": license.customer,
        "is_new_company": existing is None,
        "existing_company_id": existing["id"] if existing else None,
        "page_name": get_page_name_for_license(license),
        "mappable_features": len(mapping.mapped_features),
        "total_features": len(license.features),
        "mapped_skus": len(selections.skus),
        "unmapped_features": list(mapping.unmapped_features),
        "bits_by_package": {code: list(bits) for code, bits in selections.bits_by_package.items()},
    }


def calculate_import_summary(results: Iterable[ImportResult]) -> dict[str, int]:
    results = list(results)
    succeeded = [result for result in results if result.success]
    return {
        "total": len(results),
        "success_count": len(succeeded),
        "failure_count": len(results) - len(succeeded),
        "new_companies": sum(1 for result in succeeded if result.is_new_company),
        "updated_companies": sum(1 for result in succeeded if not result.is_new_company),
        "total_features_imported": sum(result.features_imported for result in results),
        "total_features_skipped": sum(result.features_skipped for result in results),
        "total_skus_imported": sum(result.skus_imported for result in results),
    }


def _has_customer(license: LicenseInfo) -> bool:
    customer = (license.customer or "").strip()
    return bool(customer) and customer != UNKNOWN_CUSTOMER


def needs_company_name_override(parsed: ParsedLicense) -> bool:
    """Profiles and licenses without a usable customer need a name from the operator."""
    if parsed.license is None:
        return False
    if not _has_customer(parsed.license):
        return True
    return parsed.license.is_profile


def get_suggested_company_name(parsed: ParsedLicense) -> str:
    if parsed.license is None or parsed.license.is_profile:
        return ""
    return parsed.license.customer.strip() if _has_customer(parsed.license) else ""
