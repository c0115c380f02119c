"""Rendering utilities for license reports and import summaries."""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from .dictionary import PACKAGE_BIT_SKUS, SC_MILL_5AXIS
from .mapper import calculate_import_stats
from .models import ImportResult, LicenseInfo, LicenseSelections
from .normalize import now_iso
from .selections import get_page_name_for_license, has_sim5x


def maintenance_skus_to_add(selections: LicenseSelections) -> list[str]:
    """SKUs for the maintenance panel; package-backed SKUs follow the bits instead."""
    return [sku for sku in selections.skus if sku not in PACKAGE_BIT_SKUS]


def render_license_report(license: LicenseInfo, selections: LicenseSelections) -> str:
    stats = calculate_import_stats(selections.mapping_result)
    lines = [
        f"Customer: {license.customer}",
        f"Page name: {get_page_name_for_license(license)}",
        f"License: {license.display_type}",
        f"Profile: {'yes' if license.is_profile else 'no'}",
        f"Sim 5x checked: {'yes' if has_sim5x(license.features) else 'no'}",
        f"Sim 5x level: {license.sim5x_level or '(blank)'}",
        f"{SC_MILL_5AXIS} bits: {', '.join(selections.bits_for(SC_MILL_5AXIS)) or '(none)'}",
        f"Maintenance SKUs to add: {', '.join(maintenance_skus_to_add(selections)) or '(none)'}",
        (
            f"Mapping: {stats['mapped_count']} mapped, {stats['sku_count']} SKU, "
            f"{stats['unmapped_count']} unmapped, {stats['ignored_count']} ignored"
        ),
    ]
    unmapped = selections.mapping_result.unmapped_features
    if unmapped:
        lines.append(f"Unmapped features: {', '.join(unmapped)}")
    return "\n".join(lines)


def render_import_summary(
    results: Iterable[ImportResult], summary: Mapping[str, Any]
) -> str:
    lines = ["# License Import", "", f"_Run: {now_iso()}_", ""]
    lines.append(
        f"**Imported:** {summary.get('success_count', 0)} of {summary.get('total', 0)} "
        f"({summary.get('new_companies', 0)} new, "
        f"{summary.get('updated_companies', 0)} updated companies)"
    )
    lines.append("")
    lines.append("| Company | Page | New | Bits added | SKUs added | Removed | Skipped | Errors |")
    lines.append("| --- | --- | --- | --- | --- | --- | --- | --- |")
    for result in results:
        lines.append(format_result_row(result))
    lines.append("")
    return "\n".join(lines)


def format_result_row(result: ImportResult) -> str:
    new_flag = "yes" if result.success and result.is_new_company else ""
    removed = result.bits_removed + result.skus_removed
    return (
        "| "
        f"{escape_cell(result.company_name)} | {escape_cell(result.page_name or '')} | "
        f"{new_flag} | {result.features_imported} | {result.skus_imported} | {removed} | "
        f"{result.features_skipped} | {format_list(result.errors)} |"
    )


def escape_cell(value: str) -> str:
    return value.replace("|", "\\|")


def format_list(values: Iterable[Any], limit: int | None = None, separator: str = "<br>") -> str:
    results = []
    for index, value in enumerate(values):
        if limit is not None and index >= limit:
            break
        if not value:
            continue
        results.append(escape_cell(str(value)))
    return separator.join(results)
