"""Feature name to bit/SKU mapping."""
from __future__ import annotations

from collections.abc import Iterable

from .dictionary import FEATURE_MAP, IGNORED_FEATURES, SKU_MAP
from .models import MappedFeature, MappedSku, MappingResult


def map_features(features: Iterable[str]) -> MappingResult:
    """Partition ``features`` using exact, case-sensitive dictionary lookups.

    Ignored names win over bit mappings, and bit mappings win over SKUs.
    Every input lands in exactly one partition, in input order.
    """
    result = MappingResult()
    for feature in features:
        if feature in IGNORED_FEATURES:
            result.ignored_features.append(feature)
            continue
        mapping = FEATURE_MAP.get(feature)
        if mapping is not None:
            result.mapped_features.append(MappedFeature(feature, mapping.bit, mapping.package))
            continue
        sku = SKU_MAP.get(feature)
        if sku is not None:
            result.mapped_skus.append(MappedSku(feature, sku))
            continue
        result.unmapped_features.append(feature)
    return result


def group_by_package(mapped_features: Iterable[MappedFeature]) -> dict[str, list[str]]:
    grouped: dict[str, list[str]] = {}
    seen: set[tuple[str, str]] = set()
    for mapped in mapped_features:
        bits = grouped.setdefault(mapped.package, [])
        key = (mapped.package, mapped.bit)
        if key in seen:
            continue
        seen.add(key)
        bits.append(mapped.bit)
    return grouped


def get_unique_skus(mapped_skus: Iterable[MappedSku]) -> list[str]:
    seen: set[str] = set()
    skus: list[str] = []
    for mapped in mapped_skus:
        if mapped.sku not in seen:
            seen.add(mapped.sku)
            skus.append(mapped.sku)
    return skus


def calculate_import_stats(result: MappingResult) -> dict[str, int]:
    return {
        "total_features": result.total,
        "mapped_count": len(result.mapped_features),
        "sku_count": len(result.mapped_skus),
        "unmapped_count": len(result.unmapped_features),
        "ignored_count": len(result.ignored_features),
    }
