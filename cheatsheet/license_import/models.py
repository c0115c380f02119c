"""Value objects shared by the parsers, the mapper and the importer."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

LicenseType = Literal["dongle", "product-key"]

UNKNOWN_CUSTOMER = "Unknown"


@dataclass(frozen=True)
class LicenseInfo:
    """Canonical license record produced once per parsed source."""

    customer: str
    dongle_no: str
    serial_no: str
    license_type: LicenseType
    dongle_type: str
    display_type: str
    is_network_license: bool
    is_profile: bool
    maintenance_type: str
    maintenance_start: str
    maintenance_end: str
    solidcam_version: str
    features: tuple[str, ...]
    imported_at: str
    source_file_name: str
    product_key: str | None = None
    profile_no: str | None = None
    profile_name: str | None = None
    sim5x_level: str | None = None
    unchecked_features: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["features"] = list(self.features)
        data["unchecked_features"] = list(self.unchecked_features)
        return data


@dataclass(frozen=True)
class MappedFeature:
    source_feature: str
    bit: str
    package: str


@dataclass(frozen=True)
class MappedSku:
    source_feature: str
    sku: str


@dataclass
class MappingResult:
    mapped_features: list[MappedFeature] = field(default_factory=list)
    mapped_skus: list[MappedSku] = field(default_factory=list)
    unmapped_features: list[str] = field(default_factory=list)
    ignored_features: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return (
            len(self.mapped_features)
            + len(self.mapped_skus)
            + len(self.unmapped_features)
            + len(self.ignored_features)
        )


@dataclass
class LicenseSelections:
    mapping_result: MappingResult
    bits_by_package: dict[str, list[str]]
    skus: list[str]

    def bits_for(self, package_code: str) -> list[str]:
        return list(self.bits_by_package.get(package_code, []))


@dataclass
class ParseResult:
    """Outcome of parsing CRM text; ``license`` is ``None`` on failure."""

    license: LicenseInfo | None
    parse_error: str | None = None


@dataclass
class ParsedLicense:
    """Outcome of parsing one source file."""

    file_name: str
    license: LicenseInfo | None
    parse_error: str | None = None
    meta: dict[str, Any] | None = None


@dataclass
class ImportResult:
    success: bool
    company_name: str
    is_new_company: bool
    company_id: str | None = None
    page_name: str | None = None
    is_new_page: bool = False
    features_imported: int = 0
    features_skipped: int = 0
    skus_imported: int = 0
    bits_removed: int = 0
    skus_removed: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return asdict(self)
