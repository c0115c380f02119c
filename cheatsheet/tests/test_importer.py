from __future__ import annotations

import logging

import pytest

from cheatsheet.license_import import importer
from cheatsheet.license_import.dictionary import (
    MAINTENANCE_PANEL_ID,
    NETWORK_LICENSE_SKU,
    SC_MILL,
    SC_MILL_5AXIS,
)
from cheatsheet.license_import.models import ParsedLicense
from cheatsheet.license_import.store import JsonCompanyStore


@pytest.fixture()
def company_store() -> JsonCompanyStore:
    return JsonCompanyStore()


def _page_state(company_store: JsonCompanyStore, company_name: str, page_name: str):
    company = company_store.find_by_name(company_name)
    assert company is not None
    for page in company["pages"]:
        if page["name"] == page_name:
            return page["state"]
    raise AssertionError(f"page {page_name} not found")


def test_new_company_claims_default_page(company_store, make_license) -> None:
    license = make_license(
        features=("HSS", "Vericut", "Mystery", "GPX"), is_network_license=True
    )
    result = importer.import_license(company_store, license)

    assert result.success
    assert result.is_new_company
    assert result.is_new_page
    assert result.page_name == "NWD 77518"
    assert result.features_imported == 1
    assert result.features_skipped == 2
    assert result.skus_imported == 2

    company = company_store.find_by_name("Acme Corp")
    assert [page["name"] for page in company["pages"]] == ["NWD 77518"]
    state = _page_state(company_store, "Acme Corp", "NWD 77518")
    assert state["packages"][SC_MILL]["selectedBits"] == ["HSS"]
    assert state["panels"][MAINTENANCE_PANEL_ID]["items"] == [
        "Vericut-Maint",
        NETWORK_LICENSE_SKU,
    ]


def test_reimport_is_idempotent_but_history_grows(company_store, make_license) -> None:
    license = make_license(features=("HSS", "Modeler", "Vericut"))
    importer.import_license(company_store, license)
    before = _page_state(company_store, "Acme Corp", "77518")

    again = importer.import_license(company_store, license)
    assert again.success
    assert not again.is_new_company
    assert not again.is_new_page
    assert again.features_imported == 0
    assert again.skus_imported == 0
    assert _page_state(company_store, "Acme Corp", "77518") == before
    assert len(company_store.find_by_name("Acme Corp")["licenses"]) == 2


def test_second_dongle_gets_its_own_page(company_store, make_license) -> None:
    importer.import_license(company_store, make_license(features=("HSS",)))
    result = importer.import_license(
        company_store, make_license(dongle_no="88001", features=("HSM",))
    )
    assert result.is_new_page
    company = company_store.find_by_name("Acme Corp")
    assert [page["name"] for page in company["pages"]] == ["77518", "88001"]
    assert company["currentPageId"] == company["pages"][1]["id"]


def test_used_default_page_is_not_claimed(company_store, make_license) -> None:
    company_store.create("Acme Corp")
    company_store.select_bits(SC_MILL, ["Modeler"])
    result = importer.import_license(company_store, make_license(features=("HSS",)))
    assert result.is_new_page
    company = company_store.find_by_name("Acme Corp")
    assert [page["name"] for page in company["pages"]] == ["P1", "77518"]
    assert _page_state(company_store, "Acme Corp", "P1")["packages"][SC_MILL]["selectedBits"] == [
        "Modeler"
    ]


def test_explicit_not_checked_removes_bits_and_skus(company_store, make_license) -> None:
    importer.import_license(company_store, make_license(features=("HSS", "Sim 5x", "Vericut")))
    license = make_license(features=("Modeler",), unchecked_features=("HSS", "Vericut", "Sim5x"))
    result = importer.import_license(company_store, license)

    assert result.bits_removed == 2
    assert result.skus_removed == 1
    assert result.features_imported == 1
    state = _page_state(company_store, "Acme Corp", "77518")
    assert state["packages"][SC_MILL]["selectedBits"] == ["Modeler"]
    assert state["packages"][SC_MILL_5AXIS]["selectedBits"] == []
    assert state["panels"][MAINTENANCE_PANEL_ID] == {
        "items": [],
        "removedItems": ["Vericut-Maint"],
    }


def test_not_checked_wins_over_checked_in_same_license(company_store, make_license) -> None:
    license = make_license(features=("HSS", "Modeler"), unchecked_features=("HSS",))
    result = importer.import_license(company_store, license)
    assert result.features_imported == 1
    state = _page_state(company_store, "Acme Corp", "77518")
    assert state["packages"][SC_MILL]["selectedBits"] == ["Modeler"]


def test_profile_import_applies_sim5x_level(company_store, make_license) -> None:
    license = make_license(
        dongle_no="",
        is_profile=True,
        profile_no="5801",
        sim5x_level="3/4 Axis",
        features=("Sim 5x",),
    )
    result = importer.import_license(company_store, license, override_company_name="Gamma Ltd")
    assert result.company_name == "Gamma Ltd"
    assert result.page_name == "P5801"
    state = _page_state(company_store, "Gamma Ltd", "P5801")
    assert state["packages"][SC_MILL_5AXIS]["selectedBits"] == ["Sim4x"]
    assert state["packages"][SC_MILL]["selectedBits"] == ["Modeler", "Machinist", "HSS"]


def test_company_creation_failure_touches_nothing(company_store, make_license, caplog) -> None:
    caplog.set_level(logging.ERROR, logger="cheatsheet.license_import.importer")
    result = importer.import_license(company_store, make_license(customer="  "))
    assert not result.success
    assert result.errors and result.errors[0].startswith(importer.ERROR_CREATE_COMPANY)
    assert company_store.companies == []
    assert "Could not create company" in caplog.text


def test_import_parsed_reports_parse_failures(company_store, make_license) -> None:
    parsed = [
        ParsedLicense(file_name="good.txt", license=make_license(features=("HSS",))),
        ParsedLicense(file_name="bad.pdf", license=None, parse_error="bad.pdf: no text"),
        ParsedLicense(file_name="empty.pdf", license=None),
    ]
    results = importer.import_parsed(company_store, parsed, {"good.txt": "Override Inc"})
    assert [result.success for result in results] == [True, False, False]
    assert results[0].company_name == "Override Inc"
    assert results[1].errors == ["bad.pdf: no text"]
    assert results[2].errors == [importer.ERROR_NO_LICENSE]

    summary = importer.calculate_import_summary(results)
    assert summary == {
        "total": 3,
        "success_count": 1,
        "failure_count": 2,
        "new_companies": 1,
        "updated_companies": 0,
        "total_features_imported": 1,
        "total_features_skipped": 0,
        "total_skus_imported": 0,
    }


def test_import_preview_does_not_mutate(company_store, make_license) -> None:
    parsed = ParsedLicense(
        file_name="acme.txt", license=make_license(features=("HSS", "Vericut", "Mystery"))
    )
    preview = importer.get_import_preview(company_store, parsed)
    assert preview is not None
    assert preview["is_new_company"] is True
    assert preview["page_name"] == "77518"
    assert preview["mappable_features"] == 1
    assert preview["mapped_skus"] == 1
    assert preview["unmapped_features"] == ["Mystery"]
    assert preview["bits_by_package"] == {SC_MILL: ["HSS"]}
    assert company_store.companies == []
    assert importer.get_import_preview(company_store, ParsedLicense("x.pdf", None)) is None


@pytest.mark.parametrize(
    ("overrides", "needs_override", "suggested"),
    [
        ({}, False, "Acme Corp"),
        ({"customer": "Unknown"}, True, ""),
        ({"customer": ""}, True, ""),
        ({"is_profile": True, "profile_no": "5801"}, True, ""),
    ],
)
def test_company_name_override_policy(make_license, overrides, needs_override, suggested) -> None:
    parsed = ParsedLicense(file_name="lic.pdf", license=make_license(**overrides))
    assert importer.needs_company_name_override(parsed) is needs_override
    assert importer.get_suggested_company_name(parsed) == suggested


def test_failed_parse_needs_no_override() -> None:
    parsed = ParsedLicense(file_name="lic.pdf", license=None, parse_error="boom")
    assert importer.needs_company_name_override(parsed) is False
    assert importer.get_suggested_company_name(parsed) == ""
