from __future__ import annotations

import logging

import pytest

from cheatsheet.license_import import dictionary, selections
from cheatsheet.license_import.dictionary import SC_MILL, SC_MILL_5AXIS


@pytest.mark.parametrize(
    ("overrides", "expected"),
    [
        ({"dongle_no": "77518"}, "77518"),
        ({"dongle_no": "77518", "is_network_license": True}, "NWD 77518"),
        ({"dongle_no": "", "product_key": "711394118544787452"}, "SPK 7452"),
        (
            {"dongle_no": "", "product_key": "711394118544787452", "is_network_license": True},
            "NPK 7452",
        ),
        ({"dongle_no": "", "product_key": "0f8e2a4c-1b2d-4e6f-8a9b-c0d1e2f3a4b5"}, "SPK A4B5"),
        ({"dongle_no": "", "is_profile": True, "profile_no": "5801"}, "P5801"),
        ({"dongle_no": ""}, "P1"),
        ({"dongle_no": "", "product_key": "1234"}, "P1"),
    ],
)
def test_page_name_for_license(make_license, overrides, expected) -> None:
    assert selections.get_page_name_for_license(make_license(**overrides)) == expected


@pytest.mark.parametrize("spelling", ["Sim 5x", "sim5x", "Simultaneous  5X", "Simultanous 5x"])
def test_has_sim5x_normalizes_spelling(spelling: str) -> None:
    assert selections.has_sim5x(["HSS", spelling])


def test_has_sim5x_rejects_other_5x_features() -> None:
    assert not selections.has_sim5x(["5x Drill", "Sim 5x Level", "Port 5x"])


def _profile(make_license, level, features=("Sim 5x",)):
    return make_license(
        dongle_no="",
        is_profile=True,
        profile_no="5801",
        profile_name="Profile-5801",
        sim5x_level=level,
        features=features,
    )


def test_profile_34_axis_keeps_only_sim4x(make_license) -> None:
    result = selections.get_license_selections(_profile(make_license, "3/4 Axis"))
    assert result.bits_for(SC_MILL_5AXIS) == ["Sim4x"]
    assert result.bits_for(SC_MILL) == ["Modeler", "Machinist", "HSS"]


@pytest.mark.parametrize("level", ["3 Axis", "1", "3axis"])
def test_profile_3_axis_removes_all_5axis_bits(make_license, level: str) -> None:
    features = ("Sim 5x", "Simultaneous 4x", "Swarf machining")
    result = selections.get_license_selections(_profile(make_license, level, features))
    assert result.bits_for(SC_MILL_5AXIS) == []
    assert "HSS" in result.bits_for(SC_MILL)


def test_profile_blank_level_selects_full_5axis_group(make_license) -> None:
    result = selections.get_license_selections(_profile(make_license, None))
    assert result.bits_for(SC_MILL_5AXIS) == [*dictionary.SIM5X_GROUP_BITS, "Sim4x"]


def test_profile_unrecognized_level_falls_back_to_full_group(make_license, caplog) -> None:
    caplog.set_level(logging.WARNING, logger="cheatsheet.license_import.selections")
    result = selections.get_license_selections(_profile(make_license, "Full 5 axis"))
    assert result.bits_for(SC_MILL_5AXIS) == [*dictionary.SIM5X_GROUP_BITS, "Sim4x"]
    assert "Unrecognized Sim 5x level" in caplog.text


def test_profile_without_sim5x_only_gets_base_bits(make_license) -> None:
    license = _profile(make_license, "3 Axis", features=("Vericut",))
    result = selections.get_license_selections(license)
    assert result.bits_for(SC_MILL) == ["Modeler", "Machinist"]
    assert result.bits_for(SC_MILL_5AXIS) == []
    assert result.skus == ["Vericut-Maint"]


def test_non_profile_gets_no_injected_bits(make_license) -> None:
    license = make_license(features=("Sim 5x", "HSM"), sim5x_level="3 Axis")
    result = selections.get_license_selections(license)
    assert result.bits_for(SC_MILL) == []
    assert result.bits_for(SC_MILL_5AXIS) == ["Sim5x"]
    assert result.bits_for(dictionary.SC_MILL_3D) == ["HSM"]


def test_unmapped_features_survive_resolution(make_license) -> None:
    license = _profile(make_license, "3/4 Axis", features=("Sim 5x", "Mystery Module", "GPX"))
    result = selections.get_license_selections(license)
    assert result.mapping_result.unmapped_features == ["Mystery Module"]
    assert result.mapping_result.ignored_features == ["GPX"]
