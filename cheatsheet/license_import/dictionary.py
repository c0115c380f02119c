"""Static feature dictionary and package catalog."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType


@dataclass(frozen=True)
class FeatureMapping:
    bit: str
    package: str


@dataclass(frozen=True)
class PackageGroup:
    label: str
    master_id: str
    bits: tuple[str, ...]


@dataclass(frozen=True)
class Package:
    code: str
    maintenance: str
    description: str
    groups: tuple[PackageGroup, ...] = ()
    loose_bits: tuple[str, ...] = ()

    @property
    def all_bits(self) -> tuple[str, ...]:
        bits: list[str] = []
        for group in self.groups:
            bits.extend(group.bits)
        bits.extend(self.loose_bits)
        return tuple(bits)


SC_MILL = "SC-Mill"
SC_TURN = "SC-Turn"
SC_MILL_ADV = "SC-Mill-Adv"
SC_MILL_3D = "SC-Mill-3D"
SC_MILL_5AXIS = "SC-Mill-5Axis"

MAINTENANCE_PANEL_ID = "maintenance-skus"
NETWORK_LICENSE_SKU = "Lic-Net-Maint"

# Source feature name -> (bit, package). Several keys are spelling variants
# of the same canonical bit.
FEATURE_MAP: Mapping[str, FeatureMapping] = MappingProxyType(
    {
        # SC-Mill, 25M group
        "Modeler": FeatureMapping("Modeler", SC_MILL),
        "Machinist": FeatureMapping("Machinist", SC_MILL),
        "SolidCAM Mill 2D": FeatureMapping("SolidCAM Mill 2D", SC_MILL),
        "Profile/Pocket 2.5D Rest Material": FeatureMapping(
            "Profile/Pocket 2.5D Rest Material", SC_MILL
        ),
        "SolidCAM Mill 2.5D": FeatureMapping("SolidCAM Mill 2.5D", SC_MILL),
        "Pocket Recognition": FeatureMapping("Pocket Recognition", SC_MILL),
        "Chamfer recognition": FeatureMapping("Chamfer Recognition", SC_MILL),
        "Chamfer Recognition": FeatureMapping("Chamfer Recognition", SC_MILL),
        "Hole+Drill Recognition": FeatureMapping("Hole+Drill Recognition", SC_MILL),
        "Hole + Drill Recognition": FeatureMapping("Hole+Drill Recognition", SC_MILL),
        "SolidCAM Mill 3D": FeatureMapping("SC Mill 3D", SC_MILL),
        "SolidCAM Mill3D": FeatureMapping("SC Mill 3D", SC_MILL),
        "C-axes (Wrap)": FeatureMapping("C-axes (Wrap)", SC_MILL),
        "4-axes Indexial": FeatureMapping("4-axes Indexial", SC_MILL),
        "5-axes indexial": FeatureMapping("5-axes Indexial", SC_MILL),
        "5-axes Indexial": FeatureMapping("5-axes Indexial", SC_MILL),
        "4/5 axes indexial": FeatureMapping("5-axes Indexial", SC_MILL),
        "Multi-depth Drill": FeatureMapping("Multi-Depth Drill", SC_MILL),
        "Multi-Depth Drill": FeatureMapping("Multi-Depth Drill", SC_MILL),
        # SC-Mill, loose
        "HSS": FeatureMapping("HSS", SC_MILL),
        # SC-Turn
        "SolidCAM Turning": FeatureMapping("SolidCAM Turning", SC_TURN),
        "BackSpindle": FeatureMapping("Backspindle", SC_TURN),
        "Back Spindle": FeatureMapping("Backspindle", SC_TURN),
        "Backspindle": FeatureMapping("Backspindle", SC_TURN),
        # SC-Mill-Adv
        "iMachining": FeatureMapping("iMach2D", SC_MILL_ADV),
        "Machine Simulation": FeatureMapping("Machine Simulation", SC_MILL_ADV),
        "5x Edge Breaking": FeatureMapping("Edge Breaking", SC_MILL_ADV),
        "Edge Breaking": FeatureMapping("Edge Breaking", SC_MILL_ADV),
        # SC-Mill-3D
        "HSM": FeatureMapping("HSM", SC_MILL_3D),
        "iMachining3D": FeatureMapping("iMach3D", SC_MILL_3D),
        # SC-Mill-5Axis, SIM5X group
        "Simultanous 5x": FeatureMapping("Sim5x", SC_MILL_5AXIS),
        "Simultaneous 5x": FeatureMapping("Sim5x", SC_MILL_5AXIS),
        "Sim 5x": FeatureMapping("Sim5x", SC_MILL_5AXIS),
        "Sim5x": FeatureMapping("Sim5x", SC_MILL_5AXIS),
        "Swarf machining": FeatureMapping("Swarf machining", SC_MILL_5AXIS),
        "5x Drill": FeatureMapping("5x Drill", SC_MILL_5AXIS),
        "Contour 5x": FeatureMapping("Contour 5x", SC_MILL_5AXIS),
        "Convert5X": FeatureMapping("Convert5X", SC_MILL_5AXIS),
        "Convert5x": FeatureMapping("Convert5X", SC_MILL_5AXIS),
        "Auto 3+2 Roughing": FeatureMapping("Auto 3+2 Roughing", SC_MILL_5AXIS),
        "Screw Machining (Rotary)": FeatureMapping("Screw Machining (Rotary)", SC_MILL_5AXIS),
        # SC-Mill-5Axis, loose
        "Simultanous 4x": FeatureMapping("Sim4x", SC_MILL_5AXIS),
        "Simultaneous 4x": FeatureMapping("Sim4x", SC_MILL_5AXIS),
        "Sim4x": FeatureMapping("Sim4x", SC_MILL_5AXIS),
        # Profile datasets: this one is the C-axes wrap bit, not Sim4x.
        "Simultaneous 4-axes(C axes)": FeatureMapping("C-axes (Wrap)", SC_MILL),
        "Multi-Axis Roughing": FeatureMapping("Multiaxis Roughing", SC_MILL_5AXIS),
        "Multiaxis Roughing": FeatureMapping("Multiaxis Roughing", SC_MILL_5AXIS),
    }
)

# Source feature name -> standalone maintenance SKU.
SKU_MAP: Mapping[str, str] = MappingProxyType(
    {
        # Turning modules
        "Swiss-Type": "Swiss-Maint",
        "Multi Turret Sync": "MTS-Maint",
        "Sim. Turning": "MTS-Maint",
        # 5-axis standalone modules
        "MultiBlade 5x": "Multiblade-Maint",
        "Port 5x": "Port-Maint",
        "5x Edge Trimming": "EdgeTrim-Maint",
        # Add-ons
        "Probe - Full": "Probe-Maint",
        "Vericut": "Vericut-Maint",
        "Cimco": "SolidShop-Editor-Maint",
        "Cimco Add-On": "SolidShop-Editor-Maint",
        "Editor Mode": "SolidShop-Sim-Maint",
        # Checkbox fields
        "Net Dongle": NETWORK_LICENSE_SKU,
        "Non Posting Option": "NPD-Maint",
        "NO G-code": "NPD-Maint",
    }
)

# Known features with no bit or SKU counterpart.
IGNORED_FEATURES: frozenset[str] = frozenset(
    {
        # Milling / general
        "SolidCAM 2.7D(CONSTANT Z)",
        "Stl Support",
        "STL Support",
        "HSM Basic",
        "HSM Rough",
        "No drill recognition",
        "Reduced HolesR",
        # Turning
        "SolidCAM TurnMILL",
        "SolidCAM TurnMill Level",
        "SolidCAM Turn-Mill Options",
        "BS_XYZCB",
        # 5-axis, resolved by the profile Sim 5x rules
        "Sim 5x Level",
        "Sim5xLevel",
        "No HSS",
        # Wire EDM
        "SolidCAM WireEDM 2 axes",
        "SolidCAM WireEDM 2/4 axes",
        # Integrations
        "WinTool",
        "TDM",
        "Zoller integration",
        "DNCTOOL For Windows",
        "DNCTOOL For Dos",
        # Other
        "GPX",
        "Probe - Home define",
        "Prismatic HSM",
        "SolidCAM Mill 3D(No Milling)",
        "Xpress plus",
        "G-Code Simulation",
        "Eureka",
        "Profile",
        "Mill 2D - Express",
        "Xpress (2D)",
        "HSS - Express",
        "Xpress (HSS)",
    }
)

SIM5X_GROUP_BITS: tuple[str, ...] = (
    "Sim5x",
    "Swarf machining",
    "5x Drill",
    "Contour 5x",
    "Convert5X",
    "Auto 3+2 Roughing",
)
SIM4X_BIT = "Sim4x"
HSS_BIT = "HSS"
PROFILE_BASE_BITS: tuple[str, ...] = ("Modeler", "Machinist")
SIM5X_TOKENS: frozenset[str] = frozenset(
    {"sim 5x", "sim5x", "simultaneous 5x", "simultanous 5x"}
)

# SKUs that stand for package bits; the maintenance panel derives these from
# the package selection, so they are never added to it directly.
PACKAGE_BIT_SKUS: frozenset[str] = frozenset(
    {
        "25M-Maint",
        "EdgeBreak-Maint",
        "HSM-Maint",
        "HSS-Maint",
        "iMach2D-Maint",
        "iMach3D-Maint",
        "MachSim-Maint",
        "Multiaxis-Maint",
        "Sim4x-Maint",
        "Sim5x-Maint",
        "Turn-Maint",
    }
)

PACKAGES: tuple[Package, ...] = (
    Package(
        code=SC_MILL,
        maintenance="SC-Mill-Maint",
        description="Core milling bundle for indexed rotary work.",
        groups=(
            PackageGroup(
                label="25M",
                master_id="sc-mill-25m",
                bits=(
                    "Modeler",
                    "Machinist",
                    "SolidCAM Mill 2D",
                    "Profile/Pocket 2.5D Rest Material",
                    "SolidCAM Mill 2.5D",
                    "Pocket Recognition",
                    "Chamfer Recognition",
                    "Hole+Drill Recognition",
                    "SC Mill 3D",
                    "C-axes (Wrap)",
                    "4-axes Indexial",
                    "5-axes Indexial",
                    "Multi-Depth Drill",
                ),
            ),
        ),
        loose_bits=("HSS",),
    ),
    Package(
        code=SC_TURN,
        maintenance="SC-Turn-Maint",
        description="Turning foundation with back spindle support.",
        loose_bits=("SolidCAM Turning", "Backspindle"),
    ),
    Package(
        code=SC_MILL_ADV,
        maintenance="SC-Mill-Adv-Maint",
        description="Advanced milling add-on (iMachining 2D, Edge Breaking, Machine Simulation).",
        loose_bits=("iMach2D", "Machine Simulation", "Edge Breaking"),
    ),
    Package(
        code=SC_MILL_3D,
        maintenance="SC-Mill-3D-Maint",
        description="3D iMachining and HSM (requires iMach2D).",
        loose_bits=("HSM", "iMach3D"),
    ),
    Package(
        code=SC_MILL_5AXIS,
        maintenance="SC-Mill-5Axis-Maint",
        description="Full simultaneous 4/5 axis toolkit.",
        groups=(
            PackageGroup(
                label="SIM5X",
                master_id="sc-mill-5axis-sim5x",
                bits=(
                    "Sim5x",
                    "Swarf machining",
                    "5x Drill",
                    "Contour 5x",
                    "Convert5X",
                    "Auto 3+2 Roughing",
                    "Screw Machining (Rotary)",
                ),
            ),
        ),
        loose_bits=("Sim4x", "Multiaxis Roughing"),
    ),
)

PACKAGES_BY_CODE: Mapping[str, Package] = MappingProxyType({pkg.code: pkg for pkg in PACKAGES})


def known_feature_names(*, include_ignored: bool = False) -> list[str]:
    """All dictionary keys in table order: bits first, then SKUs."""
    names = [*FEATURE_MAP, *SKU_MAP]
    if include_ignored:
        names.extend(sorted(IGNORED_FEATURES))
    return names
