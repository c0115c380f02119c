"""Company/page state store and its persistence."""
from __future__ import annotations

import copy
import json
import logging
import uuid
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any, Protocol, cast

from .dictionary import MAINTENANCE_PANEL_ID, PACKAGES_BY_CODE
from .models import LicenseInfo
from .normalize import ensure_list, merge_list, now_iso, remove_from_list

logger = logging.getLogger(__name__)

STORE_SCHEMA_VERSION = 1
DEFAULT_COMPANY_NAME = "New Company"
DEFAULT_PAGE_NAME = "P1"

ChangeHandler = Callable[[dict[str, Any]], None]


class StoreError(RuntimeError):
    """Raised when a company, page or package the caller refers to does not exist."""


class CompanyStore(Protocol):
    def find_by_name(self, name: str) -> dict[str, Any] | None: ...

    def create(self, name: str) -> dict[str, Any]: ...

    def switch_to(self, company_id: str) -> None: ...

    def create_page(self, name: str | None = None) -> dict[str, Any]: ...

    def rename_page(self, page_id: str, name: str) -> None: ...

    def switch_to_page(self, page_id: str) -> None: ...

    def current_page(self) -> dict[str, Any]: ...

    def current_page_state(self) -> dict[str, Any]: ...

    def save_page_state(self, state: Mapping[str, Any]) -> None: ...

    def set_license_data(self, company_id: str, license: LicenseInfo) -> None: ...


def empty_page_state() -> dict[str, Any]:
    return {"panels": {}, "packages": {}}


def empty_package_state() -> dict[str, Any]:
    return {
        "selectedBits": [],
        "customBits": [],
        "order": [],
        "looseBitsOrder": [],
        "groupMembership": {},
    }


def _legacy_selected(entries: Any) -> list[str]:
    """Plain strings are selected; ``{text, checked}`` entries only when checked."""
    selected: list[str] = []
    if not isinstance(entries, list):
        return selected
    for entry in entries:
        if isinstance(entry, str):
            selected.append(entry)
        elif isinstance(entry, Mapping) and entry.get("checked") and entry.get("text"):
            selected.append(str(entry["text"]))
    return selected


def _upcast_package_state(raw: Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(raw.get("selectedBits"), list):
        return {
            "selectedBits": list(raw["selectedBits"]),
            "customBits": list(raw.get("customBits") or []),
            "order": list(raw.get("order") or []),
            "looseBitsOrder": list(raw.get("looseBitsOrder") or []),
            "groupMembership": dict(raw.get("groupMembership") or {}),
        }
    # Legacy shape: {bits: [...], groups: [{masterId, items: [...]}]}
    selected = _legacy_selected(raw.get("bits"))
    for group in raw.get("groups") or []:
        if isinstance(group, Mapping):
            selected.extend(_legacy_selected(group.get("items")))
    state = empty_package_state()
    state["selectedBits"] = selected
    return state


def _upcast_panel_state(raw: Mapping[str, Any]) -> dict[str, Any]:
    panel = dict(raw)
    panel["items"] = list(raw.get("items") or [])
    panel["removedItems"] = list(raw.get("removedItems") or [])
    return panel


def upcast_page_state(raw: Any) -> dict[str, Any]:
    """Bring a stored page state of any known historical shape to the current one."""
    if not isinstance(raw, Mapping):
        return empty_page_state()
    packages: dict[str, Any] = {}
    raw_packages = raw.get("packages")
    if isinstance(raw_packages, Mapping):
        for code, package_state in raw_packages.items():
            if isinstance(package_state, Mapping):
                packages[code] = _upcast_package_state(package_state)
    panels: dict[str, Any] = {}
    raw_panels = raw.get("panels")
    if isinstance(raw_panels, Mapping):
        for panel_id, panel_state in raw_panels.items():
            if isinstance(panel_state, Mapping):
                panels[panel_id] = _upcast_panel_state(panel_state)
    return {"panels": panels, "packages": packages}


def select_bits(state: dict[str, Any], package_code: str, bits: Iterable[str]) -> int:
    """Union ``bits`` into a package's selection; returns how many were new."""
    if package_code not in PACKAGES_BY_CODE:
        raise StoreError(f"unknown package: {package_code}")
    package = state["packages"].setdefault(package_code, empty_package_state())
    return merge_list(package, "selectedBits", bits)


def remove_bits(state: dict[str, Any], package_code: str, bits: Iterable[str]) -> int:
    package = state["packages"].get(package_code)
    if package is None:
        return 0
    return remove_from_list(package, "selectedBits", bits)


def panel_state(state: dict[str, Any], panel_id: str) -> dict[str, Any]:
    return state["panels"].setdefault(panel_id, {"items": [], "removedItems": []})


def add_panel_items(state: dict[str, Any], panel_id: str, items: Iterable[str]) -> int:
    panel = panel_state(state, panel_id)
    items = ensure_list(items)
    remove_from_list(panel, "removedItems", items)
    return merge_list(panel, "items", items)


def remove_panel_items(state: dict[str, Any], panel_id: str, items: Iterable[str]) -> int:
    panel = state["panels"].get(panel_id)
    if panel is None:
        return 0
    removed = [item for item in items if item in panel.get("items", [])]
    if not removed:
        return 0
    remove_from_list(panel, "items", removed)
    merge_list(panel, "removedItems", removed)
    return len(removed)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _build_page(name: str) -> dict[str, Any]:
    return {"id": _new_id("page"), "name": name, "state": empty_page_state()}


def _build_company(name: str) -> dict[str, Any]:
    page = _build_page(DEFAULT_PAGE_NAME)
    timestamp = now_iso()
    return {
        "id": _new_id("comp"),
        "name": name,
        "pages": [page],
        "currentPageId": page["id"],
        "isFavorite": False,
        "createdAt": timestamp,
        "updatedAt": timestamp,
        "lastAccessed": timestamp,
        "licenses": [],
    }


def ensure_store_data() -> dict[str, Any]:
    return {
        "schemaVersion": STORE_SCHEMA_VERSION,
        "currentCompanyId": None,
        "companies": [],
        "updatedAt": now_iso(),
    }


def upcast_store_data(raw: Any) -> dict[str, Any]:
    data = ensure_store_data()
    if not isinstance(raw, Mapping):
        return data
    companies = [company for company in raw.get("companies") or [] if isinstance(company, Mapping)]
    for company in companies:
        entry = dict(company)
        pages = []
        for page in entry.get("pages") or []:
            if isinstance(page, Mapping):
                page = dict(page)
                page["state"] = upcast_page_state(page.get("state"))
                pages.append(page)
        if not pages:
            pages.append(_build_page(DEFAULT_PAGE_NAME))
        entry["pages"] = pages
        if entry.get("currentPageId") not in {page["id"] for page in pages}:
            entry["currentPageId"] = pages[0]["id"]
        entry["licenses"] = list(entry.get("licenses") or [])
        data["companies"].append(entry)
    data["currentCompanyId"] = raw.get("currentCompanyId")
    data["updatedAt"] = raw.get("updatedAt") or data["updatedAt"]
    return data


class JsonCompanyStore:
    """In-memory company store persisted as one JSON document.

    ``on_change`` is called with an export snapshot after every mutation.
    """

    def __init__(
        self, data: Mapping[str, Any] | None = None, *, on_change: ChangeHandler | None = None
    ) -> None:
        self._data = upcast_store_data(data) if data is not None else ensure_store_data()
        self._on_change = on_change

    @classmethod
    def load(cls, path: Path, *, on_change: ChangeHandler | None = None) -> JsonCompanyStore:
        if not path.exists():
            return cls(on_change=on_change)
        with path.open("r", encoding="utf-8") as fh:
            return cls(cast(dict[str, Any], json.load(fh)), on_change=on_change)

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as fh:
            json.dump(self._data, fh, indent=2, sort_keys=True)

    def export_data(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)

    @property
    def companies(self) -> list[dict[str, Any]]:
        return cast(list[dict[str, Any]], self._data["companies"])

    def _changed(self, company: dict[str, Any] | None = None) -> None:
        timestamp = now_iso()
        if company is not None:
            company["updatedAt"] = timestamp
        self._data["updatedAt"] = timestamp
        if self._on_change is not None:
            self._on_change(self.export_data())

    def get(self, company_id: str) -> dict[str, Any]:
        for company in self.companies:
            if company["id"] == company_id:
                return company
        raise StoreError(f"unknown company: {company_id}")

    def find_by_name(self, name: str) -> dict[str, Any] | None:
        for company in self.companies:
            if company["name"] == name:
                return company
        return None

    def create(self, name: str = DEFAULT_COMPANY_NAME) -> dict[str, Any]:
        if not name or not name.strip():
            raise StoreError("company name must not be empty")
        company = _build_company(name.strip())
        self.companies.append(company)
        self._data["currentCompanyId"] = company["id"]
        logger.debug("Created company %s (%s)", company["name"], company["id"])
        self._changed()
        return company

    def switch_to(self, company_id: str) -> None:
        company = self.get(company_id)
        self._data["currentCompanyId"] = company_id
        company["lastAccessed"] = now_iso()

    def current_company(self) -> dict[str, Any]:
        company_id = self._data.get("currentCompanyId")
        if not company_id:
            raise StoreError("no current company")
        return self.get(company_id)

    def _page(self, company: dict[str, Any], page_id: str) -> dict[str, Any]:
        for page in company["pages"]:
            if page["id"] == page_id:
                return page
        raise StoreError(f"unknown page {page_id} in company {company['id']}")

    def create_page(self, name: str | None = None) -> dict[str, Any]:
        company = self.current_company()
        page = _build_page(name or f"P{len(company['pages']) + 1}")
        company["pages"].append(page)
        logger.debug("Created page %s in %s", page["name"], company["name"])
        self._changed(company)
        return page

    def rename_page(self, page_id: str, name: str) -> None:
        company = self.current_company()
        page = self._page(company, page_id)
        page["name"] = name
        self._changed(company)

    def switch_to_page(self, page_id: str) -> None:
        company = self.current_company()
        self._page(company, page_id)
        company["currentPageId"] = page_id

    def current_page(self) -> dict[str, Any]:
        company = self.current_company()
        return self._page(company, company["currentPageId"])

    def current_page_state(self) -> dict[str, Any]:
        """A detached copy of the current page state, in the current shape."""
        return upcast_page_state(copy.deepcopy(self.current_page()["state"]))

    def save_page_state(self, state: Mapping[str, Any]) -> None:
        company = self.current_company()
        page = self._page(company, company["currentPageId"])
        page["state"] = upcast_page_state(copy.deepcopy(dict(state)))
        logger.debug("Saved state of page %s in %s", page["name"], company["name"])
        self._changed(company)

    def select_bits(self, package_code: str, bits: Iterable[str]) -> int:
        state = self.current_page_state()
        added = select_bits(state, package_code, bits)
        if added:
            self.save_page_state(state)
        return added

    def remove_bits(self, package_code: str, bits: Iterable[str]) -> int:
        state = self.current_page_state()
        removed = remove_bits(state, package_code, bits)
        if removed:
            self.save_page_state(state)
        return removed

    def has_panel_item(self, item: str, panel_id: str = MAINTENANCE_PANEL_ID) -> bool:
        panel = self.current_page_state()["panels"].get(panel_id) or {}
        return item in panel.get("items", [])

    def set_license_data(self, company_id: str, license: LicenseInfo) -> None:
        """Append ``license`` to the company's license history."""
        company = self.get(company_id)
        company.setdefault("licenses", []).append(license.to_dict())
        self._changed(company)
