"""SolidCAM license import package."""
from __future__ import annotations

from pathlib import Path

from . import (
    dictionary,
    fields,
    header,
    importer,
    layout,
    mapper,
    models,
    normalize,
    pdf,
    renderer,
    salesforce,
    selections,
    sources,
    store,
)

__all__ = [
    "dictionary",
    "fields",
    "header",
    "importer",
    "layout",
    "mapper",
    "models",
    "normalize",
    "pdf",
    "renderer",
    "salesforce",
    "selections",
    "sources",
    "store",
    "load_store",
]


def load_store(path: Path) -> store.JsonCompanyStore:
    """Convenience wrapper to load the JSON company store at ``path``."""
    return store.JsonCompanyStore.load(path)
