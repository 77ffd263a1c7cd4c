"""Lab Explorer package.

Symbols are loaded lazily via ``__getattr__`` so that importing a single
submodule (for example the models in a notebook) does not pull in httpx or
jinja2.
"""

from importlib import import_module
from typing import Any

__all__ = [
    "ExplorerSession",
    "ExpansionEngine",
    "CollapseEngine",
    "GraphStore",
    "FetchCache",
    "RemoteDataGateway",
    "ExplorerSettings",
]

_EXPORT_MAP = {
    "ExplorerSession": ("lab_explorer.explorer", "ExplorerSession"),
    "ExpansionEngine": ("lab_explorer.explorer", "ExpansionEngine"),
    "CollapseEngine": ("lab_explorer.explorer", "CollapseEngine"),
    "GraphStore": ("lab_explorer.explorer", "GraphStore"),
    "FetchCache": ("lab_explorer.utils", "FetchCache"),
    "RemoteDataGateway": ("lab_explorer.tools", "RemoteDataGateway"),
    "ExplorerSettings": ("lab_explorer.utils", "ExplorerSettings"),
}


def __getattr__(name: str) -> Any:
    """Lazy-load exported package symbols on first access."""
    if name not in _EXPORT_MAP:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_name, attr_name = _EXPORT_MAP[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
