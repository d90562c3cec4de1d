"""Deta Base Python client."""

from __future__ import annotations

from importlib import import_module
from typing import Any

__version__ = "1.0.0"

__all__ = [
    "AsyncBase",
    "Base",
    "ConfigurationError",
    "Deta",
    "DetaError",
    "Paging",
    "PayloadValidationError",
    "QueryResponse",
    "ResponseParseError",
    "Updates",
    "__version__",
]

_EXPORTS = {
    "AsyncBase": ("detabase.async_client", "AsyncBase"),
    "Base": ("detabase.client", "Base"),
    "ConfigurationError": ("detabase.client", "ConfigurationError"),
    "Deta": ("detabase.client", "Deta"),
    "DetaError": ("detabase.client", "DetaError"),
    "Paging": ("detabase.models", "Paging"),
    "PayloadValidationError": ("detabase.models", "PayloadValidationError"),
    "QueryResponse": ("detabase.models", "QueryResponse"),
    "ResponseParseError": ("detabase.client", "ResponseParseError"),
    "Updates": ("detabase.models", "Updates"),
}


def __getattr__(name: str) -> Any:
    try:
        module_name, attribute = _EXPORTS[name]
    except KeyError as exc:  # pragma: no cover - mirrors default behaviour
        raise AttributeError(f"module 'detabase' has no attribute '{name}'") from exc

    module = import_module(module_name)
    value = getattr(module, attribute)
    globals()[name] = value
    return value


def __dir__() -> list[str]:  # pragma: no cover - introspection helper
    return sorted(__all__)
