"""Typed request and response models for Deta Base endpoints."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, NoReturn, TypeVar

Item = Dict[str, Any]
ItemT = TypeVar("ItemT", bound=Mapping[str, Any])


class PayloadValidationError(ValueError):
    """Raised when a JSON payload cannot be coerced into the expected schema."""


def _coerce_int(value: Any, *, field: str) -> int:
    if isinstance(value, bool):
        raise PayloadValidationError(f"Field '{field}' must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise PayloadValidationError(f"Field '{field}' must be an integer") from exc


def _coerce_cursor(value: Any, *, field: str) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    raise PayloadValidationError(f"Field '{field}' must be a string")


@dataclass(frozen=True)
class Updates:
    """Partial mutation of a stored item, sent as the ``PATCH`` body.

    Each category is optional and only present categories are serialized.
    Field names are forwarded untouched; a field appearing in more than one
    category is left for the service to reject.
    """

    set: Mapping[str, Any] | None = None
    increment: Mapping[str, float] | None = None
    append: Mapping[str, Sequence[Any]] | None = None
    prepend: Mapping[str, Sequence[Any]] | None = None
    delete: Sequence[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.set is not None:
            payload["set"] = dict(self.set)
        if self.increment is not None:
            payload["increment"] = dict(self.increment)
        if self.append is not None:
            payload["append"] = {name: list(values) for name, values in self.append.items()}
        if self.prepend is not None:
            payload["prepend"] = {name: list(values) for name, values in self.prepend.items()}
        if self.delete is not None:
            payload["delete"] = list(self.delete)
        return payload


@dataclass(frozen=True)
class Paging:
    """Paging block of a ``/query`` response."""

    size: int
    last: str | None = None

    @classmethod
    def from_dict(cls, data: Any, *, default_size: int = 0) -> "Paging":
        if data is None:
            return cls(size=default_size)
        if not isinstance(data, Mapping):
            raise PayloadValidationError("Field 'paging' must be an object")
        size = _coerce_int(data.get("size", default_size), field="paging.size")
        last = _coerce_cursor(data.get("last"), field="paging.last")
        return cls(size=size, last=last)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"size": self.size}
        if self.last is not None:
            payload["last"] = self.last
        return payload


@dataclass(frozen=True)
class QueryResponse(Generic[ItemT]):
    """Structured response payload returned by ``/query``.

    ``paging.last`` is the cursor to pass as ``last`` on the next call; it is
    ``None`` once the scan is exhausted. ``errors`` carries the service's
    error messages verbatim (e.g. a rejected filter); an empty page with
    errors is a failed query, not an empty result.
    """

    items: tuple[ItemT, ...]
    paging: Paging = field(default_factory=lambda: Paging(size=0))
    errors: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    @classmethod
    def from_dict(cls, data: Any) -> "QueryResponse[Any]":
        if not isinstance(data, Mapping):
            raise PayloadValidationError("Query response must be an object")

        errors = _coerce_errors(data.get("errors"))
        raw_items = data.get("items", [])
        if raw_items is None:
            raw_items = []
        if isinstance(raw_items, (str, bytes, Mapping)) or not isinstance(raw_items, Iterable):
            raise PayloadValidationError("Field 'items' must be a list")

        items = tuple(
            dict(item) if isinstance(item, Mapping) else _raise_item_error(idx)
            for idx, item in enumerate(raw_items)
        )
        paging = Paging.from_dict(data.get("paging"), default_size=len(items))
        return cls(items=items, paging=paging, errors=errors)

    def to_dict(self) -> dict[str, Any]:
        items: List[Any] = [dict(item) for item in self.items]
        payload: dict[str, Any] = {"items": items, "paging": self.paging.to_dict()}
        if self.errors:
            payload["errors"] = list(self.errors)
        return payload


def _coerce_errors(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, Iterable) and not isinstance(value, Mapping):
        return tuple(str(error) for error in value)
    return (str(value),)


def _raise_item_error(index: int) -> NoReturn:
    raise PayloadValidationError(f"Item at position {index} must be an object")


__all__ = ["Item", "Paging", "PayloadValidationError", "QueryResponse", "Updates"]
