"""HTTP client for Deta Base REST endpoints."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, Generic, Optional
from urllib.parse import quote

import requests

from .logging_utils import log_operation
from .models import ItemT, PayloadValidationError, QueryResponse, Updates

if TYPE_CHECKING:  # pragma: no cover - typing only
    import httpx

    from .async_client import AsyncBase

API_KEY_HEADER = "X-API-Key"
DEFAULT_HOST = "database.deta.sh"

logger = logging.getLogger(__name__)


class DetaError(Exception):
    """Base exception for client failures."""

    def __init__(self, message: str, *, status_code: int | None = None, detail: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class ResponseParseError(DetaError):
    """Raised when a response body cannot be parsed."""


class ConfigurationError(DetaError):
    """Raised when the client cannot be configured from the environment."""


def _default_timeout() -> float:
    return float(os.getenv("DETA_HTTP_TIMEOUT", "10"))


def _is_success(status: int) -> bool:
    return 200 <= status <= 299


def _item_path(key: str) -> str:
    return "/items/" + quote(str(key), safe="")


def _as_list(values: Any) -> list[Any]:
    # A lone mapping is one element, not a sequence of its keys.
    if isinstance(values, Mapping):
        return [values]
    return list(values)


def _update_body(updates: Updates | Mapping[str, Any]) -> Dict[str, Any]:
    if isinstance(updates, Updates):
        return updates.to_dict()
    return dict(updates)


def _query_body(
    query: Sequence[Any] | Mapping[str, Any], limit: int | None, last: str | None
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"query": _as_list(query)}
    if limit is not None:
        body["limit"] = limit
    if last is not None:
        body["last"] = last
    return body


def _log_body(operation: str, body: Any) -> None:
    if logger.isEnabledFor(logging.DEBUG):
        try:
            logger.debug("%s body %s", operation, json.dumps(body, ensure_ascii=False))
        except (TypeError, ValueError):  # pragma: no cover - diagnostics only
            logger.debug("%s body %r", operation, body)


def _parse_query(payload: Any) -> QueryResponse[Any]:
    try:
        return QueryResponse.from_dict(payload)
    except PayloadValidationError as exc:
        raise ResponseParseError("Query response payload was malformed", detail=str(exc)) from exc


@dataclass(frozen=True)
class Deta:
    """Credentials and shared request settings for one Deta project.

    Parameters
    ----------
    project_id:
        The project ID shown in the Deta dashboard.
    project_key:
        The project key, sent as ``X-API-Key`` on every request.
    host:
        Service host; the root URL is ``https://{host}/v1/{project_id}/``.
    timeout:
        Per-request timeout in seconds. Defaults to ``DETA_HTTP_TIMEOUT`` (10).
    """

    project_id: str
    project_key: str = field(repr=False)
    host: str = DEFAULT_HOST
    timeout: Optional[float] = None
    root_url: str = field(init=False, compare=False)
    headers: Mapping[str, str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "root_url", f"https://{self.host}/v1/{self.project_id}/")
        object.__setattr__(
            self,
            "headers",
            MappingProxyType(
                {API_KEY_HEADER: self.project_key, "Content-Type": "application/json"}
            ),
        )
        if self.timeout is None:
            object.__setattr__(self, "timeout", _default_timeout())

    @classmethod
    def from_project_key(cls, project_key: str, **kwargs: Any) -> "Deta":
        """Build a client from a key of the form ``{project_id}_{secret}``."""

        project_id, sep, _ = project_key.partition("_")
        if not sep or not project_id:
            raise ValueError("project key must have the form '<project_id>_<secret>'")
        return cls(project_id, project_key, **kwargs)

    @classmethod
    def from_env(cls) -> "Deta":
        """Build a client from ``DETA_PROJECT_KEY`` and friends."""

        project_key = os.getenv("DETA_PROJECT_KEY")
        if not project_key:
            raise ConfigurationError("DETA_PROJECT_KEY is not set")

        kwargs: Dict[str, Any] = {}
        host = os.getenv("DETA_BASE_HOST")
        if host:
            kwargs["host"] = host

        project_id = os.getenv("DETA_PROJECT_ID")
        if project_id:
            return cls(project_id, project_key, **kwargs)
        try:
            return cls.from_project_key(project_key, **kwargs)
        except ValueError as exc:
            raise ConfigurationError(
                "DETA_PROJECT_ID is not set and cannot be derived from DETA_PROJECT_KEY"
            ) from exc

    def Base(self, name: str, session: requests.Session | None = None) -> "Base[Any]":
        """Return a blocking handle on the collection ``name``."""

        return Base(self, name, session=session)

    def AsyncBase(self, name: str, client: "httpx.AsyncClient | None" = None) -> "AsyncBase[Any]":
        """Return an awaitable handle on the collection ``name``."""

        from .async_client import AsyncBase

        return AsyncBase(self, name, client=client)


class Base(Generic[ItemT]):
    """Blocking handle bound to one named collection.

    Every operation performs exactly one request. Only :meth:`get` looks at
    the response status; other operations return whatever JSON the service
    sent, error payloads included.
    """

    def __init__(self, deta: Deta, name: str, *, session: requests.Session | None = None) -> None:
        self.deta = deta
        self.name = name
        self.url = deta.root_url + name
        self._owns_session = session is None
        self._session = session or requests.Session()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, url={self.url!r})"

    def __enter__(self) -> "Base[ItemT]":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying session if this handle created it."""

        if self._owns_session:
            self._session.close()

    # ------------------------------------------------------------------
    def _request(
        self, operation: str, method: str, path: str, body: Any = None
    ) -> requests.Response:
        kwargs: Dict[str, Any] = {"headers": self.deta.headers, "timeout": self.deta.timeout}
        if body is not None:
            _log_body(operation, body)
            kwargs["json"] = body

        with log_operation(logger, operation, base=self.name, method=method) as context:
            response = self._session.request(method, self.url + path, **kwargs)
            context["status_code"] = response.status_code
        return response

    @staticmethod
    def _json(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise ResponseParseError(
                "Response did not contain valid JSON",
                status_code=response.status_code,
                detail=response.text.strip() or None,
            ) from exc

    # ------------------------------------------------------------------
    def put(self, items: Sequence[ItemT]) -> Any:
        """Store ``items`` in one request, overwriting existing keys."""

        response = self._request("put", "PUT", "/items", {"items": _as_list(items)})
        return self._json(response)

    def get(self, key: str) -> ItemT | None:
        """Fetch the item stored under ``key``; ``None`` on any non-2xx status."""

        response = self._request("get", "GET", _item_path(key))
        if not _is_success(response.status_code):
            return None
        return self._json(response)

    def delete(self, key: str) -> Any:
        """Delete the item stored under ``key``; absent keys are not an error."""

        response = self._request("delete", "DELETE", _item_path(key))
        return self._json(response)

    def insert(self, item: ItemT) -> Any:
        """Create ``item`` only if its key is not already taken."""

        response = self._request("insert", "POST", "/items", {"item": item})
        return self._json(response)

    def update(self, key: str, updates: Updates | Mapping[str, Any]) -> Any:
        """Apply ``updates`` to an existing item.

        ``updates`` may be an :class:`~detabase.models.Updates` or a plain
        mapping; a mapping is sent as-is.
        """

        response = self._request("update", "PATCH", _item_path(key), _update_body(updates))
        return self._json(response)

    def query(
        self,
        query: Sequence[Any] | Mapping[str, Any],
        limit: int | None = None,
        last: str | None = None,
    ) -> QueryResponse[ItemT]:
        """Run ``query`` and return one page of matching items.

        Pass ``response.paging.last`` back as ``last`` to fetch the next page.
        A rejected query comes back with ``response.errors`` set rather than
        raising.
        """

        response = self._request("query", "POST", "/query", _query_body(query, limit, last))
        return _parse_query(self._json(response))


__all__ = [
    "API_KEY_HEADER",
    "Base",
    "ConfigurationError",
    "DEFAULT_HOST",
    "Deta",
    "DetaError",
    "ResponseParseError",
]
