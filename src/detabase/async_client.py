"""Awaitable Deta Base handle built on :mod:`httpx`."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Dict, Generic

import httpx

from .client import (
    Deta,
    ResponseParseError,
    _as_list,
    _is_success,
    _item_path,
    _log_body,
    _parse_query,
    _query_body,
    _update_body,
)
from .logging_utils import log_operation
from .models import ItemT, QueryResponse, Updates

logger = logging.getLogger(__name__)


class AsyncBase(Generic[ItemT]):
    """Coroutine counterpart of :class:`detabase.client.Base`.

    Request shaping and status handling are identical; each method suspends
    only while the request is in flight and the body is read.
    """

    def __init__(self, deta: Deta, name: str, *, client: httpx.AsyncClient | None = None) -> None:
        self.deta = deta
        self.name = name
        self.url = deta.root_url + name
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, url={self.url!r})"

    async def __aenter__(self) -> "AsyncBase[ItemT]":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self, operation: str, method: str, path: str, body: Any = None
    ) -> httpx.Response:
        kwargs: Dict[str, Any] = {"headers": self.deta.headers, "timeout": self.deta.timeout}
        if body is not None:
            _log_body(operation, body)
            kwargs["json"] = body

        with log_operation(logger, operation, base=self.name, method=method) as context:
            response = await self._client.request(method, self.url + path, **kwargs)
            context["status_code"] = response.status_code
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise ResponseParseError(
                "Response did not contain valid JSON",
                status_code=response.status_code,
                detail=response.text.strip() or None,
            ) from exc

    async def put(self, items: Sequence[ItemT]) -> Any:
        response = await self._request("put", "PUT", "/items", {"items": _as_list(items)})
        return self._json(response)

    async def get(self, key: str) -> ItemT | None:
        response = await self._request("get", "GET", _item_path(key))
        if not _is_success(response.status_code):
            return None
        return self._json(response)

    async def delete(self, key: str) -> Any:
        response = await self._request("delete", "DELETE", _item_path(key))
        return self._json(response)

    async def insert(self, item: ItemT) -> Any:
        response = await self._request("insert", "POST", "/items", {"item": item})
        return self._json(response)

    async def update(self, key: str, updates: Updates | Mapping[str, Any]) -> Any:
        response = await self._request("update", "PATCH", _item_path(key), _update_body(updates))
        return self._json(response)

    async def query(
        self,
        query: Sequence[Any] | Mapping[str, Any],
        limit: int | None = None,
        last: str | None = None,
    ) -> QueryResponse[ItemT]:
        response = await self._request("query", "POST", "/query", _query_body(query, limit, last))
        return _parse_query(self._json(response))


__all__ = ["AsyncBase"]
