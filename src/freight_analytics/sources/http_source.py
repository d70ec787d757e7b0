"""Remote source adapter built on top of ``BaseRemoteSource`` and httpx."""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

import httpx

from freight_analytics.domain.exceptions import (
    AuthError,
    NetworkError,
    ServerError,
)
from freight_analytics.domain.models import RemoteQuery

from .base import BaseRemoteSource
from .endpoints import EndpointSpec


class HttpRemoteSource(BaseRemoteSource):
    """Concrete source that speaks to the freight API over bearer-token HTTP."""

    def __init__(
        self,
        http_client: httpx.Client,
        endpoint: EndpointSpec,
        *,
        base_url: str,
        access_token: str,
        timeout: float = 30.0,
    ) -> None:
        if not access_token:
            raise ValueError("access_token must be provided")
        if not base_url:
            raise ValueError("base_url must be provided")
        super().__init__(paginated=endpoint.paginated)
        self._http = http_client
        self._spec = endpoint
        self._access_token = access_token
        self._timeout = timeout
        self._url = f"{base_url.rstrip('/')}{endpoint.path}"

    @property
    def endpoint(self) -> EndpointSpec:
        return self._spec

    def _fetch_raw(self, query: RemoteQuery) -> Sequence[Any]:
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Accept": "application/json",
        }
        try:
            http_response = self._http.get(
                self._url,
                params=self._build_params(query),
                headers=headers,
                timeout=self._timeout,
            )
        except httpx.TransportError as exc:
            raise NetworkError(
                "Freight API unreachable",
                context={"url": self._url, "error": type(exc).__name__},
            ) from exc

        return self._map_response(http_response)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _build_params(self, query: RemoteQuery) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if query.actor and self._spec.actor_param:
            params[self._spec.actor_param] = query.actor
        if query.counterpart and self._spec.counterpart_param:
            params[self._spec.counterpart_param] = query.counterpart
        params.update(query.date_range.as_params())
        if self._spec.paginated and query.page is not None:
            params[self._spec.page_param] = str(query.page)
            if query.page_size is not None:
                params[self._spec.page_size_param] = str(query.page_size)
        return params

    def _map_response(self, http_response: httpx.Response) -> Sequence[Any]:
        status = http_response.status_code
        if status == 401:
            raise AuthError(
                "Access token invalid or expired",
                context={"url": self._url},
            )
        if not 200 <= status < 300:
            raise ServerError(
                f"Freight API request failed with status {status}",
                status_code=status,
                context={"url": self._url},
            )

        try:
            data = http_response.json()
        except ValueError as exc:
            raise ServerError(
                "Malformed freight API response",
                status_code=status,
                context={"url": self._url},
            ) from exc

        items = self._extract_items(data)
        if items is None:
            raise ServerError(
                "Unexpected freight API payload shape",
                status_code=status,
                context={"url": self._url, "type": type(data).__name__},
            )
        return items

    def _extract_items(self, data: Any) -> Optional[Sequence[Any]]:
        if isinstance(data, list):
            return data
        node = data
        path = self._spec.items_path or "items"
        for segment in path.split("."):
            if not isinstance(node, dict):
                return None
            node = node.get(segment)
        return node if isinstance(node, list) else None
