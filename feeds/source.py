from __future__ import annotations

import base64
from typing import Any

import httpx

from misc.errors import UpstreamFetchError


def forums_auth_token(api_key: str) -> str:
    raw = f"{api_key or ''}:".encode("utf-8")
    return "Basic " + base64.b64encode(raw).decode("ascii")


class ForumsClient:
    """Read-only client for the community forums REST API."""

    def __init__(
        self,
        *,
        api_base: str,
        api_key: str,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_base = (api_base or "").rstrip("/")
        self.api_key = api_key or ""
        self.timeout = timeout
        self._transport = transport

    def url(self, path: str) -> str:
        return f"{self.api_base}/{path.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            return {}
        return {"Authorization": forums_auth_token(self.api_key)}

    def _client(self) -> httpx.AsyncClient:
        kwargs: dict[str, Any] = {"headers": self._headers(), "transport": self._transport}
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        return httpx.AsyncClient(**kwargs)

    async def fetch_json(self, url: str) -> Any:
        try:
            async with self._client() as client:
                resp = await client.get(url)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPError as e:
            raise UpstreamFetchError(f"GET {url} failed: {e}") from e
        except ValueError as e:
            raise UpstreamFetchError(f"GET {url} returned invalid JSON: {e}") from e

    async def fetch_listing(self, url: str) -> list[dict[str, Any]]:
        """Return the ``results`` array of a listing endpoint."""
        payload = await self.fetch_json(url)
        results = payload.get("results") if isinstance(payload, dict) else payload
        if results is None:
            return []
        if not isinstance(results, list):
            raise UpstreamFetchError(f"GET {url} returned a non-list listing")
        return [r for r in results if isinstance(r, dict)]
