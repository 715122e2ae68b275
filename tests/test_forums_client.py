from __future__ import annotations

import unittest

import httpx

from feeds.source import ForumsClient
from feeds.source import forums_auth_token
from misc.errors import UpstreamFetchError


def _client(handler, *, api_key: str = "secret") -> ForumsClient:
    return ForumsClient(
        api_base="https://forums.example/api/",
        api_key=api_key,
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


class ForumsClientTests(unittest.IsolatedAsyncioTestCase):
    def test_auth_token_is_basic_key_with_empty_password(self):
        self.assertEqual(forums_auth_token("secret"), "Basic c2VjcmV0Og==")

    def test_url_joins_base_and_path(self):
        client = _client(lambda request: httpx.Response(200, json={}))
        self.assertEqual(client.url("/calendar/events"), "https://forums.example/api/calendar/events")

    async def test_listing_returns_results_with_auth_header(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"page": 1, "results": [{"id": 1}, "junk", {"id": 2}]})

        client = _client(handler)
        rows = await client.fetch_listing(client.url("calendar/events"))

        self.assertEqual(rows, [{"id": 1}, {"id": 2}])
        self.assertEqual(seen[0].headers["Authorization"], "Basic c2VjcmV0Og==")

    async def test_missing_key_sends_no_auth_header(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"results": []})

        client = _client(handler, api_key="")
        self.assertEqual(await client.fetch_listing(client.url("forums/topics")), [])
        self.assertNotIn("Authorization", seen[0].headers)

    async def test_http_error_becomes_upstream_fetch_error(self):
        client = _client(lambda request: httpx.Response(503, text="down"))
        with self.assertRaises(UpstreamFetchError):
            await client.fetch_json(client.url("calendar/events"))

    async def test_invalid_json_becomes_upstream_fetch_error(self):
        client = _client(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
        with self.assertRaises(UpstreamFetchError):
            await client.fetch_listing(client.url("calendar/events"))

    async def test_transport_error_becomes_upstream_fetch_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = _client(handler)
        with self.assertRaises(UpstreamFetchError):
            await client.fetch_json(client.url("calendar/events"))

    async def test_non_list_results_is_rejected(self):
        client = _client(lambda request: httpx.Response(200, json={"results": {"id": 1}}))
        with self.assertRaises(UpstreamFetchError):
            await client.fetch_listing(client.url("calendar/events"))


if __name__ == "__main__":
    unittest.main()
