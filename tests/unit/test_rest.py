"""
tests/unit/test_rest.py — HTTP Collaborator and Message Command Tests

Uses httpx.MockTransport so every request is captured and answered
locally; no network access.
"""

from __future__ import annotations

import json
import time

import httpx
import pytest

from cordlink.exceptions import (
    ConnectionFailureError,
    InvalidArgumentError,
    MissingCredentialError,
)
from cordlink.rest.http import RestClient, RestResult, build_socket_url
from cordlink.rest.messages import (
    SNOWFLAKE_EPOCH_MS,
    FetchNamespace,
    MessageNamespace,
    snowflake_time,
)

API = "https://api.example.test/api/v10"


# ── Helpers ───────────────────────────────────────────────────────────────────


class Captured:
    """Records requests and replies with a fixed response."""

    def __init__(self, status: int = 200, body=None):
        self.requests: list[httpx.Request] = []
        self.status = status
        self.body = body

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.body is None:
            return httpx.Response(self.status)
        return httpx.Response(self.status, json=self.body)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last.content)


def make_rest(handler, token: str | None = "tok") -> RestClient:
    return RestClient(token, api_base=API, transport=httpx.MockTransport(handler))


def snowflake_at(unix_seconds: float) -> str:
    return str((int(unix_seconds * 1000) - SNOWFLAKE_EPOCH_MS) << 22)


# ─────────────────────────────────────────────────────────────────────────────
# RestClient
# ─────────────────────────────────────────────────────────────────────────────

class TestRestClient:
    @pytest.mark.asyncio
    async def test_authorization_header(self):
        cap = Captured(body={"ok": True})
        async with make_rest(cap) as rest:
            result = await rest.request("GET", "/users/@me")
        assert result.success
        assert result.data == {"ok": True}
        assert cap.last.headers["Authorization"] == "Bot tok"
        assert cap.last.url.path == "/api/v10/users/@me"

    @pytest.mark.asyncio
    async def test_non_2xx_is_failure_result(self):
        cap = Captured(status=403, body={"message": "Missing Permissions", "code": 50013})
        async with make_rest(cap) as rest:
            result = await rest.request("POST", "/channels/1/messages", json={"content": "x"})
        assert not result.success
        assert result.status_code == 403
        assert result.error == "Missing Permissions"
        assert result.data["code"] == 50013

    @pytest.mark.asyncio
    async def test_network_error_is_failure_result(self):
        def boom(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_rest(boom) as rest:
            result = await rest.request("GET", "/gateway/bot")
        assert not result.success
        assert result.status_code is None
        assert result.error_type == "ConnectError"

    @pytest.mark.asyncio
    async def test_missing_token(self):
        rest = make_rest(Captured(), token=None)
        with pytest.raises(MissingCredentialError):
            await rest.request("GET", "/gateway/bot")

    def test_result_factories(self):
        ok = RestResult.ok(204)
        assert ok.success and ok.status_code == 204 and ok.error is None
        fail = RestResult.fail("nope", "HTTPStatusError", status_code=500)
        assert not fail.success and fail.error_type == "HTTPStatusError"


class TestDiscovery:
    @pytest.mark.asyncio
    async def test_returns_versioned_url(self):
        cap = Captured(body={"url": "wss://gateway.example.test", "shards": 1})
        async with make_rest(cap) as rest:
            url = await rest.get_gateway_url()
        assert url == "wss://gateway.example.test/?v=10&encoding=json"
        assert cap.last.method == "GET"
        assert cap.last.url.path == "/api/v10/gateway/bot"
        assert cap.last.headers["Authorization"] == "Bot tok"

    @pytest.mark.asyncio
    async def test_http_error_raises_connection_failure(self):
        async with make_rest(Captured(status=401, body={"message": "401: Unauthorized"})) as rest:
            with pytest.raises(ConnectionFailureError, match="401"):
                await rest.get_gateway_url()

    @pytest.mark.asyncio
    async def test_network_error_raises_connection_failure(self):
        def boom(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        async with make_rest(boom) as rest:
            with pytest.raises(ConnectionFailureError):
                await rest.get_gateway_url()

    @pytest.mark.asyncio
    async def test_missing_url_raises_connection_failure(self):
        async with make_rest(Captured(body={"shards": 1})) as rest:
            with pytest.raises(ConnectionFailureError, match="url"):
                await rest.get_gateway_url()

    @pytest.mark.parametrize("url,expected", [
        ("wss://g.test", "wss://g.test/?v=10&encoding=json"),
        ("wss://g.test/", "wss://g.test/?v=10&encoding=json"),
        ("wss://g.test/gw", "wss://g.test/gw?v=10&encoding=json"),
        ("wss://g.test/?compress=zlib", "wss://g.test/?compress=zlib&v=10&encoding=json"),
    ])
    def test_build_socket_url(self, url, expected):
        assert build_socket_url(url) == expected


# ─────────────────────────────────────────────────────────────────────────────
# MessageNamespace
# ─────────────────────────────────────────────────────────────────────────────

MESSAGE = {"id": "222", "channel_id": "111"}


class TestMessages:
    @pytest.mark.asyncio
    async def test_send_text(self):
        cap = Captured(body={"id": "9"})
        async with make_rest(cap) as rest:
            result = await MessageNamespace(rest).send("111", "hello")
        assert result.success
        assert cap.last.method == "POST"
        assert cap.last.url.path == "/api/v10/channels/111/messages"
        assert cap.last_json() == {"content": "hello"}

    @pytest.mark.asyncio
    async def test_send_embeds(self):
        cap = Captured(body={})
        async with make_rest(cap) as rest:
            await MessageNamespace(rest).send(111, [{"title": "a"}, {"title": "b"}])
            assert cap.last_json() == {"embeds": [{"title": "a"}, {"title": "b"}]}
            await MessageNamespace(rest).send(111, {"title": "solo"})
            assert cap.last_json() == {"embeds": [{"title": "solo"}]}

    @pytest.mark.asyncio
    async def test_reply_references_message(self):
        cap = Captured(body={})
        async with make_rest(cap) as rest:
            await MessageNamespace(rest).reply(MESSAGE, "pong")
        assert cap.last.url.path == "/api/v10/channels/111/messages"
        assert cap.last_json() == {"content": "pong", "message_reference": {"message_id": "222"}}

    @pytest.mark.asyncio
    async def test_reply_requires_channel(self):
        async with make_rest(Captured()) as rest:
            with pytest.raises(InvalidArgumentError):
                await MessageNamespace(rest).reply({"id": "1"}, "x")

    @pytest.mark.asyncio
    async def test_delete(self):
        cap = Captured(status=204)
        async with make_rest(cap) as rest:
            result = await MessageNamespace(rest).delete(MESSAGE)
        assert result.success
        assert result.data is None
        assert cap.last.method == "DELETE"
        assert cap.last.url.path == "/api/v10/channels/111/messages/222"

    @pytest.mark.asyncio
    async def test_delete_failure_is_returned(self):
        async with make_rest(Captured(status=404, body={"message": "Unknown Message"})) as rest:
            result = await MessageNamespace(rest).delete(MESSAGE)
        assert not result.success
        assert result.error == "Unknown Message"

    @pytest.mark.asyncio
    async def test_react_encodes_emoji(self):
        cap = Captured(status=204)
        async with make_rest(cap) as rest:
            await MessageNamespace(rest).react(MESSAGE, "👍")
        assert cap.last.method == "PUT"
        assert cap.last.url.raw_path.decode() == (
            "/api/v10/channels/111/messages/222/reactions/%F0%9F%91%8D/@me"
        )

    @pytest.mark.asyncio
    async def test_react_custom_emoji(self):
        cap = Captured(status=204)
        async with make_rest(cap) as rest:
            await MessageNamespace(rest).react(MESSAGE, "party:123")
        assert "/reactions/party%3A123/@me" in cap.last.url.raw_path.decode()


class TestPurge:
    @pytest.mark.asyncio
    async def test_bulk_delete(self):
        now = time.time()
        msgs = [{"id": snowflake_at(now - 60)}, {"id": snowflake_at(now - 120)}]
        cap = Captured(status=204)
        async with make_rest(cap) as rest:
            result = await MessageNamespace(rest).purge("111", msgs, now=now)
        assert result.success
        assert cap.last.url.path == "/api/v10/channels/111/messages/bulk-delete"
        assert cap.last_json() == {"messages": [m["id"] for m in msgs]}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [0, 1, 101])
    async def test_count_limits(self, count):
        now = time.time()
        msgs = [{"id": snowflake_at(now - i)} for i in range(count)]
        cap = Captured()
        async with make_rest(cap) as rest:
            with pytest.raises(InvalidArgumentError):
                await MessageNamespace(rest).purge("111", msgs, now=now)
        assert cap.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad", [{"channel_id": "111"}, {"id": "abc"}, {"id": ""}])
    async def test_rejects_missing_or_non_numeric_id(self, bad):
        now = time.time()
        msgs = [{"id": snowflake_at(now - 60)}, bad]
        cap = Captured()
        async with make_rest(cap) as rest:
            with pytest.raises(InvalidArgumentError) as exc_info:
                await MessageNamespace(rest).purge("111", msgs, now=now)
        assert exc_info.value.argument == "messages"
        assert cap.requests == []

    @pytest.mark.asyncio
    async def test_rejects_messages_older_than_14_days(self):
        now = time.time()
        old = snowflake_at(now - 15 * 24 * 3600)
        msgs = [{"id": snowflake_at(now - 60)}, {"id": old}]
        cap = Captured()
        async with make_rest(cap) as rest:
            with pytest.raises(InvalidArgumentError, match="14 days"):
                await MessageNamespace(rest).purge("111", msgs, now=now)
        assert cap.requests == []

    def test_snowflake_time(self):
        assert snowflake_time(0) == SNOWFLAKE_EPOCH_MS / 1000
        assert snowflake_time(snowflake_at(1_700_000_000)) == pytest.approx(1_700_000_000, abs=0.001)


# ─────────────────────────────────────────────────────────────────────────────
# FetchNamespace
# ─────────────────────────────────────────────────────────────────────────────

class TestFetch:
    @pytest.mark.asyncio
    async def test_messages_default_limit(self):
        cap = Captured(body=[{"id": "1"}, {"id": "2"}])
        async with make_rest(cap) as rest:
            result = await FetchNamespace(rest).messages("111")
        assert result.data == [{"id": "1"}, {"id": "2"}]
        assert cap.last.url.params["limit"] == "50"

    @pytest.mark.asyncio
    async def test_failure_yields_empty_list(self):
        async with make_rest(Captured(status=403, body={"message": "Missing Access"})) as rest:
            result = await FetchNamespace(rest).messages("111", limit=10)
        assert not result.success
        assert result.data == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, 101])
    async def test_limit_bounds(self, limit):
        cap = Captured()
        async with make_rest(cap) as rest:
            with pytest.raises(InvalidArgumentError):
                await FetchNamespace(rest).messages("111", limit=limit)
        assert cap.requests == []
