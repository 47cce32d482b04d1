"""
rest/http.py — Authenticated HTTP Collaborator

One request in, one RestResult out. The gateway core only needs
get_gateway_url(); the command namespaces in rest/messages.py build on
request().

Failures are returned, never logged-and-swallowed: every call yields a
RestResult with success=False plus the status code and error text, and the
caller decides what to do with it. Discovery is the exception: the
gateway cannot proceed without a URL, so get_gateway_url() raises
ConnectionFailureError.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urlencode, urlsplit

import httpx

from cordlink.exceptions import ConnectionFailureError, MissingCredentialError
from cordlink.observability.logger import get_logger

log = get_logger(__name__)

DEFAULT_API_BASE = "https://discord.com/api/v10"
USER_AGENT = "DiscordBot (https://github.com/cordlink/cordlink, 1.0.0)"


@dataclass
class RestResult:
    """
    The outcome of one HTTP command.

    Rules:
      - success=True means the server answered with a 2xx status.
      - success=False means the request failed; error and error_type say why.
        status_code is None when no response was received at all.
      - data is the decoded JSON body (or None for empty bodies).
    """
    success: bool
    status_code: Optional[int] = None
    data: Any = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    duration_ms: float = 0.0
    metadata: dict = field(default_factory=dict)

    @classmethod
    def ok(
        cls,
        status_code: int,
        data: Any = None,
        duration_ms: float = 0.0,
    ) -> "RestResult":
        return cls(
            success=True,
            status_code=status_code,
            data=data,
            duration_ms=duration_ms,
        )

    @classmethod
    def fail(
        cls,
        error: str,
        error_type: str,
        *,
        status_code: Optional[int] = None,
        data: Any = None,
        duration_ms: float = 0.0,
    ) -> "RestResult":
        return cls(
            success=False,
            status_code=status_code,
            data=data,
            error=error,
            error_type=error_type,
            duration_ms=duration_ms,
        )


class RestClient:
    """
    Thin async wrapper over httpx.AsyncClient that adds the bot
    Authorization header to every request.

    Usage:
        async with RestClient(token) as rest:
            result = await rest.request("GET", "/users/@me")
    """

    def __init__(
        self,
        token: Optional[str],
        *,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._token = token
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "RestClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    @property
    def api_base(self) -> str:
        return self._api_base

    def _http(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            if not self._token:
                raise MissingCredentialError()
            self._client = httpx.AsyncClient(
                base_url=self._api_base,
                headers={
                    "Authorization": f"Bot {self._token}",
                    "User-Agent": USER_AGENT,
                },
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ─────────────────────────────────────────────────────────────────────────
    # Generic request
    # ─────────────────────────────────────────────────────────────────────────

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> RestResult:
        """Issue one authenticated request. Never raises for HTTP or network errors."""
        client = self._http()
        t_start = time.monotonic()
        try:
            resp = await client.request(method, path, json=json, params=params)
        except httpx.HTTPError as e:
            duration_ms = (time.monotonic() - t_start) * 1000
            log.warning(
                "rest.request_failed",
                method=method,
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            return RestResult.fail(str(e) or type(e).__name__, type(e).__name__,
                                   duration_ms=duration_ms)

        duration_ms = (time.monotonic() - t_start) * 1000
        data = _decode_body(resp)

        if resp.is_success:
            log.debug("rest.request_ok", method=method, path=path,
                      status=resp.status_code, ms=round(duration_ms))
            return RestResult.ok(resp.status_code, data, duration_ms=duration_ms)

        message = data.get("message") if isinstance(data, dict) else None
        log.warning(
            "rest.request_rejected",
            method=method,
            path=path,
            status=resp.status_code,
            message=message,
        )
        return RestResult.fail(
            message or f"HTTP {resp.status_code}",
            "HTTPStatusError",
            status_code=resp.status_code,
            data=data,
            duration_ms=duration_ms,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Gateway discovery
    # ─────────────────────────────────────────────────────────────────────────

    async def get_gateway_url(self, *, version: int = 10, encoding: str = "json") -> str:
        """
        Resolve the socket URL via GET /gateway/bot.

        Raises:
            ConnectionFailureError: network error, non-2xx status, or a
                response without a `url` field. No retry is attempted.
        """
        result = await self.request("GET", "/gateway/bot")
        if not result.success:
            raise ConnectionFailureError(
                f"Gateway discovery failed: {result.error}"
                + (f" (HTTP {result.status_code})" if result.status_code else "")
            )
        url = result.data.get("url") if isinstance(result.data, dict) else None
        if not url or not isinstance(url, str):
            raise ConnectionFailureError("Gateway discovery response has no 'url'")
        return build_socket_url(url, version=version, encoding=encoding)


def build_socket_url(url: str, *, version: int = 10, encoding: str = "json") -> str:
    """Append the protocol version and encoding query to a discovered URL."""
    query = urlencode({"v": version, "encoding": encoding})
    if "?" in url:
        return f"{url}&{query}"
    if urlsplit(url).path in ("", "/"):
        return f"{url.rstrip('/')}/?{query}"
    return f"{url}?{query}"


def _decode_body(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text
