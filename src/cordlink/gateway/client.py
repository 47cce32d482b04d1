"""
gateway/client.py — Gateway Session Manager

Async client that holds one persistent gateway connection:

    login() → discovery (GET /gateway/bot) → open socket → Hello (op 10)
            → start heartbeat + send Identify (op 2)
            → Dispatch frames (op 0) routed to registered handlers

Usage:
    client = GatewayClient(token, intents=513)

    @client.on("READY")
    def on_ready(data):
        print("logged in as", data["user"]["username"])

    async with client:
        await client.login()
        await client.wait_closed()

Inbound frames are handled one at a time by a single reader task; the
heartbeat runs on its own task. Both write through _send(), which holds an
asyncio.Lock so frames never interleave on the wire.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from cordlink.exceptions import (
    ConnectionFailureError,
    GatewayNotConnectedError,
    MalformedMessageError,
    MissingCredentialError,
)
from cordlink.gateway.dispatch import EventDispatchTable, EventHandler
from cordlink.gateway.heartbeat import HeartbeatScheduler
from cordlink.gateway.protocol import (
    DEFAULT_PROPERTIES,
    Dispatch,
    HeartbeatAck,
    Hello,
    InboundEnvelope,
    OutboundEnvelope,
    Status,
    Unknown,
    make_identify,
    make_presence_update,
    parse_envelope,
)
from cordlink.gateway.session import Presence, Session, SessionState
from cordlink.observability.logger import bind_connection, clear_connection, get_logger
from cordlink.rest.http import DEFAULT_API_BASE, RestClient
from cordlink.rest.messages import FetchNamespace, MessageNamespace

log = get_logger(__name__)


class GatewayClient:
    """
    Persistent gateway client. One instance owns one Session, one
    HeartbeatScheduler and one EventDispatchTable.

    Async context manager; disconnects on exit.
    """

    def __init__(
        self,
        token: Optional[str],
        intents: int = 0,
        *,
        status: Status | str = Status.ONLINE,
        properties: Optional[dict[str, str]] = None,
        api_base: str = DEFAULT_API_BASE,
        gateway_version: int = 10,
        http_timeout: float = 10.0,
        max_message_size: Optional[int] = 2**20,
        rest: Optional[RestClient] = None,
    ):
        self.session = Session(
            token=token,
            intents=intents,
            presence=Presence(status=Status.parse(status)),
        )
        self._properties = dict(properties or DEFAULT_PROPERTIES)
        self._gateway_version = gateway_version
        self._max_message_size = max_message_size

        self.rest = rest or RestClient(token, api_base=api_base, timeout=http_timeout)
        self.messages = MessageNamespace(self.rest)
        self.fetch = FetchNamespace(self.rest)

        self._events = EventDispatchTable()
        self._heartbeat = HeartbeatScheduler(self._send)
        self._send_lock = asyncio.Lock()
        self._reader_task: Optional[asyncio.Task] = None
        self._connected = asyncio.Event()

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.disconnect()
        await self.rest.aclose()

    # ─────────────────────────────────────────────────────────────────────────
    # Handler registration
    # ─────────────────────────────────────────────────────────────────────────

    def on(self, event_name: str, handler: Optional[EventHandler] = None) -> Any:
        """
        Register the handler for a Dispatch event name, replacing any
        earlier one. Works as a plain call or as a decorator.
        """
        if handler is not None:
            self._events.register(event_name, handler)
            return handler

        def decorator(fn: EventHandler) -> EventHandler:
            self._events.register(event_name, fn)
            return fn

        return decorator

    # ─────────────────────────────────────────────────────────────────────────
    # Connection lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    async def login(self) -> None:
        """
        Check credentials, then connect.

        Raises:
            MissingCredentialError: no token configured. Raised before any
                discovery or socket call.
            ConnectionFailureError: discovery or socket open failed.
        """
        if not self.session.has_token:
            raise MissingCredentialError()
        await self.connect()

    async def connect(self) -> None:
        """
        Discover the gateway URL, open the socket and start reading.

        Returns as soon as the socket is open. The handshake completes
        later, when Hello arrives. Use wait_until_connected() to wait for it.

        Raises:
            MissingCredentialError: no token configured. The state is left
                untouched.
            ConnectionFailureError: discovery or socket open failed.
        """
        if self.session.socket is not None:
            log.warning("gateway.already_connected", state=self.session.state.value)
            return
        if not self.session.has_token:
            raise MissingCredentialError()

        self.session.state = SessionState.CONNECTING
        self._connected.clear()

        try:
            url = await self.rest.get_gateway_url(version=self._gateway_version)
        except ConnectionFailureError:
            self.session.state = SessionState.DISCONNECTED
            log.error("gateway.discovery_failed", exc_info=True)
            raise

        try:
            ws = await websockets.connect(url, max_size=self._max_message_size)
        except (OSError, websockets.WebSocketException, asyncio.TimeoutError) as e:
            self.session.state = SessionState.DISCONNECTED
            log.error("gateway.open_failed", url=url, error=str(e), error_type=type(e).__name__)
            raise ConnectionFailureError(f"Could not open gateway socket {url}: {e}") from e

        self.session.socket = ws
        self.session.gateway_url = url
        self.session.state = SessionState.AWAITING_HELLO
        bind_connection(url)
        log.info("gateway.connected", url=url)

        self._reader_task = asyncio.create_task(self._reader_loop(ws))

    async def disconnect(self) -> None:
        """Cancel the heartbeat, stop reading, close the socket. Idempotent."""
        ws = self.session.socket
        await self._heartbeat.stop()

        reader = self._reader_task
        self._reader_task = None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass

        if ws is not None:
            await ws.close()
            log.info("gateway.disconnected")
        self.session.reset()
        self._connected.clear()
        clear_connection()

    async def wait_until_connected(self, timeout: Optional[float] = None) -> None:
        """Wait for the first Dispatch after Identify. Raises asyncio.TimeoutError on timeout."""
        await asyncio.wait_for(self._connected.wait(), timeout=timeout)

    async def wait_closed(self) -> None:
        """Wait until the reader task ends (socket closed or disconnect())."""
        if self._reader_task is not None:
            await asyncio.wait({self._reader_task})

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def latency(self) -> Optional[float]:
        """Heartbeat round-trip in seconds, or None before the first ACK."""
        return self._heartbeat.latency

    @property
    def heartbeat(self) -> HeartbeatScheduler:
        return self._heartbeat

    # ─────────────────────────────────────────────────────────────────────────
    # Reader loop
    # ─────────────────────────────────────────────────────────────────────────

    async def _reader_loop(self, ws) -> None:
        try:
            async for raw in ws:
                try:
                    await self.handle_event(raw)
                except MalformedMessageError as e:
                    log.error("gateway.malformed_message", reason=e.reason, exc_info=True)
                except ConnectionClosed:
                    raise
                except Exception as e:
                    # A failing handler must not take the connection down with it
                    log.error(
                        "gateway.handler_error",
                        error=str(e),
                        error_type=type(e).__name__,
                        exc_info=True,
                    )
            log.info("gateway.closed", code=ws.close_code, reason=ws.close_reason)
        except ConnectionClosed as e:
            rcvd = e.rcvd
            log.warning(
                "gateway.closed",
                code=rcvd.code if rcvd else None,
                reason=rcvd.reason if rcvd else None,
            )
        finally:
            # Socket is gone either way: the timer must not outlive it
            self._heartbeat.cancel()
            if self.session.socket is ws:
                self.session.reset()
                self._connected.clear()

    async def handle_event(self, raw: str | bytes) -> None:
        """
        Handle one inbound socket message.

        Raises:
            MalformedMessageError: the message is not a gateway envelope.
            GatewayNotConnectedError: Hello arrived with no open socket. No
                heartbeat is armed in that case.
        """
        envelope: InboundEnvelope = parse_envelope(raw)

        if isinstance(envelope, Hello):
            log.info("gateway.hello", heartbeat_interval_ms=envelope.heartbeat_interval)
            if self.session.socket is None:
                raise GatewayNotConnectedError("received Hello but the gateway socket is not open")
            self.session.heartbeat_interval = envelope.heartbeat_interval
            self.session.state = SessionState.IDENTIFYING
            self.start_heartbeat(envelope.heartbeat_interval)
            await self.identify()

        elif isinstance(envelope, HeartbeatAck):
            self._heartbeat.ack()
            log.debug("gateway.heartbeat_ack", latency=self._heartbeat.latency)

        elif isinstance(envelope, Dispatch):
            await self._handle_dispatch(envelope)

        elif isinstance(envelope, Unknown):
            log.debug("gateway.unhandled_op", op=envelope.op)

    async def _handle_dispatch(self, envelope: Dispatch) -> None:
        if envelope.sequence is not None:
            self.session.last_sequence = envelope.sequence

        if self.session.state is not SessionState.CONNECTED:
            self.session.state = SessionState.CONNECTED
            self._connected.set()
        if envelope.event == "READY" and isinstance(envelope.data, dict):
            self.session.session_id = envelope.data.get("session_id")

        log.debug("gateway.dispatch", event_name=envelope.event, seq=envelope.sequence)
        result = self._events.dispatch(envelope.event, envelope.data)
        if inspect.isawaitable(result):
            await result

    # ─────────────────────────────────────────────────────────────────────────
    # Outbound frames
    # ─────────────────────────────────────────────────────────────────────────

    async def _send(self, envelope: OutboundEnvelope) -> None:
        ws = self.session.socket
        if ws is None:
            raise GatewayNotConnectedError(
                f"cannot send op {int(envelope.op)}: gateway socket is not open"
            )
        async with self._send_lock:
            await ws.send(envelope.to_json())

    def start_heartbeat(self, interval_ms: int) -> None:
        """(Re)arm the heartbeat timer; any running timer is cancelled first."""
        self._heartbeat.start(interval_ms)

    async def identify(self) -> None:
        """Send the Identify handshake with token, intents, properties and presence."""
        presence = self.session.presence
        await self._send(
            make_identify(
                self.session.token or "",
                self.session.intents,
                status=presence.status,
                afk=presence.afk,
                properties=self._properties,
            )
        )
        log.info("gateway.identify_sent", intents=self.session.intents,
                 status=presence.status.value)

    async def status(self, new_status: Status | str) -> None:
        """
        Update the bot's presence.

        Raises:
            InvalidArgumentError: new_status is not online/dnd/idle/invisible.
                Raised before anything is sent.
            GatewayNotConnectedError: no open socket.
        """
        parsed = Status.parse(new_status)
        await self._send(make_presence_update(parsed, afk=False))
        self.session.presence = Presence(status=parsed, afk=False)
        log.info("gateway.presence_updated", status=parsed.value)
