"""
gateway/protocol.py — Gateway Wire Protocol

Typed envelope schema for the push-event gateway.
Every frame is a JSON object:

    {"op": <int opcode>, "d": <payload>, "t": <event name>, "s": <sequence>}

`t` and `s` are only present on Dispatch (op 0).

Inbound frames are parsed into a closed set of variants
(Hello, HeartbeatAck, Dispatch, Unknown) so the session manager matches
on type instead of branching on raw opcode numbers.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Optional, Union

from cordlink.exceptions import InvalidArgumentError, MalformedMessageError


# ─────────────────────────────────────────────────────────────────────────────
# Opcodes and presence statuses
# ─────────────────────────────────────────────────────────────────────────────

class Opcode(IntEnum):
    """Gateway opcodes produced or consumed by the client."""

    DISPATCH         = 0     # server → client
    HEARTBEAT        = 1     # client → server
    IDENTIFY         = 2     # client → server
    PRESENCE_UPDATE  = 3     # client → server
    HELLO            = 10    # server → client
    HEARTBEAT_ACK    = 11    # server → client


class Status(str, Enum):
    """Presence statuses accepted by the gateway."""

    ONLINE    = "online"
    DND       = "dnd"
    IDLE      = "idle"
    INVISIBLE = "invisible"

    @classmethod
    def parse(cls, value: "str | Status") -> "Status":
        """Coerce a string to a Status, raising InvalidArgumentError if unknown."""
        try:
            return cls(value)
        except ValueError:
            raise InvalidArgumentError(
                "status",
                value,
                f"Invalid status provided: {value!r}. "
                f"Must be one of: {[s.value for s in cls]}",
            ) from None


# ─────────────────────────────────────────────────────────────────────────────
# Inbound envelope variants
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Hello:
    """op 10 — first frame after the socket opens."""
    heartbeat_interval: int                 # milliseconds
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class HeartbeatAck:
    """op 11 — server acknowledged our last heartbeat."""


@dataclass(frozen=True)
class Dispatch:
    """op 0 — an event pushed by the server."""
    event: str
    data: Any
    sequence: Optional[int] = None


@dataclass(frozen=True)
class Unknown:
    """Any opcode the client does not act on."""
    op: int
    data: Any = None


InboundEnvelope = Union[Hello, HeartbeatAck, Dispatch, Unknown]


def parse_envelope(raw: str | bytes) -> InboundEnvelope:
    """
    Parse one inbound socket message into an envelope variant.

    Raises:
        MalformedMessageError: the text is not JSON, not an object, has no
            integer `op`, or an op 0 / op 10 frame is missing its required
            fields.
    """
    try:
        frame = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedMessageError(raw, f"invalid JSON ({e})") from e

    if not isinstance(frame, dict):
        raise MalformedMessageError(raw, "frame is not an object")

    op = frame.get("op")
    if not isinstance(op, int) or isinstance(op, bool):
        raise MalformedMessageError(raw, "missing integer 'op'")

    data = frame.get("d")

    if op == Opcode.HELLO:
        interval = data.get("heartbeat_interval") if isinstance(data, dict) else None
        if not isinstance(interval, (int, float)) or isinstance(interval, bool):
            raise MalformedMessageError(raw, "hello without a numeric heartbeat_interval")
        # Interval is whole milliseconds; sub-millisecond values truncate to 0
        interval = int(interval)
        if interval <= 0:
            raise MalformedMessageError(raw, "hello without a positive heartbeat_interval")
        return Hello(heartbeat_interval=interval, data=data)

    if op == Opcode.HEARTBEAT_ACK:
        return HeartbeatAck()

    if op == Opcode.DISPATCH:
        event = frame.get("t")
        if not isinstance(event, str):
            raise MalformedMessageError(raw, "dispatch without an event name 't'")
        seq = frame.get("s")
        return Dispatch(
            event=event,
            data=data,
            sequence=seq if isinstance(seq, int) else None,
        )

    return Unknown(op=op, data=data)


# ─────────────────────────────────────────────────────────────────────────────
# Outbound envelope
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class OutboundEnvelope:
    """An opcode plus payload, ready to serialize onto the socket."""
    op: Opcode
    data: Any = None

    def to_json(self) -> str:
        """Serialize to the wire format. `d` is always present, even when null."""
        return json.dumps({"op": int(self.op), "d": self.data})


# ─────────────────────────────────────────────────────────────────────────────
# Factory helpers Client → Server
# ─────────────────────────────────────────────────────────────────────────────

DEFAULT_PROPERTIES: dict[str, str] = {
    "$os": "linux",
    "$browser": "cordlink",
    "$device": "cordlink",
}


def make_heartbeat() -> OutboundEnvelope:
    """Build a Heartbeat. The payload is always null (no sequence number)."""
    return OutboundEnvelope(op=Opcode.HEARTBEAT, data=None)


def make_identify(
    token: str,
    intents: int,
    *,
    status: Status = Status.ONLINE,
    afk: bool = False,
    properties: Optional[dict[str, str]] = None,
) -> OutboundEnvelope:
    """Build the Identify handshake frame."""
    return OutboundEnvelope(
        op=Opcode.IDENTIFY,
        data={
            "token": token,
            "intents": intents,
            "properties": dict(properties or DEFAULT_PROPERTIES),
            "presence": {
                "status": Status(status).value,
                "afk": afk,
            },
        },
    )


def make_presence_update(status: Status, afk: bool = False) -> OutboundEnvelope:
    """Build a Presence-Update frame."""
    return OutboundEnvelope(
        op=Opcode.PRESENCE_UPDATE,
        data={"status": Status(status).value, "afk": afk},
    )
