"""
gateway/session.py — Per-Connection Session State

A Session is the single logical gateway connection. It is owned by exactly
one GatewayClient and never shared. There is no module-level state, so
any number of clients can coexist in one process.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from cordlink.gateway.protocol import Status


class SessionState(str, Enum):
    DISCONNECTED   = "disconnected"
    CONNECTING     = "connecting"
    AWAITING_HELLO = "awaiting_hello"
    IDENTIFYING    = "identifying"
    CONNECTED      = "connected"


@dataclass
class Presence:
    status: Status = Status.ONLINE
    afk: bool = False


@dataclass
class Session:
    """
    Mutable state for one connection attempt.

    The token is excluded from repr so a Session can be logged or printed
    without leaking the credential.
    """
    token: Optional[str] = field(default=None, repr=False)
    intents: int = 0
    presence: Presence = field(default_factory=Presence)

    state: SessionState = SessionState.DISCONNECTED
    gateway_url: Optional[str] = None
    socket: Any = field(default=None, repr=False)     # open websocket, None until connected
    heartbeat_interval: Optional[int] = None          # ms, set by Hello only

    # Diagnostics, recorded, not used for resume
    session_id: Optional[str] = None
    last_sequence: Optional[int] = None

    @property
    def has_token(self) -> bool:
        return bool(self.token and self.token.strip())

    def reset(self) -> None:
        """Drop connection-scoped fields after a disconnect."""
        self.state = SessionState.DISCONNECTED
        self.socket = None
        self.heartbeat_interval = None
        self.session_id = None
        self.last_sequence = None
