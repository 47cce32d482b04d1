"""
gateway/ — Push-Event Gateway Session

Persistent socket client: discovery, Hello/Identify handshake, heartbeat
and opcode-based dispatch of server-pushed events to registered handlers.
"""

from cordlink.gateway.protocol import (
    Dispatch,
    HeartbeatAck,
    Hello,
    Opcode,
    OutboundEnvelope,
    Status,
    Unknown,
    parse_envelope,
)
from cordlink.gateway.session import Presence, Session, SessionState
from cordlink.gateway.dispatch import EventDispatchTable
from cordlink.gateway.heartbeat import HeartbeatScheduler
from cordlink.gateway.client import GatewayClient

__all__ = [
    "Dispatch",
    "HeartbeatAck",
    "Hello",
    "Opcode",
    "OutboundEnvelope",
    "Status",
    "Unknown",
    "parse_envelope",
    "Presence",
    "Session",
    "SessionState",
    "EventDispatchTable",
    "HeartbeatScheduler",
    "GatewayClient",
]
