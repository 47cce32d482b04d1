"""
exceptions.py — cordlink Unified Error Hierarchy

All cordlink-specific exceptions live here. The gateway and REST layers
raise typed subclasses of CordlinkError, never bare Exception.

Import from here, not from individual modules:
    from cordlink.exceptions import MissingCredentialError, InvalidArgumentError

Hierarchy:
    CordlinkError
    ├── MissingCredentialError
    ├── InvalidArgumentError
    └── GatewayError
        ├── MalformedMessageError
        ├── ConnectionFailureError
        └── GatewayNotConnectedError
"""

from __future__ import annotations


# ─────────────────────────────────────────────────────────────────────────────
# Root
# ─────────────────────────────────────────────────────────────────────────────

class CordlinkError(Exception):
    """Base class for all cordlink exceptions."""


# ─────────────────────────────────────────────────────────────────────────────
# Precondition failures, raised before any network effect
# ─────────────────────────────────────────────────────────────────────────────

class MissingCredentialError(CordlinkError):
    """login() was called without a bot token configured."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or "Token not provided.")


class InvalidArgumentError(CordlinkError, ValueError):
    """An argument is outside the set of values the platform accepts."""

    def __init__(self, argument: str, value: object, message: str = "") -> None:
        self.argument = argument
        self.value = value
        super().__init__(message or f"Invalid {argument}: {value!r}")


# ─────────────────────────────────────────────────────────────────────────────
# Gateway layer
# ─────────────────────────────────────────────────────────────────────────────

class GatewayError(CordlinkError):
    """Base for gateway session errors."""


class MalformedMessageError(GatewayError):
    """An inbound socket message could not be parsed into an envelope."""

    def __init__(self, raw: str | bytes, reason: str) -> None:
        self.raw = raw
        self.reason = reason
        super().__init__(f"Malformed gateway message: {reason}")


class ConnectionFailureError(GatewayError):
    """Gateway discovery or socket open failed. Not retried."""


class GatewayNotConnectedError(GatewayError):
    """A send was attempted before the socket was opened or after it closed."""


# ─────────────────────────────────────────────────────────────────────────────
# Convenience: all public names
# ─────────────────────────────────────────────────────────────────────────────

__all__ = [
    "CordlinkError",
    "MissingCredentialError",
    "InvalidArgumentError",
    "GatewayError",
    "MalformedMessageError",
    "ConnectionFailureError",
    "GatewayNotConnectedError",
]
