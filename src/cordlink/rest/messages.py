"""
rest/messages.py — Message Command Namespaces

Stateless HTTP commands exposed on the client as `client.messages` and
`client.fetch`. Each call issues one request and returns a RestResult.

Platform limits checked locally, before any request:
  - bulk delete accepts 2–100 message ids, none older than 14 days
  - fetching history accepts a limit of 1–100
"""

from __future__ import annotations

import time
from typing import Any, Iterable, Mapping, Union
from urllib.parse import quote

from cordlink.exceptions import InvalidArgumentError
from cordlink.rest.http import RestClient, RestResult

# Snowflake ids carry a millisecond timestamp relative to this epoch
SNOWFLAKE_EPOCH_MS = 1_420_070_400_000
BULK_DELETE_MAX_AGE_S = 14 * 24 * 60 * 60
BULK_DELETE_MIN = 2
BULK_DELETE_MAX = 100
FETCH_LIMIT_MAX = 100

Content = Union[str, Mapping[str, Any], Iterable[Mapping[str, Any]]]


def snowflake_time(snowflake: int | str) -> float:
    """Return the creation time of a snowflake id as a Unix timestamp (seconds)."""
    return ((int(snowflake) >> 22) + SNOWFLAKE_EPOCH_MS) / 1000.0


def _content_payload(content: Content) -> dict[str, Any]:
    """Plain strings become `content`; a single embed or a list of embeds become `embeds`."""
    if isinstance(content, str):
        return {"content": content}
    if isinstance(content, Mapping):
        return {"embeds": [dict(content)]}
    return {"embeds": [dict(e) for e in content]}


def _message_ref(message: Mapping[str, Any]) -> tuple[str, str]:
    try:
        return str(message["channel_id"]), str(message["id"])
    except KeyError as e:
        raise InvalidArgumentError(
            "message", message, f"message is missing required field {e.args[0]!r}"
        ) from None


def _message_id(message: Mapping[str, Any]) -> str:
    try:
        snowflake = str(message["id"])
    except (KeyError, TypeError):
        raise InvalidArgumentError(
            "messages", message, "message is missing required field 'id'"
        ) from None
    if not (snowflake.isascii() and snowflake.isdigit()):
        raise InvalidArgumentError(
            "messages", snowflake, f"message id must be a numeric snowflake, got {snowflake!r}"
        )
    return snowflake


class MessageNamespace:
    """send / reply / delete / purge / react."""

    def __init__(self, rest: RestClient):
        self._rest = rest

    async def send(self, channel_id: int | str, content: Content) -> RestResult:
        return await self._rest.request(
            "POST", f"/channels/{channel_id}/messages", json=_content_payload(content)
        )

    async def reply(self, message: Mapping[str, Any], content: Content) -> RestResult:
        """Post content into the message's channel as a reply to it."""
        channel_id, message_id = _message_ref(message)
        payload = _content_payload(content)
        payload["message_reference"] = {"message_id": message_id}
        return await self._rest.request(
            "POST", f"/channels/{channel_id}/messages", json=payload
        )

    async def delete(self, message: Mapping[str, Any]) -> RestResult:
        channel_id, message_id = _message_ref(message)
        return await self._rest.request(
            "DELETE", f"/channels/{channel_id}/messages/{message_id}"
        )

    async def purge(
        self,
        channel_id: int | str,
        messages: Iterable[Mapping[str, Any]],
        *,
        now: float | None = None,
    ) -> RestResult:
        """
        Bulk-delete messages in one request.

        Raises:
            InvalidArgumentError: fewer than 2 or more than 100 messages, or
                any message older than 14 days or without a numeric id.
                Nothing is sent in that case.
        """
        ids = [_message_id(m) for m in messages]
        if not BULK_DELETE_MIN <= len(ids) <= BULK_DELETE_MAX:
            raise InvalidArgumentError(
                "messages",
                len(ids),
                f"bulk delete takes between {BULK_DELETE_MIN} and "
                f"{BULK_DELETE_MAX} messages, got {len(ids)}",
            )
        cutoff = (now if now is not None else time.time()) - BULK_DELETE_MAX_AGE_S
        too_old = [i for i in ids if snowflake_time(i) < cutoff]
        if too_old:
            raise InvalidArgumentError(
                "messages",
                too_old,
                f"cannot bulk delete messages older than 14 days: {too_old}",
            )
        return await self._rest.request(
            "POST",
            f"/channels/{channel_id}/messages/bulk-delete",
            json={"messages": ids},
        )

    async def react(self, message: Mapping[str, Any], emoji: str) -> RestResult:
        channel_id, message_id = _message_ref(message)
        encoded = quote(emoji, safe="")
        return await self._rest.request(
            "PUT",
            f"/channels/{channel_id}/messages/{message_id}/reactions/{encoded}/@me",
        )


class FetchNamespace:
    """Read-only history lookups."""

    def __init__(self, rest: RestClient):
        self._rest = rest

    async def messages(self, channel_id: int | str, limit: int = 50) -> RestResult:
        """
        Fetch the most recent messages in a channel.

        On failure the result's data is an empty list so callers can iterate
        it unconditionally.
        """
        if not 1 <= limit <= FETCH_LIMIT_MAX:
            raise InvalidArgumentError(
                "limit", limit, f"limit must be between 1 and {FETCH_LIMIT_MAX}, got {limit}"
            )
        result = await self._rest.request(
            "GET", f"/channels/{channel_id}/messages", params={"limit": limit}
        )
        if not result.success:
            result.data = []
        return result
