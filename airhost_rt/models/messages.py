"""
Realtime protocol messages.

Client messages are parsed into a closed set of frozen dataclasses so that
dispatch can be exhaustive over ``ClientMessage``. Server messages are plain
dictionaries built by the helpers below and encoded with ``encode_message``.
"""

import json
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional, Union

import orjson

from ..errors import MessageValidationError
from ..utils.time import format_timestamp


class Topic(str, Enum):
    """Well-known broadcast topics. Any other string is a valid, inert topic."""
    DASHBOARD_METRICS = "dashboard_metrics"
    DASHBOARD_REALTIME = "dashboard_realtime"
    SYSTEM_STATUS = "system_status"
    ACTIVITY_FEED = "activity_feed"
    NOTIFICATION = "notification"
    PRICING_UPDATE = "pricing_update"
    PRICING_APPLIED = "pricing_applied"


class ClientMessageType(str, Enum):
    """Kinds of message a client may send."""
    AUTHENTICATE = "authenticate"
    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"


@dataclass(frozen=True)
class AuthenticateMessage:
    token: Optional[str]


@dataclass(frozen=True)
class SubscribeMessage:
    topics: tuple[str, ...]


@dataclass(frozen=True)
class UnsubscribeMessage:
    topics: tuple[str, ...]


ClientMessage = Union[AuthenticateMessage, SubscribeMessage, UnsubscribeMessage]


def _parse_topics(data: dict[str, Any]) -> tuple[str, ...]:
    """Accept a single topic string or a list of topic strings."""
    topics = data.get("topics")

    if isinstance(topics, str):
        topics = [topics]

    if not isinstance(topics, list) or not topics:
        raise MessageValidationError("Field 'topics' is required", field="topics")

    if not all(isinstance(t, str) and t for t in topics):
        raise MessageValidationError(
            "Field 'topics' must be a string or a list of strings",
            field="topics",
            raw_data=str(topics)[:100]
        )

    # Drop duplicates, keep first-seen order
    return tuple(dict.fromkeys(topics))


def parse_client_message(raw: Union[str, bytes, dict[str, Any]]) -> ClientMessage:
    """
    Parse one inbound frame into a typed client message.

    Args:
        raw: JSON text/bytes from the transport, or an already-decoded object

    Returns:
        One of AuthenticateMessage, SubscribeMessage, UnsubscribeMessage

    Raises:
        MessageValidationError: Invalid JSON, non-object payload, unknown
            message type or missing required field
    """
    if isinstance(raw, (str, bytes)):
        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError:
            raise MessageValidationError(
                "Invalid message format",
                raw_data=str(raw)[:100],
            )
    else:
        data = raw

    if not isinstance(data, dict):
        raise MessageValidationError("Invalid message format", raw_data=str(data)[:100])

    try:
        message_type = ClientMessageType(data.get("type"))
    except ValueError:
        raise MessageValidationError(
            "Unknown message type",
            field="type",
            raw_data=str(data.get("type"))[:100]
        )

    if message_type is ClientMessageType.AUTHENTICATE:
        token = data.get("token")
        if token is not None and not isinstance(token, str):
            raise MessageValidationError("Field 'token' must be a string", field="token")
        return AuthenticateMessage(token=token or None)

    if message_type is ClientMessageType.SUBSCRIBE:
        return SubscribeMessage(topics=_parse_topics(data))

    if message_type is ClientMessageType.UNSUBSCRIBE:
        return UnsubscribeMessage(topics=_parse_topics(data))

    raise MessageValidationError("Unknown message type", field="type")


# Server -> client messages

def connected_message() -> dict[str, Any]:
    return {"type": "connected", "message": "WebSocket connected successfully"}


def authenticated_message(user_id: str) -> dict[str, Any]:
    return {"type": "authenticated", "message": "Authentication successful", "userId": user_id}


def auth_error_message(message: str) -> dict[str, Any]:
    return {"type": "auth_error", "message": message}


def subscribed_message(topics: list[str]) -> dict[str, Any]:
    return {"type": "subscribed", "topics": topics}


def unsubscribed_message(topics: list[str]) -> dict[str, Any]:
    return {"type": "unsubscribed", "topics": topics}


def error_message(message: str) -> dict[str, Any]:
    return {"type": "error", "message": message}


def update_message(topic: str, data: Any, timestamp: Optional[datetime] = None) -> dict[str, Any]:
    """The broadcast envelope."""
    return {
        "type": "update",
        "topic": topic,
        "data": data,
        "timestamp": format_timestamp(timestamp),
    }


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "to_dict"):
        return value.to_dict()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_message(message: dict[str, Any]) -> str:
    """Serialize a server message for the wire."""
    return json.dumps(message, default=_json_default, separators=(",", ":"))
