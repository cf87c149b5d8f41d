"""
Connection registry for realtime clients.

The registry is the only owner of connection state. Every mutation happens on
the event loop between awaits, so no locking is needed. A broadcast takes its
target list at call time; a subscription added while a broadcast is in flight
only affects later broadcasts.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Protocol, Union

from ..errors import AuthError, DeliveryError, MessageValidationError
from ..logging.config import get_broadcast_logger, log_connection_transition
from ..models.messages import (
    AuthenticateMessage,
    SubscribeMessage,
    UnsubscribeMessage,
    auth_error_message,
    authenticated_message,
    encode_message,
    error_message,
    parse_client_message,
    subscribed_message,
    unsubscribed_message,
    update_message,
)
from ..sources.interfaces import IdentityVerifier
from ..utils.time import Clock, monotonic_clock, utc_now

logger = get_broadcast_logger(__name__)


class Transport(Protocol):
    """The send side of one client connection."""

    async def send(self, message: str) -> None:
        ...

    async def close(self) -> None:
        ...


class ConnectionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    REMOVED = "removed"


@dataclass(eq=False)
class Connection:
    """One live client connection and its subscription state"""
    transport: Transport
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: ConnectionState = ConnectionState.UNAUTHENTICATED
    owner_id: Optional[str] = None
    subscriptions: set[str] = field(default_factory=set)
    admitted_at: float = 0.0
    last_activity: Optional[datetime] = None

    @property
    def authenticated(self) -> bool:
        return self.state is ConnectionState.AUTHENTICATED

    def is_subscribed(self, topic: str) -> bool:
        return self.authenticated and topic in self.subscriptions


class ConnectionRegistry:
    """Authoritative set of live connections."""

    def __init__(self, verifier: IdentityVerifier, clock: Optional[Clock] = None):
        self.verifier = verifier
        self.clock = clock or monotonic_clock
        self.logger = logger
        self._connections: dict[str, Connection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection: Connection) -> bool:
        return self._connections.get(connection.id) is connection

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def connections(self) -> list[Connection]:
        return list(self._connections.values())

    def admit(self, connection: Connection) -> Connection:
        """Register a new connection as unauthenticated."""
        connection.state = ConnectionState.UNAUTHENTICATED
        connection.admitted_at = self.clock()
        connection.last_activity = utc_now()
        self._connections[connection.id] = connection

        self.logger.info("Client connected", connection_id=connection.id, total=len(self._connections))
        return connection

    def remove(self, connection: Connection, trigger: str = "disconnect") -> bool:
        """
        Purge a connection. Safe to call repeatedly.

        Returns:
            True if the connection was registered before this call
        """
        if self._connections.get(connection.id) is not connection:
            return False

        del self._connections[connection.id]
        previous = connection.state
        connection.state = ConnectionState.REMOVED

        log_connection_transition(
            self.logger,
            connection_id=connection.id,
            from_state=previous.value,
            to_state=ConnectionState.REMOVED.value,
            trigger=trigger,
            context={"owner_id": connection.owner_id, "remaining": len(self._connections)}
        )
        return True

    async def send(self, connection: Connection, message: dict[str, Any]) -> bool:
        """
        Send one protocol message to one connection.

        A failed send removes the connection.
        """
        try:
            await self._deliver(connection, encode_message(message), message.get("topic"))
        except DeliveryError as e:
            self._drop_failed(connection, e)
            return False
        return True

    async def _deliver(self, connection: Connection, text: str, topic: Optional[str] = None) -> None:
        try:
            await connection.transport.send(text)
        except Exception as e:
            raise DeliveryError(
                f"Send failed: {e}",
                connection_id=connection.id,
                topic=topic,
                context={"error_type": type(e).__name__}
            ) from e

    def _drop_failed(self, connection: Connection, error: DeliveryError) -> None:
        self.logger.warning(
            "Delivery failed, removing connection",
            connection_id=connection.id,
            topic=error.topic,
            error=str(error)
        )
        self.remove(connection, trigger="send_failure")

    async def authenticate(self, connection: Connection, token: Optional[str]) -> bool:
        """
        Verify a token and mark the connection authenticated.

        On failure the connection stays open and unauthenticated and is sent
        an ``auth_error``. A later successful call overwrites the owner.
        """
        if not token:
            await self.send(connection, auth_error_message("Token required"))
            return False

        try:
            identity = await self.verifier.verify_token(token)
        except AuthError as e:
            self.logger.info("Authentication rejected", connection_id=connection.id, reason=e.reason)
            await self.send(connection, auth_error_message(e.message))
            return False
        except Exception as e:
            self.logger.error("Identity verifier failed", connection_id=connection.id, error=str(e))
            await self.send(connection, auth_error_message("Authentication failed"))
            return False

        if connection not in self:
            # Disconnected while the token was being verified
            return False

        previous = connection.state
        connection.owner_id = str(identity["userId"])
        connection.state = ConnectionState.AUTHENTICATED

        log_connection_transition(
            self.logger,
            connection_id=connection.id,
            from_state=previous.value,
            to_state=connection.state.value,
            trigger="authenticate",
            context={"owner_id": connection.owner_id}
        )

        await self.send(connection, authenticated_message(connection.owner_id))
        return True

    @staticmethod
    def _topic_list(topics: Union[str, list[str], tuple[str, ...]]) -> list[str]:
        if isinstance(topics, str):
            return [topics]
        return list(topics)

    async def subscribe(self, connection: Connection,
                        topics: Union[str, list[str], tuple[str, ...]]) -> bool:
        """Add topics to an authenticated connection; replies with the full subscription list."""
        if not connection.authenticated:
            await self.send(connection, error_message("Authentication required"))
            return False

        connection.subscriptions.update(self._topic_list(topics))
        self.logger.debug("Client subscribed", connection_id=connection.id,
                          subscriptions=sorted(connection.subscriptions))

        await self.send(connection, subscribed_message(sorted(connection.subscriptions)))
        return True

    async def unsubscribe(self, connection: Connection,
                          topics: Union[str, list[str], tuple[str, ...]]) -> bool:
        """Remove topics from an authenticated connection; replies with what remains."""
        if not connection.authenticated:
            await self.send(connection, error_message("Authentication required"))
            return False

        connection.subscriptions.difference_update(self._topic_list(topics))
        self.logger.debug("Client unsubscribed", connection_id=connection.id,
                          subscriptions=sorted(connection.subscriptions))

        await self.send(connection, unsubscribed_message(sorted(connection.subscriptions)))
        return True

    async def handle_message(self, connection: Connection, raw: Union[str, bytes]) -> None:
        """Parse one inbound frame and dispatch it. Invalid frames get an ``error`` reply."""
        connection.last_activity = utc_now()

        try:
            message = parse_client_message(raw)
        except MessageValidationError as e:
            self.logger.debug("Invalid client message", connection_id=connection.id,
                              error=e.message, field=e.field)
            await self.send(connection, e.to_message())
            return

        if isinstance(message, AuthenticateMessage):
            await self.authenticate(connection, message.token)
        elif isinstance(message, SubscribeMessage):
            await self.subscribe(connection, message.topics)
        elif isinstance(message, UnsubscribeMessage):
            await self.unsubscribe(connection, message.topics)
        else:
            raise TypeError(f"Unhandled client message: {type(message).__name__}")

    async def _fan_out(self, targets: list[Connection], topic: str, payload: Any) -> int:
        if not targets:
            return 0

        text = encode_message(update_message(topic, payload))
        results = await asyncio.gather(
            *(self._deliver(c, text, topic) for c in targets),
            return_exceptions=True
        )

        delivered = 0
        for connection, result in zip(targets, results):
            if isinstance(result, DeliveryError):
                self._drop_failed(connection, result)
            elif isinstance(result, BaseException):
                raise result
            else:
                delivered += 1
        return delivered

    async def broadcast(self, topic: str, payload: Any) -> int:
        """
        Deliver an update to every authenticated connection subscribed to topic.

        Returns:
            Number of connections the update reached
        """
        targets = [c for c in self._connections.values() if c.is_subscribed(topic)]
        return await self._fan_out(targets, topic, payload)

    async def broadcast_to_owner(self, owner_id: str, topic: str, payload: Any) -> int:
        """Deliver an update to all of one owner's authenticated connections, subscribed or not."""
        targets = [c for c in self._connections.values()
                   if c.authenticated and c.owner_id == owner_id]
        return await self._fan_out(targets, topic, payload)

    def connected_clients(self) -> dict[str, int]:
        return {
            "total": len(self._connections),
            "authenticated": sum(1 for c in self._connections.values() if c.authenticated),
        }

    async def sweep_unauthenticated(self, max_age_seconds: float) -> int:
        """Close and remove connections still unauthenticated after max_age_seconds."""
        now = self.clock()
        stale = [c for c in self._connections.values()
                 if not c.authenticated and now - c.admitted_at >= max_age_seconds]

        for connection in stale:
            self.remove(connection, trigger="auth_timeout")
            await self._close_transport(connection)

        if stale:
            self.logger.info("Unauthenticated connections swept", count=len(stale))
        return len(stale)

    async def _close_transport(self, connection: Connection) -> None:
        try:
            await connection.transport.close()
        except Exception as e:
            self.logger.debug("Transport close failed", connection_id=connection.id, error=str(e))

    async def close_all(self) -> None:
        """Close every transport and empty the registry."""
        connections = self.connections()
        for connection in connections:
            self.remove(connection, trigger="shutdown")
        await asyncio.gather(*(self._close_transport(c) for c in connections))
        self.logger.info("All connections closed", count=len(connections))
