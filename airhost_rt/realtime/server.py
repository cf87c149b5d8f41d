"""WebSocket transport hosting the connection registry."""

from typing import Optional
from urllib.parse import urlsplit

import websockets
from websockets.asyncio.server import Server, ServerConnection, serve

from ..config.defaults import ServerParams
from ..logging.config import get_broadcast_logger
from ..models.messages import connected_message
from .registry import Connection, ConnectionRegistry

logger = get_broadcast_logger(__name__)

POLICY_VIOLATION = 1008


class RealtimeServer:
    """Accepts websocket clients on one path and feeds their frames to the registry."""

    def __init__(self, registry: ConnectionRegistry, params: Optional[ServerParams] = None):
        self.registry = registry
        self.params = params or ServerParams()
        self.logger = logger
        self._server: Optional[Server] = None

    @property
    def running(self) -> bool:
        return self._server is not None

    @property
    def port(self) -> Optional[int]:
        """Bound port, useful when configured with port 0."""
        if self._server is None:
            return None
        for sock in self._server.sockets:
            return sock.getsockname()[1]
        return None

    async def start(self) -> None:
        if self._server is not None:
            return

        self._server = await serve(
            self.handler,
            self.params.host,
            self.params.port,
            ping_interval=self.params.ping_interval_seconds,
        )
        self.logger.info("Realtime server listening", host=self.params.host,
                         port=self.port, path=self.params.path)

    async def stop(self) -> None:
        if self._server is None:
            return

        server, self._server = self._server, None
        await self.registry.close_all()
        server.close()
        await server.wait_closed()
        self.logger.info("Realtime server stopped")

    async def handler(self, websocket: ServerConnection) -> None:
        path = urlsplit(websocket.request.path).path if websocket.request else ""
        if path != self.params.path:
            self.logger.info("Rejected connection on unknown path", path=path)
            await websocket.close(code=POLICY_VIOLATION, reason="Unknown path")
            return

        connection = self.registry.admit(Connection(transport=websocket))
        if not await self.registry.send(connection, connected_message()):
            return

        try:
            async for frame in websocket:
                if connection not in self.registry:
                    break
                await self.registry.handle_message(connection, frame)
        except websockets.exceptions.ConnectionClosed as e:
            self.logger.debug("Connection closed", connection_id=connection.id, code=e.rcvd.code if e.rcvd else None)
        finally:
            self.registry.remove(connection)
