"""
Live update broadcaster.

Keeps the set of connected WebSocket clients and fans out "new article"
events to all of them. Delivery is best effort and at most once: nothing is
persisted, and a client that connects after an event never sees it.

Each client owns a bounded outbound queue drained by its own sender task, so
``broadcast`` never awaits a socket. A client that cannot keep up (full
queue), fails a send or disconnects is dropped from the set. ``broadcast``
walks a snapshot of the set, so clients may connect or disconnect while a
broadcast is in progress. All methods must be called from the event loop
that serves the WebSockets.
"""

import asyncio
import logging
from typing import Any, Protocol

import anyio

logger = logging.getLogger(__name__)


class LiveConnection(Protocol):
    """The part of a WebSocket the broadcaster relies on."""

    async def send_json(self, data: Any) -> None: ...

    async def receive(self) -> dict: ...

    async def close(self, code: int = 1000) -> None: ...


class LiveClient:
    """One connected client with its own outbound queue."""

    def __init__(self, connection: LiveConnection, queue_size: int = 100):
        self.connection = connection
        self._queue: asyncio.Queue[dict] = asyncio.Queue(maxsize=queue_size)
        self._closed = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def offer(self, message: dict) -> bool:
        """Queue a message without waiting. False if the client is closed or full."""
        if self.closed:
            return False
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            return False
        return True

    def close(self) -> None:
        """Ask the client's run loop to stop."""
        self._closed.set()

    async def run(self) -> None:
        """Deliver queued messages until the peer leaves, a send fails, or close() is called."""
        try:
            async with anyio.create_task_group() as task_group:

                async def until_done(func) -> None:
                    try:
                        await func()
                    except Exception as e:
                        logger.info(f"Live client dropped: {e!r}")
                    finally:
                        task_group.cancel_scope.cancel()

                task_group.start_soon(until_done, self._send_loop)
                task_group.start_soon(until_done, self._receive_loop)
                task_group.start_soon(until_done, self._closed.wait)
        finally:
            self._closed.set()

    async def _send_loop(self) -> None:
        while True:
            message = await self._queue.get()
            await self.connection.send_json(message)

    async def _receive_loop(self) -> None:
        # Inbound frames, text or binary, carry no meaning; reading detects disconnects
        while True:
            message = await self.connection.receive()
            if message["type"] == "websocket.disconnect":
                return


class ConnectionRegistry:
    """Registry of live clients with add/remove/broadcast operations."""

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._clients: set[LiveClient] = set()

    def __len__(self) -> int:
        return len(self._clients)

    def connect(self, connection: LiveConnection) -> LiveClient:
        """Register an accepted connection."""
        client = LiveClient(connection, self.queue_size)
        self._clients.add(client)
        logger.info(f"Live client connected ({len(self._clients)} total)")
        return client

    def disconnect(self, client: LiveClient) -> None:
        """Remove a client. Safe to call more than once."""
        client.close()
        if client in self._clients:
            self._clients.discard(client)
            logger.info(f"Live client disconnected ({len(self._clients)} total)")

    async def serve(self, connection: LiveConnection) -> None:
        """Register a connection and deliver messages to it until it goes away."""
        client = self.connect(connection)
        try:
            await client.run()
        finally:
            self.disconnect(client)

    def broadcast(self, message: dict) -> int:
        """
        Queue a message for every connected client.

        Returns the number of clients the message was queued for. Clients
        that cannot accept it are dropped.
        """
        delivered = 0
        for client in list(self._clients):
            if client.offer(message):
                delivered += 1
            else:
                logger.warning("Dropping live client that is closed or not keeping up")
                self.disconnect(client)
        return delivered

    async def close_all(self) -> None:
        """Disconnect every client (used at shutdown)."""
        for client in list(self._clients):
            self.disconnect(client)
            try:
                await client.connection.close(code=1001)
            except Exception as e:
                logger.debug(f"Error closing live client: {e}")
