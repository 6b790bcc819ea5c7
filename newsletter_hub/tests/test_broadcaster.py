"""
Tests for the live update broadcaster.
"""

import asyncio

import anyio
import pytest

from newsletter_hub.broadcaster import ConnectionRegistry


class FakeConnection:
    """In-memory stand-in for an accepted WebSocket."""

    def __init__(self, fail_on_send: bool = False, stalled: bool = False):
        self.sent: list[dict] = []
        self.closed_with: int | None = None
        self.fail_on_send = fail_on_send
        self.unstall = asyncio.Event()
        if not stalled:
            self.unstall.set()
        self._inbound: asyncio.Queue[dict] = asyncio.Queue()

    async def send_json(self, data):
        if self.fail_on_send:
            raise RuntimeError("socket gone")
        await self.unstall.wait()
        self.sent.append(data)

    async def receive(self) -> dict:
        return await self._inbound.get()

    async def close(self, code: int = 1000):
        self.closed_with = code

    def say(self, text: str):
        self._inbound.put_nowait({"type": "websocket.receive", "text": text})

    def say_bytes(self, data: bytes):
        self._inbound.put_nowait({"type": "websocket.receive", "bytes": data})

    def hang_up(self):
        self._inbound.put_nowait({"type": "websocket.disconnect", "code": 1000})


async def eventually(condition, timeout: float = 2.0):
    """Wait until condition() is true or fail."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            pytest.fail("condition not reached in time")
        await asyncio.sleep(0.01)


async def serve(registry: ConnectionRegistry, connection: FakeConnection) -> asyncio.Task:
    task = asyncio.create_task(registry.serve(connection))
    await asyncio.sleep(0)
    return task


class TestBroadcast:
    """Tests for ConnectionRegistry.broadcast."""

    @pytest.mark.asyncio
    async def test_no_clients(self):
        """Broadcasting with nobody connected is a no-op."""
        assert ConnectionRegistry().broadcast({"type": "NEW_ARTICLE"}) == 0

    @pytest.mark.asyncio
    async def test_every_client_gets_messages_in_order(self):
        """Each client should receive every message, in broadcast order."""
        registry = ConnectionRegistry(queue_size=10)
        first, second = FakeConnection(), FakeConnection()
        tasks = [await serve(registry, first), await serve(registry, second)]
        assert len(registry) == 2

        for n in range(5):
            assert registry.broadcast({"n": n}) == 2

        await eventually(lambda: len(first.sent) == 5 and len(second.sent) == 5)
        assert [m["n"] for m in first.sent] == [0, 1, 2, 3, 4]
        assert [m["n"] for m in second.sent] == [0, 1, 2, 3, 4]

        first.hang_up()
        second.hang_up()
        await asyncio.gather(*tasks)
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_late_client_misses_earlier_messages(self):
        """Messages are not replayed to clients that connect afterwards."""
        registry = ConnectionRegistry()
        early = FakeConnection()
        early_task = await serve(registry, early)
        registry.broadcast({"n": 1})

        late = FakeConnection()
        late_task = await serve(registry, late)
        registry.broadcast({"n": 2})

        await eventually(lambda: len(early.sent) == 2 and len(late.sent) == 1)
        assert late.sent == [{"n": 2}]

        early.hang_up()
        late.hang_up()
        await asyncio.gather(early_task, late_task)

    @pytest.mark.asyncio
    async def test_inbound_messages_are_ignored(self):
        """Clients may send text; it does not affect delivery."""
        registry = ConnectionRegistry()
        connection = FakeConnection()
        task = await serve(registry, connection)

        connection.say("ping")
        registry.broadcast({"n": 1})

        await eventually(lambda: connection.sent == [{"n": 1}])
        assert len(registry) == 1
        connection.hang_up()
        await task

    @pytest.mark.asyncio
    async def test_binary_frames_are_ignored(self):
        """Binary frames neither end the connection nor block delivery."""
        registry = ConnectionRegistry()
        connection = FakeConnection()
        task = await serve(registry, connection)

        connection.say_bytes(b"\x00\x01")
        connection.say("ping")
        registry.broadcast({"n": 1})

        await eventually(lambda: connection.sent == [{"n": 1}])
        assert len(registry) == 1
        assert not task.done()
        connection.hang_up()
        await task


class TestDroppingClients:
    """Tests for removal of clients that disconnect or fall behind."""

    @pytest.mark.asyncio
    async def test_disconnect_removes_client(self):
        """A client that hangs up should leave the registry."""
        registry = ConnectionRegistry()
        connection = FakeConnection()
        task = await serve(registry, connection)

        connection.hang_up()
        await task

        assert len(registry) == 0
        assert registry.broadcast({"n": 1}) == 0

    @pytest.mark.asyncio
    async def test_failed_send_removes_only_that_client(self):
        """A send failure should drop the failing client and keep the others."""
        registry = ConnectionRegistry()
        broken, healthy = FakeConnection(fail_on_send=True), FakeConnection()
        broken_task = await serve(registry, broken)
        healthy_task = await serve(registry, healthy)

        registry.broadcast({"n": 1})
        await broken_task

        await eventually(lambda: healthy.sent == [{"n": 1}])
        assert len(registry) == 1
        assert registry.broadcast({"n": 2}) == 1

        healthy.hang_up()
        await healthy_task

    @pytest.mark.asyncio
    async def test_slow_client_is_dropped(self):
        """A client whose queue is full should be dropped without delaying others."""
        registry = ConnectionRegistry(queue_size=2)
        slow, fast = FakeConnection(stalled=True), FakeConnection()
        slow_task = await serve(registry, slow)
        fast_task = await serve(registry, fast)

        delivered = []
        for n in range(5):
            delivered.append(registry.broadcast({"n": n}))
            await asyncio.sleep(0.01)

        # One message in flight plus two queued, then the slow client is full
        assert delivered == [2, 2, 2, 1, 1]
        await slow_task
        assert len(registry) == 1
        await eventually(lambda: len(fast.sent) == 5)

        fast.hang_up()
        await fast_task

    @pytest.mark.asyncio
    async def test_disconnect_is_idempotent(self):
        """Removing a client twice is harmless."""
        registry = ConnectionRegistry()
        client = registry.connect(FakeConnection())

        registry.disconnect(client)
        registry.disconnect(client)

        assert len(registry) == 0
        assert client.closed
        assert client.offer({"n": 1}) is False

    @pytest.mark.asyncio
    async def test_close_all(self):
        """Shutdown should close every connection and empty the registry."""
        registry = ConnectionRegistry()
        connections = [FakeConnection(), FakeConnection()]
        tasks = [await serve(registry, c) for c in connections]

        await registry.close_all()
        await asyncio.gather(*tasks)

        assert len(registry) == 0
        assert [c.closed_with for c in connections] == [1001, 1001]

    @pytest.mark.asyncio
    async def test_cancelled_from_outside(self):
        """Cancelling the serving scope ends cleanly and removes the client."""
        registry = ConnectionRegistry()
        connection = FakeConnection()

        with anyio.move_on_after(0.05) as scope:
            await registry.serve(connection)

        assert scope.cancelled_caught
        assert len(registry) == 0
        assert registry.broadcast({"n": 1}) == 0

    @pytest.mark.asyncio
    async def test_cancelled_task(self):
        """Cancelling the serving task propagates and still removes the client."""
        registry = ConnectionRegistry()
        task = await serve(registry, FakeConnection())
        assert len(registry) == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_repeated_connect_and_disconnect(self):
        """Clients coming and going leave nothing behind."""
        registry = ConnectionRegistry()
        for _ in range(20):
            connection = FakeConnection()
            task = await serve(registry, connection)
            registry.broadcast({"n": 1})
            await eventually(lambda: connection.sent == [{"n": 1}])
            connection.hang_up()
            await task

        assert len(registry) == 0
