"""ConnectionManager tests against a scripted in-memory server."""

import asyncio
import json

import pytest

from fe2io.config import Config
from fe2io.exceptions import ConnError, InvalidConfig
from fe2io.net.backoff import BackoffPolicy
from fe2io.net.connection import ConnectionManager, ConnectionState
from tests.fakes import FakeServer

DEATH = json.dumps({"msgType": "gameStatus", "statusType": "died"})


def _config(**overrides) -> Config:
    values = dict(
        server_url="ws://test.invalid:8081",
        reconnect_delay=0.01,
        max_reconnect_delay=0.04,
        backoff_jitter=0.0,
    )
    values.update(overrides)
    username = values.pop("username", "alice")
    return Config.from_args(username, **values)


def _manager(server: FakeServer, config: Config | None = None, **kwargs) -> ConnectionManager:
    return ConnectionManager(config or _config(), server.factory, **kwargs)


async def _until(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


class TestConnect:
    @pytest.mark.asyncio
    async def test_handshake_sent_on_connect(self):
        server = FakeServer()
        manager = _manager(server)
        await manager.connect()
        assert manager.state is ConnectionState.CONNECTED
        assert server.handshakes == ["alice"]
        assert server.transports[0].url == "ws://test.invalid:8081"
        await manager.close()

    @pytest.mark.asyncio
    async def test_empty_username_fails_before_network(self):
        server = FakeServer()
        manager = _manager(server, Config(username="", server_url="ws://test.invalid"))
        with pytest.raises(InvalidConfig):
            await manager.connect()
        assert server.connect_attempts == 0
        assert server.transports == []

    @pytest.mark.asyncio
    async def test_single_attempt_raises_conn_error(self):
        server = FakeServer(fail_connects=1)
        manager = _manager(server)
        with pytest.raises(ConnError):
            await manager.connect()
        assert manager.state is ConnectionState.DISCONNECTED
        assert server.open_count == 0

    @pytest.mark.asyncio
    async def test_connect_after_close_refused(self):
        server = FakeServer()
        manager = _manager(server)
        await manager.close()
        with pytest.raises(ConnError):
            await manager.connect()
        assert server.connect_attempts == 0


class TestNextEvent:
    @pytest.mark.asyncio
    async def test_connects_lazily_and_returns_frame(self):
        server = FakeServer()
        server.push(DEATH)
        manager = _manager(server)
        frame = await asyncio.wait_for(manager.next_event(), timeout=2)
        assert frame == DEATH
        assert server.handshakes == ["alice"]
        await manager.close()

    @pytest.mark.asyncio
    async def test_frames_delivered_in_order(self):
        server = FakeServer()
        for i in range(5):
            server.push(f"frame-{i}")
        manager = _manager(server)
        frames = [await asyncio.wait_for(manager.next_event(), timeout=2) for _ in range(5)]
        assert frames == [f"frame-{i}" for i in range(5)]
        await manager.close()

    @pytest.mark.asyncio
    async def test_reconnects_after_drop_and_replays_handshake(self):
        server = FakeServer()
        server.drop()
        server.push(DEATH)
        manager = _manager(server)
        frame = await asyncio.wait_for(manager.next_event(), timeout=2)
        assert frame == DEATH
        assert server.handshakes == ["alice", "alice"]
        assert len(server.transports) == 2
        assert not server.transports[0].is_open
        await manager.close()

    @pytest.mark.asyncio
    async def test_retries_until_server_is_back(self):
        server = FakeServer(fail_connects=4)
        server.push(DEATH)
        manager = _manager(server)
        frame = await asyncio.wait_for(manager.next_event(), timeout=2)
        assert frame == DEATH
        assert server.connect_attempts == 5
        await manager.close()

    @pytest.mark.asyncio
    async def test_never_two_transports_open(self):
        server = FakeServer(fail_connects=2)
        for _ in range(3):
            server.drop()
        server.push(DEATH)
        manager = _manager(server)
        assert await asyncio.wait_for(manager.next_event(), timeout=2) == DEATH
        assert server.max_open == 1
        await manager.close()
        assert server.open_count == 0

    @pytest.mark.asyncio
    async def test_retry_delays_grow_to_cap(self):
        server = FakeServer(fail_connects=6)
        server.push(DEATH)
        delays: list[float] = []

        def listener(state, delay):
            if state is ConnectionState.BACKOFF:
                delays.append(delay)

        config = _config(reconnect_delay=0.001, max_reconnect_delay=0.008)
        manager = _manager(server, config, status_listener=listener)
        assert await asyncio.wait_for(manager.next_event(), timeout=2) == DEATH
        assert delays == pytest.approx([0.001, 0.002, 0.004, 0.008, 0.008, 0.008])
        await manager.close()

    @pytest.mark.asyncio
    async def test_backoff_resets_after_successful_handshake(self):
        server = FakeServer(fail_connects=3)
        server.push("first")
        delays: list[float] = []
        manager = _manager(
            server,
            status_listener=lambda s, d: delays.append(d) if s is ConnectionState.BACKOFF else None,
        )
        assert await asyncio.wait_for(manager.next_event(), timeout=2) == "first"
        delays.clear()
        server.drop()
        server.push("second")
        assert await asyncio.wait_for(manager.next_event(), timeout=2) == "second"
        assert delays == [0.01]
        await manager.close()


class TestClose:
    @pytest.mark.asyncio
    async def test_close_wakes_pending_recv(self):
        server = FakeServer()
        manager = _manager(server)
        task = asyncio.create_task(manager.next_event())
        await asyncio.sleep(0.05)
        assert manager.state is ConnectionState.CONNECTED
        manager.request_close()
        assert await asyncio.wait_for(task, timeout=1) is None
        await manager.close()
        assert manager.state is ConnectionState.DISCONNECTED
        assert server.open_count == 0

    @pytest.mark.asyncio
    async def test_close_interrupts_long_backoff(self):
        server = FakeServer(fail_connects=1000)
        config = _config(reconnect_delay=30.0, max_reconnect_delay=30.0)
        manager = _manager(server, config, backoff=BackoffPolicy(30.0, 2.0, 30.0, jitter=0.0))
        task = asyncio.create_task(manager.next_event())
        for _ in range(100):
            if manager.state is ConnectionState.BACKOFF:
                break
            await asyncio.sleep(0.01)
        assert manager.state is ConnectionState.BACKOFF
        assert manager.backoff_delay == 30.0
        await manager.close()
        assert await asyncio.wait_for(task, timeout=1) is None

    @pytest.mark.asyncio
    async def test_next_event_after_close_returns_none(self):
        server = FakeServer()
        server.push(DEATH)
        manager = _manager(server)
        await manager.close()
        assert await manager.next_event() is None
        assert server.connect_attempts == 0

    @pytest.mark.asyncio
    async def test_status_listener_sees_lifecycle(self):
        server = FakeServer()
        states = []
        manager = _manager(server, status_listener=lambda s, d: states.append(s))
        await manager.connect()
        await manager.close()
        assert states == [
            ConnectionState.CONNECTING,
            ConnectionState.CONNECTED,
            ConnectionState.DISCONNECTED,
        ]

    @pytest.mark.asyncio
    async def test_close_during_connect_leaves_nothing_open(self):
        server = FakeServer(connect_delay=0.2)
        manager = _manager(server)
        task = asyncio.create_task(manager.next_event())
        await _until(lambda: manager.state is ConnectionState.CONNECTING)
        await manager.close()
        assert await asyncio.wait_for(task, timeout=1) is None
        assert server.open_count == 0
        assert server.handshakes == []
        assert manager.state is ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_direct_connect_interrupted_by_close(self):
        server = FakeServer(connect_delay=0.2)
        manager = _manager(server)
        task = asyncio.create_task(manager.connect())
        await _until(lambda: manager.state is ConnectionState.CONNECTING)
        manager.request_close()
        with pytest.raises(ConnError):
            await asyncio.wait_for(task, timeout=1)
        assert server.open_count == 0
        assert manager.state is ConnectionState.DISCONNECTED
