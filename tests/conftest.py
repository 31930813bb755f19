from __future__ import annotations

from typing import Any, Dict, List

import pytest
import pytest_asyncio

from games.live_auction.server import AuctionCoordinator


class FakeSocket:
    """Records every frame the server sends."""

    def __init__(self) -> None:
        self.sent: List[Dict[str, Any]] = []
        self.accepted = False

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, msg: Dict[str, Any]) -> None:
        self.sent.append(msg)

    def of_type(self, msg_type: str) -> List[Dict[str, Any]]:
        return [m for m in self.sent if m["type"] == msg_type]

    def last(self, msg_type: str) -> Dict[str, Any] | None:
        msgs = self.of_type(msg_type)
        return msgs[-1] if msgs else None

    def clear(self) -> None:
        self.sent.clear()


class FakeClock:
    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def _build(policy: str, clock: FakeClock) -> AuctionCoordinator:
    return AuctionCoordinator(
        policy=policy,
        default_duration=10,
        grace_ms=250,
        tick_interval=0,
        clock=clock,
    )


@pytest_asyncio.fixture
async def coordinator(clock: FakeClock):
    coord = _build("explicit", clock)
    yield coord
    await coord.shutdown()


@pytest_asyncio.fixture
async def implicit_coordinator(clock: FakeClock):
    coord = _build("implicit", clock)
    yield coord
    await coord.shutdown()


async def open_connection(coord: AuctionCoordinator, name: str | None = None):
    """Connect a fake socket and optionally join the lobby under name."""
    ws = FakeSocket()
    conn_id = await coord.connect(ws)
    if name is not None:
        await coord.handle_message(conn_id, {"type": "join_lobby", "display_name": name})
    return conn_id, ws


@pytest.fixture
def connect():
    return open_connection
