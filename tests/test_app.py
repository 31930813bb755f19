from __future__ import annotations

from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

import main
from games.live_auction.server import AuctionCoordinator, create_app

INITIAL_FRAMES = 5


def drain_initial(ws) -> Dict[str, Any]:
    frames = [ws.receive_json() for _ in range(INITIAL_FRAMES)]
    assert frames[0]["type"] == "welcome"
    return frames[0]


@pytest.fixture
def api_client() -> TestClient:
    coord = AuctionCoordinator(policy="explicit", tick_interval=0)
    with TestClient(create_app(coord)) as client:
        yield client


def test_status_endpoint(api_client: TestClient) -> None:
    response = api_client.get("/")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "connections": 0,
        "participants": 0,
        "admin_id": None,
        "round_open": False,
    }


def test_websocket_claim_and_join(api_client: TestClient) -> None:
    with api_client.websocket_connect("/ws") as admin_ws:
        admin_id = drain_initial(admin_ws)["connection_id"]

        admin_ws.send_json({"type": "claim_admin"})
        assert admin_ws.receive_json() == {"type": "admin_update", "admin_id": admin_id}

        with api_client.websocket_connect("/ws") as bidder_ws:
            bidder_id = drain_initial(bidder_ws)["connection_id"]
            bidder_ws.send_json({"type": "join_lobby", "display_name": "Bob"})

            expected = {
                "type": "roster_update",
                "participants": [{"id": bidder_id, "display_name": "Bob"}],
            }
            assert bidder_ws.receive_json() == expected
            assert admin_ws.receive_json() == expected


def test_garbage_frames_keep_connection_open(api_client: TestClient) -> None:
    with api_client.websocket_connect("/ws") as ws:
        drain_initial(ws)

        ws.send_text("not json at all")
        ws.send_json({"type": "submit_bid", "amount": "many"})
        ws.send_json({"type": "clock_probe", "echo": 42})

        reply = ws.receive_json()
        assert reply["type"] == "clock_reply"
        assert reply["echo"] == 42


def test_launcher_mounts_game() -> None:
    with TestClient(main.create_app(policy="implicit")) as client:
        assert client.get("/").json() == {"live_auction": "/games/live_auction"}
        status = client.get("/games/live_auction/")
        assert status.status_code == 200
        assert status.json()["round_open"] is False


def test_binary_and_deeply_nested_frames_keep_admin(api_client: TestClient) -> None:
    with api_client.websocket_connect("/ws") as ws:
        admin_id = drain_initial(ws)["connection_id"]
        ws.send_json({"type": "claim_admin"})
        assert ws.receive_json()["admin_id"] == admin_id

        ws.send_bytes(b"\x00\x01")
        ws.send_text("[" * 100_000)
        ws.send_json({"type": "clock_probe", "echo": 7})

        reply = ws.receive_json()
        assert reply["type"] == "clock_reply"
        assert reply["echo"] == 7
        assert api_client.get("/").json()["admin_id"] == admin_id
