import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.main import app
from tests.helpers import befriend, register, token_of


def ws_url(user_id: str, headers: dict) -> str:
    return f"/ws/call?user_id={user_id}&token={token_of(headers)}"


def test_connect_acknowledges_and_answers_ping():
    with TestClient(app) as client:
        alice_id, alice = register(client, "alice")

        with client.websocket_connect(ws_url(alice_id, alice)) as ws:
            assert ws.receive_json() == {"type": "connected", "user_id": alice_id}
            assert client.get("/api/auth/me", headers=alice).json()["status"] == "online"

            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

            assert client.get("/health").json()["total_connections"] == 1


def test_token_must_match_user_id():
    with TestClient(app) as client:
        alice_id, alice = register(client, "alice")
        bob_id, _ = register(client, "bob")

        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect(ws_url(bob_id, alice)) as ws:
                ws.receive_json()
        assert exc.value.code == 1008

        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect(f"/ws/call?user_id={alice_id}") as ws:
                ws.receive_json()
        assert exc.value.code == 1008


def test_live_ring_and_answered_signals():
    with TestClient(app) as client:
        alice_id, alice = register(client, "alice")
        bob_id, bob = register(client, "bob")
        befriend(client, alice, bob_id, bob)

        with client.websocket_connect(ws_url(alice_id, alice)) as alice_ws, \
                client.websocket_connect(ws_url(bob_id, bob)) as bob_ws:
            # Contact notifications were queued while both were offline
            assert alice_ws.receive_json()["type"] == "contact_request_accepted"
            assert alice_ws.receive_json()["type"] == "connected"
            assert bob_ws.receive_json()["type"] == "contact_request_received"
            assert bob_ws.receive_json()["type"] == "connected"

            r = client.post("/api/calls/initiate", json={"callee_id": bob_id, "call_type": "audio"}, headers=alice)
            call = r.json()["call"]

            ring = bob_ws.receive_json()
            assert ring["type"] == "ring"
            assert ring["from_id"] == alice_id
            assert ring["call_id"] == call["id"]
            assert ring["room_name"] == call["room_name"]
            assert ring["caller_name"] == call["caller_name"]

            client.post("/api/calls/answer", json={"call_id": call["id"]}, headers=bob)
            answered = alice_ws.receive_json()
            assert answered["type"] == "answered"
            assert answered["from_id"] == bob_id

            client.post("/api/calls/end", json={"call_id": call["id"]}, headers=bob)
            ended = alice_ws.receive_json()
            assert ended["type"] == "ended"
            assert ended["call_id"] == call["id"]


def test_offline_ring_delivered_before_ack():
    with TestClient(app) as client:
        alice_id, alice = register(client, "alice")
        bob_id, bob = register(client, "bob")
        befriend(client, alice, bob_id, bob)

        call = client.post(
            "/api/calls/initiate", json={"callee_id": bob_id, "call_type": "video"}, headers=alice
        ).json()["call"]

        with client.websocket_connect(ws_url(bob_id, bob)) as bob_ws:
            frames = [bob_ws.receive_json() for _ in range(3)]

        assert [f["type"] for f in frames] == ["contact_request_received", "ring", "connected"]
        assert frames[1]["call_id"] == call["id"]
        assert frames[1]["call_type"] == "video"


def test_peer_signals_are_relayed_with_server_sender():
    with TestClient(app) as client:
        alice_id, alice = register(client, "alice")
        bob_id, bob = register(client, "bob")

        with client.websocket_connect(ws_url(alice_id, alice)) as alice_ws, \
                client.websocket_connect(ws_url(bob_id, bob)) as bob_ws:
            alice_ws.receive_json()
            bob_ws.receive_json()

            alice_ws.send_json({
                "type": "offer",
                "from_id": "spoofed",
                "to_id": bob_id,
                "data": {"sdp": "v=0"},
            })
            offer = bob_ws.receive_json()
            assert offer == {"type": "offer", "from_id": alice_id, "to_id": bob_id, "data": {"sdp": "v=0"}}

            # Garbage and frames without a recipient are dropped; the channel stays usable
            alice_ws.send_text("not json")
            alice_ws.send_json({"type": "offer"})
            alice_ws.send_json({"type": "ping"})
            assert alice_ws.receive_json() == {"type": "pong"}
