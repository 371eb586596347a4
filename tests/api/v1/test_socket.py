import pytest
from fastapi import WebSocketDisconnect

from conftest import headers, agent

REQUESTS = "/api/v1/ws/support-requests"
CHAT = "/api/v1/ws/support-chat"


def _query(user_id, role):
    return f"?user_id={user_id}&role={role}"


def _complaint(order_id="order-1"):
    return {
        "order_id": order_id,
        "subject": "Wrong colour",
        "description": "Asked for blue, got green",
        "requires_live_chat": True,
    }


def test_connection_without_identity_is_refused(socket_client):
    with pytest.raises(WebSocketDisconnect):
        with socket_client.websocket_connect(REQUESTS):
            pass


def test_submit_is_acknowledged(socket_client):
    with socket_client.websocket_connect(REQUESTS + _query("user-1", "customer")) as ws:
        ws.send_json({"event": "submit-complaint", "data": _complaint(), "ack": 1})

        status = ws.receive_json()
        ack = ws.receive_json()

    assert status["event"] == "complaint-status"
    assert status["data"]["queued"] is True
    assert ack["event"] == "ack"
    assert ack["data"]["ack"] == 1
    assert ack["data"]["ok"] is True
    assert ack["data"]["data"]["status"] == "pending"


def test_failures_only_answer_the_sender(socket_client):
    with socket_client.websocket_connect(REQUESTS + _query("user-1", "customer")) as ws:
        ws.send_json({"event": "nope"})
        unknown = ws.receive_json()

        ws.send_text("not json")
        invalid = ws.receive_json()

        ws.send_json({"event": "submit-complaint", "data": _complaint("order-other"), "ack": "a1"})
        error = ws.receive_json()
        ack = ws.receive_json()

    assert unknown["data"]["error_code"] == "UNKNOWN_EVENT"
    assert invalid["data"]["error_code"] == "INVALID_FRAME"
    assert error == {"event": "error", "data": {"message": "Order not found", "error_code": "ORDER_NOT_FOUND"}}
    assert ack["data"] == {"ack": "a1", "ok": False, "error_code": "ORDER_NOT_FOUND"}


def test_agent_receives_assignment(socket_client):
    socket_client.put("/api/v1/support/status", json={"is_online": True}, headers=headers(agent()))

    with socket_client.websocket_connect(REQUESTS + _query("agent-a", "service")) as agent_ws:
        with socket_client.websocket_connect(REQUESTS + _query("user-1", "customer")) as customer_ws:
            customer_ws.send_json({"event": "submit-complaint", "data": _complaint()})

            events = [agent_ws.receive_json(), agent_ws.receive_json(), agent_ws.receive_json()]
            status = customer_ws.receive_json()

    assert [e["event"] for e in events] == ["new-complaint", "complaint-assigned", "new-assignment"]
    assert events[1]["data"]["complaint"]["assigned_to"] == "agent-a"
    assert status["data"]["status"] == "assigned"


def test_admins_see_agents_come_online(socket_client):
    with socket_client.websocket_connect(REQUESTS + _query("admin-1", "admin")) as admin_ws:
        with socket_client.websocket_connect(REQUESTS + _query("agent-a", "service")):
            online = admin_ws.receive_json()

    assert online["event"] == "service-status-change"
    assert online["data"] == {"service_id": "agent-a", "is_online": True}


def test_chat_between_customer_and_agent(socket_client):
    socket_client.put("/api/v1/support/status", json={"is_online": True}, headers=headers(agent()))
    complaint = socket_client.post(
        "/api/v1/support/complaints",
        json=_complaint(),
        headers={"x-user-id": "user-1", "x-user-role": "customer"},
    ).json()["complaint"]

    with socket_client.websocket_connect(CHAT + _query("user-1", "customer")) as customer_ws:
        customer_ws.send_json({"event": "join-chat", "data": {"complaint_id": complaint["id"]}})
        history = customer_ws.receive_json()

        with socket_client.websocket_connect(CHAT + _query("agent-a", "service")) as agent_ws:
            agent_ws.send_json({"event": "join-chat", "data": complaint["id"]})
            agent_ws.receive_json()
            joined = customer_ws.receive_json()

            customer_ws.send_json(
                {
                    "event": "send-message",
                    "data": {"complaint_id": complaint["id"], "content": "Can I swap it?"},
                    "ack": 7,
                }
            )
            status = customer_ws.receive_json()
            own_copy = customer_ws.receive_json()
            ack = customer_ws.receive_json()
            delivered = agent_ws.receive_json()

    assert history["event"] == "chat-history"
    assert history["data"] == {"complaint_id": complaint["id"], "messages": []}
    assert joined["event"] == "user-joined"
    assert joined["data"]["user_id"] == "agent-a"
    assert status["data"]["status"] == "in-progress"
    assert own_copy["event"] == "new-message"
    assert ack["data"]["ok"] is True
    assert delivered["event"] == "new-message"
    assert delivered["data"]["content"] == "Can I swap it?"
    assert delivered["data"]["sender"] == "customer"


def test_only_agents_resolve_over_chat(socket_client):
    with socket_client.websocket_connect(CHAT + _query("user-1", "customer")) as ws:
        ws.send_json({"event": "resolve-complaint", "data": {"complaint_id": 1}})
        error = ws.receive_json()

    assert error["data"]["error_code"] == "SERVICE_ACCESS_REQUIRED"


def test_binary_frame_keeps_connection_open(socket_client):
    with socket_client.websocket_connect(REQUESTS + _query("user-1", "customer")) as ws:
        ws.send_bytes(b"\x00\x01\x02")
        invalid = ws.receive_json()

        ws.send_json({"event": "submit-complaint", "data": _complaint(), "ack": 2})
        status = ws.receive_json()
        ack = ws.receive_json()

    assert invalid == {"event": "error", "data": {"message": "Invalid frame", "error_code": "INVALID_FRAME"}}
    assert status["event"] == "complaint-status"
    assert ack["data"]["ok"] is True


def test_blank_chat_message_is_rejected(socket_client):
    with socket_client.websocket_connect(CHAT + _query("user-1", "customer")) as ws:
        ws.send_json({"event": "send-message", "data": {"complaint_id": 1, "content": "  "}, "ack": 3})
        error = ws.receive_json()
        ack = ws.receive_json()

    assert error["data"]["error_code"] == "INVALID_PAYLOAD"
    assert ack["data"]["ok"] is False
