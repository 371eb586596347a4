from conftest import admin, agent, customer, headers

BASE = "/api/v1/support"


def _complaint(order_id="order-1", live_chat=True):
    return {
        "order_id": order_id,
        "subject": "Damaged box",
        "description": "Box arrived crushed",
        "requires_live_chat": live_chat,
    }


def test_requires_caller_identity(client):
    response = client.get(f"{BASE}/my-complaints")

    assert response.status_code == 401


def test_unknown_role_is_rejected(client):
    response = client.get(f"{BASE}/my-complaints", headers={"x-user-id": "u", "x-user-role": "root"})

    assert response.status_code == 401


def test_missing_fields_are_rejected(client):
    response = client.post(f"{BASE}/complaints", json={"order_id": "order-1"}, headers=headers(customer()))

    assert response.status_code == 422


def test_submit_and_list(client):
    response = client.post(f"{BASE}/complaints", json=_complaint(), headers=headers(customer()))

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Complaint submitted successfully"
    assert body["complaint"]["status"] == "pending"
    assert body["complaint"]["user_id"] == "user-1"

    listed = client.get(f"{BASE}/my-complaints", headers=headers(customer())).json()
    assert [c["id"] for c in listed] == [body["complaint"]["id"]]


def test_error_body_shape(client):
    response = client.post(f"{BASE}/complaints", json=_complaint("order-other"), headers=headers(customer()))

    assert response.status_code == 404
    body = response.json()
    assert body["error_code"] == "ORDER_NOT_FOUND"
    assert body["message"] == "Order not found"
    assert body["path"] == f"{BASE}/complaints"
    assert "timestamp" in body


def test_agents_cannot_submit(client):
    response = client.post(f"{BASE}/complaints", json=_complaint(), headers=headers(agent()))

    assert response.status_code == 403
    assert response.json()["error_code"] == "ROLE_NOT_ALLOWED"


def test_live_chat_flow(client):
    status = client.put(f"{BASE}/status", json={"is_online": True}, headers=headers(agent()))
    assert status.status_code == 200
    assert status.json()["is_online"] is True

    complaint = client.post(f"{BASE}/complaints", json=_complaint(), headers=headers(customer())).json()["complaint"]
    assert complaint["assigned_to"] == "agent-a"

    sent = client.post(
        f"{BASE}/chat/{complaint['id']}/messages",
        json={"content": "The box is crushed"},
        headers=headers(customer()),
    )
    assert sent.status_code == 201
    assert sent.json()["sender"] == "customer"

    history = client.get(f"{BASE}/chat/{complaint['id']}", headers=headers(agent())).json()
    assert [m["content"] for m in history] == ["The box is crushed"]

    assigned = client.get(f"{BASE}/assigned", headers=headers(agent())).json()
    assert assigned[0]["status"] == "in-progress"

    resolved = client.put(f"{BASE}/resolve/{complaint['id']}", headers=headers(agent()))
    assert resolved.status_code == 200
    assert resolved.json()["complaint"]["status"] == "resolved"
    assert client.get(f"{BASE}/assigned", headers=headers(agent())).json() == []

    again = client.put(f"{BASE}/resolve/{complaint['id']}", headers=headers(agent()))
    assert again.status_code == 409

    stats = client.get(f"{BASE}/performance", params={"period": "today"}, headers=headers(agent())).json()
    assert stats == {"service_id": "agent-a", "period": "today", "responses": 1}


def test_stranger_cannot_read_chat(client):
    complaint = client.post(f"{BASE}/complaints", json=_complaint(), headers=headers(customer())).json()["complaint"]

    response = client.get(f"{BASE}/chat/{complaint['id']}", headers=headers(customer("user-2")))

    assert response.status_code == 403


def test_admin_assign_and_close(client):
    complaint = client.post(
        f"{BASE}/complaints", json=_complaint(live_chat=False), headers=headers(customer())
    ).json()["complaint"]
    client.put(f"{BASE}/status", json={"is_online": True}, headers=headers(agent()))

    forbidden = client.post(f"{BASE}/complaints/{complaint['id']}/assign", headers=headers(customer()))
    assigned = client.post(f"{BASE}/complaints/{complaint['id']}/assign", headers=headers(admin()))
    closed = client.put(f"{BASE}/close/{complaint['id']}", headers=headers(admin()))

    assert forbidden.status_code == 403
    assert assigned.json()["assigned_to"] == "agent-a"
    assert closed.json()["complaint"]["status"] == "closed"
    assert closed.json()["complaint"]["assigned_to"] is None


def test_invalid_period(client):
    response = client.get(f"{BASE}/performance", params={"period": "yearly"}, headers=headers(agent()))

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_PERIOD"


def test_blank_message_is_rejected(client):
    client.put(f"{BASE}/status", json={"is_online": True}, headers=headers(agent()))
    complaint = client.post(f"{BASE}/complaints", json=_complaint(), headers=headers(customer())).json()["complaint"]

    response = client.post(
        f"{BASE}/chat/{complaint['id']}/messages",
        json={"content": "   "},
        headers=headers(customer()),
    )

    assert response.status_code == 422
    assert client.get(f"{BASE}/chat/{complaint['id']}", headers=headers(customer())).json() == []


def test_assigning_a_bound_complaint_is_not_found(client):
    client.put(f"{BASE}/status", json={"is_online": True}, headers=headers(agent()))
    complaint = client.post(f"{BASE}/complaints", json=_complaint(), headers=headers(customer())).json()["complaint"]

    response = client.post(f"{BASE}/complaints/{complaint['id']}/assign", headers=headers(admin()))

    assert response.status_code == 404
    assert response.json()["error_code"] == "COMPLAINT_NOT_PENDING"
