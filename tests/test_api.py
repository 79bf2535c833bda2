# tests/test_api.py

from __future__ import annotations

from .factories import auth_header, kid_header


def _signup_and_login(client, email: str) -> dict[str, str]:
    res = client.post("/auth/signup", json={"email": email, "password": "secret123", "full_name": "Sam"})
    assert res.status_code == 201, res.text
    res = client.post("/auth/token", data={"username": email, "password": "secret123"})
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['access_token']}"}


def test_parent_and_kid_flow(client) -> None:
    parent = _signup_and_login(client, "parent@example.com")

    res = client.post("/families", json={"name": "Millers"}, headers=parent)
    assert res.status_code == 201, res.text
    family_id = res.json()["id"]

    res = client.post(f"/families/{family_id}/kids", json={"name": "Mia"}, headers=parent)
    assert res.status_code == 201, res.text
    kid_id = res.json()["id"]

    res = client.post(f"/kids/{kid_id}/tasks", json={"title": "Dishes", "point_value": 15}, headers=parent)
    assert res.status_code == 201, res.text
    task = res.json()
    assert task["state"] == "active"

    res = client.post(f"/kids/{kid_id}/access-link", json={}, headers=parent)
    assert res.status_code == 200, res.text
    link_token = res.json()["access_token"]

    res = client.post("/auth/kid", json={"access_token": link_token})
    assert res.status_code == 200, res.text
    kid = {"Authorization": f"Bearer {res.json()['access_token']}"}

    res = client.post(f"/tasks/{task['id']}/complete", json={"proof_ref": "uploads/dishes.jpg"}, headers=kid)
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["points_earned"] == 15
    assert body["new_balance"] == 15
    assert body["task"]["state"] == "completed"
    assert body["streak"]["current_streak"] == 1

    res = client.post(f"/tasks/{task['id']}/complete", json={"proof_ref": "again"}, headers=kid)
    assert res.status_code == 409
    assert res.json()["detail"] == "Task is already completed"

    res = client.get(f"/kids/{kid_id}", headers=kid)
    assert res.status_code == 200
    assert (res.json()["gems"], res.json()["stars"]) == (1, 5)

    res = client.get(f"/kids/{kid_id}/point-logs", headers=parent)
    assert [(log["old_points"], log["new_points"]) for log in res.json()] == [(0, 15)]


def test_kid_request_is_reviewed_by_a_parent(client, world) -> None:
    res = client.post(
        f"/kids/{world.kid.id}/tasks", json={"title": "Bake cookies", "point_value": 20}, headers=kid_header(world.kid.id)
    )
    assert res.status_code == 201, res.text
    task_id = res.json()["id"]
    assert res.json()["state"] == "requested_pending"

    res = client.get(f"/families/{world.family.id}/task-requests", headers=auth_header(world.users.viewer.id))
    assert [t["id"] for t in res.json()] == [task_id]

    res = client.post(f"/tasks/{task_id}/review", json={"decision": "approve"}, headers=auth_header(world.users.viewer.id))
    assert res.status_code == 403

    res = client.post(
        f"/tasks/{task_id}/review",
        json={"decision": "approve", "adjusted_points": 12},
        headers=auth_header(world.users.manager.id),
    )
    assert res.status_code == 200, res.text
    assert res.json()["state"] == "active"
    assert res.json()["point_value"] == 12


def test_error_statuses(client, world) -> None:
    owner = auth_header(world.users.owner.id)

    assert client.get(f"/kids/{world.kid.id}").status_code == 401
    assert client.get("/tasks/missing", headers=owner).status_code == 404
    assert client.get(f"/kids/{world.kid.id}", headers=auth_header(world.users.outsider.id)).status_code == 403

    res = client.post(f"/kids/{world.kid.id}/streak/claim", json={"milestone": "week"}, headers=owner)
    assert res.status_code == 400

    res = client.post(f"/kids/{world.kid.id}/points", json={"new_balance": 5, "reason": " "}, headers=owner)
    assert res.status_code == 400

    res = client.post(f"/kids/{world.kid.id}/points", json={"new_balance": 5, "reason": "gift"}, headers=owner)
    assert res.status_code == 200, res.text
    assert res.json()["kid"]["total_points"] == 5
    assert res.json()["log_entry"]["reason"] == "gift"


def test_kid_session_cannot_use_parent_endpoints(client, world) -> None:
    res = client.get("/users/me", headers=kid_header(world.kid.id))
    assert res.status_code == 403


def test_me_lists_families(client, world) -> None:
    res = client.get("/users/me", headers=auth_header(world.users.owner.id))
    assert res.status_code == 200, res.text
    assert [f["id"] for f in res.json()["families"]] == [world.family.id]


def _link_session(client, kid_id: str, parent: dict[str, str]) -> dict[str, str]:
    res = client.post(f"/kids/{kid_id}/access-link", json={}, headers=parent)
    assert res.status_code == 200, res.text
    res = client.post("/auth/kid", json={"access_token": res.json()["access_token"]})
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['access_token']}"}


def test_disabling_the_access_link_ends_open_kid_sessions(client, world) -> None:
    owner = auth_header(world.users.owner.id)
    res = client.post(f"/kids/{world.kid.id}/tasks", json={"title": "Tidy room", "point_value": 5}, headers=owner)
    task_id = res.json()["id"]

    kid = _link_session(client, world.kid.id, owner)
    assert client.get(f"/kids/{world.kid.id}", headers=kid).status_code == 200

    res = client.patch(f"/kids/{world.kid.id}/access-link", json={"enabled": False}, headers=owner)
    assert res.status_code == 200, res.text

    res = client.post(f"/tasks/{task_id}/complete", json={"proof_ref": "room.jpg"}, headers=kid)
    assert res.status_code == 401
    res = client.get(f"/kids/{world.kid.id}", headers=owner)
    assert res.json()["total_points"] == 0


def test_regenerated_link_or_new_pin_ends_older_kid_sessions(client, world) -> None:
    owner = auth_header(world.users.owner.id)

    old = _link_session(client, world.kid.id, owner)
    new = _link_session(client, world.kid.id, owner)
    assert client.get(f"/kids/{world.kid.id}", headers=old).status_code == 401
    assert client.get(f"/kids/{world.kid.id}", headers=new).status_code == 200

    res = client.put(f"/kids/{world.kid.id}/pin", json={"pin": "1234"}, headers=owner)
    assert res.status_code == 200, res.text
    assert client.get(f"/kids/{world.kid.id}", headers=new).status_code == 401

    res = client.post("/auth/kid", json={"kid_id": world.kid.id, "pin": "1234"})
    assert res.status_code == 200, res.text
    pin_session = {"Authorization": f"Bearer {res.json()['access_token']}"}
    assert client.get(f"/kids/{world.kid.id}", headers=pin_session).status_code == 200
