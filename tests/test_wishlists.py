from santa_portal.models import EventStatus, SantaEvent
from santa_portal.services.assignments import generate_assignments


def _add(client, event_id, headers, title, priority=None):
    data = {"item_title": title}
    if priority:
        data["priority"] = priority
    return client.post(f"/events/{event_id}/wishlist", json=data, headers=headers)


def test_wishlist_is_sorted_by_priority(client, employees, make_event, auth_headers):
    event = make_event(users=employees)
    headers = auth_headers(employees[0])

    assert _add(client, event.id, headers, "Socks", "low").status_code == 201
    assert _add(client, event.id, headers, "Book").status_code == 201
    assert _add(client, event.id, headers, "Headphones", "high").status_code == 201

    resp = client.get(f"/events/{event.id}/wishlist", headers=headers)
    items = resp.get_json()
    assert [i["item_title"] for i in items] == ["Headphones", "Book", "Socks"]
    assert items[1]["priority"] == "medium"


def test_wishlist_validation(client, employees, make_user, make_event, auth_headers):
    event = make_event(users=employees)
    headers = auth_headers(employees[0])

    assert _add(client, event.id, headers, "").status_code == 400
    assert _add(client, event.id, headers, "Mug", "urgent").status_code == 400
    assert _add(client, event.id, auth_headers(make_user("Eve")), "Mug").status_code == 403


def test_only_owner_can_delete(client, employees, make_event, auth_headers):
    event = make_event(users=employees)
    item_id = _add(client, event.id, auth_headers(employees[0]), "Mug").get_json()["id"]
    url = f"/events/{event.id}/wishlist/{item_id}"

    assert client.delete(url, headers=auth_headers(employees[1])).status_code == 403
    assert client.delete(url, headers=auth_headers(employees[0])).status_code == 204
    assert client.delete(url, headers=auth_headers(employees[0])).status_code == 404


def test_my_assignment_waits_for_reveal(client, session, admin, employees, make_event, auth_headers):
    event = make_event(users=employees)
    generate_assignments(event.id, admin)

    stored = session.get(SantaEvent, event.id)
    stored.reveal_enabled = False
    session.commit()

    resp = client.get(f"/events/{event.id}/my-assignment", headers=auth_headers(employees[0]))
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Assignments have not been revealed yet"


def test_my_assignment_shows_receiver_wishlist(client, session, admin, employees, make_event, auth_headers):
    event = make_event(users=employees)
    for user in employees:
        _add(client, event.id, auth_headers(user), f"Gift for {user.name}")
    generate_assignments(event.id, admin)

    resp = client.get(f"/events/{event.id}/my-assignment", headers=auth_headers(employees[0]))

    assert resp.status_code == 200
    body = resp.get_json()
    receiver = body["receiver"]
    assert receiver["id"] != employees[0].id
    assert [i["item_title"] for i in body["wishlist"]] == [f"Gift for {receiver['name']}"]


def test_non_participant_has_no_assignment(client, admin, employees, make_event, auth_headers):
    event = make_event(users=employees)
    generate_assignments(event.id, admin)

    resp = client.get(f"/events/{event.id}/my-assignment", headers=auth_headers(admin))
    assert resp.status_code == 404


def test_completed_event_wishlist_is_frozen(client, employees, make_event, auth_headers):
    event = make_event(status=EventStatus.COMPLETED, users=employees)
    assert _add(client, event.id, auth_headers(employees[0]), "Mug").status_code == 400


def test_wishlist_rejects_non_string_fields(client, employees, make_event, auth_headers):
    event = make_event(users=employees)
    headers = auth_headers(employees[0])
    url = f"/events/{event.id}/wishlist"

    resp = client.post(url, json={"item_title": 5}, headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "item_title must be a string"

    for field, value in (("item_description", ["x"]), ("item_url", 1), ("priority", ["high"])):
        resp = client.post(url, json={"item_title": "Mug", field: value}, headers=headers)
        assert resp.status_code == 400, field

    assert client.get(url, headers=headers).get_json() == []


def test_participant_who_left_cannot_add_items(client, employees, make_event, auth_headers):
    event = make_event(users=employees[1:], inactive=employees[:1])

    resp = _add(client, event.id, auth_headers(employees[0]), "Mug")

    assert resp.status_code == 403
    assert resp.get_json()["error"] == "Only participants can add wishlist items"
