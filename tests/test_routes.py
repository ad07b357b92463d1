import pytest

from app import create_app
from models import db

SLOTS = {
    "slots": [
        {"date": "2025-03-10", "startTime": "08:00", "endTime": "08:40"},
        {"date": "2025-03-10", "startTime": "09:00", "endTime": "09:40"},
    ]
}


def _create_slots(client, payload=SLOTS):
    resp = client.post("/timeslots", json=payload)
    assert resp.status_code == 201
    return resp.get_json()["slots"]


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["Cache-Control"] == "no-store"


def test_create_and_list_timeslots(client):
    created = _create_slots(client)
    assert [s["startTime"] for s in created] == ["08:00", "09:00"]

    resp = client.get("/timeslots?date=2025-03-10")
    assert resp.status_code == 200
    slots = resp.get_json()["slots"]
    assert [(s["startTime"], s["endTime"], s["isBooked"]) for s in slots] == [
        ("08:00", "08:40", False),
        ("09:00", "09:40", False),
    ]


def test_create_timeslots_message(client):
    resp = client.post("/timeslots", json=SLOTS)
    assert resp.get_json()["message"] == "Created 2 time slot(s)"


def test_create_timeslots_all_duplicates(client):
    _create_slots(client)
    resp = client.post("/timeslots", json=SLOTS)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "All slots already exist"


@pytest.mark.parametrize("payload", [
    {},
    {"slots": []},
    {"slots": [{"date": "2025-03-10", "startTime": "08:00"}]},
])
def test_create_timeslots_bad_payload(client, payload):
    resp = client.post("/timeslots", json=payload)
    assert resp.status_code == 400
    assert "error" in resp.get_json()


def test_list_timeslots_bad_date(client):
    resp = client.get("/timeslots?date=2025/03/10")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Invalid date format. Use YYYY-MM-DD"


def test_preview_marks_existing_windows(client):
    _create_slots(client)
    resp = client.get("/timeslots/generate?date=2025-03-10&startHour=8&endHour=11")
    assert resp.status_code == 200
    preview = resp.get_json()["slots"]
    assert [(p["startTime"], p["exists"]) for p in preview] == [
        ("08:00", True),
        ("09:00", True),
        ("10:00", False),
    ]


def test_preview_rejects_bad_hours(client):
    assert client.get("/timeslots/generate?date=2025-03-10&startHour=x").status_code == 400
    assert client.get("/timeslots/generate?date=2025-03-10&startHour=12&endHour=9").status_code == 400
    assert client.get("/timeslots/generate").status_code == 400


def test_delete_timeslot(client):
    slot_id = _create_slots(client)[0]["id"]

    resp = client.delete(f"/timeslots/{slot_id}")
    assert resp.status_code == 200
    assert resp.get_json()["message"] == "Time slot deleted successfully"

    assert client.delete(f"/timeslots/{slot_id}").status_code == 404


def test_delete_duplicates_endpoint(client, duplicate_slots):
    ids = duplicate_slots(2)
    resp = client.delete("/timeslots/duplicates/2025-03-10/08:00/08:40")
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["deleted"] == 1
    assert body["keptSlotId"] == ids[0]
    assert body["deletedIds"] == [ids[1]]

    again = client.delete("/timeslots/duplicates/2025-03-10/08:00/08:40").get_json()
    assert again["message"] == "No duplicates found"
    assert again["deleted"] == 0


def test_booking_flow(client):
    slot_id = _create_slots(client)[0]["id"]

    resp = client.post("/bookings", json={"timeSlotId": slot_id, "userRef": "user_abc"})
    assert resp.status_code == 201
    booking = resp.get_json()["booking"]
    assert booking["status"] == "booked"
    assert booking["user"]["externalId"] == "user_abc"
    assert booking["bookingDate"] == "2025-03-10"

    again = client.post("/bookings", json={"timeSlotId": slot_id, "userRef": "user_xyz"})
    assert again.status_code == 409

    listed = client.get(f"/bookings?timeSlotId={slot_id}").get_json()["bookings"]
    assert [b["id"] for b in listed] == [booking["id"]]

    resp = client.patch(f"/bookings/{booking['id']}", json={"status": "canceled"})
    assert resp.status_code == 200
    assert resp.get_json()["booking"]["status"] == "cancelled"

    slots = client.get("/timeslots?date=2025-03-10").get_json()["slots"]
    assert slots[0]["isBooked"] is False


def test_booking_accepts_clerk_id_alias(client):
    slot_id = _create_slots(client)[0]["id"]
    resp = client.post("/bookings", json={"timeSlotId": slot_id, "clerkId": "user_clerk"})
    assert resp.status_code == 201
    assert resp.get_json()["booking"]["user"]["externalId"] == "user_clerk"


@pytest.mark.parametrize("payload,status", [
    ({"userRef": "u"}, 400),
    ({"timeSlotId": 1}, 400),
    ({"timeSlotId": "abc", "userRef": "u"}, 400),
    ({"timeSlotId": 999, "userRef": "u"}, 404),
])
def test_create_booking_errors(client, payload, status):
    assert client.post("/bookings", json=payload).status_code == status


def test_update_booking_errors(client):
    slot_id = _create_slots(client)[0]["id"]
    booking_id = client.post("/bookings", json={"timeSlotId": slot_id, "userRef": "u"}).get_json()["booking"]["id"]

    resp = client.patch(f"/bookings/{booking_id}", json={"status": "archived"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Status must be one of: pending, confirmed, canceled"

    assert client.patch("/bookings/9999", json={"status": "confirmed"}).status_code == 404


def test_list_bookings_by_user(client):
    ids = [s["id"] for s in _create_slots(client)]
    client.post("/bookings", json={"timeSlotId": ids[0], "userRef": "u1"})
    client.post("/bookings", json={"timeSlotId": ids[1], "userRef": "u2"})

    mine = client.get("/bookings?userRef=u2").get_json()["bookings"]
    assert [b["startTime"] for b in mine] == ["09:00"]

    user_id = mine[0]["user"]["id"]
    assert len(client.get(f"/bookings?userId={user_id}").get_json()["bookings"]) == 1
    assert len(client.get("/bookings?date=2025-03-10").get_json()["bookings"]) == 2


def test_user_upsert(client):
    resp = client.post("/users", json={"externalId": "user_1", "firstName": "Bold"})
    assert resp.status_code == 201
    assert resp.get_json()["user"]["firstName"] == "Bold"

    resp = client.post("/users", json={"externalId": "user_1", "lastName": "Bat"})
    assert resp.status_code == 200
    user = resp.get_json()["user"]
    assert (user["firstName"], user["lastName"]) == ("Bold", "Bat")

    found = client.get("/users?externalId=user_1").get_json()["users"]
    assert len(found) == 1

    assert client.post("/users", json={"firstName": "x"}).status_code == 400


def test_audit_trail(client):
    slot_id = _create_slots(client)[0]["id"]
    client.post("/bookings", json={"timeSlotId": slot_id, "userRef": "u1"})
    client.post("/bookings", json={"timeSlotId": slot_id, "userRef": "u2"})

    logs = client.get("/audit-logs?action=BOOKING_CREATE").get_json()["logs"]
    assert len(logs) == 1
    assert logs[0]["entity"] == "booking"

    failed = client.get("/audit-logs?action=BOOKING_FAIL_ALREADY_BOOKED").get_json()["logs"]
    assert len(failed) == 1


def test_unknown_route_is_json(client):
    resp = client.get("/nope")
    assert resp.status_code == 404
    assert "error" in resp.get_json()


@pytest.fixture
def guarded_client():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "ADMIN_API_TOKEN": "s3cret",
    })
    with app.app_context():
        db.create_all()
        yield app.test_client()
        db.session.remove()
        db.drop_all()


def test_admin_token_required(guarded_client):
    assert guarded_client.post("/timeslots", json=SLOTS).status_code == 401
    assert guarded_client.post("/timeslots", json=SLOTS, headers={"X-Admin-Token": "nope"}).status_code == 403
    assert guarded_client.post("/timeslots", json=SLOTS, headers={"X-Admin-Token": "s3cret"}).status_code == 201

    # reads and bookings stay public
    assert guarded_client.get("/timeslots").status_code == 200
    assert guarded_client.get("/audit-logs").status_code == 401


def test_patch_unknown_booking_is_404(client):
    resp = client.patch("/bookings/424242", json={"status": "canceled"})
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Booking not found"


def test_recancel_over_http_keeps_new_booking(client):
    slot_id = _create_slots(client)[0]["id"]
    first = client.post("/bookings", json={"timeSlotId": slot_id, "userRef": "u1"}).get_json()["booking"]
    client.patch(f"/bookings/{first['id']}", json={"status": "canceled"})
    assert client.post("/bookings", json={"timeSlotId": slot_id, "userRef": "u2"}).status_code == 201

    resp = client.patch(f"/bookings/{first['id']}", json={"status": "canceled"})
    assert resp.status_code == 200

    slot = client.get("/timeslots?date=2025-03-10").get_json()["slots"][0]
    assert slot["isBooked"] is True
    assert client.post("/bookings", json={"timeSlotId": slot_id, "userRef": "u3"}).status_code == 409
    active = client.get(f"/bookings?timeSlotId={slot_id}").get_json()["bookings"]
    assert [b["user"]["externalId"] for b in active] == ["u2"]


def test_duplicate_slot_cannot_be_double_booked_over_http(client, duplicate_slots):
    first_id, second_id = duplicate_slots(2)
    assert client.post("/bookings", json={"timeSlotId": first_id, "userRef": "u1"}).status_code == 201

    resp = client.post("/bookings", json={"timeSlotId": second_id, "userRef": "u2"})
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "This time slot is already booked"


def test_user_payment_flag(client):
    user = client.post("/users", json={"externalId": "student_1"}).get_json()["user"]
    assert user["isPaid"] is False

    resp = client.patch(f"/users/{user['id']}", json={"isPaid": True})
    assert resp.status_code == 200
    assert resp.get_json()["user"]["isPaid"] is True

    found = client.get("/users?externalId=student_1").get_json()["users"]
    assert found[0]["isPaid"] is True

    logs = client.get("/audit-logs?action=USER_UPDATE").get_json()["logs"]
    assert len(logs) == 1


@pytest.mark.parametrize("payload", [{}, {"isPaid": "yes"}, {"isPaid": 1}, {"isPaid": None}])
def test_user_payment_flag_must_be_boolean(client, payload):
    user = client.post("/users", json={"externalId": "student_1"}).get_json()["user"]
    assert client.patch(f"/users/{user['id']}", json=payload).status_code == 400


def test_user_payment_flag_unknown_user(client):
    resp = client.patch("/users/777", json={"isPaid": True})
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "User not found"


def test_status_changes_need_admin_but_cancel_does_not(guarded_client):
    admin = {"X-Admin-Token": "s3cret"}
    slot_id = guarded_client.post("/timeslots", json=SLOTS, headers=admin).get_json()["slots"][0]["id"]
    booking_id = guarded_client.post(
        "/bookings", json={"timeSlotId": slot_id, "userRef": "u1"}
    ).get_json()["booking"]["id"]

    assert guarded_client.patch(f"/bookings/{booking_id}", json={"status": "confirmed"}).status_code == 401
    assert guarded_client.patch(
        f"/bookings/{booking_id}", json={"status": "confirmed"}, headers=admin
    ).status_code == 200
    assert guarded_client.patch(f"/bookings/{booking_id}", json={"status": "canceled"}).status_code == 200

    assert guarded_client.patch("/users/1", json={"isPaid": True}).status_code == 401
