import os
import sys
from uuid import uuid4

from fastapi.testclient import TestClient

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from app.main import app
from app.services.identity import ADMIN_EMAIL, ADMIN_PASSWORD
from app.services.record_store import SESSION, record_store

client = TestClient(app)


def _register(role: str, name: str = "") -> dict:
    email = f"{role}_{uuid4().hex[:8]}@example.com"
    response = client.post(
        "/auth/register",
        json={"name": name or f"{role.title()} {uuid4().hex[:4]}", "email": email, "password": "pw", "role": role},
    )
    assert response.status_code == 200
    payload = response.json()
    payload["user"]["password"] = "pw"
    return payload["user"]


def _login(user: dict) -> None:
    response = client.post(
        "/auth/login",
        json={"email": user["email"], "password": user["password"], "role": user["role"]},
    )
    assert response.status_code == 200


def _login_admin() -> None:
    response = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD, "role": "admin"})
    assert response.status_code == 200
    assert response.json()["redirect_to"] == "admin.html"


def test_health_ok():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_no_static_web_route():
    response = client.get("/web", follow_redirects=False)
    assert response.status_code == 404


def test_ready_reports_mirror_disabled():
    response = client.get("/ready")
    assert response.status_code == 200
    assert response.json()["profile_mirror_configured"] is False


def test_register_returns_destination_and_hides_password():
    response = client.post(
        "/auth/register",
        json={"name": "Reg Owner", "email": f"REG_{uuid4().hex[:6]}@Example.com", "password": "pw", "role": "owner"},
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["redirect_to"] == "owner.html"
    assert payload["user"]["email"].startswith("reg_")
    assert "password" not in payload["user"]

    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.json()["id"] == payload["user"]["id"]


def test_register_admin_role_rejected():
    response = client.post(
        "/auth/register",
        json={"name": "Sneaky", "email": "sneaky@example.com", "password": "pw", "role": "admin"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "You cannot register as an admin"


def test_login_failure_is_generic():
    user = _register("owner")
    response = client.post("/auth/login", json={"email": user["email"], "password": "nope", "role": "owner"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email, password or role"

    response = client.post("/auth/login", json={"email": user["email"], "password": "pw", "role": "walker"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email, password or role"


def test_logged_out_dashboard_redirects_to_login():
    client.post("/auth/logout")
    response = client.get("/owner/dashboard")
    assert response.status_code == 401
    assert response.headers["X-Redirect-To"] == "index.html"


def test_unreadable_session_redirects_and_is_cleared():
    record_store.put(SESSION, {"id": "ghost"})
    response = client.get("/walker/dashboard")
    assert response.status_code == 401
    assert response.headers["X-Redirect-To"] == "index.html"
    assert "log in again" in response.json()["detail"]
    assert record_store.get(SESSION) is None


def test_wrong_role_gets_forbidden_and_keeps_session():
    owner = _register("owner")
    response = client.get("/admin/dashboard")
    assert response.status_code == 403
    assert response.headers["X-Redirect-To"] == "index.html"

    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.json()["id"] == owner["id"]


def test_owner_profile_pets_and_booking_validation():
    _register("owner")
    profile = client.post("/owner/profile", json={"name": "Polly Owner", "phone": "0400 111 222"})
    assert profile.status_code == 200
    assert profile.json()["phone"] == "0400 111 222"

    missing_phone = client.post("/owner/profile", json={"name": "Polly Owner", "phone": ""})
    assert missing_phone.status_code == 400

    pet = client.post("/owner/pets", json={"name": "Biscuit", "type": "Corgi", "notes": "Shy"})
    assert pet.status_code == 200

    dashboard = client.get("/owner/dashboard")
    assert dashboard.status_code == 200
    assert [p["name"] for p in dashboard.json()["pets"]] == ["Biscuit"]
    assert dashboard.json()["user"]["name"] == "Polly Owner"

    bad_booking = client.post("/owner/bookings", json={"service": "Dog Walk", "date": "", "time": "09:00"})
    assert bad_booking.status_code == 400


def test_booking_lifecycle_across_dashboards():
    owner = _register("owner", name="Lifecycle Owner")
    booking = client.post("/owner/bookings", json={"service": "", "date": "2030-05-01", "time": "09:00"})
    assert booking.status_code == 200
    booking_id = booking.json()["id"]
    assert booking.json()["service"] == "Dog Walk"
    assert booking.json()["status"] == "Pending"

    other_owner = _register("owner")
    assert all(b["id"] != booking_id for b in client.get("/owner/bookings").json())

    _login_admin()
    admin_bookings = client.get("/admin/bookings").json()
    assert any(b["id"] == booking_id for b in admin_bookings)

    first_walker = _register("walker", name="First Walker")
    pending_for_first = client.get("/walker/bookings").json()["pending"]
    assert any(b["id"] == booking_id for b in pending_for_first)

    second_walker = _register("walker", name="Second Walker")
    pending_for_second = client.get("/walker/bookings").json()["pending"]
    assert pending_for_first == pending_for_second

    _login(first_walker)
    accepted = client.post(f"/walker/bookings/{booking_id}/accept")
    assert accepted.status_code == 200
    assert accepted.json()["walker_id"] == first_walker["id"]
    assert accepted.json()["walker_name"] == "First Walker"

    _login(second_walker)
    lost_race = client.post(f"/walker/bookings/{booking_id}/accept")
    assert lost_race.status_code == 409
    assert all(b["id"] != booking_id for b in client.get("/walker/bookings").json()["pending"])

    _login(first_walker)
    mine = client.get("/walker/dashboard").json()["mine"]
    assert [b["id"] for b in mine if b["id"] == booking_id] == [booking_id]

    _login(owner)
    owner_bookings = client.get("/owner/bookings").json()
    assert owner_bookings[0]["status"] == "Accepted"

    _login(other_owner)
    assert client.get("/owner/bookings").json() == []


def test_missing_booking_transition_is_noop():
    _register("walker")
    response = client.post("/walker/bookings/does-not-exist/accept")
    assert response.status_code == 200
    assert response.json() is None


def test_walker_report_flow():
    owner = _register("owner")
    early = client.post("/owner/bookings", json={"date": "2024-01-01", "time": "09:00"}).json()
    late = client.post("/owner/bookings", json={"date": "2024-01-02", "time": "10:00"}).json()

    walker = _register("walker")
    no_booking = client.post("/walker/reports", json={"text": "Too early"})
    assert no_booking.status_code == 409

    empty = client.post("/walker/reports", json={"text": "   "})
    assert empty.status_code == 400

    assert client.post(f"/walker/bookings/{late['id']}/accept").status_code == 200
    assert client.post(f"/walker/bookings/{early['id']}/accept").status_code == 200
    report = client.post("/walker/reports", json={"text": "Happy pup"})
    assert report.status_code == 200
    assert report.json()["booking_id"] == late["id"]
    assert report.json()["walker_id"] == walker["id"]

    _login(owner)
    reports = client.get("/owner/reports").json()
    assert [r["text"] for r in reports] == ["Happy pup"]
    latest = client.get("/owner/reports/latest")
    assert latest.status_code == 200
    assert latest.json()["text"] == "Happy pup"

    _register("owner")
    assert client.get("/owner/reports/latest").json() is None


def test_walker_filter_and_admin_filters():
    _register("walker")
    _register("owner")
    unfiltered = client.get("/owner/walkers").json()
    filtered = client.get("/owner/walkers", params={"max_distance_km": 3}).json()
    assert all(w["role"] == "walker" for w in unfiltered)
    assert all(w["distance_km"] is not None and w["distance_km"] <= 3 for w in filtered)
    assert len(filtered) <= len(unfiltered)

    _login_admin()
    walkers_only = client.get("/admin/users", params={"role": "walker"}).json()
    assert walkers_only
    assert {u["role"] for u in walkers_only} == {"walker"}

    invalid = client.get("/admin/users", params={"role": "superuser"})
    assert invalid.status_code == 422

    pending = client.get("/admin/dashboard", params={"status": "Pending"}).json()
    assert all(b["status"] == "Pending" for b in pending["bookings"])


def test_admin_deactivation_blocks_login_and_hides_walker():
    walker = _register("walker")
    _login_admin()
    response = client.post(f"/admin/users/{walker['id']}/active", json={"active": False})
    assert response.status_code == 200
    assert response.json()["active"] is False

    blocked = client.post("/auth/login", json={"email": walker["email"], "password": "pw", "role": "walker"})
    assert blocked.status_code == 401

    _register("owner")
    assert all(w["id"] != walker["id"] for w in client.get("/owner/walkers").json())

    _login_admin()
    missing = client.post("/admin/users/nobody/active", json={"active": False})
    assert missing.status_code == 404


def test_live_location_visible_to_owner():
    walker = _register("walker")
    started = client.post("/walker/live-location/start")
    assert started.status_code == 200
    assert started.json()["walker_id"] == walker["id"]

    _register("owner")
    location = client.get("/owner/live-location")
    assert location.status_code == 200
    assert location.json()["lat"] == started.json()["lat"]

    _login(walker)
    assert client.post("/walker/live-location/stop").status_code == 200
    assert client.get("/walker/dashboard").json()["live_location"] is None
