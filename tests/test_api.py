"""
HTTP-level tests for the auth, services, bookings, loyalty and payment routes.
"""

import hashlib
import hmac
import json
import time

from app.core.config import settings
from app.models.booking import Booking, BookingStatus, PaymentStatus
from conftest import PASSWORD, TODAY, TOMORROW, auth_headers

SERVICE_PAYLOAD = {
    "name": {"nl": "Binnenreiniging", "fr": "Nettoyage intérieur", "en": "Interior cleaning"},
    "description": {"nl": "Stofzuigen", "fr": "Aspiration", "en": "Vacuuming"},
    "category": "premium",
    "price": 35.0,
    "duration": 45,
    "loyalty_points_earned": 15,
    "vehicle_types": ["car", "suv"],
}


def booking_payload(service_id, start="10:00", end="11:00", scheduled_date=TOMORROW, quantity=1):
    return {
        "services": [{"service_id": service_id, "quantity": quantity}],
        "scheduled_date": scheduled_date.isoformat(),
        "time_slot": {"start": start, "end": end},
        "vehicle": {"type": "car", "make": "Audi", "license_plate": "2xyz987"},
        "location": {"type": "onsite", "address": {"postal_code": "1000", "city": "Brussel"}},
    }


# Auth

def test_register_login_and_me(client):
    response = client.post("/api/auth/register", json={
        "email": "Jan@Example.com", "password": PASSWORD, "first_name": "Jan", "last_name": "Peeters",
        "phone": "+32470123456",
    })
    assert response.status_code == 201
    body = response.json()
    assert body["user"]["email"] == "jan@example.com"
    assert body["user"]["loyalty_points"] == 0
    assert "password" not in body["user"]

    duplicate = client.post("/api/auth/register", json={
        "email": "jan@example.com", "password": PASSWORD, "first_name": "Jan", "last_name": "Peeters",
    })
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "CONFLICT"

    login = client.post("/api/auth/login", json={"email": "jan@example.com", "password": PASSWORD, "fcm_token": "abc"})
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["first_name"] == "Jan"


def test_bad_credentials_and_missing_token(client, customer):
    response = client.post("/api/auth/login", json={"email": customer.email, "password": "wrong-password"})
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "UNAUTHORIZED", "detail": "Invalid email or password"}

    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer nonsense"}).status_code == 401


def test_invalid_phone_is_rejected(client):
    response = client.post("/api/auth/register", json={
        "email": "a@example.com", "password": PASSWORD, "first_name": "A", "last_name": "B", "phone": "12345",
    })
    assert response.status_code == 400


def test_profile_update_and_password_change(client, customer):
    headers = auth_headers(customer)

    response = client.put("/api/auth/profile", json={"preferred_language": "fr"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["preferred_language"] == "fr"

    wrong = client.post("/api/auth/change-password", json={"current_password": "nope", "new_password": "another123"},
                        headers=headers)
    assert wrong.status_code == 400

    ok = client.post("/api/auth/change-password", json={"current_password": PASSWORD, "new_password": "another123"},
                     headers=headers)
    assert ok.status_code == 200
    assert client.post("/api/auth/login", json={"email": customer.email, "password": "another123"}).status_code == 200


def test_profile_update_rejects_null_names(client, db, customer):
    headers = auth_headers(customer)

    for payload in ({"first_name": None}, {"last_name": None}, {"preferred_language": None}, {"first_name": "  "}):
        response = client.put("/api/auth/profile", json=payload, headers=headers)
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    db.refresh(customer)
    assert customer.first_name == "Test"

    cleared = client.put("/api/auth/profile", json={"phone": None}, headers=headers)
    assert cleared.status_code == 200


def test_profile_address_is_merged_and_validated(client, db, customer):
    headers = auth_headers(customer)

    first = client.put("/api/auth/profile", json={
        "date_of_birth": "1990-04-12",
        "address": {"street": "Wetstraat 16", "city": "Brussel", "postal_code": "1000"},
    }, headers=headers)
    assert first.status_code == 200
    assert first.json()["date_of_birth"] == "1990-04-12"
    assert first.json()["address"] == {
        "country": "Belgium", "street": "Wetstraat 16", "city": "Brussel", "postal_code": "1000",
    }

    second = client.put("/api/auth/profile", json={"address": {"city": "Gent", "postal_code": "9000"}}, headers=headers)
    assert second.json()["address"] == {
        "country": "Belgium", "street": "Wetstraat 16", "city": "Gent", "postal_code": "9000",
    }

    bad_postal = client.put("/api/auth/profile", json={"address": {"postal_code": "90000"}}, headers=headers)
    assert bad_postal.status_code == 400
    assert "postal code" in bad_postal.json()["detail"]

    future_birth = client.put("/api/auth/profile", json={"date_of_birth": "2999-01-01"}, headers=headers)
    assert future_birth.status_code == 400

    db.refresh(customer)
    assert customer.address["city"] == "Gent"


def test_logout_removes_push_token(client, db, customer):
    response = client.post("/api/auth/logout", json={"fcm_token": "device-token"}, headers=auth_headers(customer))

    assert response.status_code == 200
    db.refresh(customer)
    assert customer.active_push_tokens == []


# Services

def test_admin_manages_catalog(client, admin, customer):
    forbidden = client.post("/api/services/", json=SERVICE_PAYLOAD, headers=auth_headers(customer))
    assert forbidden.status_code == 403

    created = client.post("/api/services/", json=SERVICE_PAYLOAD, headers=auth_headers(admin))
    assert created.status_code == 201
    service = created.json()
    assert service["current_price"] == 35.0
    assert service["availability"]["sunday"] is False

    updated = client.put(f"/api/services/{service['id']}", json={"price": 39.0}, headers=auth_headers(admin))
    assert updated.json()["price"] == 39.0

    deleted = client.delete(f"/api/services/{service['id']}", headers=auth_headers(admin))
    assert deleted.status_code == 200
    assert client.get(f"/api/services/{service['id']}").status_code == 404


def test_list_services_filters_and_localizes(client, make_service):
    make_service(name="Basis", sort_order=2)
    make_service(name="Motor", sort_order=1, vehicle_types=["motorcycle"])
    make_service(name="Inactive", is_active=False)

    names = [s["name"]["en"] for s in client.get("/api/services/").json()]
    assert names == ["Motor", "Basis"]

    cars = client.get("/api/services/", params={"vehicle_type": "car"}).json()
    assert [s["name"]["en"] for s in cars] == ["Basis"]

    localized = client.get("/api/services/", params={"lang": "fr"}).json()
    assert localized[0]["description"] == "Lavage"

    assert client.get("/api/services/", params={"day": "sunday"}).json() == []
    assert client.get("/api/services/", params={"day": "someday"}).status_code == 400


def test_invalid_service_payload(client, admin):
    payload = dict(SERVICE_PAYLOAD, duration=5)
    assert client.post("/api/services/", json=payload, headers=auth_headers(admin)).status_code == 400


def test_service_update_rejects_null_fields(client, admin, make_service):
    service = make_service(name="Basis")
    headers = auth_headers(admin)

    for field in ("name", "price", "category", "is_active"):
        response = client.put(f"/api/services/{service.id}", json={field: None}, headers=headers)
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    listed = client.get("/api/services/")
    assert listed.status_code == 200
    assert [s["name"]["en"] for s in listed.json()] == ["Basis"]


# Bookings

def test_create_and_fetch_booking(client, customer, make_user, make_service):
    service = make_service(price=25.0, duration=30, loyalty_points=10)

    response = client.post("/api/bookings/", json=booking_payload(service.id, quantity=2), headers=auth_headers(customer))
    assert response.status_code == 201
    booking = response.json()
    assert booking["total_amount"] == 50.0
    assert booking["estimated_duration"] == 60
    assert booking["loyalty_points_earned"] == 20
    assert booking["services"][0]["price"] == 25.0
    assert booking["time_slot"] == {"start": "10:00", "end": "11:00"}
    assert booking["status_color"] == "#F59E0B"
    assert booking["vehicle"]["license_plate"] == "2XYZ987"

    own = client.get(f"/api/bookings/{booking['id']}", headers=auth_headers(customer))
    assert own.status_code == 200

    other = client.get(f"/api/bookings/{booking['id']}", headers=auth_headers(make_user()))
    assert other.status_code == 404


def test_conflicting_booking_returns_409(client, customer, make_service):
    service = make_service()
    headers = auth_headers(customer)
    client.post("/api/bookings/", json=booking_payload(service.id), headers=headers)

    response = client.post("/api/bookings/", json=booking_payload(service.id, "10:30", "11:30"), headers=headers)

    assert response.status_code == 409
    assert response.json()["error"] == "SLOT_UNAVAILABLE"


def test_check_slot(client, customer, make_service):
    service = make_service()
    headers = auth_headers(customer)
    client.post("/api/bookings/", json=booking_payload(service.id), headers=headers)

    params = {"date": TOMORROW.isoformat(), "start": "11:00", "end": "12:00"}
    assert client.get("/api/bookings/check-slot", params=params, headers=headers).json()["available"] is True

    params["start"] = "10:45"
    assert client.get("/api/bookings/check-slot", params=params, headers=headers).json()["available"] is False

    params["start"] = "1045"
    assert client.get("/api/bookings/check-slot", params=params, headers=headers).status_code == 400


def test_malformed_booking_requests(client, customer, make_service):
    service = make_service()
    headers = auth_headers(customer)

    bad_time = booking_payload(service.id, start="9:00")
    response = client.post("/api/bookings/", json=bad_time, headers=headers)
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "VALIDATION_ERROR"
    assert "time_slot.start" in body["detail"]

    no_services = dict(booking_payload(service.id), services=[])
    assert client.post("/api/bookings/", json=no_services, headers=headers).status_code == 400

    bad_postal = booking_payload(service.id)
    bad_postal["location"]["address"]["postal_code"] = "10000"
    assert client.post("/api/bookings/", json=bad_postal, headers=headers).status_code == 400

    past = booking_payload(service.id, scheduled_date=TODAY.replace(year=2020))
    response = client.post("/api/bookings/", json=past, headers=headers)
    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


def test_list_bookings_pagination(client, customer, make_service):
    service = make_service()
    headers = auth_headers(customer)
    for start, end in (("08:00", "09:00"), ("09:00", "10:00"), ("10:00", "11:00")):
        client.post("/api/bookings/", json=booking_payload(service.id, start, end), headers=headers)

    body = client.get("/api/bookings/", params={"limit": 2}, headers=headers).json()

    assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
    assert len(body["bookings"]) == 2
    assert client.get("/api/bookings/", params={"limit": 51}, headers=headers).status_code == 400


def test_staff_lifecycle_cancel_and_rate(client, customer, staff, make_service):
    service = make_service(loyalty_points=10)
    booking_id = client.post("/api/bookings/", json=booking_payload(service.id), headers=auth_headers(customer)).json()["id"]

    forbidden = client.put(f"/api/bookings/admin/{booking_id}/status", json={"status": "confirmed"},
                           headers=auth_headers(customer))
    assert forbidden.status_code == 403

    for target in ("confirmed", "in_progress", "completed"):
        response = client.put(f"/api/bookings/admin/{booking_id}/status", json={"status": target},
                              headers=auth_headers(staff))
        assert response.status_code == 200
        assert response.json()["status"] == target

    loyalty = client.get("/api/loyalty/", headers=auth_headers(customer)).json()
    assert loyalty == {"loyalty_points": 10, "total_bookings": 1}

    cancel = client.post(f"/api/bookings/{booking_id}/cancel", json={"reason": "Too late"}, headers=auth_headers(customer))
    assert cancel.status_code == 409
    assert cancel.json()["error"] == "INVALID_STATE"

    rate = client.post(f"/api/bookings/{booking_id}/rate", json={"score": 5, "comment": "Spotless"},
                       headers=auth_headers(customer))
    assert rate.status_code == 200
    assert rate.json()["rating"]["score"] == 5

    again = client.post(f"/api/bookings/{booking_id}/rate", json={"score": 3}, headers=auth_headers(customer))
    assert again.status_code == 409


def test_customer_cancels_booking(client, customer, make_service):
    service = make_service()
    headers = auth_headers(customer)
    booking_id = client.post("/api/bookings/", json=booking_payload(service.id), headers=headers).json()["id"]

    missing_reason = client.post(f"/api/bookings/{booking_id}/cancel", json={}, headers=headers)
    assert missing_reason.status_code == 400

    response = client.post(f"/api/bookings/{booking_id}/cancel", json={"reason": "Weather"}, headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "cancelled"
    assert body["cancellation"]["reason"] == "Weather"
    assert body["cancellation"]["cancelled_by"] == "user"


def test_admin_listing_includes_schedule_flags(client, customer, staff, make_service):
    service = make_service()
    client.post("/api/bookings/", json=booking_payload(service.id, "10:30", "11:00", scheduled_date=TODAY),
                headers=auth_headers(customer))
    client.post("/api/bookings/", json=booking_payload(service.id), headers=auth_headers(customer))

    body = client.get("/api/bookings/admin/all", params={"date": TODAY.isoformat()}, headers=auth_headers(staff)).json()

    assert body["pagination"]["total"] == 1
    assert body["bookings"][0]["is_today"] is True
    assert body["bookings"][0]["is_past_due"] is False


# Payments

def stripe_event(event_type, booking_id, intent_id="pi_abc"):
    return {"type": event_type, "data": {"object": {"id": intent_id, "metadata": {"booking_id": str(booking_id)}}}}


def test_stripe_webhook_marks_booking_paid(client, db, booking_service, customer, make_service, booking_request):
    booking = booking_service.create_booking(customer, booking_request(make_service().id))

    response = client.post("/api/payments/webhook/stripe", json=stripe_event("payment_intent.succeeded", booking.id))

    assert response.status_code == 200
    assert response.json()["booking_id"] == booking.id
    stored = db.get(Booking, booking.id)
    db.refresh(stored)
    assert stored.payment_status == PaymentStatus.PAID
    assert stored.payment_intent_id == "pi_abc"
    assert stored.status == BookingStatus.PENDING


def test_stripe_webhook_failure_and_unknown_events(client, db, booking_service, customer, make_service, booking_request):
    booking = booking_service.create_booking(customer, booking_request(make_service().id))

    failed = client.post("/api/payments/webhook/stripe", json=stripe_event("payment_intent.payment_failed", booking.id))
    assert failed.status_code == 200
    db.refresh(booking)
    assert booking.payment_status == PaymentStatus.FAILED

    ignored = client.post("/api/payments/webhook/stripe", json={"type": "charge.refunded", "data": {}})
    assert ignored.status_code == 200
    assert ignored.json()["booking_id"] is None


def test_stripe_webhook_signature(client, monkeypatch, booking_service, customer, make_service, booking_request):
    secret = "whsec_test"
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", secret)
    booking = booking_service.create_booking(customer, booking_request(make_service().id))
    payload = json.dumps(stripe_event("payment_intent.succeeded", booking.id)).encode()

    unsigned = client.post("/api/payments/webhook/stripe", content=payload)
    assert unsigned.status_code == 401

    timestamp = int(time.time())
    signature = hmac.new(secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256).hexdigest()
    signed = client.post("/api/payments/webhook/stripe", content=payload,
                         headers={"Stripe-Signature": f"t={timestamp},v1={signature}"})
    assert signed.status_code == 200


# Health

def test_health_endpoints(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/ping").json() == {"message": "pong"}
    assert client.get("/").status_code == 200
