import uuid

import pytest

from allobricolage.config import get_settings

API = "/api/v1"

TECHNICIAN = {
    "username": "youssef",
    "name": "Youssef El Amrani",
    "phone": "0661234567",
    "city": "Casablanca",
    "services": ["Plomberie"],
}


@pytest.fixture
async def client_user(client):
    response = await client.post(f"{API}/users", json={"username": "amina", "name": "Amina", "city": "Casablanca"})
    return response.json()


@pytest.fixture
async def technician(client):
    body = dict(TECHNICIAN, skills=["chauffe-eau"], hourly_rate=180)
    response = await client.post(f"{API}/technicians", json=body)
    return response.json()


async def _book(client, technician, user=None, job_id=None):
    headers = {"X-User-ID": user["id"]} if user else {}
    response = await client.post(
        f"{API}/bookings",
        json={
            "technician_id": technician["id"],
            "job_id": job_id,
            "client_name": "Amina",
            "client_phone": "06 62 34 56 78",
            "scheduled_date": "2024-04-11",
            "scheduled_time": "10:00",
        },
        headers=headers,
    )
    return response


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_create_user_and_duplicate(client):
    first = await client.post(f"{API}/users", json={"username": "amina", "name": "Amina", "phone": "0662345678"})
    duplicate = await client.post(f"{API}/users", json={"username": "amina", "name": "Autre"})

    assert first.status_code == 201
    assert first.json()["phone"] == "+212662345678"
    assert first.json()["role"] == "client"
    assert duplicate.status_code == 409


async def test_validation_errors_are_flattened(client):
    response = await client.post(f"{API}/users", json={"username": "a", "name": "Amina", "phone": "123"})

    assert response.status_code == 422
    body = response.json()
    assert body["detail"] == "Validation error"
    fields = {e["field"] for e in body["errors"]}
    assert {"body.username", "body.phone"} <= fields


async def test_unknown_service_is_rejected(client):
    response = await client.post(f"{API}/technicians", json=dict(TECHNICIAN, services=["astrologie"]))
    assert response.status_code == 422


async def test_technician_profile_and_search(client, technician):
    assert technician["name"] == "Youssef El Amrani"
    assert technician["phone"] == "+212661234567"
    assert technician["services"] == ["plomberie"]
    assert technician["rating"] == 0.0

    await client.post(
        f"{API}/technicians",
        json=dict(TECHNICIAN, username="karim", name="Karim", city="Fès", services=["Électricité"]),
    )

    by_city = await client.get(f"{API}/technicians", params={"city": "casablanca"})
    by_service = await client.get(f"{API}/technicians", params={"service": "electricite"})
    by_text = await client.get(f"{API}/technicians", params={"search": "chauffe"})

    assert [t["name"] for t in by_city.json()] == ["Youssef El Amrani"]
    assert [t["city"] for t in by_service.json()] == ["Fès"]
    assert [t["id"] for t in by_text.json()] == [technician["id"]]

    fetched = await client.get(f"{API}/technicians/{technician['id']}")
    assert fetched.status_code == 200
    assert (await client.get(f"{API}/technicians/{uuid.uuid4()}")).status_code == 404


async def test_multi_skill_endpoint(client, technician):
    await client.post(
        f"{API}/technicians",
        json=dict(TECHNICIAN, username="karim", name="Karim", services=["plomberie", "electricite"]),
    )

    response = await client.get(
        f"{API}/technicians/multi-skill", params=[("skills", "plomberie"), ("skills", "electricite")]
    )

    assert response.status_code == 200
    body = response.json()
    assert body[0]["technician"]["name"] == "Karim"
    assert body[0]["can_do_fully"] is True
    assert body[1]["match_percentage"] == 50


async def test_analyze_job(client):
    response = await client.post(
        f"{API}/jobs/analyze",
        json={"description": "Fuite d'eau urgente sous l'évier", "city": "Rabat"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["service"] == "plomberie"
    assert body["urgency"] == "emergency"
    assert body["source"] == "rules"


async def test_analyze_is_rate_limited(client):
    payload = {"description": "Fuite d'eau sous l'évier", "city": "Rabat"}
    limit = get_settings().RATE_LIMIT_ANALYZE_PER_MINUTE

    for _ in range(limit):
        assert (await client.post(f"{API}/jobs/analyze", json=payload)).status_code == 200

    response = await client.post(f"{API}/jobs/analyze", json=payload)
    assert response.status_code == 429
    assert response.headers["Retry-After"] == "60"


async def test_create_job_with_matches(client, technician, client_user):
    response = await client.post(
        f"{API}/jobs",
        json={
            "description": "Mon chauffe-eau fuit depuis ce matin",
            "city": "Casablanca",
            "urgency": "urgent",
        },
        headers={"X-User-ID": client_user["id"]},
    )

    assert response.status_code == 201
    body = response.json()
    job = body["job"]
    assert job["service"] == "plomberie"
    assert job["urgency"] == "emergency"
    assert job["status"] == "pending"
    assert job["client_id"] == client_user["id"]
    assert job["min_cost"] <= job["likely_cost"] <= job["max_cost"]

    [match] = body["matches"]
    assert match["technician"]["id"] == technician["id"]
    assert 0.5 < match["match_score"] <= 1
    assert [u["service"] for u in body["upsells"]][0] == "Inspection plomberie complète"

    matches = await client.get(f"{API}/jobs/{job['id']}/matches")
    [ranked] = matches.json()
    assert ranked["match_percentage"] == round(ranked["match_score"] / 140 * 100)

    history = await client.get(f"{API}/jobs/{job['id']}/history")
    assert [h["to_status"] for h in history.json()] == ["pending"]


async def test_job_not_found(client):
    assert (await client.get(f"{API}/jobs/{uuid.uuid4()}")).status_code == 404
    assert (await client.patch(f"{API}/jobs/{uuid.uuid4()}/cancel")).status_code == 404


async def test_invalid_user_header(client):
    response = await client.post(
        f"{API}/jobs",
        json={"description": "Fuite d'eau", "city": "Rabat"},
        headers={"X-User-ID": "not-a-uuid"},
    )
    assert response.status_code == 400


async def test_cancelled_job_cannot_be_booked(client, technician):
    created = await client.post(f"{API}/jobs", json={"description": "Fuite d'eau", "city": "Casablanca"})
    job_id = created.json()["job"]["id"]

    cancelled = await client.patch(f"{API}/jobs/{job_id}/cancel")
    again = await client.patch(f"{API}/jobs/{job_id}/cancel")
    booking = await _book(client, technician, job_id=job_id)

    assert cancelled.json()["status"] == "cancelled"
    assert again.status_code == 409
    assert booking.status_code == 409


async def test_booking_lifecycle_and_review(client, technician, client_user):
    created = await _book(client, technician, user=client_user, job_id="direct")
    assert created.status_code == 201
    booking = created.json()
    assert booking["status"] == "pending"
    assert booking["client_phone"] == "+212662345678"
    assert booking["estimated_cost"] == 180

    for action, expected in [("accept", "accepted"), ("start", "in_progress")]:
        response = await client.post(f"{API}/bookings/{booking['id']}/{action}")
        assert response.json()["status"] == expected

    done = await client.post(f"{API}/bookings/{booking['id']}/complete", json={"final_cost": 250})
    assert done.json()["status"] == "completed"
    assert done.json()["final_cost"] == 250

    assert (await client.post(f"{API}/bookings/{booking['id']}/cancel")).status_code == 409
    assert (await client.post(f"{API}/bookings/{uuid.uuid4()}/accept")).status_code == 404

    review_body = {
        "technician_id": technician["id"],
        "booking_id": booking["id"],
        "rating": 4,
        "comment": "Rapide et efficace",
    }
    assert (await client.post(f"{API}/reviews", json=review_body)).status_code == 401

    review = await client.post(f"{API}/reviews", json=review_body, headers={"X-User-ID": client_user["id"]})
    assert review.status_code == 201
    assert review.json()["is_verified"] is True

    duplicate = await client.post(f"{API}/reviews", json=review_body, headers={"X-User-ID": client_user["id"]})
    assert duplicate.status_code == 409

    profile = (await client.get(f"{API}/technicians/{technician['id']}")).json()
    assert profile["rating"] == 4.0
    assert profile["review_count"] == 1
    assert profile["completed_jobs"] == 1

    reply = await client.patch(
        f"{API}/reviews/{review.json()['id']}/response",
        json={"response": "Merci !"},
        headers={"X-User-ID": technician["user_id"]},
    )
    assert reply.json()["technician_response"] == "Merci !"

    forbidden = await client.patch(
        f"{API}/reviews/{review.json()['id']}/response",
        json={"response": "Hmm"},
        headers={"X-User-ID": client_user["id"]},
    )
    assert forbidden.status_code == 403

    reviews = await client.get(f"{API}/technicians/{technician['id']}/reviews")
    assert [r["rating"] for r in reviews.json()] == [4]


async def test_listing_bookings_by_caller(client, technician, client_user):
    await _book(client, technician, user=client_user, job_id="direct")
    await _book(client, technician, job_id="direct")

    mine = await client.get(f"{API}/bookings", headers={"X-User-ID": client_user["id"]})
    assigned = await client.get(f"{API}/bookings", headers={"X-User-ID": technician["user_id"]})
    anonymous = await client.get(f"{API}/bookings")

    assert len(mine.json()) == 1
    assert len(assigned.json()) == 2
    assert anonymous.json() == []


async def test_pricing_endpoints(client):
    estimate = await client.post(
        f"{API}/pricing/estimate",
        json={
            "service_type": "Plomberie",
            "city": "Casablanca",
            "urgency": "urgent",
            "scheduled_date": "2024-04-10",
            "scheduled_time": "10:00",
            "complexity": "simple",
        },
    )
    assert estimate.status_code == 200
    assert estimate.json()["final_price"] == 319
    assert estimate.json()["currency"] == "MAD"

    price_range = await client.get(f"{API}/pricing/range/plomberie")
    assert price_range.json() == {"min": 200, "max": 500, "average": 250}

    total = await client.post(
        f"{API}/pricing/total",
        json={
            "service_type": "plomberie",
            "city": "Rabat",
            "estimated_hours": 2,
            "scheduled_date": "2024-04-10",
        },
    )
    assert total.json()["total_cost"] == 715

    discount = await client.post(f"{API}/pricing/discount", json={"price": 300, "code": "WELCOME10"})
    assert discount.json()["discounted_price"] == 270
    assert discount.json()["valid"] is True


async def test_payment_flow_with_cmi_webhook(client, technician, client_user, monkeypatch):
    monkeypatch.setattr(get_settings(), "CMI_MERCHANT_ID", "cmi-test")
    booking = (await _book(client, technician, user=client_user, job_id="direct")).json()

    methods = {m["method"]: m for m in (await client.get(f"{API}/payments/methods")).json()}
    assert methods["cmi"]["enabled"] is True
    assert methods["stripe"]["enabled"] is False

    refused = await client.post(
        f"{API}/payments",
        json={"booking_id": booking["id"], "amount": 180, "payment_method": "stripe"},
    )
    assert refused.status_code == 400

    created = await client.post(
        f"{API}/payments",
        json={"booking_id": booking["id"], "amount": 180, "payment_method": "cmi"},
    )
    assert created.status_code == 201
    reference = created.json()["gateway_reference"]

    callback = await client.post(
        f"{API}/webhooks/cmi",
        json={"sessionId": reference, "status": "success", "transactionId": "CMI-1"},
    )
    assert callback.status_code == 200
    assert callback.json()["status"] == "completed"

    retried = await client.post(
        f"{API}/webhooks/cmi",
        json={"sessionId": reference, "status": "success", "transactionId": "CMI-1"},
    )
    assert retried.status_code == 200
    assert retried.json()["payment_id"] == callback.json()["payment_id"]

    unknown = await client.post(f"{API}/webhooks/cmi", json={"sessionId": "nope", "status": "success"})
    assert unknown.status_code == 404

    [payment] = (await client.get(f"{API}/payments/booking/{booking['id']}")).json()
    assert payment["status"] == "completed"
    assert payment["transaction_id"] == "CMI-1"

    booking_now = (await client.get(f"{API}/bookings/{booking['id']}")).json()
    assert booking_now["status"] == "accepted"

    inbox = await client.get(
        f"{API}/notifications",
        params={"unread_only": True},
        headers={"X-User-ID": client_user["id"]},
    )
    [note] = inbox.json()
    assert note["title"] == "✅ Réservation confirmée"

    read = await client.patch(
        f"{API}/notifications/{note['id']}/read",
        headers={"X-User-ID": client_user["id"]},
    )
    assert read.json()["is_read"] is True

    unread = await client.get(
        f"{API}/notifications",
        params={"unread_only": True},
        headers={"X-User-ID": client_user["id"]},
    )
    assert unread.json() == []


async def test_cash_payment_confirm(client, technician):
    booking = (await _book(client, technician, job_id="direct")).json()
    payment = (await client.post(
        f"{API}/payments",
        json={"booking_id": booking["id"], "amount": 180, "payment_method": "cash"},
    )).json()

    confirmed = await client.post(f"{API}/payments/{payment['id']}/confirm", json={"transaction_id": "REC-7"})

    assert confirmed.json()["status"] == "completed"
    assert (await client.post(f"{API}/payments/{uuid.uuid4()}/confirm")).status_code == 404


async def test_notifications_require_a_caller(client):
    assert (await client.get(f"{API}/notifications")).status_code == 401


async def test_technician_dashboard(client, technician, client_user):
    job = (await client.post(
        f"{API}/jobs",
        json={"description": "Mon chauffe-eau fuit depuis ce matin", "city": "Casablanca"},
    )).json()["job"]
    own = {"X-User-ID": technician["user_id"]}

    stats = await client.get(f"{API}/technicians/me/stats", headers=own)
    feed = await client.get(f"{API}/technicians/me/pending-jobs", headers=own)
    anonymous = await client.get(f"{API}/technicians/me/stats")
    not_a_technician = await client.get(
        f"{API}/technicians/me/pending-jobs", headers={"X-User-ID": client_user["id"]}
    )

    assert stats.status_code == 200
    assert stats.json()["completed_jobs"] == 0
    assert stats.json()["total_earnings"] == 0
    assert [j["id"] for j in feed.json()] == [job["id"]]
    assert anonymous.status_code == 401
    assert not_a_technician.status_code == 404
