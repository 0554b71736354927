"""HTTP tests for the scheduling API."""

from datetime import datetime

from conftest import MONDAY, actor_headers


def booking_payload(salon, time="10:00", **overrides):
    payload = {
        "provider_id": salon.provider_id,
        "service_id": salon.haircut_id,
        "date": MONDAY,
        "time": time,
        "client_name": "Maria Lopez",
        "client_email": "Maria@Example.com",
        "client_phone": "+34 600 123 456",
    }
    payload.update(overrides)
    return payload


class TestSlotsApi:
    def test_day_view(self, client, salon):
        resp = client.get("/slots/day", params={
            "provider_id": salon.provider_id,
            "service_id": salon.haircut_id,
            "date": MONDAY,
        })

        assert resp.status_code == 200
        body = resp.json()
        assert body["duration_min"] == 30
        assert [s["time"] for s in body["slots"]] == [
            "09:00", "09:30", "10:00", "10:30", "11:00", "11:30",
        ]
        assert all(s["available"] for s in body["slots"])

    def test_booked_slot_shows_reason(self, client, salon, owner):
        client.post("/appointments/", json=booking_payload(salon), headers=actor_headers(owner))

        resp = client.get("/slots/day", params={
            "provider_id": salon.provider_id,
            "service_id": salon.haircut_id,
            "date": MONDAY,
        })

        reasons = {s["time"]: s["reason"] for s in resp.json()["slots"]}
        assert reasons["10:00"] == "booked"
        assert reasons["09:30"] is None

    def test_unknown_service(self, client, salon):
        resp = client.get("/slots/day", params={
            "provider_id": salon.provider_id,
            "service_id": 999,
            "date": MONDAY,
        })
        assert resp.status_code == 422
        assert resp.json()["error"] == "validation_error"


class TestAppointmentsApi:
    def test_actor_headers_required(self, client, salon):
        resp = client.post("/appointments/", json=booking_payload(salon))
        assert resp.status_code == 401

    def test_unknown_role_rejected(self, client, salon):
        headers = {"X-Actor-Id": "x", "X-Actor-Role": "superuser"}
        resp = client.post("/appointments/", json=booking_payload(salon), headers=headers)
        assert resp.status_code == 401

    def test_create_then_conflict(self, client, salon, client_actor, gateway):
        headers = actor_headers(client_actor)

        first = client.post(
            "/appointments/", json=booking_payload(salon, payment_ref="tok_1"), headers=headers
        )
        assert first.status_code == 201
        body = first.json()
        assert body["status"] == "confirmed"
        assert body["payment_status"] == "paid"
        assert body["client_email"] == "maria@example.com"
        assert body["created_by_role"] == "client"
        assert gateway.captures == [("tok_1", 20.0, body["id"])]

        second = client.post("/appointments/", json=booking_payload(salon), headers=headers)
        assert second.status_code == 409
        assert second.json() == {
            "error": "slot_no_longer_available",
            "detail": "That time was just taken, please choose another.",
            "retryable": True,
            "reason": "booked",
        }

    def test_payment_failure_is_502(self, client, salon, owner, gateway):
        gateway.fail_capture = True
        resp = client.post(
            "/appointments/", json=booking_payload(salon, payment_ref="tok_1"), headers=actor_headers(owner)
        )
        assert resp.status_code == 502
        assert resp.json()["error"] == "upstream_payment_failure"
        assert client.get("/appointments/").json() == []

    def test_bad_payload(self, client, salon, owner):
        resp = client.post(
            "/appointments/", json=booking_payload(salon, time="10h"), headers=actor_headers(owner)
        )
        assert resp.status_code == 422

    def test_unpadded_date_is_rejected(self, client, salon, owner):
        for bad in ("2026-3-2", "20260302", "2026-02-30"):
            resp = client.post(
                "/appointments/", json=booking_payload(salon, date=bad), headers=actor_headers(owner)
            )
            assert resp.status_code == 422, bad
        assert client.get("/appointments/").json() == []

    def test_reschedule_rejects_unpadded_date(self, client, salon, owner):
        created = client.post("/appointments/", json=booking_payload(salon), headers=actor_headers(owner))

        resp = client.post(
            f"/appointments/{created.json()['id']}/reschedule",
            json={"date": "2026-3-2", "time": "11:00"},
            headers=actor_headers(owner),
        )

        assert resp.status_code == 422

    def test_patch_not_allowed(self, client, salon, owner):
        created = client.post("/appointments/", json=booking_payload(salon), headers=actor_headers(owner))
        resp = client.patch(
            f"/appointments/{created.json()['id']}", json={"time": "11:00"}, headers=actor_headers(owner)
        )
        assert resp.status_code == 405

    def test_list_filters(self, client, salon, owner):
        client.post("/appointments/", json=booking_payload(salon), headers=actor_headers(owner))
        client.post(
            "/appointments/",
            json=booking_payload(salon, provider_id=salon.other_provider_id),
            headers=actor_headers(owner),
        )

        resp = client.get("/appointments/", params={"provider_id": salon.other_provider_id})
        assert [a["provider_id"] for a in resp.json()] == [salon.other_provider_id]

        resp = client.get("/appointments/", params={"status": "confirmed"})
        assert resp.json() == []

    def test_complete_lifecycle(self, client, salon, owner, ana, ben, clock):
        created = client.post("/appointments/", json=booking_payload(salon), headers=actor_headers(owner))
        appointment_id = created.json()["id"]

        early = client.post(
            f"/appointments/{appointment_id}/status",
            json={"status": "completed"},
            headers=actor_headers(ana),
        )
        assert early.status_code == 409
        assert early.json()["error"] == "illegal_transition"

        clock.now = datetime(2026, 3, 2, 10, 30)

        forbidden = client.post(
            f"/appointments/{appointment_id}/status",
            json={"status": "completed"},
            headers=actor_headers(ben),
        )
        assert forbidden.status_code == 403
        assert forbidden.json()["error"] == "forbidden"

        item = client.post(
            f"/appointments/{appointment_id}/line-items",
            json={"name": "Blow dry", "price": 15},
            headers=actor_headers(ana),
        )
        assert item.status_code == 201
        assert item.json()["position"] == 1

        totals = client.get(f"/appointments/{appointment_id}/totals").json()
        assert totals["total_price"] == 55.0
        assert totals["outstanding"] == 55.0

        settled = client.post(
            f"/appointments/{appointment_id}/settlement",
            json={"method": "cash", "amount": 55, "complete": True},
            headers=actor_headers(ana),
        )
        assert settled.status_code == 200
        assert settled.json()["status"] == "completed"
        assert settled.json()["completed_by_name"] == "Ana"

        recent = client.get(f"/appointments/{appointment_id}/modifications", params={"limit": 2}).json()
        assert [m["action"] for m in recent] == ["completed", "updated"]

        history = client.get(f"/appointments/{appointment_id}/modifications").json()
        assert [m["seq"] for m in history] == [1, 2, 3]

    def test_reschedule(self, client, salon, owner):
        created = client.post("/appointments/", json=booking_payload(salon), headers=actor_headers(owner))
        appointment_id = created.json()["id"]

        resp = client.post(
            f"/appointments/{appointment_id}/reschedule",
            json={"date": MONDAY, "time": "11:00"},
            headers=actor_headers(owner),
        )

        assert resp.status_code == 200
        assert resp.json()["time"] == "11:00"
        assert resp.json()["status"] == "confirmed"

    def test_purge(self, client, salon, owner, ana):
        created = client.post("/appointments/", json=booking_payload(salon), headers=actor_headers(owner))
        appointment_id = created.json()["id"]

        assert client.delete(f"/appointments/{appointment_id}", headers=actor_headers(ana)).status_code == 403
        assert client.delete(f"/appointments/{appointment_id}", headers=actor_headers(owner)).status_code == 204

        missing = client.get(f"/appointments/{appointment_id}")
        assert missing.status_code == 404
        assert missing.json()["error"] == "not_found"
        assert client.get("/audit/", params={"appointment_id": appointment_id}).json() == []


class TestAuditApi:
    def test_feed_filters(self, client, salon, owner):
        created = client.post("/appointments/", json=booking_payload(salon), headers=actor_headers(owner))
        appointment_id = created.json()["id"]
        client.post(
            f"/appointments/{appointment_id}/status",
            json={"status": "cancelled", "reason": "Client called"},
            headers=actor_headers(owner),
        )

        feed = client.get("/audit/").json()
        assert [e["action"] for e in feed] == ["cancelled", "created"]

        created_only = client.get("/audit/", params={"action": "created"}).json()
        assert len(created_only) == 1
        assert created_only[0]["actor_id"] == "owner-1"

        entry = client.get(f"/audit/{created_only[0]['id']}")
        assert entry.status_code == 200
        assert client.get("/audit/999").status_code == 404


class TestScheduleApi:
    def test_rule_and_block(self, client, salon, ana):
        rule = client.put("/availability_rules/", json={
            "provider_id": salon.provider_id,
            "day_of_week": 1,
            "start_time": "15:00",
            "end_time": "16:00",
        }, headers=actor_headers(ana))
        assert rule.status_code == 200
        assert rule.json()["id"] is not None

        block = client.post("/blocked_intervals/", json={
            "provider_id": salon.provider_id,
            "date": "2026-03-03",
            "start_time": "15:00",
            "reason": "Dentist",
        }, headers=actor_headers(ana))
        assert block.status_code == 201
        assert block.json()["created_by"] == "user-ana"

        slots = client.get("/slots/day", params={
            "provider_id": salon.provider_id,
            "service_id": salon.haircut_id,
            "date": "2026-03-03",
        }).json()["slots"]
        assert [(s["time"], s["reason"]) for s in slots] == [("15:00", "blocked"), ("15:30", None)]

    def test_other_employee_cannot_edit_schedule(self, client, salon, ben):
        resp = client.post("/blocked_intervals/", json={
            "provider_id": salon.provider_id,
            "date": MONDAY,
            "start_time": "10:00",
        }, headers=actor_headers(ben))
        assert resp.status_code == 403


class TestCatalogApi:
    def test_provider_create_is_owner_only(self, client, salon, owner, ana):
        payload = {"user_id": "user-cris", "display_name": "Cris"}

        assert client.post("/providers/", json=payload, headers=actor_headers(ana)).status_code == 403

        created = client.post("/providers/", json=payload, headers=actor_headers(owner))
        assert created.status_code == 201
        assert created.json()["employment_type"] == "salaried"

        duplicate = client.post("/providers/", json=payload, headers=actor_headers(owner))
        assert duplicate.status_code == 409

    def test_provider_services(self, client, salon, owner):
        path = f"/providers/{salon.provider_id}/services"
        assert {row["service_id"] for row in client.get(path).json()} == {salon.haircut_id, salon.color_id}

        resp = client.delete(f"{path}/{salon.color_id}", headers=actor_headers(owner))
        assert resp.status_code == 204
        assert [row["service_id"] for row in client.get(path).json()] == [salon.haircut_id]

    def test_consultation_needs_duration(self, client, owner):
        resp = client.post("/services/", json={
            "name": "Perm",
            "duration_min": 90,
            "price": 120,
            "offers_consultation": True,
        }, headers=actor_headers(owner))
        assert resp.status_code == 422


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"db": True, "redis": None}
