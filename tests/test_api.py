import uuid
from sqlalchemy import select
from vetcore.core.db import SessionLocal
from vetcore.modules.appointments.models import LostAppointment
from vetcore.modules.notifications.service import NotificationEvent
from vetcore.modules.verification.models import DocumentType
from conftest import auth


async def test_health(client):
    r = await client.get("/api/v1/health")
    assert r.status_code == 200 and r.json() == {"status": "ok"}


async def test_requests_need_a_token(client):
    r = await client.get("/api/v1/availability/slots", params={"professional_id": str(uuid.uuid4()), "date": "2030-01-07"})
    assert r.status_code == 401


async def test_schedule_and_book_flow(client, factory, monday, sender):
    prof = await factory.professional()
    tutor = await factory.tutor()
    admin = uuid.uuid4()

    r = await client.post("/api/v1/availability/windows", headers=auth(prof.id), json={
        "professional_id": str(prof.id), "day_of_week": 0,
        "start_time": "09:00", "end_time": "10:00", "location_type": "both",
    })
    assert r.status_code == 201, r.text

    r = await client.post(f"/api/v1/credits/{prof.id}/grants", headers=auth(prof.id), json={"amount": 1})
    assert r.status_code == 403
    r = await client.post(f"/api/v1/credits/{prof.id}/grants", headers=auth(admin, admin=True), json={"amount": 1})
    assert r.status_code == 201 and r.json() == {"ok": True}

    r = await client.get("/api/v1/availability/slots", headers=auth(tutor.id),
                         params={"professional_id": str(prof.id), "date": monday.isoformat()})
    assert r.status_code == 200
    assert [(s["slot_start"], s["slot_end"]) for s in r.json()] == [("09:00:00", "09:30:00"), ("09:30:00", "10:00:00")]

    body = {
        "professional_id": str(prof.id), "pet_id": str(uuid.uuid4()),
        "appointment_date": monday.isoformat(), "start_time": "09:00", "end_time": "09:30",
        "location_type": "clinic", "price": "150.00",
    }
    r = await client.post("/api/v1/appointments", headers=auth(tutor.id), json=body)
    assert r.status_code == 201, r.text
    appt = r.json()
    assert appt["status"] == "pending" and appt["tutor_id"] == str(tutor.id)

    r = await client.post("/api/v1/appointments", headers=auth(tutor.id), json=body)
    assert r.status_code == 409 and r.json()["code"] == "SLOT_UNAVAILABLE"

    r = await client.post("/api/v1/appointments", headers=auth(tutor.id), json={**body, "start_time": "09:30", "end_time": "10:00"})
    assert r.status_code == 409
    assert r.json()["code"] == "NO_CREDITS"
    assert r.json()["details"] == {"reason": "NO_CREDITS_AVAILABLE"}

    r = await client.get(f"/api/v1/credits/{prof.id}/stats", headers=auth(prof.id))
    assert r.json() == {"total": 1, "used": 1, "remaining": 0, "status": "depleted", "is_low": False,
                        "confirmed_appointments": 0, "lost_clients": 1}

    r = await client.post(f"/api/v1/appointments/{appt['id']}/status", headers=auth(tutor.id), json={"status": "confirmed"})
    assert r.status_code == 403 and r.json()["code"] == "NOT_AUTHORIZED"
    r = await client.post(f"/api/v1/appointments/{appt['id']}/status", headers=auth(prof.id), json={"status": "confirmed"})
    assert r.status_code == 200 and r.json()["status"] == "confirmed"
    r = await client.post(f"/api/v1/appointments/{appt['id']}/status", headers=auth(prof.id), json={"status": "pending"})
    assert r.status_code == 409 and r.json()["code"] == "INVALID_TRANSITION"

    r = await client.get("/api/v1/appointments", headers=auth(tutor.id))
    assert [a["id"] for a in r.json()] == [appt["id"]]
    r = await client.get(f"/api/v1/appointments/{appt['id']}", headers=auth(uuid.uuid4()))
    assert r.status_code == 403

    r = await client.get(f"/api/v1/calendar/{prof.id}", headers=auth(tutor.id),
                         params={"start_date": monday.isoformat(), "months_ahead": 0})
    assert r.json()[monday.isoformat()] == {"status": "partial", "remaining_slots": 1}

    r = await client.get("/api/v1/audit", headers=auth(admin, admin=True), params={"resource_id": appt["id"]})
    assert {e["action"] for e in r.json()} == {"appointment.create", "appointment.status"}

    events = [e for _, e, _ in sender.events()]
    assert NotificationEvent.NEW_APPOINTMENT.value in events
    assert NotificationEvent.LOST_CLIENT.value in events

    async with SessionLocal() as s:
        assert len((await s.execute(select(LostAppointment))).scalars().all()) == 1


async def test_tutor_cannot_book_for_someone_else(client, factory, monday):
    prof = await factory.professional()
    tutor = await factory.tutor()
    r = await client.post("/api/v1/appointments", headers=auth(tutor.id), json={
        "professional_id": str(prof.id), "pet_id": str(uuid.uuid4()), "tutor_id": str(uuid.uuid4()),
        "appointment_date": monday.isoformat(), "start_time": "09:00", "end_time": "09:30", "location_type": "clinic",
    })
    assert r.status_code == 403


async def test_calendar_rejects_large_horizon(client, factory):
    prof = await factory.professional()
    r = await client.get(f"/api/v1/calendar/{prof.id}", headers=auth(prof.id), params={"months_ahead": 24})
    assert r.status_code == 422 and r.json()["code"] == "VALIDATION_ERROR"


async def test_verification_endpoints(client, factory):
    prof = await factory.professional()
    admin = uuid.uuid4()

    r = await client.get(f"/api/v1/verification/{prof.id}/eligibility", headers=auth(prof.id))
    assert r.json() == {"can_verify": False, "missing_documents": ["CRMV", "RG ou CNH"],
                        "has_crmv_document": False, "has_id_document": False}

    r = await client.post(f"/api/v1/verification/{prof.id}/status", headers=auth(prof.id), json={"status": "under_review"})
    assert r.status_code == 403 and r.json()["code"] == "NOT_AUTHORIZED"

    r = await client.post(f"/api/v1/verification/{prof.id}/status", headers=auth(admin, admin=True), json={"status": "verified"})
    assert r.status_code == 422
    assert r.json()["code"] == "MISSING_DOCUMENTS"
    assert r.json()["details"]["missing_documents"] == ["CRMV", "RG ou CNH"]

    await factory.document(prof.id, DocumentType.CRMV)
    await factory.document(prof.id, DocumentType.RG)
    r = await client.post(f"/api/v1/verification/{prof.id}/status", headers=auth(admin, admin=True),
                          json={"status": "verified", "notes": "CRMV-SP conferido"})
    assert r.status_code == 200 and r.json() == {"ok": True}

    r = await client.get("/api/v1/verification/public")
    assert [p["id"] for p in r.json()] == [str(prof.id)]
    assert r.json()[0]["is_verified"] is True

    r = await client.get(f"/api/v1/verification/{prof.id}/logs", headers=auth(admin, admin=True))
    assert [(l["action"], l["new_status"]) for l in r.json()] == [("verify", "verified")]

    r = await client.get("/api/v1/verification/stats", headers=auth(prof.id))
    assert r.status_code == 403
    r = await client.get("/api/v1/verification/stats", headers=auth(admin, admin=True))
    assert r.json()["verified"] == 1


async def test_confirmation_respond_unknown_token(client):
    r = await client.post("/api/v1/appointments/confirmations/respond", json={"token": "x" * 43, "action": "confirm"})
    assert r.status_code == 404 and r.json()["code"] == "NOT_FOUND"
