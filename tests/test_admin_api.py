"""Tests for the admin API: session cookie, gated views, export and lifecycle actions."""
import asyncio
import csv
import io
import sqlite3

import pytest
from sqlalchemy.exc import OperationalError

from camp import store


async def _register(client, make_payload, **overrides) -> str:
    r = await client.post("/api/register", json=make_payload(**overrides))
    assert r.status_code == 201, r.text
    return r.json()["registrationId"]


@pytest.mark.asyncio
async def test_session_reports_unauthenticated(client):
    r = await client.get("/api/admin/session")
    assert r.status_code == 200
    assert r.json() == {"authenticated": False}


@pytest.mark.asyncio
async def test_login_sets_http_only_cookie(client):
    r = await client.post("/api/admin/login", json={"username": "admin", "password": "testpass123"})
    assert r.status_code == 200
    assert r.json() == {"message": "Login successful."}
    set_cookie = r.headers["set-cookie"].lower()
    assert "admin_session=" in set_cookie
    assert "httponly" in set_cookie
    assert "samesite=lax" in set_cookie


@pytest.mark.asyncio
async def test_login_wrong_password(client):
    r = await client.post("/api/admin/login", json={"username": "admin", "password": "nope"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid username or password."
    assert "admin_session" not in r.cookies


@pytest.mark.asyncio
async def test_session_and_logout(client, admin_headers):
    r = await client.get("/api/admin/session", headers=admin_headers)
    assert r.json() == {"authenticated": True}

    r = await client.post("/api/admin/logout", headers=admin_headers)
    assert r.status_code == 200
    assert 'admin_session=""' in r.headers["set-cookie"] or "max-age=0" in r.headers["set-cookie"].lower()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method,path",
    [
        ("get", "/api/stats"),
        ("get", "/api/registrations"),
        ("get", "/api/admin/export.csv"),
        ("post", "/api/admin/registrations/mark-deleted"),
        ("post", "/api/admin/registrations/anonymize"),
    ],
)
async def test_admin_endpoints_require_login(client, method, path):
    r = await getattr(client, method)(path)
    assert r.status_code == 401
    assert r.json()["detail"] == "Admin login required."


@pytest.mark.asyncio
async def test_tampered_cookie_rejected(client, admin_headers):
    headers = {"Cookie": admin_headers["Cookie"][:-2] + "xx"}
    r = await client.get("/api/registrations", headers=headers)
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_stats(client, make_payload, admin_headers):
    await _register(client, make_payload)
    await _register(
        client, make_payload, campType="both", currentGradeJodo="1 kyu",
        wantsExamJodo=True, targetGradeJodo="1 dan", mealPlan="full",
    )
    gone = await _register(client, make_payload, accommodation="guesthouse")
    r = await client.post(
        "/api/admin/registrations/mark-deleted", json={"registrationId": gone}, headers=admin_headers
    )
    assert r.status_code == 200

    r = await client.get("/api/stats", headers=admin_headers)
    assert r.status_code == 200
    stats = r.json()["stats"]
    assert stats["total"] == 2
    assert stats["deletedCount"] == 1
    assert stats["anonymizedCount"] == 0
    assert stats["pendingPayment"] == 2
    assert stats["byCampType"] == {"iaido": 1, "both": 1}
    assert stats["iaidoApplicants"] == 2
    assert stats["jodoApplicants"] == 1
    assert stats["wantsExamJodo"] == 1
    assert stats["wantsExamTotal"] == 1
    assert stats["byTargetGradeJodo"] == {"1 dan": 1}
    assert stats["projectedRevenue"] == 149 + 249 + 60


@pytest.mark.asyncio
async def test_export_csv(client, make_payload, admin_headers):
    await _register(client, make_payload, billingAddress="Fo utca 1, 2. emelet", foodNotes='No "spicy"')
    r = await client.get("/api/admin/export.csv", headers=admin_headers)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert r.headers["cache-control"] == "no-store"
    assert r.headers["content-disposition"].startswith('attachment; filename="registrations-')
    body = r.content.decode("utf-8")
    assert body.startswith("\ufeffid,created_at,status,")
    rows = list(csv.reader(io.StringIO(body.lstrip("\ufeff"))))
    header, row = rows[0], rows[1]
    record = dict(zip(header, row))
    assert record["billing_address"] == "Fo utca 1, 2. emelet"
    assert record["food_notes"] == 'No "spicy"'
    assert record["camp_price_eur"] == "149"
    assert record["amount_eur"] == "149"
    assert record["privacy_consent"] == "true"


@pytest.mark.asyncio
async def test_mark_deleted_requires_registration_id(client, admin_headers):
    r = await client.post("/api/admin/registrations/mark-deleted", json={}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "registrationId is required."


@pytest.mark.asyncio
async def test_mark_deleted_unknown(client, admin_headers):
    r = await client.post(
        "/api/admin/registrations/mark-deleted", json={"registrationId": "reg_missing"}, headers=admin_headers
    )
    assert r.status_code == 404
    assert r.json()["detail"] == "Registration not found."


@pytest.mark.asyncio
async def test_anonymize_then_mark_deleted_conflicts(client, make_payload, admin_headers):
    rid = await _register(client, make_payload)
    r = await client.post("/api/admin/registrations/anonymize", json={"registrationId": rid}, headers=admin_headers)
    assert r.status_code == 200

    r = await client.get("/api/registrations", headers=admin_headers)
    [stored] = r.json()["registrations"]
    assert stored["status"] == "ANONYMIZED"
    assert stored["fullName"] == "ANONYMIZED"
    assert stored["email"] == f"anonymized-{rid}@example.invalid"
    assert stored["phone"] == ""
    assert stored["billingAddress"] == ""
    assert stored["amount"] == 149

    r = await client.post("/api/admin/registrations/mark-deleted", json={"registrationId": rid}, headers=admin_headers)
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_anonymize_unknown(client, admin_headers):
    r = await client.post(
        "/api/admin/registrations/anonymize", json={"registrationId": "reg_missing"}, headers=admin_headers
    )
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_concurrent_mark_deleted_under_lock_contention(client, make_payload, admin_headers, monkeypatch):
    """Two admins delete different registrations while the first write hits a locked database."""
    first = await _register(client, make_payload, fullName="First")
    second = await _register(client, make_payload, fullName="Second")
    real_update = store.update_registration_status
    calls = {"n": 0}

    async def flaky_update(session, registration_id, status):
        calls["n"] += 1
        if calls["n"] == 1:
            raise OperationalError("UPDATE registrations", {}, sqlite3.OperationalError("database is locked"))
        return await real_update(session, registration_id, status)

    monkeypatch.setattr(store, "update_registration_status", flaky_update)

    responses = await asyncio.gather(
        client.post("/api/admin/registrations/mark-deleted", json={"registrationId": first}, headers=admin_headers),
        client.post("/api/admin/registrations/mark-deleted", json={"registrationId": second}, headers=admin_headers),
    )
    assert [r.status_code for r in responses] == [200, 200]
    assert calls["n"] == 3

    r = await client.get("/api/registrations", headers=admin_headers)
    assert [reg["status"] for reg in r.json()["registrations"]] == ["DELETED", "DELETED"]


@pytest.mark.asyncio
async def test_mark_deleted_gives_up_when_always_locked(client, make_payload, admin_headers, monkeypatch):
    rid = await _register(client, make_payload)

    async def locked(session, registration_id, status):
        raise OperationalError("UPDATE registrations", {}, sqlite3.OperationalError("database is locked"))

    monkeypatch.setattr(store, "update_registration_status", locked)
    r = await client.post("/api/admin/registrations/mark-deleted", json={"registrationId": rid}, headers=admin_headers)
    assert r.status_code == 503
    assert r.json()["detail"] == "Database is currently busy. Please try again in a few seconds."
