import pytest


def _profile_payload(profile):
    return {
        "subject_id": profile.subject_id,
        "name": profile.name,
        "role": profile.role,
        "entity_ids": list(profile.entity_ids),
        "status": profile.status,
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_health_and_ready(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}

    resp = await client.get("/ready")
    assert resp.status_code == 200
    data = resp.json()
    assert data["config_loaded"] is True
    assert data["timezone"] == "Europe/Kyiv"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_status_day_uses_configured_timezone(client):
    payload = {
        "entity": {
            "id": "UA",
            "current_status": True,
            "status_log": [
                {"action": "deactivated", "at": "2026-02-01 09:00:00+00", "by": "admin"},
                {"action": "activated", "at": "2026-02-09T23:30:00Z", "by": "admin"},
            ],
        },
        "day": "2026-02-09",
    }

    resp = await client.post("/api/v1/derive/status/day", json=payload)
    assert resp.status_code == 200
    assert resp.json() == {"entity_id": "UA", "day": "2026-02-09", "status": "inactive"}

    payload["timezone"] = "UTC"
    resp = await client.post("/api/v1/derive/status/day", json=payload)
    assert resp.json()["status"] == "active"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_status_month(client):
    payload = {
        "entity": {
            "id": "PL",
            "current_status": False,
            "status_log": [
                {"action": "activated", "at": "2026-01-20T09:00:00Z"},
                {"action": "deactivated", "at": "2026-02-14T09:00:00Z"},
            ],
        },
        "year": 2026,
        "month": 2,
    }

    resp = await client.post("/api/v1/derive/status/month", json=payload)
    assert resp.status_code == 200
    data = resp.json()
    assert data["current_status"] == "inactive"
    assert data["last_deactivated"] == "2026-02-14"
    assert len(data["days"]) == 28
    assert data["days"]["2026-02-14"] == "active"
    assert data["days"]["2026-02-15"] == "inactive"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_compliance_against_configured_policies(client):
    payload = {
        "shifts": [
            {"subject_id": "m1", "entity_id": "UA", "clock_in": "2026-02-10T07:07:00Z"},
            {"subject_id": "m3", "entity_id": "PL", "clock_in": "2026-02-10 08:07:00+00"},
            {"subject_id": "m2", "entity_id": "DE", "clock_in": "2026-02-10T07:07:00Z"},
            {"subject_id": "m4", "entity_id": "UA"},
        ]
    }

    resp = await client.post("/api/v1/derive/compliance", json=payload)
    assert resp.status_code == 200
    items = resp.json()

    assert items[0]["status"] == "late"
    assert items[0]["late_by_minutes"] == 7
    assert items[0]["label"] == "Late (7m)"
    # PL allows 10 minutes of grace
    assert items[1]["status"] == "ok"
    assert items[1]["late_by_minutes"] is None
    assert [i["status"] for i in items[2:]] == ["unknown", "unknown"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_density_profile(client):
    payload = {
        "records": [
            {"occurred_at": "2026-02-10T07:00:00Z", "subject_id": "m1", "entity_id": "UA"},
            {"occurred_at": "2026-02-10T07:10:00Z", "subject_id": "m2", "entity_id": "UA"},
            {"occurred_at": "2026-02-10T16:00:00Z", "subject_id": "m3", "entity_id": "PL"},
            {"occurred_at": None, "subject_id": "m4", "entity_id": "PL"},
        ],
        "interval_hours": 6,
    }

    resp = await client.post("/api/v1/derive/density", json=payload)
    assert resp.status_code == 200
    data = resp.json()

    assert len(data["counts"]) == 96
    assert data["counts"][36] == 2
    assert data["counts"][72] == 1
    assert data["segments"][0]["start_slot"] == 0
    assert data["segments"][-1]["end_slot"] == 95
    assert data["peak"]["sum"] == 2
    assert data["peak"]["start_slot"] == 29
    assert [i["count"] for i in data["intervals"]] == [0, 2, 0, 1]
    assert [i["pct"] for i in data["intervals"]] == [0, 50, 0, 25]
    assert [g["key"] for g in data["groups"]] == ["UA", "PL"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_roster(client, profiles):
    payload = {
        "assignments": [
            {"date": "2026-02-08", "subject_id": "m1", "entity_id": "UA"},
            {"date": "2026-02-09", "subject_id": "m1", "entity_id": "UA, PL"},
            {"date": "2026-02-09", "subject_id": "m3", "entity_id": "PL"},
            {"date": "2026-02-20", "subject_id": "m2", "entity_id": "UA"},
        ],
        "profiles": [_profile_payload(p) for p in profiles],
        "today": "2026-02-10",
        "entity_ids": ["DE"],
    }

    resp = await client.post("/api/v1/derive/roster", json=payload)
    assert resp.status_code == 200
    data = resp.json()

    assert data["today"] == "2026-02-10"
    ua = data["rosters"]["UA"]
    assert [e["subject_id"] for e in ua] == ["m1", "m4"]
    assert ua[0]["source"] == "schedule"
    assert ua[0]["shift_count"] == 2
    assert ua[1]["source"] == "profile"
    assert [e["subject_id"] for e in data["rosters"]["PL"]] == ["m1", "m3", "m4"]
    assert data["rosters"]["DE"] == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_invalid_timezone_rejected(client):
    payload = {"entity": {"id": "UA"}, "day": "2026-02-10", "timezone": "Mars/Olympus"}

    resp = await client.post("/api/v1/derive/status/day", json=payload)
    assert resp.status_code == 422
    assert "Unknown timezone" in resp.json()["detail"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_invalid_payload_rejected(client):
    resp = await client.post(
        "/api/v1/derive/density", json={"records": [], "interval_hours": 0}
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_status_month_last_representable_month(client):
    payload = {
        "entity": {
            "id": "UA",
            "current_status": False,
            "status_log": [{"action": "activated", "at": "9999-12-31T10:00:00Z"}],
        },
        "year": 9999,
        "month": 12,
    }

    resp = await client.post("/api/v1/derive/status/month", json=payload)
    assert resp.status_code == 200
    days = resp.json()["days"]
    assert len(days) == 31
    assert days["9999-12-30"] == "inactive"
    assert days["9999-12-31"] == "active"
