"""HTTP surface: identity headers, error mapping and the main endpoint flows"""

from datetime import date, timedelta

ADMIN = {"X-Actor-Id": "1", "X-Actor-Role": "ADMIN"}

VENUE = {"X-Actor-Id": "5", "X-Actor-Role": "VENUE"}


def _assignment(client, venue, artist=None, day="2030-06-20", **extra):
    body = {
        "venueId": venue.id,
        "date": day,
        "startTime": "20:00",
        "endTime": "00:00",
        **extra,
    }
    if artist is not None:
        body["artistId"] = artist.id
    return client.post("/schedule", json=body, headers=ADMIN)


# ═══════════════════════════════════════════════════════════════════════════════
# IDENTITY
# ═══════════════════════════════════════════════════════════════════════════════


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_missing_headers_are_unauthorized(client):
    assert client.get("/schedule").status_code == 401


def test_unknown_role_is_unauthorized(client):
    response = client.get("/schedule", headers={"X-Actor-Id": "1", "X-Actor-Role": "GUEST"})
    assert response.status_code == 401


def test_artists_cannot_write_assignments(client, riverside, dj, artist_headers):
    response = client.post(
        "/schedule",
        json={"venueId": riverside.id, "artistId": dj.id, "date": "2030-06-20",
              "startTime": "20:00", "endTime": "00:00"},
        headers=artist_headers,
    )
    assert response.status_code == 403


def test_artist_cannot_edit_another_artists_availability(client, other_dj, artist_headers):
    response = client.put(
        f"/availability/{other_dj.id}",
        json={"date": "2030-06-20", "startTime": "20:00", "endTime": "22:00"},
        headers=artist_headers,
    )
    assert response.status_code == 403


def test_only_admins_clear_a_month(client, riverside):
    response = client.delete("/schedule", params={"month": 6, "year": 2030}, headers=VENUE)
    assert response.status_code == 403


# ═══════════════════════════════════════════════════════════════════════════════
# SCHEDULE
# ═══════════════════════════════════════════════════════════════════════════════


def test_create_assignment(client, riverside, dj):
    response = _assignment(client, riverside, dj)

    assert response.status_code == 201
    body = response.json()
    assert body["assignment"]["venueName"] == "Riverside"
    assert body["assignment"]["artistName"] == "DJ Nova"
    assert body["assignment"]["endTime"] == "24:00"
    assert body["conflict"] is None


def test_create_reports_conflict(client, riverside, rooftop, dj):
    _assignment(client, riverside, dj)
    response = _assignment(client, rooftop, dj, startTime="22:00")

    assert response.status_code == 201
    assert response.json()["conflict"]["venues"] == ["Riverside", "Rooftop"]


def test_duplicate_slot_is_409(client, riverside, dj, other_dj):
    _assignment(client, riverside, dj)
    response = _assignment(client, riverside, other_dj)

    assert response.status_code == 409
    assert "already booked" in response.json()["detail"]


def test_validation_error_body_names_the_field(client, ldk, dj):
    response = _assignment(client, ldk, dj, slot="Brunch")

    assert response.status_code == 400
    assert response.json()["field"] == "slot"


def test_unknown_venue_is_404(client, riverside):
    response = client.post(
        "/schedule",
        json={"venueId": 999, "specialEvent": "Closed", "date": "2030-06-20",
              "startTime": "20:00", "endTime": "00:00"},
        headers=ADMIN,
    )
    assert response.status_code == 404


def test_update_with_stale_version_is_409(client, riverside, dj):
    created = _assignment(client, riverside, dj).json()["assignment"]
    path = f"/schedule/{created['id']}"

    first = client.patch(path, json={"notes": "Bring vinyl", "version": 1}, headers=VENUE)
    assert first.status_code == 200
    assert first.json()["assignment"]["version"] == 2

    stale = client.patch(path, json={"notes": "Bring CDs", "version": 1}, headers=VENUE)
    assert stale.status_code == 409


def test_delete_assignment(client, riverside, dj):
    created = _assignment(client, riverside, dj).json()["assignment"]

    assert client.delete(f"/schedule/{created['id']}", headers=ADMIN).status_code == 204
    assert client.delete(f"/schedule/{created['id']}", headers=ADMIN).status_code == 404


def test_clear_month(client, riverside, rooftop, dj):
    _assignment(client, riverside, dj)
    _assignment(client, rooftop, specialEvent="Closed")

    response = client.delete("/schedule", params={"month": 6, "year": 2030}, headers=ADMIN)
    assert response.json() == {"deleted": 2}


def test_get_schedule(client, riverside, dj):
    _assignment(client, riverside, dj)

    body = client.get("/schedule", params={"month": 6, "year": 2030}, headers=VENUE).json()

    assert [v["name"] for v in body["venues"]] == ["Riverside"]
    assert len(body["assignments"]) == 1
    assert body["djs"][0]["stageName"] == "DJ Nova"
    assert (body["startDate"], body["endDate"]) == ("2030-06-01", "2030-06-30")


def test_get_calendar_week(client, ldk):
    response = client.get(
        "/schedule/calendar",
        params={"view": "week", "day": "2030-06-20"},
        headers=VENUE,
    )
    body = response.json()

    assert response.status_code == 200
    assert body["viewMode"] == "week"
    assert body["startDate"] == "2030-06-17"
    assert [c["label"] for c in body["columns"]] == ["LDK Early", "LDK Late"]


def test_pdf_export(client, riverside, dj):
    _assignment(client, riverside, dj)

    response = client.get("/schedule/pdf", params={"month": 6, "year": 2030}, headers=ADMIN)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert "DJ-Schedule-June-2030.pdf" in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


# ═══════════════════════════════════════════════════════════════════════════════
# AVAILABILITY
# ═══════════════════════════════════════════════════════════════════════════════


def test_artist_manages_own_availability(client, dj, artist_headers):
    response = client.put(
        f"/availability/{dj.id}",
        json={"date": "2030-06-20", "startTime": "20:00", "endTime": "00:00"},
        headers=artist_headers,
    )
    assert response.status_code == 200
    assert response.json()["endTime"] == "24:00"

    listed = client.get(
        f"/availability/{dj.id}",
        params={"startDate": "2030-06-01", "endDate": "2030-06-30"},
        headers=artist_headers,
    ).json()
    assert [s["date"] for s in listed["availability"]] == ["2030-06-20"]


def test_overlap_is_400_with_field(client, dj, artist_headers):
    path = f"/availability/{dj.id}"
    client.put(path, json={"date": "2030-06-20", "startTime": "20:00", "endTime": "23:00"},
               headers=artist_headers)

    response = client.put(
        path, json={"date": "2030-06-20", "startTime": "22:00", "endTime": "00:00"},
        headers=artist_headers,
    )
    assert response.status_code == 400
    assert response.json()["field"] == "startTime"


def test_bulk_reports_failures(client, dj, artist_headers):
    client.put(f"/availability/{dj.id}",
               json={"date": "2030-06-08", "startTime": "21:00", "endTime": "23:00"},
               headers=artist_headers)

    response = client.post(
        f"/availability/{dj.id}/bulk",
        json={"dates": ["2030-06-01", "2030-06-08"], "startTime": "20:00", "endTime": "22:00"},
        headers=artist_headers,
    )
    body = response.json()

    assert response.status_code == 200
    assert [s["date"] for s in body["updated"]] == ["2030-06-01"]
    assert body["failed"][0]["date"] == "2030-06-08"
    assert body["failed"][0]["reason"] == "overlap"


def test_move_and_reorder(client, dj, artist_headers):
    slot = client.put(
        f"/availability/{dj.id}",
        json={"date": "2030-06-20", "startTime": "18:00", "endTime": "20:00"},
        headers=artist_headers,
    ).json()

    moved = client.patch("/availability/move", json={"slotId": slot["id"], "date": "2030-06-21"},
                         headers=artist_headers)
    assert moved.json()["date"] == "2030-06-21"

    reordered = client.patch("/availability/reorder",
                             json={"slotId": slot["id"], "startTime": "21:00"},
                             headers=artist_headers)
    assert (reordered.json()["startTime"], reordered.json()["endTime"]) == ("21:00", "23:00")

    assert client.delete(f"/availability/slots/{slot['id']}",
                         headers=artist_headers).status_code == 204


def test_template_apply(client, dj, artist_headers):
    template = client.post(
        f"/availability/{dj.id}/templates",
        json={"name": "Club set", "duration": 180, "isDefault": True},
        headers=artist_headers,
    )
    assert template.status_code == 201

    response = client.post(
        f"/availability/{dj.id}/templates/{template.json()['id']}/apply",
        json={"dates": ["2030-06-06", "2030-06-13"], "startTime": "21:00"},
        headers=artist_headers,
    )
    body = response.json()
    assert [(s["startTime"], s["endTime"]) for s in body["updated"]] == [
        ("21:00", "24:00"),
        ("21:00", "24:00"),
    ]
    assert body["failed"] == []


def test_recurring_instance_edit_materializes(client, dj, artist_headers):
    pattern = client.post(
        f"/availability/{dj.id}/recurring",
        json={"name": "Fridays", "frequency": "WEEKLY", "dayOfWeek": 5,
              "startTime": "20:00", "endTime": "00:00", "validFrom": "2030-06-01"},
        headers=artist_headers,
    ).json()

    listed = client.get(
        f"/availability/{dj.id}",
        params={"startDate": "2030-06-01", "endDate": "2030-06-30"},
        headers=artist_headers,
    ).json()["availability"]
    assert [s["date"] for s in listed] == ["2030-06-07", "2030-06-14", "2030-06-21", "2030-06-28"]
    assert all(s["isVirtual"] for s in listed)

    edited = client.put(
        f"/availability/{dj.id}",
        json={"date": "2030-06-14", "startTime": "20:00", "endTime": "23:00",
              "status": "TENTATIVE", "recurringPatternId": pattern["id"]},
        headers=artist_headers,
    ).json()
    assert edited["id"] is not None
    assert edited["recurringPatternId"] == pattern["id"]
    assert (edited["endTime"], edited["status"]) == ("23:00", "TENTATIVE")
    assert edited["isVirtual"] is False


def test_rejected_recurring_instance_edit_is_400_and_not_persisted(client, dj, artist_headers):
    pattern = client.post(
        f"/availability/{dj.id}/recurring",
        json={"name": "Fridays", "frequency": "WEEKLY", "dayOfWeek": 5,
              "startTime": "20:00", "endTime": "00:00", "validFrom": "2030-06-01"},
        headers=artist_headers,
    ).json()
    client.put(
        f"/availability/{dj.id}",
        json={"date": "2030-06-14", "startTime": "16:00", "endTime": "18:00"},
        headers=artist_headers,
    )

    response = client.put(
        f"/availability/{dj.id}",
        json={"date": "2030-06-14", "startTime": "17:00", "endTime": "23:00",
              "recurringPatternId": pattern["id"]},
        headers=artist_headers,
    )
    assert response.status_code == 400

    listed = client.get(
        f"/availability/{dj.id}",
        params={"startDate": "2030-06-14", "endDate": "2030-06-14"},
        headers=artist_headers,
    ).json()["availability"]
    assert [(s["startTime"], s["recurringPatternId"]) for s in listed] == [("16:00", None)]


def test_materialize_endpoint(client, dj, artist_headers):
    pattern = client.post(
        f"/availability/{dj.id}/recurring",
        json={"name": "Daily", "frequency": "DAILY", "startTime": "20:00", "endTime": "22:00",
              "validFrom": "2030-06-01"},
        headers=artist_headers,
    ).json()

    response = client.post(
        f"/availability/{dj.id}/recurring/{pattern['id']}/materialize",
        json={"date": "2030-06-03"},
        headers=artist_headers,
    )
    assert response.status_code == 200
    assert response.json()["date"] == "2030-06-03"

    blocked = client.delete(f"/availability/{dj.id}/recurring/{pattern['id']}",
                            headers=artist_headers)
    assert blocked.status_code == 409


# ═══════════════════════════════════════════════════════════════════════════════
# BLACKOUTS AND AVAILABILITY CHECK
# ═══════════════════════════════════════════════════════════════════════════════


def test_blackout_lifecycle(client, dj, artist_headers):
    path = f"/availability/{dj.id}/blackouts"
    created = client.post(
        path,
        json={"startDate": "2030-08-09", "endDate": "2030-08-15", "title": "Summer break",
              "blackoutType": "HOLIDAY"},
        headers=artist_headers,
    )
    assert created.status_code == 201
    blackout = created.json()
    assert (blackout["blackoutType"], blackout["endDate"]) == ("HOLIDAY", "2030-08-15")

    listed = client.get(path, params={"type": "HOLIDAY"}, headers=artist_headers).json()
    assert [b["id"] for b in listed] == [blackout["id"]]

    updated = client.patch(f"{path}/{blackout['id']}", json={"title": "Long break"},
                           headers=artist_headers)
    assert updated.json()["title"] == "Long break"

    deleted = client.delete(f"{path}/{blackout['id']}", headers=artist_headers)
    assert deleted.status_code == 204
    assert client.get(path, headers=artist_headers).json() == []


def test_blackout_over_a_booking_is_409(client, riverside, dj, artist_headers):
    _assignment(client, riverside, dj, day="2030-08-10")

    response = client.post(
        f"/availability/{dj.id}/blackouts",
        json={"startDate": "2030-08-09", "endDate": "2030-08-15", "title": "Summer break"},
        headers=artist_headers,
    )
    assert response.status_code == 409


def test_artist_cannot_black_out_another_artist(client, other_dj, artist_headers):
    response = client.post(
        f"/availability/{other_dj.id}/blackouts",
        json={"startDate": "2030-08-09", "endDate": "2030-08-15", "title": "Nope"},
        headers=artist_headers,
    )
    assert response.status_code == 403


def test_check_availability(client, dj, artist_headers):
    day = (date.today() + timedelta(days=30)).isoformat()
    client.put(f"/availability/{dj.id}",
               json={"date": day, "startTime": "18:00", "endTime": "00:00"},
               headers=artist_headers)

    available = client.post(
        f"/availability/{dj.id}/check",
        json={"date": day, "startTime": "20:00", "duration": 120},
        headers=VENUE,
    )
    assert available.status_code == 200
    assert available.json()["available"] is True

    too_late = client.post(
        f"/availability/{dj.id}/check",
        json={"date": day, "startTime": "23:00", "duration": 120},
        headers=VENUE,
    )
    assert too_late.status_code == 400
    assert too_late.json()["field"] == "duration"


def test_check_availability_suggests_alternatives(client, dj, artist_headers):
    wanted = date.today() + timedelta(days=30)
    nearby = (wanted + timedelta(days=2)).isoformat()
    client.put(f"/availability/{dj.id}",
               json={"date": nearby, "startTime": "20:00", "endTime": "00:00"},
               headers=artist_headers)

    body = client.post(
        f"/availability/{dj.id}/check",
        json={"date": wanted.isoformat(), "startTime": "20:00", "duration": 120},
        headers=VENUE,
    ).json()

    assert body["available"] is False
    assert body["reason"] == "NO_AVAILABILITY"
    assert [(a["date"], a["reason"], a["dayDifference"]) for a in body["alternatives"]] == [
        (nearby, "ALTERNATIVE_TIME", 2)
    ]
