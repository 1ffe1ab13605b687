"""Tests for the /api/courts endpoints."""

from court_booking.seed import DEFAULT_COURTS


class TestListCourts:
    def test_list_seeded_courts(self, client):
        resp = client.get("/api/courts")
        assert resp.status_code == 200
        data = resp.json()
        assert data["meta"]["total_items"] == len(DEFAULT_COURTS)
        assert {c["id"] for c in data["items"]} == {cid for cid, _ in DEFAULT_COURTS}

    def test_pagination(self, client):
        resp = client.get("/api/courts", params={"page": 2, "page_size": 2})
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["items"]) == 1
        assert data["meta"] == {"page": 2, "page_size": 2, "total_items": 3, "total_pages": 2}

    def test_invalid_page_size(self, client):
        resp = client.get("/api/courts", params={"page_size": 500})
        assert resp.status_code == 422

    def test_inactive_courts_hidden(self, client, admin_headers):
        client.patch(
            "/api/admin/courts/court_003", json={"is_active": False}, headers=admin_headers
        )
        ids = {c["id"] for c in client.get("/api/courts").json()["items"]}
        assert "court_003" not in ids


class TestGetCourt:
    def test_get_existing_court(self, client):
        resp = client.get("/api/courts/court_001")
        assert resp.status_code == 200
        data = resp.json()
        assert data["name"] == "Main Court"
        assert data["hourly_rate"] == 500

    def test_get_court_not_found(self, client):
        resp = client.get("/api/courts/no-such-court")
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"


class TestAvailability:
    def test_empty_day(self, client, booking_date):
        resp = client.get("/api/courts/court_001/availability", params={"date": booking_date})
        assert resp.status_code == 200
        data = resp.json()
        assert data["total_slots"] == 16
        assert data["booked_slots"] == 0
        assert data["available_slots"][0] == "06:00"

    def test_booked_hours_removed(self, client, user_headers, booking_date):
        client.post(
            "/api/bookings",
            json={
                "court_id": "court_001",
                "date": booking_date,
                "start_time": "10:00",
                "end_time": "12:00",
            },
            headers=user_headers,
        )
        resp = client.get("/api/courts/court_001/availability", params={"date": booking_date})
        data = resp.json()
        assert "10:00" not in data["available_slots"]
        assert "11:00" not in data["available_slots"]
        assert "12:00" in data["available_slots"]
        assert data["booked_slots"] == 2

    def test_missing_date(self, client):
        resp = client.get("/api/courts/court_001/availability")
        assert resp.status_code == 422

    def test_unknown_court(self, client, booking_date):
        resp = client.get("/api/courts/nope/availability", params={"date": booking_date})
        assert resp.status_code == 404


class TestPrice:
    def test_quote(self, client):
        resp = client.get(
            "/api/courts/court_002/price", params={"start_time": "18:00", "end_time": "20:00"}
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["hours"] == 2
        assert data["hourly_rate"] == 300
        assert data["total_price"] == 600

    def test_out_of_hours(self, client):
        resp = client.get(
            "/api/courts/court_002/price", params={"start_time": "21:00", "end_time": "23:00"}
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"
