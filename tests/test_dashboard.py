"""
Tests for the banner and the operator dashboard
"""
from silentaid.routes.dashboard import format_location


def test_banner(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "SilentAid SOS backend is running" in response.text


def test_cors_is_open(client):
    response = client.get("/api/alerts", headers={"Origin": "http://example.com"})

    assert response.headers["access-control-allow-origin"] == "*"


def test_empty_dashboard(client):
    response = client.get("/dashboard")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "No alerts yet." in response.text


def test_dashboard_lists_alerts_escaped(client):
    client.post("/api/sos", json={
        "userId": "u1",
        "userName": "Asha",
        "lat": 12.9,
        "lng": 77.6,
        "accuracy": 9.6,
        "extraMessage": "<script>alert(1)</script>",
    })

    page = client.get("/dashboard").text

    assert "Asha" in page
    assert "Lat: 12.9000, Lng: 77.6000 (±10 m)" in page
    assert "<script>alert(1)</script>" not in page
    assert "&lt;script&gt;" in page


def test_location_not_provided():
    assert format_location({"lat": None, "lng": 1.0}) == "Not provided"


def test_dashboard_renders_from_template(client):
    client.post("/api/sos", json={"userId": "u7", "phone": "555"})

    page = client.get("/dashboard").text

    assert "Showing the 50 most recent alerts, newest first." in page
    assert "u7 (555)" in page
    assert "Not provided" in page
    assert "No alerts yet." not in page
