"""End-to-end tests through the HTTP API with a scripted geocoder."""

import json

from fastapi.testclient import TestClient

from conftest import ADMIN_PASSWORD, ADMIN_USERNAME
from eventmap import create_app
from eventmap.deps import auth as auth_deps


def stored(settings):
    return json.loads(settings.DATA_FILE.read_text(encoding="utf-8"))


def test_public_reads_need_no_session(client):
    assert client.get("/api/addresses").json() == []
    assert client.get("/api/rules").json() == {"rules": ""}
    assert client.get("/health").json() == {"ok": True}


def test_first_start_stores_a_hashed_password(client, settings):
    assert stored(settings)["adminPassword"].startswith("$2")


def test_unauthenticated_address_update_is_rejected_and_nothing_changes(client, settings):
    before = stored(settings)

    response = client.post("/api/addresses", json={"addresses": [{"text": "1 Sneaky St"}]})

    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["message"]
    assert stored(settings) == before


def test_other_mutations_are_gated_too(client):
    assert client.post("/api/rules", json={"rules": "x"}).status_code == 401
    assert client.post(
        "/api/change-password", json={"currentPassword": "a", "newPassword": "bbbbbbbb"}
    ).status_code == 401
    assert client.get("/api/geocode", params={"q": "x"}).status_code == 401


def test_admin_page_redirects_to_signin_without_a_session(client):
    response = client.get("/admin", headers={"Accept": "text/html"}, follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "/signin"


def test_sign_in_redirects_to_admin(client):
    response = client.post(
        "/signin", data={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD}, follow_redirects=False
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/admin"
    assert client.get("/admin").status_code == 200


def test_failed_sign_in_is_a_generic_401_page(client):
    wrong_password = client.post("/signin", data={"username": ADMIN_USERNAME, "password": "nope"})
    wrong_user = client.post("/signin", data={"username": "root", "password": ADMIN_PASSWORD})

    assert wrong_password.status_code == wrong_user.status_code == 401
    assert "Authentication failed." in wrong_password.text
    assert "Try again" in wrong_password.text
    # Nothing in the page says which factor was wrong
    assert wrong_password.text == wrong_user.text


def test_eleventh_sign_in_attempt_is_rate_limited_even_with_good_credentials(client):
    for _ in range(10):
        assert client.post("/signin", data={"username": ADMIN_USERNAME, "password": "nope"}).status_code == 401

    response = client.post(
        "/signin", data={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD}, follow_redirects=False
    )

    assert response.status_code == 429
    assert int(response.headers["Retry-After"]) > 0
    assert response.json()["success"] is False


def test_example_scenario_geocodes_on_save(admin_client, settings, geocoder):
    response = admin_client.post("/api/addresses", json={"addresses": [{"text": "12 Main St ardlethan nsw 2665"}]})

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Addresses updated successfully."}
    expected = [{"text": "12 Main St ardlethan nsw 2665", "lat": -34.33, "lon": 146.9}]
    assert stored(settings)["addresses"] == expected
    assert admin_client.get("/api/addresses").json() == expected
    assert geocoder.calls == ["12 Main St ardlethan nsw 2665"]


def test_address_update_validates_shape(admin_client, settings):
    before = stored(settings)

    not_a_list = admin_client.post("/api/addresses", json={"addresses": {"text": "1 St"}})
    missing_text = admin_client.post("/api/addresses", json={"addresses": [{"lat": 1.0}]})

    assert not_a_list.status_code == 400
    assert not_a_list.json()["success"] is False
    assert missing_text.status_code == 400
    assert stored(settings) == before


def test_rules_round_trip_and_validation(admin_client):
    rules = "<b>Lights on</b> means treats.\nBe kind."
    assert admin_client.post("/api/rules", json={"rules": rules}).json()["success"] is True
    assert admin_client.get("/api/rules").json() == {"rules": rules}

    assert admin_client.post("/api/rules", json={"rules": ""}).status_code == 200
    bad = admin_client.post("/api/rules", json={"rules": 42})
    assert bad.status_code == 400
    assert bad.json()["success"] is False


def test_rules_page_escapes_markup(admin_client, client):
    admin_client.post("/api/rules", json={"rules": "<script>alert(1)</script>"})

    page = client.get("/rules")

    assert "<script>alert(1)</script>" not in page.text
    assert "&lt;script&gt;" in page.text


def test_geocode_endpoint_for_the_location_picker(admin_client):
    hit = admin_client.get("/api/geocode", params={"q": "12 Main St ardlethan nsw 2665"})
    miss = admin_client.get("/api/geocode", params={"q": "Atlantis"})

    assert hit.json() == {"lat": -34.33, "lon": 146.9}
    assert miss.status_code == 404
    assert miss.json()["success"] is False


def test_change_password_flow(admin_client):
    short = admin_client.post("/api/change-password", json={"currentPassword": ADMIN_PASSWORD, "newPassword": "short"})
    wrong = admin_client.post("/api/change-password", json={"currentPassword": "nope", "newPassword": "long-enough"})
    ok = admin_client.post(
        "/api/change-password", json={"currentPassword": ADMIN_PASSWORD, "newPassword": "long-enough"}
    )

    assert short.status_code == 400
    assert wrong.status_code == 401
    assert wrong.json()["message"] == "Incorrect current password."
    assert ok.json() == {"success": True, "message": "Password updated successfully."}

    admin_client.post("/api/signout")
    old = admin_client.post("/signin", data={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
    new = admin_client.post(
        "/signin", data={"username": ADMIN_USERNAME, "password": "long-enough"}, follow_redirects=False
    )
    assert old.status_code == 401
    assert new.status_code == 303


def test_sign_out_ends_the_session_and_is_idempotent(admin_client):
    assert admin_client.post("/api/signout").json()["success"] is True
    assert admin_client.post("/api/rules", json={"rules": "x"}).status_code == 401
    assert admin_client.post("/api/signout").json()["success"] is True


def test_session_expires_an_hour_after_sign_in(admin_client, monkeypatch):
    signed_in_at = auth_deps._now()
    monkeypatch.setattr(auth_deps, "_now", lambda: signed_in_at + 60 * 60 + 1)

    assert admin_client.post("/api/rules", json={"rules": "late"}).status_code == 401


def test_security_headers_and_request_id(client):
    response = client.get("/api/rules", headers={"X-Request-ID": "abc123"})

    assert response.headers["X-Request-ID"] == "abc123"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert "tile.openstreetmap.org" in response.headers["Content-Security-Policy"]


def test_existing_document_survives_restart(settings, geocoder):
    with TestClient(create_app(settings, geocoder=geocoder)) as first:
        first.post("/signin", data={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
        first.post("/api/addresses", json={"addresses": [{"text": "9 Kept St", "lat": -34.0, "lon": 146.0}]})

    with TestClient(create_app(settings, geocoder=geocoder)) as second:
        assert second.get("/api/addresses").json() == [{"text": "9 Kept St", "lat": -34.0, "lon": 146.0}]


def test_non_finite_coordinates_are_rejected_and_reads_keep_working(admin_client, settings):
    before = stored(settings)

    response = admin_client.post(
        "/api/addresses",
        content='{"addresses": [{"text": "1 Nan St", "lat": NaN, "lon": Infinity}]}',
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"
    assert stored(settings) == before
    assert admin_client.get("/api/addresses").status_code == 200


def test_unencodable_rules_fail_cleanly_without_leaving_temp_files(admin_client, settings):
    response = admin_client.post(
        "/api/rules",
        content='{"rules": "\\ud800"}',
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 500
    assert response.json()["code"] == "persistence_error"
    assert admin_client.get("/api/rules").json() == {"rules": ""}
    assert [p.name for p in settings.DATA_FILE.parent.iterdir()] == ["db.json"]


def test_eleventh_password_change_attempt_is_rate_limited(admin_client):
    for _ in range(10):
        response = admin_client.post(
            "/api/change-password", json={"currentPassword": "nope", "newPassword": "long-enough"}
        )
        assert response.status_code == 401

    response = admin_client.post(
        "/api/change-password", json={"currentPassword": ADMIN_PASSWORD, "newPassword": "long-enough"}
    )

    assert response.status_code == 429
    assert int(response.headers["Retry-After"]) > 0
    assert response.json()["success"] is False
