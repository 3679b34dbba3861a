from __future__ import annotations

import re

import pytest

from src.employee_registry.employee_registry.main import create_app

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
IDENTIFIER = re.compile(r"^ART-\d{2}-ENG-000001-[0-8]$")


@pytest.fixture
def app():
    app = create_app("config.testing")
    app.config.update(TESTING=True)
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def post_ann(client, **extra):
    body = {"firstName": "Ann", "lastName": "Lee", "department": "Engineering", "email": "ann@x.io"}
    body.update(extra)
    return client.post("/api/employees", json=body)


def test_create_returns_identifier_and_proofs(client):
    resp = post_ann(client)

    assert resp.status_code == 201
    data = resp.get_json()
    assert data["success"] is True
    assert data["partial"] is False
    assert IDENTIFIER.match(data["employee_id"])
    assert data["verify_url"] == f"http://registry.test/verify/{data['employee_id']}"
    assert data["qr_data_url"].startswith("data:image/png;base64,")
    assert data["barcode_data_url"].startswith("data:image/png;base64,")
    assert data["employee"]["email"] == "ann@x.io"
    assert "photo_ref" not in data["employee"]


def test_create_accepts_form_posts(client):
    resp = client.post("/api/employees", data={"first_name": "Ann", "last_name": "Lee", "department": "eng"})

    assert resp.status_code == 201
    assert IDENTIFIER.match(resp.get_json()["employee_id"])


def test_missing_name_is_a_validation_error(client):
    resp = client.post("/api/employees", json={"first_name": "Ann"})

    assert resp.status_code == 400
    assert resp.get_json() == {"success": False, "error": "last_name is required", "category": "validation"}


def test_duplicate_is_reported_with_matched_field(client):
    post_ann(client)

    resp = post_ann(client, firstName="Someone", email="ANN@X.IO")

    assert resp.status_code == 409
    data = resp.get_json()
    assert data["category"] == "duplicate"
    assert data["field"] == "email"
    assert "Someone" not in data["error"]


def test_get_update_delete_lifecycle(client):
    employee_id = post_ann(client).get_json()["employee_id"]

    got = client.get(f"/api/employees/{employee_id}")
    assert got.status_code == 200
    assert got.get_json()["employee"]["identifier"] == employee_id

    updated = client.put(f"/api/employees/{employee_id}", json={"position": "Lead", "department": "Sales"})
    assert updated.status_code == 200
    assert updated.get_json()["employee"]["identifier"] == employee_id
    assert updated.get_json()["employee"]["position"] == "Lead"

    deleted = client.delete(f"/api/employees/{employee_id}")
    assert deleted.status_code == 200
    assert client.get(f"/api/employees/{employee_id}").status_code == 404


def test_unknown_identifier_is_not_found(client):
    resp = client.get("/api/employees/ART-25-ENG-000001-4")

    assert resp.status_code == 404
    assert resp.get_json()["category"] == "not_found"


def test_list_searches_and_clamps(client):
    post_ann(client)
    post_ann(client, firstName="Bob", email="bob@x.io")

    data = client.get("/api/employees?q=bob&limit=500&offset=-3").get_json()
    assert data["count"] == 1
    assert data["limit"] == 200
    assert data["offset"] == 0
    assert data["employees"][0]["first_name"] == "Bob"
    assert data["employees"][0]["verify_url"].startswith("http://registry.test/verify/")

    assert client.get("/api/employees?limit=abc").status_code == 400


def test_qr_and_barcode_downloads(client):
    employee_id = post_ann(client).get_json()["employee_id"]

    qr = client.get(f"/api/employees/{employee_id}/qr")
    bar = client.get(f"/api/employees/{employee_id}/barcode")

    assert qr.status_code == 200
    assert qr.mimetype == "image/png"
    assert qr.data.startswith(PNG_SIGNATURE)
    assert f"{employee_id}-qr.png" in qr.headers["Content-Disposition"]
    assert bar.data.startswith(PNG_SIGNATURE)


def test_verify_page_escapes_fields(client):
    employee_id = post_ann(client, address="<script>alert(1)</script>").get_json()["employee_id"]

    resp = client.get(f"/verify/{employee_id}")

    assert resp.status_code == 200
    html = resp.get_data(as_text=True)
    assert "Ann Lee" in html
    assert employee_id in html
    assert "<script>alert(1)</script>" not in html
    assert "&lt;script&gt;" in html


def test_verify_page_for_unknown_identifier(client):
    resp = client.get("/verify/ART-25-ENG-000404-2")

    assert resp.status_code == 404
    assert "Employee not found" in resp.get_data(as_text=True)


def test_base_url_falls_back_to_forwarded_headers(app, client):
    app.config["PUBLIC_BASE_URL"] = ""

    resp = client.post(
        "/api/employees",
        json={"first_name": "Ann", "last_name": "Lee", "department": "Engineering"},
        headers={"X-Forwarded-Proto": "https", "X-Forwarded-Host": "ids.example.com"},
    )

    assert resp.get_json()["verify_url"].startswith("https://ids.example.com/verify/")
