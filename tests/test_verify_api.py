from urllib.parse import urlsplit

import pytest


@pytest.fixture
def approved(client, super_headers, record):
    resp = client.post("/api/v1/certificates/", json=record, headers=super_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.parametrize(
    "path",
    [
        "/api/v1/verify/DARE/AIR/LP/25-26/001",
        "/api/v1/verify/DARE/AIR/LP/25-26-001",
        "/api/v1/verify/DARE%2FAIR%2FLP%2F25-26%2F001",
        "/api/v1/verify?certificate_no=dare-air-lp-25-26-001",
        "/api/v1/verify?certificate_no=%20DARE/AIR/LP/25-26/001%20",
    ],
)
def test_public_verification(client, approved, path):
    resp = client.get(path)
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["certificate_no"] == "DARE/AIR/LP/25-26/001"
    assert body["name"] == "Asha Verma"
    assert "phone" not in body


def test_qr_code_url_resolves(client, approved):
    url = urlsplit(approved["qr_code_url"])
    assert url.path == "/verify/DARE%2FAIR%2FLP%2F25-26%2F001"
    resp = client.get(url.path)
    assert resp.status_code == 200, resp.text
    assert resp.json()["certificate_no"] == "DARE/AIR/LP/25-26/001"


def test_root_verify_query(client, approved):
    resp = client.get("/verify?certificate_no=DARE/AIR/LP/25-26/001")
    assert resp.status_code == 200, resp.text


def test_pending_certificate_is_not_public(client, admin_headers, record):
    client.post("/api/v1/certificates/", json=record, headers=admin_headers)
    resp = client.get("/api/v1/verify/DARE/AIR/LP/25-26/001")
    assert resp.status_code == 404
    assert resp.json()["code"] == "NOT_FOUND"


def test_blank_number(client):
    resp = client.get("/api/v1/verify?certificate_no=")
    assert resp.status_code == 422
    assert resp.json()["code"] == "VALIDATION_ERROR"


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}
