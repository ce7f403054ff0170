def _pending(client, headers, record, **overrides):
    resp = client.post("/api/v1/certificates/", json={**record, **overrides}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_admin_cannot_approve(client, admin_headers, record):
    cert = _pending(client, admin_headers, record)
    assert client.get("/api/v1/approvals/", headers=admin_headers).status_code == 403
    assert client.post(f"/api/v1/approvals/{cert['id']}/approve", headers=admin_headers).status_code == 403


def test_pending_queue_and_approve(client, admin_headers, super_headers, record):
    cert = _pending(client, admin_headers, record)

    queue = client.get("/api/v1/approvals/", headers=super_headers).json()
    assert [c["id"] for c in queue] == [cert["id"]]

    resp = client.post(f"/api/v1/approvals/{cert['id']}/approve", headers=super_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "approved"
    assert client.get("/api/v1/approvals/", headers=super_headers).json() == []


def test_reject_then_approve_is_invalid(client, admin_headers, super_headers, record):
    cert = _pending(client, admin_headers, record)
    assert client.post(f"/api/v1/approvals/{cert['id']}/reject", headers=super_headers).json()["status"] == "rejected"

    resp = client.post(f"/api/v1/approvals/{cert['id']}/approve", headers=super_headers)
    assert resp.status_code == 409
    assert resp.json()["code"] == "INVALID_TRANSITION"


def test_unknown_certificate(client, super_headers):
    resp = client.post("/api/v1/approvals/999/approve", headers=super_headers)
    assert resp.status_code == 404


def test_bulk_approve_skips_unknown_and_decided(client, admin_headers, super_headers, record):
    a = _pending(client, admin_headers, record)
    b = _pending(client, admin_headers, record, roll_no="21CS099")
    c = _pending(client, admin_headers, record, roll_no="21CS100")
    client.post(f"/api/v1/approvals/{c['id']}/reject", headers=super_headers)

    resp = client.post("/api/v1/approvals/approve", json={"ids": [a["id"], b["id"], c["id"], 999]}, headers=super_headers)
    assert resp.status_code == 200
    assert resp.json() == {"approved": [a["id"], b["id"]], "skipped": [c["id"], 999]}


def test_bulk_approve_needs_ids(client, super_headers):
    assert client.post("/api/v1/approvals/approve", json={"ids": []}, headers=super_headers).status_code == 422
