import pytest
from fastapi.testclient import TestClient

from app.core.dependencies import get_otp_ledger, get_sms_dispatcher
from app.main import app
from app.services.otp_services.store import OtpStoreError


@pytest.fixture
def client(ledger, dispatcher):
    app.dependency_overrides[get_otp_ledger] = lambda: ledger
    app.dependency_overrides[get_sms_dispatcher] = lambda: dispatcher
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    r = client.get("/api/v1/system/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


def test_send_verify_flow(client):
    r = client.post("/api/v1/otp/send", json={"phone_number": "+1555", "purpose": "registration"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["success"] is True
    token = body["data"]["verification_token"]
    assert body["data"]["expires_at"]
    assert "482913" not in r.text

    payload = {"phone_number": "+1555", "otp": "000000", "verification_token": token, "purpose": "registration"}
    r = client.post("/api/v1/otp/verify", json=payload)
    assert r.status_code == 400
    assert r.json()["error"] == "code_mismatch"
    assert r.json()["attempts_remaining"] == 4

    payload["otp"] = "482913"
    r = client.post("/api/v1/otp/verify", json=payload)
    assert r.status_code == 200
    assert r.json()["success"] is True

    r = client.post("/api/v1/otp/verify", json=payload)
    assert r.status_code == 409
    assert r.json()["error"] == "already_verified"


def test_verify_unknown_token(client):
    r = client.post(
        "/api/v1/otp/verify",
        json={"phone_number": "+1555", "otp": "123456", "verification_token": "nope"},
    )
    assert r.status_code == 404
    assert r.json()["error"] == "invalid_request"


def test_verify_expired(client, clock):
    token = client.post("/api/v1/otp/send", json={"phone_number": "+1555"}).json()["data"]["verification_token"]
    clock.advance(minutes=6)

    r = client.post(
        "/api/v1/otp/verify",
        json={"phone_number": "+1555", "otp": "482913", "verification_token": token},
    )
    assert r.status_code == 410
    assert r.json()["error"] == "expired"


def test_verify_attempts_exhausted(client):
    token = client.post("/api/v1/otp/send", json={"phone_number": "+1555"}).json()["data"]["verification_token"]
    payload = {"phone_number": "+1555", "otp": "000000", "verification_token": token}
    for _ in range(5):
        client.post("/api/v1/otp/verify", json=payload)

    payload["otp"] = "482913"
    r = client.post("/api/v1/otp/verify", json=payload)
    assert r.status_code == 429
    assert r.json()["error"] == "attempts_exhausted"


def test_send_delivery_failure(client, dispatcher, store):
    dispatcher.succeed = False

    r = client.post("/api/v1/otp/send", json={"phone_number": "+1555", "purpose": "login"})

    assert r.status_code == 502
    assert r.json()["error"] == "delivery_failed"
    assert r.json()["details"] == "Invalid sender id"
    assert store.records == {}


def test_resend_without_token(client):
    client.post("/api/v1/otp/send", json={"phone_number": "+1555"})

    r = client.post("/api/v1/otp/resend", json={"phone_number": "+1555"})

    assert r.status_code == 200
    assert r.json()["data"]["verification_token"] == "t2"


def test_invalid_purpose_rejected(client):
    r = client.post("/api/v1/otp/send", json={"phone_number": "+1555", "purpose": "marketing"})
    assert r.status_code == 422


def test_blank_phone_rejected(client):
    r = client.post("/api/v1/otp/send", json={"phone_number": "   "})
    assert r.status_code == 422


def test_store_failure_maps_to_500(client, store):
    async def failing_find(*args, **kwargs):
        raise OtpStoreError("find", ConnectionError("mongo down"))

    store.find = failing_find

    r = client.post(
        "/api/v1/otp/verify",
        json={"phone_number": "+1555", "otp": "123456", "verification_token": "t1"},
    )
    assert r.status_code == 500
    assert r.json()["success"] is False


def test_sms_balance(client):
    r = client.get("/api/v1/sms/balance")
    assert r.status_code == 200
    assert r.json()["data"] == {"balance": "42.00"}


def test_sms_status_unknown_is_null(client):
    r = client.get("/api/v1/sms/status/123")
    assert r.status_code == 200
    assert r.json()["data"] is None
