"""
Integration tests for the email verification endpoints.

Tests:
- Send / resend codes (the code is never in the response)
- Verify success and each failure verdict
- Status and revoke endpoints
- Infrastructure failures mapped to 502/503
"""

from datetime import timedelta

from storefront.api.deps import get_verification_service
from storefront.core import verification as verification_module
from storefront.core.exceptions import DeliveryFailed, StorageUnavailable
from main import app

EMAIL = "buyer@example.com"


def send_code(client, email=EMAIL):
    return client.post("/api/v1/auth/send-verification-code", json={"email": email})


class TestSendCode:
    """Test send and resend endpoints"""

    def test_send_code(self, client, notifier):
        response = send_code(client)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["expires_in_minutes"] == 10
        sent_code = notifier.last_code_for(EMAIL)
        assert sent_code not in response.text

    def test_send_code_invalid_email(self, client):
        response = send_code(client, "not-an-email")

        assert response.status_code == 422

    def test_resend_invalidates_previous_code(self, client, notifier, monkeypatch):
        codes = iter(["111111", "222222"])
        monkeypatch.setattr(verification_module, "generate_verification_code", lambda length: next(codes))
        send_code(client)

        response = client.post("/api/v1/auth/resend-verification-code", json={"email": EMAIL})

        assert response.status_code == 200
        assert [code for _, code in notifier.sent] == ["111111", "222222"]
        verify = client.post("/api/v1/auth/verify-email", json={"email": EMAIL, "code": "111111"})
        assert verify.status_code == 400
        assert verify.json()["detail"]["status"] == "no_active_code"


class TestVerifyEmail:
    """Test verify endpoint"""

    def test_verify_success(self, client, notifier):
        send_code(client)

        response = client.post(
            "/api/v1/auth/verify-email",
            json={"email": EMAIL, "code": notifier.last_code_for(EMAIL)}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "verified"
        assert response.json()["success"] is True

    def test_verify_wrong_code(self, client, notifier):
        send_code(client)
        wrong = "100000" if notifier.last_code_for(EMAIL) != "100000" else "100001"

        response = client.post("/api/v1/auth/verify-email", json={"email": EMAIL, "code": wrong})

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["status"] == "invalid"
        assert detail["attempts_remaining"] == 2

    def test_verify_without_code_sent(self, client):
        response = client.post("/api/v1/auth/verify-email", json={"email": EMAIL, "code": "123456"})

        assert response.status_code == 400
        assert response.json()["detail"]["status"] == "no_active_code"

    def test_verify_expired(self, client, notifier, clock):
        send_code(client)
        clock.advance(timedelta(minutes=11))

        response = client.post(
            "/api/v1/auth/verify-email",
            json={"email": EMAIL, "code": notifier.last_code_for(EMAIL)}
        )

        assert response.status_code == 400
        assert response.json()["detail"]["status"] == "expired"

    def test_verify_non_numeric_code(self, client):
        response = client.post("/api/v1/auth/verify-email", json={"email": EMAIL, "code": "12ab56"})

        assert response.status_code == 422

    def test_verify_code_longer_than_any_issued_code(self, client):
        response = client.post("/api/v1/auth/verify-email", json={"email": EMAIL, "code": "1" * 13})

        assert response.status_code == 422


class TestStatusAndRevoke:
    """Test status and revoke endpoints"""

    def test_status_pending(self, client):
        send_code(client)

        response = client.get("/api/v1/auth/verification-status", params={"email": EMAIL})

        assert response.status_code == 200
        data = response.json()
        assert data["pending"] is True
        assert data["attempts_remaining"] == 3

    def test_status_none(self, client):
        response = client.get("/api/v1/auth/verification-status", params={"email": EMAIL})

        assert response.json()["pending"] is False

    def test_revoke_requires_email_query_parameter(self, client):
        response = client.delete("/api/v1/auth/verification-code")

        assert response.status_code == 422

    def test_revoke(self, client):
        send_code(client)

        response = client.delete("/api/v1/auth/verification-code", params={"email": EMAIL})

        assert response.status_code == 200
        assert response.json()["revoked"] is True
        status = client.get("/api/v1/auth/verification-status", params={"email": EMAIL})
        assert status.json()["pending"] is False


class BrokenService:
    expiry_window = timedelta(minutes=10)

    def __init__(self, error):
        self.error = error

    def issue(self, identifier):
        raise self.error

    def verify(self, identifier, code):
        raise self.error


class TestInfrastructureErrors:
    """Test error mapping for collaborator failures"""

    def test_storage_unavailable_returns_503(self, client):
        app.dependency_overrides[get_verification_service] = lambda: BrokenService(StorageUnavailable("down"))

        response = client.post("/api/v1/auth/verify-email", json={"email": EMAIL, "code": "123456"})

        assert response.status_code == 503

    def test_delivery_failed_returns_502(self, client):
        app.dependency_overrides[get_verification_service] = lambda: BrokenService(DeliveryFailed(EMAIL, "bounce"))

        response = send_code(client)

        assert response.status_code == 502
        assert "Could not send verification code" in response.json()["detail"]


class TestHealth:
    """Test health endpoints"""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root(self, client):
        assert client.get("/").json()["status"] == "healthy"
