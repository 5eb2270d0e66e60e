"""
Tests for the local passkey auth server routes.
"""
from datetime import datetime, timezone

import pytest

from vaultkey.core.errors import AuthenticationError, ValidationError
from vaultkey.core.models import IssuedToken
from vaultkey.web import AuthServerResult, create_auth_app, run_auth_server


@pytest.fixture
def results():
    return []


def make_app(client, mode, results):
    app = create_auth_app(client, "alice", mode, on_finish=results.append)
    app.testing = True
    return app.test_client()


class TestRoutes:
    def test_health(self, client, results):
        http = make_app(client, "login", results)
        response = http.get("/api/health")
        assert response.status_code == 200
        assert response.get_json() == {"status": "ok", "mode": "login", "userId": "alice"}
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_registration_options(self, client, results):
        http = make_app(client, "register", results)
        response = http.get("/api/register/options")
        assert response.status_code == 200
        body = response.get_json()
        assert body["user"]["name"] == "alice"
        assert body["challenge"]
        assert results == []

    def test_verify_requires_response_object(self, client, results):
        http = make_app(client, "register", results)
        response = http.post("/api/register/verify", json={"credential": {}})
        assert response.status_code == 400
        assert response.get_json() == {"message": "Request body must contain a 'response' object"}
        assert results == [
            AuthServerResult(success=False, error="Request body must contain a 'response' object")
        ]

    def test_register_verify_without_challenge(self, client, results):
        http = make_app(client, "register", results)
        response = http.post("/api/register/verify", json={"response": {"id": "x"}})
        assert response.status_code == 400
        assert response.get_json()["message"] == "Challenge not found or expired"
        assert results[0].success is False

    def test_register_verify_success(self, monkeypatch, client, results):
        monkeypatch.setattr(client, "verify_registration", lambda user_id, response: None)
        http = make_app(client, "register", results)
        response = http.post("/api/register/verify", json={"response": {"id": "x"}})
        assert response.status_code == 200
        assert response.get_json() == {"success": True}
        assert results == [AuthServerResult(success=True)]

    def test_login_options_for_unknown_user(self, client, results):
        http = make_app(client, "login", results)
        response = http.get("/api/login/options")
        assert response.status_code == 400
        assert response.get_json() == {"message": "User not found"}

    def test_login_verify_returns_token_to_caller_only(self, monkeypatch, client, results):
        issued = IssuedToken(token="a" * 64, token_hash="b" * 64, expires_at=datetime.now(timezone.utc))
        monkeypatch.setattr(client, "verify_authentication", lambda user_id, response: issued)
        http = make_app(client, "login", results)

        response = http.post("/api/login/verify", json={"response": {"id": "cred"}})

        assert response.get_json() == {"success": True}
        assert "a" * 64 not in response.get_data(as_text=True)
        assert results == [AuthServerResult(success=True, token="a" * 64)]

    def test_login_verify_failure(self, monkeypatch, client, results):
        def reject(user_id, response):
            raise AuthenticationError("Authentication verification failed")

        monkeypatch.setattr(client, "verify_authentication", reject)
        http = make_app(client, "login", results)
        response = http.post("/api/login/verify", json={"response": {"id": "cred"}})
        assert response.status_code == 400
        assert results[0].error == "Authentication verification failed"

    def test_unknown_mode(self, client):
        with pytest.raises(ValidationError):
            create_auth_app(client, "alice", "logout")

    def test_result_repr_hides_token(self):
        assert "secret-token" not in repr(AuthServerResult(success=True, token="secret-token"))


class TestRunAuthServer:
    def test_timeout(self, client):
        result = run_auth_server(client, "alice", port=0, mode="login", timeout=0.2)
        assert result == AuthServerResult(success=False, error="Authentication timeout")
