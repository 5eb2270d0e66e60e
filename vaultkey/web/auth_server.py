"""
VaultKey Auth Server
====================

Short-lived localhost Flask server that drives one passkey ceremony
(registration or login) for one user and then shuts down.

Routes:
    GET  /api/health
    GET  /api/register/options
    POST /api/register/verify    body: {"response": <RegistrationResponseJSON>}
    GET  /api/login/options
    POST /api/login/verify       body: {"response": <AuthenticationResponseJSON>}

Failures are returned as ``{"message": ...}`` with status 400.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Literal, Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import BadRequest
from werkzeug.serving import make_server

from vaultkey.client import VaultKeyClient
from vaultkey.core.errors import ValidationError, VaultKeyError

AuthMode = Literal["register", "login"]

AUTH_TIMEOUT_SECONDS = 5 * 60

logger = logging.getLogger("vaultkey.web")


@dataclass(frozen=True)
class AuthServerResult:
    success: bool
    token: Optional[str] = None
    error: Optional[str] = None

    def __repr__(self) -> str:
        token = "<set>" if self.token else None
        return f"AuthServerResult(success={self.success}, token={token}, error={self.error!r})"


def _ceremony_response() -> Dict[str, Any]:
    body = request.get_json(silent=True)
    if not isinstance(body, dict) or not isinstance(body.get("response"), dict):
        raise ValidationError("Request body must contain a 'response' object")
    return body["response"]


def create_auth_app(
    client: VaultKeyClient,
    user_id: str,
    mode: AuthMode,
    on_finish: Optional[Callable[[AuthServerResult], None]] = None,
) -> Flask:
    """
    Build the Flask app for a single user's ceremony.

    ``on_finish`` receives the outcome of every verify call and of every
    failed request.
    """
    if mode not in ("register", "login"):
        raise ValidationError(f"Unknown auth mode: {mode}")

    finish = on_finish or (lambda result: None)
    app = Flask(__name__)

    @app.after_request
    def add_cors_headers(response):
        response.headers['Access-Control-Allow-Origin'] = '*'
        response.headers['Access-Control-Allow-Methods'] = 'GET, POST, OPTIONS'
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type'
        return response

    @app.route("/api/health")
    def health():
        return jsonify({"status": "ok", "mode": mode, "userId": user_id})

    @app.route("/api/register/options")
    def register_options():
        return jsonify(client.get_registration_options(user_id))

    @app.route("/api/register/verify", methods=["POST"])
    def register_verify():
        client.verify_registration(user_id, _ceremony_response())
        finish(AuthServerResult(success=True))
        return jsonify({"success": True})

    @app.route("/api/login/options")
    def login_options():
        return jsonify(client.get_authentication_options(user_id))

    @app.route("/api/login/verify", methods=["POST"])
    def login_verify():
        issued = client.verify_authentication(user_id, _ceremony_response())
        finish(AuthServerResult(success=True, token=issued.token))
        return jsonify({"success": True})

    @app.errorhandler(VaultKeyError)
    def handle_vaultkey_error(error: VaultKeyError):
        logger.warning("Auth request failed: %s", error.message)
        finish(AuthServerResult(success=False, error=error.message))
        return jsonify({"message": error.message}), 400

    @app.errorhandler(BadRequest)
    def handle_bad_request(error: BadRequest):
        message = error.description or "Bad request"
        finish(AuthServerResult(success=False, error=message))
        return jsonify({"message": message}), 400

    return app


def run_auth_server(
    client: VaultKeyClient,
    user_id: str,
    port: Optional[int] = None,
    mode: AuthMode = "login",
    timeout: float = AUTH_TIMEOUT_SECONDS,
) -> AuthServerResult:
    """
    Serve the ceremony on localhost until it finishes or times out.

    The first reported outcome wins; the server is shut down right after.
    """
    done = threading.Event()
    lock = threading.Lock()
    outcome: Dict[str, AuthServerResult] = {}

    def on_finish(result: AuthServerResult) -> None:
        with lock:
            outcome.setdefault("result", result)
        done.set()

    app = create_auth_app(client, user_id, mode, on_finish=on_finish)
    server = make_server(
        "localhost", port if port is not None else client.config.server.auth_port, app
    )
    thread = threading.Thread(target=server.serve_forever, name="vaultkey-auth", daemon=True)
    thread.start()
    logger.info("Auth server listening on http://localhost:%d (%s)", server.server_port, mode)

    try:
        if not done.wait(timeout):
            on_finish(AuthServerResult(success=False, error="Authentication timeout"))
    finally:
        server.shutdown()
        thread.join()
        server.server_close()

    return outcome["result"]
