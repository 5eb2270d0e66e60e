"""
Web module - local passkey auth server.
"""

from vaultkey.web.auth_server import AuthServerResult, create_auth_app, run_auth_server

__all__ = ["AuthServerResult", "create_auth_app", "run_auth_server"]
