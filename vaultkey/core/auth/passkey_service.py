"""
Passkey Service
===============

Registration and authentication ceremonies for WebAuthn passkeys.

Challenge generation and attestation/assertion verification are delegated to
the ``webauthn`` library. This module only decides what to verify against
and what to persist afterwards:

    registration:   options -> store challenge -> verify -> create user/passkey
    authentication: options -> store challenge -> verify -> bump counter,
                    record passkey and user login

Every ceremony failure is reported as ``AuthenticationError``.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Dict, List, Mapping, Optional

from webauthn import (
    generate_authentication_options,
    generate_registration_options,
    options_to_json,
    verify_authentication_response,
    verify_registration_response,
)
from webauthn.helpers import base64url_to_bytes, bytes_to_base64url
from webauthn.helpers.exceptions import (
    InvalidAuthenticationResponse,
    InvalidAuthenticatorDataStructure,
    InvalidCBORData,
    InvalidJSONStructure,
    InvalidPublicKeyStructure,
    InvalidRegistrationResponse,
    UnsupportedPublicKeyType,
)
from webauthn.helpers.structs import (
    AttestationConveyancePreference,
    AuthenticatorSelectionCriteria,
    AuthenticatorTransport,
    CredentialDeviceType,
    PublicKeyCredentialDescriptor,
    ResidentKeyRequirement,
    UserVerificationRequirement,
)

from vaultkey.core.auth.challenge_store import ChallengeStore
from vaultkey.core.errors import AuthenticationError
from vaultkey.core.models import Passkey
from vaultkey.db.connection import Database
from vaultkey.db.repositories.passkey_repository import PasskeyRepository
from vaultkey.db.repositories.user_repository import UserRepository
from vaultkey.security.constants import DEFAULT_AUTH_PORT, DEFAULT_RP_ID, DEFAULT_RP_NAME

# Stored values follow the WebAuthn JSON spelling
_DEVICE_TYPES: Dict[CredentialDeviceType, str] = {
    CredentialDeviceType.SINGLE_DEVICE: "singleDevice",
    CredentialDeviceType.MULTI_DEVICE: "multiDevice",
}

# Rejections and malformed client JSON; anything else is a bug and propagates
_MALFORMED = (
    InvalidJSONStructure,
    InvalidCBORData,
    InvalidAuthenticatorDataStructure,
    KeyError,
    ValueError,
)
_REGISTRATION_FAILURES = (InvalidRegistrationResponse,) + _MALFORMED
_AUTHENTICATION_FAILURES = (
    InvalidAuthenticationResponse,
    InvalidPublicKeyStructure,
    UnsupportedPublicKeyType,
) + _MALFORMED


def _descriptors(passkeys: List[Passkey]) -> List[PublicKeyCredentialDescriptor]:
    descriptors = []
    for passkey in passkeys:
        transports = []
        for name in passkey.transports or []:
            try:
                transports.append(AuthenticatorTransport(name))
            except ValueError:
                continue  # unknown to this webauthn release
        descriptors.append(
            PublicKeyCredentialDescriptor(
                id=base64url_to_bytes(passkey.credential_id),
                transports=transports or None,
            )
        )
    return descriptors


def _options_dict(options: Any) -> Dict[str, Any]:
    return json.loads(options_to_json(options))


class PasskeyService:
    """
    WebAuthn ceremonies bound to the VaultKey store.

    Usage:
        service = PasskeyService(db, ChallengeStore())
        options = service.generate_registration_options("alice")
        # ... browser runs navigator.credentials.create(options) ...
        passkey = service.verify_registration("alice", credential_json)
    """

    __slots__ = ("_users", "_passkeys", "_challenges", "_rp_id", "_rp_name", "_origin", "_log")

    def __init__(
        self,
        db: Database,
        challenges: ChallengeStore,
        rp_id: str = DEFAULT_RP_ID,
        rp_name: str = DEFAULT_RP_NAME,
        origin: Optional[str] = None,
    ) -> None:
        self._users = UserRepository(db)
        self._passkeys = PasskeyRepository(db)
        self._challenges = challenges
        self._rp_id = rp_id
        self._rp_name = rp_name
        self._origin = origin or f"http://localhost:{DEFAULT_AUTH_PORT}"
        self._log = logging.getLogger("vaultkey.passkey")

    @property
    def origin(self) -> str:
        return self._origin

    def generate_registration_options(self, user_id: str) -> Dict[str, Any]:
        """Create registration options and remember the challenge for the user."""
        existing = (
            self._passkeys.list_for_user(user_id)
            if self._users.get_by_id(user_id) is not None
            else []
        )

        options = generate_registration_options(
            rp_id=self._rp_id,
            rp_name=self._rp_name,
            user_name=user_id,
            user_id=user_id.encode("utf-8"),
            attestation=AttestationConveyancePreference.NONE,
            exclude_credentials=_descriptors(existing),
            authenticator_selection=AuthenticatorSelectionCriteria(
                resident_key=ResidentKeyRequirement.PREFERRED,
                user_verification=UserVerificationRequirement.PREFERRED,
            ),
        )

        self._challenges.store(user_id, options.challenge)
        return _options_dict(options)

    def verify_registration(self, user_id: str, response: Mapping[str, Any]) -> Passkey:
        """
        Verify a registration response and persist the new passkey.

        The user is created on their first successful registration.

        Raises:
            AuthenticationError: If the challenge is missing/expired or the
                attestation does not verify
        """
        expected_challenge = self._challenges.consume(user_id)
        if expected_challenge is None:
            raise AuthenticationError("Challenge not found or expired")

        try:
            verification = verify_registration_response(
                credential=dict(response),
                expected_challenge=expected_challenge,
                expected_rp_id=self._rp_id,
                expected_origin=self._origin,
            )
        except _REGISTRATION_FAILURES as e:
            self._log.warning("Passkey registration rejected for user %s", user_id)
            raise AuthenticationError("Registration verification failed") from e

        if self._users.get_by_id(user_id) is None:
            self._users.create(user_id)
            self._log.info("Created user %s", user_id)

        transports = (response.get("response") or {}).get("transports")
        passkey = self._passkeys.create(
            user_id=user_id,
            credential_id=bytes_to_base64url(verification.credential_id),
            public_key=base64.b64encode(verification.credential_public_key).decode("ascii"),
            counter=verification.sign_count,
            device_type=_DEVICE_TYPES.get(verification.credential_device_type, "singleDevice"),
            backed_up=bool(verification.credential_backed_up),
            transports=list(transports) if transports else None,
        )
        self._log.info("Registered passkey for user %s", user_id)
        return passkey

    def generate_authentication_options(self, user_id: str) -> Dict[str, Any]:
        """
        Create authentication options for a registered user.

        Raises:
            AuthenticationError: If the user is unknown or has no passkeys
        """
        if self._users.get_by_id(user_id) is None:
            raise AuthenticationError("User not found")

        passkeys = self._passkeys.list_for_user(user_id)
        if not passkeys:
            raise AuthenticationError("No passkeys registered")

        options = generate_authentication_options(
            rp_id=self._rp_id,
            allow_credentials=_descriptors(passkeys),
            user_verification=UserVerificationRequirement.PREFERRED,
        )

        self._challenges.store(user_id, options.challenge)
        return _options_dict(options)

    def verify_authentication(self, user_id: str, response: Mapping[str, Any]) -> Passkey:
        """
        Verify an authentication response.

        On success the passkey counter and last-used time and the user's
        last login are updated.

        Returns:
            The passkey that signed the assertion

        Raises:
            AuthenticationError: On any ceremony failure
        """
        expected_challenge = self._challenges.consume(user_id)
        if expected_challenge is None:
            raise AuthenticationError("Challenge not found or expired")

        credential_id = response.get("id")
        passkey = self._passkeys.get_by_credential_id(credential_id) if credential_id else None
        if passkey is None:
            raise AuthenticationError("Passkey not found")

        if passkey.user_id != user_id:
            raise AuthenticationError("Passkey does not belong to user")

        try:
            verification = verify_authentication_response(
                credential=dict(response),
                expected_challenge=expected_challenge,
                expected_rp_id=self._rp_id,
                expected_origin=self._origin,
                credential_public_key=base64.b64decode(passkey.public_key),
                credential_current_sign_count=passkey.counter,
            )
        except _AUTHENTICATION_FAILURES as e:
            self._log.warning("Passkey authentication rejected for user %s", user_id)
            raise AuthenticationError("Authentication verification failed") from e

        self._passkeys.update_counter(passkey.id, verification.new_sign_count)
        self._passkeys.update_last_used(passkey.id)
        self._users.update_last_login(user_id)
        self._log.info("User %s authenticated with passkey", user_id)

        passkey.counter = verification.new_sign_count
        return passkey
