"""Admin credential checks and password rotation.

There is exactly one admin. The username comes from configuration and the
bcrypt hash of the password lives in the document store under
``adminPassword``.
"""

from __future__ import annotations

import hmac
import logging

from ..core.errors import AuthenticationFailed, RequestValidationFailed
from ..core.security import hash_password, is_password_hash, verify_password
from ..db.store import JsonDocumentStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class AuthGate:
    def __init__(self, store: JsonDocumentStore, *, username: str, bcrypt_rounds: int = 10) -> None:
        self.store = store
        self.username = username
        self.bcrypt_rounds = bcrypt_rounds
        # Checked when the username is wrong so both failure paths cost one
        # bcrypt verification.
        self._dummy_hash = hash_password("not-the-admin-password", rounds=bcrypt_rounds)

    def ensure_password_hashed(self) -> bool:
        """Upgrade a plaintext password left in the store to a bcrypt hash.

        Returns ``True`` when the store was rewritten.
        """

        current = self._stored_hash()
        if not current or is_password_hash(current):
            return False
        logger.info("Plaintext password found. Hashing and updating database.")
        hashed = hash_password(current, rounds=self.bcrypt_rounds)
        with self.store.transaction() as document:
            document["adminPassword"] = hashed
        return True

    def _stored_hash(self) -> str:
        return self.store.read().get("adminPassword") or ""

    def sign_in(self, username: str, password: str) -> None:
        """Raise :class:`AuthenticationFailed` unless both factors match."""

        username_ok = hmac.compare_digest((username or "").encode("utf-8"), self.username.encode("utf-8"))
        stored = self._stored_hash() if username_ok else self._dummy_hash
        password_ok = verify_password(password or "", stored)
        if not (username_ok and password_ok):
            logger.info("Authentication failed.")
            raise AuthenticationFailed()
        logger.info("Authentication successful.")

    def change_password(self, current_password: str, new_password: str) -> None:
        if not current_password or not new_password:
            raise RequestValidationFailed("Current and new passwords are required.")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise RequestValidationFailed(
                f"New password must be at least {MIN_PASSWORD_LENGTH} characters long."
            )
        if not verify_password(current_password, self._stored_hash()):
            raise AuthenticationFailed("Incorrect current password.")

        hashed = hash_password(new_password, rounds=self.bcrypt_rounds)
        with self.store.transaction() as document:
            document["adminPassword"] = hashed
        logger.info("Admin password changed.")
