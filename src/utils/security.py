"""Password hashing backed by bcrypt.

This is the default ``CredentialVerifier``; the managers only ever call
``hash`` and ``verify``.
"""

import logging
from typing import Union

import bcrypt

from config import BCRYPT_ROUNDS

logger = logging.getLogger(__name__)

# bcrypt ignores everything past 72 bytes
BCRYPT_MAX_BYTES = 72


def _to_bytes(value: Union[str, bytes]) -> bytes:
    if isinstance(value, bytes):
        return value
    return str(value).encode("utf-8")


class BcryptVerifier:
    """Hashes and verifies passwords with bcrypt."""

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        """Initialize BcryptVerifier.

        Args:
            rounds: bcrypt cost factor (4-31).
        """
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain text password.

        Returns:
            Hashed password (bcrypt hash string).
        """
        password_bytes = _to_bytes(password)
        if len(password_bytes) > BCRYPT_MAX_BYTES:
            logger.warning(
                "Password exceeds %d bytes (%d bytes), truncating",
                BCRYPT_MAX_BYTES,
                len(password_bytes),
            )
            password_bytes = password_bytes[:BCRYPT_MAX_BYTES]

        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password_bytes, salt).decode("utf-8")

    def verify(self, password: str, hashed: str) -> bool:
        """Verify a password against a bcrypt hash.

        Args:
            password: Plain text password to verify.
            hashed: Bcrypt hash string to verify against.

        Returns:
            True if password matches, False otherwise.
        """
        password_bytes = _to_bytes(password)[:BCRYPT_MAX_BYTES]
        try:
            return bcrypt.checkpw(password_bytes, _to_bytes(hashed))
        except ValueError as e:
            # Malformed stored hash
            logger.error("Password verification error: %s", e)
            return False
