"""
security helpers:
- Argon2 password hashing via argon2-cffi
- SHA-256 digests for refresh tokens kept at rest
- JTI generation for token identifiers
"""
from __future__ import annotations

import hashlib
import logging
import uuid

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from services.errors import CredentialError

logger = logging.getLogger(__name__)


class CredentialHasher:
    """
    One-way password hashing. Every hash() call draws a fresh salt, so two hashes
    of the same password differ while both verify.

    `time_cost` is the cost factor; memory and parallelism follow argon2 defaults
    unless configured.
    """

    def __init__(self, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4):
        self._ph = PasswordHasher(time_cost=time_cost, memory_cost=memory_cost, parallelism=parallelism)

    def hash(self, plaintext: str) -> str:
        """Hash a plaintext password using Argon2"""
        return self._ph.hash(plaintext)

    def verify(self, plaintext: str, password_hash: str) -> bool:
        """
        Verify a plaintext password against a stored hash.
        Returns False on mismatch or any verification failure; a malformed
        stored hash raises CredentialError.
        """
        try:
            return self._ph.verify(password_hash, plaintext)
        except VerifyMismatchError:
            return False
        except InvalidHashError as exc:
            raise CredentialError() from exc
        except (VerificationError, TypeError) as exc:
            logger.warning("Password verification failed: %s", exc.__class__.__name__)
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        return self._ph.check_needs_rehash(password_hash)


def digest_token(token: str) -> str:
    """SHA-256 hex digest of a token; only digests are persisted."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())
