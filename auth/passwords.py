"""
auth/passwords.py -- Password hashing (bcrypt, direct usage, no passlib wrapper).

Bcrypt is the right choice for low-entropy secrets (passwords) because its
cost factor makes brute-force expensive. The salt is generated per call and
embedded in the hash string, so verify_password() needs nothing but the
stored value.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

Layer rule: no imports from api/ or tasks/.
"""

from __future__ import annotations

import bcrypt

DEFAULT_ROUNDS = 12


def hash_password(plain: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Return a bcrypt hash of the given plaintext password.

    Passwords longer than 72 bytes are silently truncated by bcrypt (a known
    bcrypt limitation). AuthService caps passwords at 128 characters and the
    encode below truncates explicitly so bcrypt 4.x never raises on long input.
    """
    return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Fails closed: a missing or malformed stored hash returns False instead of
    raising into the login flow.
    """
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:72]


class PasswordHasher:
    """Binds a work factor to the hash/verify pair.

    AuthService takes one of these so the cost factor comes from AuthConfig
    rather than a module global. The dummy hash is computed once per hasher
    and is used to equalize login timing for unknown emails [C1].
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self.rounds = rounds
        # Computed up front so the first unknown-email login is not measurably slower.
        self._dummy_hash = hash_password("tasktracker_timing_dummy", rounds)

    def hash(self, plain: str) -> str:
        return hash_password(plain, self.rounds)

    def verify(self, plain: str, hashed: str | None) -> bool:
        return verify_password(plain, hashed)

    def burn(self, plain: str) -> None:
        """Run a full bcrypt verification against a throwaway hash.

        Called when the email is unknown so the response takes as long as a
        wrong-password response. The result is discarded.
        """
        verify_password(plain, self._dummy_hash)
