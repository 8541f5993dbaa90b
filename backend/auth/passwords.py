"""Password hashing backed by bcrypt."""

from __future__ import annotations

from dataclasses import dataclass

import bcrypt


# bcrypt only reads the first 72 bytes.
_MAX_PASSWORD_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_MAX_PASSWORD_BYTES]


@dataclass(frozen=True, slots=True)
class PasswordHasher:
    rounds: int = 12

    def hash(self, password: str) -> str:
        return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
        except ValueError:
            # Malformed stored hash.
            return False
