"""Access token issuance and verification."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol
from uuid import UUID

from jose import JWTError, jwt

from backend.errors import UnauthorizedError


ALGORITHM = "HS256"
TOKEN_TYPE = "access"


class TokenVerifier(Protocol):
    def verify(self, token: str) -> UUID:
        """Return the user id a bearer token was issued for.

        Raises `UnauthorizedError` when the token cannot be validated.
        """


class JwtTokenIssuer:
    """Mint and decode HS256 access tokens carrying `{userId, type, exp}`."""

    def __init__(self, *, secret: str, expires_hours: int = 24) -> None:
        self._secret = secret
        self.expires_hours = expires_hours

    @property
    def expires_in(self) -> str:
        return f"{self.expires_hours}h"

    def issue(self, user_id: UUID, *, now: datetime | None = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        claims = {
            "userId": str(user_id),
            "type": TOKEN_TYPE,
            "iat": issued_at,
            "exp": issued_at + timedelta(hours=self.expires_hours),
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def decode(self, token: str) -> UUID:
        try:
            claims = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
        except JWTError as exc:
            raise UnauthorizedError("Invalid or expired token") from exc

        if claims.get("type") != TOKEN_TYPE:
            raise UnauthorizedError("Invalid or expired token")
        try:
            return UUID(str(claims.get("userId")))
        except ValueError as exc:
            raise UnauthorizedError("Invalid or expired token") from exc
