"""User registration, login and token verification."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from backend.auth.passwords import PasswordHasher
from backend.auth.tokens import JwtTokenIssuer
from backend.errors import DuplicateEmailError, UnauthorizedError
from backend.repositories.users_repository import UsersRepository
from shared.models import AuthSession, LoginRequest, PublicUser, RegisterRequest


logger = logging.getLogger(__name__)

_INVALID_CREDENTIALS = "Invalid email or password"
_INVALID_TOKEN = "Invalid or expired token"


@dataclass(slots=True)
class AuthService:
    users_repository: UsersRepository
    token_issuer: JwtTokenIssuer
    password_hasher: PasswordHasher

    def _session(self, user: PublicUser) -> AuthSession:
        return AuthSession(
            user=user,
            token=self.token_issuer.issue(user.id),
            expires_in=self.token_issuer.expires_in,
        )

    def register(self, request: RegisterRequest) -> AuthSession:
        email = request.email.lower()
        if self.users_repository.get_user_by_email(email) is not None:
            raise DuplicateEmailError()

        user = self.users_repository.create_user(
            email=email,
            password_hash=self.password_hasher.hash(request.password),
            first_name=request.first_name,
            last_name=request.last_name,
        )
        logger.info("user_registered user_id=%s", user.id)
        return self._session(user.to_public())

    def login(self, request: LoginRequest) -> AuthSession:
        user = self.users_repository.get_user_by_email(request.email.lower())
        if user is None or not self.password_hasher.verify(request.password, user.password_hash):
            logger.info("login_rejected")
            raise UnauthorizedError(_INVALID_CREDENTIALS)

        self.users_repository.touch_user(user.id)
        logger.info("user_logged_in user_id=%s", user.id)
        return self._session(user.to_public())

    def verify_token(self, token: str) -> PublicUser:
        try:
            user_id = self.token_issuer.decode(token)
        except UnauthorizedError as exc:
            raise UnauthorizedError(_INVALID_TOKEN) from exc

        user = self.users_repository.get_user_by_id(user_id)
        if user is None:
            raise UnauthorizedError(_INVALID_TOKEN)
        return user.to_public()

    def verify(self, token: str) -> UUID:
        """Token-verifier entrypoint used by the other functions in-process."""
        return self.verify_token(token).id
