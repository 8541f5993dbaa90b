"""Composition root for backend services."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from backend.auth.passwords import PasswordHasher
from backend.auth.remote_auth import RemoteTokenVerifier
from backend.auth.tokens import JwtTokenIssuer, TokenVerifier
from backend.db.supabase_client import SupabaseClient, SupabaseSettings
from backend.repositories.transactions_repository import (
    InMemoryTransactionsRepository,
    SupabaseTransactionsRepository,
    TransactionsRepository,
)
from backend.repositories.users_repository import (
    InMemoryUsersRepository,
    SupabaseUsersRepository,
    UsersRepository,
)
from backend.services.auth_service import AuthService
from backend.services.transaction_service import TransactionService
from shared import config


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Services:
    """Everything the HTTP layer needs, built once and passed to the app."""

    auth_service: AuthService
    transaction_service: TransactionService
    token_verifier: TokenVerifier


def build_services(
    *,
    users_repository: UsersRepository | None = None,
    transactions_repository: TransactionsRepository | None = None,
    token_verifier: TokenVerifier | None = None,
    password_hasher: PasswordHasher | None = None,
) -> Services:
    """Build services with repository adapters.

    Supabase repositories are used when `SUPABASE_URL` and
    `SUPABASE_SERVICE_ROLE_KEY` are configured; in-memory adapters otherwise.
    Explicit arguments take precedence over configuration.
    """

    supabase_url = config.supabase_url()
    supabase_key = config.supabase_service_role_key()
    if supabase_url and supabase_key:
        supabase_client = SupabaseClient(
            settings=SupabaseSettings(
                url=supabase_url,
                service_role_key=supabase_key,
                timeout_seconds=config.http_timeout_seconds(),
            )
        )
        users_repository = users_repository or SupabaseUsersRepository(client=supabase_client)
        transactions_repository = transactions_repository or SupabaseTransactionsRepository(client=supabase_client)
        logger.info("store_backend=supabase")
    else:
        users_repository = users_repository or InMemoryUsersRepository()
        transactions_repository = transactions_repository or InMemoryTransactionsRepository()
        logger.info("store_backend=memory")

    auth_service = AuthService(
        users_repository=users_repository,
        token_issuer=JwtTokenIssuer(secret=config.jwt_secret(), expires_hours=config.jwt_expires_hours()),
        password_hasher=password_hasher or PasswordHasher(),
    )

    if token_verifier is None:
        auth_service_url = config.auth_service_url()
        if auth_service_url:
            token_verifier = RemoteTokenVerifier(
                auth_service_url=auth_service_url,
                timeout_seconds=config.http_timeout_seconds(),
            )
            logger.info("token_verifier=remote url=%s", auth_service_url)
        else:
            token_verifier = auth_service

    return Services(
        auth_service=auth_service,
        transaction_service=TransactionService(transactions_repository=transactions_repository),
        token_verifier=token_verifier,
    )
