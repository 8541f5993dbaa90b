"""Repository adapters for user credential records."""

from __future__ import annotations

from datetime import datetime, timezone
from threading import Lock
from typing import Any, Protocol
from uuid import UUID, uuid4

from backend.db.supabase_client import SupabaseClient, SupabaseRequestError
from backend.errors import BackendError, DuplicateEmailError
from shared.models import UserProfile, UserRecord


USERS_TABLE = "users"
_SELECT_COLUMNS = "id,email,password_hash,first_name,last_name,is_email_verified,profile,created_at,updated_at"
_UNIQUE_VIOLATION = "23505"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UsersRepository(Protocol):
    def get_user_by_email(self, email: str) -> UserRecord | None:
        """Return a user by lower-cased email."""

    def get_user_by_id(self, user_id: UUID) -> UserRecord | None:
        """Return a user by id."""

    def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
    ) -> UserRecord:
        """Insert a user; raise `DuplicateEmailError` when the email is taken."""

    def touch_user(self, user_id: UUID) -> None:
        """Refresh `updated_at` after a successful login."""


class InMemoryUsersRepository:
    """In-memory users repository used by tests/dev."""

    def __init__(self) -> None:
        self._users: dict[UUID, UserRecord] = {}
        self._lock = Lock()

    def get_user_by_email(self, email: str) -> UserRecord | None:
        normalized = email.lower()
        with self._lock:
            for user in self._users.values():
                if user.email == normalized:
                    return user
        return None

    def get_user_by_id(self, user_id: UUID) -> UserRecord | None:
        with self._lock:
            return self._users.get(user_id)

    def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
    ) -> UserRecord:
        now = _utcnow()
        user = UserRecord(
            id=uuid4(),
            email=email.lower(),
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            is_email_verified=False,
            profile=UserProfile(),
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            if any(existing.email == user.email for existing in self._users.values()):
                raise DuplicateEmailError()
            self._users[user.id] = user
        return user

    def touch_user(self, user_id: UUID) -> None:
        with self._lock:
            user = self._users.get(user_id)
            if user is not None:
                self._users[user_id] = user.model_copy(update={"updated_at": max(_utcnow(), user.updated_at)})


class SupabaseUsersRepository:
    """Supabase repository over `public.users` (unique index on `email`)."""

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    @staticmethod
    def _parse_row(row: dict[str, Any]) -> UserRecord:
        payload = dict(row)
        payload["profile"] = row.get("profile") or {}
        payload["is_email_verified"] = bool(row.get("is_email_verified"))
        return UserRecord.model_validate(payload)

    def _get_user_by_column(self, *, column: str, value: str) -> UserRecord | None:
        rows, _ = self._client.get_rows(
            table=USERS_TABLE,
            query={"select": _SELECT_COLUMNS, column: f"eq.{value}", "limit": 1},
            with_count=False,
        )
        if not rows:
            return None
        return self._parse_row(rows[0])

    def get_user_by_email(self, email: str) -> UserRecord | None:
        return self._get_user_by_column(column="email", value=email.lower())

    def get_user_by_id(self, user_id: UUID) -> UserRecord | None:
        return self._get_user_by_column(column="id", value=str(user_id))

    def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
    ) -> UserRecord:
        now = _utcnow().isoformat()
        payload = {
            "email": email.lower(),
            "password_hash": password_hash,
            "first_name": first_name,
            "last_name": last_name,
            "is_email_verified": False,
            "profile": UserProfile().model_dump(),
            "created_at": now,
            "updated_at": now,
        }
        try:
            rows = self._client.post_rows(table=USERS_TABLE, payload=payload)
        except SupabaseRequestError as exc:
            if exc.status_code == 409 or _UNIQUE_VIOLATION in exc.body:
                raise DuplicateEmailError() from exc
            raise
        if not rows:
            raise BackendError("Supabase insert returned no user row")
        return self._parse_row(rows[0])

    def touch_user(self, user_id: UUID) -> None:
        self._client.patch_rows(
            table=USERS_TABLE,
            query={"id": f"eq.{user_id}"},
            payload={"updated_at": _utcnow().isoformat()},
        )
