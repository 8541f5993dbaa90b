"""Transactions repository adapters.

Transactions are stored in `public.transactions`; every query issued by these
adapters carries the owner term of the `TransactionFilter` it was given.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from threading import Lock
from typing import Any, Protocol
from uuid import UUID, uuid4

from backend.db.supabase_client import SupabaseClient
from backend.errors import BackendError
from backend.services.transaction_query import PageWindow, SortSpec, TransactionFilter
from shared.models import Transaction, TransactionCreateRequest


TRANSACTIONS_TABLE = "transactions"
_SELECT_COLUMNS = "id,user_id,amount,description,category,date,type,tags,created_at,updated_at"
_POSTGREST_RESERVED = set(',.:()"\\')


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TransactionsRepository(Protocol):
    def create_transaction(self, *, user_id: UUID, request: TransactionCreateRequest) -> Transaction:
        """Insert a transaction owned by `user_id` and return the stored record."""

    def get_transaction(self, *, user_id: UUID, transaction_id: UUID) -> Transaction | None:
        """Return one transaction when it exists and belongs to `user_id`."""

    def search_transactions(
        self,
        filters: TransactionFilter,
        *,
        sort: SortSpec,
        window: PageWindow,
    ) -> tuple[list[Transaction], int]:
        """Return one page of matching transactions and the total match count."""

    def list_all_transactions(self, filters: TransactionFilter) -> list[Transaction]:
        """Return every matching transaction, newest first."""

    def update_transaction(
        self,
        *,
        user_id: UUID,
        transaction_id: UUID,
        changes: dict[str, Any],
    ) -> Transaction | None:
        """Apply a partial update and return the record after the update."""

    def delete_transaction(self, *, user_id: UUID, transaction_id: UUID) -> Transaction | None:
        """Delete one owned transaction and return it."""


class InMemoryTransactionsRepository:
    """In-memory repository used by tests and local development."""

    def __init__(self) -> None:
        self._rows: dict[UUID, Transaction] = {}
        self._lock = Lock()

    def create_transaction(self, *, user_id: UUID, request: TransactionCreateRequest) -> Transaction:
        now = _utcnow()
        transaction = Transaction(
            id=uuid4(),
            user_id=user_id,
            amount=request.amount,
            description=request.description,
            category=request.category,
            date=request.date,
            type=request.type,
            tags=list(request.tags),
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._rows[transaction.id] = transaction
        return transaction

    def get_transaction(self, *, user_id: UUID, transaction_id: UUID) -> Transaction | None:
        with self._lock:
            row = self._rows.get(transaction_id)
        if row is None or row.user_id != user_id:
            return None
        return row

    def _matching(self, filters: TransactionFilter) -> list[Transaction]:
        with self._lock:
            rows = list(self._rows.values())
        return [row for row in rows if filters.matches(row)]

    def search_transactions(
        self,
        filters: TransactionFilter,
        *,
        sort: SortSpec,
        window: PageWindow,
    ) -> tuple[list[Transaction], int]:
        rows = sorted(self._matching(filters), key=sort.key, reverse=sort.descending)
        return rows[window.skip : window.skip + window.limit], len(rows)

    def list_all_transactions(self, filters: TransactionFilter) -> list[Transaction]:
        return sorted(self._matching(filters), key=SortSpec().key, reverse=True)

    def update_transaction(
        self,
        *,
        user_id: UUID,
        transaction_id: UUID,
        changes: dict[str, Any],
    ) -> Transaction | None:
        with self._lock:
            row = self._rows.get(transaction_id)
            if row is None or row.user_id != user_id:
                return None
            updated = row.model_copy(update={**changes, "updated_at": max(_utcnow(), row.updated_at)})
            self._rows[transaction_id] = updated
        return updated

    def delete_transaction(self, *, user_id: UUID, transaction_id: UUID) -> Transaction | None:
        with self._lock:
            row = self._rows.get(transaction_id)
            if row is None or row.user_id != user_id:
                return None
            del self._rows[transaction_id]
        return row


def _quote_postgrest_value(value: str) -> str:
    if not any(char in _POSTGREST_RESERVED for char in value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _escape_like(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    # PostgREST turns every `*` into `%`; a single-character wildcard is the closest match.
    return escaped.replace("*", "_")


def _quote_array_element(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _serialize_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_serialize_value(item) for item in value]
    return value


class SupabaseTransactionsRepository:
    """Supabase repository over `public.transactions`."""

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    @staticmethod
    def _owner_query(*, user_id: UUID, transaction_id: UUID) -> list[tuple[str, str | int]]:
        return [("id", f"eq.{transaction_id}"), ("user_id", f"eq.{user_id}")]

    def _build_query(self, filters: TransactionFilter) -> list[tuple[str, str | int]]:
        query: list[tuple[str, str | int]] = [("user_id", f"eq.{filters.user_id}")]

        if filters.category is not None:
            query.append(("category", f"eq.{filters.category}"))

        if filters.type is not None:
            query.append(("type", f"eq.{filters.type.value}"))

        if filters.start_date is not None:
            query.append(("date", f"gte.{filters.start_date.isoformat()}"))

        if filters.end_date is not None:
            query.append(("date", f"lte.{filters.end_date.isoformat()}"))

        if filters.tags:
            quoted_tags = ",".join(_quote_array_element(tag) for tag in filters.tags)
            query.append(("tags", f"ov.{{{quoted_tags}}}"))

        if filters.search:
            pattern = _quote_postgrest_value(f"*{_escape_like(filters.search)}*")
            query.append(("or", f"(description.ilike.{pattern},category.ilike.{pattern})"))

        return query

    @staticmethod
    def _build_order(sort: SortSpec) -> str:
        direction = "desc" if sort.descending else "asc"
        return f"{sort.field}.{direction},created_at.{direction}"

    @staticmethod
    def _parse_row(row: dict[str, Any]) -> Transaction:
        for required in ("id", "user_id", "date", "amount"):
            if row.get(required) in (None, ""):
                raise ValueError(f"Missing required field '{required}' in transactions row")
        payload = dict(row)
        payload["amount"] = Decimal(str(row["amount"]))
        payload["tags"] = row.get("tags") or []
        return Transaction.model_validate(payload)

    def create_transaction(self, *, user_id: UUID, request: TransactionCreateRequest) -> Transaction:
        now = _utcnow()
        payload = {
            "user_id": str(user_id),
            "amount": _serialize_value(request.amount),
            "description": request.description,
            "category": request.category,
            "date": request.date.isoformat(),
            "type": request.type.value,
            "tags": list(request.tags),
            "created_at": now.isoformat(),
            "updated_at": now.isoformat(),
        }
        rows = self._client.post_rows(table=TRANSACTIONS_TABLE, payload=payload)
        if not rows:
            raise BackendError("Supabase insert returned no transaction row")
        return self._parse_row(rows[0])

    def get_transaction(self, *, user_id: UUID, transaction_id: UUID) -> Transaction | None:
        query = [
            *self._owner_query(user_id=user_id, transaction_id=transaction_id),
            ("select", _SELECT_COLUMNS),
            ("limit", 1),
        ]
        rows, _ = self._client.get_rows(table=TRANSACTIONS_TABLE, query=query, with_count=False)
        if not rows:
            return None
        return self._parse_row(rows[0])

    def search_transactions(
        self,
        filters: TransactionFilter,
        *,
        sort: SortSpec,
        window: PageWindow,
    ) -> tuple[list[Transaction], int]:
        query = [
            *self._build_query(filters),
            ("select", _SELECT_COLUMNS),
            ("order", self._build_order(sort)),
            ("limit", window.limit),
            ("offset", window.skip),
        ]
        rows, total = self._client.get_rows(table=TRANSACTIONS_TABLE, query=query, with_count=True)
        items = [self._parse_row(row) for row in rows]
        if total is None:
            total = window.skip + len(items)
        return items, total

    def list_all_transactions(self, filters: TransactionFilter) -> list[Transaction]:
        query = [
            *self._build_query(filters),
            ("select", _SELECT_COLUMNS),
            ("order", self._build_order(SortSpec())),
        ]
        rows, _ = self._client.get_rows(table=TRANSACTIONS_TABLE, query=query, with_count=False)
        return [self._parse_row(row) for row in rows]

    def update_transaction(
        self,
        *,
        user_id: UUID,
        transaction_id: UUID,
        changes: dict[str, Any],
    ) -> Transaction | None:
        payload = {name: _serialize_value(value) for name, value in changes.items()}
        payload["updated_at"] = _utcnow().isoformat()
        rows = self._client.patch_rows(
            table=TRANSACTIONS_TABLE,
            query=self._owner_query(user_id=user_id, transaction_id=transaction_id),
            payload=payload,
        )
        if not rows:
            return None
        return self._parse_row(rows[0])

    def delete_transaction(self, *, user_id: UUID, transaction_id: UUID) -> Transaction | None:
        rows = self._client.delete_rows(
            table=TRANSACTIONS_TABLE,
            query=self._owner_query(user_id=user_id, transaction_id=transaction_id),
        )
        if not rows:
            return None
        return self._parse_row(rows[0])
