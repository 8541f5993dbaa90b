"""Owner-scoped transaction CRUD and listing."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from backend.errors import NotFoundError, ValidationFailedError
from backend.repositories.transactions_repository import TransactionsRepository
from backend.services.transaction_query import (
    TransactionFilter,
    build_page_window,
    build_pagination,
    build_sort_spec,
    build_transaction_filter,
)
from shared.models import (
    Transaction,
    TransactionCreateRequest,
    TransactionPage,
    TransactionQueryParams,
    TransactionUpdateRequest,
)


logger = logging.getLogger(__name__)

_NOT_FOUND = "Transaction not found"


def parse_transaction_id(raw_id: str) -> UUID:
    try:
        return UUID(raw_id.strip())
    except (AttributeError, ValueError) as exc:
        raise ValidationFailedError("Invalid transaction ID") from exc


@dataclass(slots=True)
class TransactionService:
    transactions_repository: TransactionsRepository

    def create(self, user_id: UUID, request: TransactionCreateRequest) -> Transaction:
        transaction = self.transactions_repository.create_transaction(user_id=user_id, request=request)
        logger.info("transaction_created user_id=%s transaction_id=%s", user_id, transaction.id)
        return transaction

    def get(self, user_id: UUID, transaction_id: UUID) -> Transaction:
        transaction = self.transactions_repository.get_transaction(user_id=user_id, transaction_id=transaction_id)
        if transaction is None:
            raise NotFoundError(_NOT_FOUND)
        return transaction

    def search(self, user_id: UUID, params: TransactionQueryParams) -> TransactionPage:
        filters = build_transaction_filter(user_id, params)
        window = build_page_window(params)
        items, total = self.transactions_repository.search_transactions(
            filters,
            sort=build_sort_spec(params),
            window=window,
        )
        return TransactionPage(items=items, pagination=build_pagination(window, total))

    def list_all(self, user_id: UUID) -> list[Transaction]:
        return self.transactions_repository.list_all_transactions(TransactionFilter(user_id=user_id))

    def update(self, user_id: UUID, transaction_id: UUID, request: TransactionUpdateRequest) -> Transaction:
        transaction = self.transactions_repository.update_transaction(
            user_id=user_id,
            transaction_id=transaction_id,
            changes=request.changes(),
        )
        if transaction is None:
            raise NotFoundError(_NOT_FOUND)
        logger.info(
            "transaction_updated user_id=%s transaction_id=%s fields=%s",
            user_id,
            transaction_id,
            ",".join(sorted(request.model_fields_set)),
        )
        return transaction

    def delete(self, user_id: UUID, transaction_id: UUID) -> Transaction:
        transaction = self.transactions_repository.delete_transaction(user_id=user_id, transaction_id=transaction_id)
        if transaction is None:
            raise NotFoundError(_NOT_FOUND)
        logger.info("transaction_deleted user_id=%s transaction_id=%s", user_id, transaction_id)
        return transaction
