"""Tests for owner-scoped transaction CRUD and listing."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from backend.errors import NotFoundError, ValidationFailedError
from backend.repositories.transactions_repository import InMemoryTransactionsRepository
from backend.services.transaction_service import TransactionService, parse_transaction_id
from shared.models import (
    TransactionCreateRequest,
    TransactionQueryParams,
    TransactionType,
    TransactionUpdateRequest,
)
from tests.fakes import USER_A, USER_B, make_create_request


def _build_service() -> TransactionService:
    return TransactionService(transactions_repository=InMemoryTransactionsRepository())


def test_search_applies_filters_and_reports_pagination() -> None:
    service = _build_service()
    service.create(USER_A, make_create_request(category="food", type=TransactionType.EXPENSE))
    service.create(USER_A, make_create_request(category="food", type=TransactionType.INCOME))
    service.create(USER_A, make_create_request(category="housing"))
    service.create(USER_B, make_create_request(category="food"))

    page = service.search(USER_A, TransactionQueryParams.model_validate({"category": "food", "type": "expense"}))

    assert len(page.items) == 1
    assert page.items[0].category == "food"
    assert page.items[0].type == TransactionType.EXPENSE
    assert page.pagination.model_dump() == {"page": 1, "limit": 20, "total": 1, "pages": 1}


def test_search_beyond_last_page_is_empty_but_reports_total() -> None:
    service = _build_service()
    for _ in range(3):
        service.create(USER_A, make_create_request())

    page = service.search(USER_A, TransactionQueryParams.model_validate({"page": "5", "limit": "2"}))

    assert page.items == []
    assert page.pagination.total == 3
    assert page.pagination.pages == 2


def test_search_sorts_by_amount_ascending() -> None:
    service = _build_service()
    for amount in ("30.00", "10.00", "20.00"):
        service.create(USER_A, make_create_request(amount=amount))

    page = service.search(USER_A, TransactionQueryParams.model_validate({"sortBy": "amount", "sortOrder": "asc"}))

    assert [item.amount for item in page.items] == [Decimal("10.00"), Decimal("20.00"), Decimal("30.00")]


def test_get_other_users_transaction_is_not_found() -> None:
    service = _build_service()
    created = service.create(USER_A, make_create_request())

    with pytest.raises(NotFoundError, match="Transaction not found"):
        service.get(USER_B, created.id)


def test_partial_update_changes_only_supplied_fields() -> None:
    service = _build_service()
    created = service.create(USER_A, make_create_request(description="Rent", tags=["home"]))

    updated = service.update(USER_A, created.id, TransactionUpdateRequest.model_validate({"date": "2025-02-01"}))

    assert updated.date == date(2025, 2, 1)
    assert updated.description == "Rent"
    assert updated.tags == ["home"]
    assert updated.updated_at >= created.updated_at


def test_update_missing_transaction_is_not_found() -> None:
    service = _build_service()

    with pytest.raises(NotFoundError):
        service.update(USER_A, uuid4(), TransactionUpdateRequest.model_validate({"description": "x"}))


def test_delete_twice_reports_not_found_second_time() -> None:
    service = _build_service()
    created = service.create(USER_A, make_create_request())

    assert service.delete(USER_A, created.id).id == created.id
    with pytest.raises(NotFoundError):
        service.delete(USER_A, created.id)


def test_list_all_returns_only_callers_transactions() -> None:
    service = _build_service()
    service.create(USER_A, make_create_request(on=date(2025, 1, 1)))
    service.create(USER_A, make_create_request(on=date(2025, 1, 2)))
    service.create(USER_B, make_create_request())

    transactions = service.list_all(USER_A)

    assert [item.date.day for item in transactions] == [2, 1]


@pytest.mark.parametrize("raw", ["", "abc", "1234"])
def test_parse_transaction_id_rejects_non_uuid(raw: str) -> None:
    with pytest.raises(ValidationFailedError, match="Invalid transaction ID"):
        parse_transaction_id(raw)


@pytest.mark.parametrize(
    "payload",
    [{}, {"amount": None}, {"amount": 0}, {"description": ""}, {"userId": str(USER_B)}],
)
def test_update_request_rejects_empty_null_and_unknown_fields(payload: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        TransactionUpdateRequest.model_validate(payload)


@pytest.mark.parametrize(
    "payload",
    [
        {"amount": -5, "description": "x", "category": "food", "date": "2025-01-01", "type": "expense"},
        {"amount": 5, "description": "  ", "category": "food", "date": "2025-01-01", "type": "expense"},
        {"amount": 5, "description": "x", "category": "food", "date": "2025-01-01", "type": "transfer"},
        {"amount": 5, "description": "x", "category": "food", "date": "01/02/2025", "type": "expense"},
        {"amount": 5, "description": "x", "category": "food", "type": "expense"},
    ],
)
def test_create_request_validation(payload: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        TransactionCreateRequest.model_validate(payload)
