"""Transaction filter, sort and page-window builders.

A listing request is translated into three values that the repositories
consume:

* `TransactionFilter`: owner-scoped conjunction of the supplied options, with
  the free-text search as the only disjunction (description OR category).
* `SortSpec`: a single sort field and direction, ties broken by creation time.
* `PageWindow`: 1-based page and row cap, exposing the zero-based skip.

`build_pagination` assembles the envelope returned alongside a page of items.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any
from uuid import UUID

from shared.models import SORTABLE_FIELDS, Pagination, Transaction, TransactionQueryParams, TransactionType


@dataclass(frozen=True, slots=True)
class TransactionFilter:
    """Predicate over one user's transactions.

    `user_id` is mandatory and there is no "any owner" value, so every
    predicate built from this type is restricted to a single owner.
    """

    user_id: UUID
    category: str | None = None
    type: TransactionType | None = None
    start_date: date | None = None
    end_date: date | None = None
    tags: tuple[str, ...] = ()
    search: str | None = None

    def matches(self, transaction: Transaction) -> bool:
        if transaction.user_id != self.user_id:
            return False
        if self.category is not None and transaction.category != self.category:
            return False
        if self.type is not None and transaction.type != self.type:
            return False
        if self.start_date is not None and transaction.date < self.start_date:
            return False
        if self.end_date is not None and transaction.date > self.end_date:
            return False
        if self.tags and not set(self.tags).intersection(transaction.tags):
            return False
        if self.search:
            needle = self.search.lower()
            if needle not in transaction.description.lower() and needle not in transaction.category.lower():
                return False
        return True


@dataclass(frozen=True, slots=True)
class SortSpec:
    field: str = "date"
    descending: bool = True

    def key(self, transaction: Transaction) -> tuple[Any, Any]:
        value = getattr(transaction, self.field)
        if isinstance(value, TransactionType):
            value = value.value
        return value, transaction.created_at


@dataclass(frozen=True, slots=True)
class PageWindow:
    page: int = 1
    limit: int = 20

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.limit < 1:
            raise ValueError("limit must be >= 1")

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def parse_tags(raw_tags: str | None) -> tuple[str, ...]:
    """Split a comma-separated tag list, dropping blanks and duplicates."""
    if not raw_tags:
        return ()
    tags: list[str] = []
    for tag in raw_tags.split(","):
        stripped = tag.strip()
        if stripped and stripped not in tags:
            tags.append(stripped)
    return tuple(tags)


def build_transaction_filter(user_id: UUID, params: TransactionQueryParams) -> TransactionFilter:
    search = params.search.strip() if params.search else None
    return TransactionFilter(
        user_id=user_id,
        category=params.category,
        type=params.type,
        start_date=params.start_date,
        end_date=params.end_date,
        tags=parse_tags(params.tags),
        search=search or None,
    )


def build_sort_spec(params: TransactionQueryParams) -> SortSpec:
    return SortSpec(
        field=SORTABLE_FIELDS[params.sort_by],
        descending=params.sort_order.strip().lower() != "asc",
    )


def build_page_window(params: TransactionQueryParams) -> PageWindow:
    return PageWindow(page=params.page, limit=params.limit)


def build_pagination(window: PageWindow, total: int) -> Pagination:
    pages = (total + window.limit - 1) // window.limit
    return Pagination(page=window.page, limit=window.limit, total=total, pages=pages)
