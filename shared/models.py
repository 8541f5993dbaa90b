"""Pydantic contracts shared across the HTTP layer and backend services."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationInfo,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


# Field names below use `date` as an attribute; keep a module-level alias so the
# annotation never resolves against the class attribute.
DateValue = date


class ErrorCode(str, Enum):
    """Stable error codes surfaced to API callers."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    CONFLICT = "CONFLICT"
    BACKEND_ERROR = "BACKEND_ERROR"


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


# Public (camelCase) sort key -> stored field name.
SORTABLE_FIELDS: dict[str, str] = {
    "date": "date",
    "amount": "amount",
    "category": "category",
    "description": "description",
    "type": "type",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}

MAX_PAGE_LIMIT = 100


class ApiModel(BaseModel):
    """Base model exposing camelCase aliases on the wire."""

    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)


def _normalize_tags(value: object) -> object:
    if value is None:
        return []
    if isinstance(value, list):
        return [str(tag).strip() for tag in value if str(tag).strip()]
    return value


class Transaction(ApiModel):
    id: UUID
    user_id: UUID
    amount: Decimal
    description: str
    category: str
    date: DateValue
    type: TransactionType
    tags: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @field_serializer("amount")
    def serialize_amount(self, value: Decimal) -> float:
        return float(value)


class TransactionCreateRequest(ApiModel):
    amount: Decimal = Field(gt=0)
    description: str = Field(min_length=1, max_length=500)
    category: str = Field(min_length=1, max_length=50)
    date: DateValue
    type: TransactionType
    tags: list[str] = Field(default_factory=list)

    @field_validator("description", "category")
    @classmethod
    def strip_text(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, value: object) -> object:
        return _normalize_tags(value)


class TransactionUpdateRequest(ApiModel):
    """Partial update; only fields present in the payload are applied."""

    amount: Decimal | None = Field(default=None, gt=0)
    description: str | None = Field(default=None, min_length=1, max_length=500)
    category: str | None = Field(default=None, min_length=1, max_length=50)
    date: DateValue | None = None
    type: TransactionType | None = None
    tags: list[str] | None = None

    @field_validator("description", "category")
    @classmethod
    def strip_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, value: object) -> object:
        return None if value is None else _normalize_tags(value)

    @model_validator(mode="after")
    def validate_changes(self) -> "TransactionUpdateRequest":
        if not self.model_fields_set:
            raise ValueError("update must contain at least one field")
        null_fields = sorted(name for name in self.model_fields_set if getattr(self, name) is None)
        if null_fields:
            raise ValueError(f"fields cannot be null: {', '.join(null_fields)}")
        return self

    def changes(self) -> dict[str, object]:
        """Return the supplied fields keyed by stored field name."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class TransactionQueryParams(ApiModel):
    """Closed set of options accepted by the transaction listing.

    Unknown keys (including any owner field) are ignored so the owner term of
    a filter can only come from the authenticated caller.
    """

    model_config = ConfigDict(extra="ignore")

    category: str | None = None
    type: TransactionType | None = None
    start_date: DateValue | None = None
    end_date: DateValue | None = None
    tags: str | None = None
    search: str | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=MAX_PAGE_LIMIT)
    sort_by: str = "date"
    sort_order: str = "desc"

    @field_validator("category", "type", "start_date", "end_date", "tags", "search", mode="before")
    @classmethod
    def blank_as_missing(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("page", "limit", "sort_by", "sort_order", mode="before")
    @classmethod
    def blank_as_default(cls, value: object, info: ValidationInfo) -> object:
        if isinstance(value, str) and not value.strip():
            return cls.model_fields[info.field_name].default
        return value

    @field_validator("sort_by")
    @classmethod
    def validate_sort_by(cls, value: str) -> str:
        if value not in SORTABLE_FIELDS:
            raise ValueError(f"Unsupported sortBy field: {value}")
        return value

    @model_validator(mode="after")
    def validate_date_range(self) -> "TransactionQueryParams":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("startDate must be before or equal to endDate")
        return self


class Pagination(ApiModel):
    page: int
    limit: int
    total: int
    pages: int


class TransactionPage(ApiModel):
    items: list[Transaction]
    pagination: Pagination


class UserProfile(ApiModel):
    avatar: str | None = None
    currency: str = "USD"
    timezone: str = "America/New_York"


class PublicUser(ApiModel):
    """User record as returned to callers; never carries password material."""

    id: UUID
    email: str
    first_name: str
    last_name: str
    is_email_verified: bool = False
    profile: UserProfile = Field(default_factory=UserProfile)
    created_at: datetime
    updated_at: datetime


class UserRecord(PublicUser):
    password_hash: str

    def to_public(self) -> PublicUser:
        return PublicUser.model_validate(self.model_dump(exclude={"password_hash"}))


class RegisterRequest(ApiModel):
    model_config = ConfigDict(extra="ignore")

    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)


class LoginRequest(ApiModel):
    model_config = ConfigDict(extra="ignore")

    email: EmailStr
    password: str = Field(min_length=1)


class AuthSession(ApiModel):
    user: PublicUser
    token: str
    expires_in: str


class TrendData(ApiModel):
    income_growth: float
    expense_growth: float
    savings_growth: float
    spending_velocity: float


class Insights(ApiModel):
    net_worth: float
    monthly_income: float
    monthly_expenses: float
    savings_rate: float
    spending_by_category: dict[str, float]
    financial_health_score: float
    trend_analysis: TrendData
    recommendations: list[str]


class BudgetStatus(str, Enum):
    ON_TRACK = "on_track"
    WARNING = "warning"
    OVER_BUDGET = "over_budget"


class OverallBudgetStatus(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


class Budget(ApiModel):
    id: int = 0
    category: str
    amount: float
    period: str = "monthly"


class BudgetAnalysis(ApiModel):
    category: str
    budgeted: float
    spent: float
    remaining: float
    percentage_used: float
    status: BudgetStatus
    days_remaining: int
    predicted_spend: float
    recommendation: str


class BudgetHealth(ApiModel):
    total_budgeted: float
    total_spent: float
    total_remaining: float
    overall_status: OverallBudgetStatus
    budget_categories: list[BudgetAnalysis]
    alerts: list[str]
    health_score: float
    recommendations: list[str]


class BudgetAnalysisRequest(ApiModel):
    """Caller-supplied budgets analysed against the caller's own transactions."""

    budgets: list[Budget] = Field(min_length=1)
