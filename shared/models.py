"""Pydantic contracts shared across backend and agent."""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


TOP_N_MIN = 1
TOP_N_MAX = 20
MONTH_OFFSET_BOUND = 240
_ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class ToolErrorCode(str, Enum):
    """Stable error codes for tool contracts across layers."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNKNOWN_TOOL = "UNKNOWN_TOOL"
    BACKEND_ERROR = "BACKEND_ERROR"
    NOT_FOUND = "NOT_FOUND"


class ToolError(BaseModel):
    model_config = ConfigDict(extra="forbid")

    error: Literal[True] = True
    code: ToolErrorCode
    message: str
    details: dict[str, object] | None = None


class CategoryType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class EntityKind(str, Enum):
    CATEGORY = "category"
    WALLET = "wallet"


# ---------------------------------------------------------------------------
# Ledger rows (owned by external storage, read-only here)
# ---------------------------------------------------------------------------


class Category(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int
    name: str
    type: CategoryType
    parent_id: int | None = None
    user_id: int | None = None

    @property
    def is_global(self) -> bool:
        return self.user_id is None


class Wallet(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int
    user_id: int
    name: str
    balance: Decimal = Decimal("0")
    is_archived: bool = False
    type: str | None = None
    color: str | None = None


class LedgerTransaction(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int
    user_id: int
    category_id: int
    wallet_id: int
    amount: Decimal
    tx_date: date
    description: str | None = None
    deleted_at: datetime | None = None


class Budget(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int
    user_id: int
    month: date
    limit_amount: Decimal
    alert_threshold: int = 80
    category_id: int | None = None
    wallet_id: int | None = None
    notify_in_app: bool = False
    notify_email: bool = False

    @property
    def is_global(self) -> bool:
        return self.category_id is None and self.wallet_id is None


class BudgetAlertLog(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user_id: int
    budget_id: int
    threshold: int
    sent_on: date
    channel: Literal["in_app", "email"] = "in_app"


# ---------------------------------------------------------------------------
# Ephemeral core values
# ---------------------------------------------------------------------------


class DateRange(BaseModel):
    """Half-open civil date interval ``[start_date, end_date_exclusive)``."""

    model_config = ConfigDict(extra="forbid")

    start_date: date
    end_date_exclusive: date
    label: str
    month: int | None = None
    year: int | None = None

    @model_validator(mode="after")
    def validate_bounds(self) -> "DateRange":
        if self.end_date_exclusive <= self.start_date:
            raise ValueError("end_date_exclusive must be after start_date")
        return self

    def contains(self, value: date) -> bool:
        return self.start_date <= value < self.end_date_exclusive


class ResolvedEntity(BaseModel):
    model_config = ConfigDict(extra="forbid")

    input_text: str
    matched_id: int
    matched_name: str
    confidence_score: float


class ResolutionResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    resolved: list[ResolvedEntity] = Field(default_factory=list)
    unresolved: list[str] = Field(default_factory=list)

    @property
    def matched_ids(self) -> list[int]:
        return [entity.matched_id for entity in self.resolved]


# ---------------------------------------------------------------------------
# Tool arguments
# ---------------------------------------------------------------------------


def clamp_int(value: object, minimum: int, maximum: int, default: int) -> int:
    """Clamp a loosely typed numeric value, using ``default`` when unusable."""

    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return default
    if not isinstance(value, (int, float, Decimal)):
        return default
    number = float(value)
    if not math.isfinite(number):
        return default
    return max(minimum, min(maximum, math.trunc(number)))


def parse_iso_date(value: object) -> date:
    """Parse a strict ``YYYY-MM-DD`` value into a date."""

    if isinstance(value, datetime):
        raise ValueError("expected a civil date, not a datetime")
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _ISO_DATE_PATTERN.fullmatch(value.strip()):
        raise ValueError("date must match YYYY-MM-DD")
    return date.fromisoformat(value.strip())


class MonthSelector(BaseModel):
    """Month targeting shared by monthly tools: offset or explicit month/year."""

    model_config = ConfigDict(extra="forbid")

    month_offset: int = Field(
        default=0,
        description="0 = tháng này, -1 = tháng trước, ...",
    )
    month: int | None = Field(default=None, ge=1, le=12, description="Tháng 1..12")
    year: int | None = Field(default=None, ge=1900, le=3000, description="Năm, ví dụ 2025")

    @field_validator("month_offset", mode="before")
    @classmethod
    def clamp_month_offset(cls, value: object) -> int:
        return clamp_int(value, -MONTH_OFFSET_BOUND, MONTH_OFFSET_BOUND, 0)


class MonthlyQueryArgs(MonthSelector):
    pass


class TopTransactionsArgs(MonthSelector):
    limit: int = Field(default=3, description="Số lượng giao dịch (1..20), mặc định 3")

    @field_validator("limit", mode="before")
    @classmethod
    def clamp_limit(cls, value: object) -> int:
        return clamp_int(value, TOP_N_MIN, TOP_N_MAX, 3)


class TopCategoriesArgs(MonthSelector):
    limit: int = Field(default=5, description="Số lượng danh mục (1..20), mặc định 5")

    @field_validator("limit", mode="before")
    @classmethod
    def clamp_limit(cls, value: object) -> int:
        return clamp_int(value, TOP_N_MIN, TOP_N_MAX, 5)


class SpendingByCategoriesArgs(MonthSelector):
    category_names: list[str] = Field(description="Tên danh mục, ví dụ ['an uong', 'đi lại']")
    start_date: date | None = Field(default=None, description="YYYY-MM-DD, ngày bắt đầu (bao gồm)")
    end_date: date | None = Field(default=None, description="YYYY-MM-DD, ngày kết thúc (bao gồm)")
    wallet_names: list[str] = Field(default_factory=list)
    wallet_ids: list[int] = Field(default_factory=list)
    include_subcategories: bool = True

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def validate_dates(cls, value: object) -> date | None:
        if value is None:
            return None
        return parse_iso_date(value)

    @model_validator(mode="after")
    def validate_range_order(self) -> "SpendingByCategoriesArgs":
        if self.start_date is not None and self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class WalletBalanceArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    wallet_name: str = Field(default="", description="Tên ví, ví dụ 'Tiền mặt', 'MoMo'")


class ExpenseInRangeArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    start_date: date = Field(description="YYYY-MM-DD (bao gồm)")
    end_date_exclusive: date = Field(description="YYYY-MM-DD (không bao gồm)")

    @field_validator("start_date", "end_date_exclusive", mode="before")
    @classmethod
    def validate_dates(cls, value: object) -> date:
        return parse_iso_date(value)

    @model_validator(mode="after")
    def validate_range_order(self) -> "ExpenseInRangeArgs":
        if self.end_date_exclusive <= self.start_date:
            raise ValueError("end_date_exclusive must be after start_date")
        return self


class NoArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------------
# Tool results
# ---------------------------------------------------------------------------


class MonthlyIncomeExpenseResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    period: DateRange
    total_income: Decimal
    total_expense: Decimal
    net: Decimal


class TopSpendingWalletResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    found: bool
    period: DateRange
    wallet_id: int | None = None
    wallet_name: str | None = None
    balance: Decimal | None = None
    total_expense: Decimal | None = None
    period_total_expense: Decimal | None = None
    share_percentage: float | None = None


class TransactionItem(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int
    tx_date: date
    amount: Decimal
    description: str | None = None
    category_name: str | None = None
    wallet_name: str | None = None


class TopTransactionsResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    period: DateRange
    category_type: CategoryType
    items: list[TransactionItem]


class BudgetUsage(BaseModel):
    model_config = ConfigDict(extra="forbid")

    exists: bool
    period: DateRange
    budget_id: int | None = None
    limit_amount: Decimal | None = None
    spent_amount: Decimal | None = None
    percentage: float | None = None
    alert_threshold: int | None = None
    is_over_threshold: bool | None = None
    is_over_limit: bool | None = None
    remaining_to_threshold: Decimal | None = None
    remaining_to_limit: Decimal | None = None
    notify_in_app: bool | None = None
    notify_email: bool | None = None


class CategoryTotal(BaseModel):
    model_config = ConfigDict(extra="forbid")

    category_id: int
    category_name: str
    total: Decimal
    share_percentage: float | None = None


class SpendingByCategoriesResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    period: DateRange
    include_subcategories: bool
    items: list[CategoryTotal]
    total: Decimal
    categories: ResolutionResult
    wallets: ResolutionResult | None = None
    wallet_ids: list[int] = Field(default_factory=list)


class TopCategoriesResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    period: DateRange
    items: list[CategoryTotal]
    total_expense: Decimal


class TotalBalanceResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    total_balance: Decimal
    wallet_count: int


class WalletSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int
    name: str
    balance: Decimal
    type: str | None = None


class WalletBalanceResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    need_wallet_name: bool = False
    found: bool = False
    wallet_name: str = ""
    wallet: WalletSummary | None = None
    confidence_score: float | None = None
    message: str | None = None


class ExpenseInRangeResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    period: DateRange
    total_expense: Decimal


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------


class ChatTurn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    role: Literal["user", "assistant"]
    content: str
