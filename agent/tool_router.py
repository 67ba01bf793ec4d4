"""Closed tool registry mapping tool names to typed backend calls.

The registry is static: every tool has one argument model, one
``BackendClient`` handler and a Vietnamese description surfaced to the model.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ValidationError

from agent.backend_client import BackendClient
from shared.models import (
    ExpenseInRangeArgs,
    MonthlyQueryArgs,
    NoArgs,
    SpendingByCategoriesArgs,
    TopCategoriesArgs,
    TopTransactionsArgs,
    ToolError,
    ToolErrorCode,
    WalletBalanceArgs,
)


logger = logging.getLogger(__name__)


class ToolName(str, Enum):
    GET_MONTHLY_INCOME_EXPENSE = "get_monthly_income_expense"
    GET_TOP_SPENDING_WALLET = "get_top_spending_wallet"
    GET_TOP_BIG_EXPENSES = "get_top_big_expenses"
    GET_TOP_BIG_INCOMES = "get_top_big_incomes"
    GET_BUDGET_STATUS_TOTAL_MONTH = "get_budget_status_total_month"
    GET_SPENDING_BY_CATEGORIES = "get_spending_by_categories"
    GET_TOP_EXPENSE_CATEGORIES = "get_top_expense_categories"
    GET_TOTAL_BALANCE = "get_total_balance"
    GET_WALLET_BALANCE_BY_NAME = "get_wallet_balance_by_name"
    GET_EXPENSE_IN_RANGE = "get_expense_in_range"


ToolHandler = Callable[[BackendClient, int, Any], BaseModel]


@dataclass(frozen=True, slots=True)
class ToolSpec:
    name: ToolName
    description: str
    args_model: type[BaseModel]
    handler: ToolHandler


TOOL_SPECS: tuple[ToolSpec, ...] = (
    ToolSpec(
        ToolName.GET_MONTHLY_INCOME_EXPENSE,
        "Tổng thu nhập, tổng chi tiêu và chênh lệch của một tháng.",
        MonthlyQueryArgs,
        BackendClient.get_monthly_income_expense,
    ),
    ToolSpec(
        ToolName.GET_TOP_SPENDING_WALLET,
        "Ví chi tiêu nhiều nhất trong tháng, kèm số dư hiện tại và tỷ lệ chi.",
        MonthlyQueryArgs,
        BackendClient.get_top_spending_wallet,
    ),
    ToolSpec(
        ToolName.GET_TOP_BIG_EXPENSES,
        "Các giao dịch chi lớn nhất trong tháng.",
        TopTransactionsArgs,
        BackendClient.get_top_big_expenses,
    ),
    ToolSpec(
        ToolName.GET_TOP_BIG_INCOMES,
        "Các giao dịch thu lớn nhất trong tháng.",
        TopTransactionsArgs,
        BackendClient.get_top_big_incomes,
    ),
    ToolSpec(
        ToolName.GET_BUDGET_STATUS_TOTAL_MONTH,
        "Tình trạng ngân sách tổng của tháng (không theo danh mục hay ví).",
        MonthlyQueryArgs,
        BackendClient.get_budget_status_total_month,
    ),
    ToolSpec(
        ToolName.GET_SPENDING_BY_CATEGORIES,
        "Tổng chi theo một hoặc nhiều danh mục (gồm danh mục con), theo tháng hoặc "
        "khoảng ngày, có thể lọc theo ví. Trả về cả tên không nhận diện được.",
        SpendingByCategoriesArgs,
        BackendClient.get_spending_by_categories,
    ),
    ToolSpec(
        ToolName.GET_TOP_EXPENSE_CATEGORIES,
        "Các danh mục chi nhiều nhất trong tháng, kèm tỷ lệ phần trăm.",
        TopCategoriesArgs,
        BackendClient.get_top_expense_categories,
    ),
    ToolSpec(
        ToolName.GET_TOTAL_BALANCE,
        "Tổng số dư của tất cả ví đang dùng.",
        NoArgs,
        lambda client, user_id, _args: client.get_total_balance(user_id),
    ),
    ToolSpec(
        ToolName.GET_WALLET_BALANCE_BY_NAME,
        "Số dư của một ví theo tên.",
        WalletBalanceArgs,
        BackendClient.get_wallet_balance_by_name,
    ),
    ToolSpec(
        ToolName.GET_EXPENSE_IN_RANGE,
        "Tổng chi trong khoảng [start_date, end_date_exclusive).",
        ExpenseInRangeArgs,
        BackendClient.get_expense_in_range,
    ),
)

_SPECS_BY_NAME = {spec.name.value: spec for spec in TOOL_SPECS}


def _parameters_schema(args_model: type[BaseModel]) -> dict[str, Any]:
    schema = args_model.model_json_schema()
    schema.pop("title", None)
    for property_schema in schema.get("properties", {}).values():
        property_schema.pop("title", None)
    schema.setdefault("properties", {})
    schema["additionalProperties"] = False
    return schema


def tool_catalogue() -> list[dict[str, Any]]:
    """Return every tool in OpenAI function-tool format."""
    return [
        {
            "type": "function",
            "function": {
                "name": spec.name.value,
                "description": spec.description,
                "parameters": _parameters_schema(spec.args_model),
            },
        }
        for spec in TOOL_SPECS
    ]


@dataclass(slots=True)
class ToolRouter:
    backend_client: BackendClient

    def call(self, tool_name: str, payload: dict | None, *, user_id: int) -> BaseModel:
        """Validate ``payload`` and run one tool; always returns a model."""

        spec = _SPECS_BY_NAME.get(tool_name)
        if spec is None:
            return ToolError(
                code=ToolErrorCode.UNKNOWN_TOOL,
                message=f"Unknown tool: {tool_name}",
            )

        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            return ToolError(
                code=ToolErrorCode.VALIDATION_ERROR,
                message=f"Invalid payload for tool {tool_name}",
                details={"payload": repr(payload)},
            )

        try:
            args = spec.args_model.model_validate(payload)
        except ValidationError as exc:
            return ToolError(
                code=ToolErrorCode.VALIDATION_ERROR,
                message=f"Invalid payload for tool {tool_name}",
                details={
                    "validation_errors": exc.errors(include_url=False, include_context=False),
                    "payload": payload,
                },
            )

        try:
            result = spec.handler(self.backend_client, user_id, args)
        except Exception as exc:
            logger.exception("tool_call_failed tool=%s user_id=%s", tool_name, user_id)
            return ToolError(code=ToolErrorCode.BACKEND_ERROR, message=str(exc))

        if isinstance(result, ToolError):
            logger.info("tool_call_error tool=%s code=%s", tool_name, result.code.value)
        return result
