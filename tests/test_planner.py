"""Tests for the ordered pattern rules of the fallback planner."""

from __future__ import annotations

from datetime import date

import pytest

from agent.planner import (
    CATEGORY_CLARIFICATION,
    WALLET_CLARIFICATION,
    ClarificationPlan,
    SmallTalkPlan,
    ToolCallPlan,
    plan_message,
)
from agent.tool_router import ToolName


TODAY = date(2025, 3, 15)


@pytest.mark.parametrize(
    ("message", "intent", "tool_name"),
    [
        ("Hôm nay chi bao nhiêu?", "today_expense", ToolName.GET_EXPENSE_IN_RANGE),
        ("7 ngày qua chi tiêu bao nhiêu?", "last_7_days_expense", ToolName.GET_EXPENSE_IN_RANGE),
        ("Ngân sách tháng này thế nào?", "budget_status", ToolName.GET_BUDGET_STATUS_TOTAL_MONTH),
        (
            "Tháng này chi bao nhiêu cho 'Ăn uống'?",
            "category_spending",
            ToolName.GET_SPENDING_BY_CATEGORIES,
        ),
        ("Top 3 khoản thu lớn nhất tháng này", "top_incomes", ToolName.GET_TOP_BIG_INCOMES),
        ("Ví nào chi nhiều nhất tháng này?", "top_spending_wallet", ToolName.GET_TOP_SPENDING_WALLET),
        ("Chênh lệch thu chi tháng này?", "monthly_net", ToolName.GET_MONTHLY_INCOME_EXPENSE),
        ("Tổng số dư hiện tại là bao nhiêu?", "total_balance", ToolName.GET_TOTAL_BALANCE),
        ("Top 5 danh mục chi tiêu tháng này", "top_categories", ToolName.GET_TOP_EXPENSE_CATEGORIES),
        ("Số dư ví MoMo là bao nhiêu?", "wallet_balance", ToolName.GET_WALLET_BALANCE_BY_NAME),
        ("Giao dịch chi lớn nhất tháng trước", "top_expenses", ToolName.GET_TOP_BIG_EXPENSES),
        ("Tổng quan tháng 2", "monthly_overview", ToolName.GET_MONTHLY_INCOME_EXPENSE),
    ],
)
def test_rules_map_messages_to_tools(message: str, intent: str, tool_name: ToolName) -> None:
    plan = plan_message(message, TODAY)

    assert isinstance(plan, ToolCallPlan)
    assert plan.intent == intent
    assert plan.tool_name == tool_name


def test_today_expense_payload_is_one_day() -> None:
    plan = plan_message("Hôm nay chi bao nhiêu?", TODAY)

    assert plan.payload == {"start_date": "2025-03-15", "end_date_exclusive": "2025-03-16"}


def test_last_seven_days_payload_includes_today() -> None:
    plan = plan_message("7 ngày qua chi tiêu bao nhiêu?", TODAY)

    assert plan.payload == {"start_date": "2025-03-09", "end_date_exclusive": "2025-03-16"}


def test_category_spending_payload_carries_names_and_offset() -> None:
    plan = plan_message("Tháng trước chi bao nhiêu cho 'Ăn uống' và 'Đi lại'?", TODAY)

    assert plan.payload == {"category_names": ["Ăn uống", "Đi lại"], "month_offset": -1}
    assert plan.meta == {"requested_names": ["Ăn uống", "Đi lại"]}


def test_category_spending_without_names_asks_for_clarification() -> None:
    plan = plan_message("Tháng này chi bao nhiêu cho?", TODAY)

    assert isinstance(plan, ClarificationPlan)
    assert plan.question == CATEGORY_CLARIFICATION


def test_wallet_balance_without_name_asks_for_clarification() -> None:
    plan = plan_message("Số dư ví là bao nhiêu?", TODAY)

    assert isinstance(plan, ClarificationPlan)
    assert plan.question == WALLET_CLARIFICATION


def test_top_n_is_read_from_message() -> None:
    assert plan_message("Top 5 danh mục chi tiêu tháng này", TODAY).payload == {
        "limit": 5,
        "month_offset": 0,
    }
    assert plan_message("Top danh mục chi tiêu tháng này", TODAY).payload["limit"] == 5
    assert plan_message("Giao dịch chi lớn nhất tháng trước", TODAY).payload == {
        "limit": 3,
        "month_offset": -1,
    }


def test_income_question_does_not_match_top_expenses() -> None:
    plan = plan_message("Top 3 giao dịch thu nhập lớn nhất tháng này", TODAY)

    assert plan.intent == "top_incomes"


@pytest.mark.parametrize(
    ("message", "focus"),
    [
        ("Tổng quan tháng này", "overview"),
        ("Thu nhập tháng này bao nhiêu?", "income"),
        ("Tháng này chi bao nhiêu?", "expense"),
    ],
)
def test_monthly_overview_focus(message: str, focus: str) -> None:
    plan = plan_message(message, TODAY)

    assert plan.intent == "monthly_overview"
    assert plan.meta == {"focus": focus}


def test_explicit_month_becomes_offset() -> None:
    assert plan_message("Tổng quan tháng 12 năm 2024", TODAY).payload == {"month_offset": -3}


def test_unmatched_message_is_small_talk() -> None:
    plan = plan_message("  Xin chào bạn  ", TODAY)

    assert isinstance(plan, SmallTalkPlan)
    assert plan.message == "Xin chào bạn"
