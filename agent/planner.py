"""Deterministic planning for the pattern-intent fallback (LLM-free).

A message is matched against an ordered chain of ``(predicate, builder)``
rules; the first predicate that accepts the normalized text decides the plan.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, timedelta

from agent.deterministic_nlu import (
    contains_any,
    detect_month_offset,
    detect_top_n,
    extract_category_names,
    extract_wallet_name,
    normalize_text,
)
from agent.tool_router import ToolName


@dataclass(slots=True)
class ToolCallPlan:
    """Plan that invokes one registry tool and renders one template."""

    intent: str
    tool_name: ToolName
    payload: dict[str, object]
    meta: dict[str, object] = field(default_factory=dict)


@dataclass(slots=True)
class ClarificationPlan:
    """Plan that asks the user for a missing name."""

    question: str


@dataclass(slots=True)
class SmallTalkPlan:
    """No financial intent matched."""

    message: str


Plan = ToolCallPlan | ClarificationPlan | SmallTalkPlan


@dataclass(slots=True)
class ParsedMessage:
    raw: str
    text: str
    today: date

    @property
    def month_payload(self) -> dict[str, object]:
        return {"month_offset": detect_month_offset(self.text, self.today)}


_SPEND_WORDS = ("chi bao nhieu", "chi tieu", "chi phi")
_TOP_THREE_WORDS = ("top 3", "top3", "top ba")
_BIGGEST_WORDS = ("lon nhat", "cao nhat", "nhieu nhat")
_WALLET_WORD = re.compile(r"\bvi\b")

CATEGORY_CLARIFICATION = (
    "Bạn muốn xem chi tiêu cho danh mục nào? Bạn có thể hỏi kiểu: "
    "\"Tháng này chi bao nhiêu cho danh mục 'Ăn uống' và 'Đi lại'?\""
)
WALLET_CLARIFICATION = (
    "Bạn muốn xem số dư của ví nào? Bạn có thể hỏi: \"Số dư ví 'Ví tiền mặt' là bao nhiêu?\""
)


def _is_today_spending(text: str) -> bool:
    return "hom nay" in text and contains_any(text, _SPEND_WORDS)


def _today_spending(parsed: ParsedMessage) -> Plan:
    return ToolCallPlan(
        intent="today_expense",
        tool_name=ToolName.GET_EXPENSE_IN_RANGE,
        payload={
            "start_date": parsed.today.isoformat(),
            "end_date_exclusive": (parsed.today + timedelta(days=1)).isoformat(),
        },
    )


def _is_last_week_spending(text: str) -> bool:
    return contains_any(text, ("7 ngay", "bay ngay")) and contains_any(text, _SPEND_WORDS)


def _last_week_spending(parsed: ParsedMessage) -> Plan:
    return ToolCallPlan(
        intent="last_7_days_expense",
        tool_name=ToolName.GET_EXPENSE_IN_RANGE,
        payload={
            "start_date": (parsed.today - timedelta(days=6)).isoformat(),
            "end_date_exclusive": (parsed.today + timedelta(days=1)).isoformat(),
        },
    )


def _is_budget_status(text: str) -> bool:
    return "thang" in text and contains_any(text, ("ngan sach", "han muc"))


def _budget_status(parsed: ParsedMessage) -> Plan:
    return ToolCallPlan(
        intent="budget_status",
        tool_name=ToolName.GET_BUDGET_STATUS_TOTAL_MONTH,
        payload=parsed.month_payload,
    )


def _is_category_spending(text: str) -> bool:
    return contains_any(text, ("chi bao nhieu cho", "chi cho danh muc")) or (
        "thang" in text and "chi cho" in text
    )


def _category_spending(parsed: ParsedMessage) -> Plan:
    names = extract_category_names(parsed.raw)
    if not names:
        return ClarificationPlan(question=CATEGORY_CLARIFICATION)
    return ToolCallPlan(
        intent="category_spending",
        tool_name=ToolName.GET_SPENDING_BY_CATEGORIES,
        payload={"category_names": names, **parsed.month_payload},
        meta={"requested_names": names},
    )


def _is_top_incomes(text: str) -> bool:
    return (
        contains_any(text, _TOP_THREE_WORDS)
        and contains_any(text, ("khoan thu", "thu nhap"))
        and contains_any(text, _BIGGEST_WORDS)
    )


def _top_incomes(parsed: ParsedMessage) -> Plan:
    return ToolCallPlan(
        intent="top_incomes",
        tool_name=ToolName.GET_TOP_BIG_INCOMES,
        payload={"limit": 3, **parsed.month_payload},
    )


def _is_top_spending_wallet(text: str) -> bool:
    return "vi nao" in text and contains_any(
        text, ("khau tru nhieu nhat", "tieu nhieu nhat", "chi nhieu nhat")
    )


def _top_spending_wallet(parsed: ParsedMessage) -> Plan:
    return ToolCallPlan(
        intent="top_spending_wallet",
        tool_name=ToolName.GET_TOP_SPENDING_WALLET,
        payload=parsed.month_payload,
    )


def _is_monthly_net(text: str) -> bool:
    return contains_any(text, ("tong so du", "chenh lech")) and "thang" in text


def _monthly_net(parsed: ParsedMessage) -> Plan:
    return ToolCallPlan(
        intent="monthly_net",
        tool_name=ToolName.GET_MONTHLY_INCOME_EXPENSE,
        payload=parsed.month_payload,
    )


def _is_total_balance(text: str) -> bool:
    return ("tong so du" in text and "thang" not in text) or contains_any(
        text, ("tong tai san", "tong tien hien co")
    )


def _total_balance(parsed: ParsedMessage) -> Plan:
    return ToolCallPlan(intent="total_balance", tool_name=ToolName.GET_TOTAL_BALANCE, payload={})


def _is_top_categories(text: str) -> bool:
    return ("top" in text and "danh muc" in text) or (
        "danh muc" in text and contains_any(text, ("chi nhieu nhat", "tieu nhieu nhat", "ton nhieu nhat"))
    )


def _top_categories(parsed: ParsedMessage) -> Plan:
    return ToolCallPlan(
        intent="top_categories",
        tool_name=ToolName.GET_TOP_EXPENSE_CATEGORIES,
        payload={"limit": detect_top_n(parsed.text, 5), **parsed.month_payload},
    )


def _is_wallet_balance(text: str) -> bool:
    return "so du" in text and _WALLET_WORD.search(text) is not None


def _wallet_balance(parsed: ParsedMessage) -> Plan:
    wallet_name = extract_wallet_name(parsed.raw)
    if not wallet_name:
        return ClarificationPlan(question=WALLET_CLARIFICATION)
    return ToolCallPlan(
        intent="wallet_balance",
        tool_name=ToolName.GET_WALLET_BALANCE_BY_NAME,
        payload={"wallet_name": wallet_name},
    )


def _is_top_expenses(text: str) -> bool:
    return (
        (contains_any(text, ("giao dich", "khoan chi")) and "lon nhat" in text)
        or ("top" in text and contains_any(text, ("giao dich", "chi tieu")))
    )


def _top_expenses(parsed: ParsedMessage) -> Plan:
    return ToolCallPlan(
        intent="top_expenses",
        tool_name=ToolName.GET_TOP_BIG_EXPENSES,
        payload={"limit": detect_top_n(parsed.text, 3), **parsed.month_payload},
    )


def _is_monthly_overview(text: str) -> bool:
    return "thang" in text and contains_any(text, ("tong quan", "thu nhap") + _SPEND_WORDS)


def _monthly_overview(parsed: ParsedMessage) -> Plan:
    if "tong quan" in parsed.text:
        focus = "overview"
    elif "thu nhap" in parsed.text and not contains_any(parsed.text, _SPEND_WORDS):
        focus = "income"
    else:
        focus = "expense"
    return ToolCallPlan(
        intent="monthly_overview",
        tool_name=ToolName.GET_MONTHLY_INCOME_EXPENSE,
        payload=parsed.month_payload,
        meta={"focus": focus},
    )


FALLBACK_RULES: tuple[tuple[Callable[[str], bool], Callable[[ParsedMessage], Plan]], ...] = (
    (_is_today_spending, _today_spending),
    (_is_last_week_spending, _last_week_spending),
    (_is_budget_status, _budget_status),
    (_is_category_spending, _category_spending),
    (_is_top_incomes, _top_incomes),
    (_is_top_spending_wallet, _top_spending_wallet),
    (_is_monthly_net, _monthly_net),
    (_is_total_balance, _total_balance),
    (_is_top_categories, _top_categories),
    (_is_wallet_balance, _wallet_balance),
    (_is_top_expenses, _top_expenses),
    (_is_monthly_overview, _monthly_overview),
)


def plan_message(message: str, today: date) -> Plan:
    """Return the plan of the first matching rule, or small talk."""
    parsed = ParsedMessage(raw=message.strip(), text=normalize_text(message), today=today)
    for predicate, build in FALLBACK_RULES:
        if predicate(parsed.text):
            return build(parsed)
    return SmallTalkPlan(message=parsed.raw)
