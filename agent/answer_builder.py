"""Build fallback replies from executed tool results (Vietnamese templates)."""

from __future__ import annotations

from pydantic import BaseModel

from agent.planner import ToolCallPlan
from backend.services.date_ranges import format_civil_date
from shared.models import (
    BudgetUsage,
    ExpenseInRangeResult,
    MonthlyIncomeExpenseResult,
    SpendingByCategoriesResult,
    TopCategoriesResult,
    TopSpendingWalletResult,
    TopTransactionsResult,
    TotalBalanceResult,
    ToolError,
    WalletBalanceResult,
)
from shared.text_utils import format_vnd


DATA_UNAVAILABLE_REPLY = "Xin lỗi, mình chưa lấy được dữ liệu lúc này. Bạn thử lại sau nhé."


def _format_percent(value: float) -> str:
    text = f"{value:.1f}"
    return text[:-2] if text.endswith(".0") else text


def _today_expense(plan: ToolCallPlan, result: ExpenseInRangeResult) -> str:
    day_label = format_civil_date(result.period.start_date)
    if result.total_expense == 0:
        return f"Hôm nay ({day_label}) bạn chưa có khoản chi tiêu nào được ghi nhận."
    return f"Hôm nay ({day_label}), bạn đã chi khoảng {format_vnd(result.total_expense)}."


def _last_7_days_expense(plan: ToolCallPlan, result: ExpenseInRangeResult) -> str:
    if result.total_expense == 0:
        return f"Trong 7 ngày gần đây ({result.period.label}), bạn chưa có khoản chi tiêu nào được ghi nhận."
    return f"Trong 7 ngày gần đây ({result.period.label}), bạn đã chi khoảng {format_vnd(result.total_expense)}."


def _budget_status(plan: ToolCallPlan, result: BudgetUsage) -> str:
    if not result.exists:
        return (
            f"Bạn chưa thiết lập ngân sách tổng cho {result.period.label}. "
            "Hãy vào màn Ngân sách để tạo hạn mức chi tiêu trước nhé."
        )

    lines = [
        f"Ngân sách chi tiêu {result.period.label} của bạn là {format_vnd(result.limit_amount or 0)}.",
        f"Hiện đã chi khoảng {format_vnd(result.spent_amount or 0)} "
        f"(~{_format_percent(result.percentage or 0.0)}%).",
    ]
    if result.remaining_to_threshold and result.remaining_to_threshold > 0:
        lines.append(
            f"Bạn còn khoảng {format_vnd(result.remaining_to_threshold)} trước khi chạm "
            f"ngưỡng cảnh báo {result.alert_threshold}%."
        )
    else:
        lines.append(f"⚠️ Bạn đã vượt ngưỡng cảnh báo {result.alert_threshold}%.")
    lines.append(
        "Từ giờ tới khi chạm hạn mức tối đa (100%), bạn còn khoảng "
        f"{format_vnd(result.remaining_to_limit or 0)}."
    )
    return "\n".join(lines)


def _category_spending(plan: ToolCallPlan, result: SpendingByCategoriesResult) -> str:
    label = result.period.label
    unresolved = result.categories.unresolved
    if not result.items:
        names = unresolved or [str(name) for name in plan.meta.get("requested_names", [])]
        return f"Trong {label}, không tìm thấy danh mục nào khớp với: {', '.join(names)}."

    lines = [f"Trong {label}, chi tiêu cho các danh mục bạn hỏi là khoảng {format_vnd(result.total)}:"]
    lines.extend(f"- {item.category_name}: {format_vnd(item.total)}" for item in result.items)
    if unresolved:
        lines.append(f"Mình không tìm thấy danh mục: {', '.join(unresolved)}.")
    return "\n".join(lines)


def _transaction_lines(result: TopTransactionsResult) -> list[str]:
    lines = []
    for index, item in enumerate(result.items, start=1):
        description = item.description or "(không có mô tả)"
        lines.append(
            f"{index}. {format_vnd(item.amount)} - {description} "
            f"({item.category_name}, ví {item.wallet_name}, ngày {format_civil_date(item.tx_date)})"
        )
    return lines


def _top_incomes(plan: ToolCallPlan, result: TopTransactionsResult) -> str:
    if not result.items:
        return f"Trong {result.period.label}, bạn chưa có giao dịch thu nhập nào."
    return "\n".join(
        [f"Top {len(result.items)} giao dịch thu nhập lớn nhất trong {result.period.label}:"]
        + _transaction_lines(result)
    )


def _top_expenses(plan: ToolCallPlan, result: TopTransactionsResult) -> str:
    if not result.items:
        return f"Trong {result.period.label}, bạn chưa có giao dịch chi tiêu nào."
    return "\n".join(
        [f"Top {len(result.items)} giao dịch chi tiêu lớn nhất trong {result.period.label}:"]
        + _transaction_lines(result)
    )


def _top_spending_wallet(plan: ToolCallPlan, result: TopSpendingWalletResult) -> str:
    label = result.period.label
    if not result.found:
        return (
            f"Trong {label}, bạn chưa có giao dịch chi tiêu nào nên chưa xác định được ví chi nhiều nhất."
        )
    share = ""
    if result.share_percentage is not None:
        share = f", chiếm khoảng {result.share_percentage:.1f}% tổng chi tiêu"
    return (
        f'Trong {label}, ví "{result.wallet_name}" là ví chi nhiều nhất với khoảng '
        f"{format_vnd(result.total_expense or 0)}{share}. "
        f"Số dư hiện tại của ví này là {format_vnd(result.balance or 0)}."
    )


def _monthly_net(plan: ToolCallPlan, result: MonthlyIncomeExpenseResult) -> str:
    net = result.net
    if net > 0:
        verdict = f"Bạn đang thặng dư khoảng {format_vnd(net)} (thu nhiều hơn chi)."
    elif net < 0:
        verdict = f"Bạn đang chi nhiều hơn thu khoảng {format_vnd(abs(net))}."
    else:
        verdict = "Thu nhập và chi tiêu của bạn đang cân bằng."
    return "\n".join(
        [
            f"Trong {result.period.label}, tổng thu nhập của bạn là {format_vnd(result.total_income)}, "
            f"tổng chi tiêu là {format_vnd(result.total_expense)}.",
            f"Chênh lệch thu - chi (tổng số dư tháng) là {format_vnd(net)}.",
            verdict,
        ]
    )


def _total_balance(plan: ToolCallPlan, result: TotalBalanceResult) -> str:
    return f"Hiện tại tổng số dư trên các ví của bạn là khoảng {format_vnd(result.total_balance)}."


def _top_categories(plan: ToolCallPlan, result: TopCategoriesResult) -> str:
    if not result.items:
        return f"Trong {result.period.label}, chưa có dữ liệu chi tiêu nào để thống kê theo danh mục."
    lines = [f"Top danh mục chi tiêu trong {result.period.label}:"]
    for index, item in enumerate(result.items, start=1):
        lines.append(
            f"{index}. {item.category_name}: {format_vnd(item.total)} "
            f"(~{_format_percent(item.share_percentage or 0.0)}%)"
        )
    return "\n".join(lines)


def _wallet_balance(plan: ToolCallPlan, result: WalletBalanceResult) -> str:
    if result.need_wallet_name:
        return result.message or "Bạn muốn xem số dư của ví nào?"
    if not result.found or result.wallet is None:
        return (
            f'Mình không tìm thấy ví nào khớp với tên "{result.wallet_name}". '
            "Bạn kiểm tra lại tên ví trong màn quản lý ví nhé."
        )
    return f'Số dư hiện tại của ví "{result.wallet.name}" là khoảng {format_vnd(result.wallet.balance)}.'


def _monthly_overview(plan: ToolCallPlan, result: MonthlyIncomeExpenseResult) -> str:
    label = result.period.label
    focus = plan.meta.get("focus")
    if focus == "income":
        if result.total_income == 0:
            return f"Trong {label} hiện chưa có khoản thu nhập nào được ghi nhận."
        return f"Trong {label}, tổng thu nhập của bạn khoảng {format_vnd(result.total_income)}."
    if focus == "expense":
        if result.total_expense == 0:
            return f"Trong {label} hiện chưa ghi nhận khoản chi tiêu nào."
        return f"Trong {label}, bạn đã chi tổng cộng khoảng {format_vnd(result.total_expense)}."

    sign = "+" if result.net >= 0 else ""
    return "\n".join(
        [
            f"Tổng quan {label}:",
            f"- Thu nhập: {format_vnd(result.total_income)}",
            f"- Chi tiêu: {format_vnd(result.total_expense)}",
            f"- Chênh lệch: {sign}{format_vnd(result.net)}",
        ]
    )


_TEMPLATES = {
    "today_expense": _today_expense,
    "last_7_days_expense": _last_7_days_expense,
    "budget_status": _budget_status,
    "category_spending": _category_spending,
    "top_incomes": _top_incomes,
    "top_spending_wallet": _top_spending_wallet,
    "monthly_net": _monthly_net,
    "total_balance": _total_balance,
    "top_categories": _top_categories,
    "wallet_balance": _wallet_balance,
    "top_expenses": _top_expenses,
    "monthly_overview": _monthly_overview,
}


def build_fallback_reply(plan: ToolCallPlan, result: BaseModel) -> str:
    """Render ``result`` with the template bound to ``plan.intent``."""
    if isinstance(result, ToolError):
        return DATA_UNAVAILABLE_REPLY
    return _TEMPLATES[plan.intent](plan, result)
