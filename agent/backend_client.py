"""Backend client abstraction for agent (in-process by default)."""

from __future__ import annotations

from dataclasses import dataclass

from backend.services.tools import BackendToolService
from shared.models import (
    BudgetUsage,
    ExpenseInRangeArgs,
    ExpenseInRangeResult,
    MonthSelector,
    MonthlyIncomeExpenseResult,
    SpendingByCategoriesArgs,
    SpendingByCategoriesResult,
    TopCategoriesArgs,
    TopCategoriesResult,
    TopSpendingWalletResult,
    TopTransactionsArgs,
    TopTransactionsResult,
    TotalBalanceResult,
    ToolError,
    WalletBalanceArgs,
    WalletBalanceResult,
)


@dataclass(slots=True)
class BackendClient:
    tool_service: BackendToolService

    def get_monthly_income_expense(
        self, user_id: int, args: MonthSelector
    ) -> MonthlyIncomeExpenseResult | ToolError:
        return self.tool_service.get_monthly_income_expense(user_id, args)

    def get_top_spending_wallet(
        self, user_id: int, args: MonthSelector
    ) -> TopSpendingWalletResult | ToolError:
        return self.tool_service.get_top_spending_wallet(user_id, args)

    def get_top_big_expenses(
        self, user_id: int, args: TopTransactionsArgs
    ) -> TopTransactionsResult | ToolError:
        return self.tool_service.get_top_big_expenses(user_id, args)

    def get_top_big_incomes(
        self, user_id: int, args: TopTransactionsArgs
    ) -> TopTransactionsResult | ToolError:
        return self.tool_service.get_top_big_incomes(user_id, args)

    def get_budget_status_total_month(
        self, user_id: int, args: MonthSelector
    ) -> BudgetUsage | ToolError:
        return self.tool_service.get_budget_status_total_month(user_id, args)

    def get_spending_by_categories(
        self, user_id: int, args: SpendingByCategoriesArgs
    ) -> SpendingByCategoriesResult | ToolError:
        return self.tool_service.get_spending_by_categories(user_id, args)

    def get_top_expense_categories(
        self, user_id: int, args: TopCategoriesArgs
    ) -> TopCategoriesResult | ToolError:
        return self.tool_service.get_top_expense_categories(user_id, args)

    def get_total_balance(self, user_id: int) -> TotalBalanceResult | ToolError:
        return self.tool_service.get_total_balance(user_id)

    def get_wallet_balance_by_name(
        self, user_id: int, args: WalletBalanceArgs
    ) -> WalletBalanceResult | ToolError:
        return self.tool_service.get_wallet_balance_by_name(user_id, args)

    def get_expense_in_range(
        self, user_id: int, args: ExpenseInRangeArgs
    ) -> ExpenseInRangeResult | ToolError:
        return self.tool_service.get_expense_in_range(user_id, args)
