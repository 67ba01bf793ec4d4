"""Read-only aggregation queries over the transaction ledger.

All money sums use :class:`~decimal.Decimal`. Percentages are derived floats
meant for display only.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from backend.repositories.budgets_repository import BudgetsRepository
from backend.repositories.categories_repository import CategoriesRepository
from backend.repositories.category_utils import build_children_index, descendant_closure
from backend.repositories.transactions_repository import TransactionsRepository
from backend.repositories.wallets_repository import WalletsRepository
from backend.services.date_ranges import month_range
from shared.models import (
    BudgetUsage,
    Category,
    CategoryTotal,
    CategoryType,
    DateRange,
    LedgerTransaction,
    TransactionItem,
)


_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def percentage_of(part: Decimal, whole: Decimal) -> float | None:
    if whole <= 0:
        return None
    return round(float(part / whole * _HUNDRED), 2)


@dataclass(slots=True)
class WalletSpend:
    wallet_id: int
    wallet_name: str
    balance: Decimal
    total_expense: Decimal
    period_total_expense: Decimal
    share_percentage: float | None


@dataclass(slots=True)
class LedgerAggregationService:
    categories_repository: CategoriesRepository
    wallets_repository: WalletsRepository
    transactions_repository: TransactionsRepository
    budgets_repository: BudgetsRepository

    def _categories_by_id(self, user_id: int) -> dict[int, Category]:
        return {
            category.id: category
            for category in self.categories_repository.list_visible_categories(user_id)
        }

    def _rows_of_type(
        self,
        user_id: int,
        category_type: CategoryType,
        date_range: DateRange,
        *,
        wallet_ids: Collection[int] | None = None,
        categories: dict[int, Category] | None = None,
    ) -> list[LedgerTransaction]:
        categories = categories if categories is not None else self._categories_by_id(user_id)
        rows = self.transactions_repository.list_transactions(
            user_id,
            date_range=date_range,
            wallet_ids=wallet_ids,
        )
        return [
            row
            for row in rows
            if row.category_id in categories and categories[row.category_id].type == category_type
        ]

    def sum_by_type(
        self,
        user_id: int,
        category_type: CategoryType,
        date_range: DateRange,
        wallet_ids: Collection[int] | None = None,
    ) -> Decimal:
        rows = self._rows_of_type(user_id, category_type, date_range, wallet_ids=wallet_ids)
        return sum((row.amount for row in rows), _ZERO)

    def income_expense(self, user_id: int, date_range: DateRange) -> tuple[Decimal, Decimal]:
        """Return ``(income, expense)`` totals for the range in one ledger read."""
        categories = self._categories_by_id(user_id)
        income = _ZERO
        expense = _ZERO
        for row in self.transactions_repository.list_transactions(user_id, date_range=date_range):
            category = categories.get(row.category_id)
            if category is None:
                continue
            if category.type == CategoryType.INCOME:
                income += row.amount
            else:
                expense += row.amount
        return income, expense

    def sum_by_category_roots(
        self,
        user_id: int,
        root_ids: Sequence[int],
        date_range: DateRange,
        wallet_ids: Collection[int] | None = None,
        include_subtree: bool = True,
    ) -> list[CategoryTotal]:
        """Total spend per requested root, zero totals included.

        With ``include_subtree`` each root also collects every descendant
        category visible to the user; nested roots each count shared rows.
        """
        categories = self._categories_by_id(user_id)
        children_index = build_children_index(categories.values()) if include_subtree else {}

        members_by_root: dict[int, set[int]] = {}
        for root_id in root_ids:
            if root_id not in categories or root_id in members_by_root:
                continue
            members_by_root[root_id] = (
                descendant_closure(root_id, children_index) if include_subtree else {root_id}
            )
        if not members_by_root:
            return []

        all_members = set().union(*members_by_root.values())
        rows = self.transactions_repository.list_transactions(
            user_id,
            date_range=date_range,
            category_ids=all_members,
            wallet_ids=wallet_ids,
        )

        return [
            CategoryTotal(
                category_id=root_id,
                category_name=categories[root_id].name,
                total=sum((row.amount for row in rows if row.category_id in members), _ZERO),
            )
            for root_id, members in members_by_root.items()
        ]

    def top_transactions(
        self,
        user_id: int,
        category_type: CategoryType,
        date_range: DateRange,
        n: int,
    ) -> list[TransactionItem]:
        """Largest ``n`` transactions of a type; ties go to the most recent id."""
        categories = self._categories_by_id(user_id)
        rows = self._rows_of_type(user_id, category_type, date_range, categories=categories)
        ranked = sorted(rows, key=lambda row: (row.amount, row.id), reverse=True)[: max(n, 0)]
        wallet_names = {
            wallet.id: wallet.name
            for wallet in self.wallets_repository.list_wallets(user_id, include_archived=True)
        }
        return [
            TransactionItem(
                id=row.id,
                tx_date=row.tx_date,
                amount=row.amount,
                description=row.description,
                category_name=categories[row.category_id].name,
                wallet_name=wallet_names.get(row.wallet_id),
            )
            for row in ranked
        ]

    def top_categories_by_spend(
        self,
        user_id: int,
        date_range: DateRange,
        n: int,
    ) -> tuple[list[CategoryTotal], Decimal]:
        """Expense categories ranked by spend, with the period's total expense."""
        categories = self._categories_by_id(user_id)
        rows = self._rows_of_type(user_id, CategoryType.EXPENSE, date_range, categories=categories)

        totals: dict[int, Decimal] = {}
        for row in rows:
            totals[row.category_id] = totals.get(row.category_id, _ZERO) + row.amount
        period_total = sum(totals.values(), _ZERO)

        ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))[: max(n, 0)]
        items = [
            CategoryTotal(
                category_id=category_id,
                category_name=categories[category_id].name,
                total=total,
                share_percentage=percentage_of(total, period_total),
            )
            for category_id, total in ranked
        ]
        return items, period_total

    def top_wallet_by_spend(self, user_id: int, date_range: DateRange) -> WalletSpend | None:
        rows = self._rows_of_type(user_id, CategoryType.EXPENSE, date_range)
        totals: dict[int, Decimal] = {}
        for row in rows:
            totals[row.wallet_id] = totals.get(row.wallet_id, _ZERO) + row.amount
        if not totals:
            return None

        period_total = sum(totals.values(), _ZERO)
        wallet_id, wallet_total = min(totals.items(), key=lambda item: (-item[1], item[0]))
        wallets = {
            wallet.id: wallet
            for wallet in self.wallets_repository.list_wallets(user_id, include_archived=True)
        }
        wallet = wallets.get(wallet_id)
        return WalletSpend(
            wallet_id=wallet_id,
            wallet_name=wallet.name if wallet is not None else f"#{wallet_id}",
            balance=wallet.balance if wallet is not None else _ZERO,
            total_expense=wallet_total,
            period_total_expense=period_total,
            share_percentage=percentage_of(wallet_total, period_total),
        )

    def total_balance(self, user_id: int) -> tuple[Decimal, int]:
        """Sum of non-archived wallet balances and the number of wallets summed."""
        wallets = self.wallets_repository.list_wallets(user_id)
        return sum((wallet.balance for wallet in wallets), _ZERO), len(wallets)

    def budget_usage(self, user_id: int, date_range: DateRange) -> BudgetUsage:
        """Global budget of the range's month with that month's expense."""
        month_period = month_range(date_range.start_date.year, date_range.start_date.month)
        budget = self.budgets_repository.get_global_budget(
            user_id,
            date(month_period.start_date.year, month_period.start_date.month, 1),
        )
        if budget is None:
            return BudgetUsage(exists=False, period=month_period)

        spent = self.sum_by_type(user_id, CategoryType.EXPENSE, month_period)
        limit = budget.limit_amount
        percentage = percentage_of(spent, limit)
        threshold_amount = limit * Decimal(budget.alert_threshold) / _HUNDRED

        return BudgetUsage(
            exists=True,
            period=month_period,
            budget_id=budget.id,
            limit_amount=limit,
            spent_amount=spent,
            percentage=percentage,
            alert_threshold=budget.alert_threshold,
            is_over_threshold=limit > 0 and spent * _HUNDRED >= limit * Decimal(budget.alert_threshold),
            is_over_limit=spent > limit,
            remaining_to_threshold=max(threshold_amount - spent, _ZERO),
            remaining_to_limit=max(limit - spent, _ZERO),
            notify_in_app=budget.notify_in_app,
            notify_email=budget.notify_email,
        )
