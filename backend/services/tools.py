"""Backend tool service.

Each public method answers one financial question for one user. Methods never
raise: failures are normalized to :class:`ToolError` at this contract boundary.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from backend.services.aggregation import LedgerAggregationService
from backend.services.date_ranges import DateRangeError, civil_today, derive_range, exclusive_range
from backend.services.entity_resolver import EntityResolver
from shared.models import (
    BudgetUsage,
    CategoryType,
    EntityKind,
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
    ToolErrorCode,
    WalletBalanceArgs,
    WalletBalanceResult,
    WalletSummary,
)


logger = logging.getLogger(__name__)


def _backend_error(tool: str, exc: Exception) -> ToolError:
    logger.exception("backend_tool_failed tool=%s", tool)
    return ToolError(code=ToolErrorCode.BACKEND_ERROR, message=str(exc))


def _range_error(exc: DateRangeError) -> ToolError:
    return ToolError(code=ToolErrorCode.VALIDATION_ERROR, message=str(exc))


@dataclass(slots=True)
class BackendToolService:
    aggregation: LedgerAggregationService
    entity_resolver: EntityResolver
    today_provider: Callable[[], date] = field(default=civil_today)

    def _month_period(self, selector: MonthSelector):
        return derive_range(
            today=self.today_provider(),
            month_offset=selector.month_offset,
            month=selector.month,
            year=selector.year,
        )

    def get_monthly_income_expense(
        self, user_id: int, args: MonthSelector
    ) -> MonthlyIncomeExpenseResult | ToolError:
        try:
            period = self._month_period(args)
            income, expense = self.aggregation.income_expense(user_id, period)
            return MonthlyIncomeExpenseResult(
                period=period,
                total_income=income,
                total_expense=expense,
                net=income - expense,
            )
        except DateRangeError as exc:
            return _range_error(exc)
        except Exception as exc:
            return _backend_error("get_monthly_income_expense", exc)

    def get_top_spending_wallet(
        self, user_id: int, args: MonthSelector
    ) -> TopSpendingWalletResult | ToolError:
        try:
            period = self._month_period(args)
            spend = self.aggregation.top_wallet_by_spend(user_id, period)
            if spend is None:
                return TopSpendingWalletResult(found=False, period=period)
            return TopSpendingWalletResult(
                found=True,
                period=period,
                wallet_id=spend.wallet_id,
                wallet_name=spend.wallet_name,
                balance=spend.balance,
                total_expense=spend.total_expense,
                period_total_expense=spend.period_total_expense,
                share_percentage=spend.share_percentage,
            )
        except DateRangeError as exc:
            return _range_error(exc)
        except Exception as exc:
            return _backend_error("get_top_spending_wallet", exc)

    def _top_transactions(
        self, user_id: int, args: TopTransactionsArgs, category_type: CategoryType
    ) -> TopTransactionsResult | ToolError:
        try:
            period = self._month_period(args)
            items = self.aggregation.top_transactions(user_id, category_type, period, args.limit)
            return TopTransactionsResult(period=period, category_type=category_type, items=items)
        except DateRangeError as exc:
            return _range_error(exc)
        except Exception as exc:
            return _backend_error(f"top_{category_type.value}", exc)

    def get_top_big_expenses(
        self, user_id: int, args: TopTransactionsArgs
    ) -> TopTransactionsResult | ToolError:
        return self._top_transactions(user_id, args, CategoryType.EXPENSE)

    def get_top_big_incomes(
        self, user_id: int, args: TopTransactionsArgs
    ) -> TopTransactionsResult | ToolError:
        return self._top_transactions(user_id, args, CategoryType.INCOME)

    def get_budget_status_total_month(
        self, user_id: int, args: MonthSelector
    ) -> BudgetUsage | ToolError:
        try:
            return self.aggregation.budget_usage(user_id, self._month_period(args))
        except DateRangeError as exc:
            return _range_error(exc)
        except Exception as exc:
            return _backend_error("get_budget_status_total_month", exc)

    def get_spending_by_categories(
        self, user_id: int, args: SpendingByCategoriesArgs
    ) -> SpendingByCategoriesResult | ToolError:
        """Spending per named category, optionally restricted to wallets.

        Names that resolve to nothing are reported back, never dropped. When
        wallet names were given and none of them resolved (and no wallet ids
        were passed), no figures are computed rather than widening the query
        to every wallet.
        """
        try:
            period = derive_range(
                today=self.today_provider(),
                start_date=args.start_date,
                end_date_inclusive=args.end_date,
                month_offset=args.month_offset,
                month=args.month,
                year=args.year,
            )
            categories = self.entity_resolver.resolve(
                user_id, EntityKind.CATEGORY, args.category_names
            )

            wallets = None
            wallet_ids = list(dict.fromkeys(args.wallet_ids))
            if any(name.strip() for name in args.wallet_names):
                wallets = self.entity_resolver.resolve(user_id, EntityKind.WALLET, args.wallet_names)
                for wallet_id in wallets.matched_ids:
                    if wallet_id not in wallet_ids:
                        wallet_ids.append(wallet_id)

            wallet_filter_failed = wallets is not None and not wallet_ids
            items = []
            if categories.resolved and not wallet_filter_failed:
                items = self.aggregation.sum_by_category_roots(
                    user_id,
                    categories.matched_ids,
                    period,
                    wallet_ids=wallet_ids or None,
                    include_subtree=args.include_subcategories,
                )

            return SpendingByCategoriesResult(
                period=period,
                include_subcategories=args.include_subcategories,
                items=items,
                total=sum((item.total for item in items), Decimal("0")),
                categories=categories,
                wallets=wallets,
                wallet_ids=wallet_ids,
            )
        except DateRangeError as exc:
            return _range_error(exc)
        except Exception as exc:
            return _backend_error("get_spending_by_categories", exc)

    def get_top_expense_categories(
        self, user_id: int, args: TopCategoriesArgs
    ) -> TopCategoriesResult | ToolError:
        try:
            period = self._month_period(args)
            items, total = self.aggregation.top_categories_by_spend(user_id, period, args.limit)
            return TopCategoriesResult(period=period, items=items, total_expense=total)
        except DateRangeError as exc:
            return _range_error(exc)
        except Exception as exc:
            return _backend_error("get_top_expense_categories", exc)

    def get_total_balance(self, user_id: int) -> TotalBalanceResult | ToolError:
        try:
            total, count = self.aggregation.total_balance(user_id)
            return TotalBalanceResult(total_balance=total, wallet_count=count)
        except Exception as exc:
            return _backend_error("get_total_balance", exc)

    def get_wallet_balance_by_name(
        self, user_id: int, args: WalletBalanceArgs
    ) -> WalletBalanceResult | ToolError:
        wallet_name = args.wallet_name.strip()
        if not wallet_name:
            return WalletBalanceResult(
                need_wallet_name=True,
                message="Bạn muốn xem số dư của ví nào?",
            )

        try:
            resolution = self.entity_resolver.resolve(user_id, EntityKind.WALLET, [wallet_name])
            if not resolution.resolved:
                return WalletBalanceResult(
                    found=False,
                    wallet_name=wallet_name,
                    message=f'Không tìm thấy ví "{wallet_name}".',
                )

            match = resolution.resolved[0]
            wallet = next(
                (
                    item
                    for item in self.aggregation.wallets_repository.list_wallets(user_id)
                    if item.id == match.matched_id
                ),
                None,
            )
            if wallet is None:
                return ToolError(
                    code=ToolErrorCode.NOT_FOUND,
                    message=f"wallet {match.matched_id} disappeared during lookup",
                )
            return WalletBalanceResult(
                found=True,
                wallet_name=wallet_name,
                wallet=WalletSummary(
                    id=wallet.id,
                    name=wallet.name,
                    balance=wallet.balance,
                    type=wallet.type,
                ),
                confidence_score=match.confidence_score,
            )
        except Exception as exc:
            return _backend_error("get_wallet_balance_by_name", exc)

    def get_expense_in_range(
        self, user_id: int, args: ExpenseInRangeArgs
    ) -> ExpenseInRangeResult | ToolError:
        try:
            period = exclusive_range(args.start_date, args.end_date_exclusive)
            total = self.aggregation.sum_by_type(user_id, CategoryType.EXPENSE, period)
            return ExpenseInRangeResult(period=period, total_expense=total)
        except DateRangeError as exc:
            return _range_error(exc)
        except Exception as exc:
            return _backend_error("get_expense_in_range", exc)
