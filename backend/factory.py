"""Composition root for backend services."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date

from backend.db.supabase_client import SupabaseClient, SupabaseSettings
from backend.repositories.budgets_repository import (
    BudgetsRepository,
    InMemoryBudgetsRepository,
    SupabaseBudgetsRepository,
)
from backend.repositories.categories_repository import (
    CategoriesRepository,
    InMemoryCategoriesRepository,
    SupabaseCategoriesRepository,
)
from backend.repositories.transactions_repository import (
    InMemoryTransactionsRepository,
    SupabaseTransactionsRepository,
    TransactionsRepository,
)
from backend.repositories.wallets_repository import (
    InMemoryWalletsRepository,
    SupabaseWalletsRepository,
    WalletsRepository,
)
from backend.services.aggregation import LedgerAggregationService
from backend.services.budget_alerts import BudgetAlertService
from backend.services.date_ranges import civil_today
from backend.services.entity_resolver import EntityResolver
from backend.services.tools import BackendToolService
from shared import config


@dataclass(slots=True)
class BackendServices:
    aggregation: LedgerAggregationService
    tool_service: BackendToolService
    budget_alerts: BudgetAlertService


def build_backend_services(
    *,
    categories_repository: CategoriesRepository | None = None,
    wallets_repository: WalletsRepository | None = None,
    transactions_repository: TransactionsRepository | None = None,
    budgets_repository: BudgetsRepository | None = None,
    today_provider: Callable[[], date] = civil_today,
) -> BackendServices:
    """Wire repositories into services.

    Supabase adapters are used when the service role is configured, in-memory
    adapters otherwise. Explicit repositories always win.
    """

    supabase_url = config.supabase_url()
    supabase_key = config.supabase_service_role_key()
    if supabase_url and supabase_key:
        client = SupabaseClient(
            settings=SupabaseSettings(
                url=supabase_url,
                service_role_key=supabase_key,
            )
        )
        categories_repository = categories_repository or SupabaseCategoriesRepository(client=client)
        wallets_repository = wallets_repository or SupabaseWalletsRepository(client=client)
        transactions_repository = transactions_repository or SupabaseTransactionsRepository(client=client)
        budgets_repository = budgets_repository or SupabaseBudgetsRepository(client=client)
    else:
        categories_repository = categories_repository or InMemoryCategoriesRepository()
        wallets_repository = wallets_repository or InMemoryWalletsRepository()
        transactions_repository = transactions_repository or InMemoryTransactionsRepository()
        budgets_repository = budgets_repository or InMemoryBudgetsRepository()

    aggregation = LedgerAggregationService(
        categories_repository=categories_repository,
        wallets_repository=wallets_repository,
        transactions_repository=transactions_repository,
        budgets_repository=budgets_repository,
    )
    resolver = EntityResolver(
        categories_repository=categories_repository,
        wallets_repository=wallets_repository,
    )
    return BackendServices(
        aggregation=aggregation,
        tool_service=BackendToolService(
            aggregation=aggregation,
            entity_resolver=resolver,
            today_provider=today_provider,
        ),
        budget_alerts=BudgetAlertService(aggregation=aggregation, budgets_repository=budgets_repository),
    )
