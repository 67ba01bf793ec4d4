"""Transactions repository adapters.

Only live rows are ever returned: soft-deleted transactions (``deleted_at``
set) never reach the aggregation layer.
"""

from __future__ import annotations

from collections.abc import Collection
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Protocol

from backend.db.supabase_client import SupabaseClient, fetch_all_rows
from shared.models import DateRange, LedgerTransaction


class TransactionsRepository(Protocol):
    def list_transactions(
        self,
        user_id: int,
        *,
        date_range: DateRange | None = None,
        category_ids: Collection[int] | None = None,
        wallet_ids: Collection[int] | None = None,
    ) -> list[LedgerTransaction]:
        """Return non-deleted transactions of one user matching the filters.

        ``None`` filters are unrestricted; an empty collection matches nothing.
        """


class InMemoryTransactionsRepository:
    """In-memory transactions repository used by tests/dev."""

    def __init__(self, transactions: list[LedgerTransaction] | None = None) -> None:
        self._transactions: list[LedgerTransaction] = list(transactions or [])

    def add(self, transaction: LedgerTransaction) -> LedgerTransaction:
        self._transactions.append(transaction)
        return transaction

    def list_transactions(
        self,
        user_id: int,
        *,
        date_range: DateRange | None = None,
        category_ids: Collection[int] | None = None,
        wallet_ids: Collection[int] | None = None,
    ) -> list[LedgerTransaction]:
        rows = [
            row
            for row in self._transactions
            if row.user_id == user_id and row.deleted_at is None
        ]
        if date_range is not None:
            rows = [row for row in rows if date_range.contains(row.tx_date)]
        if category_ids is not None:
            allowed_categories = set(category_ids)
            rows = [row for row in rows if row.category_id in allowed_categories]
        if wallet_ids is not None:
            allowed_wallets = set(wallet_ids)
            rows = [row for row in rows if row.wallet_id in allowed_wallets]
        return rows


class SupabaseTransactionsRepository:
    """Supabase repository reading `public.transactions`."""

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    @staticmethod
    def _in_filter(ids: Collection[int]) -> str:
        return "in.(" + ",".join(str(int(item)) for item in sorted(set(ids))) + ")"

    @staticmethod
    def _parse_row(row: dict[str, Any]) -> LedgerTransaction:
        raw_date = row.get("tx_date")
        if isinstance(raw_date, datetime):
            parsed_date = raw_date.date()
        elif isinstance(raw_date, date):
            parsed_date = raw_date
        else:
            parsed_date = date.fromisoformat(str(raw_date)[:10])

        return LedgerTransaction(
            id=int(row["transaction_id"]),
            user_id=int(row["user_id"]),
            category_id=int(row["category_id"]),
            wallet_id=int(row["wallet_id"]),
            amount=Decimal(str(row.get("amount"))),
            tx_date=parsed_date,
            description=row.get("description"),
        )

    def list_transactions(
        self,
        user_id: int,
        *,
        date_range: DateRange | None = None,
        category_ids: Collection[int] | None = None,
        wallet_ids: Collection[int] | None = None,
    ) -> list[LedgerTransaction]:
        if (category_ids is not None and not category_ids) or (wallet_ids is not None and not wallet_ids):
            return []

        query: list[tuple[str, str | int]] = [
            ("select", "transaction_id,user_id,category_id,wallet_id,amount,tx_date,description"),
            ("user_id", f"eq.{int(user_id)}"),
            ("deleted_at", "is.null"),
        ]
        if date_range is not None:
            query.append(("tx_date", f"gte.{date_range.start_date.isoformat()}"))
            query.append(("tx_date", f"lt.{date_range.end_date_exclusive.isoformat()}"))
        if category_ids is not None:
            query.append(("category_id", self._in_filter(category_ids)))
        if wallet_ids is not None:
            query.append(("wallet_id", self._in_filter(wallet_ids)))

        rows = fetch_all_rows(self._client, table="transactions", query=query, order="transaction_id.asc")
        return [self._parse_row(row) for row in rows]
