"""Repository interfaces and adapters for budgets and budget alert logs."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Protocol

from backend.db.supabase_client import SupabaseClient
from shared.models import Budget, BudgetAlertLog


class BudgetsRepository(Protocol):
    def get_global_budget(self, user_id: int, month_start: date) -> Budget | None:
        """Return the budget with neither category nor wallet scope for one month."""

    def insert_alert_logs(self, logs: list[BudgetAlertLog]) -> None:
        """Record alert rows, ignoring rows already logged."""


class InMemoryBudgetsRepository:
    """In-memory budgets repository used by tests/dev."""

    def __init__(self, budgets: list[Budget] | None = None) -> None:
        self._budgets: list[Budget] = list(budgets or [])
        self._alert_logs: list[BudgetAlertLog] = []

    def add(self, budget: Budget) -> Budget:
        self._budgets.append(budget)
        return budget

    def get_global_budget(self, user_id: int, month_start: date) -> Budget | None:
        for budget in self._budgets:
            if budget.user_id == user_id and budget.month == month_start and budget.is_global:
                return budget
        return None

    def insert_alert_logs(self, logs: list[BudgetAlertLog]) -> None:
        for log in logs:
            if log not in self._alert_logs:
                self._alert_logs.append(log)

    def list_alert_logs(self, user_id: int) -> list[BudgetAlertLog]:
        return [log for log in self._alert_logs if log.user_id == user_id]


class SupabaseBudgetsRepository:
    """Supabase-backed budgets repository."""

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    @staticmethod
    def _parse_row(row: dict[str, Any]) -> Budget:
        return Budget(
            id=int(row["budget_id"]),
            user_id=int(row["user_id"]),
            month=date.fromisoformat(str(row["month"])[:10]),
            limit_amount=Decimal(str(row.get("limit_amount") or "0")),
            alert_threshold=int(row.get("alert_threshold") or 100),
            category_id=row.get("category_id"),
            wallet_id=row.get("wallet_id"),
            notify_in_app=bool(row.get("notify_in_app")),
            notify_email=bool(row.get("notify_email")),
        )

    def get_global_budget(self, user_id: int, month_start: date) -> Budget | None:
        rows = self._client.get_rows(
            table="budgets",
            query=[
                (
                    "select",
                    "budget_id,user_id,month,limit_amount,alert_threshold,"
                    "category_id,wallet_id,notify_in_app,notify_email",
                ),
                ("user_id", f"eq.{int(user_id)}"),
                ("month", f"eq.{month_start.isoformat()}"),
                ("category_id", "is.null"),
                ("wallet_id", "is.null"),
                ("limit", 1),
            ],
        )
        if not rows:
            return None
        return self._parse_row(rows[0])

    def insert_alert_logs(self, logs: list[BudgetAlertLog]) -> None:
        self._client.insert_rows(
            table="budget_alert_logs",
            rows=[log.model_dump(mode="json") for log in logs],
            on_conflict="user_id,budget_id,threshold,sent_on,channel",
        )
