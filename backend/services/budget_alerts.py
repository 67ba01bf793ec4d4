"""In-app budget alert bookkeeping.

Checks run detached from the request that triggered them: failures are logged
and never reach the caller.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Any

from backend.repositories.budgets_repository import BudgetsRepository
from backend.services.aggregation import LedgerAggregationService
from backend.services.date_ranges import civil_today, month_range
from shared import config
from shared.models import BudgetAlertLog


logger = logging.getLogger(__name__)

OVER_LIMIT_THRESHOLD = 101


@dataclass(slots=True)
class BudgetAlertService:
    aggregation: LedgerAggregationService
    budgets_repository: BudgetsRepository

    def check_and_log(self, user_id: int, today: date) -> list[BudgetAlertLog]:
        """Log the thresholds crossed by this month's global budget.

        Crossing the configured threshold logs that threshold; reaching 100 %
        also logs ``101``. Rows already logged today are ignored by storage.
        """
        usage = self.aggregation.budget_usage(user_id, month_range(today.year, today.month))
        if not usage.exists or not usage.notify_in_app or not usage.limit_amount or usage.limit_amount <= 0:
            return []

        thresholds: list[int] = []
        if usage.alert_threshold is not None and usage.is_over_threshold:
            thresholds.append(usage.alert_threshold)
        if usage.spent_amount is not None and usage.spent_amount >= usage.limit_amount:
            thresholds.append(OVER_LIMIT_THRESHOLD)
        if not thresholds:
            return []

        logs = [
            BudgetAlertLog(
                user_id=user_id,
                budget_id=usage.budget_id,
                threshold=threshold,
                sent_on=today,
                channel="in_app",
            )
            for threshold in thresholds
        ]
        self.budgets_repository.insert_alert_logs(logs)
        logger.info(
            "budget_alerts_logged user_id=%s budget_id=%s thresholds=%s percentage=%s",
            user_id,
            usage.budget_id,
            thresholds,
            usage.percentage,
        )
        return logs


def run_budget_alert_check(service: BudgetAlertService, user_id: int, today: date | None = None) -> None:
    """Run one check, logging instead of raising."""
    try:
        service.check_and_log(user_id, today or civil_today())
    except Exception:
        logger.exception("budget_alert_check_failed user_id=%s", user_id)


def schedule_budget_alert_check(
    service: BudgetAlertService,
    user_id: int,
    *,
    add_task: Callable[..., Any] | None = None,
) -> bool:
    """Queue a check without blocking the caller.

    ``add_task`` follows ``BackgroundTasks.add_task``; without it the check
    runs on a daemon thread. Returns False when alerts are disabled.
    """
    if not config.budget_alerts_enabled():
        logger.info("budget_alert_check_skipped user_id=%s reason=disabled", user_id)
        return False

    if add_task is not None:
        add_task(run_budget_alert_check, service, user_id)
    else:
        threading.Thread(
            target=run_budget_alert_check,
            args=(service, user_id),
            name=f"budget-alerts-{user_id}",
            daemon=True,
        ).start()
    return True
