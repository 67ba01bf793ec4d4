"""Tests for in-app budget alert bookkeeping and scheduling."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

import pytest

from backend.services.budget_alerts import (
    OVER_LIMIT_THRESHOLD,
    run_budget_alert_check,
    schedule_budget_alert_check,
)
from shared.models import Budget
from tests.fakes import REFERENCE_TODAY, USER_ID, build_seeded_ledger


def _budget(limit: str, *, threshold: int = 80, notify_in_app: bool = True) -> Budget:
    return Budget(
        id=700,
        user_id=USER_ID,
        month=date(2025, 3, 1),
        limit_amount=Decimal(limit),
        alert_threshold=threshold,
        notify_in_app=notify_in_app,
    )


def test_crossing_threshold_logs_threshold_only() -> None:
    ledger = build_seeded_ledger()

    logs = ledger.services.budget_alerts.check_and_log(USER_ID, REFERENCE_TODAY)

    assert [(log.budget_id, log.threshold, log.channel) for log in logs] == [(501, 80, "in_app")]
    assert ledger.budgets.list_alert_logs(USER_ID) == logs


def test_exceeding_limit_also_logs_over_limit_marker() -> None:
    ledger = build_seeded_ledger(budgets=[_budget("900000")])

    logs = ledger.services.budget_alerts.check_and_log(USER_ID, REFERENCE_TODAY)

    assert [log.threshold for log in logs] == [80, OVER_LIMIT_THRESHOLD]


def test_repeated_checks_do_not_duplicate_logs() -> None:
    ledger = build_seeded_ledger()
    service = ledger.services.budget_alerts

    service.check_and_log(USER_ID, REFERENCE_TODAY)
    service.check_and_log(USER_ID, REFERENCE_TODAY)

    assert len(ledger.budgets.list_alert_logs(USER_ID)) == 1


def test_no_log_below_threshold_or_without_in_app_notifications() -> None:
    below = build_seeded_ledger(budgets=[_budget("5000000")])
    muted = build_seeded_ledger(budgets=[_budget("900000", notify_in_app=False)])

    assert below.services.budget_alerts.check_and_log(USER_ID, REFERENCE_TODAY) == []
    assert muted.services.budget_alerts.check_and_log(USER_ID, REFERENCE_TODAY) == []


def test_no_log_without_budget() -> None:
    ledger = build_seeded_ledger(budgets=[])

    assert ledger.services.budget_alerts.check_and_log(USER_ID, REFERENCE_TODAY) == []


def test_run_check_logs_failures_instead_of_raising(caplog: pytest.LogCaptureFixture) -> None:
    class _BrokenService:
        def check_and_log(self, user_id, today):
            raise RuntimeError("supabase down")

    with caplog.at_level(logging.ERROR):
        run_budget_alert_check(_BrokenService(), USER_ID, REFERENCE_TODAY)

    assert "budget_alert_check_failed" in caplog.text


def test_schedule_uses_background_task_hook(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("BUDGET_ALERTS_ENABLED", raising=False)
    queued = []
    ledger = build_seeded_ledger()

    scheduled = schedule_budget_alert_check(
        ledger.services.budget_alerts,
        USER_ID,
        add_task=lambda func, *args: queued.append((func, args)),
    )

    assert scheduled is True
    assert queued == [(run_budget_alert_check, (ledger.services.budget_alerts, USER_ID))]


def test_schedule_is_skipped_when_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BUDGET_ALERTS_ENABLED", "false")
    queued = []

    scheduled = schedule_budget_alert_check(
        build_seeded_ledger().services.budget_alerts,
        USER_ID,
        add_task=lambda func, *args: queued.append(func),
    )

    assert scheduled is False
    assert queued == []


def test_spend_just_below_threshold_logs_nothing() -> None:
    # 80 % of 1.175.006 is 940.004,8: the seeded 940.000 spend stays below it.
    ledger = build_seeded_ledger(budgets=[_budget("1175006")])

    assert ledger.services.budget_alerts.check_and_log(USER_ID, REFERENCE_TODAY) == []


def test_spend_just_below_limit_does_not_log_over_limit_marker() -> None:
    ledger = build_seeded_ledger(budgets=[_budget("940040", threshold=100)])

    assert ledger.services.budget_alerts.check_and_log(USER_ID, REFERENCE_TODAY) == []


def test_spend_equal_to_limit_logs_over_limit_marker() -> None:
    ledger = build_seeded_ledger(budgets=[_budget("940000", threshold=100)])

    logs = ledger.services.budget_alerts.check_and_log(USER_ID, REFERENCE_TODAY)

    assert [log.threshold for log in logs] == [100, OVER_LIMIT_THRESHOLD]
