"""Tests for tool argument models: clamping, strict dates and unknown keys."""

from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from shared.models import (
    ExpenseInRangeArgs,
    MonthSelector,
    NoArgs,
    SpendingByCategoriesArgs,
    TopCategoriesArgs,
    TopTransactionsArgs,
    clamp_int,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (0, 1),
        (-4, 1),
        (99, 20),
        (2.9, 2),
        ("7", 7),
        ("abc", 3),
        (None, 3),
        (True, 3),
        (float("nan"), 3),
    ],
)
def test_top_transactions_limit_is_clamped(raw: object, expected: int) -> None:
    assert TopTransactionsArgs.model_validate({"limit": raw}).limit == expected


def test_top_categories_limit_defaults_to_five() -> None:
    assert TopCategoriesArgs().limit == 5
    assert TopCategoriesArgs.model_validate({"limit": 50}).limit == 20


def test_clamp_int_uses_default_for_infinite_values() -> None:
    assert clamp_int(float("inf"), 1, 20, 3) == 3
    assert clamp_int(" 4 ", 1, 20, 3) == 4


def test_month_offset_is_bounded() -> None:
    assert MonthSelector.model_validate({"month_offset": -1000}).month_offset == -240
    assert MonthSelector.model_validate({"month_offset": "-1"}).month_offset == -1


def test_month_selector_rejects_out_of_range_month() -> None:
    with pytest.raises(ValidationError):
        MonthSelector.model_validate({"month": 13})


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ValidationError):
        MonthSelector.model_validate({"month_offset": 0, "user_id": 1})
    with pytest.raises(ValidationError):
        NoArgs.model_validate({"anything": True})


def test_spending_by_categories_requires_names() -> None:
    with pytest.raises(ValidationError):
        SpendingByCategoriesArgs.model_validate({})


def test_spending_by_categories_parses_strict_iso_dates() -> None:
    args = SpendingByCategoriesArgs.model_validate(
        {"category_names": ["an uong"], "start_date": "2025-03-01", "end_date": "2025-03-10"}
    )

    assert args.start_date == date(2025, 3, 1)
    assert args.include_subcategories is True
    assert args.wallet_names == [] and args.wallet_ids == []


@pytest.mark.parametrize("bad_date", ["2025-3-1", "01/03/2025", "2025-02-30", "2025-03-01T10:00:00"])
def test_spending_by_categories_rejects_malformed_dates(bad_date: str) -> None:
    with pytest.raises(ValidationError):
        SpendingByCategoriesArgs.model_validate({"category_names": ["x"], "start_date": bad_date})


def test_spending_by_categories_rejects_end_before_start() -> None:
    with pytest.raises(ValidationError):
        SpendingByCategoriesArgs.model_validate(
            {"category_names": ["x"], "start_date": "2025-03-10", "end_date": "2025-03-01"}
        )


def test_expense_in_range_requires_positive_width() -> None:
    with pytest.raises(ValidationError):
        ExpenseInRangeArgs.model_validate({"start_date": "2025-03-10", "end_date_exclusive": "2025-03-10"})

    args = ExpenseInRangeArgs.model_validate({"start_date": "2025-03-10", "end_date_exclusive": "2025-03-11"})
    assert args.end_date_exclusive == date(2025, 3, 11)
