"""Tests for fuzzy category and wallet name resolution."""

from __future__ import annotations

from backend.services.entity_resolver import (
    CATEGORY_MIN_SCORE,
    CONTAINMENT_SCORE,
    EntityResolver,
    dice_coefficient,
    match_score,
    resolve_names,
)
from shared.models import CategoryType, EntityKind
from tests.fakes import (
    BANK,
    CASH,
    FOOD,
    MOMO,
    OTHER_USER_ID,
    PETS,
    SALARY,
    TRANSPORT,
    USER_ID,
    build_seeded_ledger,
)


def _resolver() -> EntityResolver:
    ledger = build_seeded_ledger()
    return EntityResolver(categories_repository=ledger.categories, wallets_repository=ledger.wallets)


def test_dice_coefficient_is_reflexive_and_symmetric() -> None:
    assert dice_coefficient("Ăn uống", "Ăn uống") == 1.0
    assert dice_coefficient("an uong", "an ong") == dice_coefficient("an ong", "an uong")


def test_dice_coefficient_counts_shared_bigrams_once() -> None:
    # "anuong" -> an nu uo on ng, "anong" -> an no on ng: 3 shared of 9.
    assert round(dice_coefficient("an uong", "an ong"), 4) == round(6 / 9, 4)
    assert dice_coefficient("aa", "aaaa") == 2 * 1 / (1 + 3)


def test_dice_coefficient_of_disjoint_or_tiny_strings_is_zero() -> None:
    assert dice_coefficient("xyz", "an uong") == 0.0
    assert dice_coefficient("a", "b") == 0.0


def test_match_score_exact_after_normalization() -> None:
    assert match_score("an uong", "Ăn uống") == 1.0
    assert match_score("ĐI LẠI", "Đi lại") == 1.0


def test_match_score_containment_beats_threshold() -> None:
    assert match_score("Ăn", "Ăn uống") == CONTAINMENT_SCORE
    assert match_score("ví tiền mặt", "Tiền mặt") == CONTAINMENT_SCORE
    assert match_score("mo", "MoMo") >= 0.9


def test_resolve_names_with_empty_candidates_reports_every_name() -> None:
    result = resolve_names(["an uong", "di lai"], [], min_score=CATEGORY_MIN_SCORE)

    assert result.resolved == []
    assert result.unresolved == ["an uong", "di lai"]


def test_resolve_names_skips_blank_inputs() -> None:
    result = resolve_names(["", "  "], [(1, "Ăn uống")], min_score=CATEGORY_MIN_SCORE)

    assert result.resolved == []
    assert result.unresolved == []


def test_resolve_categories_informal_names() -> None:
    result = _resolver().resolve(USER_ID, EntityKind.CATEGORY, ["an uong", "đi lai", "xyz"])

    assert result.matched_ids == [FOOD, TRANSPORT]
    assert [entity.input_text for entity in result.resolved] == ["an uong", "đi lai"]
    assert result.resolved[0].matched_name == "Ăn uống"
    assert result.resolved[0].confidence_score == 1.0
    assert result.unresolved == ["xyz"]


def test_resolve_categories_tolerates_typos() -> None:
    result = _resolver().resolve(USER_ID, EntityKind.CATEGORY, ["an ong"])

    assert result.matched_ids == [FOOD]
    assert CATEGORY_MIN_SCORE <= result.resolved[0].confidence_score < 1.0


def test_resolve_collapses_names_matching_the_same_entity() -> None:
    result = _resolver().resolve(USER_ID, EntityKind.CATEGORY, ["Ăn uống", "an uong"])

    assert result.matched_ids == [FOOD]
    assert result.resolved[0].input_text == "an uong"


def test_resolve_categories_only_offers_expense_categories_by_default() -> None:
    resolver = _resolver()

    assert resolver.resolve(USER_ID, EntityKind.CATEGORY, ["Lương"]).matched_ids != [SALARY]
    income = resolver.resolve(USER_ID, EntityKind.CATEGORY, ["Lương"], category_type=CategoryType.INCOME)
    assert income.matched_ids == [SALARY]


def test_resolve_categories_scopes_private_categories_to_owner() -> None:
    resolver = _resolver()

    assert resolver.resolve(USER_ID, EntityKind.CATEGORY, ["thu cung"]).matched_ids == [PETS]
    assert resolver.resolve(OTHER_USER_ID, EntityKind.CATEGORY, ["thu cung"]).matched_ids == []
    assert resolver.resolve(USER_ID, EntityKind.CATEGORY, ["bi mat"]).matched_ids == []


def test_resolve_wallets_ignores_archived_wallets() -> None:
    resolver = _resolver()

    assert resolver.resolve(USER_ID, EntityKind.WALLET, ["momo"]).matched_ids == [MOMO]
    assert resolver.resolve(USER_ID, EntityKind.WALLET, ["tien mat"]).matched_ids == [CASH]
    assert resolver.resolve(USER_ID, EntityKind.WALLET, ["vietcom"]).matched_ids == [BANK]
    assert resolver.resolve(USER_ID, EntityKind.WALLET, ["ví cũ"]).unresolved == ["ví cũ"]


def test_resolve_without_names_does_not_read_candidates() -> None:
    class _ExplodingRepository:
        def list_visible_categories(self, user_id: int):
            raise AssertionError("should not be called")

        def list_wallets(self, user_id: int, *, include_archived: bool = False):
            raise AssertionError("should not be called")

    resolver = EntityResolver(
        categories_repository=_ExplodingRepository(),
        wallets_repository=_ExplodingRepository(),
    )

    result = resolver.resolve(USER_ID, EntityKind.CATEGORY, ["", " "])

    assert result.resolved == [] and result.unresolved == []
