"""Fuzzy resolution of user-typed category and wallet names.

Names typed in chat are informal ("an uong", "momo", "đi lai"), so each one is
scored against every entity the user can see and accepted only above a
per-kind threshold. Misses are returned as data, never raised.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from backend.repositories.categories_repository import CategoriesRepository
from backend.repositories.wallets_repository import WalletsRepository
from shared.models import CategoryType, EntityKind, ResolutionResult, ResolvedEntity
from shared.text_utils import normalize_name


logger = logging.getLogger(__name__)


EXACT_MATCH_SCORE = 1.0
CONTAINMENT_SCORE = 0.9
CATEGORY_MIN_SCORE = 0.45
WALLET_MIN_SCORE = 0.50

Candidate = tuple[int, str]


def normalize_entity_name(value: str) -> str:
    return normalize_name(value)


def _bigrams(normalized: str) -> Counter[str]:
    compact = normalized.replace(" ", "")
    return Counter(compact[index : index + 2] for index in range(len(compact) - 1))


def dice_coefficient(left: str, right: str) -> float:
    """Sørensen–Dice similarity over character bigrams.

    Shared bigrams are counted as a multiset: each occurrence is consumed once.
    """
    if left and left == right:
        return 1.0

    left_norm = normalize_entity_name(left)
    right_norm = normalize_entity_name(right)
    if left_norm and left_norm == right_norm:
        return 1.0

    left_bigrams = _bigrams(left_norm)
    right_bigrams = _bigrams(right_norm)
    total = sum(left_bigrams.values()) + sum(right_bigrams.values())
    if total == 0:
        return 0.0

    shared = sum((left_bigrams & right_bigrams).values())
    return 2.0 * shared / total


def match_score(query: str, candidate: str) -> float:
    """Score one query against one candidate name, both raw."""
    query_norm = normalize_entity_name(query)
    candidate_norm = normalize_entity_name(candidate)
    if not query_norm or not candidate_norm:
        return 0.0
    if query_norm == candidate_norm:
        return EXACT_MATCH_SCORE
    if query_norm in candidate_norm or candidate_norm in query_norm:
        return CONTAINMENT_SCORE
    return dice_coefficient(query_norm, candidate_norm)


def best_match(query: str, candidates: Iterable[Candidate]) -> tuple[int, str, float] | None:
    """Return the highest scoring candidate; earlier candidates win ties."""
    best: tuple[int, str, float] | None = None
    for candidate_id, candidate_name in candidates:
        score = match_score(query, candidate_name)
        if best is None or score > best[2]:
            best = (candidate_id, candidate_name, score)
    return best


def resolve_names(
    raw_names: Sequence[str],
    candidates: Sequence[Candidate],
    *,
    min_score: float,
) -> ResolutionResult:
    """Resolve each name against ``candidates``; duplicates collapse by id."""

    resolved_by_id: dict[int, ResolvedEntity] = {}
    unresolved: list[str] = []

    for raw_name in raw_names:
        name = (raw_name or "").strip()
        if not name:
            continue

        match = best_match(name, candidates)
        if match is None or match[2] < min_score:
            if name not in unresolved:
                unresolved.append(name)
            continue

        matched_id, matched_name, score = match
        resolved_by_id[matched_id] = ResolvedEntity(
            input_text=name,
            matched_id=matched_id,
            matched_name=matched_name,
            confidence_score=round(score, 4),
        )

    return ResolutionResult(resolved=list(resolved_by_id.values()), unresolved=unresolved)


@dataclass(slots=True)
class EntityResolver:
    categories_repository: CategoriesRepository
    wallets_repository: WalletsRepository

    def candidates(
        self,
        user_id: int,
        kind: EntityKind,
        *,
        category_type: CategoryType | None = CategoryType.EXPENSE,
    ) -> list[Candidate]:
        if kind == EntityKind.WALLET:
            return [(wallet.id, wallet.name) for wallet in self.wallets_repository.list_wallets(user_id)]

        return [
            (category.id, category.name)
            for category in self.categories_repository.list_visible_categories(user_id)
            if category_type is None or category.type == category_type
        ]

    def resolve(
        self,
        user_id: int,
        kind: EntityKind,
        raw_names: Sequence[str],
        *,
        category_type: CategoryType | None = CategoryType.EXPENSE,
    ) -> ResolutionResult:
        """Resolve free-text names of ``kind`` visible to ``user_id``."""

        if not any((name or "").strip() for name in raw_names):
            return ResolutionResult()

        candidates = self.candidates(user_id, kind, category_type=category_type)
        min_score = WALLET_MIN_SCORE if kind == EntityKind.WALLET else CATEGORY_MIN_SCORE
        result = resolve_names(raw_names, candidates, min_score=min_score)
        logger.info(
            "entity_resolution kind=%s requested=%s resolved=%s unresolved=%s",
            kind.value,
            len(raw_names),
            len(result.resolved),
            len(result.unresolved),
        )
        return result
