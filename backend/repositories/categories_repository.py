"""Repository interfaces and adapters for reading categories."""

from __future__ import annotations

from typing import Any, Protocol

from backend.db.supabase_client import SupabaseClient, fetch_all_rows
from shared.models import Category, CategoryType


class CategoriesRepository(Protocol):
    def list_visible_categories(self, user_id: int) -> list[Category]:
        """Return global categories plus the user's private ones."""


class InMemoryCategoriesRepository:
    """In-memory categories repository used by tests/dev."""

    def __init__(self, categories: list[Category] | None = None) -> None:
        self._categories: list[Category] = list(categories or [])

    def add(self, category: Category) -> Category:
        self._categories.append(category)
        return category

    def list_visible_categories(self, user_id: int) -> list[Category]:
        return sorted(
            [
                category
                for category in self._categories
                if category.user_id is None or category.user_id == user_id
            ],
            key=lambda category: category.id,
        )


class SupabaseCategoriesRepository:
    """Supabase-backed categories repository."""

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    @staticmethod
    def _parse_row(row: dict[str, Any]) -> Category:
        raw_parent = row.get("parent_category_id")
        raw_user = row.get("user_id")
        return Category(
            id=int(row["category_id"]),
            name=str(row.get("category_name") or ""),
            type=CategoryType(str(row.get("type"))),
            parent_id=int(raw_parent) if raw_parent is not None else None,
            user_id=int(raw_user) if raw_user is not None else None,
        )

    def list_visible_categories(self, user_id: int) -> list[Category]:
        rows = fetch_all_rows(
            self._client,
            table="categories",
            query=[
                ("select", "category_id,category_name,type,parent_category_id,user_id"),
                ("or", f"(user_id.is.null,user_id.eq.{int(user_id)})"),
            ],
            order="category_id.asc",
        )
        return [self._parse_row(row) for row in rows]
