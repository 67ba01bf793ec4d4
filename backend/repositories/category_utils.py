"""Utilities for walking the category tree in repositories and services."""

from __future__ import annotations

from collections.abc import Iterable

from shared.models import Category


def build_children_index(categories: Iterable[Category]) -> dict[int, list[int]]:
    """Map each parent category id to the ids of its direct children."""
    children: dict[int, list[int]] = {}
    for category in categories:
        if category.parent_id is not None:
            children.setdefault(category.parent_id, []).append(category.id)
    return children


def descendant_closure(root_id: int, children_index: dict[int, list[int]]) -> set[int]:
    """Return ``root_id`` plus every category below it.

    Visited ids are tracked so corrupted, cyclic parent links still terminate.
    """
    closure = {root_id}
    stack = [root_id]
    while stack:
        current = stack.pop()
        for child_id in children_index.get(current, ()):
            if child_id not in closure:
                closure.add(child_id)
                stack.append(child_id)
    return closure
