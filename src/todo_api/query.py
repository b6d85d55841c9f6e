"""
Translation of list-endpoint query parameters into a todo predicate.

The same TodoFilter drives both the page query and the total count in every
storage backend, so the two can never disagree.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .errors import ValidationFailed, missing_user_id
from .models import TodoEntity
from .schemas import Priority

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


@dataclass(frozen=True)
class TodoFilter:
    """
    Predicate over the todo collection. All set conditions are ANDed:
    owner, priority membership, tag intersection, text match.
    """

    user_id: str
    priorities: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()
    search: Optional[str] = None

    def matches(self, todo: TodoEntity) -> bool:
        if todo["user_id"] != self.user_id:
            return False
        if self.priorities and todo["priority"] not in self.priorities:
            return False
        if self.tags and not set(self.tags).intersection(todo["tags"]):
            return False
        if self.search:
            needle = self.search.casefold()
            title_ok = needle in (todo["title"] or "").casefold()
            desc_ok = needle in (todo["description"] or "").casefold()
            if not (title_ok or desc_ok):
                return False
        return True


@dataclass(frozen=True)
class ListQuery:
    """
    A filter plus 1-based page and page size. Results are always ordered by
    creation time, newest first.
    """

    filter: TodoFilter
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self) -> int:
        return (max(self.page, 1) - 1) * max(self.limit, 0)


@dataclass
class TodoPage:
    """One page of listing results with its pagination counters."""

    items: list
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return page_count(self.total, self.limit)


def page_count(total: int, limit: int) -> int:
    """ceil(total / limit); zero when the limit is not positive."""
    if limit <= 0:
        return 0
    return math.ceil(total / limit)


def split_csv_param(raw: Optional[str]) -> List[str]:
    """Split a comma-separated query value, trimming entries and dropping blanks."""
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


# PUBLIC_INTERFACE
def build_todo_filter(
    user_id: Optional[str],
    priority: Optional[str] = None,
    tags: Optional[str] = None,
    search: Optional[str] = None,
) -> TodoFilter:
    """
    Build the listing predicate from raw query parameters.

    Args:
        user_id: Owner id; required.
        priority: Comma-separated priorities; a todo matches any of them.
        tags: Comma-separated tags; a todo matches if it carries at least one.
        search: Case-insensitive substring looked up in title or description.

    Raises:
        ValidationFailed: owner missing or an unknown priority value.
    """
    owner = (user_id or "").strip()
    if not owner:
        raise missing_user_id("the query parameters")

    priorities = split_csv_param(priority)
    allowed = {p.value for p in Priority}
    invalid = [p for p in priorities if p not in allowed]
    if invalid:
        raise ValidationFailed(
            "INVALID_PRIORITY",
            "Invalid priority filter",
            f"Unknown priority values: {', '.join(invalid)}. Allowed: low, medium, high",
        )

    text = (search or "").strip() or None
    return TodoFilter(
        user_id=owner,
        priorities=tuple(dict.fromkeys(priorities)),
        tags=tuple(dict.fromkeys(split_csv_param(tags))),
        search=text,
    )
