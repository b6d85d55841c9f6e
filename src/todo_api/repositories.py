from __future__ import annotations

import copy
import logging
import uuid
from abc import ABC, abstractmethod
from threading import RLock
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .models import NoteEntity, TodoEntity, UserEntity
from .query import ListQuery, TodoFilter
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

# Fields a caller may change on an existing todo. id, owner, notes and
# created_at are deliberately absent.
UPDATABLE_FIELDS = frozenset(
    {"title", "description", "priority", "completed", "tags", "assigned_users", "updated_at"}
)


def new_id() -> str:
    """Return a fresh store identifier."""
    return uuid.uuid4().hex


# PUBLIC_INTERFACE
class Repository(ABC):
    """
    Storage contract for todo and user documents.

    The capability set is intentionally small: find by filter, find by ids,
    insert, update, delete and distinct values. Relational population is
    done by the service layer on top of these.
    """

    # users

    @abstractmethod
    def add_user(self, username: str, name: str, user_id: Optional[str] = None) -> UserEntity:
        """Insert a user and return it."""

    @abstractmethod
    def list_users(self) -> List[UserEntity]:
        """Return all users ordered by username."""

    @abstractmethod
    def find_users_by_ids(self, user_ids: Iterable[str]) -> List[UserEntity]:
        """Return the users whose id is in user_ids, in one batch. Unknown ids are skipped."""

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[UserEntity]:
        """Return the user with this username, or None."""

    # todos

    @abstractmethod
    def insert_todo(self, fields: Dict[str, Any]) -> TodoEntity:
        """Persist a new todo document built from fields, assign its id and return it."""

    @abstractmethod
    def get_todo(self, todo_id: str) -> Optional[TodoEntity]:
        """Return a TodoEntity by id, or None if not found."""

    @abstractmethod
    def update_todo(self, todo_id: str, changes: Dict[str, Any]) -> Optional[TodoEntity]:
        """Set the given fields on a todo. Return the updated entity or None if not found."""

    @abstractmethod
    def delete_todo(self, todo_id: str) -> bool:
        """Delete a TodoEntity by id. Return True if deleted, False if not found."""

    @abstractmethod
    def push_note(self, todo_id: str, note: NoteEntity) -> Optional[TodoEntity]:
        """Append a note to a todo. Return the updated entity or None if not found."""

    @abstractmethod
    def find_todos(self, query: ListQuery) -> Tuple[List[TodoEntity], int]:
        """
        Return one page of todos matching query.filter, newest first, together
        with the total number of matches. Both come from the same predicate.
        """

    @abstractmethod
    def find_all_todos(self, todo_filter: TodoFilter) -> List[TodoEntity]:
        """Return every todo matching the filter, newest first."""

    @abstractmethod
    def distinct_tags(self, user_id: str) -> List[str]:
        """Return the sorted unique tags across the owner's todos."""

    def close(self) -> None:
        """Release backend resources. No-op by default."""


def check_changes(changes: Dict[str, Any]) -> None:
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._users: dict[str, UserEntity] = {}
        self._todos: dict[str, TodoEntity] = {}

    def add_user(self, username: str, name: str, user_id: Optional[str] = None) -> UserEntity:
        user: UserEntity = {"id": user_id or new_id(), "username": username, "name": name}
        with self._lock:
            if user["id"] in self._users:
                raise ValueError(f"User id already exists: {user['id']}")
            self._users[user["id"]] = user
        return dict(user)  # type: ignore[return-value]

    def list_users(self) -> List[UserEntity]:
        with self._lock:
            users = sorted(self._users.values(), key=lambda u: u["username"])
            return [dict(u) for u in users]  # type: ignore[misc]

    def find_users_by_ids(self, user_ids: Iterable[str]) -> List[UserEntity]:
        wanted = set(user_ids)
        with self._lock:
            return [dict(u) for uid, u in self._users.items() if uid in wanted]  # type: ignore[misc]

    def get_user_by_username(self, username: str) -> Optional[UserEntity]:
        with self._lock:
            for user in self._users.values():
                if user["username"] == username:
                    return dict(user)  # type: ignore[return-value]
        return None

    def insert_todo(self, fields: Dict[str, Any]) -> TodoEntity:
        entity: TodoEntity = copy.deepcopy({**fields, "id": new_id()})  # type: ignore[assignment]
        with self._lock:
            self._todos[entity["id"]] = entity
        return copy.deepcopy(entity)

    def get_todo(self, todo_id: str) -> Optional[TodoEntity]:
        with self._lock:
            item = self._todos.get(todo_id)
            return None if item is None else copy.deepcopy(item)

    def update_todo(self, todo_id: str, changes: Dict[str, Any]) -> Optional[TodoEntity]:
        check_changes(changes)
        with self._lock:
            existing = self._todos.get(todo_id)
            if existing is None:
                return None
            updated = copy.deepcopy(existing)
            updated.update(copy.deepcopy(changes))  # type: ignore[typeddict-item]
            self._todos[todo_id] = updated
            return copy.deepcopy(updated)

    def delete_todo(self, todo_id: str) -> bool:
        with self._lock:
            return self._todos.pop(todo_id, None) is not None

    def push_note(self, todo_id: str, note: NoteEntity) -> Optional[TodoEntity]:
        with self._lock:
            existing = self._todos.get(todo_id)
            if existing is None:
                return None
            existing["notes"].append(copy.deepcopy(note))
            return copy.deepcopy(existing)

    def _matching(self, todo_filter: TodoFilter) -> List[TodoEntity]:
        # Walk newest insertions first so the stable sort keeps them first on equal timestamps.
        items = [t for t in reversed(list(self._todos.values())) if todo_filter.matches(t)]
        return sorted(items, key=lambda t: t["created_at"], reverse=True)

    def find_todos(self, query: ListQuery) -> Tuple[List[TodoEntity], int]:
        with self._lock:
            items = self._matching(query.filter)
            total = len(items)
            start = query.offset
            page = items[start:start + max(query.limit, 0)]
            return [copy.deepcopy(t) for t in page], total

    def find_all_todos(self, todo_filter: TodoFilter) -> List[TodoEntity]:
        with self._lock:
            return [copy.deepcopy(t) for t in self._matching(todo_filter)]

    def distinct_tags(self, user_id: str) -> List[str]:
        with self._lock:
            tags = {tag for t in self._todos.values() if t["user_id"] == user_id for tag in t["tags"]}
        return sorted(tags)


# PUBLIC_INTERFACE
def create_repository(settings: Optional[Settings] = None) -> Repository:
    """
    Build the repository selected by settings.
    - memory: InMemoryRepository
    - sqlite: SQLiteRepository backed by settings.sqlite_db_path
    """
    settings = settings or get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteRepository

        logger.info("Using SQLite document store at %s", settings.sqlite_db_path)
        return SQLiteRepository(settings.sqlite_db_path)
    logger.info("Using in-memory document store")
    return InMemoryRepository()
