"""Todo and user business logic layer."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .errors import ValidationFailed, missing_user_id, todo_not_found
from .exporter import todos_to_csv
from .models import NoteEntity, TodoEntity, UserEntity
from .query import ListQuery, TodoFilter, TodoPage
from .repositories import Repository, new_id
from .schemas import NoteCreate, NoteOut, TodoCreate, TodoOut, TodoUpdate, UserOut
from .validators import ensure_users_exist

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# Update fields for which an explicit null means "leave unchanged".
_NON_NULLABLE_UPDATES = ("title", "priority", "completed", "tags", "assigned_users")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_owner(user_id: Optional[str], where: str) -> str:
    owner = (user_id or "").strip()
    if not owner:
        raise missing_user_id(where)
    return owner


def _missing_title() -> ValidationFailed:
    return ValidationFailed("MISSING_TITLE", "Title is required", "Please provide a title for the todo")


class TodoService:
    """
    Lifecycle rules for todos: required fields, reference checks, partial
    updates and append-only notes. Reads come back with assigned users and
    note authors populated.
    """

    def __init__(self, repository: Repository, clock: Clock = utcnow) -> None:
        self.repository = repository
        self._clock = clock

    # population

    def _user_lookup(self, todos: Iterable[TodoEntity]) -> Dict[str, UserEntity]:
        ids: set[str] = set()
        for todo in todos:
            ids.update(todo["assigned_users"])
            ids.update(n["user_id"] for n in todo["notes"] if n["user_id"])
        if not ids:
            return {}
        return {u["id"]: u for u in self.repository.find_users_by_ids(ids)}

    @staticmethod
    def _to_out(todo: TodoEntity, users: Mapping[str, UserEntity]) -> TodoOut:
        # References to users that no longer exist are dropped, not failed.
        notes = [
            NoteOut(
                id=n["id"],
                content=n["content"],
                user=UserOut(**users[n["user_id"]]) if n["user_id"] in users else None,
                created_at=n["created_at"],
            )
            for n in todo["notes"]
        ]
        return TodoOut(
            id=todo["id"],
            title=todo["title"],
            description=todo["description"],
            priority=todo["priority"],
            completed=todo["completed"],
            user_id=todo["user_id"],
            tags=list(todo["tags"]),
            assigned_users=[UserOut(**users[uid]) for uid in todo["assigned_users"] if uid in users],
            notes=notes,
            created_at=todo["created_at"],
            updated_at=todo["updated_at"],
        )

    def populate(self, todos: List[TodoEntity]) -> List[TodoOut]:
        """Resolve user references for a batch of todos with one user lookup."""
        users = self._user_lookup(todos)
        return [self._to_out(t, users) for t in todos]

    def _populate_one(self, todo: TodoEntity) -> TodoOut:
        return self.populate([todo])[0]

    # reads

    def list_todos(self, query: ListQuery) -> TodoPage:
        """Return the requested page of the owner's todos matching the filter."""
        items, total = self.repository.find_todos(query)
        return TodoPage(items=self.populate(items), total=total, page=query.page, limit=query.limit)

    def get_todo(self, todo_id: str) -> TodoOut:
        todo = self.repository.get_todo(todo_id)
        if todo is None:
            raise todo_not_found(todo_id)
        return self._populate_one(todo)

    def distinct_tags(self, user_id: Optional[str]) -> List[str]:
        """Unique tags across the owner's todos; empty for an owner without todos."""
        owner = _require_owner(user_id, "the query parameters")
        return self.repository.distinct_tags(owner)

    def export_todos(self, user_id: Optional[str]) -> str:
        """CSV text for all of the owner's todos, newest first."""
        owner = _require_owner(user_id, "the query parameters")
        todos = self.repository.find_all_todos(TodoFilter(user_id=owner))
        logger.info("Exporting %d todo(s) for user %s", len(todos), owner)
        return todos_to_csv(todos)

    # writes

    def create_todo(self, payload: TodoCreate) -> TodoOut:
        """
        Create a new todo.

        Raises:
            ValidationFailed: title or owner missing, owner unknown, or an
                assigned user does not exist. Nothing is stored in that case.
        """
        if not payload.title:
            raise _missing_title()
        owner = _require_owner(payload.user_id, "the request body")

        ensure_users_exist(
            self.repository, [owner], code="INVALID_USER_ID", message="Owner user does not exist"
        )
        ensure_users_exist(self.repository, payload.assigned_users)

        now = self._clock()
        fields: Dict[str, Any] = {
            "title": payload.title,
            "description": payload.description,
            "priority": payload.priority.value,
            "completed": payload.completed,
            "user_id": owner,
            "tags": list(payload.tags),
            "assigned_users": list(payload.assigned_users),
            "notes": [],
            "created_at": now,
            "updated_at": now,
        }
        created = self.repository.insert_todo(fields)
        logger.info("Created todo %s for user %s", created["id"], owner)
        return self._populate_one(created)

    def update_todo(self, todo_id: str, payload: TodoUpdate) -> TodoOut:
        """
        Apply a partial update: only keys present in the request change.
        updated_at is refreshed on every call, even when nothing else changes.
        """
        if self.repository.get_todo(todo_id) is None:
            raise todo_not_found(todo_id)

        supplied = payload.model_fields_set
        changes: Dict[str, Any] = {}
        for name in _NON_NULLABLE_UPDATES:
            value = getattr(payload, name)
            if name in supplied and value is not None:
                changes[name] = value
        if "description" in supplied:
            changes["description"] = payload.description

        if "title" in changes and not changes["title"]:
            raise _missing_title()
        if "priority" in changes:
            changes["priority"] = changes["priority"].value
        if "assigned_users" in changes:
            ensure_users_exist(self.repository, changes["assigned_users"])

        changes["updated_at"] = self._clock()
        updated = self.repository.update_todo(todo_id, changes)
        if updated is None:
            # deleted between the existence check and the write
            raise todo_not_found(todo_id)
        logger.info("Updated todo %s fields=%s", todo_id, sorted(changes))
        return self._populate_one(updated)

    def delete_todo(self, todo_id: str) -> str:
        """Hard-delete a todo and return its id."""
        if not self.repository.delete_todo(todo_id):
            raise todo_not_found(todo_id)
        logger.info("Deleted todo %s", todo_id)
        return todo_id

    def add_note(self, todo_id: str, payload: NoteCreate) -> TodoOut:
        """
        Append a note to a todo. The optional author must be an existing user.
        """
        if not payload.content:
            raise ValidationFailed(
                "MISSING_NOTE_CONTENT",
                "Note content is required",
                "Please provide content for the note",
            )
        if self.repository.get_todo(todo_id) is None:
            raise todo_not_found(todo_id)
        if payload.user_id:
            ensure_users_exist(
                self.repository,
                [payload.user_id],
                code="INVALID_NOTE_AUTHOR",
                message="Note author does not exist",
            )

        note: NoteEntity = {
            "id": new_id(),
            "content": payload.content,
            "user_id": payload.user_id or None,
            "created_at": self._clock(),
        }
        updated = self.repository.push_note(todo_id, note)
        if updated is None:
            raise todo_not_found(todo_id)
        logger.info("Added note %s to todo %s", note["id"], todo_id)
        return self._populate_one(updated)


class UserService:
    """Read-only access to users."""

    def __init__(self, repository: Repository) -> None:
        self.repository = repository

    def list_users(self) -> List[UserOut]:
        return [UserOut(**u) for u in self.repository.list_users()]
