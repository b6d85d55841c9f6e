from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Priority(str, Enum):
    """Allowed todo priorities."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def unique_strings(values: Optional[Iterable[Any]]) -> Optional[List[str]]:
    """
    Trim entries, drop blanks and keep the first occurrence of each value.
    None passes through so partial updates can tell "absent" from "empty".
    """
    if values is None:
        return None
    seen: set[str] = set()
    result: List[str] = []
    for value in values:
        s = str(value).strip()
        if s and s not in seen:
            seen.add(s)
            result.append(s)
    return result


def _strip_optional(v: Optional[str]) -> Optional[str]:
    return v.strip() if isinstance(v, str) else v


class ApiModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# PUBLIC_INTERFACE
class TodoCreate(ApiModel):
    """
    Schema for creating a new Todo item.

    title and userId are declared optional here so that their absence is
    reported with a specific error code by the service instead of a generic
    validation failure.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "priority": "high",
                "tags": ["home", "errands"],
                "assignedUsers": [],
                "userId": "5f1c0e9d8a7b4c3d2e1f0a9b8c7d6e5f",
            }
        }
    )

    title: Optional[str] = Field(default=None, description="Short title for the todo item", max_length=200)
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    priority: Priority = Field(default=Priority.MEDIUM, description="low, medium or high")
    completed: bool = Field(default=False, description="Completion status flag")
    user_id: Optional[str] = Field(default=None, description="Owner user id")
    tags: List[str] = Field(default_factory=list, description="Tags; duplicates are dropped")
    assigned_users: List[str] = Field(default_factory=list, description="Ids of assigned users")

    @field_validator("title", "user_id")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        """Trim surrounding whitespace; emptiness is checked by the service."""
        return _strip_optional(v)

    @field_validator("tags", "assigned_users")
    @classmethod
    def dedupe(cls, v: List[str]) -> List[str]:
        """Normalize list fields to trimmed, duplicate-free lists."""
        return unique_strings(v) or []


# PUBLIC_INTERFACE
class TodoUpdate(ApiModel):
    """
    Schema for updating an existing Todo item.
    All fields are optional; only provided fields will be updated.
    The owner cannot be changed, so userId is not part of this schema.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries and supplies",
                "completed": True,
                "tags": ["home"],
            }
        }
    )

    title: Optional[str] = Field(default=None, description="Short title for the todo item", max_length=200)
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    priority: Optional[Priority] = Field(default=None, description="low, medium or high")
    completed: Optional[bool] = Field(default=None, description="Completion status flag")
    tags: Optional[List[str]] = Field(default=None, description="Replacement tag list")
    assigned_users: Optional[List[str]] = Field(default=None, description="Replacement list of assigned user ids")

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: Optional[str]) -> Optional[str]:
        return _strip_optional(v)

    @field_validator("tags", "assigned_users")
    @classmethod
    def dedupe(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return unique_strings(v)


# PUBLIC_INTERFACE
class NoteCreate(ApiModel):
    """Schema for appending a note to a todo."""

    content: Optional[str] = Field(default=None, description="Note text")
    user_id: Optional[str] = Field(default=None, description="Optional author user id")

    @field_validator("content", "user_id")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return _strip_optional(v)


# PUBLIC_INTERFACE
class UserOut(ApiModel):
    """Displayable user fields, also used for populated references."""

    id: str = Field(..., description="Unique identifier of the user")
    username: str = Field(..., description="Username")
    name: str = Field(..., description="Display name")


class NoteOut(ApiModel):
    id: str
    content: str
    user: Optional[UserOut] = Field(default=None, description="Populated author, if any")
    created_at: datetime


# PUBLIC_INTERFACE
class TodoOut(ApiModel):
    """
    Schema returned by the API for a Todo item, with assigned users and
    note authors populated.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "0b6f1c1e8f2a4b4c9d7e6f5a4b3c2d1e",
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "priority": "medium",
                "completed": False,
                "userId": "5f1c0e9d8a7b4c3d2e1f0a9b8c7d6e5f",
                "tags": ["home"],
                "assignedUsers": [{"id": "a1b2", "username": "jdoe", "name": "Jane Doe"}],
                "notes": [],
                "createdAt": "2025-01-25T10:15:30.123456Z",
                "updatedAt": "2025-01-26T09:00:00.000001Z",
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the todo item")
    title: str = Field(..., description="Short title for the todo item")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    priority: Priority = Field(..., description="low, medium or high")
    completed: bool = Field(..., description="Completion status flag")
    user_id: str = Field(..., description="Owner user id")
    tags: List[str] = Field(default_factory=list)
    assigned_users: List[UserOut] = Field(default_factory=list)
    notes: List[NoteOut] = Field(default_factory=list)
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


class PaginationOut(ApiModel):
    total: int = Field(..., description="Number of todos matching the filters")
    total_pages: int = Field(..., description="ceil(total / limit)")
    current_page: int
    limit: int


class TodoListData(ApiModel):
    todos: List[TodoOut]
    pagination: PaginationOut


class TodoListResponse(ApiModel):
    message: str
    data: TodoListData


class TodoResponse(ApiModel):
    message: str
    todo: TodoOut


class TodoDeletedResponse(ApiModel):
    message: str
    todo_id: str


class TagsResponse(ApiModel):
    message: str
    tags: List[str]


class UsersResponse(ApiModel):
    message: str
    users: List[UserOut]


class ErrorDetail(ApiModel):
    code: str
    message: str
    details: Any = None


class ErrorResponse(ApiModel):
    error: ErrorDetail
