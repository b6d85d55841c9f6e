from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ..dependencies import get_todo_service
from ..query import DEFAULT_LIMIT, DEFAULT_PAGE, ListQuery, build_todo_filter
from ..schemas import (
    ErrorResponse,
    NoteCreate,
    TagsResponse,
    TodoCreate,
    TodoDeletedResponse,
    TodoListResponse,
    TodoResponse,
    TodoUpdate,
)
from ..services import TodoService
from ..utils import pagination_envelope

router = APIRouter(
    prefix="/api/todos",
    tags=["todos"],
)

_errors = {
    400: {"model": ErrorResponse, "description": "Validation error"},
    500: {"model": ErrorResponse, "description": "Unexpected error"},
}
_errors_404 = {**_errors, 404: {"model": ErrorResponse, "description": "Todo not found"}}


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=TodoListResponse,
    summary="List Todos",
    description=(
        "List a user's todos, newest first, with filters and pagination.\n\n"
        "Query parameters:\n"
        "- userId: owner id (required)\n"
        "- page: 1-based page number\n"
        "- limit: page size (1..1000); larger values are rejected rather than served unbounded\n"
        "- priority: comma-separated priorities, any may match\n"
        "- tags: comma-separated tags, a todo matches if it has at least one\n"
        "- search: case-insensitive text looked up in title/description"
    ),
    responses=_errors,
)
def list_todos(
    user_id: Optional[str] = Query(None, alias="userId", description="Owner user id"),
    page: int = Query(DEFAULT_PAGE, ge=1, description="1-based page number"),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=1000, description="Page size, at most 1000"),
    priority: Optional[str] = Query(None, description="Comma-separated priorities"),
    tags: Optional[str] = Query(None, description="Comma-separated tags"),
    search: Optional[str] = Query(None, description="Search text for title/description"),
    service: TodoService = Depends(get_todo_service),
) -> TodoListResponse:
    """
    List todos with pagination and filters.
    """
    todo_filter = build_todo_filter(user_id, priority=priority, tags=tags, search=search)
    result = service.list_todos(ListQuery(filter=todo_filter, page=page, limit=limit))
    return TodoListResponse(
        message="Todos retrieved successfully",
        data={"todos": result.items, "pagination": pagination_envelope(result)},
    )


# PUBLIC_INTERFACE
@router.get(
    "/tags",
    response_model=TagsResponse,
    summary="List Tags",
    description="Return the distinct tags used across a user's todos.",
    responses=_errors,
)
def list_tags(
    user_id: Optional[str] = Query(None, alias="userId", description="Owner user id"),
    service: TodoService = Depends(get_todo_service),
) -> TagsResponse:
    return TagsResponse(message="Tags retrieved successfully", tags=service.distinct_tags(user_id))


# PUBLIC_INTERFACE
@router.get(
    "/export",
    summary="Export Todos",
    description="Download all of a user's todos as a CSV attachment (todos.csv).",
    response_class=Response,
    responses={200: {"content": {"text/csv": {}}, "description": "CSV file"}, **_errors},
)
def export_todos(
    user_id: Optional[str] = Query(None, alias="userId", description="Owner user id"),
    service: TodoService = Depends(get_todo_service),
) -> Response:
    csv_text = service.export_todos(user_id)
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="todos.csv"'},
    )


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=TodoResponse,
    summary="Get Todo",
    description="Get a single Todo item by ID.",
    responses=_errors_404,
)
def get_todo(todo_id: str, service: TodoService = Depends(get_todo_service)) -> TodoResponse:
    """
    Retrieve a single Todo item by its ID.
    """
    return TodoResponse(message="Todo retrieved successfully", todo=service.get_todo(todo_id))


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TodoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new Todo item and return the created resource.",
    responses=_errors,
)
def create_todo(payload: TodoCreate, service: TodoService = Depends(get_todo_service)) -> TodoResponse:
    """
    Create a new Todo.
    """
    return TodoResponse(message="Todo created successfully", todo=service.create_todo(payload))


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=TodoResponse,
    summary="Update Todo",
    description=(
        "Update fields of a Todo item. Only fields present in the body are changed; "
        "the owner cannot be changed."
    ),
    responses=_errors_404,
)
def update_todo(
    todo_id: str, payload: TodoUpdate, service: TodoService = Depends(get_todo_service)
) -> TodoResponse:
    return TodoResponse(message="Todo updated successfully", todo=service.update_todo(todo_id, payload))


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    response_model=TodoDeletedResponse,
    summary="Delete Todo",
    description="Permanently delete a Todo item by ID.",
    responses=_errors_404,
)
def delete_todo(todo_id: str, service: TodoService = Depends(get_todo_service)) -> TodoDeletedResponse:
    """
    Delete a Todo. Returns 200 with the deleted id, 404 if not found.
    """
    deleted_id = service.delete_todo(todo_id)
    return TodoDeletedResponse(message="Todo deleted successfully", todo_id=deleted_id)


# PUBLIC_INTERFACE
@router.post(
    "/{todo_id}/notes",
    response_model=TodoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add Note",
    description="Append a note to a Todo item. Notes cannot be edited or removed.",
    responses=_errors_404,
)
def add_note(
    todo_id: str, payload: NoteCreate, service: TodoService = Depends(get_todo_service)
) -> TodoResponse:
    return TodoResponse(message="Note added successfully", todo=service.add_note(todo_id, payload))
