from __future__ import annotations

import csv
import io
from typing import Any, Dict, Iterable

from .models import TodoEntity

CSV_FIELDS = [
    "id",
    "title",
    "description",
    "priority",
    "completed",
    "tags",
    "assignedUsers",
    "createdAt",
    "updatedAt",
]

LIST_SEPARATOR = ", "


def todo_to_row(todo: TodoEntity) -> Dict[str, Any]:
    """Flatten one todo into a CSV row keyed by CSV_FIELDS."""
    return {
        "id": todo["id"],
        "title": todo["title"],
        "description": todo["description"] or "",
        "priority": todo["priority"],
        "completed": "true" if todo["completed"] else "false",
        "tags": LIST_SEPARATOR.join(todo["tags"]),
        "assignedUsers": LIST_SEPARATOR.join(todo["assigned_users"]),
        "createdAt": todo["created_at"].isoformat(),
        "updatedAt": todo["updated_at"].isoformat(),
    }


# PUBLIC_INTERFACE
def todos_to_csv(todos: Iterable[TodoEntity]) -> str:
    """
    Render todos as CSV text with a header row.

    Rows are written in the order given; callers filter and sort beforehand.
    An empty input produces just the header.
    """
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_FIELDS, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writeheader()
    for todo in todos:
        writer.writerow(todo_to_row(todo))
    return buffer.getvalue()
