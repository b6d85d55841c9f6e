from __future__ import annotations

from datetime import datetime
from typing import List, Optional, TypedDict


# PUBLIC_INTERFACE
class UserEntity(TypedDict):
    """
    A user document.

    Fields:
    - id: Store-assigned string identifier
    - username: Unique login-style name
    - name: Display name
    """

    id: str
    username: str
    name: str


# PUBLIC_INTERFACE
class NoteEntity(TypedDict):
    """
    A note embedded in a todo document. Notes are only ever appended.

    Fields:
    - id: Store-assigned string identifier
    - content: Non-empty note text
    - user_id: Optional author reference (User id)
    - created_at: Creation timestamp, never changed afterwards
    """

    id: str
    content: str
    user_id: Optional[str]
    created_at: datetime


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    A todo document as held by the storage backends.

    Fields:
    - id: Store-assigned string identifier
    - title: Short title (non-empty, trimmed on input via schemas)
    - description: Optional detailed description
    - priority: One of 'low', 'medium', 'high'
    - completed: Boolean completion flag
    - user_id: Owner reference (User id), fixed at creation
    - tags: Ordered, duplicate-free tag list
    - assigned_users: Ordered, duplicate-free list of User ids
    - notes: Append-only list of NoteEntity
    - created_at: UTC creation timestamp
    - updated_at: UTC last update timestamp
    """

    id: str
    title: str
    description: Optional[str]
    priority: str
    completed: bool
    user_id: str
    tags: List[str]
    assigned_users: List[str]
    notes: List[NoteEntity]
    created_at: datetime
    updated_at: datetime
