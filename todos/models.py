"""
todos/models.py -- Domain dataclass for a todo item.

Pure data container with zero logic. Ownership checks and timestamps live in
todos/store.py.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Todo:
    """A single task on a user's list.

    user_id is the owning account. Every store query is scoped by it, so a
    todo id alone never grants access to another user's item.

    id is None before the record is written to the database.
    """

    user_id: int
    todo: str
    is_done: bool = False
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""
