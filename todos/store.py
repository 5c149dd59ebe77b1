"""
todos/store.py -- SQLAlchemy Core persistence layer for todos.

Pattern: Repository + Data Mapper (same as auth/store.py). TodoStore is the
repository; _row_to_todo is the mapper.

IDOR guard: every read and write filters on (id, user_id). A request for
another user's todo id behaves exactly like a request for a missing one.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = TodoStore("sqlite:///taskify.db")
    todo_id = store.create_todo(Todo(user_id=1, todo="buy milk"))
    store.update_todo(todo_id, 1, is_done=True)
    store.list_todos(1)
    store.close()
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Column, Integer, MetaData, String, Table, Text
from sqlalchemy.engine import Engine

from core.db import make_engine
from todos.models import Todo

logger = logging.getLogger("taskify.todos")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_todos = Table(
    "todos",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("todo", Text, nullable=False),
    Column("is_done", Boolean, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_MUTABLE_FIELDS = {"todo", "is_done"}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class TodoStore:
    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        metadata.create_all(self.engine)

    def list_todos(self, user_id: int) -> list[Todo]:
        """Return a user's todos in creation order."""
        with self.engine.connect() as conn:
            rows = conn.execute(_todos.select().where(_todos.c.user_id == user_id).order_by(_todos.c.id)).fetchall()
        return [_row_to_todo(r) for r in rows]

    def create_todo(self, todo: Todo) -> int:
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _todos.insert().values(
                    user_id=todo.user_id,
                    todo=todo.todo.strip(),
                    is_done=todo.is_done,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            todo_id = result.inserted_primary_key[0]
        logger.debug("Todo created todo_id=%s user_id=%s", todo_id, todo.user_id)
        return todo_id

    def get_todo(self, todo_id: int, user_id: int) -> Optional[Todo]:
        with self.engine.connect() as conn:
            row = conn.execute(
                _todos.select().where((_todos.c.id == todo_id) & (_todos.c.user_id == user_id))
            ).fetchone()
        return _row_to_todo(row) if row is not None else None

    def update_todo(self, todo_id: int, user_id: int, **fields) -> bool:
        """Update text and/or done state on a todo the user owns.

        Accepted fields: todo, is_done. Unknown keys raise ValueError.
        Returns True if a row was updated, False if not found or wrong owner.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown todo fields: {unknown!r}")
        if "todo" in fields:
            fields["todo"] = fields["todo"].strip()
        with self.engine.connect() as conn:
            result = conn.execute(
                _todos.update()
                .where((_todos.c.id == todo_id) & (_todos.c.user_id == user_id))
                .values(updated_at=_now_iso(), **fields)
            )
            conn.commit()
        return result.rowcount > 0

    def delete_todo(self, todo_id: int, user_id: int) -> bool:
        """Delete a todo the user owns. Returns True if deleted."""
        with self.engine.connect() as conn:
            result = conn.execute(_todos.delete().where((_todos.c.id == todo_id) & (_todos.c.user_id == user_id)))
            conn.commit()
        if result.rowcount:
            logger.debug("Todo deleted todo_id=%s user_id=%s", todo_id, user_id)
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


def _row_to_todo(row) -> Todo:
    return Todo(
        id=row.id,
        user_id=row.user_id,
        todo=row.todo,
        is_done=bool(row.is_done),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
