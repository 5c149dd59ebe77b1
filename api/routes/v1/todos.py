"""
api/routes/v1/todos.py -- Per-user todo CRUD routes.

Routes:
  GET    /api/todos             -- list the caller's todos
  POST   /api/todos             -- create a todo (201)
  PUT    /api/todos/{todo_id}   -- update text and/or done state
  DELETE /api/todos/{todo_id}   -- delete a todo

Every route sits behind authenticate() (router-level dependency) and reads
the owner from the resolved identity, never from the request body. The store
scopes every statement by owner, so another user's todo id is a 404.
"""

from fastapi import APIRouter, Depends, Request

from api.models import MessageResponse, TodoCreate, TodoResponse, TodoUpdate
from auth.dependencies import authenticate, require_auth
from auth.models import Identity
from core.errors import NotFoundError, ValidationError
from todos.models import Todo
from todos.store import TodoStore

router = APIRouter(dependencies=[Depends(authenticate)])


def _not_found() -> NotFoundError:
    return NotFoundError("Todo not found", code="TODO_NOT_FOUND")


@router.get("/todos", response_model=list[TodoResponse])
def list_todos(request: Request, identity: Identity = Depends(require_auth)) -> list[TodoResponse]:
    store: TodoStore = request.app.state.todo_store
    return [TodoResponse.from_todo(t) for t in store.list_todos(identity.user_id)]


@router.post("/todos", response_model=TodoResponse, status_code=201)
def create_todo(
    request: Request,
    body: TodoCreate,
    identity: Identity = Depends(require_auth),
) -> TodoResponse:
    store: TodoStore = request.app.state.todo_store
    todo_id = store.create_todo(Todo(user_id=identity.user_id, todo=body.todo))
    created = store.get_todo(todo_id, identity.user_id)
    if created is None:
        raise _not_found()
    return TodoResponse.from_todo(created)


@router.put("/todos/{todo_id}", response_model=TodoResponse)
def update_todo(
    request: Request,
    todo_id: int,
    body: TodoUpdate,
    identity: Identity = Depends(require_auth),
) -> TodoResponse:
    """Partial update: only the fields present in the body change."""
    store: TodoStore = request.app.state.todo_store

    updates: dict = {}
    if body.todo is not None:
        updates["todo"] = body.todo
    if body.is_done is not None:
        updates["is_done"] = body.is_done
    if not updates:
        raise ValidationError("No fields to update.", code="NO_CHANGES")

    if not store.update_todo(todo_id, identity.user_id, **updates):
        raise _not_found()
    updated = store.get_todo(todo_id, identity.user_id)
    if updated is None:
        raise _not_found()
    return TodoResponse.from_todo(updated)


@router.delete("/todos/{todo_id}", response_model=MessageResponse)
def delete_todo(
    request: Request,
    todo_id: int,
    identity: Identity = Depends(require_auth),
) -> MessageResponse:
    store: TodoStore = request.app.state.todo_store
    if not store.delete_todo(todo_id, identity.user_id):
        raise _not_found()
    return MessageResponse(message="Todo deleted successfully")
