from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import ValidationError as SchemaError
from sqlalchemy.orm import Session
from app.database import get_db
from app.dependencies import get_current_user
from app.errors import ValidationError, describe_errors
from app.models.user import User
from app.schemas.task import UPDATABLE_FIELDS, TaskCreate, TaskOut, TaskPage, TaskUpdate
from app.services import tasks
from app.services.tasks import parse_identifier

router = APIRouter(tags=["tasks"])


def _parse_completed(value: Optional[str]) -> Optional[bool]:
    if not value:
        return None
    return value == "true"


def _parse_count(value: Optional[str]) -> Optional[int]:
    """limit/skip from the query string; junk, zero or negatives mean "not given"."""
    try:
        n = int(value)
    except (TypeError, ValueError):
        return None
    return n if n > 0 else None


def _listing_params(completed, limit, skip, sort_by) -> dict:
    return {
        "completed": _parse_completed(completed),
        "limit": _parse_count(limit),
        "skip": _parse_count(skip),
        "sort_by": sort_by,
    }


@router.post("/tasks", response_model=TaskOut, status_code=201)
def create_task(task: TaskCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return tasks.create_task(db, user, task)


# GET /tasks?completed=true
# GET /tasks?limit=10&skip=10
# GET /tasks?sortBy=createdAt:desc
@router.get("/tasks", response_model=List[TaskOut])
def list_tasks(
    completed: Optional[str] = None,
    limit: Optional[str] = None,
    skip: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    # TODO: cap limit, an unbounded listing loads every task the owner has
    return tasks.list_tasks(db, user, **_listing_params(completed, limit, skip, sort_by))


@router.get("/tasks-alt", response_model=TaskPage)
def list_tasks_alt(
    completed: Optional[str] = None,
    limit: Optional[str] = None,
    skip: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Same listing as GET /tasks plus the total number of matches."""
    result, total_count = tasks.list_tasks_with_count(
        db, user, **_listing_params(completed, limit, skip, sort_by)
    )
    return {"result": result, "total_count": total_count}


@router.get("/tasks/{task_id}", response_model=TaskOut)
def read_task(task_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return tasks.get_task(db, user, task_id)


@router.patch("/tasks/{task_id}", response_model=TaskOut)
def update_task(
    task_id: str,
    body: Dict[str, Any] = Body(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    parse_identifier(task_id)
    if not set(body) <= UPDATABLE_FIELDS:
        raise ValidationError("Invalid update")
    try:
        update = TaskUpdate.model_validate(body)
    except SchemaError as e:
        raise ValidationError(describe_errors(e.errors()))

    return tasks.update_task(db, user, task_id, update.model_dump(exclude_unset=True))


@router.delete("/tasks/{task_id}", response_model=TaskOut)
def delete_task(task_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return tasks.delete_task(db, user, task_id)
