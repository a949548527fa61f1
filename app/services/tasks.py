import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select, true
from sqlalchemy.orm import Session, aliased
from app.errors import MalformedIdentifier, NotFound, ValidationError
from app.models.task import Task
from app.models.user import User
from app.schemas.task import TaskCreate

logger = logging.getLogger(__name__)

# sortBy names accepted from the query string
SORTABLE = {
    "title": Task.title,
    "completed": Task.completed,
    "createdAt": Task.created_at,
    "updatedAt": Task.updated_at,
}


def parse_identifier(value: str) -> str:
    try:
        return uuid.UUID(hex=value).hex
    except (ValueError, TypeError, AttributeError):
        raise MalformedIdentifier("Invalid id")


def parse_sort(sort_by: Optional[str]) -> list:
    """Turn ``field:direction`` into ORDER BY clauses.

    Unknown fields are ignored. ``createdAt`` and ``id`` always close the
    list so that pages are stable and both listing strategies agree.
    """
    order = []
    if sort_by:
        field, _, direction = sort_by.partition(":")
        column = SORTABLE.get(field)
        if column is not None:
            order.append(column.desc() if direction == "desc" else column.asc())
    order.extend([Task.created_at.asc(), Task.id.asc()])
    return order


def _criteria(owner_id: str, completed: Optional[bool]) -> list:
    criteria = [Task.owner_id == owner_id]
    if completed is not None:
        criteria.append(Task.completed == completed)
    return criteria


def create_task(db: Session, owner: User, data: TaskCreate) -> Task:
    task = Task(title=data.title, completed=data.completed, owner_id=owner.id)
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


def list_tasks(
    db: Session,
    owner: User,
    completed: Optional[bool] = None,
    limit: Optional[int] = None,
    skip: Optional[int] = None,
    sort_by: Optional[str] = None,
) -> List[Task]:
    """Owner's tasks through the ``User.tasks`` relationship."""
    query = owner.tasks
    if completed is not None:
        query = query.filter(Task.completed == completed)
    return query.order_by(*parse_sort(sort_by)).offset(skip).limit(limit).all()


def list_tasks_with_count(
    db: Session,
    owner: User,
    completed: Optional[bool] = None,
    limit: Optional[int] = None,
    skip: Optional[int] = None,
    sort_by: Optional[str] = None,
) -> Tuple[List[Task], int]:
    """One page of tasks plus the number of matching tasks, in one statement.

    The count subquery is outer-joined to the page, so a page past the end
    still yields a single row carrying the total.
    """
    criteria = _criteria(owner.id, completed)
    order = parse_sort(sort_by)

    total = select(func.count(Task.id).label("total_count")).where(*criteria).subquery()
    page = (
        select(Task, func.row_number().over(order_by=order).label("position"))
        .where(*criteria)
        .order_by(*order)
        .offset(skip)
        .limit(limit)
        .subquery()
    )
    paged_task = aliased(Task, page)
    rows = db.execute(
        select(total.c.total_count, paged_task)
        .select_from(total)
        .outerjoin(page, true())
        .order_by(page.c.position)
    ).all()

    total_count = rows[0].total_count if rows else 0
    result = [row[1] for row in rows if row[1] is not None]
    return result, total_count


def get_task(db: Session, owner: User, task_id: str) -> Task:
    task_id = parse_identifier(task_id)
    task = db.query(Task).filter(Task.id == task_id, Task.owner_id == owner.id).first()
    if not task:
        raise NotFound("Task not found")
    return task


def update_task(db: Session, owner: User, task_id: str, fields: Dict[str, Any]) -> Task:
    task = get_task(db, owner, task_id)
    for field, value in fields.items():
        if value is None:
            raise ValidationError(f"{field} cannot be null")
    for field, value in fields.items():
        setattr(task, field, value)
    db.commit()
    db.refresh(task)
    return task


def delete_task(db: Session, owner: User, task_id: str) -> Task:
    task = get_task(db, owner, task_id)
    db.delete(task)
    db.commit()
    logger.debug("deleted task %s of user %s", task.id, owner.id)
    return task
