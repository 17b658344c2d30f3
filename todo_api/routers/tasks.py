import uuid
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from todo_api.crud.tasks import MAX_PAGE_SIZE, TaskRepository
from todo_api.database import get_db
from todo_api.dependencies import get_current_user
from todo_api.schemas.common import MessageOut
from todo_api.schemas.task import TaskCreate, TaskOut, TaskPage, TaskUpdate
from todo_api.utils.auth import Identity

router = APIRouter(prefix="/tasks", tags=["tasks"])

MAX_PAGE = 10_000


@router.post("", response_model=TaskOut, status_code=201)
def create_task(task: TaskCreate, db: Session = Depends(get_db), user: Identity = Depends(get_current_user)):
    return TaskRepository(db).create(user.id, task)


@router.get("", response_model=Union[List[TaskOut], TaskPage])
def list_tasks(
    q: Optional[str] = Query(None, description="Search by title"),
    page: Optional[int] = Query(None, ge=1, le=MAX_PAGE),
    limit: Optional[int] = Query(None, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    user: Identity = Depends(get_current_user),
):
    """If page and limit are provided, return paginated result dict {items,page,limit,total,pages}.
    Otherwise return plain list.
    """
    return TaskRepository(db).list(user.id, q=q, page=page, limit=limit)


@router.get("/{task_id}", response_model=TaskOut)
def get_task(task_id: uuid.UUID, db: Session = Depends(get_db), user: Identity = Depends(get_current_user)):
    return TaskRepository(db).get_owned(task_id, user.id)


@router.put("/{task_id}", response_model=TaskOut)
def update_task(
    task_id: uuid.UUID,
    task: TaskUpdate,
    db: Session = Depends(get_db),
    user: Identity = Depends(get_current_user),
):
    return TaskRepository(db).update(task_id, user.id, task.changes())


@router.delete("/{task_id}", response_model=MessageOut)
def delete_task(task_id: uuid.UUID, db: Session = Depends(get_db), user: Identity = Depends(get_current_user)):
    TaskRepository(db).delete(task_id, user.id)
    return {"message": "Task deleted successfully"}
