"""Ownership-scoped task queries.

Reads treat "not yours" exactly like "does not exist" (404) so a caller
cannot discover other users' task ids. Mutations are different on purpose:
when the conditional UPDATE/DELETE matches nothing, a second lookup by id
tells 404 (no such task) apart from 403 (someone else's task).
"""

import uuid
from math import ceil
from typing import Optional

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError

from todo_api.crud.base import Repository
from todo_api.database import utcnow
from todo_api.errors import AuthorizationError, NotFoundError
from todo_api.models.task import Task
from todo_api.schemas.task import TaskCreate

logger = structlog.get_logger()

MAX_PAGE_SIZE = 100


class TaskRepository(Repository):
    def create(self, owner_id: uuid.UUID, data: TaskCreate) -> Task:
        # an unspecified due date falls back to the creation date
        due_date = data.due_date if data.due_date is not None else utcnow().date()
        task = Task(
            owner_id=owner_id,
            title=data.title,
            description=data.description,
            completed=data.completed,
            due_date=due_date,
        )
        with self._storage("task.create", owner_id=str(owner_id)):
            self.db.add(task)
            try:
                self.db.commit()
            except IntegrityError as e:
                # owner_id foreign key: the account was deleted while its token is still valid
                self.db.rollback()
                logger.warning("task.create_owner_missing", owner_id=str(owner_id))
                raise NotFoundError("User not found") from e
            self.db.refresh(task)
        logger.info("task.created", task_id=str(task.id), owner_id=str(owner_id))
        return task

    def list(self, owner_id: uuid.UUID, q: Optional[str] = None, page: Optional[int] = None, limit: Optional[int] = None):
        """Return the owner's tasks, newest first.

        If page and limit are provided, return a paginated dict
        {items,page,limit,total,pages}; otherwise a plain list.
        """
        query = select(Task).where(Task.owner_id == owner_id)
        if q:
            query = query.where(Task.title.icontains(q, autoescape=True))
        query = query.order_by(Task.created_at.desc())

        with self._storage("task.list", owner_id=str(owner_id)):
            if page is None or limit is None:
                tasks = self.db.execute(query).scalars().all()
                logger.debug("task.listed", owner_id=str(owner_id), count=len(tasks))
                return tasks

            total = self.db.execute(select(func.count()).select_from(query.order_by(None).subquery())).scalar_one()
            # normalize page/limit
            if page < 1:
                page = 1
            if limit < 1:
                limit = 10
            limit = min(limit, MAX_PAGE_SIZE)
            pages = ceil(total / limit) if total > 0 else 1
            items = self.db.execute(query.limit(limit).offset((page - 1) * limit)).scalars().all()
        return {"items": items, "page": page, "limit": limit, "total": total, "pages": pages}

    def get_owned(self, task_id: uuid.UUID, owner_id: uuid.UUID) -> Task:
        with self._storage("task.get", task_id=str(task_id)):
            task = self.db.execute(
                select(Task).where(Task.id == task_id, Task.owner_id == owner_id)
            ).scalars().first()
        if task is None:
            logger.warning("task.not_found_or_denied", task_id=str(task_id), owner_id=str(owner_id))
            raise NotFoundError("Task not found")
        return task

    def update(self, task_id: uuid.UUID, owner_id: uuid.UUID, changes: dict) -> Task:
        values = dict(changes, updated_at=utcnow())
        with self._storage("task.update", task_id=str(task_id)):
            result = self.db.execute(
                update(Task)
                .where(Task.id == task_id, Task.owner_id == owner_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        if result.rowcount == 0:
            self._raise_missing_or_forbidden(task_id, owner_id, "update")

        logger.info("task.updated", task_id=str(task_id), owner_id=str(owner_id), fields=sorted(changes))
        with self._storage("task.get", task_id=str(task_id)):
            task = self.db.get(Task, task_id, populate_existing=True)
        if task is None:
            # deleted between the update and the re-read
            raise NotFoundError("Task does not exist")
        return task

    def delete(self, task_id: uuid.UUID, owner_id: uuid.UUID):
        with self._storage("task.delete", task_id=str(task_id)):
            result = self.db.execute(
                delete(Task)
                .where(Task.id == task_id, Task.owner_id == owner_id)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        if result.rowcount == 0:
            self._raise_missing_or_forbidden(task_id, owner_id, "delete")
        logger.info("task.deleted", task_id=str(task_id), owner_id=str(owner_id))

    def _raise_missing_or_forbidden(self, task_id: uuid.UUID, owner_id: uuid.UUID, action: str):
        with self._storage("task.exists", task_id=str(task_id)):
            exists = self.db.execute(select(Task.id).where(Task.id == task_id)).first() is not None
        if not exists:
            logger.warning(f"task.{action}_missing", task_id=str(task_id), owner_id=str(owner_id))
            raise NotFoundError("Task does not exist")
        logger.warning(f"task.{action}_forbidden", task_id=str(task_id), owner_id=str(owner_id))
        raise AuthorizationError(f"You do not have permission to {action} this task")
