from contextlib import contextmanager

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from todo_api.errors import StorageError

logger = structlog.get_logger()


class Repository:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _storage(self, operation: str, **context):
        """Roll back and raise StorageError on any database failure.

        The original exception is logged with ``context``; callers only see
        the generic message.
        """
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("storage.error", operation=operation, error=str(e), **context)
            raise StorageError() from e
