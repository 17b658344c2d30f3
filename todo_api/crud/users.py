import uuid
from typing import Optional

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from todo_api.crud.base import Repository
from todo_api.database import utcnow
from todo_api.errors import ConflictError
from todo_api.models.user import User

logger = structlog.get_logger()


class UserRepository(Repository):
    def get(self, user_id: uuid.UUID) -> Optional[User]:
        with self._storage("user.get", user_id=str(user_id)):
            return self.db.get(User, user_id, populate_existing=True)

    def get_by_email(self, email: str) -> Optional[User]:
        with self._storage("user.get_by_email"):
            return self.db.execute(select(User).where(User.email == email)).scalars().first()

    def create(self, first_name: str, last_name: str, email: str, password_hash: str) -> User:
        """Insert a user. The unique index on email is the only arbiter of
        duplicates: a violation raises ConflictError even if a concurrent
        request slipped past the caller's pre-check."""
        user = User(first_name=first_name, last_name=last_name, email=email, password=password_hash)
        with self._storage("user.create"):
            self.db.add(user)
            try:
                self.db.commit()
            except IntegrityError as e:
                self.db.rollback()
                logger.info("user.create_conflict")
                raise ConflictError("Email already in use") from e
            self.db.refresh(user)
        return user

    def update_password(self, user_id: uuid.UUID, password_hash: str):
        with self._storage("user.update_password", user_id=str(user_id)):
            self.db.execute(
                update(User).where(User.id == user_id).values(password=password_hash, updated_at=utcnow())
            )
            self.db.commit()

    def set_profile_image(self, user_id: uuid.UUID, url: str) -> Optional[User]:
        with self._storage("user.set_profile_image", user_id=str(user_id)):
            result = self.db.execute(
                update(User).where(User.id == user_id).values(profile_image_url=url, updated_at=utcnow())
            )
            self.db.commit()
        if result.rowcount == 0:
            return None
        return self.get(user_id)

    def delete(self, user_id: uuid.UUID) -> bool:
        # tasks go with the user through ON DELETE CASCADE
        with self._storage("user.delete", user_id=str(user_id)):
            result = self.db.execute(delete(User).where(User.id == user_id))
            self.db.commit()
        return result.rowcount > 0
