import uuid

from sqlalchemy import DDL, Boolean, Column, Date, DateTime, ForeignKey, Index, String, Text, Uuid, event, false, func
from sqlalchemy.orm import relationship

from todo_api.database import Base, utcnow


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (Index("idx_tasks_owner_id", "owner_id"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    completed = Column(Boolean, nullable=False, default=False, server_default=false())
    due_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False)

    owner = relationship("User", back_populates="tasks")


# Database-side refresh of updated_at, for writes that bypass the ORM.
_pg_updated_at_function = DDL(
    """
    CREATE OR REPLACE FUNCTION update_updated_at_column()
    RETURNS TRIGGER AS $$
    BEGIN
        NEW.updated_at = NOW();
        RETURN NEW;
    END;
    $$ LANGUAGE plpgsql
    """
)

_pg_updated_at_trigger = DDL(
    """
    CREATE TRIGGER update_tasks_updated_at
    BEFORE UPDATE ON tasks
    FOR EACH ROW
    EXECUTE FUNCTION update_updated_at_column()
    """
)

# WHEN guard: skip rows whose updated_at was already set by the statement,
# which also keeps the trigger from re-firing on its own UPDATE.
_sqlite_updated_at_trigger = DDL(
    """
    CREATE TRIGGER IF NOT EXISTS update_tasks_updated_at
    AFTER UPDATE ON tasks
    FOR EACH ROW
    WHEN NEW.updated_at = OLD.updated_at
    BEGIN
        UPDATE tasks SET updated_at = datetime('now') WHERE id = NEW.id;
    END
    """
)

event.listen(Task.__table__, "after_create", _pg_updated_at_function.execute_if(dialect="postgresql"))
event.listen(Task.__table__, "after_create", _pg_updated_at_trigger.execute_if(dialect="postgresql"))
event.listen(Task.__table__, "after_create", _sqlite_updated_at_trigger.execute_if(dialect="sqlite"))
