from datetime import datetime, timezone

import structlog
from fastapi import Request
from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

logger = structlog.get_logger()

Base = declarative_base()

# Columns added after the first release. Older databases get them through
# a plain ALTER TABLE on startup.
ADDITIVE_COLUMNS = {
    "users": {"profile_image_url": "VARCHAR(255)"},
    "tasks": {"description": "TEXT", "due_date": "DATE"},
}


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless this is set per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(database_url: str):
    # Only apply sqlite-specific connect_args when using sqlite
    is_sqlite = database_url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}

    # Enable pool_pre_ping to avoid stale connections (useful for cloud DBs like Neon)
    engine = create_engine(
        database_url,
        connect_args=connect_args,
        pool_pre_ping=True,
    )
    if is_sqlite:
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def _ensure_columns(engine):
    insp = inspect(engine)
    for table, columns in ADDITIVE_COLUMNS.items():
        existing = {c["name"] for c in insp.get_columns(table)}
        for name, ddl_type in columns.items():
            if name in existing:
                continue
            with engine.begin() as conn:
                conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {name} {ddl_type}"))
            logger.info("schema.column_added", table=table, column=name)


def init_schema(engine):
    """Create tables, indexes and the updated_at trigger, then add any
    columns an older database is missing."""
    # register the mappers (and the trigger DDL hooks) on Base.metadata
    from todo_api.models import task, user  # noqa: F401

    logger.info("schema.initializing", dialect=engine.dialect.name)
    Base.metadata.create_all(bind=engine)
    _ensure_columns(engine)
    logger.info("schema.ready")


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def utcnow():
    return datetime.now(timezone.utc)
