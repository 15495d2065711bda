# ABOUTME: SQLModel tables (Users, Goals, GoalCollaborators, GoalProgressUpdates) and the shared SQLite engine.
# ABOUTME: get_engine() lazily opens the store once per process and runs idempotent schema init; get_session yields a session.

import logging
import os
import threading
from concurrent.futures import Future
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import Column, ForeignKey, Integer, event, text
from sqlalchemy.engine import Engine
from sqlmodel import Field, Session, SQLModel, create_engine

from core.config import DB_PATH, DEFAULT_GOAL_STATUS

logger = logging.getLogger(__name__)

_db_path = DB_PATH

# Millisecond UTC timestamps; CURRENT_TIMESTAMP only has second resolution.
_NOW_SQL = "strftime('%Y-%m-%d %H:%M:%f', 'now')"

UPDATED_AT_TRIGGER = f"""
CREATE TRIGGER IF NOT EXISTS update_goal_updated_at
AFTER UPDATE ON Goals
FOR EACH ROW
BEGIN
  UPDATE Goals SET updated_at = {_NOW_SQL} WHERE id = OLD.id;
END
"""


def _timestamp_field():
    return Field(
        default=None,
        sa_column_kwargs={"server_default": text(f"({_NOW_SQL})")},
    )


class User(SQLModel, table=True):
    """Goal owner. Created implicitly when a goal names an unknown executor."""

    __tablename__ = "Users"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True, nullable=False)
    email: Optional[str] = Field(default=None, unique=True)


class Goal(SQLModel, table=True):
    """A SMART goal row."""

    __tablename__ = "Goals"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(nullable=False)
    description: Optional[str] = None
    specific: Optional[str] = None
    motivating: Optional[str] = None
    attainable: Optional[str] = None
    relevant: Optional[str] = None
    trackable_metrics: Optional[str] = None
    status: Optional[str] = Field(
        default=DEFAULT_GOAL_STATUS,
        sa_column_kwargs={"server_default": DEFAULT_GOAL_STATUS},
    )
    level: Optional[str] = None
    due_date: Optional[str] = None
    created_at: Optional[str] = _timestamp_field()
    updated_at: Optional[str] = _timestamp_field()
    executor_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("Users.id", ondelete="SET NULL")),
    )
    parent_goal_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("Goals.id", ondelete="SET NULL")),
    )
    llm_feedback: Optional[str] = None
    organization_context: Optional[str] = None


class GoalCollaborator(SQLModel, table=True):
    """Goal <-> User link. Kept for schema compatibility; no API writes it."""

    __tablename__ = "GoalCollaborators"

    goal_id: Optional[int] = Field(
        default=None,
        sa_column=Column(
            Integer, ForeignKey("Goals.id", ondelete="CASCADE"), primary_key=True
        ),
    )
    user_id: Optional[int] = Field(
        default=None,
        sa_column=Column(
            Integer, ForeignKey("Users.id", ondelete="CASCADE"), primary_key=True
        ),
    )


class GoalProgressUpdate(SQLModel, table=True):
    """Append-only progress log per goal. Kept for schema compatibility; no API writes it."""

    __tablename__ = "GoalProgressUpdates"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    goal_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("Goals.id", ondelete="CASCADE")),
    )
    update_description: str = Field(nullable=False)
    progress_percentage: Optional[int] = None
    created_at: Optional[str] = _timestamp_field()


def _enable_foreign_keys(dbapi_connection, _connection_record) -> None:
    # SQLite ignores ON DELETE rules unless enabled per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_db(engine: Engine) -> None:
    """Create all tables and the updated_at trigger if they do not exist."""
    SQLModel.metadata.create_all(engine)
    with engine.begin() as conn:
        conn.exec_driver_sql(UPDATED_AT_TRIGGER)
    logger.info("Database tables initialized")


def _open_engine(db_path: str) -> Engine:
    """Create the data directory, open the SQLite engine and initialize the schema."""
    directory = os.path.dirname(os.path.abspath(db_path))
    os.makedirs(directory, exist_ok=True)
    logger.info("Opening database at %s", db_path)
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _enable_foreign_keys)
    try:
        init_db(engine)
    except Exception:
        engine.dispose()
        raise
    return engine


_engine: Engine | None = None
_init_future: Future | None = None
_init_lock = threading.Lock()


def get_engine() -> Engine:
    """Return the process-wide engine, opening and initializing it on first use.

    Concurrent first callers share one in-flight initialization: they all get the
    same engine, or all see the same exception. A failed attempt is discarded so
    the next call starts over.
    """
    global _engine, _init_future
    if _engine is not None:
        return _engine
    with _init_lock:
        if _engine is not None:
            return _engine
        future = _init_future
        is_owner = future is None
        if is_owner:
            future = Future()
            _init_future = future
    if not is_owner:
        return future.result()

    try:
        engine = _open_engine(_db_path)
    except BaseException as exc:
        logger.error("Failed to initialize database at %s: %s", _db_path, exc)
        with _init_lock:
            _init_future = None
        future.set_exception(exc)
        raise
    with _init_lock:
        _engine = engine
        _init_future = None
    future.set_result(engine)
    return engine


def _reset_engine() -> None:
    """Dispose the shared engine and forget it. Test suite only."""
    global _engine, _init_future
    with _init_lock:
        if _engine is not None:
            _engine.dispose()
        _engine = None
        _init_future = None


@contextmanager
def get_session():
    """Yield a session on the shared SQLite engine."""
    with Session(get_engine()) as session:
        yield session
