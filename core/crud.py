# ABOUTME: Data-access operations for goals and users: add/get/list/update/delete goal, list users, owner find-or-create.
# ABOUTME: Sole reader/writer of the store; SQLAlchemy errors propagate to callers unchanged.

import logging
from typing import Optional

from sqlalchemy import delete, insert, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import select

from core.config import DEFAULT_GOAL_STATUS
from core.database import Goal, User, get_engine, get_session
from core.schemas import GoalInput, GoalRead, UserRead

logger = logging.getLogger(__name__)

# Columns copied verbatim from GoalInput on insert and update.
_GOAL_TEXT_FIELDS = {
    "title",
    "description",
    "specific",
    "motivating",
    "attainable",
    "relevant",
    "trackable_metrics",
    "level",
    "due_date",
    "parent_goal_id",
    "llm_feedback",
    "organization_context",
}


class UserResolutionError(RuntimeError):
    """Owner row could not be found after a conditional insert."""


class GoalCreationError(RuntimeError):
    """Insert completed without producing a goal id."""


def _lookup_user_id(session, name: str, *, ignore_case: bool) -> Optional[int]:
    column = User.name.collate("NOCASE") if ignore_case else User.name
    # Oldest row wins when a case-varying race left several matches.
    return session.exec(
        select(User.id).where(column == name).order_by(User.id)
    ).first()


def find_or_create_user_by_name(name: Optional[str]) -> Optional[int]:
    """Return the id of the user named `name` (case-insensitive), creating it if missing.

    None, empty or whitespace-only names mean "no owner" and return None without
    touching the store.

    Users.name is UNIQUE case-sensitively, so two concurrent first uses of one
    name in different case ("ann" / "Ann") can both insert. Same-case races are
    absorbed by the conditional insert below.
    """
    if not name or not name.strip():
        return None
    trimmed = name.strip()

    with get_session() as session:
        user_id = _lookup_user_id(session, trimmed, ignore_case=True)
    if user_id is not None:
        return user_id

    stmt = sqlite_insert(User).values(name=trimmed).on_conflict_do_nothing(
        index_elements=["name"]
    )
    with get_engine().begin() as conn:
        created = conn.execute(stmt).rowcount > 0

    with get_session() as session:
        user_id = _lookup_user_id(session, trimmed, ignore_case=False)
        if user_id is None:
            user_id = _lookup_user_id(session, trimmed, ignore_case=True)
    if user_id is None:
        raise UserResolutionError(f"Could not resolve user {trimmed!r} after insert")
    if created:
        logger.info("User %r created with id %s", trimmed, user_id)
    else:
        logger.warning("User %r was inserted concurrently; reusing id %s", trimmed, user_id)
    return user_id


def get_all_users() -> list[UserRead]:
    """Every user ordered by name ascending."""
    with get_session() as session:
        users = session.exec(select(User).order_by(User.name.asc())).all()
        return [UserRead(id=u.id, name=u.name, email=u.email) for u in users]


def _goal_values(data: GoalInput, executor_id: Optional[int]) -> dict:
    values = data.model_dump(include=_GOAL_TEXT_FIELDS)
    values["status"] = data.status or DEFAULT_GOAL_STATUS
    values["executor_id"] = executor_id
    return values


def _goals_with_executor():
    return select(Goal, User.name).join(
        User, Goal.executor_id == User.id, isouter=True
    )


def _to_goal_read(row) -> GoalRead:
    goal, executor_name = row
    return GoalRead(**goal.model_dump(), executor_name=executor_name)


def add_goal(data: GoalInput) -> int:
    """Insert a goal (status defaults to pending) and return its new id."""
    executor_id = find_or_create_user_by_name(data.executor_name)
    with get_engine().begin() as conn:
        result = conn.execute(insert(Goal).values(**_goal_values(data, executor_id)))
        primary_key = result.inserted_primary_key
    goal_id = primary_key[0] if primary_key else None
    if goal_id is None:
        raise GoalCreationError("Goal creation failed, no id returned")
    return goal_id


def get_goal_by_id(goal_id: int) -> Optional[GoalRead]:
    """Goal joined with its executor's name, or None when no row matches."""
    with get_session() as session:
        row = session.exec(_goals_with_executor().where(Goal.id == goal_id)).first()
        return _to_goal_read(row) if row else None


def get_all_goals() -> list[GoalRead]:
    """All goals: due date ascending with undated last, then newest first."""
    stmt = _goals_with_executor().order_by(
        Goal.due_date.asc().nulls_last(),
        Goal.created_at.desc(),
        Goal.id.desc(),
    )
    with get_session() as session:
        return [_to_goal_read(row) for row in session.exec(stmt).all()]


def update_goal(goal_id: int, data: GoalInput) -> bool:
    """Overwrite every mutable field of a goal. False means no row matched.

    The owner is re-resolved, so a new executor_name creates a new user.
    updated_at is refreshed by the store's trigger.
    """
    executor_id = find_or_create_user_by_name(data.executor_name)
    stmt = (
        update(Goal)
        .where(Goal.id == goal_id)
        .values(**_goal_values(data, executor_id))
    )
    with get_engine().begin() as conn:
        return conn.execute(stmt).rowcount > 0


def delete_goal(goal_id: int) -> bool:
    """Delete a goal; collaborator and progress rows cascade. False means no row matched."""
    with get_engine().begin() as conn:
        return conn.execute(delete(Goal).where(Goal.id == goal_id)).rowcount > 0
