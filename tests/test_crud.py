# ABOUTME: Pytest tests for core.crud against a temp SQLite file: owner find-or-create, goal CRUD, ordering, cascades.
# ABOUTME: Auxiliary rows (collaborators, progress updates) are inserted directly since no API writes them.

import time
from unittest.mock import patch

import pytest
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from core import crud
from core.crud import (
    add_goal,
    delete_goal,
    find_or_create_user_by_name,
    get_all_goals,
    get_all_users,
    get_goal_by_id,
    update_goal,
)
from core.database import GoalCollaborator, GoalProgressUpdate, User, get_session
from core.schemas import GoalInput


def _user_count() -> int:
    with get_session() as session:
        return session.exec(select(func.count()).select_from(User)).one()


@pytest.mark.parametrize("name", [None, "", "   ", "\t\n"])
def test_find_or_create_absent_name_returns_none(engine, name):
    """Missing or blank owner names mean no owner and create no user row."""
    assert find_or_create_user_by_name(name) is None
    assert _user_count() == 0


def test_find_or_create_is_stable_for_same_name(engine):
    first = find_or_create_user_by_name("Ann Lee")
    second = find_or_create_user_by_name("Ann Lee")
    assert first is not None
    assert first == second
    assert _user_count() == 1


def test_find_or_create_matches_case_insensitively_and_trims(engine):
    first = find_or_create_user_by_name("  Ann Lee ")
    assert find_or_create_user_by_name("ann lee") == first
    assert find_or_create_user_by_name("ANN LEE") == first
    users = get_all_users()
    assert [u.name for u in users] == ["Ann Lee"]


def test_find_or_create_recovers_when_lookup_misses_concurrent_insert(engine):
    """If another writer inserted the name after our lookup, the conditional insert is a no-op and we reuse its id."""
    existing = find_or_create_user_by_name("Bo")
    real_lookup = crud._lookup_user_id
    calls = []

    def lookup(session, name, *, ignore_case):
        calls.append(ignore_case)
        if len(calls) == 1:
            return None
        return real_lookup(session, name, ignore_case=ignore_case)

    with patch.object(crud, "_lookup_user_id", side_effect=lookup):
        assert find_or_create_user_by_name("Bo") == existing
    assert _user_count() == 1


def test_find_or_create_prefers_oldest_of_case_variants(engine):
    """Rows left by a case-varying race resolve to the earliest one."""
    with engine.begin() as conn:
        conn.exec_driver_sql("INSERT INTO Users (name) VALUES ('ann'), ('Ann')")
    with get_session() as session:
        oldest = session.exec(select(User.id).order_by(User.id)).first()

    assert find_or_create_user_by_name("ANN") == oldest
    assert find_or_create_user_by_name("Ann") == oldest
    assert _user_count() == 2


def test_get_all_users_ordered_by_name(engine):
    for name in ("Carol", "Alice", "Bob"):
        find_or_create_user_by_name(name)
    users = get_all_users()
    assert [u.name for u in users] == ["Alice", "Bob", "Carol"]
    assert all(u.email is None for u in users)


def test_add_goal_round_trip_defaults(engine):
    goal_id = add_goal(GoalInput(title="T"))

    goal = get_goal_by_id(goal_id)

    assert goal is not None
    assert goal.id == goal_id
    assert goal.title == "T"
    assert goal.status == "pending"
    assert goal.executor_id is None
    assert goal.executor_name is None
    assert goal.created_at
    assert goal.created_at == goal.updated_at


def test_add_goal_resolves_executor_and_keeps_fields(engine):
    goal_id = add_goal(
        GoalInput(
            title="Ship v2",
            specific="Release the v2 API",
            trackable_metrics="All endpoints live",
            level="quarterly",
            due_date="2026-06-30",
            status="in_progress",
            executor_name="Dana",
            organization_context="Platform team",
            llm_feedback="Looks good",
        )
    )

    goal = get_goal_by_id(goal_id)

    assert goal.executor_name == "Dana"
    assert goal.executor_id == find_or_create_user_by_name("dana")
    assert goal.status == "in_progress"
    assert goal.level == "quarterly"
    assert goal.due_date == "2026-06-30"
    assert goal.specific == "Release the v2 API"
    assert goal.organization_context == "Platform team"
    assert goal.llm_feedback == "Looks good"


def test_get_goal_by_id_missing_returns_none(engine):
    assert get_goal_by_id(12345) is None


def test_update_goal_refreshes_updated_at_and_overwrites_fields(engine):
    goal_id = add_goal(GoalInput(title="Old", description="d", executor_name="Eve"))
    before = get_goal_by_id(goal_id)
    time.sleep(0.02)

    changed = update_goal(goal_id, GoalInput(title="New", llm_feedback="Add a metric"))

    after = get_goal_by_id(goal_id)
    assert changed is True
    assert after.title == "New"
    assert after.description is None
    assert after.executor_id is None
    assert after.status == "pending"
    assert after.llm_feedback == "Add a metric"
    assert after.created_at == before.created_at
    assert after.updated_at > before.updated_at


def test_update_goal_new_executor_name_creates_user(engine):
    goal_id = add_goal(GoalInput(title="G", executor_name="Finn"))

    update_goal(goal_id, GoalInput(title="G", executor_name="Gail"))

    goal = get_goal_by_id(goal_id)
    assert goal.executor_name == "Gail"
    assert [u.name for u in get_all_users()] == ["Finn", "Gail"]


def test_update_and_delete_missing_goal_return_false(engine):
    assert update_goal(999, GoalInput(title="nobody")) is False
    assert delete_goal(999) is False


def test_delete_goal_cascades_to_auxiliary_rows(engine):
    goal_id = add_goal(GoalInput(title="With links"))
    user_id = find_or_create_user_by_name("Helper")
    with get_session() as session:
        session.add(GoalCollaborator(goal_id=goal_id, user_id=user_id))
        session.add(
            GoalProgressUpdate(
                goal_id=goal_id, update_description="Halfway", progress_percentage=50
            )
        )
        session.commit()

    assert delete_goal(goal_id) is True

    assert get_goal_by_id(goal_id) is None
    with get_session() as session:
        assert session.exec(select(GoalCollaborator)).all() == []
        assert session.exec(select(GoalProgressUpdate)).all() == []
    assert _user_count() == 1


def test_deleting_user_clears_executor_reference(engine):
    goal_id = add_goal(GoalInput(title="Owned", executor_name="Ivy"))
    with engine.begin() as conn:
        conn.exec_driver_sql("DELETE FROM Users WHERE name = 'Ivy'")

    goal = get_goal_by_id(goal_id)

    assert goal is not None
    assert goal.executor_id is None
    assert goal.executor_name is None


def test_deleting_parent_clears_child_reference(engine):
    parent_id = add_goal(GoalInput(title="Annual"))
    child_id = add_goal(GoalInput(title="Quarterly", parent_goal_id=parent_id))
    assert get_goal_by_id(child_id).parent_goal_id == parent_id

    assert delete_goal(parent_id) is True

    child = get_goal_by_id(child_id)
    assert child is not None
    assert child.parent_goal_id is None


def test_add_goal_with_unknown_parent_raises(engine):
    """Constraint violations propagate unchanged."""
    with pytest.raises(IntegrityError):
        add_goal(GoalInput(title="Orphan", parent_goal_id=4242))


def test_get_all_goals_orders_dated_first_then_newest(engine):
    march = add_goal(GoalInput(title="March", due_date="2026-03-01"))
    undated_old = add_goal(GoalInput(title="Undated old"))
    january = add_goal(GoalInput(title="January", due_date="2026-01-15"))
    undated_new = add_goal(GoalInput(title="Undated new", due_date=""))

    ids = [g.id for g in get_all_goals()]

    assert ids == [january, march, undated_new, undated_old]


def test_get_all_goals_same_due_date_newest_first(engine):
    older = add_goal(GoalInput(title="Older", due_date="2026-01-01"))
    time.sleep(0.02)
    newer = add_goal(GoalInput(title="Newer", due_date="2026-01-01"))
    later = add_goal(GoalInput(title="Later", due_date="2026-02-01"))

    ids = [g.id for g in get_all_goals()]

    assert ids == [newer, older, later]


def test_get_all_goals_includes_executor_names(engine):
    add_goal(GoalInput(title="A", executor_name="Jo"))
    add_goal(GoalInput(title="B"))
    names = {g.title: g.executor_name for g in get_all_goals()}
    assert names == {"A": "Jo", "B": None}
