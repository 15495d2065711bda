# ABOUTME: Tests for UI helpers (labels, owner picker mapping, request payload building).
# ABOUTME: Keeps UI logic testable without running Streamlit.

from datetime import date

from ui.app import (
    NEW_OWNER_OPTION,
    NO_OWNER_OPTION,
    _format_due_date,
    _goal_payload,
    _goal_summary_label,
    _level_label,
    _owner_index,
    _owner_options,
    _resolve_owner,
    _status_label,
)


def test_status_label_formats_and_defaults():
    assert _status_label("in_progress") == "IN PROGRESS"
    assert _status_label(None) == "PENDING"


def test_level_label():
    assert _level_label("five_year") == "Five year"
    assert _level_label(None) == ""


def test_format_due_date():
    assert _format_due_date("2026-03-01") == "Mar 01, 2026"
    assert _format_due_date("someday") == "someday"
    assert _format_due_date(None) == ""


def test_goal_summary_label_truncates_long_title():
    label = _goal_summary_label({"title": "A" * 100, "status": "completed"}, max_chars=20)
    assert "A" * 20 + "…" in label
    assert "COMPLETED" in label


def test_owner_picker_round_trip():
    options = _owner_options([{"id": 1, "name": "Ann"}, {"id": 2, "name": "Bo"}])
    assert options == [NO_OWNER_OPTION, "Ann", "Bo", NEW_OWNER_OPTION]
    assert _owner_index(options, None) == 0
    assert _owner_index(options, "Bo") == 2
    assert _owner_index(options, "Cy") == options.index(NEW_OWNER_OPTION)


def test_resolve_owner():
    assert _resolve_owner("Ann", "ignored") == "Ann"
    assert _resolve_owner(NO_OWNER_OPTION, "ignored") is None
    assert _resolve_owner(NEW_OWNER_OPTION, "  Cy  ") == "Cy"
    assert _resolve_owner(NEW_OWNER_OPTION, "   ") is None


def test_goal_payload_nulls_blanks_and_formats_date():
    payload = _goal_payload(
        {
            "title": "  Learn Go ",
            "description": "",
            "specific": " Build a CLI ",
            "due_date": date(2026, 5, 1),
            "level": "monthly",
            "status": "",
            "executor_name": None,
            "parent_goal_id": 3,
        }
    )
    assert payload["title"] == "Learn Go"
    assert payload["description"] is None
    assert payload["specific"] == "Build a CLI"
    assert payload["due_date"] == "2026-05-01"
    assert payload["status"] == "pending"
    assert payload["executor_name"] is None
    assert payload["parent_goal_id"] == 3
    assert payload["llm_feedback"] is None


def test_goal_payload_keeps_stored_goal_fields():
    """A GoalRead dict from the API maps back to a PUT body unchanged."""
    stored = {
        "id": 7,
        "title": "Ship",
        "due_date": "2026-01-31",
        "status": "in_progress",
        "executor_name": "Ann",
        "created_at": "2026-01-01 00:00:00.000",
    }
    payload = _goal_payload({**stored, "llm_feedback": "Great"})
    assert payload["due_date"] == "2026-01-31"
    assert payload["status"] == "in_progress"
    assert payload["executor_name"] == "Ann"
    assert payload["llm_feedback"] == "Great"
    assert "id" not in payload and "created_at" not in payload
