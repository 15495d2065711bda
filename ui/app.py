# ABOUTME: Streamlit UI: All goals list, New goal form, and Goal details (view, edit, delete, AI feedback).
# ABOUTME: API URL configurable via API_URL env (default http://localhost:8000); all data goes through the HTTP API.

import os
from datetime import date

import requests
import streamlit as st

try:
    from dotenv import load_dotenv

    load_dotenv()
except ImportError:
    pass

from core.config import DEFAULT_GOAL_STATUS, GOAL_LEVELS, GOAL_STATUSES

API_URL = os.environ.get("API_URL", "http://localhost:8000")
GOAL_SUMMARY_MAX_CHARS = 80
NEW_OWNER_OPTION = "+ Create new owner"
NO_OWNER_OPTION = "-- No owner --"

PAGE_LIST = "All goals"
PAGE_NEW = "New goal"
PAGE_DETAILS = "Goal details"
SESSION_PAGE = "page"
SESSION_SELECTED_GOAL = "selected_goal_id"
SESSION_PENDING_GOAL = "pending_goal_id"

# Optional text fields sent as-is (blank -> None) to POST/PUT /api/goals.
_TEXT_FIELDS = (
    "description",
    "specific",
    "motivating",
    "attainable",
    "relevant",
    "trackable_metrics",
    "organization_context",
    "llm_feedback",
)
_SMART_FIELDS = (
    ("specific", "Specific", "What exactly will be accomplished, by whom, where?"),
    ("motivating", "Motivating", "Why does this matter to the owner?"),
    ("attainable", "Attainable", "Is it realistic? What are the key steps?"),
    ("relevant", "Relevant", "How does it align with larger objectives?"),
    ("trackable_metrics", "Trackable", "How will progress and success be measured?"),
)


def _status_label(status: str | None) -> str:
    """'in_progress' -> 'IN PROGRESS'; missing status reads as the default."""
    return (status or DEFAULT_GOAL_STATUS).replace("_", " ").upper()


def _level_label(level: str | None) -> str:
    if not level:
        return ""
    return level.replace("_", " ").capitalize()


def _parse_due_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _format_due_date(value: str | None) -> str:
    """Render an ISO due date as 'Mar 01, 2026'; unparseable values are shown raw."""
    parsed = _parse_due_date(value)
    if parsed is None:
        return value or ""
    return parsed.strftime("%b %d, %Y")


def _goal_summary_label(goal: dict, max_chars: int = GOAL_SUMMARY_MAX_CHARS) -> str:
    """Truncated title plus status, for list headers and the goal picker."""
    title = (goal.get("title") or "").strip()
    summary = (title[:max_chars] + "…") if len(title) > max_chars else title
    return f"{summary}  ·  {_status_label(goal.get('status'))}"


def _owner_options(users: list[dict]) -> list[str]:
    return [NO_OWNER_OPTION] + [u["name"] for u in users] + [NEW_OWNER_OPTION]


def _owner_index(options: list[str], executor_name: str | None) -> int:
    """Preselect the goal's owner; names not in the list fall back to 'Create new owner'."""
    if not executor_name:
        return 0
    if executor_name in options:
        return options.index(executor_name)
    return options.index(NEW_OWNER_OPTION)


def _resolve_owner(selected: str, new_owner_name: str | None) -> str | None:
    """Map the owner picker and free-text box to the executor_name sent to the API."""
    if selected == NEW_OWNER_OPTION:
        return (new_owner_name or "").strip() or None
    if selected == NO_OWNER_OPTION:
        return None
    return selected


def _goal_payload(values: dict) -> dict:
    """Build the POST/PUT body: title trimmed, blank optional fields sent as null."""
    payload = {"title": (values.get("title") or "").strip()}
    for field in _TEXT_FIELDS:
        raw = values.get(field)
        payload[field] = raw.strip() if isinstance(raw, str) and raw.strip() else None
    due = values.get("due_date")
    payload["due_date"] = due.isoformat() if isinstance(due, date) else (due or None)
    payload["status"] = values.get("status") or DEFAULT_GOAL_STATUS
    payload["level"] = values.get("level") or None
    payload["executor_name"] = values.get("executor_name") or None
    payload["parent_goal_id"] = values.get("parent_goal_id")
    return payload


def _safe_json(response: requests.Response):
    """Parse response body as JSON; return dict or empty dict on failure."""
    try:
        return response.json()
    except Exception:
        return {}


def _error_message(response: requests.Response, fallback: str) -> str:
    body = _safe_json(response)
    if isinstance(body, dict) and body.get("message"):
        return body["message"]
    return f"{fallback} ({response.status_code})"


def _fetch_list(path: str, fallback: str) -> list[dict] | None:
    try:
        r = requests.get(f"{API_URL}{path}", timeout=10)
    except requests.RequestException as e:
        st.error(f"Could not reach the API: {e}")
        return None
    if r.status_code != 200:
        st.error(_error_message(r, fallback))
        return None
    data = _safe_json(r)
    return data if isinstance(data, list) else []


def _select_goal(goal_id: int) -> None:
    st.session_state[SESSION_SELECTED_GOAL] = goal_id
    st.session_state[SESSION_PAGE] = PAGE_DETAILS


def _render_goal_form(form_key: str, users: list[dict], initial: dict | None = None):
    """Render the goal form; return the request payload on submit, else None."""
    initial = initial or {}
    with st.form(form_key):
        title = st.text_input("Title *", value=initial.get("title") or "")
        description = st.text_area("Description", value=initial.get("description") or "")

        st.markdown("**SMART breakdown**")
        smart_values = {}
        for field, label, help_text in _SMART_FIELDS:
            smart_values[field] = st.text_area(
                label, value=initial.get(field) or "", help=help_text, height=80
            )

        options = _owner_options(users)
        initial_owner = initial.get("executor_name") or ""
        custom_owner = initial_owner if initial_owner not in options else ""
        col_owner, col_new_owner = st.columns(2)
        with col_owner:
            selected_owner = st.selectbox(
                "Owner",
                options,
                index=_owner_index(options, initial.get("executor_name")),
            )
        with col_new_owner:
            new_owner_name = st.text_input(
                "New owner name",
                value=custom_owner,
                help=f"Used when '{NEW_OWNER_OPTION}' is selected.",
            )

        col_level, col_status, col_due = st.columns(3)
        with col_level:
            current_level = initial.get("level") or "monthly"
            levels = list(GOAL_LEVELS)
            if current_level not in levels:
                levels.append(current_level)
            level = st.selectbox(
                "Level", levels, index=levels.index(current_level), format_func=_level_label
            )
        with col_status:
            current_status = initial.get("status") or DEFAULT_GOAL_STATUS
            statuses = list(GOAL_STATUSES)
            if current_status not in statuses:
                statuses.append(current_status)
            status = st.selectbox(
                "Status", statuses, index=statuses.index(current_status), format_func=_status_label
            )
        with col_due:
            due_date = st.date_input(
                "Due date", value=_parse_due_date(initial.get("due_date")), format="YYYY-MM-DD"
            )

        organization_context = st.text_area(
            "Organization context", value=initial.get("organization_context") or ""
        )
        llm_feedback = st.text_area(
            "AI feedback", value=initial.get("llm_feedback") or "", height=120
        )
        submitted = st.form_submit_button("Save goal")

    if not submitted:
        return None
    if not title.strip():
        st.error("Title is required.")
        return None
    if selected_owner == NEW_OWNER_OPTION and not new_owner_name.strip():
        st.error("Please enter a name for the new owner or select an existing one.")
        return None
    return _goal_payload(
        {
            "title": title,
            "description": description,
            **smart_values,
            "organization_context": organization_context,
            "llm_feedback": llm_feedback,
            "level": level,
            "status": status,
            "due_date": due_date,
            "executor_name": _resolve_owner(selected_owner, new_owner_name),
            "parent_goal_id": initial.get("parent_goal_id"),
        }
    )


def _render_goal_list():
    st.title("SMART Goals")
    goals = _fetch_list("/api/goals", "Could not load goals. Try again.")
    if goals is None:
        return
    if not goals:
        st.info("No goals yet. Use 'New goal' in the sidebar to create one.")
        return
    st.caption(f"{len(goals)} goal(s), soonest due first")
    for g in goals:
        with st.container(border=True):
            st.subheader(g["title"])
            st.caption(_status_label(g.get("status")))
            if g.get("description"):
                st.write(g["description"])
            details = []
            if g.get("level"):
                details.append(f"Level: **{_level_label(g['level'])}**")
            if g.get("due_date"):
                details.append(f"Due: **{_format_due_date(g['due_date'])}**")
            if g.get("executor_name"):
                details.append(f"Owner: **{g['executor_name']}**")
            if details:
                st.markdown("  ·  ".join(details))
            st.button(
                "View details",
                key=f"view_goal_{g['id']}",
                on_click=_select_goal,
                args=(g["id"],),
            )


def _render_new_goal():
    st.title("Create New Goal")
    users = _fetch_list("/api/users", "Could not load owners.") or []
    payload = _render_goal_form("new_goal_form", users)
    if payload is None:
        return
    try:
        r = requests.post(f"{API_URL}/api/goals", json=payload, timeout=10)
    except requests.RequestException as e:
        st.error(f"Could not reach the API: {e}")
        return
    if r.status_code == 201:
        created = _safe_json(r)
        st.success("Goal created.")
        if created.get("id") is not None:
            # The page radio is already rendered; main() applies this on the next run.
            st.session_state[SESSION_PENDING_GOAL] = created["id"]
            st.rerun()
    else:
        st.error(f"Save failed: {_error_message(r, 'Could not save goal.')}")


def _request_feedback(goal: dict) -> None:
    """Ask the API for AI feedback on the stored goal and save it on the goal."""
    analysis = {
        field: goal.get(field)
        for field in ("title", "description", "specific", "motivating", "attainable", "relevant", "trackable_metrics")
    }
    with st.spinner("Analyzing goal..."):
        try:
            r = requests.post(f"{API_URL}/api/goals/analyze", json=analysis, timeout=60)
        except requests.RequestException as e:
            st.error(f"Could not reach the API: {e}")
            return
    if r.status_code != 200:
        st.error(_error_message(r, "Failed to get AI feedback."))
        return
    feedback = _safe_json(r).get("feedback")
    if not feedback:
        st.error("Invalid response from server. Please try again.")
        return
    payload = _goal_payload({**goal, "llm_feedback": feedback})
    try:
        r = requests.put(f"{API_URL}/api/goals/{goal['id']}", json=payload, timeout=10)
    except requests.RequestException as e:
        st.error(f"Could not reach the API: {e}")
        return
    if r.status_code == 200:
        st.rerun()
    else:
        st.error(_error_message(r, "Could not save feedback."))


def _render_goal_details():
    goals = _fetch_list("/api/goals", "Could not load goals. Try again.")
    if goals is None:
        return
    if not goals:
        st.info("No goals yet. Use 'New goal' in the sidebar to create one.")
        return
    ids = [g["id"] for g in goals]
    selected_id = st.session_state.get(SESSION_SELECTED_GOAL)
    index = ids.index(selected_id) if selected_id in ids else 0
    by_id = {g["id"]: g for g in goals}
    goal_id = st.selectbox(
        "Goal", ids, index=index, format_func=lambda i: _goal_summary_label(by_id[i])
    )
    st.session_state[SESSION_SELECTED_GOAL] = goal_id

    try:
        r = requests.get(f"{API_URL}/api/goals/{goal_id}", timeout=10)
    except requests.RequestException as e:
        st.error(f"Could not reach the API: {e}")
        return
    if r.status_code == 404:
        st.warning("Goal not found. It may have been deleted.")
        return
    if r.status_code != 200:
        st.error(_error_message(r, "Failed to fetch goal details."))
        return
    goal = _safe_json(r)

    st.title(goal["title"])
    st.caption(
        f"{_status_label(goal.get('status'))}  ·  Owner: {goal.get('executor_name') or 'Unassigned'}"
    )
    tab_view, tab_edit = st.tabs(["Details", "Edit"])

    with tab_view:
        if goal.get("description"):
            st.write(goal["description"])
        for field, label, _help in _SMART_FIELDS:
            st.markdown(f"**{label}:** {goal.get(field) or '_Not provided_'}")
        if goal.get("level"):
            st.markdown(f"**Level:** {_level_label(goal['level'])}")
        if goal.get("due_date"):
            st.markdown(f"**Due:** {_format_due_date(goal['due_date'])}")
        if goal.get("organization_context"):
            st.markdown(f"**Organization context:** {goal['organization_context']}")
        st.caption(f"Created {goal.get('created_at', '')}  ·  Updated {goal.get('updated_at', '')}")

        st.divider()
        st.subheader("AI feedback")
        if goal.get("llm_feedback"):
            st.markdown(goal["llm_feedback"])
        else:
            st.caption("No feedback yet.")
        if st.button("Get AI feedback", key="get_feedback_btn"):
            _request_feedback(goal)

        st.divider()
        confirm = st.checkbox("I want to delete this goal", key=f"confirm_delete_{goal_id}")
        if st.button("Delete goal", disabled=not confirm, key="delete_goal_btn"):
            try:
                r = requests.delete(f"{API_URL}/api/goals/{goal_id}", timeout=10)
            except requests.RequestException as e:
                st.error(f"Could not reach the API: {e}")
                return
            if r.status_code == 200:
                del st.session_state[SESSION_SELECTED_GOAL]
                st.success("Goal deleted.")
                st.rerun()
            else:
                st.error(_error_message(r, "Failed to delete goal."))

    with tab_edit:
        users = _fetch_list("/api/users", "Could not load owners.") or []
        payload = _render_goal_form(f"edit_goal_form_{goal_id}", users, initial=goal)
        if payload is not None:
            try:
                r = requests.put(f"{API_URL}/api/goals/{goal_id}", json=payload, timeout=10)
            except requests.RequestException as e:
                st.error(f"Could not reach the API: {e}")
                return
            if r.status_code == 200:
                st.success("Goal updated.")
                st.rerun()
            else:
                st.error(f"Save failed: {_error_message(r, 'Could not update goal.')}")


def main():
    if SESSION_PAGE not in st.session_state:
        st.session_state[SESSION_PAGE] = PAGE_LIST
    pending_goal = st.session_state.pop(SESSION_PENDING_GOAL, None)
    if pending_goal is not None:
        _select_goal(pending_goal)
    page = st.sidebar.radio("Navigate", [PAGE_LIST, PAGE_NEW, PAGE_DETAILS], key=SESSION_PAGE)

    if page == PAGE_NEW:
        _render_new_goal()
    elif page == PAGE_DETAILS:
        _render_goal_details()
    else:
        _render_goal_list()


if __name__ == "__main__":
    main()
