# ABOUTME: FastAPI app: goal CRUD under /api/goals, owner list at /api/users, AI feedback at POST /api/goals/analyze.
# ABOUTME: 400 on malformed id or missing title, 404 when no goal matches, 500 on store failure; feedback maps 503/401/502.

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from core.config import CORS_ORIGINS
from core.crud import (
    add_goal,
    delete_goal,
    get_all_goals,
    get_all_users,
    get_goal_by_id,
    update_goal,
)
from core.schemas import (
    SQLITE_MAX_INTEGER,
    GoalAnalysisRequest,
    GoalFeedback,
    GoalInput,
    GoalRead,
    UserRead,
)
from goal_feedback.agent import (
    FeedbackAuthError,
    FeedbackNotConfiguredError,
    FeedbackUpstreamError,
    generate_goal_feedback,
)

app = FastAPI(title="SMART Goals API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


def _parse_goal_id(raw: str) -> int | None:
    """Return the goal id as int, or None if raw is not a base-10 integer SQLite can store."""
    if not raw.isdecimal():
        return None
    goal_id = int(raw)
    if goal_id > SQLITE_MAX_INTEGER:
        return None
    return goal_id


@app.exception_handler(RequestValidationError)
async def _validation_error_handler(_request: Request, exc: RequestValidationError):
    """Report body validation failures as 400 with a readable message."""
    errors = exc.errors()
    if any(err.get("loc", ())[-1:] == ("title",) for err in errors):
        return _message(400, "Goal title is required.")
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    detail = first.get("msg", "invalid value")
    return _message(400, f"Invalid request: {field}: {detail}" if field else f"Invalid request: {detail}")


@app.get("/health")
def get_health():
    return {"status": "ok"}


@app.get("/api/goals", response_model=list[GoalRead])
def get_goals():
    """List all goals, soonest due date first, undated goals last."""
    try:
        return get_all_goals()
    except SQLAlchemyError:
        logging.exception("get_goals failed (database error)")
        return _message(500, "Failed to fetch goals.")
    except Exception:
        logging.exception("get_goals failed unexpectedly")
        return _message(500, "An unexpected error occurred while loading goals.")


@app.post("/api/goals", status_code=201, response_model=GoalRead)
def post_goal(req: GoalInput):
    """Create a goal; executor_name is resolved to a user, creating one if needed."""
    try:
        goal_id = add_goal(req)
        goal = get_goal_by_id(goal_id)
    except SQLAlchemyError:
        logging.exception("post_goal failed (database error)")
        return _message(500, "Could not save goal.")
    except Exception:
        logging.exception("post_goal failed unexpectedly")
        return _message(500, "An unexpected error occurred while saving the goal.")
    if goal is None:
        return _message(500, "Failed to create goal, no id returned.")
    return goal


@app.post("/api/goals/analyze", response_model=GoalFeedback)
def post_analyze_goal(req: GoalAnalysisRequest):
    """Ask the AI coach for feedback on a goal's SMART fields. Nothing is stored."""
    if not (req.title and req.title.strip()):
        return _message(400, "Goal title is required for analysis.")
    try:
        feedback = generate_goal_feedback(req)
    except FeedbackNotConfiguredError as e:
        return _message(503, str(e))
    except FeedbackAuthError as e:
        logging.warning("post_analyze_goal: credentials rejected: %s", e)
        return _message(401, str(e))
    except FeedbackUpstreamError as e:
        logging.exception("post_analyze_goal: upstream failure")
        return _message(502, str(e))
    except Exception:
        logging.exception("generate_goal_feedback failed")
        return _message(502, "AI model failed to generate feedback.")
    return GoalFeedback(feedback=feedback)


@app.get("/api/goals/{goal_id}", response_model=GoalRead)
def get_goal(goal_id: str):
    parsed_id = _parse_goal_id(goal_id)
    if parsed_id is None:
        return _message(400, "Invalid ID format.")
    try:
        goal = get_goal_by_id(parsed_id)
    except SQLAlchemyError:
        logging.exception("get_goal failed (database error)")
        return _message(500, "Failed to fetch goal.")
    except Exception:
        logging.exception("get_goal failed unexpectedly")
        return _message(500, "An unexpected error occurred while loading the goal.")
    if goal is None:
        return _message(404, "Goal not found.")
    return goal


@app.put("/api/goals/{goal_id}", response_model=GoalRead)
def put_goal(goal_id: str, req: GoalInput):
    """Overwrite all mutable fields of a goal and return the stored row."""
    parsed_id = _parse_goal_id(goal_id)
    if parsed_id is None:
        return _message(400, "Invalid ID format.")
    try:
        updated = update_goal(parsed_id, req)
        goal = get_goal_by_id(parsed_id) if updated else None
    except SQLAlchemyError:
        logging.exception("put_goal failed (database error)")
        return _message(500, "Could not update goal.")
    except Exception:
        logging.exception("put_goal failed unexpectedly")
        return _message(500, "An unexpected error occurred while updating the goal.")
    if goal is None:
        return _message(404, "Failed to update goal or goal not found.")
    return goal


@app.delete("/api/goals/{goal_id}")
def remove_goal(goal_id: str):
    parsed_id = _parse_goal_id(goal_id)
    if parsed_id is None:
        return _message(400, "Invalid ID format.")
    try:
        deleted = delete_goal(parsed_id)
    except SQLAlchemyError:
        logging.exception("remove_goal failed (database error)")
        return _message(500, "Failed to delete goal.")
    except Exception:
        logging.exception("remove_goal failed unexpectedly")
        return _message(500, "An unexpected error occurred while deleting the goal.")
    if not deleted:
        return _message(404, "Failed to delete goal or goal not found.")
    return {"message": "Goal deleted successfully"}


@app.get("/api/users", response_model=list[UserRead])
def get_users():
    """List known goal owners by name."""
    try:
        return get_all_users()
    except SQLAlchemyError:
        logging.exception("get_users failed (database error)")
        return _message(500, "Failed to fetch users.")
    except Exception:
        logging.exception("get_users failed unexpectedly")
        return _message(500, "An unexpected error occurred while loading users.")
