# ABOUTME: Shared app configuration and constants used across API, data layer and UI (core package).
# ABOUTME: Values come from the environment (and .env); defaults keep local dev configuration-free.

import os

from dotenv import load_dotenv

load_dotenv()

# SQLite file, relative to the working directory unless an absolute path is given.
DB_PATH = os.environ.get("GOALS_DB_PATH", os.path.join("data", "smart_goals.db"))

DEFAULT_GOAL_STATUS = "pending"
GOAL_LEVELS = ("weekly", "monthly", "quarterly", "annual", "five_year")
GOAL_STATUSES = ("pending", "in_progress", "on_hold", "completed", "cancelled")

# Gemini key for AI feedback; google-genai accepts either variable name.
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")
FEEDBACK_MODEL = os.environ.get("FEEDBACK_MODEL", "gemini-2.5-flash")
_DEFAULT_MAX_FEEDBACK_FIELD_LENGTH = 2000


def _parse_int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, str(default))
    try:
        return int(raw)
    except ValueError:
        return default


MAX_FEEDBACK_FIELD_LENGTH = _parse_int_env(
    "MAX_FEEDBACK_FIELD_LENGTH", _DEFAULT_MAX_FEEDBACK_FIELD_LENGTH
)

# CORS: comma-separated origins; default allows local Streamlit UI. Set in production.
_raw_cors = os.environ.get("CORS_ORIGINS", "http://localhost:8501")
CORS_ORIGINS = [o.strip() for o in _raw_cors.split(",") if o.strip()] or [
    "http://localhost:8501"
]
