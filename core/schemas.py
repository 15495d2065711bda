# ABOUTME: Pydantic models for goal/user read and write shapes and the AI feedback contract.
# ABOUTME: Used by the data layer (core.crud), FastAPI request/response bodies and the feedback agent.

from typing import Optional

from pydantic import BaseModel, Field, field_validator

# SQLite INTEGER is a signed 64-bit value; larger ids cannot name a row.
SQLITE_MIN_INTEGER = -(2**63)
SQLITE_MAX_INTEGER = 2**63 - 1


class GoalInput(BaseModel):
    """Write shape for creating or overwriting a goal."""

    title: str = Field(min_length=1)
    description: Optional[str] = None
    specific: Optional[str] = None
    motivating: Optional[str] = None
    attainable: Optional[str] = None
    relevant: Optional[str] = None
    trackable_metrics: Optional[str] = None
    status: Optional[str] = None
    level: Optional[str] = None
    due_date: Optional[str] = None
    executor_name: Optional[str] = None
    parent_goal_id: Optional[int] = Field(
        default=None, ge=SQLITE_MIN_INTEGER, le=SQLITE_MAX_INTEGER
    )
    llm_feedback: Optional[str] = None
    organization_context: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Title is required")
        return value

    @field_validator("due_date")
    @classmethod
    def _blank_due_date_is_none(cls, value: Optional[str]) -> Optional[str]:
        # Forms submit "" for an empty date; store it as NULL so it sorts with undated goals.
        if value is None or not value.strip():
            return None
        return value.strip()


class GoalRead(BaseModel):
    """A stored goal joined with its executor's name."""

    id: int
    title: str
    description: Optional[str] = None
    specific: Optional[str] = None
    motivating: Optional[str] = None
    attainable: Optional[str] = None
    relevant: Optional[str] = None
    trackable_metrics: Optional[str] = None
    status: Optional[str] = None
    level: Optional[str] = None
    due_date: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    executor_id: Optional[int] = None
    parent_goal_id: Optional[int] = None
    llm_feedback: Optional[str] = None
    organization_context: Optional[str] = None
    executor_name: Optional[str] = None


class UserRead(BaseModel):
    id: int
    name: str
    email: Optional[str] = None


class GoalAnalysisRequest(BaseModel):
    """Goal text fields sent to the feedback agent."""

    title: Optional[str] = None
    description: Optional[str] = None
    specific: Optional[str] = None
    motivating: Optional[str] = None
    attainable: Optional[str] = None
    relevant: Optional[str] = None
    trackable_metrics: Optional[str] = None


class GoalFeedback(BaseModel):
    feedback: str
