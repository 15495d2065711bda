# ABOUTME: Feedback run telemetry: one JSON line per generate_goal_feedback call, printed to stdout.
# ABOUTME: Records model, token usage, estimated cost, feedback length and the failure code when a run yields no feedback.

import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Optional

# USD per 1M tokens as (input, output).
MODEL_PRICING = {
    "gemini-2.5-flash": (0.30, 2.50),
    "gemini-2.5-flash-lite": (0.10, 0.40),
    "gemini-2.0-flash": (0.10, 0.40),
}
DEFAULT_MODEL_PRICING = MODEL_PRICING["gemini-2.5-flash"]


def estimate_cost_usd(prompt_tokens: int, completion_tokens: int, model: str = "") -> float:
    """Estimate cost in USD; unknown models are priced as gemini-2.5-flash."""
    input_rate, output_rate = MODEL_PRICING.get(model, DEFAULT_MODEL_PRICING)
    return (prompt_tokens * input_rate + completion_tokens * output_rate) / 1_000_000


@dataclass
class FeedbackRunRecord:
    model: str
    latency_ms: float
    prompt_tokens: int
    completion_tokens: int
    feedback_chars: int
    success: bool
    error_code: Optional[str] = None

    def to_json(self) -> str:
        payload = asdict(self)
        payload["latency_ms"] = round(self.latency_ms, 2)
        cost = estimate_cost_usd(self.prompt_tokens, self.completion_tokens, self.model)
        return json.dumps(
            {
                "event": "goal_feedback",
                "timestamp": datetime.now(tz=timezone.utc).isoformat(),
                **payload,
                "estimated_cost_usd": f"{cost:.6f}",
            }
        )


def log_run(
    *,
    model: str,
    latency_ms: float,
    prompt_tokens: int,
    completion_tokens: int,
    feedback_chars: int,
    success: bool,
    error_code: Optional[str] = None,
) -> None:
    """Print one structured JSON line for a feedback run.

    error_code carries the API status code or the model's finish reason
    (e.g. "SAFETY") when the run produced no feedback.
    """
    record = FeedbackRunRecord(
        model=model,
        latency_ms=latency_ms,
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        feedback_chars=feedback_chars,
        success=success,
        error_code=error_code,
    )
    print(record.to_json(), flush=True)
