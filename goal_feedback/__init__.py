# ABOUTME: Goal feedback agent package; exposes root_agent for adk web/run.
# ABOUTME: Use generate_goal_feedback() from goal_feedback.agent for API integration.

from goal_feedback.agent import generate_goal_feedback, root_agent

__all__ = ["generate_goal_feedback", "root_agent"]
