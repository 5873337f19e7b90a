"""Prometheus metrics for action execution."""

from prometheus_client import Counter, Histogram

ACTIONS_EXECUTED = Counter(
    "ui_actions_executed_total",
    "Total number of actions executed",
    ["action_type", "status"],
)

ACTION_DURATION = Histogram(
    "ui_actions_duration_seconds",
    "Time spent executing actions",
    ["action_type"],
)


def record_execution(action_type: str, status: str, duration: float) -> None:
    """Record one finished execution."""
    ACTIONS_EXECUTED.labels(action_type=action_type, status=status).inc()
    ACTION_DURATION.labels(action_type=action_type).observe(duration)
