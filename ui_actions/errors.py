"""Error types and user-facing failure messages."""

# Guard failures
ACTION_DISABLED = "Action is disabled"
CONDITION_NOT_MET = "Action condition not met"

# Confirmation
ACTION_CANCELLED = "Action cancelled by user"

# Missing required fields
NO_SCRIPT = "No script provided"
NO_URL = "No URL provided"
NO_NAVIGATION_TARGET = "No navigation target provided"
NO_MODAL_SCHEMA = "No modal schema/target provided"
NO_FLOW_TARGET = "No flow target provided"
NO_API_ENDPOINT = "No API endpoint provided"

# Dispatch
FLOW_HANDLER_NOT_REGISTERED = "Flow handler not registered"


class ActionError(Exception):
    """Base class for errors raised inside the action engine layers."""


class ExpressionError(ActionError):
    """Raised when an expression cannot be parsed or evaluated."""


class InvalidActionError(ActionError):
    """Raised when an action definition cannot be parsed."""


def invalid_url(url: str) -> str:
    return f"Invalid URL: {url}"


def unhandled_type(action_type: str) -> str:
    return f"Unhandled action type: {action_type}"


def http_error(status: int, reason: str) -> str:
    return f"HTTP {status}: {reason}".rstrip(": ")


def timed_out(action_type: str, seconds: float) -> str:
    return f"Action '{action_type}' timed out after {seconds:g}s"


def error_message(exc: BaseException) -> str:
    """Return the message carried by an exception, or its type name."""
    return str(exc) or type(exc).__name__
