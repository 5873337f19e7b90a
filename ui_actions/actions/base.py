"""Base types shared by the action runner and its handlers."""

import inspect
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog

if TYPE_CHECKING:
    from .models import ActionDef
    from .runner import ActionRunner

logger = structlog.get_logger(__name__)


class ActionStatus(Enum):
    """Outcome of a single action execution."""

    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ActionResult:
    """Result of action execution.

    Every execution path produces exactly one of these. A successful result
    never carries an error message.
    """

    success: bool
    data: Any = None
    error: Optional[str] = None
    redirect: Optional[str] = None
    modal: Any = None
    reload: bool = False

    def __post_init__(self) -> None:
        if self.success and self.error is not None:
            raise ValueError("A successful ActionResult cannot carry an error")

    @classmethod
    def ok(cls, data: Any = None, **kwargs: Any) -> "ActionResult":
        """Build a successful result."""
        return cls(success=True, data=data, **kwargs)

    @classmethod
    def fail(cls, error: str, **kwargs: Any) -> "ActionResult":
        """Build a failed result."""
        return cls(success=False, error=error, **kwargs)

    @classmethod
    def coerce(cls, value: Any) -> "ActionResult":
        """Normalize a handler return value into an ActionResult.

        Args:
            value: An ActionResult or a mapping with the same keys

        Returns:
            The equivalent ActionResult

        Raises:
            TypeError: If the value cannot be interpreted as a result
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            success = bool(value.get("success", False))
            error = value.get("error")
            if not success and error is None:
                error = "Action failed"
            return cls(
                success=success,
                data=value.get("data"),
                error=None if success else str(error),
                redirect=value.get("redirect"),
                modal=value.get("modal"),
                reload=bool(value.get("reload", False)),
            )
        raise TypeError(
            f"Handler returned {type(value).__name__}, expected ActionResult or mapping"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return the populated fields as a plain dictionary."""
        result: Dict[str, Any] = {"success": self.success}
        for key in ("data", "error", "redirect", "modal"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.reload:
            result["reload"] = True
        return result


@dataclass
class ActionContext:
    """Data bag that expressions and handlers resolve against."""

    data: Dict[str, Any] = field(default_factory=dict)
    record: Optional[Dict[str, Any]] = None
    user: Optional[Dict[str, Any]] = None

    @classmethod
    def coerce(cls, value: Any) -> "ActionContext":
        """Build a context from an ActionContext, a mapping or None."""
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            return cls(
                data=dict(value.get("data") or {}),
                record=value.get("record"),
                user=value.get("user"),
            )
        raise TypeError(f"Cannot build ActionContext from {type(value).__name__}")

    def merge(self, partial: Any) -> None:
        """Shallow-merge the given fields into this context.

        Args:
            partial: Mapping or ActionContext; only keys present are replaced
        """
        if isinstance(partial, ActionContext):
            partial = {"data": partial.data, "record": partial.record, "user": partial.user}
        for key, value in partial.items():
            if key not in ("data", "record", "user"):
                logger.warning("Ignoring unknown context key", key=key)
                continue
            setattr(self, key, dict(value) if key == "data" and value is not None else value)
        if self.data is None:
            self.data = {}

    def copy(self) -> "ActionContext":
        """Return a shallow copy of this context."""
        return ActionContext(data=dict(self.data), record=self.record, user=self.user)

    def to_scope(self) -> Dict[str, Any]:
        """Return the names visible to expressions."""
        return {"data": self.data, "record": self.record, "user": self.user}


class ActionHandler(ABC):
    """Base class for built-in type dispatchers."""

    def __init__(self, name: str, description: str) -> None:
        """Initialize action handler.

        Args:
            name: Action type this handler dispatches
            description: Human-readable description
        """
        self.name = name
        self.description = description

    @abstractmethod
    async def execute(self, action: "ActionDef", runner: "ActionRunner") -> ActionResult:
        """Dispatch the action.

        Implementations must not raise; every failure is returned as a
        failed ActionResult.

        Args:
            action: Parsed action definition
            runner: Runner providing context, evaluator, ports and settings

        Returns:
            Result of the dispatch
        """
        pass


async def maybe_await(value: Any) -> Any:
    """Await the value if a sync-or-async callable returned an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value
