"""Catalog of named actions placed at UI locations."""

from typing import Any, Dict, List, Optional

import structlog

from .base import ActionResult
from .models import ActionDef, parse_action
from .runner import ActionLike, ActionRunner

logger = structlog.get_logger(__name__)


def normalize_shortcut(keys: str) -> str:
    """Normalize a key combination, e.g. "Ctrl + K" -> "ctrl+k"."""
    return "+".join(part.strip().lower() for part in keys.split("+") if part.strip())


class ActionEngine:
    """Holds named action definitions and executes them by name or shortcut."""

    def __init__(
        self,
        context: Any = None,
        *,
        runner: Optional[ActionRunner] = None,
        **runner_kwargs: Any,
    ) -> None:
        """Initialize the engine.

        Args:
            context: Context for the runner created when none is given
            runner: Existing runner to execute actions with
            **runner_kwargs: Passed to ActionRunner when one is created
        """
        self.runner = runner or ActionRunner(context, **runner_kwargs)
        self._actions: Dict[str, ActionDef] = {}
        self._shortcuts: Dict[str, str] = {}

    def register_action(self, action: ActionLike) -> ActionDef:
        """Add a named action, replacing an existing one with the same name.

        Raises:
            InvalidActionError: If the definition does not validate
            ValueError: If the action has no name
        """
        parsed = parse_action(action)
        if not parsed.name:
            raise ValueError("Catalog actions need a name")

        if parsed.name in self._actions:
            logger.info("Overriding existing action", name=parsed.name)
            self._drop_shortcut(parsed.name)

        self._actions[parsed.name] = parsed
        if parsed.shortcut:
            self._shortcuts[normalize_shortcut(parsed.shortcut)] = parsed.name
        return parsed

    def register_actions(self, actions: List[ActionLike]) -> None:
        for action in actions:
            self.register_action(action)

    def unregister_action(self, name: str) -> bool:
        if self._actions.pop(name, None) is None:
            return False
        self._drop_shortcut(name)
        return True

    def _drop_shortcut(self, name: str) -> None:
        for keys in [k for k, v in self._shortcuts.items() if v == name]:
            del self._shortcuts[keys]

    def get_action(self, name: str) -> Optional[ActionDef]:
        return self._actions.get(name)

    def get_actions_for_location(self, location: str) -> List[ActionDef]:
        """Actions shown at a location, highest priority first."""
        matches = [action for action in self._actions.values() if location in action.locations]
        return sorted(matches, key=lambda action: -action.priority)

    def get_bulk_actions(self) -> List[ActionDef]:
        return [action for action in self._actions.values() if action.bulk_enabled]

    async def execute_action(
        self, name: str, context_override: Any = None
    ) -> ActionResult:
        """Execute a registered action by name.

        Args:
            name: Action name
            context_override: Partial context applied for this execution only

        Returns:
            Result of the execution
        """
        action = self._actions.get(name)
        if action is None:
            return ActionResult.fail(f"Action '{name}' not found")

        if context_override:
            return await self.runner.fork(context_override).execute(action)
        return await self.runner.execute(action)

    async def handle_shortcut(self, keys: str) -> Optional[ActionResult]:
        """Execute the action bound to a key combination.

        Returns:
            The result, or None when no action is bound to the keys
        """
        name = self._shortcuts.get(normalize_shortcut(keys))
        if name is None:
            return None
        return await self.execute_action(name)

    def list_actions(self) -> List[Dict[str, Any]]:
        return [
            {
                "name": name,
                "type": action.kind,
                "label": action.label,
                "locations": list(action.locations),
            }
            for name, action in self._actions.items()
        ]

    def get_stats(self) -> Dict[str, Any]:
        """Get engine statistics."""
        return {
            "registered_actions": len(self._actions),
            "action_names": list(self._actions),
            "shortcuts": dict(self._shortcuts),
        }
