"""Built-in action for evaluating script expressions."""

import structlog

from ... import errors
from ..base import ActionHandler, ActionResult
from ..registry import builtin_action

logger = structlog.get_logger(__name__)


@builtin_action("script", "Evaluate an expression against the action context")
class ScriptHandler(ActionHandler):
    """Evaluates ``execute`` (or a string ``target``) and returns its value."""

    async def execute(self, action, runner) -> ActionResult:
        script = getattr(action, "execute", None)
        if not script and isinstance(action.target, str):
            script = action.target
        if not script:
            return ActionResult.fail(errors.NO_SCRIPT)

        try:
            value = runner.evaluate(script)
        except Exception as e:
            logger.warning("Script evaluation failed", script=script, error=str(e))
            return ActionResult.fail(errors.error_message(e))

        return ActionResult.ok(value)
