"""Fallback for flow actions when no flow handler is registered."""

from ... import errors
from ..base import ActionHandler, ActionResult
from ..registry import builtin_action


@builtin_action("flow", "Start a workflow (requires a registered flow handler)")
class FlowHandler(ActionHandler):
    """Reports why a flow action could not be started."""

    async def execute(self, action, runner) -> ActionResult:
        if not action.target:
            return ActionResult.fail(errors.NO_FLOW_TARGET)
        return ActionResult.fail(errors.FLOW_HANDLER_NOT_REGISTERED)
