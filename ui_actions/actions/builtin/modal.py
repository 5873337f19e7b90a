"""Built-in action for opening modals."""

import structlog

from ... import errors
from ..base import ActionHandler, ActionResult, maybe_await
from ..registry import builtin_action

logger = structlog.get_logger(__name__)


@builtin_action("modal", "Open a modal described by a schema")
class ModalHandler(ActionHandler):
    """Delegates to the modal port, or returns the schema for the host."""

    async def execute(self, action, runner) -> ActionResult:
        schema = getattr(action, "modal", None)
        if schema is None:
            schema = action.target
        if schema is None:
            return ActionResult.fail(errors.NO_MODAL_SCHEMA)

        open_modal = runner.modal_handler
        if open_modal is None:
            return ActionResult.ok(modal=schema)

        try:
            return ActionResult.coerce(await maybe_await(open_modal(schema, runner.get_context())))
        except Exception as e:
            logger.warning("Modal handler failed", error=str(e))
            return ActionResult.fail(errors.error_message(e))
