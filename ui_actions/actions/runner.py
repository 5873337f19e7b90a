"""Action runner: guards, confirmation, dispatch, chaining and post-processing."""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import structlog

from .. import errors
from ..config import EngineSettings
from ..expressions import Evaluator, ExpressionEvaluator
from ..http import AiohttpClient, HttpClient
from ..metrics import record_execution
from . import builtin  # noqa: F401  (registers built-in dispatchers)
from .base import ActionContext, ActionResult, ActionStatus, maybe_await
from .models import ActionDef, LegacyAction, parse_action
from .registry import CustomHandler, HandlerRegistry, get_builtin_handler

logger = structlog.get_logger(__name__)

ConfirmHandler = Callable[[str, Optional[Dict[str, Any]]], Union[Awaitable[bool], bool]]
NavigationHandler = Callable[[str, Dict[str, Any]], Any]
ModalHandler = Callable[[Any, ActionContext], Any]
ToastHandler = Callable[[str, Dict[str, Any]], Any]

ActionLike = Union[ActionDef, Dict[str, Any]]


class ActionRunner:
    """Executes declarative actions against a context.

    The runner owns the context, the custom handler registry and the four
    host ports (confirm, navigate, modal, toast). ``execute`` never raises:
    every failure is returned as a failed ActionResult.
    """

    def __init__(
        self,
        context: Any = None,
        *,
        evaluator: Optional[Evaluator] = None,
        settings: Optional[EngineSettings] = None,
        http_client: Optional[HttpClient] = None,
        auto_confirm: Optional[bool] = None,
    ) -> None:
        """Initialize the runner.

        Args:
            context: Initial ActionContext or mapping with data/record/user
            evaluator: Expression evaluator; defaults to ExpressionEvaluator
            settings: Engine settings; defaults to EngineSettings()
            http_client: Client for api actions; defaults to AiohttpClient
            auto_confirm: Override settings.auto_confirm for this runner
        """
        self.settings = settings or EngineSettings()
        self._context = ActionContext.coerce(context)
        self._evaluator: Evaluator = evaluator or ExpressionEvaluator(self._context)
        self._owns_evaluator = evaluator is None
        self._http_client = http_client
        self._owns_http_client = False
        self._auto_confirm = self.settings.auto_confirm if auto_confirm is None else auto_confirm

        self._registry = HandlerRegistry()
        self._confirm_handler: Optional[ConfirmHandler] = None
        self._navigation_handler: Optional[NavigationHandler] = None
        self._modal_handler: Optional[ModalHandler] = None
        self._toast_handler: Optional[ToastHandler] = None

    async def __aenter__(self) -> "ActionRunner":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the HTTP session created by this runner, if any."""
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.close()
            self._http_client = None
            self._owns_http_client = False

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    def get_context(self) -> ActionContext:
        return self._context

    def update_context(self, partial: Any) -> None:
        """Shallow-merge data/record/user into the current context."""
        self._context.merge(partial)

    def set_context(self, context: Any) -> None:
        """Replace the context wholesale."""
        self._context = ActionContext.coerce(context)
        if self._owns_evaluator:
            self._evaluator = ExpressionEvaluator(self._context)

    def get_evaluator(self) -> Evaluator:
        return self._evaluator

    def evaluate(self, expression: Any) -> Any:
        """Evaluate an expression; bare expressions are treated as one template."""
        if isinstance(expression, str) and "${" not in expression:
            expression = "${" + expression + "}"
        return self._evaluator.evaluate(expression, self._context)

    def fork(self, context: Any = None) -> "ActionRunner":
        """Return a runner with a copy of the handlers and ports and its own context.

        Args:
            context: Partial context merged over a copy of the current one
        """
        child_context = self._context.copy()
        if context:
            child_context.merge(context)

        child = ActionRunner(
            child_context,
            evaluator=None if self._owns_evaluator else self._evaluator,
            settings=self.settings,
            http_client=self.http_client,
            auto_confirm=self._auto_confirm,
        )
        child._registry = self._registry.copy()
        child._confirm_handler = self._confirm_handler
        child._navigation_handler = self._navigation_handler
        child._modal_handler = self._modal_handler
        child._toast_handler = self._toast_handler
        return child

    # ------------------------------------------------------------------
    # Handlers and ports
    # ------------------------------------------------------------------

    def register_handler(self, action_type: str, handler: CustomHandler) -> None:
        self._registry.register(action_type, handler)

    def unregister_handler(self, action_type: str) -> None:
        self._registry.unregister(action_type)

    def set_confirm_handler(self, handler: Optional[ConfirmHandler]) -> None:
        self._confirm_handler = handler

    def set_navigation_handler(self, handler: Optional[NavigationHandler]) -> None:
        self._navigation_handler = handler

    def set_modal_handler(self, handler: Optional[ModalHandler]) -> None:
        self._modal_handler = handler

    def set_toast_handler(self, handler: Optional[ToastHandler]) -> None:
        self._toast_handler = handler

    @property
    def navigation_handler(self) -> Optional[NavigationHandler]:
        return self._navigation_handler

    @property
    def modal_handler(self) -> Optional[ModalHandler]:
        return self._modal_handler

    @property
    def http_client(self) -> HttpClient:
        if self._http_client is None:
            self._http_client = AiohttpClient(timeout=self.settings.api_timeout)
            self._owns_http_client = True
        return self._http_client

    def get_stats(self) -> Dict[str, Any]:
        """Get runner statistics."""
        return {
            **self._registry.get_stats(),
            "ports": {
                "confirm": self._confirm_handler is not None,
                "navigate": self._navigation_handler is not None,
                "modal": self._modal_handler is not None,
                "toast": self._toast_handler is not None,
            },
        }

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(self, action: ActionLike) -> ActionResult:
        """Execute one action.

        Args:
            action: ActionDef or action document

        Returns:
            Result of the execution; never raises
        """
        start_time = time.monotonic()

        try:
            parsed = parse_action(action)
        except errors.InvalidActionError as e:
            logger.warning("Rejected invalid action", error=str(e))
            self._record("invalid", ActionStatus.FAILED, start_time)
            return ActionResult.fail(str(e))

        action_type = parsed.kind

        guard_error = self._check_guards(parsed)
        if guard_error is not None:
            logger.info("Action skipped by guard", action_type=action_type, reason=guard_error)
            self._record(action_type, ActionStatus.SKIPPED, start_time)
            return ActionResult.fail(guard_error)

        if not await self._confirm(parsed):
            logger.info("Action cancelled", action_type=action_type)
            self._record(action_type, ActionStatus.CANCELLED, start_time)
            return ActionResult.fail(errors.ACTION_CANCELLED)

        logger.debug("Executing action", action_type=action_type, name=parsed.name)

        timed_out = False
        timeout = self.settings.action_timeout
        try:
            if timeout is None:
                result = await self._run(parsed)
            else:
                result = await asyncio.wait_for(self._run(parsed), timeout=timeout)
        except asyncio.TimeoutError:
            timed_out = True
            logger.warning("Action timed out", action_type=action_type, timeout=timeout)
            result = ActionResult.fail(errors.timed_out(action_type, timeout))

        result = await self._post_process(parsed, result)

        if result.success:
            status = ActionStatus.SUCCESS
        else:
            status = ActionStatus.TIMEOUT if timed_out else ActionStatus.FAILED
            logger.warning("Action failed", action_type=action_type, error=result.error)
        self._record(action_type, status, start_time)

        return result

    async def execute_chain(
        self, actions: List[ActionLike], mode: str = "sequential"
    ) -> ActionResult:
        """Run a list of actions as one chain, without guards or confirmation.

        Args:
            actions: Chain entries
            mode: "sequential" (short-circuits on failure) or "parallel"

        Returns:
            Aggregate result of the chain
        """
        if not actions:
            return ActionResult.ok()
        if mode == "parallel":
            return await self._run_parallel(actions)
        return await self._run_sequential(actions)

    def _check_guards(self, action: ActionDef) -> Optional[str]:
        """Return a guard failure message, or None when all guards pass."""
        try:
            disabled = action.disabled
            if isinstance(disabled, str):
                disabled = self.evaluate(disabled)
            if disabled:
                return errors.ACTION_DISABLED

            if action.condition and not self.evaluate(action.condition):
                return errors.CONDITION_NOT_MET
        except Exception as e:
            logger.warning("Guard evaluation failed", error=str(e))
            return errors.error_message(e)

        return None

    async def _confirm(self, action: ActionDef) -> bool:
        """Ask the host for confirmation when the action requires it."""
        if action.confirm is not None:
            message = action.confirm.message
            options: Optional[Dict[str, Any]] = {
                key: value
                for key, value in (
                    ("title", action.confirm.title),
                    ("confirm_text", action.confirm.confirm_text),
                    ("cancel_text", action.confirm.cancel_text),
                )
                if value is not None
            }
        elif action.confirm_text:
            message = action.confirm_text
            options = None
        else:
            return True

        if self._confirm_handler is None:
            logger.info(
                "No confirm handler registered",
                auto_confirm=self._auto_confirm,
            )
            return self._auto_confirm

        try:
            return bool(await maybe_await(self._confirm_handler(message, options)))
        except Exception as e:
            logger.warning("Confirm handler failed", error=str(e))
            return False

    async def _run(self, action: ActionDef) -> ActionResult:
        if action.chain:
            return await self.execute_chain(action.chain, action.chain_mode)
        return await self._dispatch(action)

    async def _dispatch(self, action: ActionDef) -> ActionResult:
        """Resolve the action type and invoke its handler."""
        handler = self._registry.get(action.type)
        if handler is not None:
            try:
                return ActionResult.coerce(await maybe_await(handler(action, self._context)))
            except Exception as e:
                logger.warning("Custom handler failed", action_type=action.type, error=str(e))
                return ActionResult.fail(errors.error_message(e))

        builtin_handler = get_builtin_handler(action.type)
        if builtin_handler is not None:
            try:
                return await builtin_handler.execute(action, self)
            except Exception as e:
                logger.error(
                    "Built-in handler raised",
                    action_type=action.type,
                    error=str(e),
                    exc_info=True,
                )
                return ActionResult.fail(errors.error_message(e))

        if isinstance(action, LegacyAction):
            return await self._run_legacy(action)

        return ActionResult.fail(errors.unhandled_type(action.kind))

    async def _run_legacy(self, action: LegacyAction) -> ActionResult:
        if action.on_click is None:
            return ActionResult.ok()
        try:
            await maybe_await(action.on_click())
        except Exception as e:
            return ActionResult.fail(errors.error_message(e))
        return ActionResult.ok()

    async def _run_sequential(self, actions: List[ActionLike]) -> ActionResult:
        result = ActionResult.ok()
        for index, entry in enumerate(actions):
            result = await self.execute(entry)
            if not result.success:
                logger.debug("Sequential chain stopped", index=index, error=result.error)
                return result
        return result

    async def _run_parallel(self, actions: List[ActionLike]) -> ActionResult:
        results = await asyncio.gather(*(self.execute(entry) for entry in actions))

        # Lowest chain index wins, independent of completion order
        for result in results:
            if not result.success:
                return result

        return ActionResult.ok(
            [result.data for result in results],
            reload=any(result.reload for result in results),
        )

    async def _post_process(self, action: ActionDef, result: ActionResult) -> ActionResult:
        """Run callbacks, emit the toast and flag a reload."""
        callbacks = action.on_success if result.success else action.on_failure
        for callback in callbacks:
            await self.execute(callback)

        await self._toast(action, result)

        if result.success and action.refresh_after and not result.reload:
            result = ActionResult(
                success=True,
                data=result.data,
                redirect=result.redirect,
                modal=result.modal,
                reload=True,
            )
        return result

    async def _toast(self, action: ActionDef, result: ActionResult) -> None:
        if self._toast_handler is None:
            return

        toast = action.toast
        duration = toast.duration if toast else None
        if result.success:
            if toast and toast.show_on_success is False:
                return
            message = action.success_message
            if message is None:
                message = self.settings.default_success_message
            options = {"type": "success", "duration": duration}
        else:
            if toast and toast.show_on_error is False:
                return
            message = action.error_message
            if message is None:
                message = result.error or ""
            options = {"type": "error", "duration": duration}

        try:
            await maybe_await(self._toast_handler(message, options))
        except Exception as e:
            logger.warning("Toast handler failed", error=str(e))

    def _record(self, action_type: str, status: ActionStatus, start_time: float) -> None:
        if self.settings.metrics_enabled:
            record_execution(action_type, status.value, time.monotonic() - start_time)


async def execute_action(
    action: ActionLike, context: Any = None, **kwargs: Any
) -> ActionResult:
    """Execute a single action with a transient runner.

    Args:
        action: ActionDef or action document
        context: ActionContext or mapping
        **kwargs: Passed to ActionRunner

    Returns:
        Result of the execution
    """
    async with ActionRunner(context, **kwargs) as runner:
        return await runner.execute(action)
