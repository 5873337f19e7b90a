"""Built-in actions for URL and in-app navigation."""

import re
from typing import Iterable, Optional, Tuple
from urllib.parse import urlsplit

import structlog

from ... import errors
from ..base import ActionHandler, ActionResult, maybe_await
from ..registry import builtin_action

logger = structlog.get_logger(__name__)

# Browsers drop these before parsing the scheme ("java\tscript:")
_IGNORED_CHARS = re.compile(r"[\x00-\x20\x7f]")


def classify_url(url: str, allowed_schemes: Iterable[str]) -> Tuple[bool, bool]:
    """Check a URL's scheme.

    Args:
        url: Candidate URL
        allowed_schemes: Schemes accepted for absolute URLs

    Returns:
        (valid, external) where external marks absolute or protocol-relative URLs
    """
    cleaned = _IGNORED_CHARS.sub("", url)
    try:
        parts = urlsplit(cleaned)
    except ValueError:
        return False, False

    if parts.scheme:
        allowed = {scheme.lower() for scheme in allowed_schemes}
        return parts.scheme.lower() in allowed, True
    if cleaned.startswith("//"):
        return True, True
    return True, False


async def navigate_to(
    url: Optional[str], runner, *, missing: str, replace: Optional[bool] = None
) -> ActionResult:
    """Validate a URL and hand it to the navigation port, or return a redirect."""
    if not url or not isinstance(url, str):
        return ActionResult.fail(missing)

    valid, external = classify_url(url, runner.settings.allowed_url_schemes)
    if not valid:
        logger.warning("Rejected URL with disallowed scheme", url=url)
        return ActionResult.fail(errors.invalid_url(url))

    navigate = runner.navigation_handler
    if navigate is None:
        return ActionResult.ok(redirect=url)

    options = {"external": external, "new_tab": external}
    if replace is not None:
        options["replace"] = replace

    try:
        await maybe_await(navigate(url, options))
    except Exception as e:
        logger.warning("Navigation handler failed", url=url, error=str(e))
        return ActionResult.fail(errors.error_message(e))

    return ActionResult.ok()


@builtin_action("url", "Open a relative or http(s) URL")
class UrlHandler(ActionHandler):
    """Navigates to ``target``."""

    async def execute(self, action, runner) -> ActionResult:
        return await navigate_to(action.target, runner, missing=errors.NO_URL)


@builtin_action("navigation", "Navigate within the host application")
class NavigationHandler(ActionHandler):
    """Navigates to ``navigate.to``, forwarding the replace flag."""

    async def execute(self, action, runner) -> ActionResult:
        spec = getattr(action, "navigate", None)
        if spec is None:
            return ActionResult.fail(errors.NO_NAVIGATION_TARGET)
        return await navigate_to(
            spec.to, runner, missing=errors.NO_NAVIGATION_TARGET, replace=spec.replace
        )
