"""Built-in action for calling HTTP APIs."""

import json
from typing import Any, Dict, Optional
from urllib.parse import urlencode, urljoin

import structlog

from ... import errors
from ..base import ActionHandler, ActionResult
from ..models import ApiSpec
from ..registry import builtin_action

logger = structlog.get_logger(__name__)


def build_url(url: str, query_params: Dict[str, Any], base_url: Optional[str] = None) -> str:
    """Join a relative endpoint onto the base URL and append query parameters."""
    if base_url and not url.startswith(("http://", "https://")):
        url = urljoin(f"{base_url.rstrip('/')}/", url.lstrip("/"))
    if query_params:
        params = {key: value for key, value in query_params.items() if value is not None}
        if params:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{urlencode(params, doseq=True)}"
    return url


@builtin_action("api", "Perform a single HTTP request")
class ApiHandler(ActionHandler):
    """Sends one request and returns the parsed JSON body."""

    def _resolve_spec(self, action) -> Optional[ApiSpec]:
        api = getattr(action, "api", None)
        endpoint = getattr(action, "endpoint", None)
        method = getattr(action, "method", None)

        if isinstance(api, ApiSpec):
            spec = api
            if not spec.url and endpoint:
                spec = spec.model_copy(update={"url": endpoint})
        elif api or endpoint:
            spec = ApiSpec(url=api or endpoint)
        else:
            return None

        if not spec.url:
            return None
        if not spec.method and method:
            spec = spec.model_copy(update={"method": method})
        return spec

    async def execute(self, action, runner) -> ActionResult:
        spec = self._resolve_spec(action)
        if spec is None:
            return ActionResult.fail(errors.NO_API_ENDPOINT)

        settings = runner.settings
        method = (spec.method or "GET").upper()
        url = spec.url

        try:
            url = build_url(spec.url, spec.query_params, settings.api_base_url)
            body = json.dumps(spec.body) if spec.body is not None else None

            logger.info("Calling API", url=url, method=method)
            response = await runner.http_client.request(
                url,
                method=method,
                headers=dict(spec.headers),
                body=body,
                timeout=spec.timeout or settings.api_timeout,
            )

            if not response.ok:
                logger.warning(
                    "API returned error status",
                    url=url,
                    status=response.status,
                )
                return ActionResult.fail(errors.http_error(response.status, response.reason))

            data = await response.json()

        except Exception as e:
            logger.warning("API request failed", url=url, error=str(e))
            return ActionResult.fail(errors.error_message(e))

        logger.debug("API call succeeded", url=url, status=response.status)
        return ActionResult.ok(data)
