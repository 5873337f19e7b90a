"""Pytest configuration and fixtures for action engine tests."""

from typing import Any, Dict, List, Optional, Tuple

import pytest

from ui_actions.actions import ActionRunner
from ui_actions.config import EngineSettings
from ui_actions.http import HttpResponse


class FakeHttpClient:
    """Records requests and replays a canned response or error."""

    def __init__(
        self,
        response: Optional[HttpResponse] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.response = response or HttpResponse(status=200, reason="OK", text="{}")
        self.error = error
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    async def request(self, url: str, **kwargs: Any) -> HttpResponse:
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def engine_settings():
    """Provide test engine settings."""
    return EngineSettings(
        log_level="DEBUG",
        metrics_enabled=False,
    )


@pytest.fixture
def action_context():
    """Provide a sample action context."""
    return {
        "data": {"id": 1, "name": "Test"},
        "record": {"id": 1, "status": "active"},
        "user": {"id": "u1", "role": "admin"},
    }


@pytest.fixture
def http_client():
    """Provide a fake HTTP client."""
    return FakeHttpClient()


@pytest.fixture
def runner(action_context, engine_settings, http_client):
    """Provide an ActionRunner wired to the fake HTTP client."""
    return ActionRunner(
        action_context,
        settings=engine_settings,
        http_client=http_client,
    )
