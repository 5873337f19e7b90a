"""Integration tests for complete action workflows over real HTTP."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from ui_actions.actions import ActionEngine, ActionResult, ActionRunner
from ui_actions.config import EngineSettings
from ui_actions.http import AiohttpClient


class RecordsApi:
    """Tiny records service used as the API backend."""

    def __init__(self):
        self.records = {1: {"id": 1, "status": "open"}}
        self.requests = []

    def make_app(self):
        app = web.Application()
        app.router.add_get("/api/records/{id}", self.get_record)
        app.router.add_put("/api/records/{id}", self.update_record)
        app.router.add_get("/api/broken", self.broken)
        return app

    async def get_record(self, request):
        self.requests.append(("GET", request.path, dict(request.query), None))
        record = self.records.get(int(request.match_info["id"]))
        if record is None:
            return web.json_response({"error": "not found"}, status=404)
        return web.json_response(record)

    async def update_record(self, request):
        body = await request.json()
        self.requests.append(("PUT", request.path, dict(request.query), request.headers.get("Authorization")))
        record = self.records[int(request.match_info["id"])]
        record.update(body)
        return web.json_response(record)

    async def broken(self, request):
        return web.Response(status=500, text="boom")


@pytest.fixture
def records_api():
    return RecordsApi()


class TestApiWorkflow:
    """Test the api dispatcher against a live aiohttp server."""

    @pytest.mark.asyncio
    async def test_get_and_update_record(self, records_api):
        async with TestServer(records_api.make_app()) as server:
            settings = EngineSettings(api_base_url=str(server.make_url("/")), metrics_enabled=False)
            async with ActionRunner({"data": {}}, settings=settings) as runner:
                fetched = await runner.execute({"type": "api", "api": "/api/records/1"})
                updated = await runner.execute({
                    "type": "api",
                    "api": {
                        "url": "/api/records/1",
                        "method": "PUT",
                        "headers": {"Authorization": "Bearer xyz"},
                        "body": {"status": "closed"},
                        "queryParams": {"notify": "yes"},
                    },
                })

        assert fetched == ActionResult(success=True, data={"id": 1, "status": "open"})
        assert updated.data == {"id": 1, "status": "closed"}
        assert records_api.requests[1] == ("PUT", "/api/records/1", {"notify": "yes"}, "Bearer xyz")

    @pytest.mark.asyncio
    async def test_error_statuses(self, records_api):
        async with TestServer(records_api.make_app()) as server:
            settings = EngineSettings(api_base_url=str(server.make_url("/")), metrics_enabled=False)
            async with ActionRunner(settings=settings) as runner:
                missing = await runner.execute({"type": "api", "api": "/api/records/404"})
                broken = await runner.execute({"type": "api", "endpoint": "/api/broken"})

        assert missing == ActionResult(success=False, error="HTTP 404: Not Found")
        assert broken.success is False
        assert "500" in broken.error

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        settings = EngineSettings(api_timeout=2, metrics_enabled=False)
        async with ActionRunner(settings=settings) as runner:
            result = await runner.execute({"type": "api", "api": "http://127.0.0.1:1/unreachable"})

        assert result.success is False
        assert result.error

    @pytest.mark.asyncio
    async def test_client_session_is_reused_and_closed(self, records_api):
        client = AiohttpClient(timeout=5)
        async with TestServer(records_api.make_app()) as server:
            url = str(server.make_url("/api/records/1"))
            first = await client.request(url)
            session = client._session
            second = await client.request(url, method="GET")
            assert client._session is session
            await client.close()

        assert first.ok and second.ok
        assert await first.json() == {"id": 1, "status": "open"}
        assert client._session is None


class TestInteractiveWorkflow:
    """Test a button click wired to every port."""

    @pytest.mark.asyncio
    async def test_confirm_update_then_navigate(self, records_api):
        confirm = AsyncMock(return_value=True)
        navigate = MagicMock()
        toast = MagicMock()

        async with TestServer(records_api.make_app()) as server:
            settings = EngineSettings(api_base_url=str(server.make_url("/")), metrics_enabled=False)
            async with ActionRunner({"record": {"id": 1}}, settings=settings) as runner:
                runner.set_confirm_handler(confirm)
                runner.set_navigation_handler(navigate)
                runner.set_toast_handler(toast)

                engine = ActionEngine(runner=runner)
                engine.register_action({
                    "name": "close_record",
                    "locations": ["record_header"],
                    "condition": "${record.id === 1}",
                    "confirm": {"title": "Close", "message": "Close record 1?"},
                    "chain": [
                        {
                            "type": "api",
                            "api": {"url": "/api/records/1", "method": "PUT", "body": {"status": "closed"}},
                            "toast": {"showOnSuccess": False},
                        },
                        {
                            "type": "script",
                            "execute": "record.id",
                            "toast": {"showOnSuccess": False},
                        },
                    ],
                    "onSuccess": {
                        "type": "navigation",
                        "navigate": {"to": "/records", "replace": True},
                        "toast": {"showOnSuccess": False},
                    },
                    "successMessage": "Record closed",
                    "refreshAfter": True,
                })

                result = await engine.execute_action("close_record")

        assert result == ActionResult(success=True, data=1, reload=True)
        assert records_api.records[1]["status"] == "closed"
        confirm.assert_awaited_once_with("Close record 1?", {"title": "Close"})
        navigate.assert_called_once_with("/records", {"external": False, "new_tab": False, "replace": True})
        toast.assert_called_once_with("Record closed", {"type": "success", "duration": None})

    @pytest.mark.asyncio
    async def test_cancelled_confirmation_sends_nothing(self, records_api):
        async with TestServer(records_api.make_app()) as server:
            settings = EngineSettings(api_base_url=str(server.make_url("/")), metrics_enabled=False)
            async with ActionRunner(settings=settings) as runner:
                runner.set_confirm_handler(AsyncMock(return_value=False))

                result = await runner.execute({
                    "type": "api",
                    "api": {"url": "/api/records/1", "method": "PUT", "body": {"status": "gone"}},
                    "confirmText": "Really?",
                })

        assert result.error == "Action cancelled by user"
        assert records_api.requests == []
        assert records_api.records[1]["status"] == "open"
