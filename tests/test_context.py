"""Tests for perch.context: request-scoped ContextVars."""

import pytest

from perch import App
from perch.context import app_var, get_app, get_request, request_var
from perch.http.request import Request
from perch.testing import TestClient


class TestRequestVar:
    def test_get_request_raises_outside_context(self) -> None:
        with pytest.raises(LookupError):
            get_request()

    def test_set_and_get(self) -> None:
        request = Request(method="GET", path="/x")
        token = request_var.set(request)
        try:
            assert get_request() is request
        finally:
            request_var.reset(token)


class TestAppVar:
    def test_get_app_raises_outside_context(self) -> None:
        with pytest.raises(LookupError):
            get_app()

    def test_set_and_get(self, app_config) -> None:
        app = App(app_config)
        token = app_var.set(app)
        try:
            assert get_app() is app
        finally:
            app_var.reset(token)

    async def test_current_app_inside_handler(self, app_config) -> None:
        seen = []

        def routes(router):
            router.get("/", lambda: seen.append(get_app()))

        app = App(app_config, routes=routes)
        async with TestClient(app) as client:
            await client.get("/")
        assert seen == [app]
