"""Perch application class.

Builds the service container, loads routes and serves as the ASGI
front controller. Setup (middleware, extra routes) is mutable until the
first request or lifespan event freezes the middleware pipeline.
"""

import logging
import threading
from collections.abc import Callable, Mapping
from contextvars import Token
from dataclasses import replace
from pathlib import Path
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.loader import load_attribute
from perch.config import AppConfig
from perch.context import app_var
from perch.data.database import Database
from perch.errors import ConfigurationError
from perch.http.response import Response
from perch.middleware.protocol import Middleware
from perch.middleware.sessions import SessionMiddleware
from perch.routing.router import Router
from perch.server.handler import handle_request
from perch.services.auth import Authentication
from perch.services.container import Container, Provider
from perch.services.errors import INTERNAL_ERROR_BODY, ErrorHandler
from perch.services.files import FileManager
from perch.services.session import SessionManager

logger = logging.getLogger("perch.app")

type RoutesSource = str | Path | Callable[[Router], Any]


class App:
    """The perch application.

    ::

        app = App(load_config("config.yaml"), routes="routes.py")
        app.router.get("/health", lambda: {"ok": True})

    Construction never raises for a broken project: a failure while
    building services or loading routes is logged through the
    ``errors`` service, kept in ``error``, and ``loaded`` stays False.
    Requests to an app that failed to load get a 500.
    """

    __slots__ = (
        "_container",
        "_freeze_lock",
        "_frozen",
        "_middleware",
        "_middleware_list",
        "config",
        "error",
        "loaded",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        services: Mapping[str, Any] | None = None,
        routes: RoutesSource | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self.loaded = False
        self.error: str | None = None
        self._container = Container()
        self._middleware_list: list[Middleware] = []
        self._middleware: tuple[Middleware, ...] = ()
        self._frozen = False
        self._freeze_lock = threading.Lock()

        try:
            self._container.register(self._service_map(services))
            self.get("session")
            source = routes if routes is not None else self.config.router.routes_file
            if source is not None:
                self.router.load_routes(source)
        except Exception as exc:
            self.error = f"{exc}"
            self._report_load_failure(exc)
        else:
            self.loaded = True

    def _report_load_failure(self, exc: Exception) -> None:
        try:
            self._error_handler().handle_exception(exc)
        except Exception as report_exc:
            logger.error("Application failed to load: %s", exc, exc_info=exc)
            logger.error("Error log unavailable: %s", report_exc)
        else:
            logger.error("Application failed to load: %s", exc)

    # -- Services --

    def _service_map(self, services: Mapping[str, Any] | None) -> dict[str, Any]:
        """Defaults, then *services*, then the ``SERVICES`` override file."""
        config = self.config
        service_map: dict[str, Any] = {
            "auth": Provider.factory(
                lambda c: Authentication(
                    config.auth,
                    session=c.get("session"),
                    verify=c.get("auth_custom") if c.has("auth_custom") else None,
                )
            ),
            "session": Provider.factory(lambda c: SessionManager()),
            "router": Provider.factory(
                lambda c: Router(config.router, auth=lambda: c.get("auth"), container=c)
            ),
            "files": Provider.factory(lambda c: FileManager(config.files)),
            "db": Provider.factory(lambda c: Database(config.database)),
            "errors": Provider.factory(lambda c: ErrorHandler(config.errors)),
        }
        service_map.update(services or {})
        if config.services_file:
            service_map.update(_load_services_file(config.services_file))
        return service_map

    def _error_handler(self) -> ErrorHandler:
        if self._container.has("errors"):
            return self._container.get("errors")
        return ErrorHandler(self.config.errors)

    @property
    def container(self) -> Container:
        return self._container

    def get(self, name: str) -> Any:
        """Resolve the service registered as *name*."""
        return self._container.get(name)

    @property
    def router(self) -> Router:
        return self._container.get("router")

    def activate(self) -> Token["App"]:
        """Make this app the current one outside a request (scripts, shells)."""
        return app_var.set(self)

    # -- Middleware --

    def add_middleware(self, middleware: Middleware) -> None:
        """Add a middleware to the pipeline."""
        if self._frozen:
            msg = "Cannot add middleware after the app has started serving requests."
            raise RuntimeError(msg)
        self._middleware_list.append(middleware)

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Serve the app with uvicorn (install the ``server`` extra)."""
        from perch.server.dev import run_dev_server

        run_dev_server(
            self,
            host or self.config.host,
            port or self.config.port,
            reload=False,
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        self._ensure_frozen()

        if not self.loaded:
            await self._send_load_failure(scope, send)
            return

        await handle_request(
            scope,
            receive,
            send,
            app=self,
            middleware=self._middleware,
        )

    async def _send_load_failure(self, scope: Scope, send: Send) -> None:
        from perch.server.sender import send_response

        if scope["type"] != "http":
            return
        exc = ConfigurationError(self.error or "Application failed to load.")
        try:
            response = self._error_handler().core_response(exc)
        except Exception:
            logger.exception("Error handler unavailable")
            response = Response(INTERNAL_ERROR_BODY, status=500)
        await send_response(response, send)

    async def _handle_lifespan(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Startup routes warnings to the error log; shutdown disconnects the
        database if a request ever resolved it.
        """
        self._ensure_frozen()

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self._error_handler().install()
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return

            elif msg_type == "lifespan.shutdown":
                if self._container.resolved("db"):
                    await self._container.get("db").disconnect()
                if self._container.resolved("errors"):
                    self._container.get("errors").uninstall()
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the middleware pipeline: sessions first, then user middleware."""
        pipeline: list[Middleware] = []
        secret = self.config.session.secret_key or self.config.secret_key
        if secret:
            session_config = self.config.session
            if not session_config.secret_key:
                session_config = replace(session_config, secret_key=secret)
            pipeline.append(SessionMiddleware(session_config))
        else:
            logger.warning("No secret_key configured; sessions are disabled")
        pipeline.extend(self._middleware_list)
        self._middleware = tuple(pipeline)
        self._frozen = True


def _load_services_file(path: str | Path) -> dict[str, Any]:
    file = Path(path)
    if not file.is_file():
        logger.debug("Services file %s not found; using defaults", file)
        return {}
    services = load_attribute(file, "SERVICES", prefix="perch_services")
    if services is None:
        return {}
    if not isinstance(services, Mapping):
        msg = f"SERVICES in {file} must be a mapping"
        raise ConfigurationError(msg)
    return dict(services)
