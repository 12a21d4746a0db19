"""Pattern router with a guard pipeline.

Routes are tried in registration order and the first one whose method
and pattern both match wins. Before its callback runs, the request
passes through three layers of guards, each called as
``guard(uri, method)``:

1. global guards registered with ``router.middleware()``
2. the group check, when the route was restricted with ``only()``
3. the route's own guards (callables or names from the middleware registry)

A guard that returns exactly ``False`` stops dispatch with an empty
response; a guard that returns a ``Response`` stops dispatch with that
response. Any other return value lets the request through.

Callbacks come in three shapes:

- a callable (``def`` or ``async def``)
- ``"Controller@method"``, looked up in the explicit controller table
- ``"path/to/script.py"``, an action script under the controllers
  directory exposing ``get()``/``post()``/... or ``handle()``
"""

import inspect
import logging
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from types import ModuleType
from typing import Any

from perch._internal.invoke import invoke
from perch._internal.loader import load_attribute, load_module
from perch._internal.types import Callback, Guard
from perch.config import RouterConfig
from perch.context import request_var
from perch.errors import ConfigurationError, CoreError
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.groups import group
from perch.routing.pattern import build_url, normalize_path
from perch.routing.route import Route, RouteMatch
from perch.server.negotiation import negotiate

logger = logging.getLogger("perch.router")

HTTP_METHODS = frozenset({"GET", "POST", "PUT", "DELETE", "PATCH"})


def load_middleware_registry(path: str | Path) -> dict[str, Guard]:
    """Read the ``MIDDLEWARE`` mapping from a registry file.

    A missing file gives an empty registry.
    """
    file = Path(path)
    if not file.is_file():
        logger.warning("Middleware registry %s not found; no named guards available", file)
        return {}
    registry = load_attribute(file, "MIDDLEWARE", prefix="perch_middleware")
    if registry is None:
        return {}
    if not isinstance(registry, Mapping):
        msg = f"MIDDLEWARE in {file} must be a mapping of names to guards"
        raise ConfigurationError(msg)
    return dict(registry)


class Router:
    """Registers routes and dispatches requests to them.

    Usage::

        router = Router(controllers={"UserController": UserController})

        router.middleware(block_bots)
        router.get("/", home, name="home")
        router.get("/user/{id}", "UserController@show", name="profile")
        router.post("/admin/{section?}", "admin.py", middleware=["audit"]).only("admins")

        response = await router.dispatch("/user/5", "GET")
        router.url("profile", {"id": 5})   # "/user/5"
    """

    __slots__ = (
        "_auth",
        "_config",
        "_container",
        "_controllers",
        "_guards",
        "_names",
        "_not_found",
        "_registry",
        "_routes",
        "_scripts",
    )

    def __init__(
        self,
        config: RouterConfig | None = None,
        *,
        controllers: Mapping[str, Any] | None = None,
        middleware_registry: Mapping[str, Guard] | None = None,
        auth: Callable[[], Any] | None = None,
        container: Any = None,
    ) -> None:
        self._config = config or RouterConfig()
        self._routes: list[Route] = []
        self._names: dict[str, Route] = {}
        self._guards: list[Guard] = []
        self._not_found: Callable[..., Any] | None = None
        self._controllers: dict[str, Any] = dict(controllers or {})
        self._auth = auth
        self._container = container
        self._scripts: dict[Path, ModuleType] = {}
        if middleware_registry is None and self._config.middleware_registry:
            middleware_registry = load_middleware_registry(self._config.middleware_registry)
        self._registry: dict[str, Guard] = dict(middleware_registry or {})

    # -- Registration --

    def add(
        self,
        method: str,
        pattern: str,
        callback: Callback,
        name: str | None = None,
        middleware: Iterable[Guard | str] | None = None,
    ) -> Route:
        """Register a route and return it (chain ``.only()`` on the result)."""
        method = method.upper()
        if method not in HTTP_METHODS:
            msg = f"Unsupported HTTP method {method!r} for route {pattern!r}"
            raise ConfigurationError(msg)
        route = Route(method, pattern, callback, name, tuple(middleware or ()))
        self._routes.append(route)
        if name:
            self._names[name] = route
        return route

    def get(self, pattern: str, callback: Callback, name: str | None = None, middleware: Iterable[Guard | str] | None = None) -> Route:
        return self.add("GET", pattern, callback, name, middleware)

    def post(self, pattern: str, callback: Callback, name: str | None = None, middleware: Iterable[Guard | str] | None = None) -> Route:
        return self.add("POST", pattern, callback, name, middleware)

    def put(self, pattern: str, callback: Callback, name: str | None = None, middleware: Iterable[Guard | str] | None = None) -> Route:
        return self.add("PUT", pattern, callback, name, middleware)

    def delete(self, pattern: str, callback: Callback, name: str | None = None, middleware: Iterable[Guard | str] | None = None) -> Route:
        return self.add("DELETE", pattern, callback, name, middleware)

    def update(self, pattern: str, callback: Callback, name: str | None = None, middleware: Iterable[Guard | str] | None = None) -> Route:
        """Register a PATCH route."""
        return self.add("PATCH", pattern, callback, name, middleware)

    patch = update

    def middleware(self, guard: Guard) -> Guard:
        """Register a global guard; usable as a decorator."""
        self._guards.append(guard)
        return guard

    def set_not_found(self, handler: Callable[..., Any]) -> Callable[..., Any]:
        """Handler used when no route matches; usable as a decorator."""
        self._not_found = handler
        return handler

    def register_controller(self, name: str, controller: Any) -> None:
        """Make *controller* (a class or an instance) reachable as ``name@method``."""
        self._controllers[name] = controller

    def load_routes(self, source: str | Path | Callable[["Router"], Any]) -> None:
        """Populate the router from a callable or a routes file.

        A routes file is a Python module defining ``register(router)``.
        A missing file is ignored.
        """
        if callable(source):
            source(self)
            return
        file = Path(source)
        if not file.is_file():
            logger.warning("Routes file %s not found; no routes loaded", file)
            return
        register = load_attribute(file, "register", prefix="perch_routes")
        if not callable(register):
            msg = f"Routes file {file} must define register(router)"
            raise ConfigurationError(msg)
        register(self)

    # -- Introspection --

    @property
    def routes(self) -> tuple[Route, ...]:
        return tuple(self._routes)

    @property
    def config(self) -> RouterConfig:
        return self._config

    def url(self, name: str, params: Mapping[str, Any] | None = None) -> str | None:
        """Reverse a named route, or ``None`` if no route has that name."""
        route = self._names.get(name)
        if route is None:
            return None
        return build_url(route.pattern, params)

    # -- Matching --

    def match(self, uri: str, method: str) -> RouteMatch | None:
        """First route matching *method* and *uri*, in registration order."""
        path = normalize_path(uri.split("?", 1)[0])
        method = method.upper()
        for route in self._routes:
            if route.method != method:
                continue
            logger.debug("Trying %s %s", route.method, route.pattern)
            params = route.matches(path)
            if params is not None:
                return RouteMatch(route=route, params=params)
        return None

    # -- Dispatch --

    async def dispatch(
        self,
        uri: str | None = None,
        method: str | None = None,
        *,
        request: Request | None = None,
    ) -> Response:
        """Run the guard pipeline and callback of the matching route.

        *uri* and *method* default to the current request.
        """
        if request is None:
            request = request_var.get(None)
        if uri is None or method is None:
            if request is None:
                msg = "dispatch() needs a uri and method outside of a request"
                raise CoreError(msg)
            uri = request.path if uri is None else uri
            method = request.method if method is None else method
        method = method.upper()
        if request is None:
            request = Request(method=method, path=uri)

        logger.debug("Dispatching %s %s against %d routes", method, uri, len(self._routes))
        found = self.match(uri, method)
        if found is None:
            return await self._handle_not_found(request)

        route = found.route
        for guard in self._pipeline(route):
            result = await invoke(guard, uri, method)
            if result is False:
                logger.debug("Guard %r halted %s %s", guard, method, uri)
                return Response(body="")
            if isinstance(result, Response):
                logger.debug("Guard %r answered %s %s with %d", guard, method, uri, result.status)
                return result

        handler = self._resolve_callback(route, method)
        request = request.with_params(found.params)
        kwargs = self._build_handler_kwargs(handler, request, found.params)
        return negotiate(await invoke(handler, **kwargs))

    def _pipeline(self, route: Route) -> list[Guard]:
        guards = list(self._guards)
        if route.groups:
            guards.append(group(route.groups, auth=self._auth))
        guards.extend(self._resolve_guard(entry) for entry in route.middleware)
        return guards

    def _resolve_guard(self, entry: Guard | str) -> Guard:
        if isinstance(entry, str):
            guard = self._registry.get(entry)
            if guard is None:
                msg = f"Unknown middleware {entry!r}; register it in the middleware registry"
                raise ConfigurationError(msg)
            return guard
        return entry

    async def _handle_not_found(self, request: Request) -> Response:
        if self._not_found is None:
            return Response("404 Not Found", status=404)
        kwargs = self._build_handler_kwargs(self._not_found, request, {})
        return negotiate(await invoke(self._not_found, **kwargs))

    # -- Callback resolution --

    def _resolve_callback(self, route: Route, method: str) -> Callable[..., Any]:
        callback = route.callback
        if isinstance(callback, str):
            if callback.endswith(".py"):
                return self._action_script(callback, method)
            if "@" in callback:
                return self._controller_method(callback)
        if callable(callback):
            return callback
        msg = "Invalid route callback provided."
        raise ConfigurationError(msg)

    def _action_script(self, script: str, method: str) -> Callable[..., Any]:
        path = Path(self._config.controllers_dir) / script
        key = path.resolve()
        module = self._scripts.get(key)
        if module is None:
            if not path.is_file():
                msg = f"Action script not found: {path}"
                raise CoreError(msg)
            module = load_module(path, prefix="perch_action")
            self._scripts[key] = module
        handler = getattr(module, method.lower(), None) or getattr(module, "handle", None)
        if not callable(handler):
            msg = f"Action script {path} defines neither {method.lower()}() nor handle()"
            raise ConfigurationError(msg)
        return handler

    def _controller_method(self, callback: str) -> Callable[..., Any]:
        name, _, method_name = callback.partition("@")
        controller = self._controllers.get(name)
        if controller is not None and isinstance(controller, type):
            controller = controller()
        handler = getattr(controller, method_name, None) if controller is not None else None
        if not callable(handler):
            msg = f"Controller or method not found: {callback}"
            raise CoreError(msg)
        return handler

    def _build_handler_kwargs(
        self,
        handler: Callable[..., Any],
        request: Request,
        params: Mapping[str, str],
    ) -> dict[str, Any]:
        """Build keyword arguments from the handler signature.

        Resolution order:
        1. ``request`` (by name or ``Request`` annotation)
        2. ``params``: the captured placeholders as a dict
        3. path placeholders by name, converted to the annotated type when possible
        4. container services by parameter name
        """
        kwargs: dict[str, Any] = {}
        try:
            sig = inspect.signature(handler, eval_str=True)
        except NameError:
            sig = inspect.signature(handler)
        for name, param in sig.parameters.items():
            if name == "request" or param.annotation in (Request, "Request"):
                kwargs[name] = request
            elif name == "params":
                kwargs[name] = dict(params)
            elif name in params:
                value = params[name]
                if isinstance(param.annotation, type) and param.annotation is not str:
                    try:
                        kwargs[name] = param.annotation(value)
                    except (ValueError, TypeError):
                        kwargs[name] = value
                else:
                    kwargs[name] = value
            elif self._container is not None and self._container.has(name):
                kwargs[name] = self._container.get(name)
        return kwargs
