"""Tests for perch.routing.route."""

from perch.routing.route import Route, RouteMatch


def _handler() -> str:
    return "ok"


class TestRoute:
    def test_method_is_uppercased(self) -> None:
        route = Route("get", "/", _handler)
        assert route.method == "GET"

    def test_defaults(self) -> None:
        route = Route("GET", "/", _handler)
        assert route.name is None
        assert route.middleware == ()
        assert route.groups == []

    def test_only_lowercases_and_dedupes(self) -> None:
        route = Route("GET", "/admin", _handler)
        route.only(["Admins", "editors", "admins"])
        assert route.groups == ["admins", "editors"]

    def test_only_accepts_string(self) -> None:
        route = Route("GET", "/admin", _handler)
        route.only("Admins")
        assert route.groups == ["admins"]

    def test_only_chains(self) -> None:
        route = Route("GET", "/admin", _handler)
        assert route.only("admins") is route

    def test_only_accumulates(self) -> None:
        route = Route("GET", "/admin", _handler).only("admins").only("editors")
        assert route.groups == ["admins", "editors"]

    def test_matches_drops_unfilled_optional(self) -> None:
        route = Route("GET", "/a/{x}/b/{y?}", _handler)
        assert route.matches("/a/1/b") == {"x": "1"}
        assert route.matches("/a/1/b/2") == {"x": "1", "y": "2"}

    def test_matches_none_on_miss(self) -> None:
        route = Route("GET", "/a/{x}", _handler)
        assert route.matches("/b/1") is None


class TestRouteMatch:
    def test_holds_route_and_params(self) -> None:
        route = Route("GET", "/user/{id}", _handler)
        match = RouteMatch(route=route, params={"id": "5"})
        assert match.route is route
        assert match.params == {"id": "5"}
