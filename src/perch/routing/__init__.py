"""Routing: pattern routes matched in registration order.

Patterns are compiled to anchored regexes at registration; dispatch
walks the list and the first matching route wins.
"""

from perch.routing.pattern import build_url, compile_pattern, normalize_path
from perch.routing.route import Route, RouteMatch
from perch.routing.router import Router

__all__ = [
    "Route",
    "RouteMatch",
    "Router",
    "build_url",
    "compile_pattern",
    "normalize_path",
]
