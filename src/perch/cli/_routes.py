"""``perch routes``: list registered routes.

Prints METHOD, PATTERN and CALLBACK for every route in registration
order, which is also match order.
"""

import argparse
import sys

from perch.cli._resolve import resolve_app
from perch.routing.route import Route


def describe_callback(route: Route) -> str:
    callback = route.callback
    label = callback if isinstance(callback, str) else getattr(callback, "__name__", repr(callback))
    extras = []
    if route.name:
        extras.append(route.name)
    if route.groups:
        extras.append("only: " + ", ".join(route.groups))
    return f"{label} ({'; '.join(extras)})" if extras else label


def run_routes(args: argparse.Namespace) -> None:
    """List registered routes for a perch app."""
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    if not app.loaded:
        print(f"Error: application failed to load: {app.error}", file=sys.stderr)
        raise SystemExit(1)

    routes = app.router.routes
    if not routes:
        print("No routes registered.")
        return

    rows = [(route.method, route.pattern, describe_callback(route)) for route in routes]

    # Column widths
    max_method = max(max(len(r[0]) for r in rows), 6)  # "METHOD" header
    max_pattern = max(max(len(r[1]) for r in rows), 7)  # "PATTERN" header

    fmt = f"{{:<{max_method}}}  {{:<{max_pattern}}}  {{}}"
    print(fmt.format("METHOD", "PATTERN", "CALLBACK"))
    sep_len = max_method + max_pattern + 4 + max(len(r[2]) for r in rows)
    print("-" * min(sep_len, 80))
    for method, pattern, callback in rows:
        print(fmt.format(method, pattern, callback))
