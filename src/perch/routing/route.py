"""Route and RouteMatch dataclasses."""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field

from perch._internal.types import Callback, Guard
from perch.routing.pattern import compile_pattern


@dataclass(slots=True, eq=False)
class Route:
    """A registered route.

    Everything is fixed at registration except ``groups``, which
    ``only()`` can extend for chaining::

        router.get("/admin", admin_home, name="admin").only(["admins"])
    """

    method: str
    pattern: str
    callback: Callback
    name: str | None = None
    middleware: tuple[Guard | str, ...] = ()
    groups: list[str] = field(default_factory=list)
    regex: re.Pattern[str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        self.regex = compile_pattern(self.pattern)

    def only(self, groups: str | list[str] | tuple[str, ...]) -> "Route":
        """Restrict the route to *groups* (lower-cased, duplicates dropped)."""
        names = [groups] if isinstance(groups, str) else list(groups)
        for name in names:
            lowered = name.lower()
            if lowered not in self.groups:
                self.groups.append(lowered)
        return self

    def matches(self, path: str) -> dict[str, str] | None:
        """Captured placeholders if *path* fits the pattern, else ``None``."""
        found = self.regex.fullmatch(path)
        if found is None:
            return None
        return {k: v for k, v in found.groupdict().items() if v is not None}


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    params: Mapping[str, str]
