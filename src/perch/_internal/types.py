"""Shared type aliases used across perch modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route callback: a callable, "Controller@method", or an action script path
Callback: TypeAlias = Callable[..., Any] | str

# Route guard: called as guard(uri, method); False or a Response halts dispatch
Guard: TypeAlias = Callable[[str, str], Any]
