"""Route pattern compilation and URL reversal.

Patterns are paths with ``{name}`` (required) and ``{name?}`` (optional)
placeholders. Each placeholder captures one segment of
``[a-zA-Z0-9_-]+``. An optional placeholder swallows the ``/`` in front
of it, so ``/a/{x}/b/{y?}`` matches both ``/a/1/b`` and ``/a/1/b/2``.
"""

import re
from collections.abc import Mapping
from typing import Any

from perch.errors import ConfigurationError

SEGMENT = "[a-zA-Z0-9_-]+"

_PLACEHOLDER = re.compile(r"(/?)\{([A-Za-z_][A-Za-z0-9_]*)(\?)?\}")
_UNFILLED_OPTIONAL = re.compile(r"/?\{[A-Za-z_][A-Za-z0-9_]*\?\}")


def normalize_path(path: str) -> str:
    """Drop a trailing slash (except for the root) and ensure a leading one."""
    if not path.startswith("/"):
        path = "/" + path
    return path.rstrip("/") or "/"


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile *pattern* into an anchored regex with named groups.

    Raises ``ConfigurationError`` for patterns that don't compile, such
    as a placeholder name used twice.
    """
    source = normalize_path(pattern)
    parts: list[str] = []
    pos = 0
    for found in _PLACEHOLDER.finditer(source):
        parts.append(re.escape(source[pos : found.start()]))
        slash, name, optional = found.groups()
        capture = f"{re.escape(slash)}(?P<{name}>{SEGMENT})"
        parts.append(f"(?:{capture})?" if optional else capture)
        pos = found.end()
    parts.append(re.escape(source[pos:]))
    try:
        return re.compile("^" + "".join(parts) + "$")
    except re.error as exc:
        msg = f"Invalid route pattern {pattern!r}: {exc}"
        raise ConfigurationError(msg) from exc


def build_url(pattern: str, params: Mapping[str, Any] | None = None) -> str:
    """Substitute *params* into *pattern*.

    Values are inserted with ``str()`` and no escaping. Optional
    placeholders left unfilled are removed; required ones stay as
    literal ``{name}`` text.
    """
    url = pattern
    for key, value in (params or {}).items():
        text = str(value)
        url = re.sub(r"\{" + re.escape(str(key)) + r"\??\}", lambda _m: text, url)
    return _UNFILLED_OPTIONAL.sub("", url) or "/"
