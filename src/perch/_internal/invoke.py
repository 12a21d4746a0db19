"""Invoke helpers: call sync or async callables uniformly.

Route callbacks, guards, verifiers and not-found handlers can all be
``def`` or ``async def``. Any code that calls one goes through here so
the sync/async check lives in exactly one place::

    result = await invoke(handler, *args, **kwargs)
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *handler* and await the result if it's awaitable."""
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
