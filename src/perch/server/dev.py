"""Development server.

Starts a uvicorn server with the live perch App object. Reloading needs
an import string, so ``app_path`` is required when ``reload`` is on.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from perch.app import App


def run_dev_server(
    app: App,
    host: str,
    port: int,
    *,
    reload: bool = False,
    app_path: str | None = None,
    log_level: str = "info",
) -> None:
    """Serve *app* with uvicorn.

    Args:
        app: The perch App instance.
        host: Bind host address.
        port: Bind port number.
        reload: Restart on code changes; serves ``app_path`` instead of
            the live object.
        app_path: ``"module:attribute"`` import string for reload mode.
        log_level: uvicorn log level.
    """
    import uvicorn

    if reload and app_path:
        uvicorn.run(app_path, host=host, port=port, reload=True, log_level=log_level)
    else:
        uvicorn.run(app, host=host, port=port, log_level=log_level)
