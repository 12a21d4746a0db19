"""Error logging and error responses.

``ApiError`` becomes a JSON body whose status is the error code;
anything else becomes a generic HTML 500, optionally with the trace
when ``ErrorsConfig.display`` is on. Every handled error is written to
the error log as ``YYYY-mm-dd HH:MM:SS [kind] message``.

Runtime warnings are routed here too (see ``install()``): they are
logged and never interrupt the request.
"""

import hashlib
import html
import logging
import traceback
import warnings
from pathlib import Path
from typing import Any, TextIO

from perch.config import ErrorsConfig
from perch.errors import ApiError
from perch.http.response import Response

logger = logging.getLogger("perch.errors")

LOG_FORMAT = "%(asctime)s [%(kind)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INTERNAL_ERROR_BODY = "<h1>Internal Server Error</h1>"


class _DefaultKind(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "kind"):
            record.kind = "core"
        return True


def _file_logger(log_path: Path) -> logging.Logger:
    """A child of ``perch.errors`` writing to *log_path* (one handler per file)."""
    key = hashlib.sha1(str(log_path.resolve()).encode()).hexdigest()[:12]
    file_logger = logger.getChild(key)
    if not file_logger.handlers:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8", delay=True)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        handler.addFilter(_DefaultKind())
        file_logger.addHandler(handler)
        file_logger.setLevel(logging.INFO)
    return file_logger


class ErrorHandler:
    __slots__ = ("_config", "_last_error", "_logger", "_previous_showwarning")

    def __init__(self, config: ErrorsConfig | None = None) -> None:
        self._config = config or ErrorsConfig()
        self._logger = _file_logger(Path(self._config.log_path))
        self._last_error: str | None = None
        self._previous_showwarning: Any = None

    @property
    def last_error(self) -> str | None:
        """The last message handled by this instance."""
        return self._last_error

    @property
    def log_path(self) -> Path:
        return Path(self._config.log_path)

    def log(self, message: str, kind: str = "core") -> None:
        self._logger.error(message, extra={"kind": kind})

    # -- Warnings --

    def handle_warning(
        self,
        message: Warning | str,
        category: type[Warning],
        filename: str,
        lineno: int,
        file: TextIO | None = None,
        line: str | None = None,
    ) -> bool:
        """Log a runtime warning; signature matches ``warnings.showwarning``."""
        text = f"[RUNTIME WARNING] [{category.__name__}] {message} in {filename} on line {lineno}"
        self.log(text, "core")
        self._last_error = text
        return True

    def install(self) -> None:
        """Route ``warnings`` output through ``handle_warning``."""
        if self._previous_showwarning is None:
            self._previous_showwarning = warnings.showwarning
        warnings.showwarning = self.handle_warning

    def uninstall(self) -> None:
        if self._previous_showwarning is not None:
            warnings.showwarning = self._previous_showwarning
            self._previous_showwarning = None

    # -- Exceptions --

    def handle_exception(self, exc: BaseException) -> Response:
        """Log *exc* and build the matching API or core response."""
        kind = "api" if isinstance(exc, ApiError) else "core"
        trace = "".join(traceback.format_exception(exc))
        message = f"[{kind.upper()} EXCEPTION] {exc}\n{trace}"
        self.log(message, kind)
        self._last_error = message
        if isinstance(exc, ApiError):
            return self.api_response(exc)
        return self.core_response(exc, trace)

    def api_response(self, exc: ApiError) -> Response:
        return Response.json(
            {"error": True, "message": exc.message, "code": exc.code},
            status=exc.status,
        )

    def core_response(self, exc: BaseException, trace: str | None = None) -> Response:
        body = INTERNAL_ERROR_BODY
        if self._config.display:
            detail = trace if trace is not None else "".join(traceback.format_exception(exc))
            body += (
                '<pre style="color:#a00;background:#fff;padding:1em;border:1px solid #a00;">'
                f"{html.escape(str(exc))}\n{html.escape(detail)}</pre>"
            )
        return Response(body, status=500)
