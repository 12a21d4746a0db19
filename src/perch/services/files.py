"""Filesystem helpers and file serving.

Relative paths resolve against ``FilesConfig.root``. Operations on a
missing target return ``False`` (for yes/no operations) or ``None``
(for value-returning ones) instead of raising.
"""

from __future__ import annotations

import logging
import mimetypes
import re
import shutil
from pathlib import Path

from perch.config import FilesConfig
from perch.errors import ApiError
from perch.http.response import Response

logger = logging.getLogger("perch.files")

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class FileManager:
    __slots__ = ("_config", "_root")

    def __init__(self, config: FilesConfig | None = None) -> None:
        self._config = config or FilesConfig()
        self._root = Path(self._config.root)

    def path(self, path: str | Path) -> Path:
        """Resolve *path* against the configured root."""
        candidate = Path(path)
        return candidate if candidate.is_absolute() else self._root / candidate

    # -- Queries --

    def read(self, path: str | Path, *, binary: bool = False) -> str | bytes | None:
        target = self.path(path)
        if not target.is_file():
            return None
        return target.read_bytes() if binary else target.read_text(encoding="utf-8")

    def exists(self, path: str | Path) -> bool:
        return self.path(path).exists()

    def is_dir(self, path: str | Path) -> bool:
        return self.path(path).is_dir()

    def list(self, directory: str | Path) -> list[str] | None:
        """Sorted entry names in *directory*, or ``None`` if it isn't one."""
        target = self.path(directory)
        if not target.is_dir():
            return None
        return sorted(entry.name for entry in target.iterdir())

    def size(self, path: str | Path) -> int | None:
        target = self.path(path)
        return target.stat().st_size if target.is_file() else None

    def modified(self, path: str | Path) -> float | None:
        """Modification time as a Unix timestamp."""
        target = self.path(path)
        return target.stat().st_mtime if target.is_file() else None

    # -- Mutations --

    def write(self, path: str | Path, content: str | bytes) -> bool:
        """Replace the file's content; ``False`` if its directory doesn't exist."""
        target = self.path(path)
        if not target.parent.is_dir():
            return False
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content, encoding="utf-8")
        return True

    def append(self, path: str | Path, content: str | bytes) -> bool:
        target = self.path(path)
        if not target.parent.is_dir():
            return False
        data = content.encode("utf-8") if isinstance(content, str) else content
        with target.open("ab") as fh:
            fh.write(data)
        return True

    def delete(self, path: str | Path) -> bool:
        target = self.path(path)
        if not target.is_file():
            return False
        target.unlink()
        return True

    def make_dir(self, path: str | Path, *, parents: bool = True) -> bool:
        self.path(path).mkdir(parents=parents, exist_ok=True)
        return True

    def delete_dir(self, path: str | Path) -> bool:
        """Remove *path* and everything under it."""
        target = self.path(path)
        if not target.is_dir():
            return False
        shutil.rmtree(target)
        return True

    def copy(self, source: str | Path, dest: str | Path) -> bool:
        src = self.path(source)
        target = self.path(dest)
        if not src.is_file() or not target.parent.is_dir():
            return False
        shutil.copy2(src, target)
        return True

    def move(self, source: str | Path, dest: str | Path) -> bool:
        src = self.path(source)
        target = self.path(dest)
        if not src.exists() or not target.parent.is_dir():
            return False
        shutil.move(src, target)
        return True

    # -- Serving --

    def serve(self, path: str | Path, *, as_download: bool = False) -> Response:
        """Build a response carrying the file, or a 404 if it doesn't exist."""
        target = self.path(path)
        if not target.is_file():
            return Response("File not found.", status=404)

        content_type, _ = mimetypes.guess_type(str(target))
        body = target.read_bytes()
        response = Response(
            body=body,
            content_type=content_type or "application/octet-stream",
        ).with_header("Content-Length", str(len(body)))
        if as_download:
            response = response.with_header(
                "Content-Disposition", f'attachment; filename="{target.name}"'
            )
        return response

    # -- Uploads --

    def validate_upload(self, filename: str, size: int) -> None:
        """Check an upload against the size and extension limits.

        Raises ``ApiError`` with code 413 (too large) or 415 (type not allowed).
        """
        if size > self._config.max_size:
            msg = f"File exceeds the maximum size of {self._config.max_size} bytes."
            raise ApiError(msg, 413)
        extension = Path(filename).suffix.lower().lstrip(".")
        allowed = {t.lower().lstrip(".") for t in self._config.allowed_types}
        if allowed and extension not in allowed:
            msg = f"File type '{extension or '(none)'}' is not allowed."
            raise ApiError(msg, 415)

    def store_upload(self, filename: str, data: bytes) -> Path:
        """Validate and write an upload into the upload directory.

        The stored name is the sanitised basename of *filename*.
        """
        self.validate_upload(filename, len(data))
        safe_name = _UNSAFE_CHARS.sub("_", Path(filename).name).lstrip(".") or "upload"
        directory = self.path(self._config.upload_dir)
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / safe_name
        target.write_bytes(data)
        logger.info("Stored upload %s (%d bytes)", target, len(data))
        return target
