"""Application configuration.

Every section is a frozen dataclass: immutable after creation,
IDE-autocompletable, no string-key dict lookups at runtime.

Configs can be built in code::

    config = AppConfig(debug=True, session=SessionConfig(secret_key="s3cr3t"))

or loaded from a YAML file keyed by environment name::

    environment: development
    development:
      secret_key: change-me
      database:
        driver: sqlite
        path: app.db
      credentials:
        user: app
        pass: secret
      files:
        max_size: 5242880
        allowed_types: [jpg, png, pdf]

Unknown keys are rejected. ``database.dbname`` and ``session.lifetime``
are read as ``database.name`` and ``session.max_age``. Settings with no
counterpart here (``database.charset``, ``database.collation``,
``session.save_path``, ``auth.password_algo``, ``auth.user_table``)
must be removed: sessions live in signed cookies and password checking
belongs to the ``auth_custom`` verifier.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any
from urllib.parse import quote

import yaml

from perch.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Database connection settings.

    Either give a full ``url`` or let one be assembled from the parts.
    """

    driver: str = "sqlite"
    path: str = ":memory:"
    host: str = "localhost"
    port: int | None = None
    name: str = ""
    user: str = ""
    password: str = ""
    url: str | None = None
    pool_size: int = 5
    echo: bool = False

    @property
    def dsn(self) -> str:
        if self.url:
            return self.url
        if self.driver == "sqlite":
            return f"sqlite:///{self.path}"
        auth = ""
        if self.user:
            auth = quote(self.user, safe="")
            if self.password:
                auth += ":" + quote(self.password, safe="")
            auth += "@"
        port = f":{self.port}" if self.port else ""
        return f"{self.driver}://{auth}{self.host}{port}/{self.name}"


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Signed-cookie session settings.

    ``secret_key`` may be left empty here; the App falls back to
    ``AppConfig.secret_key``.
    """

    secret_key: str = ""
    cookie_name: str = "perch_session"
    max_age: int = 3600
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str = "lax"
    no_cache: bool = True


@dataclass(frozen=True, slots=True)
class AuthConfig:
    session_key: str = "user"
    user_group_field: str = "user_group"
    default_group: str = "users"


@dataclass(frozen=True, slots=True)
class FilesConfig:
    root: str = "."
    upload_dir: str = "uploads"
    max_size: int = 5 * 1024 * 1024
    allowed_types: tuple[str, ...] = ("jpg", "png", "pdf")


@dataclass(frozen=True, slots=True)
class ErrorsConfig:
    log_path: str = "logs/error.log"
    display: bool = False


@dataclass(frozen=True, slots=True)
class RouterConfig:
    controllers_dir: str = "controllers"
    routes_file: str | None = None
    middleware_registry: str | None = None


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation."""

    environment: str = "development"
    debug: bool = False
    version: str = "0.0.0"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Security
    secret_key: str = ""
    user_agent_min_length: int = 10

    # Service override file (module defining SERVICES)
    services_file: str | None = None

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    files: FilesConfig = field(default_factory=FilesConfig)
    errors: ErrorsConfig = field(default_factory=ErrorsConfig)
    router: RouterConfig = field(default_factory=RouterConfig)


_SECTIONS: dict[str, type] = {
    "database": DatabaseConfig,
    "session": SessionConfig,
    "auth": AuthConfig,
    "files": FilesConfig,
    "errors": ErrorsConfig,
    "router": RouterConfig,
}

# Older key names still accepted, mapped to the current field.
_ALIASES: dict[str, dict[str, str]] = {
    "database": {"dbname": "name"},
    "session": {"lifetime": "max_age"},
}


def _build[T](cls: type[T], values: dict[str, Any], section: str) -> T:
    values = _resolve_aliases(values, section)
    known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
    unknown = sorted(set(values) - known)
    if unknown:
        msg = f"Unknown key(s) in config section {section!r}: {', '.join(unknown)}"
        raise ConfigurationError(msg)
    converted = {k: tuple(v) if isinstance(v, list) else v for k, v in values.items()}
    return cls(**converted)


def _resolve_aliases(values: dict[str, Any], section: str) -> dict[str, Any]:
    aliases = _ALIASES.get(section)
    if not aliases:
        return values
    resolved = dict(values)
    for old, new in aliases.items():
        if old not in resolved:
            continue
        if new in resolved:
            msg = f"Config section {section!r} sets both {old!r} and {new!r}"
            raise ConfigurationError(msg)
        resolved[new] = resolved.pop(old)
    return resolved


def config_from_mapping(data: dict[str, Any], *, environment: str = "development") -> AppConfig:
    """Build an ``AppConfig`` from one environment's mapping.

    A ``credentials`` section (``user``/``pass``) is folded into the
    database settings.
    """
    values = dict(data)
    credentials = values.pop("credentials", None) or {}
    database = dict(values.get("database") or {})
    if credentials:
        database.setdefault("user", credentials.get("user", ""))
        database.setdefault("password", credentials.get("pass", credentials.get("password", "")))
        values["database"] = database

    for key, cls in _SECTIONS.items():
        section = values.get(key)
        if section is None:
            continue
        if not isinstance(section, dict):
            msg = f"Config section {key!r} must be a mapping"
            raise ConfigurationError(msg)
        values[key] = _build(cls, section, key)

    values["environment"] = environment
    return _build(AppConfig, values, "<root>")


def load_config(path: str | Path, environment: str | None = None) -> AppConfig:
    """Load the active environment from a YAML config file.

    The environment is chosen by *environment*, else the file's top-level
    ``environment`` key, else ``"development"``.

    Raises ``ConfigurationError`` for a missing file, a malformed
    document, an unknown environment or unknown keys.
    """
    file = Path(path)
    if not file.is_file():
        msg = f"Config file not found: {file}"
        raise ConfigurationError(msg)

    with file.open(encoding="utf-8") as fh:
        try:
            document = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            msg = f"Invalid YAML in {file}: {exc}"
            raise ConfigurationError(msg) from exc

    if not isinstance(document, dict):
        msg = f"Config file {file} must contain a mapping"
        raise ConfigurationError(msg)

    env = environment or document.get("environment") or "development"
    section = document.get(env)
    if not isinstance(section, dict):
        msg = f"Environment {env!r} not found in {file}"
        raise ConfigurationError(msg)
    return config_from_mapping(section, environment=env)
