"""``perch config``: print the configuration one environment resolves to."""

import argparse
import sys
from dataclasses import asdict
from urllib.parse import urlsplit, urlunsplit

import yaml

from perch.config import load_config
from perch.errors import ConfigurationError

_SECRET_KEYS = frozenset({"secret_key", "password"})


def _mask_url(url: str) -> str:
    """Replace the password in a URL's userinfo with ``***``."""
    parts = urlsplit(url)
    if parts.password is None:
        return url
    host = parts.netloc.rpartition("@")[2]
    return urlunsplit(parts._replace(netloc=f"{parts.username}:***@{host}"))


def _redact(value: object) -> object:
    if isinstance(value, dict):
        return {k: _redact_item(k, v) for k, v in value.items()}
    if isinstance(value, tuple):
        return list(value)
    return value


def _redact_item(key: str, value: object) -> object:
    if key in _SECRET_KEYS and value:
        return "***"
    if key == "url" and isinstance(value, str):
        return _mask_url(value)
    return _redact(value)


def show_config(args: argparse.Namespace) -> None:
    """Load ``args.path`` for ``args.env`` and dump it as YAML with secrets masked."""
    try:
        config = load_config(args.path, args.env)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    print(yaml.safe_dump(_redact(asdict(config)), sort_keys=False), end="")
