"""Service container: name -> provider, resolved lazily to singletons.

Entries are tagged so resolution never has to guess at runtime::

    container = Container().register({
        "db": lambda c: Database(c.get("config").database),   # factory
        "files": FileManager,                                  # class
        "settings": {"debug": True},                           # instance
        "auth_custom": Provider.instance(verify_user),         # callable kept as-is
    })

    container.get("db") is container.get("db")  # True
"""

import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from perch.errors import ConfigurationError

logger = logging.getLogger("perch.container")

type ProviderKind = Literal["factory", "class", "instance"]


@dataclass(frozen=True, slots=True)
class Provider:
    """A registry entry: what to resolve and how."""

    kind: ProviderKind
    value: Any

    @classmethod
    def factory(cls, func: Callable[["Container"], Any]) -> "Provider":
        return cls("factory", func)

    @classmethod
    def of_class(cls, klass: type) -> "Provider":
        return cls("class", klass)

    @classmethod
    def instance(cls, obj: Any) -> "Provider":
        """Register *obj* as the service itself, even if it is callable."""
        return cls("instance", obj)

    @classmethod
    def wrap(cls, value: Any) -> "Provider":
        """Tag a raw registry value: classes, then callables, then anything else."""
        if isinstance(value, Provider):
            return value
        if isinstance(value, type):
            return cls.of_class(value)
        if callable(value):
            return cls.factory(value)
        return cls.instance(value)


class Container:
    """Lazy singleton service registry.

    Each entry resolves at most once per container; the instance is
    cached until ``remove()`` evicts the entry.
    """

    __slots__ = ("_instances", "_providers")

    def __init__(self, services: Mapping[str, Any] | None = None) -> None:
        self._providers: dict[str, Provider] = {}
        self._instances: dict[str, Any] = {}
        if services:
            self.register(services)

    def register(self, services: Mapping[str, Any]) -> "Container":
        """Merge *services* into the registry, replacing same-named entries.

        Replacing an entry drops any instance already resolved for it.
        """
        for name, value in services.items():
            self._providers[name] = Provider.wrap(value)
            self._instances.pop(name, None)
        return self

    def get(self, name: str) -> Any:
        """Resolve *name*, caching the result.

        Raises ``ConfigurationError`` if nothing is registered under *name*.
        """
        if name in self._instances:
            return self._instances[name]
        provider = self._providers.get(name)
        if provider is None:
            msg = f"Service '{name}' not found in container."
            raise ConfigurationError(msg)

        match provider.kind:
            case "factory":
                instance = provider.value(self)
            case "class":
                instance = provider.value()
            case _:
                instance = provider.value

        logger.debug("Resolved service %r (%s)", name, provider.kind)
        self._instances[name] = instance
        return instance

    def has(self, name: str) -> bool:
        return name in self._providers

    def resolved(self, name: str) -> bool:
        """True once *name* has been instantiated."""
        return name in self._instances

    def remove(self, name: str) -> None:
        """Drop the entry and any cached instance. Missing names are ignored."""
        self._providers.pop(name, None)
        self._instances.pop(name, None)

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def __iter__(self) -> Iterator[str]:
        return iter(self._providers)
