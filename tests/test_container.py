"""Tests for perch.services.container."""

import pytest

from perch.errors import ConfigurationError
from perch.services.container import Container, Provider


class Mailer:
    instances = 0

    def __init__(self) -> None:
        Mailer.instances += 1


class TestProvider:
    def test_wrap_class(self) -> None:
        assert Provider.wrap(Mailer).kind == "class"

    def test_wrap_callable(self) -> None:
        assert Provider.wrap(lambda c: 1).kind == "factory"

    def test_wrap_value(self) -> None:
        assert Provider.wrap({"debug": True}).kind == "instance"

    def test_wrap_keeps_provider(self) -> None:
        provider = Provider.instance(print)
        assert Provider.wrap(provider) is provider


class TestContainerResolution:
    def test_singleton(self) -> None:
        container = Container({"x": lambda c: object()})
        assert container.get("x") is container.get("x")

    def test_factory_receives_container(self) -> None:
        container = Container({"name": "perch", "greeting": lambda c: f"hi {c.get('name')}"})
        assert container.get("greeting") == "hi perch"

    def test_class_is_instantiated_once(self) -> None:
        Mailer.instances = 0
        container = Container({"mailer": Mailer})
        first = container.get("mailer")
        second = container.get("mailer")
        assert isinstance(first, Mailer)
        assert first is second
        assert Mailer.instances == 1

    def test_instance_returned_as_is(self) -> None:
        settings = {"debug": True}
        container = Container({"settings": settings})
        assert container.get("settings") is settings

    def test_provider_instance_keeps_callable(self) -> None:
        def verify(username: str, password: str) -> None:
            return None

        container = Container({"auth_custom": Provider.instance(verify)})
        assert container.get("auth_custom") is verify

    def test_missing_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="Service 'nope' not found in container."):
            Container().get("nope")


class TestContainerRegistry:
    def test_register_chains(self) -> None:
        container = Container()
        assert container.register({"a": 1}) is container

    def test_register_merges(self) -> None:
        container = Container({"a": 1})
        container.register({"b": 2})
        assert container.get("a") == 1
        assert container.get("b") == 2

    def test_register_replaces_and_evicts(self) -> None:
        container = Container({"a": lambda c: "old"})
        assert container.get("a") == "old"
        container.register({"a": lambda c: "new"})
        assert container.get("a") == "new"

    def test_has(self) -> None:
        container = Container({"a": 1})
        assert container.has("a")
        assert not container.has("b")
        assert "a" in container

    def test_resolved(self) -> None:
        container = Container({"a": lambda c: 1})
        assert not container.resolved("a")
        container.get("a")
        assert container.resolved("a")

    def test_remove(self) -> None:
        container = Container({"a": 1})
        container.get("a")
        container.remove("a")
        assert not container.has("a")
        assert not container.resolved("a")
        container.remove("a")

    def test_iter_names(self) -> None:
        container = Container({"a": 1, "b": 2})
        assert list(container) == ["a", "b"]
