"""Shared fixtures for perch tests."""

import pytest

from perch.config import AppConfig, ErrorsConfig, FilesConfig
from perch.middleware.sessions import Session
from perch.services.auth import Authentication
from perch.services.session import SessionManager


@pytest.fixture
def errors_config(tmp_path) -> ErrorsConfig:
    """Error log inside the test's tmp dir instead of ./logs."""
    return ErrorsConfig(log_path=str(tmp_path / "logs" / "error.log"))


@pytest.fixture
def app_config(tmp_path, errors_config) -> AppConfig:
    return AppConfig(
        secret_key="test-secret",
        errors=errors_config,
        files=FilesConfig(root=str(tmp_path)),
    )


@pytest.fixture
def session() -> SessionManager:
    """A session manager over a private store (no request needed)."""
    return SessionManager(Session())


@pytest.fixture
def auth(session) -> Authentication:
    def verify(username: str, password: str) -> dict | None:
        if username == "admin" and password == "password":
            return {"id": 1, "username": "admin", "user_group": "Admins"}
        if username == "bob" and password == "hunter2":
            return {"id": 2, "username": "bob"}
        return None

    return Authentication(session=session, verify=verify)
