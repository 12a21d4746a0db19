"""Test utilities for perch applications::

    from perch.testing import TestClient
"""

from perch.testing.client import DEFAULT_USER_AGENT, TestClient

__all__ = ["DEFAULT_USER_AGENT", "TestClient"]
