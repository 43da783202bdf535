"""
FluentRoute - Test Configuration (conftest.py)
===============================================

What:  Shared pytest fixtures for the test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixtures:
    ├── server:       Fresh ServerBuilder with default configuration
    ├── make_client:  Factory for HTTPX AsyncClients bound to an ASGI app
    ├── jwt_settings: JWTSettings with a test secret
    └── jwt_manager:  JWTManager built from jwt_settings
"""

import os

import pytest
from httpx import ASGITransport, AsyncClient

# Keep test output quiet and independent of the developer's environment
os.environ["FLUENTROUTE_LOG_LEVEL"] = "WARNING"
os.environ.pop("JWT_SECRET", None)

from fluentroute.config import JWTSettings  # noqa: E402
from fluentroute.server import ServerBuilder, create_server  # noqa: E402
from fluentroute.services.jwt_manager import JWTManager  # noqa: E402


@pytest.fixture
def server() -> ServerBuilder:
    """A server with default configuration (logging on, CORS off, no timeout)."""
    return create_server()


@pytest.fixture
def make_client():
    """
    Provides a factory for HTTPX AsyncClients talking to an ASGI app in-process.

    Usage:
        async with make_client(server.get_app()) as client:
            response = await client.get("/health")

    Pass ``raise_app_exceptions=False`` when a test expects the app's
    catch-all exception handler to answer (Starlette re-raises after it).
    """

    def _make(app, **transport_options) -> AsyncClient:
        transport = ASGITransport(app=app, **transport_options)
        return AsyncClient(transport=transport, base_url="http://test")

    return _make


@pytest.fixture
def jwt_settings() -> JWTSettings:
    return JWTSettings(secret="test-secret-not-real", issuer="tests", subject="tester")


@pytest.fixture
def jwt_manager(jwt_settings) -> JWTManager:
    return JWTManager(jwt_settings)
