"""
FluentRoute - JWT Manager Tests
================================

What:  Tests for token issuing and verification.
How:   Real python-jose signing with a throwaway secret; no mocks needed.

What we test:
    ✅ Issue → verify round trip, standard claims and overrides
    ✅ Bearer prefix handling
    ✅ Wrong secret, tampered and expired tokens → 401 Failure
    ✅ Missing secret is a configuration error
    ✅ authenticate(verifier=...) on a route
"""

import time

import pytest
from jose import jwt

from fluentroute.config import JWTSettings
from fluentroute.exceptions import ConfigurationError
from fluentroute.routing import Router
from fluentroute.services.jwt_manager import JWTManager


class TestIssue:
    @pytest.mark.asyncio
    async def test_issue_returns_token(self, jwt_manager):
        result = await jwt_manager.issue({"role": "admin"})

        assert result.success is True
        assert result.data.count(".") == 2

    @pytest.mark.asyncio
    async def test_standard_claims(self, jwt_manager):
        before = int(time.time())
        token = (await jwt_manager.issue()).data
        claims = jwt.get_unverified_claims(token)

        assert claims["iss"] == "tests"
        assert claims["sub"] == "tester"
        assert claims["iat"] >= before
        assert claims["exp"] == claims["iat"] + 3600
        assert jwt.get_unverified_header(token)["alg"] == "HS256"

    @pytest.mark.asyncio
    async def test_caller_claims_override_defaults(self, jwt_manager):
        token = (await jwt_manager.issue({"sub": "user-42"})).data
        assert jwt.get_unverified_claims(token)["sub"] == "user-42"

    @pytest.mark.asyncio
    async def test_custom_algorithm(self):
        manager = JWTManager(JWTSettings(secret="s3cret", algorithm="hs512"))
        token = (await manager.issue()).data

        assert jwt.get_unverified_header(token)["alg"] == "HS512"
        assert (await manager.verify(token)).success is True


class TestVerify:
    @pytest.mark.asyncio
    async def test_round_trip(self, jwt_manager):
        token = (await jwt_manager.issue({"role": "admin"})).data
        result = await jwt_manager.verify(token)

        assert result.success is True
        assert result.data["role"] == "admin"
        assert result.data["iss"] == "tests"

    @pytest.mark.asyncio
    async def test_round_trip_with_numeric_subject(self, jwt_manager):
        token = (await jwt_manager.issue({"sub": 42, "role": "admin"})).data
        result = await jwt_manager.verify(token)

        assert result.success is True
        assert result.data["sub"] == 42
        assert result.data["role"] == "admin"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, 12345, b"bytes"])
    async def test_non_string_token_is_a_failure(self, jwt_manager, token):
        result = await jwt_manager.verify(token)

        assert result.success is False
        assert result.code == 401
        assert result.message

    @pytest.mark.asyncio
    async def test_bearer_prefix_is_stripped(self, jwt_manager):
        token = (await jwt_manager.issue()).data
        result = await jwt_manager.verify(f"Bearer {token}")

        assert result.success is True

    @pytest.mark.asyncio
    async def test_wrong_secret(self, jwt_manager):
        other = JWTManager(JWTSettings(secret="a-different-secret"))
        token = (await other.issue()).data
        result = await jwt_manager.verify(token)

        assert result.success is False
        assert result.code == 401
        assert result.message

    @pytest.mark.asyncio
    async def test_tampered_token(self, jwt_manager):
        token = (await jwt_manager.issue()).data
        header, payload, signature = token.split(".")
        tampered = ".".join([header, payload, signature[::-1]])

        result = await jwt_manager.verify(tampered)
        assert result.success is False
        assert result.code == 401

    @pytest.mark.asyncio
    async def test_expired_token(self, jwt_manager):
        token = (await jwt_manager.issue({"exp": int(time.time()) - 60})).data
        result = await jwt_manager.verify(token)

        assert result.success is False
        assert result.code == 401
        assert result.error_type == "ExpiredSignatureError"

    @pytest.mark.asyncio
    async def test_garbage(self, jwt_manager):
        result = await jwt_manager.verify("not-a-token")

        assert result.success is False
        assert result.code == 401


class TestConfiguration:
    def test_missing_secret(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET", raising=False)
        with pytest.raises(ConfigurationError):
            JWTManager(JWTSettings())

    def test_from_settings_reads_environment(self, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "from-env")
        monkeypatch.setenv("JWT_ISSUER", "env-issuer")
        manager = JWTManager.from_settings()

        assert manager.algorithm == "HS256"
        assert manager._settings.issuer == "env-issuer"


class TestAuthenticateWithVerifier:
    @pytest.mark.asyncio
    async def test_verified_claims_reach_handler(self, server, make_client, jwt_manager):
        server.add_route(
            Router.get("/me")
            .authenticate(strategy="jwt", verifier=jwt_manager)
            .handler(lambda ctx: {"sub": ctx.request.state.claims["sub"]})
        )
        token = (await jwt_manager.issue({"sub": "user-7"})).data
        async with make_client(server.get_app()) as client:
            response = await client.get("/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json() == {"sub": "user-7"}

    @pytest.mark.asyncio
    async def test_invalid_token_is_401(self, server, make_client, jwt_manager):
        server.add_route(
            Router.get("/me").authenticate(verifier=jwt_manager).handler(lambda ctx: {})
        )
        async with make_client(server.get_app()) as client:
            response = await client.get("/me", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401
        assert response.json()["error"]
