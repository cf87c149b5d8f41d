"""Unit tests for JWT identity verification."""

import jwt
import pytest

from airhost_rt.config.defaults import AuthParams
from airhost_rt.errors import AuthError
from airhost_rt.realtime import Connection, ConnectionRegistry
from airhost_rt.sources.jwt_verifier import JwtIdentityVerifier

SECRET = "test-secret-0123456789abcdef0123456789"


@pytest.fixture
def jwt_verifier() -> JwtIdentityVerifier:
    return JwtIdentityVerifier(AuthParams(jwt_secret=SECRET))


class TestJwtIdentityVerifier:
    """Test token verification."""

    @pytest.mark.asyncio
    async def test_valid_token(self, jwt_verifier) -> None:
        token = jwt_verifier.issue_token("owner-7")

        identity = await jwt_verifier.verify_token(token)

        assert identity["userId"] == "owner-7"

    @pytest.mark.asyncio
    async def test_numeric_user_id_is_stringified(self, jwt_verifier) -> None:
        token = jwt.encode({"userId": 42}, SECRET, algorithm="HS256")
        assert (await jwt_verifier.verify_token(token))["userId"] == "42"

    @pytest.mark.asyncio
    async def test_expired_token(self, jwt_verifier) -> None:
        token = jwt_verifier.issue_token("owner-7", expires_in=-10)

        with pytest.raises(AuthError) as exc_info:
            await jwt_verifier.verify_token(token)
        assert exc_info.value.reason == "expired"

    @pytest.mark.asyncio
    async def test_wrong_secret(self, jwt_verifier) -> None:
        token = jwt.encode({"userId": "owner-7"}, "wrong-" + SECRET, algorithm="HS256")

        with pytest.raises(AuthError) as exc_info:
            await jwt_verifier.verify_token(token)
        assert exc_info.value.reason == "invalid"

    @pytest.mark.asyncio
    async def test_garbage_token(self, jwt_verifier) -> None:
        with pytest.raises(AuthError):
            await jwt_verifier.verify_token("not.a.jwt")

    @pytest.mark.asyncio
    async def test_missing_user_claim(self, jwt_verifier) -> None:
        token = jwt.encode({"sub": "owner-7"}, SECRET, algorithm="HS256")

        with pytest.raises(AuthError) as exc_info:
            await jwt_verifier.verify_token(token)
        assert exc_info.value.reason == "missing_user_claim"

    @pytest.mark.asyncio
    async def test_registry_reports_verifier_message(self, jwt_verifier, transport_factory) -> None:
        registry = ConnectionRegistry(jwt_verifier)
        conn = registry.admit(Connection(transport=transport_factory()))

        await registry.authenticate(conn, jwt_verifier.issue_token("owner-7", expires_in=-10))

        assert conn.transport.last == {"type": "auth_error", "message": "Authentication failed"}
