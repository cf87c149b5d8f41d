"""JWT-based identity verification for realtime clients."""

import time
from typing import Any, Optional

import jwt
import structlog

from ..config.defaults import AuthParams
from ..errors import AuthError

logger = structlog.get_logger(__name__)


class JwtIdentityVerifier:
    """Verifies HS256 tokens issued by the API's login endpoint."""

    def __init__(self, params: Optional[AuthParams] = None):
        self.params = params or AuthParams()
        self.logger = logger

    async def verify_token(self, token: str) -> dict[str, Any]:
        if not token:
            raise AuthError("Token required", reason="missing")

        try:
            claims = jwt.decode(
                token,
                self.params.jwt_secret,
                algorithms=list(self.params.jwt_algorithms),
            )
        except jwt.ExpiredSignatureError:
            raise AuthError("Authentication failed", reason="expired")
        except jwt.InvalidTokenError as e:
            self.logger.debug("Token rejected", error=str(e))
            raise AuthError("Authentication failed", reason="invalid")

        user_id = claims.get(self.params.user_id_claim)
        if not user_id:
            raise AuthError("Authentication failed", reason="missing_user_claim")

        return {"userId": str(user_id), "claims": claims}

    def issue_token(self, user_id: str, expires_in: int = 86400) -> str:
        """Issue a token for local tooling and tests; production tokens come from the API."""
        now = int(time.time())
        payload = {
            self.params.user_id_claim: user_id,
            "iat": now,
            "exp": now + expires_in,
        }
        return jwt.encode(payload, self.params.jwt_secret, algorithm=self.params.jwt_algorithms[0])
