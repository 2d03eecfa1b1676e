"""
JWT token issuer adapter - Implements TokenIssuer protocol via PyJWT.

The token is a signed claims bundle: username, roles and the device the
flow completed on. decode() is used by the HTTP layer to rebuild the
caller's request context.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from src.domain.models import TokenClaims


class JwtTokenIssuer:
    """
    Implements TokenIssuer protocol via PyJWT.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        secret: str,
        issuer: str,
        ttl_minutes: int = 60,
        algorithm: str = "HS256",
    ) -> None:
        self._secret = secret
        self._issuer = issuer
        self._ttl = timedelta(minutes=ttl_minutes)
        self._algorithm = algorithm

    def issue(self, claims: TokenClaims) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": claims.username,
            "username": claims.username,
            "roles": list(claims.roles),
            "device_id": claims.device_id,
            "iss": self._issuer,
            "iat": now,
            "exp": now + self._ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> dict[str, Any]:
        """
        Verify signature, issuer and expiry.

        Raises:
            jwt.InvalidTokenError: the token is malformed, expired or forged
        """
        return jwt.decode(
            token,
            self._secret,
            algorithms=[self._algorithm],
            issuer=self._issuer,
            options={"require": ["sub", "exp", "iss"]},
        )
