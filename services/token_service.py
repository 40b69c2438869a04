"""
Session tokens — signed JWTs asserting a user id.

Access tokens carry iss/aud/sub/iat/exp; refresh tokens additionally carry
``type: "refresh"`` and are exchanged for a fresh pair on every refresh.
RS256 is used when a key pair is configured, HS256 with JWT_SECRET
otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import jwt

from config import JWTSettings
from errors import AuthenticationError
from shared.datetime_utils import utcnow

TOKEN_TYPE_REFRESH = "refresh"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int


class TokenService:
    def __init__(self, settings: JWTSettings) -> None:
        self._settings = settings
        if settings.use_rs256:
            # Keys supplied via env often carry literal \n sequences
            self._signing_key: Any = settings.jwt_private_key.replace("\\n", "\n").encode("utf-8")
            self._verifying_key: Any = settings.jwt_public_key.replace("\\n", "\n").encode("utf-8")
            self._algorithm = "RS256"
        else:
            if not settings.jwt_secret:
                raise RuntimeError(
                    "JWT_SECRET must be set when RS256 keys are not provided"
                )
            self._signing_key = self._verifying_key = settings.jwt_secret
            self._algorithm = "HS256"

    def _encode(self, user_id: str, ttl_seconds: int, **extra: Any) -> str:
        now = utcnow()
        claims = {
            "iss": self._settings.jwt_issuer,
            "aud": self._settings.jwt_audience,
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
            **extra,
        }
        return jwt.encode(claims, self._signing_key, algorithm=self._algorithm)

    def _decode(self, token: str) -> dict:
        try:
            return jwt.decode(
                token,
                self._verifying_key,
                algorithms=[self._algorithm],
                audience=self._settings.jwt_audience,
                issuer=self._settings.jwt_issuer,
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired.")
        except jwt.InvalidTokenError:
            raise AuthenticationError("Invalid token.")

    def issue(self, user_id: str) -> TokenPair:
        return TokenPair(
            access_token=self._encode(user_id, self._settings.access_token_ttl_seconds),
            refresh_token=self._encode(
                user_id,
                self._settings.refresh_token_ttl_seconds,
                type=TOKEN_TYPE_REFRESH,
            ),
            expires_in=self._settings.access_token_ttl_seconds,
        )

    def verify_access(self, token: str) -> str:
        """Return the user id asserted by an access token.

        Raises:
            AuthenticationError: bad signature, wrong issuer/audience, expired,
                or a refresh token presented as an access token.
        """
        claims = self._decode(token)
        if claims.get("type") == TOKEN_TYPE_REFRESH:
            raise AuthenticationError("Invalid token.")
        return claims["sub"]

    def verify_refresh(self, token: str) -> str:
        claims = self._decode(token)
        if claims.get("type") != TOKEN_TYPE_REFRESH:
            raise AuthenticationError("Not a refresh token.")
        return claims["sub"]
