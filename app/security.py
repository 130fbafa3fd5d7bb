"""
JWT creation and verification for bearer sessions.

Tokens are stateless: validity is signature + expiry (+ issuer/audience),
with no server-side revocation. Expired, forged and malformed tokens are all
rejected the same way so callers cannot tell them apart.
"""
from datetime import datetime, timedelta
from typing import Callable

from jose import jwt, JWTError

from clock import utcnow
from identities import Identity


class TokenIssuer:
    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        expires_seconds: int = 3600,
        issuer: str | None = None,
        audience: str | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        if not secret:
            raise RuntimeError("JWT signing secret is not configured")
        self._secret = secret
        self.algorithm = algorithm
        self.expires_seconds = expires_seconds
        self.issuer = issuer
        self.audience = audience
        self._clock = clock

    def issue(self, identity: Identity) -> str:
        """Build a JWT for the identity; exp = now + expires_seconds."""
        now = self._clock()
        payload = {
            "sub": identity.id,
            "email": identity.email,
            "provider": identity.provider.value,
            "iat": now,
            "exp": now + timedelta(seconds=self.expires_seconds),
        }
        if self.issuer:
            payload["iss"] = self.issuer
        if self.audience:
            payload["aud"] = self.audience
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def _decode(self, token: str) -> dict | None:
        if not token:
            return None
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
            )
        except JWTError:
            return None

    def validate(self, token: str) -> bool:
        return self.extract_identity_id(token) is not None

    def extract_identity_id(self, token: str) -> str | None:
        payload = self._decode(token)
        if not payload:
            return None
        sub = payload.get("sub")
        return sub if isinstance(sub, str) and sub else None
