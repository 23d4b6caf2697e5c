"""Signed bearer tokens"""

import time
from datetime import timedelta
from typing import Any, Optional, Protocol

import structlog
from jose import JWTError, jwt
from pydantic import ValidationError

from restaurant_core.auth.passwords import PasswordPolicy
from restaurant_core.schemas.auth import TokenPayload

logger = structlog.get_logger(__name__)

DEFAULT_TTL = timedelta(hours=24)


class TokenSubject(Protocol):
    id: Any
    email: str
    role: str


class TokenService:
    """Issues and checks HS256 JWTs carrying actor id, email and role"""

    def __init__(self, secret_key: str, algorithm: str = "HS256", default_ttl: timedelta = DEFAULT_TTL):
        if not secret_key:
            raise ValueError("Token secret key must be set")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.default_ttl = default_ttl

    def issue(self, actor: TokenSubject, ttl: Optional[timedelta] = None) -> str:
        now = int(time.time())
        ttl = self.default_ttl if ttl is None else ttl
        return self._encode(
            sub=str(actor.id),
            email=actor.email,
            role=str(actor.role),
            issued_at=now,
            expires_at=now + max(int(ttl.total_seconds()), 0),
        )

    def verify(self, token: str) -> Optional[TokenPayload]:
        """Decoded payload, or None for malformed, tampered or expired tokens"""
        if not token or not isinstance(token, str):
            return None
        try:
            claims = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
            payload = TokenPayload.model_validate(claims)
        except (JWTError, ValidationError):
            return None

        # jose accepts exp == now; a token is dead from its expiry second on
        if payload.exp <= time.time():
            return None
        return payload

    def refresh(self, token: str) -> Optional[str]:
        """New token for the same identity, expiring strictly after the original"""
        payload = self.verify(token)
        if payload is None:
            return None

        now = int(time.time())
        ttl = int(self.default_ttl.total_seconds())
        logger.debug("token_refreshed", actor_id=payload.sub)
        return self._encode(
            sub=payload.sub,
            email=payload.email,
            role=payload.role,
            issued_at=now,
            expires_at=max(now + ttl, payload.exp + 1),
        )

    def _encode(self, *, sub: str, email: str, role: str, issued_at: int, expires_at: int) -> str:
        claims = {
            "sub": sub,
            "email": email,
            "role": role,
            "iat": issued_at,
            "exp": expires_at,
            "jti": PasswordPolicy.generate_token(16),
        }
        return jwt.encode(claims, self._secret_key, algorithm=self._algorithm)
