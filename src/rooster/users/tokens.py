from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt

from ..core.enums import Role
from ..core.exceptions import AuthenticationError
from .model import User

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
TOKEN_TYPE_ACCESS = "access"


@dataclass(frozen=True)
class TokenClaims:
    """Minimal payload we expect from an access token."""

    user_id: int
    email: str
    role: Role


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Issues and verifies signed, time-bound bearer tokens (HS256)."""

    def __init__(self, secret: str, *, ttl_minutes: int, clock: Optional[Callable[[], datetime]] = None):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret
        self._ttl = timedelta(minutes=int(ttl_minutes))
        self._clock = clock or _utcnow

    @property
    def ttl_seconds(self) -> int:
        return int(self._ttl.total_seconds())

    def issue(self, user: User) -> str:
        now = self._clock()
        payload = {
            "sub": str(user.user_id),
            "email": user.email,
            "role": user.role.value,
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl).timestamp()),
            "typ": TOKEN_TYPE_ACCESS,
        }
        return jwt.encode(payload, self._secret, algorithm=JWT_ALGORITHM)

    def decode(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token expired")
        except jwt.InvalidTokenError as exc:
            logger.debug("Rejected token: %s", exc)
            raise AuthenticationError("Invalid token")

        if payload.get("typ") != TOKEN_TYPE_ACCESS:
            raise AuthenticationError("Invalid token")
        try:
            return TokenClaims(
                user_id=int(payload["sub"]),
                email=str(payload.get("email", "")),
                role=Role(payload.get("role")),
            )
        except (TypeError, ValueError):
            raise AuthenticationError("Invalid token")
