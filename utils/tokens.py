"""
Token codec:
- Access tokens are short-lived HS256 JWTs (PyJWT) verified without any lookup
- Refresh tokens are opaque random strings; only their SHA-256 digest is stored
"""
from __future__ import annotations

import hashlib
import re
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt

from utils.roles import Role

REFRESH_TOKEN_BYTES = 48
# token_urlsafe(48) yields 64 characters from the url-safe alphabet
_REFRESH_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]{64}$")


class ExpiredOrInvalidToken(Exception):
    def __init__(self, message: str, *, expired: bool = False):
        super().__init__(message)
        self.expired = expired


@dataclass(frozen=True)
class Identity:
    """Verified caller: what every downstream handler gets to see."""
    user_id: str
    tenant_id: str
    role: Role
    expires_at: datetime


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TokenCodec:
    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        issuer: str = "records-api",
        audience: str = "records-api-clients",
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
    ) -> None:
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self._secret = secret
        self.algorithm = algorithm
        self.issuer = issuer
        self.audience = audience
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    @classmethod
    def from_config(cls, config) -> "TokenCodec":
        return cls(
            config["JWT_SECRET"],
            algorithm=config["JWT_ALGORITHM"],
            issuer=config["JWT_ISSUER"],
            audience=config["JWT_AUDIENCE"],
            access_ttl=config["ACCESS_TOKEN_EXPIRES"],
            refresh_ttl=config["REFRESH_TOKEN_EXPIRES"],
        )

    def issue_pair(self, user_id: str, tenant_id: str, role: Role | str) -> TokenPair:
        now = _now()
        access_expires_at = now + self.access_ttl
        payload = {
            "iss": self.issuer,
            "aud": self.audience,
            "sub": str(user_id),
            "tid": str(tenant_id),
            "role": Role.parse(role).value,
            "type": "access",
            "iat": int(now.timestamp()),
            "exp": int(access_expires_at.timestamp()),
            "jti": str(uuid.uuid4()),
        }
        access_token = jwt.encode(payload, self._secret, algorithm=self.algorithm)
        return TokenPair(
            access_token=access_token,
            refresh_token=secrets.token_urlsafe(REFRESH_TOKEN_BYTES),
            access_expires_at=access_expires_at,
            refresh_expires_at=now + self.refresh_ttl,
        )

    def verify_access(self, token: str) -> Identity:
        """
        Check signature, issuer, audience and expiry of an access token.
        Raises ExpiredOrInvalidToken on any failure.
        """
        try:
            decoded: Dict[str, Any] = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                audience=self.audience,
                options={"require": ["exp", "sub", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredOrInvalidToken("Token expired", expired=True)
        except jwt.InvalidTokenError as exc:
            raise ExpiredOrInvalidToken(f"Invalid token: {exc}")

        if decoded.get("type") != "access":
            raise ExpiredOrInvalidToken("Wrong token type")
        tenant_id = decoded.get("tid")
        if not tenant_id:
            raise ExpiredOrInvalidToken("Token has no tenant")
        try:
            role = Role.parse(decoded.get("role"))
        except ValueError:
            raise ExpiredOrInvalidToken("Token has an unknown role")

        return Identity(
            user_id=decoded["sub"],
            tenant_id=tenant_id,
            role=role,
            expires_at=datetime.fromtimestamp(decoded["exp"], tz=timezone.utc),
        )

    @staticmethod
    def looks_like_refresh_token(token) -> bool:
        return isinstance(token, str) and bool(_REFRESH_TOKEN_RE.match(token))

    @staticmethod
    def digest(refresh_token: str) -> str:
        """SHA-256 hex digest; the only form in which a refresh token is stored."""
        return hashlib.sha256(refresh_token.encode("utf-8")).hexdigest()
