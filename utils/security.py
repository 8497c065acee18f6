"""
security helpers:
- Argon2 password hashing via argon2-cffi
- Access / refresh JWT creation and verification via PyJWT, one secret per token class
- JTI generation so every token minted is unique
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Any

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from flask import current_app

ph = PasswordHasher()

ACCESS = "access"
REFRESH = "refresh"

# Session cookie names
ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


class TokenError(Exception):
    """A token failed signature, expiry, type or claim checks."""


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2
    """
    if not password or not password_hash:
        return False
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class TokenIssuer:
    """
    Mints and verifies the two token classes.

    Access and refresh tokens are signed with different secrets, so a leaked
    access secret cannot be used to forge refresh tokens and vice versa.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_expires: timedelta,
        refresh_expires: timedelta,
        algorithm: str = "HS256",
        issuer: str = "user-accounts-api",
    ):
        if not access_secret or not refresh_secret:
            raise ValueError("both token secrets are required")
        if access_secret == refresh_secret:
            raise ValueError("access and refresh secrets must differ")
        self._secrets = {ACCESS: access_secret, REFRESH: refresh_secret}
        self._expires = {ACCESS: access_expires, REFRESH: refresh_expires}
        self.algorithm = algorithm
        self.issuer = issuer

    @classmethod
    def from_config(cls, config) -> "TokenIssuer":
        return cls(
            access_secret=config["ACCESS_TOKEN_SECRET"],
            refresh_secret=config["REFRESH_TOKEN_SECRET"],
            access_expires=config["ACCESS_TOKEN_EXPIRES"],
            refresh_expires=config["REFRESH_TOKEN_EXPIRES"],
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            issuer=config.get("JWT_ISSUER", "user-accounts-api"),
        )

    def expires_in(self, token_type: str) -> int:
        return int(self._expires[token_type].total_seconds())

    def _issue(self, token_type: str, subject: str, now: datetime | None = None) -> str:
        now = now or _now()
        payload = {
            "iss": self.issuer,
            "sub": str(subject),
            "iat": int(now.timestamp()),
            "exp": int((now + self._expires[token_type]).timestamp()),
            "type": token_type,
            "jti": generate_jti(),
        }
        return jwt.encode(payload, self._secrets[token_type], algorithm=self.algorithm)

    def issue_access_token(self, subject: str, now: datetime | None = None) -> str:
        return self._issue(ACCESS, subject, now)

    def issue_refresh_token(self, subject: str, now: datetime | None = None) -> str:
        return self._issue(REFRESH, subject, now)

    def issue_pair(self, subject: str) -> TokenPair:
        now = _now()
        return TokenPair(
            access_token=self.issue_access_token(subject, now),
            refresh_token=self.issue_refresh_token(subject, now),
        )

    def _decode(self, token: str, expected_type: str) -> Dict[str, Any]:
        """
        Decode and validate a JWT of the expected class. Raises TokenError on
        invalid signature, expiry, wrong type or a missing subject.
        """
        if not token:
            raise TokenError("Token missing")
        try:
            decoded = jwt.decode(
                token,
                self._secrets[expected_type],
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"require": ["exp", "sub", "type"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenError("Token expired")
        except jwt.InvalidTokenError as exc:
            raise TokenError(f"Invalid token: {exc}")

        if decoded.get("type") != expected_type:
            raise TokenError("Wrong token type")
        if not decoded.get("sub"):
            raise TokenError("Token has no subject")
        return decoded

    def decode_access_token(self, token: str) -> Dict[str, Any]:
        return self._decode(token, ACCESS)

    def decode_refresh_token(self, token: str) -> Dict[str, Any]:
        return self._decode(token, REFRESH)


def get_token_issuer() -> TokenIssuer:
    return current_app.extensions["token_issuer"]
