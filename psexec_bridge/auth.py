"""
PsExec Bridge - Auth gate.
Login issues a signed, time-limited bearer token; every operation
endpoint verifies it.
"""
import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Header, Request

from .config import DEV_JWT_SECRET, BridgeConfig
from .errors import AuthInvalid, AuthRequired, InvalidCredentials

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


@dataclass(frozen=True)
class AuthCredential:
    subject: str
    issued_at: datetime
    expires_at: datetime

    def to_dict(self) -> dict:
        return {
            "username": self.subject,
            "iat": int(self.issued_at.timestamp()),
            "exp": int(self.expires_at.timestamp()),
        }


class AuthGate:
    def __init__(self, config: BridgeConfig):
        self.config = config
        if config.jwt_secret == DEV_JWT_SECRET:
            logger.warning("JWT_SECRET is not set; using the development secret")

    def login(self, username: str, password: str) -> str:
        user_ok = hmac.compare_digest(username.encode(), self.config.username.encode())
        pass_ok = hmac.compare_digest(password.encode(), self.config.password.encode())
        if not (user_ok and pass_ok):
            logger.warning("Failed login for %r", username)
            raise InvalidCredentials()
        return self.issue(username)

    def issue(self, username: str, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {
            "sub": username,
            "username": username,
            "iat": now,
            "exp": now + timedelta(hours=self.config.token_ttl_hours),
        }
        return jwt.encode(payload, self.config.jwt_secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> AuthCredential:
        try:
            claims = jwt.decode(
                token,
                self.config.jwt_secret,
                algorithms=[ALGORITHM],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.InvalidTokenError as e:
            raise AuthInvalid(details=str(e))
        return AuthCredential(
            subject=claims["sub"],
            issued_at=datetime.fromtimestamp(claims["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
        )

    def authenticate(self, authorization: Optional[str]) -> AuthCredential:
        if self.config.bypass_auth:
            now = datetime.now(timezone.utc)
            return AuthCredential(subject=self.config.username, issued_at=now, expires_at=now)
        if not authorization or not authorization.startswith("Bearer "):
            raise AuthRequired()
        token = authorization[len("Bearer "):].strip()
        if not token:
            raise AuthRequired()
        return self.verify(token)


def require_user(request: Request, authorization: Optional[str] = Header(None)) -> AuthCredential:
    """FastAPI dependency guarding every operation endpoint."""
    return request.app.state.auth.authenticate(authorization)
