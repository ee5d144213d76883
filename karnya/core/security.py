import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Tuple

from jose import jwt, JWTError
from passlib.hash import argon2

from karnya.core.config import settings
from karnya.core.db import utcnow
from karnya.core.errors import InvalidToken


@dataclass(frozen=True)
class Identity:
    """Who a validated session token speaks for."""

    id: int
    email: str
    role: str


def hash_password(plain: str) -> str:
    return argon2.using(
        time_cost=settings.PASSWORD_HASH_TIME_COST,
        memory_cost=settings.PASSWORD_HASH_MEMORY_COST,
        parallelism=settings.PASSWORD_HASH_PARALLELISM,
    ).hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return False
    try:
        return argon2.verify(plain, hashed)
    except ValueError:
        # not an argon2 hash
        return False


class TokenService:
    """Issues and checks the three kinds of tokens an account can hold.

    Session tokens are signed JWTs carrying id, email and role. Verification
    and reset tokens are opaque random strings that only mean something
    while they sit on the account row.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        session_ttl: timedelta = timedelta(days=30),
        reset_ttl: timedelta = timedelta(hours=1),
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.session_ttl = session_ttl
        self.reset_ttl = reset_ttl

    def issue_session_token(self, identity: Identity) -> str:
        now = utcnow()
        payload = {
            "sub": str(identity.id),
            "email": identity.email,
            "role": identity.role,
            "iat": now,
            "exp": now + self.session_ttl,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def validate(self, token: str) -> Identity:
        # expired, tampered and malformed tokens all fail the same way
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
            sub = payload.get("sub")
            email = payload.get("email")
            role = payload.get("role")
            if not sub or not email or not role:
                raise InvalidToken()
            return Identity(id=int(sub), email=email, role=role)
        except (JWTError, ValueError, TypeError, AttributeError):
            raise InvalidToken()

    @staticmethod
    def issue_verification_token() -> str:
        return secrets.token_urlsafe(32)

    def issue_reset_token(self) -> Tuple[str, datetime]:
        return secrets.token_urlsafe(32), utcnow() + self.reset_ttl


def get_token_service() -> TokenService:
    return TokenService(
        secret=settings.JWT_SECRET,
        algorithm=settings.JWT_ALG,
        session_ttl=timedelta(days=settings.SESSION_TOKEN_EXPIRE_DAYS),
        reset_ttl=timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES),
    )
