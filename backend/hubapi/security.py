from __future__ import annotations
import uuid
from datetime import datetime, timedelta, timezone
from typing import Literal
import jwt
from passlib.context import CryptContext
from hubapi.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

JWT_ALG = "HS256"
TokenType = Literal["access", "refresh"]


class TokenError(Exception):
    """Bearer token could not be turned into a user id."""


def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)

def _issue(user_id: uuid.UUID, token_type: TokenType, ttl: timedelta) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "type": token_type,
        "iat": now.timestamp(),  # float: two tokens minted within one second still differ
        "exp": int((now + ttl).timestamp()),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=JWT_ALG)

def issue_token_pair(user_id: uuid.UUID) -> tuple[str, str]:
    access = _issue(user_id, "access", timedelta(minutes=settings.access_ttl_min))
    refresh = _issue(user_id, "refresh", timedelta(minutes=settings.refresh_ttl_min))
    return access, refresh

def read_token(token: str, expected: TokenType) -> uuid.UUID:
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALG])
    except jwt.PyJWTError as exc:
        raise TokenError("Invalid token") from exc
    if claims.get("type") != expected:
        raise TokenError("Wrong token type")
    try:
        return uuid.UUID(str(claims.get("sub")))
    except ValueError as exc:
        raise TokenError("Invalid token subject") from exc
