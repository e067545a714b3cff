import uuid
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from taskboard.core.config import settings

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenError(Exception):
    pass


class InvalidSignature(TokenError):
    pass


class ExpiredToken(TokenError):
    pass


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def _encode(subject: str, token_type: str, lifetime: timedelta, secret: str) -> tuple[str, datetime]:
    issued_at = datetime.now(timezone.utc)
    expire = issued_at + lifetime
    payload = {
        "sub": subject,
        "type": token_type,
        "jti": uuid.uuid4().hex,
        "iat": issued_at,
        "exp": expire,
    }
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm), expire


def _decode(token: str, token_type: str, secret: str) -> str:
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError as exc:
        raise ExpiredToken("token expired") from exc
    except JWTError as exc:
        raise InvalidSignature("token signature invalid") from exc
    if payload.get("type") != token_type:
        raise InvalidSignature("unexpected token type")
    subject = payload.get("sub")
    if not subject:
        raise InvalidSignature("token has no subject")
    return subject


def create_access_token(user_id: str, expires_minutes: int | None = None) -> str:
    lifetime = timedelta(minutes=expires_minutes or settings.access_token_expire_minutes)
    token, _ = _encode(user_id, ACCESS_TOKEN_TYPE, lifetime, settings.access_token_secret)
    return token


def create_refresh_token(user_id: str, expires_days: int | None = None) -> tuple[str, datetime]:
    lifetime = timedelta(days=expires_days or settings.refresh_token_expire_days)
    return _encode(user_id, REFRESH_TOKEN_TYPE, lifetime, settings.refresh_token_secret)


def verify_access_token(token: str) -> str:
    return _decode(token, ACCESS_TOKEN_TYPE, settings.access_token_secret)


def verify_refresh_token(token: str) -> str:
    return _decode(token, REFRESH_TOKEN_TYPE, settings.refresh_token_secret)
