from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from taskboard.core.database import get_db
from taskboard.core.security import TokenError, verify_access_token
from taskboard.errors import Unauthenticated
from taskboard.models import User
from taskboard.services.rate_limit import RateLimiter

bearer_scheme = HTTPBearer(auto_error=False)

_login_rate_limiter: RateLimiter | None = None


def get_current_user_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise Unauthenticated("Unauthorized: No token provided")
    try:
        user_id = verify_access_token(credentials.credentials)
    except TokenError as exc:
        raise Unauthenticated("Unauthorized: Invalid access token") from exc
    request.state.user_id = user_id
    return user_id


def get_current_user(
    user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)
) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise Unauthenticated("Unauthorized: Unknown user")
    return user


def get_login_rate_limiter() -> RateLimiter:
    global _login_rate_limiter
    if _login_rate_limiter is None:
        _login_rate_limiter = RateLimiter(prefix="login")
    return _login_rate_limiter
