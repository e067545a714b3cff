from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from taskboard.core.database import get_db
from taskboard.core.deps import get_login_rate_limiter
from taskboard.errors import RateLimited
from taskboard.schemas import (
    AuthResponse,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    UserOut,
)
from taskboard.services.audit import log_event
from taskboard.services.rate_limit import RateLimiter
from taskboard.services.sessions import AuthResult, SessionManager

router = APIRouter(prefix="/auth", tags=["auth"])


def _to_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        user=UserOut.model_validate(result.user),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    result = SessionManager(db).register(payload.email, payload.password, payload.name)
    return _to_response(result)


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    rate_limiter: RateLimiter = Depends(get_login_rate_limiter),
):
    client_key = request.client.host if request.client else payload.email
    if not rate_limiter.hit(client_key):
        log_event(db, "login", "blocked", "rate limited")
        raise RateLimited()
    result = SessionManager(db).login(payload.email, payload.password)
    rate_limiter.reset(client_key)
    return _to_response(result)


@router.post("/refresh", response_model=AuthResponse)
def refresh(payload: RefreshRequest, db: Session = Depends(get_db)):
    result = SessionManager(db).refresh(payload.refresh_token)
    return _to_response(result)


@router.post("/logout", response_model=MessageResponse)
def logout(payload: LogoutRequest | None = None, db: Session = Depends(get_db)):
    SessionManager(db).logout(payload.refresh_token if payload else None)
    return MessageResponse(message="Logged out successfully")
