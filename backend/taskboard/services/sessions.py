import logging
from contextlib import contextmanager
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from taskboard.core.security import (
    TokenError,
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
    verify_refresh_token,
)
from taskboard.errors import (
    AlreadyExists,
    InternalError,
    InvalidCredentials,
    InvalidRefreshToken,
)
from taskboard.models import User
from taskboard.services.audit import log_event
from taskboard.services.token_store import (
    RefreshTokenStore,
    StoreError,
    TokenAlreadyRevoked,
    is_usable,
)

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    access_token: str
    refresh_token: str
    user: User


@lru_cache(maxsize=1)
def _dummy_password_hash() -> str:
    return hash_password("taskboard-timing-equalizer")


class SessionManager:
    def __init__(self, db: Session, store: Optional[RefreshTokenStore] = None):
        self.db = db
        self.store = store or RefreshTokenStore(db)

    def register(self, email: str, password: str, name: str) -> AuthResult:
        with self._storage("register"):
            if self._find_user(email) is not None:
                raise AlreadyExists()
            user = User(email=email, password_hash=hash_password(password), name=name)
            self.db.add(user)
            try:
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                raise AlreadyExists() from exc
            result = self._issue(user)
        log_event(self.db, "register", "success", user_id=user.id)
        logger.info("Registered user %s", user.id)
        return result

    def login(self, email: str, password: str) -> AuthResult:
        with self._storage("login"):
            user = self._find_user(email)
            # Unknown emails still pay for one hash verification.
            password_hash = user.password_hash if user else _dummy_password_hash()
            password_ok = verify_password(password, password_hash)
            if user is None or not password_ok:
                log_event(
                    self.db,
                    "login",
                    "failed",
                    "invalid credentials",
                    user_id=user.id if user else None,
                )
                raise InvalidCredentials()
            result = self._issue(user)
        log_event(self.db, "login", "success", user_id=user.id)
        return result

    def refresh(self, refresh_token: str) -> AuthResult:
        try:
            claimed_user_id = verify_refresh_token(refresh_token)
        except TokenError as exc:
            logger.info("Refresh rejected before lookup: %s", exc)
            raise InvalidRefreshToken() from exc

        with self._storage("refresh"):
            stored = self.store.find_by_token(refresh_token)
            if stored is None or stored.revoked or stored.user_id != claimed_user_id:
                # Lockout only when the presented token is ours and belongs to
                # the signed owner; a forged token must not lock anyone out.
                if stored is not None and stored.user_id == claimed_user_id:
                    self._lock_out(claimed_user_id, "revoked refresh token presented")
                else:
                    log_event(self.db, "refresh", "failed", "unknown refresh token")
                raise InvalidRefreshToken()
            if not is_usable(stored):
                log_event(self.db, "refresh", "failed", "expired", user_id=stored.user_id)
                raise InvalidRefreshToken()

            user = self.db.get(User, stored.user_id)
            if user is None:
                raise InvalidRefreshToken()

            new_refresh_token, expires_at = create_refresh_token(user.id)
            try:
                self.store.rotate(stored, new_refresh_token, expires_at)
            except TokenAlreadyRevoked:
                self._lock_out(claimed_user_id, "refresh token rotated concurrently")
                raise InvalidRefreshToken()
            access_token = create_access_token(claimed_user_id)

        log_event(self.db, "refresh", "success", user_id=claimed_user_id)
        return AuthResult(access_token=access_token, refresh_token=new_refresh_token, user=user)

    def logout(self, refresh_token: Optional[str] = None) -> None:
        if not refresh_token:
            return
        with self._storage("logout"):
            stored = self.store.find_by_token(refresh_token)
            if stored is None:
                return
            user_id = stored.user_id
            if not stored.revoked:
                self.store.revoke(stored.id)
        log_event(self.db, "logout", "success", user_id=user_id)

    def _issue(self, user: User) -> AuthResult:
        access_token = create_access_token(user.id)
        refresh_token, expires_at = create_refresh_token(user.id)
        self.store.create(refresh_token, user.id, expires_at)
        return AuthResult(access_token=access_token, refresh_token=refresh_token, user=user)

    def _lock_out(self, user_id: str, reason: str) -> None:
        revoked = self.store.revoke_all_for_user(user_id)
        logger.warning("Refresh token reuse for user %s (%s); revoked %s tokens", user_id, reason, revoked)
        log_event(
            self.db,
            "refresh",
            "reuse_detected",
            reason,
            user_id=user_id,
            details={"revoked": revoked},
        )

    def _find_user(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    @contextmanager
    def _storage(self, operation: str) -> Iterator[None]:
        try:
            yield
        except (StoreError, SQLAlchemyError) as exc:
            self.db.rollback()
            logger.exception("Storage failure during %s", operation)
            raise InternalError() from exc
