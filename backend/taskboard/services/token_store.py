import hashlib
import logging
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from taskboard.models import RefreshToken

logger = logging.getLogger(__name__)


class StoreError(Exception):
    pass


class StorageError(StoreError):
    pass


class DuplicateToken(StoreError):
    pass


class TokenAlreadyRevoked(StoreError):
    pass


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_usable(record: RefreshToken, now: datetime | None = None) -> bool:
    return not record.revoked and (now or utcnow()) < as_utc(record.expires_at)


class RefreshTokenStore:
    def __init__(self, db: Session):
        self.db = db

    def create(self, token: str, user_id: str, expires_at: datetime) -> RefreshToken:
        token_hash = hash_token(token)
        record = RefreshToken(
            user_id=user_id,
            token_hash=token_hash,
            expires_at=expires_at,
            revoked=False,
        )
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if self._hash_exists(token_hash):
                raise DuplicateToken("refresh token already recorded") from exc
            raise StorageError("could not record refresh token") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError("could not record refresh token") from exc
        return record

    def find_by_token(self, token: str) -> RefreshToken | None:
        try:
            return (
                self.db.query(RefreshToken)
                .filter(RefreshToken.token_hash == hash_token(token))
                .first()
            )
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError("refresh token lookup failed") from exc

    def revoke(self, record_id: str) -> None:
        statement = (
            update(RefreshToken)
            .where(RefreshToken.id == record_id, RefreshToken.revoked.is_(False))
            .values(revoked=True, revoked_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        self._execute_and_commit(statement)

    def revoke_all_for_user(self, user_id: str) -> int:
        statement = (
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False))
            .values(revoked=True, revoked_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        revoked = self._execute_and_commit(statement)
        logger.info("Revoked %s refresh tokens for user %s", revoked, user_id)
        return revoked

    def rotate(self, record: RefreshToken, new_token: str, expires_at: datetime) -> RefreshToken:
        """Retire ``record`` and record ``new_token`` in one transaction.

        The retirement is a compare-and-set on ``revoked``: when another
        transaction already retired the record, nothing is written and
        ``TokenAlreadyRevoked`` is raised.
        """
        record_id, user_id = record.id, record.user_id
        try:
            result = self.db.execute(
                update(RefreshToken)
                .where(RefreshToken.id == record_id, RefreshToken.revoked.is_(False))
                .values(revoked=True, revoked_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.db.rollback()
                raise TokenAlreadyRevoked(record_id)
            new_record = RefreshToken(
                user_id=user_id,
                token_hash=hash_token(new_token),
                expires_at=expires_at,
                revoked=False,
            )
            self.db.add(new_record)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateToken("refresh token already recorded") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError("refresh token rotation failed") from exc
        return new_record

    def _execute_and_commit(self, statement) -> int:
        try:
            result = self.db.execute(statement)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError("refresh token update failed") from exc
        return result.rowcount

    def _hash_exists(self, token_hash: str) -> bool:
        return (
            self.db.query(RefreshToken.id)
            .filter(RefreshToken.token_hash == token_hash)
            .first()
            is not None
        )
