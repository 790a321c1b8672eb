"""
Verification record storage backends.

Every backend exposes one atomic primitive, ``update(identifier, mutation)``:
the mutation receives the current record (or None) and returns
``(new_record, result)``. Returning None deletes the record; returning the
same object leaves storage untouched. The read, the mutation and the write
happen as a single step per identifier, so concurrent verifications of the
same code cannot both slip under the attempt ceiling. Mutations must be pure:
the Redis backend re-runs them when a concurrent writer wins the race.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import timezone
from typing import Callable, Dict, Optional, Tuple, TypeVar

import redis
from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from storefront.core.database import enable_sqlite_write_locks
from storefront.core.exceptions import StorageUnavailable
from storefront.models.verification import VerificationRecord
from storefront.models.verification_code import VerificationCode

logger = logging.getLogger(__name__)

T = TypeVar("T")
Mutation = Callable[[Optional[VerificationRecord]], Tuple[Optional[VerificationRecord], T]]


class VerificationStore:
    """Abstract base class for verification record stores"""

    def get(self, identifier: str) -> Optional[VerificationRecord]:
        """Return the record for identifier without modifying it"""
        raise NotImplementedError

    def update(self, identifier: str, mutation: Mutation) -> T:
        """Atomically apply mutation to the record for identifier and return its result"""
        raise NotImplementedError


class _IdentifierLock:
    """A lock plus the number of callers holding or waiting for it"""

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class InMemoryVerificationStore(VerificationStore):
    """
    Process-local store.

    Each identifier gets its own lock, so operations on different
    identifiers never wait on each other. A lock only exists while some
    caller holds or waits for it, so the lock table never outgrows the
    number of in-flight operations.
    """

    def __init__(self):
        self._records: Dict[str, VerificationRecord] = {}
        self._locks: Dict[str, _IdentifierLock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _locked(self, identifier: str):
        with self._locks_guard:
            entry = self._locks.get(identifier)
            if entry is None:
                entry = _IdentifierLock()
                self._locks[identifier] = entry
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[identifier]

    def get(self, identifier: str) -> Optional[VerificationRecord]:
        return self._records.get(identifier)

    def update(self, identifier: str, mutation: Mutation) -> T:
        with self._locked(identifier):
            current = self._records.get(identifier)
            new, result = mutation(current)
            if new is not current:
                if new is None:
                    self._records.pop(identifier, None)
                else:
                    self._records[identifier] = new
            return result

    def __len__(self) -> int:
        return len(self._records)


class RedisVerificationStore(VerificationStore):
    """
    Redis-backed store for multi-process deployments.

    Records are stored as JSON under ``<prefix><identifier>``. Updates run
    inside WATCH/MULTI/EXEC so a concurrent write to the same key aborts and
    replays the mutation against the fresh value.

    Keys carry a TTL of the code lifetime plus ``retention_seconds``: expiry
    is still decided lazily by the service (so callers see EXPIRED rather
    than NO_ACTIVE_CODE), Redis just reclaims keys nobody came back for.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        retention_seconds: int = 86400,
        key_prefix: str = "verification:"
    ):
        self.redis_client = redis_client
        self.retention_seconds = retention_seconds
        self.key_prefix = key_prefix

    @classmethod
    def from_settings(cls, settings) -> "RedisVerificationStore":
        client = redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            decode_responses=True
        )
        return cls(client, retention_seconds=settings.VERIFICATION_RECORD_RETENTION_SECONDS)

    def _key(self, identifier: str) -> str:
        return f"{self.key_prefix}{identifier}"

    def _ttl_seconds(self, record: VerificationRecord) -> int:
        lifetime = int((record.expires_at - record.issued_at).total_seconds())
        return max(1, lifetime + self.retention_seconds)

    @staticmethod
    def _decode(raw) -> Optional[VerificationRecord]:
        if raw is None:
            return None
        return VerificationRecord.model_validate_json(raw)

    def get(self, identifier: str) -> Optional[VerificationRecord]:
        try:
            raw = self.redis_client.get(self._key(identifier))
        except redis.RedisError as e:
            logger.error(f"Redis read failed for verification record: {e}")
            raise StorageUnavailable("Verification store is unavailable") from e
        return self._decode(raw)

    def update(self, identifier: str, mutation: Mutation) -> T:
        key = self._key(identifier)

        def apply(pipe):
            # Immediate mode after WATCH: this GET runs now, not in the transaction
            current = self._decode(pipe.get(key))
            new, result = mutation(current)
            pipe.multi()
            if new is not current:
                if new is None:
                    pipe.delete(key)
                else:
                    pipe.set(key, new.model_dump_json(), ex=self._ttl_seconds(new))
            return result

        try:
            return self.redis_client.transaction(apply, key, value_from_callable=True)
        except redis.RedisError as e:
            logger.error(f"Redis update failed for verification record: {e}")
            raise StorageUnavailable("Verification store is unavailable") from e


class SqlAlchemyVerificationStore(VerificationStore):
    """
    Relational store using the verification_codes table.

    The row is read with SELECT ... FOR UPDATE so concurrent updates of the
    same identifier serialize on the row lock. SQLite has no row locks; for
    SQLite engines every transaction starts with BEGIN IMMEDIATE instead, so
    the whole read-modify-write runs under the database write lock.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory
        bind = session_factory.kw.get("bind")
        if isinstance(bind, Engine):
            enable_sqlite_write_locks(bind)

    @staticmethod
    def _to_record(row: VerificationCode) -> VerificationRecord:
        issued_at = row.issued_at
        expires_at = row.expires_at
        # SQLite drops tzinfo; values are always written in UTC
        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=timezone.utc)
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return VerificationRecord(
            identifier=row.identifier,
            code=row.code,
            issued_at=issued_at,
            expires_at=expires_at,
            attempts_used=row.attempts_used,
            superseded_codes=tuple(row.superseded_codes or ())
        )

    def get(self, identifier: str) -> Optional[VerificationRecord]:
        db = self.session_factory()
        try:
            row = db.get(VerificationCode, identifier)
            return self._to_record(row) if row is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Database read failed for verification record: {e}")
            raise StorageUnavailable("Verification store is unavailable") from e
        finally:
            db.close()

    def update(self, identifier: str, mutation: Mutation) -> T:
        db = self.session_factory()
        try:
            row = db.execute(
                select(VerificationCode)
                .where(VerificationCode.identifier == identifier)
                .with_for_update()
            ).scalar_one_or_none()
            current = self._to_record(row) if row is not None else None

            new, result = mutation(current)

            if new is not current:
                if new is None:
                    db.delete(row)
                elif row is None:
                    db.add(VerificationCode(
                        identifier=new.identifier,
                        code=new.code,
                        issued_at=new.issued_at,
                        expires_at=new.expires_at,
                        attempts_used=new.attempts_used,
                        superseded_codes=list(new.superseded_codes)
                    ))
                else:
                    row.code = new.code
                    row.issued_at = new.issued_at
                    row.expires_at = new.expires_at
                    row.attempts_used = new.attempts_used
                    row.superseded_codes = list(new.superseded_codes)
            db.commit()
            return result
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database update failed for verification record: {e}")
            raise StorageUnavailable("Verification store is unavailable") from e
        finally:
            db.close()
