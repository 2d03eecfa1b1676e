"""
In-memory repository adapters for development and tests.

Same contracts as the PostgreSQL adapters: case-insensitive lookups,
soft-delete filtering, unique username and handle among live accounts
(enforced atomically under a lock), bcrypt password verification.
The unit of work writes straight into the shared store, so concurrent
readers can see a created account (before its role is assigned) until
commit or rollback; rollback compensates with a soft delete.
"""

import logging
import secrets
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone

import bcrypt

from src.domain.exceptions import AccountConflict
from src.domain.models import Account, Challenge
from src.domain.ports import ChallengePurpose

logger = logging.getLogger(__name__)

_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()


@dataclass
class _Record:
    account: Account
    password_hash: str
    roles: list[str]


class InMemoryCredentialStore:
    """
    Implements CredentialStore protocol with process-local dictionaries.

    Accounts are copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self, rejected_roles: frozenset[str] = frozenset()) -> None:
        self._records: list[_Record] = []
        self._lock = threading.RLock()
        # Roles add_role refuses; lets tests exercise the rollback path.
        self.rejected_roles = rejected_roles

    def _live(self, username: str) -> _Record | None:
        key = username.lower()
        for record in self._records:
            if not record.account.deleted and record.account.username.lower() == key:
                return record
        return None

    def find_by_username(self, username: str) -> Account | None:
        with self._lock:
            record = self._live(username)
            return replace(record.account) if record else None

    def exists_by_username(self, username: str) -> bool:
        with self._lock:
            return self._live(username) is not None

    def exists_by_handle_excluding(self, handle: str, username: str) -> bool:
        handle_key, user_key = handle.lower(), username.lower()
        with self._lock:
            return any(
                not r.account.deleted
                and r.account.handle.lower() == handle_key
                and r.account.username.lower() != user_key
                for r in self._records
            )

    def begin(self) -> "InMemoryUnitOfWork":
        return InMemoryUnitOfWork(self)

    def insert(self, account: Account, password_hash: str) -> None:
        with self._lock:
            if self._live(account.username) is not None:
                raise AccountConflict("username", account.username)
            if self.exists_by_handle_excluding(account.handle, account.username):
                raise AccountConflict("handle", account.handle)
            self._records.append(_Record(replace(account), password_hash, []))

    def update(self, account: Account) -> None:
        with self._lock:
            record = self._live(account.username)
            if record is None:
                return
            if self.exists_by_handle_excluding(account.handle, account.username):
                raise AccountConflict("handle", account.handle)
            record.account = replace(account, username=record.account.username)

    def delete(self, username: str) -> bool:
        """Soft-delete the account; it disappears from every query."""
        with self._lock:
            record = self._live(username)
            if record is None:
                return False
            record.account.deleted = True
            return True

    def verify_password(self, username: str, password: str) -> bool:
        with self._lock:
            record = self._live(username)
            stored_hash = record.password_hash if record else _DUMMY_BCRYPT_HASH
        password_valid = bcrypt.checkpw(password.encode(), stored_hash.encode())
        return record is not None and password_valid

    def set_password(self, username: str, password_hash: str) -> bool:
        with self._lock:
            record = self._live(username)
            if record is None:
                return False
            record.password_hash = password_hash
            return True

    def add_role(self, username: str, role: str) -> bool:
        with self._lock:
            record = self._live(username)
            if record is None or role in self.rejected_roles:
                return False
            if role not in record.roles:
                record.roles.append(role)
            return True

    def get_roles(self, username: str) -> list[str]:
        with self._lock:
            record = self._live(username)
            return sorted(record.roles) if record else []


class InMemoryUnitOfWork:
    """
    Unit of work over InMemoryCredentialStore.

    Writes go straight to the store; rollback() compensates by deleting
    every account created inside the scope.
    """

    def __init__(self, store: InMemoryCredentialStore) -> None:
        self._store = store
        self._created: list[str] = []
        self._finished = False

    def __enter__(self) -> "InMemoryUnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self._finished:
            self.rollback()

    def create(self, account: Account, password_hash: str) -> None:
        self._store.insert(account, password_hash)
        self._created.append(account.username)

    def exists_by_handle_excluding(self, handle: str, username: str) -> bool:
        return self._store.exists_by_handle_excluding(handle, username)

    def add_role(self, username: str, role: str) -> bool:
        return self._store.add_role(username, role)

    def get_roles(self, username: str) -> list[str]:
        return self._store.get_roles(username)

    def commit(self) -> None:
        self._created.clear()
        self._finished = True

    def rollback(self) -> None:
        for username in self._created:
            self._store.delete(username)
            logger.info("Compensated account creation for %s", username)
        self._created.clear()
        self._finished = True


@dataclass
class _StoredChallenge:
    challenge: Challenge
    consumed: bool = False
    invalidated: bool = False
    attempts: int = 0


class InMemoryChallengeRepository:
    """
    Implements ChallengeRepository protocol in process memory.

    A challenge is invalidated after `max_attempts` wrong codes.
    """

    def __init__(self, max_attempts: int = 3) -> None:
        self._challenges: list[_StoredChallenge] = []
        self._lock = threading.Lock()
        self._max_attempts = max_attempts

    def save(self, challenge: Challenge) -> None:
        with self._lock:
            self._challenges.append(_StoredChallenge(challenge))

    def invalidate(self, username: str) -> int:
        key = username.lower()
        count = 0
        with self._lock:
            for stored in self._challenges:
                if stored.challenge.username.lower() == key and not (stored.consumed or stored.invalidated):
                    stored.invalidated = True
                    count += 1
        return count

    def consume(self, username: str, purpose: ChallengePurpose, code: str) -> bool:
        key = username.lower()
        now = datetime.now(timezone.utc)
        with self._lock:
            active = [
                s
                for s in self._challenges
                if s.challenge.username.lower() == key
                and s.challenge.purpose == purpose
                and not (s.consumed or s.invalidated)
                and s.challenge.expires_at > now
            ]
            if not active:
                return False
            latest = active[-1]
            if not secrets.compare_digest(latest.challenge.code.encode(), code.encode()):
                latest.attempts += 1
                if latest.attempts >= self._max_attempts:
                    latest.invalidated = True
                    logger.warning("Challenge for %s invalidated after %d wrong codes", username, latest.attempts)
                return False
            latest.consumed = True
            return True
