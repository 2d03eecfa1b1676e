"""
PostgreSQL repository adapters - Implement CredentialStore, UnitOfWork
and ChallengeRepository via psycopg3 with raw SQL.

Uniqueness of usernames and handles is enforced by partial unique indexes
over live (non-deleted) rows. A UniqueViolation is translated into
AccountConflict and is the authoritative duplicate signal; the domain's
existence checks are only a fast path.

Security Design - Timing Oracle Prevention:
------------------------------------------
verify_password always runs bcrypt.checkpw(), against a pre-computed
dummy hash when the account does not exist, so response time does not
reveal account existence. Passcodes are compared with
secrets.compare_digest().
"""

import logging
import secrets
from pathlib import Path

import bcrypt
import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from src.domain.exceptions import AccountConflict
from src.domain.models import Account, Challenge
from src.domain.ports import ChallengePurpose

logger = logging.getLogger(__name__)

# Pre-computed bcrypt hash for timing oracle prevention.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()

_CONSTRAINT_FIELDS = {
    "accounts_username_key": "username",
    "accounts_handle_key": "handle",
}

_ACCOUNT_COLUMNS = """
    username, email, first_name, last_name, handle, gender, email_confirmed,
    trusted_device_id, accepted_terms, created_by, created_date,
    modified_by, modified_date, deleted
"""

_HANDLE_TAKEN_SQL = """
    SELECT 1 FROM accounts
    WHERE lower(handle) = lower(%s)
      AND lower(username) <> lower(%s)
      AND deleted = FALSE
"""


def _row_to_account(row: dict) -> Account:
    return Account(**row)


def _conflict_from(exc: psycopg.errors.UniqueViolation, account: Account) -> AccountConflict:
    field = _CONSTRAINT_FIELDS.get(exc.diag.constraint_name or "", "username")
    value = account.handle if field == "handle" else account.username
    return AccountConflict(field, value)


class PostgresCredentialStore:
    """
    Implements CredentialStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries; every query filters deleted rows.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def find_by_username(self, username: str) -> Account | None:
        sql = f"""
            SELECT {_ACCOUNT_COLUMNS}
            FROM accounts
            WHERE lower(username) = lower(%s) AND deleted = FALSE
        """
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (username,))
            row = cursor.fetchone()
        return _row_to_account(row) if row is not None else None

    def exists_by_username(self, username: str) -> bool:
        sql = "SELECT 1 FROM accounts WHERE lower(username) = lower(%s) AND deleted = FALSE"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (username,))
            return cursor.fetchone() is not None

    def exists_by_handle_excluding(self, handle: str, username: str) -> bool:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(_HANDLE_TAKEN_SQL, (handle, username))
            return cursor.fetchone() is not None

    def begin(self) -> "PostgresUnitOfWork":
        return PostgresUnitOfWork(self._pool)

    def update(self, account: Account) -> None:
        """
        Persist mutable account fields.

        Raises:
            AccountConflict: the handle is owned by another live account
        """
        sql = """
            UPDATE accounts
            SET email = %s, first_name = %s, last_name = %s, handle = %s, gender = %s,
                email_confirmed = %s, trusted_device_id = %s,
                modified_by = %s, modified_date = %s
            WHERE lower(username) = lower(%s) AND deleted = FALSE
        """
        params = (
            account.email,
            account.first_name,
            account.last_name,
            account.handle,
            account.gender,
            account.email_confirmed,
            account.trusted_device_id,
            account.modified_by,
            account.modified_date,
            account.username,
        )
        try:
            with self._pool.connection() as conn:
                conn.execute(sql, params)
        except psycopg.errors.UniqueViolation as exc:
            raise _conflict_from(exc, account) from exc

    def delete(self, username: str) -> bool:
        """Soft-delete the account; it disappears from every query."""
        sql = "UPDATE accounts SET deleted = TRUE WHERE lower(username) = lower(%s) AND deleted = FALSE"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (username,))
            return cursor.rowcount == 1

    def verify_password(self, username: str, password: str) -> bool:
        sql = "SELECT password_hash FROM accounts WHERE lower(username) = lower(%s) AND deleted = FALSE"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (username,))
            row = cursor.fetchone()

        # CRITICAL: always run bcrypt so a missing account costs the same time
        stored_hash = row[0] if row is not None else _DUMMY_BCRYPT_HASH
        password_valid = bcrypt.checkpw(password.encode(), stored_hash.encode())
        return row is not None and password_valid

    def set_password(self, username: str, password_hash: str) -> bool:
        sql = "UPDATE accounts SET password_hash = %s WHERE lower(username) = lower(%s) AND deleted = FALSE"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (password_hash, username))
            return cursor.rowcount == 1

    def get_roles(self, username: str) -> list[str]:
        with self._pool.connection() as conn:
            return _select_roles(conn, username)


class PostgresUnitOfWork:
    """
    Registration unit of work: one connection, one transaction.

    Each insert runs after a savepoint so a unique violation can be
    retried without aborting the surrounding transaction. Exiting the
    block without commit() rolls everything back.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool
        self._conn_ctx = None
        self._conn: psycopg.Connection | None = None
        self._finished = False

    def __enter__(self) -> "PostgresUnitOfWork":
        self._conn_ctx = self._pool.connection()
        self._conn = self._conn_ctx.__enter__()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if not self._finished:
                self.rollback()
        finally:
            self._conn_ctx.__exit__(exc_type, exc, tb)
            self._conn = None

    def create(self, account: Account, password_hash: str) -> None:
        sql = """
            INSERT INTO accounts (
                username, email, first_name, last_name, handle, gender, password_hash,
                email_confirmed, trusted_device_id, accepted_terms, created_by, created_date
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        """
        params = (
            account.username,
            account.email,
            account.first_name,
            account.last_name,
            account.handle,
            account.gender,
            password_hash,
            account.email_confirmed,
            account.trusted_device_id,
            account.accepted_terms,
            account.created_by,
            account.created_date,
        )
        self._conn.execute("SAVEPOINT account_create")
        try:
            self._conn.execute(sql, params)
        except psycopg.errors.UniqueViolation as exc:
            self._conn.execute("ROLLBACK TO SAVEPOINT account_create")
            raise _conflict_from(exc, account) from exc

    def exists_by_handle_excluding(self, handle: str, username: str) -> bool:
        with self._conn.cursor() as cursor:
            cursor.execute(_HANDLE_TAKEN_SQL, (handle, username))
            return cursor.fetchone() is not None

    def add_role(self, username: str, role: str) -> bool:
        sql = """
            INSERT INTO account_roles (account_id, role)
            SELECT id, %s FROM accounts WHERE lower(username) = lower(%s) AND deleted = FALSE
            ON CONFLICT DO NOTHING
        """
        self._conn.execute("SAVEPOINT role_assign")
        try:
            with self._conn.cursor() as cursor:
                cursor.execute(sql, (role, username))
                return cursor.rowcount == 1
        except psycopg.errors.IntegrityError as exc:
            self._conn.execute("ROLLBACK TO SAVEPOINT role_assign")
            logger.warning("Role %s rejected for %s: %s", role, username, exc.diag.message_primary)
            return False

    def get_roles(self, username: str) -> list[str]:
        return _select_roles(self._conn, username)

    def commit(self) -> None:
        self._conn.commit()
        self._finished = True

    def rollback(self) -> None:
        self._conn.rollback()
        self._finished = True


def _select_roles(conn: psycopg.Connection, username: str) -> list[str]:
    sql = """
        SELECT r.role
        FROM account_roles r
        JOIN accounts a ON a.id = r.account_id
        WHERE lower(a.username) = lower(%s) AND a.deleted = FALSE
        ORDER BY r.role
    """
    with conn.cursor() as cursor:
        cursor.execute(sql, (username,))
        return [row[0] for row in cursor.fetchall()]


class PostgresChallengeRepository:
    """
    Implements ChallengeRepository protocol via psycopg3.

    Wrong codes are counted on the challenge row; the challenge is
    invalidated once the count reaches `max_attempts`.
    """

    def __init__(self, pool: ConnectionPool, max_attempts: int = 3) -> None:
        self._pool = pool
        self._max_attempts = max_attempts

    def save(self, challenge: Challenge) -> None:
        sql = """
            INSERT INTO challenges (username, purpose, code, expires_at)
            VALUES (%s, %s, %s, %s)
        """
        with self._pool.connection() as conn:
            conn.execute(
                sql,
                (challenge.username, challenge.purpose.value, challenge.code, challenge.expires_at),
            )

    def invalidate(self, username: str) -> int:
        sql = """
            UPDATE challenges SET invalidated = TRUE
            WHERE lower(username) = lower(%s) AND invalidated = FALSE AND consumed_at IS NULL
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (username,))
            return cursor.rowcount

    def consume(self, username: str, purpose: ChallengePurpose, code: str) -> bool:
        """
        Mark the active, unexpired challenge as used if `code` matches.

        The row is locked (SELECT FOR UPDATE) so a code can be consumed once
        and concurrent wrong guesses are all counted.
        """
        select_sql = """
            SELECT id, code, attempts FROM challenges
            WHERE lower(username) = lower(%s)
              AND purpose = %s
              AND invalidated = FALSE
              AND consumed_at IS NULL
              AND expires_at > NOW()
            ORDER BY created_at DESC
            LIMIT 1
            FOR UPDATE
        """
        consume_sql = "UPDATE challenges SET consumed_at = NOW() WHERE id = %s"
        failure_sql = """
            UPDATE challenges
            SET attempts = attempts + 1, invalidated = (attempts + 1 >= %s)
            WHERE id = %s
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(select_sql, (username, purpose.value))
            row = cursor.fetchone()
            stored_code = row[1] if row is not None else "0" * len(code)
            code_valid = secrets.compare_digest(stored_code.encode(), code.encode())
            if row is None:
                return False
            if not code_valid:
                cursor.execute(failure_sql, (self._max_attempts, row[0]))
                if row[2] + 1 >= self._max_attempts:
                    logger.warning("Challenge for %s invalidated after %d wrong codes", username, row[2] + 1)
                return False
            cursor.execute(consume_sql, (row[0],))
            return True


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            with pool.connection() as conn:
                conn.execute(sql_file.read_text())
            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
