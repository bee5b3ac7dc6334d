"""
PostgreSQL repository adapter - Implements IdentityRepository protocol.

This module provides the PostgreSQL implementation of the domain's
repository port using psycopg3 with raw SQL.

Identity/Company creation:
--------------------------
A new identity and the company it owns reference each other. Neither row
can point at the other when it is inserted, so creation runs as three
statements in ONE transaction:

1. INSERT the identity with company_id NULL
2. INSERT the company with owner_id = new identity id
3. UPDATE the identity with the new company_id

A failure at any step rolls back all three, so no identity is ever left
companyless.

Verification is a guarded UPDATE (WHERE is_verified = FALSE and the OTP
is still the one that was checked); concurrent duplicate submissions see
exactly one success, and a re-registration that replaced the OTP wins.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import psycopg
from psycopg import errors
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from src.domain.exceptions import IdentityConflict
from src.domain.ports import Company, Identity
from src.domain.roles import Role

logger = logging.getLogger(__name__)

_IDENTITY_COLUMNS = """
    id::text AS id, email, name, password_hash, role, is_verified, otp,
    otp_created_at, last_login_at, session_token, company_id::text AS company_id
"""


def _to_identity(row: dict[str, Any]) -> Identity:
    return Identity(
        id=row["id"],
        email=row["email"],
        name=row["name"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        is_verified=row["is_verified"],
        otp=row["otp"],
        otp_created_at=row["otp_created_at"],
        last_login_at=row["last_login_at"],
        session_token=row["session_token"],
        company_id=row["company_id"],
    )


class PostgresIdentityRepository:
    """
    Implements IdentityRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def get_by_email(self, email: str) -> Identity | None:
        sql = f"SELECT {_IDENTITY_COLUMNS} FROM users WHERE email = %s"
        return self._fetch_identity(sql, (email,))

    def get_by_id(self, identity_id: str) -> Identity | None:
        sql = f"SELECT {_IDENTITY_COLUMNS} FROM users WHERE id = %s::uuid"
        return self._fetch_identity(sql, (identity_id,))

    def get_company(self, company_id: str) -> Company | None:
        sql = """
            SELECT id::text AS id, name, owner_id::text AS owner_id, is_approved
            FROM companies
            WHERE id = %s::uuid
        """
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (company_id,))
            row = cursor.fetchone()
        if row is None:
            return None
        return Company(
            id=row["id"],
            name=row["name"],
            owner_id=row["owner_id"],
            is_approved=row["is_approved"],
        )

    def create_pending(
        self,
        email: str,
        name: str,
        password_hash: str,
        role: Role,
        otp: int,
        otp_created_at: datetime,
        company_name: str,
    ) -> tuple[str, str]:
        """
        Create an unverified identity and its company in one transaction.

        Raises:
            IdentityConflict: If the email UNIQUE constraint is violated
        """
        insert_identity_sql = """
            INSERT INTO users (email, name, password_hash, role, is_verified, otp, otp_created_at)
            VALUES (%s, %s, %s, %s, FALSE, %s, %s)
            RETURNING id::text
        """
        insert_company_sql = """
            INSERT INTO companies (name, owner_id)
            VALUES (%s, %s::uuid)
            RETURNING id::text
        """
        link_sql = """
            UPDATE users SET company_id = %s::uuid, updated_at = NOW()
            WHERE id = %s::uuid
        """

        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(
                    insert_identity_sql,
                    (email, name, password_hash, role.value, otp, otp_created_at),
                )
                identity_id = cursor.fetchone()[0]

                cursor.execute(insert_company_sql, (company_name, identity_id))
                company_id = cursor.fetchone()[0]

                cursor.execute(link_sql, (company_id, identity_id))
                conn.commit()
        except errors.UniqueViolation as e:
            raise IdentityConflict(email) from e

        return identity_id, company_id

    def update_pending(
        self,
        identity_id: str,
        name: str,
        password_hash: str,
        role: Role,
        otp: int,
        otp_created_at: datetime,
    ) -> bool:
        sql = """
            UPDATE users
            SET name = %s, password_hash = %s, role = %s,
                otp = %s, otp_created_at = %s, updated_at = NOW()
            WHERE id = %s::uuid AND is_verified = FALSE
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (name, password_hash, role.value, otp, otp_created_at, identity_id))
            conn.commit()
            return cursor.rowcount == 1

    def upsert_company(self, identity_id: str, company_name: str) -> str:
        """
        Rename the linked company, or create and link one.

        Runs in one transaction with the identity row locked.
        """
        lock_sql = "SELECT company_id::text FROM users WHERE id = %s::uuid FOR UPDATE"
        rename_sql = """
            UPDATE companies SET name = %s, updated_at = NOW()
            WHERE id = %s::uuid
        """
        insert_sql = """
            INSERT INTO companies (name, owner_id)
            VALUES (%s, %s::uuid)
            RETURNING id::text
        """
        link_sql = """
            UPDATE users SET company_id = %s::uuid, updated_at = NOW()
            WHERE id = %s::uuid
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(lock_sql, (identity_id,))
            row = cursor.fetchone()
            company_id = row[0] if row is not None else None

            if company_id is not None:
                cursor.execute(rename_sql, (company_name, company_id))
            else:
                cursor.execute(insert_sql, (company_name, identity_id))
                company_id = cursor.fetchone()[0]
                cursor.execute(link_sql, (company_id, identity_id))

            conn.commit()
        return company_id

    def mark_verified(self, identity_id: str, otp: int, otp_created_at: datetime) -> Identity | None:
        sql = f"""
            UPDATE users
            SET is_verified = TRUE, otp = NULL, otp_created_at = NULL, updated_at = NOW()
            WHERE id = %s::uuid AND is_verified = FALSE
              AND otp = %s AND otp_created_at = %s
            RETURNING {_IDENTITY_COLUMNS}
        """
        return self._fetch_identity(sql, (identity_id, otp, otp_created_at), commit=True)

    def record_login(self, identity_id: str, session_token: str, logged_in_at: datetime) -> Identity:
        sql = f"""
            UPDATE users
            SET last_login_at = %s, session_token = %s, updated_at = NOW()
            WHERE id = %s::uuid
            RETURNING {_IDENTITY_COLUMNS}
        """
        identity = self._fetch_identity(sql, (logged_in_at, session_token, identity_id), commit=True)
        if identity is None:
            raise LookupError(f"Identity {identity_id} disappeared during login")
        return identity

    def update_password_hash(self, identity_id: str, password_hash: str) -> None:
        sql = """
            UPDATE users SET password_hash = %s, updated_at = NOW()
            WHERE id = %s::uuid
        """
        with self._pool.connection() as conn:
            conn.execute(sql, (password_hash, identity_id))
            conn.commit()

    def _fetch_identity(self, sql: str, params: tuple, commit: bool = False) -> Identity | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, params)
            row = cursor.fetchone()
            if commit:
                conn.commit()
        return _to_identity(row) if row is not None else None


MIGRATIONS_DIR = Path(__file__).resolve().parents[3] / "migrations"


def run_migrations(pool: ConnectionPool, migrations_dir: Path = MIGRATIONS_DIR) -> None:
    """
    Apply every migrations/*.sql file in filename order.

    Files must be idempotent (IF NOT EXISTS, guarded DO blocks); they are
    re-applied on every startup.

    Raises:
        RuntimeError: If a file cannot be read or executed
    """
    if not migrations_dir.is_dir():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))
    logger.info("Applying %d migration(s) from %s", len(sql_files), migrations_dir)

    for sql_file in sql_files:
        try:
            with pool.connection() as conn:
                conn.execute(sql_file.read_text())
        except (OSError, psycopg.Error) as e:
            logger.exception("Migration failed: %s", sql_file.name)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
        logger.info("Migration applied: %s", sql_file.name)
