"""
In-memory repository adapter - Implements IdentityRepository protocol.

Process-local store for development and tests. A single lock makes every
method atomic, mirroring the transactional guarantees of the PostgreSQL
adapter (unique email, guarded verification, one-step identity/company
creation).
"""

import threading
import uuid
from dataclasses import replace
from datetime import datetime

from src.domain.exceptions import IdentityConflict
from src.domain.ports import Company, Identity
from src.domain.roles import Role


class InMemoryIdentityRepository:
    """
    Implements IdentityRepository protocol with dictionaries.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._identities: dict[str, Identity] = {}
        self._companies: dict[str, Company] = {}
        self._ids_by_email: dict[str, str] = {}

    def get_by_email(self, email: str) -> Identity | None:
        with self._lock:
            identity_id = self._ids_by_email.get(email)
            return self._identities.get(identity_id) if identity_id is not None else None

    def get_by_id(self, identity_id: str) -> Identity | None:
        with self._lock:
            return self._identities.get(identity_id)

    def get_company(self, company_id: str) -> Company | None:
        with self._lock:
            return self._companies.get(company_id)

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
        with self._lock:
            if email in self._ids_by_email:
                raise IdentityConflict(email)

            identity_id = str(uuid.uuid4())
            company_id = str(uuid.uuid4())
            self._identities[identity_id] = Identity(
                id=identity_id,
                email=email,
                name=name,
                password_hash=password_hash,
                role=role,
                otp=otp,
                otp_created_at=otp_created_at,
                company_id=company_id,
            )
            self._companies[company_id] = Company(id=company_id, name=company_name, owner_id=identity_id)
            self._ids_by_email[email] = identity_id
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
        with self._lock:
            identity = self._identities.get(identity_id)
            if identity is None or identity.is_verified:
                return False
            self._identities[identity_id] = replace(
                identity,
                name=name,
                password_hash=password_hash,
                role=role,
                otp=otp,
                otp_created_at=otp_created_at,
            )
            return True

    def upsert_company(self, identity_id: str, company_name: str) -> str:
        with self._lock:
            identity = self._identities[identity_id]
            if identity.company_id is not None and identity.company_id in self._companies:
                company = self._companies[identity.company_id]
                self._companies[company.id] = replace(company, name=company_name)
                return company.id

            company_id = str(uuid.uuid4())
            self._companies[company_id] = Company(id=company_id, name=company_name, owner_id=identity_id)
            self._identities[identity_id] = replace(identity, company_id=company_id)
            return company_id

    def mark_verified(self, identity_id: str, otp: int, otp_created_at: datetime) -> Identity | None:
        with self._lock:
            identity = self._identities.get(identity_id)
            if identity is None or identity.is_verified:
                return None
            if identity.otp != otp or identity.otp_created_at != otp_created_at:
                return None
            verified = replace(identity, is_verified=True, otp=None, otp_created_at=None)
            self._identities[identity_id] = verified
            return verified

    def record_login(self, identity_id: str, session_token: str, logged_in_at: datetime) -> Identity:
        with self._lock:
            identity = replace(
                self._identities[identity_id],
                last_login_at=logged_in_at,
                session_token=session_token,
            )
            self._identities[identity_id] = identity
            return identity

    def update_password_hash(self, identity_id: str, password_hash: str) -> None:
        with self._lock:
            self._identities[identity_id] = replace(
                self._identities[identity_id], password_hash=password_hash
            )
