from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError

from models.base_model import utcnow
from models.db_storage import DBStorage
from models.session_store import SessionStore
from models.tenant import Tenant, TenantStatus
from models.user import User, UserStatus
from services.errors import (
    DuplicateEmailError,
    DuplicateSlugError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotFoundError,
)
from services.events import EventBus
from utils.roles import Role
from utils.security import CredentialVerifier, WorkerPool
from utils.tokens import TokenCodec, TokenPair

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    user: User
    tenant: Tenant
    tokens: TokenPair


class AuthService:
    """Register, login, refresh rotation, logout and current-user lookup.

    Every operation that issues tokens persists the refresh digest in the same
    transaction as the rest of its writes. Events go out only after commit.
    """

    def __init__(
        self,
        storage: DBStorage,
        sessions: SessionStore,
        verifier: CredentialVerifier,
        codec: TokenCodec,
        pool: WorkerPool,
        events: Optional[EventBus] = None,
    ) -> None:
        self.storage = storage
        self.sessions = sessions
        self.verifier = verifier
        self.codec = codec
        self.pool = pool
        self.events = events

    # helpers

    def _find_user_by_email(self, email: str) -> Optional[User]:
        """Email lookup across all tenants; registration keeps emails globally unique."""
        session = self.storage.get_session()
        return (
            session.query(User)
            .filter(User.email == email.strip().lower())
            .order_by(User.created_at.asc())
            .first()
        )

    def _slug_taken(self, slug: str) -> bool:
        session = self.storage.get_session()
        return session.query(Tenant.id).filter(Tenant.slug == slug).first() is not None

    def _issue(self, user: User) -> TokenPair:
        """Mint a pair for user and stage its refresh digest in the open transaction."""
        pair = self.codec.issue_pair(user.id, user.tenant_id, user.role)
        digest = self.pool.run(self.codec.digest, pair.refresh_token)
        self.sessions.create(user.id, digest, pair.refresh_expires_at)
        return pair

    def _publish(self, name: str, **kwargs) -> None:
        if self.events is not None:
            self.events.publish(name, **kwargs)

    # operations

    def register(
        self,
        tenant_name: str,
        slug: str,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
    ) -> AuthResult:
        email = email.strip().lower()
        if self._slug_taken(slug):
            raise DuplicateSlugError()
        if self._find_user_by_email(email):
            raise DuplicateEmailError()

        password_hash = self.verifier.hash_password(password)

        try:
            with self.storage.transaction() as session:
                tenant = Tenant(name=tenant_name, slug=slug, status=TenantStatus.ACTIVE.value)
                session.add(tenant)
                session.flush()
                user = User(
                    tenant_id=tenant.id,
                    email=email,
                    password_hash=password_hash,
                    first_name=first_name,
                    last_name=last_name,
                    role=Role.OWNER.value,
                    status=UserStatus.ACTIVE.value,
                )
                session.add(user)
                session.flush()
                tokens = self._issue(user)
        except IntegrityError:
            # Lost a race with a concurrent registration; the transaction is rolled back
            if self._slug_taken(slug):
                raise DuplicateSlugError()
            if self._find_user_by_email(email):
                raise DuplicateEmailError()
            raise

        logger.info("Registered tenant %s", tenant.id)
        self._publish(
            "auth.registered",
            tenant_id=tenant.id,
            actor_id=user.id,
            entity_id=tenant.id,
            data={"name": tenant.name, "slug": tenant.slug},
        )
        return AuthResult(user=user, tenant=tenant, tokens=tokens)

    def login(self, email: str, password: str) -> AuthResult:
        user = self._find_user_by_email(email or "")
        # All four failure modes share one error so callers learn nothing
        if user is None:
            self.verifier.verify_dummy(password or "")
            logger.info("Login failed: unknown email")
            raise InvalidCredentialsError()
        if not self.verifier.verify_password(password, user.password_hash):
            logger.info("Login failed for user %s: bad password", user.id)
            raise InvalidCredentialsError()
        if not user.is_active or not user.tenant.is_active:
            logger.info("Login failed for user %s: inactive account", user.id)
            raise InvalidCredentialsError()

        with self.storage.transaction():
            user.last_login_at = utcnow()
            tokens = self._issue(user)

        self._publish("auth.login", tenant_id=user.tenant_id, actor_id=user.id, entity_id=user.id)
        return AuthResult(user=user, tenant=user.tenant, tokens=tokens)

    def refresh(self, refresh_token: str) -> TokenPair:
        """
        Rotate a refresh token: revoke the presented one and issue a new pair.
        The presented token is single-use; a replay or a lost race is InvalidToken.
        """
        if not self.codec.looks_like_refresh_token(refresh_token):
            raise InvalidTokenError()
        digest = self.pool.run(self.codec.digest, refresh_token)

        with self.storage.transaction() as session:
            record = self.sessions.find_active_by_digest(digest)
            if record is None:
                raise InvalidTokenError()
            user = session.get(User, record.user_id)
            if user is None:
                raise NotFoundError("User")
            if not user.is_active or not user.tenant.is_active:
                raise InvalidTokenError()
            if not self.sessions.revoke(record.id):
                # Someone else rotated this token between our read and our update
                logger.warning("Refresh token %s reused concurrently", record.id)
                raise InvalidTokenError()
            tokens = self._issue(user)

        self._publish("auth.refreshed", tenant_id=user.tenant_id, actor_id=user.id, entity_id=user.id)
        return tokens

    def logout(self, refresh_token: str) -> None:
        """Revoke a refresh token if it is live. Never reveals whether it was."""
        if not self.codec.looks_like_refresh_token(refresh_token):
            return
        digest = self.pool.run(self.codec.digest, refresh_token)
        with self.storage.transaction():
            record = self.sessions.find_active_by_digest(digest)
            revoked = record is not None and self.sessions.revoke(record.id)
            user_id = record.user_id if record is not None else None

        if revoked:
            user = self.storage.get(User, user_id)
            self._publish(
                "auth.logout",
                tenant_id=user.tenant_id if user else None,
                actor_id=user_id,
                entity_id=user_id,
            )

    def logout_all(self, user_id: str) -> int:
        with self.storage.transaction():
            count = self.sessions.revoke_all(user_id)
        user = self.storage.get(User, user_id)
        self._publish(
            "auth.logout_all",
            tenant_id=user.tenant_id if user else None,
            actor_id=user_id,
            entity_id=user_id,
            data={"revoked": count},
        )
        return count

    def get_current_user(self, user_id: str, tenant_id: Optional[str] = None) -> Tuple[User, Tenant]:
        user = self.storage.get(User, user_id)
        # A token minted for one tenant never resolves a user of another
        if user is None or (tenant_id is not None and user.tenant_id != tenant_id):
            raise NotFoundError("User")
        return user, user.tenant
