"""
Team management inside a tenant.

Every lookup is filtered by the actor's tenant, so an id from another tenant
is simply not found. Mutations follow the role hierarchy in utils.roles:
nobody acts on themselves, owners are untouchable, and you can only manage
or grant roles strictly below your own.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_

from models.db_storage import DBStorage
from models.session_store import SessionStore
from models.user import User, UserStatus
from services.errors import DuplicateEmailError, NotFoundError, ValidationError
from services.events import EventBus
from utils.roles import Role, check_can_grant, check_can_manage_user, check_not_self
from utils.security import CredentialVerifier, generate_temp_password
from utils.tokens import Identity

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "created_at": User.created_at,
    "email": User.email,
    "first_name": User.first_name,
    "last_name": User.last_name,
    "role": User.role,
    "last_login_at": User.last_login_at,
}


class UserService:
    def __init__(
        self,
        storage: DBStorage,
        sessions: SessionStore,
        verifier: CredentialVerifier,
        events: Optional[EventBus] = None,
    ) -> None:
        self.storage = storage
        self.sessions = sessions
        self.verifier = verifier
        self.events = events

    def _publish(self, name: str, actor: Identity, entity_id: str, **data) -> None:
        if self.events is not None:
            self.events.publish(
                name, tenant_id=actor.tenant_id, actor_id=actor.user_id, entity_id=entity_id, data=data
            )

    def _get_in_tenant(self, tenant_id: str, user_id: str) -> User:
        session = self.storage.get_session()
        user = session.query(User).filter(User.id == user_id, User.tenant_id == tenant_id).first()
        if user is None:
            raise NotFoundError("User")
        return user

    def _load_target(self, actor: Identity, target_id: str, action: str) -> User:
        check_not_self(actor.user_id, target_id, action)
        target = self._get_in_tenant(actor.tenant_id, target_id)
        check_can_manage_user(actor.role, target.role, action)
        return target

    # reads

    def get_user(self, tenant_id: str, user_id: str) -> User:
        return self._get_in_tenant(tenant_id, user_id)

    def list_users(
        self,
        tenant_id: str,
        *,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        role: Optional[str] = None,
        status: Optional[str] = None,
        sort: str = "-created_at",
    ) -> Tuple[List[User], int]:
        session = self.storage.get_session()
        query = session.query(User).filter(User.tenant_id == tenant_id)
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(User.email).like(pattern),
                    func.lower(User.first_name).like(pattern),
                    func.lower(User.last_name).like(pattern),
                )
            )
        if role:
            query = query.filter(User.role == role)
        if status:
            query = query.filter(User.status == status)

        desc = sort.startswith("-")
        key = sort[1:] if desc else sort
        column = SORT_COLUMNS.get(key)
        if column is None:
            raise ValidationError(f"Unsupported sort field: {key}")

        total = query.count()
        rows = (
            query.order_by(column.desc() if desc else column.asc(), User.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return rows, total

    def team_stats(self, tenant_id: str) -> Dict[str, Dict[str, int]]:
        session = self.storage.get_session()
        by_role = dict(
            session.query(User.role, func.count(User.id))
            .filter(User.tenant_id == tenant_id)
            .group_by(User.role)
            .all()
        )
        by_status = dict(
            session.query(User.status, func.count(User.id))
            .filter(User.tenant_id == tenant_id)
            .group_by(User.status)
            .all()
        )
        return {
            "total": sum(by_role.values()),
            "byRole": {r.value: by_role.get(r.value, 0) for r in Role},
            "byStatus": {s.value: by_status.get(s.value, 0) for s in UserStatus},
        }

    # writes

    def invite(
        self, actor: Identity, email: str, first_name: str, last_name: str, role: str = Role.USER.value
    ) -> Tuple[User, str]:
        """Create a pending user with a temporary password. Returns (user, temp_password)."""
        check_can_grant(actor.role, role)
        email = email.strip().lower()
        session = self.storage.get_session()
        # Emails are unique across tenants so login stays unambiguous
        if session.query(User.id).filter(User.email == email).first() is not None:
            raise DuplicateEmailError()

        temp_password = generate_temp_password()
        password_hash = self.verifier.hash_password(temp_password)
        with self.storage.transaction() as session:
            user = User(
                tenant_id=actor.tenant_id,
                email=email,
                password_hash=password_hash,
                first_name=first_name,
                last_name=last_name,
                role=Role.parse(role).value,
                status=UserStatus.PENDING.value,
            )
            session.add(user)

        self._publish("user.invited", actor, user.id, role=user.role)
        return user, temp_password

    def update_profile(
        self,
        actor: Identity,
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
        clear_avatar: bool = False,
    ) -> User:
        user = self._get_in_tenant(actor.tenant_id, actor.user_id)
        changes = {}
        if first_name is not None:
            changes["first_name"] = first_name
        if last_name is not None:
            changes["last_name"] = last_name
        if avatar_url is not None or clear_avatar:
            changes["avatar_url"] = avatar_url or None
        if not changes:
            return user

        with self.storage.transaction():
            for key, value in changes.items():
                setattr(user, key, value)
        self._publish("user.profile_updated", actor, user.id, fields=sorted(changes))
        return user

    def change_password(self, actor: Identity, current_password: str, new_password: str) -> None:
        """Swap the password and sign the user out everywhere."""
        user = self._get_in_tenant(actor.tenant_id, actor.user_id)
        if not self.verifier.verify_password(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect", error_code="INVALID_PASSWORD")
        new_hash = self.verifier.hash_password(new_password)
        with self.storage.transaction():
            user.password_hash = new_hash
            revoked = self.sessions.revoke_all(user.id)
        self._publish("user.password_changed", actor, user.id, revoked=revoked)

    def update_role(self, actor: Identity, target_id: str, role: str) -> User:
        target = self._load_target(actor, target_id, "modify")
        check_can_grant(actor.role, role)
        old_role = target.role
        with self.storage.transaction():
            target.role = Role.parse(role).value
        self._publish("user.role_changed", actor, target.id, old=old_role, new=target.role)
        return target

    def update_status(self, actor: Identity, target_id: str, status: str) -> User:
        target = self._load_target(actor, target_id, "modify")
        new_status = UserStatus(status).value
        old_status = target.status
        with self.storage.transaction():
            target.status = new_status
            if new_status != UserStatus.ACTIVE.value:
                # Deactivation is a forced sign-out
                self.sessions.revoke_all(target.id)
        self._publish("user.status_changed", actor, target.id, old=old_status, new=new_status)
        return target

    def delete_user(self, actor: Identity, target_id: str) -> None:
        target = self._load_target(actor, target_id, "delete")
        with self.storage.transaction():
            self.sessions.revoke_all(target.id)
            self.storage.delete(target)
        logger.info("Deleted user %s from tenant %s", target_id, actor.tenant_id)
        self._publish("user.deleted", actor, target_id, email=target.email)
