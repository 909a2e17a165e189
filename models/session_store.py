"""
Durable record of issued refresh tokens.

The store works inside the caller's transaction: it adds and flushes but never
commits. Revocation is a single conditional UPDATE, so two requests racing on
the same token cannot both win.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import or_

from models.base_model import utcnow
from models.db_storage import DBStorage
from models.refresh_token import RefreshToken


class SessionStore:
    def __init__(self, storage: DBStorage) -> None:
        self.storage = storage

    def create(self, user_id: str, digest: str, expires_at: datetime) -> RefreshToken:
        record = RefreshToken(user_id=user_id, token_hash=digest, expires_at=expires_at)
        self.storage.new(record)
        self.storage.get_session().flush()
        return record

    def find_active_by_digest(self, digest: str) -> Optional[RefreshToken]:
        session = self.storage.get_session()
        return (
            session.query(RefreshToken)
            .filter(
                RefreshToken.token_hash == digest,
                RefreshToken.revoked_at.is_(None),
                RefreshToken.expires_at > utcnow(),
            )
            .first()
        )

    def revoke(self, token_id: str) -> bool:
        """
        Revoke a token iff it is still active. Returns True only for the call that
        flipped it; later calls (or a losing concurrent call) get False.
        """
        now = utcnow()
        session = self.storage.get_session()
        count = (
            session.query(RefreshToken)
            .filter(
                RefreshToken.id == token_id,
                RefreshToken.revoked_at.is_(None),
                RefreshToken.expires_at > now,
            )
            .update({RefreshToken.revoked_at: now}, synchronize_session="fetch")
        )
        return count == 1

    def revoke_all(self, user_id: str) -> int:
        now = utcnow()
        session = self.storage.get_session()
        return (
            session.query(RefreshToken)
            .filter(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None))
            .update({RefreshToken.revoked_at: now}, synchronize_session="fetch")
        )

    def purge(self, older_than: Optional[datetime] = None) -> int:
        """Delete rows that can never be used again: expired or revoked before the cutoff."""
        cutoff = older_than or utcnow()
        session = self.storage.get_session()
        return (
            session.query(RefreshToken)
            .filter(
                or_(
                    RefreshToken.expires_at < cutoff,
                    RefreshToken.revoked_at < cutoff,
                )
            )
            .delete(synchronize_session="fetch")
        )
