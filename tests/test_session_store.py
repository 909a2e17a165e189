"""Tests for the refresh token store: conditional revoke, revoke_all and purge."""

from datetime import timedelta

from models.base_model import utcnow
from models.refresh_token import RefreshToken
from utils.tokens import TokenCodec


def _create(storage, sessions, user_id, raw="a" * 64, expires_in=timedelta(days=1)):
    with storage.transaction():
        return sessions.create(user_id, TokenCodec.digest(raw), utcnow() + expires_in)


class TestFindAndRevoke:
    def test_find_active_by_digest(self, storage, sessions, owner):
        record = _create(storage, sessions, owner.id)
        found = sessions.find_active_by_digest(TokenCodec.digest("a" * 64))
        assert found is not None
        assert found.id == record.id

    def test_revoke_succeeds_exactly_once(self, storage, sessions, owner):
        record = _create(storage, sessions, owner.id)
        with storage.transaction():
            first = sessions.revoke(record.id)
        with storage.transaction():
            second = sessions.revoke(record.id)
        assert first is True
        assert second is False
        assert sessions.find_active_by_digest(TokenCodec.digest("a" * 64)) is None

    def test_expired_token_is_not_found_and_not_revocable(self, storage, sessions, owner):
        record = _create(storage, sessions, owner.id, expires_in=timedelta(seconds=-1))
        assert sessions.find_active_by_digest(TokenCodec.digest("a" * 64)) is None
        with storage.transaction():
            assert sessions.revoke(record.id) is False

    def test_revoke_unknown_id(self, storage, sessions):
        with storage.transaction():
            assert sessions.revoke("does-not-exist") is False


class TestRevokeAll:
    def test_revokes_every_live_token_of_user(self, storage, sessions, owner):
        _create(storage, sessions, owner.id, raw="b" * 64)
        _create(storage, sessions, owner.id, raw="c" * 64)
        with storage.transaction():
            count = sessions.revoke_all(owner.id)
        # Two created here plus the one issued at registration
        assert count == 3
        with storage.transaction():
            assert sessions.revoke_all(owner.id) == 0

    def test_leaves_other_users_alone(self, storage, sessions, owner, auth_service):
        other = auth_service.register(
            tenant_name="Other Co", slug="other-co", email="boss@other.test",
            password="Passw0rdStrong", first_name="Bo", last_name="Boss",
        )
        with storage.transaction():
            sessions.revoke_all(owner.id)
        assert sessions.find_active_by_digest(TokenCodec.digest(other.tokens.refresh_token)) is not None


class TestPurge:
    def test_purge_removes_expired_and_revoked(self, storage, sessions, owner):
        expired = _create(storage, sessions, owner.id, raw="d" * 64, expires_in=timedelta(seconds=-10))
        revoked = _create(storage, sessions, owner.id, raw="e" * 64)
        live = _create(storage, sessions, owner.id, raw="f" * 64)
        with storage.transaction():
            sessions.revoke(revoked.id)

        with storage.transaction():
            removed = sessions.purge(utcnow() + timedelta(seconds=1))

        assert removed == 2
        session = storage.get_session()
        ids = {row.id for row in session.query(RefreshToken).all()}
        assert expired.id not in ids
        assert revoked.id not in ids
        assert live.id in ids
