"""Unit tests for the token codec."""

from datetime import timedelta

import jwt
import pytest

from utils.roles import Role
from utils.tokens import ExpiredOrInvalidToken, TokenCodec

SECRET = "unit-test-secret-0123456789-abcdefghij"


@pytest.fixture
def codec():
    return TokenCodec(SECRET)


class TestIssue:
    def test_claims_round_trip(self, codec):
        pair = codec.issue_pair("user-1", "tenant-1", "admin")
        identity = codec.verify_access(pair.access_token)
        assert identity.user_id == "user-1"
        assert identity.tenant_id == "tenant-1"
        assert identity.role is Role.ADMIN

    def test_refresh_token_is_opaque_and_well_formed(self, codec):
        pair = codec.issue_pair("user-1", "tenant-1", "user")
        assert len(pair.refresh_token) == 64
        assert codec.looks_like_refresh_token(pair.refresh_token)
        assert pair.refresh_token.count(".") == 0

    def test_pairs_are_unique(self, codec):
        a = codec.issue_pair("user-1", "tenant-1", "user")
        b = codec.issue_pair("user-1", "tenant-1", "user")
        assert a.access_token != b.access_token
        assert a.refresh_token != b.refresh_token

    def test_expiries_follow_ttls(self, codec):
        pair = codec.issue_pair("user-1", "tenant-1", "user")
        assert pair.refresh_expires_at - pair.access_expires_at > timedelta(days=6)

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            TokenCodec("")


class TestVerify:
    def test_expired_token_flagged(self):
        codec = TokenCodec(SECRET, access_ttl=timedelta(seconds=-5))
        pair = codec.issue_pair("user-1", "tenant-1", "user")
        with pytest.raises(ExpiredOrInvalidToken) as exc:
            codec.verify_access(pair.access_token)
        assert exc.value.expired is True

    def test_wrong_secret_rejected(self, codec):
        other = TokenCodec("another-secret-0123456789-abcdefghijkl")
        pair = other.issue_pair("user-1", "tenant-1", "user")
        with pytest.raises(ExpiredOrInvalidToken) as exc:
            codec.verify_access(pair.access_token)
        assert exc.value.expired is False

    def test_wrong_audience_rejected(self, codec):
        other = TokenCodec(SECRET, audience="someone-else")
        pair = other.issue_pair("user-1", "tenant-1", "user")
        with pytest.raises(ExpiredOrInvalidToken):
            codec.verify_access(pair.access_token)

    def test_refresh_token_is_not_an_access_token(self, codec):
        pair = codec.issue_pair("user-1", "tenant-1", "user")
        with pytest.raises(ExpiredOrInvalidToken):
            codec.verify_access(pair.refresh_token)

    def test_missing_tenant_rejected(self, codec):
        token = jwt.encode(
            {"sub": "u", "role": "user", "type": "access", "iat": 0, "exp": 4102444800,
             "iss": codec.issuer, "aud": codec.audience},
            SECRET,
            algorithm="HS256",
        )
        with pytest.raises(ExpiredOrInvalidToken, match="tenant"):
            codec.verify_access(token)

    def test_unknown_role_rejected(self, codec):
        token = jwt.encode(
            {"sub": "u", "tid": "t", "role": "root", "type": "access", "iat": 0, "exp": 4102444800,
             "iss": codec.issuer, "aud": codec.audience},
            SECRET,
            algorithm="HS256",
        )
        with pytest.raises(ExpiredOrInvalidToken, match="role"):
            codec.verify_access(token)


class TestDigest:
    def test_digest_is_stable_sha256_hex(self):
        d = TokenCodec.digest("abc")
        assert d == TokenCodec.digest("abc")
        assert len(d) == 64

    @pytest.mark.parametrize("value", [None, "", "short", "x" * 63 + "!", 42])
    def test_shape_check_rejects_garbage(self, value):
        assert TokenCodec.looks_like_refresh_token(value) is False
