import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only-0123456789")

import pytest  # noqa: E402

from api import create_app, shutdown_app  # noqa: E402
from utils.roles import Role  # noqa: E402
from utils.tokens import Identity  # noqa: E402

PASSWORD = "Passw0rdStrong"


@pytest.fixture
def app():
    """Fresh app with its own in-memory database."""
    app = create_app("testing")
    yield app
    shutdown_app(app)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def storage(app):
    return app.extensions["storage"]


@pytest.fixture
def sessions(app):
    return app.extensions["session_store"]


@pytest.fixture
def codec(app):
    return app.extensions["token_codec"]


@pytest.fixture
def auth_service(app):
    return app.extensions["auth_service"]


@pytest.fixture
def user_service(app):
    return app.extensions["user_service"]


def identity_for(user) -> Identity:
    return Identity(
        user_id=user.id,
        tenant_id=user.tenant_id,
        role=Role.parse(user.role),
        expires_at=datetime.now(timezone.utc) + timedelta(minutes=15),
    )


def register_tenant(auth_service, slug="acme", email="owner@acme.test", password=PASSWORD):
    return auth_service.register(
        tenant_name=f"{slug.title()} Inc",
        slug=slug,
        email=email,
        password=password,
        first_name="Olive",
        last_name="Owner",
    )


def add_member(user_service, owner, email, role="user"):
    """Invite a member and activate them. Returns (user, temp_password)."""
    actor = identity_for(owner)
    user, temp_password = user_service.invite(actor, email, "Team", "Member", role)
    user_service.update_status(actor, user.id, "active")
    return user, temp_password


@pytest.fixture
def owner_result(auth_service):
    return register_tenant(auth_service)


@pytest.fixture
def owner(owner_result):
    return owner_result.user


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}
