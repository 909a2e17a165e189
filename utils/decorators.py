from __future__ import annotations
from functools import wraps

from flask import current_app, g, request

from services.errors import ForbiddenError, UnauthorizedError
from utils.roles import Role, has_at_least
from utils.tokens import ExpiredOrInvalidToken, Identity


def _bearer_token() -> str | None:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    token = auth.split(" ", 1)[1].strip()
    return token or None


def authenticate_request() -> Identity:
    """
    Verify the bearer access token once per request and keep the result on g.
    Stateless: signature and expiry only, no database round-trip.
    """
    identity = g.get("identity")
    if identity is not None:
        return identity

    token = _bearer_token()
    if token is None:
        raise UnauthorizedError("Access token required")
    codec = current_app.extensions["token_codec"]
    try:
        identity = codec.verify_access(token)
    except ExpiredOrInvalidToken as exc:
        if exc.expired:
            raise UnauthorizedError("Token has expired", error_code="TOKEN_EXPIRED")
        raise UnauthorizedError("Invalid access token")
    g.identity = identity
    return identity


def current_identity() -> Identity:
    identity = g.get("identity")
    if identity is None:
        raise UnauthorizedError()
    return identity


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            authenticate_request()
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def roles_required(minimum: Role | str):
    """
    Allow access if the caller's role is at least `minimum` in the hierarchy.
    Higher roles inherit everything lower roles may do.
    """
    minimum = Role.parse(minimum)

    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            if not has_at_least(g.identity.role, minimum):
                raise ForbiddenError("Insufficient permissions")
            return fn(*args, **kwargs)

        return wrapper

    return decorator
