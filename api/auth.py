"""
Authentication blueprint:
- POST /auth/register    -> new tenant + owner, returns tokens
- POST /auth/login
- POST /auth/refresh     -> rotates the refresh token
- POST /auth/logout      -> revokes one refresh token
- POST /auth/logout-all  -> revokes every refresh token of the caller
- GET  /auth/me

Handlers stay thin: validate with marshmallow, call AuthService, dump.
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, current_app

from models.schemas.auth import (
    AuthOutSchema,
    CurrentUserOutSchema,
    LoginSchema,
    LogoutSchema,
    RefreshTokenSchema,
    RegisterSchema,
    TokenPairSchema,
)
from services.auth import AuthService
from utils.decorators import current_identity, jwt_required

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshTokenSchema()
logout_schema = LogoutSchema()
auth_out_schema = AuthOutSchema()
token_pair_schema = TokenPairSchema()
current_user_schema = CurrentUserOutSchema()


def _service() -> AuthService:
    return current_app.extensions["auth_service"]


@bp.post("/register")
def register():
    """
    Register a new tenant and its owner.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [tenantName, slug, firstName, lastName, email, password]
          properties:
            tenantName: { type: string }
            slug: { type: string }
            firstName: { type: string }
            lastName: { type: string }
            email: { type: string }
            password: { type: string }
    responses:
      201:
        description: Created (user, tenant, tokens)
      400:
        description: Validation error
      409:
        description: Slug or email already in use
    """
    data = register_schema.load(request.get_json(silent=True) or {})
    result = _service().register(
        tenant_name=data["tenant_name"],
        slug=data["slug"],
        email=data["email"],
        password=data["password"],
        first_name=data["first_name"],
        last_name=data["last_name"],
    )
    return jsonify({"data": auth_out_schema.dump(result)}), 201


@bp.post("/login")
def login():
    """
    Login: return the user, the tenant and a token pair
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Invalid credentials
    """
    data = login_schema.load(request.get_json(silent=True) or {})
    result = _service().login(data["email"], data["password"])
    return jsonify({"data": auth_out_schema.dump(result)}), 200


@bp.post("/refresh")
def refresh():
    """
    Exchange a refresh token for a new pair. The presented token stops working.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refreshToken: { type: string }
    responses:
      200:
        description: OK (new tokens)
      401:
        description: Invalid, expired or already used refresh token
    """
    data = refresh_schema.load(request.get_json(silent=True) or {})
    tokens = _service().refresh(data["refresh_token"])
    return jsonify({"data": {"tokens": token_pair_schema.dump(tokens)}}), 200


@bp.post("/logout")
def logout():
    """
    Logout: revokes the given refresh token. Always succeeds.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refreshToken: { type: string }
    responses:
      204:
        description: ""
    """
    data = logout_schema.load(request.get_json(silent=True) or {})
    if data.get("refresh_token"):
        _service().logout(data["refresh_token"])
    return ("", 204)


@bp.post("/logout-all")
@jwt_required()
def logout_all():
    """
    Revoke every refresh token of the current user.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      204:
        description: ""
      401:
        description: Unauthorized
    """
    _service().logout_all(current_identity().user_id)
    return ("", 204)


@bp.get("/me")
@jwt_required()
def me():
    """
    Get the current user and tenant.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
      404:
        description: User no longer exists
    """
    identity = current_identity()
    user, tenant = _service().get_current_user(identity.user_id, identity.tenant_id)
    return jsonify({"data": current_user_schema.dump({"user": user, "tenant": tenant})}), 200
