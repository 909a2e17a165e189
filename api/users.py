from __future__ import annotations

from typing import Tuple

from flask import Blueprint, request, jsonify, abort, current_app

from models.schemas.user import (
    PasswordChangeSchema,
    ProfileUpdateSchema,
    UserInviteSchema,
    UserOutSchema,
    UserRoleUpdateSchema,
    UserStatusUpdateSchema,
)
from models.user import UserStatus
from services.users import SORT_COLUMNS, UserService
from utils.decorators import current_identity, jwt_required, roles_required
from utils.roles import Role

MAX_LIMIT = 100

bp = Blueprint("users", __name__)

invite_schema = UserInviteSchema()
role_update_schema = UserRoleUpdateSchema()
status_update_schema = UserStatusUpdateSchema()
profile_update_schema = ProfileUpdateSchema()
password_change_schema = PasswordChangeSchema()
user_out_schema = UserOutSchema()
user_list_out_schema = UserOutSchema(many=True)


def _service() -> UserService:
    return current_app.extensions["user_service"]


def parse_pagination() -> Tuple[int, int]:
    try:
        page = int(request.args.get("page", "1"))
        limit = int(request.args.get("limit", "20"))
        page = max(page, 1)
        limit = max(1, min(limit, MAX_LIMIT))
        return page, limit
    except ValueError:
        abort(400, description="page and limit must be integers")


def parse_sort(default="-created_at") -> str:
    sort = request.args.get("sort", default)
    key = sort[1:] if sort.startswith("-") else sort
    if key not in SORT_COLUMNS:
        abort(400, description=f"Unsupported sort field. Allowed: {', '.join(sorted(SORT_COLUMNS))}")
    return sort


def parse_choice(name: str, allowed) -> str | None:
    value = request.args.get(name)
    if value and value not in allowed:
        abort(400, description=f"{name} must be one of {sorted(allowed)}")
    return value or None


@bp.get("/users")
@roles_required(Role.MANAGER)
def list_users():
    """
    List team members of the caller's tenant - manager
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - { in: query, name: page, type: integer, default: 1 }
      - { in: query, name: limit, type: integer, default: 20 }
      - { in: query, name: sort, type: string, default: -created_at }
      - { in: query, name: search, type: string }
      - { in: query, name: role, type: string }
      - { in: query, name: status, type: string }
    responses:
      200: { description: OK }
      403: { description: Forbidden }
    """
    page, limit = parse_pagination()
    sort = parse_sort()
    role = parse_choice("role", {r.value for r in Role})
    status = parse_choice("status", {s.value for s in UserStatus})
    rows, total = _service().list_users(
        current_identity().tenant_id,
        page=page,
        limit=limit,
        search=request.args.get("search"),
        role=role,
        status=status,
        sort=sort,
    )
    return jsonify(
        {
            "data": user_list_out_schema.dump(rows),
            "meta": {"page": page, "limit": limit, "total": total}
        }
    )


@bp.get("/users/stats")
@roles_required(Role.MANAGER)
def team_stats():
    """
    Team counts by role and status - manager
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200: { description: OK }
    """
    return jsonify({"data": _service().team_stats(current_identity().tenant_id)})


@bp.get("/users/<user_id>")
@roles_required(Role.MANAGER)
def get_user(user_id: str):
    """
    Get one team member - manager
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - { in: path, name: user_id, type: string, required: true }
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    user = _service().get_user(current_identity().tenant_id, user_id)
    return jsonify({"data": user_out_schema.dump(user)})


@bp.post("/users/invite")
@roles_required(Role.ADMIN)
def invite_user():
    """
    Invite a team member with a role below your own - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
            firstName: { type: string }
            lastName: { type: string }
            role: { type: string, enum: [admin, manager, user] }
    responses:
      201: { description: Created }
      403: { description: Role equal to or above your own }
      409: { description: Email already registered }
    """
    data = invite_schema.load(request.get_json(silent=True) or {})
    user, temp_password = _service().invite(
        current_identity(), data["email"], data["first_name"], data["last_name"], data["role"]
    )
    body = user_out_schema.dump(user)
    if current_app.config.get("EXPOSE_TEMP_PASSWORD"):
        body["temporaryPassword"] = temp_password
    return jsonify({"data": body}), 201


@bp.patch("/users/me")
@jwt_required()
def update_profile():
    """
    Update your own profile
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            firstName: { type: string }
            lastName: { type: string }
            avatarUrl: { type: string }
    responses:
      200: { description: OK }
    """
    data = profile_update_schema.load(request.get_json(silent=True) or {})
    user = _service().update_profile(
        current_identity(),
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
        avatar_url=data.get("avatar_url"),
        clear_avatar="avatar_url" in data and not data["avatar_url"],
    )
    return jsonify({"data": user_out_schema.dump(user)})


@bp.post("/users/me/password")
@jwt_required()
def change_password():
    """
    Change your own password. Signs you out on every device.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            currentPassword: { type: string }
            newPassword: { type: string }
    responses:
      204: { description: "" }
      400: { description: Current password is incorrect }
    """
    data = password_change_schema.load(request.get_json(silent=True) or {})
    _service().change_password(current_identity(), data["current_password"], data["new_password"])
    return ("", 204)


@bp.patch("/users/<user_id>/role")
@roles_required(Role.ADMIN)
def update_role(user_id: str):
    """
    Change a team member's role - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - { in: path, name: user_id, type: string, required: true }
      - in: body
        name: body
        schema:
          type: object
          properties:
            role: { type: string, enum: [admin, manager, user] }
    responses:
      200: { description: OK }
      403: { description: Forbidden by the role hierarchy }
      404: { description: Not found }
    """
    data = role_update_schema.load(request.get_json(silent=True) or {})
    user = _service().update_role(current_identity(), user_id, data["role"])
    return jsonify({"data": user_out_schema.dump(user)})


@bp.patch("/users/<user_id>/status")
@roles_required(Role.ADMIN)
def update_status(user_id: str):
    """
    Activate or deactivate a team member - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - { in: path, name: user_id, type: string, required: true }
      - in: body
        name: body
        schema:
          type: object
          properties:
            status: { type: string, enum: [active, inactive] }
    responses:
      200: { description: OK }
      403: { description: Forbidden by the role hierarchy }
      404: { description: Not found }
    """
    data = status_update_schema.load(request.get_json(silent=True) or {})
    user = _service().update_status(current_identity(), user_id, data["status"])
    return jsonify({"data": user_out_schema.dump(user)})


@bp.delete("/users/<user_id>")
@roles_required(Role.ADMIN)
def delete_user(user_id: str):
    """
    Delete a team member and revoke their sessions - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - { in: path, name: user_id, type: string, required: true }
    responses:
      204: { description: "" }
      403: { description: Forbidden by the role hierarchy }
      404: { description: Not found }
    """
    _service().delete_user(current_identity(), user_id)
    return ("", 204)
