from marshmallow import EXCLUDE, Schema, fields, pre_load, validate, validates

from models.schemas.common import (
    EMAIL_MAX,
    NAME_MAX,
    NAME_MIN,
    norm_email,
    strip_strings,
    validate_password_strength,
)
from models.user import UserStatus
from utils.roles import ASSIGNABLE_ROLES

_name = validate.Length(min=NAME_MIN, max=NAME_MAX)


class TenantOutSchema(Schema):
    id = fields.String()
    name = fields.String()
    slug = fields.String()
    status = fields.String()
    created_at = fields.DateTime(data_key="createdAt")


class UserOutSchema(Schema):
    """Public projection of a user; the password hash never leaves the service."""
    id = fields.String()
    tenant_id = fields.String(data_key="tenantId")
    email = fields.String()
    first_name = fields.String(data_key="firstName")
    last_name = fields.String(data_key="lastName")
    avatar_url = fields.String(allow_none=True, data_key="avatarUrl")
    role = fields.String()
    status = fields.String()
    last_login_at = fields.DateTime(allow_none=True, data_key="lastLoginAt")
    created_at = fields.DateTime(data_key="createdAt")


class UserInviteSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True, validate=validate.Length(max=EMAIL_MAX))
    first_name = fields.String(required=True, data_key="firstName", validate=_name)
    last_name = fields.String(required=True, data_key="lastName", validate=_name)
    role = fields.String(load_default="user", validate=validate.OneOf(ASSIGNABLE_ROLES))

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict):
            data = strip_strings(dict(data), ("firstName", "lastName"))
            if "email" in data:
                data["email"] = norm_email(data["email"])
        return data


class UserRoleUpdateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    role = fields.String(required=True, validate=validate.OneOf(ASSIGNABLE_ROLES))


class UserStatusUpdateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    status = fields.String(
        required=True, validate=validate.OneOf([UserStatus.ACTIVE.value, UserStatus.INACTIVE.value])
    )


class ProfileUpdateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    first_name = fields.String(data_key="firstName", validate=_name)
    last_name = fields.String(data_key="lastName", validate=_name)
    avatar_url = fields.String(allow_none=True, data_key="avatarUrl")

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict):
            data = strip_strings(dict(data), ("firstName", "lastName", "avatarUrl"))
        return data

    @validates("avatar_url")
    def validate_avatar_url(self, value, **kwargs):
        if value:
            validate.URL()(value)
            validate.Length(max=500)(value)


class PasswordChangeSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    current_password = fields.String(required=True, load_only=True, data_key="currentPassword")
    new_password = fields.String(required=True, load_only=True, data_key="newPassword")

    @validates("new_password")
    def validate_new_password(self, value, **kwargs):
        validate_password_strength(value)
