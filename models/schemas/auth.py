from marshmallow import EXCLUDE, Schema, fields, pre_load, validate, validates

from models.schemas.common import (
    EMAIL_MAX,
    NAME_MAX,
    NAME_MIN,
    norm_email,
    strip_strings,
    validate_password_strength,
    validate_slug,
)
from models.schemas.user import TenantOutSchema, UserOutSchema

_name = validate.Length(min=NAME_MIN, max=NAME_MAX)


class RegisterSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    tenant_name = fields.String(required=True, data_key="tenantName", validate=_name)
    slug = fields.String(required=True)
    first_name = fields.String(required=True, data_key="firstName", validate=_name)
    last_name = fields.String(required=True, data_key="lastName", validate=_name)
    email = fields.Email(required=True, validate=validate.Length(max=EMAIL_MAX))
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict):
            data = strip_strings(dict(data), ("tenantName", "slug", "firstName", "lastName"))
            if "email" in data:
                data["email"] = norm_email(data["email"])
        return data

    @validates("slug")
    def check_slug(self, value, **kwargs):
        validate_slug(value)

    @validates("password")
    def validate_password(self, value, **kwargs):
        validate_password_strength(value)


class LoginSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = norm_email(data["email"])
        return data


class RefreshTokenSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(required=True, data_key="refreshToken", validate=validate.Length(min=1))


class LogoutSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(load_default=None, allow_none=True, data_key="refreshToken")


class TokenPairSchema(Schema):
    access_token = fields.String(data_key="accessToken")
    refresh_token = fields.String(data_key="refreshToken")
    access_expires_at = fields.DateTime(data_key="accessTokenExpiresAt")
    refresh_expires_at = fields.DateTime(data_key="refreshTokenExpiresAt")


class AuthOutSchema(Schema):
    user = fields.Nested(UserOutSchema)
    tenant = fields.Nested(TenantOutSchema)
    tokens = fields.Nested(TokenPairSchema)


class CurrentUserOutSchema(Schema):
    user = fields.Nested(UserOutSchema)
    tenant = fields.Nested(TenantOutSchema)
