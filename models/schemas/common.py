import re

from marshmallow import ValidationError

NAME_MIN = 2
NAME_MAX = 100
EMAIL_MAX = 255
PASSWORD_MIN = 8
PASSWORD_MAX = 128
SLUG_MIN = 3
SLUG_MAX = 50

_SLUG_RE = re.compile(r"^[a-z0-9-]+$")


def norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


def strip_strings(data: dict, keys) -> dict:
    for key in keys:
        if isinstance(data.get(key), str):
            data[key] = data[key].strip()
    return data


def validate_slug(value: str) -> None:
    if not SLUG_MIN <= len(value) <= SLUG_MAX:
        raise ValidationError(f"Slug must be between {SLUG_MIN} and {SLUG_MAX} characters.")
    if not _SLUG_RE.match(value):
        raise ValidationError("Slug can only contain lowercase letters, numbers, and hyphens.")


def validate_password_strength(value: str) -> None:
    errors = []
    if len(value) < PASSWORD_MIN:
        errors.append(f"Password must be at least {PASSWORD_MIN} characters long.")
    if len(value) > PASSWORD_MAX:
        errors.append(f"Password must be at most {PASSWORD_MAX} characters long.")
    if not re.search(r"[A-Z]", value):
        errors.append("Password must contain at least one uppercase letter.")
    if not re.search(r"[a-z]", value):
        errors.append("Password must contain at least one lowercase letter.")
    if not re.search(r"\d", value):
        errors.append("Password must contain at least one number.")
    if errors:
        raise ValidationError(errors)
