from marshmallow import Schema, fields, pre_load, validates, ValidationError, validate

MIN_PASSWORD_LENGTH = 6


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


def _check_password(value):
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")


class UserCreateSchema(Schema):
    username = fields.String(required=True, validate=validate.Length(min=1, max=64))
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict):
            data = dict(data)
            if "email" in data:
                data["email"] = _norm_email(data["email"])
            if isinstance(data.get("username"), str):
                data["username"] = data["username"].strip()
        return data

    @validates("username")
    def validate_username(self, value, **kwargs):
        if "@" in value:
            raise ValidationError("Username cannot contain '@'.")

    @validates("password")
    def validate_password(self, value, **kwargs):
        _check_password(value)


class UserLoginSchema(Schema):
    # Email or username; "email" is accepted as an alias for older clients
    identifier = fields.String(required=True, validate=validate.Length(min=1))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))

    @pre_load
    def alias_email(self, data, **kwargs):
        if isinstance(data, dict) and "identifier" not in data and "email" in data:
            data = dict(data)
            data["identifier"] = data.pop("email")
        return data


class ForgotPasswordSchema(Schema):
    email = fields.Email(required=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data, email=_norm_email(data["email"]))
        return data


class ResetPasswordSchema(Schema):
    password = fields.String(required=True, load_only=True)

    @validates("password")
    def validate_password(self, value, **kwargs):
        _check_password(value)


class UserOutSchema(Schema):
    """Public projection: never includes hashes or tokens."""
    id = fields.String()
    username = fields.String()
    email = fields.String()
