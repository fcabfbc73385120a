from marshmallow import EXCLUDE, Schema, fields, pre_load, validate

PHONE_PATTERN = r"^\+?[1-9]\d{1,14}$"
OTP_PATTERN = r"^\d{4,8}$"


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


class BaseSchema(Schema):
    """Request schemas ignore unknown keys and trim surrounding whitespace (passwords excepted)."""

    class Meta:
        unknown = EXCLUDE

    @pre_load
    def strip_strings(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        cleaned = {
            k: v.strip() if isinstance(v, str) and "password" not in k.lower() else v
            for k, v in data.items()
        }
        if "email" in cleaned:
            cleaned["email"] = _norm_email(cleaned["email"])
        return cleaned


def phone_field(required=True, data_key="phoneNumber"):
    return fields.String(
        required=required,
        data_key=data_key,
        validate=validate.Regexp(PHONE_PATTERN, error="Invalid phone number format"),
    )


def otp_field():
    return fields.String(required=True, validate=validate.Regexp(OTP_PATTERN, error="OTP must be numeric"))


def name_field(data_key, required=True):
    return fields.String(
        required=required,
        data_key=data_key,
        validate=validate.Length(min=2, max=50, error="Must be between 2 and 50 characters"),
    )


def password_field(data_key="password"):
    return fields.String(
        required=True,
        load_only=True,
        data_key=data_key,
        validate=validate.Length(min=8, max=128, error="Password must be at least 8 characters long."),
    )


class ActiveFlagSchema(BaseSchema):
    is_active = fields.Boolean(data_key="isActive")
