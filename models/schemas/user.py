from marshmallow import fields, validate

from models.schemas.common import BaseSchema, name_field, otp_field, password_field, phone_field


class RegisterSchema(BaseSchema):
    email = fields.Email(required=True)
    password = password_field()
    first_name = name_field("firstName")
    last_name = name_field("lastName")


class LoginSchema(BaseSchema):
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))


class SendRegisterOtpSchema(BaseSchema):
    phone_number = phone_field()
    first_name = name_field("firstName")
    last_name = name_field("lastName")


class VerifyRegisterOtpSchema(BaseSchema):
    phone_number = phone_field()
    otp = otp_field()
    first_name = name_field("firstName", required=False)
    last_name = name_field("lastName", required=False)


class PhoneSchema(BaseSchema):
    phone_number = phone_field()


class VerifyOtpSchema(BaseSchema):
    phone_number = phone_field()
    otp = otp_field()


class RefreshSchema(BaseSchema):
    refresh_token = fields.String(data_key="refreshToken", load_default=None)


class ProfileUpdateSchema(BaseSchema):
    first_name = name_field("firstName", required=False)
    last_name = name_field("lastName", required=False)
    email = fields.Email()


class ChangePasswordSchema(BaseSchema):
    current_password = fields.String(required=True, load_only=True, data_key="currentPassword")
    new_password = password_field("newPassword")


class DeleteAccountSchema(BaseSchema):
    password = fields.String(load_only=True, load_default=None)


class UserOutSchema(BaseSchema):
    id = fields.String()
    phone_number = fields.String(data_key="phoneNumber", allow_none=True)
    email = fields.String(allow_none=True)
    first_name = fields.String(data_key="firstName", allow_none=True)
    last_name = fields.String(data_key="lastName", allow_none=True)
    is_active = fields.Boolean(data_key="isActive")
    is_verified = fields.Boolean(data_key="isVerified")
    last_login = fields.DateTime(data_key="lastLogin", allow_none=True)
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
