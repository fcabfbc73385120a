from marshmallow import fields, validate

from models.admin import AdminRole
from models.schemas.common import BaseSchema, password_field

ROLES = [r.value for r in AdminRole]


class AdminLoginSchema(BaseSchema):
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))


class AdminRegisterSchema(BaseSchema):
    name = fields.String(required=True, validate=validate.Length(min=2, max=100))
    email = fields.Email(required=True)
    password = password_field()
    role = fields.String(load_default=AdminRole.ADMIN.value, validate=validate.OneOf(ROLES))


class AdminOutSchema(BaseSchema):
    id = fields.String()
    name = fields.String()
    email = fields.String()
    role = fields.Function(lambda admin: admin.role_name)
    is_active = fields.Boolean(data_key="isActive")
    last_login = fields.DateTime(data_key="lastLogin", allow_none=True)
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
