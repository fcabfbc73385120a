from marshmallow import fields, validate

from models.schemas.common import ActiveFlagSchema, BaseSchema


class DistrictCreateSchema(BaseSchema):
    name = fields.String(required=True, validate=validate.Length(min=1, max=100))


class DistrictUpdateSchema(ActiveFlagSchema):
    name = fields.String(validate=validate.Length(min=1, max=100))


class DistrictOutSchema(BaseSchema):
    id = fields.String()
    name = fields.String()
    is_active = fields.Boolean(data_key="isActive")
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
