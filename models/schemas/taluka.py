from marshmallow import fields, validate

from models.schemas.common import ActiveFlagSchema, BaseSchema


class TalukaCreateSchema(BaseSchema):
    name = fields.String(required=True, validate=validate.Length(min=1, max=100))
    district_id = fields.String(required=True, data_key="districtId")


class TalukaUpdateSchema(ActiveFlagSchema):
    name = fields.String(validate=validate.Length(min=1, max=100))
    district_id = fields.String(data_key="districtId")


class TalukaOutSchema(BaseSchema):
    id = fields.String()
    name = fields.String()
    district_id = fields.String(data_key="districtId")
    district = fields.Function(lambda t: {"id": t.district.id, "name": t.district.name} if t.district else None)
    is_active = fields.Boolean(data_key="isActive")
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
