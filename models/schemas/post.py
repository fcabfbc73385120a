from marshmallow import fields, validate

from models.schemas.common import ActiveFlagSchema, BaseSchema


class PostCreateSchema(BaseSchema):
    title = fields.String(required=True, validate=validate.Length(min=1, max=255))
    description = fields.String(required=True, validate=validate.Length(min=1))
    media = fields.List(fields.String(validate=validate.Length(min=1, max=1024)), load_default=list)
    category_id = fields.String(required=True, data_key="categoryId")
    district_id = fields.String(required=True, data_key="districtId")
    taluka_id = fields.String(required=True, data_key="talukaId")


class PostUpdateSchema(ActiveFlagSchema):
    title = fields.String(validate=validate.Length(min=1, max=255))
    description = fields.String(validate=validate.Length(min=1))
    media = fields.List(fields.String(validate=validate.Length(min=1, max=1024)))
    category_id = fields.String(data_key="categoryId")
    district_id = fields.String(data_key="districtId")
    taluka_id = fields.String(data_key="talukaId")


def _ref(obj, attr="name"):
    return {"id": obj.id, attr: getattr(obj, attr)} if obj is not None else None


class PostOutSchema(BaseSchema):
    id = fields.String()
    title = fields.String()
    description = fields.String()
    media = fields.List(fields.String())
    category_id = fields.String(data_key="categoryId")
    district_id = fields.String(data_key="districtId")
    taluka_id = fields.String(data_key="talukaId")
    posted_by = fields.String(data_key="postedBy")
    category = fields.Function(lambda p: _ref(p.category))
    district = fields.Function(lambda p: _ref(p.district))
    taluka = fields.Function(lambda p: _ref(p.taluka))
    author = fields.Function(
        lambda p: {"id": p.author.id, "firstName": p.author.first_name, "lastName": p.author.last_name}
        if p.author else None
    )
    is_active = fields.Boolean(data_key="isActive")
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
