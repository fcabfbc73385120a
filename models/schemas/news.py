from marshmallow import ValidationError, fields, validate

from models.schemas.common import ActiveFlagSchema, BaseSchema


class MediaRef(fields.Field):
    """
    Accepts either a hosted URL string or the {url, id} object returned by
    the upload endpoint. Loads to {"url": ..., "id": ...}.
    """

    def _deserialize(self, value, attr, data, **kwargs):
        if isinstance(value, str) and value.strip():
            return {"url": value.strip(), "id": None}
        if isinstance(value, dict) and isinstance(value.get("url"), str) and value["url"].strip():
            media_id = value.get("id")
            return {"url": value["url"].strip(), "id": str(media_id) if media_id else None}
        raise ValidationError("Media must be a URL or an uploaded file reference")


class NewsCreateSchema(BaseSchema):
    title = fields.String(required=True, validate=validate.Length(min=1, max=255))
    description = fields.String(required=True, validate=validate.Length(min=1))
    media = MediaRef(required=True)
    is_active = fields.Boolean(data_key="isActive", load_default=True)


class NewsUpdateSchema(ActiveFlagSchema):
    title = fields.String(validate=validate.Length(min=1, max=255))
    description = fields.String(validate=validate.Length(min=1))
    media = MediaRef()


class NewsOutSchema(BaseSchema):
    id = fields.String()
    title = fields.String()
    description = fields.String()
    media = fields.String()
    media_id = fields.String(data_key="mediaId", allow_none=True)
    created_by = fields.String(data_key="createdBy", allow_none=True)
    is_active = fields.Boolean(data_key="isActive")
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
