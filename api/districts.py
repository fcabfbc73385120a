from __future__ import annotations

from flask import Blueprint, request
from sqlalchemy import func

from api.lookups import get_or_404, name_taken, paginate
from api.responses import created_response, paginated_response, parse_pagination, success_response
from models import storage
from models.district import District
from models.taluka import Taluka
from models.schemas.district import DistrictCreateSchema, DistrictOutSchema, DistrictUpdateSchema
from models.schemas.taluka import TalukaOutSchema
from services.errors import Conflict
from utils.decorators import admin_required, jwt_required

bp = Blueprint("districts", __name__, url_prefix="/districts")

create_schema = DistrictCreateSchema()
update_schema = DistrictUpdateSchema()
out_schema = DistrictOutSchema()
out_list_schema = DistrictOutSchema(many=True)
taluka_list_schema = TalukaOutSchema(many=True)


@bp.get("")
@jwt_required()
def list_districts():
    """
    List active districts
    ---
    tags: [Districts]
    security:
      - Bearer: []
    parameters:
      - in: query
        name: page
        type: integer
        default: 1
      - in: query
        name: limit
        type: integer
        default: 20
      - in: query
        name: q
        type: string
    responses:
      200: { description: OK }
    """
    page, limit = parse_pagination()
    query = storage.get_session().query(District).filter(District.is_active.is_(True))
    q = request.args.get("q")
    if q:
        query = query.filter(func.lower(District.name).like(f"%{q.strip().lower()}%"))
    rows, total = paginate(query, page, limit, District.name.asc())
    return paginated_response(out_list_schema.dump(rows), page, limit, total, "Districts retrieved successfully")


@bp.get("/<district_id>")
@jwt_required()
def get_district(district_id: str):
    """
    Get a district
    ---
    tags: [Districts]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: district_id
        type: string
        required: true
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    district = get_or_404(District, district_id, "District")
    return success_response(out_schema.dump(district), "District retrieved successfully")


@bp.get("/<district_id>/talukas")
@jwt_required()
def list_district_talukas(district_id: str):
    """
    List the active talukas of a district
    ---
    tags: [Districts]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: district_id
        type: string
        required: true
    responses:
      200: { description: OK }
      404: { description: District not found }
    """
    district = get_or_404(District, district_id, "District")
    rows = (
        storage.get_session()
        .query(Taluka)
        .filter(Taluka.district_id == district.id, Taluka.is_active.is_(True))
        .order_by(Taluka.name.asc())
        .all()
    )
    return success_response(taluka_list_schema.dump(rows), "Talukas retrieved successfully")


@bp.post("")
@admin_required()
def create_district():
    """
    Create a district (admin)
    ---
    tags: [Districts]
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [name]
          properties:
            name: { type: string, maxLength: 100 }
    responses:
      201: { description: Created }
      409: { description: District already exists }
    """
    data = create_schema.load(request.get_json(silent=True) or {})
    if name_taken(District, data["name"]):
        raise Conflict("District already exists")
    district = District(name=data["name"])
    storage.new(district)
    storage.save()
    return created_response(out_schema.dump(district), "District created successfully")


@bp.put("/<district_id>")
@admin_required()
def update_district(district_id: str):
    """
    Update a district (admin)
    ---
    tags: [Districts]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: district_id
        type: string
        required: true
      - in: body
        name: body
        schema:
          type: object
          properties:
            name: { type: string }
            isActive: { type: boolean }
    responses:
      200: { description: Updated }
      404: { description: Not found }
      409: { description: District already exists }
    """
    district = get_or_404(District, district_id, "District", active_only=False)
    data = update_schema.load(request.get_json(silent=True) or {})
    if "name" in data:
        if name_taken(District, data["name"], exclude_id=district.id):
            raise Conflict("District already exists")
        district.name = data["name"]
    if "is_active" in data:
        district.is_active = data["is_active"]
    district.save()
    return success_response(out_schema.dump(district), "District updated successfully")


@bp.delete("/<district_id>")
@admin_required()
def delete_district(district_id: str):
    """
    Deactivate a district (admin)
    ---
    tags: [Districts]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: district_id
        type: string
        required: true
    responses:
      200: { description: Deactivated }
      404: { description: Not found }
    """
    district = get_or_404(District, district_id, "District")
    district.delete()  # sets is_active = False
    return success_response(None, "District deleted successfully")
