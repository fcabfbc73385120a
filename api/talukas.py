from __future__ import annotations

from flask import Blueprint, request

from api.lookups import get_or_404, name_taken, paginate, require_active
from api.responses import created_response, paginated_response, parse_pagination, success_response
from models import storage
from models.district import District
from models.taluka import Taluka
from models.schemas.taluka import TalukaCreateSchema, TalukaOutSchema, TalukaUpdateSchema
from services.errors import Conflict
from utils.decorators import admin_required, jwt_required

bp = Blueprint("talukas", __name__, url_prefix="/talukas")

create_schema = TalukaCreateSchema()
update_schema = TalukaUpdateSchema()
out_schema = TalukaOutSchema()
out_list_schema = TalukaOutSchema(many=True)


@bp.get("")
@jwt_required()
def list_talukas():
    """
    List active talukas
    ---
    tags: [Talukas]
    security:
      - Bearer: []
    parameters:
      - in: query
        name: districtId
        type: string
      - in: query
        name: page
        type: integer
        default: 1
      - in: query
        name: limit
        type: integer
        default: 20
    responses:
      200: { description: OK }
    """
    page, limit = parse_pagination()
    query = storage.get_session().query(Taluka).filter(Taluka.is_active.is_(True))
    district_id = request.args.get("districtId")
    if district_id:
        query = query.filter(Taluka.district_id == district_id)
    rows, total = paginate(query, page, limit, Taluka.name.asc())
    return paginated_response(out_list_schema.dump(rows), page, limit, total, "Talukas retrieved successfully")


@bp.get("/<taluka_id>")
@jwt_required()
def get_taluka(taluka_id: str):
    """
    Get a taluka
    ---
    tags: [Talukas]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: taluka_id
        type: string
        required: true
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    taluka = get_or_404(Taluka, taluka_id, "Taluka")
    return success_response(out_schema.dump(taluka), "Taluka retrieved successfully")


@bp.post("")
@admin_required()
def create_taluka():
    """
    Create a taluka in a district (admin)
    ---
    tags: [Talukas]
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [name, districtId]
          properties:
            name: { type: string }
            districtId: { type: string }
    responses:
      201: { description: Created }
      400: { description: District does not exist }
      409: { description: Taluka already exists in this district }
    """
    data = create_schema.load(request.get_json(silent=True) or {})
    district = require_active(District, data["district_id"], "District")
    if name_taken(Taluka, data["name"], district_id=district.id):
        raise Conflict("Taluka already exists in this district")
    taluka = Taluka(name=data["name"], district=district)
    storage.new(taluka)
    storage.save()
    return created_response(out_schema.dump(taluka), "Taluka created successfully")


@bp.put("/<taluka_id>")
@admin_required()
def update_taluka(taluka_id: str):
    """
    Update a taluka (admin)
    ---
    tags: [Talukas]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: taluka_id
        type: string
        required: true
      - in: body
        name: body
        schema:
          type: object
          properties:
            name: { type: string }
            districtId: { type: string }
            isActive: { type: boolean }
    responses:
      200: { description: Updated }
      404: { description: Not found }
      409: { description: Taluka already exists in this district }
    """
    taluka = get_or_404(Taluka, taluka_id, "Taluka", active_only=False)
    data = update_schema.load(request.get_json(silent=True) or {})
    district = taluka.district
    if "district_id" in data:
        district = require_active(District, data["district_id"], "District")
    district_id = district.id
    name = data.get("name", taluka.name)
    if (name != taluka.name or district_id != taluka.district_id) and name_taken(
        Taluka, name, exclude_id=taluka.id, district_id=district_id
    ):
        raise Conflict("Taluka already exists in this district")
    taluka.name = name
    taluka.district = district
    if "is_active" in data:
        taluka.is_active = data["is_active"]
    taluka.save()
    return success_response(out_schema.dump(taluka), "Taluka updated successfully")


@bp.delete("/<taluka_id>")
@admin_required()
def delete_taluka(taluka_id: str):
    """
    Deactivate a taluka (admin)
    ---
    tags: [Talukas]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: taluka_id
        type: string
        required: true
    responses:
      200: { description: Deactivated }
      404: { description: Not found }
    """
    taluka = get_or_404(Taluka, taluka_id, "Taluka")
    taluka.delete()  # sets is_active = False
    return success_response(None, "Taluka deleted successfully")
