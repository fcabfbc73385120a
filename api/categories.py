from __future__ import annotations

from flask import Blueprint, request
from sqlalchemy import func

from api.lookups import get_or_404, name_taken, paginate
from api.responses import created_response, paginated_response, parse_pagination, success_response
from models import storage
from models.category import Category
from models.schemas.category import CategoryCreateSchema, CategoryOutSchema, CategoryUpdateSchema
from services.errors import Conflict, ValidationError
from utils.decorators import admin_required, jwt_required

bp = Blueprint("categories", __name__, url_prefix="/categories")

create_schema = CategoryCreateSchema()
update_schema = CategoryUpdateSchema()
out_schema = CategoryOutSchema()
out_list_schema = CategoryOutSchema(many=True)


def parse_sort(default="name"):
    sort = request.args.get("sort", default)
    desc = sort.startswith("-")
    key = sort[1:] if desc else sort
    if key != "name":
        raise ValidationError("Unsupported sort field. Allowed: name")
    return Category.name.desc() if desc else Category.name.asc()


@bp.get("")
@jwt_required()
def list_categories():
    """
    List active categories (pagination, sorting, q search)
    ---
    tags: [Categories]
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
        name: sort
        type: string
        default: name
        description: "Allowed: name or -name"
      - in: query
        name: q
        type: string
    responses:
      200: { description: OK }
    """
    page, limit = parse_pagination()
    order_by = parse_sort()
    query = storage.get_session().query(Category).filter(Category.is_active.is_(True))
    q = request.args.get("q")
    if q:
        query = query.filter(func.lower(Category.name).like(f"%{q.strip().lower()}%"))
    rows, total = paginate(query, page, limit, order_by)
    return paginated_response(out_list_schema.dump(rows), page, limit, total, "Categories retrieved successfully")


@bp.get("/<category_id>")
@jwt_required()
def get_category(category_id: str):
    """
    Get a category by id
    ---
    tags: [Categories]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: category_id
        type: string
        required: true
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    category = get_or_404(Category, category_id, "Category")
    return success_response(out_schema.dump(category), "Category retrieved successfully")


@bp.post("")
@admin_required()
def create_category():
    """
    Create a category (admin)
    ---
    tags: [Categories]
    security:
      - Bearer: []
    consumes: [application/json]
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [name]
          properties:
            name: { type: string, maxLength: 64 }
    responses:
      201: { description: Created }
      409: { description: Name already exists }
    """
    data = create_schema.load(request.get_json(silent=True) or {})
    if name_taken(Category, data["name"]):
        raise Conflict("Category name already exists")
    category = Category(name=data["name"])
    storage.new(category)
    storage.save()
    return created_response(out_schema.dump(category), "Category created successfully")


@bp.put("/<category_id>")
@admin_required()
def update_category(category_id: str):
    """
    Update a category (admin)
    ---
    tags: [Categories]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: category_id
        type: string
        required: true
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            name: { type: string, maxLength: 64 }
            isActive: { type: boolean }
    responses:
      200: { description: OK }
      404: { description: Not found }
      409: { description: Name already exists }
    """
    category = get_or_404(Category, category_id, "Category", active_only=False)
    data = update_schema.load(request.get_json(silent=True) or {})
    if "name" in data:
        if name_taken(Category, data["name"], exclude_id=category.id):
            raise Conflict("Category name already exists")
        category.name = data["name"]
    if "is_active" in data:
        category.is_active = data["is_active"]
    category.save()
    return success_response(out_schema.dump(category), "Category updated successfully")


@bp.delete("/<category_id>")
@admin_required()
def delete_category(category_id: str):
    """
    Deactivate a category (admin)
    ---
    tags: [Categories]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: category_id
        type: string
        required: true
    responses:
      200: { description: Deactivated }
      404: { description: Not found }
    """
    category = get_or_404(Category, category_id, "Category")
    category.delete()  # sets is_active = False
    return success_response(None, "Category deleted successfully")
