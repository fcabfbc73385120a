"""
Posts: public read; any signed-in user may publish; the author or any admin
may edit or delete. Deleted posts stay readable to the author and admins.
"""
from __future__ import annotations

from flask import Blueprint, g, request

from api.lookups import get_or_404, paginate, require_active
from api.responses import created_response, paginated_response, parse_pagination, success_response
from models import storage
from models.category import Category
from models.district import District
from models.post import Post
from models.taluka import Taluka
from models.schemas.post import PostCreateSchema, PostOutSchema, PostUpdateSchema
from services.errors import Forbidden, NotFound, ValidationError
from utils.decorators import jwt_optional, jwt_required, user_required

bp = Blueprint("posts", __name__, url_prefix="/posts")

create_schema = PostCreateSchema()
update_schema = PostUpdateSchema()
out_schema = PostOutSchema()
out_list_schema = PostOutSchema(many=True)

FILTERS = (("categoryId", Post.category_id), ("districtId", Post.district_id), ("talukaId", Post.taluka_id))


def _resolve_location(category_id: str, district_id: str, taluka_id: str):
    category = require_active(Category, category_id, "Category")
    district = require_active(District, district_id, "District")
    taluka = require_active(Taluka, taluka_id, "Taluka")
    if taluka.district_id != district.id:
        raise ValidationError("Taluka does not belong to the district", detail={"field": "talukaId"})
    return category, district, taluka


def _can_edit(post: Post) -> bool:
    if g.current_admin is not None:
        return True
    return g.current_user is not None and g.current_user.id == post.posted_by


def _ensure_can_edit(post: Post) -> None:
    if not _can_edit(post):
        raise Forbidden("You can only modify your own posts")


@bp.get("")
def list_posts():
    """
    List active posts, newest first
    ---
    tags: [Posts]
    parameters:
      - in: query
        name: categoryId
        type: string
      - in: query
        name: districtId
        type: string
      - in: query
        name: talukaId
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
    query = storage.get_session().query(Post).filter(Post.is_active.is_(True))
    for arg, column in FILTERS:
        value = request.args.get(arg)
        if value:
            query = query.filter(column == value)
    rows, total = paginate(query, page, limit, Post.created_at.desc())
    return paginated_response(out_list_schema.dump(rows), page, limit, total, "Posts retrieved successfully")


@bp.get("/<post_id>")
@jwt_optional()
def get_post(post_id: str):
    """
    Get a post. Deleted posts stay visible to their author and to admins.
    ---
    tags: [Posts]
    parameters:
      - in: path
        name: post_id
        type: string
        required: true
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    post = get_or_404(Post, post_id, "Post", active_only=False)
    if not post.is_active and not _can_edit(post):
        raise NotFound("Post not found")
    return success_response(out_schema.dump(post), "Post retrieved successfully")


@bp.post("")
@user_required()
def create_post():
    """
    Publish a post
    ---
    tags: [Posts]
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [title, description, categoryId, districtId, talukaId]
          properties:
            title: { type: string }
            description: { type: string }
            media: { type: array, items: { type: string } }
            categoryId: { type: string }
            districtId: { type: string }
            talukaId: { type: string }
    responses:
      201: { description: Created }
      400: { description: Validation error or unknown reference }
    """
    data = create_schema.load(request.get_json(silent=True) or {})
    category, district, taluka = _resolve_location(data["category_id"], data["district_id"], data["taluka_id"])
    post = Post(
        title=data["title"],
        description=data["description"],
        media=data["media"],
        category=category,
        district=district,
        taluka=taluka,
        author=g.current_user,
    )
    storage.new(post)
    storage.save()
    return created_response(out_schema.dump(post), "Post created successfully")


@bp.put("/<post_id>")
@jwt_required()
def update_post(post_id: str):
    """
    Update a post (author or admin)
    ---
    tags: [Posts]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: post_id
        type: string
        required: true
      - in: body
        name: body
        schema:
          type: object
          properties:
            title: { type: string }
            description: { type: string }
            media: { type: array, items: { type: string } }
            categoryId: { type: string }
            districtId: { type: string }
            talukaId: { type: string }
            isActive: { type: boolean }
    responses:
      200: { description: Updated }
      403: { description: Not the author }
      404: { description: Not found }
    """
    post = get_or_404(Post, post_id, "Post", active_only=g.current_admin is None)
    _ensure_can_edit(post)
    data = update_schema.load(request.get_json(silent=True) or {})
    if {"category_id", "district_id", "taluka_id"} & data.keys():
        post.category, post.district, post.taluka = _resolve_location(
            data.get("category_id", post.category_id),
            data.get("district_id", post.district_id),
            data.get("taluka_id", post.taluka_id),
        )
    for field in ("title", "description", "media", "is_active"):
        if field in data:
            setattr(post, field, data[field])
    post.save()
    return success_response(out_schema.dump(post), "Post updated successfully")


@bp.delete("/<post_id>")
@jwt_required()
def delete_post(post_id: str):
    """
    Deactivate a post (author or admin)
    ---
    tags: [Posts]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: post_id
        type: string
        required: true
    responses:
      200: { description: Deleted }
      403: { description: Not the author }
      404: { description: Not found }
    """
    post = get_or_404(Post, post_id, "Post")
    _ensure_can_edit(post)
    post.delete()  # sets is_active = False
    return success_response(None, "Post deleted successfully")
