"""
News: public read, admin-only writes.

Media given as an upload reference from another folder is moved into the
news folder. Replaced media is removed from the media host after the row is
updated, and deleting a news item removes the row and its media.
"""
from __future__ import annotations

import logging

from flask import Blueprint, g, request

from api.lookups import get_or_404, paginate
from api.responses import created_response, paginated_response, parse_pagination, success_response
from models import storage
from models.news import News
from models.schemas.news import NewsCreateSchema, NewsOutSchema, NewsUpdateSchema
from services.errors import ServiceError
from utils.context import get_services
from utils.decorators import admin_required

logger = logging.getLogger(__name__)

bp = Blueprint("news", __name__, url_prefix="/news")

NEWS_FOLDER = "news"

create_schema = NewsCreateSchema()
update_schema = NewsUpdateSchema()
out_schema = NewsOutSchema()
out_list_schema = NewsOutSchema(many=True)


def _folder_of(media_id: str) -> str | None:
    parts = media_id.split("/")
    return parts[-2] if len(parts) >= 2 else None


def _adopt_media(ref: dict):
    """Return (url, media_id, moved) for a loaded media reference."""
    host = get_services().media
    media_id = ref["id"] or host.id_from_url(ref["url"])
    if media_id and _folder_of(media_id) != NEWS_FOLDER:
        moved = host.move(media_id, NEWS_FOLDER)
        return moved.url, moved.id, True
    return ref["url"], media_id, False


def _discard_media(media_id: str | None, reason: str) -> None:
    if not media_id:
        return
    try:
        get_services().media.delete(media_id)
    except ServiceError as exc:
        logger.warning("Failed to delete media %s (%s): %s", media_id, reason, exc.message)


@bp.get("")
def list_news():
    """
    List active news, newest first
    ---
    tags: [News]
    parameters:
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
    query = storage.get_session().query(News).filter(News.is_active.is_(True))
    rows, total = paginate(query, page, limit, News.created_at.desc())
    return paginated_response(out_list_schema.dump(rows), page, limit, total, "News retrieved successfully")


@bp.get("/<news_id>")
def get_news(news_id: str):
    """
    Get a news item
    ---
    tags: [News]
    parameters:
      - in: path
        name: news_id
        type: string
        required: true
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    news = get_or_404(News, news_id, "News")
    return success_response(out_schema.dump(news), "News retrieved successfully")


@bp.post("")
@admin_required()
def create_news():
    """
    Create a news item (admin)
    ---
    tags: [News]
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [title, description, media]
          properties:
            title: { type: string }
            description: { type: string }
            media:
              description: "Hosted URL, or the {url, id} object returned by /api/upload"
            isActive: { type: boolean }
    responses:
      201: { description: Created }
    """
    data = create_schema.load(request.get_json(silent=True) or {})
    url, media_id, moved = _adopt_media(data["media"])
    news = News(
        title=data["title"],
        description=data["description"],
        media=url,
        media_id=media_id,
        is_active=data["is_active"],
        created_by=g.current_admin.id,
    )
    try:
        storage.new(news)
        storage.save()
    except Exception:
        if moved:
            _discard_media(media_id, "news creation failed")
        raise
    logger.info("News created id=%s", news.id)
    return created_response(out_schema.dump(news), "News created successfully")


@bp.put("/<news_id>")
@admin_required()
def update_news(news_id: str):
    """
    Update a news item (admin)
    ---
    tags: [News]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: news_id
        type: string
        required: true
      - in: body
        name: body
        schema:
          type: object
          properties:
            title: { type: string }
            description: { type: string }
            media: { description: "Hosted URL or {url, id}" }
            isActive: { type: boolean }
    responses:
      200: { description: Updated }
      404: { description: Not found }
    """
    news = get_or_404(News, news_id, "News", active_only=False)
    data = update_schema.load(request.get_json(silent=True) or {})
    old_media_id = None
    moved = False
    if "media" in data and data["media"]["url"] != news.media:
        old_media_id = news.media_id or get_services().media.id_from_url(news.media)
        news.media, news.media_id, moved = _adopt_media(data["media"])
    for field in ("title", "description", "is_active"):
        if field in data:
            setattr(news, field, data[field])
    try:
        news.save()
    except Exception:
        if moved:
            _discard_media(news.media_id, "news update failed")
        raise
    if old_media_id and old_media_id != news.media_id:
        _discard_media(old_media_id, "replaced")
    return success_response(out_schema.dump(news), "News updated successfully")


@bp.delete("/<news_id>")
@admin_required()
def delete_news(news_id: str):
    """
    Delete a news item and its media (admin)
    ---
    tags: [News]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: news_id
        type: string
        required: true
    responses:
      200: { description: Deleted }
      404: { description: Not found }
    """
    news = get_or_404(News, news_id, "News", active_only=False)
    media_id = news.media_id or get_services().media.id_from_url(news.media)
    news.delete()
    _discard_media(media_id, "news deleted")
    logger.info("News deleted id=%s", news_id)
    return success_response(None, "News deleted successfully")
