"""
Upload proxy: POST /api/upload?folder=profilepicture|news|post

Each multipart `files` part is checked against the folder allow-list,
extension allow-list and per-file size limit, then forwarded to the media
host. If any file fails, the files already stored for this request are
deleted again.

With the local media provider, stored files are served from /media/<id>.
"""
from __future__ import annotations

import logging
import os

from flask import Blueprint, abort, current_app, request, send_from_directory

from api.responses import created_response
from services.errors import ServiceError, ValidationError
from services.media import LocalMediaHost
from utils.context import get_services
from utils.decorators import jwt_required, principal_key, rate_limit

logger = logging.getLogger(__name__)

bp = Blueprint("uploads", __name__)
media_bp = Blueprint("media", __name__)


def _file_size(file) -> int:
    stream = file.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def _validate(files, cfg) -> None:
    if not files:
        raise ValidationError("No files uploaded", detail={"field": "files"})
    if len(files) > cfg["UPLOAD_MAX_FILES"]:
        raise ValidationError(
            f"Too many files. Maximum is {cfg['UPLOAD_MAX_FILES']}",
            detail={"field": "files"},
        )
    allowed = {ext.lower() for ext in cfg["UPLOAD_ALLOWED_EXTENSIONS"]}
    for file in files:
        ext = file.filename.rsplit(".", 1)[-1].lower() if "." in (file.filename or "") else ""
        if ext not in allowed:
            raise ValidationError(
                f"File type not allowed: {file.filename}",
                detail={"field": "files", "allowed": sorted(allowed)},
            )
        if _file_size(file) > cfg["UPLOAD_MAX_FILE_BYTES"]:
            logger.warning("Rejected oversized upload %s", file.filename)
            abort(413)


@bp.post("/upload")
@jwt_required()
@rate_limit("upload", principal_key)
def upload():
    """
    Upload files to the media host
    ---
    tags: [Uploads]
    security:
      - Bearer: []
    consumes: [multipart/form-data]
    parameters:
      - in: query
        name: folder
        type: string
        required: true
        enum: [profilepicture, news, post]
      - in: formData
        name: files
        type: file
        required: true
    responses:
      201: { description: "Uploaded; data.files lists {url, id, folder, size, format}" }
      400: { description: "Invalid folder, no files or file type not allowed" }
      413: { description: File too large }
      503: { description: Media host unavailable }
    """
    cfg = current_app.config
    folder = (request.args.get("folder") or "").strip().lower()
    if folder not in cfg["UPLOAD_ALLOWED_FOLDERS"]:
        raise ValidationError(
            "Invalid folder",
            detail={"field": "folder", "allowed": list(cfg["UPLOAD_ALLOWED_FOLDERS"])},
        )
    files = [f for f in request.files.getlist("files") if f and f.filename]
    _validate(files, cfg)

    host = get_services().media
    stored = []
    try:
        for file in files:
            stored.append(host.upload(file, folder))
    except ServiceError:
        for media in stored:
            try:
                host.delete(media.id)
            except ServiceError:
                logger.warning("Could not roll back uploaded media %s", media.id)
        raise
    logger.info("Uploaded %d file(s) to %s", len(stored), folder)
    return created_response({"files": [m.to_dict() for m in stored]}, "Files uploaded successfully")


@media_bp.get("/media/<path:media_id>")
def serve_media(media_id: str):
    host = get_services().media
    if not isinstance(host, LocalMediaHost):
        abort(404)
    return send_from_directory(host.base_dir, media_id)
