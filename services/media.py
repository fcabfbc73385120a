"""
Media hosts that uploaded files are proxied to.

Both hosts expose upload(file, folder), move(media_id, folder) and delete(media_id).
Ids look like "<root>/<folder>/<timestamp>-<random>-<name>", and the folder part of an id
is what `move` rewrites.

- LocalMediaHost writes under MEDIA_LOCAL_DIR and serves files from /media
- HttpMediaHost forwards to a remote media service with httpx
"""
from __future__ import annotations

import logging
import os
import shutil
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Optional

import httpx
from werkzeug.utils import secure_filename

from services.errors import MediaHostError, NotFound

logger = logging.getLogger(__name__)


@dataclass
class MediaFile:
    url: str
    id: str
    folder: str
    size: int
    format: str

    def to_dict(self):
        return asdict(self)


def _split_name(filename: str):
    name = secure_filename(filename or "") or "file"
    stem, _, ext = name.rpartition(".")
    if not stem:
        stem, ext = ext, ""
    return stem, ext.lower()


def _unique_stem(stem: str) -> str:
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{stem}"


class LocalMediaHost:
    def __init__(self, base_dir: str, public_base_url: str = "/media", root_folder: str = "myapp"):
        self.base_dir = os.path.abspath(base_dir)
        self.public_base_url = public_base_url.rstrip("/")
        self.root_folder = root_folder
        os.makedirs(self.base_dir, exist_ok=True)

    def _path(self, media_id: str) -> str:
        path = os.path.abspath(os.path.join(self.base_dir, media_id))
        if not path.startswith(self.base_dir + os.sep):
            raise NotFound("Media not found")
        return path

    def url_for(self, media_id: str) -> str:
        return f"{self.public_base_url}/{media_id}"

    def upload(self, file, folder: str) -> MediaFile:
        stem, ext = _split_name(file.filename)
        media_id = f"{self.root_folder}/{folder}/{_unique_stem(stem)}"
        if ext:
            media_id = f"{media_id}.{ext}"
        path = self._path(media_id)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        try:
            file.save(path)
        except OSError as exc:
            raise MediaHostError("Could not store the uploaded file") from exc
        size = os.path.getsize(path)
        logger.info("Stored media %s (%s bytes)", media_id, size)
        return MediaFile(url=self.url_for(media_id), id=media_id, folder=folder, size=size, format=ext)

    def move(self, media_id: str, folder: str) -> MediaFile:
        source = self._path(media_id)
        if not os.path.exists(source):
            raise NotFound("Media not found")
        name = os.path.basename(media_id)
        new_id = f"{self.root_folder}/{folder}/{name}"
        target = self._path(new_id)
        os.makedirs(os.path.dirname(target), exist_ok=True)
        shutil.move(source, target)
        _, ext = _split_name(name)
        return MediaFile(url=self.url_for(new_id), id=new_id, folder=folder, size=os.path.getsize(target), format=ext)

    def delete(self, media_id: str) -> bool:
        path = self._path(media_id)
        if not os.path.exists(path):
            return False
        os.remove(path)
        logger.info("Deleted media %s", media_id)
        return True

    def id_from_url(self, url: str) -> Optional[str]:
        prefix = f"{self.public_base_url}/"
        if url and url.startswith(prefix):
            return url[len(prefix):]
        return None


class HttpMediaHost:
    def __init__(self, api_url: str, api_key: str, root_folder: str = "myapp", timeout: float = 10.0,
                 client: Optional[httpx.Client] = None):
        if not api_url:
            raise ValueError("MEDIA_API_URL is required for the http media provider")
        self.api_url = api_url.rstrip("/")
        self.root_folder = root_folder
        self._client = client or httpx.Client(
            base_url=self.api_url,
            timeout=timeout,
            headers={"Authorization": f"Bearer {api_key}"},
        )

    def _call(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            logger.error("Media host timed out: %s %s", method, path)
            raise MediaHostError("Media host timed out, please retry") from exc
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                raise NotFound("Media not found") from exc
            logger.error("Media host returned %s for %s %s", exc.response.status_code, method, path)
            raise MediaHostError() from exc
        except httpx.HTTPError as exc:
            logger.error("Media host unreachable: %s", exc.__class__.__name__)
            raise MediaHostError() from exc
        return response.json() if response.content else {}

    def _media(self, body: dict, folder: str) -> MediaFile:
        return MediaFile(
            url=body["url"],
            id=body["id"],
            folder=folder,
            size=int(body.get("size") or 0),
            format=body.get("format") or "",
        )

    def upload(self, file, folder: str) -> MediaFile:
        stem, ext = _split_name(file.filename)
        body = self._call(
            "POST",
            "/upload",
            data={"folder": f"{self.root_folder}/{folder}", "public_id": _unique_stem(stem)},
            files={"file": (file.filename, file.stream, file.mimetype or "application/octet-stream")},
        )
        body.setdefault("format", ext)
        return self._media(body, folder)

    def move(self, media_id: str, folder: str) -> MediaFile:
        body = self._call("POST", "/move", json={"id": media_id, "folder": f"{self.root_folder}/{folder}"})
        return self._media(body, folder)

    def delete(self, media_id: str) -> bool:
        self._call("DELETE", f"/files/{media_id}")
        return True

    def id_from_url(self, url: str) -> Optional[str]:
        marker = f"/{self.root_folder}/"
        if not url or marker not in url:
            return None
        media_id = self.root_folder + "/" + url.split(marker, 1)[1]
        return media_id.rsplit(".", 1)[0] if "." in media_id.rsplit("/", 1)[-1] else media_id


def create_media_host(config):
    provider = config.get("MEDIA_PROVIDER", "local")
    root = config.get("MEDIA_ROOT_FOLDER", "myapp")
    if provider == "http":
        return HttpMediaHost(
            api_url=config.get("MEDIA_API_URL"),
            api_key=config.get("MEDIA_API_KEY", ""),
            root_folder=root,
            timeout=float(config.get("MEDIA_TIMEOUT_SECONDS", 10)),
        )
    if provider == "local":
        return LocalMediaHost(
            base_dir=config.get("MEDIA_LOCAL_DIR"),
            public_base_url=config.get("MEDIA_PUBLIC_BASE_URL", "/media"),
            root_folder=root,
        )
    raise ValueError(f"Unknown MEDIA_PROVIDER: {provider!r}")
