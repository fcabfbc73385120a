import io

import pytest

from services.errors import MediaHostError


@pytest.fixture
def headers(make_user, user_headers):
    return user_headers(make_user())


def _files(*names, payload=b"\x89PNG data"):
    return {"files": [(io.BytesIO(payload), name) for name in names]}


def _post(client, headers, data, folder="post"):
    return client.post(f"/api/upload?folder={folder}", headers=headers, data=data,
                       content_type="multipart/form-data")


def test_upload_and_serve(client, headers):
    res = _post(client, headers, _files("cover.png", "back.jpg"))
    assert res.status_code == 201
    files = res.get_json()["data"]["files"]
    assert len(files) == 2
    assert files[0]["folder"] == "post"
    assert files[0]["format"] == "png"
    assert files[0]["id"].startswith("myapp/post/")

    served = client.get(files[0]["url"])
    assert served.status_code == 200
    assert served.data == b"\x89PNG data"


def test_upload_requires_auth(client):
    assert _post(client, {}, _files("a.png")).status_code == 401


def test_admin_can_upload(client, make_admin, admin_headers):
    res = _post(client, admin_headers(make_admin()), _files("a.png"), folder="news")
    assert res.status_code == 201


def test_invalid_folder(client, headers):
    res = _post(client, headers, _files("a.png"), folder="secrets")
    assert res.status_code == 400
    assert res.get_json()["errors"][0]["field"] == "folder"


def test_no_files(client, headers):
    res = _post(client, headers, {})
    assert res.status_code == 400
    assert res.get_json()["message"] == "No files uploaded"


def test_disallowed_extension(client, headers):
    res = _post(client, headers, _files("script.exe"))
    assert res.status_code == 400


def test_too_many_files(app, client, headers):
    app.config["UPLOAD_MAX_FILES"] = 2
    res = _post(client, headers, _files("a.png", "b.png", "c.png"))
    assert res.status_code == 400
    assert res.get_json()["message"] == "Too many files. Maximum is 2"


def test_oversized_file_is_413(app, client, headers):
    app.config["UPLOAD_MAX_FILE_BYTES"] = 10
    res = _post(client, headers, _files("big.png", payload=b"x" * 11))
    assert res.status_code == 413


def test_failed_upload_rolls_back_stored_files(client, headers, services, monkeypatch):
    host = services.media
    real_upload = host.upload
    stored, deleted = [], []

    def flaky_upload(file, folder):
        if stored:
            raise MediaHostError()
        media = real_upload(file, folder)
        stored.append(media.id)
        return media

    real_delete = host.delete

    def tracking_delete(media_id):
        deleted.append(media_id)
        return real_delete(media_id)

    monkeypatch.setattr(host, "upload", flaky_upload)
    monkeypatch.setattr(host, "delete", tracking_delete)

    res = _post(client, headers, _files("a.png", "b.png"))
    assert res.status_code == 503
    assert deleted == stored


def test_media_path_escape_is_404(client):
    assert client.get("/media/../../etc/passwd").status_code == 404


def test_same_named_files_get_distinct_ids(client, headers):
    data = {"files": [(io.BytesIO(b"first"), "photo.png"), (io.BytesIO(b"second!"), "photo.png")]}
    res = _post(client, headers, data)
    assert res.status_code == 201
    first, second = res.get_json()["data"]["files"]
    assert first["id"] != second["id"]
    assert client.get(first["url"]).data == b"first"
    assert client.get(second["url"]).data == b"second!"
