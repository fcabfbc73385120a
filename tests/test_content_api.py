import io
import os

import pytest


@pytest.fixture
def admin(make_admin):
    return make_admin()


@pytest.fixture
def auth(admin, admin_headers):
    return admin_headers(admin)


def _create(client, path, headers, **body):
    res = client.post(path, headers=headers, json=body)
    assert res.status_code == 201, res.get_json()
    return res.get_json()["data"]


@pytest.fixture
def location(client, auth):
    district = _create(client, "/api/districts", auth, name="Pune")
    taluka = _create(client, "/api/talukas", auth, name="Haveli", districtId=district["id"])
    category = _create(client, "/api/categories", auth, name="Agriculture")
    return {"district": district, "taluka": taluka, "category": category}


# ----------------------------------------------------------------------
# districts
# ----------------------------------------------------------------------
def test_district_crud(client, auth):
    district = _create(client, "/api/districts", auth, name="Satara")
    assert district["isActive"] is True

    res = client.get(f"/api/districts/{district['id']}", headers=auth)
    assert res.status_code == 200

    res = client.put(f"/api/districts/{district['id']}", headers=auth, json={"name": "Satara City"})
    assert res.get_json()["data"]["name"] == "Satara City"

    assert client.delete(f"/api/districts/{district['id']}", headers=auth).status_code == 200
    missing = client.get(f"/api/districts/{district['id']}", headers=auth)
    assert missing.status_code == 404
    assert missing.get_json()["message"] == "District not found"


def test_district_name_is_unique_case_insensitive(client, auth):
    _create(client, "/api/districts", auth, name="Nashik")
    res = client.post("/api/districts", headers=auth, json={"name": "NASHIK"})
    assert res.status_code == 409
    assert res.get_json()["message"] == "District already exists"


def test_district_reads_need_auth_and_writes_need_admin(client, make_user, user_headers):
    assert client.get("/api/districts").status_code == 401
    headers = user_headers(make_user())
    assert client.get("/api/districts", headers=headers).status_code == 200
    assert client.post("/api/districts", headers=headers, json={"name": "Sangli"}).status_code == 403


def test_district_list_search_and_pagination(client, auth):
    for name in ("Kolhapur", "Solapur", "Latur"):
        _create(client, "/api/districts", auth, name=name)
    res = client.get("/api/districts?q=pur&limit=1", headers=auth)
    body = res.get_json()
    assert [d["name"] for d in body["data"]] == ["Kolhapur"]
    assert body["pagination"]["totalItems"] == 2
    assert body["pagination"]["hasNextPage"] is True


def test_district_talukas(client, auth, location):
    district_id = location["district"]["id"]
    _create(client, "/api/talukas", auth, name="Mulshi", districtId=district_id)
    res = client.get(f"/api/districts/{district_id}/talukas", headers=auth)
    assert [t["name"] for t in res.get_json()["data"]] == ["Haveli", "Mulshi"]


# ----------------------------------------------------------------------
# talukas
# ----------------------------------------------------------------------
def test_taluka_requires_active_district(client, auth):
    res = client.post("/api/talukas", headers=auth, json={"name": "Nowhere", "districtId": "missing"})
    assert res.status_code == 400
    assert res.get_json()["errors"][0]["field"] == "districtId"


def test_taluka_name_unique_within_district(client, auth, location):
    district_id = location["district"]["id"]
    res = client.post("/api/talukas", headers=auth, json={"name": "haveli", "districtId": district_id})
    assert res.status_code == 409

    other = _create(client, "/api/districts", auth, name="Thane")
    _create(client, "/api/talukas", auth, name="Haveli", districtId=other["id"])


def test_taluka_move_to_other_district(client, auth, location):
    other = _create(client, "/api/districts", auth, name="Raigad")
    taluka_id = location["taluka"]["id"]
    res = client.put(f"/api/talukas/{taluka_id}", headers=auth, json={"districtId": other["id"]})
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["districtId"] == other["id"]
    assert data["district"]["name"] == "Raigad"


def test_taluka_list_filter(client, auth, location):
    other = _create(client, "/api/districts", auth, name="Beed")
    _create(client, "/api/talukas", auth, name="Ashti", districtId=other["id"])
    res = client.get(f"/api/talukas?districtId={other['id']}", headers=auth)
    assert [t["name"] for t in res.get_json()["data"]] == ["Ashti"]


def test_taluka_delete(client, auth, location):
    taluka_id = location["taluka"]["id"]
    assert client.delete(f"/api/talukas/{taluka_id}", headers=auth).status_code == 200
    assert client.get(f"/api/talukas/{taluka_id}", headers=auth).status_code == 404


# ----------------------------------------------------------------------
# categories
# ----------------------------------------------------------------------
def test_category_sorting(client, auth):
    for name in ("Health", "Education", "Sports"):
        _create(client, "/api/categories", auth, name=name)
    asc = client.get("/api/categories", headers=auth).get_json()["data"]
    desc = client.get("/api/categories?sort=-name", headers=auth).get_json()["data"]
    assert [c["name"] for c in asc] == ["Education", "Health", "Sports"]
    assert [c["name"] for c in desc] == ["Sports", "Health", "Education"]
    assert client.get("/api/categories?sort=createdAt", headers=auth).status_code == 400


def test_category_conflict_and_reactivate(client, auth):
    category = _create(client, "/api/categories", auth, name="Weather")
    assert client.post("/api/categories", headers=auth, json={"name": "weather"}).status_code == 409

    client.delete(f"/api/categories/{category['id']}", headers=auth)
    assert client.get(f"/api/categories/{category['id']}", headers=auth).status_code == 404
    res = client.put(f"/api/categories/{category['id']}", headers=auth, json={"isActive": True})
    assert res.get_json()["data"]["isActive"] is True


# ----------------------------------------------------------------------
# posts
# ----------------------------------------------------------------------
def _post_body(location, **extra):
    body = {
        "title": "Monsoon update",
        "description": "Rainfall above average this week",
        "media": ["https://cdn.example.com/a.jpg"],
        "categoryId": location["category"]["id"],
        "districtId": location["district"]["id"],
        "talukaId": location["taluka"]["id"],
    }
    body.update(extra)
    return body


def test_user_creates_post_and_anyone_reads(client, location, make_user, user_headers):
    author = make_user(first_name="Sunil", last_name="More")
    res = client.post("/api/posts", headers=user_headers(author), json=_post_body(location))
    assert res.status_code == 201
    post = res.get_json()["data"]
    assert post["author"] == {"id": author.id, "firstName": "Sunil", "lastName": "More"}
    assert post["taluka"]["name"] == "Haveli"

    listed = client.get("/api/posts").get_json()
    assert listed["pagination"]["totalItems"] == 1
    assert client.get(f"/api/posts/{post['id']}").status_code == 200


def test_admin_cannot_create_post(client, location, auth):
    res = client.post("/api/posts", headers=auth, json=_post_body(location))
    assert res.status_code == 403


def test_post_taluka_must_belong_to_district(client, auth, location, make_user, user_headers):
    other = _create(client, "/api/districts", auth, name="Jalna")
    res = client.post("/api/posts", headers=user_headers(make_user()),
                      json=_post_body(location, districtId=other["id"]))
    assert res.status_code == 400
    assert res.get_json()["errors"][0]["field"] == "talukaId"


def test_post_filters(client, auth, location, make_user, user_headers):
    headers = user_headers(make_user())
    client.post("/api/posts", headers=headers, json=_post_body(location))
    other_category = _create(client, "/api/categories", auth, name="Markets")
    client.post("/api/posts", headers=headers, json=_post_body(location, categoryId=other_category["id"]))

    res = client.get(f"/api/posts?categoryId={other_category['id']}")
    assert res.get_json()["pagination"]["totalItems"] == 1
    res = client.get(f"/api/posts?districtId={location['district']['id']}")
    assert res.get_json()["pagination"]["totalItems"] == 2


def test_only_author_or_admin_edits_post(client, auth, location, make_user, user_headers):
    author, stranger = make_user(), make_user()
    post = client.post("/api/posts", headers=user_headers(author), json=_post_body(location)).get_json()["data"]

    res = client.put(f"/api/posts/{post['id']}", headers=user_headers(stranger), json={"title": "Hijacked"})
    assert res.status_code == 403
    assert res.get_json()["message"] == "You can only modify your own posts"

    res = client.put(f"/api/posts/{post['id']}", headers=user_headers(author), json={"title": "Edited"})
    assert res.get_json()["data"]["title"] == "Edited"

    res = client.put(f"/api/posts/{post['id']}", headers=auth, json={"title": "Moderated"})
    assert res.get_json()["data"]["title"] == "Moderated"


def test_delete_post(client, location, make_user, user_headers):
    author = make_user()
    headers = user_headers(author)
    post = client.post("/api/posts", headers=headers, json=_post_body(location)).get_json()["data"]
    assert client.delete(f"/api/posts/{post['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/posts/{post['id']}").status_code == 404


def test_deleted_post_visible_to_author_and_admins_only(client, auth, location, make_user, user_headers):
    author = make_user()
    headers = user_headers(author)
    post = client.post("/api/posts", headers=headers, json=_post_body(location)).get_json()["data"]
    client.delete(f"/api/posts/{post['id']}", headers=headers)

    url = f"/api/posts/{post['id']}"
    assert client.get(url, headers=headers).status_code == 200
    assert client.get(url, headers=auth).status_code == 200
    assert client.get(url, headers=user_headers(make_user())).status_code == 404
    assert client.get(url, headers={"Authorization": "Bearer not-a-token"}).status_code == 404


# ----------------------------------------------------------------------
# news
# ----------------------------------------------------------------------
def _upload(client, headers, folder, name="photo.jpg"):
    res = client.post(
        f"/api/upload?folder={folder}",
        headers=headers,
        data={"files": (io.BytesIO(b"\xff\xd8image-bytes"), name)},
        content_type="multipart/form-data",
    )
    assert res.status_code == 201, res.get_json()
    return res.get_json()["data"]["files"][0]


def test_news_with_plain_url(client, auth, admin):
    res = client.post("/api/news", headers=auth, json={
        "title": "Fair opens",
        "description": "District fair opens on Monday",
        "media": "https://cdn.example.com/fair.jpg",
    })
    assert res.status_code == 201
    data = res.get_json()["data"]
    assert data["media"] == "https://cdn.example.com/fair.jpg"
    assert data["mediaId"] is None
    assert data["createdBy"] == admin.id
    assert client.get("/api/news").get_json()["pagination"]["totalItems"] == 1


def test_news_adopts_uploaded_media(client, auth, services):
    uploaded = _upload(client, auth, "post")
    assert "/post/" in uploaded["id"]

    res = client.post("/api/news", headers=auth, json={
        "title": "Road works",
        "description": "Highway closed for repairs",
        "media": {"url": uploaded["url"], "id": uploaded["id"]},
    })
    assert res.status_code == 201
    data = res.get_json()["data"]
    assert data["mediaId"].startswith("myapp/news/")
    base = services.media.base_dir
    assert os.path.exists(os.path.join(base, data["mediaId"]))
    assert not os.path.exists(os.path.join(base, uploaded["id"]))


def test_news_media_replaced_and_deleted(client, auth, services):
    first = _upload(client, auth, "news", "first.jpg")
    news = client.post("/api/news", headers=auth, json={
        "title": "Water supply",
        "description": "Cut on Tuesday",
        "media": first,
    }).get_json()["data"]
    assert news["mediaId"] == first["id"]

    second = _upload(client, auth, "news", "second.jpg")
    res = client.put(f"/api/news/{news['id']}", headers=auth, json={"media": second})
    assert res.status_code == 200
    base = services.media.base_dir
    assert not os.path.exists(os.path.join(base, first["id"]))
    assert os.path.exists(os.path.join(base, second["id"]))

    assert client.delete(f"/api/news/{news['id']}", headers=auth).status_code == 200
    assert not os.path.exists(os.path.join(base, second["id"]))
    assert client.get(f"/api/news/{news['id']}").status_code == 404


def test_news_delete_survives_media_failure(client, auth, services, monkeypatch):
    from services.errors import MediaHostError

    news = client.post("/api/news", headers=auth, json={
        "title": "Power cut",
        "description": "Maintenance",
        "media": _upload(client, auth, "news"),
    }).get_json()["data"]

    def broken_delete(media_id):
        raise MediaHostError()

    monkeypatch.setattr(services.media, "delete", broken_delete)
    assert client.delete(f"/api/news/{news['id']}", headers=auth).status_code == 200


def test_news_writes_need_admin(client, make_user, user_headers):
    res = client.post("/api/news", headers=user_headers(make_user()),
                      json={"title": "t", "description": "d", "media": "https://x/y.jpg"})
    assert res.status_code == 403


def test_news_media_validation(client, auth):
    res = client.post("/api/news", headers=auth, json={"title": "t", "description": "d", "media": 42})
    assert res.status_code == 400
    assert res.get_json()["errors"][0]["field"] == "media"
