import io
import json

import httpx
import pytest
from werkzeug.datastructures import FileStorage

from services.errors import MediaHostError, NotFound, SmsDeliveryError
from services.media import HttpMediaHost, LocalMediaHost, create_media_host
from services.sms import ConsoleSmsDispatcher, HttpSmsDispatcher, MemorySmsDispatcher, create_sms_dispatcher, mask_phone


def _sms(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HttpSmsDispatcher("https://sms.example.com/send", "key", sender_id="CMS", client=client)


def test_mask_phone():
    assert mask_phone("+15551234567") == "********4567"
    assert mask_phone("") == ""
    assert mask_phone(None) == ""


def test_http_sms_posts_message():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"ok": True})

    assert _sms(handler).send_otp("+15551234567", "482913") is True
    assert seen["body"]["phone"] == "+15551234567"
    assert "482913" in seen["body"]["message"]
    assert seen["body"]["sender"] == "CMS"


def test_http_sms_gateway_error():
    dispatcher = _sms(lambda request: httpx.Response(500))
    with pytest.raises(SmsDeliveryError):
        dispatcher.send_otp("+15551234567", "482913")


def test_http_sms_timeout():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(SmsDeliveryError) as info:
        _sms(handler).send_otp("+15551234567", "482913")
    assert info.value.message == "SMS gateway timed out, please retry"


def test_console_sms_prints_code(capsys):
    ConsoleSmsDispatcher().send_otp("+15551234567", "482913")
    assert "482913" in capsys.readouterr().out


def test_sms_factory():
    assert isinstance(create_sms_dispatcher({"SMS_PROVIDER": "memory"}), MemorySmsDispatcher)
    with pytest.raises(ValueError):
        create_sms_dispatcher({"SMS_PROVIDER": "http", "SMS_API_URL": ""})
    with pytest.raises(ValueError):
        create_sms_dispatcher({"SMS_PROVIDER": "pigeon"})


def _file(name="photo.jpg", payload=b"bytes"):
    return FileStorage(stream=io.BytesIO(payload), filename=name, content_type="image/jpeg")


def test_local_host_upload_move_delete(tmp_path):
    host = LocalMediaHost(str(tmp_path))
    media = host.upload(_file("My Photo.JPG"), "post")
    assert media.id.startswith("myapp/post/")
    assert media.id.endswith("My_Photo.jpg")
    assert media.format == "jpg"
    assert media.url == f"/media/{media.id}"
    assert host.id_from_url(media.url) == media.id

    moved = host.move(media.id, "news")
    assert moved.id.startswith("myapp/news/")
    assert (tmp_path / moved.id).exists()
    assert not (tmp_path / media.id).exists()

    assert host.delete(moved.id) is True
    assert host.delete(moved.id) is False


def test_local_host_keeps_same_named_uploads_apart(tmp_path):
    host = LocalMediaHost(str(tmp_path))
    first = host.upload(_file("photo.png", b"short"), "post")
    second = host.upload(_file("photo.png", b"much longer"), "post")
    assert first.id != second.id
    assert (first.size, second.size) == (5, 11)
    assert (tmp_path / first.id).read_bytes() == b"short"


def test_local_host_refuses_paths_outside_base(tmp_path):
    host = LocalMediaHost(str(tmp_path / "media"))
    with pytest.raises(NotFound):
        host.delete("../../etc/passwd")


def _media_host(handler):
    client = httpx.Client(base_url="https://media.example.com", transport=httpx.MockTransport(handler))
    return HttpMediaHost("https://media.example.com", "key", client=client)


def test_http_media_upload():
    def handler(request):
        assert request.url.path == "/upload"
        return httpx.Response(200, json={"url": "https://cdn.example.com/myapp/post/1-a.jpg",
                                         "id": "myapp/post/1-a", "size": 5})

    media = _media_host(handler).upload(_file("a.jpg"), "post")
    assert media.id == "myapp/post/1-a"
    assert media.format == "jpg"
    assert media.size == 5


def test_http_media_errors():
    with pytest.raises(NotFound):
        _media_host(lambda request: httpx.Response(404)).delete("myapp/post/missing")
    with pytest.raises(MediaHostError):
        _media_host(lambda request: httpx.Response(502)).delete("myapp/post/x")


def test_http_media_id_from_url():
    host = _media_host(lambda request: httpx.Response(200))
    assert host.id_from_url("https://cdn.example.com/v1/myapp/news/1-a.jpg") == "myapp/news/1-a"
    assert host.id_from_url("https://elsewhere.example.com/a.jpg") is None


def test_media_factory(tmp_path):
    assert isinstance(create_media_host({"MEDIA_PROVIDER": "local", "MEDIA_LOCAL_DIR": str(tmp_path)}),
                      LocalMediaHost)
    with pytest.raises(ValueError):
        create_media_host({"MEDIA_PROVIDER": "ftp"})
