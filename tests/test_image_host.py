import pytest
import requests

from petadopt.image_host import (
    UploadedImage,
    UploadError,
    delete_uploaded_image,
    encode_image_data_url,
    upload_image,
)


class DummyResponse:
    def __init__(self, payload=None, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def json(self):
        if self.payload is None:
            raise ValueError("not json")
        return self.payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code}")


class DummyHttp:
    def __init__(self, response=None, raises=None):
        self.response = response
        self.raises = raises
        self.calls = []

    def post(self, url, data=None, timeout=None):
        self.calls.append((url, data))
        if self.raises is not None:
            raise self.raises
        return self.response


def test_encode_image_data_url(tmp_path):
    image = tmp_path / "rex.png"
    image.write_bytes(b"\x89PNG")
    assert encode_image_data_url(image) == "data:image/png;base64,iVBORw=="

    unknown = tmp_path / "rex.bin"
    unknown.write_bytes(b"abc")
    assert encode_image_data_url(unknown).startswith("data:image/jpeg;base64,")


def test_upload_posts_unsigned_form():
    http = DummyHttp(
        DummyResponse(
            {"secure_url": "https://res.example.com/a.jpg", "public_id": "a", "delete_token": "d"}
        )
    )
    uploaded = upload_image(
        "data:image/jpeg;base64,AAAA", cloud_name="demo", upload_preset="pets", http=http
    )
    assert uploaded == UploadedImage("https://res.example.com/a.jpg", "a", "d")
    url, data = http.calls[0]
    assert url.endswith("/demo/image/upload")
    assert data["upload_preset"] == "pets"
    assert data["file"] == "data:image/jpeg;base64,AAAA"


def test_upload_without_secure_url_raises():
    http = DummyHttp(DummyResponse({"error": {"message": "Upload preset not found"}}))
    with pytest.raises(UploadError):
        upload_image("data:image/jpeg;base64,AAAA", cloud_name="demo", http=http)


def test_upload_transport_failure_raises():
    http = DummyHttp(raises=requests.ConnectionError("down"))
    with pytest.raises(UploadError):
        upload_image("data:image/jpeg;base64,AAAA", cloud_name="demo", http=http)


@pytest.mark.parametrize("name", ["missing.jpg", "folder"])
def test_unreadable_image_path_raises_upload_error(tmp_path, name):
    (tmp_path / "folder").mkdir()
    http = DummyHttp()
    with pytest.raises(UploadError, match="Could not read image"):
        upload_image(tmp_path / name, cloud_name="demo", http=http)
    assert http.calls == []


def test_upload_requires_cloud_name(monkeypatch):
    monkeypatch.delenv("CLOUDINARY_CLOUD_NAME", raising=False)
    monkeypatch.delenv("EXPO_PUBLIC_CLOUDINARY_CLOUD_NAME", raising=False)
    http = DummyHttp()
    with pytest.raises(UploadError):
        upload_image("data:image/jpeg;base64,AAAA", http=http)
    assert http.calls == []


def test_delete_uploaded_image_uses_token():
    http = DummyHttp(DummyResponse({"result": "ok"}))
    uploaded = UploadedImage("https://res.example.com/a.jpg", "a", "d")
    assert delete_uploaded_image(uploaded, cloud_name="demo", http=http) is True
    url, data = http.calls[0]
    assert url.endswith("/demo/delete_by_token")
    assert data == {"token": "d"}


def test_delete_without_token_or_on_error_returns_false():
    http = DummyHttp(DummyResponse({}, status_code=401))
    assert delete_uploaded_image(UploadedImage("u"), cloud_name="demo", http=http) is False
    assert http.calls == []
    uploaded = UploadedImage("u", "a", "d")
    assert delete_uploaded_image(uploaded, cloud_name="demo", http=http) is False
