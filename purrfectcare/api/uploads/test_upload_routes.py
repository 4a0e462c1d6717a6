# purrfectcare/api/uploads/test_upload_routes.py
from unittest.mock import MagicMock

import pytest

@pytest.fixture
def user(make_user):
    return make_user()

@pytest.fixture
def bucket(app):
    """Firebase 버킷 대신 MagicMock을 주입해 업로드 API를 활성화합니다."""
    mock_bucket = MagicMock()
    blob = mock_bucket.blob.return_value
    blob.generate_signed_url.return_value = "https://storage.example.com/signed-put-url"
    blob.exists.return_value = True
    blob.public_url = "https://storage.example.com/public/file.png"
    app.services['storage'].bucket = mock_bucket
    return mock_bucket

def test_upload_endpoints_disabled_without_storage(client, user, auth_headers):
    headers = auth_headers(user)

    for url in ("/api/uploads/url", "/api/uploads/finalize"):
        response = client.post(url, json={}, headers=headers)
        assert response.status_code == 503
        assert response.get_json()["error_code"] == "STORAGE_UNAVAILABLE"

def test_generate_upload_url(client, user, auth_headers, bucket):
    response = client.post("/api/uploads/url", json={
        "uploadType": "pet_photo",
        "filename": "milo.png",
        "contentType": "image/png"
    }, headers=auth_headers(user))

    assert response.status_code == 200
    body = response.get_json()
    assert body["uploadUrl"] == "https://storage.example.com/signed-put-url"
    assert body["filePath"].startswith(f"pets/{user['_id']}/")
    assert body["filePath"].endswith(".png")

    _, kwargs = bucket.blob.return_value.generate_signed_url.call_args
    assert kwargs["method"] == "PUT"
    assert kwargs["content_type"] == "image/png"

def test_generate_upload_url_rejects_unknown_type(client, user, auth_headers, bucket):
    response = client.post("/api/uploads/url", json={
        "uploadType": "video",
        "filename": "clip.mp4",
        "contentType": "video/mp4"
    }, headers=auth_headers(user))

    assert response.status_code == 400
    assert response.get_json()["error"] == "'video' is not a valid upload type."

def test_finalize_upload(client, user, auth_headers, bucket):
    headers = auth_headers(user)

    foreign = client.post("/api/uploads/finalize", json={"filePath": "pets/someone-else/file.png"}, headers=headers)
    assert foreign.status_code == 403

    ok = client.post("/api/uploads/finalize", json={"filePath": f"pets/{user['_id']}/file.png"}, headers=headers)
    assert ok.status_code == 200
    assert ok.get_json() == {"publicUrl": "https://storage.example.com/public/file.png"}
    bucket.blob.return_value.make_public.assert_called_once()

    bucket.blob.return_value.exists.return_value = False
    missing = client.post("/api/uploads/finalize", json={"filePath": f"pets/{user['_id']}/gone.png"}, headers=headers)
    assert missing.status_code == 404
    assert missing.get_json()["error_code"] == "FILE_NOT_FOUND"
