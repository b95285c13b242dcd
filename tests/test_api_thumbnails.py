from __future__ import annotations

import re

from fastapi.testclient import TestClient

from app.api import deps
from app.core.config import get_settings
from app.main import create_app

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDRfake-png"
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIFfake-jpeg"


def _upload(client, video_id: str, headers: dict[str, str], *, data: bytes = PNG_BYTES, content_type: str = "image/png"):
    return client.post(
        f"/api/v1/thumbnails/{video_id}",
        files={"thumbnail": ("thumb.png", data, content_type)},
        headers=headers,
    )


def test_upload_and_fetch_thumbnail(client, owner_headers, other_headers, create_video):
    video = create_video(owner_headers)

    resp = _upload(client, video["id"], owner_headers)

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["thumbnail_url"] == f"http://testserver/api/v1/thumbnails/{video['id']}"
    assert body["revision"] == video["revision"] + 1

    fetched = client.get(f"/api/v1/thumbnails/{video['id']}", headers=owner_headers)
    assert fetched.status_code == 200
    assert fetched.content == PNG_BYTES
    assert fetched.headers["content-type"] == "image/png"
    assert fetched.headers["cache-control"] == "no-store"

    # any authenticated caller may read it
    assert client.get(f"/api/v1/thumbnails/{video['id']}", headers=other_headers).content == PNG_BYTES


def test_replacing_thumbnail_serves_latest(client, owner_headers, create_video):
    video = create_video(owner_headers)
    _upload(client, video["id"], owner_headers)
    resp = _upload(client, video["id"], owner_headers, data=JPEG_BYTES, content_type="image/jpeg")
    assert resp.status_code == 200

    fetched = client.get(f"/api/v1/thumbnails/{video['id']}", headers=owner_headers)
    assert fetched.content == JPEG_BYTES
    assert fetched.headers["content-type"] == "image/jpeg"


def test_fetch_requires_authentication(client, owner_headers, create_video):
    video = create_video(owner_headers)
    _upload(client, video["id"], owner_headers)
    assert client.get(f"/api/v1/thumbnails/{video['id']}").status_code == 401


def test_fetch_distinguishes_missing_video_and_missing_thumbnail(client, owner_headers, create_video):
    video = create_video(owner_headers)

    resp = client.get(f"/api/v1/thumbnails/{video['id']}", headers=owner_headers)
    assert resp.status_code == 404
    assert resp.json() == {"error": "not_found", "detail": "thumbnail_not_found"}

    resp = client.get("/api/v1/thumbnails/unknown-video", headers=owner_headers)
    assert resp.status_code == 404
    assert resp.json() == {"error": "not_found", "detail": "video_not_found"}


def test_rejects_unsupported_image_type(client, owner_headers, create_video):
    video = create_video(owner_headers)

    resp = _upload(client, video["id"], owner_headers, data=b"GIF89a", content_type="image/gif")

    assert resp.status_code == 400
    assert resp.json()["detail"] == "thumbnail must be a png or jpeg image"
    assert client.get(f"/api/v1/videos/{video['id']}", headers=owner_headers).json()["thumbnail_url"] is None


def test_rejects_oversized_thumbnail(client, owner_headers, create_video):
    limited = get_settings().model_copy(update={"max_thumbnail_upload_bytes": 4})
    client.app.dependency_overrides[deps.get_app_settings] = lambda: limited
    video = create_video(owner_headers)

    resp = _upload(client, video["id"], owner_headers)

    assert resp.status_code == 400
    assert resp.json()["detail"] == "file too large"
    assert client.get(f"/api/v1/videos/{video['id']}", headers=owner_headers).json()["thumbnail_url"] is None


def test_accepts_thumbnail_exactly_at_limit(client, owner_headers, create_video):
    limited = get_settings().model_copy(update={"max_thumbnail_upload_bytes": len(PNG_BYTES)})
    client.app.dependency_overrides[deps.get_app_settings] = lambda: limited
    video = create_video(owner_headers)

    resp = _upload(client, video["id"], owner_headers)

    assert resp.status_code == 200, resp.text
    assert client.get(f"/api/v1/thumbnails/{video['id']}", headers=owner_headers).content == PNG_BYTES


def test_non_owner_cannot_upload(client, owner_headers, other_headers, create_video):
    video = create_video(owner_headers)

    resp = _upload(client, video["id"], other_headers)

    assert resp.status_code == 403
    assert resp.json()["detail"] == "not_video_owner"
    assert client.get(f"/api/v1/thumbnails/{video['id']}", headers=owner_headers).status_code == 404


def test_upload_for_unknown_video_is_bad_request(client, owner_headers):
    resp = _upload(client, "unknown-video", owner_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "video_not_found"


def test_disk_store_serves_thumbnails_as_static_assets(monkeypatch, owner_headers, fake_prober, fake_remuxer):
    monkeypatch.setenv("REELHOST_THUMBNAIL_STORE", "disk")
    get_settings.cache_clear()
    app = create_app()
    app.dependency_overrides[deps.get_prober] = lambda: fake_prober
    app.dependency_overrides[deps.get_remuxer] = lambda: fake_remuxer

    with TestClient(app) as client:
        created = client.post("/api/v1/videos", json={"title": "On disk"}, headers=owner_headers).json()
        resp = _upload(client, created["id"], owner_headers, data=JPEG_BYTES, content_type="image/jpeg")
        assert resp.status_code == 200, resp.text

        thumbnail_url = resp.json()["thumbnail_url"]
        match = re.fullmatch(r"http://testserver(/assets/([0-9a-f]{64})\.jpeg)", thumbnail_url)
        assert match, thumbnail_url
        assert (get_settings().thumbnail_dir / f"{match.group(2)}.jpeg").read_bytes() == JPEG_BYTES

        static = client.get(match.group(1))
        assert static.status_code == 200
        assert static.content == JPEG_BYTES

        via_api = client.get(f"/api/v1/thumbnails/{created['id']}", headers=owner_headers)
        assert via_api.content == JPEG_BYTES
        assert via_api.headers["content-type"] == "image/jpeg"
