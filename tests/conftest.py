import asyncio
import subprocess
from pathlib import Path
from typing import Callable

import jwt
import pytest
from fastapi.testclient import TestClient

from app.api import deps
from app.core.config import get_settings
from app.core.db import Base, create_engine, create_schema
from app.core.errors import ProbeFailed, RemuxFailed
from app.ingest.faststart import Remuxer, faststart_output_path
from app.ingest.probe import MediaProber, Orientation
from app.main import create_app

JWT_SECRET = "test-secret"
JWT_ISSUER = "reelhost-test"
JWT_AUDIENCE = "reelhost"


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "no_default_env: disable the default Reelhost environment bootstrap fixture for tests that manage their own .env",
    )


@pytest.fixture(autouse=True)
def configure_environment(request, monkeypatch, tmp_path):
    if request.node.get_closest_marker("no_default_env"):
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()
        return
    db_path = tmp_path / "reelhost_test.db"
    assets_root = tmp_path / "assets"

    monkeypatch.setenv("REELHOST_ENV", "test")
    monkeypatch.setenv("REELHOST_LOG_LEVEL", "debug")
    monkeypatch.setenv("REELHOST_DB_URL", f"sqlite+aiosqlite:///{db_path}")
    monkeypatch.setenv("REELHOST_ASSETS_ROOT", str(assets_root))
    monkeypatch.setenv("REELHOST_STORAGE_BACKEND", "local")
    monkeypatch.setenv("REELHOST_THUMBNAIL_STORE", "memory")
    monkeypatch.setenv("REELHOST_PUBLIC_BASE_URL", "http://testserver")
    monkeypatch.setenv("REELHOST_JWT_SECRET", JWT_SECRET)
    monkeypatch.setenv("REELHOST_JWT_ISSUER", JWT_ISSUER)
    monkeypatch.setenv("REELHOST_JWT_AUDIENCE", JWT_AUDIENCE)

    get_settings.cache_clear()
    settings = get_settings()
    engine = create_engine(settings)

    async def _setup() -> None:
        await create_schema(engine)

    asyncio.run(_setup())

    yield

    async def _teardown() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()

    asyncio.run(_teardown())
    get_settings.cache_clear()


class FakeProber(MediaProber):
    def __init__(self, orientation: Orientation = "landscape", *, fail: bool = False):
        self.orientation = orientation
        self.fail = fail
        self.calls: list[Path] = []

    def probe(self, path: Path) -> Orientation:
        assert path.exists(), "probe must run against the staged file"
        self.calls.append(path)
        if self.fail:
            raise ProbeFailed("ffprobe exited with status 1", stderr="moov atom not found")
        return self.orientation


class FakeRemuxer(Remuxer):
    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.calls: list[Path] = []

    def remux(self, path: Path) -> Path:
        self.calls.append(path)
        output = faststart_output_path(path)
        if self.fail:
            output.write_bytes(b"partial")
            raise RemuxFailed("ffmpeg exited with status 1", stderr="Invalid data found when processing input")
        output.write_bytes(b"faststart:" + path.read_bytes())
        return output


@pytest.fixture()
def fake_prober() -> FakeProber:
    return FakeProber()


@pytest.fixture()
def fake_remuxer() -> FakeRemuxer:
    return FakeRemuxer()


@pytest.fixture()
def app(configure_environment, fake_prober, fake_remuxer):
    application = create_app()
    application.dependency_overrides[deps.get_prober] = lambda: fake_prober
    application.dependency_overrides[deps.get_remuxer] = lambda: fake_remuxer
    return application


@pytest.fixture()
def client(app):
    with TestClient(app) as client:
        yield client


def build_token(user_id: str, *, scopes: list[str] | None = None, secret: str = JWT_SECRET) -> str:
    payload: dict[str, object] = {"sub": user_id, "iss": JWT_ISSUER, "aud": JWT_AUDIENCE}
    if scopes:
        payload["scopes"] = scopes
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture()
def make_token() -> Callable[..., str]:
    return build_token


@pytest.fixture()
def owner_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {build_token('user-owner')}"}


@pytest.fixture()
def other_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {build_token('user-other')}"}


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {build_token('user-admin', scopes=['admin'])}"}


@pytest.fixture()
def create_video(client) -> Callable[..., dict]:
    def _create(headers: dict[str, str], title: str = "Launch day") -> dict:
        resp = client.post("/api/v1/videos", json={"title": title, "description": "draft"}, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _create


@pytest.fixture()
def staging_dir() -> Path:
    return get_settings().staging_dir


@pytest.fixture(scope="session")
def generated_video_file(tmp_path_factory) -> Path:
    """
    Generates a small, valid 16:9 MP4 video file for testing in a temporary directory.
    """
    video_path = tmp_path_factory.mktemp("data") / "test_video.mp4"

    # 1-second solid colour clip, 128x72 rounds to a 1.78 ratio
    command = [
        "ffmpeg",
        "-f", "lavfi",
        "-i", "color=c=black:s=128x72:r=30",
        "-t", "1",
        "-pix_fmt", "yuv420p",
        str(video_path)
    ]
    subprocess.run(command, check=True, capture_output=True)
    return video_path
