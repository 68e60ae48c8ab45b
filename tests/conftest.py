from __future__ import annotations

import io
import sys
from pathlib import Path

import pytest

# Make the shopfront package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from shopfront.core import config as core_config  # noqa: E402
from shopfront.core import rate_limiter  # noqa: E402
from shopfront.core.security import hash_password  # noqa: E402
from shopfront.db import models  # noqa: E402
from shopfront.db import session as db_session  # noqa: E402
from shopfront.repositories.sql_repository import UserRepository  # noqa: E402

TEST_PASSWORD = "correct-horse-42"


class FakeImageStore:
    """Records uploads/deletes instead of touching disk."""

    def __init__(self) -> None:
        self.uploaded: list[dict] = []
        self.deleted: list[list[str]] = []
        self.fail_delete = False
        self._counter = 0

    def upload(self, files):
        stored = []
        for _file in files:
            self._counter += 1
            public_id = f"test/{self._counter:032x}"
            stored.append({"public_id": public_id, "url": f"http://test/static/uploads/{public_id}.jpg"})
        self.uploaded.extend(stored)
        return stored

    def delete(self, public_ids):
        if self.fail_delete:
            raise OSError("image store unavailable")
        self.deleted.append(list(public_ids))


@pytest.fixture()
def db_env(tmp_path, monkeypatch):
    """Point the app at a temporary SQLite database and reset cached settings/engine."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    monkeypatch.setenv("UPLOADS_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("JWT_SECRET", "test-secret-key-with-enough-length-123")
    monkeypatch.setenv("LOG_FORMAT", "text")
    for name in ("SMTP_HOST", "SMTP_USER", "SMTP_PASSWORD", "SMTP_FROM"):
        monkeypatch.delenv(name, raising=False)
    core_config.get_settings.cache_clear()
    db_session.reset_engine()
    rate_limiter.reset_limits()

    engine = db_session.get_engine()
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)

    yield tmp_path

    models.Base.metadata.drop_all(bind=engine)
    db_session.reset_engine()
    core_config.get_settings.cache_clear()
    rate_limiter.reset_limits()


@pytest.fixture()
def image_store():
    return FakeImageStore()


@pytest.fixture()
def client(db_env, image_store):
    from fastapi.testclient import TestClient

    from shopfront.app import create_app
    from shopfront.routers.dependencies import get_inventory_image_store, get_user_image_store

    app = create_app()
    app.dependency_overrides[get_user_image_store] = lambda: image_store
    app.dependency_overrides[get_inventory_image_store] = lambda: image_store
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db_env):
    repo = UserRepository()

    def _make(email: str = "ana@example.com", password: str = TEST_PASSWORD, role: str = "customer", image=None):
        return repo.create(
            {
                "name": email.split("@")[0],
                "email": email,
                "password": hash_password(password),
                "role": role,
                "image": image or [{"public_id": "users/" + "a" * 32, "url": "http://test/a.jpg"}],
            }
        )

    return _make


def login(client, email: str, password: str = TEST_PASSWORD) -> dict:
    resp = client.post("/users/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access']}"}


def png_bytes(size=(8, 8)) -> bytes:
    from PIL import Image

    buffer = io.BytesIO()
    Image.new("RGB", size, (120, 200, 80)).save(buffer, format="PNG")
    return buffer.getvalue()
