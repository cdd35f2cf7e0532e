import pytest
from fastapi.testclient import TestClient

from cloudbox.core.config import Settings
from cloudbox.core.security import create_access_token
from cloudbox.main import create_app

JWT_SECRET = "test-secret-key-that-is-long-enough-for-hs256-signing"
MAX_UPLOAD = 1024


def make_token(uid, email=None, **kwargs):
    return create_access_token(uid, JWT_SECRET, email=email, **kwargs)


def auth(uid, email=None):
    return {"Authorization": f"Bearer {make_token(uid, email or f'{uid}@example.com')}"}


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def settings(upload_dir):
    return Settings(
        _env_file=None,
        DB_URL="sqlite+aiosqlite://",
        UPLOAD_DIR=str(upload_dir),
        STORAGE_BACKEND="local",
        AUTH_PROVIDER="jwt",
        JWT_SECRET_KEY=JWT_SECRET,
        REDIS_URL=None,
        PUBLIC_BASE_URL=None,
        MAX_FILE_SIZE_OVERRIDE_BYTES=MAX_UPLOAD,
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def alice(client):
    headers = auth("alice-uid", "alice@example.com")
    response = client.post("/api/users", json={"displayName": "Alice"}, headers=headers)
    assert response.status_code == 201
    return headers


@pytest.fixture
def bob(client):
    headers = auth("bob-uid", "bob@example.com")
    response = client.post("/api/users", headers=headers)
    assert response.status_code == 201
    return headers


def upload(client, headers, name="a.txt", content=b"0123456789", folder_id=None, mime="text/plain"):
    data = {"folderId": str(folder_id)} if folder_id is not None else None
    return client.post(
        "/api/files/upload",
        files={"file": (name, content, mime)},
        data=data,
        headers=headers,
    )
