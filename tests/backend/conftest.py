from __future__ import annotations

from collections.abc import Callable, Iterator

import pytest
from fastapi.testclient import TestClient

from backend.app.main import create_app
from backend.app.persistence import DocumentStorage
from backend.app.storage import Storage
from backend.app.store import InMemoryStore


def _base_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "")
    monkeypatch.setenv("SEED_DEMO_DATA", "false")
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("SESSION_SECRET", "test-secret")


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch) -> TestClient:
    _base_env(monkeypatch)
    app = create_app()
    return TestClient(app)


@pytest.fixture()
def seeded_client(monkeypatch: pytest.MonkeyPatch) -> TestClient:
    _base_env(monkeypatch)
    monkeypatch.setenv("SEED_DEMO_DATA", "true")
    return TestClient(create_app())


@pytest.fixture()
def register_user() -> Callable[..., dict]:
    def _register(client: TestClient, username: str = "alice", password: str = "s3cret-pass") -> dict:
        response = client.post(
            "/api/auth/register",
            json={
                "username": username,
                "password": password,
                "name": username.title(),
                "email": f"{username}@example.com",
            },
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _register


@pytest.fixture()
def auth_client(client: TestClient, register_user) -> TestClient:
    register_user(client)
    return client


@pytest.fixture(params=["memory", "document"])
def storage(request: pytest.FixtureRequest, tmp_path) -> Iterator[Storage]:
    if request.param == "memory":
        yield InMemoryStore(seed_demo_data=False)
        return
    document_storage = DocumentStorage(f"sqlite:///{(tmp_path / 'campaignforge.sqlite3').as_posix()}")
    yield document_storage
    document_storage.engine.dispose()
