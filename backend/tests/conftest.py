import os
import tempfile
from dataclasses import dataclass, field

# Must be set before overlaykit reads its settings
_TMP_DIR = tempfile.mkdtemp(prefix="overlaykit-tests-")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")

import pytest
from fastapi.testclient import TestClient

from overlaykit.core.db import Base, SessionLocal, engine
from overlaykit.main import app
from overlaykit.models.user import SessionToken, User


@dataclass
class AuthedUser:
    id: str
    name: str
    headers: dict[str, str] = field(default_factory=dict)


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def create_user():
    def _create(name: str) -> AuthedUser:
        db = SessionLocal()
        try:
            user = User(name=name)
            db.add(user)
            db.flush()
            token = f"token-{user.id}"
            db.add(SessionToken(token=token, user_id=user.id))
            db.commit()
            return AuthedUser(id=user.id, name=name, headers={"Authorization": f"Bearer {token}"})
        finally:
            db.close()

    return _create


@pytest.fixture
def owner(create_user):
    return create_user("alice")


@pytest.fixture
def editor(create_user):
    return create_user("bob")


@pytest.fixture
def stranger(create_user):
    return create_user("mallory")


@pytest.fixture
def create_overlay(client):
    def _create(user: AuthedUser, **body):
        payload = body or {"name": "Main", "type": "TITLE", "elementName": "Headline"}
        response = client.post("/api/overlays", json=payload, headers=user.headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def add_element(client):
    def _add(user: AuthedUser, overlay_id: str, name: str, type: str, parent_id=None):
        body = {"name": name, "type": type}
        if parent_id is not None:
            body["parentId"] = parent_id
        response = client.post(f"/api/overlays/{overlay_id}/elements", json=body, headers=user.headers)
        assert response.status_code == 201, response.text
        snapshot = response.json()
        return next(e for e in snapshot["elements"] if e["name"] == name)

    return _add
