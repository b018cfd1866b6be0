"""
Shared fixtures for the test suite.

Provides: per-test SQLite database, user/project factories, fake WebSocket
connections, a CollaborationHub bound to the test database, and a FastAPI
TestClient with the database and hub dependencies overridden.
"""

import os
import tempfile
import uuid

_TEST_HOME = tempfile.mkdtemp(prefix="intellicode-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_HOME}/bootstrap.db")
os.environ.setdefault("LOG_DIR", os.path.join(_TEST_HOME, "logs"))
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from intellicode.collab.hub import CollaborationHub
from intellicode.collab.session import Session, UserIdentity
from intellicode.core.security import create_access_token, get_password_hash
from intellicode.db.base import Base
from intellicode.models.project import Collaboration, Project
from intellicode.models.user import User


class FakeConnection:
    """Stand-in for a WebSocket: records every frame sent to it."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("connection closed")
        self.sent.append(data)

    def events(self, name=None):
        return [frame for frame in self.sent if name is None or frame["event"] == name]

    def clear(self):
        self.sent.clear()


@pytest.fixture
def session_factory(tmp_path):
    """sessionmaker bound to a fresh file-backed SQLite database."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(session_factory):
    def factory(name="Ada", email=None, password="secret123", avatar=None):
        with session_factory() as db:
            user = User(
                id=str(uuid.uuid4()),
                email=email or f"{name.lower()}-{uuid.uuid4().hex[:6]}@example.com",
                name=name,
                avatar=avatar,
                password=get_password_hash(password),
                is_active=True,
            )
            db.add(user)
            db.commit()
            return UserIdentity(id=user.id, name=user.name, email=user.email, avatar=user.avatar)
    return factory


@pytest.fixture
def make_project(session_factory):
    def factory(owner: UserIdentity, name="proj", project_id=None, collaborators=None):
        """collaborators: iterable of (UserIdentity, role)"""
        with session_factory() as db:
            project = Project(id=project_id or str(uuid.uuid4()), name=name, owner_id=owner.id)
            db.add(project)
            for user, role in collaborators or ():
                db.add(Collaboration(id=str(uuid.uuid4()), project_id=project.id, user_id=user.id, role=role))
            db.commit()
            return project.id
    return factory


@pytest.fixture
def set_role(session_factory):
    def change(project_id, user: UserIdentity, role):
        with session_factory() as db:
            collaboration = db.query(Collaboration).filter(
                Collaboration.project_id == project_id,
                Collaboration.user_id == user.id,
            ).one()
            collaboration.role = role
            db.commit()
    return change


@pytest.fixture
def hub(session_factory):
    return CollaborationHub(session_factory)


@pytest.fixture
def fake_connection():
    return FakeConnection


@pytest.fixture
def connect():
    """Open a fake collaboration session for a user."""
    def open_session(user: UserIdentity, fail: bool = False):
        return Session(FakeConnection(fail=fail), user)
    return open_session


@pytest.fixture
def frames():
    """Frames delivered to a fake session, optionally filtered by event name."""
    def delivered(session: Session, name=None):
        return session._connection.events(name)
    return delivered


@pytest.fixture
def token_for():
    def issue(user: UserIdentity):
        return create_access_token(user.id)
    return issue


@pytest.fixture
def app(session_factory, hub):
    from intellicode.api.deps import get_collab_hub
    from intellicode.db.base import get_db
    from intellicode.main import app as fastapi_app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_collab_hub] = lambda: hub
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(token_for):
    def headers(user: UserIdentity):
        return {"Authorization": f"Bearer {token_for(user)}"}
    return headers
