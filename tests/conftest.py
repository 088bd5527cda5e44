"""Pytest configuration and fixtures."""

import os
import tempfile

# Settings are read at import time, so the environment must be in place first.
_TMP_DIR = tempfile.mkdtemp(prefix="blog_auth_tests_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["LOG_FILE"] = os.path.join(_TMP_DIR, "logs", "logs.txt")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SECRET_KEY"] = "test-secret-key-with-at-least-32-characters"
os.environ["ADMIN_EMAIL"] = "admin@example.com"
os.environ["MAIL_USER"] = "mailer@example.com"
os.environ["MAIL_PASS"] = "app-password"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.core.dependencies import get_db, get_mail_dispatcher  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.session import SessionLocal, engine  # noqa: E402
from app.main import app  # noqa: E402

ANN = {"name": "Ann", "lastname": "Lee", "email": "ann@example.com", "password": "Secret123!"}


class FakeMailer:
    """Mail dispatcher double: records sends, or raises ``error`` when set."""

    def __init__(self):
        self.sent = []
        self.error = None

    def __call__(self, to, otp):
        if self.error is not None:
            raise self.error
        self.sent.append((to, otp))

    @property
    def last_otp(self):
        return self.sent[-1][1]


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create the schema once for the whole run."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function", autouse=True)
def db():
    """Fresh session per test; all rows removed afterwards."""
    session = SessionLocal()

    yield session

    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture(scope="function")
def client(db, mailer):
    """Test client sharing the test session and the fake mailer."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mail_dispatcher] = lambda: mailer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def pending_user(client, mailer):
    """Ann registered but not yet verified; returns her user id."""
    response = client.post("/api/auth/register", json=ANN)
    assert response.status_code == 201
    return response.json()["userId"]


@pytest.fixture
def verified_user(client, mailer, pending_user):
    """Ann registered and verified; returns her user id."""
    response = client.post(
        "/api/auth/verify-otp", json={"userId": pending_user, "otp": mailer.last_otp}
    )
    assert response.status_code == 200
    return pending_user


@pytest.fixture
def auth_token(client, verified_user):
    response = client.post(
        "/api/auth/login", json={"email": ANN["email"], "password": ANN["password"]}
    )
    assert response.status_code == 200
    return response.json()["token"]
