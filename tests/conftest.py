import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
# cheap argon2 so the suite stays fast
os.environ["PASSWORD_HASH_TIME_COST"] = "1"
os.environ["PASSWORD_HASH_MEMORY_COST"] = "1024"
os.environ["PASSWORD_HASH_PARALLELISM"] = "1"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from karnya.main import app
from karnya.core.db import Base, get_db, install_sqlite_functions
from karnya.core.security import get_token_service
from karnya.models.user import Account
from karnya.services.accounts import AccountLifecycle, AccountStore
from karnya.services.mailer import get_mailer

PASSWORD = "secret1"


class RecordingMailer:
    def __init__(self):
        self.verifications = {}
        self.resets = {}

    def send_verification(self, email, token):
        self.verifications[email] = token

    def send_password_reset(self, email, token):
        self.resets[email] = token


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    install_sqlite_functions(eng)
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def tokens():
    return get_token_service()


@pytest.fixture
def lifecycle(db, tokens, mailer):
    return AccountLifecycle(AccountStore(db), tokens, mailer)


@pytest.fixture
def client(session_factory, mailer):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def signup(client, mailer, db):
    """Register (and by default verify) an account, optionally forcing a role.

    Returns a fresh session token issued after the role was set.
    """

    def _signup(email, user_type="donor", role=None, verify=True):
        r = client.post(
            "/api/auth/register",
            json={
                "firstName": "Test",
                "lastName": "User",
                "email": email,
                "password": PASSWORD,
                "userType": user_type,
            },
        )
        assert r.status_code == 201, r.text
        if verify:
            v = client.post("/api/auth/verify-email", json={"token": mailer.verifications[email]})
            assert v.status_code == 200, v.text
        if role:
            account = db.query(Account).filter(Account.email == email).one()
            AccountStore(db).set_role(account, role)
        if not verify:
            return r.json()["token"]
        login = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
        assert login.status_code == 200, login.text
        return login.json()["token"]

    return _signup
