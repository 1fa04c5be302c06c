"""
Shared fixtures.

Every test gets its own FastAPI app on a private in-memory SQLite database
(``StaticPool`` keeps the one connection alive), a recording mailer in place
of SMTP/Resend, and helpers to seed accounts directly in the store.

Objects returned by the seeding helpers live in the ``db`` session. Requests
run in their own sessions, so call ``db.expire_all()`` (or ``reload``) before
asserting on rows a request has changed.
"""

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.core.security import hash_password, make_access_token
from app.db.base import Base
from app.main import create_app
from app.models.project import Project
from app.models.user import User, UserRole
from app.services.approvals import initial_approval_flags
from app.services.tickets import create_ticket, ensure_sequence

PASSWORD = "Secret123!"
API = "/api"


def make_settings(database_url: str = "sqlite://", **overrides) -> Settings:
    values = {
        "DATABASE_URL": database_url,
        "JWT_SECRET": "test-secret",
        "BCRYPT_ROUNDS": 4,
        "RATE_LIMIT_ENABLED": False,
        "LOG_LEVEL": "WARNING",
        "PUBLIC_BASE_URL": "http://itms.test",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeMailer:
    """Records verification mails instead of sending them."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send_email_verification(self, to_email, token):
        if self.fail:
            raise ConnectionError("SMTP server unreachable")
        self.sent.append((to_email, token))

    def token_for(self, email):
        for to, token in reversed(self.sent):
            if to == email:
                return token
        raise AssertionError(f"no verification mail sent to {email}")


# ── App / client ─────────────────────────────────────────────────────────────


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def app(settings):
    app = create_app(settings)
    Base.metadata.create_all(app.state.engine)
    app.state.mailer = FakeMailer()
    yield app
    app.state.engine.dispose()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def mailer(app):
    return app.state.mailer


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    yield session
    session.close()


@pytest.fixture
def reload(db):
    """Fetch a fresh copy of a row after a request changed it."""
    def _reload(model, pk):
        db.expire_all()
        return db.get(model, pk)
    return _reload


# ── Seeding helpers ──────────────────────────────────────────────────────────


@pytest.fixture
def make_user(db):
    def _make(username, role=UserRole.user, *, verified=True, approved=True, user_master=None, level=1):
        flags = initial_approval_flags(role)
        if approved:
            flags = {k: True for k in flags}
        user = User(
            username=username,
            email=f"{username}@example.com",
            password=hash_password(PASSWORD, 4),
            role=role,
            level=2 if role == UserRole.user_master else level,
            is_verified=verified,
            user_master_id=user_master.id if user_master else None,
            **flags,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def auth_headers(settings):
    def _headers(user):
        return {"Authorization": f"Bearer {make_access_token(user, settings)}"}
    return _headers


@pytest.fixture
def world(make_user):
    """A small organisation: one super admin, two user masters with one user each, two engineers."""
    root = make_user("root", UserRole.super_admin)
    um1 = make_user("um1", UserRole.user_master)
    um2 = make_user("um2", UserRole.user_master)
    u1 = make_user("u1", UserRole.user, user_master=um1)
    u2 = make_user("u2", UserRole.user, user_master=um2)
    eng1 = make_user("eng1", UserRole.engineer)
    eng2 = make_user("eng2", UserRole.engineer)
    return {"root": root, "um1": um1, "um2": um2, "u1": u1, "u2": u2, "eng1": eng1, "eng2": eng2}


@pytest.fixture
def make_project(db):
    def _make(owner, code, name=None):
        project = Project(name=name or f"Project {code}", code=code, owner_id=owner.id)
        db.add(project)
        db.flush()
        ensure_sequence(db, code)
        db.commit()
        db.refresh(project)
        return project
    return _make


@pytest.fixture
def make_ticket(db):
    def _make(creator, project, title="Printer on fire", **fields):
        return create_ticket(db, creator, project.id, title=title, **fields)
    return _make
