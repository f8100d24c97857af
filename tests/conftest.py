import pytest

from bibliotheca import create_app
from bibliotheca.config import TestConfig
from bibliotheca.extensions import db
from bibliotheca.services.auth_service import AuthService

ADMIN_EMAIL = "admin@bibliotheca.local"
ADMIN_PASSWORD = "admin-pass"


@pytest.fixture
def app():
    app = create_app(TestConfig)
    ctx = app.app_context()
    ctx.push()
    try:
        yield app
    finally:
        db.session.remove()
        db.drop_all()
        ctx.pop()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(app):
    AuthService.ensure_admin(ADMIN_EMAIL, ADMIN_PASSWORD)
    test_client = app.test_client()
    response = test_client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return test_client


@pytest.fixture
def make_book(app):
    from bibliotheca.services.book_service import BookService

    def _make(**fields):
        data = {"title": "Untitled", "author": "Anonymous"}
        now = fields.pop("now", None)
        data.update(fields)
        return BookService.create_book(data, now=now)

    return _make
