"""Shared test fixtures for the sitehost test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite, temp SITES_ROOT)
- client: Flask test client
- db_session: clean schema per test (migrated before, dropped after)
- seed_data: two site owners with API tokens
- registry / storage / resolver / deployer / adapter: the app's services
- upload: helper posting multipart files to the management API
- file_backed_app: factory for apps on a SQLite file (concurrency tests)
"""

import io
import shutil

import pytest
from werkzeug.security import generate_password_hash

from sitehost import create_app
from sitehost.extensions import db as _db
from sitehost.models.user import User
from sitehost.services.token_service import issue_token

BASE_DOMAIN = "lvh.me"


@pytest.fixture(scope="session")
def sites_root(tmp_path_factory):
    return tmp_path_factory.mktemp("sites")


@pytest.fixture(scope="session")
def app(sites_root):
    """Create the Flask application configured for testing."""
    app = create_app("testing", overrides={"SITES_ROOT": str(sites_root)})
    yield app
    app.extensions["persistence"].dispose()


@pytest.fixture(autouse=True)
def db_session(app, sites_root):
    """Migrate the schema before each test, drop it after.

    Site directories are wiped too, so every test starts from nothing.
    No app context stays pushed during the test, so each request gets
    a fresh `g` (and a fresh Flask-Login user).
    """
    app.extensions["persistence"].migrate()
    yield
    with app.app_context():
        _db.session.rollback()
        _db.drop_all()

    for child in sites_root.iterdir():
        shutil.rmtree(child, ignore_errors=True)


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def adapter(app):
    return app.extensions["persistence"]


@pytest.fixture
def registry(app):
    return app.extensions["tenant_registry"]


@pytest.fixture
def storage(app):
    return app.extensions["site_storage"]


@pytest.fixture
def resolver(app):
    return app.extensions["site_resolver"]


@pytest.fixture
def deployer(app):
    return app.extensions["deploy_service"]


def make_user(email, name):
    user = User(
        email=email,
        name=name,
        password_hash=generate_password_hash("owner-pass-123"),
    )
    _db.session.add(user)
    _db.session.commit()
    return user.id


@pytest.fixture
def seed_data(app, db_session):
    """Two site owners and their Bearer tokens.

    Returns plain ids/headers so tests never touch detached objects.
    """
    with app.app_context():
        owner_id = make_user("owner@example.com", "Site Owner")
        other_id = make_user("other@example.com", "Other Owner")
        return {
            "owner_id": owner_id,
            "other_id": other_id,
            "headers": {"Authorization": f"Bearer {issue_token(owner_id)}"},
            "other_headers": {"Authorization": f"Bearer {issue_token(other_id)}"},
        }


@pytest.fixture
def upload(client):
    """POST files ({name: bytes}) to /api/sites/<id>/files."""

    def _upload(site_id, headers, files):
        data = {
            "files": [(io.BytesIO(content), name) for name, content in files.items()]
        }
        return client.post(
            f"/api/sites/{site_id}/files",
            data=data,
            headers=headers,
            content_type="multipart/form-data",
        )

    return _upload


@pytest.fixture
def file_backed_app(tmp_path):
    """Build extra apps on a SQLite file so several connections can be open
    at once (the shared in-memory database has only one)."""
    apps = []

    def _make(**overrides):
        config = {
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'sitehost.sqlite'}",
            "SITES_ROOT": str(tmp_path / "sites"),
        }
        config.update(overrides)
        app = create_app("testing", overrides=config)
        apps.append(app)
        return app

    yield _make
    for app in apps:
        app.extensions["persistence"].dispose()
