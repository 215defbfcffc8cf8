"""
Pytest fixtures for shopstock backend tests.

Provides test database setup, reference data, users with bearer tokens, and
the test client.
"""

import pytest
from shopstock import create_app
from shopstock.extensions import db
from shopstock.models import User
from shopstock.models.auth import ROLE_ADMIN, ROLE_EDITOR, ROLE_VIEWER
from shopstock.models.reference import LOCATION_TYPE_JOB, LOCATION_TYPE_SHOP
from shopstock.services import reference_service, session_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'DEBUG',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        db.session.expunge_all()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _make_user(db_session, email, role, name=None):
    user = User(email=email, name=name, role=role, is_active=True)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session):
    return _make_user(db_session, "admin@cabinetshop.com", ROLE_ADMIN, name="Shop Administrator")


@pytest.fixture(scope='function')
def editor_user(db_session):
    return _make_user(db_session, "editor@cabinetshop.com", ROLE_EDITOR, name="Bench Editor")


@pytest.fixture(scope='function')
def viewer_user(db_session):
    return _make_user(db_session, "viewer@cabinetshop.com", ROLE_VIEWER)


def _headers_for(user):
    _, token = session_service.create_session(user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return _headers_for(admin_user)


@pytest.fixture(scope='function')
def editor_headers(editor_user):
    return _headers_for(editor_user)


@pytest.fixture(scope='function')
def viewer_headers(viewer_user):
    return _headers_for(viewer_user)


@pytest.fixture(scope='function')
def shop(db_session):
    return reference_service.create_location(name="SHOP", type=LOCATION_TYPE_SHOP)


@pytest.fixture(scope='function')
def job(db_session):
    return reference_service.create_location(name="6-2523", type=LOCATION_TYPE_JOB)


@pytest.fixture(scope='function')
def other_job(db_session):
    return reference_service.create_location(name="6-2524", type=LOCATION_TYPE_JOB)


@pytest.fixture(scope='function')
def material(db_session):
    return reference_service.create_material(
        name='Oak Plywood 3/4"',
        category="WoodSheets",
        min_stock_level=20,
    )


@pytest.fixture(scope='function')
def hinges(db_session):
    return reference_service.create_material(
        name="Soft-Close Hinges",
        category="Hinges",
        unit="pcs",
        min_stock_level=100,
    )


@pytest.fixture(scope='function')
def closed_job(db_session):
    location = reference_service.create_location(name="5-1000", type=LOCATION_TYPE_JOB)
    return reference_service.set_location_active(location.id, False)


@pytest.fixture(scope='function')
def locations(shop, job, other_job):
    """SHOP plus two jobs, mirroring a typical shop floor."""
    return {"shop": shop, "job": job, "other_job": other_job}
