"""
Pytest fixtures for the MUA admin backend tests.

Provides an in-memory application, per-test table cleanup, a seeded admin
user with ready-made auth headers, and client/order fixtures.
"""

import pytest
from mua_admin import create_app
from mua_admin.extensions import db
from mua_admin.services import client_service, order_service
from mua_admin.services.auth_service import create_user
from mua_admin.services.token_service import UserView, encode_token


TEST_SECRET = "test-session-secret-0123456789-abcdefghij"
ADMIN_PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'APP_ENV': 'testing',
        'SESSION_SECRET': TEST_SECRET,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
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

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def admin_user(db_session):
    """Active admin user with password ADMIN_PASSWORD."""
    return create_user(
        username="admin",
        email="admin@mua.local",
        password=ADMIN_PASSWORD,
        name="Admin MUA",
    )


@pytest.fixture(scope='function')
def auth_headers(admin_user):
    """Bearer headers carrying a freshly issued token for admin_user."""
    return bearer(encode_token(UserView.from_user(admin_user)))


@pytest.fixture(scope='function')
def wedding_client(db_session):
    """A client with ceremony and reception on consecutive days."""
    return client_service.create_client({
        "bride_name": "Sari",
        "groom_name": "Budi",
        "primary_phone": "081234567890",
        "ceremony_date": "2030-12-12T00:00:00",
        "ceremony_time": "08:00",
        "reception_date": "2030-12-13T00:00:00",
        "reception_time": "11:00",
        "event_location": "Gedung Serbaguna Bandung",
    })


@pytest.fixture(scope='function')
def order(wedding_client):
    """A 10,000,000 IDR order with no payments yet."""
    return order_service.create_order({
        "client_id": wedding_client.id,
        "event_location": "Gedung Serbaguna Bandung",
        "items": [
            {"name": "Paket Rias Akad", "quantity": 1, "price": 4_000_000},
            {"name": "Paket Rias Resepsi", "quantity": 1, "price": 6_000_000},
        ],
    })


def bearer(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def login(client, username: str = "admin", password: str = ADMIN_PASSWORD):
    """Helper to log in through the API; the test client keeps the cookie."""
    return client.post('/api/auth/login', json={
        'username': username,
        'password': password,
    })
