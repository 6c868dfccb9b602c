"""
Pytest fixtures for studio backend tests.

Provides test database setup, user/task factories, and test client helpers.
"""

import pytest
from studiodesk import create_app
from studiodesk.extensions import db
from studiodesk.models import User, StaffProfile, Task
from studiodesk.services.auth_service import hash_password
from studiodesk.services import task_service


ADMIN_PASSWORD = "admin"
STAFF_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'DEFAULT_ADMIN_USERNAME': 'admin@icrisstudio.com',
        'DEFAULT_ADMIN_PASSWORD': ADMIN_PASSWORD,
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
def make_user(db_session):
    """Factory: create an active user (staff unless role is given)."""
    counter = {"n": 0}

    def _make(username=None, full_name=None, role="staff", password=STAFF_PASSWORD, status="active"):
        counter["n"] += 1
        user = User(
            username=username or f"staff{counter['n']}@studio.test",
            full_name=full_name or f"Staff {counter['n']}",
            password_hash=hash_password(password),
            role=role,
            status=status,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture(scope='function')
def admin_user(make_user):
    return make_user(
        username="admin@icrisstudio.com",
        full_name="Super Admin",
        role="super_admin",
        password=ADMIN_PASSWORD,
    )


@pytest.fixture(scope='function')
def staff_user(make_user):
    return make_user(username="jane@studio.test", full_name="Jane Doe")


@pytest.fixture(scope='function')
def staff_profile(db_session, staff_user):
    profile = StaffProfile(
        user_id=staff_user.id,
        role_name="Video Editor",
        payment_method="bank_transfer",
        bank_name="First Bank",
        account_holder_name="Jane Doe",
        account_number="0001",
        first_login_completed=True,
    )
    db_session.add(profile)
    db_session.commit()
    return profile


@pytest.fixture(scope='function')
def make_task(db_session):
    """Factory: create a task through the service with sensible defaults."""
    def _make(**overrides) -> Task:
        fields = {
            "project_name": "Brand film",
            "client_name": "Acme",
            "task_type": "video",
            "deadline": "2026-12-01T00:00:00Z",
            "received_date": "2026-10-01T00:00:00Z",
            "total_budget": 1000,
        }
        fields.update(overrides)
        return task_service.create_task(fields)

    return _make


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.username, ADMIN_PASSWORD))


@pytest.fixture(scope='function')
def staff_headers(client, staff_user):
    return auth_headers(get_auth_token(client, staff_user.username, STAFF_PASSWORD))
