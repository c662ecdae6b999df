"""
Pytest fixtures for Smart Inventory backend tests.

Each test gets its own application on a temporary SQLite file (threads in
the concurrency tests need real, separate connections), a test client, one
user per role, and bearer-token headers for each of them.
"""

import pytest

from smart_inventory import create_app
from smart_inventory.extensions import db
from smart_inventory.models import StockItem, User
from smart_inventory.roles import Role
from smart_inventory.services.auth_service import register_user


TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='function')
def app(tmp_path):
    """Create application for testing."""
    db_path = tmp_path / "test.sqlite3"
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{db_path}",
        'BCRYPT_LOG_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


def _create_user(role: Role) -> User:
    return register_user(
        username=f"{role.value}_user",
        email=f"{role.value}@example.com",
        password=TEST_PASSWORD,
        re_password=TEST_PASSWORD,
        role=role.value,
    )


@pytest.fixture(scope='function')
def admin_user(app):
    return _create_user(Role.ADMIN)


@pytest.fixture(scope='function')
def manager_user(app):
    return _create_user(Role.MANAGER)


@pytest.fixture(scope='function')
def employee_user(app):
    return _create_user(Role.EMPLOYEE)


def get_auth_token(client, email: str, password: str = TEST_PASSWORD) -> str | None:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password,
    })
    if response.status_code == 200:
        return response.get_json().get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.email))


@pytest.fixture(scope='function')
def manager_headers(client, manager_user):
    return auth_headers(get_auth_token(client, manager_user.email))


@pytest.fixture(scope='function')
def employee_headers(client, employee_user):
    return auth_headers(get_auth_token(client, employee_user.email))


@pytest.fixture(scope='function')
def make_item(app):
    """Factory: insert an active stock item and return its id."""
    def _make(name="Widget", category="Tools", price_cents=2000, quantity=5, reorder_threshold=2, **extra):
        item = StockItem(
            name=name,
            category=category,
            price_cents=price_cents,
            quantity=quantity,
            reorder_threshold=reorder_threshold,
            is_active=True,
            **extra,
        )
        db.session.add(item)
        db.session.commit()
        return item.id
    return _make


def fresh(model, pk):
    """Reload a row, bypassing anything cached in the test's session."""
    db.session.expire_all()
    return db.session.get(model, pk)
