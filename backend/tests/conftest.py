"""
Pytest fixtures for StockSense backend tests.

Provides test database setup, core service handles, actors, a product
factory, and an authenticated test client.
"""

import pytest

from stocksense import create_app
from stocksense.config import TestConfig
from stocksense.extensions import db, get_services
from stocksense.permissions import Actor, Role
from stocksense.services import products_service
from stocksense.services.auth_service import register_user
from stocksense.time_utils import utcnow

TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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
    # Clear all data but keep schema
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    # Cleanup after test
    db.session.rollback()


@pytest.fixture(scope='function')
def services(db_session):
    return get_services()


@pytest.fixture(scope='function')
def store(services):
    return services["store"]


@pytest.fixture(scope='function')
def policy(services):
    return services["policy"]


@pytest.fixture(scope='function')
def manager(services):
    """Stock transaction manager wired by create_app()."""
    return services["sales"]


@pytest.fixture(scope='function')
def engine(services):
    """Analytics engine wired by create_app()."""
    return services["analytics"]


@pytest.fixture
def admin_actor():
    return Actor(user_id=1, role=Role.ADMIN)


@pytest.fixture
def manager_actor():
    return Actor(user_id=2, role=Role.MANAGER)


@pytest.fixture
def staff_actor():
    return Actor(user_id=3, role=Role.STAFF)


@pytest.fixture
def make_product(store, policy, manager_actor):
    """Factory: create a product through the catalog service, return its dict."""
    counter = {"n": 0}

    def _make(**fields):
        counter["n"] += 1
        patch = {
            "sku": f"SKU-{counter['n']:03d}",
            "name": f"Product {counter['n']}",
            "category": "General",
            "quantity": 10,
            "price_cents": 1000,
            "reorder_point": 5,
        }
        patch.update(fields)
        return products_service.create_product(store, policy, actor=manager_actor, patch=patch)

    return _make


@pytest.fixture
def now():
    return utcnow().replace(microsecond=0)


@pytest.fixture
def users(db_session):
    """One account per role. Returns {role value: User}."""
    created = {}
    for id_number, role, full_name in [
        ("ADMIN001", Role.ADMIN, "System Administrator"),
        ("MGR001", Role.MANAGER, "Store Manager"),
        ("STAFF001", Role.STAFF, "Sales Staff"),
    ]:
        created[role.value] = register_user(
            id_number=id_number, password=TEST_PASSWORD, role=role, full_name=full_name
        )
    return created


def get_auth_token(client, id_number: str, password: str = TEST_PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'id_number': id_number,
        'password': password,
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_headers(client, users):
    return auth_headers(get_auth_token(client, "ADMIN001"))


@pytest.fixture
def manager_headers(client, users):
    return auth_headers(get_auth_token(client, "MGR001"))


@pytest.fixture
def staff_headers(client, users):
    return auth_headers(get_auth_token(client, "STAFF001"))
