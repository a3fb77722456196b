"""
Pytest fixtures for POS admin backend tests.

Provides test database setup, one user per role, catalog rows and test client.
"""

import pytest
from posadmin import create_app
from posadmin.extensions import db
from posadmin.models import Category, InventoryRecord, Product, User, Warehouse
from posadmin.services.auth_service import hash_password


TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ALLOW_SELF_REGISTRATION': True,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(TEST_PASSWORD)


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


def _make_user(db_session, password_hash, name, email, role):
    user = User(name=name, email=email, role=role, password_hash=password_hash, is_active=True)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session, password_hash):
    return _make_user(db_session, password_hash, "Ada Admin", "admin@test.local", "admin")


@pytest.fixture(scope='function')
def cashier_user(db_session, password_hash):
    return _make_user(db_session, password_hash, "Carl Cashier", "cashier@test.local", "cashier")


@pytest.fixture(scope='function')
def inventory_user(db_session, password_hash):
    return _make_user(db_session, password_hash, "Ivy Inventory", "inventory@test.local", "inventory")


def get_auth_token(client, email: str, password: str = TEST_PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
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
    return auth_headers(get_auth_token(client, admin_user.email))


@pytest.fixture(scope='function')
def cashier_headers(client, cashier_user):
    return auth_headers(get_auth_token(client, cashier_user.email))


@pytest.fixture(scope='function')
def inventory_headers(client, inventory_user):
    return auth_headers(get_auth_token(client, inventory_user.email))


@pytest.fixture(scope='function')
def warehouse_a(db_session):
    warehouse = Warehouse(name="Warehouse A", location="North Dock")
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


@pytest.fixture(scope='function')
def warehouse_b(db_session):
    warehouse = Warehouse(name="Warehouse B", location="South Dock")
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


@pytest.fixture(scope='function')
def category(db_session):
    category = Category(name="Electronics")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def laptop(db_session, category, warehouse_a, warehouse_b):
    """Laptop stocked 15 at Warehouse A and 5 at Warehouse B."""
    product = Product(sku="LAP-001", name="Laptop", price_cents=100000, category_id=category.id)
    db_session.add(product)
    db_session.flush()
    db_session.add_all([
        InventoryRecord(product_id=product.id, warehouse_id=warehouse_a.id, stock_level=15),
        InventoryRecord(product_id=product.id, warehouse_id=warehouse_b.id, stock_level=5),
    ])
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def mouse(db_session, category, warehouse_a):
    """Mouse stocked 40 at Warehouse A."""
    product = Product(sku="MOU-001", name="Wireless Mouse", price_cents=2499, category_id=category.id)
    db_session.add(product)
    db_session.flush()
    db_session.add(InventoryRecord(product_id=product.id, warehouse_id=warehouse_a.id, stock_level=40))
    db_session.commit()
    return product


def stock_at(db_session, product_id: int, warehouse_id: int) -> int:
    record = db_session.query(InventoryRecord).filter_by(
        product_id=product_id, warehouse_id=warehouse_id
    ).first()
    db_session.refresh(record)
    return record.stock_level
