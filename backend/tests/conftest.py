"""
Pytest fixtures for storefront backend tests.

Provides the app on in-memory SQLite, the test client, a per-test wipe of
every table (plus the mail outbox and OTP codes), and catalog/auth fixtures.
"""

import pytest

from storefront import create_app
from storefront.extensions import db
from storefront.models import Product, ProductVariant
from storefront.services import auth_service, session_service
from storefront.services.otp_service import init_otp_store


ADMIN_PIN = "4321"
CUSTOMER_PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'ADMIN_PIN': ADMIN_PIN,
        'MAIL_SUPPRESS_SEND': True,
        'MAIL_SEND_ASYNC': False,
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
    """Fresh data for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        app.extensions["mail_outbox"].clear()
        init_otp_store(app)

        yield db.session

        db.session.rollback()


@pytest.fixture
def outbox(app, db_session):
    return app.extensions["mail_outbox"]


@pytest.fixture(scope='function')
def catalog(db_session):
    """
    Two products:
    - tee: 10000 base; black/M (+0, stock 5) and black/XL (+2500, stock 5)
    - jeans: 25000 base; blue/32 (+0, stock 3)
    """
    tee = Product(
        name="Premium Cotton T-Shirt", slug="premium-cotton-t-shirt",
        description="Soft cotton tee", base_price_cents=10000,
        category="T-Shirts", image_url="/img/tee.jpg", stock_quantity=10,
    )
    tee.variants.append(ProductVariant(color="black", size="M", stock_quantity=5, price_adjustment_cents=0))
    tee.variants.append(ProductVariant(color="black", size="XL", stock_quantity=5, price_adjustment_cents=2500))

    jeans = Product(
        name="Designer Jeans", slug="designer-jeans",
        description="Slim fit denim", base_price_cents=25000,
        category="Jeans", image_url="/img/jeans.jpg", stock_quantity=3,
    )
    jeans.variants.append(ProductVariant(color="blue", size="32", stock_quantity=3, price_adjustment_cents=0))

    db_session.add_all([tee, jeans])
    db_session.commit()

    return {
        "tee": tee,
        "tee_m": tee.variants[0],
        "tee_xl": tee.variants[1],
        "jeans": jeans,
        "jeans_32": jeans.variants[0],
    }


@pytest.fixture(scope='function')
def customer(db_session):
    """A verified customer account."""
    user = auth_service.register_user(
        email="priya@example.com",
        password=CUSTOMER_PASSWORD,
        full_name="Priya Sharma",
        phone="9876543210",
    )
    auth_service.confirm_email(user.email)
    return user


@pytest.fixture(scope='function')
def customer_token(customer):
    _, token = session_service.create_session(user_id=customer.id)
    return token


@pytest.fixture(scope='function')
def customer_headers(customer_token):
    return auth_headers(customer_token)


@pytest.fixture(scope='function')
def admin_headers(client, db_session):
    """Bearer headers for the PIN-login system administrator."""
    token = get_admin_token(client, ADMIN_PIN)
    assert token, "admin PIN login failed"
    return auth_headers(token)


@pytest.fixture
def checkout_form():
    return {
        "customer_name": "Priya Sharma",
        "customer_email": "priya@example.com",
        "customer_phone": "9876543210",
        "shipping_address": "12 MG Road, Indiranagar",
        "shipping_city": "Bengaluru",
        "shipping_state": "Karnataka",
        "shipping_postal_code": "560038",
    }


def get_admin_token(client, pin: str) -> str:
    """Helper to get an admin token through PIN login."""
    response = client.post('/api/admin/login', json={'pin': pin})
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
