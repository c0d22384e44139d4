"""Shared fixtures: app on an in-memory MongoDB, a company with an active CAI."""

from datetime import date, timedelta

import mongoengine
import mongomock
import pytest

from facturahn import create_app
from facturahn.api.auth import generate_token
from facturahn.extensions import STORE_KEY
from facturahn.models import Customer, Product, User

CAI = "35A1B2-C3D4E5F6A7B8-C9D0E1-F2A3B4-C5"
RANGE_START = "001-001-01-00000001"
RANGE_END = "001-001-01-00000099"

# UTC-12 and UTC+14: the calendar date always differs between them
EARLIEST_ZONE = "Etc/GMT+12"
LATEST_ZONE = "Pacific/Kiritimati"


@pytest.fixture
def app(request):
    """Overrides come from an optional ``app_config`` marker."""
    marker = request.node.get_closest_marker("app_config")
    overrides = marker.kwargs if marker else {}
    app = create_app("testing", MONGO_CLIENT_CLASS=mongomock.MongoClient, **overrides)
    yield app
    db = mongoengine.get_db()
    db.client.drop_database(db.name)
    mongoengine.disconnect()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return app.extensions[STORE_KEY]


@pytest.fixture
def company(store):
    return store.create_company(name="Ferretería El Tornillo", rtn="08019999123456")


@pytest.fixture
def sar_cai(store, company):
    return store.register_sar_cai(
        company, CAI, date.today() + timedelta(days=180), RANGE_START, RANGE_END
    )


@pytest.fixture
def admin(company):
    user = User(
        full_name="Ana Martínez",
        email="ana@tornillo.hn",
        role="admin",
        company_id=company.id,
    )
    user.set_password("secreto")
    user.save()
    return user


@pytest.fixture
def auth_headers(app, admin):
    with app.app_context():
        token = generate_token(admin)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def customer(company):
    return Customer(
        company_id=company.id,
        name="Constructora Lempira",
        rtn="08011985012345",
        email="compras@lempira.hn",
    ).save()


@pytest.fixture
def customer_without_rtn(company):
    return Customer(company_id=company.id, name="Juan Pérez").save()


@pytest.fixture
def product(company):
    return Product(
        company_id=company.id,
        sku="MART-01",
        description="Martillo de uña",
        unit_cost=50.0,
        quantity_in_stock=10,
    ).save()


@pytest.fixture
def service(company):
    return Product(
        company_id=company.id,
        sku="SERV-01",
        description="Instalación",
        unit_cost=100.0,
        is_service=True,
    ).save()
