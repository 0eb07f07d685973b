from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

from storefront.config import Settings
from storefront.main import create_app
from storefront.models import Order
from storefront.notifications import Mailer, MemoryProvider
from storefront.seed import seed_catalog

SHIRT = {
    "id": 1,
    "name": "Shirt",
    "description": "Cotton shirt",
    "price": Decimal("899"),
    "category": "Men",
    "image": "shirt1.jpg|shirt2.jpg",
    "stock": 100,
}
SAREE = {
    "id": 2,
    "name": "Silk Saree",
    "description": "<strong>Banarasi</strong> silk saree",
    "price": Decimal("4999.50"),
    "original_price": Decimal("6999"),
    "category": "Women",
    "image": "saree1.jpg",
    "stock": 20,
}


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def make_settings(tmp_path, **overrides):
    values = dict(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'store.db'}",
        SEED_ON_STARTUP=False,
        ENVIRONMENT="test",
        NOTIFY_EMAIL="ops@example.com",
        MAIL_FROM="shop@example.com",
        STORE_NAME="Desi Aura",
        SMTP_HOST=None,
        MAIL_API_URL=None,
        MAIL_SINK=False,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def sink():
    return MemoryProvider()


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def mailer(settings, sink, sleeper):
    return Mailer(settings.mail(), providers=[sink], sleep=sleeper)


@pytest.fixture
def app(settings, mailer):
    return create_app(settings, mailer)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def seed(client, *products):
    """Insert products through the running app's event loop."""
    return client.portal.call(seed_catalog, client.app.state.db, [dict(p) for p in products])


def count_orders(client):
    async def _count():
        async with client.app.state.db.session() as session:
            return await session.scalar(select(func.count()).select_from(Order))
    return client.portal.call(_count)
