import itertools

import pytest
from fastapi.testclient import TestClient

from storefront.config import Settings
from storefront.main import create_app
from storefront.models import Product

_serial = itertools.count(1)


@pytest.fixture
def client(tmp_path):
    settings = Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}",
        AUTO_CREATE_TABLES=True,
        API_PREFIX="/api",
    )
    app = create_app(settings)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def add_products(client):
    """Insert products straight into the database; the API never writes them."""

    async def _insert(rows):
        async with client.app.state.session_maker() as session:
            session.add_all(Product(**row) for row in rows)
            await session.commit()

    def _add(*rows):
        prepared = []
        for row in rows:
            row = dict(row)
            row["category"] = str(row["category"])
            serial = next(_serial)
            row.setdefault("name", f"Product {serial}")
            row.setdefault("slug", f"product-{serial}")
            row.setdefault("status", "published")
            prepared.append(row)
        client.portal.call(_insert, prepared)

    return _add


@pytest.fixture
def create_category(client):
    def _create(**fields):
        response = client.post("/api/categories/", json=fields)
        assert response.status_code == 201, response.text
        return response.json()

    return _create
