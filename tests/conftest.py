# tests/conftest.py
from decimal import Decimal

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from catalog.database import InMemoryProductStore
from catalog.main import app, get_store
from catalog.models import Product
from catalog.sql import SqlProductStore


def make_product(product_id: str, stock: int = 10, name: str = "Widget", price: str = "10.00") -> Product:
    return Product(
        id=product_id,
        name=name,
        description=f"{name} for testing",
        price=Decimal(price),
        stock_available=stock,
    )


@pytest_asyncio.fixture(params=["memory", "sql"])
async def store(request, tmp_path):
    if request.param == "memory":
        yield InMemoryProductStore()
        return
    s = SqlProductStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
    await s.create_schema()
    yield s
    await s.close()


@pytest.fixture
def memory_store():
    return InMemoryProductStore()


@pytest.fixture
def client(memory_store):
    app.dependency_overrides[get_store] = lambda: memory_store
    yield TestClient(app)
    app.dependency_overrides.clear()
