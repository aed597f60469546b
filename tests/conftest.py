"""
Pytest fixtures for the back-office API tests.

The app runs against a throwaway SQLite file; tables are created by the
development lifespan and wiped before every test.
"""
import io
import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="retail-tests-")
_DB_PATH = os.path.join(_DB_DIR, "test.db")

os.environ.update({
    "APP_ENV": "development",
    "DB_TYPE": "sqlite",
    "SQLITE_PATH": _DB_PATH,
    "JWT_ACCESS_SECRET_KEY": "test-secret",
    "SHOP_NAME": "Test Sports",
})

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook
from sqlalchemy import create_engine

from main import app
from app.core.db import Base
from app.core.security import create_access_token

IMPORT_HEADERS = [
    "name", "category", "brand", "wholesalePrice", "retailPrice",
    "description", "barcode", "size", "quantity",
]


@pytest.fixture(scope="session")
def client():
    """Application client, authenticated as a test operator."""
    with TestClient(app) as c:
        c.headers.update({"Authorization": f"Bearer {create_access_token('tester')}"})
        yield c


@pytest.fixture(scope="session")
def sync_engine(client):
    engine = create_engine(f"sqlite:///{_DB_PATH}")
    yield engine
    engine.dispose()


@pytest.fixture(autouse=True)
def clean_db(sync_engine):
    with sync_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    yield


@pytest.fixture
def make_product(client):
    """Create a product through the API and return its JSON body."""
    def _make(**overrides):
        payload = {
            "name": "Runner",
            "category": "Shoes",
            "brand": "Acme",
            "wholesale_price": "60.00",
            "retail_price": "100.00",
            "sizes": [{"size": "8", "quantity": 10}, {"size": "9", "quantity": 5}],
            "hsn_sac": "6404",
            "gst": "18",
        }
        payload.update(overrides)
        resp = client.post("/api/product/add", json=payload)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]
    return _make


@pytest.fixture
def get_product(client):
    def _get(product_id):
        resp = client.get(f"/api/product/{product_id}")
        assert resp.status_code == 200, resp.text
        return resp.json()["data"]
    return _get


def build_xlsx(rows, headers=IMPORT_HEADERS) -> bytes:
    wb = Workbook()
    sheet = wb.active
    sheet.append(headers)
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def sizes_of(product: dict) -> dict:
    return {s["size"]: s["quantity"] for s in product["sizes"]}
