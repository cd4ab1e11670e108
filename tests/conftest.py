import pytest
from fastapi.testclient import TestClient

from cart_store import CartStore
from config import Environment, Settings
from database import JsonCollection
from main import create_app
from product_store import ProductStore


@pytest.fixture
def temp_workspace(tmp_path):
    return tmp_path


@pytest.fixture
def settings(temp_workspace):
    return Settings(
        app_name="TestShop",
        environment=Environment.TEST,
        data_dir=temp_workspace / "data",
        log_dir=temp_workspace / "logs",
    )


@pytest.fixture
def product_store(settings):
    return ProductStore(JsonCollection(settings.products_path))


@pytest.fixture
def cart_store(settings):
    return CartStore(JsonCollection(settings.carts_path))


@pytest.fixture
def client(settings):
    return TestClient(create_app(settings))


@pytest.fixture
def make_draft():
    def _make(code="SKU-001", **overrides):
        draft = {
            "title": "Mechanical keyboard",
            "description": "Tenkeyless keyboard with brown switches",
            "price": 79.9,
            "stock": 12,
            "category": "Peripherals",
            "code": code,
        }
        draft.update(overrides)
        return draft

    return _make
