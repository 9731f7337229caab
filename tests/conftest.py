import mongomock
from bson import ObjectId
import pytest
from fastapi.testclient import TestClient

import config
from auth import Principal, token_for
from database import get_db
from main import app
from products import ProductStore
from schemas import ProductIn

ALICE = Principal(id="alice-id", email="alice@example.com")
BOB = Principal(id="bob-id", email="bob@example.com")

ADDRESS = {
    "fullName": "Alice Nguyen",
    "phone": "0900000000",
    "address": "12 Le Loi",
    "city": "Hanoi",
    "postalCode": "100000",
}


@pytest.fixture
def db():
    return mongomock.MongoClient()["storefront_test"]


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login_as(client):
    def _login(principal: Principal = ALICE):
        c = TestClient(app)
        c.cookies.set(config.AUTH_COOKIE_NAME, token_for(principal))
        return c
    return _login


@pytest.fixture
def alice(login_as):
    return login_as(ALICE)


@pytest.fixture
def bob(login_as):
    return login_as(BOB)


@pytest.fixture
def make_product(db):
    store = ProductStore(db)

    def _make(**overrides):
        data = {
            "name": "Linen Shirt",
            "description": "Breathable summer shirt",
            "price": 25.0,
            "image": "https://img.example.com/linen.jpg",
            "category": "Shirts",
            "stock": 10,
        }
        data.update(overrides)
        return store.create(ProductIn(**data), ALICE)
    return _make


def stock_of(db, product_id):
    return db["product"].find_one({"_id": ObjectId(product_id)})["stock"]
