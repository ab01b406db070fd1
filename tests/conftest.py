import asyncio
import time

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from config import Settings
from database import Database
from main import create_app
from schemas import FunkoPop, Review, User
from security import create_access_token, pwd_context

VALID_PASSWORD = "test1234"

FUNKOPOP_ITEM = {
    "title": "Marvel: WandaVision - Halloween Wanda",
    "price": 7.2,
    "description": "Funko pop of halloween wanda",
    "quantity": "100",
}


@pytest.fixture(scope="session")
def password_hash():
    return pwd_context.hash(VALID_PASSWORD)


@pytest.fixture
def settings():
    return Settings(secret_key="test-secret", database_name="funkopops_test")


@pytest.fixture
def db():
    return Database(mongomock.MongoClient()["funkopops_test"])


@pytest.fixture
def app(settings, db):
    return create_app(settings, db)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def create_user(db, password_hash):
    def _create(email="johndoe@test.com", role="user", **extra):
        doc = User(email=email, password_hash=password_hash, role=role, **extra).model_dump()
        doc["_id"] = ObjectId()
        db.db["user"].insert_one(doc)
        return doc
    return _create


@pytest.fixture
def auth_header(settings):
    def _header(user):
        token = asyncio.run(create_access_token(user["_id"], settings))
        return {"authorization": f"Bearer {token}"}
    return _header


@pytest.fixture
def user(create_user):
    return create_user()


@pytest.fixture
def admin(create_user):
    return create_user(email="admin@test.com", role="admin")


@pytest.fixture
def user_headers(user, auth_header):
    return auth_header(user)


@pytest.fixture
def admin_headers(admin, auth_header):
    return auth_header(admin)


@pytest.fixture
def create_funkopop(db):
    def _create(**overrides):
        item = {**FUNKOPOP_ITEM, "quantity": 100, **overrides}
        doc = FunkoPop(**item).model_dump()
        doc["_id"] = ObjectId()
        db.db["funkopop"].insert_one(doc)
        return doc
    return _create


@pytest.fixture
def create_review(db):
    def _create(funkopop, author, message="Loved the product", timestamp=None):
        doc = Review(
            productId=funkopop["_id"],
            userId=author["_id"],
            message=message,
            timestamp=timestamp if timestamp is not None else int(time.time() * 1000) - 60000,
        ).model_dump()
        doc["_id"] = ObjectId()
        db.db["review"].insert_one(doc)
        db.db["funkopop"].update_one({"_id": funkopop["_id"]}, {"$push": {"reviews": doc["_id"]}})
        return doc
    return _create
