# tests/conftest.py
import mongomock
import pytest
from fastapi.testclient import TestClient

from config import settings
from database import Database
from main import create_app
from repositories import AccountRepository, InquiryRepository, ListingRepository


@pytest.fixture(autouse=True)
def _fast_hashing(monkeypatch):
    # bcrypt's minimum cost keeps the suite quick
    monkeypatch.setattr(settings, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def db():
    """
    Fresh in-memory store per test. mongomock stands in for the MongoClient,
    indexes (unique ones included) are created by connect() as in production.
    """
    database = Database("mongodb://localhost:27017", "rental_test", client=mongomock.MongoClient())
    database.connect()
    try:
        yield database
    finally:
        database.close()


@pytest.fixture
def listings(db):
    return ListingRepository(db)


@pytest.fixture
def accounts(db):
    return AccountRepository(db)


@pytest.fixture
def inquiries(db):
    return InquiryRepository(db)


@pytest.fixture
def app(db, tmp_path):
    return create_app(database=db, upload_dir=str(tmp_path / "uploads"))


@pytest.fixture
def client(app):
    with TestClient(app, base_url="http://testserver/api") as c:
        yield c


@pytest.fixture
def listing_form():
    return {
        "id": "101",
        "title": "Sunny two bedroom",
        "state": "Maharashtra",
        "city": "Pune",
        "address": "12 MG Road",
        "price": "1200",
        "beds": "2",
        "baths": "1",
    }
