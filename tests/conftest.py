"""
Fixtures for the API tests: a throwaway SQLite file, the app wired to it, an empty result cache.
"""

import os
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

TEST_DATABASE_URL = "sqlite:///./workroom_test.db"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL  # read by workroom.config at import

from workroom.cache import result_cache
from workroom.database import Base, get_db
from workroom.main import app

engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def _test_session():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


app.dependency_overrides[get_db] = _test_session


@pytest.fixture(autouse=True)
def fresh_schema():
    """Each test gets empty calculation, grid and markup tables and a cold cache."""
    Base.metadata.create_all(bind=engine)
    result_cache.clear()
    yield
    result_cache.clear()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    """Session for seeding rows and checking what the endpoints stored."""
    yield from _test_session()
