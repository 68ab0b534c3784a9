import os
import tempfile

# Point the app at throwaway storage before db/storage read their settings
_tmp_dir = tempfile.mkdtemp(prefix="performance-tracker-tests-")
os.environ.pop("DATABASE_URL", None)
os.environ["ENV"] = "test"
os.environ["DATABASE_PATH"] = os.path.join(_tmp_dir, "test.db")
os.environ["UPLOAD_DIR"] = os.path.join(_tmp_dir, "uploads")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, select  # noqa: E402

from app import app  # noqa: E402
from db import create_db_and_tables, engine, get_session  # noqa: E402
from models import Performance  # noqa: E402


@pytest.fixture(scope="function")
def test_session():
    """Create a test database session."""
    create_db_and_tables()
    with Session(engine) as session:
        yield session
        # Clean up all test data after test
        session.rollback()
        for performance in session.exec(select(Performance)).all():
            session.delete(performance)
        session.commit()


@pytest.fixture(scope="function")
def client(test_session):
    """Create a test client with dependency override."""

    def get_test_session():
        yield test_session

    app.dependency_overrides[get_session] = get_test_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
