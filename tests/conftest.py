"""
Pytest configuration and fixtures.

This file provides pytest-specific configuration and fixtures.
For standard test utilities, see tests/__init__.py
"""

import os
import pytest

from database.database import build_engine, build_session_factory
from database.models import Base
from tests import seed_tenant, is_database_available


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "db: marks tests as requiring database (deselect with '-m \"not db\"')"
    )


@pytest.fixture
def sqlite_engine(tmp_path):
    """File-backed SQLite engine so worker threads share one database."""
    engine = build_engine(f"sqlite:///{tmp_path / 'talentscout_test.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine):
    return build_session_factory(sqlite_engine)


@pytest.fixture
def seed(session_factory):
    """Fixture tenant: org-1 with 10 credits, an owner, a viewer and an active subscription."""
    return seed_tenant(session_factory)


@pytest.fixture(scope="session")
def test_database():
    """
    Session-scoped fixture that manages the PostgreSQL test database.

    Uses TEST_DATABASE_URL when it is set and reachable, otherwise starts a
    container with testcontainers.
    """
    external_url = os.environ.get("TEST_DATABASE_URL")
    if external_url:
        if is_database_available(external_url):
            yield external_url
            return
        pytest.skip("External database not available")

    try:
        from testcontainers.postgres import PostgresContainer

        postgres = PostgresContainer(
            image="postgres:16-alpine",
            username="testuser",
            password="testpass",
            dbname="talentscout_test"
        )
        postgres.start()
    except Exception as e:
        pytest.skip(f"Could not start test database container: {e}")

    try:
        yield postgres.get_connection_url()
    finally:
        postgres.stop()


@pytest.fixture
def pg_session_factory(test_database):
    """Fresh schema per test on PostgreSQL."""
    engine = build_engine(test_database)
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield build_session_factory(engine)
    Base.metadata.drop_all(engine)
    engine.dispose()
