"""
Fixtures for API tests: the FastAPI app with the application context and
the background task manager replaced by test doubles.
"""
import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

from web.backend.app import app
from web.backend.dependencies import get_app_context
from web.backend.routers.search import limiter
from web.backend.services.search_service import get_search_manager
from tests import build_test_context


@pytest.fixture
def scoring_model_client():
    return MagicMock()


@pytest.fixture
def api_ctx(session_factory, scoring_model_client):
    return build_test_context(session_factory, scoring_model_client=scoring_model_client)


@pytest.fixture
def manager():
    task_manager = MagicMock()
    task_manager.start.return_value = True
    task_manager.stop.return_value = True
    return task_manager


@pytest.fixture
def client(api_ctx, manager):
    app.dependency_overrides[get_app_context] = lambda: api_ctx
    app.dependency_overrides[get_search_manager] = lambda: manager
    limiter.enabled = False
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()
        limiter.enabled = True


