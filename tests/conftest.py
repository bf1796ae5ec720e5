# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from attendance_export.core.config import get_settings
from attendance_export.main import create_app


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """
    Settings are cached per process; drop the cache around every test so
    monkeypatched environment variables are picked up.
    """
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def client() -> TestClient:
    """
    TestClient built through the application factory.
    """
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
