"""Shared pytest fixtures for contentful-migrations tests."""

from unittest.mock import MagicMock

import pytest
from dotenv import load_dotenv

from contentful_migrations.config import Config

load_dotenv()


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a live Contentful space",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring a live Contentful space"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch, tmp_path):
    """Keep developer config files and env vars out of the tests."""
    for key in (
        "CONTENTFUL_SPACE_ID",
        "CONTENTFUL_MANAGEMENT_TOKEN",
        "CONTENTFUL_HOST",
        "CONTENTFUL_MIGRATIONS_STORAGE",
        "CONTENTFUL_MIGRATIONS_CONFIG",
        "CONTENTFUL_INSECURE",
        "CONTENTFUL_DEBUG",
        "CONTENTFUL_MAX_PARALLEL_REQUESTS",
        "CONTENTFUL_PAGE_SIZE",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def mock_config():
    """Create a Config instance for testing."""
    return Config(
        space_id="space1",
        access_token="CFPAT-test",
        page_size=100,
    )


@pytest.fixture
def mock_management_client(mock_config):
    """Create a mock ManagementClient instance for testing."""
    from contentful_migrations.core.client import ManagementClient

    client = MagicMock(spec=ManagementClient)
    client.config = mock_config
    return client


@pytest.fixture
def mock_response():
    """Factory fixture for creating requests response mocks."""

    def _create_response(payload=None, status_code=200):
        import requests
        from unittest.mock import Mock

        response = Mock()
        response.status_code = status_code
        response.content = b"{}" if payload is not None else b""
        response.json.return_value = payload
        if status_code >= 400:
            error = requests.HTTPError(f"{status_code} Error")
            error.response = response
            response.raise_for_status.side_effect = error
        else:
            response.raise_for_status.return_value = None
        return response

    return _create_response
